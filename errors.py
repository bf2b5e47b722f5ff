# errors.py
"""
Typed failures of the itinerary pipeline.

Every error carries a stable ``kind`` tag and a classified ``detail`` message.
``to_dict()`` is what may be shown to an untrusted caller; provider payloads
and stack traces stay in the logs.
"""
from __future__ import annotations

from typing import Any, Dict, Optional


class ItineraryServiceError(Exception):
    kind: str = "internal_error"
    status_code: int = 500

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "detail": self.detail}

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind!r}, detail={self.detail!r})"


# -----------------------------
# Completion provider
# -----------------------------

class TransportError(ItineraryServiceError):
    """The provider could not be reached (connection failure or timeout)."""
    kind = "transport_error"
    status_code = 502


class UpstreamError(ItineraryServiceError):
    """The provider answered with a structured error envelope."""
    kind = "upstream_error"
    status_code = 502

    def __init__(
        self,
        detail: str,
        *,
        status: Optional[int] = None,
        error_type: Optional[str] = None,
        code: Optional[str] = None,
    ) -> None:
        super().__init__(detail)
        self.status = status
        self.error_type = error_type
        self.code = code


class ProtocolError(ItineraryServiceError):
    """The provider answered, but not with anything resembling its own envelope."""
    kind = "protocol_error"
    status_code = 502

    def __init__(self, detail: str, *, status: Optional[int] = None) -> None:
        super().__init__(detail)
        self.status = status


# -----------------------------
# Content / caller
# -----------------------------

class MalformedResponseError(ItineraryServiceError):
    """The model's content does not hold a usable itinerary plan."""
    kind = "malformed_response"
    status_code = 502


class ValidationError(ItineraryServiceError):
    kind = "validation_error"
    status_code = 400


class NotFoundOrForbiddenError(ItineraryServiceError):
    """Record absent or owned by someone else; the two are deliberately indistinguishable."""
    kind = "not_found_or_forbidden"
    status_code = 404

    def __init__(self, detail: str = "Itinerary not found or you do not have permission to access it") -> None:
        super().__init__(detail)


class PersistenceError(ItineraryServiceError):
    kind = "persistence_error"
    status_code = 500
