from __future__ import annotations

import uuid
from contextvars import ContextVar

_request_id: ContextVar[str] = ContextVar("_request_id", default="-")

def new_request_id() -> str:
    rid = uuid.uuid4().hex[:12]
    _request_id.set(rid)
    return rid

def get_request_id() -> str:
    return _request_id.get()

def ensure_request_id() -> str:
    """Reuse the caller's request id, or mint one for this task's context."""
    rid = _request_id.get()
    if rid == "-":
        rid = new_request_id()
    return rid
