# services/completion_client.py
from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, List, Optional

import httpx
import openai
from openai import AsyncOpenAI
from pydantic import ValidationError as PydanticValidationError

from config import Settings, settings as default_settings
from errors import ProtocolError, TransportError, UpstreamError, ItineraryServiceError
from models import ChatMessage, CompletionResult, ContentPart, ImageUrl, TokenUsage
from request_context import get_request_id

log = logging.getLogger("llm")

Sleep = Callable[[float], Awaitable[None]]

RETRYABLE_STATUSES = frozenset({408, 429})


def _error_envelope(payload: Any) -> Optional[Dict[str, Any]]:
    if isinstance(payload, dict) and isinstance(payload.get("error"), dict):
        return payload["error"]
    return None


def _upstream_from_envelope(envelope: Dict[str, Any], status: int) -> UpstreamError:
    message = envelope.get("message") or "unknown provider error"
    code = envelope.get("code")
    return UpstreamError(
        f"Completion provider error: {message}",
        status=status,
        error_type=envelope.get("type"),
        code=str(code) if code is not None else None,
    )


def _is_transient(e: ItineraryServiceError) -> bool:
    """Provider error envelopes are final unless they signal throttling or a server fault."""
    if not isinstance(e, UpstreamError):
        return True
    status = e.status
    # Envelopes inside a 2xx body carry the real status as their code
    if status is not None and 200 <= status < 300 and e.code and e.code.isdigit():
        status = int(e.code)
    return status is None or status in RETRYABLE_STATUSES or status >= 500


def _result_from_body(body: Dict[str, Any], status: int) -> CompletionResult:
    choices = body.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        raise ProtocolError("No response choices returned from completion provider", status=status)
    choice = choices[0]
    message = choice.get("message") or {}
    content = message.get("content") if isinstance(message, dict) else None
    if not isinstance(content, str):
        raise ProtocolError("Completion provider returned a choice without text content", status=status)

    created = body.get("created")
    try:
        created_at = datetime.fromtimestamp(int(created), tz=timezone.utc)
    except (TypeError, ValueError, OverflowError, OSError):
        created_at = datetime.now(timezone.utc)

    usage = body.get("usage")
    if not isinstance(usage, dict):
        usage = {}
    try:
        return CompletionResult(
            id=str(body.get("id") or ""),
            model=str(body.get("model") or ""),
            content=content,
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
                total_tokens=usage.get("total_tokens") or 0,
            ),
            finish_reason=choice.get("finish_reason"),
            created_at=created_at,
        )
    except PydanticValidationError as e:
        raise ProtocolError("Completion provider returned a malformed envelope", status=status) from e


class CompletionClient:
    """
    Chat-completion client for an OpenRouter-compatible endpoint.

    The SDK's own retries are disabled; transport and protocol failures, and
    provider envelopes with status 408, 429 or 5xx, go through one sequential
    retry loop here with delay ``retry_base_s * attempt``. Other provider
    envelopes (bad key, no credits, bad request) are raised on first sight.
    No state is kept between calls beyond configuration.
    """

    def __init__(
        self,
        cfg: Settings | None = None,
        *,
        http_client: httpx.AsyncClient | None = None,
        sleep: Sleep = asyncio.sleep,
    ) -> None:
        cfg = cfg or default_settings
        if not cfg.OPENROUTER_API_KEY:
            raise ValueError(
                "OpenRouter API key is required. Please set OPENROUTER_API_KEY in your environment variables."
            )
        self.default_model = cfg.OPENROUTER_MODEL
        self.max_retries = cfg.COMPLETION_MAX_RETRIES
        self.retry_base_s = cfg.COMPLETION_RETRY_BASE_S
        self.timeout_s = cfg.COMPLETION_TIMEOUT_S
        self._sleep = sleep
        self._client = AsyncOpenAI(
            api_key=cfg.OPENROUTER_API_KEY,
            base_url=cfg.OPENROUTER_BASE_URL,
            timeout=cfg.COMPLETION_TIMEOUT_S,
            max_retries=0,
            default_headers={
                "HTTP-Referer": cfg.OPENROUTER_SITE_URL,
                "X-Title": cfg.OPENROUTER_SITE_NAME,
            },
            http_client=http_client,
        )

    async def __aenter__(self) -> "CompletionClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.close()

    # ---------- public API ----------

    async def chat_completion(
        self,
        messages: List[ChatMessage],
        model: str | None = None,
        temperature: float | None = None,
        max_tokens: int | None = None,
        top_p: float | None = None,
        frequency_penalty: float | None = None,
        presence_penalty: float | None = None,
    ) -> CompletionResult:
        payload: Dict[str, Any] = {
            "model": model or self.default_model,
            "messages": [m.model_dump(exclude_none=True) for m in messages],
        }
        optional = {
            "temperature": temperature,
            "max_tokens": max_tokens,
            "top_p": top_p,
            "frequency_penalty": frequency_penalty,
            "presence_penalty": presence_penalty,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        return await self._with_retries(payload)

    async def complete(self, prompt: str, model: str | None = None, temperature: float = 0.7) -> CompletionResult:
        return await self.chat_completion([ChatMessage.user_text(prompt)], model=model, temperature=temperature)

    async def analyze_image(
        self,
        image_url: str,
        question: str = "What is in this image?",
        model: str | None = None,
    ) -> CompletionResult:
        message = ChatMessage(
            role="user",
            content=[
                ContentPart(type="text", text=question),
                ContentPart(type="image_url", image_url=ImageUrl(url=image_url)),
            ],
        )
        return await self.chat_completion([message], model=model)

    async def health_check(self) -> bool:
        try:
            result = await self.complete("Hello", temperature=0.1)
        except ItineraryServiceError:
            log.warning("Completion provider health check failed", exc_info=True)
            return False
        return bool(result.content)

    # ---------- internals ----------

    async def _with_retries(self, payload: Dict[str, Any]) -> CompletionResult:
        rid = get_request_id()
        last_error: ItineraryServiceError | None = None
        for attempt in range(1, self.max_retries + 1):
            log.info("Completion request", extra={"request_id": rid, "model": payload["model"], "attempt": attempt})
            try:
                result = await self._send(payload)
            except ItineraryServiceError as e:
                last_error = e
                log.warning(
                    "Completion attempt %d/%d failed: %s",
                    attempt, self.max_retries, e.kind,
                    extra={"request_id": rid, "detail": e.detail},
                )
                if not _is_transient(e):
                    raise
                if attempt < self.max_retries:
                    delay = self.retry_base_s * attempt
                    log.info("Retrying completion in %.1fs", delay, extra={"request_id": rid})
                    await self._sleep(delay)
                continue
            log.info("Completion ok", extra={
                "request_id": rid,
                "model": result.model,
                "finish_reason": result.finish_reason,
                "total_tokens": result.usage.total_tokens,
            })
            return result
        raise last_error

    async def _send(self, payload: Dict[str, Any]) -> CompletionResult:
        """One HTTP exchange, classified into a result or a typed error."""
        try:
            raw = await self._client.chat.completions.with_raw_response.create(**payload)
        except openai.APIConnectionError as e:
            # APITimeoutError is a subclass; a timeout is a transport fault
            raise TransportError(f"Could not reach completion provider: {type(e).__name__}") from e
        except openai.APIStatusError as e:
            raise self._classify_status_error(e) from e

        response = raw.http_response
        try:
            body = response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise ProtocolError("Completion provider returned a non-JSON body", status=response.status_code) from e
        envelope = _error_envelope(body)
        if envelope is not None:
            raise _upstream_from_envelope(envelope, response.status_code)
        if not isinstance(body, dict):
            raise ProtocolError("Completion provider returned an unexpected body", status=response.status_code)
        return _result_from_body(body, response.status_code)

    @staticmethod
    def _classify_status_error(e: openai.APIStatusError) -> ItineraryServiceError:
        status = e.status_code
        try:
            body = e.response.json()
        except (json.JSONDecodeError, ValueError):
            log.error("API request failed: %s (unparseable body)", status)
            return ProtocolError(f"Completion provider returned HTTP {status} with an unreadable body", status=status)
        envelope = _error_envelope(body)
        if envelope is None:
            log.error("API request failed: %s (no error envelope)", status)
            return ProtocolError(f"Completion provider returned HTTP {status} without an error envelope", status=status)
        log.error("API request failed: %s", status, extra={"error_type": envelope.get("type")})
        return _upstream_from_envelope(envelope, status)
