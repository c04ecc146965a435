"""Simplifique chatbot API client with strict/resilient failure handling."""
from http.client import HTTPException
import json
from typing import Any, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from ..api.normalizer import NormalizedQuery
from ..core.errors import InternalError, UpstreamError
from ..utils.logging import clip_body, log_event

MESSAGE_ENDPOINT = "message/"
FALLBACK_ANSWER = "Desculpe, não foi possível obter uma resposta do chatbot agora."


def build_message_url(base_url: str) -> str:
    return f"{base_url.rstrip('/')}/{MESSAGE_ENDPOINT}"


def build_upstream_body(query: NormalizedQuery) -> dict:
    """Build the /message/ body; the system prompt key is omitted when blank."""
    body = {
        "chatbot_uuid": query.chatbot_uuid,
        "query": query.query,
        "user_key": query.user_key,
    }
    if query.system_prompt and query.system_prompt.strip():
        body["custom_base_system_prompt"] = query.system_prompt
    return body


def _decode_body(raw: bytes) -> Any:
    text = raw.decode("utf-8", errors="replace") if raw else ""
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def fallback_response() -> dict:
    return {"data": {"answer": FALLBACK_ANSWER, "chat_id": None}}


def _normalize_response(payload: Any) -> dict:
    if not isinstance(payload, dict):
        raise InternalError("Simplifique returned a malformed response")
    data = payload.get("data")
    if not isinstance(data, dict):
        data = {}
    answer = data.get("answer")
    if not isinstance(answer, str):
        answer = ""
    return {"data": {"answer": answer, "chat_id": data.get("chat_id") or None}}


def send_message(settings, query: NormalizedQuery, request_id: Optional[str] = None) -> dict:
    """POST the query to Simplifique once and return ``{"data": {...}}``.

    Raises UpstreamError for non-2xx answers, timeouts and network failures and
    InternalError when the backend body is not a JSON object.
    """
    url = build_message_url(settings.simplifique_base_url)
    body = build_upstream_body(query)
    headers = {
        "Authorization": f"Token {query.api_token}",
        "Content-Type": "application/json",
        "Accept": "application/json",
    }
    log_event(
        10,
        "upstream_request",
        request_id=request_id,
        upstream_url=url,
        chatbot_uuid=query.chatbot_uuid,
        user_key=query.user_key,
        has_system_prompt="custom_base_system_prompt" in body,
    )
    req = Request(url, data=json.dumps(body).encode("utf-8"), headers=headers, method="POST")
    try:
        with urlopen(req, timeout=settings.upstream_timeout) as resp:
            status = resp.status
            raw = resp.read()
    except HTTPError as e:
        try:
            error_body = _decode_body(e.read())
        except (HTTPException, OSError):
            error_body = None
        log_event(
            40,
            "upstream_error",
            request_id=request_id,
            upstream_url=url,
            status=e.code,
            body=clip_body(error_body),
        )
        raise UpstreamError(f"Simplifique returned HTTP {e.code}", status=e.code, body=error_body) from e
    except (URLError, HTTPException, OSError) as e:
        reason = getattr(e, "reason", None) or e
        log_event(40, "upstream_error", request_id=request_id, upstream_url=url, error=str(reason))
        raise UpstreamError(f"Simplifique request failed: {reason}") from e

    payload = _decode_body(raw)
    if status < 200 or status >= 300:
        raise UpstreamError(f"Simplifique returned HTTP {status}", status=status, body=payload)
    return _normalize_response(payload)


def fetch_answer(settings, query: NormalizedQuery, request_id: Optional[str] = None) -> dict:
    """Call Simplifique under the configured failure policy.

    In resilient mode upstream failures become the fixed apology answer; in
    strict mode they propagate to the caller.
    """
    try:
        return send_message(settings, query, request_id=request_id)
    except (UpstreamError, InternalError) as e:
        if not settings.resilient:
            raise
        log_event(
            30,
            "upstream_fallback",
            request_id=request_id,
            error=e.message,
            status=getattr(e, "upstream_status", None),
        )
        return fallback_response()
