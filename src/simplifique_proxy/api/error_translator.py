"""Map proxy failures to OpenAI error envelopes or embedded-error completions."""
import time
from typing import Optional

from flask import jsonify

from ..core.errors import ProxyError, UpstreamError
from ..utils.http import error_payload
from .translator import SERVICE_NAME, make_completion_id

EMBEDDED_ERROR_PREFIX = "Desculpe, ocorreu um erro: "
DEFAULT_UPSTREAM_AUTH_MESSAGE = "Invalid Simplifique API token"
DEFAULT_UPSTREAM_INVALID_MESSAGE = "Simplifique rejected the request"


def _upstream_message(body) -> Optional[str]:
    if not isinstance(body, dict):
        return None
    for key in ("detail", "message", "error"):
        value = body.get(key)
        if isinstance(value, str) and value.strip():
            return value
    return None


def _upstream_details(body):
    if not isinstance(body, dict):
        return None
    errors = body.get("errors")
    if isinstance(errors, (list, dict)) and errors:
        return errors
    return None


def translate_error(err: ProxyError) -> tuple[int, dict]:
    """Return ``(status, envelope)`` for any proxy error."""
    if isinstance(err, UpstreamError):
        if err.upstream_status == 401:
            message = _upstream_message(err.body) or DEFAULT_UPSTREAM_AUTH_MESSAGE
            return 401, error_payload(message, "authentication_error")
        if err.upstream_status == 400:
            message = _upstream_message(err.body) or DEFAULT_UPSTREAM_INVALID_MESSAGE
            return 400, error_payload(message, "invalid_request_error", _upstream_details(err.body))
        return err.status, error_payload(err.message, "api_error")
    return err.status, error_payload(err.message, err.error_type)


def build_error_completion(message: str, model: str) -> dict:
    """A normal-looking completion whose assistant text carries the error."""
    return {
        "id": make_completion_id(),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "system_fingerprint": None,
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": f"{EMBEDDED_ERROR_PREFIX}{message or 'erro inesperado.'}",
                    "tool_calls": None,
                },
                "logprobs": None,
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": 0, "completion_tokens": 0, "total_tokens": 0},
        "metadata": {"simplifique_chat_id": None, "service": SERVICE_NAME},
    }


def render_error(err: ProxyError, settings, model: Optional[str] = None):
    """Flask response for ``err`` under the configured error mode."""
    status, envelope = translate_error(err)
    if settings.embed_errors:
        completion = build_error_completion(envelope["error"]["message"], model or settings.default_model)
        return jsonify(completion), 200
    return jsonify(envelope), status
