"""Build OpenAI chat.completion objects from Simplifique answers."""
import json
import re
import time
import uuid
from typing import Optional

from ..utils.token_count import build_usage

SERVICE_NAME = "simplifique.ai"
TOOL_CALL_ID = "tool1"

# [FUNCTION_CALL] at a line start, then the function name, then its arguments.
_FUNCTION_CALL_RE = re.compile(r"^\[FUNCTION_CALL\]\s*([A-Za-z0-9_]+)\s*([\s\S]+)$", re.MULTILINE)


def parse_function_call(answer: Optional[str]) -> tuple[str, Optional[list]]:
    """Return ``(content, tool_calls)`` for a backend answer.

    Arguments that look like a JSON object but do not parse leave the answer
    as plain text.
    """
    if not answer:
        return "", None
    match = _FUNCTION_CALL_RE.search(answer)
    if not match:
        return answer, None
    name = match.group(1)
    arguments = match.group(2).strip()
    if arguments.startswith("{") and arguments.endswith("}"):
        try:
            json.loads(arguments)
        except json.JSONDecodeError:
            return answer, None
    tool_calls = [
        {
            "id": TOOL_CALL_ID,
            "type": "function",
            "function": {"name": name, "arguments": arguments},
        }
    ]
    return "", tool_calls


def make_completion_id() -> str:
    return f"chatcmpl-{uuid.uuid4()}"


def build_completion(
    upstream: dict,
    query_text: str,
    model: str,
    chatbot_uuid: Optional[str],
) -> dict:
    """Translate ``{"data": {"answer", "chat_id"}}`` into a chat.completion."""
    data = upstream.get("data") or {}
    answer = data.get("answer") or ""
    content, tool_calls = parse_function_call(answer)
    usage = build_usage(query_text, content or answer)
    return {
        "id": make_completion_id(),
        "object": "chat.completion",
        "created": int(time.time()),
        "model": model,
        "system_fingerprint": f"simplifique_{chatbot_uuid}" if chatbot_uuid else None,
        "choices": [
            {
                "index": 0,
                "message": {
                    "role": "assistant",
                    "content": content,
                    "tool_calls": tool_calls,
                },
                "logprobs": None,
                "finish_reason": "stop",
            }
        ],
        "usage": usage,
        "metadata": {
            "simplifique_chat_id": data.get("chat_id") or None,
            "service": SERVICE_NAME,
        },
    }
