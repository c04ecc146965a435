"""Turn an inbound chat-completions request into a Simplifique query."""
from dataclasses import dataclass
import random
import re
import string
import time
from typing import List, Optional

from ..core.errors import AuthError, ValidationError
from ..utils.params import MessageSections, as_text, flatten_message_content, parse_legacy_message
from .schemas import ChatCompletionsRequest, ChatMessage

BEARER_PREFIX = "Bearer "

# Requests naming one of these keep the model field out of user-key resolution.
KNOWN_MODELS = frozenset({"gpt-3.5-turbo", "gpt-4", "gpt-4o", "simplifique-default"})

_UUID_RE = re.compile(
    r"^[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}$",
    re.IGNORECASE,
)
_KEY_ALPHABET = string.digits + string.ascii_lowercase


@dataclass(frozen=True)
class NormalizedQuery:
    query: str
    system_prompt: str
    user_key: str
    chatbot_uuid: str
    api_token: str
    model: Optional[str] = None


@dataclass(frozen=True)
class MessageArray:
    messages: List[ChatMessage]


@dataclass(frozen=True)
class LegacyString:
    text: str


def parse_authorization(header: Optional[str]) -> tuple[str, str]:
    """Split ``Bearer <api_token>:<chatbot_uuid>`` into its two parts."""
    if not header or not header.startswith(BEARER_PREFIX):
        raise AuthError("Authorization header missing or invalid")
    credentials = header[len(BEARER_PREFIX):].strip()
    api_token, sep, chatbot_uuid = credentials.partition(":")
    if not sep or not api_token:
        raise AuthError("Authorization must be 'Bearer <api_token>:<chatbot_uuid>'")
    if not _UUID_RE.match(chatbot_uuid):
        raise ValidationError("Invalid chatbot UUID format")
    return api_token, chatbot_uuid


def classify_messages(messages) -> MessageArray | LegacyString:
    """Pick the message variant once, by shape."""
    if not isinstance(messages, list):
        messages = []
    if len(messages) == 1 and isinstance(messages[0], str):
        return LegacyString(messages[0])
    return MessageArray([ChatMessage.model_validate(msg) for msg in messages if isinstance(msg, dict)])


def extract_from_array(messages: List[ChatMessage]) -> MessageSections:
    sections = MessageSections()
    for msg in messages:
        if msg.role != "system":
            continue
        text = flatten_message_content(msg.content)
        if text:
            sections.system_prompt = text.strip()
            break
    for msg in reversed(messages):
        text = flatten_message_content(msg.content)
        if text:
            sections.query = text.strip()
            break
    return sections


def extract_sections(variant: MessageArray | LegacyString) -> MessageSections:
    if isinstance(variant, LegacyString):
        return parse_legacy_message(variant.text)
    return extract_from_array(variant.messages)


def generate_user_key() -> str:
    suffix = "".join(random.choices(_KEY_ALPHABET, k=9))
    return f"n8n-{int(time.time() * 1000)}-{suffix}"


def resolve_user_key(
    embedded_key: Optional[str],
    model: Optional[str],
    user: Optional[str],
    header_user_key: Optional[str],
    header_user_id: Optional[str],
) -> str:
    """Return the first non-empty user key by precedence.

    An unknown model name doubles as the caller's key; a known one falls through
    to ``user``, then the ``x-user-key`` and ``x-user-id`` headers, and finally a
    generated key.
    """
    if embedded_key:
        return embedded_key
    if model and model not in KNOWN_MODELS:
        return model
    for candidate in (user, header_user_key, header_user_id):
        if candidate:
            return candidate
    return generate_user_key()


def _lower_headers(headers) -> dict:
    if headers is None:
        return {}
    return {str(key).lower(): value for key, value in headers.items()}


def normalize_request(data, headers) -> NormalizedQuery:
    """Parse body and headers; raise AuthError or ValidationError on bad input."""
    header_map = _lower_headers(headers)
    api_token, chatbot_uuid = parse_authorization(header_map.get("authorization"))

    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    payload = ChatCompletionsRequest.model_validate(data)
    model = as_text(payload.model)

    sections = extract_sections(classify_messages(payload.messages))
    if not sections.query:
        raise ValidationError("No user message found")

    user_key = resolve_user_key(
        sections.user_key,
        model,
        as_text(payload.user),
        header_map.get("x-user-key"),
        header_map.get("x-user-id"),
    )
    return NormalizedQuery(
        query=sections.query,
        system_prompt=sections.system_prompt,
        user_key=user_key,
        chatbot_uuid=chatbot_uuid,
        api_token=api_token,
        model=model,
    )
