"""Message content helpers and the legacy single-string message parser.

The legacy convention packs a whole conversation turn into one string::

    System: <system prompt>
    Contexto Extra Human:
    Query: <question>
    user_key: <caller id>

Grammar (every section optional, markers are literal):

* ``System:`` runs up to the first ``Contexto Extra`` after it, or to the end.
* ``Contexto Extra`` followed by optional whitespace and ``Human:`` opens the
  context block, which runs to the end of the input.
* Inside the context block ``Query:`` runs up to the next ``user_key:`` and
  ``user_key:`` runs to the end of its line (leading whitespace, newlines
  included, is skipped). Both markers are matched case-insensitively. A
  ``Query:`` without a following ``user_key:`` yields no query.
* When the context block yields no query, the first ``Human:`` in the input
  supplies it: leading whitespace is skipped and the rest of that line is taken.

Every capture is stripped of surrounding whitespace.
"""
from dataclasses import dataclass
import re

SYSTEM_MARKER = "System:"
CONTEXT_MARKER = "Contexto Extra"
HUMAN_MARKER = "Human:"
QUERY_MARKER = "Query:"
USER_KEY_MARKER = "user_key:"


@dataclass
class MessageSections:
    system_prompt: str = ""
    query: str = ""
    user_key: str = ""


def _find(text: str, marker: str, start: int = 0, ignore_case: bool = False) -> int:
    if not ignore_case:
        return text.find(marker, start)
    match = re.compile(re.escape(marker), re.IGNORECASE).search(text, start)
    return match.start() if match else -1


def _skip_whitespace(text: str, pos: int) -> int:
    while pos < len(text) and text[pos].isspace():
        pos += 1
    return pos


def _rest_of_line(text: str, pos: int) -> str:
    start = _skip_whitespace(text, pos)
    end = start
    while end < len(text) and text[end] not in "\r\n":
        end += 1
    return text[start:end]


def _system_section(text: str) -> str:
    start = text.find(SYSTEM_MARKER)
    if start < 0:
        return ""
    start += len(SYSTEM_MARKER)
    end = text.find(CONTEXT_MARKER, start)
    if end < 0:
        end = len(text)
    return text[start:end].strip()


def _context_block(text: str) -> str | None:
    pos = text.find(CONTEXT_MARKER)
    while pos >= 0:
        after = _skip_whitespace(text, pos + len(CONTEXT_MARKER))
        if text.startswith(HUMAN_MARKER, after):
            return text[after + len(HUMAN_MARKER):].strip()
        pos = text.find(CONTEXT_MARKER, pos + 1)
    return None


def _context_query(block: str) -> str:
    start = _find(block, QUERY_MARKER, ignore_case=True)
    if start < 0:
        return ""
    start += len(QUERY_MARKER)
    end = _find(block, USER_KEY_MARKER, start, ignore_case=True)
    if end < 0:
        return ""
    return block[start:end].strip()


def _context_user_key(block: str) -> str:
    pos = _find(block, USER_KEY_MARKER, ignore_case=True)
    if pos < 0:
        return ""
    return _rest_of_line(block, pos + len(USER_KEY_MARKER)).strip()


def parse_legacy_message(text: str) -> MessageSections:
    """Split a legacy single-string message into its sections."""
    sections = MessageSections(system_prompt=_system_section(text))

    block = _context_block(text)
    if block is not None:
        sections.query = _context_query(block)
        sections.user_key = _context_user_key(block)

    if not sections.query:
        pos = text.find(HUMAN_MARKER)
        if pos >= 0:
            sections.query = _rest_of_line(text, pos + len(HUMAN_MARKER)).strip()
    return sections


def flatten_message_content(content) -> str:
    """Reduce OpenAI message content (string or content parts) to plain text."""
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts = []
        for item in content:
            if isinstance(item, dict):
                text = item.get("text")
            else:
                text = getattr(item, "text", None)
            if isinstance(text, dict):
                parts.append(str(text.get("value") or text.get("text") or ""))
            elif text is not None:
                parts.append(str(text))
        return "".join(parts)
    if isinstance(content, dict) and "text" in content:
        return str(content.get("text") or "")
    return str(content)


def as_text(value) -> str | None:
    """Scalar request fields (``model``, ``user``) as strings; containers are ignored."""
    if value is None or isinstance(value, (dict, list)):
        return None
    if isinstance(value, bool):
        return str(value).lower()
    return str(value)
