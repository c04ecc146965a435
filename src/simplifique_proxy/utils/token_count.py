"""Token counting helpers (coarse estimate)."""
from __future__ import annotations

import math


def estimate_tokens(text: str | None) -> int:
    # ~4 chars per token, rounded up; empty text counts as zero
    if not text:
        return 0
    return math.ceil(len(text) / 4)


def build_usage(prompt_text: str | None, completion_text: str | None) -> dict:
    """Return an OpenAI usage block for the given prompt/completion texts."""
    prompt_tokens = estimate_tokens(prompt_text)
    completion_tokens = estimate_tokens(completion_text)
    return {
        "prompt_tokens": prompt_tokens,
        "completion_tokens": completion_tokens,
        "total_tokens": prompt_tokens + completion_tokens,
    }
