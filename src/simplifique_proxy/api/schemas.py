"""Pydantic request schemas for API endpoints.

Every field accepts any JSON value; the normalizer decides what is usable.
"""
from typing import Any, Optional

from pydantic import BaseModel


class ChatMessage(BaseModel):
    role: Optional[Any] = None
    content: Optional[Any] = None
    name: Optional[Any] = None

    class Config:
        extra = "allow"


class ChatCompletionsRequest(BaseModel):
    model: Optional[Any] = None
    # Either OpenAI message objects or a single legacy-format string.
    messages: Optional[Any] = None
    user: Optional[Any] = None
    stream: Optional[Any] = None

    class Config:
        # Allow forward-compat fields from clients; we ignore unsupported ones.
        extra = "allow"
