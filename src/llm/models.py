# src/llm/models.py — v3
"""Provider-neutral chat types exchanged with adapters."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel

Role = Literal["user", "assistant", "system"]


class Message(BaseModel):
    role: Role
    content: str

    @classmethod
    def user(cls, content: str) -> Message:
        return cls(role="user", content=content)


class LLMResponse(BaseModel):
    """One completion, normalized at the adapter boundary.

    ``raw_response`` keeps the SDK object for debugging; it is never cached.
    """

    content: str
    model: str
    provider: str
    input_tokens: int = 0
    output_tokens: int = 0
    latency_ms: int = 0
    raw_response: Any = None

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    @property
    def blank(self) -> bool:
        """No usable text (empty or whitespace only)."""
        return not self.content.strip()
