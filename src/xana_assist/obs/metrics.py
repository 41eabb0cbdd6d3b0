"""Prompt size accounting and request timing."""

from __future__ import annotations

import re
import time
from collections.abc import Sequence
from dataclasses import dataclass

from xana_assist.types import ChatMessage

_TOKEN_PATTERN = re.compile(r"\w+|[^\w\s]", flags=re.UNICODE)


@dataclass(slots=True)
class PromptMetrics:
    """Size of the final prompt sent for generation."""

    total_messages: int
    system_prompt_chars: int
    context_chars: int
    total_chars: int
    estimated_tokens: int
    source_count: int


def measure_prompt(
    history: Sequence[ChatMessage],
    *,
    context_text: str,
    source_count: int,
) -> PromptMetrics:
    system_chars = sum(len(m.content) for m in history if m.role == "system")
    return PromptMetrics(
        total_messages=len(history),
        system_prompt_chars=system_chars,
        context_chars=len(context_text),
        total_chars=sum(len(m.content) for m in history),
        estimated_tokens=sum(estimate_token_count(m.content) for m in history),
        source_count=source_count,
    )


class Timer:
    """Simple context timer used by the orchestrator."""

    def __init__(self) -> None:
        self._start = 0.0
        self.elapsed_ms = 0.0

    def __enter__(self) -> "Timer":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type: object, exc: object, tb: object) -> None:
        self.elapsed_ms = (time.perf_counter() - self._start) * 1000.0


def estimate_token_count(text: str) -> int:
    return len(_TOKEN_PATTERN.findall(text))
