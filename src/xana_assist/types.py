"""Shared domain models."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any, Literal

ChatRole = Literal["system", "user", "assistant", "tool", "function"]


@dataclass(slots=True, frozen=True)
class ChatMessage:
    """One conversation turn. Conversations are ordered sequences of these."""

    role: ChatRole
    content: str

    def as_payload(self) -> dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True, frozen=True)
class Asset:
    """An asset selected in the UI and the vector store backing it."""

    vector_store_id: str
    asset_name: str | None = None


@dataclass(slots=True)
class ChatReply:
    """Normalized chat completion result."""

    provider: str
    text: str
    raw: dict[str, Any]


@dataclass(slots=True)
class RerankResult:
    """Relevance of one input document, keyed by its index in the request."""

    original_index: int
    relevance_score: float
    document: str


@dataclass(slots=True)
class RetrievalHit:
    """A vector-search candidate, optionally rescored by a reranker."""

    identifier: str
    text: str
    score: float | None
    provenance: str
    record: dict[str, Any] = field(default_factory=dict)
    rerank_score: float | None = None

    @property
    def relevance_score(self) -> float | None:
        return self.rerank_score if self.rerank_score is not None else self.score

    def as_source(self) -> dict[str, Any]:
        return {
            "id": self.identifier,
            "source": self.provenance,
            "text": self.text,
            "score": self.score,
            "rerank_score": self.rerank_score,
        }


@dataclass(slots=True)
class RetrievalResult:
    context_text: str
    hits: list[RetrievalHit]


@dataclass(slots=True)
class TimeSeriesPoint:
    t: str
    v: float


@dataclass(slots=True)
class ChartResult:
    series: list[TimeSeriesPoint]
    asset_urn: str
    metric: str | None
    source: str = "postgres"


@dataclass(slots=True)
class ChartSummary:
    summary: str
    first10: list[TimeSeriesPoint]
    last10: list[TimeSeriesPoint]


@dataclass(slots=True)
class AlertResult:
    alerts: list[dict[str, Any]]
    asset_urn: str
    source: str = "alerta"


def last_user_message(messages: Sequence[ChatMessage]) -> ChatMessage | None:
    """Return the most recent `user` turn, if any."""
    for message in reversed(messages):
        if message.role == "user":
            return message
    return None
