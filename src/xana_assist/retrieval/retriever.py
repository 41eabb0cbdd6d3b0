"""Question embedding, vector search and optional reranking."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from xana_assist.config import RetrievalConfig
from xana_assist.errors import ProviderError
from xana_assist.providers.gateway import ProviderGateway
from xana_assist.retrieval.context import hit_from_record, normalize_search_results, render_context
from xana_assist.retrieval.vector_store import VectorSearch
from xana_assist.types import ChatMessage, RetrievalResult

logger = logging.getLogger(__name__)


class RetrievalEngine:
    """Builds the documentation context for one conversation.

    When reranking is active the engine over-fetches (`rerank_oversample`
    times `top_k`, capped at `max_rerank_candidates`) so the reranker has a
    wider pool to choose from. A failing reranker never fails retrieval;
    the vector-search order is kept instead.
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        vector_store: VectorSearch,
        config: RetrievalConfig | None = None,
    ) -> None:
        self.gateway = gateway
        self.vector_store = vector_store
        self.config = config or RetrievalConfig()

    def retrieve(
        self,
        messages: Sequence[ChatMessage],
        *,
        host_provider: str | None = None,
    ) -> RetrievalResult:
        question = build_question(messages)
        if not question:
            return RetrievalResult(context_text="", hits=[])
        logger.info("[RETRIEVAL] question length %d chars: %.200s", len(question), question)

        embedding_provider = host_provider or self.config.embedding_provider
        query_vector = self.gateway.get(embedding_provider).create_embeddings(question)[0]

        use_reranker = self.reranking_active(embedding_provider)
        candidate_count = self.candidate_count(use_reranker)
        logger.info(
            "[RETRIEVAL] retrieving top-%d candidates%s",
            candidate_count,
            " for reranking" if use_reranker else "",
        )

        raw_results = self.vector_store.search(self.config.collection_name, query_vector, candidate_count)
        hits = [hit_from_record(record, index) for index, record in enumerate(normalize_search_results(raw_results))]
        logger.info("[RETRIEVAL] %d candidates from vector search", len(hits))

        if use_reranker and hits:
            reranker = self.gateway.get(self.config.reranker_provider)
            if not reranker.supports_rerank:
                logger.warning("[RETRIEVAL] %s has no reranker; keeping vector-search order", reranker.name)
                return RetrievalResult(context_text=render_context(hits), hits=hits)
            try:
                hits = reranker.rerank_hits(question, hits, top_k=self.config.top_k)
                if hits:
                    logger.info(
                        "[RETRIEVAL] reranked %d hits, top %.4f, bottom %.4f",
                        len(hits),
                        hits[0].rerank_score or 0.0,
                        hits[-1].rerank_score or 0.0,
                    )
            except ProviderError as exc:
                logger.error("[RETRIEVAL] reranking failed, using vector-search order: %s", exc)

        return RetrievalResult(context_text=render_context(hits), hits=hits)

    def reranking_active(self, embedding_provider: str) -> bool:
        if embedding_provider in self.config.always_rerank_providers:
            return True
        return self.config.use_reranker

    def candidate_count(self, use_reranker: bool) -> int:
        if not use_reranker:
            return self.config.top_k
        return min(self.config.top_k * self.config.rerank_oversample, self.config.max_rerank_candidates)


def build_question(messages: Sequence[ChatMessage]) -> str:
    """Concatenate every user turn, in order, into one retrieval query."""
    return " ".join(m.content.strip() for m in messages if m.role == "user" and m.content.strip())
