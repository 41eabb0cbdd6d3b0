"""Provider interface shared by all model backends.

Every backend speaks an OpenAI-compatible dialect for chat and embeddings but
differs in URLs, default body fields, embedding response nesting and rerank
support. `ModelProvider` implements the common wire handling once; subclasses
only override the parts that differ.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

import httpx

from xana_assist.config import CapabilityConfig, ProviderConfig
from xana_assist.errors import ProviderError
from xana_assist.obs.logging import LogOnce
from xana_assist.types import ChatMessage, ChatReply, RerankResult, RetrievalHit
from xana_assist.vectors import fit_dimension

logger = logging.getLogger(__name__)


class ModelProvider:
    """Chat completion, embeddings and (optionally) reranking for one backend."""

    def __init__(
        self,
        config: ProviderConfig,
        client: httpx.Client,
        *,
        target_dim: int,
    ) -> None:
        self.config = config
        self.client = client
        self.target_dim = target_dim
        self._log_once = LogOnce(logger)

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def supports_rerank(self) -> bool:
        return self.config.rerank is not None

    def chat_completion(
        self,
        messages: Sequence[ChatMessage],
        *,
        temperature: float = 0.3,
        max_tokens: int = 1024,
        extra: dict[str, Any] | None = None,
    ) -> ChatReply:
        """Run one non-streaming chat completion.

        `extra` overrides the defaults (including `model`) but never the
        messages being sent.
        """
        body: dict[str, Any] = {
            "model": self.config.chat.model,
            "temperature": temperature,
            "max_tokens": max_tokens,
            "stream": False,
            **self.config.chat_defaults,
            **(extra or {}),
        }
        body["messages"] = [message.as_payload() for message in messages]

        logger.debug("[%s] chat request to %s with model %s", self.name, self.config.chat.url, body["model"])
        data = self._post("chat", self.config.chat, body)
        return ChatReply(provider=self.name, text=completion_text(data), raw=data)

    def create_embeddings(
        self,
        input: str | Sequence[str],
        *,
        encoding_format: str = "float",
    ) -> list[list[float]]:
        """Embed one or many texts; every vector is fitted to `target_dim`."""
        texts = [input] if isinstance(input, str) else list(input)
        body = self._embedding_body(input, encoding_format)

        logger.info(
            "[%s] embedding %d texts using %s with model %s",
            self.name,
            len(texts),
            self.config.embedding.url,
            self.config.embedding.model,
        )
        data = self._post("embeddings", self.config.embedding, body)
        vectors = self._extract_embeddings(data)
        if len(vectors) != len(texts):
            raise ProviderError(
                self.name,
                "embeddings",
                f"expected {len(texts)} vectors, got {len(vectors)}",
            )
        if vectors:
            self._log_once.info(
                "embedding-dim",
                "[%s] embedding dim: server=%d, fitted to %d",
                self.name,
                len(vectors[0]),
                self.target_dim,
            )
        return [fit_dimension(vector, self.target_dim) for vector in vectors]

    def rerank(
        self,
        query: str,
        documents: Sequence[str],
        *,
        top_n: int | None = None,
        model: str | None = None,
    ) -> list[RerankResult]:
        """Score `documents` against `query`.

        Each result carries the index of its document in `documents`, no
        matter how the backend orders its response. Out-of-range or repeated
        indices are dropped.
        """
        rerank = self.config.rerank
        if rerank is None:
            raise ProviderError(self.name, "rerank", "reranking is not supported by this provider")
        if not documents:
            return []

        body = self._rerank_body(query, list(documents), top_n or len(documents), model or rerank.model)
        logger.debug("[%s] rerank request to %s for %d documents", self.name, rerank.url, len(documents))
        data = self._post("rerank", rerank, body)

        entries = data.get("results", data.get("data", [])) if isinstance(data, dict) else data
        if not isinstance(entries, list):
            raise ProviderError(self.name, "rerank", "response has no results list")

        results: list[RerankResult] = []
        seen: set[int] = set()
        for position, entry in enumerate(entries):
            entry = entry if isinstance(entry, dict) else {}
            index = entry.get("index", position)
            if not isinstance(index, int) or not 0 <= index < len(documents) or index in seen:
                logger.warning("[%s] dropping rerank entry with invalid index %r", self.name, index)
                continue
            seen.add(index)
            score = entry.get("relevance_score", entry.get("score"))
            results.append(
                RerankResult(
                    original_index=index,
                    relevance_score=float(score) if score is not None else 0.0,
                    document=documents[index],
                )
            )

        if results:
            logger.debug("[%s] reranked %d documents, top score: %.4f", self.name, len(results), results[0].relevance_score)
        return results

    def rerank_hits(
        self,
        query: str,
        hits: Sequence[RetrievalHit],
        *,
        top_k: int | None = None,
    ) -> list[RetrievalHit]:
        """Rerank retrieval hits and return them sorted by rerank score.

        The initial similarity score stays on `score`; the reranker's score
        lands on `rerank_score`.
        """
        results = self.rerank(query, [hit.text for hit in hits], top_n=top_k or len(hits))
        reranked = [
            RetrievalHit(
                identifier=hits[result.original_index].identifier,
                text=hits[result.original_index].text,
                score=hits[result.original_index].score,
                provenance=hits[result.original_index].provenance,
                record=hits[result.original_index].record,
                rerank_score=result.relevance_score,
            )
            for result in results
        ]
        reranked.sort(key=lambda hit: hit.rerank_score or 0.0, reverse=True)
        return reranked[:top_k] if top_k else reranked

    def _embedding_body(self, input: str | Sequence[str], encoding_format: str) -> dict[str, Any]:
        return {
            "model": self.config.embedding.model,
            "input": input if isinstance(input, str) else list(input),
            "encoding_format": encoding_format,
        }

    def _rerank_body(self, query: str, documents: list[str], top_n: int, model: str) -> dict[str, Any]:
        return {
            "model": model,
            "query": query,
            "documents": documents,
            "top_n": top_n,
            "return_documents": True,
        }

    def _extract_embeddings(self, data: Any) -> list[list[float]]:
        """Accept the OpenAI shape and the native shapes some runtimes emit."""
        if isinstance(data, dict):
            if isinstance(data.get("data"), list):
                return [_as_vector(self.name, item) for item in data["data"]]
            if isinstance(data.get("embeddings"), list):
                return [_as_vector(self.name, item) for item in data["embeddings"]]
            if isinstance(data.get("embedding"), list):
                return [_as_vector(self.name, data["embedding"])]
        raise ProviderError(self.name, "embeddings", "response has no embedding vectors")

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json", "Accept": "application/json"}
        if self.config.api_key is not None:
            headers["Authorization"] = f"Bearer {self.config.api_key.get_secret_value()}"
        return headers

    def _post(self, operation: str, capability: CapabilityConfig, body: dict[str, Any]) -> Any:
        try:
            response = self.client.post(
                capability.url,
                json=body,
                headers=self._headers(),
                timeout=capability.timeout,
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as exc:
            logger.error("[%s] %s failed with status %d", self.name, operation, exc.response.status_code)
            raise ProviderError(self.name, operation, f"HTTP {exc.response.status_code}") from exc
        except httpx.HTTPError as exc:
            logger.error("[%s] %s failed: %s", self.name, operation, exc)
            raise ProviderError(self.name, operation, str(exc) or type(exc).__name__) from exc
        except ValueError as exc:
            logger.error("[%s] %s returned an undecodable body", self.name, operation)
            raise ProviderError(self.name, operation, "invalid JSON in response") from exc


def completion_text(data: Any) -> str:
    """Extract `choices[0].message.content` from a completion as a string."""
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices")
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return ""
    message = choices[0].get("message")
    if not isinstance(message, dict):
        return ""
    return coerce_content(message.get("content"))


def coerce_content(content: Any) -> str:
    """Normalize message content to text.

    Backends return a plain string, a list of content parts
    (`{"type": "output_text", "text": ...}` or `{"text": {"value": ...}}`), or
    an embedded object.
    """
    if content is None:
        return ""
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        parts: list[str] = []
        for part in content:
            if isinstance(part, str):
                parts.append(part)
            elif isinstance(part, dict):
                text = part.get("text")
                if isinstance(text, str):
                    parts.append(text)
                elif isinstance(text, dict) and isinstance(text.get("value"), str):
                    parts.append(text["value"])
        return "\n".join(part for part in parts if part)
    if isinstance(content, dict):
        for key in ("content", "text", "message"):
            if isinstance(content.get(key), str):
                return content[key]
        return json.dumps(content)
    return str(content)


def _as_vector(provider: str, item: Any) -> list[float]:
    vector = item.get("embedding") if isinstance(item, dict) else item
    if not isinstance(vector, list):
        raise ProviderError(provider, "embeddings", "embedding entry is not a list of floats")
    try:
        return [float(value) for value in vector]
    except (TypeError, ValueError) as exc:
        raise ProviderError(provider, "embeddings", "embedding entry is not a list of floats") from exc
