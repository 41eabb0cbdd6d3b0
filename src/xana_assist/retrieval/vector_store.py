"""Vector search interfaces and concrete adapters."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from math import sqrt
from typing import Any, Protocol

import httpx
from pydantic import SecretStr

from xana_assist.errors import VectorStoreError

logger = logging.getLogger(__name__)


class VectorSearch(Protocol):
    """Minimal vector store contract used by retrieval and ingestion."""

    def search(self, collection_name: str, query_vector: list[float], top_k: int) -> Any:
        """Return ranked records; the result shape depends on the backend."""

    def add_documents(self, collection_name: str, records: list[dict[str, Any]]) -> None:
        """Insert records carrying a `vector` field."""


@dataclass(slots=True)
class _StoredRecord:
    record: dict[str, Any]
    vector: list[float]


class InMemoryVectorStore:
    """Deterministic cosine-similarity store for tests and local prototyping.

    Every stored and queried vector must have exactly `dimension` entries.
    """

    def __init__(self, dimension: int) -> None:
        self.dimension = dimension
        self._collections: dict[str, list[_StoredRecord]] = {}

    def add_documents(self, collection_name: str, records: list[dict[str, Any]]) -> None:
        collection = self._collections.setdefault(collection_name, [])
        for record in records:
            vector = record.get("vector")
            if not isinstance(vector, list):
                raise VectorStoreError("record has no vector")
            self._check_dimension(vector)
            payload = {key: value for key, value in record.items() if key != "vector"}
            payload.setdefault("id", f"{collection_name}-{len(collection)}")
            collection.append(_StoredRecord(record=payload, vector=list(vector)))

    def search(self, collection_name: str, query_vector: list[float], top_k: int) -> list[dict[str, Any]]:
        self._check_dimension(query_vector)
        ranked = sorted(
            (
                (_cosine_similarity(query_vector, stored.vector), stored.record)
                for stored in self._collections.get(collection_name, [])
            ),
            key=lambda item: item[0],
            reverse=True,
        )
        return [{**record, "score": score} for score, record in ranked[:top_k]]

    def _check_dimension(self, vector: list[float]) -> None:
        if len(vector) != self.dimension:
            raise VectorStoreError(f"expected vector of length {self.dimension}, got {len(vector)}")


class MilvusRestVectorStore:
    """Milvus adapter over the v2 RESTful API.

    Records follow the document layout used at ingestion time
    (`name`, `contentType`, `vector`, `labels`, `url`); `labels` is stored
    as a JSON string and decoded again by the retrieval context renderer.
    """

    def __init__(
        self,
        client: httpx.Client,
        *,
        base_url: str,
        token: SecretStr | None = None,
        timeout: float = 30.0,
    ) -> None:
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout

    def search(self, collection_name: str, query_vector: list[float], top_k: int) -> Any:
        body = {
            "collectionName": collection_name,
            "data": [query_vector],
            "limit": top_k,
            "outputFields": ["*"],
        }
        return self._post("/v2/vectordb/entities/search", body)

    def add_documents(self, collection_name: str, records: list[dict[str, Any]]) -> None:
        rows = [
            {
                **record,
                "labels": json.dumps(record.get("labels", {})),
            }
            for record in records
        ]
        self._post("/v2/vectordb/entities/insert", {"collectionName": collection_name, "data": rows})

    def _post(self, path: str, body: dict[str, Any]) -> Any:
        headers = {"Content-Type": "application/json"}
        if self.token is not None:
            headers["Authorization"] = f"Bearer {self.token.get_secret_value()}"
        try:
            response = self.client.post(f"{self.base_url}{path}", json=body, headers=headers, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as exc:
            raise VectorStoreError(f"Milvus request {path} failed: {exc}") from exc

        if isinstance(payload, dict) and payload.get("code", 0) != 0:
            raise VectorStoreError(f"Milvus request {path} failed: {payload.get('message', payload['code'])}")
        return payload


def _cosine_similarity(a: list[float], b: list[float]) -> float:
    if not a or not b or len(a) != len(b):
        return 0.0
    numerator = sum(x * y for x, y in zip(a, b, strict=True))
    norm_a = sqrt(sum(x * x for x in a))
    norm_b = sqrt(sum(y * y for y in b))
    if norm_a == 0 or norm_b == 0:
        return 0.0
    return numerator / (norm_a * norm_b)
