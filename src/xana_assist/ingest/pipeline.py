"""Document ingestion: embed -> add to the vector collection."""

from __future__ import annotations

import logging
from typing import Any

from xana_assist.providers.gateway import ProviderGateway
from xana_assist.retrieval.vector_store import VectorSearch

logger = logging.getLogger(__name__)


class DocumentIngestor:
    """Embeds document text with the configured provider and stores it.

    Stored records carry the text inside `labels`, which is where the
    retrieval context renderer looks for it first. Chunking is the caller's
    job; each call stores exactly one record.
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        vector_store: VectorSearch,
        *,
        collection_name: str,
        embedding_provider: str,
    ) -> None:
        self._gateway = gateway
        self._vector_store = vector_store
        self._collection_name = collection_name
        self._embedding_provider = embedding_provider

    def add_document(
        self,
        name: str,
        text: str,
        *,
        content_type: str = "text/plain",
        url: str | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Embed and store one document; returns the stored record."""
        vector = self._gateway.get(self._embedding_provider).create_embeddings(text)[0]
        record: dict[str, Any] = {
            "name": name,
            "contentType": content_type,
            "vector": vector,
            "labels": {"text": text, **(metadata or {})},
            "url": url,
        }
        self._vector_store.add_documents(self._collection_name, [record])
        logger.info("Stored document %s (%d chars) in %s", name, len(text), self._collection_name)
        return record
