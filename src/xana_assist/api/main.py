"""FastAPI entrypoint for query, ingestion and provider passthrough endpoints."""

from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from xana_assist.api.services import AssistantServices, get_services
from xana_assist.errors import (
    GenerationError,
    InvalidQueryError,
    ProviderError,
    UnknownProviderError,
    VectorStoreError,
)
from xana_assist.orchestrator.query import QueryRequest
from xana_assist.providers.base import ModelProvider
from xana_assist.types import Asset, ChatMessage, ChatRole

logger = logging.getLogger(__name__)


class ChatMessageBody(BaseModel):
    role: ChatRole
    content: str


class AssetBody(BaseModel):
    vector_store_id: str
    asset_name: str | None = None


class QueryBody(BaseModel):
    messages: list[ChatMessageBody] = Field(default_factory=list)
    vectorStoreIds: str | list[str] | None = None
    hostProvider: Literal["ollama", "ionos", "opea"] | None = None
    assets: list[AssetBody] = Field(default_factory=list)

    def to_request(self) -> QueryRequest:
        if isinstance(self.vectorStoreIds, str):
            store_ids = [self.vectorStoreIds]
        else:
            store_ids = list(self.vectorStoreIds or [])
        return QueryRequest(
            messages=[ChatMessage(role=m.role, content=m.content) for m in self.messages],
            vector_store_ids=store_ids,
            host_provider=self.hostProvider,
            assets=[Asset(vector_store_id=a.vector_store_id, asset_name=a.asset_name) for a in self.assets],
        )


class DocumentBody(BaseModel):
    name: str = Field(min_length=1)
    text: str = Field(min_length=1)
    content_type: str = "text/plain"
    url: str | None = None
    metadata: dict[str, Any] = Field(default_factory=dict)


class ChatBody(BaseModel):
    messages: list[ChatMessageBody] = Field(min_length=1)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    max_tokens: int = Field(default=1024, ge=1)
    extra: dict[str, Any] = Field(default_factory=dict)


class EmbeddingsBody(BaseModel):
    input: str | list[str]
    encoding_format: Literal["float", "base64"] = "float"


class RerankBody(BaseModel):
    query: str = Field(min_length=1)
    documents: list[str]
    top_n: int | None = Field(default=None, ge=1)
    model: str | None = None


app = FastAPI(title="XANA Machine Support Assistant", version="0.1.0")


@app.get("/health")
def health(services: AssistantServices = Depends(get_services)) -> dict[str, Any]:
    settings = services.settings
    return {
        "status": "ok",
        "providers": services.gateway.names(),
        "default_provider": services.gateway.default,
        "vector_store": settings.vector_store,
        "embedding_dimensions": settings.embedding_dimensions,
        "timeseries_configured": services.orchestrator.timeseries is not None,
        "alerts_configured": bool(settings.alerta_api_url),
    }


@app.post("/query")
def query(body: QueryBody, services: AssistantServices = Depends(get_services)) -> dict[str, Any]:
    try:
        return services.orchestrator.handle_query(body.to_request())
    except InvalidQueryError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except GenerationError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc


@app.post("/documents")
def add_document(body: DocumentBody, services: AssistantServices = Depends(get_services)) -> dict[str, Any]:
    try:
        record = services.ingestor.add_document(
            body.name,
            body.text,
            content_type=body.content_type,
            url=body.url,
            metadata=body.metadata,
        )
    except (ProviderError, VectorStoreError) as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {"name": record["name"], "dimension": len(record["vector"])}


@app.post("/providers/{provider}/chat")
def provider_chat(
    provider: str,
    body: ChatBody,
    services: AssistantServices = Depends(get_services),
) -> dict[str, Any]:
    routed = _provider(services, provider)
    logger.info("[%s] chat passthrough called", routed.name)
    try:
        reply = routed.chat_completion(
            [ChatMessage(role=m.role, content=m.content) for m in body.messages],
            temperature=body.temperature,
            max_tokens=body.max_tokens,
            extra=body.extra,
        )
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return reply.raw


@app.post("/providers/{provider}/embeddings")
def provider_embeddings(
    provider: str,
    body: EmbeddingsBody,
    services: AssistantServices = Depends(get_services),
) -> dict[str, Any]:
    routed = _provider(services, provider)
    try:
        vectors = routed.create_embeddings(body.input, encoding_format=body.encoding_format)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {
        "object": "list",
        "data": [{"object": "embedding", "index": i, "embedding": v} for i, v in enumerate(vectors)],
    }


@app.post("/providers/{provider}/rerank")
def provider_rerank(
    provider: str,
    body: RerankBody,
    services: AssistantServices = Depends(get_services),
) -> dict[str, Any]:
    routed = _provider(services, provider)
    try:
        results = routed.rerank(body.query, body.documents, top_n=body.top_n, model=body.model)
    except ProviderError as exc:
        raise HTTPException(status_code=502, detail=str(exc)) from exc
    return {
        "results": [
            {"index": r.original_index, "relevance_score": r.relevance_score, "document": r.document}
            for r in results
        ]
    }


def _provider(services: AssistantServices, key: str) -> ModelProvider:
    try:
        return services.gateway.get(key)
    except UnknownProviderError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
