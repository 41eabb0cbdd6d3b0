"""Wiring of long-lived components from settings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from functools import lru_cache

import httpx
from sqlalchemy import create_engine

from xana_assist.config import Settings, get_settings
from xana_assist.ingest.pipeline import DocumentIngestor
from xana_assist.intent.classifier import IntentClassifier
from xana_assist.live.alerts import AlertFetcher
from xana_assist.live.timeseries import TimeSeriesFetcher
from xana_assist.obs.logging import configure_logging
from xana_assist.orchestrator.query import QueryOrchestrator
from xana_assist.providers.gateway import ProviderGateway
from xana_assist.retrieval.retriever import RetrievalEngine
from xana_assist.retrieval.vector_store import InMemoryVectorStore, MilvusRestVectorStore, VectorSearch

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AssistantServices:
    settings: Settings
    gateway: ProviderGateway
    orchestrator: QueryOrchestrator
    ingestor: DocumentIngestor
    vector_store: VectorSearch


def build_services(settings: Settings, client: httpx.Client | None = None) -> AssistantServices:
    client = client or httpx.Client(follow_redirects=True, timeout=30.0)
    gateway = ProviderGateway.from_settings(settings, client)

    vector_store: VectorSearch
    if settings.vector_store == "milvus":
        vector_store = MilvusRestVectorStore(
            client,
            base_url=settings.milvus_url,
            token=settings.milvus_token,
            timeout=settings.milvus_timeout,
        )
    else:
        vector_store = InMemoryVectorStore(dimension=settings.embedding_dimensions)

    timeseries = None
    if settings.database_url:
        engine = create_engine(settings.database_url, pool_pre_ping=True)
        timeseries = TimeSeriesFetcher(
            engine,
            table=settings.pg_table,
            attribute_namespace=settings.attribute_namespace,
        )
    else:
        logger.info("DATABASE_URL not set; chart intent is disabled")

    orchestrator = QueryOrchestrator(
        gateway=gateway,
        classifier=IntentClassifier(
            gateway,
            provider=settings.intent_provider,
            structured_output=settings.intent_structured_output,
        ),
        retriever=RetrievalEngine(gateway, vector_store, settings.retrieval_config()),
        alerts=AlertFetcher(
            client,
            api_url=settings.alerta_api_url,
            api_key=settings.alerta_api_key,
            timeout=settings.alerta_timeout,
        ),
        timeseries=timeseries,
        chart_intent_enabled=settings.chart_intent,
    )
    ingestor = DocumentIngestor(
        gateway,
        vector_store,
        collection_name=settings.rag_collection_name,
        embedding_provider=settings.embedding_provider,
    )
    return AssistantServices(
        settings=settings,
        gateway=gateway,
        orchestrator=orchestrator,
        ingestor=ingestor,
        vector_store=vector_store,
    )


@lru_cache
def get_services() -> AssistantServices:
    settings = get_settings()
    configure_logging(settings.log_level)
    return build_services(settings)
