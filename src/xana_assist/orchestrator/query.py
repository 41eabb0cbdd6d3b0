"""Top-level query handling: intent routing, retrieval and generation."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import asdict, dataclass, field
from typing import Any

from xana_assist.errors import GenerationError, InvalidQueryError, XanaError
from xana_assist.intent.classifier import IntentClassifier
from xana_assist.live.alerts import AlertFetcher
from xana_assist.live.timeseries import TimeSeriesFetcher, summarize_series
from xana_assist.obs.metrics import Timer, measure_prompt
from xana_assist.orchestrator.prompts import build_system_prompt
from xana_assist.providers.gateway import ProviderGateway
from xana_assist.retrieval.retriever import RetrievalEngine
from xana_assist.types import Asset, ChatMessage, RetrievalResult

logger = logging.getLogger(__name__)

CONTEXT_HEADER = "\n\n--- Context ---\n"
CHART_CLARIFICATION = "Make sure you have mentioned asset ID, metric, from and to dates."
ALERTS_REPLY = "Here's the live alerts:\n\n"
MAX_SOURCES = 3


@dataclass(slots=True)
class QueryRequest:
    """One inbound chat turn with its routing and asset selection."""

    messages: list[ChatMessage]
    vector_store_ids: list[str] = field(default_factory=list)
    host_provider: str | None = None
    assets: list[Asset] = field(default_factory=list)

    def store_ids(self) -> list[str]:
        return self.vector_store_ids or [asset.vector_store_id for asset in self.assets]

    def asset_names(self) -> list[str]:
        return [asset.asset_name for asset in self.assets if asset.asset_name] or self.store_ids()


class QueryOrchestrator:
    """Runs validate -> enhance -> chart -> alerts -> retrieve -> generate.

    Chart and alert checks return early when actionable. Failures in live
    data, classification or retrieval degrade to answering without that
    signal; only a failed generation aborts the request.
    """

    def __init__(
        self,
        *,
        gateway: ProviderGateway,
        classifier: IntentClassifier,
        retriever: RetrievalEngine,
        alerts: AlertFetcher,
        timeseries: TimeSeriesFetcher | None = None,
        chart_intent_enabled: bool = True,
        temperature: float = 0.3,
        max_tokens: int = 1500,
    ) -> None:
        self.gateway = gateway
        self.classifier = classifier
        self.retriever = retriever
        self.alerts = alerts
        self.timeseries = timeseries
        self.chart_intent_enabled = chart_intent_enabled
        self.temperature = temperature
        self.max_tokens = max_tokens

    def handle_query(self, request: QueryRequest) -> dict[str, Any]:
        if not request.messages:
            raise InvalidQueryError("Messages array is required and cannot be empty")

        with Timer() as timer:
            response = self._route(request)
        logger.info("[QUERY] handled in %.1f ms (%s)", timer.elapsed_ms, ", ".join(sorted(response)))
        return response

    def _route(self, request: QueryRequest) -> dict[str, Any]:
        messages = enhance_messages(request.messages, request.store_ids())

        chart = self._chart_reply(messages, request.host_provider)
        if chart is not None:
            return chart

        alerts = self._alert_reply(messages, request.host_provider)
        if alerts is not None:
            return alerts

        return self._conversational_reply(messages, request)

    def _chart_reply(self, messages: Sequence[ChatMessage], provider: str | None) -> dict[str, Any] | None:
        if not self.chart_intent_enabled:
            logger.info("[QUERY] chart intent check disabled")
            return None
        if self.timeseries is None:
            logger.debug("[QUERY] no time-series store configured; skipping chart check")
            return None

        try:
            chart_request = self.classifier.chart_request(messages, provider=provider)
        except XanaError as exc:
            logger.error("[QUERY] chart intent detection failed: %s", exc)
            return None
        if chart_request is None:
            return None

        logger.info("[QUERY] chart intent for %s (%s)", chart_request.asset_urn, chart_request.metric)
        chart = self.timeseries.fetch(
            chart_request.asset_urn,
            chart_request.metric,
            chart_request.start,
            chart_request.end,
        )
        if not chart.series:
            return {"message": CHART_CLARIFICATION}

        summary = summarize_series(chart)
        return {
            "chart": {
                "series": [asdict(point) for point in chart.series],
                "meta": {"assetUrn": chart.asset_urn, "metric": chart.metric, "source": chart.source},
            },
            "summary": summary.summary,
            "first10": [asdict(point) for point in summary.first10],
            "last10": [asdict(point) for point in summary.last10],
        }

    def _alert_reply(self, messages: Sequence[ChatMessage], provider: str | None) -> dict[str, Any] | None:
        try:
            asset_urn = self.classifier.alert_request(messages, provider=provider)
        except XanaError as exc:
            logger.error("[QUERY] alert intent detection failed: %s", exc)
            return None
        if asset_urn is None:
            return None

        result = self.alerts.fetch(asset_urn)
        if not result.alerts:
            return {"reply": f"No live data available for {result.asset_urn}.", "alerts": []}
        return {"reply": ALERTS_REPLY, "alerts": result.alerts}

    def _conversational_reply(self, messages: list[ChatMessage], request: QueryRequest) -> dict[str, Any]:
        try:
            retrieval = self.retriever.retrieve(messages, host_provider=request.host_provider)
        except XanaError as exc:
            logger.error("[QUERY] retrieval failed, answering without documentation: %s", exc)
            retrieval = RetrievalResult(context_text="", hits=[])

        system_prompt = ChatMessage(role="system", content=build_system_prompt(request.asset_names()))
        history = splice_context([system_prompt, *messages], retrieval.context_text)

        metrics = measure_prompt(history, context_text=retrieval.context_text, source_count=len(retrieval.hits))
        logger.info(
            "[QUERY] prompt: %d messages, system %d chars, context %d chars, total %d chars, ~%d tokens, %d sources",
            metrics.total_messages,
            metrics.system_prompt_chars,
            metrics.context_chars,
            metrics.total_chars,
            metrics.estimated_tokens,
            metrics.source_count,
        )

        try:
            provider = self.gateway.get(request.host_provider)
            logger.info("[QUERY] generating with %s", provider.name)
            reply = provider.chat_completion(history, temperature=self.temperature, max_tokens=self.max_tokens)
        except Exception as exc:
            logger.exception("[QUERY] chat completion failed")
            raise GenerationError("Failed to generate response") from exc

        return {
            "reply": reply.text,
            "sources": [hit.as_source() for hit in retrieval.hits[:MAX_SOURCES]],
        }


def enhance_messages(messages: Sequence[ChatMessage], store_ids: Sequence[str]) -> list[ChatMessage]:
    """Prepend a user turn naming the selected products, if any."""
    if not store_ids:
        return list(messages)
    asset_turn = ChatMessage(role="user", content=f"Find Information for product {', '.join(store_ids)}.")
    return [asset_turn, *messages]


def splice_context(history: Sequence[ChatMessage], context_text: str) -> list[ChatMessage]:
    """Append retrieved context to the last user turn; never adds a message."""
    spliced = list(history)
    if not context_text.strip():
        return spliced
    for index in range(len(spliced) - 1, -1, -1):
        message = spliced[index]
        if message.role == "user":
            spliced[index] = ChatMessage(role="user", content=f"{message.content}{CONTEXT_HEADER}{context_text}")
            break
    return spliced
