"""LLM-backed chart and alert intent detection."""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Callable, Sequence
from datetime import datetime, timezone
from typing import Any, TypeVar

from pydantic import BaseModel, ValidationError

from xana_assist.intent.models import (
    AlertIntent,
    ChartIntent,
    ChartRequest,
    resolve_alert_request,
    resolve_chart_request,
)
from xana_assist.intent.prompts import (
    ALERT_INTENT_SCHEMA,
    CHART_INTENT_SCHEMA,
    alert_intent_prompt,
    chart_intent_prompt,
)
from xana_assist.providers.gateway import ProviderGateway
from xana_assist.types import ChatMessage, last_user_message

logger = logging.getLogger(__name__)

_CODE_FENCE = re.compile(r"^```(?:json)?\s*|\s*```$", flags=re.IGNORECASE)

IntentT = TypeVar("IntentT", bound=BaseModel)


class IntentClassifier:
    """Single-shot structured classification of the latest user turn.

    Each detection is one chat completion at low temperature. Unparseable
    output is never an error: it yields the "no intent" default so the turn
    falls through to the conversational path.
    """

    def __init__(
        self,
        gateway: ProviderGateway,
        *,
        provider: str | None = None,
        structured_output: bool = True,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.gateway = gateway
        self.provider = provider
        self.structured_output = structured_output
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def detect_chart_intent(self, user_text: str, *, provider: str | None = None) -> ChartIntent:
        content = self._classify(chart_intent_prompt(user_text), CHART_INTENT_SCHEMA, provider)
        return _parse_intent(content, ChartIntent)

    def detect_alert_intent(self, user_text: str, *, provider: str | None = None) -> AlertIntent:
        content = self._classify(alert_intent_prompt(user_text), ALERT_INTENT_SCHEMA, provider)
        return _parse_intent(content, AlertIntent)

    def chart_request(
        self,
        messages: Sequence[ChatMessage],
        *,
        provider: str | None = None,
    ) -> ChartRequest | None:
        last_user = last_user_message(messages)
        if last_user is None:
            return None
        intent = self.detect_chart_intent(last_user.content, provider=provider)
        request = resolve_chart_request(intent, self._clock())
        if intent.wants_chart and request is None:
            logger.info("Chart intent without asset or resolvable time range; falling through")
        return request

    def alert_request(
        self,
        messages: Sequence[ChatMessage],
        *,
        provider: str | None = None,
    ) -> str | None:
        last_user = last_user_message(messages)
        if last_user is None:
            return None
        return resolve_alert_request(self.detect_alert_intent(last_user.content, provider=provider))

    def _classify(self, prompt: str, schema: dict[str, Any], provider: str | None) -> str:
        routed = self.gateway.get(self.provider or provider)
        logger.info("[INTENT] %s via %s", schema["name"], routed.name)
        extra = {"response_format": {"type": "json_schema", "json_schema": schema}} if self.structured_output else None
        reply = routed.chat_completion(
            [ChatMessage(role="user", content=prompt)],
            temperature=0.1,
            max_tokens=250,
            extra=extra,
        )
        return reply.text


def strip_code_fences(text: str) -> str:
    return _CODE_FENCE.sub("", text.strip()).strip()


def _parse_intent(content: str, model: type[IntentT]) -> IntentT:
    cleaned = strip_code_fences(content)
    logger.debug("%s response: %s", model.__name__, cleaned)
    try:
        payload = json.loads(cleaned)
        if not isinstance(payload, dict):
            raise ValueError(f"expected a JSON object, got {type(payload).__name__}")
        return model.model_validate(payload)
    except (ValueError, ValidationError) as exc:
        logger.warning("Failed to parse %s JSON (%s): %.200s", model.__name__, exc, cleaned)
        return model()
