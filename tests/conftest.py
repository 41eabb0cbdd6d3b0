from __future__ import annotations

import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from xana_assist.config import CapabilityConfig, ProviderConfig
from xana_assist.providers.base import ModelProvider
from xana_assist.providers.gateway import ProviderGateway

Responder = Callable[[str, dict[str, Any]], Any]


def completion(content: Any) -> dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def provider_config(name: str, *, rerank: bool = True) -> ProviderConfig:
    return ProviderConfig(
        name=name,
        chat=CapabilityConfig(url=f"http://{name}.test/chat", model=f"{name}-chat", timeout=1800.0),
        embedding=CapabilityConfig(url=f"http://{name}.test/embeddings", model=f"{name}-embed", timeout=60.0),
        rerank=(
            CapabilityConfig(url=f"http://{name}.test/rerank", model=f"{name}-rerank", timeout=60.0)
            if rerank
            else None
        ),
    )


class ScriptedProvider(ModelProvider):
    """Real provider logic with the HTTP hop replaced by a responder."""

    def __init__(
        self,
        name: str,
        responder: Responder,
        *,
        target_dim: int = 8,
        rerank: bool = True,
    ) -> None:
        super().__init__(provider_config(name, rerank=rerank), httpx.Client(), target_dim=target_dim)
        self.responder = responder
        self.calls: list[tuple[str, dict[str, Any]]] = []

    def _post(self, operation: str, capability: CapabilityConfig, body: dict[str, Any]) -> Any:
        self.calls.append((operation, body))
        return self.responder(operation, body)

    def operations(self) -> list[str]:
        return [operation for operation, _ in self.calls]

    def generation_calls(self) -> list[dict[str, Any]]:
        """Chat calls that are not intent classification."""
        return [body for operation, body in self.calls if operation == "chat" and "response_format" not in body]


class AssistantScript:
    """Scripted answers for each kind of call the assistant makes."""

    def __init__(self) -> None:
        self.chart_intent: Any = {"wants_chart": False}
        self.alert_intent: Any = {"wants_alert": False}
        self.answer = "Check the hydraulic pressure relief valve."
        self.vector = [0.1] * 8
        self.rerank: Callable[[dict[str, Any]], Any] | None = None
        self.chat_error: Exception | None = None

    def __call__(self, operation: str, body: dict[str, Any]) -> Any:
        if operation == "embeddings":
            inputs = body["input"] if isinstance(body["input"], list) else [body["input"]]
            return {"data": [{"embedding": list(self.vector)} for _ in inputs]}
        if operation == "rerank":
            if self.rerank is None:
                raise AssertionError("unexpected rerank call")
            return self.rerank(body)

        schema_name = body.get("response_format", {}).get("json_schema", {}).get("name")
        if schema_name == "chart_intent":
            return completion(_as_content(self.chart_intent))
        if schema_name == "alert_intent":
            return completion(_as_content(self.alert_intent))
        if self.chat_error is not None:
            raise self.chat_error
        return completion(self.answer)


def _as_content(value: Any) -> Any:
    return json.dumps(value) if isinstance(value, dict) else value


@pytest.fixture
def script() -> AssistantScript:
    return AssistantScript()


@pytest.fixture
def providers(script: AssistantScript) -> dict[str, ScriptedProvider]:
    return {
        "ionos": ScriptedProvider("ionos", script, rerank=False),
        "ollama": ScriptedProvider("ollama", script, rerank=False),
        "opea": ScriptedProvider("opea", script),
    }


@pytest.fixture
def gateway(providers: dict[str, ScriptedProvider]) -> ProviderGateway:
    return ProviderGateway(dict(providers), default="ionos")
