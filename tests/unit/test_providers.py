import json
from typing import Any

import httpx
import pytest
from conftest import provider_config
from pydantic import SecretStr

from xana_assist.errors import ProviderError, UnknownProviderError
from xana_assist.providers.base import ModelProvider, coerce_content
from xana_assist.providers.gateway import ProviderGateway
from xana_assist.providers.ionos import IonosProvider
from xana_assist.providers.ollama import OllamaProvider
from xana_assist.providers.opea import OpeaProvider
from xana_assist.types import ChatMessage, RetrievalHit


class _Recorder:
    def __init__(self, payload: Any = None, status_code: int = 200) -> None:
        self.payload = payload
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)

    def body(self, index: int = -1) -> dict[str, Any]:
        return json.loads(self.requests[index].content)


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def _completion(content: Any) -> dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


def test_chat_extra_overrides_defaults_but_not_messages() -> None:
    recorder = _Recorder(_completion("hello"))
    provider = ModelProvider(provider_config("ionos"), _client(recorder), target_dim=8)

    reply = provider.chat_completion(
        [ChatMessage(role="user", content="hi")],
        temperature=0.3,
        extra={"temperature": 0.9, "model": "override", "messages": [{"role": "user", "content": "injected"}]},
    )

    body = recorder.body()
    assert reply.text == "hello"
    assert reply.provider == "ionos"
    assert body["temperature"] == 0.9
    assert body["model"] == "override"
    assert body["stream"] is False
    assert body["messages"] == [{"role": "user", "content": "hi"}]


def test_chat_uses_chat_timeout_and_embeddings_use_embedding_timeout() -> None:
    recorder = _Recorder(_completion("ok"))
    provider = ModelProvider(provider_config("ionos"), _client(recorder), target_dim=8)

    provider.chat_completion([ChatMessage(role="user", content="hi")])
    recorder.payload = {"data": [{"embedding": [1.0, 2.0]}]}
    provider.create_embeddings("hi")

    chat_timeout = recorder.requests[0].extensions["timeout"]["read"]
    embedding_timeout = recorder.requests[1].extensions["timeout"]["read"]
    assert chat_timeout == 1800.0
    assert embedding_timeout == 60.0


def test_non_2xx_is_wrapped_with_provider_tag() -> None:
    provider = ModelProvider(provider_config("opea"), _client(_Recorder({"error": "boom"}, 503)), target_dim=8)

    with pytest.raises(ProviderError) as excinfo:
        provider.chat_completion([ChatMessage(role="user", content="hi")])

    assert excinfo.value.provider == "opea"
    assert excinfo.value.operation == "chat"
    assert "HTTP 503" in str(excinfo.value)


def test_transport_failure_is_wrapped_without_retry() -> None:
    attempts: list[httpx.Request] = []

    def refuse(request: httpx.Request) -> httpx.Response:
        attempts.append(request)
        raise httpx.ConnectError("connection refused", request=request)

    provider = ModelProvider(provider_config("ollama"), _client(refuse), target_dim=8)

    with pytest.raises(ProviderError) as excinfo:
        provider.create_embeddings("hi")

    assert excinfo.value.provider == "ollama"
    assert isinstance(excinfo.value.__cause__, httpx.ConnectError)
    assert len(attempts) == 1


@pytest.mark.parametrize(
    "payload",
    [
        {"data": [{"embedding": [1.0, 2.0, 3.0]}]},
        {"embeddings": [[1.0, 2.0, 3.0]]},
        {"embedding": [1.0, 2.0, 3.0]},
    ],
)
def test_embedding_response_shapes_are_normalized(payload: dict[str, Any]) -> None:
    provider = ModelProvider(provider_config("ollama"), _client(_Recorder(payload)), target_dim=4)

    assert provider.create_embeddings("pump") == [[1.0, 2.0, 3.0, 0.0]]


def test_embeddings_are_fitted_to_target_dimension() -> None:
    payload = {"data": [{"embedding": [0.25] * 768}, {"embedding": [0.5] * 1536}]}
    provider = ModelProvider(provider_config("ionos"), _client(_Recorder(payload)), target_dim=1024)

    vectors = provider.create_embeddings(["a", "b"])

    assert [len(v) for v in vectors] == [1024, 1024]
    assert vectors[0][767] == 0.25
    assert vectors[0][768:] == [0.0] * 256
    assert vectors[1] == [0.5] * 1024


def test_embedding_count_mismatch_is_an_error() -> None:
    provider = ModelProvider(provider_config("ionos"), _client(_Recorder({"data": []})), target_dim=8)

    with pytest.raises(ProviderError):
        provider.create_embeddings(["a", "b"])


def test_rerank_restores_original_indices() -> None:
    payload = {
        "results": [
            {"index": 2, "relevance_score": 0.9},
            {"index": 0, "relevance_score": 0.4},
            {"index": 1},
        ]
    }
    provider = ModelProvider(provider_config("opea"), _client(_Recorder(payload)), target_dim=8)

    results = provider.rerank("pressure", ["a", "b", "c"])

    assert [(r.original_index, r.document) for r in results] == [(2, "c"), (0, "a"), (1, "b")]
    assert results[2].relevance_score == 0.0


def test_rerank_drops_invalid_and_duplicate_indices() -> None:
    payload = {
        "data": [
            {"index": 1, "score": 0.8},
            {"index": 1, "score": 0.7},
            {"index": 5, "score": 0.6},
            {"index": -1, "score": 0.5},
        ]
    }
    provider = ModelProvider(provider_config("opea"), _client(_Recorder(payload)), target_dim=8)

    results = provider.rerank("pressure", ["a", "b"])

    assert [r.original_index for r in results] == [1]
    assert results[0].relevance_score == 0.8


def test_rerank_without_capability_raises() -> None:
    provider = ModelProvider(provider_config("ionos", rerank=False), _client(_Recorder()), target_dim=8)

    assert provider.supports_rerank is False
    with pytest.raises(ProviderError):
        provider.rerank("q", ["a"])


def test_rerank_of_no_documents_makes_no_call() -> None:
    recorder = _Recorder()
    provider = ModelProvider(provider_config("opea"), _client(recorder), target_dim=8)

    assert provider.rerank("q", []) == []
    assert recorder.requests == []


def test_rerank_hits_keeps_similarity_score_and_sorts_by_relevance() -> None:
    hits = [
        RetrievalHit(identifier="a", text="alpha", score=0.9, provenance="manual.pdf"),
        RetrievalHit(identifier="b", text="beta", score=0.8, provenance="manual.pdf"),
        RetrievalHit(identifier="c", text="gamma", score=0.7, provenance="guide.pdf"),
    ]
    payload = {
        "results": [
            {"index": 0, "relevance_score": 0.1},
            {"index": 2, "relevance_score": 0.95},
            {"index": 1, "relevance_score": 0.5},
        ]
    }
    recorder = _Recorder(payload)
    provider = ModelProvider(provider_config("opea"), _client(recorder), target_dim=8)

    reranked = provider.rerank_hits("q", hits, top_k=2)

    assert [hit.identifier for hit in reranked] == ["c", "b"]
    assert [hit.score for hit in reranked] == [0.7, 0.8]
    assert reranked[0].rerank_score == 0.95
    assert recorder.body()["top_n"] == 2
    assert recorder.body()["documents"] == ["alpha", "beta", "gamma"]


def test_megaservice_rerank_sends_texts() -> None:
    recorder = _Recorder({"results": []})
    provider = OpeaProvider(provider_config("opea"), _client(recorder), target_dim=8, mode="megaservice")

    provider.rerank("q", ["a", "b"])

    body = recorder.body()
    assert body["texts"] == ["a", "b"]
    assert "documents" not in body


def test_ollama_sends_keep_alive_and_no_encoding_format() -> None:
    config = provider_config("ollama", rerank=False).model_copy(update={"chat_defaults": {"keep_alive": "30m"}})
    recorder = _Recorder(_completion("ok"))
    provider = OllamaProvider(config, _client(recorder), target_dim=8)

    provider.chat_completion([ChatMessage(role="user", content="hi")])
    recorder.payload = {"embeddings": [[1.0]]}
    provider.create_embeddings("hi")

    assert recorder.body(0)["keep_alive"] == "30m"
    assert "encoding_format" not in recorder.body(1)


def test_ionos_sends_bearer_token() -> None:
    config = provider_config("ionos", rerank=False).model_copy(update={"api_key": SecretStr("s3cret")})
    recorder = _Recorder(_completion("ok"))
    provider = IonosProvider(config, _client(recorder), target_dim=8)

    provider.chat_completion([ChatMessage(role="user", content="hi")])

    assert recorder.requests[0].headers["Authorization"] == "Bearer s3cret"


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        (None, ""),
        ("plain", "plain"),
        (["a", {"type": "output_text", "text": "b"}], "a\nb"),
        ([{"text": {"value": "nested"}}], "nested"),
        ({"content": "inner"}, "inner"),
        ({"answer": 42}, '{"answer": 42}'),
    ],
)
def test_coerce_content_variants(content: Any, expected: str) -> None:
    assert coerce_content(content) == expected


def test_gateway_rejects_unknown_routing_key() -> None:
    provider = ModelProvider(provider_config("ionos"), _client(_Recorder()), target_dim=8)
    gateway = ProviderGateway({"ionos": provider}, default="ionos")

    assert gateway.get() is provider
    assert gateway.get("ionos") is provider
    with pytest.raises(UnknownProviderError):
        gateway.get("vertex")
    with pytest.raises(UnknownProviderError):
        ProviderGateway({"ionos": provider}, default="opea")
