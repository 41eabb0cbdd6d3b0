from datetime import datetime, timezone

import pytest

from xana_assist.intent.classifier import IntentClassifier, strip_code_fences
from xana_assist.intent.models import ChartIntent, normalize_metric, resolve_chart_request
from xana_assist.types import ChatMessage

NOW = datetime(2025, 3, 10, 12, 0, tzinfo=timezone.utc)
URN = "urn:ngsi-ld:asset:2:101"


def _classifier(gateway, **kwargs) -> IntentClassifier:
    return IntentClassifier(gateway, clock=lambda: NOW, **kwargs)


def _turn(text: str) -> list[ChatMessage]:
    return [ChatMessage(role="user", content=text)]


def test_relative_window_becomes_absolute_range(gateway, script) -> None:
    script.chart_intent = {
        "wants_chart": True,
        "asset_urn": URN,
        "metric": "Power Consumption",
        "last": {"value": 3, "unit": "d"},
    }

    request = _classifier(gateway).chart_request(_turn("show power for the last 3 days"))

    assert request is not None
    assert request.asset_urn == URN
    assert request.metric == "power_consumption"
    assert request.start == "2025-03-07T12:00:00.000+00:00"
    assert request.end == "2025-03-10T12:00:00.000+00:00"


def test_explicit_bounds_take_precedence_over_last(gateway, script) -> None:
    script.chart_intent = {
        "wants_chart": True,
        "asset_urn": URN,
        "metric": "temperature",
        "last": {"value": 1, "unit": "h"},
        "from": "2025-01-01T00:00:00Z",
        "to": "2025-01-02T00:00:00Z",
    }

    request = _classifier(gateway).chart_request(_turn("temperature on new year"))

    assert request is not None
    assert (request.start, request.end) == ("2025-01-01T00:00:00Z", "2025-01-02T00:00:00Z")


@pytest.mark.parametrize(
    "payload",
    [
        {"wants_chart": False, "asset_urn": URN, "last": {"value": 1, "unit": "d"}},
        {"wants_chart": True, "asset_urn": None, "last": {"value": 1, "unit": "d"}},
        {"wants_chart": True, "asset_urn": URN},
        {"wants_chart": True, "asset_urn": URN, "from": "2025-01-01T00:00:00Z"},
        {"wants_chart": True, "asset_urn": URN, "from": "yesterday", "to": "today"},
    ],
)
def test_chart_request_requires_every_slot(payload: dict) -> None:
    assert resolve_chart_request(ChartIntent.model_validate(payload), NOW) is None


def test_alert_request_requires_urn(gateway, script) -> None:
    classifier = _classifier(gateway)

    script.alert_intent = {"wants_alert": True, "asset_urn": URN}
    assert classifier.alert_request(_turn("any alerts on the press?")) == URN

    script.alert_intent = {"wants_alert": True, "asset_urn": None}
    assert classifier.alert_request(_turn("any alerts?")) is None


def test_malformed_window_keeps_explicit_bounds(gateway, script) -> None:
    script.chart_intent = {
        "wants_chart": True,
        "asset_urn": "urn:iff:asset:42",
        "metric": "pressure",
        "last": {"value": None, "unit": None},
        "from": "2025-03-01T00:00:00",
        "to": "2025-03-02T00:00:00",
    }

    request = _classifier(gateway).chart_request(_turn("pressure of urn:iff:asset:42 on March 1st"))

    assert request is not None
    assert request.asset_urn == "urn:iff:asset:42"
    assert request.metric == "pressure"
    assert (request.start, request.end) == ("2025-03-01T00:00:00", "2025-03-02T00:00:00")


@pytest.mark.parametrize(
    "slots",
    [
        {"last": {"value": 2, "unit": "years"}, "metric": 42},
        {"last": "24h", "metric": ["rpm"], "from": 20250301},
    ],
)
def test_malformed_optional_slots_become_none(slots: dict) -> None:
    intent = ChartIntent.model_validate({"wants_chart": True, "asset_urn": URN, **slots})

    assert intent.wants_chart is True
    assert intent.asset_urn == URN
    assert intent.last is None
    assert intent.metric is None
    assert intent.from_ is None


def test_fenced_json_is_parsed(gateway, script) -> None:
    script.alert_intent = '```json\n{"wants_alert": true, "asset_urn": "urn:x"}\n```'

    intent = _classifier(gateway).detect_alert_intent("alerts for urn:x")

    assert intent.wants_alert is True
    assert intent.asset_urn == "urn:x"


def test_content_part_arrays_are_parsed(gateway, script) -> None:
    script.alert_intent = [{"type": "output_text", "text": '{"wants_alert": true, "asset_urn": "urn:y"}'}]

    intent = _classifier(gateway).detect_alert_intent("alerts for urn:y")

    assert intent.asset_urn == "urn:y"


@pytest.mark.parametrize("content", ["not json at all", "[1, 2]", '{"wants_chart": "maybe?"}', ""])
def test_unparseable_output_means_no_intent(gateway, script, content: str) -> None:
    script.chart_intent = content

    intent = _classifier(gateway).detect_chart_intent("hello")

    assert intent.wants_chart is False


def test_no_user_turn_means_no_classifier_call(gateway, providers) -> None:
    classifier = _classifier(gateway)
    history = [ChatMessage(role="assistant", content="How can I help?")]

    assert classifier.chart_request(history) is None
    assert classifier.alert_request(history) is None
    assert all(not provider.calls for provider in providers.values())


def test_classifier_reads_only_last_user_turn(gateway, providers) -> None:
    history = [
        ChatMessage(role="user", content="first question"),
        ChatMessage(role="assistant", content="answer"),
        ChatMessage(role="user", content="chart the spindle speed"),
    ]

    _classifier(gateway).chart_request(history)

    (operation, body), = providers["ionos"].calls
    assert operation == "chat"
    assert "chart the spindle speed" in body["messages"][0]["content"]
    assert "first question" not in body["messages"][0]["content"]
    assert body["temperature"] == 0.1
    assert body["response_format"]["json_schema"]["name"] == "chart_intent"


def test_configured_intent_provider_overrides_host(gateway, providers) -> None:
    _classifier(gateway, provider="opea").detect_alert_intent("alerts?", provider="ollama")

    assert providers["opea"].operations() == ["chat"]
    assert providers["ollama"].calls == []


def test_structured_output_can_be_disabled(gateway, providers) -> None:
    _classifier(gateway, structured_output=False).detect_alert_intent("alerts?")

    (_, body), = providers["ionos"].calls
    assert "response_format" not in body


def test_strip_code_fences() -> None:
    assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'
    assert strip_code_fences('```\n{"a": 1}```') == '{"a": 1}'
    assert strip_code_fences('{"a": 1}') == '{"a": 1}'


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("Power Consumption", "power_consumption"),
        ("spindle-speed (rpm)", "spindle_speed_rpm"),
        ("  temperature ", "temperature"),
        ("!!!", None),
        (None, None),
    ],
)
def test_normalize_metric(raw, expected) -> None:
    assert normalize_metric(raw) == expected
