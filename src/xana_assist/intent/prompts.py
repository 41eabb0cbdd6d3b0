"""Instructions and JSON schemas for intent extraction."""

from __future__ import annotations

import json
from typing import Any

CHART_INTENT_SCHEMA: dict[str, Any] = {
    "name": "chart_intent",
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "wants_chart": {"type": "boolean"},
            "asset_urn": {"type": ["string", "null"]},
            "metric": {"type": ["string", "null"]},
            "last": {
                "type": ["object", "null"],
                "additionalProperties": False,
                "properties": {
                    "value": {"type": "integer"},
                    "unit": {"type": "string", "enum": ["m", "h", "d", "w"]},
                },
                "required": ["value", "unit"],
            },
            "from": {"type": ["string", "null"], "description": "ISO datetime"},
            "to": {"type": ["string", "null"], "description": "ISO datetime"},
        },
        "required": ["wants_chart", "asset_urn", "metric", "last", "from", "to"],
    },
    "strict": True,
}

ALERT_INTENT_SCHEMA: dict[str, Any] = {
    "name": "alert_intent",
    "schema": {
        "type": "object",
        "additionalProperties": False,
        "properties": {
            "wants_alert": {"type": "boolean"},
            "asset_urn": {"type": ["string", "null"]},
        },
        "required": ["wants_alert", "asset_urn"],
    },
    "strict": True,
}


def chart_intent_prompt(user_text: str) -> str:
    return (
        "You extract data chart intent from a single user message.\n"
        "- If the user asks for a chart/plot/graph/trend of a specific asset, set wants_chart=true. "
        "Alert or notification requests are not chart requests.\n"
        '- Copy the asset URN exactly as written (e.g., "urn:iff:asset:123"). Never invent one; use null if absent.\n'
        '- If a range like "last 24h/7d/30m" or "3-day" is present, fill last {value,unit}.\n'
        "- If explicit dates exist, set from/to as ISO datetimes like 2025-09-01T21:58:35.808, otherwise null.\n"
        "- metric is optional. Use lowercase words joined by underscores "
        "(e.g., temperature, power, rpm, pressure, motor_current, energy_consumption).\n"
        "- Be strict: if in doubt, assume there is no intent.\n"
        f"Return a pure JSON object matching this schema: {json.dumps(CHART_INTENT_SCHEMA['schema'])}\n\n"
        f"User: {user_text}"
    )


def alert_intent_prompt(user_text: str) -> str:
    return (
        "You extract data alert intent from a single user message.\n"
        "- If the user asks for alerts, alarms or notifications of an asset, set wants_alert=true.\n"
        '- Copy the asset URN exactly as written (e.g., "urn:iff:asset:123"). Never invent one; use null if absent.\n'
        "- Be strict: if in doubt, assume there is no intent.\n"
        f"Return a pure JSON object matching this schema: {json.dumps(ALERT_INTENT_SCHEMA['schema'])}\n\n"
        f"User: {user_text}"
    )
