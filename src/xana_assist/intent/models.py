"""Structured intent extraction results and their gating rules."""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

_UNIT_DELTAS = {
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
    "w": timedelta(weeks=1),
}


class RelativeWindow(BaseModel):
    """A "last N units" window such as last 24h or last 7d."""

    value: int = Field(ge=1)
    unit: Literal["m", "h", "d", "w"]

    def as_timedelta(self) -> timedelta:
        return _UNIT_DELTAS[self.unit] * self.value


class ChartIntent(BaseModel):
    """Chart slots extracted by the classifier.

    Optional slots are lenient: a malformed `last`, metric or bound becomes
    None instead of invalidating the whole intent.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    wants_chart: bool = False
    asset_urn: str | None = None
    metric: str | None = None
    last: RelativeWindow | None = None
    from_: str | None = Field(default=None, alias="from")
    to: str | None = None

    @field_validator("last", mode="before")
    @classmethod
    def _drop_invalid_window(cls, value: Any) -> RelativeWindow | None:
        if value is None or isinstance(value, RelativeWindow):
            return value
        try:
            return RelativeWindow.model_validate(value)
        except ValidationError:
            return None

    @field_validator("asset_urn", "metric", "from_", "to", mode="before")
    @classmethod
    def _drop_non_string(cls, value: Any) -> str | None:
        return value if isinstance(value, str) and value.strip() else None

    @field_validator("metric")
    @classmethod
    def _normalize_metric(cls, value: str | None) -> str | None:
        return normalize_metric(value)


class AlertIntent(BaseModel):
    model_config = ConfigDict(extra="ignore")

    wants_alert: bool = False
    asset_urn: str | None = None

    @field_validator("asset_urn", mode="before")
    @classmethod
    def _drop_non_string(cls, value: Any) -> str | None:
        return value if isinstance(value, str) and value.strip() else None


@dataclass(slots=True, frozen=True)
class ChartRequest:
    """A chart intent with every slot needed to query the time-series store."""

    asset_urn: str
    metric: str | None
    start: str
    end: str


def normalize_metric(metric: str | None) -> str | None:
    """Turn free-text metric names into `metric_unit` style tokens."""
    if metric is None:
        return None
    token = re.sub(r"[\s\-]+", "_", metric.strip().lower())
    token = re.sub(r"[^\w]", "", token).strip("_")
    return token or None


def resolve_chart_request(intent: ChartIntent, now: datetime) -> ChartRequest | None:
    """Return an actionable request, or None if any required slot is missing.

    Explicit ISO bounds take precedence. Without them a relative `last`
    window becomes `[now - last, now]`.
    """
    if not intent.wants_chart or not intent.asset_urn:
        return None

    start = _parse_iso(intent.from_)
    end = _parse_iso(intent.to)
    if start is not None and end is not None:
        return ChartRequest(intent.asset_urn, intent.metric, intent.from_ or "", intent.to or "")

    if intent.last is not None:
        window_end = now if now.tzinfo else now.replace(tzinfo=timezone.utc)
        window_start = window_end - intent.last.as_timedelta()
        return ChartRequest(
            intent.asset_urn,
            intent.metric,
            window_start.isoformat(timespec="milliseconds"),
            window_end.isoformat(timespec="milliseconds"),
        )
    return None


def resolve_alert_request(intent: AlertIntent) -> str | None:
    if not intent.wants_alert or not intent.asset_urn:
        return None
    return intent.asset_urn


def _parse_iso(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None
