"""Time-series lookups against the entity history table."""

from __future__ import annotations

import logging
import math
import re
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from xana_assist.types import ChartResult, ChartSummary, TimeSeriesPoint

logger = logging.getLogger(__name__)

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*(\.[A-Za-z_][A-Za-z0-9_]*)?$")

ROW_LIMIT = 100
SLICE_SIZE = 100


class TimeSeriesFetcher:
    """Reads observations for one entity attribute, newest first."""

    def __init__(
        self,
        engine: Engine,
        *,
        table: str = "entityhistory",
        attribute_namespace: str = "https://industry-fusion.org/base/v0.1/",
        row_limit: int = ROW_LIMIT,
    ) -> None:
        if not _IDENTIFIER.match(table):
            raise ValueError(f"Invalid table name: {table!r}")
        self.engine = engine
        self.table = table
        self.attribute_namespace = attribute_namespace
        self.row_limit = row_limit

    def fetch(self, asset_urn: str, metric: str | None, start: str, end: str) -> ChartResult:
        """Return observations in `[start, end)`; an empty series on failure."""
        query = text(
            f'SELECT "observedAt", "value" FROM {self.table} '
            'WHERE "entityId" = :entity_id AND "attributeId" = :attribute_id '
            'AND "observedAt" >= :start AND "observedAt" < :end '
            'ORDER BY "observedAt" DESC LIMIT :row_limit'
        )
        params = {
            "entity_id": asset_urn,
            "attribute_id": f"{self.attribute_namespace}{metric or ''}",
            "start": start,
            "end": end,
            "row_limit": self.row_limit,
        }

        series: list[TimeSeriesPoint] = []
        try:
            with self.engine.connect() as conn:
                rows = conn.execute(query, params).mappings().all()
            series = [TimeSeriesPoint(t=_as_timestamp(row["observedAt"]), v=_as_float(row["value"])) for row in rows]
        except SQLAlchemyError:
            logger.exception("Time-series query failed for %s/%s", asset_urn, metric)

        logger.info("Fetched %d points for %s (%s)", len(series), asset_urn, metric or "metric")
        return ChartResult(series=series, asset_urn=asset_urn, metric=metric)


def summarize_series(chart: ChartResult) -> ChartSummary:
    """Compact textual summary plus head/tail slices for prompt-sized output."""
    points = len(chart.series)
    values = [point.v for point in chart.series if math.isfinite(point.v)]
    lines = [
        f"Live data ({chart.metric or 'metric'}) for {chart.asset_urn}",
        f"Points: {points}" + (f", Min: {min(values)}, Max: {max(values)}" if values else ""),
    ]
    return ChartSummary(
        summary="\n".join(lines),
        first10=chart.series[:SLICE_SIZE],
        last10=chart.series[max(0, points - SLICE_SIZE):],
    )


def _as_timestamp(value: Any) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def _as_float(value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0
