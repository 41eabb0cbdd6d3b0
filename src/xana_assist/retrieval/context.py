"""Normalizing vector-search output and rendering it as prompt context."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from typing import Any

from xana_assist.types import RetrievalHit

logger = logging.getLogger(__name__)

BLOCK_SEPARATOR = "\n\n-----\n\n"
MIN_BLOCK_TEXT = 5


def normalize_search_results(raw: Any) -> list[dict[str, Any]]:
    """Flatten `[...]`, `[[...]]` and `{"data": [...]}` into one record list."""
    if isinstance(raw, list):
        if raw and isinstance(raw[0], list):
            records = raw[0]
        else:
            records = raw
    elif isinstance(raw, dict) and isinstance(raw.get("data"), list):
        records = raw["data"]
        if records and isinstance(records[0], list):
            records = records[0]
    else:
        logger.warning("Unexpected vector search result structure: %s", type(raw).__name__)
        return []
    return [record for record in records if isinstance(record, dict)]


def coerce_labels(value: Any) -> dict[str, Any]:
    """Labels arrive as a dict, a JSON string, or plain text."""
    if value is None:
        return {}
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return {"text": value}
        return parsed if isinstance(parsed, dict) else {}
    if isinstance(value, dict):
        return value
    return {}


def record_labels(record: dict[str, Any]) -> dict[str, Any]:
    if record.get("labels") is not None:
        return coerce_labels(record["labels"])
    if record.get("entity") is not None:
        entity = coerce_labels(record["entity"])
        return coerce_labels(entity["labels"]) if "labels" in entity else entity
    return record


def hit_from_record(record: dict[str, Any], index: int) -> RetrievalHit:
    labels = record_labels(record)
    text = labels.get("text") or record.get("text") or record.get("content") or ""
    provenance = labels.get("source") or labels.get("filename") or record.get("filename") or f"doc-{index}"
    score = record.get("score", record.get("distance"))
    identifier = record.get("id", record.get("chunk_id"))
    return RetrievalHit(
        identifier=str(identifier) if identifier is not None else f"hit-{index}",
        text=str(text),
        score=float(score) if isinstance(score, (int, float)) else None,
        provenance=str(provenance),
        record=record,
    )


def render_context(hits: Sequence[RetrievalHit]) -> str:
    """Render hits as `[source] (score: x)` blocks joined by a separator.

    Hits without text fall back to their labels as JSON; blocks whose text
    is still empty or degenerate are dropped.
    """
    blocks: list[str] = []
    for hit in hits:
        text = hit.text or json.dumps(record_labels(hit.record), default=str)
        if len(text.strip()) < MIN_BLOCK_TEXT:
            continue
        score = hit.relevance_score
        shown = f"{score:.4f}" if score is not None else "N/A"
        blocks.append(f"[{hit.provenance}] (score: {shown})\n{text}")
    return BLOCK_SEPARATOR.join(blocks)
