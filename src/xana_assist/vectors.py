"""Fit embeddings of any native length into the index dimensionality."""

from __future__ import annotations

from collections.abc import Sequence


def fit_dimension(vector: Sequence[float], target_dim: int) -> list[float]:
    """Return `vector` resized to exactly `target_dim` entries.

    Longer vectors are truncated and shorter ones are zero-padded. Truncation
    discards information; this is not a learned projection, it only makes
    vectors from models with different native sizes (e.g. 768 vs 1024)
    commensurable in one index.
    """
    if target_dim < 1:
        raise ValueError(f"target_dim must be positive, got {target_dim}")
    size = len(vector)
    if size >= target_dim:
        return [float(value) for value in vector[:target_dim]]
    return [float(value) for value in vector] + [0.0] * (target_dim - size)
