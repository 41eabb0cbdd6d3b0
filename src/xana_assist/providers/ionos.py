"""IONOS AI Model Hub: hosted, OpenAI-compatible, bearer-token authenticated."""

from __future__ import annotations

import logging

import httpx

from xana_assist.config import ProviderConfig
from xana_assist.providers.base import ModelProvider

logger = logging.getLogger(__name__)


class IonosProvider(ModelProvider):
    """Cloud inference backend. Chat and embeddings only; no reranker."""

    def __init__(self, config: ProviderConfig, client: httpx.Client, *, target_dim: int) -> None:
        super().__init__(config, client, target_dim=target_dim)
        if config.api_key is None:
            logger.warning("[%s] no API key configured; requests will be rejected", config.name)
