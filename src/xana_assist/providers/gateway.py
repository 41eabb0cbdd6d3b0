"""Routing-key lookup over the configured providers."""

from __future__ import annotations

import logging

import httpx

from xana_assist.config import Settings
from xana_assist.errors import UnknownProviderError
from xana_assist.providers.base import ModelProvider
from xana_assist.providers.ionos import IonosProvider
from xana_assist.providers.ollama import OllamaProvider
from xana_assist.providers.opea import OpeaProvider

logger = logging.getLogger(__name__)


class ProviderGateway:
    """Holds one provider instance per backend, built once at startup."""

    def __init__(self, providers: dict[str, ModelProvider], *, default: str) -> None:
        if default not in providers:
            raise UnknownProviderError(default, list(providers))
        self._providers = dict(providers)
        self.default = default

    @classmethod
    def from_settings(cls, settings: Settings, client: httpx.Client) -> "ProviderGateway":
        configs = settings.provider_configs()
        target_dim = settings.embedding_dimensions
        providers: dict[str, ModelProvider] = {
            "ionos": IonosProvider(configs["ionos"], client, target_dim=target_dim),
            "ollama": OllamaProvider(configs["ollama"], client, target_dim=target_dim),
            "opea": OpeaProvider(
                configs["opea"],
                client,
                target_dim=target_dim,
                mode=settings.opea_backend_mode,
            ),
        }
        for provider in providers.values():
            logger.info(
                "[%s] chat=%s (%s) embedding=%s (%s) rerank=%s",
                provider.name,
                provider.config.chat.url,
                provider.config.chat.model,
                provider.config.embedding.url,
                provider.config.embedding.model,
                provider.config.rerank.url if provider.config.rerank else "-",
            )
        return cls(providers, default=settings.llm_provider)

    def get(self, key: str | None = None) -> ModelProvider:
        """Resolve a routing key; `None` selects the default provider."""
        resolved = key or self.default
        provider = self._providers.get(resolved)
        if provider is None:
            raise UnknownProviderError(resolved, list(self._providers))
        return provider

    def names(self) -> list[str]:
        return list(self._providers)
