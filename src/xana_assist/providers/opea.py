"""OPEA backend: OpenVINO model server directly, or the OPEA MegaService."""

from __future__ import annotations

from typing import Any, Literal

import httpx

from xana_assist.config import ProviderConfig
from xana_assist.providers.base import ModelProvider

OpeaMode = Literal["ovms", "megaservice"]


class OpeaProvider(ModelProvider):
    """Local model server with chat, embeddings and a reranker.

    In `ovms` mode all three capabilities are the model server's
    OpenAI-style `/v3` endpoints. In `megaservice` mode they are the OPEA
    microservices, whose reranker takes `texts` instead of `documents`.
    """

    def __init__(
        self,
        config: ProviderConfig,
        client: httpx.Client,
        *,
        target_dim: int,
        mode: OpeaMode = "ovms",
    ) -> None:
        super().__init__(config, client, target_dim=target_dim)
        self.mode = mode

    def _rerank_body(self, query: str, documents: list[str], top_n: int, model: str) -> dict[str, Any]:
        if self.mode == "megaservice":
            return {"model": model, "query": query, "texts": documents, "top_n": top_n}
        return super()._rerank_body(query, documents, top_n, model)
