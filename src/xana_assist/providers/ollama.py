"""Local Ollama runtime."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

from xana_assist.providers.base import ModelProvider


class OllamaProvider(ModelProvider):
    """Local model runtime.

    Chat goes through Ollama's OpenAI-compatible endpoint with `keep_alive`
    set so the model is not reloaded between turns. Embeddings are usually
    served by a second instance and may come back in Ollama's native
    `{"embeddings": [[...]]}` shape, which the base class accepts.
    """

    def _embedding_body(self, input: str | Sequence[str], encoding_format: str) -> dict[str, Any]:
        return {
            "model": self.config.embedding.model,
            "input": input if isinstance(input, str) else list(input),
        }
