"""Configuration models for the assistant."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

ProviderName = Literal["ionos", "ollama", "opea"]


class CapabilityConfig(BaseModel):
    """Endpoint, model and timeout for one provider capability."""

    url: str
    model: str
    timeout: float = Field(default=60.0, gt=0.0)


class ProviderConfig(BaseModel):
    """Everything one backend needs: per-capability endpoints plus credentials."""

    name: str
    chat: CapabilityConfig
    embedding: CapabilityConfig
    rerank: CapabilityConfig | None = None
    api_key: SecretStr | None = None
    chat_defaults: dict[str, Any] = Field(default_factory=dict)


class RetrievalConfig(BaseModel):
    """Configures candidate counts and reranking for retrieval."""

    collection_name: str = "custom_setup_7"
    top_k: int = Field(default=5, ge=1)
    max_rerank_candidates: int = Field(default=20, ge=1)
    rerank_oversample: int = Field(default=3, ge=1)
    use_reranker: bool = False
    embedding_provider: str = "ollama"
    reranker_provider: str = "opea"
    always_rerank_providers: tuple[str, ...] = ("opea",)


class Settings(BaseSettings):
    """Process-wide settings resolved once from the environment and `.env`."""

    # Routing
    llm_provider: ProviderName = "ionos"
    embedding_provider: ProviderName = "ollama"
    reranker_provider: ProviderName = "opea"
    intent_provider: ProviderName | None = None
    intent_structured_output: bool = True

    # Retrieval
    embedding_dimensions: int = Field(default=1024, ge=1)
    retrieve_top_k: int = Field(default=5, ge=1)
    use_reranker: bool = False
    rag_collection_name: str = "custom_setup_7"
    vector_store: Literal["memory", "milvus"] = "memory"
    milvus_url: str = "http://localhost:19530"
    milvus_token: SecretStr | None = None
    milvus_timeout: float = Field(default=30.0, gt=0.0)

    # Orchestration
    chart_intent: bool = True

    # IONOS AI Model Hub (OpenAI-compatible)
    ionos_base_url: str = "https://openai.inference.de-txl.ionos.com/v1"
    ionos_embedding_url: str | None = None
    ionos_api_key: SecretStr | None = None
    ionos_llm_model: str = "meta-llama/Llama-3.3-70B-Instruct"
    ionos_embedding_model: str = "BAAI/bge-m3"
    ionos_chat_timeout: float = Field(default=1800.0, gt=0.0)
    ionos_embedding_timeout: float = Field(default=60.0, gt=0.0)

    # Ollama
    ollama_base_url: str = "http://localhost:11434"
    ollama_embedding_url: str = "http://localhost:11435/v1/embeddings"
    ollama_llm_model: str = "llama3.3:70b-instruct-q3_K_M"
    ollama_embedding_model: str = "bge-m3:latest"
    ollama_keep_alive: str = "30m"
    ollama_chat_timeout: float = Field(default=1800.0, gt=0.0)
    ollama_embedding_timeout: float = Field(default=60.0, gt=0.0)

    # OPEA: OpenVINO model server ("ovms") or the OPEA MegaService stack
    opea_backend_mode: Literal["ovms", "megaservice"] = "ovms"
    opea_ovms_base_url: str = "http://localhost:8000"
    opea_megaservice_url: str = "http://localhost:8888"
    # Per-capability overrides for deployments serving each model separately
    opea_chat_url: str | None = Field(default=None, validation_alias=AliasChoices("opea_chat_url", "opea_llm_url"))
    opea_embedding_url: str | None = None
    opea_rerank_url: str | None = None
    opea_llm_model: str = "meta-llama/Llama-3.3-70B-Instruct"
    opea_embedding_model: str = "BAAI/bge-m3"
    opea_rerank_model: str = "BAAI/bge-reranker-v2-m3"
    opea_chat_timeout: float = Field(default=1800.0, gt=0.0)
    opea_embedding_timeout: float = Field(default=60.0, gt=0.0)
    opea_rerank_timeout: float = Field(default=60.0, gt=0.0)

    # Live data
    database_url: str | None = None
    pg_table: str = "entityhistory"
    attribute_namespace: str = "https://industry-fusion.org/base/v0.1/"
    alerta_api_url: str | None = None
    alerta_api_key: SecretStr | None = None
    alerta_timeout: float = Field(default=30.0, gt=0.0)

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    def retrieval_config(self) -> RetrievalConfig:
        return RetrievalConfig(
            collection_name=self.rag_collection_name,
            top_k=self.retrieve_top_k,
            use_reranker=self.use_reranker,
            embedding_provider=self.embedding_provider,
            reranker_provider=self.reranker_provider,
        )

    def provider_configs(self) -> dict[str, ProviderConfig]:
        """Build one `ProviderConfig` per backend."""
        ionos = ProviderConfig(
            name="ionos",
            chat=CapabilityConfig(
                url=f"{self.ionos_base_url.rstrip('/')}/chat/completions",
                model=self.ionos_llm_model,
                timeout=self.ionos_chat_timeout,
            ),
            embedding=CapabilityConfig(
                url=self.ionos_embedding_url or f"{self.ionos_base_url.rstrip('/')}/embeddings",
                model=self.ionos_embedding_model,
                timeout=self.ionos_embedding_timeout,
            ),
            api_key=self.ionos_api_key,
        )
        ollama = ProviderConfig(
            name="ollama",
            chat=CapabilityConfig(
                url=f"{self.ollama_base_url.rstrip('/')}/v1/chat/completions",
                model=self.ollama_llm_model,
                timeout=self.ollama_chat_timeout,
            ),
            embedding=CapabilityConfig(
                url=self.ollama_embedding_url,
                model=self.ollama_embedding_model,
                timeout=self.ollama_embedding_timeout,
            ),
            chat_defaults={"keep_alive": self.ollama_keep_alive},
        )

        if self.opea_backend_mode == "ovms":
            opea_base = f"{self.opea_ovms_base_url.rstrip('/')}/v3"
            opea_paths = ("chat/completions", "embeddings", "rerank")
        else:
            opea_base = f"{self.opea_megaservice_url.rstrip('/')}/v1"
            opea_paths = ("chatqna", "embeddings", "reranking")
        opea = ProviderConfig(
            name="opea",
            chat=CapabilityConfig(
                url=self.opea_chat_url or f"{opea_base}/{opea_paths[0]}",
                model=self.opea_llm_model,
                timeout=self.opea_chat_timeout,
            ),
            embedding=CapabilityConfig(
                url=self.opea_embedding_url or f"{opea_base}/{opea_paths[1]}",
                model=self.opea_embedding_model,
                timeout=self.opea_embedding_timeout,
            ),
            rerank=CapabilityConfig(
                url=self.opea_rerank_url or f"{opea_base}/{opea_paths[2]}",
                model=self.opea_rerank_model,
                timeout=self.opea_rerank_timeout,
            ),
        )
        return {"ionos": ionos, "ollama": ollama, "opea": opea}


@lru_cache
def get_settings() -> Settings:
    return Settings()
