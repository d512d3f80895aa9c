"""
Recollect Configuration
-----------------------
Centralized configuration for the retrieval engine.
Loads from environment variables and YAML config files.
"""

import os
import logging
from pathlib import Path
from typing import Optional, Dict, List

import yaml
from pydantic import BaseModel, Field

from recollect.platform import get_data_dir

logger = logging.getLogger("Recollect.Config")

DEFAULT_DATA_DIR = str(get_data_dir())
SUPPORTED_EMBEDDING_PROVIDERS = ("ollama", "openai")
DEFAULT_CONNECTOR_SCORES = {
    "calendar": 0.85,
    "email": 0.8,
    "drive": 0.75,
}


def _env_bool(name: str, default: str = "false") -> bool:
    return os.environ.get(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _parse_positive_float_env(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
        if value <= 0:
            raise ValueError
        return value
    except ValueError:
        logger.warning(
            "Invalid %s value '%s'; expected positive float. Using %s.",
            name,
            raw,
            default,
        )
        return default


def _parse_list_env(name: str, default: List[str]) -> List[str]:
    raw = os.environ.get(name)
    if raw is None:
        return list(default)
    return [part.strip() for part in raw.split(",") if part.strip()]


def _normalize_provider(provider: Optional[str], default: str) -> str:
    candidate = (provider or "").strip().lower()
    if candidate in SUPPORTED_EMBEDDING_PROVIDERS:
        return candidate
    if candidate:
        logger.warning(
            "Unsupported embedding provider '%s'; expected one of %s. Falling back to '%s'.",
            candidate,
            SUPPORTED_EMBEDDING_PROVIDERS,
            default,
        )
    return default


class EmbeddingConfig(BaseModel):
    """Embedding provider configuration."""
    provider: str = "ollama"  # ollama | openai
    model: str = "nomic-embed-text"
    dimensions: int = 768
    ollama_url: str = "http://localhost:11434"
    openai_url: str = "https://api.openai.com/v1"
    openai_api_key: Optional[str] = None
    timeout_seconds: float = 30.0
    # Cost units per 1K estimated tokens.
    price_per_1k_tokens: float = 0.00002
    cache_enabled: bool = True
    cache_max_size: int = 1000
    cache_ttl_seconds: float = 24 * 60 * 60


class ContentIndexConfig(BaseModel):
    """Qdrant content index configuration."""
    path: str = os.path.join(DEFAULT_DATA_DIR, "qdrant")
    url: Optional[str] = None
    collection: str = "recollect_content"
    dimensions: int = 768


class MemoryStoreConfig(BaseModel):
    """SQLite memory store configuration."""
    path: str = os.path.join(DEFAULT_DATA_DIR, "memories.db")


class RetrievalConfig(BaseModel):
    """Source thresholds, limits and time boxes."""
    content_threshold: float = 0.65
    memory_threshold: float = 0.6
    memory_limit: int = 5
    store_timeout_seconds: float = 10.0
    connector_timeout_seconds: float = 5.0


class ConnectorConfig(BaseModel):
    """External read-only connector configuration."""
    # Rendering order follows this list.
    enabled: List[str] = Field(default_factory=lambda: ["email", "calendar", "drive"])
    scores: Dict[str, float] = Field(default_factory=lambda: dict(DEFAULT_CONNECTOR_SCORES))
    # Shared across active connectors, split evenly (rounded up).
    result_budget: int = 5
    calendar_lookahead_days: int = 30


class FormatterConfig(BaseModel):
    """Context block rendering configuration."""
    message_max_chars: int = 300
    chars_per_token: int = 4


class TelemetryConfig(BaseModel):
    """Optional OpenTelemetry spans."""
    enabled: bool = False
    capture_content: bool = False
    capture_content_max_chars: int = 1000


class EngineConfig(BaseModel):
    """Root configuration for the retrieval engine."""
    embedding: EmbeddingConfig = Field(default_factory=EmbeddingConfig)
    content_index: ContentIndexConfig = Field(default_factory=ContentIndexConfig)
    memory_store: MemoryStoreConfig = Field(default_factory=MemoryStoreConfig)
    retrieval: RetrievalConfig = Field(default_factory=RetrievalConfig)
    connectors: ConnectorConfig = Field(default_factory=ConnectorConfig)
    formatter: FormatterConfig = Field(default_factory=FormatterConfig)
    telemetry: TelemetryConfig = Field(default_factory=TelemetryConfig)
    data_dir: str = DEFAULT_DATA_DIR

    @classmethod
    def from_env(cls) -> "EngineConfig":
        """
        Load configuration from environment variables.

        Environment variables override defaults:
        - RECOLLECT_DATA_DIR: Base data directory
        - RECOLLECT_EMBEDDING_PROVIDER: ollama | openai
        - RECOLLECT_EMBEDDING_MODEL / RECOLLECT_EMBEDDING_DIMS
        - RECOLLECT_OLLAMA_URL / RECOLLECT_OPENAI_URL / RECOLLECT_OPENAI_API_KEY
        - RECOLLECT_EMBEDDING_CACHE: Enable/disable the embedding cache
        - RECOLLECT_QDRANT_URL: Remote Qdrant instead of the local path
        - RECOLLECT_CONNECTORS: Comma-separated connector kinds, in render order
        - RECOLLECT_CONNECTOR_TIMEOUT / RECOLLECT_STORE_TIMEOUT: Seconds
        - RECOLLECT_OTEL_ENABLED / RECOLLECT_OTEL_CAPTURE_CONTENT
        """
        data_dir = os.environ.get("RECOLLECT_DATA_DIR", DEFAULT_DATA_DIR)
        provider = _normalize_provider(os.environ.get("RECOLLECT_EMBEDDING_PROVIDER"), "ollama")
        default_model = "text-embedding-3-small" if provider == "openai" else "nomic-embed-text"
        default_dims = "1536" if provider == "openai" else "768"
        embedding_dims = int(os.environ.get("RECOLLECT_EMBEDDING_DIMS", default_dims))

        config = cls(
            data_dir=data_dir,
            embedding=EmbeddingConfig(
                provider=provider,
                model=os.environ.get("RECOLLECT_EMBEDDING_MODEL", default_model),
                dimensions=embedding_dims,
                ollama_url=os.environ.get("RECOLLECT_OLLAMA_URL", "http://localhost:11434"),
                openai_url=os.environ.get("RECOLLECT_OPENAI_URL", "https://api.openai.com/v1"),
                openai_api_key=os.environ.get("RECOLLECT_OPENAI_API_KEY"),
                timeout_seconds=_parse_positive_float_env("RECOLLECT_EMBEDDING_TIMEOUT", 30.0),
                cache_enabled=_env_bool("RECOLLECT_EMBEDDING_CACHE", "true"),
            ),
            content_index=ContentIndexConfig(
                path=os.path.join(data_dir, "qdrant"),
                url=os.environ.get("RECOLLECT_QDRANT_URL") or None,
                collection=os.environ.get("RECOLLECT_QDRANT_COLLECTION", "recollect_content"),
                dimensions=embedding_dims,
            ),
            memory_store=MemoryStoreConfig(
                path=os.path.join(data_dir, "memories.db"),
            ),
            retrieval=RetrievalConfig(
                store_timeout_seconds=_parse_positive_float_env("RECOLLECT_STORE_TIMEOUT", 10.0),
                connector_timeout_seconds=_parse_positive_float_env("RECOLLECT_CONNECTOR_TIMEOUT", 5.0),
            ),
            connectors=ConnectorConfig(
                enabled=_parse_list_env("RECOLLECT_CONNECTORS", ["email", "calendar", "drive"]),
            ),
            telemetry=TelemetryConfig(
                enabled=_env_bool("RECOLLECT_OTEL_ENABLED"),
                capture_content=_env_bool("RECOLLECT_OTEL_CAPTURE_CONTENT"),
            ),
        )

        return config

    @classmethod
    def from_yaml(cls, path: str) -> "EngineConfig":
        """Load configuration from a YAML file."""
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
            return cls(**data)
        except FileNotFoundError:
            logger.warning("Config file not found: %s; using environment", path)
            return cls.from_env()

    def ensure_directories(self) -> None:
        """Create data directories if they don't exist."""
        Path(self.data_dir).mkdir(parents=True, exist_ok=True)
        Path(self.memory_store.path).parent.mkdir(parents=True, exist_ok=True)
        if self.content_index.url is None:
            Path(self.content_index.path).parent.mkdir(parents=True, exist_ok=True)
