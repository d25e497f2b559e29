import os
from dataclasses import dataclass
from functools import lru_cache

import redis.asyncio as aioredis
from dotenv import load_dotenv

load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes", "on")


@dataclass(frozen=True)
class Settings:
    """Application settings loaded from environment variables."""

    # Redis
    redis_url: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    redis_password: str | None = os.getenv("REDIS_PASSWORD")
    cache_key_prefix: str = os.getenv("CACHE_KEY_PREFIX", "grant_matcher")
    distributed_cache_enabled: bool = _env_bool("DISTRIBUTED_CACHE_ENABLED", "false")

    # Cache TTLs (seconds)
    cache_default_absolute_ttl: int = int(os.getenv("CACHE_DEFAULT_ABSOLUTE_TTL", "1800"))
    cache_default_sliding_ttl: int = int(os.getenv("CACHE_DEFAULT_SLIDING_TTL", "600"))
    search_cache_absolute_ttl: int = int(os.getenv("SEARCH_CACHE_ABSOLUTE_TTL", "900"))
    search_cache_sliding_ttl: int = int(os.getenv("SEARCH_CACHE_SLIDING_TTL", "300"))
    embedding_cache_ttl: int = int(os.getenv("EMBEDDING_CACHE_TTL", "86400"))  # 24 hours
    profile_cache_ttl: int = int(os.getenv("PROFILE_CACHE_TTL", "1800"))
    cache_max_entries: int = int(os.getenv("CACHE_MAX_ENTRIES", "10000"))

    # Scoring
    weight_semantic: float = float(os.getenv("WEIGHT_SEMANTIC", "0.6"))
    weight_mission: float = float(os.getenv("WEIGHT_MISSION", "0.1"))
    weight_award: float = float(os.getenv("WEIGHT_AWARD", "0.2"))
    weight_deadline: float = float(os.getenv("WEIGHT_DEADLINE", "0.1"))
    award_reference_cap: float = float(os.getenv("AWARD_REFERENCE_CAP", "500000"))
    deadline_window_days: int = int(os.getenv("DEADLINE_WINDOW_DAYS", "30"))
    near_deadline_factor: float = float(os.getenv("NEAR_DEADLINE_FACTOR", "0.5"))

    # Eligibility (advisory budget checks)
    min_award_budget_ratio: float = float(os.getenv("MIN_AWARD_BUDGET_RATIO", "0.5"))
    max_award_budget_multiple: float = float(os.getenv("MAX_AWARD_BUDGET_MULTIPLE", "3"))

    # Search
    default_min_similarity: float = float(os.getenv("DEFAULT_MIN_SIMILARITY", "0.6"))
    candidate_pool_size: int = int(os.getenv("CANDIDATE_POOL_SIZE", "100"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "100"))

    # Instrumentation
    slow_operation_threshold_ms: float = float(os.getenv("SLOW_OPERATION_THRESHOLD_MS", "2000"))
    search_slow_threshold_ms: float = float(os.getenv("SEARCH_SLOW_THRESHOLD_MS", "3000"))

    # Background queue
    background_queue_size: int = int(os.getenv("BACKGROUND_QUEUE_SIZE", "256"))
    background_workers: int = int(os.getenv("BACKGROUND_WORKERS", "3"))
    search_invalidation_followup_seconds: float = float(os.getenv("SEARCH_INVALIDATION_FOLLOWUP_SECONDS", "5"))

    # Collaborators
    vector_search_backend: str = os.getenv("VECTOR_SEARCH_BACKEND", "http")  # or "redis"
    vector_search_url: str = os.getenv("VECTOR_SEARCH_URL", "http://localhost:8081")
    vector_search_api_key: str | None = os.getenv("VECTOR_SEARCH_API_KEY")
    vector_search_timeout: float = float(os.getenv("VECTOR_SEARCH_TIMEOUT", "10"))
    vector_index_name: str = os.getenv("VECTOR_INDEX_NAME", "grants")
    embedding_backend: str = os.getenv("EMBEDDING_BACKEND", "ollama")  # or "local"
    embedding_model: str = os.getenv("EMBEDDING_MODEL", "nomic-embed-text")
    ollama_base_url: str = os.getenv("OLLAMA_BASE_URL", "http://localhost:11434")
    conversation_url: str | None = os.getenv("CONVERSATION_URL")

    # Catalog
    grant_retention_days: int = int(os.getenv("GRANT_RETENTION_DAYS", "90"))

    # API
    api_host: str = os.getenv("API_HOST", "0.0.0.0")
    api_port: int = int(os.getenv("API_PORT", "8000"))
    api_reload: bool = _env_bool("API_RELOAD", "false")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    log_json: bool = _env_bool("LOG_JSON", "false")

    @property
    def scoring_weights(self) -> tuple[float, float, float, float]:
        return (self.weight_semantic, self.weight_mission, self.weight_award, self.weight_deadline)

    def __post_init__(self) -> None:
        """Validate settings after initialization."""
        if abs(sum(self.scoring_weights) - 1.0) > 1e-6:
            raise ValueError(
                f"Scoring weights must sum to 1, got {sum(self.scoring_weights):.4f}"
            )

        if any(w < 0 for w in self.scoring_weights):
            raise ValueError("Scoring weights must not be negative")

        if not 0 <= self.default_min_similarity <= 1:
            raise ValueError("DEFAULT_MIN_SIMILARITY must be between 0 and 1")

        if self.award_reference_cap <= 0:
            raise ValueError("AWARD_REFERENCE_CAP must be positive")

        if self.search_invalidation_followup_seconds < 0:
            raise ValueError("SEARCH_INVALIDATION_FOLLOWUP_SECONDS must not be negative")

        if self.background_workers < 1 or self.background_queue_size < 1:
            raise ValueError("BACKGROUND_WORKERS and BACKGROUND_QUEUE_SIZE must be at least 1")

        if self.vector_search_backend not in ("http", "redis"):
            raise ValueError(
                f"VECTOR_SEARCH_BACKEND must be 'http' or 'redis', got {self.vector_search_backend!r}"
            )

        if self.embedding_backend not in ("ollama", "local"):
            raise ValueError(
                f"EMBEDDING_BACKEND must be 'ollama' or 'local', got {self.embedding_backend!r}"
            )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()


def get_redis_client() -> aioredis.Redis:
    """Create an asyncio Redis client instance."""
    return aioredis.from_url(
        settings.redis_url,
        password=settings.redis_password,
        decode_responses=False,
    )
