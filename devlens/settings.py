import os
from dataclasses import dataclass

from .utils import env_bool, env_float, env_int, env_str, load_env


@dataclass
class Settings:
    """Runtime configuration, read from the environment (and .env when present)."""

    github_api_url: str = "https://api.github.com"
    github_token: str = ""
    github_timeout: float = 15.0
    github_max_retries: int = 3
    github_retry_backoff: float = 1.0
    rate_limit_reserve: int = 2

    anthropic_api_key: str = ""
    anthropic_base_url: str = "https://api.anthropic.com"
    llm_model: str = "claude-sonnet-4-5"
    llm_max_tokens: int = 2000
    llm_timeout: float = 60.0

    cache_ttl_seconds: float = 3600.0
    batch_delay_seconds: float = 1.0
    max_batch_size: int = 20
    search_per_page: int = 30
    max_job_description_chars: int = 20000
    enforce_recommendation_bands: bool = False

    data_dir: str = "data"
    database_url: str = ""
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        load_env()
        return cls(
            github_api_url=env_str("GITHUB_API_URL", cls.github_api_url).rstrip("/"),
            github_token=env_str("GITHUB_TOKEN"),
            github_timeout=env_float("GITHUB_TIMEOUT", cls.github_timeout),
            github_max_retries=max(1, env_int("GITHUB_MAX_RETRIES", cls.github_max_retries)),
            github_retry_backoff=env_float("GITHUB_RETRY_BACKOFF", cls.github_retry_backoff),
            rate_limit_reserve=env_int("RATE_LIMIT_RESERVE", cls.rate_limit_reserve),
            anthropic_api_key=env_str("ANTHROPIC_API_KEY"),
            anthropic_base_url=env_str("ANTHROPIC_BASE_URL", cls.anthropic_base_url).rstrip("/"),
            llm_model=env_str("LLM_MODEL", cls.llm_model),
            llm_max_tokens=env_int("LLM_MAX_TOKENS", cls.llm_max_tokens),
            llm_timeout=env_float("LLM_TIMEOUT", cls.llm_timeout),
            cache_ttl_seconds=env_float("CACHE_TTL_SECONDS", cls.cache_ttl_seconds),
            batch_delay_seconds=env_float("BATCH_DELAY_SECONDS", cls.batch_delay_seconds),
            max_batch_size=env_int("MAX_BATCH_SIZE", cls.max_batch_size),
            search_per_page=env_int("SEARCH_PER_PAGE", cls.search_per_page),
            max_job_description_chars=env_int("MAX_JOB_DESCRIPTION_CHARS", cls.max_job_description_chars),
            enforce_recommendation_bands=env_bool("ENFORCE_RECOMMENDATION_BANDS"),
            data_dir=env_str("DATA_DIR", os.path.join(os.getcwd(), "data")),
            database_url=env_str("DATABASE_URL"),
            log_level=env_str("LOG_LEVEL", cls.log_level).upper(),
        )
