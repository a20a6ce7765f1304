"""Configuration management for the discovery pipeline."""

from typing import Literal, Optional

from pydantic_settings import BaseSettings


SUPABASE_REQUIRED_VARS = [
    "SUPABASE_URL",
    "SUPABASE_KEY",
]


class Config(BaseSettings):
    """Application configuration from environment variables."""

    # Storage
    storage_backend: Literal["memory", "supabase"] = "memory"
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None

    # Sources
    sam_api_key: Optional[str] = None
    grants_gov_attribution: str = "Grant Discovery Pipeline"
    fema_state: Optional[str] = None
    adapter_timeout_seconds: Optional[float] = None
    adapter_retry_attempts: int = 2
    max_fetch_concurrency: Optional[int] = None
    search_lookback_days: int = 30

    # Scoring
    match_threshold: float = 0.15
    confidence_token_floor: int = 3
    module_catalog_path: Optional[str] = None

    # Learning
    learning_base_increment: float = 1.0
    min_weight: float = 0.01
    max_weight: float = 10.0

    # Persistence
    max_write_retries: int = 5

    # Scheduling
    polling_interval_minutes: int = 60
    outcome_interval_minutes: int = 15
    log_level: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": False}


def validate_config() -> Config:
    """Load and validate configuration from environment.

    Raises ValueError with descriptive message listing ALL missing
    required variables (not just the first one).
    """
    config = Config()

    if config.storage_backend == "supabase":
        missing = [
            var for var in SUPABASE_REQUIRED_VARS
            if not getattr(config, var.lower())
        ]
        if missing:
            names = ", ".join(missing)
            raise ValueError(
                f"Missing required environment variable(s): {names}. "
                "Please set them in your .env file or environment."
            )

    if config.min_weight > config.max_weight:
        raise ValueError(
            f"MIN_WEIGHT ({config.min_weight}) must not exceed MAX_WEIGHT ({config.max_weight})"
        )
    return config


def load_config() -> Config:
    """Load configuration from environment (startup entry point)."""
    return validate_config()
