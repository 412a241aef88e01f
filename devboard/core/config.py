import logging

from pydantic_settings import BaseSettings
from pydantic import ConfigDict
from typing import Optional

class Settings(BaseSettings):
    # Environment
    ENV: str = "development"
    CONFIG_STRICT: bool = False
    TIMEZONE: str = "UTC"  # used for "today" in streaks and for cache clocks

    # Database
    DATABASE_URL: Optional[str] = None
    TEST_DATABASE_URL: Optional[str] = None

    # Auth
    JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    JWT_EXPIRATION_MINUTES: int = 60 * 24

    # External providers
    CACHE_DURATION: int = 3600  # seconds, shared by every cache entry
    HTTP_TIMEOUT_SECONDS: float = 10.0
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_GRAPHQL_URL: str = "https://api.github.com/graphql"
    GITHUB_CLIENT_ID: Optional[str] = None
    GITHUB_CLIENT_SECRET: Optional[str] = None
    STACKOVERFLOW_API_URL: str = "https://api.stackexchange.com/2.3"
    STACKOVERFLOW_API_KEY: Optional[str] = None

    # Challenge text generation
    HUGGINGFACE_API_TOKEN: Optional[str] = None
    HUGGINGFACE_API_URL: str = "https://api-inference.huggingface.co/models/"
    HUGGINGFACE_MODEL: str = "gpt2"

    # App
    CORS_ORIGINS: str = "http://localhost:3000"  # comma-separated

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
settings = Settings()


def validate_config(strict: Optional[bool] = None, settings_obj: Optional[Settings] = None, logger: Optional[logging.Logger] = None) -> bool:
    """Validate required configuration.

    In strict mode raise RuntimeError; otherwise emit warnings only.
    Secrets are not logged, only missing keys.
    """
    cfg = settings_obj or settings
    log = logger or logging.getLogger("devboard")
    strict_mode = strict if strict is not None else getattr(cfg, "CONFIG_STRICT", False)

    required_keys = [
        "DATABASE_URL",
        "JWT_SECRET",
    ]

    missing = [key for key in required_keys if not getattr(cfg, key, None)]
    if missing:
        message = f"Missing required configuration: {', '.join(missing)}"
        if strict_mode:
            raise RuntimeError(message)
        log.warning(message)

    return True


def cors_origins(settings_obj: Optional[Settings] = None) -> list[str]:
    cfg = settings_obj or settings
    return [origin.strip() for origin in cfg.CORS_ORIGINS.split(",") if origin.strip()]
