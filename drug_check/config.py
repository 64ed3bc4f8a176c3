"""
Configuration for the Drug Check Service.

Values come from the environment (optionally a .env file) and are frozen into
a ``Settings`` object at startup, which is then passed into ``create_app``.
"""
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

DEFAULT_ALLOWED_ORIGINS = ("https://drug-app-frontend.vercel.app",)
DEFAULT_MODEL = "gemini-2.5-pro"
DEFAULT_TIMEOUT_SECONDS = 180.0
DEFAULT_MAX_BODY_MB = 50


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: tuple) -> list[str]:
    value = os.getenv(name)
    if value is None:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass(frozen=True)
class Settings:
    gemini_api_key: Optional[str] = None
    gemini_model: str = DEFAULT_MODEL
    gemini_timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    max_body_bytes: int = DEFAULT_MAX_BODY_MB * 1024 * 1024
    host: str = "0.0.0.0"
    port: int = 5001
    log_level: str = "INFO"
    log_json: bool = True

    @classmethod
    def from_env(cls, env_file: Optional[str] = None) -> "Settings":
        """Build settings from environment variables.

        Args:
            env_file: Optional path to a .env file (default: search upward
                from the working directory)
        """
        load_dotenv(env_file)
        return cls(
            gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", DEFAULT_MODEL),
            gemini_timeout_seconds=float(os.getenv("GEMINI_TIMEOUT_SECONDS", DEFAULT_TIMEOUT_SECONDS)),
            allowed_origins=_env_list("ALLOWED_ORIGINS", DEFAULT_ALLOWED_ORIGINS),
            max_body_bytes=int(float(os.getenv("MAX_BODY_MB", DEFAULT_MAX_BODY_MB)) * 1024 * 1024),
            host=os.getenv("HOST", "0.0.0.0"),
            port=int(os.getenv("PORT", "5001")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            log_json=_env_bool("LOG_JSON", True),
        )
