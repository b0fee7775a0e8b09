"""Application configuration.

Settings are read from ``SNIPPETBOX_*`` environment variables (or a
``.env`` file) with pydantic-settings and passed explicitly into
``create_app``.
"""

import logging

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


class Settings(BaseSettings):
    """Runtime settings for the snippetbox server."""

    model_config = SettingsConfigDict(
        env_prefix="SNIPPETBOX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Server ────────────────────────────────────────────────────────────
    host: str = Field(default="127.0.0.1")
    port: int = Field(default=4000, ge=1, le=65535)

    # ── Sessions ──────────────────────────────────────────────────────────
    session_cookie_name: str = Field(default="session", min_length=1)
    # Absolute lifetime, counted from creation or the last renewal
    session_lifetime: int = Field(default=12 * 60 * 60, ge=1)
    # Idle expiry, counted from the last request that used the session; None disables it
    session_idle_timeout: int | None = Field(default=None, ge=1)
    cookie_secure: bool = Field(default=True)
    cookie_samesite: str = Field(default="lax")
    # Minimum seconds between sweeps that delete expired sessions
    session_sweep_interval: int = Field(default=60, ge=1)

    # ── Logging ───────────────────────────────────────────────────────────
    log_level: str = Field(default="INFO")

    @field_validator("cookie_samesite")
    @classmethod
    def validate_samesite(cls, v: str) -> str:
        lowered = v.lower()
        if lowered not in {"lax", "strict"}:
            raise ValueError(f"cookie_samesite must be 'lax' or 'strict', got '{v}'")
        return lowered

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        upper = v.upper()
        if upper not in _LOG_LEVELS:
            raise ValueError(f"Invalid log_level '{v}'. Must be one of: {sorted(_LOG_LEVELS)}")
        return upper


def configure_logging(level: str = "INFO") -> logging.Logger:
    """Install a single stream handler on the root logger."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not any(isinstance(h, logging.StreamHandler) for h in root_logger.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(
            logging.Formatter(
                "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                datefmt="%Y-%m-%d %H:%M:%S",
            )
        )
        root_logger.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)

    return root_logger
