"""
Central configuration for the guestbook.

This module provides a single, typed configuration object that reads from
environment variables (12-factor style) using pydantic-settings.

Usage:

    from guestbook.core.settings import get_settings

    settings = get_settings()
    if settings.remote.backend == "http":
        ...
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class RemoteSettings(BaseSettings):
    """
    Which remote log the manager talks to, and how.
    """

    backend: Literal["memory", "jsonl", "http"] = Field(
        default="jsonl",
        validation_alias="GUESTBOOK_REMOTE_BACKEND",
        description="Remote log adapter: 'memory', 'jsonl' or 'http'.",
    )
    url: Optional[str] = Field(
        default=None,
        validation_alias="GUESTBOOK_REMOTE_URL",
        description="Base URL of the HTTP log gateway (http backend).",
    )
    timeout: float = Field(
        default=10.0,
        validation_alias="GUESTBOOK_REMOTE_TIMEOUT",
        description="Per-request timeout in seconds (http backend).",
    )
    log_path: str = Field(
        default=".guestbook/log.jsonl",
        validation_alias="GUESTBOOK_LOG_PATH",
        description="Path of the JSONL log file (jsonl backend).",
    )

    @field_validator("url")
    @classmethod
    def _strip_url(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip().rstrip("/")
        return v or None

    @field_validator("timeout")
    @classmethod
    def _positive_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("GUESTBOOK_REMOTE_TIMEOUT must be positive")
        return v

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)


class ValidationSettings(BaseSettings):
    max_author_length: int = Field(
        default=64,
        validation_alias="GUESTBOOK_MAX_AUTHOR_LENGTH",
        description="Longest accepted display name.",
    )
    max_body_length: int = Field(
        default=2000,
        validation_alias="GUESTBOOK_MAX_BODY_LENGTH",
        description="Longest accepted message body.",
    )

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)


class GatewaySettings(BaseSettings):
    """
    HTTP log gateway settings (bind host/port).
    """

    host: str = Field(
        default="127.0.0.1",
        validation_alias="GUESTBOOK_HTTP_HOST",
        description="HTTP bind host for the FastAPI/Uvicorn gateway.",
    )
    port: int = Field(
        default=8000,
        validation_alias="GUESTBOOK_HTTP_PORT",
        description="HTTP bind port for the FastAPI/Uvicorn gateway.",
    )

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)


class RuntimeSettings(BaseSettings):
    log_level: str = Field(
        default="INFO",
        validation_alias="GUESTBOOK_LOG_LEVEL",
        description="Root log level (DEBUG/INFO/WARNING/ERROR).",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_level(cls, v: str) -> str:
        v = (v or "INFO").upper()
        if v == "WARN":
            return "WARNING"
        if v not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return "INFO"
        return v

    model_config = SettingsConfigDict(env_prefix="", populate_by_name=True)


class GuestbookSettings(BaseSettings):
    """
    Root configuration object.

    Aggregates:
      - Remote log
      - Input validation limits
      - Gateway
      - Runtime
    """

    remote: RemoteSettings = Field(default_factory=RemoteSettings)
    validation: ValidationSettings = Field(default_factory=ValidationSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)

    model_config = SettingsConfigDict(env_prefix="")


@lru_cache(maxsize=1)
def get_settings() -> GuestbookSettings:
    """
    Cached accessor for GuestbookSettings.

    Usage:
        from guestbook.core.settings import get_settings
        settings = get_settings()
    """
    return GuestbookSettings()
