"""Unified configuration schema for docsync.

Defines Pydantic models for the config file structure with dedicated
sections for the server connection, sync defaults and logging.

Usage:
    from docsync.config_schema import build_config, server_fallbacks

    raw = load_hierarchical_config()
    unified = build_config(raw)
    config = load_config(yaml_fallbacks=server_fallbacks(unified))
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class ServerConfig(BaseModel):
    """Document server connection settings.

    All fields are optional to support zero-config: env vars and CLI args
    can supply them at runtime instead.
    """

    url: str | None = Field(default=None, description="Document server URL")
    username: str | None = Field(default=None, description="Username")
    password: str | None = Field(default=None, description="Password")
    insecure: bool = Field(
        default=False,
        description="Disable SSL verification (development only)",
    )
    debug: bool = Field(default=False, description="Enable debug mode")
    timeout: float = Field(
        default=60.0,
        gt=0,
        description="HTTP request timeout in seconds",
    )

    model_config = {"frozen": True}


class SyncDefaults(BaseModel):
    """Defaults for push/pull when the CLI does not override them.

    Attributes:
        transport: ``git``, ``tar`` or ``None`` to auto-detect.
        prompt: Ask before applying changes.
        track_with_git: Commit tar-pulled directories into a local repo.
    """

    transport: Literal["git", "tar"] | None = Field(
        default=None, description="Preferred transport"
    )
    prompt: bool = Field(default=False, description="Confirm before changes")
    track_with_git: bool = Field(
        default=False,
        description="git init + commit after tar pulls",
    )

    model_config = {"frozen": True}


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
        format: ``text`` or ``json``.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")
    format: Literal["text", "json"] = Field(
        default="text", description="Log line format"
    )

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level unified config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """Top-level unified configuration.

    Every section has sensible defaults, so ``UnifiedConfig()``
    (zero-config) is always valid.
    """

    server: ServerConfig = Field(default_factory=ServerConfig)
    sync: SyncDefaults = Field(default_factory=SyncDefaults)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Construct a ``UnifiedConfig`` from the raw dict returned by
    ``load_hierarchical_config()``.

    Missing sections get defaults.
    """
    if not raw_data:
        return UnifiedConfig()

    return UnifiedConfig(**raw_data)


def server_fallbacks(unified: UnifiedConfig) -> dict:
    """Return the non-``None`` server values for ``load_config(yaml_fallbacks=...)``."""
    return {
        k: v
        for k, v in unified.server.model_dump().items()
        if v is not None
    }
