"""Tests for config_schema.py: UnifiedConfig defaults and validation."""

import pytest
from pydantic import ValidationError

from docsync.config_schema import (
    SyncDefaults,
    UnifiedConfig,
    build_config,
    server_fallbacks,
)


class TestBuildConfig:
    def test_empty_is_zero_config(self):
        config = build_config({})
        assert config == UnifiedConfig()
        assert config.sync.transport is None
        assert config.logging.format == "text"

    def test_sections(self):
        config = build_config(
            {
                "server": {"url": "https://docs.example.com", "timeout": 10},
                "sync": {"transport": "tar", "track_with_git": True},
                "logging": {"level": "DEBUG", "format": "json"},
            }
        )
        assert config.server.timeout == 10
        assert config.sync.transport == "tar"
        assert config.sync.track_with_git is True
        assert config.logging.format == "json"

    def test_invalid_transport_rejected(self):
        with pytest.raises(ValidationError):
            build_config({"sync": {"transport": "ftp"}})

    def test_non_positive_timeout_rejected(self):
        with pytest.raises(ValidationError):
            build_config({"server": {"timeout": 0}})

    def test_models_are_frozen(self):
        defaults = SyncDefaults()
        with pytest.raises(ValidationError):
            defaults.prompt = True


class TestServerFallbacks:
    def test_drops_none_values(self):
        config = build_config({"server": {"url": "https://docs.example.com"}})
        fallbacks = server_fallbacks(config)
        assert fallbacks["url"] == "https://docs.example.com"
        assert "username" not in fallbacks
        assert fallbacks["insecure"] is False
