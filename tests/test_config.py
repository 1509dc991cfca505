"""Unit tests for Courier configuration."""

import os
from unittest.mock import patch

import pytest
from pydantic import ValidationError

from courier.config import Settings


class TestSettingsDefaults:
    """Tests for default settings."""

    def test_defaults(self):
        """Defaults should point at a local Qdrant and run the worker."""
        with patch.dict(os.environ, {}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.qdrant_url == "http://localhost:6333"
        assert settings.collection_prefix == "courier"
        assert settings.user_agent == "Courier-Webhooks/1.0"
        assert settings.response_body_limit == 1000
        assert settings.retry_worker_enabled is True
        assert settings.retry_poll_interval_seconds == 5.0
        assert settings.log_format == "json"

    def test_env_override(self):
        """COURIER_-prefixed environment variables override defaults."""
        env = {
            "COURIER_QDRANT_URL": ":memory:",
            "COURIER_USER_AGENT": "Acme-Hooks/2.0",
            "COURIER_RETRY_WORKER_ENABLED": "false",
            "COURIER_RETRY_BATCH_SIZE": "25",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = Settings(_env_file=None)

        assert settings.qdrant_url == ":memory:"
        assert settings.user_agent == "Acme-Hooks/2.0"
        assert settings.retry_worker_enabled is False
        assert settings.retry_batch_size == 25

    def test_unprefixed_env_ignored(self):
        """Variables without the prefix do not apply."""
        with patch.dict(os.environ, {"QDRANT_URL": "http://elsewhere:6333"}, clear=True):
            settings = Settings(_env_file=None)

        assert settings.qdrant_url == "http://localhost:6333"


class TestSettingsValidation:
    """Tests for settings bounds and validators."""

    def test_poll_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            Settings(retry_poll_interval_seconds=0)

    def test_batch_size_bounds(self):
        with pytest.raises(ValidationError):
            Settings(retry_batch_size=0)
        with pytest.raises(ValidationError):
            Settings(retry_batch_size=5000)

    def test_log_format_restricted(self):
        with pytest.raises(ValidationError):
            Settings(log_format="xml")

    def test_credentials_with_wildcard_origin_rejected(self):
        """Credentialed CORS cannot use a wildcard origin."""
        with pytest.raises(ValidationError, match="cors_allow_credentials"):
            Settings(cors_allow_credentials=True, cors_allow_origins=["*"])

    def test_credentials_with_explicit_origins(self):
        settings = Settings(
            cors_allow_credentials=True,
            cors_allow_origins=["https://app.example.com"],
        )
        assert settings.cors_allow_credentials is True
