"""Tests for environment-driven settings."""

import pytest
from pydantic import ValidationError
from shared.config import Settings


class TestSettingsFromEnv:
    def test_defaults(self, monkeypatch):
        for name in ("PAYOS_PAYOUT_CLIENT_ID", "PAYOS_PAYOUT_API_KEY", "QUEUE_BACKEND", "RPC_RETRIES"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()
        assert settings.queue_backend == "memory"
        assert settings.rpc_retries == 2
        assert settings.payout_configured is False

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("PAYOS_CHECKSUM_KEY", "secret")
        monkeypatch.setenv("PAYOS_PAYOUT_CLIENT_ID", "client")
        monkeypatch.setenv("PAYOS_PAYOUT_API_KEY", "key")
        monkeypatch.setenv("RPC_TIMEOUT_MS", "1500")
        monkeypatch.setenv("CHATWORK_ROOM_ID", "ops")

        settings = Settings.from_env()
        assert settings.payos_checksum_key == "secret"
        assert settings.rpc_timeout_ms == 1500
        assert settings.chat_room_id == "ops"
        assert settings.payout_configured is True

    def test_rejects_non_positive_timeout(self, monkeypatch):
        monkeypatch.setenv("RPC_TIMEOUT_MS", "0")
        with pytest.raises(ValidationError):
            Settings.from_env()
