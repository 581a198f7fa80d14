"""
Tests for the logging/Sentry bootstrap helpers.
"""
from unittest.mock import patch

from salesync.core.config import settings
from salesync.core.observability import init_sentry


class TestInitSentry:

    def test_skipped_without_dsn(self, monkeypatch):
        monkeypatch.setattr(settings, "sentry_dsn", None)

        with patch("sentry_sdk.init") as sentry_init:
            assert init_sentry("cron") is False

        sentry_init.assert_not_called()

    def test_initialized_with_dsn(self, monkeypatch):
        monkeypatch.setattr(settings, "sentry_dsn", "https://key@sentry.example.test/1")

        with patch("sentry_sdk.init") as sentry_init:
            assert init_sentry("worker") is True

        kwargs = sentry_init.call_args.kwargs
        assert kwargs["dsn"] == "https://key@sentry.example.test/1"
        assert len(kwargs["integrations"]) == 1

    def test_fastapi_integration_for_api(self, monkeypatch):
        monkeypatch.setattr(settings, "sentry_dsn", "https://key@sentry.example.test/1")

        with patch("sentry_sdk.init") as sentry_init:
            init_sentry("api", with_fastapi=True)

        assert len(sentry_init.call_args.kwargs["integrations"]) == 2
