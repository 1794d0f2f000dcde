"""
Tests for cli.py - operator diagnostics
"""
import asyncio

import pytest

import robotics_hub.cli as cli
from robotics_hub.core.config import Settings
from robotics_hub.services.feeds import FeedFetcher


def _settings(**overrides):
    values = {
        "DATABASE_URL": "sqlite://",
        "LLM_API_KEY": "llm-key",
        "COINGECKO_API_KEY": "cg-key",
        "CRON_SECRET": "s3cret",
    }
    values.update(overrides)
    return Settings(**values)


class TestDoctor:
    def test_all_configured(self):
        results = cli.run_doctor(_settings())

        assert [r.name for r in results] == [
            "DATABASE_URL",
            "LLM_API_KEY",
            "COINGECKO_API_KEY",
            "CRON_SECRET",
        ]
        assert all(r.ok for r in results)

    @pytest.mark.parametrize("key", ["LLM_API_KEY", "COINGECKO_API_KEY", "CRON_SECRET"])
    def test_missing_or_blank_values_fail(self, key):
        for value in (None, "   "):
            results = {r.name: r.ok for r in cli.run_doctor(_settings(**{key: value}))}
            assert results[key] is False

    def test_exit_code_reflects_missing_settings(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "get_settings", lambda: _settings(CRON_SECRET=None))

        assert cli.main(["doctor"]) == 1
        out = capsys.readouterr().out
        assert "❌ CRON_SECRET" in out
        assert "✅ LLM_API_KEY" in out

    def test_exit_code_zero_when_configured(self, monkeypatch, capsys):
        monkeypatch.setattr(cli, "get_settings", _settings)

        assert cli.main(["doctor"]) == 0
        assert "All required settings are configured." in capsys.readouterr().out


class TestSmoke:
    def test_failures_are_reported_per_step(self, monkeypatch):
        """Without credentials the LLM and CoinGecko steps fail but the run completes."""
        async def no_entries(self, url, fallback_content=None):
            return []

        monkeypatch.setattr(FeedFetcher, "fetch", no_entries)

        results = asyncio.run(cli.run_smoke(_settings(LLM_API_KEY=None, COINGECKO_API_KEY=None)))

        assert [r.name for r in results] == ["RSS ingestion", "LLM enrichment", "CoinGecko snapshot"]
        assert [r.ok for r in results] == [False, False, False]
        assert "No entries returned" in results[0].detail
        assert "LLM_API_KEY" in results[1].detail
        assert "COINGECKO_API_KEY" in results[2].detail
