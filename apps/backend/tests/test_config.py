from __future__ import annotations

from dualcash.core.config import Settings, settings


def test_reads_prefixed_environment(monkeypatch):
    monkeypatch.setenv("DUALCASH_RATE_CACHE_TTL_SECONDS", "30")
    monkeypatch.setenv("DUALCASH_EURO_MARKUP", "1.2")

    cfg = Settings(_env_file=None)

    assert cfg.RATE_CACHE_TTL_SECONDS == 30.0
    assert cfg.EURO_MARKUP == 1.2


def test_defaults(monkeypatch):
    monkeypatch.delenv("DUALCASH_DATABASE_URL", raising=False)

    cfg = Settings(_env_file=None)

    assert cfg.DATABASE_URL.endswith("dualcash.sqlite3")
    assert cfg.is_sqlite
    assert cfg.RATE_CACHE_TTL_SECONDS == 600.0
    assert cfg.RATE_FETCH_TIMEOUT_SECONDS == 5.0


def test_active_settings_use_temp_database():
    assert settings.is_sqlite
    assert "dualcash_test_" in settings.DATABASE_URL
    assert not Settings(_env_file=None, DATABASE_URL="postgresql://db/ledger").is_sqlite
