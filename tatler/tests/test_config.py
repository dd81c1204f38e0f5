from __future__ import annotations

import importlib

import tatler.config
import tatler.db.config


def test_database_config_reads_environment(monkeypatch):
    monkeypatch.setenv("MONGODB_URI", "mongodb://db.example:27018")
    monkeypatch.setenv("MONGODB_DB", "tatler_test")
    try:
        module = importlib.reload(tatler.db.config)
        assert module.DEFAULT_DATABASE_CONFIG.uri == "mongodb://db.example:27018"
        assert module.DEFAULT_DATABASE_CONFIG.database == "tatler_test"
    finally:
        monkeypatch.undo()
        importlib.reload(tatler.db.config)


def test_dotenv_is_loaded_only_by_app_config():
    assert hasattr(tatler.config, "load_dotenv")
    assert not hasattr(tatler.db.config, "load_dotenv")


def test_allowed_origins_split_and_trimmed():
    cfg = tatler.config.AppConfig(cors_origins=" http://a.test , ,http://b.test")
    assert cfg.allowed_origins == ["http://a.test", "http://b.test"]
