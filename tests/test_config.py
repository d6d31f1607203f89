"""Tests for lexcorpus.config: environment settings."""
from __future__ import annotations

from pathlib import Path

import pytest

from lexcorpus.config import DEFAULT_CORS_ORIGINS, DEFAULT_DB_PATH, Settings
from lexcorpus.errors import ValidationError


def test_defaults() -> None:
    settings = Settings.from_env({})
    assert settings.db_path == DEFAULT_DB_PATH
    assert settings.delete_policy == "block"
    assert settings.suggest_limit == 10
    assert settings.graph_max_depth == 2
    assert settings.cors_origins == DEFAULT_CORS_ORIGINS


def test_values_read_and_clamped() -> None:
    settings = Settings.from_env({
        "LEXCORPUS_DB": "/data/corpus.duckdb",
        "LEXCORPUS_DELETE_POLICY": "Cascade",
        "LEXCORPUS_SUGGEST_LIMIT": "500",
        "LEXCORPUS_GRAPH_MAX_DEPTH": "0",
        "LEXCORPUS_CORS_ORIGINS": "https://portail.example, ,http://localhost:5173",
    })
    assert settings.db_path == Path("/data/corpus.duckdb")
    assert settings.delete_policy == "cascade"
    assert settings.suggest_limit == 50
    assert settings.graph_max_depth == 1
    assert settings.cors_origins == ("https://portail.example", "http://localhost:5173")


@pytest.mark.parametrize(
    "env",
    [
        {"LEXCORPUS_DELETE_POLICY": "purge"},
        {"LEXCORPUS_SUGGEST_LIMIT": "dix"},
    ],
)
def test_invalid_values(env: dict[str, str]) -> None:
    with pytest.raises(ValidationError):
        Settings.from_env(env)
