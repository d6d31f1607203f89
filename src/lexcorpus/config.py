"""Process settings read from the environment.

    LEXCORPUS_DB               corpus database path (default corpus_index/lexcorpus.duckdb)
    LEXCORPUS_DELETE_POLICY    "block" (default) or "cascade"
    LEXCORPUS_SUGGEST_LIMIT    default suggestion count, 1..50 (default 10)
    LEXCORPUS_GRAPH_MAX_DEPTH  default relation-graph depth, 1..5 (default 2)
    LEXCORPUS_CORS_ORIGINS     comma-separated allowed origins
"""
from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

from lexcorpus.errors import ValidationError

DELETE_POLICIES: tuple[str, ...] = ("block", "cascade")

DEFAULT_DB_PATH = Path("corpus_index") / "lexcorpus.duckdb"
DEFAULT_CORS_ORIGINS: tuple[str, ...] = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
)

MAX_SUGGEST_LIMIT = 50
MAX_GRAPH_DEPTH = 5


def _int_setting(env: Mapping[str, str], name: str, default: int, lo: int, hi: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an integer, got {raw!r}") from None
    return min(max(value, lo), hi)


@dataclass(frozen=True, slots=True)
class Settings:
    db_path: Path = DEFAULT_DB_PATH
    delete_policy: str = "block"
    suggest_limit: int = 10
    graph_max_depth: int = 2
    cors_origins: tuple[str, ...] = DEFAULT_CORS_ORIGINS

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> Settings:
        env = os.environ if env is None else env
        policy = env.get("LEXCORPUS_DELETE_POLICY", "block").strip().lower() or "block"
        if policy not in DELETE_POLICIES:
            raise ValidationError(
                f"LEXCORPUS_DELETE_POLICY must be one of {', '.join(DELETE_POLICIES)}, got {policy!r}"
            )
        origins_raw = env.get("LEXCORPUS_CORS_ORIGINS", "")
        origins = tuple(o.strip() for o in origins_raw.split(",") if o.strip())
        return cls(
            db_path=Path(env.get("LEXCORPUS_DB", "") or DEFAULT_DB_PATH),
            delete_policy=policy,
            suggest_limit=_int_setting(env, "LEXCORPUS_SUGGEST_LIMIT", 10, 1, MAX_SUGGEST_LIMIT),
            graph_max_depth=_int_setting(env, "LEXCORPUS_GRAPH_MAX_DEPTH", 2, 1, MAX_GRAPH_DEPTH),
            cors_origins=origins or DEFAULT_CORS_ORIGINS,
        )
