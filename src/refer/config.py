# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Central configuration – configurable via:
1. Environment variables (REFER_ prefix)
2. .env file
3. User config file (~/.config/refer/config.json)

The resolved Config is passed explicitly to the embedder, reranker and
fetcher; nothing reads it from module state.
"""
import json
import os
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings


def default_config_file() -> Path:
    override = os.environ.get("REFER_CONFIG_FILE")
    if override:
        return Path(override)
    base = os.environ.get("XDG_CONFIG_HOME") or str(Path.home() / ".config")
    return Path(base) / "refer" / "config.json"


class Config(BaseSettings):
    # ── Store ────────────────────────────────────
    store_path: str = ".refer"

    # ── Embeddings ───────────────────────────────
    embedding_provider: Literal["ollama", "openai", "local"] = "ollama"
    embedding_base_url: str = ""
    embedding_model: str = "nomic-embed-text"
    api_key: str = ""

    # ── Reranking ────────────────────────────────
    reranker_url: str = ""
    reranker_model: str = "cross-encoder/ms-marco-MiniLM-L-6-v2"

    # ── Ingestion / Search ───────────────────────
    max_workers: int = 10
    search_limit: int = 5
    request_timeout: float = 30.0

    class Config:
        env_prefix = "REFER_"
        env_file = ".env"
        extra = "ignore"

    @classmethod
    def load(cls, config_file: Path | None = None) -> "Config":
        """Load config: ENV -> .env -> config.json (user overrides)."""
        config = cls()
        path = config_file or default_config_file()

        if path.exists():
            try:
                overrides = json.loads(path.read_text())
                for key, value in overrides.items():
                    if hasattr(config, key) and value != "":
                        setattr(config, key, value)
            except Exception as e:
                print(f"Warning: Config file error ({path}): {e}")

        return config

    def to_safe_dict(self) -> dict:
        """Config without secrets (for display)."""
        d = self.model_dump()
        if d.get("api_key"):
            d["api_key"] = d["api_key"][:8] + "..."
        return d
