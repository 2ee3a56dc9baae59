# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Refer: the operations the CLI exposes, wired to one store, one embedder and
one reranker built from an explicit Config.
"""
import threading
from typing import Optional

from .config import Config
from .embeddings import Embedder, EmbeddingFn
from .errors import DimensionMismatchError, ModelMismatchError
from .ingest import add_documents
from .migration import reindex
from .models import Document, ReindexResult, SearchResult, StoreConfig
from .rerank import build_reranker
from .search import Reranker, search
from .store import DocumentStore


class Refer:
    def __init__(self, config: Config, embedding_fn: Optional[EmbeddingFn] = None,
                 reranker: Optional[Reranker] = None):
        self.config = config
        self.store, self.is_new = DocumentStore.create_or_open(config.store_path)
        self.embedder = Embedder(config, embedding_fn=embedding_fn)
        self._reranker = reranker

    @property
    def reranker(self) -> Reranker:
        if self._reranker is None:
            self._reranker = build_reranker(self.config)
        return self._reranker

    # ── Drift check ──────────────────────────────────────

    def ensure_compatible(self) -> Optional[StoreConfig]:
        """Refuse to mix vectors from different models in one store.

        A sample embedding is compared against the stored size, so a backend
        that changed dimension under the same model name aborts before any
        document is fetched or embedded."""
        stored = self.store.get_config()
        if stored is None:
            return None
        if stored.embedding_model != self.embedder.model_name:
            raise ModelMismatchError(stored.embedding_model, self.embedder.model_name)
        current_size = len(self.embedder.probe())
        if current_size != stored.embedding_size:
            raise DimensionMismatchError(
                stored.embedding_model, stored.embedding_size, current_size,
            )
        self.embedder.dimension = stored.embedding_size
        return stored

    def _ensure_schema(self):
        """First add into an empty store: learn the dimension and record the model."""
        if self.store.has_schema and self.store.get_config() is not None:
            return
        size = len(self.embedder.probe())
        self.store.init_schema(size)
        self.store.save_config(StoreConfig(self.embedder.model_name, size))
        self.embedder.dimension = size

    # ── Operations ───────────────────────────────────────

    def add_documents(self, paths: list[str], max_workers: Optional[int] = None,
                      cancel: Optional[threading.Event] = None):
        self.ensure_compatible()
        self._ensure_schema()
        return add_documents(
            paths, self.store, self.embedder,
            max_workers=max_workers if max_workers is not None else self.config.max_workers,
            cancel=cancel,
            timeout=self.config.request_timeout,
        )

    def search(self, queries: list[str], limit: Optional[int] = None,
               threshold: Optional[float] = None, rerank: bool = False) -> list[SearchResult]:
        if self.ensure_compatible() is None:
            return []
        return search(
            queries, self.store, self.embedder,
            limit=limit if limit is not None else self.config.search_limit,
            threshold=threshold,
            rerank=rerank,
            reranker=self.reranker if rerank else None,
        )

    def reindex(self, cancel: Optional[threading.Event] = None) -> ReindexResult:
        return reindex(
            self.store, self.embedder, cancel=cancel,
            timeout=self.config.request_timeout,
        )

    def stats(self) -> dict:
        stats = self.store.stats()
        stored = self.store.get_config()
        if stored is not None:
            stats["embedding_model"] = stored.embedding_model
            stats["embedding_size"] = stored.embedding_size
        return stats

    def remove(self, doc_id: str):
        self.store.remove(doc_id)

    def show(self, doc_id: Optional[str] = None) -> list[Document]:
        if doc_id is None:
            return self.store.get_all()
        doc = self.store.get_by_id(doc_id)
        return [doc] if doc is not None else []

    def close(self):
        self.embedder.close()
