# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Document store: one directory holding a ChromaDB collection (one row per
path, cosine space, fixed dimension) plus config.json with the embedding
model/size the collection was built with.

Reindexing builds a shadow store next to the live one (<store>.migration)
and swaps it in by rename; a crash mid-swap leaves <store>.old, which is
restored on the next open.
"""
import json
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

import chromadb
from chromadb.api.client import SharedSystemClient

from .errors import DocumentNotFound, StoreError
from .models import Document, SearchResult, StoreConfig

COLLECTION = "documents"
CONFIG_FILE = "config.json"
SHADOW_SUFFIX = ".migration"
BACKUP_SUFFIX = ".old"


def shadow_path(path: Path) -> Path:
    return path.with_name(path.name + SHADOW_SUFFIX)


def backup_path(path: Path) -> Path:
    return path.with_name(path.name + BACKUP_SUFFIX)


def _recover(path: Path):
    """Undo an interrupted swap and drop an orphaned shadow store."""
    backup = backup_path(path)
    if backup.exists():
        if path.exists():
            shutil.rmtree(backup, ignore_errors=True)
        else:
            os.replace(backup, path)
            print(f"Restored store from interrupted reindex: {path}")
    shadow = shadow_path(path)
    if shadow.exists():
        shutil.rmtree(shadow, ignore_errors=True)
        print(f"Cleaned up orphaned shadow store '{shadow}'")


class DocumentStore:
    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._open()

    def _open(self):
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            self.chroma = chromadb.PersistentClient(path=str(self.path))
        except Exception as e:
            raise StoreError(f"open store {self.path}: {e}") from e
        self.collection = None
        self.dimension: Optional[int] = None
        if COLLECTION in self._collection_names():
            self.collection = self.chroma.get_collection(COLLECTION, embedding_function=None)
            dim = (self.collection.metadata or {}).get("dimension")
            self.dimension = int(dim) if dim is not None else None

    def reopen(self):
        """Attach a fresh client after close() (or after another store was closed)."""
        self._open()

    @classmethod
    def create_or_open(cls, path: str | Path) -> tuple["DocumentStore", bool]:
        p = Path(path)
        _recover(p)
        is_new = not p.exists()
        return cls(p), is_new

    def _collection_names(self) -> set[str]:
        # list_collections() yields names or Collection objects depending on version
        return {getattr(c, "name", c) for c in self.chroma.list_collections()}

    # ── Schema ───────────────────────────────────────────

    def init_schema(self, embedding_size: int):
        if self.collection is not None:
            return
        self.collection = self.chroma.get_or_create_collection(
            COLLECTION,
            embedding_function=None,
            metadata={"hnsw:space": "cosine", "dimension": embedding_size},
        )
        self.dimension = embedding_size

    @property
    def has_schema(self) -> bool:
        return self.collection is not None

    def _require_schema(self):
        if self.collection is None:
            raise StoreError(f"store {self.path} has no document table yet")

    # ── Config ───────────────────────────────────────────

    @property
    def _config_path(self) -> Path:
        return self.path / CONFIG_FILE

    def save_config(self, config: StoreConfig):
        data = self._read_config_file()
        data.update(config.to_dict())
        fd, tmp = tempfile.mkstemp(dir=self.path, prefix=".config-", suffix=".json")
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self._config_path)
        except OSError as e:
            Path(tmp).unlink(missing_ok=True)
            raise StoreError(f"save config: {e}") from e

    def get_config(self) -> Optional[StoreConfig]:
        return StoreConfig.from_dict(self._read_config_file())

    def _read_config_file(self) -> dict[str, str]:
        try:
            return json.loads(self._config_path.read_text())
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            raise StoreError(f"read config: {e}") from e

    # ── Documents ────────────────────────────────────────

    def upsert(self, doc: Document, vector: list[float]):
        """Delete any row for doc.path, then insert. Not atomic across the pair."""
        self._require_schema()
        if self.dimension is not None and len(vector) != self.dimension:
            raise StoreError(
                f"embedding has {len(vector)} dimensions, store expects {self.dimension}"
            )
        try:
            self.collection.delete(where={"path": doc.path})
            self.collection.add(
                ids=[doc.id],
                embeddings=[list(vector)],
                documents=[doc.content],
                metadatas=[{"path": doc.path, "title": doc.title, "is_remote": doc.is_remote}],
            )
        except Exception as e:
            raise StoreError(f"upsert {doc.path}: {e}") from e
        doc.embedding = list(vector)

    def remove(self, doc_id: str):
        self._require_schema()
        if self.get_by_id(doc_id) is None:
            raise DocumentNotFound(doc_id)
        try:
            self.collection.delete(ids=[doc_id])
        except Exception as e:
            raise StoreError(f"remove document {doc_id}: {e}") from e

    def get_by_id(self, doc_id: str, include_embedding: bool = False) -> Optional[Document]:
        if self.collection is None:
            return None
        docs = self._get(ids=[doc_id], include_embeddings=include_embedding)
        return docs[0] if docs else None

    def get_all(self, include_embeddings: bool = False) -> list[Document]:
        if self.collection is None:
            return []
        docs = self._get(include_embeddings=include_embeddings)
        docs.sort(key=lambda d: d.path)
        return docs

    def _get(self, ids: Optional[list[str]] = None, include_embeddings: bool = False) -> list[Document]:
        include = ["documents", "metadatas"]
        if include_embeddings:
            include.append("embeddings")
        try:
            result = self.collection.get(ids=ids, include=include)
        except Exception as e:
            raise StoreError(f"read documents: {e}") from e

        embeddings = result.get("embeddings") if include_embeddings else None
        docs = []
        for i, doc_id in enumerate(result["ids"]):
            emb = None
            if embeddings is not None and len(embeddings) > i and embeddings[i] is not None:
                emb = [float(x) for x in embeddings[i]]
            docs.append(_to_document(doc_id, result["documents"][i], result["metadatas"][i], emb))
        return docs

    def count(self) -> int:
        if self.collection is None:
            return 0
        try:
            return self.collection.count()
        except Exception as e:
            raise StoreError(f"count documents: {e}") from e

    def stats(self) -> dict:
        total_bytes = sum(len(d.content.encode("utf-8")) for d in self.get_all())
        return {"documents": self.count(), "total_content_bytes": total_bytes}

    def nearest(self, vector: list[float], k: int) -> list[SearchResult]:
        total = self.count()
        if total == 0 or k <= 0:
            return []
        try:
            results = self.collection.query(
                query_embeddings=[list(vector)],
                n_results=min(k, total),
                include=["documents", "metadatas", "distances"],
            )
        except Exception as e:
            raise StoreError(f"search query failed: {e}") from e
        if not results["ids"] or not results["ids"][0]:
            return []
        return [
            SearchResult(document=_to_document(cid, doc, meta), distance=float(dist))
            for cid, doc, meta, dist in zip(
                results["ids"][0],
                results["documents"][0],
                results["metadatas"][0],
                results["distances"][0],
            )
        ]

    # ── Lifecycle ────────────────────────────────────────

    def close(self):
        """Release ChromaDB handles so the directory can be renamed or removed.

        Clears the process-wide client cache; other open stores must be
        reopened afterwards."""
        self.collection = None
        SharedSystemClient.clear_system_cache()

    def destroy(self):
        self.close()
        shutil.rmtree(self.path, ignore_errors=True)


def swap_into(shadow: Path, live: Path):
    """Replace *live* with *shadow*. Both stores must be closed."""
    backup = backup_path(live)
    if backup.exists():
        shutil.rmtree(backup)
    if live.exists():
        os.replace(live, backup)
    try:
        os.replace(shadow, live)
    except OSError:
        if backup.exists():
            os.replace(backup, live)
        raise
    shutil.rmtree(backup, ignore_errors=True)


def _to_document(doc_id: str, content: Optional[str], meta: Optional[dict],
                 embedding: Optional[list[float]] = None) -> Document:
    meta = meta or {}
    return Document(
        id=doc_id,
        path=meta.get("path", ""),
        content=content or "",
        title=meta.get("title", ""),
        is_remote=bool(meta.get("is_remote", False)),
        embedding=embedding,
    )
