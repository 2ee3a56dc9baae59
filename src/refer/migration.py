# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Reindex: rebuild the store against the currently configured embedding model.

A sample embedding tells us the current model's dimension. When the model
name or dimension differs from the store's config, every document is
re-fetched and re-embedded. Otherwise only documents whose freshly fetched
content changed are re-embedded; the rest keep their stored vector.

The new store is built as a shadow directory and renamed into place only
after every document has been written. Any failure deletes the shadow and
leaves the live store as it was.
"""
import shutil
import threading
from pathlib import Path
from typing import Optional

import httpx

from .embeddings import Embedder
from .errors import FetchError, OperationCancelled
from .fetcher import fetch_document
from .models import ReindexResult, StoreConfig
from .store import DocumentStore, shadow_path, swap_into


def needs_full_rebuild(stored: Optional[StoreConfig], current: StoreConfig) -> bool:
    if stored is None:
        return True
    return (
        stored.embedding_model != current.embedding_model
        or stored.embedding_size != current.embedding_size
    )


def reindex(
    store: DocumentStore,
    embedder: Embedder,
    cancel: Optional[threading.Event] = None,
    client: Optional[httpx.Client] = None,
    timeout: float = 30.0,
) -> ReindexResult:
    """Rebuild *store* in place. The store is reopened before returning,
    whether the rebuild succeeded or not."""
    live_path = Path(store.path)
    sample = embedder.probe()
    current = StoreConfig(embedding_model=embedder.model_name, embedding_size=len(sample))
    full = needs_full_rebuild(store.get_config(), current)

    docs = store.get_all(include_embeddings=not full)
    result = ReindexResult(original_count=len(docs), full_rebuild=full)
    print(
        f"Reindex: {len(docs)} documents, "
        f"{'full rebuild' if full else 'changed documents only'} "
        f"(model '{current.embedding_model}', {current.embedding_size}d)"
    )

    embedder.dimension = current.embedding_size
    shadow_dir = shadow_path(live_path)
    shutil.rmtree(shadow_dir, ignore_errors=True)
    shadow = DocumentStore(shadow_dir)
    try:
        shadow.init_schema(current.embedding_size)
        shadow.save_config(current)

        for doc in docs:
            if cancel is not None and cancel.is_set():
                raise OperationCancelled("reindex cancelled")
            try:
                fresh = fetch_document(doc.path, client=client, timeout=timeout)
            except FetchError as e:
                print(f"Warning: dropping {doc.path}: {e}")
                result.dropped.append(doc.path)
                continue
            if fresh is None:
                print(f"Warning: dropping {doc.path}: no longer a text file")
                result.dropped.append(doc.path)
                continue

            reusable = (
                not full
                and fresh.content == doc.content
                and doc.embedding is not None
                and len(doc.embedding) == current.embedding_size
            )
            if reusable:
                vector = doc.embedding
            else:
                vector = embedder.embed(fresh.content, cancel=cancel)
                result.changed_count += 1
            shadow.upsert(fresh, vector)
    except BaseException:
        shadow.destroy()
        store.reopen()
        raise

    shadow.close()
    store.close()
    try:
        swap_into(shadow_dir, live_path)
    finally:
        store.reopen()

    print(
        f"Reindex: {result.original_count} documents, {result.changed_count} re-embedded, "
        f"{len(result.dropped)} dropped"
    )
    return result
