# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Embedding worker pool: paths -> fetch -> embed -> upsert, fanned out over a
fixed number of threads.

One failing path never stops its siblings; every error is collected and
returned once the pool has drained. Errors come back in completion order,
not input order.

Re-adding a path is delete-then-insert, so two workers handed the same path
in one batch race each other. Callers pass unique paths.
"""
import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Optional

import httpx

from .embeddings import Embedder
from .errors import IngestError, OperationCancelled
from .fetcher import fetch_document
from .store import DocumentStore

DEFAULT_MAX_WORKERS = 10


def add_document(
    path: str,
    store: DocumentStore,
    embedder: Embedder,
    cancel: Optional[threading.Event] = None,
    client: Optional[httpx.Client] = None,
    timeout: float = 30.0,
) -> bool:
    """Ingest one path. Returns False when the path was skipped (directory/binary)."""
    if cancel is not None and cancel.is_set():
        raise OperationCancelled("cancelled before fetch")

    doc = fetch_document(path, client=client, timeout=timeout)
    if doc is None:
        return False

    vector = embedder.embed(doc.content, cancel=cancel)

    if cancel is not None and cancel.is_set():
        raise OperationCancelled("cancelled before store write")
    store.upsert(doc, vector)

    print(f"Added document: {doc.path}")
    return True


def add_documents(
    paths: list[str],
    store: DocumentStore,
    embedder: Embedder,
    max_workers: int = DEFAULT_MAX_WORKERS,
    cancel: Optional[threading.Event] = None,
    client: Optional[httpx.Client] = None,
    timeout: float = 30.0,
) -> list[IngestError]:
    if max_workers <= 0:
        max_workers = DEFAULT_MAX_WORKERS
    if not paths:
        return []
    if cancel is None:
        cancel = threading.Event()

    errors: list[IngestError] = []
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="refer-ingest") as pool:
        futures = {
            pool.submit(add_document, path, store, embedder, cancel, client, timeout): path
            for path in paths
        }
        try:
            for future in as_completed(futures):
                path = futures[future]
                try:
                    future.result()
                except Exception as e:
                    errors.append(IngestError(path, e))
        except KeyboardInterrupt:
            # queued jobs see the event and fail fast while the pool drains
            cancel.set()
            raise
    return errors
