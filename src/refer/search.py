# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Multi-query search fusion.

Each query is embedded and looked up separately; the result sets are merged
so a document appears once, at the smallest distance any query gave it.
Results are ordered by distance unless a reranker is used, in which case
the reranker's order wins. The distance threshold applies either way.
"""
from typing import Optional, Protocol

from .embeddings import Embedder
from .models import SearchResult
from .store import DocumentStore


class Reranker(Protocol):
    def rerank(self, query: str, texts: list[str], top_n: int) -> list[int]: ...


def dedupe_results(results: list[SearchResult]) -> list[SearchResult]:
    """Keep one result per path, the one with the minimum distance."""
    best: dict[str, SearchResult] = {}
    for r in results:
        current = best.get(r.document.path)
        if current is None or r.distance < current.distance:
            best[r.document.path] = r
    return list(best.values())


def apply_threshold(results: list[SearchResult], threshold: Optional[float]) -> list[SearchResult]:
    if threshold is None:
        return results
    return [r for r in results if r.distance <= threshold]


def rerank_results(
    query: str, results: list[SearchResult], limit: int, reranker: Reranker,
) -> list[SearchResult]:
    if not results:
        return results
    try:
        order = reranker.rerank(query, [r.document.content for r in results], limit)
    except Exception as e:
        print(f"Reranker error: {e}")
        return results[:limit]
    return [results[i] for i in order[:limit]]


def search(
    queries: list[str],
    store: DocumentStore,
    embedder: Embedder,
    limit: int = 5,
    threshold: Optional[float] = None,
    rerank: bool = False,
    reranker: Optional[Reranker] = None,
) -> list[SearchResult]:
    if not queries:
        raise ValueError("at least one query is required")

    # embed every query first: a failure must not leave partial results
    vectors = [embedder.embed(q) for q in queries]

    collected: list[SearchResult] = []
    for vector in vectors:
        collected.extend(store.nearest(vector, limit))

    merged = sorted(dedupe_results(collected), key=lambda r: r.distance)

    if rerank and reranker is not None:
        merged = rerank_results(queries[0], merged, limit, reranker)

    return apply_threshold(merged, threshold)
