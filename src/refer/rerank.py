# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Rerankers: rerank(query, texts, top_n) -> indices into texts, most relevant
first, at most top_n long.

With reranker_url set, an OpenAI-style /v1/rerank endpoint is called;
otherwise a sentence-transformers cross-encoder is loaded locally.
"""
import threading
from typing import Optional

import httpx

from .config import Config

_reranker_cache: dict[str, object] = {}
_reranker_lock = threading.Lock()


def _get_cross_encoder(model_name: str):
    """Lazy-load and cache a cross-encoder reranker model."""
    with _reranker_lock:
        if model_name in _reranker_cache:
            return _reranker_cache[model_name]
    try:
        from sentence_transformers import CrossEncoder
        model = CrossEncoder(model_name)
        with _reranker_lock:
            _reranker_cache[model_name] = model
        return model
    except Exception as e:
        print(f"Warning: Failed to load reranker model '{model_name}': {e}")
        return None


class HttpReranker:
    def __init__(self, url: str, timeout: float = 30.0, client: Optional[httpx.Client] = None):
        self.url = url
        self._client = client or httpx.Client(timeout=timeout)

    def rerank(self, query: str, texts: list[str], top_n: int) -> list[int]:
        resp = self._client.post(self.url, json={
            "model": "",
            "query": query,
            "top_n": top_n,
            "documents": texts,
        })
        resp.raise_for_status()
        results = resp.json().get("results", [])
        ranked = sorted(results, key=lambda r: r.get("relevance_score", 0.0), reverse=True)
        indices = [int(r["index"]) for r in ranked if 0 <= int(r["index"]) < len(texts)]
        return indices[:top_n]


class CrossEncoderReranker:
    def __init__(self, model_name: str):
        self.model_name = model_name

    def rerank(self, query: str, texts: list[str], top_n: int) -> list[int]:
        model = _get_cross_encoder(self.model_name)
        if model is None:
            return list(range(min(top_n, len(texts))))
        scores = model.predict([(query, text) for text in texts])
        order = sorted(range(len(texts)), key=lambda i: float(scores[i]), reverse=True)
        return order[:top_n]


def build_reranker(config: Config):
    if config.reranker_url:
        return HttpReranker(config.reranker_url, timeout=config.request_timeout)
    return CrossEncoderReranker(config.reranker_model)
