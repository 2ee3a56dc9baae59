# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Embedding backends.

Every backend is an embedding function in the chromadb sense: called with a
list of texts, returns one vector per text. Embedder wraps the function
with dimension validation and cancellation checks.
"""
import threading
from typing import Callable, Optional, Sequence

import httpx
from chromadb.utils import embedding_functions

from .config import Config
from .errors import EmbeddingError, OperationCancelled

EmbeddingFn = Callable[[list[str]], Sequence[Sequence[float]]]

DEFAULT_OLLAMA_URL = "http://localhost:11434"
SAMPLE_TEXT = "The quick brown fox jumps over the lazy dog."


class OllamaEmbeddingFunction:
    """POST {base_url}/api/embeddings {"model", "prompt"} -> {"embedding"}."""

    def __init__(self, base_url: str, model_name: str, api_key: str = "",
                 timeout: float = 30.0):
        base = base_url.rstrip("/")
        self.url = base if base.endswith("/api/embeddings") else f"{base}/api/embeddings"
        self.model_name = model_name
        headers = {"Content-Type": "application/json"}
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
        self._client = httpx.Client(timeout=timeout, headers=headers)

    def __call__(self, input: list[str]) -> list[list[float]]:
        out = []
        for text in input:
            resp = self._client.post(self.url, json={"model": self.model_name, "prompt": text})
            if resp.status_code != 200:
                raise EmbeddingError(f"unexpected status code: {resp.status_code}")
            embedding = resp.json().get("embedding")
            if not embedding:
                raise EmbeddingError("response carried no embedding")
            out.append([float(x) for x in embedding])
        return out

    def close(self):
        self._client.close()


def build_embedding_fn(config: Config) -> EmbeddingFn:
    if config.embedding_provider == "local":
        return embedding_functions.SentenceTransformerEmbeddingFunction(
            model_name=config.embedding_model
        )
    if config.embedding_provider == "openai":
        kwargs = {"api_key": config.api_key, "model_name": config.embedding_model}
        if config.embedding_base_url:
            kwargs["api_base"] = config.embedding_base_url
        return embedding_functions.OpenAIEmbeddingFunction(**kwargs)
    return OllamaEmbeddingFunction(
        config.embedding_base_url or DEFAULT_OLLAMA_URL,
        config.embedding_model,
        api_key=config.api_key,
        timeout=config.request_timeout,
    )


class Embedder:
    def __init__(self, config: Config, embedding_fn: Optional[EmbeddingFn] = None,
                 dimension: Optional[int] = None):
        self.config = config
        self.model_name = config.embedding_model
        self.dimension = dimension
        self.ef = embedding_fn if embedding_fn is not None else build_embedding_fn(config)

    def embed(self, text: str, cancel: Optional[threading.Event] = None) -> list[float]:
        vector = self._embed(text, cancel)
        if self.dimension is not None and len(vector) != self.dimension:
            raise EmbeddingError(
                f"unexpected embedding dimension: got {len(vector)}, want {self.dimension}"
            )
        return vector

    def _embed(self, text: str, cancel: Optional[threading.Event]) -> list[float]:
        if cancel is not None and cancel.is_set():
            raise OperationCancelled("cancelled before embedding")
        try:
            vectors = self.ef([text])
        except EmbeddingError:
            raise
        except Exception as e:
            raise EmbeddingError(f"create embedding: {e}") from e

        if vectors is None or len(vectors) == 0 or vectors[0] is None:
            raise EmbeddingError("embedding backend returned nothing")
        vector = [float(x) for x in vectors[0]]
        if not vector:
            raise EmbeddingError("embedding backend returned an empty vector")
        return vector

    def probe(self) -> list[float]:
        """Embed a fixed sample text to learn the backend's current dimension."""
        return self._embed(SAMPLE_TEXT, None)

    def close(self):
        close = getattr(self.ef, "close", None)
        if callable(close):
            close()
