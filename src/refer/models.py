# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

import hashlib
from dataclasses import dataclass, field
from typing import Optional


def document_id(path: str) -> str:
    """Stable id for a path (sha256 prefix), so re-adding keeps the id."""
    return hashlib.sha256(path.encode()).hexdigest()[:16]


@dataclass
class Document:
    path: str
    content: str
    title: str = ""
    is_remote: bool = False
    embedding: Optional[list[float]] = field(default=None, repr=False)
    id: str = ""

    def __post_init__(self):
        if not self.id:
            self.id = document_id(self.path)
        if not self.title:
            self.title = self.path

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "path": self.path,
            "title": self.title,
            "is_remote": self.is_remote,
            "content": self.content,
        }


@dataclass
class SearchResult:
    document: Document
    distance: float


@dataclass
class StoreConfig:
    embedding_model: str
    embedding_size: int

    def to_dict(self) -> dict[str, str]:
        return {
            "embedding_model": self.embedding_model,
            "embedding_size": str(self.embedding_size),
        }

    @classmethod
    def from_dict(cls, data: dict) -> Optional["StoreConfig"]:
        model = data.get("embedding_model")
        size = data.get("embedding_size")
        if not model or size in (None, ""):
            return None
        return cls(embedding_model=str(model), embedding_size=int(size))


@dataclass
class ReindexResult:
    original_count: int = 0
    changed_count: int = 0
    dropped: list[str] = field(default_factory=list)
    full_rebuild: bool = False
