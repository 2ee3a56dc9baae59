# Refer – Semantic search over local files and web pages
# Copyright (c) 2026 4rce.com Digital Technologies GmbH.
# Use of this software is governed by the Business Source License 1.1. See LICENSE.md.

"""
Exception hierarchy.

Item-level errors (FetchError, and EmbeddingError/StoreError while adding a
batch) are collected by the ingest pool. Everything else aborts the
running command.
"""


class ReferError(Exception):
    """Base class for all refer errors."""


class FetchError(ReferError):
    """A local file or remote URL could not be read."""


class EmbeddingError(ReferError):
    """The embedding backend failed or returned a vector of the wrong size."""


class OperationCancelled(ReferError):
    """The cancel event was set before the work item finished."""


class StoreError(ReferError):
    """The vector store rejected a read or write."""


class DocumentNotFound(StoreError):
    def __init__(self, doc_id: str):
        super().__init__(f"no document found with ID {doc_id}")
        self.doc_id = doc_id


class ModelMismatchError(ReferError):
    def __init__(self, stored_model: str, configured_model: str):
        super().__init__(
            f"store was built with embedding model '{stored_model}' but "
            f"'{configured_model}' is configured; run `refer reindex` to "
            f"rebuild it with the current model"
        )
        self.stored_model = stored_model
        self.configured_model = configured_model


class DimensionMismatchError(ReferError):
    def __init__(self, model: str, stored_size: int, current_size: int):
        super().__init__(
            f"store holds {stored_size}-dimension vectors but '{model}' now returns "
            f"{current_size}; run `refer reindex` to rebuild it with the current model"
        )
        self.stored_size = stored_size
        self.current_size = current_size


class IngestError(ReferError):
    """A single path that failed during add_documents."""

    def __init__(self, path: str, cause: Exception):
        super().__init__(f"{path}: {cause}")
        self.path = path
        self.cause = cause
