"""Tests for the DocumentStore."""
import pytest

from refer.errors import DocumentNotFound, StoreError
from refer.models import Document, StoreConfig
from refer.store import (
    DocumentStore,
    backup_path,
    shadow_path,
    swap_into,
)

from conftest import DIM, FakeEmbedding

emb = FakeEmbedding()


def _doc(path: str, content: str) -> Document:
    return Document(path=path, content=content)


class TestCreateOrOpen:
    def test_new_then_existing(self, tmp_path):
        path = tmp_path / "s"
        _, is_new = DocumentStore.create_or_open(path)
        assert is_new is True
        _, is_new = DocumentStore.create_or_open(path)
        assert is_new is False

    def test_fresh_store_has_no_schema_or_config(self, tmp_path):
        s, _ = DocumentStore.create_or_open(tmp_path / "s")
        assert s.has_schema is False
        assert s.get_config() is None
        assert s.get_all() == []
        assert s.count() == 0

    def test_orphaned_shadow_cleaned_on_open(self, tmp_path):
        path = tmp_path / "s"
        orphan = shadow_path(path)
        orphan.mkdir()
        (orphan / "junk").write_text("left over")
        DocumentStore.create_or_open(path)
        assert not orphan.exists()

    def test_interrupted_swap_restored(self, tmp_path):
        path = tmp_path / "s"
        s, _ = DocumentStore.create_or_open(path)
        s.init_schema(DIM)
        s.save_config(StoreConfig("fake-model", DIM))
        s.close()
        path.rename(backup_path(path))

        restored, is_new = DocumentStore.create_or_open(path)
        assert is_new is False
        assert restored.get_config() == StoreConfig("fake-model", DIM)
        assert not backup_path(path).exists()


class TestSchema:
    def test_init_schema_idempotent(self, tmp_path):
        s, _ = DocumentStore.create_or_open(tmp_path / "s")
        s.init_schema(DIM)
        s.init_schema(DIM * 2)
        assert s.dimension == DIM

    def test_dimension_survives_reopen(self, tmp_path):
        s, _ = DocumentStore.create_or_open(tmp_path / "s")
        s.init_schema(DIM)
        s.close()
        reopened, _ = DocumentStore.create_or_open(tmp_path / "s")
        assert reopened.has_schema is True
        assert reopened.dimension == DIM

    def test_upsert_without_schema_fails(self, tmp_path):
        s, _ = DocumentStore.create_or_open(tmp_path / "s")
        with pytest.raises(StoreError):
            s.upsert(_doc("a.txt", "x"), emb.vector("x"))


class TestConfig:
    def test_round_trip(self, store):
        store.save_config(StoreConfig("nomic-embed-text", 768))
        assert store.get_config() == StoreConfig("nomic-embed-text", 768)

    def test_overwrite(self, store):
        store.save_config(StoreConfig("a", 8))
        store.save_config(StoreConfig("b", 16))
        assert store.get_config() == StoreConfig("b", 16)

    def test_stored_as_string_pairs(self, store):
        store.save_config(StoreConfig("a", 8))
        import json
        data = json.loads((store.path / "config.json").read_text())
        assert data == {"embedding_model": "a", "embedding_size": "8"}


class TestUpsert:
    def test_same_path_twice_keeps_one_row(self, store):
        store.upsert(_doc("a.txt", "old content"), emb.vector("old content"))
        store.upsert(_doc("a.txt", "new content"), emb.vector("new content"))

        docs = store.get_all()
        assert len(docs) == 1
        assert docs[0].content == "new content"
        assert store.count() == 1

    def test_wrong_dimension_rejected(self, store):
        with pytest.raises(StoreError, match="dimensions"):
            store.upsert(_doc("a.txt", "x"), [0.1] * (DIM + 1))
        assert store.count() == 0

    def test_metadata_round_trip(self, store):
        doc = Document(path="https://example.com", content="page", title="Example", is_remote=True)
        store.upsert(doc, emb.vector("page"))
        got = store.get_by_id(doc.id, include_embedding=True)
        assert got.path == "https://example.com"
        assert got.title == "Example"
        assert got.is_remote is True
        assert got.embedding == pytest.approx(emb.vector("page"), rel=1e-5)


class TestRemoveAndGet:
    def test_remove(self, store):
        doc = _doc("a.txt", "content")
        store.upsert(doc, emb.vector("content"))
        store.remove(doc.id)
        assert store.get_by_id(doc.id) is None
        assert store.count() == 0

    def test_remove_missing(self, store):
        with pytest.raises(DocumentNotFound, match="no document found with ID nope"):
            store.remove("nope")

    def test_get_by_id_missing(self, store):
        assert store.get_by_id("nope") is None

    def test_get_all_sorted_by_path(self, store):
        for p in ["c.txt", "a.txt", "b.txt"]:
            store.upsert(_doc(p, p), emb.vector(p))
        assert [d.path for d in store.get_all()] == ["a.txt", "b.txt", "c.txt"]


class TestStats:
    def test_counts_bytes(self, store):
        store.upsert(_doc("a.txt", "abc"), emb.vector("abc"))
        store.upsert(_doc("b.txt", "é"), emb.vector("e"))
        assert store.stats() == {"documents": 2, "total_content_bytes": 5}

    def test_empty(self, store):
        assert store.stats() == {"documents": 0, "total_content_bytes": 0}


class TestNearest:
    def test_orders_by_distance(self, store):
        store.upsert(_doc("cats.txt", "cats purr"), emb.vector("cats purr"))
        store.upsert(_doc("rust.txt", "rust compiler borrow checker"), emb.vector("rust compiler borrow checker"))

        results = store.nearest(emb.vector("cats purr"), 2)
        assert [r.document.path for r in results] == ["cats.txt", "rust.txt"]
        assert results[0].distance <= results[1].distance

    def test_k_larger_than_count(self, store):
        store.upsert(_doc("a.txt", "a"), emb.vector("a"))
        assert len(store.nearest(emb.vector("a"), 10)) == 1

    def test_empty_store(self, store):
        assert store.nearest(emb.vector("a"), 3) == []


class TestSwap:
    def test_swap_replaces_live(self, tmp_path):
        live = tmp_path / "live"
        shadow = tmp_path / "live.migration"
        live.mkdir()
        (live / "marker").write_text("old")
        shadow.mkdir()
        (shadow / "marker").write_text("new")

        swap_into(shadow, live)
        assert (live / "marker").read_text() == "new"
        assert not shadow.exists()
        assert not backup_path(live).exists()

    def test_swap_failure_restores_live(self, tmp_path):
        live = tmp_path / "live"
        live.mkdir()
        (live / "marker").write_text("old")

        with pytest.raises(OSError):
            swap_into(tmp_path / "does-not-exist", live)
        assert (live / "marker").read_text() == "old"
