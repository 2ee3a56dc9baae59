import hashlib
import os
import re
import threading

import pytest

os.environ.setdefault("ANONYMIZED_TELEMETRY", "False")

from refer.config import Config
from refer.core import Refer
from refer.store import DocumentStore

DIM = 16


class FakeEmbedding:
    """Deterministic bag-of-words embedding function.

    Texts sharing words land close together. Records every text it was
    asked to embed. Raises for any text containing a word in *fail_on*."""

    def __init__(self, dim: int = DIM, fail_on: tuple[str, ...] = ()):
        self.dim = dim
        self.fail_on = fail_on
        self.calls: list[str] = []
        self._lock = threading.Lock()

    def vector(self, text: str) -> list[float]:
        vec = [0.01] * self.dim
        for word in re.findall(r"\w+", text.lower()):
            idx = int(hashlib.md5(word.encode()).hexdigest(), 16) % self.dim
            vec[idx] += 1.0
        return vec

    def __call__(self, input: list[str]) -> list[list[float]]:
        out = []
        for text in input:
            with self._lock:
                self.calls.append(text)
            if any(word in text for word in self.fail_on):
                raise RuntimeError("embedding backend unavailable")
            out.append(self.vector(text))
        return out


@pytest.fixture(autouse=True)
def isolated_user_config(tmp_path, monkeypatch):
    """Keep the developer's ~/.config/refer/config.json out of the tests."""
    monkeypatch.setenv("REFER_CONFIG_FILE", str(tmp_path / "user-config.json"))


@pytest.fixture
def fake_embedding():
    return FakeEmbedding()


@pytest.fixture
def config(tmp_path):
    return Config(
        store_path=str(tmp_path / "store"),
        embedding_model="fake-model",
        max_workers=4,
    )


@pytest.fixture
def refer(config, fake_embedding):
    r = Refer(config, embedding_fn=fake_embedding)
    yield r
    r.close()


@pytest.fixture
def store(tmp_path):
    s, _ = DocumentStore.create_or_open(tmp_path / "unit-store")
    s.init_schema(DIM)
    return s


@pytest.fixture
def docs_dir(tmp_path):
    d = tmp_path / "docs"
    d.mkdir()
    (d / "cats.txt").write_text("cats are animals that purr and chase mice")
    (d / "dogs.txt").write_text("dogs are loyal animals that bark")
    (d / "rust.md").write_text("# Rust\n\nrust is a systems programming language")
    return d
