"""Shared test fixtures."""

from __future__ import annotations

import re
import tempfile
from datetime import datetime, timedelta, timezone
from pathlib import Path

import numpy as np
import pytest

from unified_memory.config.settings import Settings
from unified_memory.models.domain import NormalizedRecord, Timestamps
from unified_memory.storage.sqlite_store import SQLiteMemoryStore

FIXED_NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FakeEmbedder:
    """Deterministic bag-of-words embedder.

    Each distinct token gets its own dimension the first time it is seen, so
    unrelated texts are exactly orthogonal. Tokens past ``dimensions`` wrap.
    """

    def __init__(self, dimensions: int = 512) -> None:
        self._dimensions = dimensions
        self._vocabulary: dict[str, int] = {}
        self.embed_calls = 0
        self.embed_batch_calls = 0

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model(self) -> str:
        return "fake-bow"

    def vector(self, text: str) -> list[float]:
        vec = np.zeros(self._dimensions, dtype=np.float64)
        for token in re.findall(r"[a-z0-9]+", text.lower()):
            index = self._vocabulary.setdefault(token, len(self._vocabulary))
            vec[index % self._dimensions] += 1.0
        norm = np.linalg.norm(vec)
        return (vec / norm).tolist() if norm else vec.tolist()

    async def embed(self, text: str) -> list[float]:
        self.embed_calls += 1
        return self.vector(text)

    async def embed_batch(self, texts: list[str]) -> list[list[float]]:
        self.embed_batch_calls += 1
        return [self.vector(t) for t in texts]


def make_record(
    local_id: str,
    title: str | None = None,
    body: str | None = None,
    *,
    source_system: str = "linear",
    workspace: str = "acme",
    record_kind: str = "issue",
    created_at: datetime | None = None,
    days_ago: float = 0,
    **extra,
) -> NormalizedRecord:
    return NormalizedRecord(
        source_system=source_system,
        workspace=workspace,
        record_kind=record_kind,
        local_id=local_id,
        timestamps=Timestamps(created_at=created_at or FIXED_NOW - timedelta(days=days_ago)),
        title=title,
        body=body,
        **extra,
    )


@pytest.fixture
def record_factory():
    return make_record


@pytest.fixture
def fixed_now():
    return FIXED_NOW


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def tmp_dir():
    """Create a temporary directory."""
    return tempfile.mkdtemp()


@pytest.fixture
def settings(tmp_dir):
    """Test settings with temp paths."""
    return Settings(
        _env_file=None,
        openai_api_key="test-key",
        sqlite_db_path=str(Path(tmp_dir) / "memory.db"),
        embedding_cache_db_path=str(Path(tmp_dir) / "cache.db"),
        log_json=False,
    )


@pytest.fixture
async def store(tmp_dir):
    memory_store = SQLiteMemoryStore(str(Path(tmp_dir) / "store.db"))
    await memory_store.initialize()
    return memory_store
