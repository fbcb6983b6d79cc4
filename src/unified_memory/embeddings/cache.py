"""SQLite-backed embedding cache keyed by model and text."""

from __future__ import annotations

import hashlib
import json

import aiosqlite

from unified_memory.exceptions import StoreError

CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS embedding_cache (
    text_hash TEXT PRIMARY KEY,
    model TEXT NOT NULL,
    embedding TEXT NOT NULL
)
"""


class EmbeddingCache:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await db.execute(CREATE_CACHE_TABLE)
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to initialize embedding cache: {e}") from e

    async def get(self, model: str, text: str) -> list[float] | None:
        found = await self.get_batch(model, [text])
        return found.get(0)

    async def get_batch(self, model: str, texts: list[str]) -> dict[int, list[float]]:
        """Return {index: embedding} for texts that are cached."""
        if not texts:
            return {}
        hash_to_indices: dict[str, list[int]] = {}
        for i, text in enumerate(texts):
            hash_to_indices.setdefault(self._hash(model, text), []).append(i)
        hashes = list(hash_to_indices)
        placeholders = ",".join("?" for _ in hashes)

        result: dict[int, list[float]] = {}
        try:
            async with aiosqlite.connect(self._db_path) as db:
                async with db.execute(
                    f"SELECT text_hash, embedding FROM embedding_cache "
                    f"WHERE text_hash IN ({placeholders})",
                    hashes,
                ) as cursor:
                    async for row in cursor:
                        embedding = json.loads(row[1])
                        for idx in hash_to_indices.get(row[0], []):
                            result[idx] = embedding
        except aiosqlite.Error as e:
            raise StoreError(f"Embedding cache read failed: {e}") from e
        return result

    async def put(self, model: str, text: str, embedding: list[float]) -> None:
        await self.put_batch(model, [text], [embedding])

    async def put_batch(
        self, model: str, texts: list[str], embeddings: list[list[float]]
    ) -> None:
        if not texts:
            return
        rows = [
            (self._hash(model, t), model, json.dumps(e)) for t, e in zip(texts, embeddings)
        ]
        try:
            async with aiosqlite.connect(self._db_path) as db:
                await db.executemany(
                    "INSERT OR REPLACE INTO embedding_cache (text_hash, model, embedding) "
                    "VALUES (?, ?, ?)",
                    rows,
                )
                await db.commit()
        except aiosqlite.Error as e:
            raise StoreError(f"Embedding cache write failed: {e}") from e

    @staticmethod
    def _hash(model: str, text: str) -> str:
        return hashlib.sha256(f"{model}\x00{text}".encode("utf-8")).hexdigest()
