"""SQLite-backed record, chunk, embedding and relation store."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone

import aiosqlite
import numpy as np

from unified_memory.exceptions import StoreError
from unified_memory.models.domain import (
    ChunkMethod,
    EmbeddingVector,
    NormalizedRecord,
    RelationEdge,
    RelationSource,
    RelationType,
    RetrievableUnit,
    ScoredChunk,
    Timestamps,
)
from unified_memory.observability.logger import get_logger
from unified_memory.relations.similarity import average_embedding
from unified_memory.storage.migrations import initialize_memory_db

logger = get_logger("sqlite_store")

# Human labels other than a confirmed "related" are bookkeeping, not graph edges.
_TRAVERSABLE = "NOT (source = 'human_label' AND confidence < 1.0)"


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def _parse_dt(value: str | None) -> datetime | None:
    if value is None:
        return None
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _placeholders(values: list) -> str:
    return ",".join("?" for _ in values)


class SQLiteMemoryStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        try:
            await initialize_memory_db(self._db_path)
        except aiosqlite.Error as e:
            raise StoreError(f"Failed to initialize store at {self._db_path}: {e}") from e

    @asynccontextmanager
    async def _connect(self) -> AsyncIterator[aiosqlite.Connection]:
        try:
            async with aiosqlite.connect(self._db_path) as db:
                db.row_factory = aiosqlite.Row
                await db.execute("PRAGMA foreign_keys = ON")
                yield db
        except aiosqlite.Error as e:
            raise StoreError(f"SQLite operation failed: {e}") from e

    # records

    async def upsert_records(self, records: list[NormalizedRecord]) -> None:
        if not records:
            return
        async with self._connect() as db:
            # ON CONFLICT UPDATE rather than REPLACE so existing chunks survive.
            await db.executemany(
                "INSERT INTO records (id, source_system, workspace, record_kind, local_id, "
                "title, body, actors, properties, relations, visibility, created_at, updated_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(id) DO UPDATE SET title = excluded.title, body = excluded.body, "
                "actors = excluded.actors, properties = excluded.properties, "
                "relations = excluded.relations, visibility = excluded.visibility, "
                "created_at = excluded.created_at, updated_at = excluded.updated_at",
                [
                    (
                        r.id,
                        r.source_system,
                        r.workspace,
                        r.record_kind,
                        r.local_id,
                        r.title,
                        r.body,
                        json.dumps(r.actors),
                        json.dumps(r.properties),
                        json.dumps(r.relations),
                        r.visibility,
                        _iso(r.timestamps.created_at),
                        _iso(r.timestamps.updated_at),
                    )
                    for r in records
                ],
            )
            await db.commit()
        logger.info("records_upserted", count=len(records))

    async def get_records_by_ids(self, ids: list[str]) -> dict[str, NormalizedRecord]:
        if not ids:
            return {}
        unique = list(dict.fromkeys(ids))
        async with self._connect() as db:
            async with db.execute(
                f"SELECT * FROM records WHERE id IN ({_placeholders(unique)})", unique
            ) as cursor:
                rows = await cursor.fetchall()
        return {row["id"]: self._row_to_record(row) for row in rows}

    async def get_all_records(self, with_embeddings: bool = False) -> list[NormalizedRecord]:
        async with self._connect() as db:
            async with db.execute("SELECT * FROM records ORDER BY id") as cursor:
                records = [self._row_to_record(row) for row in await cursor.fetchall()]
            if not with_embeddings:
                return records
            vectors: dict[str, list[np.ndarray]] = {}
            async with db.execute(
                "SELECT record_id, embedding FROM chunks WHERE embedding IS NOT NULL"
            ) as cursor:
                async for row in cursor:
                    vectors.setdefault(row["record_id"], []).append(
                        np.frombuffer(row["embedding"], dtype=np.float32)
                    )
        for record in records:
            chunk_vectors = vectors.get(record.id)
            if chunk_vectors and len({v.shape for v in chunk_vectors}) == 1:
                record.embedding = average_embedding(chunk_vectors)
        return records

    # chunks and embeddings

    async def upsert_chunks(
        self,
        units: list[RetrievableUnit],
        vectors: list[EmbeddingVector] | None = None,
        record_ids: list[str] | None = None,
    ) -> None:
        """Replace every chunk of the owning records in one transaction.

        ``record_ids`` names records whose chunks go even when ``units`` has
        none for them. Vectors are written with their chunks.
        """
        owners = list(dict.fromkeys([*(record_ids or []), *(u.record_id for u in units)]))
        if not owners:
            return
        by_chunk = {v.chunk_id: v for v in vectors or []}
        async with self._connect() as db:
            await db.execute(
                f"DELETE FROM chunks WHERE record_id IN ({_placeholders(owners)})",
                owners,
            )
            await db.executemany(
                "INSERT INTO chunks (chunk_id, record_id, chunk_index, content, method, metadata, "
                "embedding, embedding_model) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                [
                    (
                        u.chunk_id,
                        u.record_id,
                        u.index,
                        u.content,
                        u.method.value,
                        json.dumps(u.metadata),
                        *self._vector_columns(by_chunk.get(u.chunk_id)),
                    )
                    for u in units
                ],
            )
            await db.commit()
        logger.info(
            "chunks_upserted", count=len(units), records=len(owners), embedded=len(by_chunk)
        )

    @staticmethod
    def _vector_columns(vector: EmbeddingVector | None) -> tuple[bytes | None, str | None]:
        if vector is None:
            return None, None
        return np.asarray(vector.vector, dtype=np.float32).tobytes(), vector.model

    async def upsert_embeddings(self, vectors: list[EmbeddingVector]) -> None:
        if not vectors:
            return
        async with self._connect() as db:
            await db.executemany(
                "UPDATE chunks SET embedding = ?, embedding_model = ? WHERE chunk_id = ?",
                [(*self._vector_columns(v), v.chunk_id) for v in vectors],
            )
            await db.commit()

    async def vector_search(self, query_vector: list[float], limit: int) -> list[ScoredChunk]:
        """Brute-force cosine search over every embedded chunk."""
        if limit < 1:
            return []
        query = np.asarray(query_vector, dtype=np.float32)
        async with self._connect() as db:
            async with db.execute(
                "SELECT c.*, r.created_at AS record_created_at FROM chunks c "
                "JOIN records r ON r.id = c.record_id WHERE c.embedding IS NOT NULL"
            ) as cursor:
                rows = [
                    row
                    for row in await cursor.fetchall()
                    if len(row["embedding"]) == query.nbytes
                ]
        if not rows or query.size == 0:
            return []

        matrix = np.vstack([np.frombuffer(row["embedding"], dtype=np.float32) for row in rows])
        norms = np.linalg.norm(matrix, axis=1) * np.linalg.norm(query)
        dots = matrix @ query
        scores = np.divide(dots, norms, out=np.zeros_like(dots), where=norms > 0)

        ranked = sorted(
            zip(rows, scores.tolist()),
            key=lambda item: (
                -item[1],
                -_parse_dt(item[0]["record_created_at"]).timestamp(),
                item[0]["chunk_id"],
            ),
        )
        return [
            ScoredChunk(unit=self._row_to_unit(row), similarity=float(score))
            for row, score in ranked[:limit]
        ]

    # relation edges

    async def upsert_relation_edges(self, edges: list[RelationEdge]) -> None:
        """Insert edges; on conflict replace confidence, source and metadata.

        Machine-produced edges never overwrite a stored human label.
        """
        if not edges:
            return
        async with self._connect() as db:
            await self._insert_edges(db, edges)
            await db.commit()
        logger.info("relation_edges_upserted", count=len(edges))

    async def replace_relation_edges(self, edges: list[RelationEdge]) -> None:
        """Drop every non-human edge and store ``edges`` in one transaction."""
        async with self._connect() as db:
            await db.execute(
                "DELETE FROM relation_edges WHERE source != ?",
                (RelationSource.HUMAN_LABEL.value,),
            )
            await self._insert_edges(db, edges)
            await db.commit()
        logger.info("relation_edges_replaced", count=len(edges))

    async def save_human_label(self, edge: RelationEdge) -> str:
        """Store a human label for the pair, replacing one in either direction."""
        async with self._connect() as db:
            cursor = await db.execute(
                "DELETE FROM relation_edges WHERE source = ? AND "
                "((from_id = ? AND to_id = ?) OR (from_id = ? AND to_id = ?))",
                (
                    RelationSource.HUMAN_LABEL.value,
                    edge.from_id,
                    edge.to_id,
                    edge.to_id,
                    edge.from_id,
                ),
            )
            action = "updated" if cursor.rowcount > 0 else "inserted"
            await self._insert_edges(db, [edge])
            await db.commit()
        return action

    @staticmethod
    async def _insert_edges(db: aiosqlite.Connection, edges: list[RelationEdge]) -> None:
        await db.executemany(
            "INSERT INTO relation_edges (from_id, to_id, relation_type, confidence, source, "
            "metadata, created_at) VALUES (?, ?, ?, ?, ?, ?, ?) "
            "ON CONFLICT(from_id, to_id, relation_type) DO UPDATE SET "
            "confidence = excluded.confidence, source = excluded.source, "
            "metadata = excluded.metadata, created_at = excluded.created_at "
            "WHERE relation_edges.source != 'human_label' OR excluded.source = 'human_label'",
            [
                (
                    e.from_id,
                    e.to_id,
                    e.relation_type.value,
                    e.confidence,
                    e.source.value,
                    json.dumps(e.metadata),
                    _iso(e.created_at),
                )
                for e in edges
            ],
        )

    async def get_relations_from(self, ids: list[str], depth: int = 1) -> list[RelationEdge]:
        """Edges touching ``ids`` in either direction, expanded ``depth`` hops."""
        if not ids or depth < 1:
            return []
        visited = set(ids)
        frontier = list(dict.fromkeys(ids))
        edges: dict[tuple[str, str, str], RelationEdge] = {}
        async with self._connect() as db:
            for _ in range(depth):
                if not frontier:
                    break
                marks = _placeholders(frontier)
                async with db.execute(
                    f"SELECT * FROM relation_edges WHERE {_TRAVERSABLE} AND "
                    f"(from_id IN ({marks}) OR to_id IN ({marks})) ORDER BY id",
                    frontier + frontier,
                ) as cursor:
                    rows = await cursor.fetchall()
                next_frontier: list[str] = []
                for row in rows:
                    edge = self._row_to_edge(row)
                    edges.setdefault(edge.key, edge)
                    for endpoint in (edge.from_id, edge.to_id):
                        if endpoint not in visited:
                            visited.add(endpoint)
                            next_frontier.append(endpoint)
                frontier = next_frontier
        return list(edges.values())

    async def get_relation_edges(self, source: RelationSource | None = None) -> list[RelationEdge]:
        query = "SELECT * FROM relation_edges"
        params: tuple = ()
        if source is not None:
            query += " WHERE source = ?"
            params = (source.value,)
        async with self._connect() as db:
            async with db.execute(query + " ORDER BY id", params) as cursor:
                return [self._row_to_edge(row) for row in await cursor.fetchall()]

    async def get_labeled_pairs(self) -> set[tuple[str, str]]:
        async with self._connect() as db:
            async with db.execute(
                "SELECT from_id, to_id FROM relation_edges WHERE source = ?",
                (RelationSource.HUMAN_LABEL.value,),
            ) as cursor:
                return {(row["from_id"], row["to_id"]) for row in await cursor.fetchall()}

    # counts

    async def count_records(self) -> int:
        return await self._count("records")

    async def count_chunks(self) -> int:
        return await self._count("chunks")

    async def count_relations(self) -> int:
        return await self._count("relation_edges")

    async def _count(self, table: str) -> int:
        async with self._connect() as db:
            async with db.execute(f"SELECT COUNT(*) FROM {table}") as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    # row mapping

    @staticmethod
    def _row_to_record(row: aiosqlite.Row) -> NormalizedRecord:
        return NormalizedRecord(
            source_system=row["source_system"],
            workspace=row["workspace"],
            record_kind=row["record_kind"],
            local_id=row["local_id"],
            timestamps=Timestamps(
                created_at=_parse_dt(row["created_at"]),
                updated_at=_parse_dt(row["updated_at"]),
            ),
            title=row["title"],
            body=row["body"],
            actors=json.loads(row["actors"]),
            properties=json.loads(row["properties"]),
            relations=json.loads(row["relations"]),
            visibility=row["visibility"],
        )

    @staticmethod
    def _row_to_unit(row: aiosqlite.Row) -> RetrievableUnit:
        return RetrievableUnit(
            chunk_id=row["chunk_id"],
            record_id=row["record_id"],
            index=row["chunk_index"],
            content=row["content"],
            method=ChunkMethod(row["method"]),
            metadata=json.loads(row["metadata"]),
        )

    @staticmethod
    def _row_to_edge(row: aiosqlite.Row) -> RelationEdge:
        return RelationEdge(
            from_id=row["from_id"],
            to_id=row["to_id"],
            relation_type=RelationType(row["relation_type"]),
            confidence=row["confidence"],
            source=RelationSource(row["source"]),
            metadata=json.loads(row["metadata"]),
            created_at=_parse_dt(row["created_at"]),
        )
