"""Protocol for the persistent memory store."""

from __future__ import annotations

from typing import Protocol

from unified_memory.models.domain import (
    EmbeddingVector,
    NormalizedRecord,
    RelationEdge,
    RelationSource,
    RetrievableUnit,
    ScoredChunk,
)


class MemoryStore(Protocol):
    async def upsert_records(self, records: list[NormalizedRecord]) -> None: ...

    async def upsert_chunks(
        self,
        units: list[RetrievableUnit],
        vectors: list[EmbeddingVector] | None = None,
        record_ids: list[str] | None = None,
    ) -> None:
        """Replace all existing units of each owning record and of ``record_ids``."""
        ...

    async def upsert_embeddings(self, vectors: list[EmbeddingVector]) -> None: ...

    async def vector_search(
        self, query_vector: list[float], limit: int
    ) -> list[ScoredChunk]:
        """Top units by cosine similarity; ties go to the newest owning record."""
        ...

    async def get_records_by_ids(self, ids: list[str]) -> dict[str, NormalizedRecord]: ...

    async def get_all_records(
        self, with_embeddings: bool = False
    ) -> list[NormalizedRecord]: ...

    async def get_relations_from(
        self, ids: list[str], depth: int = 1
    ) -> list[RelationEdge]:
        """Edges touching ``ids`` in either direction, expanded ``depth`` hops."""
        ...

    async def upsert_relation_edges(self, edges: list[RelationEdge]) -> None: ...

    async def get_labeled_pairs(self) -> set[tuple[str, str]]: ...

    async def replace_relation_edges(self, edges: list[RelationEdge]) -> None:
        """Swap every machine-produced edge for ``edges``; human labels stay."""
        ...

    async def save_human_label(self, edge: RelationEdge) -> str: ...

    async def get_relation_edges(
        self, source: RelationSource | None = None
    ) -> list[RelationEdge]: ...

    async def count_records(self) -> int: ...

    async def count_chunks(self) -> int: ...

    async def count_relations(self) -> int: ...
