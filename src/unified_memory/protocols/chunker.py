"""Protocol for record chunking."""

from __future__ import annotations

from typing import Protocol

from unified_memory.models.domain import NormalizedRecord, RetrievableUnit


class Chunker(Protocol):
    def chunk(self, record: NormalizedRecord) -> list[RetrievableUnit]: ...

    def chunk_many(self, records: list[NormalizedRecord]) -> list[RetrievableUnit]: ...
