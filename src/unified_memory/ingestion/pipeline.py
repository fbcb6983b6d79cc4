"""Ingestion pipeline: chunk -> embed -> store; relation graph rebuild."""

from __future__ import annotations

import asyncio

from unified_memory.config.options import InferenceConfig
from unified_memory.exceptions import ValidationError
from unified_memory.models.domain import EmbeddingVector, InferenceResult, NormalizedRecord
from unified_memory.models.schemas import IngestResponse
from unified_memory.observability.logger import get_logger
from unified_memory.protocols.chunker import Chunker
from unified_memory.protocols.embedder import EmbeddingProvider
from unified_memory.protocols.store import MemoryStore
from unified_memory.relations.inferrer import RelationInferrer

logger = get_logger("ingestion")


class RecordIngestionPipeline:
    def __init__(
        self,
        store: MemoryStore,
        chunker: Chunker,
        embedder: EmbeddingProvider,
        inferrer: RelationInferrer | None = None,
    ) -> None:
        self._store = store
        self._chunker = chunker
        self._embedder = embedder
        self._inferrer = inferrer or RelationInferrer()

    async def ingest_records(self, records: list[NormalizedRecord]) -> IngestResponse:
        if not records:
            return IngestResponse(records_ingested=0, chunks_created=0, status="empty")

        # 1. Chunk and embed before any write so a provider failure changes nothing
        units = await asyncio.to_thread(self._chunker.chunk_many, records)
        vectors: list[EmbeddingVector] = []
        if units:
            embeddings = await self._embedder.embed_batch([u.content for u in units])
            vectors = [
                EmbeddingVector(chunk_id=u.chunk_id, vector=v, model=self._embedder.model)
                for u, v in zip(units, embeddings)
            ]

        # 2. Persist records first so chunk foreign keys resolve
        await self._store.upsert_records(records)

        # 3. Swap every record's chunks, with their vectors, in one write
        await self._store.upsert_chunks(units, vectors, record_ids=[r.id for r in records])

        if not units:
            logger.info("ingested", records=len(records), chunks=0)
            return IngestResponse(
                records_ingested=len(records), chunks_created=0, status="no_chunks"
            )

        logger.info("ingested", records=len(records), chunks=len(units))
        return IngestResponse(
            records_ingested=len(records), chunks_created=len(units), status="indexed"
        )

    async def rebuild_relations(
        self, config: InferenceConfig | None = None, shards: int = 1
    ) -> InferenceResult:
        """Recompute the relation graph over every stored record and persist it.

        Human labels already in the store are kept.
        """
        if shards < 1:
            raise ValidationError("shards must be >= 1")
        inferrer = RelationInferrer(config) if config is not None else self._inferrer
        records = await self._store.get_all_records(with_embeddings=True)
        if shards > 1:
            result = await inferrer.infer_all_sharded(records, shards)
        else:
            result = await asyncio.to_thread(inferrer.infer_all, records)
        await self._store.replace_relation_edges(result.edges)
        logger.info("relations_rebuilt", records=len(records), edges=len(result.edges))
        return result
