"""Retrieval orchestrator: embed -> vector search -> hydrate -> expand -> boost."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from datetime import datetime
from typing import TypeVar

from unified_memory.config.options import RetrievalConfig
from unified_memory.exceptions import (
    MemoryEngineError,
    ProviderError,
    StoreError,
    ValidationError,
)
from unified_memory.models.domain import (
    NormalizedRecord,
    RelationEdge,
    RetrievalResult,
    RetrievalStats,
    ScoredChunk,
)
from unified_memory.observability.logger import get_logger
from unified_memory.observability.metrics import log_retrieval_metrics
from unified_memory.observability.tracing import TraceContext
from unified_memory.protocols.embedder import EmbeddingProvider
from unified_memory.protocols.store import MemoryStore
from unified_memory.temporal.processor import TemporalProcessor

logger = get_logger("retriever")

T = TypeVar("T")


async def _guard(call: Awaitable[T], error_cls: type[MemoryEngineError], what: str) -> T:
    """Await ``call``; untyped failures become ``error_cls``."""
    try:
        return await call
    except MemoryEngineError:
        raise
    except Exception as e:
        raise error_cls(f"{what} failed: {e}") from e


class Retriever:
    def __init__(
        self,
        store: MemoryStore,
        embedder: EmbeddingProvider,
        config: RetrievalConfig | None = None,
        now: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._embedder = embedder
        self._config = config or RetrievalConfig()
        self._now = now

    async def retrieve(
        self, query: str, config: RetrievalConfig | None = None
    ) -> RetrievalResult:
        if not query or not query.strip():
            raise ValidationError("Query must not be empty")
        config = config or self._config
        trace = TraceContext()

        with trace.span("embed"):
            query_vector = await _guard(
                self._embedder.embed(query), ProviderError, "Query embedding"
            )

        with trace.span("vector_search"):
            chunks = await _guard(
                self._store.vector_search(query_vector, config.chunk_limit),
                StoreError,
                "Vector search",
            )
            if config.min_similarity is not None:
                chunks = [c for c in chunks if c.similarity >= config.min_similarity]

        with trace.span("hydrate"):
            matched_ids = list(dict.fromkeys(c.record_id for c in chunks))
            records = await self._hydrate(matched_ids)

        edges: list[RelationEdge] = []
        expanded_ids: list[str] = []
        with trace.span("relation_expand", depth=config.relation_depth):
            if config.include_relations and records:
                edges, expanded = await self._expand(list(records), config.relation_depth)
                expanded_ids = list(expanded)
                records.update(expanded)

        with trace.span("temporal_boost"):
            if config.apply_temporal_boost and chunks:
                processor = TemporalProcessor(config.temporal, now=self._now)
                chunks = processor.apply_recency_boost(chunks, records)

        ordered = self._order_records(chunks, expanded_ids, records)
        matched_count = sum(1 for rid in matched_ids if rid in records)
        stats = RetrievalStats(
            total_chunks=len(chunks),
            total_records=len(ordered),
            total_relations=len(edges),
            matched_records=matched_count,
            expanded_records=len(ordered) - matched_count,
            retrieval_time_ms=trace.elapsed_ms,
            stage_timings_ms=trace.stage_timings(),
        )
        log_retrieval_metrics(trace.trace_id, stats, [c.similarity for c in chunks])
        return RetrievalResult(
            query=query, chunks=chunks, records=ordered, relations=edges, stats=stats
        )

    async def _hydrate(self, ids: list[str]) -> dict[str, NormalizedRecord]:
        if not ids:
            return {}
        return await _guard(
            self._store.get_records_by_ids(ids), StoreError, "Record hydration"
        )

    async def _expand(
        self, seed_ids: list[str], depth: int
    ) -> tuple[list[RelationEdge], dict[str, NormalizedRecord]]:
        """Breadth-first walk over stored edges, one hop per store call.

        Only record endpoints join the next frontier; other endpoints stay in
        the edge list.
        """
        visited = set(seed_ids)
        frontier = list(seed_ids)
        seen_edges: set[tuple[str, str, str]] = set()
        edges: list[RelationEdge] = []
        expanded: dict[str, NormalizedRecord] = {}

        for _ in range(depth):
            if not frontier:
                break
            hop_edges = await _guard(
                self._store.get_relations_from(frontier, 1), StoreError, "Relation expansion"
            )
            candidates: list[str] = []
            for edge in hop_edges:
                if edge.key in seen_edges:
                    continue
                seen_edges.add(edge.key)
                edges.append(edge)
                for endpoint in (edge.from_id, edge.to_id):
                    if endpoint not in visited:
                        visited.add(endpoint)
                        candidates.append(endpoint)
            found = await self._hydrate(candidates)
            frontier = [rid for rid in candidates if rid in found]
            expanded.update((rid, found[rid]) for rid in frontier)

        logger.debug("relations_expanded", edges=len(edges), expanded=len(expanded))
        return edges, expanded

    @staticmethod
    def _order_records(
        chunks: list[ScoredChunk],
        expanded_ids: list[str],
        records: dict[str, NormalizedRecord],
    ) -> list[NormalizedRecord]:
        order = list(dict.fromkeys([c.record_id for c in chunks] + expanded_ids))
        return [records[rid] for rid in order if rid in records]
