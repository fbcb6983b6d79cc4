"""Metric recording helpers."""

from __future__ import annotations

from unified_memory.models.domain import InferenceStats, RetrievalStats
from unified_memory.observability.logger import get_logger

logger = get_logger("metrics")


def log_retrieval_metrics(
    trace_id: str,
    stats: RetrievalStats,
    top_scores: list[float],
) -> None:
    logger.info(
        "retrieval_completed",
        trace_id=trace_id,
        total_chunks=stats.total_chunks,
        total_records=stats.total_records,
        total_relations=stats.total_relations,
        top_scores=[round(s, 4) for s in top_scores[:5]],
        retrieval_time_ms=round(stats.retrieval_time_ms, 2),
        stage_timings_ms=stats.stage_timings_ms,
    )


def log_inference_metrics(stats: InferenceStats) -> None:
    log = logger.warning if stats.truncated else logger.info
    log(
        "relations_inferred",
        records=stats.records,
        pairs_total=stats.pairs_total,
        pairs_examined=stats.pairs_examined,
        semantic_pairs=stats.semantic_pairs,
        accepted_pairs=stats.accepted_pairs,
        truncated=stats.truncated,
        edges_by_type=stats.edges_by_type,
        avg_confidence=round(stats.avg_confidence, 4),
    )
