"""Relation graph rebuild and evaluation endpoints."""

from __future__ import annotations

from dataclasses import replace

from fastapi import APIRouter, Depends

from unified_memory.api.dependencies import get_ingest_pipeline, get_settings, get_store
from unified_memory.api.errors import to_http_exception
from unified_memory.config.settings import Settings
from unified_memory.evaluation.metrics import compute_relation_metrics
from unified_memory.exceptions import MemoryEngineError
from unified_memory.ingestion.pipeline import RecordIngestionPipeline
from unified_memory.models.domain import RelationSource
from unified_memory.models.schemas import (
    EvaluateRequest,
    EvaluateResponse,
    InferenceStatsOut,
    InferRequest,
    InferResponse,
)
from unified_memory.storage.sqlite_store import SQLiteMemoryStore

router = APIRouter(prefix="/relations")


@router.post("/infer", response_model=InferResponse)
async def infer_relations(
    request: InferRequest,
    pipeline: RecordIngestionPipeline = Depends(get_ingest_pipeline),
    settings: Settings = Depends(get_settings),
) -> InferResponse:
    # an explicit null max_pairs lifts the cap; other nulls keep the default
    overrides = {
        key: value
        for key, value in request.model_dump(exclude={"shards"}, exclude_unset=True).items()
        if value is not None or key == "max_pairs"
    }
    try:
        config = replace(settings.inference_config(), **overrides)
        result = await pipeline.rebuild_relations(config, shards=request.shards)
    except MemoryEngineError as e:
        raise to_http_exception(e) from e
    return InferResponse(
        edges_stored=len(result.edges),
        stats=InferenceStatsOut.from_domain(result.stats),
    )


@router.post("/evaluate", response_model=EvaluateResponse)
async def evaluate_relations(
    request: EvaluateRequest,
    store: SQLiteMemoryStore = Depends(get_store),
) -> EvaluateResponse:
    try:
        edges = await store.get_relation_edges()
    except MemoryEngineError as e:
        raise to_http_exception(e) from e

    ground_truth = [
        e
        for e in edges
        if e.source == RelationSource.HUMAN_LABEL and e.metadata.get("label") == "related"
    ]
    predicted = [e for e in edges if e.source != RelationSource.HUMAN_LABEL]
    metrics = compute_relation_metrics(
        predicted, ground_truth, match_type=request.match_type, directed=request.directed
    )
    return EvaluateResponse(
        ground_truth_edges=len(ground_truth),
        predicted_edges=len(predicted),
        true_positives=metrics.true_positives,
        false_positives=metrics.false_positives,
        false_negatives=metrics.false_negatives,
        precision=metrics.precision,
        recall=metrics.recall,
        f1_score=metrics.f1_score,
    )
