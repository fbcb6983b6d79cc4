"""Human labelling endpoints: candidate sampling and label capture."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Query

from unified_memory.api.dependencies import get_settings, get_store
from unified_memory.api.errors import to_http_exception
from unified_memory.config.constants import DEFAULT_LABELING_LIMIT
from unified_memory.config.settings import Settings
from unified_memory.exceptions import MemoryEngineError
from unified_memory.models.domain import RelationEdge, RelationSource
from unified_memory.models.schemas import (
    LabelingCandidateOut,
    LabelingCandidatesResponse,
    LabelingStatsOut,
    LabelRequest,
    LabelResponse,
)
from unified_memory.observability.logger import get_logger
from unified_memory.relations.labeling import get_labeling_candidates
from unified_memory.storage.sqlite_store import SQLiteMemoryStore

logger = get_logger("routes_labeling")
router = APIRouter(prefix="/labeling")

LABEL_CONFIDENCE = {"related": 1.0, "unrelated": 0.0, "uncertain": 0.5}


@router.get("/candidates", response_model=LabelingCandidatesResponse)
async def labeling_candidates(
    limit: int = Query(DEFAULT_LABELING_LIMIT),
    store: SQLiteMemoryStore = Depends(get_store),
    settings: Settings = Depends(get_settings),
) -> LabelingCandidatesResponse:
    try:
        records = await store.get_all_records(with_embeddings=True)
        labeled = await store.get_labeled_pairs()
        result = await asyncio.to_thread(
            get_labeling_candidates, records, labeled, limit, settings.labeling_config()
        )
    except MemoryEngineError as e:
        raise to_http_exception(e) from e
    return LabelingCandidatesResponse(
        candidates=[LabelingCandidateOut.from_domain(c) for c in result.candidates],
        stats=LabelingStatsOut(**vars(result.stats)),
    )


@router.post("/labels", response_model=LabelResponse)
async def save_label(
    request: LabelRequest,
    store: SQLiteMemoryStore = Depends(get_store),
) -> LabelResponse:
    if request.from_id == request.to_id:
        raise HTTPException(status_code=400, detail="A record cannot be labelled against itself")
    now = datetime.now(timezone.utc)
    edge = RelationEdge(
        from_id=request.from_id,
        to_id=request.to_id,
        relation_type=request.relation_type,
        confidence=LABEL_CONFIDENCE[request.label],
        source=RelationSource.HUMAN_LABEL,
        metadata={
            "label": request.label,
            "notes": request.notes,
            "labeled_at": now.isoformat(),
        },
        created_at=now,
    )
    try:
        found = await store.get_records_by_ids([request.from_id, request.to_id])
        missing = [rid for rid in (request.from_id, request.to_id) if rid not in found]
        if missing:
            raise HTTPException(status_code=404, detail=f"Unknown record ids: {missing}")
        action = await store.save_human_label(edge)
    except MemoryEngineError as e:
        raise to_http_exception(e) from e
    logger.info("label_saved", action=action, label=request.label)
    return LabelResponse(
        action=action, from_id=request.from_id, to_id=request.to_id, label=request.label
    )
