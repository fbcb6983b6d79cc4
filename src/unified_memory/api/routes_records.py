"""Record ingestion endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from unified_memory.api.dependencies import get_ingest_pipeline
from unified_memory.api.errors import to_http_exception
from unified_memory.exceptions import MemoryEngineError
from unified_memory.ingestion.pipeline import RecordIngestionPipeline
from unified_memory.models.schemas import IngestRecordsRequest, IngestResponse

router = APIRouter()


@router.post("/records", response_model=IngestResponse)
async def ingest_records(
    request: IngestRecordsRequest,
    pipeline: RecordIngestionPipeline = Depends(get_ingest_pipeline),
) -> IngestResponse:
    try:
        records = [r.to_domain() for r in request.records]
        return await pipeline.ingest_records(records)
    except MemoryEngineError as e:
        raise to_http_exception(e) from e
