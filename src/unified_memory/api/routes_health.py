"""Health check endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from unified_memory.api.dependencies import get_store
from unified_memory.api.errors import to_http_exception
from unified_memory.exceptions import MemoryEngineError
from unified_memory.models.schemas import HealthResponse
from unified_memory.storage.sqlite_store import SQLiteMemoryStore

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(store: SQLiteMemoryStore = Depends(get_store)) -> HealthResponse:
    try:
        return HealthResponse(
            status="ok",
            record_count=await store.count_records(),
            chunk_count=await store.count_chunks(),
            relation_count=await store.count_relations(),
        )
    except MemoryEngineError as e:
        raise to_http_exception(e) from e
