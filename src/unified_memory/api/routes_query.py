"""Query endpoint."""

from __future__ import annotations

from dataclasses import replace

from fastapi import APIRouter, Depends

from unified_memory.api.dependencies import get_retriever, get_settings
from unified_memory.api.errors import to_http_exception
from unified_memory.config.settings import Settings
from unified_memory.exceptions import MemoryEngineError
from unified_memory.models.schemas import QueryRequest, QueryResponse
from unified_memory.retrieval.retriever import Retriever

router = APIRouter()


@router.post("/query", response_model=QueryResponse)
async def query(
    request: QueryRequest,
    retriever: Retriever = Depends(get_retriever),
    settings: Settings = Depends(get_settings),
) -> QueryResponse:
    overrides = request.model_dump(exclude={"query"}, exclude_none=True)
    try:
        config = replace(settings.retrieval_config(), **overrides)
        result = await retriever.retrieve(request.query, config)
    except MemoryEngineError as e:
        raise to_http_exception(e) from e
    return QueryResponse.from_result(result)
