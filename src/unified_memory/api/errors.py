"""Translation of engine exceptions into HTTP errors."""

from __future__ import annotations

from fastapi import HTTPException

from unified_memory.exceptions import (
    ConfigurationError,
    MemoryEngineError,
    ProviderError,
    StoreError,
    ValidationError,
)
from unified_memory.observability.logger import get_logger

logger = get_logger("api_errors")

STATUS_BY_ERROR: tuple[tuple[type[MemoryEngineError], int], ...] = (
    (ValidationError, 400),
    (ConfigurationError, 400),
    (ProviderError, 502),
    (StoreError, 503),
)


def to_http_exception(error: MemoryEngineError) -> HTTPException:
    status = next((code for cls, code in STATUS_BY_ERROR if isinstance(error, cls)), 500)
    log = logger.warning if status < 500 else logger.error
    log("request_rejected", error_type=type(error).__name__, status=status, error=str(error))
    return HTTPException(status_code=status, detail=str(error))
