"""Custom exception hierarchy for the unified memory engine."""


class MemoryEngineError(Exception):
    """Base exception for all memory engine errors."""


class ValidationError(MemoryEngineError, ValueError):
    """Malformed input rejected before any I/O (never retried)."""


class ConfigurationError(MemoryEngineError):
    """Error in system configuration."""


class ProviderError(MemoryEngineError):
    """Embedding provider failure; fatal to the current run."""


class StoreError(MemoryEngineError):
    """Persistent store query or connection failure; fatal to the current run."""


class IngestionError(MemoryEngineError):
    """Error during record ingestion."""


class ChunkingError(IngestionError):
    """Error during record chunking."""
