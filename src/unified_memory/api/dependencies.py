"""FastAPI dependency injection helpers."""

from __future__ import annotations

from fastapi import Request

from unified_memory.config.settings import Settings
from unified_memory.ingestion.pipeline import RecordIngestionPipeline
from unified_memory.retrieval.retriever import Retriever
from unified_memory.storage.sqlite_store import SQLiteMemoryStore


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> SQLiteMemoryStore:
    return request.app.state.store


def get_ingest_pipeline(request: Request) -> RecordIngestionPipeline:
    return request.app.state.ingest_pipeline


def get_retriever(request: Request) -> Retriever:
    return request.app.state.retriever
