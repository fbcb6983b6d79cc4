"""FastAPI application factory with lifespan management."""

from __future__ import annotations

from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from unified_memory.api.middleware import RequestTimingMiddleware
from unified_memory.api.routes_health import router as health_router
from unified_memory.api.routes_labeling import router as labeling_router
from unified_memory.api.routes_query import router as query_router
from unified_memory.api.routes_records import router as records_router
from unified_memory.api.routes_relations import router as relations_router
from unified_memory.chunking.record_chunker import RecordChunker
from unified_memory.config.settings import Settings
from unified_memory.embeddings.cache import EmbeddingCache
from unified_memory.embeddings.cached_embedder import CachedEmbedder
from unified_memory.embeddings.openai_embedder import OpenAIEmbedder
from unified_memory.ingestion.pipeline import RecordIngestionPipeline
from unified_memory.observability.logger import get_logger, setup_logging
from unified_memory.protocols.embedder import EmbeddingProvider
from unified_memory.relations.inferrer import RelationInferrer
from unified_memory.retrieval.retriever import Retriever
from unified_memory.storage.sqlite_store import SQLiteMemoryStore

logger = get_logger("app")


async def build_embedder(settings: Settings) -> EmbeddingProvider:
    raw_embedder = OpenAIEmbedder(
        api_key=settings.openai_api_key,
        model=settings.embedding_model,
        batch_size=settings.embedding_batch_size,
        dimensions=settings.embedding_dimensions,
    )
    Path(settings.embedding_cache_db_path).parent.mkdir(parents=True, exist_ok=True)
    embedding_cache = EmbeddingCache(settings.embedding_cache_db_path)
    await embedding_cache.initialize()
    return CachedEmbedder(delegate=raw_embedder, cache=embedding_cache)


def create_app(
    settings: Settings | None = None,
    embedder: EmbeddingProvider | None = None,
) -> FastAPI:
    """Build the app; ``embedder`` replaces the cached OpenAI provider when given."""

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app_settings = settings or Settings()
        setup_logging(app_settings.log_level, app_settings.log_json)

        # Storage
        Path(app_settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)
        store = SQLiteMemoryStore(app_settings.sqlite_db_path)
        await store.initialize()

        # Embedding (with cache)
        provider = embedder or await build_embedder(app_settings)

        # Chunking, inference, ingestion, retrieval
        chunker = RecordChunker(app_settings.chunking_config())
        inferrer = RelationInferrer(app_settings.inference_config())
        ingest_pipeline = RecordIngestionPipeline(
            store=store, chunker=chunker, embedder=provider, inferrer=inferrer
        )
        retriever = Retriever(
            store=store, embedder=provider, config=app_settings.retrieval_config()
        )

        app.state.settings = app_settings
        app.state.store = store
        app.state.ingest_pipeline = ingest_pipeline
        app.state.retriever = retriever

        logger.info(
            "startup_complete",
            records=await store.count_records(),
            chunks=await store.count_chunks(),
            relations=await store.count_relations(),
            embedding_model=provider.model,
        )

        yield

        logger.info("shutdown_complete")

    app = FastAPI(
        title="Unified Memory Engine",
        version="1.0.0",
        description="Cross-tool workspace memory: chunking, relation graph and retrieval",
        lifespan=lifespan,
    )
    app.add_middleware(RequestTimingMiddleware)
    app.include_router(health_router, tags=["health"])
    app.include_router(records_router, tags=["records"])
    app.include_router(query_router, tags=["query"])
    app.include_router(relations_router, tags=["relations"])
    app.include_router(labeling_router, tags=["labeling"])
    return app
