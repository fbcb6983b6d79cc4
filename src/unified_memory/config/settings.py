"""Central configuration via Pydantic Settings. All values driven by env vars."""

from __future__ import annotations

from pydantic_settings import BaseSettings

from unified_memory.config.options import (
    ChunkingConfig,
    InferenceConfig,
    LabelingConfig,
    RetrievalConfig,
    TemporalConfig,
)
from unified_memory.exceptions import ConfigurationError, ValidationError


class Settings(BaseSettings):
    # API Keys
    openai_api_key: str = ""

    # Embedding
    embedding_model: str = "text-embedding-3-small"
    embedding_dimensions: int = 1536
    embedding_batch_size: int = 100

    # Chunking
    chunk_strategy: str = "relational"
    chunk_max_size: int = 500
    chunk_overlap: int = 50
    chunk_preserve_metadata: bool = True

    # Relation inference
    relation_similarity_threshold: float = 0.85
    relation_keyword_overlap_threshold: float = 0.65
    relation_use_semantic: bool = True
    relation_semantic_weight: float = 0.7
    relation_max_pairs: int | None = 200_000
    relation_include_actor_edges: bool = False
    labeling_pair_cap: int = 500

    # Temporal
    temporal_max_age_days: float = 30.0
    temporal_recency_boost: float = 0.1

    # Retrieval
    retrieval_chunk_limit: int = 10
    retrieval_include_relations: bool = True
    retrieval_relation_depth: int = 1
    retrieval_min_similarity: float | None = None

    # Storage paths
    sqlite_db_path: str = "data/memory.db"
    embedding_cache_db_path: str = "data/embedding_cache.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Logging
    log_level: str = "INFO"
    log_json: bool = True

    model_config = {"env_file": ".env", "env_prefix": "UM_"}

    def chunking_config(self) -> ChunkingConfig:
        return self._build(
            ChunkingConfig,
            strategy=self.chunk_strategy,
            max_chunk_size=self.chunk_max_size,
            overlap=self.chunk_overlap,
            preserve_metadata=self.chunk_preserve_metadata,
        )

    def inference_config(self) -> InferenceConfig:
        return self._build(
            InferenceConfig,
            similarity_threshold=self.relation_similarity_threshold,
            keyword_overlap_threshold=self.relation_keyword_overlap_threshold,
            use_semantic_similarity=self.relation_use_semantic,
            semantic_weight=self.relation_semantic_weight,
            max_pairs=self.relation_max_pairs,
            include_actor_edges=self.relation_include_actor_edges,
        )

    def labeling_config(self) -> LabelingConfig:
        return self._build(LabelingConfig, pair_cap=self.labeling_pair_cap)

    def temporal_config(self) -> TemporalConfig:
        return self._build(
            TemporalConfig,
            max_age_days=self.temporal_max_age_days,
            recency_boost=self.temporal_recency_boost,
        )

    def retrieval_config(self) -> RetrievalConfig:
        return self._build(
            RetrievalConfig,
            chunk_limit=self.retrieval_chunk_limit,
            include_relations=self.retrieval_include_relations,
            relation_depth=self.retrieval_relation_depth,
            min_similarity=self.retrieval_min_similarity,
            temporal=self.temporal_config(),
        )

    @staticmethod
    def _build(cls, **kwargs):
        try:
            return cls(**kwargs)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {cls.__name__} settings: {e}") from e
