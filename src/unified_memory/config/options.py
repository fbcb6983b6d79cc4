"""Per-component option structs with documented defaults, validated on construction."""

from __future__ import annotations

import math
from dataclasses import dataclass, field

from unified_memory.config.constants import (
    DEFAULT_CHUNK_LIMIT,
    DEFAULT_CHUNK_OVERLAP,
    DEFAULT_KEYWORD_OVERLAP_THRESHOLD,
    DEFAULT_MAX_AGE_DAYS,
    DEFAULT_MAX_CHUNK_SIZE,
    DEFAULT_MAX_PAIRS,
    DEFAULT_RECENCY_BOOST,
    DEFAULT_RELATION_DEPTH,
    DEFAULT_SEMANTIC_WEIGHT,
    DEFAULT_SIMILARITY_THRESHOLD,
    DOMAIN_VOCABULARY,
    LABELING_PAIR_CAP,
)
from unified_memory.exceptions import ValidationError
from unified_memory.models.domain import ChunkMethod


def _check_unit_interval(name: str, value: float) -> None:
    if not math.isfinite(value) or not 0.0 <= value <= 1.0:
        raise ValidationError(f"{name} must be a finite number in [0, 1], got {value!r}")


@dataclass(frozen=True)
class ChunkingConfig:
    strategy: ChunkMethod = ChunkMethod.FIXED_SIZE
    max_chunk_size: int = DEFAULT_MAX_CHUNK_SIZE
    overlap: int = DEFAULT_CHUNK_OVERLAP
    preserve_metadata: bool = True

    def __post_init__(self) -> None:
        try:
            object.__setattr__(self, "strategy", ChunkMethod(self.strategy))
        except ValueError as e:
            raise ValidationError(f"Unknown chunking strategy: {self.strategy!r}") from e
        if self.max_chunk_size < 1:
            raise ValidationError("max_chunk_size must be >= 1")
        if self.overlap < 0 or self.overlap >= self.max_chunk_size:
            raise ValidationError(
                f"overlap must be in [0, max_chunk_size), got {self.overlap} "
                f"with max_chunk_size={self.max_chunk_size}"
            )


@dataclass(frozen=True)
class InferenceConfig:
    """Relation inference options.

    ``similarity_threshold`` applies to pairs scored with embeddings,
    ``keyword_overlap_threshold`` to keyword-only pairs. ``max_pairs`` bounds
    the pairwise enumeration; ``None`` disables the cap.
    """

    similarity_threshold: float = DEFAULT_SIMILARITY_THRESHOLD
    keyword_overlap_threshold: float = DEFAULT_KEYWORD_OVERLAP_THRESHOLD
    include_inferred: bool = True
    use_semantic_similarity: bool = False
    semantic_weight: float = DEFAULT_SEMANTIC_WEIGHT
    max_pairs: int | None = DEFAULT_MAX_PAIRS
    enable_duplicate_detection: bool = True
    include_actor_edges: bool = False
    vocabulary: tuple[str, ...] = DOMAIN_VOCABULARY

    def __post_init__(self) -> None:
        _check_unit_interval("similarity_threshold", self.similarity_threshold)
        _check_unit_interval("keyword_overlap_threshold", self.keyword_overlap_threshold)
        _check_unit_interval("semantic_weight", self.semantic_weight)
        if self.max_pairs is not None and self.max_pairs < 0:
            raise ValidationError("max_pairs must be >= 0 or None")
        object.__setattr__(
            self, "vocabulary", tuple(term.lower() for term in self.vocabulary)
        )


@dataclass(frozen=True)
class LabelingConfig:
    pair_cap: int = LABELING_PAIR_CAP

    def __post_init__(self) -> None:
        if self.pair_cap < 0:
            raise ValidationError("pair_cap must be >= 0")


@dataclass(frozen=True)
class TemporalConfig:
    max_age_days: float = DEFAULT_MAX_AGE_DAYS
    recency_boost: float = DEFAULT_RECENCY_BOOST

    def __post_init__(self) -> None:
        if not math.isfinite(self.max_age_days) or self.max_age_days <= 0:
            raise ValidationError("max_age_days must be a finite number > 0")
        if not math.isfinite(self.recency_boost) or self.recency_boost < 0:
            raise ValidationError("recency_boost must be a finite number >= 0")


@dataclass(frozen=True)
class RetrievalConfig:
    chunk_limit: int = DEFAULT_CHUNK_LIMIT
    include_relations: bool = True
    relation_depth: int = DEFAULT_RELATION_DEPTH
    min_similarity: float | None = None
    apply_temporal_boost: bool = True
    temporal: TemporalConfig = field(default_factory=TemporalConfig)

    def __post_init__(self) -> None:
        if self.chunk_limit < 1:
            raise ValidationError("chunk_limit must be >= 1")
        if self.relation_depth < 0:
            raise ValidationError("relation_depth must be >= 0")
        if self.min_similarity is not None and not math.isfinite(self.min_similarity):
            raise ValidationError("min_similarity must be finite")
