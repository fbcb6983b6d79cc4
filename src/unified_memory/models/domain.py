"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from unified_memory.exceptions import ValidationError

ID_SEPARATOR = "|"


class ChunkMethod(str, Enum):
    FIXED_SIZE = "fixed-size"
    SEMANTIC = "semantic"
    RELATIONAL = "relational"


class RelationType(str, Enum):
    TRIGGERED_BY = "triggered_by"
    RESULTED_IN = "resulted_in"
    BELONGS_TO = "belongs_to"
    ASSIGNED_TO = "assigned_to"
    CREATED_BY = "created_by"
    DECIDED_BY = "decided_by"
    PARTICIPATED_IN = "participated_in"
    SIMILAR_TO = "similar_to"
    DUPLICATE_OF = "duplicate_of"
    REFERENCES = "references"
    RELATED_TO = "related_to"


class RelationSource(str, Enum):
    EXPLICIT = "explicit"
    INFERRED = "inferred"
    HUMAN_LABEL = "human_label"


def make_record_id(source_system: str, workspace: str, record_kind: str, local_id: str) -> str:
    """Render the composite identity as ``source|workspace|kind|local_id``."""
    parts = (source_system, workspace, record_kind, local_id)
    for part in parts:
        if not part or ID_SEPARATOR in part:
            raise ValidationError(f"Invalid record identity component: {part!r}")
    return ID_SEPARATOR.join(parts)


def parse_record_id(record_id: str) -> tuple[str, str, str, str] | None:
    parts = record_id.split(ID_SEPARATOR)
    if len(parts) != 4 or not all(parts):
        return None
    return parts[0], parts[1], parts[2], parts[3]


@dataclass
class Timestamps:
    created_at: datetime
    updated_at: datetime | None = None


@dataclass
class NormalizedRecord:
    source_system: str
    workspace: str
    record_kind: str
    local_id: str
    timestamps: Timestamps
    title: str | None = None
    body: str | None = None
    actors: dict[str, list[str]] = field(default_factory=dict)
    properties: dict[str, Any] = field(default_factory=dict)
    relations: dict[str, Any] = field(default_factory=dict)
    visibility: str = "team"
    # Averaged chunk embedding, filled in by the store on request.
    embedding: list[float] | None = None

    def __post_init__(self) -> None:
        self.id = make_record_id(
            self.source_system, self.workspace, self.record_kind, self.local_id
        )

    @property
    def created_at(self) -> datetime:
        return self.timestamps.created_at


@dataclass
class RetrievableUnit:
    chunk_id: str
    record_id: str
    index: int
    content: str
    method: ChunkMethod
    metadata: dict = field(default_factory=dict)


@dataclass
class EmbeddingVector:
    chunk_id: str
    vector: list[float]
    model: str


@dataclass
class RelationEdge:
    from_id: str
    to_id: str
    relation_type: RelationType
    confidence: float
    source: RelationSource
    metadata: dict = field(default_factory=dict)
    created_at: datetime | None = None

    @property
    def key(self) -> tuple[str, str, str]:
        return self.from_id, self.to_id, self.relation_type.value


@dataclass
class ScoredChunk:
    unit: RetrievableUnit
    similarity: float

    @property
    def record_id(self) -> str:
        return self.unit.record_id


@dataclass
class RetrievalStats:
    total_chunks: int
    total_records: int
    total_relations: int
    matched_records: int
    expanded_records: int
    retrieval_time_ms: float
    stage_timings_ms: dict[str, float] = field(default_factory=dict)


@dataclass
class RetrievalResult:
    query: str
    chunks: list[ScoredChunk]
    records: list[NormalizedRecord]
    relations: list[RelationEdge]
    stats: RetrievalStats


@dataclass
class InferenceStats:
    records: int
    pairs_total: int
    pairs_examined: int
    semantic_pairs: int
    accepted_pairs: int
    truncated: bool
    edges_by_type: dict[str, int] = field(default_factory=dict)
    edges_by_source: dict[str, int] = field(default_factory=dict)
    avg_confidence: float = 0.0


@dataclass
class InferenceResult:
    edges: list[RelationEdge]
    stats: InferenceStats


@dataclass
class LabelingCandidate:
    record_a: NormalizedRecord
    record_b: NormalizedRecord
    similarity: float
    bucket: str  # "high", "medium", "low"
    shared_labels: list[str]
    same_assignee: bool


@dataclass
class LabelingStats:
    total_records: int
    total_possible_pairs: int
    labeled_pairs: int
    high_count: int
    medium_count: int
    low_count: int
    truncated: bool


@dataclass
class LabelingResult:
    candidates: list[LabelingCandidate]
    stats: LabelingStats
