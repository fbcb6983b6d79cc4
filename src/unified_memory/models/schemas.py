"""Pydantic models for API request/response serialization."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from unified_memory.models.domain import (
    InferenceStats,
    LabelingCandidate,
    NormalizedRecord,
    RelationEdge,
    RelationType,
    RetrievalResult,
    ScoredChunk,
    Timestamps,
)


class RecordIn(BaseModel):
    source_system: str
    workspace: str
    record_kind: str
    local_id: str
    created_at: datetime
    updated_at: datetime | None = None
    title: str | None = None
    body: str | None = None
    actors: dict[str, list[str]] = Field(default_factory=dict)
    properties: dict[str, Any] = Field(default_factory=dict)
    relations: dict[str, Any] = Field(default_factory=dict)
    visibility: str = "team"

    def to_domain(self) -> NormalizedRecord:
        return NormalizedRecord(
            source_system=self.source_system,
            workspace=self.workspace,
            record_kind=self.record_kind,
            local_id=self.local_id,
            timestamps=Timestamps(created_at=self.created_at, updated_at=self.updated_at),
            title=self.title,
            body=self.body,
            actors=self.actors,
            properties=self.properties,
            relations=self.relations,
            visibility=self.visibility,
        )


class IngestRecordsRequest(BaseModel):
    records: list[RecordIn]


class IngestResponse(BaseModel):
    records_ingested: int
    chunks_created: int
    status: str


class QueryRequest(BaseModel):
    query: str
    chunk_limit: int | None = None
    include_relations: bool | None = None
    relation_depth: int | None = None
    min_similarity: float | None = None
    apply_temporal_boost: bool | None = None


class RecordOut(BaseModel):
    id: str
    source_system: str
    workspace: str
    record_kind: str
    local_id: str
    title: str | None
    body: str | None
    created_at: datetime
    actors: dict[str, list[str]]
    properties: dict[str, Any]

    @classmethod
    def from_domain(cls, record: NormalizedRecord) -> RecordOut:
        return cls(
            id=record.id,
            source_system=record.source_system,
            workspace=record.workspace,
            record_kind=record.record_kind,
            local_id=record.local_id,
            title=record.title,
            body=record.body,
            created_at=record.created_at,
            actors=record.actors,
            properties=record.properties,
        )


class ChunkOut(BaseModel):
    chunk_id: str
    record_id: str
    index: int
    content: str
    similarity: float
    metadata: dict[str, Any]

    @classmethod
    def from_domain(cls, scored: ScoredChunk) -> ChunkOut:
        return cls(
            chunk_id=scored.unit.chunk_id,
            record_id=scored.unit.record_id,
            index=scored.unit.index,
            content=scored.unit.content,
            similarity=scored.similarity,
            metadata=scored.unit.metadata,
        )


class EdgeOut(BaseModel):
    from_id: str
    to_id: str
    relation_type: str
    confidence: float
    source: str
    metadata: dict[str, Any]

    @classmethod
    def from_domain(cls, edge: RelationEdge) -> EdgeOut:
        return cls(
            from_id=edge.from_id,
            to_id=edge.to_id,
            relation_type=edge.relation_type.value,
            confidence=edge.confidence,
            source=edge.source.value,
            metadata=edge.metadata,
        )


class RetrievalStatsOut(BaseModel):
    total_chunks: int
    total_records: int
    total_relations: int
    matched_records: int
    expanded_records: int
    retrieval_time_ms: float
    stage_timings_ms: dict[str, float]


class QueryResponse(BaseModel):
    query: str
    chunks: list[ChunkOut]
    records: list[RecordOut]
    relations: list[EdgeOut]
    stats: RetrievalStatsOut

    @classmethod
    def from_result(cls, result: RetrievalResult) -> QueryResponse:
        s = result.stats
        return cls(
            query=result.query,
            chunks=[ChunkOut.from_domain(c) for c in result.chunks],
            records=[RecordOut.from_domain(r) for r in result.records],
            relations=[EdgeOut.from_domain(e) for e in result.relations],
            stats=RetrievalStatsOut(
                total_chunks=s.total_chunks,
                total_records=s.total_records,
                total_relations=s.total_relations,
                matched_records=s.matched_records,
                expanded_records=s.expanded_records,
                retrieval_time_ms=s.retrieval_time_ms,
                stage_timings_ms=s.stage_timings_ms,
            ),
        )


class InferRequest(BaseModel):
    similarity_threshold: float | None = None
    keyword_overlap_threshold: float | None = None
    include_inferred: bool | None = None
    use_semantic_similarity: bool | None = None
    semantic_weight: float | None = None
    max_pairs: int | None = None
    include_actor_edges: bool | None = None
    shards: int = 1


class InferenceStatsOut(BaseModel):
    records: int
    pairs_total: int
    pairs_examined: int
    semantic_pairs: int
    accepted_pairs: int
    truncated: bool
    edges_by_type: dict[str, int]
    edges_by_source: dict[str, int]
    avg_confidence: float

    @classmethod
    def from_domain(cls, stats: InferenceStats) -> InferenceStatsOut:
        return cls(**vars(stats))


class InferResponse(BaseModel):
    edges_stored: int
    stats: InferenceStatsOut


class LabelingCandidateOut(BaseModel):
    record_a_id: str
    record_a_title: str | None
    record_b_id: str
    record_b_title: str | None
    similarity: float
    bucket: Literal["high", "medium", "low"]
    shared_labels: list[str]
    same_assignee: bool

    @classmethod
    def from_domain(cls, candidate: LabelingCandidate) -> LabelingCandidateOut:
        return cls(
            record_a_id=candidate.record_a.id,
            record_a_title=candidate.record_a.title,
            record_b_id=candidate.record_b.id,
            record_b_title=candidate.record_b.title,
            similarity=candidate.similarity,
            bucket=candidate.bucket,
            shared_labels=candidate.shared_labels,
            same_assignee=candidate.same_assignee,
        )


class LabelingStatsOut(BaseModel):
    total_records: int
    total_possible_pairs: int
    labeled_pairs: int
    high_count: int
    medium_count: int
    low_count: int
    truncated: bool


class LabelingCandidatesResponse(BaseModel):
    candidates: list[LabelingCandidateOut]
    stats: LabelingStatsOut


class LabelRequest(BaseModel):
    from_id: str
    to_id: str
    label: Literal["related", "unrelated", "uncertain"]
    relation_type: RelationType = RelationType.RELATED_TO
    notes: str | None = None


class LabelResponse(BaseModel):
    action: Literal["inserted", "updated"]
    from_id: str
    to_id: str
    label: str


class EvaluateRequest(BaseModel):
    # Human labels judge pairs, so by default neither type nor direction must match.
    match_type: bool = False
    directed: bool = False


class EvaluateResponse(BaseModel):
    ground_truth_edges: int
    predicted_edges: int
    true_positives: int
    false_positives: int
    false_negatives: int
    precision: float
    recall: float
    f1_score: float


class HealthResponse(BaseModel):
    status: str
    record_count: int
    chunk_count: int
    relation_count: int
