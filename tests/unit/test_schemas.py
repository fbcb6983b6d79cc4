"""Tests for Pydantic schemas."""

from datetime import datetime, timezone

import pytest
from pydantic import ValidationError

from unified_memory.models.domain import (
    ChunkMethod,
    InferenceStats,
    RelationEdge,
    RelationSource,
    RelationType,
    RetrievableUnit,
    RetrievalResult,
    RetrievalStats,
    ScoredChunk,
)
from unified_memory.models.schemas import (
    HealthResponse,
    InferenceStatsOut,
    IngestResponse,
    LabelRequest,
    QueryRequest,
    QueryResponse,
    RecordIn,
)


def test_record_in_to_domain():
    record = RecordIn(
        source_system="zendesk",
        workspace="acme",
        record_kind="ticket",
        local_id="4821",
        created_at="2024-06-01T10:00:00Z",
        title="Login fails",
        relations={"linked_issues": ["linear|acme|issue|ENG-1"]},
    ).to_domain()
    assert record.id == "zendesk|acme|ticket|4821"
    assert record.created_at == datetime(2024, 6, 1, 10, tzinfo=timezone.utc)
    assert record.relations["linked_issues"] == ["linear|acme|issue|ENG-1"]
    assert record.embedding is None


def test_record_in_requires_created_at():
    with pytest.raises(ValidationError):
        RecordIn(source_system="linear", workspace="acme", record_kind="issue", local_id="1")


def test_query_request_defaults():
    req = QueryRequest(query="authentication issues")
    assert req.chunk_limit is None
    assert req.model_dump(exclude_none=True) == {"query": "authentication issues"}


def test_query_response_from_result(record_factory):
    record = record_factory("ENG-1", "Fix authentication issue")
    unit = RetrievableUnit(
        chunk_id=f"{record.id}:chunk:0",
        record_id=record.id,
        index=0,
        content="Fix authentication issue",
        method=ChunkMethod.FIXED_SIZE,
    )
    edge = RelationEdge(
        record.id, "github|acme|pull_request|9", RelationType.REFERENCES, 1.0, RelationSource.INFERRED
    )
    result = RetrievalResult(
        query="auth",
        chunks=[ScoredChunk(unit=unit, similarity=0.9)],
        records=[record],
        relations=[edge],
        stats=RetrievalStats(1, 1, 1, 1, 0, 3.5, {"embed": 1.0}),
    )
    data = QueryResponse.from_result(result).model_dump()
    assert data["chunks"][0]["similarity"] == 0.9
    assert data["records"][0]["id"] == record.id
    assert data["relations"][0]["relation_type"] == "references"
    assert data["relations"][0]["source"] == "inferred"
    assert data["stats"]["stage_timings_ms"] == {"embed": 1.0}


def test_inference_stats_out():
    stats = InferenceStats(3, 3, 3, 0, 1, False, {"similar_to": 1}, {"inferred": 1}, 0.5)
    out = InferenceStatsOut.from_domain(stats)
    assert out.edges_by_type == {"similar_to": 1}
    assert out.avg_confidence == 0.5


def test_label_request_validates_label():
    req = LabelRequest(from_id="a", to_id="b", label="related")
    assert req.relation_type == RelationType.RELATED_TO
    with pytest.raises(ValidationError):
        LabelRequest(from_id="a", to_id="b", label="maybe")


def test_ingest_response():
    resp = IngestResponse(records_ingested=2, chunks_created=5, status="indexed")
    assert resp.chunks_created == 5


def test_health_response():
    resp = HealthResponse(status="ok", record_count=10, chunk_count=100, relation_count=4)
    assert resp.status == "ok"
