"""Tests for the retrieval orchestrator."""

from __future__ import annotations

import pytest

from unified_memory.chunking.record_chunker import RecordChunker
from unified_memory.config.options import ChunkingConfig, RetrievalConfig
from unified_memory.exceptions import ProviderError, StoreError, ValidationError
from unified_memory.ingestion.pipeline import RecordIngestionPipeline
from unified_memory.models.domain import RelationEdge, RelationSource, RelationType
from unified_memory.retrieval.retriever import Retriever

STAGES = {"embed", "vector_search", "hydrate", "relation_expand", "temporal_boost"}


@pytest.fixture
def embedder(fake_embedder):
    return fake_embedder


@pytest.fixture
def make_retriever(fixed_now):
    def build(store, embedder, **config):
        return Retriever(store, embedder, RetrievalConfig(**config), now=lambda: fixed_now)

    return build


@pytest.fixture
def corpus(record_factory):
    auth = record_factory(
        "ENG-1", "Fix authentication issue", "Users hit auth errors when the session expires."
    )
    roadmap = record_factory("ENG-2", "Quarterly roadmap planning", "Discuss goals for Q3.")
    ticket = record_factory(
        "4821",
        "Cannot log in",
        "Customer locked out since Monday.",
        source_system="zendesk",
        record_kind="ticket",
        relations={"linked_issues": [auth.id]},
    )
    pr = record_factory(
        "77",
        "Session cookie change",
        "Shorter cookie lifetime.",
        source_system="github",
        record_kind="pull_request",
        relations={"linked_issues": [ticket.id]},
    )
    return {"auth": auth, "roadmap": roadmap, "ticket": ticket, "pr": pr}



@pytest.fixture
async def pipeline(store, embedder, corpus):
    ingest = RecordIngestionPipeline(
        store, RecordChunker(ChunkingConfig(strategy="relational")), embedder
    )
    await ingest.ingest_records(list(corpus.values()))
    await ingest.rebuild_relations()
    return ingest


async def test_query_finds_matching_record_and_related_ticket(
    pipeline, store, embedder, corpus, make_retriever
):
    result = await make_retriever(store, embedder, chunk_limit=1).retrieve(
        "authentication issues"
    )

    assert result.query == "authentication issues"
    assert result.chunks[0].record_id == corpus["auth"].id
    assert [r.id for r in result.records] == [corpus["auth"].id, corpus["ticket"].id]
    assert [e.key for e in result.relations] == [
        (corpus["ticket"].id, corpus["auth"].id, "related_to")
    ]
    stats = result.stats
    assert (stats.matched_records, stats.expanded_records) == (1, 1)
    assert stats.total_records == 2
    assert stats.total_relations == 1
    assert set(stats.stage_timings_ms) == STAGES
    assert stats.retrieval_time_ms >= 0


async def test_depth_two_reaches_second_hop(pipeline, store, embedder, corpus, make_retriever):
    result = await make_retriever(store, embedder, chunk_limit=1, relation_depth=2).retrieve(
        "authentication issues"
    )
    assert [r.id for r in result.records] == [
        corpus["auth"].id,
        corpus["ticket"].id,
        corpus["pr"].id,
    ]
    assert result.stats.expanded_records == 2


async def test_relations_can_be_disabled(pipeline, store, embedder, corpus, make_retriever):
    for config in ({"include_relations": False}, {"relation_depth": 0}):
        result = await make_retriever(store, embedder, chunk_limit=1, **config).retrieve(
            "authentication issues"
        )
        assert [r.id for r in result.records] == [corpus["auth"].id]
        assert result.relations == []


async def test_non_record_endpoints_stay_in_edge_list(
    pipeline, store, embedder, corpus, make_retriever
):
    await store.upsert_relation_edges(
        [
            RelationEdge(
                corpus["auth"].id, "sam", RelationType.ASSIGNED_TO, 1.0, RelationSource.EXPLICIT
            )
        ]
    )
    result = await make_retriever(store, embedder, chunk_limit=1).retrieve(
        "authentication issues"
    )
    assert "sam" in {e.to_id for e in result.relations}
    assert "sam" not in {r.id for r in result.records}


def _label(a, b, label, confidence):
    return RelationEdge(
        a.id, b.id, RelationType.RELATED_TO, confidence, RelationSource.HUMAN_LABEL, {"label": label}
    )


async def test_only_confirmed_human_labels_are_followed(store, embedder, corpus, make_retriever):
    auth, roadmap, ticket = corpus["auth"], corpus["roadmap"], corpus["ticket"]
    ingest = RecordIngestionPipeline(store, RecordChunker(), embedder)
    await ingest.ingest_records([auth, roadmap, ticket])
    await store.save_human_label(_label(auth, roadmap, "unrelated", 0.0))
    await store.save_human_label(_label(ticket, auth, "related", 1.0))

    result = await make_retriever(store, embedder, chunk_limit=1).retrieve(
        "authentication issues"
    )
    assert [r.id for r in result.records] == [auth.id, ticket.id]
    assert [e.source for e in result.relations] == [RelationSource.HUMAN_LABEL]


async def test_min_similarity_filters_everything(pipeline, store, embedder, make_retriever):
    result = await make_retriever(store, embedder, min_similarity=0.99).retrieve(
        "authentication issues"
    )
    assert result.chunks == []
    assert result.records == []
    assert result.stats.total_chunks == 0


async def test_recency_boost_lifts_newer_record(store, embedder, record_factory, make_retriever):
    old = record_factory("ENG-1", body="billing export", days_ago=29)
    new = record_factory("ENG-2", body="billing export", days_ago=0)
    ingest = RecordIngestionPipeline(store, RecordChunker(), embedder)
    await ingest.ingest_records([old, new])

    result = await make_retriever(store, embedder).retrieve("billing export")
    assert [c.record_id for c in result.chunks] == [new.id, old.id]
    assert result.chunks[0].similarity > result.chunks[1].similarity


async def test_empty_corpus(store, embedder, make_retriever):
    result = await make_retriever(store, embedder).retrieve("anything")
    assert result.chunks == []
    assert result.records == []
    assert result.relations == []
    assert result.stats.matched_records == 0


async def test_blank_query_rejected_before_embedding(store, embedder, make_retriever):
    with pytest.raises(ValidationError):
        await make_retriever(store, embedder).retrieve("   ")
    assert embedder.embed_calls == 0


class BrokenEmbedder:
    model = "broken"
    dimensions = 3

    async def embed(self, text: str) -> list[float]:
        raise RuntimeError("connection reset")


class BrokenStore:
    async def vector_search(self, query_vector, limit):
        raise RuntimeError("disk I/O error")


async def test_embedding_failure_is_provider_error(store, make_retriever):
    with pytest.raises(ProviderError, match="connection reset"):
        await make_retriever(store, BrokenEmbedder()).retrieve("auth")


async def test_search_failure_is_store_error(embedder, make_retriever):
    with pytest.raises(StoreError, match="disk I/O error"):
        await make_retriever(BrokenStore(), embedder).retrieve("auth")
