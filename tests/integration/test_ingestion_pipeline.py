"""Integration tests for record ingestion and relation rebuilds."""

import pytest

from unified_memory.chunking.record_chunker import RecordChunker
from unified_memory.config.options import ChunkingConfig, InferenceConfig
from unified_memory.exceptions import ProviderError, ValidationError
from unified_memory.ingestion.pipeline import RecordIngestionPipeline
from unified_memory.models.domain import RelationEdge, RelationSource, RelationType


@pytest.fixture
def pipeline(store, fake_embedder):
    return RecordIngestionPipeline(
        store, RecordChunker(ChunkingConfig(strategy="relational")), fake_embedder
    )


@pytest.fixture
def records(record_factory):
    ticket = record_factory(
        "4821", "Login fails", "Customer cannot sign in.", source_system="zendesk", record_kind="ticket"
    )
    issue = record_factory(
        "ENG-1",
        "Fix login",
        "Session expires early.",
        relations={"triggered_by_ticket": ticket.id},
    )
    note = record_factory("ENG-2", body="Follow-up for ENG-1.")
    return [ticket, issue, note]


async def test_ingest_chunks_and_embeds(pipeline, store, records, fake_embedder):
    response = await pipeline.ingest_records(records)

    # title block plus body for the two titled records, body only for the note
    assert response.model_dump() == {
        "records_ingested": 3,
        "chunks_created": 5,
        "status": "indexed",
    }
    assert await store.count_chunks() == 5
    assert fake_embedder.embed_batch_calls == 1
    stored = await store.get_all_records(with_embeddings=True)
    assert all(r.embedding is not None for r in stored)


async def test_reingest_supersedes_chunks(pipeline, store, records):
    await pipeline.ingest_records(records)
    records[0].body = None
    await pipeline.ingest_records(records[:1])
    assert await store.count_records() == 3
    assert await store.count_chunks() == 4


async def test_empty_and_textless_batches(pipeline, store, record_factory):
    assert (await pipeline.ingest_records([])).status == "empty"
    response = await pipeline.ingest_records([record_factory("C1", record_kind="message")])
    assert (response.status, response.chunks_created) == ("no_chunks", 0)
    assert await store.count_records() == 1


async def test_rebuild_relations(pipeline, store, records):
    ticket, issue, note = records
    await pipeline.ingest_records(records)

    result = await pipeline.rebuild_relations()
    keys = {e.key for e in await store.get_relation_edges()}
    assert (issue.id, ticket.id, "triggered_by") in keys
    assert (note.id, issue.id, "references") in keys
    assert len(keys) == len(result.edges)
    assert result.stats.records == 3


async def test_rebuild_drops_stale_edges_and_keeps_labels(pipeline, store, records):
    ticket, issue, note = records
    await pipeline.ingest_records(records)
    await store.upsert_relation_edges(
        [RelationEdge(note.id, ticket.id, RelationType.SIMILAR_TO, 0.9, RelationSource.INFERRED)]
    )
    label = RelationEdge(
        ticket.id,
        note.id,
        RelationType.RELATED_TO,
        0.0,
        RelationSource.HUMAN_LABEL,
        {"label": "unrelated"},
    )
    await store.save_human_label(label)

    await pipeline.rebuild_relations(InferenceConfig(include_inferred=False))

    keys = {e.key for e in await store.get_relation_edges()}
    assert (note.id, ticket.id, "similar_to") not in keys
    assert (note.id, issue.id, "references") not in keys
    assert label.key in keys


async def test_sharded_rebuild_matches_single(pipeline, store, records):
    await pipeline.ingest_records(records)
    single = {e.key for e in (await pipeline.rebuild_relations()).edges}
    sharded = {e.key for e in (await pipeline.rebuild_relations(shards=3)).edges}
    assert single == sharded


async def test_rebuild_rejects_zero_shards(pipeline):
    with pytest.raises(ValidationError):
        await pipeline.rebuild_relations(shards=0)


class FailingEmbedder:
    model = "broken"
    dimensions = 512

    async def embed(self, text):
        raise ProviderError("embedding service unavailable")

    async def embed_batch(self, texts):
        raise ProviderError("embedding service unavailable")


async def test_reingest_without_text_drops_old_chunks(
    pipeline, store, record_factory, fake_embedder
):
    record = record_factory("ENG-9", "Secret rollout plan", "Old body text")
    await pipeline.ingest_records([record])
    assert await store.count_chunks() == 2

    record.title = None
    record.body = None
    response = await pipeline.ingest_records([record])

    assert response.status == "no_chunks"
    assert await store.count_chunks() == 0
    hits = await store.vector_search(fake_embedder.vector("secret rollout plan"), limit=5)
    assert hits == []


async def test_embedding_failure_keeps_previous_chunks(store, record_factory, fake_embedder):
    chunker = RecordChunker(ChunkingConfig(strategy="relational"))
    record = record_factory("ENG-9", "Secret rollout plan", "Old body text")
    await RecordIngestionPipeline(store, chunker, fake_embedder).ingest_records([record])

    record.body = "New body text"
    broken = RecordIngestionPipeline(store, chunker, FailingEmbedder())
    with pytest.raises(ProviderError):
        await broken.ingest_records([record])

    hits = await store.vector_search(fake_embedder.vector("secret rollout plan"), limit=5)
    assert {h.record_id for h in hits} == {record.id}
    assert {h.unit.content for h in hits} >= {"Old body text"}
    stored = await store.get_records_by_ids([record.id])
    assert stored[record.id].body == "Old body text"
