"""Seed the memory store with a small cross-tool sample workspace.

Usage:
    python scripts/seed_data.py

Requires UM_OPENAI_API_KEY in .env or environment.
"""

from __future__ import annotations

import asyncio
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from unified_memory.api.app import build_embedder
from unified_memory.chunking.record_chunker import RecordChunker
from unified_memory.config.settings import Settings
from unified_memory.ingestion.pipeline import RecordIngestionPipeline
from unified_memory.models.domain import NormalizedRecord, Timestamps, make_record_id
from unified_memory.observability.logger import setup_logging
from unified_memory.relations.inferrer import RelationInferrer
from unified_memory.storage.sqlite_store import SQLiteMemoryStore

WORKSPACE = "acme"
NOW = datetime.now(timezone.utc)


def _record(source, kind, local_id, days_ago, title, body, **extra) -> NormalizedRecord:
    return NormalizedRecord(
        source_system=source,
        workspace=WORKSPACE,
        record_kind=kind,
        local_id=local_id,
        timestamps=Timestamps(created_at=NOW - timedelta(days=days_ago)),
        title=title,
        body=body,
        **extra,
    )


ZENDESK_TICKET = make_record_id("zendesk", WORKSPACE, "ticket", "4821")
LINEAR_AUTH = make_record_id("linear", WORKSPACE, "issue", "ENG-142")
LINEAR_PROJECT = make_record_id("linear", WORKSPACE, "project", "auth-hardening")

SEED_RECORDS = [
    _record(
        "zendesk",
        "ticket",
        "4821",
        9,
        "Cannot log in with Google OAuth",
        "Customer reports that signing in with Google fails with an auth error "
        "after the latest release. Gmail sync also stopped.",
        actors={"created_by": ["customer-311"], "assignees": ["dana"]},
        properties={"status": "open", "priority": "high", "tags": ["auth", "oauth"]},
    ),
    _record(
        "linear",
        "issue",
        "ENG-142",
        8,
        "Fix authentication issue with OAuth token refresh",
        "OAuth refresh tokens are dropped when the session expires, so auth fails "
        "on the next request.\n\nRoot cause: the token store evicts entries early.",
        actors={"created_by": ["sam"], "assignees": ["sam"]},
        properties={
            "status": "in_progress",
            "priority": "urgent",
            "labels": ["auth", "bug"],
            "identifier": "ENG-142",
        },
        relations={"triggered_by_ticket": ZENDESK_TICKET, "parent_id": LINEAR_PROJECT},
    ),
    _record(
        "linear",
        "project",
        "auth-hardening",
        30,
        "Auth hardening",
        "Umbrella project for OAuth and session reliability work.",
        properties={"status": "active", "labels": ["auth"]},
    ),
    _record(
        "github",
        "pull_request",
        "web-981",
        6,
        "Keep refresh tokens until explicit revocation",
        "Fixes ENG-142. The token store no longer evicts refresh tokens on session "
        "expiry.",
        actors={"created_by": ["sam"], "participants": ["dana"]},
        properties={"status": "merged", "labels": ["auth"]},
        relations={"linked_issues": [LINEAR_AUTH]},
    ),
    _record(
        "slack",
        "message",
        "C042-1712",
        5,
        None,
        "Heads up: the OAuth fix for ENG-142 is deployed, inbox sync should recover.",
        actors={"created_by": ["dana"]},
    ),
    _record(
        "linear",
        "issue",
        "ENG-150",
        2,
        "Notification filter ignores CC recipients",
        "Email notifications skip users who are only on CC. The notification filter "
        "should treat cc and bcc recipients like direct recipients.",
        actors={"created_by": ["lee"], "assignees": ["lee"]},
        properties={"status": "todo", "priority": "medium", "labels": ["email", "notification"]},
    ),
]


async def main():
    settings = Settings()
    setup_logging(settings.log_level, settings.log_json)

    Path(settings.sqlite_db_path).parent.mkdir(parents=True, exist_ok=True)
    store = SQLiteMemoryStore(settings.sqlite_db_path)
    await store.initialize()

    pipeline = RecordIngestionPipeline(
        store=store,
        chunker=RecordChunker(settings.chunking_config()),
        embedder=await build_embedder(settings),
        inferrer=RelationInferrer(settings.inference_config()),
    )

    result = await pipeline.ingest_records(SEED_RECORDS)
    print(f"Ingested {result.records_ingested} records: {result.chunks_created} chunks")

    inference = await pipeline.rebuild_relations()
    print(f"Relation edges: {len(inference.edges)} {inference.stats.edges_by_type}")

    print(f"\nTotal records: {await store.count_records()}")
    print(f"Total chunks: {await store.count_chunks()}")
    print(f"Total relations: {await store.count_relations()}")


if __name__ == "__main__":
    asyncio.run(main())
