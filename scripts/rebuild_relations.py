"""Recompute and persist the relation graph over every stored record.

Usage:
    python scripts/rebuild_relations.py [--shards N] [--keyword-only]
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from dataclasses import replace
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from unified_memory.api.app import build_embedder
from unified_memory.chunking.record_chunker import RecordChunker
from unified_memory.config.settings import Settings
from unified_memory.ingestion.pipeline import RecordIngestionPipeline
from unified_memory.observability.logger import setup_logging
from unified_memory.storage.sqlite_store import SQLiteMemoryStore


async def main(shards: int, keyword_only: bool):
    settings = Settings()
    setup_logging(settings.log_level, settings.log_json)

    store = SQLiteMemoryStore(settings.sqlite_db_path)
    await store.initialize()

    config = settings.inference_config()
    if keyword_only:
        config = replace(config, use_semantic_similarity=False)

    pipeline = RecordIngestionPipeline(
        store=store,
        chunker=RecordChunker(settings.chunking_config()),
        embedder=await build_embedder(settings),
    )
    result = await pipeline.rebuild_relations(config, shards=shards)

    stats = result.stats
    print(f"Records: {stats.records}")
    print(f"Pairs examined: {stats.pairs_examined}/{stats.pairs_total}")
    if stats.truncated:
        print("WARNING: pair cap reached, graph is partial")
    for relation_type, count in sorted(stats.edges_by_type.items()):
        print(f"  {relation_type}: {count}")
    print(f"Stored {len(result.edges)} edges (avg confidence {stats.avg_confidence:.3f})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--shards", type=int, default=1)
    parser.add_argument("--keyword-only", action="store_true")
    args = parser.parse_args()
    asyncio.run(main(args.shards, args.keyword_only))
