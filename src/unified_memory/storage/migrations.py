"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

RECORDS_TABLE = """
CREATE TABLE IF NOT EXISTS records (
    id TEXT PRIMARY KEY,
    source_system TEXT NOT NULL,
    workspace TEXT NOT NULL,
    record_kind TEXT NOT NULL,
    local_id TEXT NOT NULL,
    title TEXT,
    body TEXT,
    actors TEXT NOT NULL DEFAULT '{}',
    properties TEXT NOT NULL DEFAULT '{}',
    relations TEXT NOT NULL DEFAULT '{}',
    visibility TEXT NOT NULL DEFAULT 'team',
    created_at TEXT NOT NULL,
    updated_at TEXT
)
"""

CHUNKS_TABLE = """
CREATE TABLE IF NOT EXISTS chunks (
    chunk_id TEXT PRIMARY KEY,
    record_id TEXT NOT NULL,
    chunk_index INTEGER NOT NULL,
    content TEXT NOT NULL,
    method TEXT NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}',
    embedding BLOB,
    embedding_model TEXT,
    FOREIGN KEY (record_id) REFERENCES records(id) ON DELETE CASCADE,
    UNIQUE (record_id, chunk_index)
)
"""

CHUNKS_RECORD_INDEX = """
CREATE INDEX IF NOT EXISTS idx_chunks_record_id ON chunks(record_id)
"""

RELATION_EDGES_TABLE = """
CREATE TABLE IF NOT EXISTS relation_edges (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    from_id TEXT NOT NULL,
    to_id TEXT NOT NULL,
    relation_type TEXT NOT NULL,
    confidence REAL NOT NULL,
    source TEXT NOT NULL,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT,
    UNIQUE (from_id, to_id, relation_type)
)
"""

RELATION_EDGES_FROM_INDEX = """
CREATE INDEX IF NOT EXISTS idx_relation_edges_from ON relation_edges(from_id)
"""

RELATION_EDGES_TO_INDEX = """
CREATE INDEX IF NOT EXISTS idx_relation_edges_to ON relation_edges(to_id)
"""


async def initialize_memory_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(RECORDS_TABLE)
        await db.execute(CHUNKS_TABLE)
        await db.execute(CHUNKS_RECORD_INDEX)
        await db.execute(RELATION_EDGES_TABLE)
        await db.execute(RELATION_EDGES_FROM_INDEX)
        await db.execute(RELATION_EDGES_TO_INDEX)
        await db.commit()
