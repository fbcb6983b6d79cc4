"""Chunk size statistics."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from unified_memory.models.domain import RetrievableUnit


@dataclass
class ChunkStats:
    total_chunks: int
    avg_chunk_size: float
    min_chunk_size: int
    max_chunk_size: int
    std_chunk_size: float


def compute_chunk_stats(units: list[RetrievableUnit]) -> ChunkStats:
    """Content-length statistics; std uses the population formula (divisor n)."""
    if not units:
        return ChunkStats(0, 0.0, 0, 0, 0.0)
    sizes = np.array([len(u.content) for u in units], dtype=np.float64)
    return ChunkStats(
        total_chunks=len(units),
        avg_chunk_size=float(np.mean(sizes)),
        min_chunk_size=int(sizes.min()),
        max_chunk_size=int(sizes.max()),
        std_chunk_size=float(np.std(sizes)),
    )
