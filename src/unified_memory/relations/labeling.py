"""Candidate pair sampling for human relation labelling."""

from __future__ import annotations

import math
import random

from unified_memory.config.constants import (
    LABELING_HIGH_THRESHOLD,
    LABELING_LOW_PENALTY,
    LABELING_LOW_THRESHOLD,
    LABELING_MEDIUM_BONUS,
    LABELING_MEDIUM_THRESHOLD,
)
from unified_memory.config.options import LabelingConfig
from unified_memory.exceptions import ValidationError
from unified_memory.models.domain import (
    LabelingCandidate,
    LabelingResult,
    LabelingStats,
    NormalizedRecord,
)
from unified_memory.observability.logger import get_logger
from unified_memory.relations.inferrer import canonical_records
from unified_memory.relations.keywords import property_terms
from unified_memory.relations.similarity import cosine_similarity

logger = get_logger("labeling")


def bucket_for(similarity: float) -> str | None:
    if similarity > LABELING_HIGH_THRESHOLD:
        return "high"
    if similarity >= LABELING_MEDIUM_THRESHOLD:
        return "medium"
    if similarity >= LABELING_LOW_THRESHOLD:
        return "low"
    return None


def _assignees(record: NormalizedRecord) -> set[str]:
    value = record.actors.get("assignees") or []
    if isinstance(value, str):
        value = [value]
    return set(value)


def get_labeling_candidates(
    records: list[NormalizedRecord],
    labeled_pairs: set[tuple[str, str]],
    limit: int,
    config: LabelingConfig | None = None,
    rng: random.Random | None = None,
) -> LabelingResult:
    """Sample unlabelled pairs across similarity buckets for review.

    The sample is deliberately skewed towards the medium bucket, where
    inferred relations are least certain. Enumeration stops once the bucket
    sizes together exceed the configured pair cap.
    """
    if limit < 1:
        raise ValidationError("limit must be >= 1")
    config = config or LabelingConfig()
    rng = rng or random.Random()

    embedded = [r for r in canonical_records(records) if r.embedding is not None]
    buckets: dict[str, list[LabelingCandidate]] = {"high": [], "medium": [], "low": []}
    capped = False
    truncated = False
    last_pair = (len(embedded) - 2, len(embedded) - 1)

    for i, a in enumerate(embedded):
        for j in range(i + 1, len(embedded)):
            b = embedded[j]
            if (a.id, b.id) in labeled_pairs or (b.id, a.id) in labeled_pairs:
                continue
            similarity = cosine_similarity(a.embedding, b.embedding)
            bucket = bucket_for(similarity)
            if bucket is None:
                continue
            buckets[bucket].append(
                LabelingCandidate(
                    record_a=a,
                    record_b=b,
                    similarity=similarity,
                    bucket=bucket,
                    shared_labels=sorted(
                        property_terms(a, ("labels", "tags"))
                        & property_terms(b, ("labels", "tags"))
                    ),
                    same_assignee=bool(_assignees(a) & _assignees(b)),
                )
            )
            if sum(len(v) for v in buckets.values()) > config.pair_cap:
                capped = True
                # only truncated when pairs remain unvisited
                truncated = (i, j) != last_pair
                break
        if capped:
            break

    per_bucket = math.ceil(limit / 3)
    quotas = {
        "high": per_bucket,
        "medium": per_bucket + LABELING_MEDIUM_BONUS,
        "low": max(0, per_bucket - LABELING_LOW_PENALTY),
    }
    sampled: list[LabelingCandidate] = []
    for name in ("high", "medium", "low"):
        pool = list(buckets[name])
        rng.shuffle(pool)
        sampled.extend(pool[: quotas[name]])
    rng.shuffle(sampled)

    stats = LabelingStats(
        total_records=len(embedded),
        total_possible_pairs=len(embedded) * (len(embedded) - 1) // 2,
        labeled_pairs=len(labeled_pairs),
        high_count=len(buckets["high"]),
        medium_count=len(buckets["medium"]),
        low_count=len(buckets["low"]),
        truncated=truncated,
    )
    if truncated:
        logger.warning("labeling_pair_cap_reached", pair_cap=config.pair_cap)
    logger.info(
        "labeling_candidates_sampled",
        returned=min(len(sampled), limit),
        high=stats.high_count,
        medium=stats.medium_count,
        low=stats.low_count,
    )
    return LabelingResult(candidates=sampled[:limit], stats=stats)
