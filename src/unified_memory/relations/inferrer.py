"""Relation inference: explicit edges, duplicate detection, and pairwise similarity."""

from __future__ import annotations

import asyncio
from collections import Counter
from dataclasses import dataclass

from unified_memory.config.constants import (
    CONTAINER_RELATION_KEYS,
    EXPLICIT_RELATION_KEYS,
)
from unified_memory.config.options import InferenceConfig
from unified_memory.exceptions import ValidationError
from unified_memory.models.domain import (
    ID_SEPARATOR,
    InferenceResult,
    InferenceStats,
    NormalizedRecord,
    RelationEdge,
    RelationSource,
    RelationType,
)
from unified_memory.observability.logger import get_logger
from unified_memory.observability.metrics import log_inference_metrics
from unified_memory.relations.keywords import (
    extract_keywords,
    find_cross_references,
    free_text,
    reference_keys,
    semantic_basis,
    semantic_hash,
)
from unified_memory.relations.similarity import cosine_similarity, jaccard_similarity

logger = get_logger("relation_inferrer")


def _as_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value] if value else []
    return [str(v) for v in value if v]


def canonical_records(records: list[NormalizedRecord]) -> list[NormalizedRecord]:
    """Records sorted by id, first occurrence kept for repeated ids."""
    seen: dict[str, NormalizedRecord] = {}
    for record in records:
        seen.setdefault(record.id, record)
    return [seen[rid] for rid in sorted(seen)]


def iter_pair_indices(n: int, start: int = 0, stop: int | None = None):
    """Yield (i, j) with i < j for pair indices in [start, stop) of the row-major order."""
    total = n * (n - 1) // 2
    stop = total if stop is None else min(stop, total)
    if start >= stop:
        return
    i, offset = 0, start
    while offset >= n - 1 - i:
        offset -= n - 1 - i
        i += 1
    j = i + 1 + offset
    for _ in range(stop - start):
        yield i, j
        j += 1
        if j >= n:
            i += 1
            j = i + 1


def dedupe_edges(edges: list[RelationEdge]) -> list[RelationEdge]:
    """Keep the first edge per (from_id, to_id, relation_type)."""
    seen: set[tuple[str, str, str]] = set()
    unique: list[RelationEdge] = []
    for edge in edges:
        if edge.key in seen:
            continue
        seen.add(edge.key)
        unique.append(edge)
    return unique


@dataclass
class _PairContext:
    records: list[NormalizedRecord]
    keywords: list[set[str]]
    mentions: list[set[str]]
    keys: list[set[str]]


@dataclass
class _PairOutcome:
    edges: list[RelationEdge]
    examined: int = 0
    semantic: int = 0
    accepted: int = 0


class RelationInferrer:
    def __init__(self, config: InferenceConfig | None = None) -> None:
        self._config = config or InferenceConfig()

    @property
    def config(self) -> InferenceConfig:
        return self._config

    def extract_explicit(self, records: list[NormalizedRecord]) -> list[RelationEdge]:
        """Edges asserted by the source system, emitted unconditionally."""
        edges: list[RelationEdge] = []
        for record in records:
            for key, value in record.relations.items():
                if key in CONTAINER_RELATION_KEYS:
                    continue
                relation_type = EXPLICIT_RELATION_KEYS.get(key)
                targets = _as_list(value)
                if relation_type is None:
                    targets = [t for t in targets if ID_SEPARATOR in t]
                    relation_type = RelationType.RELATED_TO.value
                for target in targets:
                    edges.append(
                        self._explicit_edge(
                            record, record.id, target, RelationType(relation_type), key
                        )
                    )
            if self._config.include_actor_edges:
                edges.extend(self._actor_edges(record))
        return edges

    def _actor_edges(self, record: NormalizedRecord) -> list[RelationEdge]:
        actors = record.actors
        edges = [
            self._explicit_edge(record, record.id, user, RelationType.CREATED_BY, "created_by")
            for user in _as_list(actors.get("created_by"))
        ]
        edges += [
            self._explicit_edge(record, record.id, user, RelationType.ASSIGNED_TO, "assignees")
            for user in _as_list(actors.get("assignees"))
        ]
        edges += [
            self._explicit_edge(
                record, user, record.id, RelationType.PARTICIPATED_IN, "participants"
            )
            for user in _as_list(actors.get("participants"))
        ]
        edges += [
            self._explicit_edge(record, user, record.id, RelationType.DECIDED_BY, "decided_by")
            for user in _as_list(actors.get("decided_by"))
        ]
        return edges

    @staticmethod
    def _explicit_edge(
        record: NormalizedRecord,
        from_id: str,
        to_id: str,
        relation_type: RelationType,
        key: str,
    ) -> RelationEdge:
        return RelationEdge(
            from_id=from_id,
            to_id=to_id,
            relation_type=relation_type,
            confidence=1.0,
            source=RelationSource.EXPLICIT,
            metadata={"relation_key": key},
            created_at=record.created_at,
        )

    def detect_duplicates(self, records: list[NormalizedRecord]) -> list[RelationEdge]:
        """Records sharing a semantic hash point at the first one in id order."""
        if not self._config.enable_duplicate_detection:
            return []
        groups: dict[str, list[NormalizedRecord]] = {}
        for record in canonical_records(records):
            if not semantic_basis(record):
                continue
            groups.setdefault(semantic_hash(record), []).append(record)

        edges: list[RelationEdge] = []
        for digest, group in groups.items():
            original = group[0]
            for duplicate in group[1:]:
                edges.append(
                    RelationEdge(
                        from_id=duplicate.id,
                        to_id=original.id,
                        relation_type=RelationType.DUPLICATE_OF,
                        confidence=1.0,
                        source=RelationSource.INFERRED,
                        metadata={"semantic_hash": digest, "group_size": len(group)},
                    )
                )
        if edges:
            logger.info("duplicates_detected", count=len(edges))
        return edges

    def infer_all(self, records: list[NormalizedRecord]) -> InferenceResult:
        ordered = canonical_records(records)
        total, limit = self._pair_budget(len(ordered))
        outcome = self._infer_pairs(self._pair_context(ordered), 0, limit)
        return self._finish(ordered, [outcome], total)

    async def infer_all_sharded(
        self, records: list[NormalizedRecord], shards: int = 4
    ) -> InferenceResult:
        """Same edge set as ``infer_all``, with pair ranges scored in worker threads."""
        if shards < 1:
            raise ValidationError("shards must be >= 1")
        ordered = canonical_records(records)
        total, limit = self._pair_budget(len(ordered))
        context = self._pair_context(ordered)
        step = max(1, -(-limit // shards))
        outcomes = await asyncio.gather(
            *(
                asyncio.to_thread(self._infer_pairs, context, start, min(start + step, limit))
                for start in range(0, limit, step)
            )
        )
        return self._finish(ordered, list(outcomes), total)

    def _pair_budget(self, n: int) -> tuple[int, int]:
        total = n * (n - 1) // 2 if self._config.include_inferred else 0
        cap = self._config.max_pairs
        limit = total if cap is None else min(total, cap)
        return total, limit

    def _pair_context(self, ordered: list[NormalizedRecord]) -> _PairContext:
        return _PairContext(
            records=ordered,
            keywords=[extract_keywords(r, self._config.vocabulary) for r in ordered],
            mentions=[find_cross_references(free_text(r)) for r in ordered],
            keys=[reference_keys(r) for r in ordered],
        )

    def _infer_pairs(self, context: _PairContext, start: int, stop: int) -> _PairOutcome:
        cfg = self._config
        outcome = _PairOutcome(edges=[])

        for i, j in iter_pair_indices(len(context.records), start, stop):
            a, b = context.records[i], context.records[j]
            outcome.examined += 1

            keyword_score = jaccard_similarity(context.keywords[i], context.keywords[j])
            scored_semantic = (
                cfg.use_semantic_similarity
                and a.embedding is not None
                and b.embedding is not None
            )
            if scored_semantic:
                outcome.semantic += 1
                semantic_score = cosine_similarity(a.embedding, b.embedding)
                combined = (
                    cfg.semantic_weight * semantic_score
                    + (1 - cfg.semantic_weight) * keyword_score
                )
                threshold = cfg.similarity_threshold
            else:
                semantic_score = 0.0
                combined = keyword_score
                threshold = cfg.keyword_overlap_threshold

            metadata = {
                "keyword_similarity": keyword_score,
                "combined_similarity": combined,
                "shared_keywords": sorted(context.keywords[i] & context.keywords[j]),
            }
            if scored_semantic:
                metadata["semantic_similarity"] = semantic_score

            references = [
                (a, b, context.mentions[i] & context.keys[j]),
                (b, a, context.mentions[j] & context.keys[i]),
            ]
            matched = [(src, dst, ids) for src, dst, ids in references if ids]
            if matched:
                outcome.accepted += 1
                for src, dst, ids in matched:
                    outcome.edges.append(
                        RelationEdge(
                            from_id=src.id,
                            to_id=dst.id,
                            relation_type=RelationType.REFERENCES,
                            confidence=1.0,
                            source=RelationSource.INFERRED,
                            metadata={**metadata, "matched_identifiers": sorted(ids)},
                        )
                    )
            elif combined >= threshold:
                outcome.accepted += 1
                outcome.edges.append(
                    RelationEdge(
                        from_id=a.id,
                        to_id=b.id,
                        relation_type=RelationType.SIMILAR_TO,
                        confidence=min(1.0, max(0.0, combined)),
                        source=RelationSource.INFERRED,
                        metadata=metadata,
                    )
                )
        return outcome

    def _finish(
        self,
        ordered: list[NormalizedRecord],
        outcomes: list[_PairOutcome],
        pairs_total: int,
    ) -> InferenceResult:
        edges = self.extract_explicit(ordered) + self.detect_duplicates(ordered)
        for outcome in outcomes:
            edges.extend(outcome.edges)
        edges = dedupe_edges(edges)

        summary = edge_stats(edges)
        examined = sum(o.examined for o in outcomes)
        stats = InferenceStats(
            records=len(ordered),
            pairs_total=pairs_total,
            pairs_examined=examined,
            semantic_pairs=sum(o.semantic for o in outcomes),
            accepted_pairs=sum(o.accepted for o in outcomes),
            truncated=examined < pairs_total,
            edges_by_type=summary["by_type"],
            edges_by_source=summary["by_source"],
            avg_confidence=summary["avg_confidence"],
        )
        log_inference_metrics(stats)
        return InferenceResult(edges=edges, stats=stats)


def infer_all(
    records: list[NormalizedRecord], config: InferenceConfig | None = None
) -> InferenceResult:
    return RelationInferrer(config).infer_all(records)


def relations_for(
    edges: list[RelationEdge], record_id: str, direction: str = "both"
) -> list[RelationEdge]:
    if direction == "from":
        return [e for e in edges if e.from_id == record_id]
    if direction == "to":
        return [e for e in edges if e.to_id == record_id]
    if direction == "both":
        return [e for e in edges if record_id in (e.from_id, e.to_id)]
    raise ValidationError(f"Unknown direction: {direction!r}")


def relations_by_type(
    edges: list[RelationEdge], relation_type: RelationType
) -> list[RelationEdge]:
    return [e for e in edges if e.relation_type == relation_type]


def edge_stats(edges: list[RelationEdge]) -> dict:
    by_type = Counter(e.relation_type.value for e in edges)
    by_source = Counter(e.source.value for e in edges)
    avg = sum(e.confidence for e in edges) / len(edges) if edges else 0.0
    return {
        "total": len(edges),
        "by_type": dict(by_type),
        "by_source": dict(by_source),
        "avg_confidence": avg,
    }
