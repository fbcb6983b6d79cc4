"""Precision/recall of an inferred relation graph against labelled ground truth."""

from __future__ import annotations

from dataclasses import dataclass, field

from unified_memory.models.domain import RelationEdge


@dataclass
class RelationEvalResult:
    true_positives: int
    false_positives: int
    false_negatives: int
    precision: float
    recall: float
    f1_score: float
    # Per-edge status keyed by the comparison key: "tp", "fp" or "fn".
    statuses: dict[str, str] = field(default_factory=dict)


def relation_key(edge: RelationEdge, match_type: bool = True, directed: bool = True) -> str:
    """Comparison key for an edge, ``from|to|type`` by default."""
    ends = [edge.from_id, edge.to_id]
    if not directed:
        ends.sort()
    if match_type:
        ends.append(edge.relation_type.value)
    # Record ids already contain "|", so join with a separator they cannot hold.
    return "||".join(ends)


def compute_relation_metrics(
    predicted: list[RelationEdge],
    ground_truth: list[RelationEdge],
    match_type: bool = True,
    directed: bool = True,
) -> RelationEvalResult:
    """Compare predicted edges to ground truth.

    With ``match_type=False`` and ``directed=False`` a pair counts as found
    whenever any predicted edge connects the two records.
    """
    pred_keys = {relation_key(e, match_type, directed) for e in predicted}
    truth_keys = {relation_key(e, match_type, directed) for e in ground_truth}

    tp = pred_keys & truth_keys
    fp = pred_keys - truth_keys
    fn = truth_keys - pred_keys

    precision = len(tp) / len(pred_keys) if pred_keys else 0.0
    recall = len(tp) / len(truth_keys) if truth_keys else 0.0
    f1 = 2 * precision * recall / (precision + recall) if precision + recall else 0.0

    statuses = {k: "tp" for k in tp}
    statuses.update({k: "fp" for k in fp})
    statuses.update({k: "fn" for k in fn})

    return RelationEvalResult(
        true_positives=len(tp),
        false_positives=len(fp),
        false_negatives=len(fn),
        precision=precision,
        recall=recall,
        f1_score=f1,
        statuses=statuses,
    )
