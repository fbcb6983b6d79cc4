"""Tests for relation graph evaluation metrics."""

import pytest

from unified_memory.evaluation.metrics import compute_relation_metrics, relation_key
from unified_memory.models.domain import RelationEdge, RelationSource, RelationType


def _edge(a, b, relation_type=RelationType.SIMILAR_TO, source=RelationSource.INFERRED):
    return RelationEdge(a, b, relation_type, 1.0, source)


def test_relation_key_variants():
    edge = _edge("x|y|z|2", "x|y|z|1")
    assert relation_key(edge) == "x|y|z|2||x|y|z|1||similar_to"
    assert relation_key(edge, match_type=False, directed=False) == "x|y|z|1||x|y|z|2"


def test_perfect_prediction():
    truth = [_edge("a", "b"), _edge("b", "c")]
    result = compute_relation_metrics(list(truth), truth)
    assert (result.precision, result.recall, result.f1_score) == (1.0, 1.0, 1.0)


def test_partial_prediction():
    truth = [_edge("a", "b"), _edge("c", "d")]
    predicted = [_edge("a", "b"), _edge("e", "f"), _edge("g", "h")]
    result = compute_relation_metrics(predicted, truth)
    assert (result.true_positives, result.false_positives, result.false_negatives) == (1, 2, 1)
    assert result.precision == pytest.approx(1 / 3)
    assert result.recall == pytest.approx(0.5)
    assert result.f1_score == pytest.approx(0.4)
    assert result.statuses["c||d||similar_to"] == "fn"


def test_direction_and_type_sensitivity():
    truth = [_edge("a", "b", RelationType.RELATED_TO, RelationSource.HUMAN_LABEL)]
    predicted = [_edge("b", "a", RelationType.REFERENCES)]

    strict = compute_relation_metrics(predicted, truth)
    assert strict.true_positives == 0

    loose = compute_relation_metrics(predicted, truth, match_type=False, directed=False)
    assert loose.true_positives == 1
    assert loose.f1_score == 1.0


def test_empty_inputs():
    result = compute_relation_metrics([], [])
    assert (result.precision, result.recall, result.f1_score) == (0.0, 0.0, 0.0)
