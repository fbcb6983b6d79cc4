"""End-to-end tests for the HTTP API with a fake embedding provider."""

import pytest
from fastapi.testclient import TestClient

from unified_memory.api.app import create_app

AUTH_ID = "linear|acme|issue|ENG-1"
TICKET_ID = "zendesk|acme|ticket|4821"
ROADMAP_ID = "linear|acme|issue|ENG-2"

RECORDS = [
    {
        "source_system": "linear",
        "workspace": "acme",
        "record_kind": "issue",
        "local_id": "ENG-1",
        "created_at": "2024-06-14T09:00:00Z",
        "title": "Fix authentication issue",
        "body": "Users hit auth errors when the session expires.",
        "properties": {"labels": ["auth", "bug"]},
    },
    {
        "source_system": "zendesk",
        "workspace": "acme",
        "record_kind": "ticket",
        "local_id": "4821",
        "created_at": "2024-06-13T15:30:00Z",
        "title": "Cannot log in",
        "body": "Customer locked out since Monday.",
        "relations": {"linked_issues": [AUTH_ID]},
    },
    {
        "source_system": "linear",
        "workspace": "acme",
        "record_kind": "issue",
        "local_id": "ENG-2",
        "created_at": "2024-05-02T11:00:00Z",
        "title": "Quarterly roadmap planning",
        "body": "Discuss goals for Q3.",
    },
]


@pytest.fixture
def client(settings, fake_embedder):
    app = create_app(settings, embedder=fake_embedder)
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def seeded(client):
    resp = client.post("/records", json={"records": RECORDS})
    assert resp.status_code == 200
    return client


def test_health_empty(client):
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json() == {"status": "ok", "record_count": 0, "chunk_count": 0, "relation_count": 0}


def test_request_id_is_echoed(client):
    resp = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert resp.headers["X-Request-ID"] == "req-123"
    assert "X-Duration-MS" in resp.headers


def test_ingest_records(client):
    resp = client.post("/records", json={"records": RECORDS})
    assert resp.status_code == 200
    assert resp.json()["records_ingested"] == 3
    assert resp.json()["status"] == "indexed"
    assert client.get("/health").json()["record_count"] == 3


def test_ingest_rejects_bad_identity(client):
    bad = dict(RECORDS[0], local_id="a|b")
    resp = client.post("/records", json={"records": [bad]})
    assert resp.status_code == 400


def test_query_after_inference(seeded):
    infer = seeded.post("/relations/infer", json={})
    assert infer.status_code == 200
    assert infer.json()["edges_stored"] >= 1

    resp = seeded.post("/query", json={"query": "authentication issues", "chunk_limit": 1})
    assert resp.status_code == 200
    data = resp.json()
    assert [r["id"] for r in data["records"]] == [AUTH_ID, TICKET_ID]
    assert data["stats"]["matched_records"] == 1
    assert data["stats"]["expanded_records"] == 1
    assert {"embed", "vector_search"} <= set(data["stats"]["stage_timings_ms"])


@pytest.mark.parametrize(
    "body",
    [{"query": "   "}, {"query": "auth", "chunk_limit": 0}, {"query": "auth", "relation_depth": -1}],
)
def test_query_validation_errors(seeded, body):
    assert seeded.post("/query", json=body).status_code == 400


@pytest.mark.parametrize("body", [{"shards": 0}, {"similarity_threshold": 1.5}])
def test_infer_validation_errors(seeded, body):
    assert seeded.post("/relations/infer", json=body).status_code == 400


def test_sharded_infer(seeded):
    single = seeded.post("/relations/infer", json={}).json()
    sharded = seeded.post("/relations/infer", json={"shards": 2}).json()
    assert sharded["edges_stored"] == single["edges_stored"]
    assert sharded["stats"]["pairs_examined"] == 3


def test_infer_null_max_pairs_lifts_the_cap(settings, fake_embedder):
    capped = settings.model_copy(update={"relation_max_pairs": 1})
    with TestClient(create_app(capped, embedder=fake_embedder)) as client:
        client.post("/records", json={"records": RECORDS})
        default = client.post("/relations/infer", json={}).json()["stats"]
        uncapped = client.post("/relations/infer", json={"max_pairs": None}).json()["stats"]

    assert (default["pairs_examined"], default["truncated"]) == (1, True)
    assert (uncapped["pairs_examined"], uncapped["truncated"]) == (3, False)


def test_labeling_candidates(seeded):
    resp = seeded.get("/labeling/candidates", params={"limit": 5})
    assert resp.status_code == 200
    data = resp.json()
    assert data["stats"]["total_records"] == 3
    assert data["stats"]["total_possible_pairs"] == 3
    assert len(data["candidates"]) <= 5
    assert seeded.get("/labeling/candidates", params={"limit": 0}).status_code == 400


def test_label_lifecycle_and_evaluation(seeded):
    seeded.post("/relations/infer", json={})
    # the explicit edge runs ticket -> issue; evaluation ignores direction
    related = {"from_id": AUTH_ID, "to_id": TICKET_ID, "label": "related", "notes": "same outage"}
    first = seeded.post("/labeling/labels", json=related)
    assert first.status_code == 200
    assert first.json()["action"] == "inserted"

    unsure = {"from_id": ROADMAP_ID, "to_id": AUTH_ID, "label": "uncertain"}
    assert seeded.post("/labeling/labels", json=unsure).json()["action"] == "inserted"
    flipped = dict(unsure, from_id=AUTH_ID, to_id=ROADMAP_ID, label="unrelated")
    assert seeded.post("/labeling/labels", json=flipped).json()["action"] == "updated"

    candidates = seeded.get("/labeling/candidates", params={"limit": 10}).json()
    assert candidates["stats"]["labeled_pairs"] == 2
    assert candidates["candidates"] == [
        c
        for c in candidates["candidates"]
        if {c["record_a_id"], c["record_b_id"]} == {TICKET_ID, ROADMAP_ID}
    ]

    resp = seeded.post("/relations/evaluate", json={})
    assert resp.status_code == 200
    metrics = resp.json()
    assert metrics["ground_truth_edges"] == 1
    assert metrics["predicted_edges"] == 1
    assert metrics["true_positives"] == 1
    assert (metrics["precision"], metrics["recall"]) == (1.0, 1.0)


def test_label_errors(seeded):
    same = {"from_id": AUTH_ID, "to_id": AUTH_ID, "label": "related"}
    assert seeded.post("/labeling/labels", json=same).status_code == 400

    unknown = {"from_id": AUTH_ID, "to_id": "linear|acme|issue|NOPE", "label": "unrelated"}
    assert seeded.post("/labeling/labels", json=unknown).status_code == 404

    invalid = {"from_id": AUTH_ID, "to_id": TICKET_ID, "label": "maybe"}
    assert seeded.post("/labeling/labels", json=invalid).status_code == 422
