from __future__ import annotations

import importlib
import sys

import pytest
from fastapi.testclient import TestClient

from tests.conftest import build_synthetic_bank


def _reload_app(tmp_path, monkeypatch) -> tuple[object, object]:
    monkeypatch.setenv("DATA_DIR", str(tmp_path))
    for name in ("leadership_core.config", "api.storage", "api.app"):
        if name in sys.modules:
            importlib.reload(sys.modules[name])
        else:
            __import__(name)
    return sys.modules["api.storage"], sys.modules["api.app"]


@pytest.fixture
def client(tmp_path, monkeypatch):
    _storage, app_module = _reload_app(tmp_path, monkeypatch)
    import leadership_core.question_bank as qb

    monkeypatch.setattr(qb, "load_bank", lambda: build_synthetic_bank())
    return TestClient(app_module.app)


def _answers(items: list[dict]) -> list[dict]:
    return [
        {"item_id": it["id"], "value": 5 if it["type"] == "likert" else "a", "rt_ms": 4000}
        for it in items
    ]


def _run_to_end(client, sid: str, body: dict) -> dict:
    while not body["done"]:
        resp = client.post(f"/assessment/{sid}/round", json={"answers": _answers(body["items"])})
        assert resp.status_code == 200
        body = resp.json()
    return body


def test_root_and_health(client):
    assert client.get("/").json()["status"] == "ok"
    health = client.get("/health").json()
    assert health["reasoning_backend"] == "none"
    assert health["reasoning_ready"] is False
    assert health["narrative_backend"] == "none"


def test_quick_run_end_to_end(client):
    start = client.post("/assessment/start", json={"tier": "quick", "user_id": "u1"})
    assert start.status_code == 200
    body = start.json()
    assert body["phase"] == "adaptive"
    assert body["round"] == 1
    assert body["total_rounds"] == 3
    assert len(body["items"]) == 5
    sid = body["session_id"]

    active = client.get("/users/u1/sessions/active").json()["sessions"]
    assert [s["sessionId"] for s in active] == [sid]

    last = _run_to_end(client, sid, body)
    assert last["phase"] == "exhausted"
    assert last["answered"] == 15
    assert last["items"] == []

    finish = client.post(f"/assessment/{sid}/finish")
    assert finish.status_code == 200
    result = finish.json()
    assert result["tier"] == "quick"
    assert result["meta"]["userId"] == "u1"
    assert result["narrative"]["source"] == "fallback"
    token = result["token"]

    stored = client.get(f"/results/{token}")
    assert stored.status_code == 200
    assert stored.json()["scores"] == result["scores"]

    listed = client.get("/users/u1/results").json()["results"]
    assert [r["token"] for r in listed] == [token]
    assert client.get("/users/u1/sessions/active").json()["sessions"] == []
    assert client.get(f"/assessment/{sid}/resume").status_code == 404


def test_resume_returns_pending_batch(client):
    body = client.post("/assessment/start", json={}).json()
    sid = body["session_id"]
    resumed = client.get(f"/assessment/{sid}/resume").json()
    assert [it["id"] for it in resumed["items"]] == [it["id"] for it in body["items"]]


def test_unknown_answers_are_ignored(client):
    body = client.post("/assessment/start", json={"tier": "quick"}).json()
    sid = body["session_id"]
    resp = client.post(f"/assessment/{sid}/round", json={"answers": [{"item_id": "nope", "value": 3}]})
    assert resp.status_code == 200
    assert resp.json()["accepted"] == 0
    assert resp.json()["round"] == 1


def test_round_after_exhaustion_conflicts(client):
    body = client.post("/assessment/start", json={"tier": "quick"}).json()
    sid = body["session_id"]
    _run_to_end(client, sid, body)
    resp = client.post(f"/assessment/{sid}/round", json={"answers": [{"item_id": "drive_l0", "value": 3}]})
    assert resp.status_code == 409


def test_bad_tier_and_missing_session(client):
    assert client.post("/assessment/start", json={"tier": "marathon"}).status_code == 400
    assert client.get("/assessment/missing/resume").status_code == 404
    assert client.post("/assessment/missing/round", json={"answers": []}).status_code == 404
    assert client.post("/assessment/missing/finish").status_code == 404
    assert client.get("/results/missing").status_code == 404


def test_upgrade_from_quick_result(client):
    body = client.post("/assessment/start", json={"tier": "quick", "user_id": "u2"}).json()
    sid = body["session_id"]
    _run_to_end(client, sid, body)
    quick = client.post(f"/assessment/{sid}/finish").json()

    up = client.post("/assessment/upgrade", json={"result_token": quick["token"]})
    assert up.status_code == 200
    up_body = up.json()
    assert up_body["tier"] == "deep"
    assert up_body["total_rounds"] == 7
    assert up_body["round"] == 1
    assert len(up_body["items"]) == 5

    _run_to_end(client, up_body["session_id"], up_body)
    deep = client.post(f"/assessment/{up_body['session_id']}/finish").json()
    assert deep["upgrade"] is True
    assert deep["meta"]["upgradeFrom"] == quick["token"]
    assert deep["meta"]["userId"] == "u2"

    again = client.post("/assessment/upgrade", json={"result_token": deep["token"]})
    assert again.status_code == 409
    assert client.post("/assessment/upgrade", json={"result_token": "missing"}).status_code == 404


def test_catalogue_invalidate(client, monkeypatch):
    import leadership_core.question_bank as qb

    client.post("/assessment/start", json={"tier": "quick"})
    monkeypatch.setattr(qb, "load_bank", lambda: build_synthetic_bank(dimensions=["drive"]))
    before = client.post("/assessment/start", json={"tier": "quick"}).json()
    assert {it["dimension"] for it in before["items"]} != {"drive"}

    assert client.post("/admin/catalogue/invalidate").json() == {"ok": True}
    after = client.post("/assessment/start", json={"tier": "quick"}).json()
    assert {it["dimension"] for it in after["items"]} == {"drive"}


def test_round_answers_are_logged(client):
    body = client.post("/assessment/start", json={"tier": "quick"}).json()
    sid = body["session_id"]
    first = body["items"]
    client.post(f"/assessment/{sid}/round", json={"answers": _answers(first) + [{"item_id": "nope", "value": 1}]})

    log = client.get(f"/assessment/{sid}/responses").json()["responses"]
    assert [r["item_id"] for r in log] == [it["id"] for it in first]
    assert {r["round"] for r in log} == {1}
    assert all(r["rt_ms"] == 4000 for r in log)
    likert = [r for r, it in zip(log, first) if it["type"] == "likert"]
    assert all(r["value"] == 5 for r in likert)

    client.post(f"/assessment/{sid}/finish")
    assert len(client.get(f"/assessment/{sid}/responses").json()["responses"]) == len(first)
    assert client.get("/assessment/never-started/responses").status_code == 404
