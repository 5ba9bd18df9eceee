from __future__ import annotations

from api.storage import JsonStore


def test_results_index_and_user_listing(tmp_path):
    store = JsonStore(tmp_path)
    store.save_result("t1", {"tier": "quick"}, {"userId": "u", "createdAt": "2026-01-01"})
    store.save_result("t2", {"tier": "deep"}, {"userId": "u", "createdAt": "2026-02-01"})
    store.save_result("t3", {"tier": "quick"}, {"userId": "other", "createdAt": "2026-03-01"})
    assert store.load_result("t2") == {"tier": "deep"}
    assert store.load_result("missing") is None
    assert [r["token"] for r in store.results_for_user("u")] == ["t2", "t1"]


def test_active_session_lifecycle(tmp_path):
    store = JsonStore(tmp_path)
    store.record_active("s1", {"userId": "u", "startedAt": "a", "round": 1})
    store.touch_active("s1", round=2)
    store.touch_active("ghost", round=9)
    assert store.active_for_user("u") == [{"userId": "u", "startedAt": "a", "round": 2}]
    store.clear_active("s1")
    store.clear_active("s1")
    assert store.active_for_user("u") == []


def test_response_log_only_appends(tmp_path):
    store = JsonStore(tmp_path)
    assert store.load_responses("s") == []
    assert store.append_responses("s", [{"item_id": "a", "value": 4}]) == 1
    assert store.append_responses("s", []) == 0
    store.append_responses("s", ({"item_id": x, "value": "b"} for x in ("b", "c")))
    assert [r["item_id"] for r in store.load_responses("s")] == ["a", "b", "c"]


def test_corrupt_files_read_as_empty(tmp_path):
    store = JsonStore(tmp_path)
    store.index_path.parent.mkdir(parents=True, exist_ok=True)
    store.index_path.write_text("{not json", encoding="utf-8")
    assert store.results_for_user("u") == []
