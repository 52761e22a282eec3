import json

from product_configurator.core.state_store import StateStore


def test_marks_and_persists_status(tmp_path):
    path = tmp_path / "nested" / "state.json"
    store = StateStore(path)
    store.mark_draft_status("a.json", "Pad A", "pending")
    store.mark_draft_status("b.json", "Pad B", "success", product_id="p2")

    reloaded = StateStore(path)
    assert reloaded.get_known_draft_keys() == {"a.json", "b.json"}
    assert reloaded.get_draft_record("b.json")["product_id"] == "p2"
    assert list(reloaded.list_unfinished_drafts()) == ["a.json"]
    assert json.loads(path.read_text(encoding="utf-8"))["drafts"]["a.json"]["status"] == "pending"


def test_corrupt_state_file_starts_fresh(tmp_path):
    path = tmp_path / "state.json"
    path.write_text("{not json", encoding="utf-8")

    store = StateStore(path)

    assert store.get_known_draft_keys() == set()
    assert store.get_draft_record("missing") == {}
