"""EventSet file: tolerant reads, replacing writes."""

import json

from conftest import signal
from event_store import load_events, save_events


def test_missing_file_is_empty(tmp_path):
    assert load_events(tmp_path / "nope.json") == []


def test_invalid_json_is_empty(tmp_path):
    path = tmp_path / "events.json"
    path.write_text("{not json", encoding="utf-8")
    assert load_events(path) == []


def test_non_array_document_is_empty(tmp_path):
    path = tmp_path / "events.json"
    path.write_text(json.dumps({"events": []}), encoding="utf-8")
    assert load_events(path) == []


def test_save_replaces_and_leaves_no_temp_file(tmp_path):
    path = tmp_path / "data" / "events.json"
    save_events([signal(url="https://x/1"), signal(url="https://x/2")], path)
    save_events([signal(url="https://x/3")], path)

    stored = json.loads(path.read_text(encoding="utf-8"))
    assert [s["url"] for s in stored] == ["https://x/3"]
    assert sorted(p.name for p in path.parent.iterdir()) == ["events.json"]


def test_records_without_tags_load_as_general(tmp_path):
    path = tmp_path / "events.json"
    path.write_text(json.dumps([{"title": "legacy", "url": "https://x/1"}, "junk"]), encoding="utf-8")

    events = load_events(path)

    assert len(events) == 1
    assert events[0].category == "general"
    assert events[0].record == {"title": "legacy", "url": "https://x/1"}


def test_tags_are_not_mixed_into_record(tmp_path):
    path = tmp_path / "events.json"
    original = signal("exploit", "high", url="https://x/1", extra={"nested": [1, 2]})
    save_events([original], path)

    loaded = load_events(path)[0]

    assert loaded == original
    assert "_category" not in loaded.record
