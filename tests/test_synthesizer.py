"""Synthesizer end to end: outputs are always complete, model or not."""

import json
from datetime import datetime, timezone

import llm
import synthesizer
from conftest import signal
from event_store import save_events

PERIOD = ("2026-10-12", "2026-10-19")

RECORD_KEYS = {"generated", "period", "eventCount", "threatCategories", "entities", "trend",
               "topRisk", "socialThread", "briefHtml", "mode", "briefSource"}


def _scripted_model(monkeypatch, by_system_prefix):
    """Answer each pass by matching the start of its system prompt."""
    calls = []

    def fake_call(llm_id, system_prompt, user_prompt, **kwargs):
        calls.append(system_prompt)
        for prefix, text in by_system_prefix.items():
            if system_prompt.startswith(prefix):
                return text
        return None

    monkeypatch.setattr(llm, "call_by_id", fake_call)
    return calls


def test_report_period():
    now = datetime(2026, 10, 19, 6, 0, tzinfo=timezone.utc)
    assert synthesizer.report_period(7, now) == PERIOD


def test_zero_signals_without_model(config):
    html, record, reports = synthesizer.synthesize([], config, PERIOD, llm_id=None)
    data = record.to_dict()

    assert set(data) == RECORD_KEYS
    assert data["eventCount"] == 0
    assert data["threatCategories"] == []
    assert data["trend"] == "stable"
    assert data["briefSource"] == "fallback"
    assert data["period"] == {"start": "2026-10-12", "end": "2026-10-19"}
    assert "<strong>0</strong> signals" in data["briefHtml"]
    assert "LOW" in data["briefHtml"]
    assert len(data["socialThread"]) == 1
    assert "No signals detected this period. Data updates weekly." in html
    assert html.startswith("<!DOCTYPE html>")
    assert [r.step_name for r in reports] == ["group", "extract", "synthesize", "social"]


def test_every_pass_failing_still_renders_everything(monkeypatch, config):
    calls = _scripted_model(monkeypatch, {})
    events = [signal("sanctions", "critical", url="https://x/%d" % i, title="t%d" % i) for i in range(10)]

    html, record, _ = synthesizer.synthesize(events, config, PERIOD, llm_id="github")
    data = record.to_dict()

    assert len(calls) == 3
    assert data["briefSource"] == "fallback"
    assert "HIGH" in data["briefHtml"]
    assert "6/10" in data["briefHtml"]
    assert data["entities"] == []
    assert data["topRisk"] == "Insufficient data for analysis"
    assert data["threatCategories"] == ["sanctions"]
    assert data["briefHtml"] in html


def test_unparseable_output_falls_back(monkeypatch, config):
    _scripted_model(monkeypatch, {
        "You are a crypto threat": "{definitely not json",
        "You are a cryptocurrency": "   ",
        "You create": "thread: first, second",
    })
    events = [signal("fraud", "high", title="Ponzi collapse")]

    html, record, reports = synthesizer.synthesize(events, config, PERIOD, llm_id="github")

    assert record.brief_source == "fallback"
    assert record.trend == "stable"
    assert len(record.social_thread) == 1
    assert "Ponzi collapse" in html
    assert sum(r.llm_failures for r in reports) == 3


def test_model_output_flows_into_page_and_record(monkeypatch, config):
    _scripted_model(monkeypatch, {
        "You are a crypto threat": json.dumps({
            "entities": [{"name": "Garantex", "type": "exchange", "risk": "high", "mentions": 2}],
            "threats": [], "trend": "declining", "top_risk": "Exchange delistings."}),
        "You are a cryptocurrency": "<h3>Executive Summary</h3><p>Model brief.</p>",
        "You create": '["Post one", "Post two"]',
    })
    events = [signal("sanctions", title="Garantex sanctioned", url="https://x/1")]

    html, record, _ = synthesizer.synthesize(events, config, PERIOD, llm_id="github")

    assert record.brief_source == "model"
    assert record.brief_html == "<h3>Executive Summary</h3><p>Model brief.</p>"
    assert record.entities == [{"name": "Garantex", "type": "exchange", "risk": "high", "mentions": 2}]
    assert record.trend == "declining"
    assert record.social_thread == ["Post one", "Post two"]
    assert "Garantex" in html
    assert "Post two" in html
    assert "Declining" in html
    assert '<a href="https://x/1"' in html


def test_simple_mode_makes_one_call(monkeypatch, config):
    calls = _scripted_model(monkeypatch, {"You are a cryptocurrency": "<p>brief</p>"})
    config = config.with_overrides(mode="simple")

    html, record, reports = synthesizer.synthesize([signal()], config, PERIOD, llm_id="github")

    assert len(calls) == 1
    assert record.mode == "simple"
    assert record.brief_source == "model"
    assert record.social_thread == []
    assert record.trend is None
    assert [r.step_name for r in reports] == ["group", "synthesize"]
    assert "Entity extraction runs in extended mode." in html


def test_main_writes_page_and_record(monkeypatch, tmp_path, no_model_keys):
    events_path = tmp_path / "events.json"
    save_events([signal("exploit", "critical", title="Bridge drained", url="https://x/1")], events_path)
    page = tmp_path / "out" / "index.html"
    record_path = tmp_path / "out" / "latest-brief.json"

    code = synthesizer.main(["--events", str(events_path), "--page", str(page),
                             "--record", str(record_path)])

    assert code == 0
    assert "Bridge drained" in page.read_text(encoding="utf-8")
    data = json.loads(record_path.read_text(encoding="utf-8"))
    assert data["eventCount"] == 1
    assert data["briefSource"] == "fallback"


def test_main_survives_missing_event_file(tmp_path, no_model_keys):
    page = tmp_path / "index.html"
    record_path = tmp_path / "brief.json"

    code = synthesizer.main(["--events", str(tmp_path / "missing.json"), "--mode", "simple",
                             "--page", str(page), "--record", str(record_path)])

    assert code == 0
    data = json.loads(record_path.read_text(encoding="utf-8"))
    assert data["eventCount"] == 0
    assert data["mode"] == "simple"


def test_out_of_range_model_numbers_do_not_crash(monkeypatch, config):
    _scripted_model(monkeypatch, {
        "You are a crypto threat": '{"entities": [{"name": "A", "mentions": 1e400}], '
                                   '"threats": [], "trend": "escalating", "top_risk": "x"}',
    })

    html, record, _ = synthesizer.synthesize([signal()], config, PERIOD, llm_id="github")

    assert record.entities == [{"name": "A", "type": "unknown", "risk": "unknown", "mentions": 1}]
    assert record.trend == "escalating"
    assert html.startswith("<!DOCTYPE html>")


def test_page_has_share_bar_and_category_map(config):
    events = [signal("sanctions", url="https://x/1"), signal("sanctions", url="https://x/2"),
              signal("phishing", "medium", url="https://x/3")]

    html, _, _ = synthesizer.synthesize(events, config, PERIOD, llm_id=None)

    assert "https://twitter.com/intent/tweet?text=" in html
    assert "https://www.linkedin.com/sharing/share-offsite/?url=https%3A%2F%2F" in html
    assert "https://t.me/share/url?url=" in html
    assert "3%20threat%20signals%20detected%20across%202%20categories" in html
    assert '<div class="tc-count" style="color: #ff5252">2</div><div class="tc-label">Sanctions</div>' in html
    assert "Phishing</div>" in html


def test_empty_page_category_map_placeholder(config):
    html, _, _ = synthesizer.synthesize([], config, PERIOD, llm_id=None)
    assert "No signals yet" in html
