"""Model passes: schema checks and fallbacks for extraction, brief and social thread."""

import json

import pytest

import llm
from config import RadarConfig
from conftest import signal
from models import Parsed, Rejected
from pipeline import extract, social, synthesize
from pipeline.group import group_by_category

PERIOD = ("2026-10-12", "2026-10-19")


@pytest.fixture
def reply(monkeypatch):
    """Make every model call return the given text (or None)."""
    sent = []

    def install(text):
        def fake_call(llm_id, system_prompt, user_prompt, **kwargs):
            sent.append({"llm": llm_id, "system": system_prompt, "user": user_prompt, **kwargs})
            return text
        monkeypatch.setattr(llm, "call_by_id", fake_call)
        return sent

    return install


ENTITY_JSON = json.dumps({
    "entities": [
        {"name": "Tornado Cash", "type": "mixer", "risk": "critical", "mentions": 3},
        {"name": "", "type": "exchange"},
        {"name": "Garantex", "type": "exchange", "risk": "EXTREME", "mentions": "many"},
    ],
    "threats": [{"type": "sanctions", "severity": "critical", "summary": "OFAC action",
                 "affected_entities": ["Tornado Cash"]}, "junk"],
    "trend": "escalating",
    "top_risk": "Mixer sanctions widen.",
})


def test_decode_entity_report_normalizes_items():
    decoded = extract.decode_entity_report("```json\n" + ENTITY_JSON + "\n```")

    assert isinstance(decoded, Parsed)
    report = decoded.value
    assert [e.name for e in report.entities] == ["Tornado Cash", "Garantex"]
    assert report.entities[1].risk == "unknown"
    assert report.entities[1].mentions == 1
    assert len(report.threats) == 1
    assert report.threats[0].affected_entities == ["Tornado Cash"]
    assert report.trend == "escalating"


@pytest.mark.parametrize("text", [
    None,
    "not json at all",
    '["a list"]',
    '{"entities": "Tornado Cash"}',
    '{"entities": [], "trend": "sideways"}',
    '{"entities": [], "top_risk": 7}',
])
def test_decode_entity_report_rejects_bad_shapes(text):
    assert isinstance(extract.decode_entity_report(text), Rejected)


def test_extract_success(reply):
    sent = reply(ENTITY_JSON)
    events = [signal("sanctions", title="Mixer designated", source="OFAC")]

    report_data, report = extract.run(events, RadarConfig(), "github")

    assert report_data.trend == "escalating"
    assert report.llm_successes == 1
    assert "[sanctions] Mixer designated (OFAC)" in sent[0]["user"]
    assert sent[0]["temperature"] == 0.2


def test_extract_fallback_on_garbage(reply):
    reply("I cannot help with that")
    report_data, report = extract.run([signal()], RadarConfig(), "github")

    assert report_data.entities == []
    assert report_data.trend == "stable"
    assert report_data.top_risk == "Insufficient data for analysis"
    assert report.llm_failures == 1


def test_extract_skips_model_without_signals(reply):
    sent = reply(ENTITY_JSON)
    report_data, _ = extract.run([], RadarConfig(), "github")
    assert sent == []
    assert report_data.trend == "stable"


def test_brief_uses_model_html(reply):
    sent = reply("```html\n<h3>Executive Summary</h3><p>Quiet week.</p>\n```")
    events = [signal("exploit", title="Bridge drained")]

    html, source, _ = synthesize.run(events, group_by_category(events), PERIOD, RadarConfig(), "github")

    assert source == "model"
    assert html == "<h3>Executive Summary</h3><p>Quiet week.</p>"
    assert "Period: 2026-10-12 to 2026-10-19" in sent[0]["user"]
    assert "Bridge drained" in sent[0]["user"]


def test_simple_mode_uses_short_prompt(reply):
    sent = reply("<p>brief</p>")
    config = RadarConfig(mode="simple")
    synthesize.run([], group_by_category([]), PERIOD, config, "github")
    assert "Entity Watchlist" not in sent[0]["user"]
    assert "No events detected this period." in sent[0]["user"]


@pytest.mark.parametrize("text", [None, "", "```\n```"])
def test_brief_fallback(reply, text):
    reply(text)
    events = [signal("sanctions", "critical", title="Exchange <b>fined</b>", source="OFAC")]

    html, source, report = synthesize.run(events, group_by_category(events), PERIOD, RadarConfig(), "github")

    assert source == "fallback"
    assert "<h3>Recommended Actions</h3>" in html
    assert "Exchange &lt;b&gt;fined&lt;/b&gt;" in html
    assert "1 sanctions signals" in html
    assert report.notes


def test_brief_fallback_without_llm():
    html, source, report = synthesize.run([], group_by_category([]), PERIOD, RadarConfig(), None)
    assert source == "fallback"
    assert report.llm_calls == 0
    assert "<strong>0</strong> signals" in html
    assert "LOW" in html


def test_decode_thread():
    assert social.decode_thread('["one", " two "]') == Parsed(["one", "two"])
    assert isinstance(social.decode_thread("[]"), Rejected)
    assert isinstance(social.decode_thread('["ok", 3]'), Rejected)
    assert isinstance(social.decode_thread('{"tweets": ["x"]}'), Rejected)


def test_social_fallback_post(reply):
    reply("Sure! Here's a thread: 1/ ...")
    entity_data = extract.fallback.entity_report()

    posts, report = social.run([signal(), signal()], entity_data, PERIOD, RadarConfig(), "github")

    assert len(posts) == 1
    assert "2 threat signals" in posts[0]
    assert "2026-10-12" in posts[0] and "2026-10-19" in posts[0]
    assert RadarConfig().site_url in posts[0]
    assert report.llm_failures == 1


def test_social_success(reply):
    sent = reply('["\U0001f6a8 Risk HIGH", "Read more"]')
    entity_data = extract.fallback.entity_report()

    posts, _ = social.run([signal("fraud")], entity_data, PERIOD, RadarConfig(), "github")

    assert posts == ["\U0001f6a8 Risk HIGH", "Read more"]
    assert "Categories active: fraud" in sent[0]["user"]
    assert sent[0]["temperature"] == 0.5


@pytest.mark.parametrize("count, expected", [
    (0, ("low", 2)), (3, ("low", 2)), (4, ("medium", 4)), (8, ("medium", 4)),
    (9, ("high", 6)), (15, ("high", 6)), (16, ("critical", 8)),
])
def test_risk_level_thresholds(count, expected):
    assert extract.fallback.risk_level(count) == expected


def test_decode_entity_report_survives_huge_mentions():
    decoded = extract.decode_entity_report(
        '{"entities": [{"name": "A", "mentions": 1e400}], "threats": [], "trend": "stable"}')
    assert decoded.value.entities[0].mentions == 1
