"""Shared fixtures: configs, fake HTTP responses, signal factories."""

import json
import logging
import os
import sys

import pytest
import requests

# Add repo root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config import QuerySpec, RadarConfig  # noqa: E402
from models import TaggedSignal  # noqa: E402

MODEL_ENV_KEYS = ("GITHUB_TOKEN", "OPENAI_API_KEY", "ANTHROPIC_API_KEY")


def make_response(status=200, payload=None, body=None):
    """A real requests.Response with a canned body."""
    resp = requests.Response()
    resp.status_code = status
    resp.encoding = "utf-8"
    resp.url = "https://example.test/"
    if body is None:
        body = json.dumps(payload if payload is not None else [])
    resp._content = body.encode("utf-8")
    return resp


class FakeSession:
    """Stands in for requests: answers each POST with the next scripted outcome.

    Outcomes are Response objects or exceptions to raise.
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    def post(self, url, headers=None, json=None, timeout=None):
        self.calls.append({"url": url, "headers": headers, "json": json, "timeout": timeout})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def signal(category="sanctions", severity="critical", **record):
    return TaggedSignal(record=record, category=category, severity=severity,
                        entities="cryptocurrency exchanges", topic=category)


@pytest.fixture
def queries():
    return (
        QuerySpec("cryptocurrency exchanges", "sanctions", "sanctions", "critical"),
        QuerySpec("DeFi protocols", "exploit", "exploit", "critical"),
    )


@pytest.fixture
def config(tmp_path, queries):
    return RadarConfig(
        queries=queries,
        api_key="test-key",
        events_path=tmp_path / "data" / "events.json",
        page_path=tmp_path / "index.html",
        brief_path=tmp_path / "data" / "latest-brief.json",
    )


@pytest.fixture(autouse=True)
def restore_root_logger():
    """CLI tests call setup_logging, which replaces the root handlers."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def no_model_keys(monkeypatch):
    for key in MODEL_ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
