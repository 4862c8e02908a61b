"""
Data models for the radar. Clean interfaces between steps.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

TAG_KEYS = ("_category", "_severity", "_entities", "_topic")


@dataclass
class TaggedSignal:
    """A raw source record plus the tags of the query that fetched it.

    The raw record is kept as-is so unrecognised provider fields survive a
    round-trip. Tags live beside it, never inside it.
    """
    record: Dict[str, Any]
    category: str = "general"
    severity: str = "low"
    entities: str = ""
    topic: str = ""

    @classmethod
    def from_query(cls, record, query):
        return cls(record=record, category=query.category, severity=query.severity,
                   entities=query.entities, topic=query.topic)

    @classmethod
    def from_dict(cls, data):
        """Rebuild from the persisted form (raw fields + underscore tags)."""
        record = {k: v for k, v in data.items() if k not in TAG_KEYS}
        return cls(
            record=record,
            category=str(data.get("_category") or "general"),
            severity=str(data.get("_severity") or "low"),
            entities=str(data.get("_entities") or ""),
            topic=str(data.get("_topic") or ""),
        )

    def to_dict(self):
        """Persisted form: the raw record with tags as underscore fields."""
        d = dict(self.record)
        d["_category"] = self.category
        d["_severity"] = self.severity
        d["_entities"] = self.entities
        d["_topic"] = self.topic
        return d

    @property
    def timestamp(self):
        return self.record.get("timestamp")

    @property
    def url(self):
        url = self.record.get("url")
        return url if isinstance(url, str) and url.strip() else None

    @property
    def title(self):
        return self.record.get("title") or self.record.get("text") or "Signal"

    @property
    def source(self):
        return self.record.get("source") or None

    def fingerprint(self):
        """Stable full-content serialization, used as the dedup key without a URL."""
        return json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"),
                          ensure_ascii=False, default=str)

    def dedup_key(self):
        return self.url or self.fingerprint()


@dataclass
class CategorySummary:
    """Per-category counts and representative signals, in first-seen order."""
    counts: Dict[str, int] = field(default_factory=dict)
    top: Dict[str, List[TaggedSignal]] = field(default_factory=dict)

    @property
    def total(self):
        return sum(self.counts.values())

    def ranked(self):
        """(category, count) pairs, busiest first. Ties keep first-seen order."""
        return sorted(self.counts.items(), key=lambda kv: kv[1], reverse=True)


@dataclass
class Entity:
    name: str
    type: str = "unknown"
    risk: str = "unknown"
    mentions: int = 1


@dataclass
class Threat:
    type: str
    severity: str = "medium"
    summary: str = ""
    affected_entities: List[str] = field(default_factory=list)


@dataclass
class EntityReport:
    """Output of the entity extraction pass."""
    entities: List[Entity] = field(default_factory=list)
    threats: List[Threat] = field(default_factory=list)
    trend: str = "stable"
    top_risk: str = ""

    def to_dict(self):
        return {
            "entities": [e.__dict__.copy() for e in self.entities],
            "threats": [dict(t.__dict__, affected_entities=list(t.affected_entities))
                        for t in self.threats],
            "trend": self.trend,
            "top_risk": self.top_risk,
        }


@dataclass
class Parsed:
    """Model output that passed schema checks."""
    value: Any

    ok = True


@dataclass
class Rejected:
    """Model output that was missing or did not match the expected shape."""
    reason: str

    ok = False


Decoded = Union[Parsed, Rejected]


@dataclass
class BriefRecord:
    """Structured summary written beside the rendered page."""
    generated: str
    period_start: str
    period_end: str
    event_count: int
    threat_categories: List[str]
    brief_html: str
    brief_source: str = "fallback"
    mode: str = "extended"
    entities: List[Dict] = field(default_factory=list)
    trend: Optional[str] = None
    top_risk: Optional[str] = None
    social_thread: List[str] = field(default_factory=list)

    def to_dict(self):
        return {
            "generated": self.generated,
            "period": {"start": self.period_start, "end": self.period_end},
            "eventCount": self.event_count,
            "threatCategories": self.threat_categories,
            "entities": self.entities,
            "trend": self.trend,
            "topRisk": self.top_risk,
            "socialThread": self.social_thread,
            "briefHtml": self.brief_html,
            "mode": self.mode,
            "briefSource": self.brief_source,
        }


@dataclass
class StepReport:
    """Observability for each pipeline step."""
    step_name: str
    items_in: int = 0
    items_out: int = 0
    llm_calls: int = 0
    llm_successes: int = 0
    llm_failures: int = 0
    notes: List[str] = field(default_factory=list)

    def summary(self):
        success_rate = ""
        if self.llm_calls > 0:
            pct = int(100 * self.llm_successes / self.llm_calls)
            success_rate = " ({}% success)".format(pct)
        return "{}: {} in -> {} out | {} LLM calls{}{}".format(
            self.step_name, self.items_in, self.items_out,
            self.llm_calls, success_rate,
            " | " + "; ".join(self.notes) if self.notes else "")
