"""
Configuration: query templates, threat categories, LLM providers.
The CLIs build one immutable RadarConfig and pass it down. A JSON query
pack can override which queries run and how categories are displayed.
"""

import json
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from types import MappingProxyType
from typing import Mapping, Optional, Tuple


class ConfigError(Exception):
    """Missing credential or malformed query pack. Fatal for the CLIs."""


@dataclass(frozen=True)
class QuerySpec:
    """One query template sent to the signal source."""
    entities: str
    topic: str
    category: str
    severity: str


@dataclass(frozen=True)
class ThreatCategory:
    label: str
    icon: str = "\U0001f4cc"
    color: str = "#4fc3f7"


@dataclass(frozen=True)
class CallPolicy:
    """Timeout/retry policy for outbound HTTP. Defaults: no timeout, one attempt."""
    timeout: Optional[float] = None
    max_attempts: int = 1
    backoff_seconds: float = 8.0


DEFAULT_QUERIES = (
    # Sanctions & regulatory
    QuerySpec("cryptocurrency exchanges", "sanctions", "sanctions", "critical"),
    QuerySpec("cryptocurrency services", "regulatory enforcement", "regulatory", "high"),
    QuerySpec("DeFi protocols", "sanctions evasion", "sanctions-evasion", "critical"),
    QuerySpec("cryptocurrency mixers", "money laundering", "money-laundering", "critical"),
    # Cyber threats
    QuerySpec("cryptocurrency exchanges", "cyberattack", "cyberattack", "critical"),
    QuerySpec("DeFi protocols", "exploit", "exploit", "critical"),
    QuerySpec("cryptocurrency projects", "rug pull", "rug-pull", "high"),
    # Market manipulation
    QuerySpec("cryptocurrency exchanges", "wash trading", "wash-trading", "high"),
    QuerySpec("cryptocurrency markets", "market manipulation", "market-manipulation", "high"),
    # Fraud & scams
    QuerySpec("cryptocurrency", "fraud", "fraud", "high"),
    QuerySpec("cryptocurrency", "phishing attack", "phishing", "medium"),
)

THREAT_CATEGORIES = MappingProxyType({
    "sanctions": ThreatCategory("Sanctions", "⚖️", "#ff5252"),
    "regulatory": ThreatCategory("Regulatory", "\U0001f4cb", "#ffa726"),
    "sanctions-evasion": ThreatCategory("Sanctions Evasion", "\U0001f575️", "#ff5252"),
    "money-laundering": ThreatCategory("Money Laundering", "\U0001f4b0", "#ff5252"),
    "cyberattack": ThreatCategory("Cyberattack", "\U0001f513", "#e040fb"),
    "exploit": ThreatCategory("DeFi Exploit", "\U0001f4a5", "#e040fb"),
    "rug-pull": ThreatCategory("Rug Pull", "\U0001f3c3", "#ffa726"),
    "wash-trading": ThreatCategory("Wash Trading", "\U0001f504", "#ffa726"),
    "market-manipulation": ThreatCategory("Market Manipulation", "\U0001f4ca", "#ffa726"),
    "fraud": ThreatCategory("Fraud", "\U0001f6a8", "#ff5252"),
    "phishing": ThreatCategory("Phishing", "\U0001f3a3", "#4fc3f7"),
})

SEVERITIES = ("critical", "high", "medium", "low")

LLM_CONFIGS = {
    "github": {
        "provider": "openai", "model": "gpt-4o-mini",
        "env_key": "GITHUB_TOKEN", "label": "GitHub Models",
        "url": "https://models.inference.ai.azure.com/chat/completions",
    },
    "chatgpt": {
        "provider": "openai", "model": "gpt-4o-mini",
        "env_key": "OPENAI_API_KEY", "label": "ChatGPT",
        "url": "https://api.openai.com/v1/chat/completions",
    },
    "claude": {
        "provider": "anthropic", "model": "claude-sonnet-4-20250514",
        "env_key": "ANTHROPIC_API_KEY", "label": "Claude",
        "url": "https://api.anthropic.com/v1/messages",
    },
}

SOURCE_API_URL = "https://cpw-tracker.p.rapidapi.com/"
SOURCE_API_HOST = "cpw-tracker.p.rapidapi.com"
SOURCE_KEY_ENV = "RAPIDAPI_KEY"
SITE_URL = "https://athena-os-2026.github.io/sanctions-radar/"
MODES = ("simple", "extended")


@dataclass(frozen=True)
class RadarConfig:
    """Everything a Collector or Synthesizer run needs, fixed at startup."""
    queries: Tuple[QuerySpec, ...] = DEFAULT_QUERIES
    categories: Mapping[str, ThreatCategory] = field(default_factory=lambda: THREAT_CATEGORIES)
    window_days: int = 7
    api_url: str = SOURCE_API_URL
    api_host: str = SOURCE_API_HOST
    api_key: str = field(default="", repr=False)
    events_path: Path = Path("data/events.json")
    page_path: Path = Path("index.html")
    brief_path: Path = Path("data/latest-brief.json")
    site_url: str = SITE_URL
    mode: str = "extended"
    llm_id: Optional[str] = None
    policy: CallPolicy = field(default_factory=CallPolicy)
    # Digest caps
    extract_limit: int = 30
    examples_per_category: int = 5
    page_signal_limit: int = 50
    watchlist_limit: int = 15
    name: str = "CryptoThreat Radar"

    def category(self, tag):
        """Display metadata for a category tag; unknown tags get a generic entry."""
        return self.categories.get(tag) or ThreatCategory(tag or "General")

    def with_overrides(self, **changes):
        return replace(self, **changes)


def load_query_pack(path):
    """Load a JSON config pack that overrides default queries/categories."""
    if not path:
        return None
    p = Path(path)
    if not p.exists():
        raise ConfigError("Query pack not found: {}".format(path))
    try:
        with open(p, encoding="utf-8") as f:
            pack = json.load(f)
    except ValueError as e:
        raise ConfigError("Query pack {} is not valid JSON: {}".format(path, e))
    if not isinstance(pack, dict):
        raise ConfigError("Query pack {} must be a JSON object".format(path))
    return pack


def get_active_queries(pack=None):
    """Return query list, optionally filtered or replaced by a query pack.

    A list of category names keeps only those defaults; a list of objects
    replaces the defaults entirely.
    """
    if not pack or "queries" not in pack or pack["queries"] == "all":
        return DEFAULT_QUERIES
    entries = pack["queries"]
    if not isinstance(entries, list):
        raise ConfigError("'queries' must be a list or \"all\"")
    if all(isinstance(q, str) for q in entries):
        allowed = set(entries)
        return tuple(q for q in DEFAULT_QUERIES if q.category in allowed)
    queries = []
    for q in entries:
        if not isinstance(q, dict):
            raise ConfigError("Query entries must all be names or all be objects")
        try:
            queries.append(QuerySpec(
                entities=str(q["entities"]), topic=str(q["topic"]),
                category=str(q["category"]), severity=str(q.get("severity", "medium"))))
        except KeyError as e:
            raise ConfigError("Query {} is missing {}".format(q, e))
    return tuple(queries)


def get_active_categories(pack=None):
    """Return category display table, merged with any pack overrides."""
    if not pack or not pack.get("categories"):
        return THREAT_CATEGORIES
    if not isinstance(pack["categories"], dict):
        raise ConfigError("'categories' must be an object keyed by category tag")
    merged = dict(THREAT_CATEGORIES)
    for tag, meta in pack["categories"].items():
        if not isinstance(meta, dict) or "label" not in meta:
            raise ConfigError("Category {} needs at least a label".format(tag))
        base = merged.get(tag, ThreatCategory(meta["label"]))
        merged[tag] = ThreatCategory(
            label=meta["label"],
            icon=meta.get("icon", base.icon),
            color=meta.get("color", base.color))
    return MappingProxyType(merged)


def _policy_from_env(environ):
    timeout = environ.get("RADAR_HTTP_TIMEOUT")
    attempts = environ.get("RADAR_MAX_ATTEMPTS")
    try:
        return CallPolicy(
            timeout=float(timeout) if timeout else None,
            max_attempts=max(1, int(attempts)) if attempts else 1)
    except ValueError as e:
        raise ConfigError("Bad call policy setting: {}".format(e))


def load_config(pack_path=None, environ=None, require_source_key=False):
    """Build the run configuration from defaults, an optional pack, and the environment."""
    environ = os.environ if environ is None else environ
    pack = load_query_pack(pack_path) or {}

    api_key = environ.get(SOURCE_KEY_ENV, "")
    if require_source_key and not api_key:
        raise ConfigError("{} environment variable is required".format(SOURCE_KEY_ENV))

    mode = pack.get("mode", "extended")
    if mode not in MODES:
        raise ConfigError("Unknown mode '{}' (expected one of {})".format(mode, ", ".join(MODES)))
    llm_id = pack.get("llm")
    if llm_id is not None and (not isinstance(llm_id, str) or llm_id not in LLM_CONFIGS):
        raise ConfigError("Unknown LLM '{}'".format(llm_id))

    try:
        window_days = int(pack.get("window_days", 7))
    except (TypeError, ValueError):
        raise ConfigError("window_days must be an integer")
    if window_days < 1:
        raise ConfigError("window_days must be positive")

    return RadarConfig(
        queries=get_active_queries(pack),
        categories=get_active_categories(pack),
        window_days=window_days,
        api_key=api_key,
        site_url=pack.get("site_url", SITE_URL),
        mode=mode,
        llm_id=llm_id,
        policy=_policy_from_env(environ),
        name=pack.get("name", "CryptoThreat Radar"),
    )
