"""
Step 1: Query the signal source, one request per QuerySpec, sequentially.
A failing query is logged and contributes nothing; it never stops the run.
"""

import logging
from datetime import datetime, timedelta, timezone

import requests

from models import TaggedSignal, StepReport

log = logging.getLogger(__name__)


def iso_z(dt):
    """ISO-8601 UTC with milliseconds and a Z suffix."""
    return dt.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def make_window(days=7, now=None):
    """The rolling window [now - days, now] as ISO strings."""
    end = now or datetime.now(timezone.utc)
    start = end - timedelta(days=days)
    return iso_z(start), iso_z(end)


def fetch_query(query, window, config, session=None):
    """Fetch one query. Returns a list of TaggedSignal, or None if the request failed.

    A successful response that is not a JSON array yields an empty list.
    """
    http = session or requests
    start, end = window
    try:
        resp = http.post(
            config.api_url,
            headers={
                "Content-Type": "application/json",
                "x-rapidapi-host": config.api_host,
                "x-rapidapi-key": config.api_key,
            },
            json={"entities": query.entities, "topic": query.topic,
                  "startTime": start, "endTime": end},
            timeout=config.policy.timeout)
    except requests.RequestException as e:
        log.warning("    Error fetching %s: %s", query.topic, str(e)[:100])
        return None

    if not resp.ok:
        log.warning("    API request failed for %s: %s", query.topic, resp.status_code)
        return None
    try:
        data = resp.json()
    except ValueError:
        log.warning("    Unreadable response for %s", query.topic)
        return None

    records = data if isinstance(data, list) else []
    return [TaggedSignal.from_query(r, query) for r in records if isinstance(r, dict)]


def run(queries, window, config, session=None):
    """Fetch every query in order. Returns (signals, report)."""
    log.info("\n>>> FETCH: %d queries...", len(queries))
    log.info("    Period: %s to %s", window[0], window[1])
    report = StepReport("fetch", items_in=len(queries))

    all_signals = []
    failed = 0
    for query in queries:
        log.info("  Querying: %s + %s", query.entities, query.topic)
        signals = fetch_query(query, window, config, session)
        if signals is None:
            failed += 1
            continue
        log.info("    Found %d results", len(signals))
        all_signals.extend(signals)

    if failed:
        report.notes.append("{} queries failed".format(failed))
    report.items_out = len(all_signals)
    return all_signals, report
