"""
Step 2: Order and deduplicate fetched signals.

Sort newest first, then keep the first signal seen for each key (URL, or
a full-content fingerprint when there is no URL). The same report fetched
by two queries keeps only the tags of whichever copy sorts first.
"""

import logging
from datetime import datetime, timezone

from dateutil.parser import parse as dtparse

from models import StepReport

log = logging.getLogger(__name__)

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)

# dateutil fills missing date parts from its default; two different defaults
# expose strings like "10:00" or "Monday" that carry no full date.
_DEFAULTS = (datetime(2001, 1, 1), datetime(2002, 2, 2))


def parse_timestamp(value):
    """Milliseconds since epoch. Numbers are taken as epoch ms; unparseable -> 0."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, (int, float)):
        return value if value == value else 0
    if not isinstance(value, str) or not value.strip():
        return 0
    try:
        dt, check = (dtparse(value, default=d) for d in _DEFAULTS)
    except (ValueError, OverflowError):
        return 0
    if dt != check:
        return 0
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - EPOCH).total_seconds() * 1000


def sort_signals(signals):
    """Newest first. Stable, so equal timestamps keep fetch order."""
    return sorted(signals, key=lambda s: parse_timestamp(s.timestamp), reverse=True)


def deduplicate(signals):
    """Keep the first occurrence of each dedup key."""
    seen = set()
    unique = []
    for s in signals:
        key = s.dedup_key()
        if key in seen:
            continue
        seen.add(key)
        unique.append(s)
    return unique


def run(signals):
    """Sort and dedup. Returns (event_set, report)."""
    log.info("\n>>> DEDUP: %d signals...", len(signals))
    report = StepReport("dedup", items_in=len(signals))
    unique = deduplicate(sort_signals(signals))
    dropped = len(signals) - len(unique)
    if dropped:
        report.notes.append("{} duplicates dropped".format(dropped))
    report.items_out = len(unique)
    log.info("    %d unique signals", len(unique))
    return unique, report
