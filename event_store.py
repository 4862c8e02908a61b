"""
Event Store: the EventSet file shared by the collector and the synthesizer.

Storage: data/events.json, a JSON array of tagged signal records, fully
rewritten on every collector run. Readers treat a missing or unreadable
file as "no signals".
"""

import json
import logging
import os
from pathlib import Path

from models import TaggedSignal

log = logging.getLogger(__name__)

EVENTS_PATH = Path("data/events.json")


def load_events(path=EVENTS_PATH):
    """Load the EventSet. Returns a list of TaggedSignal, empty on any read problem."""
    path = Path(path)
    if not path.exists():
        log.info("No event data at %s", path)
        return []
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (ValueError, OSError) as e:
        log.warning("Could not read %s (%s), treating as empty", path, str(e)[:100])
        return []
    if not isinstance(data, list):
        log.warning("%s does not hold a JSON array, treating as empty", path)
        return []
    return [TaggedSignal.from_dict(item) for item in data if isinstance(item, dict)]


def save_events(signals, path=EVENTS_PATH):
    """Replace the EventSet with signals. Write errors propagate."""
    write_json(path, [s.to_dict() for s in signals])
    log.info("Saved %d unique items to %s", len(signals), path)


def write_json(path, data):
    """Write JSON to a temp sibling then move it into place."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False, default=str),
                   encoding="utf-8")
    os.replace(tmp, path)


def write_text(path, text):
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    tmp.write_text(text, encoding="utf-8")
    os.replace(tmp, path)
