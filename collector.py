#!/usr/bin/env python3
"""
Threat Radar Collector
======================
Fetch > Sort > Dedup > Save. Queries the signal source once per query
template for the last 7 days and rewrites data/events.json.

Usage:
  python collector.py                           # Default query set
  python collector.py --config packs/defi.json  # Specific query pack

Requires RAPIDAPI_KEY.
"""

import argparse
import logging
import sys
import time

from config import ConfigError, load_config
from event_store import save_events
from logging_utils import log_run_report, setup_logging
from pipeline import dedup, fetch

log = logging.getLogger("radar.collector")


def collect(config, window=None, session=None, events_path=None):
    """Fetch every query, order and dedup the results, and persist them.

    Per-query failures only shrink the result; if every query fails the
    EventSet is empty. Returns (events, reports).
    """
    window = window or fetch.make_window(config.window_days)
    signals, fetch_report = fetch.run(config.queries, window, config, session)
    events, dedup_report = dedup.run(signals)
    save_events(events, events_path or config.events_path)
    return events, [fetch_report, dedup_report]


def main(argv=None):
    parser = argparse.ArgumentParser(description="Collect crypto threat signals")
    parser.add_argument("--config", help="Path to query pack JSON", default=None)
    parser.add_argument("--output", help="EventSet path", default=None)
    parser.add_argument("--days", type=int, default=None, help="Window length in days")
    parser.add_argument("--log-file", default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(args.log_file, args.verbose)
    start_time = time.time()
    log.info("=" * 70)
    log.info("THREAT RADAR COLLECTOR")
    log.info("=" * 70)

    try:
        config = load_config(args.config, require_source_key=True)
    except ConfigError as e:
        log.error("Error: %s", e)
        return 1

    overrides = {}
    if args.output:
        overrides["events_path"] = args.output
    if args.days:
        overrides["window_days"] = args.days
    if overrides:
        config = config.with_overrides(**overrides)
    log.info("Config: %s | Queries: %d | Window: %d days",
             config.name, len(config.queries), config.window_days)

    events, reports = collect(config)

    log_run_report(log, reports, int(time.time() - start_time))
    log.info("Update completed successfully: %d signals", len(events))
    return 0


if __name__ == "__main__":
    sys.exit(main())
