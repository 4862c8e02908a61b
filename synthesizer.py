#!/usr/bin/env python3
"""
Threat Radar Synthesizer
========================
Load EventSet > Group > [Extract] > Synthesize > [Social] > Publish

simple mode makes one model call (the brief); extended mode makes three
(entities, brief, social thread). Any pass that fails falls back to
deterministic content, so the page and brief record are always written.

Usage:
  python synthesizer.py                  # extended mode
  python synthesizer.py --mode simple

Model credentials (GITHUB_TOKEN, OPENAI_API_KEY or ANTHROPIC_API_KEY) are
optional; without one the whole brief is the fallback template.
"""

import argparse
import logging
import sys
import time
from datetime import datetime, timedelta, timezone

import llm as llm_caller
from config import LLM_CONFIGS, MODES, ConfigError, load_config
from event_store import load_events, write_json, write_text
from logging_utils import log_run_report, setup_logging
from models import BriefRecord, StepReport
from pipeline import extract, publish, social, synthesize as synth_step
from pipeline.group import group_by_category

log = logging.getLogger("radar.synthesizer")


def report_period(window_days=7, now=None):
    """(start, end) dates of the period the brief covers."""
    end = now or datetime.now(timezone.utc)
    return (end - timedelta(days=window_days)).strftime("%Y-%m-%d"), end.strftime("%Y-%m-%d")


def synthesize(events, config, period=None, llm_id=None):
    """Run the model passes over events and render the outputs.

    Returns (html, BriefRecord, reports). Never raises on model failures.
    """
    period = period or report_period(config.window_days)
    summary = group_by_category(events, config.examples_per_category)
    reports = [StepReport("group", items_in=len(events), items_out=len(summary.counts))]

    entity_data = None
    posts = []
    if config.mode == "extended":
        entity_data, r = extract.run(events, config, llm_id)
        reports.append(r)

    brief_html, brief_source, r = synth_step.run(events, summary, period, config, llm_id, entity_data)
    reports.append(r)

    if config.mode == "extended":
        posts, r = social.run(events, entity_data, period, config, llm_id)
        reports.append(r)

    html = publish.run(brief_html, events, period, config, entity_data, posts)

    record = BriefRecord(
        generated=datetime.now(timezone.utc).isoformat(),
        period_start=period[0],
        period_end=period[1],
        event_count=len(events),
        threat_categories=list(summary.counts),
        brief_html=brief_html,
        brief_source=brief_source,
        mode=config.mode,
        entities=entity_data.to_dict()["entities"] if entity_data else [],
        trend=entity_data.trend if entity_data else None,
        top_risk=entity_data.top_risk if entity_data else None,
        social_thread=posts,
    )
    return html, record, reports


def main(argv=None):
    parser = argparse.ArgumentParser(description="Generate the weekly threat intelligence brief")
    parser.add_argument("--config", help="Path to query pack JSON", default=None)
    parser.add_argument("--events", help="EventSet path", default=None)
    parser.add_argument("--mode", choices=MODES, default=None)
    parser.add_argument("--page", help="Output HTML path", default=None)
    parser.add_argument("--record", help="Output brief JSON path", default=None)
    parser.add_argument("--llm", choices=sorted(LLM_CONFIGS), default=None)
    parser.add_argument("--log-file", default=None)
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    setup_logging(args.log_file, args.verbose)
    start_time = time.time()
    log.info("=" * 70)
    log.info("THREAT RADAR BRIEF")
    log.info("=" * 70)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        log.error("Error: %s", e)
        return 1

    overrides = {k: v for k, v in {
        "events_path": args.events, "mode": args.mode, "page_path": args.page,
        "brief_path": args.record, "llm_id": args.llm,
    }.items() if v}
    if overrides:
        config = config.with_overrides(**overrides)

    llm_id = llm_caller.pick_llm(config.llm_id)
    if llm_id:
        log.info("Mode: %s | LLM: %s", config.mode, LLM_CONFIGS[llm_id]["label"])
    else:
        log.info("Mode: %s | No LLM credential found, using template content", config.mode)

    events = load_events(config.events_path)
    log.info("Loaded %d signals from %s", len(events), config.events_path)

    html, record, reports = synthesize(events, config, llm_id=llm_id)

    write_text(config.page_path, html)
    log.info("\nGenerated %s", config.page_path)
    write_json(config.brief_path, record.to_dict())
    log.info("Brief record: %s", config.brief_path)

    log_run_report(log, reports, int(time.time() - start_time))
    return 0


if __name__ == "__main__":
    sys.exit(main())
