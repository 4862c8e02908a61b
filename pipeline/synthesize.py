"""
AI Pass 2: Write the intelligence brief as HTML sections.
Input: EventSet, CategorySummary, EntityReport (extended mode only), period
Output: (brief_html, source) where source is "model" or "fallback", StepReport

The simple mode makes this the only model call of the run.
"""

import logging

import llm as llm_caller
from models import Rejected, StepReport
from pipeline import fallback
from pipeline.group import build_digest

log = logging.getLogger(__name__)

SYSTEM_PROMPT = (
    "You are a cryptocurrency threat intelligence analyst producing professional briefs "
    "for compliance teams. Output clean HTML content only. No markdown fences.")

SIMPLE_PROMPT = """Generate a weekly crypto threat intelligence brief.

Period: {start} to {end}
Total signals: {count}

Detected signals by category:
{digest}

Write the brief in HTML (content only, no html/head/body tags) with sections:
Executive Summary, Key Threats, Regulatory Outlook, Recommended Actions.
Use <h3> for headers. Keep it concise and actionable."""

EXTENDED_PROMPT = """You are an elite crypto threat intelligence analyst. Generate a comprehensive weekly intelligence brief.

Period: {start} to {end}
Total signals: {count} across {ncat} threat categories
{entity_context}
{trend_context}

Detected signals by category:
{digest}

Write a professional intelligence brief in HTML (content only, no html/head/body tags) with these sections:

1. Executive Summary - 3-4 sentences covering the week's threat landscape. Include overall risk posture.
2. Critical Threats - The most urgent items requiring immediate attention. Use severity badges.
3. Sanctions & Regulatory - OFAC, EU, FATF developments affecting crypto.
4. Cyber Threats & Exploits - Hacks, exploits, vulnerabilities targeting crypto infrastructure.
5. Market Integrity - Wash trading, manipulation, rug pulls, fraud schemes.
6. Entity Watchlist - Table of entities mentioned with risk levels.
7. Trend Analysis - Is the threat landscape escalating, stable, or declining?
8. Risk Matrix - Overall risk score (1-10) with breakdown by category.
9. Recommended Actions - Prioritized, specific steps for compliance teams.

Use <h3> for headers. Use CSS classes: risk-critical, risk-high, risk-medium, risk-low for severity badges.
For the entity table, use a simple HTML table with class="entity-table".
For the risk matrix, use class="risk-matrix".
Keep it concise, data-driven, and actionable."""


def build_prompt(signals, summary, period, config, entity_data=None):
    start, end = period
    digest = build_digest(summary, config)
    if config.mode == "simple" or entity_data is None:
        return SIMPLE_PROMPT.format(start=start, end=end, count=len(signals), digest=digest)

    entity_context = ""
    if entity_data.entities:
        entity_context = "Key entities identified: " + ", ".join(
            "{} ({}, risk: {})".format(e.name, e.type, e.risk) for e in entity_data.entities)
    trend_context = "Overall trend: {}".format(entity_data.trend) if entity_data.trend else ""
    return EXTENDED_PROMPT.format(
        start=start, end=end, count=len(signals), ncat=len(summary.counts),
        entity_context=entity_context, trend_context=trend_context, digest=digest)


def run(signals, summary, period, config, llm_id=None, entity_data=None):
    """Generate the brief. Returns (brief_html, source, report)."""
    log.info("\n>>> SYNTHESIZE (%s)...", config.mode)
    report = StepReport("synthesize", items_in=len(signals))

    decoded = Rejected("no LLM available")
    if llm_id:
        report.llm_calls += 1
        result = llm_caller.call_by_id(
            llm_id, SYSTEM_PROMPT,
            build_prompt(signals, summary, period, config, entity_data),
            max_tokens=3000, temperature=0.3, policy=config.policy)
        decoded = llm_caller.decode_html(result)
        if decoded.ok:
            report.llm_successes += 1
        else:
            report.llm_failures += 1

    if isinstance(decoded, Rejected):
        log.info("    Falling back to template brief (%s)", decoded.reason)
        report.notes.append("fallback: {}".format(decoded.reason))
        report.items_out = 1
        return fallback.brief_html(signals, period[0], period[1], config), "fallback", report

    report.items_out = 1
    return decoded.value, "model", report
