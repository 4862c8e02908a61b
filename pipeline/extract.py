"""
AI Pass 1: Entity extraction and threat classification.
Input: EventSet
Output: EntityReport (deterministic fallback when the model fails), StepReport
"""

import logging

import llm as llm_caller
from config import SEVERITIES
from models import Decoded, Entity, EntityReport, Parsed, Rejected, StepReport, Threat
from pipeline import fallback
from pipeline.group import build_signal_list

log = logging.getLogger(__name__)

TRENDS = ("escalating", "stable", "declining")

SYSTEM_PROMPT = "You are a crypto threat intelligence analyst. Output only valid JSON."

PROMPT = """Analyze these crypto threat signals and extract structured data.

Signals:
{signals}

Return ONLY valid JSON (no markdown fences) with this structure:
{{
  "entities": [{{"name": "Entity Name", "type": "exchange|protocol|mixer|person|organization|token", "risk": "critical|high|medium|low", "mentions": 1}}],
  "threats": [{{"type": "category", "severity": "critical|high|medium|low", "summary": "brief description", "affected_entities": ["name1"]}}],
  "trend": "escalating|stable|declining",
  "top_risk": "One sentence about the biggest risk this week"
}}"""


def decode_entity_report(text) -> Decoded:
    """Schema-check model output. Returns Parsed(EntityReport) or Rejected."""
    decoded = llm_caller.decode_json(text, expect=dict)
    if not decoded.ok:
        return decoded
    data = decoded.value

    raw_entities = data.get("entities", [])
    raw_threats = data.get("threats", [])
    if not isinstance(raw_entities, list) or not isinstance(raw_threats, list):
        return Rejected("entities and threats must be lists")

    trend = data.get("trend", "stable")
    if trend not in TRENDS:
        return Rejected("unknown trend {!r}".format(trend))
    top_risk = data.get("top_risk") or ""
    if not isinstance(top_risk, str):
        return Rejected("top_risk must be a string")

    entities = []
    for e in raw_entities:
        if not isinstance(e, dict) or not isinstance(e.get("name"), str) or not e["name"].strip():
            continue
        risk = str(e.get("risk", "unknown")).lower()
        try:
            mentions = max(1, int(e.get("mentions", 1)))
        except (TypeError, ValueError, OverflowError):
            mentions = 1
        entities.append(Entity(
            name=e["name"].strip(), type=str(e.get("type") or "unknown"),
            risk=risk if risk in SEVERITIES else "unknown", mentions=mentions))

    threats = []
    for t in raw_threats:
        if not isinstance(t, dict) or not t.get("type"):
            continue
        affected = t.get("affected_entities") or []
        threats.append(Threat(
            type=str(t["type"]), severity=str(t.get("severity", "medium")),
            summary=str(t.get("summary", "")),
            affected_entities=[str(a) for a in affected] if isinstance(affected, list) else []))

    return Parsed(EntityReport(entities=entities, threats=threats, trend=trend, top_risk=top_risk))


def run(signals, config, llm_id=None):
    """Extract entities. Returns (EntityReport, report)."""
    log.info("\n>>> EXTRACT: %d signals...", len(signals))
    report = StepReport("extract", items_in=len(signals))

    if not signals:
        report.notes.append("no signals")
        return fallback.entity_report("No signals detected this period"), report
    if not llm_id:
        report.notes.append("no LLM available, fallback")
        return fallback.entity_report(), report

    report.llm_calls += 1
    result = llm_caller.call_by_id(
        llm_id, SYSTEM_PROMPT,
        PROMPT.format(signals=build_signal_list(signals, config.extract_limit)),
        max_tokens=1500, temperature=0.2, policy=config.policy)

    decoded = decode_entity_report(result)
    if isinstance(decoded, Rejected):
        log.warning("    Entity extraction unusable: %s", decoded.reason)
        report.llm_failures += 1
        report.notes.append("fallback: {}".format(decoded.reason))
        return fallback.entity_report(), report

    report.llm_successes += 1
    entity_data = decoded.value
    report.items_out = len(entity_data.entities)
    log.info("    Extracted %d entities, trend: %s", len(entity_data.entities), entity_data.trend)
    return entity_data, report
