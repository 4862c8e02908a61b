"""
AI Pass 3: Social media thread (Twitter/X) summarizing the week.
Input: EventSet, EntityReport, period
Output: list of post strings (one deterministic post on failure), StepReport
"""

import logging

import llm as llm_caller
from models import Decoded, Parsed, Rejected, StepReport
from pipeline import fallback

log = logging.getLogger(__name__)

SYSTEM_PROMPT = "You create engaging crypto security Twitter threads. Output only a JSON array of strings."

PROMPT = """Generate a Twitter/X thread (5-7 tweets) summarizing this week's crypto threat intelligence.

Period: {start} to {end}
Signals: {count}
Top risk: {top_risk}
Trend: {trend}
Key entities: {entities}
Categories active: {categories}

Return ONLY valid JSON array of tweet strings. Each tweet must be under 280 chars. Use emojis.
Include relevant hashtags: #CryptoCompliance #Web3Security #DeFi
First tweet should be attention-grabbing with the risk level.
Last tweet should link to the full report: {site_url}"""


def decode_thread(text) -> Decoded:
    decoded = llm_caller.decode_json(text, expect=list)
    if not decoded.ok:
        return decoded
    posts = decoded.value
    if not posts:
        return Rejected("empty thread")
    if not all(isinstance(p, str) and p.strip() for p in posts):
        return Rejected("thread entries must be non-empty strings")
    return Parsed([p.strip() for p in posts])


def run(signals, entity_data, period, config, llm_id=None):
    """Generate the thread. Returns (posts, report)."""
    log.info("\n>>> SOCIAL...")
    report = StepReport("social", items_in=len(signals))

    decoded = Rejected("no LLM available")
    if llm_id:
        categories = []
        for s in signals:
            if s.category not in categories:
                categories.append(s.category)
        prompt = PROMPT.format(
            start=period[0], end=period[1], count=len(signals),
            top_risk=entity_data.top_risk or "See analysis",
            trend=entity_data.trend or "stable",
            entities=", ".join(e.name for e in entity_data.entities[:5]) or "None flagged",
            categories=", ".join(categories) or "None",
            site_url=config.site_url)
        report.llm_calls += 1
        result = llm_caller.call_by_id(llm_id, SYSTEM_PROMPT, prompt,
                                       max_tokens=1000, temperature=0.5, policy=config.policy)
        decoded = decode_thread(result)
        if decoded.ok:
            report.llm_successes += 1
        else:
            report.llm_failures += 1
            log.warning("    Social content unusable: %s", decoded.reason)

    if isinstance(decoded, Rejected):
        report.notes.append("fallback: {}".format(decoded.reason))
        posts = fallback.social_thread(len(signals), period[0], period[1], config.site_url)
    else:
        posts = decoded.value

    report.items_out = len(posts)
    log.info("    Generated %d posts", len(posts))
    return posts, report
