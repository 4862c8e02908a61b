"""
Deterministic brief content, used whenever a model pass is unavailable
or returns something unusable. Always produces the full section list.
"""

from models import EntityReport
from pipeline.group import group_by_category
from pipeline.publish import esc

RECOMMENDED_ACTIONS = [
    "Review and update sanctions screening lists",
    "Verify transaction monitoring covers all flagged entity types",
    "Brief compliance team on emerging threats",
    "Update risk assessments for DeFi protocol exposure",
]


def risk_level(count):
    """(label, score out of 10) from the number of signals."""
    if count > 15:
        return "critical", 8
    if count > 8:
        return "high", 6
    if count > 3:
        return "medium", 4
    return "low", 2


def entity_report(reason="Insufficient data for analysis"):
    return EntityReport(entities=[], threats=[], trend="stable", top_risk=reason)


def social_thread(count, period_start, period_end, site_url):
    return [
        "\U0001f6a8 Weekly CryptoThreat Radar Brief ({} → {})\n\n"
        "{} threat signals detected across the crypto ecosystem.\n\n"
        "Full report: {}\n\n#CryptoCompliance #Web3Security".format(
            period_start, period_end, count, site_url)
    ]


def brief_html(signals, period_start, period_end, config):
    """Template-rendered brief with the same sections the model is asked for."""
    count = len(signals)
    counts = group_by_category(signals).counts
    level, score = risk_level(count)
    badge = '<span class="risk-badge risk-{}">{}</span>'.format(level, level.upper())

    critical = [s for s in signals if s.severity == "critical"][:5]
    if count == 0:
        critical_html = "<p>No critical threats detected.</p>"
    elif not critical:
        critical_html = "<ul><li>No critical threats detected this period</li></ul>"
    else:
        critical_html = "<ul>{}</ul>".format("".join(
            '<li><span class="risk-badge risk-critical">CRITICAL</span> {} '
            '<span class="source">({})</span></li>'.format(esc(s.title), esc(s.source or "CPW"))
            for s in critical))

    actions = "".join("<li>{}</li>".format(a) for a in RECOMMENDED_ACTIONS)

    return """
<h3>Executive Summary</h3>
<p>During {start} to {end}, {name} detected <strong>{count}</strong> signals
across <strong>{ncat}</strong> threat categories covering the cryptocurrency ecosystem.
Overall threat posture: {badge}</p>

<h3>Critical Threats</h3>
{critical}

<h3>Sanctions &amp; Regulatory</h3>
<p>Active monitoring across OFAC (US), EU sanctions, and FATF guidance. {sanctions} sanctions signals, {regulatory} regulatory signals detected.</p>

<h3>Cyber Threats &amp; Exploits</h3>
<p>{cyber} cyberattack signals, {exploit} exploit signals detected.</p>

<h3>Market Integrity</h3>
<p>{wash} wash trading signals, {rug} rug pull signals, {manip} manipulation signals detected.</p>

<h3>Risk Matrix</h3>
<div class="risk-matrix">
  <div class="risk-score">{score}/10</div>
  <p>Overall threat level: {badge}</p>
</div>

<h3>Recommended Actions</h3>
<ul>{actions}</ul>
""".format(
        start=period_start, end=period_end, name=esc(config.name),
        count=count, ncat=len(counts), badge=badge, critical=critical_html,
        sanctions=counts.get("sanctions", 0), regulatory=counts.get("regulatory", 0),
        cyber=counts.get("cyberattack", 0), exploit=counts.get("exploit", 0),
        wash=counts.get("wash-trading", 0), rug=counts.get("rug-pull", 0),
        manip=counts.get("market-manipulation", 0),
        score=score, actions=actions).strip()
