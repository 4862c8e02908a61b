"""
Step 3: Group the EventSet by category and compute page statistics.
No LLM calls, pure data computation.
"""

from models import CategorySummary


def group_by_category(signals, top_n=5):
    """Build a CategorySummary. Categories keep first-seen order."""
    summary = CategorySummary()
    for s in signals:
        cat = s.category or "general"
        summary.counts[cat] = summary.counts.get(cat, 0) + 1
        examples = summary.top.setdefault(cat, [])
        if len(examples) < top_n:
            examples.append(s)
    return summary


def page_stats(signals, summary=None):
    """Headline numbers for the page header."""
    summary = summary or group_by_category(signals)
    return {
        "total": len(signals),
        "critical": sum(1 for s in signals if s.severity == "critical"),
        "high": sum(1 for s in signals if s.severity == "high"),
        "sources": len(set(s.source for s in signals if s.source)),
        "categories": len(summary.counts),
    }


def build_digest(summary, config):
    """Per-category digest handed to the brief writer."""
    if not summary.counts:
        return "No events detected this period."
    blocks = []
    for cat, count in summary.counts.items():
        info = config.category(cat)
        lines = ["  - [{}] {}".format(s.source or "Unknown", s.title)
                 for s in summary.top.get(cat, [])]
        blocks.append("{} {} ({} signals):\n{}".format(info.icon, info.label, count, "\n".join(lines)))
    return "\n\n".join(blocks)


def build_signal_list(signals, limit=30):
    """One line per signal, for entity extraction."""
    return "\n".join("[{}] {} ({})".format(s.category, s.title, s.source or "unknown")
                     for s in signals[:limit])
