"""
Step 5: Publish as HTML.
Input: brief HTML, EventSet, period, entity report, social thread
Output: HTML string

Layout: stats header and share bar, then tabs for the category map and
brief, the filterable signal feed, the social thread and the entity
watchlist. Model-written brief HTML is inserted as-is; everything taken
from signal records is escaped.
"""

from datetime import datetime
from urllib.parse import quote

from pipeline.group import group_by_category, page_stats


def esc(text):
    if not text:
        return ""
    return (str(text).replace("&", "&amp;").replace("<", "&lt;")
            .replace(">", "&gt;").replace('"', "&quot;"))


def run(brief_html, signals, period, config, entity_data=None, social_posts=None):
    """Generate the page. Returns html string."""
    summary = group_by_category(signals)
    stats = page_stats(signals, summary)
    start, end = period
    social_posts = social_posts or []

    social_text = social_posts[0] if social_posts else "{}: {} signals detected this week".format(
        config.name, len(signals))
    description = ("Weekly crypto threat intelligence brief covering {} threat categories. "
                   "{} signals detected from {} to {}.").format(stats["categories"], len(signals), start, end)

    return HTML_TEMPLATE.format(
        name=esc(config.name),
        description=esc(description),
        share_text=esc(social_text.splitlines()[0] if social_text else ""),
        site_url=esc(config.site_url),
        start=start, end=end,
        generated=datetime.now().strftime("%B %d, %Y"),
        stats=_render_stats(stats),
        share=_render_share(len(signals), stats["categories"], config),
        threat_map=_render_threat_map(summary, config),
        brief=brief_html,
        filters=_render_filters(summary, config),
        signals=_render_signals(signals, config),
        social=_render_social(social_posts, config),
        entities=_render_entities(entity_data, config))


def _render_stats(stats):
    cells = [
        ("Signals", stats["total"], ""),
        ("Critical", stats["critical"], " stat-critical"),
        ("High", stats["high"], " stat-high"),
        ("Sources", stats["sources"], ""),
        ("Categories", stats["categories"], ""),
    ]
    return "".join(
        '<div class="stat{}"><div class="stat-value">{}</div><div class="stat-label">{}</div></div>'.format(
            cls, value, label)
        for label, value, cls in cells)


def _render_share(count, categories, config):
    text = "\U0001f6e1\ufe0f Weekly {} Brief\n\n{} threat signals detected across {} categories\n\nFull report:".format(
        config.name, count, categories)
    url = quote(config.site_url, safe="")
    links = [
        ("share-twitter", "https://twitter.com/intent/tweet?text={}&url={}".format(quote(text, safe=""), url),
         "Share on X"),
        ("share-linkedin", "https://www.linkedin.com/sharing/share-offsite/?url={}".format(url),
         "Share on LinkedIn"),
        ("share-telegram", "https://t.me/share/url?url={}&text={}".format(
            url, quote("{} - Weekly Crypto Threat Intelligence Brief".format(config.name), safe="")),
         "Telegram"),
    ]
    html = "".join(
        '<a class="share-btn {}" href="{}" target="_blank" rel="noopener">{}</a>'.format(cls, esc(href), label)
        for cls, href, label in links)
    return html + '<button class="share-btn share-copy">Copy Link</button>'


def _render_threat_map(summary, config):
    if not summary.counts:
        return ('<div class="threat-card"><div class="tc-icon">\U0001f4ed</div>'
                '<div class="tc-count">0</div><div class="tc-label">No signals yet</div></div>')
    cards = []
    for cat, count in summary.ranked():
        info = config.category(cat)
        cards.append(
            '<div class="threat-card"><div class="tc-icon">{}</div>'
            '<div class="tc-count" style="color: {}">{}</div><div class="tc-label">{}</div></div>'.format(
                info.icon, esc(info.color), count, esc(info.label)))
    return "".join(cards)


def _render_filters(summary, config):
    buttons = ['<button class="filter-btn active" data-category="all">All <span class="filter-count">{}</span></button>'.format(
        summary.total)]
    for cat, count in summary.ranked():
        info = config.category(cat)
        buttons.append(
            '<button class="filter-btn" data-category="{}" style="--cat-color: {}">{} {} '
            '<span class="filter-count">{}</span></button>'.format(
                esc(cat), esc(info.color), info.icon, esc(info.label), count))
    return "".join(buttons)


def _render_signals(signals, config):
    if not signals:
        return '<p class="empty">No signals detected this period. Data updates weekly.</p>'
    cards = []
    for s in signals[:config.page_signal_limit]:
        info = config.category(s.category)
        title = esc(s.title)
        if s.url:
            title = '<a href="{}" target="_blank" rel="noopener">{}</a>'.format(esc(s.url), title)
        meta = ['<span class="risk-badge risk-{0}">{1}</span>'.format(esc(s.severity), esc(str(s.severity).upper())),
                '<span class="event-tag">{} {}</span>'.format(info.icon, esc(info.label))]
        if s.source:
            meta.append("<span>{}</span>".format(esc(s.source)))
        if s.timestamp:
            meta.append("<span>{}</span>".format(esc(str(s.timestamp)[:10])))
        cards.append(
            '<div class="event-card" data-category="{}" data-severity="{}">'
            '<div class="event-title">{}</div><div class="event-meta">{}</div></div>'.format(
                esc(s.category), esc(s.severity), title, "".join(meta)))
    return "\n".join(cards)


def _render_social(posts, config):
    if not posts:
        return '<p class="empty">Social content is generated in extended mode.</p>'
    cards = []
    for i, post in enumerate(posts):
        cards.append(
            '<div class="tweet-card"><div class="tweet-header">'
            '<span class="tweet-author">{name}</span>'
            '<span class="tweet-number">{n}/{total}</span></div>'
            '<div class="tweet-body">{body}</div>'
            '<button class="tweet-copy-btn" data-tweet="{raw}">Copy</button></div>'.format(
                name=esc(config.name), n=i + 1, total=len(posts),
                body=esc(post).replace("\n", "<br>"), raw=esc(post)))
    return "\n".join(cards)


def _render_entities(entity_data, config):
    if entity_data is None:
        return '<p class="empty">Entity extraction runs in extended mode.</p>'
    html = ""
    if entity_data.entities:
        rows = "".join(
            "<tr><td>{}</td><td><span class=\"entity-type\">{}</span></td>"
            "<td><span class=\"risk-badge risk-{}\">{}</span></td><td>{}</td></tr>".format(
                esc(e.name), esc(e.type), esc(e.risk), esc(e.risk.upper()), e.mentions)
            for e in entity_data.entities[:config.watchlist_limit])
        html += ('<table class="entity-table"><thead><tr><th>Entity</th><th>Type</th>'
                 '<th>Risk</th><th>Mentions</th></tr></thead><tbody>{}</tbody></table>').format(rows)
    else:
        html += '<p class="empty">No entities extracted this period.</p>'

    trend_labels = {
        "escalating": ("trend-up", "\U0001f4c8 Escalating"),
        "declining": ("trend-down", "\U0001f4c9 Declining"),
    }
    cls, label = trend_labels.get(entity_data.trend, ("trend-flat", "➡️ Stable"))
    html += '<div class="trend-panel"><strong>Trend Analysis:</strong> <span class="{}">{}</span>'.format(cls, label)
    if entity_data.top_risk:
        html += "<p>{}</p>".format(esc(entity_data.top_risk))
    html += "</div>"
    return html


HTML_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="UTF-8">
<meta name="viewport" content="width=device-width, initial-scale=1.0">
<title>{name} - Crypto Threat Intelligence</title>
<meta property="og:title" content="{name} - Weekly Crypto Threat Intelligence Brief">
<meta property="og:description" content="{description}">
<meta property="og:type" content="website">
<meta property="og:url" content="{site_url}">
<meta name="twitter:card" content="summary_large_image">
<meta name="twitter:title" content="{share_text}">
<meta name="twitter:description" content="{description}">
<style>
:root {{
    --bg: #06080f; --surface: #0d1117; --border: #21262d;
    --text: #c9d1d9; --muted: #8b949e; --heading: #f0f6fc;
    --accent: #58a6ff; --danger: #f85149; --warning: #d29922; --success: #3fb950;
}}
* {{ margin: 0; padding: 0; box-sizing: border-box; }}
body {{ font-family: -apple-system, 'Inter', sans-serif; background: var(--bg); color: var(--text); line-height: 1.7; }}
.container {{ max-width: 1000px; margin: 0 auto; padding: 2rem 1.5rem; }}
header h1 {{ color: var(--heading); font-size: 1.8rem; }}
header .meta {{ color: var(--muted); font-size: 0.85rem; }}
.stats {{ display: grid; grid-template-columns: repeat(5, 1fr); gap: 0.75rem; margin: 1.5rem 0; }}
.stat {{ background: var(--surface); border: 1px solid var(--border); border-radius: 8px; padding: 0.75rem; text-align: center; }}
.stat-value {{ font-size: 1.5rem; font-weight: 700; color: var(--heading); }}
.stat-label {{ font-size: 0.75rem; color: var(--muted); text-transform: uppercase; }}
.stat-critical .stat-value {{ color: var(--danger); }}
.stat-high .stat-value {{ color: var(--warning); }}
.tabs {{ display: flex; gap: 0.5rem; border-bottom: 1px solid var(--border); margin-bottom: 1rem; }}
.tab {{ background: none; border: none; color: var(--muted); padding: 0.5rem 1rem; cursor: pointer; }}
.tab.active {{ color: var(--accent); border-bottom: 2px solid var(--accent); }}
.tab-content {{ display: none; }}
.tab-content.active {{ display: block; }}
.share-bar {{ display: flex; gap: 0.5rem; flex-wrap: wrap; margin-bottom: 1.5rem; }}
.share-btn {{ background: var(--surface); border: 1px solid var(--border); color: var(--text); border-radius: 6px; padding: 0.35rem 0.9rem; font-size: 0.8rem; text-decoration: none; cursor: pointer; }}
#threats h2 {{ color: var(--heading); font-size: 1.2rem; margin: 1.5rem 0 1rem; }}
.threat-map {{ display: grid; grid-template-columns: repeat(auto-fill, minmax(140px, 1fr)); gap: 0.75rem; }}
.threat-card {{ background: var(--surface); border: 1px solid var(--border); border-radius: 8px; padding: 0.75rem; text-align: center; }}
.tc-icon {{ font-size: 1.4rem; }}
.tc-count {{ font-size: 1.4rem; font-weight: 700; color: var(--muted); }}
.tc-label {{ font-size: 0.75rem; color: var(--muted); }}
.brief h3 {{ color: var(--heading); margin: 1.5rem 0 0.5rem; }}
.risk-badge {{ font-size: 0.7rem; font-weight: 700; padding: 0.1rem 0.5rem; border-radius: 4px; }}
.risk-critical {{ background: rgba(248,81,73,0.15); color: var(--danger); }}
.risk-high {{ background: rgba(210,153,34,0.15); color: var(--warning); }}
.risk-medium {{ background: rgba(88,166,255,0.15); color: var(--accent); }}
.risk-low, .risk-unknown {{ background: rgba(63,185,80,0.15); color: var(--success); }}
.risk-matrix {{ background: var(--surface); border: 1px solid var(--border); border-radius: 8px; padding: 1rem; }}
.risk-score {{ font-size: 2rem; font-weight: 800; color: var(--heading); }}
.filter-btn {{ background: var(--surface); border: 1px solid var(--border); color: var(--text); border-radius: 16px; padding: 0.25rem 0.75rem; margin: 0 0.25rem 0.5rem 0; cursor: pointer; }}
.filter-btn.active {{ border-color: var(--cat-color, var(--accent)); }}
.event-card, .tweet-card {{ background: var(--surface); border: 1px solid var(--border); border-radius: 8px; padding: 0.75rem 1rem; margin-bottom: 0.5rem; }}
.event-title a {{ color: var(--heading); text-decoration: none; }}
.event-meta {{ display: flex; gap: 0.75rem; font-size: 0.8rem; color: var(--muted); flex-wrap: wrap; }}
.tweet-header {{ display: flex; justify-content: space-between; color: var(--muted); font-size: 0.8rem; }}
.tweet-copy-btn {{ background: none; border: 1px solid var(--border); color: var(--muted); border-radius: 4px; padding: 0.1rem 0.5rem; cursor: pointer; }}
.entity-table {{ width: 100%; border-collapse: collapse; }}
.entity-table th, .entity-table td {{ text-align: left; padding: 0.5rem 0.75rem; border-bottom: 1px solid var(--border); }}
.trend-panel {{ margin-top: 1.5rem; padding: 1rem; background: var(--surface); border: 1px solid var(--border); border-radius: 8px; }}
.trend-up {{ color: var(--danger); }} .trend-down {{ color: var(--success); }} .trend-flat {{ color: var(--warning); }}
.empty {{ color: var(--muted); padding: 2rem; text-align: center; }}
footer {{ color: var(--muted); font-size: 0.8rem; text-align: center; margin-top: 3rem; }}
footer a {{ color: var(--accent); }}
</style>
</head>
<body>
<div class="container">
<header>
  <h1>{name}</h1>
  <div class="meta">Weekly brief for {start} to {end} &middot; generated {generated}</div>
</header>
<div class="stats">{stats}</div>
<div class="share-bar">{share}</div>
<nav class="tabs">
  <button class="tab active" data-tab="brief">Brief</button>
  <button class="tab" data-tab="signals">Signals</button>
  <button class="tab" data-tab="social">Social</button>
  <button class="tab" data-tab="entities">Entities</button>
</nav>
<div id="tab-brief" class="tab-content active">
  <section id="threats"><h2>Threat Category Map</h2><div class="threat-map">{threat_map}</div></section>
  <section class="brief">{brief}</section>
</div>
<div id="tab-signals" class="tab-content">
  <div class="filters">{filters}</div>
  <section class="signal-feed">{signals}</section>
</div>
<div id="tab-social" class="tab-content"><section class="social-section">{social}</section></div>
<div id="tab-entities" class="tab-content"><section>{entities}</section></div>
<footer>
  <p>Powered by <a href="https://rapidapi.com/cpwatch/api/cpw-tracker">CPW API</a> &middot; AI analysis via chat-completion models &middot; Updated weekly</p>
</footer>
</div>
<script>
document.querySelectorAll('.tab').forEach(function (tab) {{
  tab.addEventListener('click', function () {{
    document.querySelectorAll('.tab, .tab-content').forEach(function (el) {{ el.classList.remove('active'); }});
    tab.classList.add('active');
    document.getElementById('tab-' + tab.dataset.tab).classList.add('active');
  }});
}});
document.querySelectorAll('.filter-btn').forEach(function (btn) {{
  btn.addEventListener('click', function () {{
    var cat = btn.dataset.category;
    document.querySelectorAll('.filter-btn').forEach(function (b) {{ b.classList.remove('active'); }});
    btn.classList.add('active');
    document.querySelectorAll('.event-card').forEach(function (card) {{
      card.style.display = (cat === 'all' || card.dataset.category === cat) ? '' : 'none';
    }});
  }});
}});
document.querySelectorAll('.tweet-copy-btn').forEach(function (btn) {{
  btn.addEventListener('click', function () {{
    navigator.clipboard.writeText(btn.dataset.tweet);
    btn.textContent = 'Copied!';
    setTimeout(function () {{ btn.textContent = 'Copy'; }}, 2000);
  }});
}});
document.querySelector('.share-copy').addEventListener('click', function () {{
  navigator.clipboard.writeText(window.location.href);
  this.textContent = 'Copied!';
}});
</script>
</body>
</html>
"""
