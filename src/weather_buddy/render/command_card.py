"""HTML cards for command replies."""

from __future__ import annotations

import re

from weather_buddy.render.weather_message import env

PALETTES = {
    "success": {"main": "#28a745", "background": "#f0fff4", "border": "#c3e6cb", "icon": "✅"},
    "warning": {"main": "#ffc107", "background": "#fff9e6", "border": "#ffeeba", "icon": "⚠️"},
    "error": {"main": "#dc3545", "background": "#fff2f0", "border": "#f5c6cb", "icon": "❌"},
    "info": {"main": "#3498db", "background": "#f0f8ff", "border": "#bee5eb", "icon": "ℹ️"},
}

_LIST_ITEM = re.compile(r"^- (.+)$", re.MULTILINE)
_LIST_BLOCK = re.compile(r"(?:<li>.*?</li>\n?)+")
_BOLD = re.compile(r"\*\*(.+?)\*\*")
_CODE = re.compile(r"`(.+?)`")


def _wrap_list(match: re.Match) -> str:
    items = match.group(0).replace("\n", "")
    return f'<ul class="item-list">{items}</ul>'


def render_markup(content: str) -> str:
    """Tiny markdown subset: ``- item`` lists, ``**bold**`` and ```code``` spans.

    Content is trusted: callers escape any user-supplied text before it gets here.
    """
    html = _LIST_ITEM.sub(r"<li>\1</li>", content)
    html = _LIST_BLOCK.sub(_wrap_list, html)
    html = _BOLD.sub(r"<strong>\1</strong>", html)
    html = _CODE.sub(r'<code class="command">\1</code>', html)
    return html.replace("\n\n", "<br><br>").replace("\n", "<br>")


def format_command_response(
    title: str,
    content: str,
    icon: str | None = None,
    kind: str = "info",
    extra_css: str = "",
) -> str:
    """Wrap *content* in a coloured card; *kind* is success, warning, error or info."""
    palette = PALETTES.get(kind, PALETTES["info"])
    return env.get_template("command_card.html.j2").render(
        palette=palette,
        kind=kind,
        icon=icon or palette["icon"],
        title=title,
        content=render_markup(content),
        extra_css=extra_css,
    )
