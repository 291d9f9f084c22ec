"""
Minimal Handlebars-style template rendering for email templates.

Supported syntax:

- ``{{key}}`` substitutes a variable (``{{ key }}`` works too)
- ``{{#each list}}...{{/each}}`` repeats a block per item; inside it
  ``{{this}}`` is the item itself and ``{{key}}`` is a field of a dict item
- ``{{#if key}}...{{/if}}`` keeps the block when the variable is truthy

Unknown variables are left as written. HTML parts are rendered with
``escape=True`` so substituted values cannot inject markup.
"""

import html
import re
from typing import Any, Mapping

_EACH_RE = re.compile(r"{{#each\s+(\w+)\s*}}([\s\S]*?){{/each}}")
_IF_RE = re.compile(r"{{#if\s+(\w+)\s*}}([\s\S]*?){{/if}}")
_VAR_RE = re.compile(r"{{\s*([\w.]+)\s*}}")


def _to_text(value: Any) -> str:
    if value is None or value is False:
        return ""
    return str(value)


def _substitute(
    template: str, variables: Mapping[str, Any], escape: bool = False
) -> str:
    def replace(match: re.Match) -> str:
        key = match.group(1)
        if key not in variables:
            return match.group(0)
        text = _to_text(variables[key])
        return html.escape(text) if escape else text

    return _VAR_RE.sub(replace, template)


def _render_each(block: str, items: Any, escape: bool = False) -> str:
    if not isinstance(items, (list, tuple)):
        return ""
    rendered = []
    for item in items:
        scope = dict(item) if isinstance(item, Mapping) else {}
        scope["this"] = item
        rendered.append(_substitute(block, scope, escape))
    return "".join(rendered)


def render(template: str, variables: Mapping[str, Any], escape: bool = False) -> str:
    """
    Render a template string.

    Args:
        template: Template text
        variables: Values for substitution
        escape: HTML-escape substituted values

    Returns:
        Rendered text
    """
    rendered = _EACH_RE.sub(
        lambda m: _render_each(m.group(2), variables.get(m.group(1)), escape), template
    )
    rendered = _IF_RE.sub(
        lambda m: m.group(2) if variables.get(m.group(1)) else "", rendered
    )
    return _substitute(rendered, variables, escape)


def html_to_text(html: str) -> str:
    """Crude plain-text fallback for an HTML body."""
    text = re.sub(r"<(script|style)[^>]*>[\s\S]*?</\1>", "", html, flags=re.IGNORECASE)
    text = re.sub(r"<br\s*/?>|</p>|</div>|</li>|</h\d>", "\n", text, flags=re.IGNORECASE)
    text = re.sub(r"<[^>]+>", "", text)
    text = re.sub(r"[ \t]+", " ", text)
    return re.sub(r"\n\s*\n+", "\n\n", text).strip()
