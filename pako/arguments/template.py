"""
Command templates.

Placeholders look like {{.env}} or {{ env }}. Adding "| quote" shell-quotes
the value: {{.message | quote}}. Anything that isn't a placeholder is
copied through untouched.
"""

from __future__ import annotations

import re
import shlex
from typing import Mapping

from pako.core.errors import TemplateError

_PLACEHOLDER = re.compile(r"\{\{\s*\.?([A-Za-z_][A-Za-z0-9_-]*)\s*(?:\|\s*([A-Za-z_]+)\s*)?\}\}")

_FILTERS = {
    "quote": shlex.quote,
}


def placeholders(template: str) -> list[str]:
    """Names referenced by a template, in order of first appearance."""
    seen: list[str] = []
    for match in _PLACEHOLDER.finditer(template):
        if match.group(1) not in seen:
            seen.append(match.group(1))
    return seen


def render_command(template: str, values: Mapping[str, str]) -> str:
    """Substitute collected values into a command template."""

    def _replace(match: re.Match) -> str:
        name, filter_name = match.group(1), match.group(2)
        if name not in values:
            raise TemplateError(
                f"Template references unknown argument {name!r}",
                details={"template": template},
            )
        value = values[name]
        if filter_name is None:
            return value
        try:
            return _FILTERS[filter_name](value)
        except KeyError:
            raise TemplateError(f"Unknown template filter {filter_name!r}") from None

    return _PLACEHOLDER.sub(_replace, template)
