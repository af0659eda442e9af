# graphport/neo4j_store/cypher.py
# SPDX-License-Identifier: Apache-2.0
"""
Cypher text helpers.

Labels and relationship types cannot be passed as query parameters, so they
are rendered into statement text here, always backtick-quoted. Property
values are never rendered into executed statements; ``render_properties`` and
``inline_statement`` exist to produce readable statements for debug logs.
"""

from __future__ import annotations

import math
import re
from typing import Any, Iterable, Mapping, Optional

_PARAM_RE = re.compile(r"\$([A-Za-z_][A-Za-z0-9_]*)")
_BARE_KEY_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def quote_identifier(name: str) -> str:
    """Backtick-quote an identifier, doubling embedded backticks."""
    return "`" + name.replace("`", "``") + "`"


def render_labels(labels: Optional[Iterable[str]]) -> str:
    """
    Render node labels as a label expression.

    >>> render_labels(["Person", "Admin"])
    ':`Person`:`Admin`'
    """
    if not labels:
        return ""
    return "".join(":" + quote_identifier(label) for label in labels)


def render_type(label: str) -> str:
    """Render a single relationship type token, e.g. ``:`KNOWS```."""
    return ":" + quote_identifier(label)


def _render_key(key: str) -> str:
    return key if _BARE_KEY_RE.match(key) else quote_identifier(key)


def render_value(value: Any) -> str:
    """Render one property value as a Cypher literal."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        if math.isnan(value):
            return "0.0/0.0"
        if math.isinf(value):
            return "1.0/0.0" if value > 0 else "-1.0/0.0"
        return repr(value)
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'"
    if isinstance(value, Mapping):
        return render_properties(value) or "{}"
    if isinstance(value, (list, tuple)):
        return "[" + ", ".join(render_value(v) for v in value) + "]"
    raise TypeError(f"cannot render {type(value).__name__} as a Cypher literal")


def render_properties(properties: Optional[Mapping[str, Any]]) -> str:
    """
    Render a property map as a Cypher map literal with unquoted keys.

    >>> render_properties({"name": "Ann", "age": 3})
    "{name: 'Ann', age: 3}"
    """
    if properties is None:
        return ""
    body = ", ".join(f"{_render_key(k)}: {render_value(v)}" for k, v in properties.items())
    return "{" + body + "}"


def inline_statement(text: str, params: Optional[Mapping[str, Any]] = None) -> str:
    """
    Substitute ``$name`` parameters with their literal rendering.

    Only for logging; unknown parameters are left as-is.
    """
    if not params:
        return text

    def _sub(m: "re.Match[str]") -> str:
        name = m.group(1)
        if name not in params:
            return m.group(0)
        try:
            return render_value(params[name])
        except TypeError:
            return m.group(0)

    return _PARAM_RE.sub(_sub, text)


__all__ = [
    "quote_identifier",
    "render_labels",
    "render_type",
    "render_value",
    "render_properties",
    "inline_statement",
]
