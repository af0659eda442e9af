# graphport/neo4j_store/compiler.py
# SPDX-License-Identifier: Apache-2.0
"""
Query compiler: port operations -> parameterized Cypher statements.

Every value (ids, property maps) is bound as a parameter. Only labels and
relationship types, which Cypher cannot parameterize, are spliced into the
text, backtick-quoted, and only after the port has validated them.

Each function returns a :class:`Statement` tagged with the access mode the
adapter must use to run it (read vs write transaction).

Statement shapes
----------------
- node rows return ``n``
- link rows return ``a, r, b`` (source node, relationship, target node)
- whole-graph rows return ``n, r, m`` (``r``/``m`` may be null)
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional, Sequence

from graphport.graph.graph_base import RESERVED_ID_KEY, LinkDelta, NodeDelta
from graphport.neo4j_store.cypher import inline_statement, render_labels, render_type

_ID = RESERVED_ID_KEY


class AccessMode(str, enum.Enum):
    READ = "READ"
    WRITE = "WRITE"


@dataclass(frozen=True)
class Statement:
    """A compiled Cypher statement with its bound parameters."""
    text: str
    params: Mapping[str, Any] = field(default_factory=dict)
    mode: AccessMode = AccessMode.READ

    @property
    def is_write(self) -> bool:
        return self.mode is AccessMode.WRITE

    def inlined(self) -> str:
        """Statement text with parameters substituted, for debug logs."""
        return inline_statement(self.text, self.params)


def _with_identity(entity_id: str, props: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
    out = dict(props or {})
    out[_ID] = entity_id
    return out


def _lines(*parts: str) -> str:
    return "\n".join(p for p in parts if p)


# ---- nodes ------------------------------------------------------------------

def create_node(node_id: str, labels: Sequence[str], props: Mapping[str, Any]) -> Statement:
    return Statement(
        text=_lines(
            f"CREATE (n{render_labels(labels)})",
            "SET n = $props",
            "RETURN n",
        ),
        params={"props": _with_identity(node_id, props)},
        mode=AccessMode.WRITE,
    )


def replace_node(
    node_id: str,
    labels: Sequence[str],
    props: Mapping[str, Any],
    prior_labels: Sequence[str] = (),
    *,
    use_apoc: bool = False,
) -> Statement:
    """
    Replace labels and properties of an existing node.

    Prior labels are removed with a ``REMOVE`` clause built from the snapshot
    read just before, or with ``apoc.create.removeLabels`` when APOC is
    available (strips whatever labels the node has at write time).
    """
    if use_apoc:
        strip = _lines(
            "CALL apoc.create.removeLabels(n, labels(n)) YIELD node",
            "WITH node AS n",
        )
    else:
        strip = f"REMOVE n{render_labels(prior_labels)}" if prior_labels else ""
    return Statement(
        text=_lines(
            f"MATCH (n {{{_ID}: $id}})",
            strip,
            f"SET n{render_labels(labels)}" if labels else "",
            "SET n = $props",
            "RETURN n",
        ),
        params={"id": node_id, "props": _with_identity(node_id, props)},
        mode=AccessMode.WRITE,
    )


def read_node(node_id: str) -> Statement:
    return Statement(
        text=_lines(f"MATCH (n {{{_ID}: $id}})", "RETURN n"),
        params={"id": node_id},
        mode=AccessMode.READ,
    )


def patch_node(node_id: str, delta: NodeDelta) -> Statement:
    """Union labels and merge properties; keys in the delta win."""
    return Statement(
        text=_lines(
            f"MATCH (n {{{_ID}: $id}})",
            f"SET n{render_labels(delta.labels)}" if delta.labels else "",
            "SET n += $props" if delta.properties else "",
            "RETURN n",
        ),
        params={"id": node_id, "props": dict(delta.properties or {})},
        mode=AccessMode.WRITE,
    )


def delete_node(node_id: str) -> Statement:
    """Delete a node and every incident relationship in one statement."""
    return Statement(
        text=_lines(
            f"MATCH (n {{{_ID}: $id}})",
            "OPTIONAL MATCH (n)-[r]-()",
            "DELETE r, n",
        ),
        params={"id": node_id},
        mode=AccessMode.WRITE,
    )


# ---- links ------------------------------------------------------------------

def create_link(
    link_id: str,
    label: str,
    props: Mapping[str, Any],
    source: str,
    target: str,
    source_labels: Sequence[str] = (),
    target_labels: Sequence[str] = (),
) -> Statement:
    """Create a relationship between two existing nodes matched by identity."""
    return Statement(
        text=_lines(
            f"MATCH (a{render_labels(source_labels)} {{{_ID}: $source}})",
            f"MATCH (b{render_labels(target_labels)} {{{_ID}: $target}})",
            f"CREATE (a)-[r{render_type(label)}]->(b)",
            "SET r = $props",
            "RETURN a, r, b",
        ),
        params={
            "source": source,
            "target": target,
            "props": _with_identity(link_id, props),
        },
        mode=AccessMode.WRITE,
    )


def replace_link(link_id: str, label: str, props: Mapping[str, Any]) -> Statement:
    """Replace an existing relationship between its current endpoints."""
    return Statement(
        text=_lines(
            f"MATCH (a)-[old {{{_ID}: $id}}]->(b)",
            f"CREATE (a)-[r{render_type(label)}]->(b)",
            "SET r = $props",
            "DELETE old",
            "RETURN a, r, b",
        ),
        params={"id": link_id, "props": _with_identity(link_id, props)},
        mode=AccessMode.WRITE,
    )


def read_link(link_id: str) -> Statement:
    return Statement(
        text=_lines(f"MATCH (a)-[r {{{_ID}: $id}}]->(b)", "RETURN a, r, b"),
        params={"id": link_id},
        mode=AccessMode.READ,
    )


def patch_link(link_id: str, delta: LinkDelta) -> Statement:
    """
    Merge properties into a relationship.

    Relationship types are immutable in Neo4j, so a new label recreates the
    relationship between the same endpoints, carrying the old properties
    (identity included) before merging the delta.
    """
    props = dict(delta.properties or {})
    if delta.label:
        text = _lines(
            f"MATCH (a)-[old {{{_ID}: $id}}]->(b)",
            f"CREATE (a)-[r{render_type(delta.label)}]->(b)",
            "SET r = properties(old)",
            "SET r += $props",
            "DELETE old",
            "RETURN a, r, b",
        )
    else:
        text = _lines(
            f"MATCH (a)-[r {{{_ID}: $id}}]->(b)",
            "SET r += $props",
            "RETURN a, r, b",
        )
    return Statement(text=text, params={"id": link_id, "props": props}, mode=AccessMode.WRITE)


def delete_link(link_id: str) -> Statement:
    return Statement(
        text=_lines(f"MATCH ()-[r {{{_ID}: $id}}]->()", "DELETE r"),
        params={"id": link_id},
        mode=AccessMode.WRITE,
    )


# ---- graph ------------------------------------------------------------------

def read_graph() -> Statement:
    return Statement(
        text=_lines("MATCH (n)", "OPTIONAL MATCH (n)-[r]->(m)", "RETURN n, r, m"),
        mode=AccessMode.READ,
    )


def raw_query(
    text: str, params: Optional[Mapping[str, Any]] = None, *, write: bool = False
) -> Statement:
    """Wrap a caller-supplied statement; it is not inspected or rewritten."""
    return Statement(
        text=text,
        params=dict(params or {}),
        mode=AccessMode.WRITE if write else AccessMode.READ,
    )


def clear_graph() -> Statement:
    return Statement(text=_lines("MATCH (n)", "DETACH DELETE n"), mode=AccessMode.WRITE)


__all__ = [
    "AccessMode",
    "Statement",
    "create_node",
    "replace_node",
    "read_node",
    "patch_node",
    "delete_node",
    "create_link",
    "replace_link",
    "read_link",
    "patch_link",
    "delete_link",
    "read_graph",
    "raw_query",
    "clear_graph",
]
