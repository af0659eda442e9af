# graphport/neo4j_store/parser.py
# SPDX-License-Identifier: Apache-2.0
"""
Result parser: raw driver values -> port value types.

Driver values are read duck-typed, so anything shaped like the neo4j graph
types works:

- node:          ``.labels``, ``.items()``, ``.element_id``
- relationship:  ``.type``, ``.items()``, ``.element_id``,
                 ``.start_node.element_id``, ``.end_node.element_id``
- path:          ``.nodes``, ``.relationships``

Each raw value is flattened into a plain fragment and validated by a pydantic
model. Shape failures raise ParseFailure; an absent row where one was required
raises NotFound. Both are logged with the offending raw value first.

Identity comes from the reserved identity property, never from the database's
internal element id. The element id is only used to pair relationships with
the nodes returned alongside them.

Public entry points: parse_node and parse_link for single values,
parse_records for a whole result (the store uses it everywhere, so endpoints
pair up across rows), and parse_row for callers holding one record from their
own query.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Annotated, Any, Dict, Iterable, List, Optional, Tuple

import pydantic
from pydantic import BaseModel, ConfigDict, StringConstraints, field_validator

from graphport.graph.graph_base import (
    RESERVED_ID_KEY,
    Link,
    Node,
    NotFound,
    ParseFailure,
)

LOG = logging.getLogger(__name__)

NonEmptyStr = Annotated[str, StringConstraints(min_length=1)]


def _check_identity(properties: Dict[str, Any]) -> Dict[str, Any]:
    ident = properties.get(RESERVED_ID_KEY)
    if not isinstance(ident, str) or not ident:
        raise ValueError(f"missing or non-string '{RESERVED_ID_KEY}' property")
    return properties


class NodeFragment(BaseModel):
    """Validated shape of a raw node."""
    model_config = ConfigDict(frozen=True)

    ref: Optional[str] = None
    labels: List[NonEmptyStr]
    properties: Dict[str, Any]

    @field_validator("properties")
    @classmethod
    def _identity(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        return _check_identity(v)

    @property
    def id(self) -> str:
        return self.properties[RESERVED_ID_KEY]

    def to_node(self) -> Node:
        props = {k: v for k, v in self.properties.items() if k != RESERVED_ID_KEY}
        return Node(id=self.id, labels=tuple(self.labels), properties=props)


class LinkFragment(BaseModel):
    """Validated shape of a raw relationship."""
    model_config = ConfigDict(frozen=True)

    ref: Optional[str] = None
    type: NonEmptyStr
    properties: Dict[str, Any]
    start_ref: Optional[str] = None
    end_ref: Optional[str] = None

    @field_validator("properties")
    @classmethod
    def _identity(cls, v: Dict[str, Any]) -> Dict[str, Any]:
        return _check_identity(v)

    @property
    def id(self) -> str:
        return self.properties[RESERVED_ID_KEY]

    def to_link(self, source: str, target: str) -> Link:
        props = {k: v for k, v in self.properties.items() if k != RESERVED_ID_KEY}
        return Link(id=self.id, label=self.type, properties=props, source=source, target=target)


@dataclass(frozen=True)
class RowFragments:
    """
    Everything parsed out of one or more result rows.

    Attributes:
        nodes: Parsed nodes, in encounter order (may repeat).
        links: Parsed links whose endpoints were found among the rows.
        dangling: Ids of links whose endpoint nodes were not returned.
    """
    nodes: Tuple[Node, ...] = ()
    links: Tuple[Link, ...] = ()
    dangling: Tuple[str, ...] = ()


# ---- raw value access -------------------------------------------------------

def _element_id(raw: Any) -> Optional[str]:
    ref = getattr(raw, "element_id", None)
    return str(ref) if ref is not None else None


def _raw_properties(raw: Any) -> Dict[str, Any]:
    items = getattr(raw, "items", None)
    if items is None:
        raise TypeError(f"{type(raw).__name__} has no properties")
    return dict(items())


def _is_path(raw: Any) -> bool:
    return hasattr(raw, "nodes") and hasattr(raw, "relationships")


def _is_relationship(raw: Any) -> bool:
    return hasattr(raw, "type") and hasattr(raw, "start_node")


def _is_node(raw: Any) -> bool:
    return hasattr(raw, "labels") and not _is_relationship(raw)


def _node_fragment(raw: Any, operation: Optional[str]) -> NodeFragment:
    try:
        return NodeFragment.model_validate(
            {
                "ref": _element_id(raw),
                "labels": sorted(raw.labels),
                "properties": _raw_properties(raw),
            }
        )
    except (AttributeError, TypeError, pydantic.ValidationError) as e:
        LOG.error("failed to parse node (operation=%s): raw=%r", operation, raw)
        raise ParseFailure(kind="node", operation=operation) from e


def _link_fragment(raw: Any, operation: Optional[str]) -> LinkFragment:
    try:
        return LinkFragment.model_validate(
            {
                "ref": _element_id(raw),
                "type": raw.type,
                "properties": _raw_properties(raw),
                "start_ref": _element_id(raw.start_node),
                "end_ref": _element_id(raw.end_node),
            }
        )
    except (AttributeError, TypeError, pydantic.ValidationError) as e:
        LOG.error("failed to parse link (operation=%s): raw=%r", operation, raw)
        raise ParseFailure(kind="link", operation=operation) from e


# ---- public -----------------------------------------------------------------

def parse_node(raw: Any, *, operation: Optional[str] = None) -> Node:
    """Parse one raw node. Absent -> NotFound, malformed -> ParseFailure."""
    if raw is None:
        LOG.error("expected node row was absent (operation=%s)", operation)
        raise NotFound(kind="node", operation=operation)
    return _node_fragment(raw, operation).to_node()


def parse_link(
    raw_link: Any,
    raw_source: Any,
    raw_target: Any,
    *,
    operation: Optional[str] = None,
) -> Link:
    """
    Parse one raw relationship with its two endpoint nodes.

    The relationship must point from ``raw_source`` to ``raw_target``; the
    pairing is checked by element id when the driver provides one.
    """
    if raw_link is None or raw_source is None or raw_target is None:
        LOG.error("expected link row was absent (operation=%s)", operation)
        raise NotFound(kind="link", operation=operation)
    link = _link_fragment(raw_link, operation)
    source = _node_fragment(raw_source, operation)
    target = _node_fragment(raw_target, operation)
    if (link.start_ref and source.ref and link.start_ref != source.ref) or (
        link.end_ref and target.ref and link.end_ref != target.ref
    ):
        LOG.error(
            "link endpoints do not match row nodes (operation=%s): link=%r source=%r target=%r",
            operation,
            raw_link,
            raw_source,
            raw_target,
        )
        raise ParseFailure(
            "link endpoints do not match the returned nodes.",
            kind="link",
            operation=operation,
            entity_id=link.id,
        )
    return link.to_link(source.id, target.id)


def _walk(value: Any, raw_nodes: List[Any], raw_links: List[Any]) -> None:
    if value is None:
        return
    if _is_path(value):
        raw_nodes.extend(value.nodes)
        raw_links.extend(value.relationships)
        return
    if _is_relationship(value):
        raw_links.append(value)
        return
    if _is_node(value):
        raw_nodes.append(value)
        return
    if isinstance(value, (list, tuple)):
        for item in value:
            _walk(item, raw_nodes, raw_links)
    # scalars and maps carry no graph entities


def parse_records(records: Iterable[Any], *, operation: Optional[str] = None) -> RowFragments:
    """
    Parse every node, relationship and path found in ``records``.

    Relationships are paired with endpoint nodes by element id across all the
    given records. A relationship whose endpoint was not returned is reported
    in ``dangling`` rather than as a link.
    """
    raw_nodes: List[Any] = []
    raw_links: List[Any] = []
    for record in records:
        for value in record.values():
            _walk(value, raw_nodes, raw_links)

    nodes: List[Node] = []
    ref_to_id: Dict[str, str] = {}
    for raw in raw_nodes:
        frag = _node_fragment(raw, operation)
        if frag.ref is not None:
            ref_to_id[frag.ref] = frag.id
        nodes.append(frag.to_node())

    links: List[Link] = []
    dangling: List[str] = []
    for raw in raw_links:
        frag = _link_fragment(raw, operation)
        source = ref_to_id.get(frag.start_ref) if frag.start_ref else None
        target = ref_to_id.get(frag.end_ref) if frag.end_ref else None
        if source is None or target is None:
            dangling.append(frag.id)
            continue
        links.append(frag.to_link(source, target))

    return RowFragments(nodes=tuple(nodes), links=tuple(links), dangling=tuple(dangling))


def parse_row(record: Any, *, operation: Optional[str] = None) -> RowFragments:
    """Parse a single row; endpoints are resolved against that row only."""
    return parse_records([record], operation=operation)


__all__ = [
    "NodeFragment",
    "LinkFragment",
    "RowFragments",
    "parse_node",
    "parse_link",
    "parse_records",
    "parse_row",
]
