# graphport/graph/assembly.py
# SPDX-License-Identifier: Apache-2.0
"""
Graph assembly: collect parsed nodes and links into one immutable Graph.

- Nodes are deduplicated by id; the first occurrence wins.
- Links are deduplicated by id; the first occurrence wins.
- Each link's source and target are resolved to the Node objects held in the
  resulting graph, so every link in a Graph points at one of its members.

Whole-graph scans (``strict=False``) drop a link whose endpoint was not
returned; single-entity reads (``strict=True``) treat it as a parse failure.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List

from graphport.graph.graph_base import Graph, GraphLink, Link, Node, ParseFailure

LOG = logging.getLogger(__name__)


def assemble_graph(
    nodes: Iterable[Node],
    links: Iterable[Link],
    *,
    strict: bool = False,
) -> Graph:
    by_id: Dict[str, Node] = {}
    for node in nodes:
        if node.id not in by_id:
            by_id[node.id] = node

    seen_links: Dict[str, GraphLink] = {}
    ordered: List[GraphLink] = []
    for link in links:
        if link.id in seen_links:
            continue
        source = by_id.get(link.source)
        target = by_id.get(link.target)
        if source is None or target is None:
            missing = link.source if source is None else link.target
            if strict:
                raise ParseFailure(
                    f"link endpoint {missing!r} not present in result",
                    kind="link",
                    entity_id=link.id,
                )
            LOG.debug("dropping link %s: endpoint %s not in result", link.id, missing)
            continue
        resolved = GraphLink(
            id=link.id,
            label=link.label,
            properties=link.properties,
            source=source,
            target=target,
        )
        seen_links[link.id] = resolved
        ordered.append(resolved)

    return Graph(nodes=tuple(by_id.values()), links=tuple(ordered))


__all__ = ["assemble_graph"]
