# graphport/neo4j_store/adapter.py
# SPDX-License-Identifier: Apache-2.0
"""
Neo4j graph store for the Graph Store Port V1.0.

This module implements the `BaseGraphStore` contract on top of the official
async Neo4j driver.

Goals
-----
- Map port operations -> compiled, parameterized Cypher statements.
- One session per operation; the session is closed on every exit path.
- Normalize driver failures into ReadError / WriteError, chained to the cause.
- Parse every returned record through the result parser; never hand raw
  driver objects to callers.

Important design notes
----------------------
- Identity: every node and relationship carries the reserved ``_id_``
  property. Neo4j's internal element ids are only used to pair
  relationships with the nodes returned in the same result.
- set_node / set_link read before they write (create vs replace). Two
  concurrent writers on the same id can both take the "create" branch;
  the store does not lock around that window.
- set_link on an existing id replaces the relationship between its current
  endpoints. The given source and target are only checked for existence.
- Relationship types are immutable in Neo4j; a label change recreates the
  relationship with the same identity and merged properties.
- Neo4j stores only scalars and flat lists of one scalar type. Values the
  port accepts beyond that (maps, nested lists, mixed lists) are rejected
  with ValidationError before any statement is sent.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from neo4j import AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from graphport.graph.assembly import assemble_graph
from graphport.graph.graph_base import (
    BaseGraphStore,
    Graph,
    Link,
    LinkDelta,
    MetricsSink,
    Node,
    NodeDelta,
    NotFound,
    OperationContext,
    ReadError,
    ValidationError,
    WriteError,
)
from graphport.neo4j_store import compiler
from graphport.neo4j_store.compiler import Statement
from graphport.neo4j_store.config import Neo4jConfig
from graphport.neo4j_store.parser import parse_link, parse_node, parse_records

LOG = logging.getLogger(__name__)

_SCALAR_KINDS = ((bool, "boolean"), (int, "integer"), (float, "float"), (str, "string"))


def _scalar_kind(value: Any) -> Optional[str]:
    for cls, kind in _SCALAR_KINDS:
        if isinstance(value, cls):
            return kind
    return None


def _check_storable(
    properties: Optional[Mapping[str, Any]], *, operation: str, entity_id: str
) -> None:
    """Reject property values Neo4j cannot store as node or relationship properties."""
    for key, value in (properties or {}).items():
        if _scalar_kind(value) is not None:
            continue
        if not isinstance(value, (list, tuple)):
            raise ValidationError(
                f"property '{key}': neo4j cannot store {type(value).__name__} values",
                operation=operation,
                entity_id=entity_id,
            )
        kinds = {_scalar_kind(item) for item in value}
        if None in kinds:
            raise ValidationError(
                f"property '{key}': neo4j lists may only hold scalars",
                operation=operation,
                entity_id=entity_id,
            )
        if len(kinds) > 1:
            raise ValidationError(
                f"property '{key}': neo4j lists must hold a single type, got {sorted(kinds)}",
                operation=operation,
                entity_id=entity_id,
            )


async def _collect(tx: Any, stmt: Statement) -> List[Any]:
    """Transaction function: run one statement and drain its records."""
    result = await tx.run(stmt.text, dict(stmt.params))
    return [record async for record in result]


class Neo4jGraphStore(BaseGraphStore):
    """
    Graph store backed by Neo4j.

    Args:
        config: Connection settings. When both ``config`` and ``driver`` are
            omitted, settings are read from the environment
            (see ``Neo4jConfig.from_env``).
        driver: An already constructed ``neo4j.AsyncDriver``. The store takes
            ownership and closes it on ``close()``.
        metrics: Optional metrics sink.
    """

    name = "neo4j"

    def __init__(
        self,
        config: Optional[Neo4jConfig] = None,
        *,
        driver: Any = None,
        metrics: Optional[MetricsSink] = None,
    ) -> None:
        if driver is None:
            config = config or Neo4jConfig.from_env()
            driver = AsyncGraphDatabase.driver(
                config.url,
                auth=(config.username, config.password),
                **config.driver_kwargs(),
            )
            LOG.debug("created neo4j driver for %s", config.url)

        self._config = config
        self._driver = driver
        self._database = config.database if config else None
        self._use_apoc = bool(config and config.use_apoc_label_strip)

        super().__init__(metrics=metrics)

    # ------------------------------------------------------------------ #
    # Internal helpers
    # ------------------------------------------------------------------ #

    @staticmethod
    def _attach_ctx_details(
        base_details: Dict[str, Any],
        ctx: Optional[OperationContext],
    ) -> Dict[str, Any]:
        """Add the request id to error details; tenant ids are never attached."""
        details = dict(base_details)
        if ctx is not None and ctx.request_id:
            details.setdefault("request_id", ctx.request_id)
        return details

    async def _execute(
        self,
        stmt: Statement,
        *,
        operation: str,
        entity_id: Optional[str] = None,
        ctx: Optional[OperationContext] = None,
    ) -> List[Any]:
        """Run one statement in its own session and return all records."""
        if LOG.isEnabledFor(logging.DEBUG):
            LOG.debug("%s [%s]: %s", operation, stmt.mode.value, stmt.inlined())
        try:
            async with self._driver.session(database=self._database) as session:
                if stmt.is_write:
                    return await session.execute_write(_collect, stmt)
                return await session.execute_read(_collect, stmt)
        except (Neo4jError, DriverError) as e:
            LOG.error(
                "%s failed (id=%s): %s\nstatement: %s",
                operation,
                entity_id,
                e,
                stmt.text,
            )
            err_cls = WriteError if stmt.is_write else ReadError
            raise err_cls(
                operation=operation,
                entity_id=entity_id,
                details=self._attach_ctx_details({"statement": stmt.text}, ctx),
            ) from e

    @staticmethod
    def _first(rows: Sequence[Any], key: str) -> Any:
        return rows[0].get(key) if rows else None

    def _node_row(self, rows: Sequence[Any], operation: str, node_id: str) -> Node:
        if not rows:
            raise NotFound(kind="node", operation=operation, entity_id=node_id)
        return parse_node(rows[0].get("n"), operation=operation)

    def _link_row(self, rows: Sequence[Any], operation: str, link_id: str) -> Link:
        if not rows:
            raise NotFound(kind="link", operation=operation, entity_id=link_id)
        row = rows[0]
        return parse_link(row.get("r"), row.get("a"), row.get("b"), operation=operation)

    def _graph_from_rows(self, rows: Sequence[Any], operation: str) -> Graph:
        fragments = parse_records(rows, operation=operation)
        if fragments.dangling:
            LOG.debug(
                "%s: %d link(s) returned without their endpoints: %s",
                operation,
                len(fragments.dangling),
                ", ".join(fragments.dangling[:10]),
            )
        return assemble_graph(fragments.nodes, fragments.links, strict=False)

    # ------------------------------------------------------------------ #
    # Nodes
    # ------------------------------------------------------------------ #

    async def _do_read_node(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        op = "read_node"
        rows = await self._execute(compiler.read_node(node_id), operation=op, entity_id=node_id, ctx=ctx)
        raw = self._first(rows, "n")
        if raw is None:
            return None
        return parse_node(raw, operation=op)

    async def _do_set_node(
        self,
        node_id: str,
        labels: Tuple[str, ...],
        properties: Dict[str, Any],
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Node:
        op = "set_node"
        _check_storable(properties, operation=op, entity_id=node_id)
        prior = await self._do_read_node(node_id, ctx=ctx)
        if prior is None:
            LOG.debug("set_node %s: creating", node_id)
            stmt = compiler.create_node(node_id, labels, properties)
        else:
            LOG.debug("set_node %s: replacing (prior labels %s)", node_id, list(prior.labels))
            stmt = compiler.replace_node(
                node_id, labels, properties, prior.labels, use_apoc=self._use_apoc
            )
        rows = await self._execute(stmt, operation=op, entity_id=node_id, ctx=ctx)
        return self._node_row(rows, op, node_id)

    async def _do_patch_node(
        self, node_id: str, delta: NodeDelta, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        op = "patch_node"
        _check_storable(delta.properties, operation=op, entity_id=node_id)
        if await self._do_read_node(node_id, ctx=ctx) is None:
            LOG.debug("patch_node %s: absent", node_id)
            return None
        rows = await self._execute(
            compiler.patch_node(node_id, delta), operation=op, entity_id=node_id, ctx=ctx
        )
        return self._node_row(rows, op, node_id)

    async def _do_delete_node(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        prior = await self._do_read_node(node_id, ctx=ctx)
        if prior is None:
            return None
        await self._execute(
            compiler.delete_node(node_id), operation="delete_node", entity_id=node_id, ctx=ctx
        )
        return prior

    # ------------------------------------------------------------------ #
    # Links
    # ------------------------------------------------------------------ #

    async def _do_read_link(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Link]:
        op = "read_link"
        rows = await self._execute(compiler.read_link(link_id), operation=op, entity_id=link_id, ctx=ctx)
        if not rows or rows[0].get("r") is None:
            return None
        return self._link_row(rows, op, link_id)

    async def _do_set_link(
        self,
        link_id: str,
        label: str,
        properties: Dict[str, Any],
        source: str,
        target: str,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Optional[Link]:
        op = "set_link"
        _check_storable(properties, operation=op, entity_id=link_id)
        source_node = await self._do_read_node(source, ctx=ctx)
        target_node = await self._do_read_node(target, ctx=ctx)
        if source_node is None or target_node is None:
            LOG.debug(
                "set_link %s: endpoint missing (source=%s found=%s, target=%s found=%s)",
                link_id,
                source,
                source_node is not None,
                target,
                target_node is not None,
            )
            return None

        if await self._do_read_link(link_id, ctx=ctx) is not None:
            LOG.debug("set_link %s: replacing", link_id)
            stmt = compiler.replace_link(link_id, label, properties)
        else:
            LOG.debug("set_link %s: creating %s -> %s", link_id, source, target)
            stmt = compiler.create_link(
                link_id,
                label,
                properties,
                source,
                target,
                source_node.labels,
                target_node.labels,
            )
        rows = await self._execute(stmt, operation=op, entity_id=link_id, ctx=ctx)
        return self._link_row(rows, op, link_id)

    async def _do_patch_link(
        self, link_id: str, delta: LinkDelta, *, ctx: Optional[OperationContext] = None
    ) -> Link:
        op = "patch_link"
        _check_storable(delta.properties, operation=op, entity_id=link_id)
        rows = await self._execute(
            compiler.patch_link(link_id, delta), operation=op, entity_id=link_id, ctx=ctx
        )
        return self._link_row(rows, op, link_id)

    async def _do_delete_link(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Link]:
        prior = await self._do_read_link(link_id, ctx=ctx)
        if prior is None:
            return None
        await self._execute(
            compiler.delete_link(link_id), operation="delete_link", entity_id=link_id, ctx=ctx
        )
        return prior

    # ------------------------------------------------------------------ #
    # Graph
    # ------------------------------------------------------------------ #

    async def _do_read_graph(self, *, ctx: Optional[OperationContext] = None) -> Graph:
        op = "read_graph"
        rows = await self._execute(compiler.read_graph(), operation=op, ctx=ctx)
        return self._graph_from_rows(rows, op)

    async def _do_query_graph(
        self,
        query: str,
        params: Dict[str, Any],
        *,
        write: bool,
        ctx: Optional[OperationContext] = None,
    ) -> Graph:
        op = "query_graph"
        rows = await self._execute(
            compiler.raw_query(query, params, write=write), operation=op, ctx=ctx
        )
        return self._graph_from_rows(rows, op)

    async def _do_clear_graph(self, *, ctx: Optional[OperationContext] = None) -> None:
        await self._execute(compiler.clear_graph(), operation="clear_graph", ctx=ctx)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #

    async def _do_health(self, *, ctx: Optional[OperationContext] = None) -> bool:
        await self._driver.verify_connectivity()
        return True

    async def _do_close(self) -> None:
        await self._driver.close()


__all__ = ["Neo4jGraphStore"]
