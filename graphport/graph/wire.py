# graphport/graph/wire.py
# SPDX-License-Identifier: Apache-2.0
"""
Wire handler for the graph store port.

Transport-agnostic JSON envelope mapping, so a store can sit behind HTTP,
WebSocket, a queue consumer, etc.

Request envelope:
    {"op": "graph.<operation>", "ctx": {...}, "args": {...}}

Success envelope:
    {"ok": true, "code": "OK", "ms": <float>, "result": <payload>}

Error envelope (tagged result):
    {"ok": false, "code": <CODE>, "error": <ClassName>,
     "message": <user-facing>, "dev_message": <developer detail>,
     "details": {...} | null, "ms": <float>}
"""

from __future__ import annotations

import logging
import time
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional

from graphport.graph.graph_base import (
    Graph,
    GraphPortError,
    GraphStoreProtocol,
    Link,
    LinkDelta,
    Node,
    NodeDelta,
    NotSupported,
    OperationContext,
    ValidationError,
)

LOG = logging.getLogger(__name__)


def _ctx_from_wire(ctx_dict: Optional[Mapping[str, Any]]) -> OperationContext:
    """Convert a wire-level ctx dict to OperationContext. Unknown keys are ignored."""
    if not ctx_dict:
        return OperationContext()
    return OperationContext(
        request_id=ctx_dict.get("request_id"),
        tenant=ctx_dict.get("tenant"),
        attrs=ctx_dict.get("attrs") or {},
    )


def _node_to_wire(node: Node) -> Dict[str, Any]:
    return {"id": node.id, "labels": list(node.labels), "properties": dict(node.properties)}


def _link_to_wire(link: Link) -> Dict[str, Any]:
    return {
        "id": link.id,
        "label": link.label,
        "properties": dict(link.properties),
        "source": link.source,
        "target": link.target,
    }


def _graph_to_wire(graph: Graph) -> Dict[str, Any]:
    return {
        "nodes": [_node_to_wire(n) for n in graph.nodes],
        "links": [_link_to_wire(link.to_link()) for link in graph.links],
    }


def _payload(result: Any) -> Any:
    if isinstance(result, Node):
        return _node_to_wire(result)
    if isinstance(result, Link):
        return _link_to_wire(result)
    if isinstance(result, Graph):
        return _graph_to_wire(result)
    return result


def _error_to_wire(e: Exception, ms: float) -> Dict[str, Any]:
    """Map GraphPortError (or an unexpected Exception) to the error envelope."""
    if isinstance(e, GraphPortError):
        return {
            "ok": False,
            "code": e.code,
            "error": type(e).__name__,
            "message": e.user_message,
            "dev_message": e.dev_message,
            "details": e.details or None,
            "ms": ms,
        }
    LOG.exception("unhandled error in wire handler")
    return {
        "ok": False,
        "code": "UNAVAILABLE",
        "error": type(e).__name__,
        "message": "internal error",
        "dev_message": str(e) or "internal error",
        "details": None,
        "ms": ms,
    }


def _success_to_wire(result: Any, ms: float) -> Dict[str, Any]:
    return {
        "ok": True,
        "code": "OK",
        "ms": ms,
        "result": _payload(result),
    }


def _arg(args: Mapping[str, Any], key: str, op: str) -> Any:
    if key not in args:
        raise ValidationError(f"missing argument '{key}'", operation=op)
    return args[key]


def _delta(cls: type, raw: Any, op: str) -> Any:
    if not isinstance(raw, Mapping):
        raise ValidationError("'delta' must be an object", operation=op)
    try:
        return cls(**raw)
    except TypeError as err:
        raise ValidationError(f"invalid delta: {err}", operation=op) from err


class WireGraphHandler:
    """
    Reference wire adapter for GraphStoreProtocol.

    Every port operation is reachable as ``graph.<operation>``; unknown ops
    answer with NOT_SUPPORTED. Errors never escape ``handle``.
    """

    def __init__(self, store: GraphStoreProtocol):
        self._store = store

    def _dispatch(
        self, op: str, args: Mapping[str, Any], ctx: OperationContext
    ) -> Callable[[], Awaitable[Any]]:
        s = self._store
        name = op[len("graph."):] if op.startswith("graph.") else None

        if name == "set_node":
            return lambda: s.set_node(
                _arg(args, "id", name),
                args.get("labels") or [],
                args.get("properties") or {},
                ctx=ctx,
            )
        if name == "read_node":
            return lambda: s.read_node(_arg(args, "id", name), ctx=ctx)
        if name == "patch_node":
            return lambda: s.patch_node(
                _arg(args, "id", name),
                _delta(NodeDelta, _arg(args, "delta", name), name),
                ctx=ctx,
            )
        if name == "delete_node":
            return lambda: s.delete_node(_arg(args, "id", name), ctx=ctx)
        if name == "set_link":
            return lambda: s.set_link(
                _arg(args, "id", name),
                _arg(args, "label", name),
                args.get("properties") or {},
                _arg(args, "source", name),
                _arg(args, "target", name),
                ctx=ctx,
            )
        if name == "read_link":
            return lambda: s.read_link(_arg(args, "id", name), ctx=ctx)
        if name == "patch_link":
            return lambda: s.patch_link(
                _arg(args, "id", name),
                _delta(LinkDelta, _arg(args, "delta", name), name),
                ctx=ctx,
            )
        if name == "delete_link":
            return lambda: s.delete_link(_arg(args, "id", name), ctx=ctx)
        if name == "read_graph":
            return lambda: s.read_graph(ctx=ctx)
        if name == "query_graph":
            return lambda: s.query_graph(
                args.get("query"),
                args.get("params"),
                write=bool(args.get("write", False)),
                ctx=ctx,
            )
        if name == "clear_graph":
            return lambda: s.clear_graph(ctx=ctx)
        if name == "check_node_exists":
            return lambda: s.check_node_exists(_arg(args, "id", name), ctx=ctx)
        if name == "check_link_exists":
            return lambda: s.check_link_exists(_arg(args, "id", name), ctx=ctx)
        if name == "generate_node_id":
            return lambda: s.generate_node_id(ctx=ctx)
        if name == "generate_link_id":
            return lambda: s.generate_link_id(ctx=ctx)
        if name == "health":
            return lambda: s.health(ctx=ctx)

        raise NotSupported(f"unknown operation '{op}'")

    async def handle(self, envelope: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Handle one unary graph operation via JSON envelope.

        Supported ops:
            - graph.set_node / read_node / patch_node / delete_node
            - graph.set_link / read_link / patch_link / delete_link
            - graph.read_graph / query_graph / clear_graph
            - graph.check_node_exists / check_link_exists
            - graph.generate_node_id / generate_link_id
            - graph.health
        """
        t0 = time.monotonic()
        try:
            op = envelope.get("op")
            if not isinstance(op, str):
                raise ValidationError("missing or invalid 'op'")
            args = envelope.get("args") or {}
            if not isinstance(args, Mapping):
                raise ValidationError("'args' must be an object", operation=op)
            ctx = _ctx_from_wire(envelope.get("ctx"))

            call = self._dispatch(op, args, ctx)
            res = await call()
            return _success_to_wire(res, (time.monotonic() - t0) * 1000.0)
        except Exception as e:
            return _error_to_wire(e, (time.monotonic() - t0) * 1000.0)


__all__ = [
    "WireGraphHandler",
    "_ctx_from_wire",
    "_error_to_wire",
    "_success_to_wire",
]
