# graphport/graph/graph_base.py
# SPDX-License-Identifier: Apache-2.0
"""
graphport: Graph Store Port V1.0

Purpose
-------
A stable, backend-agnostic contract for storing typed nodes and labeled,
directed, property-bearing links in a graph database, with:

- Immutable value snapshots (Node, Link, Graph) returned to callers
- Structured, normalized error vocabulary (machine-actionable codes)
- Input validation performed before any network round trip
- Async-first interface; one scoped unit of work per operation
- Optional, never-fatal metrics

Design Philosophy
-----------------
- The database is the sole source of truth; stores hold no graph state.
- Minimal core surface: set / read / patch / delete for nodes and links,
  whole-graph read / query / clear, existence checks, id generation.
- Backends implement `_do_*` hooks only; validation, the closed-state gate
  and metrics live here once.

Consistency Notes
-----------------
- `set_node` and `set_link` branch on a read performed just before the
  write. Under concurrent writers targeting the same id this is a
  check-then-act window; the last writer wins. No application-level
  locking is attempted.
- Node deletion removes every incident link in the same statement.

Lifecycle
---------
open -> closed (terminal). After `close()` every operation fails with
ConnectionClosed before the transport is touched.
"""

from __future__ import annotations

import hashlib
import logging
import re
import time
from copy import deepcopy
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import (
    Any,
    Awaitable,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Tuple,
    Union,
    runtime_checkable,
)

from graphport.graph.ids import new_link_id, new_node_id

LOG = logging.getLogger(__name__)

GRAPH_PORT_VERSION = "1.0.0"
GRAPH_PORT_ID = "graphport/v1.0"

# =============================================================================
# Constraints
# =============================================================================

RESERVED_ID_KEY = "_id_"
"""Identity property persisted on every stored node and relationship."""

MAX_NUM_NODE_LABELS = 1_000
MAX_LEN_NODE_LABEL = 1_000
REGEX_NODE_LABELS = r"^[0-9a-zA-Z !#%&*+<=>?@\-_|~]+$"
REGEX_NODE_PROP_KEYS = r"^[a-zA-Z_][a-zA-Z0-9_]*$"
REGEX_LINK_LABEL = r"^[A-Za-z_][A-Za-z0-9_]*$"
MIN_LEN_PROP_ARRAY_VAL = 0
MAX_LEN_PROP_ARRAY_VAL = 1_000
MAX_PROP_VALUE_DEPTH = 32

_NODE_LABEL_RE = re.compile(REGEX_NODE_LABELS)
_PROP_KEY_RE = re.compile(REGEX_NODE_PROP_KEYS)
_LINK_LABEL_RE = re.compile(REGEX_LINK_LABEL)

PropertyValue = Union[
    str, int, float, bool, List["PropertyValue"], Mapping[str, "PropertyValue"]
]
Properties = Mapping[str, PropertyValue]

# =============================================================================
# Core Model Types
# =============================================================================


def _frozen_properties(properties: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    """Read-only copy of a property map; nested values are copied too."""
    return MappingProxyType(deepcopy(dict(properties or {})))


@dataclass(frozen=True)
class Node:
    """
    Node snapshot.

    Attributes:
        id: Port-level identity (stored as RESERVED_ID_KEY on the record).
        labels: Node labels / types.
        properties: Property map, without the reserved identity key.
    """
    id: str
    labels: Tuple[str, ...] = ()
    properties: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "labels", tuple(self.labels))
        object.__setattr__(self, "properties", _frozen_properties(self.properties))

    def __hash__(self) -> int:
        return hash(("node", self.id))


@dataclass(frozen=True)
class Link:
    """
    Link snapshot.

    Attributes:
        id: Port-level identity, unique among links.
        label: Relationship type; immutable once created.
        properties: Property map, without the reserved identity key.
        source: Source node id.
        target: Target node id.
    """
    id: str
    label: str
    properties: Mapping[str, Any]
    source: str
    target: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", _frozen_properties(self.properties))

    def __hash__(self) -> int:
        return hash(("link", self.id))


@dataclass(frozen=True)
class NodeDelta:
    """Partial node update. None leaves the field unchanged."""
    labels: Optional[Sequence[str]] = None
    properties: Optional[Mapping[str, Any]] = None


@dataclass(frozen=True)
class LinkDelta:
    """Partial link update. A new label replaces the relationship."""
    label: Optional[str] = None
    properties: Optional[Mapping[str, Any]] = None


GraphNode = Node
"""Graph members are plain Node snapshots."""


@dataclass(frozen=True)
class GraphLink:
    """Link inside a Graph, with endpoints resolved to the graph's nodes."""
    id: str
    label: str
    properties: Mapping[str, Any]
    source: Node
    target: Node

    def __post_init__(self) -> None:
        object.__setattr__(self, "properties", _frozen_properties(self.properties))

    def __hash__(self) -> int:
        return hash(("link", self.id))

    def to_link(self) -> Link:
        return Link(
            id=self.id,
            label=self.label,
            properties=self.properties,
            source=self.source.id,
            target=self.target.id,
        )


@dataclass(frozen=True)
class Graph:
    """
    Immutable graph snapshot built by graph assembly.

    Every link's endpoints are members of `nodes`. A refreshed graph is a
    new object; snapshots are never mutated.
    """
    nodes: Tuple[Node, ...] = ()
    links: Tuple[GraphLink, ...] = ()

    def get_node(self, node_id: str) -> Optional[Node]:
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def get_link(self, link_id: str) -> Optional[GraphLink]:
        for link in self.links:
            if link.id == link_id:
                return link
        return None

    def links_of(self, node_id: str) -> Tuple[GraphLink, ...]:
        """All links with `node_id` as source or target."""
        return tuple(
            link for link in self.links
            if link.source.id == node_id or link.target.id == node_id
        )


# =============================================================================
# Normalized Errors
# =============================================================================

class GraphPortError(Exception):
    """
    Base exception for graph store errors.

    Attributes:
        message: Human-readable, caller-facing description.
        code: Machine-readable, UPPER_SNAKE_CASE error code.
        operation: Port operation that failed (e.g. "set_node").
        entity_id: Node or link id involved, when one applies.
        details: Additional machine context.
    """
    default_code = "GRAPH_PORT_ERROR"

    def __init__(
        self,
        message: str = "",
        *,
        code: Optional[str] = None,
        operation: Optional[str] = None,
        entity_id: Optional[str] = None,
        details: Optional[Mapping[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.operation = operation
        self.entity_id = entity_id
        self.details = dict(details or {})

    @property
    def user_message(self) -> str:
        return self.message or self.__class__.__name__

    @property
    def dev_message(self) -> str:
        cause = self.__cause__
        detail = str(cause) if cause is not None else "no details available."
        return f"{self.user_message.lower()} {detail}"

    def __str__(self) -> str:
        base = self.message or self.__class__.__name__
        base += f" [code={self.code}]"
        if self.operation:
            base += f" operation={self.operation}"
        if self.entity_id:
            base += f" id={self.entity_id}"
        if self.details:
            base += f" details={self.details}"
        return base


class ValidationError(GraphPortError):
    """Input failed the port constraints; nothing was sent to the database."""
    default_code = "VALIDATION_ERROR"


class ConnectionClosed(GraphPortError):
    """Operation attempted after the store was closed."""
    default_code = "CONNECTION_CLOSED"

    def __init__(self, message: str = "connection is closed.", **kw: Any):
        super().__init__(message, **kw)


class ReadError(GraphPortError):
    """A read transaction failed at the database."""
    default_code = "READ_ERROR"

    def __init__(self, message: str = "read error, see log.", **kw: Any):
        super().__init__(message, **kw)


class WriteError(GraphPortError):
    """A write transaction failed at the database."""
    default_code = "WRITE_ERROR"

    def __init__(self, message: str = "write error, see log.", **kw: Any):
        super().__init__(message, **kw)


class ParseFailure(GraphPortError):
    """A returned record did not match the expected node or link shape."""
    default_code = "PARSE_FAILURE"

    def __init__(self, message: str = "", *, kind: str = "node", **kw: Any):
        super().__init__(message or f"failed to parse raw data as {kind}.", **kw)
        self.kind = kind


class NotFound(GraphPortError):
    """An expected row was absent where absence is not a valid answer."""
    default_code = "NOT_FOUND"

    def __init__(self, message: str = "", *, kind: str = "node", **kw: Any):
        super().__init__(message or f"could not retrieve expected {kind}.", **kw)
        self.kind = kind


class NotSupported(GraphPortError):
    """Unsupported operation."""
    default_code = "NOT_SUPPORTED"


# =============================================================================
# Validation
# =============================================================================

def validate_node_id(node_id: Any, *, operation: Optional[str] = None) -> str:
    if not isinstance(node_id, str) or not node_id:
        raise ValidationError("node id must be a non-empty string", operation=operation)
    return node_id


def validate_link_id(link_id: Any, *, operation: Optional[str] = None) -> str:
    if not isinstance(link_id, str) or not link_id:
        raise ValidationError("link id must be a non-empty string", operation=operation)
    return link_id


def validate_node_labels(labels: Any, *, operation: Optional[str] = None) -> Tuple[str, ...]:
    if isinstance(labels, (str, bytes)) or not isinstance(labels, Iterable):
        raise ValidationError("labels must be a sequence of strings", operation=operation)
    out = tuple(labels)
    if len(out) > MAX_NUM_NODE_LABELS:
        raise ValidationError(
            f"at most {MAX_NUM_NODE_LABELS} labels allowed, got {len(out)}",
            operation=operation,
        )
    for i, label in enumerate(out):
        if not isinstance(label, str):
            raise ValidationError(
                f"labels[{i}] must be a string, got {type(label).__name__}",
                operation=operation,
            )
        if len(label) > MAX_LEN_NODE_LABEL:
            raise ValidationError(
                f"labels[{i}] exceeds {MAX_LEN_NODE_LABEL} characters",
                operation=operation,
            )
        if not _NODE_LABEL_RE.match(label):
            raise ValidationError(
                f"labels[{i}] contains disallowed characters",
                operation=operation,
                details={"label": label[:64]},
            )
    return out


def validate_link_label(label: Any, *, operation: Optional[str] = None) -> str:
    if not isinstance(label, str) or not _LINK_LABEL_RE.match(label):
        raise ValidationError(
            "link label must match " + REGEX_LINK_LABEL,
            operation=operation,
            details={"label": str(label)[:64]},
        )
    return label


def _validate_value(
    key: str,
    value: Any,
    operation: Optional[str],
    depth: int = 0,
    active: Tuple[int, ...] = (),
) -> None:
    if isinstance(value, (str, bool, int, float)):
        return
    if value is None:
        raise ValidationError(
            f"property '{key}' is null; omit the key instead", operation=operation
        )
    if not isinstance(value, (list, tuple, Mapping)):
        raise ValidationError(
            f"property '{key}' has unsupported type {type(value).__name__}",
            operation=operation,
        )
    if depth >= MAX_PROP_VALUE_DEPTH:
        raise ValidationError(
            f"property '{key}' nests deeper than {MAX_PROP_VALUE_DEPTH} levels",
            operation=operation,
        )
    if id(value) in active:
        raise ValidationError(f"property '{key}' refers to itself", operation=operation)
    active = active + (id(value),)
    if isinstance(value, Mapping):
        for sub_key, sub_value in value.items():
            if not isinstance(sub_key, str):
                raise ValidationError(
                    f"property '{key}' has a non-string nested key", operation=operation
                )
            _validate_value(f"{key}.{sub_key}", sub_value, operation, depth + 1, active)
        return
    if not MIN_LEN_PROP_ARRAY_VAL <= len(value) <= MAX_LEN_PROP_ARRAY_VAL:
        raise ValidationError(
            f"property '{key}' list length must be within "
            f"{MIN_LEN_PROP_ARRAY_VAL}..{MAX_LEN_PROP_ARRAY_VAL}",
            operation=operation,
        )
    for item in value:
        _validate_value(key, item, operation, depth + 1, active)


def validate_properties(properties: Any, *, operation: Optional[str] = None) -> Dict[str, Any]:
    """Validate a property map and return a plain dict copy."""
    if properties is None:
        return {}
    if not isinstance(properties, Mapping):
        raise ValidationError("properties must be a mapping", operation=operation)
    for key, value in properties.items():
        if not isinstance(key, str) or not _PROP_KEY_RE.match(key):
            raise ValidationError(
                "property keys must match " + REGEX_NODE_PROP_KEYS,
                operation=operation,
                details={"key": str(key)[:64]},
            )
        if key == RESERVED_ID_KEY:
            raise ValidationError(
                f"property key '{RESERVED_ID_KEY}' is reserved", operation=operation
            )
        _validate_value(key, value, operation)
    return dict(properties)


def validate_node_delta(delta: Any, *, operation: Optional[str] = None) -> NodeDelta:
    if not isinstance(delta, NodeDelta):
        raise ValidationError("delta must be a NodeDelta", operation=operation)
    return NodeDelta(
        labels=None if delta.labels is None else validate_node_labels(delta.labels, operation=operation),
        properties=None if delta.properties is None else validate_properties(delta.properties, operation=operation),
    )


def validate_link_delta(delta: Any, *, operation: Optional[str] = None) -> LinkDelta:
    if not isinstance(delta, LinkDelta):
        raise ValidationError("delta must be a LinkDelta", operation=operation)
    return LinkDelta(
        label=None if delta.label is None else validate_link_label(delta.label, operation=operation),
        properties=None if delta.properties is None else validate_properties(delta.properties, operation=operation),
    )


# =============================================================================
# Context + Metrics
# =============================================================================

@dataclass(frozen=True)
class OperationContext:
    """
    Per-call context.

    Attributes:
        request_id: Correlation ID for logs.
        tenant: Tenant / app identifier (hashed before it reaches metrics).
        attrs: Extra attributes for middleware.
    """
    request_id: Optional[str] = None
    tenant: Optional[str] = None
    attrs: Optional[Mapping[str, Any]] = None

    def __post_init__(self) -> None:
        if self.attrs is None:
            object.__setattr__(self, "attrs", {})


class MetricsSink(Protocol):
    """Metrics collection protocol (low-cardinality)."""
    def observe(
        self,
        *,
        component: str,
        op: str,
        ms: float,
        ok: bool,
        code: str = "OK",
        extra: Optional[Mapping[str, Any]] = None,
    ) -> None:
        ...


class NoopMetrics:
    def observe(self, **_: Any) -> None:
        ...


# =============================================================================
# Stable Port Interface
# =============================================================================

@runtime_checkable
class GraphStoreProtocol(Protocol):
    """Language-level contract for graph stores."""

    async def set_node(
        self,
        node_id: str,
        labels: Sequence[str],
        properties: Properties,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Node:
        ...

    async def read_node(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        ...

    async def patch_node(
        self, node_id: str, delta: NodeDelta, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        ...

    async def delete_node(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        ...

    async def set_link(
        self,
        link_id: str,
        label: str,
        properties: Properties,
        source: str,
        target: str,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Optional[Link]:
        ...

    async def read_link(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Link]:
        ...

    async def patch_link(
        self, link_id: str, delta: LinkDelta, *, ctx: Optional[OperationContext] = None
    ) -> Link:
        ...

    async def delete_link(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Link]:
        ...

    async def read_graph(self, *, ctx: Optional[OperationContext] = None) -> Graph:
        ...

    async def query_graph(
        self,
        query: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
        *,
        write: bool = False,
        ctx: Optional[OperationContext] = None,
    ) -> Graph:
        ...

    async def clear_graph(self, *, ctx: Optional[OperationContext] = None) -> None:
        ...

    async def check_node_exists(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> bool:
        ...

    async def check_link_exists(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> bool:
        ...

    async def generate_node_id(self, *, ctx: Optional[OperationContext] = None) -> str:
        ...

    async def generate_link_id(self, *, ctx: Optional[OperationContext] = None) -> str:
        ...

    async def health(self, *, ctx: Optional[OperationContext] = None) -> Mapping[str, Any]:
        ...

    async def close(self) -> None:
        ...


# =============================================================================
# Base Store (validation + closed gate + metrics)
# =============================================================================

class BaseGraphStore(GraphStoreProtocol):
    """
    Base implementation of GraphStoreProtocol.

    Responsibilities:
        - Closed-state gate (checked before anything else).
        - Input validation, before any backend hook runs.
        - Metrics around every operation.
        - Id generation on top of the existence checks.

    Backends implement the `_do_*` hooks and `_do_close`.
    """

    _component = "graph"
    name = "graph-store"

    def __init__(self, *, metrics: Optional[MetricsSink] = None) -> None:
        self._metrics: MetricsSink = metrics or NoopMetrics()
        self._closed = False

    # ---- lifecycle ----------------------------------------------------------

    async def __aenter__(self) -> "BaseGraphStore":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    async def close(self) -> None:
        """Permanently close the store. Idempotent."""
        if self._closed:
            return
        self._closed = True
        await self._do_close()
        LOG.debug("%s closed", self.name)

    # ---- internal helpers ---------------------------------------------------

    @staticmethod
    def _tenant_hash(tenant: Optional[str]) -> Optional[str]:
        if not tenant:
            return None
        return hashlib.sha256(tenant.encode("utf-8")).hexdigest()[:12]

    def _record(
        self,
        op: str,
        t0: float,
        ok: bool,
        *,
        code: str = "OK",
        ctx: Optional[OperationContext] = None,
    ) -> None:
        try:
            extra: Dict[str, Any] = {}
            if ctx:
                th = self._tenant_hash(ctx.tenant)
                if th:
                    extra["tenant_hash"] = th
            self._metrics.observe(
                component=self._component,
                op=op,
                ms=(time.monotonic() - t0) * 1000.0,
                ok=ok,
                code=code,
                extra=extra or None,
            )
        except Exception:
            # never let metrics break caller
            LOG.debug("metrics sink failed for op=%s", op)

    def _ensure_open(self, op: str) -> None:
        if self._closed:
            raise ConnectionClosed(operation=op)

    async def _run(
        self,
        op: str,
        ctx: Optional[OperationContext],
        call: Callable[[], Awaitable[Any]],
    ) -> Any:
        t0 = time.monotonic()
        try:
            result = await call()
        except GraphPortError as e:
            self._record(op, t0, False, code=e.code, ctx=ctx)
            raise
        except Exception:
            self._record(op, t0, False, code="UnhandledException", ctx=ctx)
            raise
        self._record(op, t0, True, ctx=ctx)
        return result

    # ---- nodes --------------------------------------------------------------

    async def set_node(
        self,
        node_id: str,
        labels: Sequence[str],
        properties: Properties,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Node:
        """Create the node, or fully replace its labels and properties."""
        op = "set_node"
        self._ensure_open(op)
        node_id = validate_node_id(node_id, operation=op)
        labels = validate_node_labels(labels, operation=op)
        properties = validate_properties(properties, operation=op)
        return await self._run(
            op, ctx, lambda: self._do_set_node(node_id, labels, properties, ctx=ctx)
        )

    async def read_node(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        op = "read_node"
        self._ensure_open(op)
        node_id = validate_node_id(node_id, operation=op)
        return await self._run(op, ctx, lambda: self._do_read_node(node_id, ctx=ctx))

    async def patch_node(
        self, node_id: str, delta: NodeDelta, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        """Union labels and merge properties (delta keys win). None if absent."""
        op = "patch_node"
        self._ensure_open(op)
        node_id = validate_node_id(node_id, operation=op)
        delta = validate_node_delta(delta, operation=op)
        return await self._run(op, ctx, lambda: self._do_patch_node(node_id, delta, ctx=ctx))

    async def delete_node(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        """Delete the node and every incident link; return the prior snapshot."""
        op = "delete_node"
        self._ensure_open(op)
        node_id = validate_node_id(node_id, operation=op)
        return await self._run(op, ctx, lambda: self._do_delete_node(node_id, ctx=ctx))

    # ---- links --------------------------------------------------------------

    async def set_link(
        self,
        link_id: str,
        label: str,
        properties: Properties,
        source: str,
        target: str,
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Optional[Link]:
        """Create or replace a link. None if either endpoint is missing."""
        op = "set_link"
        self._ensure_open(op)
        link_id = validate_link_id(link_id, operation=op)
        label = validate_link_label(label, operation=op)
        properties = validate_properties(properties, operation=op)
        source = validate_node_id(source, operation=op)
        target = validate_node_id(target, operation=op)
        return await self._run(
            op,
            ctx,
            lambda: self._do_set_link(link_id, label, properties, source, target, ctx=ctx),
        )

    async def read_link(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Link]:
        op = "read_link"
        self._ensure_open(op)
        link_id = validate_link_id(link_id, operation=op)
        return await self._run(op, ctx, lambda: self._do_read_link(link_id, ctx=ctx))

    async def patch_link(
        self, link_id: str, delta: LinkDelta, *, ctx: Optional[OperationContext] = None
    ) -> Link:
        """
        Merge properties into a link; a new label replaces the relationship
        (same endpoints, merged properties). Raises NotFound if absent.
        """
        op = "patch_link"
        self._ensure_open(op)
        link_id = validate_link_id(link_id, operation=op)
        delta = validate_link_delta(delta, operation=op)
        return await self._run(op, ctx, lambda: self._do_patch_link(link_id, delta, ctx=ctx))

    async def delete_link(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Link]:
        op = "delete_link"
        self._ensure_open(op)
        link_id = validate_link_id(link_id, operation=op)
        return await self._run(op, ctx, lambda: self._do_delete_link(link_id, ctx=ctx))

    # ---- graph --------------------------------------------------------------

    async def read_graph(self, *, ctx: Optional[OperationContext] = None) -> Graph:
        op = "read_graph"
        self._ensure_open(op)
        return await self._run(op, ctx, lambda: self._do_read_graph(ctx=ctx))

    async def query_graph(
        self,
        query: Optional[str] = None,
        params: Optional[Mapping[str, Any]] = None,
        *,
        write: bool = False,
        ctx: Optional[OperationContext] = None,
    ) -> Graph:
        """
        Run a caller-supplied statement and assemble every node and link it
        returns. The statement bypasses compilation; with no query this is
        `read_graph`.
        """
        op = "query_graph"
        self._ensure_open(op)
        if query is None:
            return await self._run(op, ctx, lambda: self._do_read_graph(ctx=ctx))
        if not isinstance(query, str) or not query.strip():
            raise ValidationError("query must be a non-empty string", operation=op)
        if params is not None and not isinstance(params, Mapping):
            raise ValidationError("params must be a mapping", operation=op)
        return await self._run(
            op,
            ctx,
            lambda: self._do_query_graph(query, dict(params or {}), write=bool(write), ctx=ctx),
        )

    async def clear_graph(self, *, ctx: Optional[OperationContext] = None) -> None:
        op = "clear_graph"
        self._ensure_open(op)
        await self._run(op, ctx, lambda: self._do_clear_graph(ctx=ctx))

    # ---- existence + ids ----------------------------------------------------

    async def check_node_exists(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> bool:
        return (await self.read_node(node_id, ctx=ctx)) is not None

    async def check_link_exists(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> bool:
        return (await self.read_link(link_id, ctx=ctx)) is not None

    async def generate_node_id(self, *, ctx: Optional[OperationContext] = None) -> str:
        """Return a fresh node id that is unused at generation time."""
        self._ensure_open("generate_node_id")
        candidate = new_node_id()
        while await self.check_node_exists(candidate, ctx=ctx):
            LOG.debug("node id collision on %s, re-rolling", candidate)
            candidate = new_node_id()
        return candidate

    async def generate_link_id(self, *, ctx: Optional[OperationContext] = None) -> str:
        """Return a fresh link id that is unused at generation time."""
        self._ensure_open("generate_link_id")
        candidate = new_link_id()
        while await self.check_link_exists(candidate, ctx=ctx):
            LOG.debug("link id collision on %s, re-rolling", candidate)
            candidate = new_link_id()
        return candidate

    async def health(self, *, ctx: Optional[OperationContext] = None) -> Mapping[str, Any]:
        if self._closed:
            return {
                "ok": False,
                "server": self.name,
                "protocol": GRAPH_PORT_ID,
                "closed": True,
            }
        t0 = time.monotonic()
        try:
            ok = await self._do_health(ctx=ctx)
        except Exception as e:
            LOG.warning("%s health check failed: %s", self.name, e)
            ok = False
        self._record("health", t0, ok, code="OK" if ok else "UNAVAILABLE", ctx=ctx)
        return {
            "ok": ok,
            "server": self.name,
            "protocol": GRAPH_PORT_ID,
            "closed": False,
        }

    # --- backend hooks -------------------------------------------------------

    async def _do_set_node(
        self,
        node_id: str,
        labels: Tuple[str, ...],
        properties: Dict[str, Any],
        *,
        ctx: Optional[OperationContext] = None,
    ) -> Node:
        raise NotImplementedError

    async def _do_read_node(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        raise NotImplementedError

    async def _do_patch_node(
        self, node_id: str, delta: NodeDelta, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        raise NotImplementedError

    async def _do_delete_node(
        self, node_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Node]:
        raise NotImplementedError

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
        raise NotImplementedError

    async def _do_read_link(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Link]:
        raise NotImplementedError

    async def _do_patch_link(
        self, link_id: str, delta: LinkDelta, *, ctx: Optional[OperationContext] = None
    ) -> Link:
        raise NotImplementedError

    async def _do_delete_link(
        self, link_id: str, *, ctx: Optional[OperationContext] = None
    ) -> Optional[Link]:
        raise NotImplementedError

    async def _do_read_graph(self, *, ctx: Optional[OperationContext] = None) -> Graph:
        raise NotImplementedError

    async def _do_query_graph(
        self,
        query: str,
        params: Dict[str, Any],
        *,
        write: bool,
        ctx: Optional[OperationContext] = None,
    ) -> Graph:
        raise NotSupported("raw queries are not supported by this store", operation="query_graph")

    async def _do_clear_graph(self, *, ctx: Optional[OperationContext] = None) -> None:
        raise NotImplementedError

    async def _do_health(self, *, ctx: Optional[OperationContext] = None) -> bool:
        return True

    async def _do_close(self) -> None:
        return None


__all__ = [
    "GRAPH_PORT_VERSION",
    "GRAPH_PORT_ID",
    "RESERVED_ID_KEY",
    "MAX_NUM_NODE_LABELS",
    "MAX_LEN_NODE_LABEL",
    "REGEX_NODE_LABELS",
    "REGEX_NODE_PROP_KEYS",
    "REGEX_LINK_LABEL",
    "MIN_LEN_PROP_ARRAY_VAL",
    "MAX_LEN_PROP_ARRAY_VAL",
    "MAX_PROP_VALUE_DEPTH",
    "PropertyValue",
    "Properties",
    "Node",
    "Link",
    "NodeDelta",
    "LinkDelta",
    "GraphNode",
    "GraphLink",
    "Graph",
    "GraphPortError",
    "ValidationError",
    "ConnectionClosed",
    "ReadError",
    "WriteError",
    "ParseFailure",
    "NotFound",
    "NotSupported",
    "validate_node_id",
    "validate_link_id",
    "validate_node_labels",
    "validate_link_label",
    "validate_properties",
    "validate_node_delta",
    "validate_link_delta",
    "OperationContext",
    "MetricsSink",
    "NoopMetrics",
    "GraphStoreProtocol",
    "BaseGraphStore",
]
