# graphport/graph/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Graph Store Port V1.0 - Public API

All public types, errors and handlers are re-exported here for clean imports.
"""

from graphport.graph.graph_base import (
    # Port version
    GRAPH_PORT_VERSION,
    GRAPH_PORT_ID,
    RESERVED_ID_KEY,

    # Core types
    PropertyValue,
    Properties,
    Node,
    Link,
    NodeDelta,
    LinkDelta,
    GraphNode,
    GraphLink,
    Graph,

    # Error types
    GraphPortError,
    ValidationError,
    ConnectionClosed,
    ReadError,
    WriteError,
    ParseFailure,
    NotFound,
    NotSupported,

    # Context and metrics
    OperationContext,
    MetricsSink,
    NoopMetrics,

    # Port
    GraphStoreProtocol,
    BaseGraphStore,
)
from graphport.graph.assembly import assemble_graph
from graphport.graph.ids import new_link_id, new_node_id
from graphport.graph.wire import WireGraphHandler

__all__ = [
    "GRAPH_PORT_VERSION",
    "GRAPH_PORT_ID",
    "RESERVED_ID_KEY",
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
    "OperationContext",
    "MetricsSink",
    "NoopMetrics",
    "GraphStoreProtocol",
    "BaseGraphStore",
    "assemble_graph",
    "new_node_id",
    "new_link_id",
    "WireGraphHandler",
]
