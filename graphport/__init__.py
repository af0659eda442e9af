# graphport/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
graphport - backend-agnostic graph store port.

The port contract lives in ``graphport.graph``; the Neo4j adapter lives in
``graphport.neo4j_store``.
"""

from graphport.graph.graph_base import GRAPH_PORT_VERSION

__version__ = GRAPH_PORT_VERSION

__all__ = ["__version__", "GRAPH_PORT_VERSION"]
