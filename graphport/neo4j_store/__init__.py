# graphport/neo4j_store/__init__.py
# SPDX-License-Identifier: Apache-2.0

"""
Neo4j backend for the Graph Store Port.

Public API re-exported for clean imports.
"""

from graphport.neo4j_store.adapter import Neo4jGraphStore
from graphport.neo4j_store.compiler import AccessMode, Statement
from graphport.neo4j_store.config import Neo4jConfig

__all__ = [
    "Neo4jGraphStore",
    "Neo4jConfig",
    "AccessMode",
    "Statement",
]
