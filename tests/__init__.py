# SPDX-License-Identifier: Apache-2.0
"""
graphport tests

Conformance tests for the graph store port (run against any store via
GRAPHPORT_ADAPTER) plus unit tests for the Neo4j compiler, parser and adapter.
"""
