# SPDX-License-Identifier: Apache-2.0
"""
Pytest plumbing for the graph store conformance suite.

The store under test is pluggable:

    GRAPHPORT_ADAPTER="package.module:ClassName" pytest tests/graph

defaults to the in-memory mock. To run the conformance suite against a live
Neo4j instance:

    GRAPHPORT_ADAPTER="graphport.neo4j_store.adapter:Neo4jGraphStore" \
    NEO4J_URL=neo4j://localhost:7687 NEO4J_USERNAME=neo4j NEO4J_PASSWORD=... \
    pytest tests/graph

The live store is cleared before and after every test.
"""

from __future__ import annotations

import importlib
import inspect
import os
from typing import Optional

import pytest
import pytest_asyncio


# ---------------------------------------------------------------------------
# Adapter resolution
# ---------------------------------------------------------------------------

# Environment variable for fully-qualified store class:
#   GRAPHPORT_ADAPTER="package.module:ClassName"
ADAPTER_ENV = "GRAPHPORT_ADAPTER"
DEFAULT_ADAPTER = "tests.mock.mock_graph_store:MockGraphStore"

_ADAPTER_CLASS: Optional[type] = None
_ADAPTER_SPEC_USED: Optional[str] = None


class AdapterValidationError(RuntimeError):
    """Custom exception for adapter validation failures."""
    pass


def _validate_adapter_class(cls: type) -> None:
    """Validate that the adapter class meets minimum interface requirements."""
    if not inspect.isclass(cls):
        raise AdapterValidationError(
            f"Adapter spec must resolve to a class; got {type(cls)!r} from {cls!r}."
        )
    missing = [m for m in ("set_node", "read_graph", "close") if not hasattr(cls, m)]
    if missing:
        raise AdapterValidationError(
            f"Adapter class {cls.__name__} is missing graph store methods: {missing}"
        )


def _load_class_from_spec(spec: str) -> type:
    """
    Load and validate a class from a 'package.module:ClassName' string.
    """
    module_name, _, class_name = spec.partition(":")
    if not module_name or not class_name:
        raise AdapterValidationError(
            f"Invalid adapter spec '{spec}'. Expected 'package.module:ClassName'."
        )

    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise AdapterValidationError(
            f"Failed to import adapter module '{module_name}' for spec '{spec}'."
        ) from exc

    try:
        cls = getattr(module, class_name)
    except AttributeError as exc:
        raise AdapterValidationError(
            f"Adapter class '{class_name}' not found in module '{module_name}' "
            f"for spec '{spec}'."
        ) from exc

    _validate_adapter_class(cls)
    return cls


def _get_adapter_class() -> type:
    """
    Resolve, validate, and cache the adapter class.
    """
    global _ADAPTER_CLASS, _ADAPTER_SPEC_USED

    if _ADAPTER_CLASS is not None:
        return _ADAPTER_CLASS

    spec = os.getenv(ADAPTER_ENV, DEFAULT_ADAPTER)
    _ADAPTER_CLASS = _load_class_from_spec(spec)
    _ADAPTER_SPEC_USED = spec
    return _ADAPTER_CLASS


@pytest_asyncio.fixture
async def store():
    """
    Fresh graph store per test.

    The store is constructed without arguments (live stores read their
    connection settings from the environment), cleared, handed to the test,
    then cleared again and closed.
    """
    Store = _get_adapter_class()
    try:
        instance = Store()
    except TypeError as exc:
        raise AdapterValidationError(
            f"Failed to instantiate adapter '{_ADAPTER_SPEC_USED}' without arguments."
        ) from exc

    await instance.clear_graph()
    try:
        yield instance
    finally:
        if not instance.closed:
            await instance.clear_graph()
        await instance.close()

