# SPDX-License-Identifier: Apache-2.0
"""
Graph Store Conformance: lifecycle.

Asserts:
  • every operation after close() raises ConnectionClosed
  • close() is idempotent and the store reports closed
  • async context manager closes the store on exit
  • health reports ok while open and closed after close()
"""
import pytest

from graphport.graph.graph_base import (
    GRAPH_PORT_ID,
    BaseGraphStore,
    ConnectionClosed,
    GraphStoreProtocol,
    LinkDelta,
    NodeDelta,
)
from tests.mock.mock_graph_store import MockGraphStore

pytestmark = pytest.mark.asyncio


CLOSED_CALLS = [
    ("set_node", lambda s: s.set_node("node#a", ["Person"], {})),
    ("read_node", lambda s: s.read_node("node#a")),
    ("patch_node", lambda s: s.patch_node("node#a", NodeDelta())),
    ("delete_node", lambda s: s.delete_node("node#a")),
    ("set_link", lambda s: s.set_link("link#ab", "KNOWS", {}, "node#a", "node#b")),
    ("read_link", lambda s: s.read_link("link#ab")),
    ("patch_link", lambda s: s.patch_link("link#ab", LinkDelta())),
    ("delete_link", lambda s: s.delete_link("link#ab")),
    ("read_graph", lambda s: s.read_graph()),
    ("query_graph", lambda s: s.query_graph()),
    ("clear_graph", lambda s: s.clear_graph()),
    ("check_node_exists", lambda s: s.check_node_exists("node#a")),
    ("check_link_exists", lambda s: s.check_link_exists("link#ab")),
    ("generate_node_id", lambda s: s.generate_node_id()),
    ("generate_link_id", lambda s: s.generate_link_id()),
]


async def test_store_satisfies_protocol(store: BaseGraphStore):
    assert isinstance(store, GraphStoreProtocol)
    assert store.closed is False


@pytest.mark.parametrize("name,call", CLOSED_CALLS, ids=[c[0] for c in CLOSED_CALLS])
async def test_operations_after_close_raise_connection_closed(name, call):
    store = MockGraphStore()
    await store.close()

    with pytest.raises(ConnectionClosed) as exc_info:
        await call(store)
    assert exc_info.value.code == "CONNECTION_CLOSED"
    assert exc_info.value.operation == name or name.startswith(("check_", "generate_"))


async def test_closed_check_precedes_validation():
    store = MockGraphStore()
    await store.close()
    # invalid input still reports the closed state first
    with pytest.raises(ConnectionClosed):
        await store.set_node("", ["bad`label\n"], {"_id_": "x"})


async def test_close_is_idempotent():
    store = MockGraphStore()
    await store.close()
    await store.close()
    assert store.closed is True
    assert store.close_calls == 1


async def test_async_context_manager_closes():
    async with MockGraphStore() as store:
        await store.set_node("node#a", ["Person"], {})
        assert store.closed is False
    assert store.closed is True
    with pytest.raises(ConnectionClosed):
        await store.read_node("node#a")


async def test_health_open_and_closed(store: BaseGraphStore):
    h = await store.health()
    assert h["ok"] is True
    assert h["closed"] is False
    assert h["protocol"] == GRAPH_PORT_ID
    assert isinstance(h["server"], str)


async def test_health_after_close_reports_closed():
    store = MockGraphStore()
    await store.close()
    h = await store.health()
    assert h == {
        "ok": False,
        "server": "mock-graph",
        "protocol": GRAPH_PORT_ID,
        "closed": True,
    }
