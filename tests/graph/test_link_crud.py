# SPDX-License-Identifier: Apache-2.0
"""
Graph Store Conformance: link set / read / patch / delete.

Asserts:
  • set_link creates a directed link between existing nodes
  • set_link returns None (and writes nothing) when an endpoint is missing
  • set_link on an existing id replaces label and properties in place
  • patch_link merges properties; a new label keeps identity and endpoints
  • patch_link on an unknown id raises NotFound
  • delete_link returns the prior snapshot and leaves both nodes in place
  • returned links are read-only and hashable
"""
import pytest

from graphport.graph.graph_base import (
    BaseGraphStore,
    Link,
    LinkDelta,
    NotFound,
    RESERVED_ID_KEY,
)

pytestmark = pytest.mark.asyncio


async def _two_nodes(store: BaseGraphStore) -> None:
    await store.set_node("node#a", ["Person"], {"name": "Ada"})
    await store.set_node("node#b", ["Person"], {"name": "Bob"})


async def test_set_link_creates_directed_link(store: BaseGraphStore):
    await _two_nodes(store)
    link = await store.set_link("link#ab", "KNOWS", {"since": 2020}, "node#a", "node#b")

    assert isinstance(link, Link)
    assert link.id == "link#ab"
    assert link.label == "KNOWS"
    assert dict(link.properties) == {"since": 2020}
    assert (link.source, link.target) == ("node#a", "node#b")
    assert RESERVED_ID_KEY not in link.properties

    assert await store.read_link("link#ab") == link


async def test_set_link_missing_endpoint_returns_none(store: BaseGraphStore):
    await store.set_node("node#a", ["Person"], {})

    assert await store.set_link("link#ax", "KNOWS", {}, "node#a", "node#missing") is None
    assert await store.set_link("link#xa", "KNOWS", {}, "node#missing", "node#a") is None
    assert await store.check_link_exists("link#ax") is False
    assert await store.check_link_exists("link#xa") is False


async def test_set_link_replaces_existing(store: BaseGraphStore):
    await _two_nodes(store)
    await store.set_link("link#ab", "KNOWS", {"since": 2020, "weight": 1}, "node#a", "node#b")
    replaced = await store.set_link("link#ab", "LIKES", {"score": 5}, "node#a", "node#b")

    assert replaced.label == "LIKES"
    assert dict(replaced.properties) == {"score": 5}
    assert (replaced.source, replaced.target) == ("node#a", "node#b")

    graph = await store.read_graph()
    assert [l.id for l in graph.links] == ["link#ab"]


async def test_set_link_self_loop(store: BaseGraphStore):
    await store.set_node("node#a", ["Person"], {})
    link = await store.set_link("link#aa", "KNOWS", {}, "node#a", "node#a")
    assert (link.source, link.target) == ("node#a", "node#a")


async def test_read_link_unknown_returns_none(store: BaseGraphStore):
    assert await store.read_link("link#missing") is None


async def test_patch_link_merges_properties(store: BaseGraphStore):
    await _two_nodes(store)
    await store.set_link("link#ab", "KNOWS", {"since": 2020, "weight": 1}, "node#a", "node#b")

    patched = await store.patch_link("link#ab", LinkDelta(properties={"weight": 2, "note": "x"}))

    assert patched.label == "KNOWS"
    assert dict(patched.properties) == {"since": 2020, "weight": 2, "note": "x"}


async def test_patch_link_new_label_keeps_identity_and_endpoints(store: BaseGraphStore):
    await _two_nodes(store)
    await store.set_link("link#ab", "KNOWS", {"since": 2020}, "node#a", "node#b")

    patched = await store.patch_link(
        "link#ab", LinkDelta(label="WORKS_WITH", properties={"team": "core"})
    )

    assert patched.id == "link#ab"
    assert patched.label == "WORKS_WITH"
    assert dict(patched.properties) == {"since": 2020, "team": "core"}
    assert (patched.source, patched.target) == ("node#a", "node#b")

    read = await store.read_link("link#ab")
    assert read.label == "WORKS_WITH"


async def test_patch_link_unknown_raises_not_found(store: BaseGraphStore):
    with pytest.raises(NotFound) as exc_info:
        await store.patch_link("link#missing", LinkDelta(properties={"x": 1}))
    assert exc_info.value.code == "NOT_FOUND"


async def test_delete_link_keeps_nodes(store: BaseGraphStore):
    await _two_nodes(store)
    created = await store.set_link("link#ab", "KNOWS", {}, "node#a", "node#b")

    deleted = await store.delete_link("link#ab")

    assert deleted == created
    assert await store.read_link("link#ab") is None
    assert await store.check_node_exists("node#a")
    assert await store.check_node_exists("node#b")


async def test_delete_link_unknown_returns_none(store: BaseGraphStore):
    assert await store.delete_link("link#missing") is None


async def test_link_snapshot_is_read_only(store: BaseGraphStore):
    await _two_nodes(store)
    link = await store.set_link("link#ab", "KNOWS", {"since": 2020}, "node#a", "node#b")

    with pytest.raises(TypeError):
        link.properties["since"] = 1999
    assert hash(link) == hash(await store.read_link("link#ab"))

    again = await store.read_link("link#ab")
    assert dict(again.properties) == {"since": 2020}
