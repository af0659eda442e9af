# SPDX-License-Identifier: Apache-2.0
"""
Neo4j store: result parser.

Asserts:
  • nodes: id re-derived from the identity property, which is stripped
  • links: endpoints must match the returned nodes by element id
  • absent rows -> NotFound; malformed shapes -> ParseFailure (logged)
  • rows with nodes, relationships, paths and lists are flattened;
    relationships without returned endpoints are reported as dangling
"""
import logging

import pytest

from graphport.graph.graph_base import RESERVED_ID_KEY, Link, Node, NotFound, ParseFailure
from graphport.neo4j_store.parser import parse_link, parse_node, parse_records, parse_row
from tests.mock.fake_neo4j import FakeNode, FakePath, FakeRelationship, node, rel


def test_parse_node():
    raw = node("4:x:1", "node#a", ["Person", "Admin"], name="Ada")
    parsed = parse_node(raw)
    assert parsed == Node(id="node#a", labels=("Admin", "Person"), properties={"name": "Ada"})
    assert RESERVED_ID_KEY not in parsed.properties


def test_parse_node_absent_raises_not_found():
    with pytest.raises(NotFound) as exc_info:
        parse_node(None, operation="set_node")
    assert exc_info.value.kind == "node"
    assert exc_info.value.operation == "set_node"


@pytest.mark.parametrize(
    "raw",
    [
        FakeNode("4:x:1", ["Person"], {"name": "no identity"}),
        FakeNode("4:x:1", ["Person"], {RESERVED_ID_KEY: 42}),
        FakeNode("4:x:1", ["Person"], {RESERVED_ID_KEY: ""}),
        FakeNode("4:x:1", [""], {RESERVED_ID_KEY: "node#a"}),
        {"not": "a node"},
        "string",
    ],
)
def test_parse_node_malformed_raises_parse_failure(raw, caplog):
    with caplog.at_level(logging.ERROR, logger="graphport.neo4j_store.parser"):
        with pytest.raises(ParseFailure) as exc_info:
            parse_node(raw, operation="read_node")
    assert exc_info.value.kind == "node"
    assert exc_info.value.code == "PARSE_FAILURE"
    assert "failed to parse node" in caplog.text


def test_parse_link():
    a = node("4:x:1", "node#a")
    b = node("4:x:2", "node#b")
    r = rel("5:x:9", "link#ab", "KNOWS", a, b, since=2020)

    parsed = parse_link(r, a, b)
    assert parsed == Link(
        id="link#ab", label="KNOWS", properties={"since": 2020}, source="node#a", target="node#b"
    )


def test_parse_link_absent_raises_not_found():
    a = node("4:x:1", "node#a")
    with pytest.raises(NotFound) as exc_info:
        parse_link(None, a, a)
    assert exc_info.value.kind == "link"


def test_parse_link_endpoint_mismatch():
    a = node("4:x:1", "node#a")
    b = node("4:x:2", "node#b")
    r = rel("5:x:9", "link#ab", "KNOWS", a, b)
    with pytest.raises(ParseFailure) as exc_info:
        parse_link(r, b, a)
    assert exc_info.value.kind == "link"
    assert exc_info.value.entity_id == "link#ab"


def test_parse_link_malformed():
    a = node("4:x:1", "node#a")
    b = node("4:x:2", "node#b")
    bad = FakeRelationship("5:x:9", "", {RESERVED_ID_KEY: "link#ab"}, a, b)
    with pytest.raises(ParseFailure) as exc_info:
        parse_link(bad, a, b)
    assert exc_info.value.kind == "link"


def test_parse_row_whole_graph_shape():
    a = node("4:x:1", "node#a")
    b = node("4:x:2", "node#b")
    r = rel("5:x:9", "link#ab", "KNOWS", a, b)

    frags = parse_row({"n": a, "r": r, "m": b})
    assert [n.id for n in frags.nodes] == ["node#a", "node#b"]
    assert [(l.id, l.source, l.target) for l in frags.links] == [("link#ab", "node#a", "node#b")]
    assert frags.dangling == ()


def test_parse_row_null_optional_match():
    a = node("4:x:1", "node#a")
    frags = parse_row({"n": a, "r": None, "m": None})
    assert [n.id for n in frags.nodes] == ["node#a"]
    assert frags.links == ()


def test_parse_row_relationship_without_endpoints_is_dangling():
    a = node("4:x:1", "node#a")
    b = node("4:x:2", "node#b")
    r = rel("5:x:9", "link#ab", "KNOWS", a, b)
    frags = parse_row({"r": r})
    assert frags.nodes == ()
    assert frags.links == ()
    assert frags.dangling == ("link#ab",)


def test_parse_records_paths_lists_and_scalars():
    a = node("4:x:1", "node#a")
    b = node("4:x:2", "node#b")
    c = node("4:x:3", "node#c")
    ab = rel("5:x:1", "link#ab", "KNOWS", a, b)
    bc = rel("5:x:2", "link#bc", "KNOWS", b, c)

    rows = [
        {"p": FakePath([a, b], [ab]), "count": 3},
        {"ns": [c], "rs": [bc], "name": "ignored"},
    ]
    frags = parse_records(rows)
    assert [n.id for n in frags.nodes] == ["node#a", "node#b", "node#c"]
    assert {(l.id, l.source, l.target) for l in frags.links} == {
        ("link#ab", "node#a", "node#b"),
        ("link#bc", "node#b", "node#c"),
    }


def test_parse_records_propagates_parse_failure():
    bad = FakeNode("4:x:1", ["Person"], {})
    with pytest.raises(ParseFailure):
        parse_records([{"n": bad}], operation="read_graph")
