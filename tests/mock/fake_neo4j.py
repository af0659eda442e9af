# tests/mock/fake_neo4j.py
# SPDX-License-Identifier: Apache-2.0
"""
Stand-ins for the neo4j async driver and its graph values.

- FakeNode / FakeRelationship / FakePath mirror the attributes the result
  parser reads from ``neo4j.graph`` objects.
- FakeDriver hands out FakeSessions whose ``execute_read`` / ``execute_write``
  run the transaction function against a FakeTx. Every statement is recorded
  with its access mode, and answers come from a ``responder(text, params)``
  callable returning a list of records (plain dicts) or raising.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

Responder = Callable[[str, Mapping[str, Any]], List[Mapping[str, Any]]]


# ---------------------------------------------------------------------------
# Graph values
# ---------------------------------------------------------------------------

class FakeNode:
    def __init__(self, element_id: str, labels: Sequence[str], props: Mapping[str, Any]):
        self.element_id = element_id
        self.labels = frozenset(labels)
        self._props = dict(props)

    def items(self):
        return self._props.items()

    def __repr__(self) -> str:
        return f"<FakeNode {self.element_id} {sorted(self.labels)} {self._props}>"


class FakeRelationship:
    def __init__(
        self,
        element_id: str,
        type: str,
        props: Mapping[str, Any],
        start_node: FakeNode,
        end_node: FakeNode,
    ):
        self.element_id = element_id
        self.type = type
        self._props = dict(props)
        self.start_node = start_node
        self.end_node = end_node

    def items(self):
        return self._props.items()

    def __repr__(self) -> str:
        return f"<FakeRelationship {self.element_id} {self.type} {self._props}>"


class FakePath:
    def __init__(self, nodes: Sequence[FakeNode], relationships: Sequence[FakeRelationship]):
        self.nodes = tuple(nodes)
        self.relationships = tuple(relationships)


def node(ref: str, node_id: str, labels: Sequence[str] = ("Person",), **props: Any) -> FakeNode:
    return FakeNode(ref, labels, {"_id_": node_id, **props})


def rel(ref: str, link_id: str, type: str, a: FakeNode, b: FakeNode, **props: Any) -> FakeRelationship:
    return FakeRelationship(ref, type, {"_id_": link_id, **props}, a, b)


# ---------------------------------------------------------------------------
# Driver
# ---------------------------------------------------------------------------

class FakeResult:
    def __init__(self, records: Sequence[Mapping[str, Any]]):
        self._records = list(records)

    def __aiter__(self):
        return self

    async def __anext__(self):
        if not self._records:
            raise StopAsyncIteration
        return self._records.pop(0)


@dataclass
class FakeTx:
    session: "FakeSession"

    async def run(self, text: str, params: Optional[Mapping[str, Any]] = None) -> FakeResult:
        params = dict(params or {})
        self.session.driver.statements.append((self.session.mode, text, params))
        return FakeResult(self.session.driver.responder(text, params))


@dataclass
class FakeSession:
    driver: "FakeDriver"
    kwargs: Dict[str, Any]
    mode: Optional[str] = None
    closed: bool = False

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def close(self) -> None:
        self.closed = True

    async def execute_read(self, work, *args, **kwargs):
        self.mode = "READ"
        return await work(FakeTx(self), *args, **kwargs)

    async def execute_write(self, work, *args, **kwargs):
        self.mode = "WRITE"
        return await work(FakeTx(self), *args, **kwargs)


def _empty(text: str, params: Mapping[str, Any]) -> List[Mapping[str, Any]]:
    return []


@dataclass
class FakeDriver:
    responder: Responder = _empty
    sessions: List[FakeSession] = field(default_factory=list)
    statements: List[Tuple[str, str, Dict[str, Any]]] = field(default_factory=list)
    closed: bool = False
    connectivity_error: Optional[Exception] = None

    def session(self, **kwargs: Any) -> FakeSession:
        s = FakeSession(self, kwargs)
        self.sessions.append(s)
        return s

    async def verify_connectivity(self) -> None:
        if self.connectivity_error is not None:
            raise self.connectivity_error

    async def close(self) -> None:
        self.closed = True

    @property
    def texts(self) -> List[str]:
        return [text for _, text, _ in self.statements]

    @property
    def modes(self) -> List[str]:
        return [mode for mode, _, _ in self.statements]
