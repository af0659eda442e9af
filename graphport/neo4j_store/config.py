# graphport/neo4j_store/config.py
# SPDX-License-Identifier: Apache-2.0
"""
Connection settings for the Neo4j graph store.

Environment variables
---------------------
Required:
    NEO4J_URL                   bolt/neo4j URI, e.g. ``neo4j://localhost:7687``
    NEO4J_USERNAME
    NEO4J_PASSWORD
Optional:
    NEO4J_DATABASE              target database (server default when unset)
    NEO4J_USE_APOC              "1"/"true"/"yes" to strip labels via APOC
    NEO4J_MAX_POOL_SIZE         positive integer
    NEO4J_CONNECTION_TIMEOUT_S  positive number of seconds
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def _required(env: Mapping[str, str], name: str) -> str:
    value = env.get(name)
    if value is None or not value.strip():
        raise ValueError(f"environment variable {name} is required")
    return value.strip()


def _optional(env: Mapping[str, str], name: str) -> Optional[str]:
    value = env.get(name)
    if value is None or not value.strip():
        return None
    return value.strip()


def _flag(env: Mapping[str, str], name: str) -> bool:
    value = (env.get(name) or "").strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"environment variable {name} must be a boolean, got {value!r}")


def _positive_int(env: Mapping[str, str], name: str) -> Optional[int]:
    value = _optional(env, name)
    if value is None:
        return None
    try:
        out = int(value)
    except ValueError as e:
        raise ValueError(f"environment variable {name} must be an integer, got {value!r}") from e
    if out <= 0:
        raise ValueError(f"environment variable {name} must be positive, got {out}")
    return out


def _positive_float(env: Mapping[str, str], name: str) -> Optional[float]:
    value = _optional(env, name)
    if value is None:
        return None
    try:
        out = float(value)
    except ValueError as e:
        raise ValueError(f"environment variable {name} must be a number, got {value!r}") from e
    if out <= 0:
        raise ValueError(f"environment variable {name} must be positive, got {out}")
    return out


@dataclass(frozen=True)
class Neo4jConfig:
    """
    Neo4j connection settings.

    Attributes:
        url: Bolt / neo4j URI.
        username: Basic-auth user.
        password: Basic-auth password (never logged).
        database: Target database; None uses the server default.
        use_apoc_label_strip: Remove prior labels with ``apoc.create.removeLabels``
            on node replacement instead of an explicit ``REMOVE`` clause.
        max_connection_pool_size: Driver pool size override.
        connection_timeout_s: Driver connection timeout override.
    """
    url: str
    username: str
    password: str
    database: Optional[str] = None
    use_apoc_label_strip: bool = False
    max_connection_pool_size: Optional[int] = None
    connection_timeout_s: Optional[float] = None

    def __post_init__(self) -> None:
        for name in ("url", "username", "password"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"{name} must be a non-empty string")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Neo4jConfig":
        env = os.environ if env is None else env
        return cls(
            url=_required(env, "NEO4J_URL"),
            username=_required(env, "NEO4J_USERNAME"),
            password=_required(env, "NEO4J_PASSWORD"),
            database=_optional(env, "NEO4J_DATABASE"),
            use_apoc_label_strip=_flag(env, "NEO4J_USE_APOC"),
            max_connection_pool_size=_positive_int(env, "NEO4J_MAX_POOL_SIZE"),
            connection_timeout_s=_positive_float(env, "NEO4J_CONNECTION_TIMEOUT_S"),
        )

    def driver_kwargs(self) -> Dict[str, Any]:
        """Extra keyword arguments for ``AsyncGraphDatabase.driver``."""
        kwargs: Dict[str, Any] = {}
        if self.max_connection_pool_size is not None:
            kwargs["max_connection_pool_size"] = self.max_connection_pool_size
        if self.connection_timeout_s is not None:
            kwargs["connection_timeout"] = self.connection_timeout_s
        return kwargs

    def __repr__(self) -> str:
        return (
            f"Neo4jConfig(url={self.url!r}, username={self.username!r}, password='***', "
            f"database={self.database!r}, use_apoc_label_strip={self.use_apoc_label_strip})"
        )


__all__ = ["Neo4jConfig"]
