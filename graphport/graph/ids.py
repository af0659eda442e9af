# graphport/graph/ids.py
# SPDX-License-Identifier: Apache-2.0
"""
Identifier generation.

Node ids look like ``node#<uuid4>`` and link ids like ``link#<uuid4>``.
Uniqueness against the store is checked by the caller at generation time
(see ``BaseGraphStore.generate_node_id``); these helpers only draw candidates.
"""

from __future__ import annotations

import uuid

NODE_ID_PREFIX = "node#"
LINK_ID_PREFIX = "link#"


def new_node_id() -> str:
    return f"{NODE_ID_PREFIX}{uuid.uuid4()}"


def new_link_id() -> str:
    return f"{LINK_ID_PREFIX}{uuid.uuid4()}"


__all__ = ["NODE_ID_PREFIX", "LINK_ID_PREFIX", "new_node_id", "new_link_id"]
