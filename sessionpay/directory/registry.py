"""
Node directory.

The session protocol only reads from the directory through the
NodeDirectory protocol. NodeRegistry is the in-memory catalog used by the
runtime context, the CLI and the tests: nodes get ids from 1, belong to
the address that registered them, and only that owner may relabel or
(de)activate them.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Protocol

from sessionpay.core.crypto import same_address
from sessionpay.core.exceptions import NodeNotFound, NotNodeOwner, ValidationError
from sessionpay.core.models import NodeDetails


logger = logging.getLogger(__name__)


class NodeDirectory(Protocol):
    """Read capabilities the session protocol needs."""

    def node_exists(self, node_id: int) -> bool:
        ...

    def is_node_active(self, node_id: int) -> bool:
        ...

    def get_node_details(self, node_id: int) -> NodeDetails:
        ...


@dataclass
class _NodeEntry:
    node_id:   int
    owner:     str
    label:     str
    is_active: bool


class NodeRegistry:
    """In-memory NodeDirectory with owner-gated mutation."""

    def __init__(self):
        self._nodes: Dict[int, _NodeEntry] = {}
        self._next_id = 1

    # ── NodeDirectory ─────────────────────────────────────────

    def node_exists(self, node_id: int) -> bool:
        return node_id in self._nodes

    def is_node_active(self, node_id: int) -> bool:
        entry = self._nodes.get(node_id)
        return entry is not None and entry.is_active

    def get_node_details(self, node_id: int) -> NodeDetails:
        entry = self._require(node_id)
        return NodeDetails(label=entry.label, owner=entry.owner, is_active=entry.is_active)

    # ── Registry operations ───────────────────────────────────

    def register_node(self, owner: str, label: str = "", active: bool = True) -> int:
        if not owner:
            raise ValidationError("Node owner is required")
        node_id = self._next_id
        self._nodes[node_id] = _NodeEntry(node_id, owner, label, active)
        self._next_id += 1
        logger.info("registered node_id=%d owner=%s", node_id, owner)
        return node_id

    def set_node_label(self, caller: str, node_id: int, label: str) -> None:
        self._require_owner(caller, node_id).label = label

    def set_node_active(self, caller: str, node_id: int, active: bool) -> None:
        self._require_owner(caller, node_id).is_active = active
        logger.info("node_id=%d active=%s", node_id, active)

    def nodes_of(self, owner: str) -> List[int]:
        return [n.node_id for n in self._nodes.values() if same_address(n.owner, owner)]

    def __len__(self) -> int:
        return len(self._nodes)

    # ── Internal ──────────────────────────────────────────────

    def _require(self, node_id: int) -> _NodeEntry:
        entry = self._nodes.get(node_id)
        if entry is None:
            raise NodeNotFound("Node not found", {"node_id": node_id})
        return entry

    def _require_owner(self, caller: str, node_id: int) -> _NodeEntry:
        entry = self._require(node_id)
        if not same_address(entry.owner, caller):
            raise NotNodeOwner(
                "Only the node owner can modify a node",
                {"node_id": node_id, "caller": caller},
            )
        return entry

    def to_dict(self) -> dict:
        return {
            "next_id": self._next_id,
            "nodes": [
                {
                    "node_id":   n.node_id,
                    "owner":     n.owner,
                    "label":     n.label,
                    "is_active": n.is_active,
                }
                for n in self._nodes.values()
            ],
        }

    @classmethod
    def from_dict(cls, data: dict) -> "NodeRegistry":
        registry = cls()
        registry._next_id = int(data.get("next_id", 1))
        for item in data.get("nodes", []):
            entry = _NodeEntry(
                node_id=   int(item["node_id"]),
                owner=     item["owner"],
                label=     item.get("label", ""),
                is_active= bool(item.get("is_active", True)),
            )
            registry._nodes[entry.node_id] = entry
        return registry
