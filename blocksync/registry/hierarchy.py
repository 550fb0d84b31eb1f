"""Persisted snapshot of the last built navigation tree."""

from __future__ import annotations

import json
import logging

from blocksync.hierarchy.models import HierarchyNode, HierarchyTree, ManualItem
from blocksync.ids import normalize_source_id
from blocksync.registry.database import RegistryDatabase

logger = logging.getLogger(__name__)


class HierarchySnapshot:
    """Stores a HierarchyTree so overrides survive between rebuilds."""

    def __init__(self, db: RegistryDatabase) -> None:
        self._db = db

    def save(self, tree: HierarchyTree) -> None:
        """Replace the stored snapshot with *tree*."""
        with self._db.transaction() as cur:
            cur.execute("DELETE FROM hierarchy")
            for position, (_, node) in enumerate(tree.walk()):
                cur.execute(
                    "INSERT INTO hierarchy "
                    "(source_id, parent_source_id, position, override, label, manual_children_json) "
                    "VALUES (?, ?, ?, ?, ?, ?)",
                    (
                        node.source_id,
                        node.parent_source_id,
                        position,
                        int(node.override),
                        node.label,
                        json.dumps([item.model_dump() for item in node.manual_children]),
                    ),
                )
        logger.debug("saved hierarchy snapshot (%d nodes)", len(tree.nodes))

    def load(self) -> HierarchyTree | None:
        """Return the stored tree, or None if nothing was saved yet."""
        rows = self._db.fetchall(
            "SELECT source_id, parent_source_id, override, label, manual_children_json "
            "FROM hierarchy ORDER BY position"
        )
        if not rows:
            return None

        nodes: dict[str, HierarchyNode] = {}
        for source_id, parent_id, override, label, manual_json in rows:
            nodes[source_id] = HierarchyNode(
                source_id=source_id,
                parent_source_id=parent_id,
                override=bool(override),
                label=label,
                manual_children=[ManualItem(**item) for item in json.loads(manual_json)],
            )

        roots: list[str] = []
        for node in nodes.values():
            if node.parent_source_id is None or node.parent_source_id not in nodes:
                roots.append(node.source_id)
            else:
                nodes[node.parent_source_id].children.append(node.source_id)
        return HierarchyTree(nodes=nodes, roots=roots)

    def pairs(self) -> list[tuple[str, str | None]]:
        rows = self._db.fetchall(
            "SELECT source_id, parent_source_id FROM hierarchy ORDER BY position"
        )
        return [(r[0], r[1]) for r in rows]

    def set_override(
        self,
        source_id: str,
        label: str,
        manual_children: list[ManualItem] | None = None,
    ) -> bool:
        """Mark a stored node as customized. Returns False if the node is unknown."""
        cur = self._db.execute(
            "UPDATE hierarchy SET override = 1, label = ?, manual_children_json = ? "
            "WHERE source_id = ?",
            (
                label,
                json.dumps([i.model_dump() for i in manual_children or []]),
                normalize_source_id(source_id),
            ),
        )
        return cur.rowcount > 0
