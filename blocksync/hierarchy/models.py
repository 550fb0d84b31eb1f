"""Pydantic models for the navigation hierarchy."""

from __future__ import annotations

from collections.abc import Iterator

from pydantic import BaseModel, Field

from blocksync.blocks.models import Diagnostic


class ManualItem(BaseModel):
    """A navigation entry added by hand in the target system."""

    label: str
    url: str


class HierarchyNode(BaseModel):
    source_id: str
    parent_source_id: str | None = None
    children: list[str] = Field(default_factory=list)
    override: bool = False
    label: str = ""
    manual_children: list[ManualItem] = Field(default_factory=list)


class HierarchyTree(BaseModel):
    """An acyclic forest of documents. Every node has one parent or is a root."""

    nodes: dict[str, HierarchyNode] = Field(default_factory=dict)
    roots: list[str] = Field(default_factory=list)
    diagnostics: list[Diagnostic] = Field(default_factory=list)

    def get(self, source_id: str) -> HierarchyNode | None:
        return self.nodes.get(source_id)

    def walk(self, max_depth: int | None = None) -> Iterator[tuple[int, HierarchyNode]]:
        """Depth-first traversal yielding ``(depth, node)``; roots are depth 0."""
        stack = [(0, root) for root in reversed(self.roots)]
        while stack:
            depth, source_id = stack.pop()
            node = self.nodes[source_id]
            yield depth, node
            if max_depth is not None and depth + 1 >= max_depth:
                continue
            stack.extend((depth + 1, child) for child in reversed(node.children))

    def root_of(self, source_id: str) -> str | None:
        """Follow parent pointers up to the root. None for unknown ids."""
        node = self.nodes.get(source_id)
        steps = 0
        while node is not None and node.parent_source_id is not None and steps < len(self.nodes):
            node = self.nodes.get(node.parent_source_id)
            steps += 1
        return node.source_id if node else None

    def to_pairs(self) -> list[tuple[str, str | None]]:
        return [(depth_node.source_id, depth_node.parent_source_id) for _, depth_node in self.walk()]
