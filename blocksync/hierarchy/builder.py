"""HierarchyBuilder: builds the navigation tree from (document, parent) pairs."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from blocksync.blocks.models import Diagnostic, DiagnosticCode
from blocksync.hierarchy.models import HierarchyNode, HierarchyTree
from blocksync.ids import normalize_source_id

logger = logging.getLogger(__name__)


class HierarchyBuilder:
    """Builds a HierarchyTree from a full snapshot of relation pairs."""

    @staticmethod
    def build(
        pairs: Iterable[tuple[str, str | None]],
        titles: dict[str, str] | None = None,
        previous: HierarchyTree | None = None,
    ) -> HierarchyTree:
        """Construct the tree.

        A later pair for the same document replaces its earlier parent.
        Parents that are missing from the input make the node a root.
        Cycles are broken by cutting the edge that closes them: the node
        whose parent pointer leads back into the current walk is promoted
        to a root, with one diagnostic per cycle. Children keep the order
        in which they first appear in *pairs*.

        Nodes marked ``override`` in *previous* keep their label and manual
        children; only their placement is taken from *pairs*.
        """
        titles = {normalize_source_id(k): v for k, v in (titles or {}).items()}
        parent_of: dict[str, str | None] = {}
        for source_id, parent_id in pairs:
            sid = normalize_source_id(source_id)
            pid = normalize_source_id(parent_id) if parent_id else None
            if sid in parent_of and parent_of[sid] != pid:
                logger.debug("parent of %s changed %s -> %s", sid, parent_of[sid], pid)
            parent_of[sid] = pid

        for sid, pid in parent_of.items():
            if pid is not None and pid not in parent_of:
                logger.debug("parent %s of %s is not in the snapshot; treating as root", pid, sid)
                parent_of[sid] = None

        diagnostics = _break_cycles(parent_of)

        nodes: dict[str, HierarchyNode] = {}
        for sid, pid in parent_of.items():
            node = HierarchyNode(source_id=sid, parent_source_id=pid, label=titles.get(sid, ""))
            prior = previous.nodes.get(sid) if previous else None
            if prior is not None and prior.override:
                node.override = True
                node.label = prior.label
                node.manual_children = list(prior.manual_children)
            nodes[sid] = node

        roots: list[str] = []
        for sid, pid in parent_of.items():
            if pid is None:
                roots.append(sid)
            else:
                nodes[pid].children.append(sid)

        logger.info(
            "built hierarchy: %d nodes, %d roots, %d cycles broken",
            len(nodes),
            len(roots),
            len(diagnostics),
        )
        return HierarchyTree(nodes=nodes, roots=roots, diagnostics=diagnostics)


def _break_cycles(parent_of: dict[str, str | None]) -> list[Diagnostic]:
    """Cut one edge per cycle, in place. Walks start in input order."""
    diagnostics: list[Diagnostic] = []
    done: set[str] = set()

    for start in parent_of:
        if start in done:
            continue
        path: list[str] = []
        on_path: set[str] = set()
        node: str | None = start
        while node is not None and node not in done:
            if node in on_path:
                closer = path[-1]
                cycle = path[path.index(node):]
                parent_of[closer] = None
                logger.warning("cycle %s; promoted %s to root", " -> ".join(cycle + [node]), closer)
                diagnostics.append(
                    Diagnostic(
                        code=DiagnosticCode.cycle_detected,
                        message=f"Parent cycle through {len(cycle)} node(s); {closer} promoted to root",
                        source_id=closer,
                    )
                )
                break
            on_path.add(node)
            path.append(node)
            node = parent_of[node]
        done.update(path)

    return diagnostics
