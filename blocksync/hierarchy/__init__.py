from .builder import HierarchyBuilder
from .models import HierarchyNode, HierarchyTree, ManualItem

__all__ = ["HierarchyBuilder", "HierarchyNode", "HierarchyTree", "ManualItem"]
