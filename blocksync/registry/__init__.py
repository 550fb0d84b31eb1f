from .database import RegistryDatabase
from .hierarchy import HierarchySnapshot
from .links import LinkRegistry, slugify
from .media import MediaAction, MediaRegistry, classify, media_identifier, source_signature
from .models import LinkEntry, MediaEntry, MediaStats

__all__ = [
    "HierarchySnapshot",
    "LinkEntry",
    "LinkRegistry",
    "MediaAction",
    "MediaEntry",
    "MediaRegistry",
    "MediaStats",
    "RegistryDatabase",
    "classify",
    "media_identifier",
    "slugify",
    "source_signature",
]
