from .interfaces import AssetCopy, AssetStore, ContentFetcher, ContentStore
from .models import DocumentResult, ResolutionReport, SyncError, SyncReport
from .pipeline import SyncBatch
from .resolver import LinkResolver
from .store import FileContentStore, JsonDirectoryFetcher, LocalAssetStore

__all__ = [
    "AssetCopy",
    "AssetStore",
    "ContentFetcher",
    "ContentStore",
    "DocumentResult",
    "FileContentStore",
    "JsonDirectoryFetcher",
    "LinkResolver",
    "LocalAssetStore",
    "ResolutionReport",
    "SyncBatch",
    "SyncError",
    "SyncReport",
]
