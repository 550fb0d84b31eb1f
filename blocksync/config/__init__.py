from .loader import load_config
from .models import (
    BlocksyncConfig,
    ConversionConfig,
    HierarchyConfig,
    MediaConfig,
    MediaRule,
    OutputConfig,
    RegistryConfig,
    SyncConfig,
)

__all__ = [
    "BlocksyncConfig",
    "ConversionConfig",
    "HierarchyConfig",
    "MediaConfig",
    "MediaRule",
    "OutputConfig",
    "RegistryConfig",
    "SyncConfig",
    "load_config",
]
