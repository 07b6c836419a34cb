"""imgsync - Async mirroring of container images between registries."""

__version__ = "0.1.0"

from .batch import partition
from .core.orchestrator import SyncOrchestrator
from .core.types import SyncOption
from .exceptions import (
    ConfigError,
    CopyError,
    DiscoveryError,
    FetchError,
    PersistError,
    SyncError,
)
from .manifests import ImageManifest, ManifestCache, ManifestList
from .models import Image, SyncOutcome, SyncStatus

__all__ = [
    "Image",
    "ImageManifest",
    "ManifestCache",
    "ManifestList",
    "SyncOption",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncStatus",
    "partition",
    "SyncError",
    "ConfigError",
    "DiscoveryError",
    "FetchError",
    "CopyError",
    "PersistError",
]
