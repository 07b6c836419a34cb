"""Manifest fingerprints and change detection.

A fingerprint is either a single-platform ``ImageManifest`` or a
multi-platform ``ManifestList``. Both are frozen dataclasses, so two
fingerprints are equal only when they are the same variant with the same
descriptors.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Union

from .exceptions import PersistError
from .models import Image

if TYPE_CHECKING:
    from .store import ManifestStore

logger = logging.getLogger(__name__)

MEDIA_TYPE_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"
MEDIA_TYPE_MANIFEST_V1 = "application/vnd.docker.distribution.manifest.v1+json"
MEDIA_TYPE_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
MEDIA_TYPE_OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
MEDIA_TYPE_OCI_INDEX = "application/vnd.oci.image.index.v1+json"

LIST_MEDIA_TYPES = (MEDIA_TYPE_MANIFEST_LIST, MEDIA_TYPE_OCI_INDEX)
ACCEPT_MEDIA_TYPES = (
    MEDIA_TYPE_MANIFEST_LIST,
    MEDIA_TYPE_OCI_INDEX,
    MEDIA_TYPE_MANIFEST_V2,
    MEDIA_TYPE_OCI_MANIFEST,
    MEDIA_TYPE_MANIFEST_V1,
)


@dataclass(frozen=True)
class Platform:
    """Target platform of a manifest list entry."""

    architecture: str
    os: str
    variant: str = ""
    os_version: str = ""
    os_features: tuple[str, ...] = ()
    features: tuple[str, ...] = ()


@dataclass(frozen=True)
class Descriptor:
    """Content descriptor (config, layer or referenced manifest)."""

    media_type: str
    digest: str
    size: int
    platform: Platform | None = None
    urls: tuple[str, ...] = ()
    annotations: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ImageManifest:
    """Single-platform image manifest."""

    schema_version: int
    media_type: str
    config: Descriptor | None
    layers: tuple[Descriptor, ...]
    annotations: tuple[tuple[str, str], ...] = ()


@dataclass(frozen=True)
class ManifestList:
    """Multi-platform manifest list or OCI index."""

    schema_version: int
    media_type: str
    manifests: tuple[Descriptor, ...]
    annotations: tuple[tuple[str, str], ...] = ()


Fingerprint = Union[ImageManifest, ManifestList]


def _annotations(data: dict[str, Any]) -> tuple[tuple[str, str], ...]:
    # sorted pairs keep equality independent of key order
    return tuple(sorted((data.get("annotations") or {}).items()))


def _parse_platform(data: dict[str, Any]) -> Platform:
    return Platform(
        architecture=data.get("architecture", ""),
        os=data.get("os", ""),
        variant=data.get("variant", ""),
        os_version=data.get("os.version", ""),
        os_features=tuple(data.get("os.features") or ()),
        features=tuple(data.get("features") or ()),
    )


def _parse_descriptor(data: dict[str, Any]) -> Descriptor:
    platform = data.get("platform")
    return Descriptor(
        media_type=data.get("mediaType", ""),
        digest=data["digest"],
        size=int(data.get("size", 0)),
        platform=_parse_platform(platform) if isinstance(platform, dict) else None,
        urls=tuple(data.get("urls") or ()),
        annotations=_annotations(data),
    )


def _platform_to_dict(platform: Platform) -> dict[str, Any]:
    data: dict[str, Any] = {"architecture": platform.architecture, "os": platform.os}
    if platform.os_version:
        data["os.version"] = platform.os_version
    if platform.os_features:
        data["os.features"] = list(platform.os_features)
    if platform.variant:
        data["variant"] = platform.variant
    if platform.features:
        data["features"] = list(platform.features)
    return data


def _descriptor_to_dict(descriptor: Descriptor) -> dict[str, Any]:
    data: dict[str, Any] = {
        "mediaType": descriptor.media_type,
        "size": descriptor.size,
        "digest": descriptor.digest,
    }
    if descriptor.urls:
        data["urls"] = list(descriptor.urls)
    if descriptor.annotations:
        data["annotations"] = dict(descriptor.annotations)
    if descriptor.platform is not None:
        data["platform"] = _platform_to_dict(descriptor.platform)
    return data


def parse_fingerprint(data: dict[str, Any], media_type: str = "") -> Fingerprint:
    """Build a fingerprint from a registry manifest document.

    Args:
        data: Decoded manifest JSON
        media_type: Content-Type reported by the registry, used when the
            document itself carries no ``mediaType``

    Returns:
        ``ManifestList`` for lists/indexes, ``ImageManifest`` otherwise

    Raises:
        ValueError: If the document is not a recognised manifest
    """
    if not isinstance(data, dict):
        raise ValueError("manifest must be a JSON object")

    schema_version = data.get("schemaVersion")
    if not isinstance(schema_version, int):
        raise ValueError("manifest has no schemaVersion")

    kind = data.get("mediaType") or media_type.split(";")[0].strip()

    try:
        if kind in LIST_MEDIA_TYPES or "manifests" in data:
            return ManifestList(
                schema_version=schema_version,
                media_type=kind or MEDIA_TYPE_MANIFEST_LIST,
                manifests=tuple(_parse_descriptor(m) for m in data["manifests"]),
                annotations=_annotations(data),
            )

        if schema_version == 1:
            # Schema 1 has no config blob, layers are listed as blobSums
            return ImageManifest(
                schema_version=1,
                media_type=kind or MEDIA_TYPE_MANIFEST_V1,
                config=None,
                layers=tuple(
                    Descriptor(media_type="", digest=layer["blobSum"], size=0)
                    for layer in data.get("fsLayers", [])
                ),
            )

        return ImageManifest(
            schema_version=schema_version,
            media_type=kind or MEDIA_TYPE_MANIFEST_V2,
            config=_parse_descriptor(data["config"]),
            layers=tuple(_parse_descriptor(layer) for layer in data.get("layers", [])),
            annotations=_annotations(data),
        )
    except (KeyError, TypeError, AttributeError) as e:
        raise ValueError(f"invalid manifest structure: {e}") from e


def fingerprint_to_dict(fingerprint: Fingerprint) -> dict[str, Any]:
    """Serialise a fingerprint back into registry manifest shape."""
    if isinstance(fingerprint, ManifestList):
        data: dict[str, Any] = {
            "schemaVersion": fingerprint.schema_version,
            "mediaType": fingerprint.media_type,
            "manifests": [_descriptor_to_dict(m) for m in fingerprint.manifests],
        }
        if fingerprint.annotations:
            data["annotations"] = dict(fingerprint.annotations)
        return data

    if fingerprint.schema_version == 1:
        return {
            "schemaVersion": 1,
            "mediaType": fingerprint.media_type,
            "fsLayers": [{"blobSum": layer.digest} for layer in fingerprint.layers],
        }

    data = {
        "schemaVersion": fingerprint.schema_version,
        "mediaType": fingerprint.media_type,
    }
    if fingerprint.config is not None:
        data["config"] = _descriptor_to_dict(fingerprint.config)
    data["layers"] = [_descriptor_to_dict(layer) for layer in fingerprint.layers]
    if fingerprint.annotations:
        data["annotations"] = dict(fingerprint.annotations)
    return data


def fingerprints_equal(previous: Fingerprint | None, fresh: Fingerprint) -> bool:
    """Compare two fingerprints; variants never compare equal to each other."""
    if previous is None:
        return False
    return type(previous) is type(fresh) and previous == fresh


class ManifestCache:
    """Last observed fingerprint per image, keyed by image string form."""

    def __init__(self) -> None:
        self._entries: dict[str, Fingerprint] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, image: Image) -> bool:
        return str(image) in self._entries

    def get(self, image: Image) -> Fingerprint | None:
        return self._entries.get(str(image))

    def put(self, image: Image, fingerprint: Fingerprint) -> None:
        """Replace the entry for an image."""
        self._entries[str(image)] = fingerprint

    def should_sync(self, image: Image, fresh: Fingerprint) -> bool:
        """Return False only if a stored fingerprint equals the fresh one."""
        return not fingerprints_equal(self.get(image), fresh)

    async def warm(self, store: "ManifestStore", images: Iterable[Image]) -> int:
        """Load stored fingerprints for the given images.

        Entries that cannot be loaded are logged and left absent, so those
        images are synced again.

        Returns:
            Number of entries loaded
        """
        loaded = 0
        for image in images:
            try:
                fingerprint = await store.load(image)
            except PersistError as e:
                logger.warning(f"Ignoring stored manifest for {image}: {e}")
                continue
            if fingerprint is not None:
                self.put(image, fingerprint)
                loaded += 1
        logger.debug(f"Loaded {loaded} stored manifests")
        return loaded
