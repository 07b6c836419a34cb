"""In-memory fakes for the orchestrator's collaborators."""

import asyncio

from imgsync.core.types import Credentials, SyncOption
from imgsync.exceptions import CopyError, DiscoveryError, FetchError, PersistError
from imgsync.manifests import Descriptor, Fingerprint, ImageManifest, ManifestList
from imgsync.manifests import Platform
from imgsync.models import Image


def make_image(name: str, tag: str = "1", user: str = "ns") -> Image:
    """Create a gcr.io image under a test namespace."""
    return Image(repo="gcr.io", user=user, name=name, tag=tag)


def make_manifest(seed: str = "a") -> ImageManifest:
    """Create a single-platform manifest whose digests derive from seed."""
    return ImageManifest(
        schema_version=2,
        media_type="application/vnd.docker.distribution.manifest.v2+json",
        config=Descriptor(
            media_type="application/vnd.docker.container.image.v1+json",
            digest=f"sha256:config-{seed}",
            size=100,
        ),
        layers=(
            Descriptor(
                media_type="application/vnd.docker.image.rootfs.diff.tar.gzip",
                digest=f"sha256:layer-{seed}",
                size=1000,
            ),
        ),
    )


def make_manifest_list(seed: str = "a") -> ManifestList:
    """Create a two-platform manifest list whose digests derive from seed."""
    return ManifestList(
        schema_version=2,
        media_type="application/vnd.docker.distribution.manifest.list.v2+json",
        manifests=(
            Descriptor(
                media_type="application/vnd.docker.distribution.manifest.v2+json",
                digest=f"sha256:amd64-{seed}",
                size=500,
                platform=Platform(architecture="amd64", os="linux"),
            ),
            Descriptor(
                media_type="application/vnd.docker.distribution.manifest.v2+json",
                digest=f"sha256:arm64-{seed}",
                size=500,
                platform=Platform(architecture="arm64", os="linux", variant="v8"),
            ),
        ),
    )


def make_option(**overrides) -> SyncOption:
    """Sync options with credentials set and no retry delays."""
    values = dict(
        user="mirror",
        password="secret",
        limit=4,
        fetch_retry_delay=0,
        sync_retry_delay=0,
        http_retry_delay=0,
        sync_timeout=0,
    )
    values.update(overrides)
    return SyncOption(**values)


class FakeCatalog:
    """Catalog serving names and tags from dictionaries."""

    def __init__(self, tags: dict[str, list[str]], registry: str = "gcr.io"):
        self.registry = registry
        self.tags = tags
        self.name_failures = 0
        self.tag_failures: dict[str, int] = {}
        self.calls: list[str] = []

    async def list_names(self, namespace: str) -> list[str]:
        self.calls.append(f"names:{namespace}")
        if self.name_failures:
            self.name_failures -= 1
            raise DiscoveryError("catalog unavailable")
        return list(self.tags)

    async def list_tags(self, repository: str) -> list[str]:
        self.calls.append(f"tags:{repository}")
        name = repository.split("/")[-1]
        if self.tag_failures.get(name, 0):
            self.tag_failures[name] -= 1
            raise DiscoveryError(f"tags of {name} unavailable")
        return list(self.tags[name])


class FakeManifestFetcher:
    """Returns configured fingerprints; can fail a number of times per image."""

    def __init__(self, manifests: dict[str, Fingerprint] | None = None):
        self.manifests = manifests or {}
        self.failures: dict[str, int] = {}
        self.calls: list[str] = []

    async def fetch(self, image: Image) -> Fingerprint:
        key = str(image)
        self.calls.append(key)
        if self.failures.get(key, 0):
            self.failures[key] -= 1
            raise FetchError(f"manifest of {key} unavailable")
        if key not in self.manifests:
            self.manifests[key] = make_manifest(key)
        return self.manifests[key]


class FakeCopier:
    """Records copies and tracks how many run at the same time."""

    def __init__(self, delay: float = 0):
        self.delay = delay
        self.failures: dict[str, int] = {}
        self.copies: list[tuple[str, str]] = []
        self.attempts: dict[str, int] = {}
        self.running = 0
        self.peak = 0

    async def copy(
        self, source: Image, destination: Image, credentials: Credentials, timeout: float
    ) -> None:
        key = str(source)
        self.attempts[key] = self.attempts.get(key, 0) + 1
        self.running += 1
        self.peak = max(self.peak, self.running)
        try:
            await asyncio.sleep(self.delay)
            if self.failures.get(key, 0):
                self.failures[key] -= 1
                raise CopyError(f"copy of {key} failed")
            self.copies.append((key, str(destination)))
        finally:
            self.running -= 1


class MemoryManifestStore:
    """Manifest store backed by a dict."""

    def __init__(self):
        self.saved: dict[str, Fingerprint] = {}
        self.saves: list[str] = []
        self.fail_saves = False

    async def load(self, image: Image) -> Fingerprint | None:
        return self.saved.get(str(image))

    async def save(self, image: Image, fingerprint: Fingerprint) -> None:
        if self.fail_saves:
            raise PersistError(f"disk full while saving {image}")
        self.saves.append(str(image))
        self.saved[str(image)] = fingerprint
