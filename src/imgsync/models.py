"""Image identity and per-image sync outcomes."""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

DEFAULT_DOCKER_REPO = "docker.io"
KUBEADM_SOURCE_REPO = "gcr.io"
KUBEADM_REPO = "k8s.gcr.io"


@dataclass(frozen=True)
class Image:
    """A single image tag in a registry.

    The string form ``repo/user/name:tag`` is used as cache key and in logs.
    """

    repo: str
    user: str
    name: str
    tag: str

    def __str__(self) -> str:
        path = "/".join(part for part in (self.repo, self.user, self.name) if part)
        return f"{path}:{self.tag}"

    @property
    def repository(self) -> str:
        """Repository path within the registry (``user/name``)."""
        return "/".join(part for part in (self.user, self.name) if part)

    def merge_name(self, kubeadm: bool = False) -> str:
        """Flatten the source path into a single destination image name.

        Args:
            kubeadm: Name gcr.io images as k8s.gcr.io ones without namespace

        Returns:
            Name such as ``gcr.io_google-containers_pause``
        """
        if kubeadm and self.repo == KUBEADM_SOURCE_REPO:
            parts = [KUBEADM_REPO, self.name]
        else:
            parts = [self.repo, self.user, self.name]
        return "_".join(part for part in parts if part).replace("/", "_")


def destination_image(image: Image, user: str, kubeadm: bool = False) -> Image:
    """Build the mirror image identity for a source image."""
    return Image(
        repo=DEFAULT_DOCKER_REPO,
        user=user,
        name=image.merge_name(kubeadm),
        tag=image.tag,
    )


def sort_images(images: Iterable[Image]) -> list[Image]:
    """Deduplicate images and sort them by string form."""
    unique = {str(image): image for image in images}
    return [unique[key] for key in sorted(unique)]


class SyncStatus(str, Enum):
    """Final state of one image in one run."""

    SKIPPED_UNCHANGED = "skipped"
    SYNCED = "synced"
    FAILED_FETCH = "failed_fetch"
    FAILED_COPY = "failed_copy"
    FAILED_PERSIST = "failed_persist"

    @property
    def failed(self) -> bool:
        return self in (
            SyncStatus.FAILED_FETCH,
            SyncStatus.FAILED_COPY,
            SyncStatus.FAILED_PERSIST,
        )


@dataclass(frozen=True)
class SyncOutcome:
    """Result of processing one image."""

    image: Image
    status: SyncStatus
    error: str | None = None

    def __str__(self) -> str:
        if self.error:
            return f"{self.image} [{self.status.value}]: {self.error}"
        return f"{self.image} [{self.status.value}]"
