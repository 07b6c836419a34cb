"""Docker Registry API v2 catalog and manifest client."""

import logging
from typing import Any, Optional, Protocol, Sequence

import aiohttp

from ..exceptions import DiscoveryError, FetchError
from ..manifests import ACCEPT_MEDIA_TYPES, Fingerprint, parse_fingerprint
from ..models import Image

logger = logging.getLogger(__name__)


class Catalog(Protocol):
    """Lists image names and tags of a source registry."""

    registry: str

    async def list_names(self, namespace: str) -> list[str]: ...

    async def list_tags(self, repository: str) -> list[str]: ...


class ManifestFetcher(Protocol):
    """Fetches the current manifest of an image."""

    async def fetch(self, image: Image) -> Fingerprint: ...


class RegistryClient:
    """Shared aiohttp session handling for anonymous registry reads."""

    def __init__(
        self,
        timeout: float = 5.0,
        session: Optional[aiohttp.ClientSession] = None,
        endpoints: Optional[dict[str, str]] = None,
    ) -> None:
        """Initialize the client.

        Args:
            timeout: Per-request timeout in seconds
            session: Existing session to use; it is not closed by this client
            endpoints: Base URL overrides per registry host
                (e.g. ``{"gcr.io": "http://localhost:5000"}``)
        """
        self.timeout = timeout
        self.session = session
        self.endpoints = endpoints or {}
        self._owns_session = session is None

    async def __aenter__(self):
        """Enter async context manager."""
        if not self.session:
            self.session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout),
            )
            self._owns_session = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context manager."""
        await self.close()

    async def close(self) -> None:
        """Close the session if this client created it."""
        if self._owns_session and self.session and not self.session.closed:
            await self.session.close()

    def base_url(self, registry: str) -> str:
        return self.endpoints.get(registry, f"https://{registry}").rstrip("/")

    async def get_json(
        self, url: str, headers: Optional[dict[str, str]] = None
    ) -> tuple[Any, str]:
        """GET a JSON document.

        Returns:
            Decoded body and the response Content-Type

        Raises:
            aiohttp.ClientError: On connection errors and non-2xx responses
        """
        if self.session is None:
            raise RuntimeError("client session is not open")
        async with self.session.get(url, headers=headers) as resp:
            resp.raise_for_status()
            return await resp.json(content_type=None), resp.headers.get(
                "Content-Type", ""
            )


class RegistryCatalog(RegistryClient):
    """Catalog backed by the registry ``tags/list`` endpoint.

    Namespaces are listed through the ``child`` field that gcr.io adds to
    ``/v2/<namespace>/tags/list``. A catalog created with fixed ``names``
    skips that call.
    """

    def __init__(
        self,
        registry: str,
        names: Optional[Sequence[str]] = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self.registry = registry
        self.names = list(names) if names is not None else None

    async def list_names(self, namespace: str) -> list[str]:
        """List image names under a namespace.

        Raises:
            DiscoveryError: If the listing fails or is malformed
        """
        if self.names is not None:
            return list(self.names)

        url = f"{self.base_url(self.registry)}/v2/{namespace}/tags/list"
        try:
            data, _ = await self.get_json(url)
        except (aiohttp.ClientError, ValueError) as e:
            raise DiscoveryError(f"Failed to list images of {namespace}: {e}") from e

        names = data.get("child") if isinstance(data, dict) else None
        if not isinstance(names, list):
            raise DiscoveryError(f"Invalid image listing for {namespace}")
        return names

    async def list_tags(self, repository: str) -> list[str]:
        """List tags of a repository.

        Raises:
            DiscoveryError: If the listing fails or is malformed
        """
        url = f"{self.base_url(self.registry)}/v2/{repository}/tags/list"
        try:
            data, _ = await self.get_json(url)
        except (aiohttp.ClientError, ValueError) as e:
            raise DiscoveryError(f"Failed to list tags of {repository}: {e}") from e

        tags = data.get("tags") if isinstance(data, dict) else None
        if tags is None:
            return []
        if not isinstance(tags, list):
            raise DiscoveryError(f"Invalid tag listing for {repository}")
        return tags


class RegistryManifestFetcher(RegistryClient):
    """Fetches manifests or manifest lists from the image's own registry."""

    async def fetch(self, image: Image) -> Fingerprint:
        """Retrieve the current fingerprint of an image.

        Raises:
            FetchError: If the manifest cannot be retrieved or parsed
        """
        url = f"{self.base_url(image.repo)}/v2/{image.repository}/manifests/{image.tag}"
        headers = {"Accept": ", ".join(ACCEPT_MEDIA_TYPES)}
        try:
            data, content_type = await self.get_json(url, headers=headers)
            return parse_fingerprint(data, content_type)
        except aiohttp.ClientError as e:
            raise FetchError(f"Failed to get manifest of {image}: {e}") from e
        except ValueError as e:
            raise FetchError(f"Invalid manifest of {image}: {e}") from e
