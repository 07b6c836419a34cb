"""Cross-registry image transfer."""

import asyncio
import logging
from typing import Protocol

from .core.types import Credentials
from .exceptions import CopyError
from .models import Image

logger = logging.getLogger(__name__)


class Copier(Protocol):
    """Copies one image, including every platform of a manifest list."""

    async def copy(
        self, source: Image, destination: Image, credentials: Credentials, timeout: float
    ) -> None: ...


class SkopeoCopier:
    """Copier running ``skopeo copy --all`` in a subprocess.

    Sources are read anonymously; the destination is written with the given
    credentials.
    """

    def __init__(self, executable: str = "skopeo") -> None:
        self.executable = executable

    def command(self, source: Image, destination: Image, credentials: Credentials) -> list[str]:
        return [
            self.executable,
            "copy",
            "--all",
            "--insecure-policy",
            "--dest-creds",
            f"{credentials.username}:{credentials.password}",
            f"docker://{source}",
            f"docker://{destination}",
        ]

    async def copy(
        self, source: Image, destination: Image, credentials: Credentials, timeout: float
    ) -> None:
        """Transfer ``source`` to ``destination``.

        Raises:
            CopyError: If skopeo cannot be started, fails, or exceeds the timeout
        """
        try:
            process = await asyncio.create_subprocess_exec(
                *self.command(source, destination, credentials),
                stdout=asyncio.subprocess.DEVNULL,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as e:
            raise CopyError(f"Failed to start {self.executable}: {e}") from e

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise CopyError(f"Copy of {source} timed out after {timeout}s") from e

        if process.returncode != 0:
            message = stderr.decode("utf-8", errors="replace").strip()
            raise CopyError(
                f"Copy of {source} exited with {process.returncode}: {message}"
            )
