"""Manifest persistence."""

import json
import os
from pathlib import Path
from typing import Protocol

import aiofiles

from .exceptions import PersistError
from .manifests import Fingerprint, fingerprint_to_dict, parse_fingerprint
from .models import Image


class ManifestStore(Protocol):
    """External persistence for fingerprints, keyed by image."""

    async def load(self, image: Image) -> Fingerprint | None: ...

    async def save(self, image: Image, fingerprint: Fingerprint) -> None: ...


class FileManifestStore:
    """Stores one JSON manifest file per image.

    Layout: ``<root>/<repo>/<user>/<name>/<tag>.json``
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def path_for(self, image: Image) -> Path:
        return self.root / image.repo / image.user / image.name / f"{image.tag}.json"

    async def load(self, image: Image) -> Fingerprint | None:
        """Read the stored fingerprint for an image.

        Returns:
            The fingerprint, or None if nothing is stored

        Raises:
            PersistError: If the file exists but cannot be read or parsed
        """
        path = self.path_for(image)
        if not path.exists():
            return None

        try:
            async with aiofiles.open(path, "r", encoding="utf-8") as f:
                content = await f.read()
            return parse_fingerprint(json.loads(content))
        except (OSError, ValueError) as e:
            raise PersistError(f"Failed to read manifest {path}: {e}") from e

    async def save(self, image: Image, fingerprint: Fingerprint) -> None:
        """Write a fingerprint, replacing any previous file.

        Raises:
            PersistError: If the file cannot be written
        """
        path = self.path_for(image)
        content = json.dumps(fingerprint_to_dict(fingerprint), indent=4)
        tmp_path = path.with_suffix(".json.tmp")

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(tmp_path, "w", encoding="utf-8") as f:
                await f.write(content)
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistError(f"Failed to write manifest {path}: {e}") from e
