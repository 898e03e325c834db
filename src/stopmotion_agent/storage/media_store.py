"""
Media Store
===========

Optional collaborator that stores an uploaded source image and returns a
URL for it. Generation never depends on it: the default store does nothing.

Implementations:
    - NullMediaStore: no-op, returns None
    - FileMediaStore: writes uploads/<id>.<ext> under a root directory
"""

import asyncio
import logging
import secrets
from pathlib import Path
from typing import Optional, Protocol

from stopmotion_agent.models.media import SourceImage


logger = logging.getLogger(__name__)


class MediaStore(Protocol):
    """Protocol for source-image storage backends."""

    async def store(self, image: SourceImage) -> Optional[str]:
        """
        Store an image.

        Returns:
            URL of the stored image, or None if nothing was stored
        """
        ...


class NullMediaStore:
    """Store that keeps nothing."""

    async def store(self, image: SourceImage) -> Optional[str]:
        return None


class FileMediaStore:
    """
    Stores uploads on the local filesystem.

    Files are named with a random id and the media subtype as extension,
    e.g. ``uploads/Jx3k9QpZ2mTa.png``.

    Attributes:
        directory: Root directory; files go to <directory>/uploads
    """

    def __init__(self, directory: str) -> None:
        self.directory = Path(directory)

    async def store(self, image: SourceImage) -> Optional[str]:
        extension = image.media_type.split("/")[-1].split("+")[0] or "bin"
        target = self.directory / "uploads" / f"{secrets.token_urlsafe(9)}.{extension}"
        await asyncio.to_thread(_write_file, target, image.data)
        logger.info(f"Stored source image: {target} ({image.size} bytes)")
        return target.resolve().as_uri()


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def create_media_store(backend: str, directory: str = "."):
    """Create the configured media store."""
    if backend == "none":
        return NullMediaStore()
    if backend == "file":
        logger.info(f"Using FileMediaStore at {directory}")
        return FileMediaStore(directory)
    raise ValueError(f"Unknown storage backend: {backend}")
