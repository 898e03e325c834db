"""
Source Image Loading
====================

Builds SourceImage values from local files and remote URLs.
"""

import logging
import mimetypes
from pathlib import Path
from typing import Optional

import httpx

from stopmotion_agent.models.media import SourceImage


logger = logging.getLogger(__name__)

DEFAULT_MEDIA_TYPE = "image/jpeg"


def guess_media_type(filename: Optional[str], declared: Optional[str] = None) -> str:
    """
    Pick a media type for an image.

    Uses the declared type when it names an image, else guesses from the
    filename extension, else falls back to image/jpeg.
    """
    if declared and declared.startswith("image/"):
        return declared
    if filename:
        guessed, _ = mimetypes.guess_type(filename)
        if guessed and guessed.startswith("image/"):
            return guessed
    return DEFAULT_MEDIA_TYPE


def load_source_image(path: str) -> SourceImage:
    """Read a local image file."""
    file_path = Path(path)
    data = file_path.read_bytes()
    return SourceImage(
        data=data,
        media_type=guess_media_type(file_path.name),
        filename=file_path.name,
    )


async def fetch_source_image(
    url: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 30.0,
) -> SourceImage:
    """
    Download an image to use as a generation source.

    Args:
        url: Image URL
        client: Shared client (a temporary one is created if None)
        timeout: Request timeout in seconds

    Returns:
        SourceImage with the media type from the Content-Type header

    Raises:
        httpx.HTTPStatusError: If the server answers with an error status
    """
    if client is None:
        async with httpx.AsyncClient(timeout=timeout, follow_redirects=True) as owned:
            return await fetch_source_image(url, client=owned, timeout=timeout)

    response = await client.get(url)
    response.raise_for_status()

    declared = response.headers.get("content-type", "").split(";")[0].strip()
    filename = url.rsplit("/", 1)[-1].split("?")[0] or None
    logger.info(f"Fetched source image: url={url}, bytes={len(response.content)}")

    return SourceImage(
        data=response.content,
        media_type=guess_media_type(filename, declared),
        filename=filename,
    )
