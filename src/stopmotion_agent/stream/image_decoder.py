"""
Image Decoder
=============

Dedicated module for decoding image bytes with OpenCV.

Used to reject uploads that are not images before any remote call is made,
and to read the dimensions of rendered frames on the client.

Design Rules:
    - This is the ONLY place in the codebase that decodes images
    - Decoding is for validation and metadata; pixels are never modified
    - Fails fast on corrupt data
"""

import base64
import binascii
import logging
from typing import Optional, Tuple

import cv2
import numpy as np

from stopmotion_agent.models.media import SourceImage


logger = logging.getLogger(__name__)


class ImageDecodeError(Exception):
    """Raised when image decoding fails."""
    pass


def decode_image(data: bytes) -> np.ndarray:
    """
    Decode encoded image bytes (PNG, JPEG, WebP, ...) to a pixel array.

    Args:
        data: Encoded image bytes

    Returns:
        Image as np.ndarray (H, W) or (H, W, C), dtype=uint8 or uint16

    Raises:
        ImageDecodeError: If decoding fails or the result is not an image
    """
    if not data:
        raise ImageDecodeError("Image data is empty")

    nparr = np.frombuffer(data, np.uint8)
    try:
        pixels = cv2.imdecode(nparr, cv2.IMREAD_UNCHANGED)
    except cv2.error as e:
        raise ImageDecodeError(f"OpenCV failed to decode image: {e}")

    if pixels is None:
        raise ImageDecodeError("cv2.imdecode returned None (unsupported or corrupt image)")

    if pixels.ndim not in (2, 3) or pixels.shape[0] == 0 or pixels.shape[1] == 0:
        raise ImageDecodeError(f"Invalid image shape: {pixels.shape}")

    return pixels


def decode_base64(image_b64: str) -> bytes:
    """
    Decode the base64 text of an image payload to its encoded bytes.

    Raises:
        ImageDecodeError: If the text is not valid base64
    """
    try:
        return base64.b64decode(image_b64, validate=True)
    except (binascii.Error, ValueError) as e:
        raise ImageDecodeError(f"Base64 decode failed: {e}")


def validate_source_image(image: SourceImage) -> Tuple[int, int]:
    """
    Check that an uploaded image decodes.

    Returns:
        Tuple of (height, width)

    Raises:
        ImageDecodeError: If the upload is not a decodable image
    """
    pixels = decode_image(image.data)
    height, width = pixels.shape[:2]
    logger.debug(f"Validated {image!r}: {width}x{height}")
    return height, width


def read_dimensions(data: bytes) -> Optional[Tuple[int, int]]:
    """
    Get image dimensions, or None if the bytes do not decode.

    Returns:
        Tuple of (height, width) or None
    """
    try:
        pixels = decode_image(data)
    except ImageDecodeError as e:
        logger.debug(f"Could not read image dimensions: {e}")
        return None
    return pixels.shape[:2]
