"""
Media Models
============

Immutable data carried through one generation request.

    - SourceImage: the uploaded image (bytes + declared media type)
    - PoseDescription: one planned pose, positioned in animation order
    - GeneratedFrame: tagged result of one render call
        - ImageFrame: rendered image bytes
        - TextFrame: free-form commentary, no frame produced

Design Rules:
    - All models are frozen; nothing mutates them after creation
    - Image bytes are never included in repr() output
"""

import base64
from dataclasses import dataclass
from typing import Optional, Union


@dataclass(frozen=True, slots=True)
class SourceImage:
    """
    The image uploaded for one generation request.

    Owned by the orchestrator for the lifetime of the request and passed
    unchanged to every remote call.

    Attributes:
        data: Raw image bytes
        media_type: Declared media type (e.g. "image/png")
        filename: Original upload filename, if known
    """

    data: bytes
    media_type: str
    filename: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate invariants."""
        if not self.data:
            raise ValueError("image data must not be empty")
        if not self.media_type:
            raise ValueError("media_type must not be empty")

    @property
    def size(self) -> int:
        """Image size in bytes."""
        return len(self.data)

    def __repr__(self) -> str:
        return (
            f"SourceImage(media_type={self.media_type!r}, "
            f"size={self.size}, filename={self.filename!r})"
        )


@dataclass(frozen=True, slots=True)
class PoseDescription:
    """
    One natural-language pose description.

    Attributes:
        index: 0-based position in the planned sequence (= animation order)
        text: Description of the target pose
    """

    index: int
    text: str


@dataclass(frozen=True, slots=True)
class ImageFrame:
    """Rendered image returned by the frame renderer."""

    data: bytes
    media_type: str = "image/png"

    @property
    def kind(self) -> str:
        return "image"

    def to_base64(self) -> str:
        """Text-safe encoding of the image bytes."""
        return base64.b64encode(self.data).decode("ascii")

    def __repr__(self) -> str:
        return f"ImageFrame(media_type={self.media_type!r}, size={len(self.data)})"


@dataclass(frozen=True, slots=True)
class TextFrame:
    """Text returned instead of an image. Treated as "no frame produced"."""

    content: str

    @property
    def kind(self) -> str:
        return "text"


GeneratedFrame = Union[ImageFrame, TextFrame]
