"""
Animation Model
===============

Client-side ordered frame list with playback state.

Frames are appended in arrival order while a generation streams in; the
user may reorder or delete them afterwards. The playback cursor always
points at a valid frame (or 0 when the animation is empty).
"""

import logging
import uuid
from dataclasses import dataclass
from typing import Iterator, List, Optional


logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class AnimationFrame:
    """
    One playable frame.

    Attributes:
        id: Unique frame identifier
        data_url: Self-contained image resource ("data:<type>;base64,...")
        media_type: Image media type
        pose_index: Pose this frame renders (-1 if unknown)
        width: Pixel width, if it could be read
        height: Pixel height, if it could be read
    """

    id: str
    data_url: str
    media_type: str
    pose_index: int = -1
    width: Optional[int] = None
    height: Optional[int] = None

    @classmethod
    def from_base64(
        cls,
        image_b64: str,
        media_type: str,
        pose_index: int = -1,
        width: Optional[int] = None,
        height: Optional[int] = None,
    ) -> "AnimationFrame":
        media_type = media_type or "image/png"
        return cls(
            id=f"generated-{uuid.uuid4().hex[:12]}",
            data_url=f"data:{media_type};base64,{image_b64}",
            media_type=media_type,
            pose_index=pose_index,
            width=width,
            height=height,
        )

    def __repr__(self) -> str:
        return (
            f"AnimationFrame(id={self.id!r}, pose_index={self.pose_index}, "
            f"media_type={self.media_type!r})"
        )


class Animation:
    """
    Ordered frames plus a playback cursor and frame rate.

    Example:
        animation = Animation(frame_rate=12)
        animation.append(frame)
        animation.move(0, 2)
        current = animation.advance()
    """

    def __init__(self, frame_rate: int = 12) -> None:
        if frame_rate < 1:
            raise ValueError("frame_rate must be >= 1")
        self._frames: List[AnimationFrame] = []
        self._frame_rate = frame_rate
        self._cursor = 0

    @property
    def frames(self) -> tuple:
        return tuple(self._frames)

    @property
    def frame_rate(self) -> int:
        return self._frame_rate

    @frame_rate.setter
    def frame_rate(self, value: int) -> None:
        if value < 1:
            raise ValueError("frame_rate must be >= 1")
        self._frame_rate = value

    @property
    def cursor(self) -> int:
        return self._cursor

    @property
    def current(self) -> Optional[AnimationFrame]:
        """Frame under the playback cursor, or None when empty."""
        if not self._frames:
            return None
        return self._frames[self._cursor]

    @property
    def duration_seconds(self) -> float:
        """Length of one playback loop."""
        return len(self._frames) / self._frame_rate

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[AnimationFrame]:
        return iter(self._frames)

    def __getitem__(self, index: int) -> AnimationFrame:
        return self._frames[index]

    def append(self, frame: AnimationFrame) -> None:
        self._frames.append(frame)

    def remove(self, index: int) -> AnimationFrame:
        """Delete the frame at index and keep the cursor in range."""
        frame = self._frames.pop(index)
        if self._cursor >= len(self._frames):
            self._cursor = max(0, len(self._frames) - 1)
        return frame

    def move(self, source: int, destination: int) -> None:
        """Move a frame to a new position; other frames keep their order."""
        count = len(self._frames)
        if not -count <= source < count:
            raise IndexError(f"source index {source} out of range")
        if not -count <= destination < count:
            raise IndexError(f"destination index {destination} out of range")
        frame = self._frames.pop(source)
        self._frames.insert(destination % count, frame)

    def seek(self, index: int) -> AnimationFrame:
        if not 0 <= index < len(self._frames):
            raise IndexError(f"frame index {index} out of range")
        self._cursor = index
        return self._frames[index]

    def advance(self) -> Optional[AnimationFrame]:
        """Step the cursor one frame forward, wrapping at the end."""
        if not self._frames:
            return None
        self._cursor = (self._cursor + 1) % len(self._frames)
        return self._frames[self._cursor]

    def clear(self) -> None:
        self._frames.clear()
        self._cursor = 0
