"""
Progress Event Schema
=====================

Pydantic models for the units of the streaming protocol.

Every event is a JSON object with a ``type`` tag and a ``data`` field whose
shape depends on the tag.

Wire Contract:
    {"type": "poses",    "data": "<raw planner output>"}
    {"type": "frame",    "data": {"type": "image",
                                  "base64ImageData": "...",
                                  "contentType": "image/png",
                                  "poseIndex": 0}}
    {"type": "frame",    "data": {"type": "text", "content": "...", "poseIndex": 1}}
    {"type": "complete", "data": "Processing finished"}
    {"type": "error",    "data": "<human-readable message>"}

Sequence Guarantees:
    - Exactly one ``poses`` event, first
    - Zero or more ``frame`` events, in pose order
    - Exactly one terminal event (``complete`` or ``error``), last

Example:
    from stopmotion_agent.models.events import parse_event

    event = parse_event({"type": "complete", "data": "Processing finished"})
    assert event.is_terminal
"""

from typing import Annotated, Any, List, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from stopmotion_agent.models.media import ImageFrame, TextFrame


FRAME_EVENT_TYPE = "frame"

# Tag emitted by the first web client; still accepted on decode.
LEGACY_FRAME_EVENT_TYPE = "nanobanana"

COMPLETE_MESSAGE = "Processing finished"


class ImageFrameData(BaseModel):
    """Image payload of a frame event (base64 keeps it delimiter-safe)."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["image"] = "image"

    base64_image_data: str = Field(
        ...,
        alias="base64ImageData",
        description="Base64-encoded image bytes",
    )

    content_type: str = Field(
        default="image/png",
        alias="contentType",
        description="Media type of the decoded image",
    )

    pose_index: int = Field(
        default=-1,
        alias="poseIndex",
        description="0-based index of the pose this frame renders (-1 = unknown)",
    )

    @classmethod
    def from_frame(cls, frame: ImageFrame, pose_index: int) -> "ImageFrameData":
        return cls(
            base64_image_data=frame.to_base64(),
            content_type=frame.media_type,
            pose_index=pose_index,
        )


class TextFrameData(BaseModel):
    """Text-fallback payload: the renderer produced no image for this pose."""

    model_config = ConfigDict(populate_by_name=True)

    type: Literal["text"] = "text"

    content: str = Field(default="", description="Renderer commentary or failure note")

    pose_index: int = Field(default=-1, alias="poseIndex")

    @classmethod
    def from_frame(cls, frame: TextFrame, pose_index: int) -> "TextFrameData":
        return cls(content=frame.content, pose_index=pose_index)


FrameData = Annotated[
    Union[ImageFrameData, TextFrameData],
    Field(discriminator="type"),
]


class PosesEvent(BaseModel):
    """Raw pose planner output, sent once before any frame."""

    type: Literal["poses"] = "poses"

    data: Union[str, List[Any], None] = Field(
        default=None,
        description="Raw planner output (JSON text or structured list)",
    )

    @property
    def is_terminal(self) -> bool:
        return False


class FrameEvent(BaseModel):
    """One rendered frame, or a text note in its place."""

    type: Literal[FRAME_EVENT_TYPE, LEGACY_FRAME_EVENT_TYPE] = FRAME_EVENT_TYPE

    data: FrameData

    @property
    def is_terminal(self) -> bool:
        return False

    @property
    def has_image(self) -> bool:
        return isinstance(self.data, ImageFrameData)


class CompleteEvent(BaseModel):
    """Terminal event: all poses processed."""

    type: Literal["complete"] = "complete"

    data: str = COMPLETE_MESSAGE

    @property
    def is_terminal(self) -> bool:
        return True


class ErrorEvent(BaseModel):
    """Terminal event: the request failed; ``data`` is human-readable."""

    type: Literal["error"] = "error"

    data: str = Field(..., description="Error message")

    @property
    def is_terminal(self) -> bool:
        return True


ProgressEvent = Annotated[
    Union[PosesEvent, FrameEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]

_progress_event_adapter: TypeAdapter = TypeAdapter(ProgressEvent)


def parse_event(payload: Any) -> Union[PosesEvent, FrameEvent, CompleteEvent, ErrorEvent]:
    """
    Validate a decoded JSON object as a ProgressEvent.

    Raises:
        pydantic.ValidationError: If the object does not match any event shape
    """
    return _progress_event_adapter.validate_python(payload)
