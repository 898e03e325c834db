"""
Client Assembler
================

Dispatches decoded ProgressEvents into a growing Animation.

    poses    → keep the raw planner output for display
    frame    → image: append an AnimationFrame; text: keep as a note
    complete → final success status
    error    → final error status

Once a terminal event has been handled, later events are ignored.
"""

import json
import logging
from typing import List, Optional, Union

from stopmotion_agent.assembly.animation import Animation, AnimationFrame
from stopmotion_agent.models.events import (
    CompleteEvent,
    ErrorEvent,
    FrameEvent,
    ImageFrameData,
    PosesEvent,
)
from stopmotion_agent.stream.image_decoder import (
    ImageDecodeError,
    decode_base64,
    read_dimensions,
)


logger = logging.getLogger(__name__)


STATUS_STARTING = "Starting generation..."
STATUS_POSES = "Poses generated! Creating animation frames..."
STATUS_COMPLETE = "Animation generation complete!"

Event = Union[PosesEvent, FrameEvent, CompleteEvent, ErrorEvent]


class ClientAssembler:
    """
    Builds an Animation and a human-readable status from stream events.

    Attributes:
        animation: Frames received so far, in arrival order
        status: Latest progress string
        poses_output: Raw planner output from the poses event
        notes: Text-fallback content received instead of frames
        error: Error message from a terminal error event
    """

    def __init__(self, animation: Optional[Animation] = None) -> None:
        self.animation = animation if animation is not None else Animation()
        self.status: str = STATUS_STARTING
        self.poses_output: Optional[str] = None
        self.notes: List[str] = []
        self.error: Optional[str] = None
        self._terminal: Optional[Event] = None

    @property
    def finished(self) -> bool:
        return self._terminal is not None

    @property
    def succeeded(self) -> bool:
        return isinstance(self._terminal, CompleteEvent)

    def handle(self, event: Event) -> None:
        """Apply one event to the animation and status."""
        if self._terminal is not None:
            logger.warning(f"Ignoring {event.type} event after generation finished")
            return

        if isinstance(event, PosesEvent):
            self._handle_poses(event)
        elif isinstance(event, FrameEvent):
            self._handle_frame(event)
        elif isinstance(event, CompleteEvent):
            self._terminal = event
            self.status = STATUS_COMPLETE
            logger.info(f"Generation complete: {len(self.animation)} frame(s)")
        elif isinstance(event, ErrorEvent):
            self._terminal = event
            self.error = event.data
            self.status = f"Error: {event.data}"
            logger.error(f"Generation failed: {event.data}")

    def _handle_poses(self, event: PosesEvent) -> None:
        if event.data is None or isinstance(event.data, str):
            self.poses_output = event.data
        else:
            self.poses_output = json.dumps(event.data)
        self.status = STATUS_POSES
        logger.info("Received planned poses")

    def _handle_frame(self, event: FrameEvent) -> None:
        data = event.data
        if not isinstance(data, ImageFrameData):
            self.notes.append(data.content)
            logger.info(f"No frame for pose {data.pose_index}: renderer returned text")
            return

        try:
            image_bytes = decode_base64(data.base64_image_data)
        except ImageDecodeError as e:
            logger.warning(f"Dropping frame for pose {data.pose_index}: {e}")
            return

        dimensions = read_dimensions(image_bytes)
        height, width = dimensions if dimensions else (None, None)

        frame = AnimationFrame.from_base64(
            data.base64_image_data,
            data.content_type,
            pose_index=data.pose_index,
            width=width,
            height=height,
        )
        self.animation.append(frame)
        self.status = f"Animation frame {len(self.animation)} generated!"
        logger.info(f"Appended frame {len(self.animation)} (pose {data.pose_index})")
