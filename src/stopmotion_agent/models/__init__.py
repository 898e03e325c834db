"""
Data Models
===========

Models for the stop-motion generation service.

Models:
    Media:
        - SourceImage: Uploaded image for one request
        - PoseDescription: One planned pose
        - ImageFrame, TextFrame: Tagged render results (GeneratedFrame)

    Events (wire):
        - PosesEvent, FrameEvent, CompleteEvent, ErrorEvent
        - ImageFrameData, TextFrameData: Frame payloads

    State:
        - GenerationPhase: Orchestrator lifecycle phases
        - FrameFailurePolicy: Per-pose failure handling
"""

from stopmotion_agent.models.media import (
    GeneratedFrame,
    ImageFrame,
    PoseDescription,
    SourceImage,
    TextFrame,
)
from stopmotion_agent.models.events import (
    CompleteEvent,
    ErrorEvent,
    FrameEvent,
    ImageFrameData,
    PosesEvent,
    ProgressEvent,
    TextFrameData,
    parse_event,
)
from stopmotion_agent.models.state import FrameFailurePolicy, GenerationPhase

__all__ = [
    # Media
    "SourceImage",
    "PoseDescription",
    "ImageFrame",
    "TextFrame",
    "GeneratedFrame",
    # Events
    "PosesEvent",
    "FrameEvent",
    "CompleteEvent",
    "ErrorEvent",
    "ImageFrameData",
    "TextFrameData",
    "ProgressEvent",
    "parse_event",
    # State
    "GenerationPhase",
    "FrameFailurePolicy",
]
