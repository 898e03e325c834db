"""
Generation State Models
=======================

Lifecycle phases of one generation request and the per-frame failure policy.

Phase Machine:
    START → POSES_REQUESTED → POSES_RECEIVED → RENDERING_FRAME* → COMPLETE
                                                                 ↘ ERROR

    ERROR is reachable from every non-terminal phase.
    COMPLETE and ERROR are terminal: no transition leaves them.
"""

from enum import Enum


class GenerationPhase(str, Enum):
    """
    Discrete phases of a generation request.

    Attributes:
        START: Request accepted, nothing called yet
        POSES_REQUESTED: Pose planner call in flight
        POSES_RECEIVED: Planner output available (and streamed)
        RENDERING_FRAME: Frame renderer running for the current pose
        COMPLETE: All poses processed, terminal
        ERROR: Request failed, terminal
    """

    START = "START"
    POSES_REQUESTED = "POSES_REQUESTED"
    POSES_RECEIVED = "POSES_RECEIVED"
    RENDERING_FRAME = "RENDERING_FRAME"
    COMPLETE = "COMPLETE"
    ERROR = "ERROR"

    @property
    def is_terminal(self) -> bool:
        return self in (GenerationPhase.COMPLETE, GenerationPhase.ERROR)


class FrameFailurePolicy(str, Enum):
    """
    What the orchestrator does when one pose yields no image.

    Attributes:
        SKIP: Emit nothing for that pose
        REPORT: Emit a text-fallback frame event for that pose
    """

    SKIP = "skip"
    REPORT = "report"
