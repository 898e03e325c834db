"""
Phase Transitions
=================

Deterministic phase machine for one generation request.

Transition Table:
    START            → POSES_REQUESTED | ERROR
    POSES_REQUESTED  → POSES_RECEIVED | ERROR
    POSES_RECEIVED   → RENDERING_FRAME | COMPLETE | ERROR
    RENDERING_FRAME  → RENDERING_FRAME | COMPLETE | ERROR
    COMPLETE, ERROR  → (none; terminal)

The orchestrator advances a PhaseTracker before emitting each event, so an
illegal sequence (e.g. a frame after ``complete``) fails loudly instead of
reaching the wire.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, List

from stopmotion_agent.models.state import GenerationPhase


logger = logging.getLogger(__name__)


ALLOWED_TRANSITIONS: Dict[GenerationPhase, FrozenSet[GenerationPhase]] = {
    GenerationPhase.START: frozenset({
        GenerationPhase.POSES_REQUESTED,
        GenerationPhase.ERROR,
    }),
    GenerationPhase.POSES_REQUESTED: frozenset({
        GenerationPhase.POSES_RECEIVED,
        GenerationPhase.ERROR,
    }),
    GenerationPhase.POSES_RECEIVED: frozenset({
        GenerationPhase.RENDERING_FRAME,
        GenerationPhase.COMPLETE,
        GenerationPhase.ERROR,
    }),
    GenerationPhase.RENDERING_FRAME: frozenset({
        GenerationPhase.RENDERING_FRAME,
        GenerationPhase.COMPLETE,
        GenerationPhase.ERROR,
    }),
    GenerationPhase.COMPLETE: frozenset(),
    GenerationPhase.ERROR: frozenset(),
}


class InvalidTransitionError(RuntimeError):
    """Raised on a phase transition the table does not allow."""
    pass


@dataclass(frozen=True)
class PhaseTransition:
    """One recorded phase change."""

    source: GenerationPhase
    target: GenerationPhase
    at: float


@dataclass
class PhaseTracker:
    """
    Tracks the phase of one request and enforces the transition table.

    Attributes:
        phase: Current phase
        history: Transitions taken so far
    """

    phase: GenerationPhase = GenerationPhase.START
    history: List[PhaseTransition] = field(default_factory=list)

    @property
    def is_terminal(self) -> bool:
        return self.phase.is_terminal

    @property
    def frames_rendered(self) -> int:
        """Number of RENDERING_FRAME steps taken."""
        return sum(
            1 for t in self.history if t.target is GenerationPhase.RENDERING_FRAME
        )

    def can_advance(self, target: GenerationPhase) -> bool:
        return target in ALLOWED_TRANSITIONS[self.phase]

    def advance(self, target: GenerationPhase) -> None:
        """
        Move to a new phase.

        Raises:
            InvalidTransitionError: If the transition is not allowed
        """
        if not self.can_advance(target):
            raise InvalidTransitionError(
                f"Invalid phase transition: {self.phase.value} → {target.value}"
            )
        self.history.append(PhaseTransition(self.phase, target, time.time()))
        if target is not GenerationPhase.RENDERING_FRAME or self.phase is not target:
            logger.debug(f"Phase: {self.phase.value} → {target.value}")
        self.phase = target
