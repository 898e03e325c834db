"""
Agent Module
============

LangGraph-based orchestrator for one stop-motion generation request.

This module implements the orchestration logic:
    - graph.py: Workflow definition, streaming, deadline and disconnect handling
    - transitions.py: Phase transition table and tracker

Key Design Decisions:
    - LangGraph is used for STRUCTURE; model calls live in the generation backends
    - Phase transitions are deterministic and inspectable
    - Every request ends in exactly one terminal event, unless the client leaves
"""

from stopmotion_agent.agent.graph import (
    GenerationGraph,
    GenerationMetrics,
    GenerationTimeoutError,
)
from stopmotion_agent.agent.transitions import (
    InvalidTransitionError,
    PhaseTracker,
)

__all__ = [
    "GenerationGraph",
    "GenerationMetrics",
    "GenerationTimeoutError",
    "InvalidTransitionError",
    "PhaseTracker",
]
