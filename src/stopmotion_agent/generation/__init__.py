"""
Generation Module
=================

Remote collaborators of the orchestrator, treated as black boxes.

Components:
    - PosePlanner / FrameRenderer: Protocols for the two remote calls
    - MockPosePlanner / MockFrameRenderer: Deterministic local backends
    - GeminiPosePlanner / GeminiFrameRenderer: Google Gemini (production)
    - parse_poses: Planner output → PoseDescriptions
    - build_frame_prompt: Pose → full render prompt

The Gemini classes live in ``generation.gemini_engine`` and are imported
by ``create_generation_backends`` only when that backend is selected.
"""

from stopmotion_agent.generation.engine import (
    FrameRenderer,
    GenerationError,
    MockFrameRenderer,
    MockPosePlanner,
    PlannerError,
    PosePlanner,
    RendererError,
    create_generation_backends,
)
from stopmotion_agent.generation.poses import PoseParseError, parse_poses
from stopmotion_agent.generation.prompts import build_frame_prompt, build_planner_prompt
from stopmotion_agent.generation.source import (
    fetch_source_image,
    guess_media_type,
    load_source_image,
)

__all__ = [
    "PosePlanner",
    "FrameRenderer",
    "MockPosePlanner",
    "MockFrameRenderer",
    "GenerationError",
    "PlannerError",
    "RendererError",
    "create_generation_backends",
    "parse_poses",
    "PoseParseError",
    "build_frame_prompt",
    "build_planner_prompt",
    "fetch_source_image",
    "guess_media_type",
    "load_source_image",
]
