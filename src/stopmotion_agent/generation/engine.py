"""
Generation Engine
=================

Contracts for the two remote collaborators, plus deterministic mocks.

    - PosePlanner: image + pose count → raw planner output (JSON text)
    - FrameRenderer: prompt + original image → ImageFrame | TextFrame

Design Rules:
    - Both are opaque remote operations: latency, failure, large payloads
    - Implementations raise PlannerError / RendererError on remote failure
    - The renderer always receives the ORIGINAL source image, never a
      previously generated frame
    - Mocks make no network calls and are stable across runs
"""

import asyncio
import json
import logging
from typing import Iterable, Optional, Protocol, Sequence

from stopmotion_agent.models.media import (
    GeneratedFrame,
    ImageFrame,
    SourceImage,
    TextFrame,
)


logger = logging.getLogger(__name__)


class GenerationError(Exception):
    """Base class for remote generation failures."""
    pass


class PlannerError(GenerationError):
    """Raised when the pose planner call fails."""
    pass


class RendererError(GenerationError):
    """Raised when a frame renderer call fails."""
    pass


class PosePlanner(Protocol):
    """
    Protocol for pose planning backends.

    Implementations:
        - MockPosePlanner (testing, local runs)
        - GeminiPosePlanner (production)
    """

    async def plan_poses(self, image: SourceImage, pose_count: int) -> str:
        """
        Plan an ordered sequence of poses for the image.

        Args:
            image: Source image
            pose_count: Number of poses requested (>= 1)

        Returns:
            Raw planner output, expected to be a JSON list of
            {"pose": "..."} objects. May be malformed.
        """
        ...


class FrameRenderer(Protocol):
    """
    Protocol for frame rendering backends.

    Implementations:
        - MockFrameRenderer (testing, local runs)
        - GeminiFrameRenderer (production)
    """

    async def render_frame(self, prompt: str, image: SourceImage) -> GeneratedFrame:
        """
        Render one image edit.

        Args:
            prompt: Full frame prompt (pose + fixed instructions)
            image: The original source image

        Returns:
            ImageFrame, or TextFrame when the model answered with text only
        """
        ...


DEFAULT_MOCK_POSES = (
    "Standing upright, arms relaxed at the sides, gaze forward",
    "Weight shifts to the left foot, right heel lifts slightly",
    "Right arm begins to rise, elbow bent at 45 degrees",
    "Right arm raised overhead, fingers spread, head tilted up",
    "Both arms raised, torso stretched, slight backward lean",
    "Arms sweep outward, shoulders level, weight centered",
    "Arms lowering to shoulder height, knees softly bent",
    "Crouch begins, arms forward for balance, gaze down",
    "Deep crouch, hands near knees, back rounded",
    "Rising from crouch, arms swinging back",
    "Small hop, both feet off the ground, arms up",
    "Landing, knees bent, arms returning to the sides",
)


class MockPosePlanner:
    """
    Deterministic mock planner.

    Cycles through a fixed pose list to produce exactly ``pose_count``
    entries in the planner's JSON schema.

    Attributes:
        poses: Pose texts to cycle through
        latency_seconds: Simulated remote latency per call
        calls: Number of plan_poses calls made
    """

    def __init__(
        self,
        poses: Sequence[str] = DEFAULT_MOCK_POSES,
        latency_seconds: float = 0.0,
    ) -> None:
        if not poses:
            raise ValueError("poses must not be empty")
        self.poses = tuple(poses)
        self.latency_seconds = latency_seconds
        self.calls = 0

        logger.info(f"MockPosePlanner initialized: {len(self.poses)} poses")

    async def plan_poses(self, image: SourceImage, pose_count: int) -> str:
        self.calls += 1
        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        planned = [
            {"pose": self.poses[i % len(self.poses)]}
            for i in range(pose_count)
        ]
        return json.dumps(planned)


class MockFrameRenderer:
    """
    Deterministic mock renderer.

    Echoes the source image back as the rendered frame. Selected calls can
    be scripted to fail or to answer with text, by 0-based call number.

    Attributes:
        fail_on: Call numbers that raise RendererError
        text_on: Call numbers that return a TextFrame
        latency_seconds: Simulated remote latency per call
        prompts: Prompts received, in call order
    """

    def __init__(
        self,
        fail_on: Iterable[int] = (),
        text_on: Iterable[int] = (),
        latency_seconds: float = 0.0,
    ) -> None:
        self.fail_on = frozenset(fail_on)
        self.text_on = frozenset(text_on)
        self.latency_seconds = latency_seconds
        self.prompts: list = []

    @property
    def calls(self) -> int:
        return len(self.prompts)

    async def render_frame(self, prompt: str, image: SourceImage) -> GeneratedFrame:
        call_number = len(self.prompts)
        self.prompts.append(prompt)

        if self.latency_seconds:
            await asyncio.sleep(self.latency_seconds)

        if call_number in self.fail_on:
            raise RendererError(f"mock render failure on call {call_number}")
        if call_number in self.text_on:
            return TextFrame(content=f"mock text response for call {call_number}")

        return ImageFrame(data=image.data, media_type=image.media_type)


def create_generation_backends(
    backend: str,
    api_key: Optional[str] = None,
    planner_model: Optional[str] = None,
    renderer_model: Optional[str] = None,
):
    """
    Create the (planner, renderer) pair for a configured backend.

    Fails fast if the Gemini backend is requested without an API key.

    Returns:
        Tuple of (PosePlanner, FrameRenderer)
    """
    if backend == "mock":
        logger.info("Using mock generation backend")
        return MockPosePlanner(), MockFrameRenderer()

    if backend == "gemini":
        if not api_key:
            raise RuntimeError(
                "Gemini backend requested but no API key configured. "
                "Set GEMINI_API_KEY or GOOGLE_GENERATIVE_AI_API_KEY."
            )
        from stopmotion_agent.generation.gemini_engine import (
            GeminiFrameRenderer,
            GeminiPosePlanner,
            create_gemini_client,
        )

        client = create_gemini_client(api_key)
        logger.info(
            f"Using Gemini generation backend: planner={planner_model}, "
            f"renderer={renderer_model}"
        )
        planner_kwargs = {"model": planner_model} if planner_model else {}
        renderer_kwargs = {"model": renderer_model} if renderer_model else {}
        return (
            GeminiPosePlanner(client, **planner_kwargs),
            GeminiFrameRenderer(client, **renderer_kwargs),
        )

    raise ValueError(f"Unknown generation backend: {backend}")
