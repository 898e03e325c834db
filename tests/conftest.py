"""
Test Configuration
==================

Pytest fixtures and test configuration for the stop-motion agent.
"""

import cv2
import numpy as np
import pytest
from fastapi.testclient import TestClient

from stopmotion_agent.agent import GenerationGraph
from stopmotion_agent.generation import MockFrameRenderer, MockPosePlanner, PlannerError
from stopmotion_agent.models.media import SourceImage
from stopmotion_agent.stream import StreamDecoder


def _encode_png(width: int = 8, height: int = 6) -> bytes:
    pixels = np.zeros((height, width, 3), dtype=np.uint8)
    pixels[:, : width // 2] = (0, 128, 255)
    ok, encoded = cv2.imencode(".png", pixels)
    assert ok
    return encoded.tobytes()


class FailingPlanner:
    """Planner whose single call always fails."""

    def __init__(self, message: str = "planner unavailable") -> None:
        self.message = message
        self.calls = 0

    async def plan_poses(self, image, pose_count):
        self.calls += 1
        raise PlannerError(self.message)


class StaticPlanner:
    """Planner that returns a fixed raw payload."""

    def __init__(self, raw) -> None:
        self.raw = raw
        self.calls = 0

    async def plan_poses(self, image, pose_count):
        self.calls += 1
        return self.raw


def decode_all(body: bytes) -> list:
    """Decode a complete response body into events."""
    decoder = StreamDecoder()
    events = decoder.feed(body)
    events.extend(decoder.close())
    return events


@pytest.fixture
def png_bytes() -> bytes:
    """A small real PNG (8x6)."""
    return _encode_png()


@pytest.fixture
def source_image(png_bytes) -> SourceImage:
    return SourceImage(data=png_bytes, media_type="image/png", filename="subject.png")


@pytest.fixture
def planner() -> MockPosePlanner:
    return MockPosePlanner(poses=("arms raised", "arms lowered", "head turned"))


@pytest.fixture
def renderer() -> MockFrameRenderer:
    return MockFrameRenderer()


@pytest.fixture
def make_graph(planner, renderer):
    """Factory for graphs over the mock backends (overridable per call)."""

    def _make(**kwargs) -> GenerationGraph:
        kwargs.setdefault("planner", planner)
        kwargs.setdefault("renderer", renderer)
        kwargs.setdefault("pose_count", 3)
        return GenerationGraph(**kwargs)

    return _make


@pytest.fixture
def api_graph(make_graph) -> GenerationGraph:
    return make_graph()


@pytest.fixture
def api_client(api_graph):
    """TestClient with the orchestrator dependency replaced by mocks."""
    from stopmotion_agent.main import app, get_generation_graph

    app.dependency_overrides[get_generation_graph] = lambda: api_graph
    yield TestClient(app)
    app.dependency_overrides.clear()
