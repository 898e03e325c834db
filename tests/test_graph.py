"""
Generation Graph Tests
======================

Event sequences produced by the orchestrator over scripted backends.
"""

import asyncio

import pytest

from conftest import FailingPlanner, StaticPlanner
from stopmotion_agent.agent import GenerationGraph
from stopmotion_agent.generation import MockFrameRenderer, MockPosePlanner
from stopmotion_agent.models.events import (
    CompleteEvent,
    ErrorEvent,
    FrameEvent,
    ImageFrameData,
    PosesEvent,
    TextFrameData,
)
from stopmotion_agent.models.state import FrameFailurePolicy


async def collect(graph, image, **kwargs) -> list:
    return [event async for event in graph.orchestrate(image, **kwargs)]


def frame_events(events) -> list:
    return [e for e in events if isinstance(e, FrameEvent)]


def assert_well_formed(events) -> None:
    """One leading poses event (unless the planner failed), one terminal event last."""
    terminal = [e for e in events if e.is_terminal]
    assert len(terminal) == 1
    assert events[-1] is terminal[0]
    poses = [e for e in events if isinstance(e, PosesEvent)]
    assert len(poses) <= 1
    if poses:
        assert events[0] is poses[0]


class TestSuccessfulGeneration:
    """All poses render."""

    @pytest.mark.asyncio
    async def test_two_poses_in_order(self, source_image):
        planner = StaticPlanner('[{"pose":"arms raised"},{"pose":"arms lowered"}]')
        renderer = MockFrameRenderer()
        graph = GenerationGraph(planner, renderer, pose_count=2)

        events = await collect(graph, source_image)

        assert [e.type for e in events] == ["poses", "frame", "frame", "complete"]
        assert_well_formed(events)
        assert events[0].data == '[{"pose":"arms raised"},{"pose":"arms lowered"}]'

        frames = frame_events(events)
        assert [f.data.pose_index for f in frames] == [0, 1]
        assert all(isinstance(f.data, ImageFrameData) for f in frames)
        assert "arms raised" in renderer.prompts[0]
        assert "arms lowered" in renderer.prompts[1]

    @pytest.mark.asyncio
    async def test_frame_payload_is_base64_of_rendered_bytes(self, make_graph, source_image):
        import base64

        events = await collect(make_graph(), source_image)

        frame = frame_events(events)[0]
        assert base64.b64decode(frame.data.base64_image_data) == source_image.data
        assert frame.data.content_type == "image/png"

    @pytest.mark.asyncio
    async def test_renderer_called_once_per_pose(self, make_graph, renderer, source_image):
        graph = make_graph(pose_count=5)

        events = await collect(graph, source_image)

        assert renderer.calls == 5
        assert len(frame_events(events)) == 5
        assert isinstance(events[-1], CompleteEvent)

    @pytest.mark.asyncio
    async def test_planner_receives_pose_count(self, source_image):
        planner = MockPosePlanner()
        graph = GenerationGraph(planner, MockFrameRenderer(), pose_count=4)

        events = await collect(graph, source_image)

        assert planner.calls == 1
        assert len(frame_events(events)) == 4

    @pytest.mark.asyncio
    async def test_metrics_counted(self, make_graph, source_image):
        graph = make_graph()

        await collect(graph, source_image)

        metrics = graph.metrics.to_dict()
        assert metrics["requests_started"] == 1
        assert metrics["requests_completed"] == 1
        assert metrics["frames_emitted"] == 3
        assert metrics["requests_failed"] == 0


class TestPlannerFailure:
    """The single planner call fails."""

    @pytest.mark.asyncio
    async def test_single_error_no_frames(self, source_image):
        renderer = MockFrameRenderer()
        graph = GenerationGraph(FailingPlanner("quota exceeded"), renderer, pose_count=3)

        events = await collect(graph, source_image)

        assert len(events) == 1
        assert isinstance(events[0], ErrorEvent)
        assert events[0].data == "quota exceeded"
        assert renderer.calls == 0
        assert graph.metrics.planner_failures == 1
        assert graph.metrics.requests_failed == 1

    @pytest.mark.asyncio
    async def test_empty_exception_message_uses_class_name(self, source_image):
        graph = GenerationGraph(FailingPlanner(""), MockFrameRenderer(), pose_count=2)

        events = await collect(graph, source_image)

        assert events[-1].data == "PlannerError"


class TestFrameFailures:
    """Per-pose failures never end the stream."""

    @pytest.mark.asyncio
    async def test_skip_policy_drops_failed_pose(self, make_graph, source_image):
        renderer = MockFrameRenderer(fail_on={1})
        graph = make_graph(renderer=renderer)

        events = await collect(graph, source_image)

        assert_well_formed(events)
        assert isinstance(events[-1], CompleteEvent)
        assert [f.data.pose_index for f in frame_events(events)] == [0, 2]
        assert renderer.calls == 3
        assert graph.metrics.frame_failures == 1

    @pytest.mark.asyncio
    async def test_skip_policy_drops_text_result(self, make_graph, source_image):
        graph = make_graph(renderer=MockFrameRenderer(text_on={0}))

        events = await collect(graph, source_image)

        assert [f.data.pose_index for f in frame_events(events)] == [1, 2]
        assert graph.metrics.text_frames == 1

    @pytest.mark.asyncio
    async def test_report_policy_emits_text_frame(self, make_graph, source_image):
        graph = make_graph(
            renderer=MockFrameRenderer(fail_on={1}, text_on={2}),
            frame_failure_policy=FrameFailurePolicy.REPORT,
        )

        events = await collect(graph, source_image)

        assert_well_formed(events)
        frames = frame_events(events)
        assert [f.data.pose_index for f in frames] == [0, 1, 2]
        assert isinstance(frames[0].data, ImageFrameData)
        assert isinstance(frames[1].data, TextFrameData)
        assert "mock render failure" in frames[1].data.content
        assert frames[2].data.content == "mock text response for call 2"

    @pytest.mark.asyncio
    async def test_every_render_fails_still_completes(self, make_graph, source_image):
        graph = make_graph(renderer=MockFrameRenderer(fail_on={0, 1, 2}))

        events = await collect(graph, source_image)

        assert [e.type for e in events] == ["poses", "complete"]


class TestPlannerOutputParsing:
    """Malformed planner output."""

    @pytest.mark.asyncio
    async def test_unparseable_output_yields_zero_frames(self, source_image):
        renderer = MockFrameRenderer()
        graph = GenerationGraph(StaticPlanner("not json at all"), renderer, pose_count=3)

        events = await collect(graph, source_image)

        assert [e.type for e in events] == ["poses", "complete"]
        assert events[0].data == "not json at all"
        assert renderer.calls == 0

    @pytest.mark.asyncio
    async def test_strict_parsing_emits_error(self, source_image):
        graph = GenerationGraph(
            StaticPlanner('{"pose": "not a list"}'),
            MockFrameRenderer(),
            pose_count=3,
            strict_pose_parsing=True,
        )

        events = await collect(graph, source_image)

        assert [e.type for e in events] == ["poses", "error"]
        assert "expected a list" in events[-1].data

    @pytest.mark.asyncio
    async def test_extra_poses_truncated(self, source_image):
        raw = '[{"pose":"a"},{"pose":"b"},{"pose":"c"},{"pose":"d"}]'
        renderer = MockFrameRenderer()
        graph = GenerationGraph(StaticPlanner(raw), renderer, pose_count=2)

        events = await collect(graph, source_image)

        assert len(frame_events(events)) == 2
        assert renderer.calls == 2


class TestLimits:
    """Deadline and client disconnects."""

    @pytest.mark.asyncio
    async def test_deadline_yields_error(self, make_graph, source_image):
        graph = make_graph(
            renderer=MockFrameRenderer(latency_seconds=0.5),
            max_duration_seconds=0.2,
        )

        events = await collect(graph, source_image)

        assert_well_formed(events)
        assert isinstance(events[-1], ErrorEvent)
        assert "time limit" in events[-1].data
        assert graph.metrics.timeouts == 1

    @pytest.mark.asyncio
    async def test_disconnect_stops_remote_calls(self, make_graph, source_image):
        renderer = MockFrameRenderer(latency_seconds=0.05)
        graph = make_graph(renderer=renderer, pose_count=10)
        seen = []

        async def is_disconnected() -> bool:
            return len(seen) >= 2

        async for event in graph.orchestrate(source_image, is_disconnected=is_disconnected):
            seen.append(event)

        await asyncio.sleep(0.2)

        frames_seen = [e for e in seen if isinstance(e, FrameEvent)]
        assert not any(e.is_terminal for e in seen)
        assert len(frames_seen) == 1
        assert renderer.calls == len(frames_seen)
        assert graph.metrics.disconnects == 1

    def test_missing_image_rejected_before_streaming(self, make_graph):
        graph = make_graph()

        with pytest.raises(ValueError):
            graph.orchestrate(None)

        assert graph.metrics.requests_started == 0

    def test_invalid_pose_count(self, planner, renderer):
        with pytest.raises(ValueError):
            GenerationGraph(planner, renderer, pose_count=0)
