"""
Generation Graph
================

LangGraph workflow that orchestrates one stop-motion generation request.

LangGraph is used for CONTROL FLOW only: the model calls happen inside
the planner and renderer collaborators.

Graph Structure:
    START → plan_poses → parse_poses ─┬→ render_frame ─┬→ finish → END
                                      │       ↑        │
                                      │       └────────┘  (while poses remain)
                                      └→ finish            (zero poses)

Streaming:
    The compiled graph is streamed with stream_mode="updates". Every node
    update is converted into at most one ProgressEvent:

        plan_poses   → PosesEvent (raw planner output, before parsing)
        parse_poses  → (nothing)
        render_frame → FrameEvent for an image; per policy for text/failure
        finish       → CompleteEvent

    Any exception outside the per-pose catch becomes exactly one ErrorEvent.

Design Philosophy:
    - Strictly sequential: one remote call in flight at a time
    - Frame events follow pose order
    - One bad frame never sinks the rest
    - Nothing is emitted after the terminal event
"""

import asyncio
import logging
import time
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, TypedDict, Union

from langgraph.graph import END, StateGraph

from stopmotion_agent.agent.transitions import InvalidTransitionError, PhaseTracker
from stopmotion_agent.generation.engine import FrameRenderer, PlannerError, PosePlanner
from stopmotion_agent.generation.poses import parse_poses
from stopmotion_agent.generation.prompts import build_frame_prompt
from stopmotion_agent.models.events import (
    CompleteEvent,
    ErrorEvent,
    FrameEvent,
    ImageFrameData,
    PosesEvent,
    TextFrameData,
)
from stopmotion_agent.models.media import (
    GeneratedFrame,
    ImageFrame,
    PoseDescription,
    SourceImage,
    TextFrame,
)
from stopmotion_agent.models.state import FrameFailurePolicy, GenerationPhase


logger = logging.getLogger(__name__)

Event = Union[PosesEvent, FrameEvent, CompleteEvent, ErrorEvent]
DisconnectCheck = Callable[[], Awaitable[bool]]

_DONE = object()
_DISCONNECTED = object()


class GenerationTimeoutError(Exception):
    """Raised when a request exceeds its processing time budget."""
    pass


class GenerationGraphState(TypedDict):
    """
    State passed through the generation graph.

    Attributes:
        image: Source image (passed unchanged to every remote call)
        raw_poses: Raw planner output
        poses: Parsed pose descriptions
        cursor: Index of the next pose to render
        pose_index: Pose rendered by the latest render_frame step
        frame: Result of the latest render_frame step (None on failure)
        frame_error: Failure message of the latest render_frame step
        completed: Set by the finish node
    """
    image: SourceImage
    raw_poses: Optional[str]
    poses: List[PoseDescription]
    cursor: int
    pose_index: int
    frame: Optional[GeneratedFrame]
    frame_error: Optional[str]
    completed: bool


class GenerationMetrics:
    """Counters across all requests served by one graph."""

    __slots__ = (
        "requests_started",
        "requests_completed",
        "requests_failed",
        "frames_emitted",
        "text_frames",
        "frame_failures",
        "planner_failures",
        "disconnects",
        "timeouts",
    )

    def __init__(self) -> None:
        self.requests_started: int = 0
        self.requests_completed: int = 0
        self.requests_failed: int = 0
        self.frames_emitted: int = 0
        self.text_frames: int = 0
        self.frame_failures: int = 0
        self.planner_failures: int = 0
        self.disconnects: int = 0
        self.timeouts: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Export metrics as dict."""
        return {name: getattr(self, name) for name in self.__slots__}


def _error_message(error: BaseException) -> str:
    return str(error) or type(error).__name__


class GenerationGraph:
    """
    Orchestrator for pose planning followed by sequential frame rendering.

    Example:
        graph = GenerationGraph(MockPosePlanner(), MockFrameRenderer(), pose_count=4)

        async for event in graph.orchestrate(image):
            send(encode(event))
    """

    def __init__(
        self,
        planner: PosePlanner,
        renderer: FrameRenderer,
        pose_count: int = 12,
        frame_failure_policy: FrameFailurePolicy = FrameFailurePolicy.SKIP,
        strict_pose_parsing: bool = False,
        max_duration_seconds: float = 800.0,
        disconnect_poll_seconds: float = 1.0,
    ) -> None:
        """
        Initialize the generation graph.

        Args:
            planner: Pose planning backend
            renderer: Frame rendering backend
            pose_count: Number of poses requested per image
            frame_failure_policy: SKIP or REPORT for poses without an image
            strict_pose_parsing: Fail on unparseable planner output
            max_duration_seconds: Time budget for one request
            disconnect_poll_seconds: How often to poll for client disconnect
        """
        if pose_count < 1:
            raise ValueError("pose_count must be >= 1")
        if max_duration_seconds <= 0:
            raise ValueError("max_duration_seconds must be > 0")

        self.planner = planner
        self.renderer = renderer
        self.pose_count = pose_count
        self.frame_failure_policy = FrameFailurePolicy(frame_failure_policy)
        self.strict_pose_parsing = strict_pose_parsing
        self.max_duration_seconds = max_duration_seconds
        self.disconnect_poll_seconds = disconnect_poll_seconds
        self.metrics = GenerationMetrics()

        self._graph = self._build_graph()

        logger.info(
            f"GenerationGraph initialized: pose_count={pose_count}, "
            f"policy={self.frame_failure_policy.value}, "
            f"strict={strict_pose_parsing}, budget={max_duration_seconds:g}s"
        )

    # -------------------------------------------------------------------------
    # Graph
    # -------------------------------------------------------------------------

    def _build_graph(self):
        """Build the LangGraph workflow."""
        workflow = StateGraph(GenerationGraphState)

        workflow.add_node("plan_poses", self._plan_poses_node)
        workflow.add_node("parse_poses", self._parse_poses_node)
        workflow.add_node("render_frame", self._render_frame_node)
        workflow.add_node("finish", self._finish_node)

        workflow.set_entry_point("plan_poses")
        workflow.add_edge("plan_poses", "parse_poses")
        workflow.add_conditional_edges(
            "parse_poses",
            self._next_step,
            {"render_frame": "render_frame", "finish": "finish"},
        )
        workflow.add_conditional_edges(
            "render_frame",
            self._next_step,
            {"render_frame": "render_frame", "finish": "finish"},
        )
        workflow.add_edge("finish", END)

        return workflow.compile()

    async def _plan_poses_node(self, state: GenerationGraphState) -> Dict[str, Any]:
        """Single pose planner call. Failures propagate and end the request."""
        started = time.perf_counter()
        raw = await self.planner.plan_poses(state["image"], self.pose_count)
        logger.info(
            f"Poses planned in {(time.perf_counter() - started) * 1000:.0f}ms"
        )
        return {"raw_poses": raw}

    async def _parse_poses_node(self, state: GenerationGraphState) -> Dict[str, Any]:
        poses = parse_poses(
            state.get("raw_poses"),
            limit=self.pose_count,
            strict=self.strict_pose_parsing,
        )
        logger.info(f"Parsed {len(poses)} pose(s) of {self.pose_count} requested")
        return {"poses": poses, "cursor": 0}

    async def _render_frame_node(self, state: GenerationGraphState) -> Dict[str, Any]:
        """Render the pose under the cursor. Per-pose failures are caught here."""
        cursor = state["cursor"]
        pose = state["poses"][cursor]
        prompt = build_frame_prompt(pose.text)

        started = time.perf_counter()
        frame: Optional[GeneratedFrame] = None
        error: Optional[str] = None
        try:
            frame = await self.renderer.render_frame(prompt, state["image"])
        except Exception as e:
            error = _error_message(e)
            logger.error(f"Render failed for pose {pose.index}: {error}")
        else:
            logger.info(
                f"Pose {pose.index + 1}/{len(state['poses'])} rendered as "
                f"{frame.kind} in {(time.perf_counter() - started) * 1000:.0f}ms"
            )

        return {
            "cursor": cursor + 1,
            "pose_index": pose.index,
            "frame": frame,
            "frame_error": error,
        }

    async def _finish_node(self, state: GenerationGraphState) -> Dict[str, Any]:
        return {"completed": True}

    @staticmethod
    def _next_step(state: GenerationGraphState) -> str:
        if state["cursor"] < len(state["poses"]):
            return "render_frame"
        return "finish"

    # -------------------------------------------------------------------------
    # Orchestration
    # -------------------------------------------------------------------------

    def orchestrate(
        self,
        image: Optional[SourceImage],
        is_disconnected: Optional[DisconnectCheck] = None,
    ) -> AsyncIterator[Event]:
        """
        Produce the ordered, finite event sequence for one image.

        The input check runs immediately, before any event is produced.

        Args:
            image: Source image
            is_disconnected: Awaitable check polled while waiting; when it
                returns True, no further remote calls are made and the
                sequence ends without a terminal event

        Returns:
            Async iterator of ProgressEvents

        Raises:
            ValueError: If image is missing
        """
        if image is None:
            raise ValueError("No image provided")
        return self._run(image, is_disconnected)

    async def _run(
        self,
        image: SourceImage,
        is_disconnected: Optional[DisconnectCheck],
    ) -> AsyncIterator[Event]:
        self.metrics.requests_started += 1
        tracker = PhaseTracker()
        deadline = time.monotonic() + self.max_duration_seconds

        initial: GenerationGraphState = {
            "image": image,
            "raw_poses": None,
            "poses": [],
            "cursor": 0,
            "pose_index": -1,
            "frame": None,
            "frame_error": None,
            "completed": False,
        }

        logger.info(f"Generation started for {image!r}")
        tracker.advance(GenerationPhase.POSES_REQUESTED)

        # The graph runs in its own task and waits for the consumer to come
        # back for more before computing the next update.
        queue: asyncio.Queue = asyncio.Queue(maxsize=1)
        producer = asyncio.create_task(
            self._pump(initial, queue),
            name="generation_graph",
        )

        release = False
        try:
            while True:
                item = await self._next_update(queue, deadline, is_disconnected, release)
                release = True
                if item is _DISCONNECTED:
                    self.metrics.disconnects += 1
                    logger.warning(
                        f"Client disconnected in phase {tracker.phase.value}, "
                        f"stopping generation"
                    )
                    return
                if item is _DONE:
                    break
                if isinstance(item, BaseException):
                    raise item

                for node, values in item.items():
                    event = self._to_event(node, values or {}, tracker)
                    if event is not None:
                        yield event

            if not tracker.is_terminal:
                raise InvalidTransitionError(
                    f"Graph ended in non-terminal phase {tracker.phase.value}"
                )

        except Exception as e:
            if tracker.is_terminal:
                logger.error(f"Error after terminal phase {tracker.phase.value}: {e}")
                return

            if isinstance(e, PlannerError):
                self.metrics.planner_failures += 1
            elif isinstance(e, GenerationTimeoutError):
                self.metrics.timeouts += 1

            tracker.advance(GenerationPhase.ERROR)
            self.metrics.requests_failed += 1
            logger.error(f"Generation failed in streaming: {_error_message(e)}")
            yield ErrorEvent(data=_error_message(e))

        finally:
            if not producer.done():
                producer.cancel()
                try:
                    await producer
                except asyncio.CancelledError:
                    pass

    async def _pump(self, initial: GenerationGraphState, queue: asyncio.Queue) -> None:
        """Stream the graph into the queue, ending with _DONE or the exception."""
        config = {"recursion_limit": self.pose_count + 5}
        try:
            async for update in self._graph.astream(
                initial,
                config=config,
                stream_mode="updates",
            ):
                await queue.put(update)
                await queue.join()
        except Exception as e:
            await queue.put(e)
        else:
            await queue.put(_DONE)

    async def _next_update(
        self,
        queue: asyncio.Queue,
        deadline: float,
        is_disconnected: Optional[DisconnectCheck],
        release: bool,
    ) -> Any:
        """
        Wait for the next graph update, the deadline, or a disconnect.

        When release is set, the previous update is acknowledged once the
        disconnect and deadline checks pass, letting the graph continue.
        """
        while True:
            if is_disconnected is not None and await is_disconnected():
                return _DISCONNECTED

            remaining = deadline - time.monotonic()
            if remaining <= 0:
                raise GenerationTimeoutError(
                    f"Generation exceeded {self.max_duration_seconds:g}s time limit"
                )

            wait = remaining
            if is_disconnected is not None:
                wait = min(remaining, self.disconnect_poll_seconds)

            if release:
                queue.task_done()
                release = False

            try:
                return await asyncio.wait_for(queue.get(), timeout=wait)
            except asyncio.TimeoutError:
                continue

    def _to_event(
        self,
        node: str,
        values: Dict[str, Any],
        tracker: PhaseTracker,
    ) -> Optional[Event]:
        if node == "plan_poses":
            tracker.advance(GenerationPhase.POSES_RECEIVED)
            return PosesEvent(data=values.get("raw_poses"))

        if node == "render_frame":
            tracker.advance(GenerationPhase.RENDERING_FRAME)
            return self._frame_event(values)

        if node == "finish":
            tracker.advance(GenerationPhase.COMPLETE)
            self.metrics.requests_completed += 1
            logger.info(
                f"Generation complete: {tracker.frames_rendered} pose(s) processed"
            )
            return CompleteEvent()

        return None

    def _frame_event(self, values: Dict[str, Any]) -> Optional[FrameEvent]:
        frame = values.get("frame")
        pose_index = values.get("pose_index", -1)
        report = self.frame_failure_policy is FrameFailurePolicy.REPORT

        if isinstance(frame, ImageFrame):
            self.metrics.frames_emitted += 1
            return FrameEvent(data=ImageFrameData.from_frame(frame, pose_index))

        if isinstance(frame, TextFrame):
            self.metrics.text_frames += 1
            logger.warning(f"Pose {pose_index} produced text instead of an image")
            if report:
                return FrameEvent(data=TextFrameData.from_frame(frame, pose_index))
            return None

        self.metrics.frame_failures += 1
        if report:
            message = values.get("frame_error") or "unknown error"
            return FrameEvent(
                data=TextFrameData(
                    content=f"Frame {pose_index + 1} failed: {message}",
                    pose_index=pose_index,
                )
            )
        return None
