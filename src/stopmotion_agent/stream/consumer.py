"""
Stream Consumer
===============

HTTP client for the generation endpoint.

This module provides the StreamConsumer class which:
    - Uploads one image as a multipart request
    - Reads the chunked response incrementally
    - Decodes events with StreamDecoder
    - Hands events to a ClientAssembler in arrival order
    - Stops reading at the terminal event

Design Rules:
    - Exactly one read loop per request; no buffering of the full body
    - A non-streaming error response raises GenerationRequestError
    - Malformed chunks are skipped by the decoder, never fatal
"""

import json
import logging
import time
from typing import Awaitable, Callable, Optional, Union

import httpx

from stopmotion_agent.assembly.animation import Animation
from stopmotion_agent.assembly.assembler import ClientAssembler
from stopmotion_agent.models.events import CompleteEvent, ErrorEvent, FrameEvent, PosesEvent
from stopmotion_agent.models.media import SourceImage
from stopmotion_agent.stream.decoder import StreamDecoder


logger = logging.getLogger(__name__)

GENERATION_PATH = "/api/stop-motion"

Event = Union[PosesEvent, FrameEvent, CompleteEvent, ErrorEvent]
EventCallback = Callable[[Event, ClientAssembler], Awaitable[None]]


class GenerationRequestError(Exception):
    """Raised when the server rejects a request before streaming."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


class StreamConsumerMetrics:
    """Metrics for StreamConsumer observability."""

    __slots__ = (
        "requests",
        "events_received",
        "frames_received",
        "parse_errors",
        "last_duration_seconds",
    )

    def __init__(self) -> None:
        self.requests: int = 0
        self.events_received: int = 0
        self.frames_received: int = 0
        self.parse_errors: int = 0
        self.last_duration_seconds: float = 0.0

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "requests": self.requests,
            "events_received": self.events_received,
            "frames_received": self.frames_received,
            "parse_errors": self.parse_errors,
            "last_duration_seconds": self.last_duration_seconds,
        }


class StreamConsumer:
    """
    Client for one generation server.

    Attributes:
        base_url: Server base URL
        frame_rate: Playback FPS of animations this consumer builds
        read_timeout: Seconds to wait for the next chunk
        metrics: Operational metrics

    Example:
        consumer = StreamConsumer("http://localhost:8002")
        assembler = await consumer.generate(load_source_image("cat.png"))
        print(assembler.status, len(assembler.animation))
    """

    def __init__(
        self,
        base_url: str,
        frame_rate: int = 12,
        read_timeout: float = 800.0,
        client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        """
        Initialize stream consumer.

        Args:
            base_url: Server base URL
            frame_rate: Playback FPS for new animations
            read_timeout: Seconds to wait for the next chunk
            client: Shared httpx client (one is created per request if None)
        """
        self.base_url = base_url.rstrip("/")
        self.frame_rate = frame_rate
        self.read_timeout = read_timeout
        self._client = client
        self.metrics = StreamConsumerMetrics()

    async def generate(
        self,
        image: SourceImage,
        on_event: Optional[EventCallback] = None,
    ) -> ClientAssembler:
        """
        Upload an image and assemble the streamed animation.

        Args:
            image: Source image to animate
            on_event: Awaited after each event is applied (progress hook)

        Returns:
            ClientAssembler holding the animation and final status

        Raises:
            GenerationRequestError: If the server answers with an error status
            httpx.HTTPError: On transport failure
        """
        if self._client is not None:
            return await self._generate(self._client, image, on_event)

        timeout = httpx.Timeout(30.0, read=self.read_timeout)
        async with httpx.AsyncClient(timeout=timeout) as client:
            return await self._generate(client, image, on_event)

    async def _generate(
        self,
        client: httpx.AsyncClient,
        image: SourceImage,
        on_event: Optional[EventCallback],
    ) -> ClientAssembler:
        self.metrics.requests += 1
        started = time.perf_counter()

        assembler = ClientAssembler(Animation(frame_rate=self.frame_rate))
        decoder = StreamDecoder()
        files = {"image": (image.filename or "image", image.data, image.media_type)}
        url = f"{self.base_url}{GENERATION_PATH}"

        logger.info(f"Uploading {image!r} to {url}")

        async with client.stream("POST", url, files=files) as response:
            if response.status_code >= 400:
                body = await response.aread()
                raise GenerationRequestError(
                    response.status_code,
                    _error_message(body, response.reason_phrase),
                )

            async for chunk in response.aiter_bytes():
                for event in decoder.feed(chunk):
                    await self._dispatch(event, assembler, on_event)
                if decoder.finished:
                    break

        if not decoder.finished:
            for event in decoder.close():
                await self._dispatch(event, assembler, on_event)
            if not assembler.finished:
                logger.warning("Stream closed without a terminal event")
                assembler.status = "Error: stream ended unexpectedly"

        self.metrics.parse_errors += decoder.metrics.parse_errors
        self.metrics.last_duration_seconds = time.perf_counter() - started
        logger.info(
            f"Generation finished in {self.metrics.last_duration_seconds:.1f}s: "
            f"{len(assembler.animation)} frame(s), status={assembler.status!r}"
        )
        return assembler

    async def _dispatch(
        self,
        event: Event,
        assembler: ClientAssembler,
        on_event: Optional[EventCallback],
    ) -> None:
        self.metrics.events_received += 1
        if isinstance(event, FrameEvent) and event.has_image:
            self.metrics.frames_received += 1
        assembler.handle(event)
        if on_event is not None:
            await on_event(event, assembler)


def _error_message(body: bytes, fallback: str) -> str:
    try:
        payload = json.loads(body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        text = body.decode("utf-8", errors="replace").strip()
        return text or fallback
    if isinstance(payload, dict) and isinstance(payload.get("error"), str):
        return payload["error"]
    return fallback
