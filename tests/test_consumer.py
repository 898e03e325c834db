"""
Stream Consumer Tests
=====================

End-to-end client runs against the app over httpx's ASGI transport.
"""

import httpx
import pytest

from conftest import FailingPlanner
from stopmotion_agent.generation import fetch_source_image
from stopmotion_agent.models.events import CompleteEvent, ErrorEvent, PosesEvent
from stopmotion_agent.stream import encode
from stopmotion_agent.stream.consumer import GenerationRequestError, StreamConsumer


BASE_URL = "http://testserver"


@pytest.fixture
def asgi_client(api_graph):
    from stopmotion_agent.main import app, get_generation_graph

    app.dependency_overrides[get_generation_graph] = lambda: api_graph
    yield httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url=BASE_URL)
    app.dependency_overrides.clear()


def static_transport(status_code: int, body: bytes) -> httpx.MockTransport:
    return httpx.MockTransport(lambda request: httpx.Response(status_code, content=body))


class TestStreamConsumer:

    @pytest.mark.asyncio
    async def test_full_generation(self, asgi_client, source_image):
        consumer = StreamConsumer(BASE_URL, frame_rate=6, client=asgi_client)
        seen = []

        async def on_event(event, assembler):
            seen.append((event.type, assembler.status))

        assembler = await consumer.generate(source_image, on_event=on_event)

        assert assembler.succeeded
        assert len(assembler.animation) == 3
        assert assembler.animation.frame_rate == 6
        assert assembler.animation[0].width == 8
        assert seen[0] == ("poses", "Poses generated! Creating animation frames...")
        assert seen[-1] == ("complete", "Animation generation complete!")
        assert consumer.metrics.frames_received == 3
        assert consumer.metrics.events_received == 5

    @pytest.mark.asyncio
    async def test_streamed_error(self, asgi_client, api_graph, source_image):
        api_graph.planner = FailingPlanner("planner unavailable")
        consumer = StreamConsumer(BASE_URL, client=asgi_client)

        assembler = await consumer.generate(source_image)

        assert not assembler.succeeded
        assert assembler.status == "Error: planner unavailable"
        assert len(assembler.animation) == 0

    @pytest.mark.asyncio
    async def test_rejected_upload_raises(self, asgi_client):
        from stopmotion_agent.models.media import SourceImage

        consumer = StreamConsumer(BASE_URL, client=asgi_client)

        with pytest.raises(GenerationRequestError) as excinfo:
            await consumer.generate(SourceImage(data=b"not an image", media_type="image/png"))

        assert excinfo.value.status_code == 400
        assert excinfo.value.message.startswith("Invalid image")

    @pytest.mark.asyncio
    async def test_stream_without_terminal_event(self, source_image):
        body = encode(PosesEvent(data="[]")) + b'{"type": "fra'
        client = httpx.AsyncClient(transport=static_transport(200, body))
        consumer = StreamConsumer(BASE_URL, client=client)

        assembler = await consumer.generate(source_image)

        assert not assembler.finished
        assert assembler.status == "Error: stream ended unexpectedly"

    @pytest.mark.asyncio
    async def test_stops_at_terminal_event(self, source_image):
        body = encode(CompleteEvent()) + encode(ErrorEvent(data="late"))
        client = httpx.AsyncClient(transport=static_transport(200, body))
        consumer = StreamConsumer(BASE_URL, client=client)

        assembler = await consumer.generate(source_image)

        assert assembler.succeeded
        assert assembler.error is None
        assert consumer.metrics.events_received == 1

    @pytest.mark.asyncio
    async def test_plain_text_error_body(self, source_image):
        client = httpx.AsyncClient(transport=static_transport(502, b"Bad Gateway"))
        consumer = StreamConsumer(BASE_URL, client=client)

        with pytest.raises(GenerationRequestError) as excinfo:
            await consumer.generate(source_image)

        assert excinfo.value.status_code == 502
        assert excinfo.value.message == "Bad Gateway"


class TestFetchSourceImage:

    @pytest.mark.asyncio
    async def test_media_type_from_header(self, png_bytes):
        transport = httpx.MockTransport(
            lambda request: httpx.Response(
                200,
                content=png_bytes,
                headers={"content-type": "image/png; charset=binary"},
            )
        )
        async with httpx.AsyncClient(transport=transport) as client:
            image = await fetch_source_image("https://cdn.example/a/cat?size=large", client=client)

        assert image.media_type == "image/png"
        assert image.filename == "cat"
        assert image.data == png_bytes

    @pytest.mark.asyncio
    async def test_falls_back_to_jpeg(self, png_bytes):
        transport = httpx.MockTransport(lambda request: httpx.Response(200, content=png_bytes))
        async with httpx.AsyncClient(transport=transport) as client:
            image = await fetch_source_image("https://cdn.example/photo", client=client)

        assert image.media_type == "image/jpeg"

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(404))
        async with httpx.AsyncClient(transport=transport) as client:
            with pytest.raises(httpx.HTTPStatusError):
                await fetch_source_image("https://cdn.example/missing.png", client=client)
