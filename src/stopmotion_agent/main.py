"""
Stop-Motion Agent Main Application
==================================

FastAPI entry point for the stop-motion generation service.

Endpoints:
    GET  /                - Service information
    GET  /health          - Liveness probe (is process alive?)
    GET  /metrics         - Generation metrics
    POST /api/stop-motion - Upload one image, stream progress events back
"""

import logging
import os
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from fastapi import Depends, FastAPI, File, Request, UploadFile
from fastapi.responses import JSONResponse, StreamingResponse
from starlette.datastructures import UploadFile as StarletteUploadFile

from stopmotion_agent import __version__
from stopmotion_agent.agent import GenerationGraph
from stopmotion_agent.config import settings
from stopmotion_agent.generation import create_generation_backends, guess_media_type
from stopmotion_agent.models.media import SourceImage
from stopmotion_agent.storage import MediaStore, NullMediaStore, create_media_store
from stopmotion_agent.stream import (
    STREAM_MEDIA_TYPE,
    ImageDecodeError,
    encode_stream,
    validate_source_image,
)


logger = logging.getLogger(__name__)


# =============================================================================
# Global State
# =============================================================================

_generation_graph: Optional[GenerationGraph] = None
_media_store: Optional[MediaStore] = None
_startup_time: float = time.time()

# Request counters outside the orchestrator
_rejected_uploads: int = 0
_storage_errors: int = 0


# =============================================================================
# Getters (FastAPI dependencies)
# =============================================================================

def get_generation_graph() -> GenerationGraph:
    if _generation_graph is None:
        raise RuntimeError("Generation graph not initialized")
    return _generation_graph


def get_media_store() -> MediaStore:
    return _media_store if _media_store is not None else NullMediaStore()


# =============================================================================
# Factories
# =============================================================================

def create_generation_graph() -> GenerationGraph:
    """
    Create the orchestrator from settings.

    Fails fast if the Gemini backend is requested without an API key.
    """
    planner, renderer = create_generation_backends(
        settings.generation.backend,
        api_key=settings.gemini.api_key,
        planner_model=settings.gemini.planner_model,
        renderer_model=settings.gemini.renderer_model,
    )
    return GenerationGraph(
        planner=planner,
        renderer=renderer,
        pose_count=settings.generation.pose_count,
        frame_failure_policy=settings.generation.frame_failure_policy,
        strict_pose_parsing=settings.generation.strict_pose_parsing,
        max_duration_seconds=settings.generation.max_duration_seconds,
    )


# =============================================================================
# Lifespan Management
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Application lifespan manager."""
    global _generation_graph, _media_store, _startup_time

    _startup_time = time.time()
    logger.info(f"Starting {settings.agent.name} {settings.agent.version}")

    port = int(os.environ.get("PORT", settings.server.port))
    logger.info(f"Configured port: {port}")

    _generation_graph = create_generation_graph()
    _media_store = create_media_store(
        settings.storage.backend,
        settings.storage.directory,
    )

    logger.info(
        f"Generation backend: {settings.generation.backend}, "
        f"storage: {settings.storage.backend}"
    )

    yield

    logger.info("Shutting down")
    _generation_graph = None
    _media_store = None
    logger.info("Shutdown complete")


# =============================================================================
# FastAPI Application
# =============================================================================

app = FastAPI(
    title="StopMotionAgent",
    description="Streams a stop-motion animation generated from one image",
    version=__version__,
    lifespan=lifespan,
)


def _error(message: str, status_code: int = 400) -> JSONResponse:
    global _rejected_uploads
    _rejected_uploads += 1
    logger.warning(f"Rejected generation request ({status_code}): {message}")
    return JSONResponse({"error": message}, status_code=status_code)


# =============================================================================
# HTTP Endpoints
# =============================================================================

@app.get("/")
async def root() -> JSONResponse:
    """Service information endpoint."""
    return JSONResponse({
        "service": "StopMotionAgent",
        "version": settings.agent.version,
        "name": settings.agent.name,
        "status": "running",
        "generation_backend": settings.generation.backend,
        "pose_count": settings.generation.pose_count,
    })


@app.get("/health")
async def health() -> JSONResponse:
    """
    Liveness probe - is the process alive?

    Always returns 200 if the service is running.
    """
    return JSONResponse({
        "status": "healthy",
        "uptime_seconds": round(time.time() - _startup_time, 1),
    })


@app.get("/metrics")
async def metrics(
    graph: GenerationGraph = Depends(get_generation_graph),
) -> JSONResponse:
    """Detailed metrics for observability."""
    return JSONResponse({
        "uptime_seconds": round(time.time() - _startup_time, 1),
        "generation_backend": settings.generation.backend,
        "rejected_uploads": _rejected_uploads,
        "storage_errors": _storage_errors,
        **graph.metrics.to_dict(),
    })


@app.post("/api/stop-motion")
async def stop_motion(
    request: Request,
    image: Union[UploadFile, str, None] = File(None),
    graph: GenerationGraph = Depends(get_generation_graph),
    store: MediaStore = Depends(get_media_store),
):
    """
    Generate a stop-motion animation from one uploaded image.

    Preconditions are checked before the stream opens and answered with a
    plain JSON error. After that, every outcome (including failures) is
    reported inside the stream.
    """
    global _storage_errors

    # A plain form value under "image" carries no file.
    if not isinstance(image, StarletteUploadFile):
        return _error("No image provided")

    max_bytes = settings.upload.max_bytes
    data = await image.read(max_bytes + 1)
    if not data:
        return _error("No image provided")
    if len(data) > max_bytes:
        return _error(f"Image exceeds {max_bytes} bytes", status_code=413)

    source = SourceImage(
        data=data,
        media_type=guess_media_type(image.filename, image.content_type),
        filename=image.filename,
    )

    try:
        height, width = validate_source_image(source)
    except ImageDecodeError as e:
        return _error(f"Invalid image: {e}")

    logger.info(f"Accepted upload {source!r} ({width}x{height})")

    try:
        url = await store.store(source)
    except Exception as e:
        _storage_errors += 1
        logger.error(f"Failed to store source image: {e}")
    else:
        if url:
            logger.info(f"Source image stored at {url}")

    events = graph.orchestrate(source, is_disconnected=request.is_disconnected)

    return StreamingResponse(
        encode_stream(events),
        media_type=STREAM_MEDIA_TYPE,
        headers={
            "Cache-Control": "no-cache",
            "X-Accel-Buffering": "no",
        },
    )


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    # Cloud Run uses PORT env var
    port = int(os.environ.get("PORT", settings.server.port))

    uvicorn.run(
        "stopmotion_agent.main:app",
        host=settings.server.host,
        port=port,
        reload=False,
    )
