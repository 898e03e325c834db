#!/usr/bin/env python3
"""
Generate Animation Script
=========================

Standalone client for a running stop-motion server.

This script:
    1. Loads a source image from a local path or downloads it from a URL
    2. Uploads it to /api/stop-motion
    3. Logs progress as events stream in
    4. Optionally writes every received frame to a directory

Prerequisites:
    - The server must be running (python -m stopmotion_agent.main)
    - Install the package: pip install -e .

Usage:
    python scripts/generate_animation.py cat.png
    python scripts/generate_animation.py https://example.com/cat.jpg --output frames/
    python scripts/generate_animation.py cat.png --url http://localhost:8002 --fps 8
"""

import argparse
import asyncio
import base64
import logging
import mimetypes
import sys
from pathlib import Path
from typing import Optional

from stopmotion_agent.assembly import ClientAssembler
from stopmotion_agent.config import settings
from stopmotion_agent.generation import fetch_source_image, load_source_image
from stopmotion_agent.models.events import FrameEvent
from stopmotion_agent.stream.consumer import GenerationRequestError, StreamConsumer


logger = logging.getLogger("generate_animation")


async def on_event(event, assembler: ClientAssembler) -> None:
    """Log progress after each event."""
    if isinstance(event, FrameEvent) and not event.has_image:
        logger.info(f"Note: {event.data.content}")
    logger.info(assembler.status)


def write_frames(assembler: ClientAssembler, output_dir: Path) -> int:
    """Write the animation's frames as numbered image files."""
    output_dir.mkdir(parents=True, exist_ok=True)
    for number, frame in enumerate(assembler.animation, start=1):
        _, payload = frame.data_url.split(",", 1)
        extension = mimetypes.guess_extension(frame.media_type) or ".bin"
        path = output_dir / f"frame_{number:03d}{extension}"
        path.write_bytes(base64.b64decode(payload))
        logger.info(f"Wrote {path}")
    return len(assembler.animation)


async def run(
    source: str,
    base_url: str,
    frame_rate: int,
    output_dir: Optional[Path],
) -> int:
    """
    Run one generation.

    Returns:
        Process exit code
    """
    logger.info("=" * 60)
    logger.info("Stop-Motion Generation")
    logger.info("=" * 60)
    logger.info(f"Server: {base_url}")
    logger.info(f"Source: {source}")
    logger.info("=" * 60)

    if source.startswith(("http://", "https://")):
        image = await fetch_source_image(source)
    else:
        image = load_source_image(source)

    consumer = StreamConsumer(
        base_url,
        frame_rate=frame_rate,
        read_timeout=settings.client.read_timeout_seconds,
    )

    try:
        assembler = await consumer.generate(image, on_event=on_event)
    except GenerationRequestError as e:
        logger.error(f"Server rejected the request ({e.status_code}): {e.message}")
        return 2

    if assembler.poses_output:
        logger.info(f"Planned poses: {assembler.poses_output}")

    animation = assembler.animation
    logger.info("=" * 60)
    logger.info("SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Status: {assembler.status}")
    logger.info(f"Frames: {len(animation)}")
    logger.info(f"Duration at {animation.frame_rate} fps: {animation.duration_seconds:.2f}s")
    logger.info(f"Client metrics: {consumer.metrics.to_dict()}")

    if output_dir is not None and len(animation):
        write_frames(assembler, output_dir)

    return 0 if assembler.succeeded else 1


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Generate a stop-motion animation from one image"
    )
    parser.add_argument(
        "source",
        help="Local image path or http(s) URL",
    )
    parser.add_argument(
        "--url",
        default=settings.client.base_url,
        help=f"Server base URL (default: {settings.client.base_url})",
    )
    parser.add_argument(
        "--fps",
        type=int,
        default=settings.client.frame_rate,
        help=f"Playback frame rate (default: {settings.client.frame_rate})",
    )
    parser.add_argument(
        "--output",
        type=Path,
        default=None,
        help="Directory to write received frames to",
    )

    args = parser.parse_args()

    try:
        exit_code = asyncio.run(run(args.source, args.url, args.fps, args.output))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        exit_code = 130

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
