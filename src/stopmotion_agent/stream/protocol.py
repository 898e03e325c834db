"""
Chunk Protocol
==============

Wire encoding of ProgressEvents onto a single chunked HTTP response.

Wire Format:
    <JSON object>\\n---CHUNK_END---\\n<JSON object>\\n---CHUNK_END---\\n...

    Encoding is UTF-8. The JSON object is compact, single-line output, so
    every newline inside string values is escaped as ``\\n``. The delimiter
    begins with a literal newline byte and therefore cannot occur inside a
    payload. Image bytes travel as base64 text.

Design Rules:
    - One event per chunk, flushed as soon as it is produced
    - encode() verifies the delimiter invariant on every payload
"""

import logging
from typing import AsyncIterable, AsyncIterator, Union

from stopmotion_agent.models.events import (
    CompleteEvent,
    ErrorEvent,
    FrameEvent,
    PosesEvent,
)


logger = logging.getLogger(__name__)


CHUNK_DELIMITER = "\n---CHUNK_END---\n"
CHUNK_DELIMITER_BYTES = CHUNK_DELIMITER.encode("utf-8")

STREAM_MEDIA_TYPE = "application/json"

Event = Union[PosesEvent, FrameEvent, CompleteEvent, ErrorEvent]


class ProtocolError(Exception):
    """Raised when an event cannot be framed safely."""
    pass


def encode_payload(event: Event) -> str:
    """
    Serialize an event to its single-line JSON payload (no delimiter).

    Raises:
        ProtocolError: If the payload would contain the chunk delimiter
    """
    payload = event.model_dump_json(by_alias=True)
    if "\n" in payload or CHUNK_DELIMITER in payload:
        raise ProtocolError(f"Encoded {event.type} event contains a line break")
    return payload


def encode(event: Event) -> bytes:
    """
    Encode one event as a complete, self-delimited chunk.

    Returns:
        UTF-8 bytes: payload followed by the chunk delimiter
    """
    return (encode_payload(event) + CHUNK_DELIMITER).encode("utf-8")


async def encode_stream(events: AsyncIterable[Event]) -> AsyncIterator[bytes]:
    """
    Encode an async event sequence chunk by chunk.

    Each event is yielded as soon as it arrives; nothing is batched.
    """
    async for event in events:
        chunk = encode(event)
        logger.debug(f"Encoded {event.type} chunk ({len(chunk)} bytes)")
        yield chunk
