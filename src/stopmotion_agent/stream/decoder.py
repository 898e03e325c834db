"""
Stream Decoder
==============

Incremental decoder for the chunk protocol.

Bytes are fed as they arrive from the transport, in reads of any size.
The decoder keeps an accumulation buffer and emits every complete event
found in it; a partial suffix is kept for the next read.

Design Rules:
    - No assumption that an event arrives in one read (splits inside the
      delimiter, inside base64 data, or inside a multibyte UTF-8 character
      are all handled)
    - A malformed payload is logged and skipped, never fatal
    - Nothing is emitted after the terminal event
"""

import codecs
import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from stopmotion_agent.models.events import parse_event
from stopmotion_agent.stream.protocol import CHUNK_DELIMITER, Event


logger = logging.getLogger(__name__)


class StreamDecoderMetrics:
    """Metrics for StreamDecoder observability."""

    __slots__ = (
        "reads",
        "bytes_received",
        "events_decoded",
        "parse_errors",
        "ignored_after_terminal",
        "truncated",
    )

    def __init__(self) -> None:
        self.reads: int = 0
        self.bytes_received: int = 0
        self.events_decoded: int = 0
        self.parse_errors: int = 0
        self.ignored_after_terminal: int = 0
        self.truncated: bool = False

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "reads": self.reads,
            "bytes_received": self.bytes_received,
            "events_decoded": self.events_decoded,
            "parse_errors": self.parse_errors,
            "ignored_after_terminal": self.ignored_after_terminal,
            "truncated": self.truncated,
        }


class StreamDecoder:
    """
    Reassembles ProgressEvents from an arbitrarily fragmented byte stream.

    Example:
        decoder = StreamDecoder()
        async for chunk in response.aiter_bytes():
            for event in decoder.feed(chunk):
                handle(event)
            if decoder.finished:
                break
        decoder.close()
    """

    def __init__(self) -> None:
        self._utf8 = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer: str = ""
        self._terminal: Optional[Event] = None
        self.metrics = StreamDecoderMetrics()

    @property
    def finished(self) -> bool:
        """Whether a terminal event has been decoded."""
        return self._terminal is not None

    @property
    def terminal_event(self) -> Optional[Event]:
        return self._terminal

    @property
    def pending(self) -> int:
        """Characters buffered but not yet delimited."""
        return len(self._buffer)

    def feed(self, data: bytes) -> List[Event]:
        """
        Add bytes from one transport read.

        Returns:
            Complete events found, in stream order
        """
        self.metrics.reads += 1
        self.metrics.bytes_received += len(data)
        self._buffer += self._utf8.decode(data)
        return self._drain()

    def close(self) -> List[Event]:
        """
        Signal end of stream.

        Returns:
            Any final events. An undelimited trailing payload is reported
            as truncated and dropped.
        """
        self._buffer += self._utf8.decode(b"", final=True)
        events = self._drain()

        leftover = self._buffer.strip()
        if leftover:
            self.metrics.truncated = True
            logger.warning(
                f"Stream ended inside a chunk; dropped {len(leftover)} "
                f"undelimited characters"
            )
        self._buffer = ""
        return events

    def _drain(self) -> List[Event]:
        events: List[Event] = []
        while True:
            index = self._buffer.find(CHUNK_DELIMITER)
            if index < 0:
                break

            payload = self._buffer[:index]
            self._buffer = self._buffer[index + len(CHUNK_DELIMITER):]

            event = self._parse(payload)
            if event is None:
                continue

            if self._terminal is not None:
                self.metrics.ignored_after_terminal += 1
                logger.warning(
                    f"Ignoring {event.type} event after terminal "
                    f"{self._terminal.type} event"
                )
                continue

            self.metrics.events_decoded += 1
            events.append(event)
            if event.is_terminal:
                self._terminal = event

        return events

    def _parse(self, payload: str) -> Optional[Event]:
        line = payload.strip()
        if not line:
            return None

        try:
            data = json.loads(line)
        except (ValueError, RecursionError) as e:
            self.metrics.parse_errors += 1
            logger.warning(f"Failed to parse streaming chunk as JSON: {type(e).__name__}: {e}")
            return None

        try:
            return parse_event(data)
        except ValidationError as e:
            self.metrics.parse_errors += 1
            logger.warning(f"Skipping chunk with unknown shape: {e.error_count()} error(s)")
            return None
