"""
Stream Module
=============

Chunked streaming protocol between the orchestrator and the client.

This module provides:
    - encode / encode_stream: ProgressEvent → delimited UTF-8 chunks
    - StreamDecoder: Incremental, fragmentation-safe chunk decoder
    - Image decoding helpers for upload validation and frame probing

The HTTP client lives in ``stopmotion_agent.stream.consumer`` and is not
re-exported here, because it depends on the assembly package, which in
turn uses the image decoder.

Example:
    from stopmotion_agent.stream import StreamDecoder, encode

    decoder = StreamDecoder()
    events = decoder.feed(encode(event))
"""

from stopmotion_agent.stream.protocol import (
    CHUNK_DELIMITER,
    CHUNK_DELIMITER_BYTES,
    STREAM_MEDIA_TYPE,
    ProtocolError,
    encode,
    encode_payload,
    encode_stream,
)
from stopmotion_agent.stream.decoder import StreamDecoder, StreamDecoderMetrics
from stopmotion_agent.stream.image_decoder import (
    ImageDecodeError,
    decode_base64,
    decode_image,
    read_dimensions,
    validate_source_image,
)


__all__ = [
    "CHUNK_DELIMITER",
    "CHUNK_DELIMITER_BYTES",
    "STREAM_MEDIA_TYPE",
    "ProtocolError",
    "encode",
    "encode_payload",
    "encode_stream",
    "StreamDecoder",
    "StreamDecoderMetrics",
    "ImageDecodeError",
    "decode_base64",
    "decode_image",
    "read_dimensions",
    "validate_source_image",
]
