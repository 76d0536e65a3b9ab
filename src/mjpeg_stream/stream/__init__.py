"""
Stream Module
=============

MJPEG streaming core.

This module provides:
    - FrameSource: Lists and reads frame files from a directory
    - encode_part / stream_headers: multipart/x-mixed-replace framing
    - StreamOutput / QueueOutput: Output sinks a session writes to
    - EventSink: Observer interface for session lifecycle events
    - StreamSession: Per-connection streaming state machine

Example:
    from mjpeg_stream.stream import QueueOutput, StreamSession

    output = QueueOutput(maxsize=32)
    session = StreamSession("./frames/clip")
    await session.stream(output)

    async for chunk in output.body():
        send(chunk)
"""

from mjpeg_stream.stream.errors import (
    StreamError,
    DirectoryReadError,
    EmptyFrameSetError,
    FrameReadError,
)
from mjpeg_stream.stream.frame import FrameRecord
from mjpeg_stream.stream.source import FrameSource, sort_frames
from mjpeg_stream.stream.protocol import encode_part, stream_headers
from mjpeg_stream.stream.output import StreamOutput, QueueOutput
from mjpeg_stream.stream.scheduler import DelayedCall
from mjpeg_stream.stream.events import EventSink
from mjpeg_stream.stream.session import SessionState, StreamSession


__all__ = [
    "StreamError",
    "DirectoryReadError",
    "EmptyFrameSetError",
    "FrameReadError",
    "FrameRecord",
    "FrameSource",
    "sort_frames",
    "encode_part",
    "stream_headers",
    "StreamOutput",
    "QueueOutput",
    "DelayedCall",
    "EventSink",
    "SessionState",
    "StreamSession",
]
