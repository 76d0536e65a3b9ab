"""
Stream Info Models
==================

Statistics snapshot carried by every session event.

Snapshot Contract:
    {
        "options": {"frame_rate": 10.0, "boundary": "...", ...},
        "directory": "./frames/clip",
        "frames_available": 120,
        "frame_count": 37,
        "content_bytes": 1048576,
        "stream_start": "2026-10-19T12:00:00Z",
        "stream_end": null,
        "elapsed_ms": 3600.0,
        "fps": 10.27
    }

Rules:
    - elapsed_ms runs to now while the session is live
    - elapsed_ms and fps are 0 before the stream starts
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from mjpeg_stream.config import StreamOptions


class StreamInfo(BaseModel):
    """
    Point-in-time statistics for one streaming session.

    Attributes:
        options: Options the session runs with
        directory: Frame directory
        frames_available: Number of listed frames (0 until listed)
        frame_count: Frames successfully sent
        content_bytes: Frame bytes successfully sent
        stream_start: When the first frame was scheduled
        stream_end: When the session ended
        elapsed_ms: Milliseconds between start and end (or now)
        fps: Achieved frames per second
    """

    options: StreamOptions
    directory: str
    frames_available: int = Field(default=0, ge=0)
    frame_count: int = Field(default=0, ge=0)
    content_bytes: int = Field(default=0, ge=0)
    stream_start: Optional[datetime] = None
    stream_end: Optional[datetime] = None
    elapsed_ms: float = Field(default=0.0, ge=0.0)
    fps: float = Field(default=0.0, ge=0.0)
