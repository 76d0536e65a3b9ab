"""
Stream Statistics
=================

Aggregate counters across all sessions served by the process.

Derived ONLY from session events; the collector never touches a
session directly.
"""

import logging

from mjpeg_stream.models.info import StreamInfo
from mjpeg_stream.stream.events import EventSink
from mjpeg_stream.stream.frame import FrameRecord


logger = logging.getLogger(__name__)


class StreamStatsCollector(EventSink):
    """
    Event sink that maintains process-wide streaming metrics.

    A session that ends without ever starting counts as failed. Frame
    counters reflect frames written by sessions; chunks an output later
    dropped for a slow client are counted separately in dropped_chunks.
    """

    def __init__(self) -> None:
        self.active_sessions: int = 0
        self.sessions_started: int = 0
        self.sessions_failed: int = 0
        self.sessions_completed: int = 0
        self.total_frames: int = 0
        self.total_bytes: int = 0
        self.frame_errors: int = 0
        self.dropped_chunks: int = 0

    def on_start(self, info: StreamInfo) -> None:
        self.sessions_started += 1
        self.active_sessions += 1

    def on_frame(self, record: FrameRecord, info: StreamInfo) -> None:
        self.total_frames += 1
        self.total_bytes += record.size

    def on_error(self, error: Exception, info: StreamInfo) -> None:
        if info.stream_start is not None:
            self.frame_errors += 1

    def on_end(self, info: StreamInfo) -> None:
        if info.stream_start is None:
            self.sessions_failed += 1
            return
        self.active_sessions = max(0, self.active_sessions - 1)
        self.sessions_completed += 1

    def record_dropped(self, count: int) -> None:
        """Add chunks an ended session's output dropped for a slow client."""
        self.dropped_chunks += count

    def to_dict(self) -> dict:
        """Export metrics as dict."""
        return {
            "active_sessions": self.active_sessions,
            "sessions_started": self.sessions_started,
            "sessions_failed": self.sessions_failed,
            "sessions_completed": self.sessions_completed,
            "total_frames": self.total_frames,
            "total_bytes": self.total_bytes,
            "frame_errors": self.frame_errors,
        }
