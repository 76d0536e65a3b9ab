"""
Stream Session
==============

Per-connection MJPEG streaming state machine.

This module provides the StreamSession class which:
    - Lists the frame directory once at stream start
    - Writes the response headers and one multipart part per tick
    - Reschedules itself every 1000/frame_rate ms on the event loop
    - Ends on disconnect, time limit, end of frames (loop=False) or error
    - Reports lifecycle events to an EventSink

States:
    IDLE -> STARTING -> RUNNING -> ENDED
    IDLE -> STARTING -> ENDED      (missing, unreadable or empty directory)

Design Rules:
    - One session per connection, never restarted
    - At most one pending tick and one pending time-limit call
    - end() is idempotent and cancels everything before returning
    - No writes happen after end() returns
"""

import asyncio
import logging
import os
import time
from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional, Union

from mjpeg_stream.config import FrameErrorPolicy, StreamOptions
from mjpeg_stream.models.info import StreamInfo
from mjpeg_stream.stream.errors import (
    DirectoryReadError,
    EmptyFrameSetError,
    FrameReadError,
)
from mjpeg_stream.stream.events import EventSink
from mjpeg_stream.stream.frame import FrameRecord
from mjpeg_stream.stream.output import StreamOutput
from mjpeg_stream.stream.protocol import encode_part, stream_headers
from mjpeg_stream.stream.scheduler import DelayedCall
from mjpeg_stream.stream.source import FrameSource


logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    """
    Lifecycle states of a StreamSession.

    Attributes:
        IDLE: Constructed, stream() not called yet
        STARTING: Listing frames, no headers written
        RUNNING: Headers written, frames ticking
        ENDED: Terminal; output closed and timers cancelled
    """

    IDLE = "idle"
    STARTING = "starting"
    RUNNING = "running"
    ENDED = "ended"


class StreamSession:
    """
    Streams the frames of one directory to one output.

    Attributes:
        directory: Frame directory
        options: Immutable stream options
        files: Ordered frame names, fixed at stream start
        frame_index: Cursor into files (frame_count mod len(files))
        frame_count: Frames successfully sent
        content_bytes: Frame bytes successfully sent
        error: Terminal error, if the session ended with one

    Example:
        session = StreamSession("./frames/clip", StreamOptions(loop=False))
        await session.stream(output)
        await session.wait()
        print(session.get_info().fps)
    """

    def __init__(
        self,
        directory: Union[str, os.PathLike],
        options: Optional[StreamOptions] = None,
        events: Optional[EventSink] = None,
        source: Optional[FrameSource] = None,
    ) -> None:
        """
        Initialize session.

        Args:
            directory: Directory holding the frame files
            options: Stream options (defaults if None)
            events: Lifecycle observer (no-op if None)
            source: Frame source (a fresh FrameSource if None)
        """
        self.directory = directory
        self.options = options or StreamOptions()
        self.events = events or EventSink()
        self.source = source or FrameSource()
        self.headers = stream_headers(self.options.boundary)

        # State
        self.files: List[str] = []
        self.frames_available: int = 0
        self.frame_index: int = 0
        self.frame_count: int = 0
        self.content_bytes: int = 0
        self.stream_start: Optional[datetime] = None
        self.stream_end: Optional[datetime] = None
        self.error: Optional[Exception] = None

        self._state = SessionState.IDLE
        self._output: Optional[StreamOutput] = None
        self._tick_call: Optional[DelayedCall] = None
        self._limit_call: Optional[DelayedCall] = None
        self._started_at: Optional[float] = None
        self._ended_at: Optional[float] = None
        self._ended = asyncio.Event()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        """Whether frames are currently being streamed."""
        return self._state is SessionState.RUNNING

    def get_info(self) -> StreamInfo:
        """
        Snapshot of the session statistics.

        Elapsed time runs to now while the session is live.
        """
        elapsed_ms = 0.0
        if self._started_at is not None:
            until = self._ended_at if self._ended_at is not None else time.monotonic()
            elapsed_ms = max(0.0, (until - self._started_at) * 1000.0)

        fps = self.frame_count / (elapsed_ms / 1000.0) if elapsed_ms > 0 else 0.0

        return StreamInfo(
            options=self.options,
            directory=str(self.directory),
            frames_available=self.frames_available,
            frame_count=self.frame_count,
            content_bytes=self.content_bytes,
            stream_start=self.stream_start,
            stream_end=self.stream_end,
            elapsed_ms=elapsed_ms,
            fps=fps,
        )

    async def stream(self, output: StreamOutput) -> None:
        """
        Start streaming to the output.

        Returns once the first frame has been written, or once the
        session failed to start. Frames keep ticking in the background;
        use wait() to block until the session ends.

        Raises:
            RuntimeError: If the session was already started
        """
        if self._state is not SessionState.IDLE:
            raise RuntimeError(f"session cannot stream from state {self._state.value}")

        self._output = output
        self._state = SessionState.STARTING
        output.on_disconnect(self._on_disconnect)

        if self.options.time_limit_ms > 0:
            self._limit_call = DelayedCall(
                self.options.time_limit_ms / 1000.0,
                self._on_time_limit,
                name="time_limit",
            )

        try:
            files = await self.source.list_frames(self.directory, self.options.direction)
        except DirectoryReadError as e:
            self.end(e)
            return
        except OSError as e:
            self.end(DirectoryReadError(str(e)))
            return

        if self._state is not SessionState.STARTING:
            # Disconnected or timed out while listing
            return

        if not files:
            self.end(EmptyFrameSetError(f"no frame images found in {self.directory}"))
            return

        self.files = files
        self.frames_available = len(files)
        self._state = SessionState.RUNNING
        self.stream_start = datetime.now(timezone.utc)
        self._started_at = time.monotonic()

        output.write_head(200, self.headers)
        self._notify("on_start", self.get_info())

        await self._tick()

    async def wait(self) -> None:
        """Block until the session has ended."""
        await self._ended.wait()

    def end(self, error: Optional[Exception] = None) -> None:
        """
        Finalize the session. Idempotent.

        Args:
            error: Terminal error; its status_code is applied to the
                output if headers are not sent yet
        """
        if self._state in (SessionState.IDLE, SessionState.ENDED):
            return
        self._state = SessionState.ENDED

        if error is not None:
            self.error = error
            self._output.set_status(getattr(error, "status_code", 500))
            self._notify("on_error", error, self.get_info())

        for call in (self._tick_call, self._limit_call):
            if call is not None:
                call.cancel()
        self._tick_call = None
        self._limit_call = None

        try:
            self._output.close()
        except Exception as e:
            logger.warning(f"Error closing output: {e}")

        self.stream_end = datetime.now(timezone.utc)
        if self._started_at is not None:
            self._ended_at = time.monotonic()
        self._ended.set()

        self._notify("on_end", self.get_info())

    async def _tick(self) -> None:
        """Send the frame under the cursor and schedule the next tick."""
        if self._state is not SessionState.RUNNING:
            return

        filename = self.files[self.frame_index]
        try:
            content = await self.source.read_frame(self.directory, filename)
        except FrameReadError as e:
            self._on_frame_error(e)
            return

        if self._state is not SessionState.RUNNING:
            return

        self._output.write(encode_part(self.options.boundary, content))
        self.frame_count += 1
        self.content_bytes += len(content)

        record = FrameRecord(
            filename=filename,
            frame_index=self.frame_index,
            frame_count=self.frame_count,
            size=len(content),
        )
        self._notify("on_frame", record, self.get_info())

        self.frame_index = self.frame_count % len(self.files)

        if self._state is not SessionState.RUNNING:
            return

        if self.frame_index == 0 and not self.options.loop:
            logger.debug(f"All {self.frames_available} frames sent, ending stream")
            self.end()
            return

        self._tick_call = DelayedCall(
            self.options.delay_ms / 1000.0,
            self._tick,
            name="frame_tick",
        )

    def _on_frame_error(self, error: FrameReadError) -> None:
        if self.options.frame_error_policy is FrameErrorPolicy.STALL:
            logger.warning(f"Frame read failed, stream stalled at index {self.frame_index}")
            self._notify("on_error", error, self.get_info())
            return
        self.end(error)

    def _on_disconnect(self) -> None:
        if self._state is not SessionState.ENDED:
            logger.debug(f"Output disconnected after {self.frame_count} frames")
        self.end()

    def _on_time_limit(self) -> None:
        logger.debug(f"Time limit of {self.options.time_limit_ms:.0f}ms reached")
        self.end()

    def _notify(self, method: str, *args) -> None:
        try:
            getattr(self.events, method)(*args)
        except Exception:
            logger.exception(f"Event sink {method} failed")

    def __repr__(self) -> str:
        return (
            f"StreamSession(directory={str(self.directory)!r}, "
            f"state={self._state.value}, "
            f"frame_count={self.frame_count})"
        )
