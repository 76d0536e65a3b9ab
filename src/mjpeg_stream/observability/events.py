"""
Event Sinks
===========

Concrete observers for session lifecycle events.

This module provides:
    - LoggingEventSink: Logs each event through the logging module
    - CompositeEventSink: Fans each event out to several sinks
"""

import logging
from typing import Iterable, List

from mjpeg_stream.models.info import StreamInfo
from mjpeg_stream.stream.errors import StreamError
from mjpeg_stream.stream.events import EventSink
from mjpeg_stream.stream.frame import FrameRecord


logger = logging.getLogger(__name__)


class LoggingEventSink(EventSink):
    """Logs session events through the standard logging module."""

    def __init__(self, name: str = "mjpeg_stream.session") -> None:
        self._logger = logging.getLogger(name)

    def on_start(self, info: StreamInfo) -> None:
        self._logger.info(
            f"Stream started: dir={info.directory}, "
            f"frames={info.frames_available}, "
            f"fps={info.options.frame_rate}, loop={info.options.loop}"
        )

    def on_frame(self, record: FrameRecord, info: StreamInfo) -> None:
        self._logger.debug(
            f"Frame sent: {record.filename} "
            f"(index={record.frame_index}, count={record.frame_count}, size={record.size})"
        )

    def on_error(self, error: Exception, info: StreamInfo) -> None:
        status = getattr(error, "status_code", 500)
        if isinstance(error, StreamError) and status < 500:
            self._logger.warning(f"Stream error ({status}): {error}")
        else:
            self._logger.error(f"Stream error ({status}): {error}")

    def on_end(self, info: StreamInfo) -> None:
        self._logger.info(
            f"Stream ended: dir={info.directory}, frames={info.frame_count}, "
            f"bytes={info.content_bytes}, elapsed={info.elapsed_ms:.0f}ms, "
            f"fps={info.fps:.2f}"
        )


class CompositeEventSink(EventSink):
    """Fans each event out to several sinks, isolating their failures."""

    def __init__(self, sinks: Iterable[EventSink]) -> None:
        self.sinks: List[EventSink] = list(sinks)

    def on_start(self, info: StreamInfo) -> None:
        self._dispatch("on_start", info)

    def on_frame(self, record: FrameRecord, info: StreamInfo) -> None:
        self._dispatch("on_frame", record, info)

    def on_error(self, error: Exception, info: StreamInfo) -> None:
        self._dispatch("on_error", error, info)

    def on_end(self, info: StreamInfo) -> None:
        self._dispatch("on_end", info)

    def _dispatch(self, method: str, *args) -> None:
        for sink in self.sinks:
            try:
                getattr(sink, method)(*args)
            except Exception:
                logger.exception(f"Event sink {type(sink).__name__}.{method} failed")
