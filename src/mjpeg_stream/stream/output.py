"""
Stream Output
=============

Writable output sinks for streaming sessions.

This module provides:
    - StreamOutput: The contract a session writes to
    - QueueOutput: Async-safe bounded chunk queue consumed by the HTTP layer

Design Rules:
    - Status and headers are set once, before any body bytes
    - Each write is one complete multipart chunk
    - Drops the OLDEST whole chunk on overflow, never a partial one
    - Nothing is accepted after close()
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


DisconnectCallback = Callable[[], None]


class StreamOutput:
    """
    Output sink contract for a StreamSession.

    Subclasses implement the transport. The session is the only writer.
    """

    def set_status(self, status_code: int) -> None:
        raise NotImplementedError

    def write_head(self, status_code: int, headers: Dict[str, str]) -> None:
        raise NotImplementedError

    def write(self, chunk: bytes) -> None:
        raise NotImplementedError

    def close(self) -> None:
        raise NotImplementedError

    def on_disconnect(self, callback: DisconnectCallback) -> None:
        """Register a callback invoked once when the client goes away."""
        raise NotImplementedError


# Marker enqueued by close(); never dropped
_END = object()


class QueueOutput(StreamOutput):
    """
    Output backed by a bounded asyncio queue.

    The session writes chunks without blocking; the HTTP response
    iterates ``body()``. If the client reads slower than the session
    writes, the oldest queued chunk is dropped.

    Attributes:
        status_code: Response status (200 until set otherwise)
        headers: Response headers, set by write_head()
        dropped_count: Chunks dropped due to overflow

    Drops are invisible to the session: it counts every chunk it wrote.

    Example:
        output = QueueOutput(maxsize=32)
        await session.stream(output)
        return StreamingResponse(output.body(), headers=output.headers)
    """

    def __init__(self, maxsize: int = 32) -> None:
        """
        Initialize output.

        Args:
            maxsize: Maximum queued chunks. Must be >= 1.
        """
        if maxsize < 1:
            raise ValueError("maxsize must be >= 1")

        self._maxsize = maxsize
        # One extra slot so the end marker always fits
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=maxsize + 1)
        self._callbacks: List[DisconnectCallback] = []

        self.status_code: int = 200
        self.headers: Dict[str, str] = {}
        self._headers_sent = False
        self._closed = False
        self._disconnected = False

        self._dropped_count: int = 0
        self._bytes_written: int = 0

    @property
    def headers_sent(self) -> bool:
        return self._headers_sent

    @property
    def disconnected(self) -> bool:
        return self._disconnected

    @property
    def dropped_count(self) -> int:
        """Number of chunks dropped due to overflow."""
        return self._dropped_count

    @property
    def bytes_written(self) -> int:
        """Total bytes accepted by write()."""
        return self._bytes_written

    def set_status(self, status_code: int) -> None:
        if self._headers_sent:
            logger.debug(f"Ignoring status {status_code}, headers already sent")
            return
        self.status_code = status_code

    def write_head(self, status_code: int, headers: Dict[str, str]) -> None:
        if self._headers_sent:
            raise RuntimeError("headers already sent")
        self.status_code = status_code
        self.headers = dict(headers)
        self._headers_sent = True

    def write(self, chunk: bytes) -> None:
        if self._closed:
            logger.debug("Write after close ignored")
            return
        self._bytes_written += len(chunk)

        if self._queue.qsize() >= self._maxsize:
            try:
                self._queue.get_nowait()
                self._dropped_count += 1
                logger.warning(
                    f"Output buffer full, dropped oldest chunk. "
                    f"Total dropped: {self._dropped_count}"
                )
            except asyncio.QueueEmpty:
                pass

        self._queue.put_nowait(chunk)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._queue.put_nowait(_END)

    def on_disconnect(self, callback: DisconnectCallback) -> None:
        self._callbacks.append(callback)

    def disconnect(self) -> None:
        """
        Signal that the client went away.

        Fires registered callbacks once. Has no effect after close().
        """
        if self._disconnected or self._closed:
            return
        self._disconnected = True
        logger.info("Client disconnected")
        for callback in self._callbacks:
            try:
                callback()
            except Exception:
                logger.exception("Disconnect callback failed")

    async def body(self) -> AsyncIterator[bytes]:
        """
        Yield queued chunks until the output is closed.

        Leaving the iterator early (client disconnect, task
        cancellation) signals disconnect().
        """
        try:
            while True:
                chunk = await self._queue.get()
                if chunk is _END:
                    return
                yield chunk
        finally:
            self.disconnect()

    def metrics(self) -> dict:
        """Output metrics for observability."""
        return {
            "queued": self._queue.qsize(),
            "maxsize": self._maxsize,
            "dropped_count": self._dropped_count,
            "bytes_written": self._bytes_written,
        }
