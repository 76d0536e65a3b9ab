"""
Test Configuration
==================

Pytest fixtures and test doubles for mjpeg-stream.
"""

import asyncio
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

from mjpeg_stream.stream.errors import FrameReadError
from mjpeg_stream.stream.events import EventSink
from mjpeg_stream.stream.output import StreamOutput
from mjpeg_stream.stream.source import FrameSource


class RecordingOutput(StreamOutput):
    """Output that records everything the session does to it."""

    def __init__(self) -> None:
        self.status_code: Optional[int] = None
        self.headers: Optional[Dict[str, str]] = None
        self.head_count = 0
        self.chunks: List[bytes] = []
        self.close_count = 0
        self.callbacks = []

    def set_status(self, status_code: int) -> None:
        if self.headers is None:
            self.status_code = status_code

    def write_head(self, status_code: int, headers: Dict[str, str]) -> None:
        self.head_count += 1
        self.status_code = status_code
        self.headers = dict(headers)

    def write(self, chunk: bytes) -> None:
        self.chunks.append(chunk)

    def close(self) -> None:
        self.close_count += 1

    def on_disconnect(self, callback) -> None:
        self.callbacks.append(callback)

    def disconnect(self) -> None:
        for callback in self.callbacks:
            callback()


class RecordingSink(EventSink):
    """Event sink that keeps every event in order."""

    def __init__(self) -> None:
        self.events: List[Tuple[str, object]] = []

    def on_start(self, info) -> None:
        self.events.append(("start", info))

    def on_frame(self, record, info) -> None:
        self.events.append(("frame", record))

    def on_error(self, error, info) -> None:
        self.events.append(("error", error))

    def on_end(self, info) -> None:
        self.events.append(("end", info))

    def names(self) -> List[str]:
        return [name for name, _ in self.events]

    def of(self, name: str) -> list:
        return [payload for event, payload in self.events if event == name]


class FailingSource(FrameSource):
    """FrameSource whose reads fail for the given frame names."""

    def __init__(self, failing: set) -> None:
        self.failing = set(failing)

    async def read_frame(self, directory, name: str) -> bytes:
        if name in self.failing:
            raise FrameReadError(f"cannot read frame {name}")
        return await super().read_frame(directory, name)


class SlowListingSource(FrameSource):
    """FrameSource whose listing takes `delay` seconds."""

    def __init__(self, delay: float) -> None:
        self.delay = delay

    async def list_frames(self, directory, direction: str = "forward") -> List[str]:
        await asyncio.sleep(self.delay)
        return await super().list_frames(directory, direction)


@pytest.fixture
def make_frames(tmp_path: Path):
    """Factory creating a frame directory from a {name: bytes} mapping."""

    def _make(frames: Dict[str, bytes], name: str = "clip") -> Path:
        directory = tmp_path / name
        directory.mkdir()
        for filename, content in frames.items():
            (directory / filename).write_bytes(content)
        return directory

    return _make


@pytest.fixture
def output() -> RecordingOutput:
    return RecordingOutput()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def failing_source():
    """Factory for a FrameSource that fails on the given frame names."""
    return FailingSource


@pytest.fixture
def slow_source():
    """Factory for a FrameSource with a slow listing."""
    return SlowListingSource
