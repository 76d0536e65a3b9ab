"""
Frame Source
============

Directory-backed frame listing and reading.

The FrameSource holds no mutable state, so a single instance can be
shared by every concurrent session. File system calls run in a worker
thread via ``asyncio.to_thread`` so they never block the event loop.

Ordering:
    Frames are sorted lexicographically by file name.
    ``forward`` yields DESCENDING order, ``reverse`` yields ASCENDING.
    The naming is kept for compatibility with existing clients.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import List, Union

from mjpeg_stream.stream.errors import DirectoryReadError, FrameReadError


logger = logging.getLogger(__name__)


PathLike = Union[str, os.PathLike]


def sort_frames(names: List[str], direction: str = "forward") -> List[str]:
    """
    Order frame names for the given direction.

    Args:
        names: Unordered frame names
        direction: 'forward' (descending) or 'reverse' (ascending)

    Returns:
        New sorted list
    """
    if direction not in ("forward", "reverse"):
        raise ValueError(f"Unknown direction: {direction}")
    return sorted(names, reverse=(direction == "forward"))


class FrameSource:
    """
    Lists and reads frame files from a directory.

    Example:
        source = FrameSource()
        files = await source.list_frames("./frames/clip", "forward")
        content = await source.read_frame("./frames/clip", files[0])
    """

    async def list_frames(self, directory: PathLike, direction: str = "forward") -> List[str]:
        """
        List frame files in a directory.

        Args:
            directory: Directory holding the frame files
            direction: Sort direction, see module docs

        Returns:
            Ordered frame names (may be empty)

        Raises:
            DirectoryReadError: If the directory cannot be listed
        """
        try:
            names = await asyncio.to_thread(self._scan, Path(directory))
        except OSError as e:
            raise DirectoryReadError(f"cannot list frames in {directory}: {e}") from e

        files = sort_frames(names, direction)
        logger.debug(f"Listed {len(files)} frames in {directory} ({direction})")
        return files

    async def read_frame(self, directory: PathLike, name: str) -> bytes:
        """
        Read one frame's bytes. No caching; every call hits the disk.

        Raises:
            FrameReadError: If the file cannot be read
        """
        path = Path(directory) / name
        try:
            return await asyncio.to_thread(path.read_bytes)
        except OSError as e:
            raise FrameReadError(f"cannot read frame {path}: {e}") from e

    @staticmethod
    def _scan(directory: Path) -> List[str]:
        with os.scandir(directory) as entries:
            return [entry.name for entry in entries if entry.is_file()]
