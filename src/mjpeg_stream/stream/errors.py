"""
Stream Errors
=============

Exception hierarchy for the streaming core.

Every error carries an HTTP-style status code so the session can
reflect it on the output before any body bytes are sent.

Taxonomy:
    - DirectoryReadError: frame directory missing or unlistable (404)
    - EmptyFrameSetError: listing succeeded but holds no frames (404)
    - FrameReadError: a single frame file could not be read (500)
"""

from typing import Optional


class StreamError(Exception):
    """Base class for all streaming errors."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class DirectoryReadError(StreamError):
    """Raised when the frame directory cannot be listed."""

    status_code = 404


class EmptyFrameSetError(StreamError):
    """Raised when the frame directory contains no frames."""

    status_code = 404


class FrameReadError(StreamError):
    """Raised when an individual frame file cannot be read."""

    status_code = 500
