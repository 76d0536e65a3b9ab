"""
Models Module
=============

Pydantic models shared across the service.
"""

from mjpeg_stream.models.info import StreamInfo


__all__ = [
    "StreamInfo",
]
