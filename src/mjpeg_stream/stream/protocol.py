"""
Multipart Protocol
==================

Wire framing for ``multipart/x-mixed-replace`` MJPEG streams.

Each frame is serialized as one part:

    --{boundary}\r\n
    Content-Type: image/jpeg\r\n
    Content-Length: {n}\r\n
    \r\n
    <n bytes of frame data>\r\n

No closing boundary is ever written; the stream ends when the
connection closes. Frame content is not escaped or scanned for the
boundary token.
"""

from typing import Dict


CRLF = b"\r\n"
FRAME_CONTENT_TYPE = "image/jpeg"


def stream_content_type(boundary: str) -> str:
    """Response content type for the given boundary."""
    return f"multipart/x-mixed-replace; boundary={boundary}"


def stream_headers(boundary: str) -> Dict[str, str]:
    """Response headers sent once before the first part."""
    return {
        "Content-Type": stream_content_type(boundary),
        "Cache-Control": "no-cache",
        "Connection": "close",
        "Pragma": "no-cache",
    }


def encode_part(boundary: str, content: bytes) -> bytes:
    """
    Encode one frame as a multipart chunk.

    Args:
        boundary: Multipart boundary token (without leading dashes)
        content: Raw frame bytes

    Returns:
        Complete part, ready to be written as a single unit
    """
    header = (
        f"--{boundary}\r\n"
        f"Content-Type: {FRAME_CONTENT_TYPE}\r\n"
        f"Content-Length: {len(content)}\r\n"
        f"\r\n"
    ).encode("ascii")
    return b"".join((header, bytes(content), CRLF))
