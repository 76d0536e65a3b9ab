"""
Frame Record
============

Per-frame record emitted with every ``frame`` event.

Design Rules:
    - Carries metadata only, never the frame bytes
    - Immutable once created
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class FrameRecord:
    """
    Record of one frame successfully written to the output.

    Attributes:
        filename: Frame identifier as listed by the FrameSource
        frame_index: Cursor position the frame was read from
        frame_count: Total frames sent, including this one
        size: Frame payload size in bytes
    """

    filename: str
    frame_index: int
    frame_count: int
    size: int

    def to_dict(self) -> dict:
        """Export record as dict."""
        return {
            "filename": self.filename,
            "frame_index": self.frame_index,
            "frame_count": self.frame_count,
            "size": self.size,
        }
