"""
Session Events
==============

Observer interface for streaming session lifecycle milestones.

Events (in order of occurrence):
    - start: headers written, first frame about to be sent
    - frame: one frame written to the output
    - error: startup failure or frame read failure
    - end: session finalized (always last, exactly once)

DESIGN RULES:
    - Delivery is synchronous and fire-and-forget
    - Return values are ignored
    - A failing sink never interrupts the session
"""

from mjpeg_stream.models.info import StreamInfo
from mjpeg_stream.stream.frame import FrameRecord


class EventSink:
    """
    Base observer. Override the events you care about.

    Example:
        class PrintSink(EventSink):
            def on_frame(self, record, info):
                print(record.filename)
    """

    def on_start(self, info: StreamInfo) -> None:
        pass

    def on_frame(self, record: FrameRecord, info: StreamInfo) -> None:
        pass

    def on_error(self, error: Exception, info: StreamInfo) -> None:
        pass

    def on_end(self, info: StreamInfo) -> None:
        pass
