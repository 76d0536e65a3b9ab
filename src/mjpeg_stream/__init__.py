"""
mjpeg-stream
============

MJPEG (Motion-JPEG) push streaming from directories of still frames.

Every client connection gets its own StreamSession, which lists a frame
directory once and then writes one multipart/x-mixed-replace part per
tick at the configured frame rate until the client disconnects, the
time limit elapses, the frames run out (loop disabled) or an error
ends it.

Components:
    - stream: FrameSource, multipart framing, outputs, StreamSession
    - observability: Logging and statistics event sinks
    - models: Statistics snapshot model
    - main: FastAPI application

Example:
    from mjpeg_stream.config import StreamOptions
    from mjpeg_stream.stream import QueueOutput, StreamSession

    session = StreamSession("./frames/clip", StreamOptions(frame_rate=25))
    await session.stream(QueueOutput())
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
