"""
MJPEG Stream Main Application
=============================

FastAPI entry point for the MJPEG streaming service.

Each request to /streams/{name} drives its own StreamSession over the
frames in ``<frames.root>/<name>``; sessions share nothing but the
stateless FrameSource and the process-wide statistics sink.

Endpoints:
    GET  /                - Service information
    GET  /health          - Liveness probe
    GET  /metrics         - Aggregate streaming metrics
    GET  /streams         - Available stream directories
    GET  /streams/{name}  - multipart/x-mixed-replace MJPEG stream
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import AsyncIterator, Dict, Literal, Optional, Set

from fastapi import FastAPI, HTTPException, Query
from starlette.types import Receive, Scope, Send
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import ValidationError

from mjpeg_stream import __version__
from mjpeg_stream.config import Settings, StreamOptions, settings
from mjpeg_stream.observability import (
    CompositeEventSink,
    LoggingEventSink,
    StreamStatsCollector,
)
from mjpeg_stream.stream import FrameSource, QueueOutput, StreamSession


logger = logging.getLogger(__name__)


# =============================================================================
# Helpers
# =============================================================================

def resolve_stream_dir(root: Path, name: str) -> Path:
    """
    Map a stream name to its directory under root.

    Raises:
        HTTPException: 404 if the name escapes the root
    """
    root = root.resolve()
    directory = (root / name).resolve()
    if directory == root or root not in directory.parents:
        raise HTTPException(status_code=404, detail=f"unknown stream: {name}")
    return directory


def build_options(defaults: StreamOptions, **overrides) -> StreamOptions:
    """
    Merge request overrides into the configured defaults.

    Raises:
        HTTPException: 422 if the merged options are invalid
    """
    values = defaults.model_dump()
    values.update({key: value for key, value in overrides.items() if value is not None})
    try:
        return StreamOptions.model_validate(values)
    except ValidationError as e:
        raise HTTPException(
            status_code=422,
            detail=[
                {"loc": list(err["loc"]), "msg": err["msg"]}
                for err in e.errors()
            ],
        ) from e


class SessionStreamingResponse(StreamingResponse):
    """
    StreamingResponse over a QueueOutput.

    Signals the output's disconnect once the response is over, whether
    it finished, failed on its first send or was cancelled.
    """

    def __init__(self, output: QueueOutput) -> None:
        super().__init__(
            output.body(),
            status_code=output.status_code,
            headers=output.headers,
        )
        self.output = output

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.output.disconnect()


# =============================================================================
# Application Factory
# =============================================================================

def create_app(app_settings: Settings, source: Optional[FrameSource] = None) -> FastAPI:
    """
    Build the FastAPI application for the given settings.

    Args:
        app_settings: Service settings
        source: Frame source shared by all sessions (a FrameSource if None)
    """

    frames_root = Path(app_settings.frames.root)
    stats = StreamStatsCollector()
    events = CompositeEventSink([LoggingEventSink(), stats])
    source = source or FrameSource()
    # Live sessions and the output each one writes to
    sessions: Dict[StreamSession, QueueOutput] = {}
    tasks: Set[asyncio.Task] = set()
    startup_time = time.time()

    async def _forget(session: StreamSession) -> None:
        try:
            await session.wait()
        finally:
            output = sessions.pop(session, None)
            if output is not None:
                stats.record_dropped(output.dropped_count)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        """Application lifespan manager; ends live sessions on shutdown."""
        logger.info(f"Starting mjpeg-stream {__version__}")
        logger.info(f"Frames root: {frames_root.resolve()}")
        if not frames_root.is_dir():
            logger.warning(f"Frames root does not exist: {frames_root}")

        yield

        logger.info(f"Shutting down, ending {len(sessions)} active sessions...")
        for session in list(sessions):
            session.end()
        logger.info("Shutdown complete")

    app = FastAPI(
        title="mjpeg-stream",
        description="MJPEG push streaming from directories of still frames",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = app_settings
    app.state.stats = stats
    app.state.sessions = sessions
    app.state.tasks = tasks

    # =========================================================================
    # HTTP Endpoints
    # =========================================================================

    @app.get("/")
    async def root() -> JSONResponse:
        """Service information endpoint."""
        return JSONResponse({
            "service": "mjpeg-stream",
            "version": __version__,
            "status": "running",
            "defaults": app_settings.stream.model_dump(mode="json"),
        })

    @app.get("/health")
    async def health() -> JSONResponse:
        """Liveness probe - always 200 while the process is alive."""
        return JSONResponse({
            "status": "healthy",
            "uptime_seconds": round(time.time() - startup_time, 1),
        })

    @app.get("/metrics")
    async def metrics() -> JSONResponse:
        """Aggregate streaming metrics."""
        return JSONResponse({
            "uptime_seconds": round(time.time() - startup_time, 1),
            "live_sessions": len(sessions),
            **stats.to_dict(),
            "dropped_chunks": stats.dropped_chunks + sum(
                output.metrics()["dropped_count"] for output in sessions.values()
            ),
        })

    @app.get("/streams")
    async def list_streams() -> JSONResponse:
        """Names of the stream directories under the frames root."""
        if not frames_root.is_dir():
            return JSONResponse({"streams": []})
        names = sorted(entry.name for entry in frames_root.iterdir() if entry.is_dir())
        return JSONResponse({"streams": names})

    @app.get("/streams/{name}")
    async def stream_frames(
        name: str,
        fps: Optional[float] = Query(default=None, description="Frames per second"),
        loop: Optional[bool] = Query(default=None, description="Loop after the last frame"),
        direction: Optional[Literal["forward", "reverse"]] = Query(default=None),
        time_limit_ms: Optional[float] = Query(default=None, description="Session cap in ms"),
    ) -> Response:
        """Stream a frame directory as multipart/x-mixed-replace."""
        directory = resolve_stream_dir(frames_root, name)
        options = build_options(
            app_settings.stream,
            frame_rate=fps,
            loop=loop,
            direction=direction,
            time_limit_ms=time_limit_ms,
        )

        output = QueueOutput(maxsize=app_settings.server.output_queue_size)
        session = StreamSession(directory, options, events=events, source=source)
        await session.stream(output)

        if not output.headers_sent:
            if session.error is not None:
                raise HTTPException(status_code=output.status_code, detail=str(session.error))
            # Ended before the first frame (client gone or time limit)
            return Response(status_code=204)

        sessions[session] = output
        task = asyncio.create_task(_forget(session), name=f"forget_{name}")
        tasks.add(task)
        task.add_done_callback(tasks.discard)

        return SessionStreamingResponse(output)

    return app


# =============================================================================
# FastAPI Application
# =============================================================================

app = create_app(settings)


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "mjpeg_stream.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=False,
    )
