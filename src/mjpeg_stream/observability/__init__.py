"""
Observability Module
====================

Session event sinks for the MJPEG streaming service.

This module provides:
    - LoggingEventSink: Logs lifecycle events
    - CompositeEventSink: Fans events out to several sinks
    - StreamStatsCollector: Process-wide counters for /metrics

DESIGN RULES:
    - Sinks do NOT influence sessions
    - Sink failures are logged and swallowed
"""

from mjpeg_stream.observability.events import (
    LoggingEventSink,
    CompositeEventSink,
)
from mjpeg_stream.observability.stats import StreamStatsCollector


__all__ = [
    "LoggingEventSink",
    "CompositeEventSink",
    "StreamStatsCollector",
]
