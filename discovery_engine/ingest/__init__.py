"""
Event ingestion: event records, event sources and the case correlator.
"""

from .events import Event, EventDataError, EventFilter, parse_timestamp, row_activity
from .source import EventSource, InMemoryEventSource, JsonEventSource
from .builder import (
    BuildStats,
    Case,
    DEFAULT_CORRELATION_KEYS,
    EventLog,
    EventLogBuilder,
    build_event_log,
)

__all__ = [
    "Event",
    "EventDataError",
    "EventFilter",
    "parse_timestamp",
    "row_activity",
    "EventSource",
    "InMemoryEventSource",
    "JsonEventSource",
    "BuildStats",
    "Case",
    "DEFAULT_CORRELATION_KEYS",
    "EventLog",
    "EventLogBuilder",
    "build_event_log",
]
