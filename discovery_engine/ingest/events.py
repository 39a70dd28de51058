"""
Event records and event filters.

Raw event rows arrive from an event source as plain dictionaries. This
module defines the immutable Event record they are converted into, the
filter used to query a source, and strict timestamp parsing.

Timestamps are normalized to timezone-aware UTC datetimes so events from
different sources can be ordered against each other. A timestamp that
cannot be parsed is a data-quality error and raises EventDataError; it is
never replaced with the current time or dropped.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, FrozenSet, Mapping, Optional


class EventDataError(ValueError):
    """Raised when an event row carries malformed or missing data."""


def parse_timestamp(value: Any, event_id: str = "") -> datetime:
    """
    Parse a timestamp value into a UTC datetime.

    Accepts datetime objects and ISO-8601 strings (including a trailing 'Z').
    Naive values are interpreted as UTC.

    Args:
        value: Timestamp value from an event row
        event_id: Identifier of the row, used in error messages

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        EventDataError: If the value is missing or cannot be parsed
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError as e:
            raise EventDataError(
                f"Malformed timestamp {value!r} on event {event_id or '<unknown>'}"
            ) from e
    else:
        raise EventDataError(
            f"Missing or invalid timestamp {value!r} on event {event_id or '<unknown>'}"
        )

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def row_activity(row: Mapping[str, Any]) -> Optional[str]:
    """Activity label of a raw row: its event_type, else its activity key."""
    return row.get("event_type") or row.get("activity")


@dataclass(frozen=True)
class Event:
    """
    A single business event attributed to a case.

    Attributes:
        event_id: Identifier of the source row
        case_id: Correlation key of the process instance
        activity: Activity label (the event type)
        timestamp: When the event occurred (UTC)
        actor_id: Who performed the activity, if known
        source_id: Source system that produced the event
        metadata: Additional event attributes
    """
    event_id: str
    case_id: str
    activity: str
    timestamp: datetime
    actor_id: Optional[str] = None
    source_id: Optional[str] = None
    metadata: Mapping[str, Any] = field(default_factory=dict, compare=False, hash=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "event_id": self.event_id,
            "case_id": self.case_id,
            "activity": self.activity,
            "timestamp": self.timestamp.isoformat(),
            "actor_id": self.actor_id,
            "source_id": self.source_id,
            "metadata": dict(self.metadata),
        }


@dataclass(frozen=True)
class EventFilter:
    """
    Query filter for fetching raw events from an event source.

    Attributes:
        organization_id: Tenant whose events are fetched
        source_id: Restrict to a single source system
        event_types: Allow-list of event types (None = all)
        start: Inclusive lower time bound
        end: Inclusive upper time bound
        max_events: Hard cap on returned rows
    """
    organization_id: str
    source_id: Optional[str] = None
    event_types: Optional[FrozenSet[str]] = None
    start: Optional[datetime] = None
    end: Optional[datetime] = None
    max_events: int = 100_000

    def __post_init__(self):
        if self.max_events < 1:
            raise ValueError(f"max_events must be positive, got {self.max_events}")
        if self.event_types is not None and not isinstance(self.event_types, frozenset):
            object.__setattr__(self, "event_types", frozenset(self.event_types))
        if self.start is not None:
            object.__setattr__(self, "start", parse_timestamp(self.start, "filter.start"))
        if self.end is not None:
            object.__setattr__(self, "end", parse_timestamp(self.end, "filter.end"))

    def matches(self, row: Mapping[str, Any], timestamp: datetime) -> bool:
        """
        Check whether a raw row passes this filter.

        Args:
            row: Raw event row
            timestamp: Parsed timestamp of the row

        Returns:
            True if the row belongs to the filtered result
        """
        if str(row.get("organization_id", "")) != self.organization_id:
            return False
        if self.source_id is not None and row.get("source_id") != self.source_id:
            return False
        if self.event_types is not None and row_activity(row) not in self.event_types:
            return False
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp > self.end:
            return False
        return True
