"""
Event log builder and case correlator.

Groups raw event rows into cases (process instances) and orders each case
chronologically. The resulting EventLog is an immutable snapshot consumed
by the miner, the metrics calculator and the conformance checker.

Correlation:
- The case id is the first non-empty value among the configured metadata
  correlation keys (e.g. a thread or conversation identifier).
- A row without any correlation key becomes its own singleton case, keyed
  by the row id. Singleton cases carry no transition information, so they
  are discarded with the other short cases and counted separately in
  BuildStats instead of inflating the case count.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional, Sequence, Tuple

from .events import Event, EventDataError, parse_timestamp, row_activity

logger = logging.getLogger(__name__)

DEFAULT_CORRELATION_KEYS = ("thread_id", "conversation_id", "case_id", "correlation_id")


@dataclass(frozen=True)
class Case:
    """
    One process instance: the time-ordered events sharing a case id.

    Attributes:
        case_id: Correlation key of the instance
        events: Events in non-decreasing timestamp order
    """
    case_id: str
    events: Tuple[Event, ...]

    def __len__(self) -> int:
        return len(self.events)

    @property
    def trace(self) -> Tuple[str, ...]:
        """Activity-label projection of the case."""
        return tuple(event.activity for event in self.events)

    @property
    def start_time(self) -> Optional[datetime]:
        return self.events[0].timestamp if self.events else None

    @property
    def end_time(self) -> Optional[datetime]:
        return self.events[-1].timestamp if self.events else None

    @property
    def duration_hours(self) -> float:
        """Hours between the first and last event."""
        if len(self.events) < 2:
            return 0.0
        return (self.events[-1].timestamp - self.events[0].timestamp).total_seconds() / 3600


@dataclass(frozen=True)
class BuildStats:
    """
    Bookkeeping from a build run.

    Attributes:
        total_events: Rows received by the builder
        correlated_events: Rows that carried a correlation key
        uncorrelated_events: Rows that fell back to a singleton case
        singleton_cases: Cases with a single event (all discarded)
        discarded_cases: Cases dropped for having too few events
        discarded_events: Events belonging to discarded cases
    """
    total_events: int = 0
    correlated_events: int = 0
    uncorrelated_events: int = 0
    singleton_cases: int = 0
    discarded_cases: int = 0
    discarded_events: int = 0

    def to_dict(self) -> Dict[str, int]:
        """Convert to dictionary representation."""
        return {
            "total_events": self.total_events,
            "correlated_events": self.correlated_events,
            "uncorrelated_events": self.uncorrelated_events,
            "singleton_cases": self.singleton_cases,
            "discarded_cases": self.discarded_cases,
            "discarded_events": self.discarded_events,
        }


@dataclass(frozen=True)
class EventLog:
    """
    Immutable collection of usable cases.

    Attributes:
        cases: Cases in order of first appearance
        stats: How the log was built
    """
    cases: Tuple[Case, ...] = ()
    stats: BuildStats = field(default_factory=BuildStats)

    def __len__(self) -> int:
        return len(self.cases)

    def __iter__(self) -> Iterator[Case]:
        return iter(self.cases)

    @property
    def event_count(self) -> int:
        return sum(len(case) for case in self.cases)

    @property
    def activities(self) -> List[str]:
        """Distinct activity labels in order of first appearance."""
        seen: Dict[str, None] = {}
        for case in self.cases:
            for event in case.events:
                seen.setdefault(event.activity, None)
        return list(seen)

    def traces(self) -> List[Tuple[str, ...]]:
        """Activity traces of every case."""
        return [case.trace for case in self.cases]

    def variants(self) -> Dict[Tuple[str, ...], int]:
        """Distinct traces and how many cases follow each."""
        return dict(Counter(self.traces()))

    def events(self) -> Iterator[Event]:
        """Iterate over all events, case by case."""
        for case in self.cases:
            yield from case.events

    def get_case(self, case_id: str) -> Optional[Case]:
        for case in self.cases:
            if case.case_id == case_id:
                return case
        return None

    @classmethod
    def from_events(
        cls,
        events: Iterable[Event],
        min_case_events: int = 2,
    ) -> "EventLog":
        """
        Group already-correlated events into an event log.

        Args:
            events: Events carrying their case id
            min_case_events: Minimum events for a case to be kept

        Returns:
            EventLog with chronologically ordered cases
        """
        grouped: Dict[str, List[Event]] = {}
        total = 0
        for event in events:
            grouped.setdefault(event.case_id, []).append(event)
            total += 1

        cases = []
        singleton_cases = 0
        discarded_cases = 0
        discarded_events = 0

        for case_id, case_events in grouped.items():
            # list.sort is stable, so equal timestamps keep arrival order
            case_events.sort(key=lambda e: e.timestamp)
            if len(case_events) == 1:
                singleton_cases += 1
            if len(case_events) < min_case_events:
                discarded_cases += 1
                discarded_events += len(case_events)
                continue
            cases.append(Case(case_id=case_id, events=tuple(case_events)))

        stats = BuildStats(
            total_events=total,
            correlated_events=total,
            uncorrelated_events=0,
            singleton_cases=singleton_cases,
            discarded_cases=discarded_cases,
            discarded_events=discarded_events,
        )
        return cls(cases=tuple(cases), stats=stats)


class EventLogBuilder:
    """
    Builds an EventLog from raw event rows.

    Example:
        builder = EventLogBuilder()
        rows = source.query(EventFilter(organization_id="org-1"))
        event_log = builder.build(rows)
        print(f"{len(event_log)} cases, {event_log.stats.singleton_cases} singletons")
    """

    def __init__(
        self,
        correlation_keys: Sequence[str] = DEFAULT_CORRELATION_KEYS,
        min_case_events: int = 2,
    ):
        """
        Initialize the builder.

        Args:
            correlation_keys: Metadata keys tried in order to find the case id
            min_case_events: Minimum events for a case to be kept

        Raises:
            ValueError: If no correlation keys are given or min_case_events < 1
        """
        if not correlation_keys:
            raise ValueError("At least one correlation key is required")
        if min_case_events < 1:
            raise ValueError(f"min_case_events must be >= 1, got {min_case_events}")

        self.correlation_keys = tuple(correlation_keys)
        self.min_case_events = min_case_events

    def to_event(self, row: Mapping[str, Any], index: int = 0) -> Tuple[Event, bool]:
        """
        Convert a raw row into an Event.

        Args:
            row: Raw event row
            index: Position of the row, used when the row has no id

        Returns:
            Tuple of (event, correlated) where correlated is False when the
            row fell back to a singleton case

        Raises:
            EventDataError: If the row has no event type or a bad timestamp
        """
        event_id = str(row.get("id") or f"row-{index}")
        activity = row_activity(row)
        if not activity:
            raise EventDataError(f"Event {event_id} has no event type")

        metadata = row.get("metadata") or {}
        if not isinstance(metadata, Mapping):
            raise EventDataError(f"Event {event_id} has non-mapping metadata")

        case_id = self._correlation_key(metadata)
        correlated = case_id is not None
        if case_id is None:
            case_id = event_id

        event = Event(
            event_id=event_id,
            case_id=case_id,
            activity=str(activity),
            timestamp=parse_timestamp(row.get("timestamp"), event_id),
            actor_id=row.get("actor_id"),
            source_id=row.get("source_id"),
            metadata=dict(metadata),
        )
        return event, correlated

    def build(self, rows: Iterable[Mapping[str, Any]]) -> EventLog:
        """
        Group rows into cases.

        Args:
            rows: Raw event rows (typically from EventSource.query)

        Returns:
            EventLog of cases with at least min_case_events events

        Raises:
            EventDataError: If any row is malformed
        """
        events = []
        uncorrelated = 0
        for index, row in enumerate(rows):
            event, correlated = self.to_event(row, index)
            if not correlated:
                uncorrelated += 1
            events.append(event)

        log = EventLog.from_events(events, min_case_events=self.min_case_events)
        stats = BuildStats(
            total_events=len(events),
            correlated_events=len(events) - uncorrelated,
            uncorrelated_events=uncorrelated,
            singleton_cases=log.stats.singleton_cases,
            discarded_cases=log.stats.discarded_cases,
            discarded_events=log.stats.discarded_events,
        )

        if uncorrelated:
            logger.warning(
                f"{uncorrelated} of {len(events)} events had no correlation key "
                f"({', '.join(self.correlation_keys)}) and became singleton cases"
            )
        if stats.discarded_cases:
            logger.info(
                f"Discarded {stats.discarded_cases} cases with fewer than "
                f"{self.min_case_events} events ({stats.singleton_cases} singletons)"
            )
        logger.info(f"Built event log with {len(log)} cases from {len(events)} events")

        return EventLog(cases=log.cases, stats=stats)

    def _correlation_key(self, metadata: Mapping[str, Any]) -> Optional[str]:
        for key in self.correlation_keys:
            value = metadata.get(key)
            if value not in (None, ""):
                return str(value)
        return None


def build_event_log(
    rows: Iterable[Mapping[str, Any]],
    correlation_keys: Sequence[str] = DEFAULT_CORRELATION_KEYS,
) -> EventLog:
    """
    Convenience function to build an event log from raw rows.

    Args:
        rows: Raw event rows
        correlation_keys: Metadata keys tried in order to find the case id

    Returns:
        EventLog of usable cases
    """
    return EventLogBuilder(correlation_keys=correlation_keys).build(rows)
