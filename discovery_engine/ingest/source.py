"""
Event source collaborators.

An event source answers a single query: return the raw event rows matching
an EventFilter, ordered ascending by timestamp and capped at the filter's
row limit. The storage behind it is unconstrained; this module provides an
in-memory source and a JSON file source.

Expected row shape:
    {
        "id": "evt-001",
        "organization_id": "org-1",
        "source_id": "crm",
        "event_type": "TicketOpened",
        "timestamp": "2024-01-01T10:00:00Z",
        "actor_id": "user-7",
        "metadata": {"thread_id": "T-100"}
    }
"""

import json
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from .events import EventFilter, parse_timestamp

logger = logging.getLogger(__name__)


class EventSource(ABC):
    """Interface for fetching raw event rows."""

    @abstractmethod
    def query(self, event_filter: EventFilter) -> List[Dict[str, Any]]:
        """
        Fetch event rows matching a filter.

        Args:
            event_filter: Filter to apply

        Returns:
            Matching rows, ascending by timestamp, at most
            event_filter.max_events long
        """


class InMemoryEventSource(EventSource):
    """Event source over a list of rows held in memory."""

    def __init__(self, rows: Iterable[Dict[str, Any]]):
        """
        Initialize the source.

        Args:
            rows: Raw event rows
        """
        self._rows = [dict(row) for row in rows]

    def __len__(self) -> int:
        return len(self._rows)

    def query(self, event_filter: EventFilter) -> List[Dict[str, Any]]:
        return _apply_filter(self._rows, event_filter)


class JsonEventSource(EventSource):
    """
    Event source backed by a JSON file.

    The file may contain a list of rows, or an object wrapping the list
    under one of the keys 'events', 'data', 'results' or 'items'. The file
    is read on every query so that each run works on its own snapshot.
    """

    WRAPPER_KEYS = ["events", "data", "results", "items"]

    def __init__(self, path: Union[str, Path]):
        """
        Initialize the source.

        Args:
            path: Path to the JSON event file
        """
        self.path = Path(path)

    def load_rows(self) -> List[Dict[str, Any]]:
        """
        Read all rows from the file.

        Raises:
            FileNotFoundError: If the file does not exist
            json.JSONDecodeError: If the file is not valid JSON
        """
        with open(self.path, "r", encoding="utf-8") as f:
            data = json.load(f)

        if isinstance(data, dict):
            for key in self.WRAPPER_KEYS:
                if key in data:
                    data = data[key]
                    break
            else:
                data = [data]

        if not isinstance(data, list):
            data = [data] if data else []

        logger.info(f"Loaded {len(data)} event rows from {self.path}")
        return data

    def query(self, event_filter: EventFilter) -> List[Dict[str, Any]]:
        return _apply_filter(self.load_rows(), event_filter)


def _apply_filter(
    rows: List[Dict[str, Any]],
    event_filter: EventFilter
) -> List[Dict[str, Any]]:
    """Filter, order and cap rows the way every event source must."""
    matched = []
    for index, row in enumerate(rows):
        timestamp = parse_timestamp(row.get("timestamp"), str(row.get("id", index)))
        if event_filter.matches(row, timestamp):
            matched.append((timestamp, index, row))

    # Stable ascending order: ties keep their original row order
    matched.sort(key=lambda item: (item[0], item[1]))

    if len(matched) > event_filter.max_events:
        logger.warning(
            f"Event query matched {len(matched)} rows, "
            f"truncating to max_events={event_filter.max_events}"
        )
        matched = matched[:event_filter.max_events]

    return [row for _, _, row in matched]
