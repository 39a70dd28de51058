"""
Pytest configuration and fixtures for discovery engine tests.
"""

from datetime import datetime, timedelta, timezone

import pytest

from discovery_engine.ingest import EventLogBuilder


BASE_TIME = datetime(2024, 1, 1, 9, 0, 0, tzinfo=timezone.utc)


def make_row(event_id, case_id, activity, timestamp, organization_id="org-1",
             source_id="crm", actor_id=None):
    """Build a raw event row the way an event source returns it."""
    metadata = {"thread_id": case_id} if case_id is not None else {}
    return {
        "id": event_id,
        "organization_id": organization_id,
        "source_id": source_id,
        "event_type": activity,
        "timestamp": timestamp.isoformat() if isinstance(timestamp, datetime) else timestamp,
        "actor_id": actor_id,
        "metadata": metadata,
    }


def rows_from_traces(traces, step_hours=1.0, case_gap_hours=24.0,
                     organization_id="org-1", source_id="crm"):
    """One case per trace, events spaced step_hours apart, cases a day apart."""
    rows = []
    for case_index, trace in enumerate(traces):
        case_start = BASE_TIME + timedelta(hours=case_gap_hours * case_index)
        for position, activity in enumerate(trace):
            rows.append(make_row(
                event_id=f"{source_id}-c{case_index}-e{position}",
                case_id=f"{source_id}-case-{case_index}",
                activity=activity,
                timestamp=case_start + timedelta(hours=step_hours * position),
                organization_id=organization_id,
                source_id=source_id,
                actor_id=f"user-{position % 2}",
            ))
    return rows


@pytest.fixture
def base_time():
    """Reference start time of generated cases."""
    return BASE_TIME


@pytest.fixture
def row_factory():
    """Factory for single raw event rows."""
    return make_row


@pytest.fixture
def rows_factory():
    """Factory for raw rows from a list of traces."""
    return rows_from_traces


@pytest.fixture
def make_log():
    """Factory building an EventLog from a list of traces."""
    def _make_log(traces, **kwargs):
        return EventLogBuilder().build(rows_from_traces(traces, **kwargs))
    return _make_log


@pytest.fixture
def example_traces():
    """Three traces: [A,B,C], [A,C,B], [A,B,C]."""
    return [["A", "B", "C"], ["A", "C", "B"], ["A", "B", "C"]]


@pytest.fixture
def happy_path_traces():
    """Six support-ticket cases, five on the happy path and one escalated."""
    happy = ["Received", "Reviewed", "Approved", "Closed"]
    escalated = ["Received", "Reviewed", "Escalated", "Approved", "Closed"]
    return [happy] * 5 + [escalated]
