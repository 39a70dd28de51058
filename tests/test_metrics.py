"""
Tests for process metrics.

Tests cover:
- Volume, time and frequency metrics
- Throughput, including logs with a zero time span
- Bottleneck threshold
- Per-activity metrics and the request-scoped memo
"""

from datetime import timedelta

import pytest

from discovery_engine.ingest import EventLogBuilder
from discovery_engine.metrics import (
    MetricsMemo,
    ProcessMetrics,
    calculate_activity_metrics,
    calculate_process_metrics,
    calculate_throughput,
    collect_activity_durations,
    identify_bottlenecks,
)


@pytest.fixture
def timed_log(row_factory, base_time):
    """Two cases: A waits 3h before B, B waits 1h before C."""
    rows = []
    for case_index in range(2):
        start = base_time + timedelta(days=case_index)
        rows.extend([
            row_factory(f"c{case_index}-1", f"case-{case_index}", "A", start, actor_id="ann"),
            row_factory(f"c{case_index}-2", f"case-{case_index}", "B",
                        start + timedelta(hours=3), actor_id="bob"),
            row_factory(f"c{case_index}-3", f"case-{case_index}", "C",
                        start + timedelta(hours=4), actor_id=f"cat-{case_index}"),
        ])
    return EventLogBuilder().build(rows)


class TestProcessMetrics:
    """Tests for calculate_process_metrics."""

    def test_volume(self, make_log, example_traces):
        """Volume metrics count cases, events, activities and variants."""
        metrics = calculate_process_metrics(make_log(example_traces))

        assert metrics.total_cases == 3
        assert metrics.total_events == 9
        assert metrics.unique_activities == 3
        assert metrics.trace_variants == 2

    def test_case_durations(self, make_log):
        """Case durations are reported in hours."""
        metrics = calculate_process_metrics(make_log([["A", "B", "C"], ["A", "B"]], step_hours=2.0))

        assert metrics.avg_case_duration_hours == pytest.approx(3.0)
        assert metrics.median_case_duration_hours == pytest.approx(3.0)
        assert metrics.min_case_duration_hours == pytest.approx(2.0)
        assert metrics.max_case_duration_hours == pytest.approx(4.0)

    def test_activity_durations(self, timed_log):
        """Activity duration is the wait until the next event; final events add nothing."""
        metrics = calculate_process_metrics(timed_log)

        assert metrics.avg_activity_duration_hours == {
            "A": pytest.approx(3.0),
            "B": pytest.approx(1.0),
        }
        assert "C" not in metrics.avg_activity_duration_hours

    def test_frequencies(self, make_log, example_traces):
        """Activity and transition frequencies."""
        metrics = calculate_process_metrics(make_log(example_traces))

        assert metrics.activity_frequency == {"A": 3, "B": 3, "C": 3}
        assert metrics.transition_frequency == {
            "A -> B": 2,
            "B -> C": 2,
            "A -> C": 1,
            "C -> B": 1,
        }

    def test_transition_durations(self, timed_log):
        """Transition durations are averaged per ordered pair."""
        metrics = calculate_process_metrics(timed_log)

        assert metrics.avg_transition_duration_hours["A -> B"] == pytest.approx(3.0)
        assert metrics.avg_transition_duration_hours["B -> C"] == pytest.approx(1.0)

    def test_idempotent(self, make_log, happy_path_traces):
        """Repeated calls on the same log give identical results."""
        event_log = make_log(happy_path_traces)
        assert calculate_process_metrics(event_log) == calculate_process_metrics(event_log)

    def test_empty_log(self):
        """An empty log gives zeroed metrics."""
        metrics = calculate_process_metrics(EventLogBuilder().build([]))

        assert metrics == ProcessMetrics()
        assert metrics.throughput == 0.0

    def test_degenerate_counts_reported(self, rows_factory, row_factory, base_time):
        """Singleton and uncorrelated counts come from the build."""
        rows = rows_factory([["A", "B"]])
        rows.append(row_factory("note-1", None, "Note", base_time))
        metrics = calculate_process_metrics(EventLogBuilder().build(rows))

        assert metrics.singleton_cases == 1
        assert metrics.uncorrelated_events == 1
        assert metrics.total_cases == 1

    def test_to_dict(self, make_log, example_traces):
        """to_dict exposes every metric."""
        data = calculate_process_metrics(make_log(example_traces)).to_dict()
        assert data["total_cases"] == 3
        assert "bottleneck_activities" in data


class TestThroughput:
    """Tests for throughput."""

    def test_cases_per_day(self, make_log):
        """Cases divided by the days spanned by the log."""
        # Cases start 24h apart and last 1h: span is 2 days + 1 hour
        event_log = make_log([["A", "B"]] * 3)
        expected = 3 / ((48 + 1) / 24)
        assert calculate_throughput(event_log) == pytest.approx(expected)

    def test_zero_span(self, row_factory, base_time):
        """All events at one instant: throughput equals the case count."""
        rows = []
        for case_index in range(5):
            rows.append(row_factory(f"e{case_index}a", f"c{case_index}", "A", base_time))
            rows.append(row_factory(f"e{case_index}b", f"c{case_index}", "B", base_time))
        event_log = EventLogBuilder().build(rows)

        assert calculate_throughput(event_log) == 5.0
        assert calculate_process_metrics(event_log).throughput == 5.0


class TestBottlenecks:
    """Tests for bottleneck detection."""

    def test_exactly_at_threshold_not_flagged(self):
        """Averages 3h and 1h: threshold is exactly 3h, so nothing is flagged."""
        assert identify_bottlenecks({"A": 3.0, "B": 1.0}) == []

    def test_above_threshold_flagged(self):
        """An activity strictly above 1.5x the mean is flagged."""
        assert identify_bottlenecks({"A": 3.1, "B": 1.0}) == ["A"]

    def test_sorted_longest_first(self):
        """Bottlenecks are ordered by duration."""
        averages = {"A": 10.0, "B": 12.0, "C": 0.5, "D": 0.5, "E": 0.5, "F": 0.5}
        assert identify_bottlenecks(averages) == ["B", "A"]

    def test_empty(self):
        """No activities, no bottlenecks."""
        assert identify_bottlenecks({}) == []

    def test_log_boundary(self, timed_log):
        """The timed log sits exactly at the threshold."""
        assert calculate_process_metrics(timed_log).bottleneck_activities == []


class TestActivityMetrics:
    """Tests for calculate_activity_metrics."""

    def test_detail(self, timed_log):
        """Frequency, durations and participants of one activity."""
        detail = calculate_activity_metrics(timed_log, "A")

        assert detail.frequency == 2
        assert detail.avg_duration_hours == pytest.approx(3.0)
        assert detail.min_duration_hours == pytest.approx(3.0)
        assert detail.max_duration_hours == pytest.approx(3.0)
        assert detail.participant_count == 1
        assert not detail.is_bottleneck

    def test_final_activity(self, timed_log):
        """An activity that only ends cases has no duration."""
        detail = calculate_activity_metrics(timed_log, "C")

        assert detail.frequency == 2
        assert detail.avg_duration_hours == 0.0
        assert detail.participant_count == 2

    def test_unknown_activity(self, timed_log):
        """Unknown activities give zeroed metrics."""
        detail = calculate_activity_metrics(timed_log, "Z")
        assert detail.frequency == 0
        assert detail.participant_count == 0

    def test_memo_gives_same_result(self, timed_log):
        """Using a memo does not change the result."""
        memo = MetricsMemo(timed_log)
        for activity in ("A", "B", "C"):
            assert calculate_activity_metrics(timed_log, activity, memo) == \
                calculate_activity_metrics(timed_log, activity)

    def test_memo_reuses_durations(self, timed_log):
        """The memo computes the shared durations once."""
        memo = MetricsMemo(timed_log)
        assert memo.activity_durations() is memo.activity_durations()
        assert memo.activity_durations() == collect_activity_durations(timed_log)

    def test_memo_for_other_log(self, timed_log, make_log):
        """A memo built for another log is rejected."""
        memo = MetricsMemo(make_log([["A", "B"]]))
        with pytest.raises(ValueError):
            calculate_activity_metrics(timed_log, "A", memo)
