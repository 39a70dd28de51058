"""
Tests for conformance checking.

Tests cover:
- Deviation detection per case (missing, extra, wrong order, loop)
- Conformance rate across a log
- Empty logs and empty reference sequences
- References derived from discovered models
- Deviation summaries
"""

import pytest

from discovery_engine.conformance import (
    ConformanceChecker,
    ConformanceResult,
    Deviation,
    DeviationSummary,
    DeviationType,
    calculate_conformance,
    calculate_conformance_rate,
)
from discovery_engine.discovery import AlphaMiner
from discovery_engine.ingest import EventLogBuilder


EXPECTED = ["A", "B", "C"]


@pytest.fixture
def checker():
    """Checker for the reference [A, B, C]."""
    return ConformanceChecker(EXPECTED)


class TestCaseChecks:
    """Tests for deviations within a single case."""

    def test_conforming_case(self, checker):
        """An exact match has no deviations."""
        result = checker.check_trace(["A", "B", "C"], "c1")
        assert result.is_conforming
        assert result.deviations == []

    def test_single_wrong_order(self, checker):
        """[A, C, B] against [A, B, C] gives exactly one wrong_order for B."""
        result = checker.check_trace(["A", "C", "B"], "c1")

        assert len(result.deviations) == 1
        deviation = result.deviations[0]
        assert deviation.deviation_type == DeviationType.WRONG_ORDER
        assert deviation.activity == "B"
        assert deviation.position == 2
        assert deviation.case_id == "c1"

    def test_missing_activity(self, checker):
        """An absent expected activity is reported without a position."""
        result = checker.check_trace(["A", "C"], "c1")

        assert [d.deviation_type for d in result.deviations] == [DeviationType.MISSING_ACTIVITY]
        assert result.deviations[0].activity == "B"
        assert result.deviations[0].position is None

    def test_missing_per_reference_entry(self):
        """A reference entry listed twice is missing twice."""
        result = ConformanceChecker(["A", "B", "A", "C"]).check_trace(["B", "C"], "c1")

        assert [(d.deviation_type, d.activity) for d in result.deviations] == [
            (DeviationType.MISSING_ACTIVITY, "A"),
            (DeviationType.MISSING_ACTIVITY, "A"),
        ]

    def test_extra_activity_per_occurrence(self, checker):
        """Each unexpected occurrence is reported with its position."""
        result = checker.check_trace(["A", "X", "B", "X", "C"], "c1")

        extras = [d for d in result.deviations if d.deviation_type == DeviationType.EXTRA_ACTIVITY]
        assert [(d.activity, d.position) for d in extras] == [("X", 1), ("X", 3)]
        assert len(result.deviations) == 3

    def test_extra_activity_is_loop(self):
        """An unexpected activity counts against an expected count of zero."""
        result = ConformanceChecker(["A", "B"]).check_trace(["A", "B", "X"], "c1")

        assert [d.deviation_type for d in result.deviations] == [
            DeviationType.EXTRA_ACTIVITY,
            DeviationType.LOOP,
        ]
        loop = result.deviations[1]
        assert loop.activity == "X"
        assert loop.details == {"excess_count": 1, "observed_count": 1}

    def test_loop(self, checker):
        """Repeating an expected activity reports the excess."""
        result = checker.check_trace(["A", "B", "B", "B", "C"], "c1")

        loops = [d for d in result.deviations if d.deviation_type == DeviationType.LOOP]
        assert len(loops) == 1
        assert loops[0].activity == "B"
        assert loops[0].details["excess_count"] == 2

    def test_repeated_expected_activity(self):
        """An activity listed twice in the reference may occur twice."""
        checker = ConformanceChecker(["A", "B", "A", "C"])
        assert checker.check_trace(["A", "B", "A", "C"]).is_conforming

    def test_deviation_order(self, checker):
        """Deviations are reported missing, extra, wrong order, loop."""
        result = checker.check_trace(["C", "X", "A", "A"], "c1")

        assert [d.deviation_type for d in result.deviations] == [
            DeviationType.MISSING_ACTIVITY,
            DeviationType.EXTRA_ACTIVITY,
            DeviationType.WRONG_ORDER,
            DeviationType.WRONG_ORDER,
            DeviationType.LOOP,
            DeviationType.LOOP,
        ]
        assert [d.activity for d in result.deviations[-2:]] == ["X", "A"]

    def test_empty_reference(self):
        """With an empty reference every observed activity is extra."""
        result = ConformanceChecker([]).check_trace(["A", "B", "A"], "c1")

        assert [d.deviation_type for d in result.deviations] == (
            [DeviationType.EXTRA_ACTIVITY] * 3 + [DeviationType.LOOP] * 2
        )
        assert [d.position for d in result.deviations[:3]] == [0, 1, 2]
        assert [(d.activity, d.details["excess_count"]) for d in result.deviations[3:]] == [
            ("A", 2), ("B", 1),
        ]


class TestLogConformance:
    """Tests for conformance across an event log."""

    def test_rate(self, make_log):
        """Rate is the share of conforming cases."""
        event_log = make_log([["A", "B", "C"], ["A", "C", "B"], ["A", "B", "C"], ["A", "C"]])
        result = calculate_conformance(event_log, EXPECTED)

        assert isinstance(result, ConformanceResult)
        assert result.total_cases == 4
        assert result.conforming_cases == 2
        assert result.conformance_rate == pytest.approx(0.5)
        assert len(result.deviations) == 2
        assert len(result.get_non_conforming_cases()) == 2

    def test_rate_bounds(self, make_log):
        """The rate stays within [0, 1]."""
        event_log = make_log([["C", "B", "A"], ["X", "Y"]])
        rate = calculate_conformance_rate(event_log, EXPECTED)
        assert 0.0 <= rate <= 1.0
        assert rate == 0.0

    def test_zero_cases(self):
        """A log without cases has rate 1.0."""
        result = calculate_conformance(EventLogBuilder().build([]), EXPECTED)

        assert result.total_cases == 0
        assert result.conformance_rate == 1.0
        assert result.deviations == []

    def test_empty_reference_on_log(self, make_log):
        """An empty reference never raises."""
        result = calculate_conformance(make_log([["A", "B"]]), [])

        assert result.conformance_rate == 0.0
        assert len(result.deviations_of_type(DeviationType.EXTRA_ACTIVITY)) == 2

    def test_case_ids_attached(self, make_log):
        """Deviations carry the id of their case."""
        result = calculate_conformance(make_log([["A", "C", "B"]]), EXPECTED)
        assert result.deviations[0].case_id == "crm-case-0"

    def test_to_dict(self, make_log):
        """to_dict is JSON friendly."""
        data = calculate_conformance(make_log([["A", "C", "B"]]), EXPECTED).to_dict()

        assert data["conformance_rate"] == 0.0
        assert data["deviations"][0]["type"] == "wrong_order"
        assert data["deviation_summary"]["by_type"] == {"wrong_order": 1}


class TestModelReference:
    """Tests for references derived from discovered models."""

    def test_from_model(self, make_log, happy_path_traces):
        """Cases on the happy path conform to the discovered model."""
        event_log = make_log(happy_path_traces)
        model = AlphaMiner().mine(event_log)
        checker = ConformanceChecker.from_model(model)

        assert checker.expected_sequence == ["Received", "Reviewed", "Approved", "Closed"]

        result = checker.check_log(event_log)
        assert result.conforming_cases == 5
        escalated = result.get_non_conforming_cases()[0]
        assert [d.deviation_type for d in escalated.deviations] == [
            DeviationType.EXTRA_ACTIVITY,
            DeviationType.LOOP,
        ]


class TestDeviationSummary:
    """Tests for DeviationSummary."""

    def test_from_deviations(self):
        """Counts by type and activity."""
        deviations = [
            Deviation("c1", DeviationType.MISSING_ACTIVITY, "Missing activity: B", activity="B"),
            Deviation("c2", DeviationType.MISSING_ACTIVITY, "Missing activity: B", activity="B"),
            Deviation("c2", DeviationType.EXTRA_ACTIVITY, "Unexpected activity: X", activity="X", position=1),
        ]
        summary = DeviationSummary.from_deviations(deviations)

        assert summary.total_deviations == 3
        assert summary.by_type == {"missing_activity": 2, "extra_activity": 1}
        assert summary.by_activity == {"B": 2, "X": 1}
        assert summary.most_common[0] == ("missing_activity", 2)

    def test_empty(self):
        """No deviations give an empty summary."""
        summary = DeviationSummary.from_deviations([])
        assert summary.total_deviations == 0
        assert summary.most_common == []
