"""
Conformance Checking against a reference activity sequence.

Compares every case of an event log with an expected ordered sequence of
activities (authored by hand or derived from a discovered ProcessModel) and
reports typed deviations per case.

Alignment is a single greedy left-to-right pass, not an optimal edit
distance alignment. The pass tracks the index just after the last matched
expected activity; it never moves backwards. An observed activity is
matched at its first expected position at or after that index. If it only
occurs earlier in the expected sequence it is flagged as WRONG_ORDER. For
the reference [A, B, C] and the case [A, C, B], A and C match and B is
reported out of order; an optimal alignment could equally blame C.

Activities absent from the reference have an expected count of zero, so
every unexpected activity is reported both as EXTRA_ACTIVITY (per
occurrence) and as LOOP (once, with its full count as the excess). A
reference that lists an activity twice yields two MISSING_ACTIVITY
deviations when the case never executes it.

A case conforms if it has no deviations. The conformance rate is the share
of conforming cases, and exactly 1.0 for an empty log.
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence

from ..discovery.models import ProcessModel
from ..ingest.builder import Case, EventLog
from .deviations import Deviation, DeviationSummary, DeviationType

logger = logging.getLogger(__name__)


@dataclass
class CaseConformanceResult:
    """
    Conformance checking result for a single case.

    Attributes:
        case_id: Identifier for the process instance
        observed_activities: Activities as executed
        deviations: Deviations detected in the case
    """
    case_id: str
    observed_activities: List[str]
    deviations: List[Deviation] = field(default_factory=list)

    @property
    def is_conforming(self) -> bool:
        return not self.deviations

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "case_id": self.case_id,
            "is_conforming": self.is_conforming,
            "observed_activities": self.observed_activities,
            "deviation_count": len(self.deviations),
            "deviations": [d.to_dict() for d in self.deviations],
        }


@dataclass
class ConformanceResult:
    """
    Aggregated conformance results across all cases.

    Attributes:
        expected_sequence: Reference sequence used
        total_cases: Cases checked
        conforming_cases: Cases without deviations
        conformance_rate: conforming_cases / total_cases (1.0 if no cases)
        deviations: All deviations, case by case
        case_results: Individual results for each case
        deviation_summary: Counts by type and activity
        analysis_timestamp: When the check was performed
    """
    expected_sequence: List[str]
    total_cases: int
    conforming_cases: int
    conformance_rate: float
    deviations: List[Deviation]
    case_results: List[CaseConformanceResult]
    deviation_summary: DeviationSummary
    analysis_timestamp: datetime = field(default_factory=datetime.now)

    def get_non_conforming_cases(self) -> List[CaseConformanceResult]:
        return [r for r in self.case_results if not r.is_conforming]

    def deviations_of_type(self, deviation_type: DeviationType) -> List[Deviation]:
        return [d for d in self.deviations if d.deviation_type == deviation_type]

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "expected_sequence": self.expected_sequence,
            "total_cases": self.total_cases,
            "conforming_cases": self.conforming_cases,
            "conformance_rate": self.conformance_rate,
            "deviations": [d.to_dict() for d in self.deviations],
            "deviation_summary": self.deviation_summary.to_dict(),
            "analysis_timestamp": self.analysis_timestamp.isoformat(),
            "case_results": [r.to_dict() for r in self.case_results],
        }


class ConformanceChecker:
    """
    Checks cases against an expected activity sequence.

    Example:
        checker = ConformanceChecker(["Received", "Reviewed", "Approved"])
        result = checker.check_log(event_log)
        print(f"Conformance rate: {result.conformance_rate:.0%}")

        # Or derive the reference from a discovered model
        checker = ConformanceChecker.from_model(model)
    """

    def __init__(self, expected_sequence: Sequence[str]):
        """
        Initialize the checker.

        Args:
            expected_sequence: Reference activity order (may be empty)
        """
        self._expected = list(expected_sequence)
        self._expected_counts = Counter(self._expected)

    @classmethod
    def from_model(cls, model: ProcessModel) -> "ConformanceChecker":
        """Create a checker whose reference is the model's expected sequence."""
        return cls(model.get_expected_sequence())

    @property
    def expected_sequence(self) -> List[str]:
        return list(self._expected)

    def check_case(self, case: Case) -> CaseConformanceResult:
        """
        Check conformance of a single case.

        Args:
            case: Chronologically ordered case

        Returns:
            CaseConformanceResult with deviations in the order missing,
            extra, wrong order, loop
        """
        return self.check_trace(list(case.trace), case.case_id)

    def check_trace(self, observed: Sequence[str], case_id: str = "") -> CaseConformanceResult:
        """
        Check conformance of an activity sequence.

        Args:
            observed: Activities in execution order
            case_id: Identifier for the process instance

        Returns:
            CaseConformanceResult
        """
        observed = list(observed)
        deviations: List[Deviation] = []
        deviations.extend(self._check_missing(observed, case_id))
        deviations.extend(self._check_extra(observed, case_id))
        deviations.extend(self._check_order(observed, case_id))
        deviations.extend(self._check_loops(observed, case_id))

        return CaseConformanceResult(
            case_id=case_id,
            observed_activities=observed,
            deviations=deviations,
        )

    def check_log(self, event_log: EventLog) -> ConformanceResult:
        """
        Check conformance of every case in an event log.

        Args:
            event_log: Grouped cases

        Returns:
            ConformanceResult with aggregated statistics
        """
        case_results = [self.check_case(case) for case in event_log]
        all_deviations = [d for r in case_results for d in r.deviations]

        total_cases = len(case_results)
        conforming_cases = sum(1 for r in case_results if r.is_conforming)
        conformance_rate = conforming_cases / total_cases if total_cases else 1.0

        logger.info(
            f"Checked {total_cases} cases against {len(self._expected)} expected "
            f"activities: {conforming_cases} conforming, {len(all_deviations)} deviations"
        )

        return ConformanceResult(
            expected_sequence=self.expected_sequence,
            total_cases=total_cases,
            conforming_cases=conforming_cases,
            conformance_rate=conformance_rate,
            deviations=all_deviations,
            case_results=case_results,
            deviation_summary=DeviationSummary.from_deviations(all_deviations),
        )

    def _check_missing(self, observed: List[str], case_id: str) -> List[Deviation]:
        """Expected activities that never occur in the case, one per reference entry."""
        executed = set(observed)
        deviations = []
        for activity in self._expected:
            if activity in executed:
                continue
            deviations.append(Deviation(
                case_id=case_id,
                deviation_type=DeviationType.MISSING_ACTIVITY,
                description=f"Missing activity: {activity}",
                activity=activity,
            ))
        return deviations

    def _check_extra(self, observed: List[str], case_id: str) -> List[Deviation]:
        """Observed activities that are not in the expected sequence."""
        deviations = []
        for position, activity in enumerate(observed):
            if activity not in self._expected_counts:
                deviations.append(Deviation(
                    case_id=case_id,
                    deviation_type=DeviationType.EXTRA_ACTIVITY,
                    description=f"Unexpected activity: {activity}",
                    activity=activity,
                    position=position,
                ))
        return deviations

    def _check_order(self, observed: List[str], case_id: str) -> List[Deviation]:
        """Greedy left-to-right order check."""
        deviations = []
        next_index = 0

        for position, activity in enumerate(observed):
            if activity not in self._expected_counts:
                continue

            match = _index_from(self._expected, activity, next_index)
            if match is not None:
                next_index = match + 1
                continue

            deviations.append(Deviation(
                case_id=case_id,
                deviation_type=DeviationType.WRONG_ORDER,
                description=f"Activity {activity} occurred out of order",
                activity=activity,
                position=position,
                details={
                    "expected_position": self._expected.index(activity),
                    "tracking_index": next_index,
                },
            ))
        return deviations

    def _check_loops(self, observed: List[str], case_id: str) -> List[Deviation]:
        """Activities executed more often than the reference lists them."""
        deviations = []
        for activity, count in Counter(observed).items():
            expected_count = self._expected_counts.get(activity, 0)
            if count > expected_count:
                excess = count - expected_count
                deviations.append(Deviation(
                    case_id=case_id,
                    deviation_type=DeviationType.LOOP,
                    description=f"Activity {activity} repeated {excess} extra times",
                    activity=activity,
                    details={"excess_count": excess, "observed_count": count},
                ))
        return deviations


def _index_from(sequence: List[str], item: str, start: int) -> Optional[int]:
    try:
        return sequence.index(item, start)
    except ValueError:
        return None


def calculate_conformance(
    event_log: EventLog,
    expected_sequence: Sequence[str],
) -> ConformanceResult:
    """
    Convenience function to check an event log against a reference sequence.

    Args:
        event_log: Grouped cases
        expected_sequence: Reference activity order

    Returns:
        ConformanceResult with conformance_rate and deviations
    """
    return ConformanceChecker(expected_sequence).check_log(event_log)


def calculate_conformance_rate(
    event_log: EventLog,
    expected_sequence: Sequence[str],
) -> float:
    """
    Calculate only the conformance rate.

    Returns:
        Share of conforming cases between 0.0 and 1.0
    """
    return calculate_conformance(event_log, expected_sequence).conformance_rate
