"""
Process Metrics Calculator.

Computes volume, time, frequency, throughput and bottleneck statistics over
an event log. All functions are pure: they read the immutable EventLog and
return new values, so repeated calls on the same log give identical results.

Durations are reported in hours. The duration attributed to an activity is
the wait until the next event of the same case; an activity that ends its
case contributes no duration.

Bottlenecks: an activity is flagged when its average duration is strictly
greater than 1.5 times the mean of all activities' average durations.
"""

import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import numpy as np

from ..ingest.builder import EventLog

logger = logging.getLogger(__name__)

BOTTLENECK_FACTOR = 1.5
HOURS_PER_DAY = 24.0


@dataclass(frozen=True)
class ProcessMetrics:
    """
    Aggregate performance metrics of an event log.

    Attributes:
        total_cases: Number of cases
        total_events: Number of events
        unique_activities: Distinct activity labels
        trace_variants: Distinct traces
        avg_case_duration_hours: Mean case duration
        median_case_duration_hours: Median case duration
        min_case_duration_hours: Shortest case
        max_case_duration_hours: Longest case
        avg_activity_duration_hours: Activity -> mean wait until the next event
        activity_frequency: Activity -> occurrences
        transition_frequency: "A -> B" -> direct-succession occurrences
        avg_transition_duration_hours: "A -> B" -> mean duration of the step
        throughput: Cases per day over the span of the log
        bottleneck_activities: Activities above the bottleneck threshold
        singleton_cases: Degenerate single-event cases left out of the log
        uncorrelated_events: Events that had no correlation key
    """
    total_cases: int = 0
    total_events: int = 0
    unique_activities: int = 0
    trace_variants: int = 0
    avg_case_duration_hours: float = 0.0
    median_case_duration_hours: float = 0.0
    min_case_duration_hours: float = 0.0
    max_case_duration_hours: float = 0.0
    avg_activity_duration_hours: Dict[str, float] = field(default_factory=dict)
    activity_frequency: Dict[str, int] = field(default_factory=dict)
    transition_frequency: Dict[str, int] = field(default_factory=dict)
    avg_transition_duration_hours: Dict[str, float] = field(default_factory=dict)
    throughput: float = 0.0
    bottleneck_activities: List[str] = field(default_factory=list)
    singleton_cases: int = 0
    uncorrelated_events: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "total_cases": self.total_cases,
            "total_events": self.total_events,
            "unique_activities": self.unique_activities,
            "trace_variants": self.trace_variants,
            "avg_case_duration_hours": self.avg_case_duration_hours,
            "median_case_duration_hours": self.median_case_duration_hours,
            "min_case_duration_hours": self.min_case_duration_hours,
            "max_case_duration_hours": self.max_case_duration_hours,
            "avg_activity_duration_hours": dict(self.avg_activity_duration_hours),
            "activity_frequency": dict(self.activity_frequency),
            "transition_frequency": dict(self.transition_frequency),
            "avg_transition_duration_hours": dict(self.avg_transition_duration_hours),
            "throughput": self.throughput,
            "bottleneck_activities": list(self.bottleneck_activities),
            "singleton_cases": self.singleton_cases,
            "uncorrelated_events": self.uncorrelated_events,
        }


@dataclass(frozen=True)
class ActivityMetrics:
    """
    Detail metrics for a single activity.

    Attributes:
        activity: Activity label
        frequency: Occurrences in the log
        avg_duration_hours: Mean wait until the next event
        min_duration_hours: Shortest wait
        max_duration_hours: Longest wait
        participant_count: Distinct actors that performed it
        is_bottleneck: True if above the bottleneck threshold
    """
    activity: str
    frequency: int = 0
    avg_duration_hours: float = 0.0
    min_duration_hours: float = 0.0
    max_duration_hours: float = 0.0
    participant_count: int = 0
    is_bottleneck: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activity": self.activity,
            "frequency": self.frequency,
            "avg_duration_hours": self.avg_duration_hours,
            "min_duration_hours": self.min_duration_hours,
            "max_duration_hours": self.max_duration_hours,
            "participant_count": self.participant_count,
            "is_bottleneck": self.is_bottleneck,
        }


class MetricsMemo:
    """
    Request-scoped memo of shared aggregates for one event log.

    calculate_activity_metrics() recomputes the per-activity durations of the
    whole log on every call. Callers asking for many activities create one
    memo for the request and pass it along; it is discarded afterwards.

    Example:
        memo = MetricsMemo(event_log)
        details = [calculate_activity_metrics(event_log, a, memo) for a in activities]
    """

    def __init__(self, event_log: EventLog):
        self.event_log = event_log
        self._activity_durations: Optional[Dict[str, List[float]]] = None

    def activity_durations(self) -> Dict[str, List[float]]:
        if self._activity_durations is None:
            self._activity_durations = collect_activity_durations(self.event_log)
        return self._activity_durations


def calculate_process_metrics(event_log: EventLog) -> ProcessMetrics:
    """
    Calculate process metrics for an event log.

    Args:
        event_log: Grouped, chronologically ordered cases

    Returns:
        ProcessMetrics (all zero for an empty log)
    """
    if len(event_log) == 0:
        return ProcessMetrics(
            singleton_cases=event_log.stats.singleton_cases,
            uncorrelated_events=event_log.stats.uncorrelated_events,
        )

    case_durations = [case.duration_hours for case in event_log if len(case) >= 2]
    activity_durations = collect_activity_durations(event_log)
    avg_activity_durations = {
        activity: _mean(durations)
        for activity, durations in activity_durations.items()
    }
    transition_durations = collect_transition_durations(event_log)

    activity_frequency = Counter(event.activity for event in event_log.events())

    metrics = ProcessMetrics(
        total_cases=len(event_log),
        total_events=event_log.event_count,
        unique_activities=len(activity_frequency),
        trace_variants=len(event_log.variants()),
        avg_case_duration_hours=_mean(case_durations),
        median_case_duration_hours=_median(case_durations),
        min_case_duration_hours=float(min(case_durations)) if case_durations else 0.0,
        max_case_duration_hours=float(max(case_durations)) if case_durations else 0.0,
        avg_activity_duration_hours=avg_activity_durations,
        activity_frequency=dict(activity_frequency),
        transition_frequency={
            _transition_key(a, b): len(durations)
            for (a, b), durations in transition_durations.items()
        },
        avg_transition_duration_hours={
            _transition_key(a, b): _mean(durations)
            for (a, b), durations in transition_durations.items()
        },
        throughput=calculate_throughput(event_log),
        bottleneck_activities=identify_bottlenecks(avg_activity_durations),
        singleton_cases=event_log.stats.singleton_cases,
        uncorrelated_events=event_log.stats.uncorrelated_events,
    )

    logger.debug(
        f"Computed metrics for {metrics.total_cases} cases: "
        f"{len(metrics.bottleneck_activities)} bottlenecks"
    )
    return metrics


def calculate_activity_metrics(
    event_log: EventLog,
    activity: str,
    memo: Optional[MetricsMemo] = None,
) -> ActivityMetrics:
    """
    Calculate detail metrics for a single activity.

    Without a memo the per-activity durations of the whole log are
    recomputed, which is needed for the bottleneck threshold.

    Args:
        event_log: Grouped cases
        activity: Activity label
        memo: Optional request-scoped memo built for the same event log

    Returns:
        ActivityMetrics (zeros if the activity never occurs)

    Raises:
        ValueError: If the memo was built for a different event log
    """
    if memo is not None and memo.event_log is not event_log:
        raise ValueError("MetricsMemo belongs to a different event log")

    occurrences = [event for event in event_log.events() if event.activity == activity]
    if not occurrences:
        return ActivityMetrics(activity=activity)

    all_durations = memo.activity_durations() if memo else collect_activity_durations(event_log)
    durations = all_durations.get(activity, [])
    participants = {event.actor_id for event in occurrences if event.actor_id}

    avg_duration = _mean(durations)
    averages = {a: _mean(d) for a, d in all_durations.items()}

    return ActivityMetrics(
        activity=activity,
        frequency=len(occurrences),
        avg_duration_hours=avg_duration,
        min_duration_hours=float(min(durations)) if durations else 0.0,
        max_duration_hours=float(max(durations)) if durations else 0.0,
        participant_count=len(participants),
        is_bottleneck=activity in identify_bottlenecks(averages),
    )


def collect_activity_durations(event_log: EventLog) -> Dict[str, List[float]]:
    """
    Collect the wait after each non-final event, per activity.

    Returns:
        Activity -> list of durations in hours
    """
    durations: Dict[str, List[float]] = defaultdict(list)
    for case in event_log:
        events = case.events
        for current, following in zip(events, events[1:]):
            hours = (following.timestamp - current.timestamp).total_seconds() / 3600
            durations[current.activity].append(hours)
    return dict(durations)


def collect_transition_durations(event_log: EventLog) -> Dict[Tuple[str, str], List[float]]:
    """
    Collect the duration of every direct succession, per ordered pair.

    A pair repeated within one case is counted once per occurrence.

    Returns:
        (from_activity, to_activity) -> list of durations in hours
    """
    durations: Dict[Tuple[str, str], List[float]] = defaultdict(list)
    for case in event_log:
        events = case.events
        for current, following in zip(events, events[1:]):
            hours = (following.timestamp - current.timestamp).total_seconds() / 3600
            durations[(current.activity, following.activity)].append(hours)
    return dict(durations)


def calculate_throughput(event_log: EventLog) -> float:
    """
    Cases per day between the earliest and latest event of the log.

    A log whose events all share one timestamp spans zero days; its
    throughput is the case count itself.
    """
    if len(event_log) == 0:
        return 0.0

    timestamps = [event.timestamp for event in event_log.events()]
    span_days = (max(timestamps) - min(timestamps)).total_seconds() / 3600 / HOURS_PER_DAY

    if span_days > 0:
        return len(event_log) / span_days
    return float(len(event_log))


def identify_bottlenecks(
    avg_activity_durations: Dict[str, float],
    factor: float = BOTTLENECK_FACTOR,
) -> List[str]:
    """
    Identify activities whose average duration exceeds factor x the mean.

    The comparison is strict: an activity exactly at the threshold is not a
    bottleneck.

    Args:
        avg_activity_durations: Activity -> average duration
        factor: Multiplier applied to the cross-activity mean

    Returns:
        Bottleneck activities, longest average duration first
    """
    if not avg_activity_durations:
        return []

    threshold = _mean(list(avg_activity_durations.values())) * factor
    bottlenecks = [
        (duration, activity)
        for activity, duration in avg_activity_durations.items()
        if duration > threshold
    ]
    return [activity for _, activity in sorted(bottlenecks, key=lambda x: (-x[0], x[1]))]


def _transition_key(source: str, target: str) -> str:
    return f"{source} -> {target}"


def _mean(values: List[float]) -> float:
    if not values:
        return 0.0
    return float(np.mean(values))


def _median(values: List[float]) -> float:
    if not values:
        return 0.0
    return float(np.median(values))
