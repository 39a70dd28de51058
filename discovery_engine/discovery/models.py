"""
Process model definitions produced by discovery.

A discovered ProcessModel is a causality map rather than a Petri net:
activities annotated with their frequency, causal edges annotated with
their direct-succession frequency, and the observed start and end
activities. Downstream consumers (the model store, the conformance
checker) only need adjacency and frequency.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set, Tuple


@dataclass(frozen=True)
class DiscoveryStatistics:
    """
    Log statistics a discovery run was based on.

    Attributes:
        case_count: Cases in the log
        variant_count: Distinct traces
        activity_count: Distinct activities before frequency filtering
        average_trace_length: Mean events per case
        event_count: Events in the log
    """
    case_count: int
    variant_count: int
    activity_count: int
    average_trace_length: float
    event_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "case_count": self.case_count,
            "variant_count": self.variant_count,
            "activity_count": self.activity_count,
            "average_trace_length": self.average_trace_length,
            "event_count": self.event_count,
        }


@dataclass(frozen=True)
class ProcessModel:
    """
    A discovered process model.

    Attributes:
        id: Content-derived identifier (identical input gives identical id)
        name: Human-readable name
        activities: Retained activity -> occurrence frequency
        causal_edges: Activity -> {successor: direct-succession frequency}
        start_activities: Retained activities that start at least one trace
        end_activities: Retained activities that end at least one trace
        confidence: Diagnostic score in [0, 1]
        parallel_pairs: Retained activity pairs observed in both orders
        statistics: Statistics of the log the model was mined from
    """
    id: str
    name: str
    activities: Dict[str, int]
    causal_edges: Dict[str, Dict[str, int]]
    start_activities: Tuple[str, ...]
    end_activities: Tuple[str, ...]
    confidence: float
    parallel_pairs: Tuple[Tuple[str, str], ...] = ()
    statistics: Optional[DiscoveryStatistics] = None

    def successors(self, activity: str) -> Set[str]:
        """Causal successors of an activity."""
        return set(self.causal_edges.get(activity, {}))

    def predecessors(self, activity: str) -> Set[str]:
        """Activities with a causal edge into the given activity."""
        return {
            source for source, targets in self.causal_edges.items()
            if activity in targets
        }

    def edges(self) -> List[Tuple[str, str, int]]:
        """All causal edges as (source, target, frequency), sorted."""
        return sorted(
            (source, target, frequency)
            for source, targets in self.causal_edges.items()
            for target, frequency in targets.items()
        )

    def has_edge(self, source: str, target: str) -> bool:
        return target in self.causal_edges.get(source, {})

    def is_start_activity(self, activity: str) -> bool:
        return activity in self.start_activities

    def is_end_activity(self, activity: str) -> bool:
        return activity in self.end_activities

    def get_expected_sequence(self) -> List[str]:
        """
        Linearize the model into a reference activity sequence.

        Performs a topological sort of the causal map, starting from the
        start activities. Ready activities are taken most frequent first,
        then alphabetically. Causal cycles (possible for loops of length
        three or more) are broken at the most frequent remaining activity.

        Returns:
            Every retained activity exactly once, in expected order
        """
        in_degree = {activity: 0 for activity in self.activities}
        for source, target, _ in self.edges():
            if source != target:
                in_degree[target] += 1

        def rank(activity: str) -> Tuple[int, int, str]:
            # Start activities first, then by frequency, then by name
            return (
                0 if activity in self.start_activities else 1,
                -self.activities[activity],
                activity,
            )

        remaining = set(self.activities)
        result: List[str] = []

        while remaining:
            ready = [a for a in remaining if in_degree[a] == 0]
            if not ready:
                ready = list(remaining)
            current = min(ready, key=rank)

            result.append(current)
            remaining.discard(current)
            for target in self.causal_edges.get(current, {}):
                if target in remaining and target != current:
                    in_degree[target] -= 1

        return result

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "id": self.id,
            "name": self.name,
            "activities": dict(self.activities),
            "causal_edges": {
                source: dict(targets)
                for source, targets in self.causal_edges.items()
            },
            "start_activities": list(self.start_activities),
            "end_activities": list(self.end_activities),
            "confidence": self.confidence,
            "parallel_pairs": [list(pair) for pair in self.parallel_pairs],
            "statistics": self.statistics.to_dict() if self.statistics else None,
        }


@dataclass
class ProcessStep:
    """
    One step of a discovered process, as handed to the model store.

    Attributes:
        activity: Activity label
        order: Position in the expected sequence (0-based)
        frequency: Occurrences of the activity
        avg_duration_hours: Average time until the next event
        participants: Distinct actors that performed the activity
        is_start_step: True if the activity starts some trace
        is_end_step: True if the activity ends some trace
    """
    activity: str
    order: int
    frequency: int
    avg_duration_hours: Optional[float] = None
    participants: List[str] = field(default_factory=list)
    is_start_step: bool = False
    is_end_step: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "activity": self.activity,
            "order": self.order,
            "frequency": self.frequency,
            "avg_duration_hours": self.avg_duration_hours,
            "participants": list(self.participants),
            "is_start_step": self.is_start_step,
            "is_end_step": self.is_end_step,
        }


@dataclass
class DiscoveryResult:
    """
    Result of discovering one process.

    Attributes:
        process: The discovered model
        steps: Ordered steps with frequency and duration annotations
        metrics: Process metrics (None when metrics were not requested)
        source_id: Event source the process was discovered from
        stored_process_id: Id assigned by the model store, if saved
    """
    process: ProcessModel
    steps: List[ProcessStep]
    metrics: Optional[Any] = None
    source_id: Optional[str] = None
    stored_process_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "process": self.process.to_dict(),
            "steps": [step.to_dict() for step in self.steps],
            "step_count": len(self.steps),
            "metrics": self.metrics.to_dict() if self.metrics is not None else None,
            "source_id": self.source_id,
            "stored_process_id": self.stored_process_id,
        }
