"""
Alpha-style process miner.

Derives a causal workflow model from an event log:

1. Project each case to its activity trace
2. Compute direct succession over the full log
3. Classify activity pairs into causality / parallelism / choice
4. Collect start and end activities
5. Emit a causality map annotated with adjacency frequencies
6. Drop activities below the minimum support, together with their edges

Relations are computed before the support filter, so a rare trace cannot
erase a causal edge established by the majority of traces. Dropped
activities are removed, never bridged: an edge A -> X -> B does not become
A -> B when X is filtered out.

Insufficient input is not an error: mine() returns None when the log has
too few cases or fewer than two activities survive the filter.
"""

import hashlib
import logging
import uuid
from typing import Dict, List, Optional, Tuple

from ..ingest.builder import EventLog
from .models import DiscoveryStatistics, ProcessModel
from .relations import Footprint, compute_footprint

logger = logging.getLogger(__name__)

MODEL_NAMESPACE = uuid.UUID("6f1c1a52-3b8e-4f43-9d4e-2a7f5c0e8b11")


class AlphaMiner:
    """
    Discovers causal process models from event logs.

    Example:
        miner = AlphaMiner(min_case_count=5, min_activity_frequency=3)
        model = miner.mine(event_log)
        if model is not None:
            print(model.edges())
    """

    # Confidence signal weights
    CONFIDENCE_WEIGHTS = {
        "case_volume": 0.3,
        "trace_consistency": 0.3,
        "activity_coverage": 0.2,
        "trace_completeness": 0.2,
    }

    # Values at which each signal saturates
    CASE_VOLUME_TARGET = 100
    ACTIVITY_COVERAGE_TARGET = 10
    TRACE_LENGTH_TARGET = 5

    def __init__(
        self,
        min_case_count: int = 5,
        min_activity_frequency: int = 3,
    ):
        """
        Initialize the miner.

        Args:
            min_case_count: Minimum cases required to emit a model
            min_activity_frequency: Minimum occurrences to retain an activity

        Raises:
            ValueError: If a threshold is negative
        """
        if min_case_count < 0:
            raise ValueError(f"min_case_count must be >= 0, got {min_case_count}")
        if min_activity_frequency < 0:
            raise ValueError(
                f"min_activity_frequency must be >= 0, got {min_activity_frequency}"
            )
        self.min_case_count = min_case_count
        self.min_activity_frequency = min_activity_frequency

    def mine(self, event_log: EventLog, name: Optional[str] = None) -> Optional[ProcessModel]:
        """
        Discover a process model.

        Args:
            event_log: Grouped, chronologically ordered cases
            name: Model name (derived from start/end activities if omitted)

        Returns:
            The discovered model, or None if nothing is discoverable
        """
        if len(event_log) < self.min_case_count:
            logger.info(
                f"Not enough cases for discovery: {len(event_log)} < {self.min_case_count}"
            )
            return None

        traces = event_log.traces()
        footprint = compute_footprint(traces)
        statistics = self.compute_statistics(event_log, footprint)

        retained = {
            activity: count
            for activity, count in footprint.activity_counts.items()
            if count >= self.min_activity_frequency
        }
        dropped = sorted(set(footprint.activity_counts) - set(retained))
        if dropped:
            logger.debug(
                f"Dropped {len(dropped)} activities below frequency "
                f"{self.min_activity_frequency}: {dropped}"
            )

        if len(retained) < 2:
            logger.info(
                f"Only {len(retained)} activities meet minimum frequency "
                f"{self.min_activity_frequency}; no model emitted"
            )
            return None

        causal_edges = self._build_causal_edges(footprint, retained)
        start_activities = tuple(a for a in footprint.start_counts if a in retained)
        end_activities = tuple(a for a in footprint.end_counts if a in retained)
        parallel_pairs = tuple(
            (a, b) for a, b in footprint.parallel_pairs()
            if a in retained and b in retained
        )

        confidence = self.calculate_confidence(statistics)
        model_name = name or self._default_name(footprint, retained)

        model = ProcessModel(
            id=self._model_id(model_name, retained, causal_edges),
            name=model_name,
            activities=retained,
            causal_edges=causal_edges,
            start_activities=start_activities,
            end_activities=end_activities,
            confidence=confidence,
            parallel_pairs=parallel_pairs,
            statistics=statistics,
        )

        logger.info(
            f"Discovered '{model.name}': {len(retained)} activities, "
            f"{len(model.edges())} causal edges, confidence {confidence:.3f}"
        )
        return model

    def compute_statistics(
        self,
        event_log: EventLog,
        footprint: Optional[Footprint] = None
    ) -> DiscoveryStatistics:
        """Compute the log statistics used by the confidence score."""
        footprint = footprint or compute_footprint(event_log.traces())
        case_count = len(event_log)
        event_count = event_log.event_count
        return DiscoveryStatistics(
            case_count=case_count,
            variant_count=len(event_log.variants()),
            activity_count=len(footprint.activities),
            average_trace_length=event_count / case_count if case_count else 0.0,
            event_count=event_count,
        )

    def calculate_confidence(self, statistics: DiscoveryStatistics) -> float:
        """
        Calculate the diagnostic confidence score.

        Weighted sum of four signals, each clamped to [0, 1]:
        - case volume: cases / 100
        - trace consistency: 1 - variants / cases
        - activity coverage: activities / 10
        - trace completeness: average trace length / 5

        Args:
            statistics: Log statistics

        Returns:
            Confidence between 0.0 and 1.0
        """
        if statistics.case_count == 0:
            return 0.0

        signals = {
            "case_volume": statistics.case_count / self.CASE_VOLUME_TARGET,
            "trace_consistency": 1 - statistics.variant_count / statistics.case_count,
            "activity_coverage": statistics.activity_count / self.ACTIVITY_COVERAGE_TARGET,
            "trace_completeness": statistics.average_trace_length / self.TRACE_LENGTH_TARGET,
        }

        score = 0.0
        for signal, value in signals.items():
            score += _clamp(value) * self.CONFIDENCE_WEIGHTS[signal]

        return round(score, 4)

    def _build_causal_edges(
        self,
        footprint: Footprint,
        retained: Dict[str, int]
    ) -> Dict[str, Dict[str, int]]:
        """Causality map restricted to retained activities."""
        edges: Dict[str, Dict[str, int]] = {}
        for a, b in footprint.causal_pairs():
            if a in retained and b in retained:
                edges.setdefault(a, {})[b] = footprint.succession[(a, b)]
        return edges

    def _default_name(self, footprint: Footprint, retained: Dict[str, int]) -> str:
        start = _most_frequent(footprint.start_counts, retained)
        end = _most_frequent(footprint.end_counts, retained)
        if start and end:
            return f"{start} to {end}"
        return f"Process with {len(retained)} activities"

    def _model_id(
        self,
        name: str,
        activities: Dict[str, int],
        causal_edges: Dict[str, Dict[str, int]]
    ) -> str:
        """Derive a stable id from the model content."""
        parts: List[str] = [name]
        parts.extend(f"{a}:{count}" for a, count in sorted(activities.items()))
        parts.extend(
            f"{a}>{b}:{count}"
            for a, targets in sorted(causal_edges.items())
            for b, count in sorted(targets.items())
        )
        digest = hashlib.sha256("|".join(parts).encode("utf-8")).hexdigest()
        return str(uuid.uuid5(MODEL_NAMESPACE, digest))


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def _most_frequent(counts: Dict[str, int], retained: Dict[str, int]) -> Optional[str]:
    candidates: List[Tuple[int, str]] = [
        (-count, activity) for activity, count in counts.items()
        if activity in retained
    ]
    if not candidates:
        return None
    return min(candidates)[1]


def discover_process_model(
    event_log: EventLog,
    min_case_count: int = 5,
    min_activity_frequency: int = 3,
) -> Optional[ProcessModel]:
    """
    Convenience function to mine a process model.

    Args:
        event_log: Grouped cases
        min_case_count: Minimum cases required to emit a model
        min_activity_frequency: Minimum occurrences to retain an activity

    Returns:
        The discovered model, or None if nothing is discoverable
    """
    miner = AlphaMiner(
        min_case_count=min_case_count,
        min_activity_frequency=min_activity_frequency,
    )
    return miner.mine(event_log)
