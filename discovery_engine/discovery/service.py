"""
Process discovery service.

Orchestrates one discovery run:

1. Query raw events from the event source
2. Group them into an event log
3. Mine one process model from every case the filter matched
4. Annotate the steps with frequency, duration and participants
5. Optionally compute metrics and save the process to the model store

Scoping to a single source system is done by EventFilter.source_id; the
case and activity thresholds always apply to the whole filtered log.

The core never retries or swallows collaborator failures: an unreachable
event source or a failing store write propagates to the caller.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional, Tuple

import numpy as np

from .. import DEFAULT_CONFIG
from ..ingest.builder import EventLog, EventLogBuilder
from ..ingest.events import EventFilter
from ..ingest.source import EventSource
from ..metrics.calculator import (
    MetricsMemo,
    calculate_process_metrics,
    collect_transition_durations,
)
from ..store.model_store import ModelStore
from .miner import AlphaMiner
from .models import DiscoveryResult, ProcessModel, ProcessStep

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscoveryOptions:
    """
    Options for a discovery run.

    Attributes:
        min_case_count: Minimum cases required to emit a model
        min_activity_frequency: Minimum occurrences to retain an activity
        include_metrics: Attach ProcessMetrics to each result
        save_to_dashboard: Save discovered processes to the model store
    """
    min_case_count: int = 5
    min_activity_frequency: int = 3
    include_metrics: bool = True
    save_to_dashboard: bool = True

    def __post_init__(self):
        if self.min_case_count < 0:
            raise ValueError(f"min_case_count must be >= 0, got {self.min_case_count}")
        if self.min_activity_frequency < 0:
            raise ValueError(
                f"min_activity_frequency must be >= 0, got {self.min_activity_frequency}"
            )

    @classmethod
    def from_config(cls, config: Optional[Mapping[str, Any]] = None) -> "DiscoveryOptions":
        """Create options from a configuration dict such as DEFAULT_CONFIG."""
        config = {**DEFAULT_CONFIG, **(config or {})}
        return cls(
            min_case_count=int(config["min_case_count"]),
            min_activity_frequency=int(config["min_activity_frequency"]),
            include_metrics=bool(config["include_metrics"]),
            save_to_dashboard=bool(config["save_to_dashboard"]),
        )


class ProcessDiscoveryService:
    """
    Discovers processes from the events of an event source.

    Example:
        service = ProcessDiscoveryService(JsonEventSource("events.json"))
        results = service.discover_processes(
            EventFilter(organization_id="org-1"),
            DiscoveryOptions(save_to_dashboard=False),
        )
        for result in results:
            print(result.process.name, result.process.confidence)
    """

    def __init__(
        self,
        event_source: EventSource,
        model_store: Optional[ModelStore] = None,
        builder: Optional[EventLogBuilder] = None,
    ):
        self.event_source = event_source
        self.model_store = model_store
        self.builder = builder or EventLogBuilder()

    def discover_processes(
        self,
        event_filter: EventFilter,
        options: Optional[DiscoveryOptions] = None,
    ) -> List[DiscoveryResult]:
        """
        Run discovery for the events matching a filter.

        Args:
            event_filter: Organization, source, event type and time filter
            options: Discovery options (defaults if omitted)

        Returns:
            A single DiscoveryResult, or an empty list if the data is
            insufficient

        Raises:
            EventDataError: If an event row is malformed
        """
        options = options or DiscoveryOptions()
        rows = self.event_source.query(event_filter)
        logger.info(f"Fetched {len(rows)} events for organization {event_filter.organization_id}")

        event_log = self.builder.build(rows)
        miner = AlphaMiner(
            min_case_count=options.min_case_count,
            min_activity_frequency=options.min_activity_frequency,
        )

        model = miner.mine(event_log)
        if model is None:
            logger.info("No process discovered (insufficient cases or activities)")
            return []

        results = [DiscoveryResult(
            process=model,
            steps=build_steps(model, event_log),
            metrics=calculate_process_metrics(event_log) if options.include_metrics else None,
            source_id=event_filter.source_id,
        )]

        if options.save_to_dashboard:
            self._save(results, event_log, event_filter.organization_id)

        logger.info(f"Discovered {len(results)} processes")
        return results

    def _save(
        self,
        results: List[DiscoveryResult],
        event_log: EventLog,
        organization_id: str,
    ) -> None:
        if self.model_store is None:
            logger.warning("save_to_dashboard requested but no model store is configured")
            return

        transition_durations = average_transition_durations(event_log)
        with self.model_store.unit_of_work() as session:
            for result in results:
                record = session.save_process(
                    result.process,
                    result.steps,
                    organization_id=organization_id,
                    transition_durations=transition_durations,
                    source_id=result.source_id,
                )
                result.stored_process_id = record.id


def build_steps(model: ProcessModel, event_log: EventLog) -> List[ProcessStep]:
    """
    Build the ordered steps of a discovered process.

    Args:
        model: Discovered model
        event_log: Log the model was mined from

    Returns:
        One ProcessStep per retained activity, in expected order
    """
    durations = MetricsMemo(event_log).activity_durations()
    participants: Dict[str, set] = defaultdict(set)
    for event in event_log.events():
        if event.actor_id:
            participants[event.activity].add(event.actor_id)

    steps = []
    for order, activity in enumerate(model.get_expected_sequence()):
        activity_durations = durations.get(activity)
        steps.append(ProcessStep(
            activity=activity,
            order=order,
            frequency=model.activities[activity],
            avg_duration_hours=float(np.mean(activity_durations)) if activity_durations else None,
            participants=sorted(participants.get(activity, ())),
            is_start_step=model.is_start_activity(activity),
            is_end_step=model.is_end_activity(activity),
        ))
    return steps


def average_transition_durations(event_log: EventLog) -> Dict[Tuple[str, str], float]:
    """Average hours per direct succession (source, target)."""
    return {
        pair: float(np.mean(durations))
        for pair, durations in collect_transition_durations(event_log).items()
    }


def discover_processes(
    event_source: EventSource,
    event_filter: EventFilter,
    options: Optional[DiscoveryOptions] = None,
    model_store: Optional[ModelStore] = None,
) -> List[DiscoveryResult]:
    """
    Convenience function to run one discovery.

    Args:
        event_source: Where raw events come from
        event_filter: Organization, source, event type and time filter
        options: Discovery options
        model_store: Store for discovered processes

    Returns:
        List of DiscoveryResult
    """
    service = ProcessDiscoveryService(event_source, model_store=model_store)
    return service.discover_processes(event_filter, options)
