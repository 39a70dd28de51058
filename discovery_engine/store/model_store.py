"""
Model store for discovered processes.

A discovered process is persisted as three kinds of records:

- ProcessRecord: one per discovered model and organization
- StepRecord: one per activity, carrying its order in the expected sequence
- FollowsEdge: one per causal edge, annotated with frequency and duration

Writes happen inside a unit of work. The store is acquired on entry, the
pending batch is written only if the block completes, and the store is
released on every exit path:

    with store.unit_of_work() as session:
        record = session.save_process(model, steps, organization_id="org-1")

Record ids are derived from the organization and the content-derived model
id, so saving the same model twice overwrites the existing records instead
of duplicating them.
"""

import json
import logging
import os
import uuid
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union

if TYPE_CHECKING:
    from ..discovery.models import ProcessModel, ProcessStep

logger = logging.getLogger(__name__)

STORE_NAMESPACE = uuid.UUID("0b7d3c55-91e2-4a8a-b3f0-5d6e2c4a9f17")


def _stable_id(*parts: str) -> str:
    return str(uuid.uuid5(STORE_NAMESPACE, "|".join(parts)))


@dataclass(frozen=True)
class ProcessRecord:
    """Stored process header."""
    id: str
    organization_id: str
    model_id: str
    name: str
    confidence: float
    activity_count: int
    source_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "organization_id": self.organization_id,
            "model_id": self.model_id,
            "name": self.name,
            "confidence": self.confidence,
            "activity_count": self.activity_count,
            "source_id": self.source_id,
        }


@dataclass(frozen=True)
class StepRecord:
    """Stored process step."""
    id: str
    process_id: str
    activity: str
    order: int
    frequency: int
    avg_duration_hours: Optional[float] = None
    participants: Tuple[str, ...] = ()
    is_start_step: bool = False
    is_end_step: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "process_id": self.process_id,
            "activity": self.activity,
            "order": self.order,
            "frequency": self.frequency,
            "avg_duration_hours": self.avg_duration_hours,
            "participants": list(self.participants),
            "is_start_step": self.is_start_step,
            "is_end_step": self.is_end_step,
        }


@dataclass(frozen=True)
class FollowsEdge:
    """
    Stored "follows" relationship between two steps.

    Attributes:
        id: Stable edge id
        process_id: Owning process record
        source_step_id: Step the edge leaves
        target_step_id: Step the edge enters
        frequency: Direct-succession occurrences
        avg_duration_hours: Mean time between the two activities, if known
    """
    id: str
    process_id: str
    source_step_id: str
    target_step_id: str
    source_activity: str
    target_activity: str
    frequency: int
    avg_duration_hours: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "process_id": self.process_id,
            "source_step_id": self.source_step_id,
            "target_step_id": self.target_step_id,
            "source_activity": self.source_activity,
            "target_activity": self.target_activity,
            "frequency": self.frequency,
            "avg_duration_hours": self.avg_duration_hours,
        }


@dataclass
class StoredProcess:
    """A process record together with its steps and edges."""
    process: ProcessRecord
    steps: List[StepRecord] = field(default_factory=list)
    edges: List[FollowsEdge] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "process": self.process.to_dict(),
            "steps": [s.to_dict() for s in self.steps],
            "edges": [e.to_dict() for e in self.edges],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "StoredProcess":
        steps = []
        for item in data.get("steps", []):
            step = dict(item)
            step["participants"] = tuple(step.get("participants", ()))
            steps.append(StepRecord(**step))
        return cls(
            process=ProcessRecord(**data["process"]),
            steps=steps,
            edges=[FollowsEdge(**e) for e in data.get("edges", [])],
        )


class StoreSession:
    """
    Collects records to be written by one unit of work.

    Sessions are handed out by ModelStore.unit_of_work(); nothing is
    persisted until the unit of work completes.
    """

    def __init__(self):
        self.pending: List[StoredProcess] = []

    def save_process(
        self,
        model: "ProcessModel",
        steps: Sequence["ProcessStep"],
        organization_id: str,
        transition_durations: Optional[Mapping[Tuple[str, str], float]] = None,
        source_id: Optional[str] = None,
    ) -> ProcessRecord:
        """
        Stage a discovered process for writing.

        Args:
            model: Discovered process model
            steps: Ordered steps of the process
            organization_id: Owning tenant
            transition_durations: (source, target) -> average hours, used to
                annotate the follows edges
            source_id: Event source the process was discovered from

        Returns:
            The staged ProcessRecord (its id is stable across re-saves)
        """
        process_id = _stable_id(organization_id, model.id)
        record = ProcessRecord(
            id=process_id,
            organization_id=organization_id,
            model_id=model.id,
            name=model.name,
            confidence=model.confidence,
            activity_count=len(model.activities),
            source_id=source_id,
        )

        step_ids: Dict[str, str] = {}
        step_records = []
        for step in sorted(steps, key=lambda s: s.order):
            step_id = _stable_id(process_id, "step", step.activity)
            step_ids[step.activity] = step_id
            step_records.append(StepRecord(
                id=step_id,
                process_id=process_id,
                activity=step.activity,
                order=step.order,
                frequency=step.frequency,
                avg_duration_hours=step.avg_duration_hours,
                participants=tuple(step.participants),
                is_start_step=step.is_start_step,
                is_end_step=step.is_end_step,
            ))

        durations = transition_durations or {}
        edges = []
        for source, target, frequency in model.edges():
            if source not in step_ids or target not in step_ids:
                logger.debug(f"Skipping edge {source} -> {target} without a step")
                continue
            edges.append(FollowsEdge(
                id=_stable_id(process_id, "follows", source, target),
                process_id=process_id,
                source_step_id=step_ids[source],
                target_step_id=step_ids[target],
                source_activity=source,
                target_activity=target,
                frequency=frequency,
                avg_duration_hours=durations.get((source, target)),
            ))

        self.pending.append(StoredProcess(process=record, steps=step_records, edges=edges))
        return record


class ModelStore(ABC):
    """
    Persistence collaborator for discovered processes.

    Subclasses implement write_batch() and the read methods; acquire() and
    release() are optional hooks around each unit of work.
    """

    @contextmanager
    def unit_of_work(self) -> Iterator[StoreSession]:
        """
        Open a unit of work.

        Yields:
            StoreSession collecting the records to write

        Raises:
            Whatever the underlying store raises; the store is released
            either way and nothing is written if the block fails.
        """
        self.acquire()
        try:
            session = StoreSession()
            yield session
            if session.pending:
                self.write_batch(session.pending)
        finally:
            self.release()

    def acquire(self) -> None:
        """Acquire the underlying resource (connection, lock, ...)."""

    def release(self) -> None:
        """Release the underlying resource."""

    @abstractmethod
    def write_batch(self, batch: List[StoredProcess]) -> None:
        """Persist a batch of processes, replacing records with the same id."""

    @abstractmethod
    def get_process(self, process_id: str) -> Optional[StoredProcess]:
        """Fetch a stored process by its record id."""

    @abstractmethod
    def list_processes(self, organization_id: Optional[str] = None) -> List[ProcessRecord]:
        """List stored process records, optionally for one organization."""


class InMemoryModelStore(ModelStore):
    """Model store kept in a dictionary. Used for tests and dry runs."""

    def __init__(self):
        self._processes: Dict[str, StoredProcess] = {}
        self.acquire_count = 0
        self.release_count = 0

    @property
    def active(self) -> bool:
        return self.acquire_count > self.release_count

    def acquire(self) -> None:
        self.acquire_count += 1

    def release(self) -> None:
        self.release_count += 1

    def write_batch(self, batch: List[StoredProcess]) -> None:
        for stored in batch:
            self._processes[stored.process.id] = stored
        logger.debug(f"Stored {len(batch)} processes in memory")

    def get_process(self, process_id: str) -> Optional[StoredProcess]:
        return self._processes.get(process_id)

    def list_processes(self, organization_id: Optional[str] = None) -> List[ProcessRecord]:
        return [
            stored.process for stored in self._processes.values()
            if organization_id is None or stored.process.organization_id == organization_id
        ]

    def __len__(self) -> int:
        return len(self._processes)


class JsonFileModelStore(ModelStore):
    """
    Model store writing one JSON document per process.

    Each process is written to <directory>/<process_id>.json. Files are
    written to a temporary name first and then moved into place.
    """

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def acquire(self) -> None:
        self.directory.mkdir(parents=True, exist_ok=True)

    def write_batch(self, batch: List[StoredProcess]) -> None:
        for stored in batch:
            path = self._path(stored.process.id)
            tmp_path = path.with_suffix(".json.tmp")
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(stored.to_dict(), f, indent=2)
            os.replace(tmp_path, path)
            logger.info(f"Wrote process '{stored.process.name}': {path}")

    def get_process(self, process_id: str) -> Optional[StoredProcess]:
        path = self._path(process_id)
        if not path.exists():
            return None
        with open(path, "r", encoding="utf-8") as f:
            return StoredProcess.from_dict(json.load(f))

    def list_processes(self, organization_id: Optional[str] = None) -> List[ProcessRecord]:
        if not self.directory.exists():
            return []
        records = []
        for path in sorted(self.directory.glob("*.json")):
            with open(path, "r", encoding="utf-8") as f:
                record = ProcessRecord(**json.load(f)["process"])
            if organization_id is None or record.organization_id == organization_id:
                records.append(record)
        return records

    def _path(self, process_id: str) -> Path:
        return self.directory / f"{process_id}.json"
