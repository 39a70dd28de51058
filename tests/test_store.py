"""
Tests for the model store.

Tests cover:
- Unit of work lifecycle (acquire, write, release)
- Rollback of the batch on failure
- Stable record ids and idempotent re-saves
- JSON file persistence
"""

import pytest

from discovery_engine.discovery import AlphaMiner, build_steps
from discovery_engine.store import (
    InMemoryModelStore,
    JsonFileModelStore,
    StoredProcess,
)


@pytest.fixture
def discovered(make_log, happy_path_traces):
    """A discovered model with its steps and event log."""
    event_log = make_log(happy_path_traces)
    model = AlphaMiner(min_case_count=1, min_activity_frequency=1).mine(event_log)
    return model, build_steps(model, event_log)


class TestUnitOfWork:
    """Tests for ModelStore.unit_of_work."""

    def test_writes_on_success(self, discovered):
        """The batch is written when the block completes."""
        model, steps = discovered
        store = InMemoryModelStore()

        with store.unit_of_work() as session:
            record = session.save_process(model, steps, organization_id="org-1")
            assert len(store) == 0

        assert len(store) == 1
        assert store.get_process(record.id).process == record
        assert store.acquire_count == 1
        assert store.release_count == 1
        assert not store.active

    def test_released_on_failure(self, discovered):
        """A failing block writes nothing and still releases."""
        model, steps = discovered
        store = InMemoryModelStore()

        with pytest.raises(RuntimeError):
            with store.unit_of_work() as session:
                session.save_process(model, steps, organization_id="org-1")
                raise RuntimeError("boom")

        assert len(store) == 0
        assert store.release_count == 1

    def test_write_failure_propagates(self, discovered):
        """Store write errors reach the caller after release."""
        model, steps = discovered

        class FailingStore(InMemoryModelStore):
            def write_batch(self, batch):
                raise IOError("disk full")

        store = FailingStore()
        with pytest.raises(IOError):
            with store.unit_of_work() as session:
                session.save_process(model, steps, organization_id="org-1")

        assert store.release_count == 1


class TestSaveProcess:
    """Tests for StoreSession.save_process."""

    def test_records(self, discovered):
        """A process record, ordered steps and follows edges are created."""
        model, steps = discovered
        store = InMemoryModelStore()

        with store.unit_of_work() as session:
            record = session.save_process(
                model, steps, organization_id="org-1",
                transition_durations={("Received", "Reviewed"): 1.0},
                source_id="crm",
            )

        stored = store.get_process(record.id)
        assert record.model_id == model.id
        assert record.source_id == "crm"
        assert [s.activity for s in stored.steps] == model.get_expected_sequence()
        assert [s.order for s in stored.steps] == list(range(len(model.activities)))
        assert len(stored.edges) == len(model.edges())

        edge = next(e for e in stored.edges if e.source_activity == "Received")
        assert edge.target_activity == "Reviewed"
        assert edge.frequency == 6
        assert edge.avg_duration_hours == 1.0

        step_ids = {s.activity: s.id for s in stored.steps}
        assert edge.source_step_id == step_ids["Received"]
        assert edge.target_step_id == step_ids["Reviewed"]

    def test_idempotent(self, discovered):
        """Saving the same model twice keeps one set of records."""
        model, steps = discovered
        store = InMemoryModelStore()

        ids = []
        for _ in range(2):
            with store.unit_of_work() as session:
                ids.append(session.save_process(model, steps, organization_id="org-1").id)

        assert ids[0] == ids[1]
        assert len(store) == 1

    def test_organizations_isolated(self, discovered):
        """The same model saved for two organizations gets two records."""
        model, steps = discovered
        store = InMemoryModelStore()

        with store.unit_of_work() as session:
            first = session.save_process(model, steps, organization_id="org-1")
            second = session.save_process(model, steps, organization_id="org-2")

        assert first.id != second.id
        assert [r.id for r in store.list_processes("org-2")] == [second.id]


class TestJsonFileModelStore:
    """Tests for JsonFileModelStore."""

    def test_round_trip(self, tmp_path, discovered):
        """Stored processes read back equal."""
        model, steps = discovered
        store = JsonFileModelStore(tmp_path / "processes")

        with store.unit_of_work() as session:
            record = session.save_process(model, steps, organization_id="org-1")

        assert (tmp_path / "processes" / f"{record.id}.json").exists()
        loaded = store.get_process(record.id)
        assert isinstance(loaded, StoredProcess)
        assert loaded.process == record
        assert [s.activity for s in loaded.steps] == [s.activity for s in steps]
        assert store.list_processes("org-1") == [record]
        assert store.list_processes("org-9") == []

    def test_missing(self, tmp_path):
        """Unknown ids and missing directories are not errors."""
        store = JsonFileModelStore(tmp_path / "nothing")
        assert store.get_process("unknown") is None
        assert store.list_processes() == []
