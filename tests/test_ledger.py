from __future__ import annotations

import json

import pytest

from conftest import make_charging, make_trip, make_vehicle
from evledger.exceptions import UnknownVehicleError
from evledger.ledger import Ledger, LedgerState
from evledger.persistence import MemoryBackend, SnapshotStore


def _saved(backend: MemoryBackend) -> dict:
    raw = backend.get("evCompanionState")
    assert raw is not None
    return json.loads(raw)


def test_mutations_are_written_through() -> None:
    backend = MemoryBackend()
    ledger = Ledger(SnapshotStore(backend))

    ledger.add_vehicle(make_vehicle())
    assert [v["id"] for v in _saved(backend)["evs"]] == ["ev-1"]

    ledger.add_event(make_charging())
    assert [e["id"] for e in _saved(backend)["logs"]] == ["chg-1"]

    ledger.delete_vehicle("ev-1")
    assert _saved(backend)["evs"] == []
    assert _saved(backend)["logs"] == []


def test_refused_mutation_leaves_state_and_snapshot_untouched() -> None:
    backend = MemoryBackend()
    ledger = Ledger(SnapshotStore(backend))
    ledger.add_vehicle(make_vehicle())
    before_state = ledger.state
    before_blob = backend.get("evCompanionState")

    with pytest.raises(UnknownVehicleError):
        ledger.add_event(make_trip(vehicle_id="ghost"))

    assert ledger.state is before_state
    assert backend.get("evCompanionState") == before_blob


def test_on_change_called_only_for_real_changes() -> None:
    seen: list[LedgerState] = []
    ledger = Ledger(on_change=seen.append)

    ledger.add_vehicle(make_vehicle())
    ledger.delete_event("missing")
    ledger.delete_vehicle("missing")

    assert len(seen) == 1
    assert seen[0] is ledger.state


def test_open_rehydrates_saved_state() -> None:
    backend = MemoryBackend()
    first = Ledger(SnapshotStore(backend))
    first.add_vehicle(make_vehicle())
    first.add_event(make_trip())

    second = Ledger.open(SnapshotStore(backend))

    assert second.state == first.state


def test_open_without_snapshot_is_empty() -> None:
    ledger = Ledger.open(SnapshotStore(MemoryBackend()))
    assert ledger.state.is_empty


def test_open_drops_orphan_events(caplog: pytest.LogCaptureFixture) -> None:
    backend = MemoryBackend()
    orphaned = LedgerState(vehicles=(make_vehicle(),), events=(make_trip(), make_trip(id="x", vehicle_id="ghost")))
    SnapshotStore(backend).save(orphaned)

    ledger = Ledger.open(SnapshotStore(backend))

    assert [e.id for e in ledger.events] == ["trip-1"]
    assert "integrity issue" in caplog.text


def test_clear_resets_and_saves() -> None:
    backend = MemoryBackend()
    ledger = Ledger(SnapshotStore(backend))
    ledger.add_vehicle(make_vehicle())

    ledger.clear()

    assert ledger.state.is_empty
    assert _saved(backend)["evs"] == []


def test_replace_all() -> None:
    ledger = Ledger()
    replacement = LedgerState(vehicles=(make_vehicle(id="ev-9"),))

    ledger.replace_all(replacement)

    assert ledger.state is replacement
