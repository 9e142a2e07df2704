from __future__ import annotations

from datetime import timedelta

import pytest

from conftest import T0, make_charging, make_satisfaction, make_service, make_trip, make_vehicle
from evledger.exceptions import DuplicateIdError, InvalidEventError, UnknownVehicleError
from evledger.ledger.state import LedgerState


def _state_with_vehicles(*ids: str) -> LedgerState:
    state = LedgerState()
    for vehicle_id in ids:
        state = state.add_vehicle(make_vehicle(id=vehicle_id))
    return state


def test_add_vehicle_returns_new_value() -> None:
    empty = LedgerState()
    state = empty.add_vehicle(make_vehicle())

    assert empty.vehicles == ()
    assert [v.id for v in state.vehicles] == ["ev-1"]


def test_add_vehicle_duplicate_id_refused() -> None:
    state = _state_with_vehicles("ev-1")

    with pytest.raises(DuplicateIdError) as excinfo:
        state.add_vehicle(make_vehicle(make="Kia"))

    assert excinfo.value.entity_id == "ev-1"
    assert state.vehicles[0].make == "Tesla"


def test_update_vehicle_replaces_in_place() -> None:
    state = _state_with_vehicles("ev-1", "ev-2")
    updated = state.update_vehicle(make_vehicle(id="ev-1", make="Kia"))

    assert [v.id for v in updated.vehicles] == ["ev-1", "ev-2"]
    assert updated.vehicles[0].make == "Kia"
    assert state.vehicles[0].make == "Tesla"


def test_update_unknown_vehicle_refused() -> None:
    with pytest.raises(UnknownVehicleError):
        LedgerState().update_vehicle(make_vehicle())


def test_delete_vehicle_cascades_to_events() -> None:
    state = _state_with_vehicles("ev-1", "ev-2")
    state = state.add_event(make_charging(id="a", vehicle_id="ev-1"))
    state = state.add_event(make_trip(id="b", vehicle_id="ev-1"))
    state = state.add_event(make_trip(id="c", vehicle_id="ev-2"))

    after = state.delete_vehicle("ev-1")

    assert [v.id for v in after.vehicles] == ["ev-2"]
    assert [e.id for e in after.events] == ["c"]
    assert not [e for e in after.events if e.vehicle_id == "ev-1"]


def test_delete_only_vehicle_with_two_events_empties_store() -> None:
    state = _state_with_vehicles("ev-1")
    state = state.add_event(make_charging()).add_event(make_trip())

    after = state.delete_vehicle("ev-1")

    assert after.vehicles == ()
    assert after.events == ()


def test_delete_absent_vehicle_is_noop() -> None:
    state = _state_with_vehicles("ev-1")
    assert state.delete_vehicle("missing") is state


def test_add_event_requires_existing_vehicle() -> None:
    with pytest.raises(UnknownVehicleError) as excinfo:
        LedgerState().add_event(make_charging(vehicle_id="ghost"))
    assert excinfo.value.vehicle_id == "ghost"


def test_add_event_duplicate_id_refused() -> None:
    state = _state_with_vehicles("ev-1").add_event(make_charging(id="dup"))

    with pytest.raises(DuplicateIdError):
        state.add_event(make_service(id="dup"))
    assert len(state.events) == 1


def test_add_trip_with_reversed_odometer_refused() -> None:
    state = _state_with_vehicles("ev-1")
    with pytest.raises(InvalidEventError):
        state.add_event(make_trip(start_odometer=200, end_odometer=150))


def test_add_event_ending_before_start_refused() -> None:
    state = _state_with_vehicles("ev-1")
    with pytest.raises(InvalidEventError):
        state.add_event(make_charging(end_time=T0 - timedelta(minutes=1)))


def test_delete_event() -> None:
    state = _state_with_vehicles("ev-1").add_event(make_charging(id="a")).add_event(make_satisfaction(id="b"))

    after = state.delete_event("a")

    assert [e.id for e in after.events] == ["b"]
    assert after.delete_event("a") is after


def test_unique_ids_and_resolvable_references_after_valid_adds() -> None:
    state = _state_with_vehicles("ev-1", "ev-2", "ev-3")
    for index in range(12):
        state = state.add_event(make_service(id=f"svc-{index}", vehicle_id=f"ev-{index % 3 + 1}"))

    vehicle_ids = [v.id for v in state.vehicles]
    event_ids = [e.id for e in state.events]
    assert len(set(vehicle_ids)) == len(vehicle_ids)
    assert len(set(event_ids)) == len(event_ids)
    assert all(e.vehicle_id in vehicle_ids for e in state.events)
    assert state.integrity_issues() == []


def test_replace_all_trusts_input() -> None:
    orphaned = LedgerState(events=(make_trip(vehicle_id="ghost"),))
    replaced = _state_with_vehicles("ev-1").replace_all(orphaned)

    assert replaced is orphaned
    assert replaced.integrity_issues() == ["event trip-1 references unknown vehicle ghost"]


def test_without_orphans_drops_dangling_events() -> None:
    state = LedgerState(
        vehicles=(make_vehicle(),),
        events=(make_trip(id="keep"), make_trip(id="drop", vehicle_id="ghost")),
    )
    repaired = state.without_orphans()

    assert [e.id for e in repaired.events] == ["keep"]
    assert repaired.without_orphans() is repaired


def test_integrity_reports_duplicates() -> None:
    state = LedgerState(vehicles=(make_vehicle(), make_vehicle()))
    assert state.integrity_issues() == ["duplicate vehicle id ev-1"]


def test_clear() -> None:
    state = _state_with_vehicles("ev-1").add_event(make_trip())
    cleared = state.clear()

    assert cleared.is_empty
    assert cleared.clear() is cleared
    assert len(state.events) == 1


def test_events_for_keeps_insertion_order() -> None:
    state = _state_with_vehicles("ev-1", "ev-2")
    state = state.add_event(make_trip(id="t2", start_time=T0 + timedelta(days=2), end_time=T0 + timedelta(days=2)))
    state = state.add_event(make_trip(id="other", vehicle_id="ev-2"))
    state = state.add_event(make_trip(id="t1"))

    assert [e.id for e in state.events_for("ev-1")] == ["t2", "t1"]


def test_serializes_to_snapshot_layout() -> None:
    state = _state_with_vehicles("ev-1").add_event(make_charging())
    data = state.to_json_dict()

    assert set(data) == {"evs", "logs"}
    assert data["evs"][0]["id"] == "ev-1"
    assert data["logs"][0]["type"] == "Charging"
    assert LedgerState.model_validate(data) == state
