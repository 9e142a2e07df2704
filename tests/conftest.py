from __future__ import annotations

from datetime import UTC, date, datetime, timedelta
from typing import Any

import pytest

from evledger.ledger.state import LedgerState
from evledger.models.events import (
    AccessoryPurchaseEvent,
    ChargerType,
    ChargingEvent,
    FaultEvent,
    FaultType,
    SatisfactionEvent,
    ServiceEvent,
    TripEvent,
)
from evledger.models.vehicle import Vehicle

T0 = datetime(2024, 3, 1, 8, 0, tzinfo=UTC)


def make_vehicle(**overrides: Any) -> Vehicle:
    fields: dict[str, Any] = {
        "id": "ev-1",
        "make": "Tesla",
        "model": "Model 3",
        "year": 2023,
        "battery_capacity_kwh": 60.0,
        "purchase_date": date(2023, 5, 1),
        "initial_odometer": 10.0,
    }
    fields.update(overrides)
    return Vehicle(**fields)


def make_charging(**overrides: Any) -> ChargingEvent:
    fields: dict[str, Any] = {
        "id": "chg-1",
        "vehicle_id": "ev-1",
        "start_time": T0,
        "end_time": T0 + timedelta(hours=2),
        "start_soc_percent": 20,
        "end_soc_percent": 80,
        "charger_type": ChargerType.LEVEL_2,
        "cost": 10.50,
    }
    fields.update(overrides)
    return ChargingEvent(**fields)


def make_trip(**overrides: Any) -> TripEvent:
    fields: dict[str, Any] = {
        "id": "trip-1",
        "vehicle_id": "ev-1",
        "start_time": T0,
        "end_time": T0 + timedelta(hours=1),
        "start_odometer": 100,
        "end_odometer": 142.5,
    }
    fields.update(overrides)
    return TripEvent(**fields)


def make_service(**overrides: Any) -> ServiceEvent:
    fields: dict[str, Any] = {
        "id": "svc-1",
        "vehicle_id": "ev-1",
        "service_date": T0,
        "odometer": 5000,
        "description": "Tyre rotation",
        "cost": 80.0,
    }
    fields.update(overrides)
    return ServiceEvent(**fields)


def make_accessory(**overrides: Any) -> AccessoryPurchaseEvent:
    fields: dict[str, Any] = {
        "id": "acc-1",
        "vehicle_id": "ev-1",
        "purchase_date": T0,
        "accessory_name": "Roof rack",
    }
    fields.update(overrides)
    return AccessoryPurchaseEvent(**fields)


def make_fault(**overrides: Any) -> FaultEvent:
    fields: dict[str, Any] = {
        "id": "flt-1",
        "vehicle_id": "ev-1",
        "fault_date": T0,
        "odometer": 6000,
        "fault_type": FaultType.WARNING_LIGHT,
        "description": "TPMS warning",
    }
    fields.update(overrides)
    return FaultEvent(**fields)


def make_satisfaction(**overrides: Any) -> SatisfactionEvent:
    fields: dict[str, Any] = {
        "id": "sat-1",
        "vehicle_id": "ev-1",
        "log_date": T0,
        "rating": 4,
    }
    fields.update(overrides)
    return SatisfactionEvent(**fields)


@pytest.fixture
def vehicle() -> Vehicle:
    return make_vehicle()


@pytest.fixture
def populated_state() -> LedgerState:
    """One vehicle with one event of every kind."""
    state = LedgerState().add_vehicle(make_vehicle())
    for event in (
        make_charging(),
        make_trip(),
        make_service(),
        make_accessory(),
        make_fault(),
        make_satisfaction(),
    ):
        state = state.add_event(event)
    return state
