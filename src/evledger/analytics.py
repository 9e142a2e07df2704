"""Aggregate statistics and chart series derived from the ledger.

All functions are pure and recompute from the given :class:`LedgerState`
on every call.
"""

from __future__ import annotations

from collections import Counter
from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from evledger.exceptions import InsufficientDataError
from evledger.ledger.state import LedgerState
from evledger.models.events import (
    ChargerType,
    ChargingEvent,
    Event,
    SatisfactionEvent,
    ServiceEvent,
    TripEvent,
    event_date,
)

#: Charts and recommendations need at least this many logged events.
MIN_EVENTS_FOR_ANALYTICS = 3


class ChargingPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    energy_added_kwh: float
    cost: float


class TripPoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    day: date
    distance: float


class LedgerSummary(BaseModel):
    """Headline numbers shown on the dashboard and in the export."""

    model_config = ConfigDict(frozen=True)

    vehicle_count: int = 0
    event_count: int = 0
    total_distance: float = 0.0
    total_cost: float = 0.0
    charging_sessions: int = 0
    charger_types: dict[ChargerType, int] = Field(default_factory=dict)
    average_satisfaction: float | None = None


class AnalyticsReport(BaseModel):
    """Chart-ready series, gated on :data:`MIN_EVENTS_FOR_ANALYTICS`.

    When ``enough_data`` is ``False`` every series is empty.
    """

    model_config = ConfigDict(frozen=True)

    enough_data: bool
    event_count: int
    charging: list[ChargingPoint] = Field(default_factory=list)
    trips: list[TripPoint] = Field(default_factory=list)
    charger_types: dict[ChargerType, int] = Field(default_factory=dict)


def _charging_events(state: LedgerState) -> list[ChargingEvent]:
    return [e for e in state.events if isinstance(e, ChargingEvent)]


def _trip_events(state: LedgerState) -> list[TripEvent]:
    return [e for e in state.events if isinstance(e, TripEvent)]


def total_distance(state: LedgerState) -> float:
    """Sum of ``end_odometer - start_odometer`` over trips."""
    return sum((e.distance for e in _trip_events(state)), 0.0)


def total_cost(state: LedgerState) -> float:
    """Money spent on charging and service; missing costs count as zero."""
    return sum(
        (e.cost or 0.0 for e in state.events if isinstance(e, (ChargingEvent, ServiceEvent))),
        0.0,
    )


def charging_session_count(state: LedgerState) -> int:
    return len(_charging_events(state))


def charger_type_histogram(state: LedgerState) -> dict[ChargerType, int]:
    """Charging sessions per charger class. Classes never used are absent."""
    return dict(Counter(e.charger_type for e in _charging_events(state)))


def average_satisfaction(state: LedgerState) -> float | None:
    ratings = [e.rating for e in state.events if isinstance(e, SatisfactionEvent)]
    if not ratings:
        return None
    return sum(ratings) / len(ratings)


def energy_added_kwh(event: ChargingEvent, battery_capacity_kwh: float) -> float:
    return event.soc_gained / 100 * battery_capacity_kwh


def charging_series(state: LedgerState) -> list[ChargingPoint]:
    """One point per charging event, in ledger order.

    Energy is derived from the SoC delta and the vehicle's battery capacity;
    a missing vehicle contributes zero capacity.
    """
    capacities = {v.id: v.battery_capacity_kwh for v in state.vehicles}
    return [
        ChargingPoint(
            day=e.start_time.date(),
            energy_added_kwh=energy_added_kwh(e, capacities.get(e.vehicle_id, 0.0)),
            cost=e.cost or 0.0,
        )
        for e in _charging_events(state)
    ]


def trip_series(state: LedgerState) -> list[TripPoint]:
    return [TripPoint(day=e.start_time.date(), distance=e.distance) for e in _trip_events(state)]


def has_enough_data(state: LedgerState) -> bool:
    return len(state.events) >= MIN_EVENTS_FOR_ANALYTICS


def require_enough_data(state: LedgerState) -> None:
    """Raise :class:`InsufficientDataError` below the analytics threshold."""
    if not has_enough_data(state):
        raise InsufficientDataError(
            f"Log at least {MIN_EVENTS_FOR_ANALYTICS} events to enable analytics "
            f"({len(state.events)} logged)",
            event_count=len(state.events),
            required=MIN_EVENTS_FOR_ANALYTICS,
        )


def build_report(state: LedgerState) -> AnalyticsReport:
    if not has_enough_data(state):
        return AnalyticsReport(enough_data=False, event_count=len(state.events))
    return AnalyticsReport(
        enough_data=True,
        event_count=len(state.events),
        charging=charging_series(state),
        trips=trip_series(state),
        charger_types=charger_type_histogram(state),
    )


def summarize(state: LedgerState) -> LedgerSummary:
    return LedgerSummary(
        vehicle_count=len(state.vehicles),
        event_count=len(state.events),
        total_distance=total_distance(state),
        total_cost=total_cost(state),
        charging_sessions=charging_session_count(state),
        charger_types=charger_type_histogram(state),
        average_satisfaction=average_satisfaction(state),
    )


def vehicle_logbook(state: LedgerState, vehicle_id: str) -> list[Event]:
    """Events of one vehicle, newest first.

    ``sorted`` is stable, so events sharing a canonical date keep their
    insertion order.
    """
    return sorted(state.events_for(vehicle_id), key=event_date, reverse=True)
