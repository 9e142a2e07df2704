"""Immutable ledger value.

Every mutation returns a new :class:`LedgerState`; the receiver is never
modified. A refused mutation raises a :class:`~evledger.exceptions.LedgerError`
subclass, so the caller's current value stays exactly as it was.

Mutations that change nothing (deleting an absent id) return the receiver
itself, which lets callers detect "no change" with an identity check.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from evledger.exceptions import DuplicateIdError, InvalidEventError, UnknownVehicleError
from evledger.models.events import ChargingEvent, Event, TripEvent
from evledger.models.vehicle import Vehicle


def _check_event_consistency(event: Event) -> None:
    """Reject events whose end precedes their start."""
    if isinstance(event, (ChargingEvent, TripEvent)) and event.end_time < event.start_time:
        raise InvalidEventError(
            f"{event.type} event {event.id}: end time {event.end_time.isoformat()} "
            f"is before start time {event.start_time.isoformat()}"
        )
    if isinstance(event, TripEvent) and event.end_odometer < event.start_odometer:
        raise InvalidEventError(
            f"Trip event {event.id}: end odometer {event.end_odometer} "
            f"is below start odometer {event.start_odometer}"
        )


class LedgerState(BaseModel):
    """The combined collection of vehicles and events."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    vehicles: tuple[Vehicle, ...] = Field(default=(), alias="evs")
    events: tuple[Event, ...] = Field(default=(), alias="logs")

    # ------------------------------------------------------------------
    # Lookups
    # ------------------------------------------------------------------

    @property
    def is_empty(self) -> bool:
        return not self.vehicles and not self.events

    def get_vehicle(self, vehicle_id: str) -> Vehicle | None:
        return next((v for v in self.vehicles if v.id == vehicle_id), None)

    def get_event(self, event_id: str) -> Event | None:
        return next((e for e in self.events if e.id == event_id), None)

    def has_vehicle(self, vehicle_id: str) -> bool:
        return self.get_vehicle(vehicle_id) is not None

    def events_for(self, vehicle_id: str) -> tuple[Event, ...]:
        """Events of one vehicle, in insertion order."""
        return tuple(e for e in self.events if e.vehicle_id == vehicle_id)

    # ------------------------------------------------------------------
    # Vehicle mutations
    # ------------------------------------------------------------------

    def add_vehicle(self, vehicle: Vehicle) -> LedgerState:
        if self.has_vehicle(vehicle.id):
            raise DuplicateIdError(f"Vehicle {vehicle.id} already exists", entity_id=vehicle.id)
        return self.model_copy(update={"vehicles": (*self.vehicles, vehicle)})

    def update_vehicle(self, vehicle: Vehicle) -> LedgerState:
        """Replace the vehicle with the same id, keeping its position.

        Raises
        ------
        UnknownVehicleError
            If no vehicle with ``vehicle.id`` exists.
        """
        if not self.has_vehicle(vehicle.id):
            raise UnknownVehicleError(f"Vehicle {vehicle.id} does not exist", vehicle_id=vehicle.id)
        vehicles = tuple(vehicle if v.id == vehicle.id else v for v in self.vehicles)
        return self.model_copy(update={"vehicles": vehicles})

    def delete_vehicle(self, vehicle_id: str) -> LedgerState:
        """Remove a vehicle and every event that references it."""
        if not self.has_vehicle(vehicle_id) and not self.events_for(vehicle_id):
            return self
        return self.model_copy(
            update={
                "vehicles": tuple(v for v in self.vehicles if v.id != vehicle_id),
                "events": tuple(e for e in self.events if e.vehicle_id != vehicle_id),
            }
        )

    # ------------------------------------------------------------------
    # Event mutations
    # ------------------------------------------------------------------

    def add_event(self, event: Event) -> LedgerState:
        if self.get_event(event.id) is not None:
            raise DuplicateIdError(f"Event {event.id} already exists", entity_id=event.id)
        if not self.has_vehicle(event.vehicle_id):
            raise UnknownVehicleError(
                f"Event {event.id} references unknown vehicle {event.vehicle_id}",
                vehicle_id=event.vehicle_id,
            )
        _check_event_consistency(event)
        return self.model_copy(update={"events": (*self.events, event)})

    def delete_event(self, event_id: str) -> LedgerState:
        if self.get_event(event_id) is None:
            return self
        return self.model_copy(update={"events": tuple(e for e in self.events if e.id != event_id)})

    # ------------------------------------------------------------------
    # Bulk operations
    # ------------------------------------------------------------------

    def replace_all(self, state: LedgerState) -> LedgerState:
        """Return *state* as the new value. Referential integrity is not checked."""
        return state

    def clear(self) -> LedgerState:
        if self.is_empty:
            return self
        return LedgerState()

    # ------------------------------------------------------------------
    # Integrity
    # ------------------------------------------------------------------

    def integrity_issues(self) -> list[str]:
        """Describe duplicate ids and orphan events (empty when consistent)."""
        issues: list[str] = []
        seen_vehicles: set[str] = set()
        for vehicle in self.vehicles:
            if vehicle.id in seen_vehicles:
                issues.append(f"duplicate vehicle id {vehicle.id}")
            seen_vehicles.add(vehicle.id)

        seen_events: set[str] = set()
        for event in self.events:
            if event.id in seen_events:
                issues.append(f"duplicate event id {event.id}")
            seen_events.add(event.id)
            if event.vehicle_id not in seen_vehicles:
                issues.append(f"event {event.id} references unknown vehicle {event.vehicle_id}")
        return issues

    def without_orphans(self) -> LedgerState:
        """Drop events whose vehicle does not exist."""
        vehicle_ids = {v.id for v in self.vehicles}
        events = tuple(e for e in self.events if e.vehicle_id in vehicle_ids)
        if len(events) == len(self.events):
            return self
        return self.model_copy(update={"events": events})

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize as ``{"evs": [...], "logs": [...]}`` with camelCase record keys."""
        return {
            "evs": [v.to_json_dict() for v in self.vehicles],
            "logs": [e.to_json_dict() for e in self.events],
        }
