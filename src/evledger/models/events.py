"""Logbook event models.

An event is exactly one of six kinds, modelled as a discriminated union on
the ``type`` field. The ``type`` values match the labels used in existing
snapshots and in the exported logbook.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Annotated, Any, Literal

from pydantic import AliasChoices, Field, TypeAdapter, model_validator

from evledger.exceptions import DataIntegrityError
from evledger.models._base import LedgerBaseModel, LedgerTimestamp, new_id

# String spellings pydantic accepts as ``True`` for a bool field.
_TRUE_STRINGS = frozenset({"1", "on", "t", "true", "y", "yes"})


class EventKind(StrEnum):
    CHARGING = "Charging"
    TRIP = "Trip"
    SERVICE = "Service"
    PURCHASE_ACCESSORIES = "Purchase Accessories"
    FAULT = "Fault"
    SATISFACTION = "Satisfaction"


class ChargerType(StrEnum):
    LEVEL_1 = "Level 1"
    LEVEL_2 = "Level 2"
    DC_FAST = "DC Fast Charge"


class FaultType(StrEnum):
    BREAKDOWN = "Breakdown"
    ACCIDENT = "Accident"
    WARNING_LIGHT = "Warning Light"
    OTHER = "Other"


class EventBase(LedgerBaseModel):
    """Fields shared by every event kind."""

    id: str = Field(default_factory=new_id)
    vehicle_id: str = Field(
        validation_alias=AliasChoices("vehicleId", "vehicle_id", "evId"),
        serialization_alias="vehicleId",
    )
    """Id of the vehicle this event belongs to (``evId`` in older snapshots)."""


class NotedEventBase(EventBase):
    """Event kinds that carry a free-text ``notes`` field."""

    notes: str | None = None


class ChargingEvent(NotedEventBase):
    type: Literal["Charging"] = "Charging"
    start_time: LedgerTimestamp
    end_time: LedgerTimestamp
    start_soc_percent: float = Field(ge=0, le=100)
    end_soc_percent: float = Field(ge=0, le=100)
    charger_type: ChargerType = ChargerType.LEVEL_2
    cost: float | None = Field(default=None, ge=0)
    location: str | None = None

    @property
    def soc_gained(self) -> float:
        """State-of-charge percentage points added during the session."""
        return self.end_soc_percent - self.start_soc_percent


class TripEvent(NotedEventBase):
    type: Literal["Trip"] = "Trip"
    start_time: LedgerTimestamp
    end_time: LedgerTimestamp
    start_odometer: float = Field(ge=0)
    end_odometer: float = Field(ge=0)
    purpose: str | None = None

    @property
    def distance(self) -> float:
        # Negative when the readings are reversed; LedgerState.add_event refuses those.
        return self.end_odometer - self.start_odometer


class ServiceEvent(NotedEventBase):
    type: Literal["Service"] = "Service"
    service_date: LedgerTimestamp
    odometer: float = Field(ge=0)
    description: str = Field(min_length=1)
    cost: float | None = Field(default=None, ge=0)
    performed_by: str | None = None


class AccessoryPurchaseEvent(NotedEventBase):
    type: Literal["Purchase Accessories"] = "Purchase Accessories"
    purchase_date: LedgerTimestamp
    accessory_name: str = Field(min_length=1)
    brand: str | None = None
    accessory_type: str | None = None
    cost: float | None = Field(default=None, ge=0)
    size_l: float | None = Field(default=None, ge=0)
    """Length in inches."""
    size_w: float | None = Field(default=None, ge=0)
    """Width in inches."""
    size_h: float | None = Field(default=None, ge=0)
    """Height in inches."""
    weight: float | None = Field(default=None, ge=0)
    """Weight in pounds."""
    purpose: str | None = None
    uses_power: bool = False
    avg_power_draw_watts: float | None = Field(default=None, ge=0)
    could_void_warranty: bool = False

    @model_validator(mode="before")
    @classmethod
    def _drop_power_draw_when_unpowered(cls, values: Any) -> Any:
        if not isinstance(values, dict):
            return values
        uses_power = values.get("usesPower", values.get("uses_power", False))
        if isinstance(uses_power, str):
            uses_power = uses_power.strip().lower() in _TRUE_STRINGS
        if uses_power:
            return values
        return {k: v for k, v in values.items() if k not in ("avgPowerDrawWatts", "avg_power_draw_watts")}


class FaultEvent(NotedEventBase):
    type: Literal["Fault"] = "Fault"
    fault_date: LedgerTimestamp
    odometer: float = Field(ge=0)
    fault_type: FaultType = FaultType.OTHER
    description: str = Field(min_length=1)
    resolution: str | None = None


class SatisfactionEvent(EventBase):
    type: Literal["Satisfaction"] = "Satisfaction"
    log_date: LedgerTimestamp
    rating: int = Field(ge=1, le=5)
    comments: str | None = None


Event = Annotated[
    ChargingEvent | TripEvent | ServiceEvent | AccessoryPurchaseEvent | FaultEvent | SatisfactionEvent,
    Field(discriminator="type"),
]
"""Any logbook event."""

_EVENT_ADAPTER: TypeAdapter[Event] = TypeAdapter(Event)

EVENT_CLASSES: dict[EventKind, type[EventBase]] = {
    EventKind.CHARGING: ChargingEvent,
    EventKind.TRIP: TripEvent,
    EventKind.SERVICE: ServiceEvent,
    EventKind.PURCHASE_ACCESSORIES: AccessoryPurchaseEvent,
    EventKind.FAULT: FaultEvent,
    EventKind.SATISFACTION: SatisfactionEvent,
}


def parse_event(data: Any) -> Event:
    """Validate a raw mapping into the matching event variant."""
    return _EVENT_ADAPTER.validate_python(data)


def event_kind(event: Event) -> EventKind:
    return EventKind(event.type)


def event_date(event: Event) -> datetime:
    """Return the canonical ordering timestamp of *event*.

    Raises
    ------
    DataIntegrityError
        If *event* is not one of the known event variants.
    """
    match event:
        case ChargingEvent(start_time=timestamp) | TripEvent(start_time=timestamp):
            return timestamp
        case ServiceEvent(service_date=timestamp):
            return timestamp
        case AccessoryPurchaseEvent(purchase_date=timestamp):
            return timestamp
        case FaultEvent(fault_date=timestamp):
            return timestamp
        case SatisfactionEvent(log_date=timestamp):
            return timestamp
        case _:
            raise DataIntegrityError(f"Event has no canonical date: {event!r}")


def event_notes(event: Event) -> str | None:
    if isinstance(event, NotedEventBase):
        return event.notes
    return None
