"""Data models for vehicles, logbook events and recommendations."""

from evledger.models._base import LedgerBaseModel, LedgerDate, LedgerTimestamp, new_id, parse_timestamp
from evledger.models.events import (
    EVENT_CLASSES,
    AccessoryPurchaseEvent,
    ChargerType,
    ChargingEvent,
    Event,
    EventBase,
    EventKind,
    FaultEvent,
    FaultType,
    NotedEventBase,
    SatisfactionEvent,
    ServiceEvent,
    TripEvent,
    event_date,
    event_kind,
    event_notes,
    parse_event,
)
from evledger.models.recommendation import ERROR_TITLE, Recommendation
from evledger.models.vehicle import ImageItem, ReviewLink, SocialLink, Vehicle, VehicleType, VideoLink

__all__ = [
    "AccessoryPurchaseEvent",
    "ChargerType",
    "ChargingEvent",
    "ERROR_TITLE",
    "EVENT_CLASSES",
    "Event",
    "EventBase",
    "EventKind",
    "FaultEvent",
    "FaultType",
    "ImageItem",
    "LedgerBaseModel",
    "LedgerDate",
    "LedgerTimestamp",
    "NotedEventBase",
    "Recommendation",
    "ReviewLink",
    "SatisfactionEvent",
    "ServiceEvent",
    "SocialLink",
    "TripEvent",
    "Vehicle",
    "VehicleType",
    "VideoLink",
    "event_date",
    "event_kind",
    "event_notes",
    "new_id",
    "parse_event",
    "parse_timestamp",
]
