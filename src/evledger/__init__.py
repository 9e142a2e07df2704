"""evledger - Personal EV ownership logbook with analytics and AI advice."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("evledger")
except PackageNotFoundError:
    __version__ = "0+local"
from evledger.analytics import (
    MIN_EVENTS_FOR_ANALYTICS,
    AnalyticsReport,
    LedgerSummary,
    build_report,
    charger_type_histogram,
    charging_session_count,
    has_enough_data,
    summarize,
    total_cost,
    total_distance,
    vehicle_logbook,
)
from evledger.auth import LoginGate
from evledger.config import EvLedgerConfig
from evledger.exceptions import (
    ConfigError,
    DataIntegrityError,
    DuplicateIdError,
    EvLedgerError,
    ExportError,
    InsufficientDataError,
    InvalidEventError,
    LedgerError,
    LoginError,
    PersistenceError,
    RecommendationBusyError,
    RecommendationError,
    TransportError,
    UnknownVehicleError,
)
from evledger.export import build_sheets, write_workbook
from evledger.ledger import Ledger, LedgerState
from evledger.models import (
    AccessoryPurchaseEvent,
    ChargerType,
    ChargingEvent,
    Event,
    EventKind,
    FaultEvent,
    FaultType,
    Recommendation,
    SatisfactionEvent,
    ServiceEvent,
    TripEvent,
    Vehicle,
    VehicleType,
    event_date,
    parse_event,
)
from evledger.persistence import FileBackend, MemoryBackend, SnapshotStore
from evledger.recommendations import RecommendationClient

__all__ = [
    "__version__",
    "AccessoryPurchaseEvent",
    "AnalyticsReport",
    "ChargerType",
    "ChargingEvent",
    "ConfigError",
    "DataIntegrityError",
    "DuplicateIdError",
    "EvLedgerConfig",
    "EvLedgerError",
    "Event",
    "EventKind",
    "ExportError",
    "FaultEvent",
    "FaultType",
    "FileBackend",
    "InsufficientDataError",
    "InvalidEventError",
    "Ledger",
    "LedgerError",
    "LedgerState",
    "LedgerSummary",
    "LoginError",
    "LoginGate",
    "MIN_EVENTS_FOR_ANALYTICS",
    "MemoryBackend",
    "PersistenceError",
    "Recommendation",
    "RecommendationBusyError",
    "RecommendationClient",
    "RecommendationError",
    "SatisfactionEvent",
    "ServiceEvent",
    "SnapshotStore",
    "TransportError",
    "TripEvent",
    "UnknownVehicleError",
    "Vehicle",
    "VehicleType",
    "build_report",
    "build_sheets",
    "charger_type_histogram",
    "charging_session_count",
    "event_date",
    "has_enough_data",
    "parse_event",
    "summarize",
    "total_cost",
    "total_distance",
    "vehicle_logbook",
    "write_workbook",
]
