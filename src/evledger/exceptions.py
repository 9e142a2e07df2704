"""Custom exception hierarchy for evledger."""

from __future__ import annotations


class EvLedgerError(Exception):
    """Base exception for all evledger errors."""


class ConfigError(EvLedgerError):
    """Invalid or missing configuration."""


class LedgerError(EvLedgerError):
    """A ledger mutation was refused.

    The store value the mutation was applied to is left unchanged.
    """


class DuplicateIdError(LedgerError):
    """A vehicle or event with the same id is already present."""

    def __init__(self, message: str, *, entity_id: str = "") -> None:
        self.entity_id = entity_id
        super().__init__(message)


class UnknownVehicleError(LedgerError):
    """The referenced vehicle id does not exist in the ledger."""

    def __init__(self, message: str, *, vehicle_id: str = "") -> None:
        self.vehicle_id = vehicle_id
        super().__init__(message)


class InvalidEventError(LedgerError):
    """Event fields are inconsistent (e.g. end time before start time)."""


class DataIntegrityError(EvLedgerError):
    """Ledger data violates an invariant that should never be broken.

    Raised for malformed events (no canonical date) or snapshots that
    reference vehicles which do not exist.
    """


class PersistenceError(EvLedgerError):
    """Snapshot backend read/write failure."""


class ExportError(EvLedgerError):
    """Spreadsheet export failed (writer unavailable or file not writable)."""


class InsufficientDataError(EvLedgerError):
    """Not enough logged events to compute charts or recommendations."""

    def __init__(self, message: str, *, event_count: int = 0, required: int = 0) -> None:
        self.event_count = event_count
        self.required = required
        super().__init__(message)


class RecommendationError(EvLedgerError):
    """AI recommendation request failed."""


class RecommendationBusyError(RecommendationError):
    """A recommendation request is already in flight."""


class TransportError(RecommendationError):
    """HTTP-level failure (network, non-200, invalid JSON, timeout)."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        endpoint: str = "",
    ) -> None:
        self.status_code = status_code
        self.endpoint = endpoint
        super().__init__(message)


class LoginError(EvLedgerError):
    """Blank credentials were submitted to the login gate."""
