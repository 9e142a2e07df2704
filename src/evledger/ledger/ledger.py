"""Session-level ledger holder with write-through persistence."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from evledger.ledger.state import LedgerState
from evledger.models.events import Event
from evledger.models.vehicle import Vehicle

if TYPE_CHECKING:
    from evledger.persistence import SnapshotStore

_logger = logging.getLogger(__name__)


class Ledger:
    """Holds the current :class:`LedgerState` for one application session.

    Every successful mutation replaces the held value and is immediately
    saved through the :class:`SnapshotStore` (when one is configured).
    Refused mutations raise and leave both the held value and the saved
    snapshot untouched.

    Usage::

        ledger = Ledger.open(SnapshotStore(FileBackend(data_dir)))
        ledger.add_vehicle(vehicle)
        ledger.add_event(event)
    """

    def __init__(
        self,
        snapshots: SnapshotStore | None = None,
        *,
        state: LedgerState | None = None,
        on_change: Callable[[LedgerState], None] | None = None,
    ) -> None:
        self._snapshots = snapshots
        self._state = state if state is not None else LedgerState()
        self._on_change = on_change

    @classmethod
    def open(
        cls,
        snapshots: SnapshotStore,
        *,
        on_change: Callable[[LedgerState], None] | None = None,
    ) -> Ledger:
        """Create a ledger rehydrated from the last saved snapshot.

        Falls back to an empty ledger when nothing usable is saved. Events
        in the snapshot that reference missing vehicles are dropped.
        """
        state = snapshots.load() or LedgerState()
        issues = state.integrity_issues()
        if issues:
            _logger.warning("Snapshot has %d integrity issue(s): %s", len(issues), "; ".join(issues))
            state = state.without_orphans()
        return cls(snapshots, state=state, on_change=on_change)

    @property
    def state(self) -> LedgerState:
        return self._state

    @property
    def vehicles(self) -> tuple[Vehicle, ...]:
        return self._state.vehicles

    @property
    def events(self) -> tuple[Event, ...]:
        return self._state.events

    def _commit(self, new_state: LedgerState) -> LedgerState:
        if new_state is self._state:
            return new_state
        self._state = new_state
        if self._snapshots is not None:
            self._snapshots.save(new_state)
        if self._on_change is not None:
            self._on_change(new_state)
        return new_state

    def add_vehicle(self, vehicle: Vehicle) -> LedgerState:
        new_state = self._commit(self._state.add_vehicle(vehicle))
        _logger.info("Added vehicle %s (%s)", vehicle.id, vehicle.display_name)
        return new_state

    def update_vehicle(self, vehicle: Vehicle) -> LedgerState:
        return self._commit(self._state.update_vehicle(vehicle))

    def delete_vehicle(self, vehicle_id: str) -> LedgerState:
        removed = len(self._state.events_for(vehicle_id))
        new_state = self._commit(self._state.delete_vehicle(vehicle_id))
        _logger.info("Deleted vehicle %s and %d event(s)", vehicle_id, removed)
        return new_state

    def add_event(self, event: Event) -> LedgerState:
        new_state = self._commit(self._state.add_event(event))
        _logger.info("Added %s event %s for vehicle %s", event.type, event.id, event.vehicle_id)
        return new_state

    def delete_event(self, event_id: str) -> LedgerState:
        return self._commit(self._state.delete_event(event_id))

    def replace_all(self, state: LedgerState) -> LedgerState:
        return self._commit(self._state.replace_all(state))

    def clear(self) -> LedgerState:
        """Delete all vehicles and events."""
        new_state = self._commit(self._state.clear())
        _logger.info("Cleared ledger")
        return new_state
