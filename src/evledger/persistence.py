"""Snapshot persistence.

The whole ledger is serialized to one JSON document and stored under a
single key of a durable key-value backend. Saves replace the value in one
operation; there are no incremental patches.

Snapshot layout::

    {"version": 1, "evs": [...], "logs": [...]}

Snapshots written before the ``version`` field existed are read as
version 0; the record layout is the same.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Protocol

from pydantic import ValidationError

from evledger.exceptions import PersistenceError
from evledger.ledger.state import LedgerState

_logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1
CORRUPT_SUFFIX = ".corrupt"


class KeyValueBackend(Protocol):
    """Structural interface of a durable string key-value area.

    Implementations raise :class:`PersistenceError` on I/O failure.
    """

    def get(self, key: str) -> str | None:
        ...

    def set(self, key: str, value: str) -> None:
        ...

    def delete(self, key: str) -> None:
        ...


class MemoryBackend:
    """In-process backend, used by tests and as a throwaway store."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class FileBackend:
    """One ``<key>.json`` file per key inside *directory*.

    Writes go to a temporary file in the same directory which then replaces
    the target, so readers never observe a partially written value.
    """

    def __init__(self, directory: Path | str) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key in {".", ".."}:
            raise PersistenceError(f"Invalid storage key: {key!r}")
        return self._directory / f"{key}.json"

    def get(self, key: str) -> str | None:
        """Return the stored text, or ``None`` if *key* has never been set.

        A file that is not valid UTF-8 is renamed to ``<key>.corrupt.json``
        (raw bytes intact) before :class:`PersistenceError` is raised, so a
        later :meth:`set` cannot overwrite it.
        """
        path = self._path(key)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistenceError(f"Could not read {path}: {exc}") from exc
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError as exc:
            aside = self._path(f"{key}{CORRUPT_SUFFIX}")
            try:
                os.replace(path, aside)
            except OSError as move_exc:
                raise PersistenceError(f"{path} is not valid UTF-8 and could not be moved: {move_exc}") from exc
            raise PersistenceError(f"{path} is not valid UTF-8; moved to {aside}") from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_name: str | None = None
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=f".{key}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(value)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, path)
            tmp_name = None
        except OSError as exc:
            raise PersistenceError(f"Could not write {path}: {exc}") from exc
        finally:
            if tmp_name is not None:
                Path(tmp_name).unlink(missing_ok=True)

    def delete(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistenceError(f"Could not delete {path}: {exc}") from exc


def dump_snapshot(state: LedgerState) -> str:
    payload = {"version": SNAPSHOT_VERSION, **state.to_json_dict()}
    return json.dumps(payload, separators=(",", ":"))


def parse_snapshot(text: str) -> LedgerState:
    """Parse a snapshot document.

    Raises
    ------
    ValueError
        If *text* is not JSON, not an object, or from a newer format version.
    pydantic.ValidationError
        If a record does not match its model.
    """
    data = json.loads(text)
    if not isinstance(data, dict):
        raise ValueError(f"Snapshot root must be an object, got {type(data).__name__}")
    version = data.get("version", 0)
    if isinstance(version, bool) or not isinstance(version, int) or version > SNAPSHOT_VERSION:
        raise ValueError(f"Unsupported snapshot version {version!r}")
    return LedgerState.model_validate({"evs": data.get("evs") or [], "logs": data.get("logs") or []})


class SnapshotStore:
    """Save and load the full ledger under a fixed key.

    Both operations are best-effort: failures are logged and reported via
    the return value, never raised.
    """

    def __init__(self, backend: KeyValueBackend, key: str = "evCompanionState") -> None:
        self._backend = backend
        self._key = key

    @property
    def key(self) -> str:
        return self._key

    def save(self, state: LedgerState) -> bool:
        """Write *state*, returning ``False`` (previous value untouched) on failure."""
        try:
            text = dump_snapshot(state)
        except (TypeError, ValueError) as exc:
            _logger.error("Could not serialize ledger snapshot: %s", exc)
            return False
        try:
            self._backend.set(self._key, text)
        except PersistenceError as exc:
            _logger.error("Could not save ledger snapshot: %s", exc)
            return False
        _logger.debug(
            "Saved snapshot %s (%d vehicles, %d events)", self._key, len(state.vehicles), len(state.events)
        )
        return True

    def load(self) -> LedgerState | None:
        """Read the saved ledger.

        Returns ``None`` when nothing is saved or the saved value cannot be
        used; an unusable value is copied to ``<key>.corrupt`` first so the
        next save does not destroy it.
        """
        try:
            text = self._backend.get(self._key)
        except PersistenceError as exc:
            _logger.error("Could not load ledger snapshot: %s", exc)
            return None
        if text is None:
            return None

        try:
            state = parse_snapshot(text)
        except (ValueError, ValidationError) as exc:
            _logger.error("Discarding malformed ledger snapshot %s: %s", self._key, exc)
            self._set_aside(text)
            return None

        _logger.debug(
            "Loaded snapshot %s (%d vehicles, %d events)", self._key, len(state.vehicles), len(state.events)
        )
        return state

    def clear(self) -> None:
        try:
            self._backend.delete(self._key)
        except PersistenceError as exc:
            _logger.error("Could not delete ledger snapshot: %s", exc)

    def _set_aside(self, text: str) -> None:
        corrupt_key = f"{self._key}{CORRUPT_SUFFIX}"
        try:
            self._backend.set(corrupt_key, text)
        except PersistenceError as exc:
            _logger.warning("Could not preserve malformed snapshot as %s: %s", corrupt_key, exc)
        else:
            _logger.warning("Malformed snapshot preserved as %s", corrupt_key)
