"""Configuration for evledger."""

from __future__ import annotations

import dataclasses
import os
from pathlib import Path
from typing import Any

from evledger.exceptions import ConfigError

DEFAULT_SNAPSHOT_KEY = "evCompanionState"
DEFAULT_EXPORT_FILENAME = "ev_companion_data.xlsx"
DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_API_BASE_URL = "https://generativelanguage.googleapis.com"


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _default_data_dir() -> Path:
    return Path.home() / ".evledger"


@dataclasses.dataclass(frozen=True)
class EvLedgerConfig:
    """Library and CLI configuration.

    Parameters
    ----------
    data_dir : Path
        Directory holding the durable key-value files (snapshot and
        login flag). Defaults to ``~/.evledger``.
    snapshot_key : str
        Key the ledger snapshot is stored under.
    api_key : str or None
        API key for the generative-AI service. Recommendations return
        an error record when this is unset.
    model : str
        Model name used for recommendation requests.
    api_base_url : str
        Base URL of the Generative Language REST API.
    request_timeout : float
        Seconds before an outstanding recommendation request is treated
        as failed.
    export_filename : str
        Default spreadsheet filename for ``evledger export``.
    api_trace_enabled : bool
        Log redacted request/response payloads at DEBUG level.
    """

    data_dir: Path = dataclasses.field(default_factory=_default_data_dir)
    snapshot_key: str = DEFAULT_SNAPSHOT_KEY
    api_key: str | None = None
    model: str = DEFAULT_MODEL
    api_base_url: str = DEFAULT_API_BASE_URL
    request_timeout: float = 60.0
    export_filename: str = DEFAULT_EXPORT_FILENAME
    api_trace_enabled: bool = False

    def __post_init__(self) -> None:
        if self.request_timeout <= 0:
            raise ConfigError(f"request_timeout must be positive, got {self.request_timeout!r}")
        if not self.snapshot_key.strip():
            raise ConfigError("snapshot_key must be non-empty")

    @classmethod
    def from_env(cls, **overrides: Any) -> EvLedgerConfig:
        """Create configuration from environment variables.

        Reads ``EVLEDGER_*`` variables. The API key falls back to
        ``GEMINI_API_KEY`` and then ``API_KEY``. Explicit keyword
        arguments override environment values.

        Raises
        ------
        ConfigError
            If a numeric variable cannot be parsed.
        """
        env = os.environ

        _ENV_CONFIG_MAP = {
            "EVLEDGER_SNAPSHOT_KEY": "snapshot_key",
            "EVLEDGER_MODEL": "model",
            "EVLEDGER_API_BASE_URL": "api_base_url",
            "EVLEDGER_EXPORT_FILENAME": "export_filename",
        }
        config_kwargs: dict[str, Any] = {}
        for env_key, field_name in _ENV_CONFIG_MAP.items():
            val = env.get(env_key)
            if val is not None:
                config_kwargs[field_name] = val

        data_dir = env.get("EVLEDGER_DATA_DIR")
        if data_dir:
            config_kwargs["data_dir"] = Path(data_dir).expanduser()

        for env_key in ("EVLEDGER_API_KEY", "GEMINI_API_KEY", "API_KEY"):
            val = env.get(env_key)
            if val:
                config_kwargs["api_key"] = val
                break

        timeout_env = env.get("EVLEDGER_REQUEST_TIMEOUT")
        if timeout_env is not None and "request_timeout" not in overrides:
            try:
                config_kwargs["request_timeout"] = float(timeout_env)
            except ValueError as exc:
                raise ConfigError(f"EVLEDGER_REQUEST_TIMEOUT is not a number: {timeout_env!r}") from exc

        if "api_trace_enabled" not in overrides:
            config_kwargs["api_trace_enabled"] = _env_bool(env.get("EVLEDGER_API_TRACE_ENABLED"), False)

        config_kwargs.update(overrides)
        if "data_dir" in config_kwargs:
            config_kwargs["data_dir"] = Path(config_kwargs["data_dir"])

        return cls(**config_kwargs)
