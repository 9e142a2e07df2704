"""Login gate.

This is a convenience gate, not a security boundary: any non-empty email
and password are accepted and the result is a plain persisted flag.
"""

from __future__ import annotations

import logging

from evledger._normalize import safe_str
from evledger.exceptions import LoginError
from evledger.persistence import KeyValueBackend

_logger = logging.getLogger(__name__)

LOGIN_FLAG_KEY = "isLoggedIn"


class LoginGate:
    def __init__(self, backend: KeyValueBackend, key: str = LOGIN_FLAG_KEY) -> None:
        self._backend = backend
        self._key = key

    @property
    def is_logged_in(self) -> bool:
        return self._backend.get(self._key) == "true"

    def login(self, email: str, password: str) -> None:
        if safe_str(email) is None or safe_str(password) is None:
            raise LoginError("Email and password are required")
        self._backend.set(self._key, "true")
        _logger.info("Logged in as %s", email.strip())

    def logout(self) -> None:
        self._backend.delete(self._key)
