"""Ledger store layer.

:class:`LedgerState` is the immutable value holding every vehicle and
event; :class:`Ledger` holds the current value for a session and persists
each change.
"""

from evledger.ledger.ledger import Ledger
from evledger.ledger.state import LedgerState

__all__ = ["Ledger", "LedgerState"]
