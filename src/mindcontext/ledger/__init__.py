"""Update ledger abstractions for mindcontext."""

from .models import ProgressSnapshot, UpdateContext, UpdateRecord
from .store import LedgerError, UpdateLedger, latest_by_machine, latest_of

__all__ = [
    "LedgerError",
    "ProgressSnapshot",
    "UpdateContext",
    "UpdateLedger",
    "UpdateRecord",
    "latest_by_machine",
    "latest_of",
]
