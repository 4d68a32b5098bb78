"""Machine identity and ledger naming helpers."""

from .machine import (
    EmailLookup,
    GitEmailLookup,
    MachineIdentity,
    derive_identity,
    record_timestamp,
    timestamp_for_filename,
    update_filename,
)

__all__ = [
    "EmailLookup",
    "GitEmailLookup",
    "MachineIdentity",
    "derive_identity",
    "record_timestamp",
    "timestamp_for_filename",
    "update_filename",
]
