"""Persistence for generation jobs, assets and renditions."""

from scriptboard.storage.sqlite_store import SqliteLedger
from scriptboard.storage.store import (
    JobStateError,
    Ledger,
    LedgerError,
    RecordNotFoundError,
)

__all__ = [
    "JobStateError",
    "Ledger",
    "LedgerError",
    "RecordNotFoundError",
    "SqliteLedger",
]
