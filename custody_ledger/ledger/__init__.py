"""Custody ledger core: registries, engine and result types."""

from custody_ledger.ledger.clock import ManualClock, SystemClock
from custody_ledger.ledger.engine import CustodyLedgerEngine
from custody_ledger.ledger.errors import (
    ConcurrencyError,
    CustodyError,
    LedgerError,
    Result,
)

__all__ = [
    'ConcurrencyError',
    'CustodyError',
    'CustodyLedgerEngine',
    'LedgerError',
    'ManualClock',
    'Result',
    'SystemClock',
]
