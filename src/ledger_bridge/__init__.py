"""Ledger Bridge - Convert bank statements between CSV, MT940 and CAMT.053."""

from ledger_bridge.converter import StatementConverter
from ledger_bridge.errors import (
    FormatError,
    InvalidValueError,
    MissingFieldError,
    StatementError,
    StatementIOError,
)
from ledger_bridge.models import (
    Balance,
    BalanceType,
    Camt053Statement,
    CsvStatement,
    Mt940Statement,
    Statement,
    Transaction,
    TransactionType,
)

__version__ = "0.1.0"
__all__ = [
    "StatementConverter",
    "Statement",
    "CsvStatement",
    "Mt940Statement",
    "Camt053Statement",
    "Balance",
    "BalanceType",
    "Transaction",
    "TransactionType",
    "StatementError",
    "FormatError",
    "MissingFieldError",
    "InvalidValueError",
    "StatementIOError",
]
