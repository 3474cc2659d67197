"""Pytest configuration and fixtures."""

from collections.abc import Iterator
from datetime import date
from decimal import Decimal
from pathlib import Path

import pytest

from ledger_bridge.logging_setup import reset_logging
from ledger_bridge.models import (
    Balance,
    BalanceType,
    Mt940Statement,
    Transaction,
    TransactionType,
)

# Tagged-block document with a single fee debit
FEE_STATEMENT_MT940 = """{1:F01BANKXXXXXXX0000000000}{2:I940BANKXXXXXXXN}{4:
:20:STATEMENT
:25:NL91ABNA0417164300
:28C:1/1
:60F:C250218USD1000,00
:61:250218D12,01NTRFNONREF
:86:fee
:62F:C250218USD987,99
-}
"""


@pytest.fixture(autouse=True)
def clean_logging(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    """Keep logging configuration and level overrides out of other tests."""
    monkeypatch.delenv("LEDGER_BRIDGE_LOG_LEVEL", raising=False)
    yield
    reset_logging()


@pytest.fixture
def fixtures_dir() -> Path:
    """Return path to test fixtures directory."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def csv_file(fixtures_dir: Path) -> Path:
    """Return path to the English delimited-text fixture."""
    return fixtures_dir / "statement.csv"


@pytest.fixture
def csv_ru_file(fixtures_dir: Path) -> Path:
    """Return path to the Russian semicolon-delimited fixture."""
    return fixtures_dir / "statement_ru.csv"


@pytest.fixture
def csv_sber_file(fixtures_dir: Path) -> Path:
    """Return path to the unlabelled Sberbank export fixture."""
    return fixtures_dir / "statement_sber.csv"


@pytest.fixture
def mt940_file(fixtures_dir: Path) -> Path:
    """Return path to the MT940 fixture."""
    return fixtures_dir / "statement.mt940"


@pytest.fixture
def camt053_file(fixtures_dir: Path) -> Path:
    """Return path to the CAMT.053 fixture."""
    return fixtures_dir / "statement.xml"


@pytest.fixture
def camt053_batched_file(fixtures_dir: Path) -> Path:
    """Return path to the CAMT.053 fixture with a batched entry."""
    return fixtures_dir / "camt_batched.xml"


@pytest.fixture
def fee_statement_mt940() -> str:
    """Return the single-fee MT940 document."""
    return FEE_STATEMENT_MT940


@pytest.fixture
def sample_statement() -> Mt940Statement:
    """Return a statement using every transaction field."""
    return Mt940Statement(
        account_number="DE89370400440532013000",
        currency="EUR",
        opening_balance=Balance(Decimal("1000.00"), date(2025, 2, 17), BalanceType.CREDIT),
        closing_balance=Balance(Decimal("1237.99"), date(2025, 2, 18), BalanceType.CREDIT),
        transactions=(
            Transaction(
                booking_date=date(2025, 2, 18),
                value_date=date(2025, 2, 18),
                amount=Decimal("12.01"),
                transaction_type=TransactionType.DEBIT,
                description="Monthly account fee",
                reference="FEE-2025-01",
                counterparty_name="Example Bank",
                counterparty_account="0532013999",
            ),
            Transaction(
                booking_date=date(2025, 2, 18),
                amount=Decimal("250.00"),
                transaction_type=TransactionType.CREDIT,
                description="Incoming transfer",
            ),
        ),
    )
