"""Data models for bank statements."""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum

from ledger_bridge.errors import InvalidValueError

# ISO 4217 currencies whose minor unit is not two digits
_MINOR_UNITS: dict[str, int] = {
    "BIF": 0,
    "CLP": 0,
    "DJF": 0,
    "GNF": 0,
    "ISK": 0,
    "JPY": 0,
    "KMF": 0,
    "KRW": 0,
    "PYG": 0,
    "RWF": 0,
    "UGX": 0,
    "VND": 0,
    "VUV": 0,
    "XAF": 0,
    "XOF": 0,
    "XPF": 0,
    "BHD": 3,
    "IQD": 3,
    "JOD": 3,
    "KWD": 3,
    "LYD": 3,
    "OMR": 3,
    "TND": 3,
}


def minor_units(currency: str) -> int:
    """Return the number of decimal places used by a currency (default 2)."""
    return _MINOR_UNITS.get(currency.upper(), 2)


class BalanceType(str, Enum):
    """Credit or debit position of a balance."""

    CREDIT = "credit"
    DEBIT = "debit"


class TransactionType(str, Enum):
    """Direction of a transaction: money received (credit) or paid out (debit)."""

    CREDIT = "credit"
    DEBIT = "debit"


def _check_amount(field_name: str, amount: Decimal) -> None:
    if not isinstance(amount, Decimal) or not amount.is_finite():
        raise InvalidValueError(field_name, str(amount))
    if amount < 0:
        raise InvalidValueError(field_name, str(amount))


def _check_scale(field_name: str, amount: Decimal, currency: str) -> None:
    """Reject amounts with more fraction digits than the currency carries."""
    try:
        exact = amount == amount.quantize(Decimal(1).scaleb(-minor_units(currency)))
    except InvalidOperation:
        exact = False
    if not exact:
        raise InvalidValueError(field_name, str(amount))


@dataclass(frozen=True)
class Balance:
    """A booked balance at a statement boundary."""

    amount: Decimal
    date: date
    indicator: BalanceType

    def __post_init__(self) -> None:
        """Validate balance data."""
        _check_amount("balance_amount", self.amount)


@dataclass(frozen=True)
class Transaction:
    """A single posted movement of funds.

    ``amount`` is always a non-negative magnitude; direction lives in
    ``transaction_type``.
    """

    booking_date: date
    amount: Decimal
    transaction_type: TransactionType
    description: str = ""
    value_date: date | None = None
    reference: str | None = None
    counterparty_name: str | None = None
    counterparty_account: str | None = None

    def __post_init__(self) -> None:
        """Validate transaction data."""
        _check_amount("amount", self.amount)

    @property
    def is_credit(self) -> bool:
        """Return True if money was received."""
        return self.transaction_type is TransactionType.CREDIT

    @property
    def signed_amount(self) -> Decimal:
        """Return the amount with debits negated."""
        return self.amount if self.is_credit else -self.amount


@dataclass(frozen=True)
class Statement:
    """One account's statement: booked balances plus ordered transactions.

    The per-format record types below share exactly this field surface, so
    converting between them is a field-for-field copy. Amounts must fit the
    currency's minor units exactly.
    """

    account_number: str
    currency: str
    opening_balance: Balance
    closing_balance: Balance
    transactions: tuple[Transaction, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Validate statement data and freeze the transaction sequence."""
        currency = self.currency.strip().upper()
        if len(currency) != 3 or not (currency.isascii() and currency.isalpha()):
            raise InvalidValueError("currency", self.currency)
        object.__setattr__(self, "currency", currency)

        _check_scale("balance_amount", self.opening_balance.amount, currency)
        _check_scale("balance_amount", self.closing_balance.amount, currency)

        if not isinstance(self.transactions, tuple):
            object.__setattr__(self, "transactions", tuple(self.transactions))
        for tx in self.transactions:
            _check_scale("amount", tx.amount, currency)

        if self.closing_balance.date < self.opening_balance.date:
            raise InvalidValueError("closing_date", self.closing_balance.date.isoformat())

    @property
    def net_movement(self) -> Decimal:
        """Sum of signed transaction amounts."""
        return sum((tx.signed_amount for tx in self.transactions), Decimal("0"))


@dataclass(frozen=True)
class CsvStatement(Statement):
    """Statement read from (or destined for) the delimited-text format."""


@dataclass(frozen=True)
class Mt940Statement(Statement):
    """Statement read from (or destined for) the SWIFT MT940 format."""


@dataclass(frozen=True)
class Camt053Statement(Statement):
    """Statement read from (or destined for) the ISO 20022 CAMT.053 format."""
