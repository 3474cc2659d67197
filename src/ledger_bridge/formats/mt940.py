"""SWIFT MT940 customer statement format.

A document is a SWIFT message whose text block (``{4:`` ... ``-}``) holds
``:TAG:value`` fields. Lines that do not start a tag continue the value of
the previous tag.

Two-digit years follow the usual banking convention: ``YY >= 50`` is
19YY, anything lower is 20YY.
"""

import re
from datetime import date
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, ClassVar

from ledger_bridge.errors import FormatError, InvalidValueError, MissingFieldError
from ledger_bridge.formats.base import StatementFormat
from ledger_bridge.logging_setup import get_logger
from ledger_bridge.models import (
    Balance,
    BalanceType,
    Mt940Statement,
    Statement,
    Transaction,
    TransactionType,
)
from ledger_bridge.utils import clean_description, format_amount

logger = get_logger(__name__)

NO_REFERENCE = "NONREF"
DEFAULT_TYPE_CODE = "NTRF"
MIN_YEAR = 1950
MAX_YEAR = 2049

TAG_LINE = re.compile(r"^:(?P<tag>\d{2}[A-Z]?):(?P<value>.*)$")

BALANCE_PATTERN = re.compile(
    r"^(?P<mark>[CD])(?P<date>\d{6})(?P<currency>[A-Z]{3})(?P<amount>\d+(?:,\d*)?)$"
)

STATEMENT_LINE_PATTERN = re.compile(
    r"^(?P<value_date>\d{6})"
    r"(?P<entry_date>\d{4})?"
    r"(?P<mark>RC|RD|C|D)"
    r"(?P<funds_code>[A-Z])?"
    r"(?P<amount>\d+(?:,\d*)?)"
    r"(?P<type_code>[NSF][A-Z0-9]{3})"
    r"(?P<reference>(?:(?!//)[^\n])*)"
    r"(?://(?P<bank_reference>[^\n]*))?"
    r"(?:\n(?P<supplementary>.*))?$",
    re.DOTALL,
)

# Reversals flip the direction of the original entry
MARK_TYPES = {
    "C": TransactionType.CREDIT,
    "D": TransactionType.DEBIT,
    "RC": TransactionType.DEBIT,
    "RD": TransactionType.CREDIT,
}

OPENING_TAGS = ("60F", "60M")
CLOSING_TAGS = ("62F", "62M")
IGNORED_TAGS = ("20", "21", "28", "28C", "64", "65")


class ScanState(Enum):
    """Line scanner state while splitting the payload into tags."""

    AWAITING_TAG = "awaiting_tag"
    CONTINUATION = "continuation"


def expand_year(yy: int) -> int:
    """Expand a two-digit year: 50-99 -> 19YY, 00-49 -> 20YY."""
    return 1900 + yy if yy >= 50 else 2000 + yy


def parse_swift_date(value: str, tag: str) -> date:
    """Parse a ``YYMMDD`` date, raising ``InvalidValueError`` naming the tag."""
    try:
        return date(expand_year(int(value[0:2])), int(value[2:4]), int(value[4:6]))
    except ValueError as e:
        raise InvalidValueError(f":{tag}:", value) from e


def parse_swift_amount(value: str, tag: str) -> Decimal:
    """Parse an amount written with a decimal comma (``1234,5`` or ``100,``)."""
    text = value.replace(",", ".")
    if text.endswith("."):
        text = text[:-1]
    try:
        return Decimal(text)
    except InvalidOperation as e:
        raise InvalidValueError(f":{tag}:", value) from e


def _entry_date(value_date: date, mmdd: str, tag: str) -> date:
    """Resolve an ``MMDD`` entry date to the year closest to the value date."""
    month, day = int(mmdd[:2]), int(mmdd[2:])
    candidates = []
    for year in (value_date.year - 1, value_date.year, value_date.year + 1):
        try:
            candidates.append(date(year, month, day))
        except ValueError:
            continue
    if not candidates:
        raise InvalidValueError(f":{tag}:", mmdd)
    return min(candidates, key=lambda d: abs((d - value_date).days))


def _extract_payload(content: str) -> str:
    start = content.find("{4:")
    if start == -1:
        first_line = next((line for line in content.splitlines() if line.strip()), "")
        if not TAG_LINE.match(first_line.strip()):
            raise FormatError("No MT940 text block or tag found")
        return content

    end = content.find("-}", start)
    if end == -1:
        raise FormatError("Unterminated MT940 text block")
    return content[start + 3:end]


def _scan_tags(payload: str) -> list[tuple[str, str]]:
    """Split a payload into ``(tag, value)`` pairs, joining continuation lines."""
    fields: list[list[str]] = []
    state = ScanState.AWAITING_TAG

    for raw_line in payload.splitlines():
        line = raw_line.rstrip()
        if not line.strip() or line.strip() == "-":
            continue

        match = TAG_LINE.match(line)
        if match:
            fields.append([match.group("tag"), match.group("value")])
            state = ScanState.CONTINUATION
        elif state is ScanState.AWAITING_TAG:
            raise FormatError(f"Text outside of a tag: {line!r}")
        else:
            fields[-1][1] += "\n" + line

    return [(tag, value) for tag, value in fields]


def _parse_balance(tag: str, value: str) -> tuple[Balance, str]:
    match = BALANCE_PATTERN.match(value.strip())
    if not match:
        raise InvalidValueError(f":{tag}:", value)

    balance = Balance(
        amount=parse_swift_amount(match.group("amount"), tag),
        date=parse_swift_date(match.group("date"), tag),
        indicator=BalanceType.CREDIT if match.group("mark") == "C" else BalanceType.DEBIT,
    )
    return balance, match.group("currency")


def _parse_statement_line(value: str) -> dict[str, Any]:
    """Parse a ``:61:`` value into Transaction keyword arguments."""
    match = STATEMENT_LINE_PATTERN.match(value.strip())
    if not match:
        raise InvalidValueError(":61:", value)

    value_date = parse_swift_date(match.group("value_date"), "61")
    entry_date = match.group("entry_date")
    if entry_date:
        booking_date = _entry_date(value_date, entry_date, "61")
        statement_value_date: date | None = value_date
    else:
        booking_date = value_date
        statement_value_date = None

    reference = match.group("reference").strip()
    return {
        "booking_date": booking_date,
        "value_date": statement_value_date,
        "amount": parse_swift_amount(match.group("amount"), "61"),
        "transaction_type": MARK_TYPES[match.group("mark")],
        "reference": None if not reference or reference == NO_REFERENCE else reference,
    }


def _swift_date(value: date, field: str) -> str:
    if not MIN_YEAR <= value.year <= MAX_YEAR:
        raise InvalidValueError(field, value.isoformat())
    return value.strftime("%y%m%d")


def _description_lines(description: str) -> list[str]:
    """Split a description into :86: lines the scanner will read back unchanged."""
    lines = [line for line in description.splitlines() if line.strip()]
    for idx, line in enumerate(lines):
        if "-}" in line:
            raise InvalidValueError("description", description)
        if idx > 0 and (TAG_LINE.match(line.rstrip()) or line.strip() == "-"):
            raise InvalidValueError("description", description)
    return lines


def _swift_amount(amount: Decimal, currency: str) -> str:
    text = format_amount(amount, currency, ",")
    return text if "," in text else f"{text},"


class Mt940Format(StatementFormat):
    """SWIFT MT940 tagged-block statement format."""

    name: ClassVar[str] = "mt940"
    description: ClassVar[str] = "SWIFT MT940 customer statement"
    aliases: ClassVar[tuple[str, ...]] = ("tagged-block", "swift")
    file_extensions: ClassVar[tuple[str, ...]] = (".mt940", ".sta", ".940")
    record_type: ClassVar[type[Statement]] = Mt940Statement

    @classmethod
    def can_parse(cls, content: str) -> bool:
        """Check for a text block or a bare tag payload with an account tag."""
        try:
            payload = _extract_payload(content)
        except FormatError:
            return False
        return re.search(r"^:25:", payload, re.MULTILINE) is not None

    @classmethod
    def loads(cls, content: str) -> Mt940Statement:
        """Parse an MT940 message."""
        fields = _scan_tags(_extract_payload(content))

        account: str | None = None
        currency: str | None = None
        opening: Balance | None = None
        closing: Balance | None = None
        transactions: list[Transaction] = []
        pending: dict[str, Any] | None = None

        for tag, value in fields:
            if pending is not None and tag != "86":
                raise MissingFieldError(":86:")

            if tag == "25":
                if account is not None:
                    raise FormatError("More than one statement in the document")
                account = value.strip()
                if not account:
                    raise InvalidValueError(":25:", value)
            elif tag in OPENING_TAGS:
                if opening is None:
                    opening, currency = _parse_balance(tag, value)
            elif tag in CLOSING_TAGS:
                closing, closing_currency = _parse_balance(tag, value)
                if currency is not None and closing_currency != currency:
                    raise InvalidValueError(f":{tag}:", closing_currency)
                currency = currency or closing_currency
            elif tag == "61":
                pending = _parse_statement_line(value)
            elif tag == "86":
                if pending is None:
                    logger.debug("Ignoring :86: without a statement line")
                    continue
                transactions.append(Transaction(description=clean_description(value), **pending))
                pending = None
            elif tag in IGNORED_TAGS:
                continue
            else:
                logger.debug("Ignoring unsupported tag :%s:", tag)

        if pending is not None:
            raise MissingFieldError(":86:")
        if account is None:
            raise MissingFieldError(":25:")
        if opening is None:
            raise MissingFieldError(":60F:")
        if closing is None:
            raise MissingFieldError(":62F:")
        if currency is None:
            raise MissingFieldError(":60F:")

        return Mt940Statement(
            account_number=account,
            currency=currency,
            opening_balance=opening,
            closing_balance=closing,
            transactions=tuple(transactions),
        )

    @classmethod
    def dumps(
        cls,
        statement: Statement,
        sender_bic: str = "BANKXXXXXXX",
        statement_reference: str = "STATEMENT",
        **options: Any,
    ) -> str:
        """Render a statement as an MT940 message.

        Counterparty fields have no MT940 tag and are not written.
        """
        currency = statement.currency

        def balance_line(tag: str, balance: Balance) -> str:
            mark = "C" if balance.indicator is BalanceType.CREDIT else "D"
            when = _swift_date(balance.date, f":{tag}:")
            return f":{tag}:{mark}{when}{currency}{_swift_amount(balance.amount, currency)}"

        lines = [
            f"{{1:F01{sender_bic}0000000000}}{{2:I940{sender_bic}N}}{{4:",
            f":20:{statement_reference}",
            f":25:{statement.account_number}",
            ":28C:1/1",
            balance_line("60F", statement.opening_balance),
        ]

        for tx in statement.transactions:
            reference = tx.reference or NO_REFERENCE
            if "//" in reference or "\n" in reference or "-}" in reference:
                raise InvalidValueError("reference", reference)

            if tx.value_date is not None:
                entry = _swift_date(tx.booking_date, "booking_date")[2:]
                # The entry date carries no year; it must resolve back to the booking date
                if _entry_date(tx.value_date, entry, "61") != tx.booking_date:
                    raise InvalidValueError("booking_date", tx.booking_date.isoformat())
                dates = _swift_date(tx.value_date, "value_date") + entry
            else:
                dates = _swift_date(tx.booking_date, "booking_date")

            mark = "C" if tx.is_credit else "D"
            lines.append(
                f":61:{dates}{mark}{_swift_amount(tx.amount, currency)}{DEFAULT_TYPE_CODE}{reference}"
            )
            description = _description_lines(tx.description)
            lines.append(f":86:{description[0] if description else ''}")
            lines.extend(description[1:])

            if tx.counterparty_name or tx.counterparty_account:
                logger.debug("Dropping counterparty of %s: no MT940 field", reference)

        lines.append(balance_line("62F", statement.closing_balance))
        lines.append("-}")
        return "\n".join(lines) + "\n"
