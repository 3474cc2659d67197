"""Delimited-text (CSV) statement format.

The layout follows account statement exports of the Sberbank family: a
free-form metadata block, one column-header row, transaction rows with
separate debit and credit columns, and summary rows at the bottom::

    Bank statement
    Account,40702810440000030888
    Account holder,LLC Horns
    ,and Hoofs
    Currency,RUB
    Booking date,Value date,Debit,Credit,Reference,Counterparty,Counterparty account,Description
    20.02.2024,,"1540,00",,DOC-1,,,Office rent
    Total turnover,,"1540,00","0,00"
    Opening balance,"1332,54",01.01.2024
    Closing balance,"-207,46",31.12.2024

Labels are recognised in English and Russian. A row that matches no
structural pattern continues the previous metadata field (before the
header) or the previous transaction's description (after it). Rows after
the summary rows, such as signatures, are ignored.

Exports without labels carry the account as a bare 20-digit cell near the
top and the currency as a code or name in an unlabelled row above the
column header.
"""

import csv
import dataclasses
import re
from decimal import Decimal
from enum import Enum
from io import StringIO
from typing import Any, ClassVar

from ledger_bridge.errors import FormatError, InvalidValueError, MissingFieldError
from ledger_bridge.formats.base import StatementFormat
from ledger_bridge.logging_setup import get_logger
from ledger_bridge.models import (
    Balance,
    BalanceType,
    CsvStatement,
    Statement,
    Transaction,
    TransactionType,
)
from ledger_bridge.utils import clean_description, format_amount, parse_amount, parse_date

logger = get_logger(__name__)

DATE_FORMAT = "%d.%m.%Y"

# Column header aliases, lower-cased
COLUMN_ALIASES: dict[str, tuple[str, ...]] = {
    "booking_date": ("booking date", "date", "transaction date", "дата проводки", "дата операции"),
    "value_date": ("value date", "дата валютирования"),
    "debit": ("debit", "debit amount", "сумма по дебету"),
    "credit": ("credit", "credit amount", "сумма по кредиту"),
    "reference": ("reference", "document number", "№ документа"),
    "counterparty_name": ("counterparty", "counterparty name", "контрагент"),
    "counterparty_account": ("counterparty account", "счет контрагента"),
    "description": ("description", "payment purpose", "назначение платежа"),
}
REQUIRED_COLUMNS = ("booking_date", "debit", "credit")

HEADER_ROW = [
    "Booking date",
    "Value date",
    "Debit",
    "Credit",
    "Reference",
    "Counterparty",
    "Counterparty account",
    "Description",
]

# Summary row markers, lower-cased
OPENING_MARKERS = ("opening balance", "входящий остаток")
CLOSING_MARKERS = ("closing balance", "исходящий остаток")
TOTAL_MARKERS = ("total", "turnover", "количество операций", "итого", "обороты", "б/с")

ACCOUNT_KEYS = ("account", "account number", "счет", "счёт", "номер счета")
CURRENCY_KEYS = ("currency", "валюта")
CURRENCY_NAMES = {
    "рубль": "RUB",
    "рубли": "RUB",
    "доллар": "USD",
    "евро": "EUR",
}

DELIMITER_CANDIDATES = (";", "\t", ",")

# Unlabelled exports carry a bare 20-digit account in the first rows
ACCOUNT_NUMBER_PATTERN = re.compile(r"\d{20}")
ACCOUNT_SEARCH_ROWS = 10


class RowKind(Enum):
    """Structural classification of a delimited-text row."""

    METADATA = "metadata"
    HEADER = "header"
    TRANSACTION = "transaction"
    SUMMARY = "summary"
    CONTINUATION = "continuation"


def _first_value(cells: list[str]) -> str:
    return next((c for c in cells if c), "")


def _summary_marker(cells: list[str]) -> str | None:
    """Return the matching summary marker group name, if the row is a summary row."""
    label = _first_value(cells).lower()
    if any(m in label for m in OPENING_MARKERS):
        return "opening"
    if any(m in label for m in CLOSING_MARKERS):
        return "closing"
    if any(m in label for m in TOTAL_MARKERS):
        return "total"
    return None


def _is_header(cells: list[str]) -> bool:
    lowered = {c.lower() for c in cells}
    has_date = any(alias in lowered for alias in COLUMN_ALIASES["booking_date"])
    has_amount = any(
        alias in lowered for alias in COLUMN_ALIASES["debit"] + COLUMN_ALIASES["credit"]
    )
    return has_date and has_amount


def _sniff_delimiter(content: str) -> str:
    """Pick the delimiter that splits the column-header line the most."""
    for line in content.splitlines():
        lowered = line.lower()
        if not any(alias in lowered for alias in COLUMN_ALIASES["booking_date"]):
            continue
        counts = {d: line.count(d) for d in DELIMITER_CANDIDATES}
        best = max(counts, key=lambda d: counts[d])
        if counts[best] > 0:
            return best
    return ","


def _map_columns(cells: list[str]) -> dict[str, int]:
    columns: dict[str, int] = {}
    for idx, cell in enumerate(cells):
        lowered = cell.lower()
        for field, aliases in COLUMN_ALIASES.items():
            if lowered in aliases and field not in columns:
                columns[field] = idx
                break

    for required in REQUIRED_COLUMNS:
        if required not in columns:
            raise MissingFieldError(f"{required} column")
    return columns


def _find_account_number(rows: list[list[str]]) -> str | None:
    """Return the first cell of the leading rows that is a bare account number."""
    for cells in rows[:ACCOUNT_SEARCH_ROWS]:
        for cell in cells:
            if ACCOUNT_NUMBER_PATTERN.fullmatch(cell):
                return cell
    return None


def _find_currency(rows: list[list[str]]) -> str | None:
    """Look for a currency code or name in unlabelled rows above the column header."""
    for cells in rows:
        if not cells or cells[0]:
            continue
        for cell in cells:
            if len(cell) == 3 and cell.isascii() and cell.isalpha() and cell.isupper():
                return cell
            lowered = cell.lower()
            for name, code in CURRENCY_NAMES.items():
                if name in lowered:
                    return code
    return None


def _currency_code(value: str) -> str:
    text = value.strip()
    if len(text) == 3 and text.isascii() and text.isalpha():
        return text.upper()
    lowered = text.lower()
    for name, code in CURRENCY_NAMES.items():
        if name in lowered:
            return code
    for token in text.replace("(", " ").replace(")", " ").split():
        if len(token) == 3 and token.isascii() and token.isalpha() and token.isupper():
            return token
    raise InvalidValueError("currency", value)


class CsvFormat(StatementFormat):
    """Delimited-text statement format with split debit/credit columns."""

    name: ClassVar[str] = "csv"
    description: ClassVar[str] = "Delimited-text statement (Sberbank-style CSV)"
    aliases: ClassVar[tuple[str, ...]] = ("delimited-text", "delimited")
    file_extensions: ClassVar[tuple[str, ...]] = (".csv", ".txt", ".xls")
    record_type: ClassVar[type[Statement]] = CsvStatement

    @classmethod
    def can_parse(cls, content: str) -> bool:
        """Check for a column-header row with a date and an amount column."""
        delimiter = _sniff_delimiter(content)
        for row in csv.reader(StringIO(content, newline=""), delimiter=delimiter):
            if _is_header([c.strip() for c in row]):
                return True
        return False

    @classmethod
    def loads(cls, content: str) -> CsvStatement:
        """Parse a delimited-text statement."""
        delimiter = _sniff_delimiter(content)
        reader = csv.reader(StringIO(content, newline=""), delimiter=delimiter)

        metadata: dict[str, str] = {}
        last_key: str | None = None
        columns: dict[str, int] | None = None
        transactions: list[Transaction] = []
        balances: dict[str, Balance] = {}

        try:
            rows = [[c.strip() for c in row] for row in reader]
        except csv.Error as e:
            raise FormatError(f"Malformed CSV: {e}") from e

        header_index = 0
        in_footer = False

        for row_no, cells in enumerate(rows, start=1):
            if not any(cells):
                continue

            kind = cls._classify(cells, columns)

            if kind is RowKind.HEADER:
                columns = _map_columns(cells)
                header_index = row_no - 1
            elif kind is RowKind.SUMMARY:
                in_footer = in_footer or columns is not None
                marker = _summary_marker(cells)
                if marker in ("opening", "closing"):
                    balances[marker] = cls._parse_balance_row(cells, f"{marker}_balance")
            elif kind is RowKind.METADATA:
                last_key = cells[0].lower().rstrip(":").strip()
                metadata[last_key] = " ".join(c for c in cells[1:] if c)
            elif columns is None:
                if last_key is not None:
                    extra = " ".join(c for c in cells if c)
                    metadata[last_key] = f"{metadata[last_key]} {extra}".strip()
            elif kind is RowKind.TRANSACTION:
                transactions.append(cls._parse_transaction_row(cells, columns))
            elif in_footer:
                logger.debug("Skipping row %d after the summary rows: %s", row_no, cells)
            elif transactions:
                extra = " ".join(c for c in cells if c)
                last = transactions[-1]
                description = f"{last.description} {extra}".strip()
                transactions[-1] = dataclasses.replace(last, description=description)
            else:
                logger.debug("Skipping row %d before the first transaction: %s", row_no, cells)

        if columns is None:
            raise FormatError("Column header row not found")

        account = cls._metadata_value(metadata, ACCOUNT_KEYS) or _find_account_number(rows)
        if not account:
            raise MissingFieldError("account")

        currency_text = cls._metadata_value(metadata, CURRENCY_KEYS)
        if currency_text:
            currency = _currency_code(currency_text)
        else:
            found = _find_currency(rows[:header_index])
            if found is None:
                raise MissingFieldError("currency")
            currency = found

        if "opening" not in balances:
            raise MissingFieldError("opening_balance")
        if "closing" not in balances:
            raise MissingFieldError("closing_balance")

        return CsvStatement(
            account_number=account,
            currency=currency,
            opening_balance=balances["opening"],
            closing_balance=balances["closing"],
            transactions=tuple(transactions),
        )

    @classmethod
    def dumps(
        cls,
        statement: Statement,
        delimiter: str = ",",
        decimal_separator: str = ",",
        **options: Any,
    ) -> str:
        """Render a statement as delimited text."""
        if decimal_separator not in (",", "."):
            raise InvalidValueError("decimal_separator", decimal_separator)
        if len(delimiter) != 1:
            raise InvalidValueError("delimiter", delimiter)

        currency = statement.currency

        def amount(value: Decimal) -> str:
            return format_amount(value, currency, decimal_separator)

        out = StringIO()
        writer = csv.writer(out, delimiter=delimiter, lineterminator="\n")

        writer.writerow(["Bank statement"])
        writer.writerow(["Account", statement.account_number])
        writer.writerow(["Currency", currency])
        writer.writerow([
            "Period",
            statement.opening_balance.date.strftime(DATE_FORMAT),
            statement.closing_balance.date.strftime(DATE_FORMAT),
        ])
        writer.writerow([])
        writer.writerow(HEADER_ROW)

        debit_total = credit_total = Decimal("0")
        for tx in statement.transactions:
            is_debit = tx.transaction_type is TransactionType.DEBIT
            writer.writerow([
                tx.booking_date.strftime(DATE_FORMAT),
                tx.value_date.strftime(DATE_FORMAT) if tx.value_date else "",
                amount(tx.amount) if is_debit else "",
                "" if is_debit else amount(tx.amount),
                tx.reference or "",
                tx.counterparty_name or "",
                tx.counterparty_account or "",
                tx.description,
            ])
            if is_debit:
                debit_total += tx.amount
            else:
                credit_total += tx.amount

        writer.writerow([])
        writer.writerow([
            "Total turnover",
            "",
            amount(debit_total),
            amount(credit_total),
        ])
        for label, balance in (
            ("Opening balance", statement.opening_balance),
            ("Closing balance", statement.closing_balance),
        ):
            # Debit zero balances keep their sign as -0
            if balance.indicator is BalanceType.DEBIT:
                signed = balance.amount.copy_negate()
            else:
                signed = balance.amount
            writer.writerow([label, amount(signed), balance.date.strftime(DATE_FORMAT)])

        return out.getvalue()

    @staticmethod
    def _classify(cells: list[str], columns: dict[str, int] | None) -> RowKind:
        if columns is None and _is_header(cells):
            return RowKind.HEADER
        if _summary_marker(cells) is not None:
            return RowKind.SUMMARY
        if columns is None:
            return RowKind.METADATA if cells[0] else RowKind.CONTINUATION

        def populated(field: str) -> bool:
            idx = columns.get(field)
            return idx is not None and idx < len(cells) and bool(cells[idx])

        date_idx = columns["booking_date"]
        has_date = date_idx < len(cells) and parse_date(cells[date_idx]) is not None
        if has_date or populated("debit") or populated("credit"):
            return RowKind.TRANSACTION
        return RowKind.CONTINUATION

    @staticmethod
    def _metadata_value(metadata: dict[str, str], keys: tuple[str, ...]) -> str | None:
        for key in keys:
            if key in metadata:
                return metadata[key].strip()
        return None

    @staticmethod
    def _parse_transaction_row(cells: list[str], columns: dict[str, int]) -> Transaction:
        for required in REQUIRED_COLUMNS:
            if columns[required] >= len(cells):
                raise MissingFieldError(required)

        def cell(field: str) -> str:
            idx = columns.get(field)
            if idx is None or idx >= len(cells):
                return ""
            return cells[idx]

        date_raw = cell("booking_date")
        if not date_raw:
            raise MissingFieldError("booking_date")
        booking_date = parse_date(date_raw)
        if booking_date is None:
            raise InvalidValueError("booking_date", date_raw)

        value_raw = cell("value_date")
        value_date = parse_date(value_raw) if value_raw else None
        if value_raw and value_date is None:
            raise InvalidValueError("value_date", value_raw)

        debit_raw = cell("debit")
        credit_raw = cell("credit")
        if debit_raw and credit_raw:
            raise InvalidValueError("amount", f"debit={debit_raw}; credit={credit_raw}")
        if not debit_raw and not credit_raw:
            raise MissingFieldError("amount")

        if debit_raw:
            field, raw, transaction_type = "debit", debit_raw, TransactionType.DEBIT
        else:
            field, raw, transaction_type = "credit", credit_raw, TransactionType.CREDIT
        value = parse_amount(raw)
        if value is None:
            raise InvalidValueError(field, raw)

        return Transaction(
            booking_date=booking_date,
            value_date=value_date,
            amount=abs(value),
            transaction_type=transaction_type,
            description=clean_description(cell("description")),
            reference=cell("reference") or None,
            counterparty_name=cell("counterparty_name") or None,
            counterparty_account=cell("counterparty_account") or None,
        )

    @staticmethod
    def _parse_balance_row(cells: list[str], field: str) -> Balance:
        label_idx = next(i for i, c in enumerate(cells) if c)
        amount = None
        balance_date = None
        unparsed: str | None = None

        for raw in cells[label_idx + 1:]:
            if not raw:
                continue
            parsed_date = parse_date(raw)
            if parsed_date is not None:
                if balance_date is None:
                    balance_date = parsed_date
                continue
            parsed_amount = parse_amount(raw)
            if parsed_amount is not None:
                if amount is None:
                    amount = parsed_amount
                continue
            if unparsed is None:
                unparsed = raw

        if amount is None:
            if unparsed is not None:
                raise InvalidValueError(field, unparsed)
            raise MissingFieldError(field)
        if balance_date is None:
            raise MissingFieldError(field.replace("_balance", "_date"))

        indicator = BalanceType.DEBIT if amount.is_signed() else BalanceType.CREDIT
        return Balance(amount=abs(amount), date=balance_date, indicator=indicator)
