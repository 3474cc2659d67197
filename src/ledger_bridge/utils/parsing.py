"""Parsing utilities shared by the statement formats."""

import csv
import re
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from io import StringIO
from pathlib import Path

from ledger_bridge.models import minor_units

# Encodings tried in order when decoding statement bytes.
# cp1251 covers Cyrillic exports; latin-1 never fails.
TEXT_ENCODINGS = ["utf-8-sig", "cp1251", "latin-1"]

DATE_FORMATS = [
    "%d.%m.%Y",  # 20.02.2024
    "%Y-%m-%d",  # 2024-02-20
    "%d/%m/%Y",  # 20/02/2024
]

_THOUSANDS_CHARS = re.compile(r"[\s']")
_ISO_DATE_PREFIX = re.compile(r"\d{4}-\d{2}-\d{2}")


def parse_date(date_str: str) -> date | None:
    """
    Parse a statement date.

    Supported formats:
    - DD.MM.YYYY (20.02.2024)
    - YYYY-MM-DD (2024-02-20), also as the prefix of an ISO datetime
    - DD/MM/YYYY (20/02/2024)

    Args:
        date_str: Date string to parse

    Returns:
        date object if successful, None otherwise
    """
    date_str = date_str.strip().strip('"').strip()

    if not date_str:
        return None

    # ISO datetimes and offsets (2023-04-20T23:24:31+00:00) carry the date first
    if len(date_str) > 10 and _ISO_DATE_PREFIX.match(date_str):
        date_str = date_str[:10]

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(date_str, fmt).date()
        except ValueError:
            continue

    return None


def parse_amount(amount_str: str) -> Decimal | None:
    """
    Parse a locale-formatted amount string to Decimal.

    Handles:
    - Comma or dot as decimal separator (1540,00 / 1540.00)
    - Thousands separators (spaces, NBSP, apostrophes, or the other of , and .)
    - Trailing separator meaning whole units (100, -> 100)
    - Negative values (both -123 and (123))

    When only one of ``,`` and ``.`` appears it is the decimal separator if
    it occurs once, otherwise it is a thousands separator.

    Args:
        amount_str: Amount string to parse

    Returns:
        Decimal if successful, None otherwise
    """
    if not amount_str or not amount_str.strip():
        return None

    amount_str = amount_str.strip().strip('"').strip()

    is_negative = False
    if amount_str.startswith("(") and amount_str.endswith(")"):
        is_negative = True
        amount_str = amount_str[1:-1]

    if amount_str.startswith("-"):
        is_negative = True
        amount_str = amount_str[1:]
    elif amount_str.startswith("+"):
        amount_str = amount_str[1:]

    amount_str = _THOUSANDS_CHARS.sub("", amount_str)

    if "," in amount_str and "." in amount_str:
        # Whichever comes last is the decimal separator
        if amount_str.rfind(",") > amount_str.rfind("."):
            amount_str = amount_str.replace(".", "").replace(",", ".")
        else:
            amount_str = amount_str.replace(",", "")
    elif amount_str.count(",") == 1:
        amount_str = amount_str.replace(",", ".")
    elif amount_str.count(",") > 1:
        amount_str = amount_str.replace(",", "")
    elif amount_str.count(".") > 1:
        amount_str = amount_str.replace(".", "")

    if amount_str.endswith("."):
        amount_str += "0"

    if not amount_str or not re.fullmatch(r"\d+(\.\d+)?|\.\d+", amount_str):
        return None

    try:
        value = Decimal(amount_str)
    except InvalidOperation:
        return None
    return value.copy_negate() if is_negative else value


def quantize_amount(amount: Decimal, currency: str) -> Decimal:
    """Round an amount to the currency's minor-unit scale."""
    exponent = Decimal(1).scaleb(-minor_units(currency))
    return amount.quantize(exponent, rounding=ROUND_HALF_UP)


def format_amount(amount: Decimal, currency: str, decimal_separator: str = ".") -> str:
    """
    Format an amount with the currency's minor units and no thousands separator.

    Args:
        amount: Amount to format (sign is kept)
        currency: ISO 4217 code used for the minor-unit scale
        decimal_separator: "." or ","

    Returns:
        Formatted amount string, e.g. "1540,00"
    """
    text = f"{quantize_amount(amount, currency):f}"
    if decimal_separator != ".":
        text = text.replace(".", decimal_separator)
    return text


def clean_description(desc: str) -> str:
    """
    Clean up a description taken from a single cell or element.

    Collapses runs of spaces and tabs but keeps line breaks, stripping each line.

    Args:
        desc: Raw description string

    Returns:
        Cleaned description
    """
    lines = [" ".join(line.split()) for line in desc.strip().splitlines()]
    return "\n".join(lines).strip()


def decode_text(data: bytes) -> str:
    """
    Decode statement bytes trying the known encodings in order.

    Args:
        data: Raw bytes

    Returns:
        Decoded text
    """
    for encoding in TEXT_ENCODINGS[:-1]:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError:
            continue

    return data.decode(TEXT_ENCODINGS[-1])


def read_file(filepath: Path) -> str:
    """
    Read file content, handling both text and Excel files.

    Args:
        filepath: Path to the file

    Returns:
        File content as string (.xls workbooks converted to CSV format)

    Raises:
        OSError: If the file cannot be opened
        ValueError: If the workbook cannot be read or is an unsupported .xlsx file
    """
    with open(filepath, "rb") as f:
        magic = f.read(8)

    suffix = filepath.suffix.lower()

    # xlrd 2 reads only the legacy OLE2 format
    if magic[:4] == b"PK\x03\x04" or suffix == ".xlsx":
        raise ValueError(
            f"Cannot read {filepath}: .xlsx workbooks are not supported, save as .xls or CSV"
        )

    is_xls = magic[:4] == b"\xd0\xcf\x11\xe0" or suffix == ".xls"

    if is_xls:
        return _read_excel(filepath)
    return _read_text(filepath)


def _read_text(filepath: Path) -> str:
    """Read text file with encoding detection."""
    return decode_text(filepath.read_bytes())


def _read_excel(filepath: Path) -> str:
    """Read Excel file and convert to CSV string."""
    import xlrd  # type: ignore[import-untyped]

    try:
        wb = xlrd.open_workbook(str(filepath))
    except xlrd.XLRDError as e:
        raise ValueError(f"Could not read Excel file {filepath}: {e}") from e

    sheet = wb.sheet_by_index(0)
    out = StringIO()
    writer = csv.writer(out, lineterminator="\n")

    for row in range(sheet.nrows):
        row_data = []
        for col in range(sheet.ncols):
            cell = sheet.cell(row, col)
            if cell.ctype == xlrd.XL_CELL_DATE:
                dt = xlrd.xldate_as_datetime(cell.value, wb.datemode)
                row_data.append(dt.strftime("%d.%m.%Y"))
            elif cell.ctype == xlrd.XL_CELL_NUMBER and float(cell.value).is_integer():
                row_data.append(str(int(cell.value)))
            else:
                row_data.append(str(cell.value))
        writer.writerow(row_data)

    return out.getvalue()
