"""Statement formats package."""

from ledger_bridge.errors import FormatError
from ledger_bridge.formats.base import StatementFormat
from ledger_bridge.formats.camt053 import Camt053Format
from ledger_bridge.formats.csv_statement import CsvFormat
from ledger_bridge.formats.mt940 import Mt940Format

# Closed set of supported formats, in detection order
FORMATS: tuple[type[StatementFormat], ...] = (Camt053Format, Mt940Format, CsvFormat)

AUTO = "auto"


def get_format(name: str) -> type[StatementFormat]:
    """
    Resolve a format by name or alias (case-insensitive).

    Raises:
        FormatError: If no format matches the name
    """
    for fmt in FORMATS:
        if fmt.matches_name(name):
            return fmt
    known = ", ".join(fmt.name for fmt in FORMATS)
    raise FormatError(f"Unknown format '{name}' (expected one of: {known})")


def detect_format(content: str) -> type[StatementFormat]:
    """
    Find the first format that recognises the decoded content.

    Raises:
        FormatError: If no format recognises the content
    """
    for fmt in FORMATS:
        if fmt.can_parse(content):
            return fmt
    raise FormatError("Could not detect the statement format")


__all__ = [
    "AUTO",
    "FORMATS",
    "StatementFormat",
    "CsvFormat",
    "Mt940Format",
    "Camt053Format",
    "get_format",
    "detect_format",
]
