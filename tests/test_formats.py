"""Tests for format lookup and detection."""

from pathlib import Path

import pytest

from ledger_bridge.errors import FormatError
from ledger_bridge.formats import (
    FORMATS,
    Camt053Format,
    CsvFormat,
    Mt940Format,
    detect_format,
    get_format,
)


class TestGetFormat:
    """Tests for get_format function."""

    @pytest.mark.parametrize(
        ("name", "expected"),
        [
            ("csv", CsvFormat),
            ("CSV", CsvFormat),
            ("delimited-text", CsvFormat),
            ("mt940", Mt940Format),
            ("Tagged-Block", Mt940Format),
            ("swift", Mt940Format),
            ("camt053", Camt053Format),
            ("structured-markup", Camt053Format),
            ("xml", Camt053Format),
        ],
    )
    def test_names_and_aliases(self, name: str, expected: type) -> None:
        """Test lookup is case-insensitive and accepts aliases."""
        assert get_format(name) is expected

    def test_unknown_name(self) -> None:
        """Test unknown names raise FormatError."""
        with pytest.raises(FormatError):
            get_format("qif")

    def test_closed_table(self) -> None:
        """Test exactly three formats are supported."""
        assert {fmt.name for fmt in FORMATS} == {"csv", "mt940", "camt053"}


class TestDetectFormat:
    """Tests for detect_format function."""

    def test_detects_fixtures(
        self, csv_file: Path, csv_ru_file: Path, mt940_file: Path, camt053_file: Path
    ) -> None:
        """Test each fixture is recognised."""
        assert detect_format(csv_file.read_text(encoding="utf-8")) is CsvFormat
        assert detect_format(csv_ru_file.read_text(encoding="utf-8")) is CsvFormat
        assert detect_format(mt940_file.read_text(encoding="utf-8")) is Mt940Format
        assert detect_format(camt053_file.read_text(encoding="utf-8")) is Camt053Format

    def test_unknown_content(self) -> None:
        """Test unrecognised content raises FormatError."""
        with pytest.raises(FormatError):
            detect_format("just some text")
