"""Tests for the statement converter."""

from io import BytesIO
from pathlib import Path

import pytest

from ledger_bridge.converter import StatementConverter
from ledger_bridge.errors import FormatError, MissingFieldError, StatementIOError
from ledger_bridge.models import Camt053Statement, CsvStatement, Mt940Statement


class TestConvertStream:
    """Tests for convert_stream method."""

    def test_csv_to_mt940(self, csv_file: Path) -> None:
        """Test converting a CSV stream to MT940."""
        converter = StatementConverter()
        sink = BytesIO()
        with open(csv_file, "rb") as source:
            statement = converter.convert_stream(source, sink, "csv", "mt940")

        assert isinstance(statement, CsvStatement)
        output = sink.getvalue().decode("utf-8")
        assert output.startswith("{1:F01BANKXXXXXXX")
        assert ":25:40702810440000030888" in output
        assert ":60F:C240101RUB1332,54" in output

    def test_auto_detect(self, camt053_file: Path) -> None:
        """Test auto detection of the input format."""
        converter = StatementConverter()
        sink = BytesIO()
        with open(camt053_file, "rb") as source:
            statement = converter.convert_stream(source, sink, "auto", "csv")

        assert isinstance(statement, Camt053Statement)
        assert b"Account,DE89370400440532013000" in sink.getvalue()

    def test_writer_options_from_config(self, mt940_file: Path) -> None:
        """Test configured writer options are applied."""
        converter = StatementConverter({"csv": {"delimiter": ";", "decimal_separator": "."}})
        sink = BytesIO()
        with open(mt940_file, "rb") as source:
            converter.convert_stream(source, sink, "swift", "delimited-text")

        assert b"Opening balance;1000.00;17.02.2025" in sink.getvalue()

    def test_nothing_written_on_error(self) -> None:
        """Test the sink stays empty when parsing fails."""
        converter = StatementConverter()
        sink = BytesIO()
        with pytest.raises(FormatError):
            converter.convert_stream(BytesIO(b"not a statement"), sink, "auto", "csv")
        assert sink.getvalue() == b""

    def test_unknown_output_format(self, mt940_file: Path) -> None:
        """Test an unknown output format fails before reading."""
        converter = StatementConverter()
        source = BytesIO(mt940_file.read_bytes())
        with pytest.raises(FormatError):
            converter.convert_stream(source, BytesIO(), "mt940", "qif")
        assert source.tell() == 0


class TestConvertFile:
    """Tests for convert_file method."""

    def test_file_round_trip(self, mt940_file: Path, tmp_path: Path) -> None:
        """Test MT940 -> CAMT.053 -> MT940 through files."""
        converter = StatementConverter()
        xml_path = tmp_path / "statement.xml"
        back_path = tmp_path / "statement.mt940"

        original = converter.convert_file(mt940_file, xml_path, "mt940", "camt053")
        converter.convert_file(xml_path, back_path, "auto", "mt940")

        restored = converter.read_path(back_path, "mt940")
        assert isinstance(restored, Mt940Statement)
        assert restored == original

    def test_missing_input(self, tmp_path: Path) -> None:
        """Test a missing input file."""
        converter = StatementConverter()
        with pytest.raises(StatementIOError):
            converter.convert_file(tmp_path / "missing.csv", tmp_path / "out.xml", "csv", "camt053")

    def test_output_not_created_on_error(self, tmp_path: Path) -> None:
        """Test no output file is left behind when parsing fails."""
        source = tmp_path / "broken.sta"
        source.write_text(":25:A\n:60F:C250101EUR1,00\n")
        output = tmp_path / "out.csv"

        with pytest.raises(MissingFieldError):
            StatementConverter().convert_file(source, output, "mt940", "csv")
        assert not output.exists()

    def test_broken_excel_input(self, tmp_path: Path) -> None:
        """Test an unreadable workbook is reported as an I/O error."""
        workbook = tmp_path / "statement.xls"
        workbook.write_bytes(b"this is not really a workbook")

        with pytest.raises(StatementIOError):
            StatementConverter().convert_file(workbook, tmp_path / "out.sta", "csv", "mt940")

    def test_xlsx_input_rejected(self, tmp_path: Path) -> None:
        """Test an .xlsx workbook is reported as unsupported."""
        workbook = tmp_path / "statement.xlsx"
        workbook.write_bytes(b"PK\x03\x04 zipped workbook")
        output = tmp_path / "out.sta"

        with pytest.raises(StatementIOError, match="not supported"):
            StatementConverter().convert_file(workbook, output, "csv", "mt940")
        assert not output.exists()
