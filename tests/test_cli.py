"""Tests for the command-line interface."""

import io
import json
from pathlib import Path

import pytest

from ledger_bridge.cli import main


class TestCli:
    """Tests for the ledger-bridge command."""

    def test_list_formats(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test listing formats exits successfully."""
        assert main(["--list-formats"]) == 0
        out = capsys.readouterr().out
        assert "csv" in out
        assert "mt940" in out
        assert "camt053" in out
        assert "Extensions: .csv, .txt, .xls" in out
        assert ".xlsx" not in out

    def test_file_conversion(self, mt940_file: Path, tmp_path: Path) -> None:
        """Test converting between files."""
        output = tmp_path / "statement.xml"
        code = main([
            "--in-format", "MT940",
            "--out-format", "structured-markup",
            "-i", str(mt940_file),
            "-o", str(output),
        ])

        assert code == 0
        assert "BkToCstmrStmt" in output.read_text(encoding="utf-8")

    def test_stdin_to_stdout(
        self,
        csv_file: Path,
        monkeypatch: pytest.MonkeyPatch,
        capsys: pytest.CaptureFixture[str],
    ) -> None:
        """Test reading stdin and writing stdout."""
        monkeypatch.setattr("sys.stdin", io.TextIOWrapper(io.BytesIO(csv_file.read_bytes())))

        assert main(["--in-format", "auto", "--out-format", "mt940"]) == 0
        assert ":25:40702810440000030888" in capsys.readouterr().out

    def test_config_applied(self, mt940_file: Path, tmp_path: Path) -> None:
        """Test writer options from an explicit config file."""
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"csv": {"delimiter": ";"}}))
        output = tmp_path / "statement.csv"

        code = main([
            "--in-format", "mt940",
            "--out-format", "csv",
            "-i", str(mt940_file),
            "-o", str(output),
            "--config", str(config),
        ])

        assert code == 0
        assert "Account;DE89370400440532013000" in output.read_text(encoding="utf-8")

    def test_parse_error_exit_code(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test statement errors print a message and exit 1."""
        source = tmp_path / "empty.sta"
        source.write_bytes(b"")
        output = tmp_path / "out.csv"

        code = main(["--in-format", "mt940", "--out-format", "csv", "-i", str(source), "-o", str(output)])

        assert code == 1
        assert capsys.readouterr().err.startswith("Error: Invalid format")
        assert not output.exists()

    def test_unknown_format(self, mt940_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test an unknown format name exits 1."""
        code = main(["--in-format", "qif", "--out-format", "csv", "-i", str(mt940_file)])

        assert code == 1
        assert "Unknown format 'qif'" in capsys.readouterr().err

    def test_missing_input_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test a missing input file exits 1."""
        code = main(["--in-format", "csv", "--out-format", "mt940", "-i", str(tmp_path / "nope.csv")])

        assert code == 1
        assert "Error: I/O error" in capsys.readouterr().err

    def test_formats_required(self, capsys: pytest.CaptureFixture[str]) -> None:
        """Test both formats must be given."""
        assert main(["--in-format", "csv"]) == 1
        assert "--out-format" in capsys.readouterr().err

    def test_bad_config_file(self, tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """Test an unreadable config file exits 1."""
        config = tmp_path / "config.json"
        config.write_text("{not json")

        code = main(["--in-format", "csv", "--out-format", "mt940", "--config", str(config)])

        assert code == 1
        assert "could not load config" in capsys.readouterr().err

    def test_bad_config_section(
        self, mt940_file: Path, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        """Test a writer section that is not an object exits 1 without a traceback."""
        config = tmp_path / "config.json"
        config.write_text(json.dumps({"csv": "semicolon"}))
        output = tmp_path / "out.csv"

        code = main([
            "--in-format", "mt940",
            "--out-format", "csv",
            "-i", str(mt940_file),
            "-o", str(output),
            "--config", str(config),
        ])

        assert code == 1
        assert "could not load config" in capsys.readouterr().err
        assert not output.exists()
