"""Main converter class that orchestrates reading, converting and writing."""

from pathlib import Path
from typing import Any, BinaryIO

from ledger_bridge.config import get_writer_options
from ledger_bridge.conversions import convert
from ledger_bridge.errors import StatementIOError
from ledger_bridge.formats import AUTO, CsvFormat, StatementFormat, detect_format, get_format
from ledger_bridge.logging_setup import get_logger
from ledger_bridge.models import Statement
from ledger_bridge.utils import decode_text, read_file

logger = get_logger(__name__)

# Workbook files go through read_file, which rejects .xlsx
EXCEL_EXTENSIONS = (".xls", ".xlsx")


class StatementConverter:
    """
    Converts one statement document between formats.

    Usage:
        converter = StatementConverter(config)
        converter.convert_file(Path("statement.csv"), Path("statement.xml"), "csv", "camt053")
    """

    def __init__(self, config: dict[str, Any] | None = None) -> None:
        """
        Initialize converter.

        Args:
            config: Loaded JSON config for writer options
        """
        self.config = config

    def resolve_input_format(self, name: str, data: bytes) -> type[StatementFormat]:
        """Resolve the input format by name, or detect it when ``name`` is ``auto``."""
        if name.strip().lower() == AUTO:
            fmt = detect_format(decode_text(data))
            logger.info("Detected input format: %s", fmt.name)
            return fmt
        return get_format(name)

    def read_bytes(self, data: bytes, in_format: str = AUTO) -> Statement:
        """Parse a whole document held in memory."""
        reader = self.resolve_input_format(in_format, data)
        return reader.read(data)

    def read_path(self, input_path: Path, in_format: str = AUTO) -> Statement:
        """
        Parse a statement file. Excel workbooks are read as delimited text.

        Raises:
            StatementIOError: If the file cannot be read
        """
        if input_path.suffix.lower() in EXCEL_EXTENSIONS:
            try:
                content = read_file(input_path)
            except (OSError, ValueError) as e:
                raise StatementIOError(str(e)) from e
            reader: type[StatementFormat] = CsvFormat
            if in_format.strip().lower() != AUTO:
                reader = get_format(in_format)
            return reader.read(content.encode("utf-8"))

        try:
            data = input_path.read_bytes()
        except OSError as e:
            raise StatementIOError(str(e)) from e
        return self.read_bytes(data, in_format)

    def render(self, statement: Statement, out_format: str) -> bytes:
        """Convert a statement to ``out_format`` and render it with configured options."""
        writer = get_format(out_format)
        converted = convert(statement, writer.record_type)
        options = get_writer_options(self.config, writer.name)
        return writer.dumps(converted, **options).encode("utf-8")

    def convert_stream(
        self,
        source: BinaryIO,
        sink: BinaryIO,
        in_format: str,
        out_format: str,
    ) -> Statement:
        """
        Read a statement from ``source`` and write it to ``sink``.

        Nothing is written to ``sink`` when reading or validation fails.

        Args:
            source: Binary input stream
            sink: Binary output stream
            in_format: Input format name, alias or ``auto``
            out_format: Output format name or alias

        Returns:
            The statement as read
        """
        get_format(out_format)
        try:
            data = source.read()
        except OSError as e:
            raise StatementIOError(str(e)) from e

        statement = self.read_bytes(data, in_format)
        document = self.render(statement, out_format)
        try:
            sink.write(document)
            sink.flush()
        except OSError as e:
            raise StatementIOError(str(e)) from e

        logger.info("Converted statement with %d transactions", len(statement.transactions))
        return statement

    def convert_file(
        self,
        input_path: Path,
        output_path: Path,
        in_format: str = AUTO,
        out_format: str = "csv",
    ) -> Statement:
        """
        Convert a statement file into another file.

        The output file is only created once the statement has been rendered.

        Args:
            input_path: Path to the input file
            output_path: Path to the output file
            in_format: Input format name, alias or ``auto``
            out_format: Output format name or alias

        Returns:
            The statement as read
        """
        get_format(out_format)
        statement = self.read_path(input_path, in_format)
        document = self.render(statement, out_format)
        try:
            output_path.write_bytes(document)
        except OSError as e:
            raise StatementIOError(str(e)) from e

        logger.info(
            "Converted %s to %s: %d transactions",
            input_path,
            output_path,
            len(statement.transactions),
        )
        return statement
