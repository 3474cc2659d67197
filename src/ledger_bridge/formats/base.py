"""Base class for statement formats."""

from abc import ABC, abstractmethod
from typing import Any, BinaryIO, ClassVar

from ledger_bridge.errors import FormatError, StatementIOError
from ledger_bridge.logging_setup import get_logger
from ledger_bridge.models import Statement
from ledger_bridge.utils import decode_text

logger = get_logger(__name__)


class StatementFormat(ABC):
    """Abstract base class for a statement exchange format.

    Subclasses implement ``loads``/``dumps`` on text; ``read``/``write`` add
    byte I/O, decoding and error wrapping around them. Adapters are
    stateless and only expose classmethods.
    """

    # Class attributes to be overridden by subclasses
    name: ClassVar[str] = "unknown"
    description: ClassVar[str] = ""
    aliases: ClassVar[tuple[str, ...]] = ()
    file_extensions: ClassVar[tuple[str, ...]] = ()
    record_type: ClassVar[type[Statement]] = Statement

    @classmethod
    @abstractmethod
    def can_parse(cls, content: str) -> bool:
        """
        Check if this format can handle the given content.

        Args:
            content: Decoded document text

        Returns:
            True if the content looks like this format
        """

    @classmethod
    @abstractmethod
    def loads(cls, content: str) -> Statement:
        """
        Parse a whole document.

        Args:
            content: Decoded document text (never blank)

        Returns:
            Record of ``record_type``
        """

    @classmethod
    @abstractmethod
    def dumps(cls, statement: Statement, **options: Any) -> str:
        """
        Render a statement as a whole document.

        Validation happens here, before any byte reaches a sink.
        """

    @classmethod
    def read(cls, source: bytes | BinaryIO) -> Statement:
        """
        Read one document from a byte source.

        Args:
            source: Raw bytes or a binary file object, consumed completely

        Returns:
            Record of ``record_type``

        Raises:
            StatementIOError: If the source cannot be read
            FormatError: If the input is empty or not this format
            MissingFieldError: If a required element is absent
            InvalidValueError: If a field cannot be converted
        """
        if isinstance(source, (bytes, bytearray)):
            data = bytes(source)
        else:
            try:
                data = source.read()
            except OSError as e:
                raise StatementIOError(str(e)) from e

        content = decode_text(data)
        if not content.strip():
            raise FormatError(f"Empty {cls.name} input")

        statement = cls.loads(content)
        logger.debug(
            "Read %s statement for %s with %d transactions",
            cls.name,
            statement.account_number,
            len(statement.transactions),
        )
        return statement

    @classmethod
    def write(cls, statement: Statement, sink: BinaryIO, **options: Any) -> None:
        """
        Write one document to a byte sink.

        Nothing is written when validation fails.

        Raises:
            StatementIOError: If the sink fails
            InvalidValueError: If the statement cannot be represented
        """
        document = cls.dumps(statement, **options)
        try:
            sink.write(document.encode("utf-8"))
            sink.flush()
        except OSError as e:
            raise StatementIOError(str(e)) from e
        logger.debug("Wrote %s statement with %d transactions", cls.name, len(statement.transactions))

    @classmethod
    def matches_name(cls, value: str) -> bool:
        """Case-insensitive match against the format name and its aliases."""
        wanted = value.strip().lower()
        return wanted == cls.name or wanted in cls.aliases
