"""Error types shared by all statement formats."""

from typing import ClassVar


class StatementError(Exception):
    """Base class for every failure reported by a format adapter."""

    kind: ClassVar[str] = "statement-error"


class FormatError(StatementError):
    """Input is not recognizable as the expected exchange format."""

    kind: ClassVar[str] = "format-error"

    def __init__(self, message: str) -> None:
        super().__init__(f"Invalid format: {message}")
        self.detail = message


class MissingFieldError(StatementError):
    """A structurally required element, tag or column is absent."""

    kind: ClassVar[str] = "missing-field"

    def __init__(self, field: str) -> None:
        super().__init__(f"Missing required field: {field}")
        self.field = field


class InvalidValueError(StatementError):
    """A present field's raw text cannot be converted to its semantic type."""

    kind: ClassVar[str] = "invalid-value"

    def __init__(self, field: str, value: str) -> None:
        super().__init__(f"Invalid value '{value}' for field '{field}'")
        self.field = field
        self.value = value


class StatementIOError(StatementError):
    """The underlying byte source or sink failed."""

    kind: ClassVar[str] = "io-error"

    def __init__(self, message: str) -> None:
        super().__init__(f"I/O error: {message}")
        self.detail = message
