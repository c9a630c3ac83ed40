"""Input-contract exceptions raised by the ingestion entry points."""
from __future__ import annotations


class InvalidArgumentError(ValueError):
    """Raised when a required argument is missing or a numeric parameter is invalid."""

    def __init__(self, message: str, *, argument: str | None = None) -> None:
        super().__init__(message)
        self.argument = argument


class FormatError(ValueError):
    """Raised when uploaded content is not valid Base64."""

    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.__cause__ = cause
