"""Error types raised while encoding messages to JSON."""
from __future__ import annotations


class EncodeError(Exception):
    """Base class for recoverable encoding failures."""


class UnsupportedSchemaError(EncodeError):
    pass


class WriterError(EncodeError, ValueError):
    pass


class RecursionDepthError(EncodeError):
    def __init__(self, limit: int):
        super().__init__(f"exceeded maximum recursion depth of {limit}")
        self.limit = limit


class IncompleteMessageError(EncodeError):
    """Required fields are unset somewhere in the message graph.

    ``data`` holds the JSON produced before the check ran so lenient
    callers can still use it.
    """

    def __init__(self, message_name: str, missing: list[str], data: bytes = b""):
        super().__init__(
            f"required fields not set in {message_name}: {', '.join(missing)}"
        )
        self.message_name = message_name
        self.missing = missing
        self.data = data


class SchemaIntegrityError(AssertionError):
    """A descriptor carries a kind outside the closed kind set."""


__all__ = [
    "EncodeError",
    "UnsupportedSchemaError",
    "WriterError",
    "RecursionDepthError",
    "IncompleteMessageError",
    "SchemaIntegrityError",
]
