"""Error kinds raised by the statement decoders.

All three are recoverable at the caller's boundary: a different bank preset or
a different file may succeed. ``decode_statement`` converts them into a typed
result instead of raising; the lower-level decoders raise them directly.
"""

from __future__ import annotations


class StatementError(Exception):
    """Base class for batch-fatal statement decoding failures."""

    kind: str = "statement"


class ConfigurationError(StatementError):
    """Column mapping or preset does not fit the file (or does not exist)."""

    kind = "configuration"


class FormatError(StatementError, ValueError):
    """Unparseable value or malformed document.

    ``snippet`` holds the offending text when one can be pointed at.
    """

    kind = "format"

    def __init__(self, message: str, *, snippet: str | None = None) -> None:
        super().__init__(message)
        self.snippet = snippet


class EmptyResultError(StatementError):
    """Input was readable but produced zero transactions."""

    kind = "empty"


__all__ = [
    "StatementError",
    "ConfigurationError",
    "FormatError",
    "EmptyResultError",
]
