"""Statement ingestion: format sniffing, decoding, and a typed result.

:func:`decode_statement` is the entry point used by hosts. It never raises
the decoder errors; instead it returns either :class:`Decoded` or
:class:`DecodeFailure`, so callers must handle each outcome explicitly::

    match decode_statement(text, preset="chase"):
        case Decoded(candidates=rows):
            ...
        case DecodeFailure(kind="empty"):
            ...  # suggest a different bank preset
        case DecodeFailure(error=err):
            ...  # file is unreadable

The lower-level :func:`decode_csv` and :func:`decode_ofx` raise the typed
exceptions from :mod:`budget_engine.errors` directly.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from ..errors import ConfigurationError, EmptyResultError, FormatError, StatementError
from ..logging_setup import get_logger
from ..models import CandidateTransaction, ColumnMapping, SkippedRecord
from .markup import decode_ofx, is_markup
from .presets import BANK_PRESETS, resolve_preset
from .tabular import decode_csv

_logger = get_logger("budget_engine.ingest")

type StatementFormat = Literal["auto", "csv", "ofx"]


@dataclass(frozen=True, slots=True)
class Decoded:
    candidates: tuple[CandidateTransaction, ...]
    skipped: tuple[SkippedRecord, ...]
    format: Literal["csv", "ofx"]


@dataclass(frozen=True, slots=True)
class DecodeFailure:
    error: StatementError

    @property
    def kind(self) -> str:
        """``"configuration"``, ``"format"`` or ``"empty"``."""

        return self.error.kind

    @property
    def message(self) -> str:
        return str(self.error)


type DecodeResult = Decoded | DecodeFailure


def decode_statement(
    text: str,
    *,
    preset: str | ColumnMapping = "generic",
    source_format: StatementFormat = "auto",
) -> DecodeResult:
    """Decode one uploaded statement file.

    ``preset`` names a bank preset (or is a ready :class:`ColumnMapping`) and
    only applies to delimited input. ``source_format="auto"`` sniffs OFX markup and
    otherwise treats the text as CSV.
    """

    fmt: Literal["csv", "ofx"]
    if source_format == "auto":
        fmt = "ofx" if is_markup(text) else "csv"
    else:
        fmt = source_format

    try:
        if fmt == "ofx":
            report = decode_ofx(text)
        else:
            mapping = preset if isinstance(preset, ColumnMapping) else resolve_preset(preset)
            report = decode_csv(text, mapping)
    except StatementError as exc:
        _logger.info("statement decode failed (%s): %s", exc.kind, exc)
        return DecodeFailure(error=exc)

    return Decoded(candidates=report.candidates, skipped=report.skipped, format=fmt)


__all__ = [
    "BANK_PRESETS",
    "ConfigurationError",
    "Decoded",
    "DecodeFailure",
    "DecodeResult",
    "EmptyResultError",
    "FormatError",
    "StatementFormat",
    "decode_csv",
    "decode_ofx",
    "decode_statement",
    "is_markup",
    "resolve_preset",
]
