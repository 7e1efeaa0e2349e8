"""Delimited-text (CSV) statement decoder.

Splitting follows the stdlib :mod:`csv` reader: double quotes delimit fields,
commas inside quotes are not separators, and cells are trimmed. The first
non-blank row is the header; columns are located through a
:class:`~budget_engine.models.ColumnMapping` (see
:mod:`budget_engine.ingest.presets`).

Individual rows that are incomplete or carry an unparseable date/amount are
skipped and reported in :attr:`DecodeReport.skipped`; they never fail the
whole file.
"""

from __future__ import annotations

import csv
from io import StringIO

from ..errors import EmptyResultError, FormatError
from ..logging_setup import get_logger, log_decode_report
from ..models import CandidateTransaction, ColumnMapping, DecodeReport, RawRow, SkippedRecord
from .fields import classify_direction, extract_merchant, parse_amount, parse_date, parse_signed_amount
from .presets import resolve_columns

_logger = get_logger("budget_engine.ingest.tabular")


def split_rows(text: str) -> list[RawRow]:
    """Split delimited text into trimmed cell lists, dropping blank lines."""

    rows: list[RawRow] = []
    with StringIO(text.strip()) as f:
        for row in csv.reader(f):
            cells = [cell.strip() for cell in row]
            if not cells or all(not c for c in cells):
                continue
            rows.append(cells)
    return rows


def _cell(row: RawRow, index: int | None) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index]


def decode_csv(text: str, mapping: ColumnMapping) -> DecodeReport:
    """Decode a delimited bank export into candidate transactions.

    Raises
    ------
    ConfigurationError
        The mapping does not resolve the date, description and amount headers.
    EmptyResultError
        The file has no data rows, or every data row was skipped.
    """

    try:
        rows = split_rows(text)
    except csv.Error as exc:
        raise FormatError(f"failed to split delimited text: {exc}") from exc
    if not rows:
        raise EmptyResultError("No rows found in the file.")

    header, data_rows = rows[0], rows[1:]
    columns = resolve_columns(header, mapping)

    candidates: list[CandidateTransaction] = []
    skipped: list[SkippedRecord] = []

    # Positions are 1-based data row numbers (the header is not counted).
    for position, row in enumerate(data_rows, start=1):
        date_str = _cell(row, columns["date"])
        description = _cell(row, columns["description"])
        amount_str = _cell(row, columns["amount"])

        if not date_str or not description or not amount_str:
            skipped.append(SkippedRecord(position, "missing date, description or amount"))
            continue

        try:
            tx_date = parse_date(date_str)
            amount = parse_amount(amount_str)
        except FormatError as exc:
            skipped.append(SkippedRecord(position, str(exc)))
            continue

        balance = None
        balance_str = _cell(row, columns["balance"])
        if balance_str:
            try:
                balance = parse_signed_amount(balance_str)
            except FormatError:
                balance = None

        raw_type = _cell(row, columns["type"]) or None
        merchant = extract_merchant(description)
        candidates.append(
            CandidateTransaction(
                date=tx_date,
                description=description,
                amount=amount,
                direction=classify_direction(description, merchant, amount_str, raw_type),
                merchant=merchant,
                raw_amount=amount_str,
                raw_type=raw_type,
                balance=balance,
            )
        )

    report = DecodeReport(candidates=tuple(candidates), skipped=tuple(skipped))
    log_decode_report(_logger, "delimited", report)

    if not candidates:
        raise EmptyResultError(
            "No transactions found. Check that the file has the columns "
            f"{mapping.date_column}, {mapping.description_column}, {mapping.amount_column} "
            "or try a different bank preset."
        )
    return report


__all__ = ["split_rows", "decode_csv"]
