"""Column-name presets for common bank CSV exports.

Presets are plain configuration data; :func:`resolve_preset` turns a preset
name (case/spacing-insensitive) into its :class:`ColumnMapping` and
:func:`resolve_columns` finds the actual header for each mapped column.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from types import MappingProxyType

from ..errors import ConfigurationError
from ..models import ColumnMapping

BANK_PRESETS: Mapping[str, ColumnMapping] = MappingProxyType(
    {
        "chase": ColumnMapping(
            date_column="Posting Date",
            description_column="Description",
            amount_column="Amount",
        ),
        "bofa": ColumnMapping(
            date_column="Date",
            description_column="Description",
            amount_column="Amount",
            balance_column="Running Balance",
        ),
        "wells": ColumnMapping(
            date_column="Date",
            description_column="Description",
            amount_column="Amount",
        ),
        "usaa": ColumnMapping(
            date_column="Date",
            description_column="Description",
            amount_column="Amount",
            type_column="Type",
        ),
        "generic": ColumnMapping(
            date_column="date",
            description_column="description",
            amount_column="amount",
        ),
    }
)


def resolve_preset(name: str) -> ColumnMapping:
    """Return the preset registered under ``name``.

    Raises :class:`ConfigurationError` listing the known presets when the name
    is unknown.
    """

    key = name.strip().lower().replace(" ", "_")
    try:
        return BANK_PRESETS[key]
    except KeyError:
        raise ConfigurationError(
            f"Unknown bank preset: {name!r}. Known presets: {', '.join(sorted(BANK_PRESETS))}"
        ) from None


def find_header(headers: Sequence[str], column_name: str) -> int | None:
    """Return the index of the header matching ``column_name``.

    Case-insensitive; tries an exact match, then a header containing the name,
    then the name containing a header.
    """

    term = column_name.strip().lower()
    if not term:
        return None
    lowered = [h.strip().lower() for h in headers]
    for i, h in enumerate(lowered):
        if h == term:
            return i
    for i, h in enumerate(lowered):
        if h and term in h:
            return i
    for i, h in enumerate(lowered):
        if h and h in term:
            return i
    return None


def resolve_columns(headers: Sequence[str], mapping: ColumnMapping) -> dict[str, int | None]:
    """Map each logical column (``date``, ``description``, ...) to a header index.

    Required columns that cannot be found raise :class:`ConfigurationError`;
    optional ones resolve to ``None``.
    """

    resolved: dict[str, int | None] = {
        "date": find_header(headers, mapping.date_column),
        "description": find_header(headers, mapping.description_column),
        "amount": find_header(headers, mapping.amount_column),
        "balance": find_header(headers, mapping.balance_column) if mapping.balance_column else None,
        "type": find_header(headers, mapping.type_column) if mapping.type_column else None,
    }
    wanted = {
        "date": mapping.date_column,
        "description": mapping.description_column,
        "amount": mapping.amount_column,
    }
    missing = [f"{key}={name!r}" for key, name in wanted.items() if resolved[key] is None]
    if missing:
        raise ConfigurationError(
            "Column mapping does not match the file header. Missing columns: "
            + ", ".join(missing)
            + f" (header: {', '.join(headers)})"
        )
    return resolved


__all__ = ["BANK_PRESETS", "resolve_preset", "find_header", "resolve_columns"]
