"""Field normalization shared by the tabular and markup decoders.

Helpers here turn raw cell text into canonical values:

- ``parse_date``: detect one of the supported layouts, then convert.
- ``parse_signed_amount`` / ``parse_amount``: strip currency noise and return
  a ``Decimal`` (signed, or absolute).
- ``classify_direction``: inflow vs outflow from the type column, income
  keywords, and credit markers on the raw amount.
- ``extract_merchant``: strip bank boilerplate from a free-text description.

Every parse failure raises :class:`~budget_engine.errors.FormatError` naming
the offending string. Unparseable dates are never replaced with "today".
"""

from __future__ import annotations

import re
from datetime import date
from decimal import Decimal, InvalidOperation

from ..errors import FormatError
from ..models import Direction

# ---------------------------------------------------------------------------
# Dates
# ---------------------------------------------------------------------------

# Order matters: the first matching layout wins.
_DATE_LAYOUTS: dict[str, re.Pattern[str]] = {
    "MM/DD/YYYY": re.compile(r"^(?P<m>\d{1,2})/(?P<d>\d{1,2})/(?P<y>\d{4})$"),
    "YYYY-MM-DD": re.compile(r"^(?P<y>\d{4})-(?P<m>\d{1,2})-(?P<d>\d{1,2})$"),
    "MM-DD-YYYY": re.compile(r"^(?P<m>\d{1,2})-(?P<d>\d{1,2})-(?P<y>\d{4})$"),
    "MM/DD/YY": re.compile(r"^(?P<m>\d{1,2})/(?P<d>\d{1,2})/(?P<y>\d{2})$"),
}


def detect_date_format(value: str) -> str | None:
    """Return the layout name for ``value`` or ``None`` when unrecognized."""

    s = value.strip()
    for name, pattern in _DATE_LAYOUTS.items():
        if pattern.match(s):
            return name
    return None


def parse_date(value: str) -> date:
    """Parse a statement date string into a ``date``.

    Accepts ``MM/DD/YYYY``, ``YYYY-MM-DD``, ``MM-DD-YYYY`` and ``MM/DD/YY``
    (two-digit years are taken as 20YY). A trailing time component separated
    by whitespace or ``T`` is ignored.
    """

    s = (value or "").strip()
    if not s:
        raise FormatError("date is empty", snippet=value)
    first = s.split()[0].split("T", 1)[0]
    layout = detect_date_format(first)
    if layout is None:
        raise FormatError(f"unrecognized date format: {value!r}", snippet=value)
    m = _DATE_LAYOUTS[layout].match(first)
    year = int(m.group("y"))
    if year < 100:
        year += 2000
    try:
        return date(year, int(m.group("m")), int(m.group("d")))
    except ValueError as exc:
        raise FormatError(f"invalid date: {value!r}", snippet=value) from exc


# ---------------------------------------------------------------------------
# Amounts
# ---------------------------------------------------------------------------

_CURRENCY_RE = re.compile(r"[$€£¥]")
_MARKER_RE = re.compile(r"(?<![A-Za-z])(CR|DR)\.?\s*$", re.IGNORECASE)


def parse_signed_amount(raw: str | None) -> Decimal:
    """Parse an amount string, keeping its sign.

    Handles currency symbols, thousands separators, surrounding parentheses,
    leading or trailing minus signs and trailing ``CR``/``DR`` markers.
    """

    if raw is None:
        raise FormatError("amount is required")
    s = raw.strip()
    if not s:
        raise FormatError("amount is empty", snippet=raw)

    s = _MARKER_RE.sub("", s)
    s = _CURRENCY_RE.sub("", s)
    s = re.sub(r"[,\s]", "", s)

    negative = False
    # Strip sign and parentheses markers in any order until stable.
    while True:
        changed = False
        if s.startswith("+"):
            s = s[1:]
            changed = True
        elif s.startswith("-"):
            negative = True
            s = s[1:]
            changed = True
        if s.endswith("-"):
            negative = True
            s = s[:-1]
            changed = True
        if len(s) >= 2 and s.startswith("(") and s.endswith(")"):
            negative = True
            s = s[1:-1]
            changed = True
        if not changed:
            break

    try:
        d = Decimal(s)
    except InvalidOperation as exc:
        raise FormatError(f"invalid amount: {raw!r}", snippet=raw) from exc
    if not d.is_finite():
        raise FormatError(f"invalid amount: {raw!r}", snippet=raw)
    return -abs(d) if negative else d


def parse_amount(raw: str | None) -> Decimal:
    """Parse an amount string and return its absolute value."""

    return abs(parse_signed_amount(raw))


# ---------------------------------------------------------------------------
# Direction
# ---------------------------------------------------------------------------

INCOME_KEYWORDS: tuple[str, ...] = (
    "salary",
    "paycheck",
    "direct deposit",
    "payment received",
    "deposit",
    "wages",
    "payroll",
    "bonus",
    "commission",
    "reimbursement",
    "refund",
    "tax refund",
    "dividend",
    "interest income",
    "transfer from",
    "ach credit",
    "mobile deposit",
    "check deposit",
    "income",
)

_INFLOW_TYPE_VALUES = frozenset({"credit", "cr", "deposit", "dep", "income"})
_OUTFLOW_TYPE_VALUES = frozenset({"debit", "dr", "withdrawal", "payment", "purchase"})


def classify_direction(
    description: str,
    merchant: str | None = None,
    raw_amount: str | None = None,
    raw_type: str | None = None,
) -> Direction:
    """Classify a delimited-export row as inflow or outflow.

    A recognizable type column value decides first. Otherwise income keywords
    in the description/merchant, or a credit marker on the raw amount, make the
    row an inflow. Everything else is an outflow; the sign of the amount is not
    used because banks disagree on sign conventions.
    """

    if raw_type:
        t = raw_type.strip().lower()
        if t in _INFLOW_TYPE_VALUES:
            return Direction.INFLOW
        if t in _OUTFLOW_TYPE_VALUES:
            return Direction.OUTFLOW

    desc = description.lower()
    merch = (merchant or "").lower()
    if any(k in desc or k in merch for k in INCOME_KEYWORDS):
        return Direction.INFLOW

    if raw_amount:
        clean = raw_amount.strip().lower()
        if "credit" in clean or re.search(r"(?<![a-z])cr\b", clean):
            return Direction.INFLOW

    return Direction.OUTFLOW


# ---------------------------------------------------------------------------
# Merchant extraction
# ---------------------------------------------------------------------------

MERCHANT_MAX_LEN = 50

_BOILERPLATE_PREFIXES: tuple[re.Pattern[str], ...] = (
    re.compile(r"^PURCHASE AUTHORIZED ON \d{2}/\d{2}\s+", re.IGNORECASE),
    re.compile(r"^POS PURCHASE -\s+", re.IGNORECASE),
    re.compile(r"^DEBIT CARD PURCHASE -\s+", re.IGNORECASE),
    re.compile(r"^ACH\s+", re.IGNORECASE),
)
_TRAILING_REFERENCE = re.compile(r"\s+#\d+.*$")
_TRAILING_DIGITS = re.compile(r"\s+\d{4,}.*$")


def extract_merchant(description: str) -> str:
    """Return a merchant token from a raw description.

    Strips known boilerplate prefixes and trailing reference numbers, then caps
    the length. When stripping leaves nothing the trimmed description is used
    instead, so a non-empty description never yields an empty merchant.
    """

    original = " ".join((description or "").split())
    merchant = original
    for prefix in _BOILERPLATE_PREFIXES:
        merchant = prefix.sub("", merchant)
    merchant = _TRAILING_REFERENCE.sub("", merchant)
    merchant = _TRAILING_DIGITS.sub("", merchant)
    merchant = merchant.strip()
    if not merchant:
        merchant = original
    return merchant[:MERCHANT_MAX_LEN].strip()


__all__ = [
    "INCOME_KEYWORDS",
    "MERCHANT_MAX_LEN",
    "detect_date_format",
    "parse_date",
    "parse_signed_amount",
    "parse_amount",
    "classify_direction",
    "extract_merchant",
]
