"""OFX/QFX/QBO statement decoder.

Bank markup exports frequently use the SGML dialect of OFX, where leaf
elements have no closing tag::

    <STMTTRN>
    <TRNTYPE>DEBIT
    <DTPOSTED>20240115120000
    <TRNAMT>-5.75
    </STMTTRN>

:func:`close_leaf_tags` rewrites that dialect into well-formed XML in a
single stack-based pass so :mod:`xml.etree.ElementTree` can load it; a
document whose tags are all explicitly closed passes through unchanged.
:func:`decode_ofx` then extracts one candidate per ``STMTTRN`` (or
``TRANSACTION``) element.
"""

from __future__ import annotations

import re
import xml.etree.ElementTree as ET
from datetime import date
from decimal import Decimal

from ..errors import EmptyResultError, FormatError
from ..logging_setup import get_logger, log_decode_report
from ..models import CandidateTransaction, DecodeReport, Direction, SkippedRecord
from .fields import extract_merchant, parse_signed_amount

_logger = get_logger("budget_engine.ingest.markup")

ROOT_TAG = "OFX"
TRANSACTION_TAGS: tuple[str, ...] = ("STMTTRN", "TRANSACTION")
INFLOW_TYPE_CODES = frozenset({"CREDIT", "DEP", "INT", "DIV", "DIRECTDEP", "REPEATPMT"})

_TAG_RE = re.compile(r"<(/?)([A-Za-z0-9_.]+)>")
_CLOSER_RE = re.compile(r"</([A-Za-z0-9_.]+)>")
_BARE_AMP_RE = re.compile(r"&(?!(?:amp|lt|gt|apos|quot|#\d+|#x[0-9A-Fa-f]+);)")
_OFX_DATE_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})")


def is_markup(text: str) -> bool:
    """Return True when ``text`` looks like an OFX/QFX/QBO export."""

    head = text.lstrip()[:4096]
    return "<OFX>" in text or "OFXHEADER:" in head or "DATA:OFXSGML" in head


def locate_payload(text: str) -> str:
    """Return the document from the ``<OFX>`` root marker onward."""

    start = text.find(f"<{ROOT_TAG}>")
    if start == -1:
        raise FormatError("Invalid OFX file: missing <OFX> tag", snippet=text.strip()[:120] or None)
    return text[start:].strip()


def _escape_amp(text: str) -> str:
    return _BARE_AMP_RE.sub("&amp;", text)


def close_leaf_tags(payload: str) -> str:
    """Synthesize the closing tags the SGML dialect leaves out.

    Tags that are explicitly closed somewhere in the document are containers;
    an opening tag followed by a value is a leaf and gets ``</TAG>`` appended
    in place unless its own closer follows immediately. A valueless opening
    tag is pushed onto the container stack. A closing tag implicitly closes any
    containers opened after its partner; whatever is still open at the end is
    closed in stack order.
    """

    closed = set(_CLOSER_RE.findall(payload))
    matches = list(_TAG_RE.finditer(payload))
    if all(m.group(1) or m.group(2) in closed for m in matches):
        return _escape_amp(payload)

    out: list[str] = []
    stack: list[str] = []
    for i, m in enumerate(matches):
        is_closer = m.group(1) == "/"
        name = m.group(2)
        nxt = matches[i + 1] if i + 1 < len(matches) else None
        value = payload[m.end() : nxt.start() if nxt else len(payload)].strip()

        if is_closer:
            if name in stack:
                while stack:
                    top = stack.pop()
                    if top == name:
                        break
                    out.append(f"</{top}>")
            out.append(f"</{name}>")
            if value:
                out.append(_escape_amp(value))
            continue

        explicitly_closed = nxt is not None and nxt.group(1) == "/" and nxt.group(2) == name
        if value and not explicitly_closed:
            out.append(f"<{name}>{_escape_amp(value)}</{name}>")
        else:
            out.append(f"<{name}>{_escape_amp(value)}")
            stack.append(name)

    while stack:
        out.append(f"</{stack.pop()}>")
    return "\n".join(out)


def _parse_tree(xml_text: str) -> ET.Element:
    try:
        return ET.fromstring(xml_text)
    except ET.ParseError as exc:
        line_no, _col = exc.position
        lines = xml_text.splitlines()
        around = lines[max(0, line_no - 3) : line_no + 2]
        raise FormatError(f"XML parsing failed: {exc}", snippet="\n".join(around)) from exc


def _child_text(parent: ET.Element, tag: str) -> str | None:
    for el in parent.iter(tag):
        if el is parent:
            continue
        text = (el.text or "").strip()
        return text or None
    return None


def _parse_ofx_date(value: str) -> date:
    m = _OFX_DATE_RE.match(value.strip())
    if not m:
        raise FormatError(f"invalid OFX date: {value!r}", snippet=value)
    try:
        return date(int(m.group(1)), int(m.group(2)), int(m.group(3)))
    except ValueError as exc:
        raise FormatError(f"invalid OFX date: {value!r}", snippet=value) from exc


def _direction(type_code: str | None, signed_amount: Decimal) -> Direction:
    if type_code:
        return Direction.INFLOW if type_code.upper() in INFLOW_TYPE_CODES else Direction.OUTFLOW
    return Direction.INFLOW if signed_amount >= 0 else Direction.OUTFLOW


def decode_ofx(text: str) -> DecodeReport:
    """Decode an OFX/QFX/QBO document into candidate transactions.

    Raises
    ------
    FormatError
        No ``<OFX>`` root, the repaired document still fails to parse, or no
        transaction elements exist under either known name.
    EmptyResultError
        Transaction elements exist but every one was skipped.
    """

    payload = locate_payload(text)
    root = _parse_tree(close_leaf_tags(payload))

    elements: list[ET.Element] = []
    for tag in TRANSACTION_TAGS:
        elements = list(root.iter(tag))
        if elements:
            break
    if not elements:
        raise FormatError(
            "No transaction elements found. The file may not contain transaction data "
            "in the expected format.",
            snippet=payload[:200],
        )

    candidates: list[CandidateTransaction] = []
    skipped: list[SkippedRecord] = []
    for position, txn in enumerate(elements, start=1):
        type_code = _child_text(txn, "TRNTYPE")
        posted = _child_text(txn, "DTPOSTED")
        raw_amount = _child_text(txn, "TRNAMT")
        fit_id = _child_text(txn, "FITID")
        name = _child_text(txn, "NAME")
        memo = _child_text(txn, "MEMO")
        check_number = _child_text(txn, "CHECKNUM")

        if not posted or not raw_amount or not fit_id:
            skipped.append(SkippedRecord(position, "missing DTPOSTED, TRNAMT or FITID"))
            continue
        try:
            posted_date = _parse_ofx_date(posted)
            signed = parse_signed_amount(raw_amount)
        except FormatError as exc:
            skipped.append(SkippedRecord(position, str(exc)))
            continue

        description = name or memo or "Transaction"
        if check_number:
            description = f"Check #{check_number} - {description}"

        candidates.append(
            CandidateTransaction(
                date=posted_date,
                description=description.strip(),
                amount=abs(signed),
                direction=_direction(type_code, signed),
                merchant=extract_merchant(name) if name else None,
                raw_amount=raw_amount,
                raw_type=type_code,
                external_id=fit_id,
                check_number=check_number,
            )
        )

    report = DecodeReport(candidates=tuple(candidates), skipped=tuple(skipped))
    log_decode_report(_logger, "ofx", report)

    if not candidates:
        raise EmptyResultError("No complete transactions found in the OFX file.")
    return report


__all__ = [
    "INFLOW_TYPE_CODES",
    "is_markup",
    "locate_payload",
    "close_leaf_tags",
    "decode_ofx",
]
