import csv
from datetime import date
from decimal import Decimal
from io import StringIO

import pytest

from budget_engine.errors import ConfigurationError, EmptyResultError
from budget_engine.ingest.presets import BANK_PRESETS, find_header, resolve_preset
from budget_engine.ingest.tabular import decode_csv, split_rows
from budget_engine.models import ColumnMapping, Direction

from conftest import dedent

GENERIC = BANK_PRESETS["generic"]


def test_starbucks_statement_with_generic_preset():
    text = "Date,Description,Amount\n01/15/2024,STARBUCKS #4471,5.75\n01/16/2024,STARBUCKS #4471,5.75"

    report = decode_csv(text, GENERIC)

    assert len(report.candidates) == 2
    assert report.skipped == ()
    first, second = report.candidates
    assert first.date == date(2024, 1, 15)
    assert second.date == date(2024, 1, 16)
    for c in report.candidates:
        assert c.merchant == "STARBUCKS"
        assert c.description == "STARBUCKS #4471"
        assert c.amount == Decimal("5.75")
        assert c.direction is Direction.OUTFLOW
        assert c.raw_amount == "5.75"


def test_quoted_fields_keep_commas():
    text = dedent(
        """
        "Date","Description","Amount"
        01/15/2024,"ACME, INC PAYROLL","1,500.00"
        """
    )
    (c,) = decode_csv(text, GENERIC).candidates
    assert c.description == "ACME, INC PAYROLL"
    assert c.amount == Decimal("1500.00")
    assert c.direction is Direction.INFLOW


def test_incomplete_and_unparseable_rows_are_skipped():
    text = dedent(
        """
        Date,Description,Amount
        01/15/2024,COFFEE SHOP,5.75

        not-a-date,BOOKSTORE,12.00
        01/17/2024,,3.00
        01/18/2024,GAS STATION,abc
        01/19/2024,GROCERY OUTLET,45.10
        """
    )
    report = decode_csv(text, GENERIC)

    assert [c.description for c in report.candidates] == ["COFFEE SHOP", "GROCERY OUTLET"]
    assert [s.position for s in report.skipped] == [2, 3, 4]
    assert "not-a-date" in report.skipped[0].reason


def test_bofa_balance_and_signed_amounts():
    text = dedent(
        """
        Date,Description,Amount,Running Balance
        01/15/2024,GROCERY OUTLET,-45.10,"1,200.00"
        01/16/2024,BOOKSTORE,-12.00,n/a
        """
    )
    first, second = decode_csv(text, resolve_preset("bofa")).candidates
    assert first.amount == Decimal("45.10")
    assert first.raw_amount == "-45.10"
    assert first.balance == Decimal("1200.00")
    assert second.balance is None


def test_usaa_type_column_decides_direction():
    text = dedent(
        """
        Date,Description,Amount,Type
        2024-01-03,ZELLE FROM J DOE,200.00,Credit
        2024-01-04,HARDWARE STORE,30.00,Debit
        """
    )
    first, second = decode_csv(text, resolve_preset("USAA")).candidates
    assert first.direction is Direction.INFLOW
    assert first.raw_type == "Credit"
    assert second.direction is Direction.OUTFLOW


def test_header_lookup_tolerates_variants():
    headers = ["Transaction Date", "Posting Date", "Description", "Amount"]
    assert find_header(headers, "posting date") == 1
    assert find_header(headers, "Date") == 0
    assert find_header(["Amt", "Memo"], "Description") is None
    chase = resolve_preset("chase")
    text = "Transaction Date,Posting Date,Description,Amount\n01/14/2024,01/15/2024,SHELL OIL 57444,40.00"
    (c,) = decode_csv(text, chase).candidates
    assert c.date == date(2024, 1, 15)
    assert c.merchant == "SHELL OIL"


def test_unresolved_columns_are_a_configuration_error():
    with pytest.raises(ConfigurationError) as exc_info:
        decode_csv("Date,Description,Value\n01/15/2024,COFFEE,5.75", GENERIC)
    assert "amount" in str(exc_info.value)


def test_unknown_preset_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        resolve_preset("first national")


@pytest.mark.parametrize("text", ["", "   \n\n", "Date,Description,Amount\n"])
def test_no_data_rows_is_empty_result(text):
    with pytest.raises(EmptyResultError):
        decode_csv(text, GENERIC)


def test_all_rows_skipped_is_empty_result():
    with pytest.raises(EmptyResultError) as exc_info:
        decode_csv("Date,Description,Amount\nbad,COFFEE,5.75", GENERIC)
    assert "bank preset" in str(exc_info.value)


def test_split_rows_drops_blank_lines_and_trims():
    assert split_rows(' a ,"b, c" \n\n,,\nd,e') == [["a", "b, c"], ["d", "e"]]


def test_rendered_rows_decode_back():
    rows = [
        ("01/15/2024", "COFFEE SHOP", "5.75"),
        ("01/16/2024", 'BOOKSTORE "DOWNTOWN", INC', "1,250.00"),
        ("01/17/2024", "FARMERS MARKET", "18.20"),
    ]
    buf = StringIO()
    writer = csv.writer(buf)
    writer.writerow(["date", "description", "amount"])
    writer.writerows(rows)

    mapping = ColumnMapping("date", "description", "amount")
    decoded = decode_csv(buf.getvalue(), mapping).candidates

    assert [(c.description, c.amount) for c in decoded] == [
        ("COFFEE SHOP", Decimal("5.75")),
        ('BOOKSTORE "DOWNTOWN", INC', Decimal("1250.00")),
        ("FARMERS MARKET", Decimal("18.20")),
    ]
