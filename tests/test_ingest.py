import pytest

from budget_engine import BANK_PRESETS, ColumnMapping, Decoded, DecodeFailure, decode_statement
from budget_engine.errors import ConfigurationError, EmptyResultError, FormatError

from test_markup import SGML_STATEMENT

CSV_TEXT = "Date,Description,Amount\n01/15/2024,STARBUCKS #4471,5.75\nbad,OOPS,1.00"


def describe(result) -> str:
    match result:
        case Decoded(candidates=rows, format=fmt):
            return f"{fmt}:{len(rows)}"
        case DecodeFailure(kind="empty"):
            return "empty"
        case DecodeFailure(kind=kind):
            return f"failed:{kind}"
    raise AssertionError(result)


def test_csv_is_decoded_with_skips():
    result = decode_statement(CSV_TEXT)
    assert isinstance(result, Decoded)
    assert result.format == "csv"
    assert len(result.candidates) == 1
    assert [s.position for s in result.skipped] == [2]


def test_markup_is_sniffed():
    assert describe(decode_statement(SGML_STATEMENT)) == "ofx:3"


def test_explicit_mapping_object():
    mapping = ColumnMapping("when", "what", "how much")
    text = "When,What,How Much\n2024-01-15,COFFEE,5.75"
    assert describe(decode_statement(text, preset=mapping)) == "csv:1"


@pytest.mark.parametrize(
    "text, kwargs, kind, error_type",
    [
        (CSV_TEXT, {"preset": "no-such-bank"}, "configuration", ConfigurationError),
        ("Date,Memo,Value\n01/15/2024,COFFEE,5.75", {}, "configuration", ConfigurationError),
        ("Date,Description,Amount\n", {}, "empty", EmptyResultError),
        ("Date,Description,Amount\n01/15/2024,COFFEE,5.75", {"source_format": "ofx"}, "format", FormatError),
    ],
)
def test_failures_are_returned_not_raised(text, kwargs, kind, error_type):
    result = decode_statement(text, **kwargs)
    assert isinstance(result, DecodeFailure)
    assert result.kind == kind
    assert isinstance(result.error, error_type)
    assert result.message


def test_presets_are_read_only():
    assert set(BANK_PRESETS) == {"chase", "bofa", "wells", "usaa", "generic"}
    with pytest.raises(TypeError):
        BANK_PRESETS["mine"] = BANK_PRESETS["generic"]
