import json

import pytest
from typer.testing import CliRunner

from budget_engine.cli import app

from conftest import dedent

runner = CliRunner()

LEDGER = {
    "categories": [
        {"id": "c-dining", "name": "Dining", "type": "spending", "budget": "200"},
        {"id": "c-ent", "name": "Entertainment", "budget": "50"},
        {"id": "c-income", "name": "Salary", "type": "INCOME"},
        {"id": "c-misc", "name": "Uncategorized"},
    ],
    "transactions": [
        {"date": "2024-01-15", "description": "coffee shop", "amount": "5.75", "category_id": "c-dining"},
        {"date": "2024-01-01", "description": "NETFLIX.COM", "amount": "15.49", "category_id": "c-ent", "merchant": "Netflix"},
        {"date": "2024-02-01", "description": "NETFLIX.COM", "amount": "15.49", "category_id": "c-ent", "merchant": "Netflix"},
        {"date": "2024-03-01", "description": "NETFLIX.COM", "amount": "15.49", "category_id": "c-ent", "merchant": "Netflix"},
        {"date": "2024-03-02", "description": "BISTRO", "amount": "400", "category_id": "c-dining"},
    ],
    "mappings": [{"merchant": "starbucks", "category_id": "c-dining", "confidence": 0.8, "times_used": 2}],
    "bills": [],
}


@pytest.fixture
def ledger_path(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps(LEDGER), encoding="utf-8")
    return path


@pytest.fixture
def statement_path(tmp_path):
    path = tmp_path / "statement.csv"
    path.write_text(
        dedent(
            """
            Date,Description,Amount
            01/15/2024,Coffee Shop,5.75
            01/16/2024,STARBUCKS #4471,5.75
            """
        ),
        encoding="utf-8",
    )
    return path


def test_presets():
    result = runner.invoke(app, ["presets"])
    assert result.exit_code == 0
    payload = json.loads(result.stdout)
    assert payload["chase"]["date_column"] == "Posting Date"
    assert payload["usaa"]["type_column"] == "Type"


def test_import_statement(statement_path, ledger_path):
    result = runner.invoke(
        app, ["import-statement", "--file", str(statement_path), "--ledger", str(ledger_path), "--plan"]
    )
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)

    assert payload["format"] == "csv"
    assert [m["status"] for m in payload["matches"]] == ["DUPLICATE", "NEW"]
    assert payload["matches"][1]["suggested_category_id"] == "c-dining"
    assert payload["matches"][1]["candidate"]["amount"] == "5.75"
    assert payload["selected"] == [1]
    (record,) = payload["plan"]["records"]
    assert record["category_id"] == "c-dining"
    assert record["date"] == "2024-01-16"
    assert payload["plan"]["mappings"][0]["times_used"] == 3


def test_import_statement_without_ledger(statement_path):
    result = runner.invoke(app, ["import-statement", "--file", str(statement_path)])
    assert result.exit_code == 0, result.output
    payload = json.loads(result.stdout)
    assert [m["status"] for m in payload["matches"]] == ["NEW", "NEW"]


def test_import_statement_reports_decode_failures(tmp_path, ledger_path):
    path = tmp_path / "statement.csv"
    path.write_text("Date,Description,Amount\n", encoding="utf-8")
    result = runner.invoke(app, ["import-statement", "--file", str(path), "--ledger", str(ledger_path)])
    assert result.exit_code == 1
    assert "Error:" in result.output
    assert "bank preset" in result.output


def test_missing_files_are_reported(tmp_path, ledger_path):
    result = runner.invoke(app, ["import-statement", "--file", str(tmp_path / "nope.csv")])
    assert result.exit_code == 1
    assert "File not found" in result.output

    result = runner.invoke(app, ["suggest-recurring", "--ledger", str(tmp_path / "nope.json")])
    assert result.exit_code == 1
    assert "File not found" in result.output


def test_invalid_ledger_is_reported(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps({"transactions": [{"date": "yesterday"}]}), encoding="utf-8")
    result = runner.invoke(app, ["suggest-mappings", "--ledger", str(path)])
    assert result.exit_code == 1
    assert "Invalid ledger file" in result.output


def test_suggest_recurring(ledger_path):
    result = runner.invoke(app, ["suggest-recurring", "--ledger", str(ledger_path)])
    assert result.exit_code == 0, result.output
    (series,) = json.loads(result.stdout)
    assert series["merchant"] == "Netflix"
    assert series["frequency"] == "monthly"
    assert series["kind"] == "subscription"
    assert series["next_due_date"] == "2024-04-01"


def test_suggest_budgets(ledger_path):
    result = runner.invoke(
        app, ["suggest-budgets", "--ledger", str(ledger_path), "--lookback-months", "0", "--as-of", "2024-03-31"]
    )
    assert result.exit_code == 0, result.output
    (s,) = json.loads(result.stdout)
    assert s["category_id"] == "c-dining"
    assert s["suggested_limit"] == "440"


def test_suggest_budgets_rejects_bad_date(ledger_path):
    result = runner.invoke(app, ["suggest-budgets", "--ledger", str(ledger_path), "--as-of", "03/31/2024"])
    assert result.exit_code == 1
    assert "--as-of" in result.output


def test_suggest_mappings(ledger_path):
    result = runner.invoke(app, ["suggest-mappings", "--ledger", str(ledger_path)])
    assert result.exit_code == 0, result.output
    (s,) = json.loads(result.stdout)
    assert s["merchant"] == "Netflix"
    assert s["category_id"] == "c-ent"


def test_unreadable_ledgers_are_reported(tmp_path, capsys):
    from budget_engine.cli import cmd_suggest_mappings

    assert cmd_suggest_mappings(str(tmp_path)) == 1
    err = capsys.readouterr().err
    assert err.startswith("Error: ")
    assert "Traceback" not in err

    path = tmp_path / "ledger.json"
    path.write_bytes(b'{"categories": [{"id": "c1", "name": "Caf\xe9"}]}')
    result = runner.invoke(app, ["suggest-mappings", "--ledger", str(path)])
    assert result.exit_code == 1
    assert "not valid UTF-8" in result.output
