# ruff: noqa: I001
"""CLI for the ``budget_engine`` package.

This module exposes callable command handlers (``cmd_import_statement`` and
friends) and a Typer-based console interface over a JSON ledger file (see
:mod:`budget_engine.ledger_file`). Environment variables (notably
``BUDGET_ENGINE_LOG_LEVEL`` and ``BUDGET_ENGINE_PATTERNS_FILE``) are loaded
from a local ``.env`` using ``python-dotenv`` before any command runs.
Results are printed to stdout as JSON; errors go to stderr as a single
``Error: ...`` line with a non-zero exit code.
"""

from __future__ import annotations

import dataclasses
import json
import sys
from datetime import date
from decimal import Decimal
from enum import Enum
from pathlib import Path
from typing import Annotated, Any

import typer
from dotenv import load_dotenv
from pydantic import ValidationError
from typer.models import OptionInfo

from .errors import StatementError
from .logging_setup import configure_logging, get_logger

_logger = get_logger("budget_engine.cli")


# ---- Small module-level helpers used by CLI commands -------------------------


def _jsonable(value: Any) -> Any:
    """Convert engine records into JSON-ready structures."""

    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: _jsonable(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(k): _jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(v) for v in value]
    return value


def _emit(payload: Any) -> None:
    print(json.dumps(_jsonable(payload), indent=2))


def _load_ledger(ledger_path: str | None):
    """Load the ledger file, or an empty ledger when no path is given."""

    from .ledger_file import LedgerFile, load_ledger_file

    if ledger_path is None:
        return LedgerFile()
    return load_ledger_file(ledger_path)


def _ledger_or_error(ledger_path: str | None):
    try:
        return _load_ledger(ledger_path)
    except FileNotFoundError:
        print(f"Error: File not found: {ledger_path}", file=sys.stderr)
    except PermissionError:
        print(f"Error: Permission denied: {ledger_path}", file=sys.stderr)
    except UnicodeDecodeError as e:
        print(f"Error: Ledger file is not valid UTF-8 text: {ledger_path}: {e}", file=sys.stderr)
    except OSError as e:
        print(f"Error: Cannot read ledger file '{ledger_path}': {e.strerror or e}", file=sys.stderr)
    except ValidationError as e:
        print(f"Error: Invalid ledger file '{ledger_path}': {e}", file=sys.stderr)
    return None


# ---- Command handlers --------------------------------------------------------


def cmd_presets() -> int:
    """Print the built-in bank presets."""

    from .ingest import BANK_PRESETS

    _emit({name: mapping for name, mapping in sorted(BANK_PRESETS.items())})
    return 0


def cmd_import_statement(
    file_path: str,
    *,
    preset: str = "generic",
    ledger_path: str | None = None,
    source_format: str = "auto",
    plan: bool = False,
) -> int:
    """Decode a statement, reconcile it against the ledger and print the matches.

    With ``plan=True`` the default selection (every NEW match) is also run
    through the import planner and the proposed records and mapping table are
    included in the output.
    """

    from .ingest import Decoded, DecodeFailure, decode_statement
    from .reconcile import default_selection, plan_import, reconcile

    if source_format not in ("auto", "csv", "ofx"):
        print(f"Error: Unknown format: {source_format} (expected auto, csv or ofx)", file=sys.stderr)
        return 1

    try:
        text = Path(file_path).read_text(encoding="utf-8-sig")
    except FileNotFoundError:
        print(f"Error: File not found: {file_path}", file=sys.stderr)
        return 1
    except PermissionError:
        print(f"Error: Permission denied: {file_path}", file=sys.stderr)
        return 1
    except UnicodeDecodeError as e:
        print(f"Error: File is not valid UTF-8 text: {file_path}: {e}", file=sys.stderr)
        return 1

    ledger_file = _ledger_or_error(ledger_path)
    if ledger_file is None:
        return 1
    categories = ledger_file.domain_categories()
    ledger = ledger_file.domain_transactions()
    mappings = ledger_file.domain_mappings()

    match decode_statement(text, preset=preset, source_format=source_format):
        case DecodeFailure(error=err) if err.kind == "empty":
            print(f"Error: {err} Try a different bank preset.", file=sys.stderr)
            return 1
        case DecodeFailure(error=err):
            print(f"Error: Failed to decode statement ({err.kind}): {err}", file=sys.stderr)
            return 1
        case Decoded(candidates=candidates, skipped=skipped, format=fmt):
            pass

    try:
        matches = reconcile(candidates, ledger, categories, mappings=mappings)
    except StatementError as e:
        print(f"Error: reconciliation failed: {e}", file=sys.stderr)
        return 1

    payload: dict[str, Any] = {
        "format": fmt,
        "skipped": skipped,
        "matches": matches,
        "selected": default_selection(matches),
    }
    if plan:
        payload["plan"] = plan_import(
            matches,
            payload["selected"],
            categories=categories,
            ledger=ledger,
            mappings=mappings,
        )
    _emit(payload)
    return 0


def cmd_suggest_recurring(ledger_path: str) -> int:
    from .mining import detect_recurring

    ledger_file = _ledger_or_error(ledger_path)
    if ledger_file is None:
        return 1
    _emit(
        detect_recurring(
            ledger_file.domain_transactions(),
            ledger_file.domain_categories(),
            existing_names=ledger_file.bill_names(),
        )
    )
    return 0


def cmd_suggest_budgets(ledger_path: str, *, lookback_months: int = 3, as_of: str | None = None) -> int:
    from .mining import suggest_budgets

    as_of_date: date | None = None
    if as_of:
        try:
            as_of_date = date.fromisoformat(as_of)
        except ValueError:
            print(f"Error: Invalid --as-of date (expected YYYY-MM-DD): {as_of}", file=sys.stderr)
            return 1

    ledger_file = _ledger_or_error(ledger_path)
    if ledger_file is None:
        return 1
    _emit(
        suggest_budgets(
            ledger_file.domain_transactions(),
            ledger_file.domain_categories(),
            lookback_months=lookback_months,
            as_of=as_of_date,
        )
    )
    return 0


def cmd_suggest_mappings(ledger_path: str) -> int:
    from .mining import suggest_mappings

    ledger_file = _ledger_or_error(ledger_path)
    if ledger_file is None:
        return 1
    _emit(suggest_mappings(ledger_file.domain_transactions(), ledger_file.domain_mappings()))
    return 0


def _exit_with(code: int) -> None:
    if code:
        raise typer.Exit(code)


# ---- Typer-based console interface -------------------------------------------


app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help=(
        "Import bank statements into a JSON ledger and mine it for recurring "
        "bills, budget adjustments and merchant mappings."
    ),
)


# Module-level option objects to satisfy ruff B008 (no calls in parameter
# defaults). Typer inspects these when used as default values below.
FILE_OPTION: OptionInfo = typer.Option(
    ...,
    "--file",
    help="Path to a CSV or OFX/QFX/QBO statement export",
    dir_okay=False,
    file_okay=True,
    exists=False,  # the handler reports missing files itself
)
LEDGER_OPTION: OptionInfo = typer.Option(
    ...,
    "--ledger",
    help="Path to the JSON ledger file",
    dir_okay=False,
    file_okay=True,
    exists=False,
)
OPTIONAL_LEDGER_OPTION: OptionInfo = typer.Option(
    ...,
    "--ledger",
    help="Path to the JSON ledger file (omit to reconcile against an empty ledger)",
    dir_okay=False,
    file_okay=True,
    exists=False,
)


@app.command("presets")
def presets_cmd() -> None:
    """List the built-in bank column presets."""

    _exit_with(cmd_presets())


@app.command("import-statement")
def import_statement_cmd(
    file_path: Annotated[Path, FILE_OPTION],
    ledger_path: Annotated[Path | None, OPTIONAL_LEDGER_OPTION] = None,
    *,
    preset: str = typer.Option("generic", help="Bank preset for CSV files (see `presets`)."),
    source_format: str = typer.Option("auto", "--format", help="auto, csv or ofx."),
    plan: bool = typer.Option(False, help="Also print the import plan for the NEW matches."),
) -> None:
    """Decode a statement and reconcile it against the ledger."""

    _exit_with(
        cmd_import_statement(
            str(file_path),
            preset=preset,
            ledger_path=str(ledger_path) if ledger_path is not None else None,
            source_format=source_format,
            plan=plan,
        )
    )


@app.command("suggest-recurring")
def suggest_recurring_cmd(ledger_path: Annotated[Path, LEDGER_OPTION]) -> None:
    """Detect recurring bills and subscriptions in the ledger."""

    _exit_with(cmd_suggest_recurring(str(ledger_path)))


@app.command("suggest-budgets")
def suggest_budgets_cmd(
    ledger_path: Annotated[Path, LEDGER_OPTION],
    *,
    lookback_months: int = typer.Option(3, min=0, help="Months of history to consider."),
    as_of: str | None = typer.Option(None, help="Reference date (YYYY-MM-DD); defaults to the latest transaction."),
) -> None:
    """Propose budget adjustments from recent spending."""

    _exit_with(cmd_suggest_budgets(str(ledger_path), lookback_months=lookback_months, as_of=as_of))


@app.command("suggest-mappings")
def suggest_mappings_cmd(ledger_path: Annotated[Path, LEDGER_OPTION]) -> None:
    """Propose merchant → category mappings from consistent history."""

    _exit_with(cmd_suggest_mappings(str(ledger_path)))


@app.callback()
def _root() -> None:
    """Root command.

    Loads ``.env`` from the current working directory (without overriding any
    already-set environment variables) and configures logging.
    """

    # Load environment from .env in CWD (override=False to keep existing env)
    load_dotenv(dotenv_path=Path.cwd() / ".env", override=False)

    # Central logging setup so child loggers inherit configuration
    configure_logging()
    _logger.debug("budget-engine CLI starting")


if __name__ == "__main__":  # pragma: no cover
    # Running as a module: `python -m budget_engine.cli`
    app()
