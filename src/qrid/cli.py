"""CLI entry point for qrid."""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path

import typer
from openpyxl.utils import get_column_letter
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table as RichTable

from qrid import DEFAULT_BASE_URL, HEADER_LOOKAHEAD_ROWS, __version__
from qrid.codec import build_locators, decode_locator, encode
from qrid.io import SheetRef, load_grid, write_json
from qrid.models import LocatorItem, NoData, RunManifest, SheetReport
from qrid.pipeline import process_grid
from qrid.records import build_manual_record
from qrid.report import write_locator_workbook
from qrid.sentinels import (
    DEFAULT_SENTINELS,
    SentinelTable,
    load_sentinel_profile,
    parse_sentinel,
)
from qrid.utils import plural, sha256_file, utcnow_iso

app = typer.Typer(
    name="qrid",
    help="qrid: turn spreadsheet rows into self-describing viewer links.",
    add_completion=False,
    no_args_is_help=True,
)
console = Console()

BASE_URL_ENVVAR = "QRID_BASE_URL"


def _noop(*_args: object, **_kwargs: object) -> None:
    return None


def _printer(quiet: bool) -> Callable[..., None]:
    return _noop if quiet else console.print


def _err(msg: str) -> None:
    console.print(f"[red]x[/red] {escape(msg)}")


# ── Helpers ──────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"qrid v{__version__}")
        raise typer.Exit()


def _parse_sheet(raw: str | None) -> SheetRef:
    """``--sheet 2`` selects by position, anything else by name."""
    if raw is None or raw == "":
        return None
    return int(raw) if raw.isdigit() else raw


def _parse_delimiter(raw: str | None) -> str | None:
    if raw is None or raw == "":
        return None
    return "\t" if raw.lower() in ("tab", "\\t") else raw


def _build_sentinels(
    raw: list[str] | None, profile: Path | None, *, use_defaults: bool
) -> SentinelTable:
    rules = load_sentinel_profile(profile) + [parse_sentinel(item) for item in raw or []]
    base = DEFAULT_SENTINELS if use_defaults else SentinelTable()
    return base.extended(rules)


def _parse_pairs(raw: list[str] | None) -> list[tuple[str, str]]:
    pairs: list[tuple[str, str]] = []
    for item in raw or []:
        if "=" not in item:
            raise ValueError(f"Invalid --pair value: {item!r}  (expected Field=Value)")
        name, value = item.split("=", 1)
        pairs.append((name, value))
    return pairs


def _column_letters(columns: list[int]) -> str:
    return ", ".join(get_column_letter(c + 1) for c in columns) or "none"


def _write_manifest(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    report: SheetReport,
    *,
    sheet: SheetRef,
    base_url: str,
    status: str = "success",
    error_code: int | None = None,
    error_message: str = "",
) -> Path:
    sha256 = ""
    try:
        sha256 = sha256_file(input_file)
    except OSError:
        pass

    manifest = RunManifest(
        version=__version__,
        input_path=str(input_file.resolve()),
        output_dir=str(out_dir.resolve()),
        sheet="" if sheet is None else str(sheet),
        base_url=base_url,
        created_at_utc=created_at,
        rows_in=report.rows_in,
        records_out=report.records_out,
        sha256=sha256,
        status=status,
        error_code=error_code,
        error_message=error_message,
    )
    return write_json(out_dir / "run_manifest.json", manifest.to_dict())


def _write_report(out_dir: Path, report: SheetReport) -> Path:
    return write_json(out_dir / "sheet_report.json", report.to_dict())


def _write_text_artifact(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(text, encoding="utf-8")
    tmp_path.replace(path)
    return path


def _url_list(items: list[LocatorItem]) -> str:
    """Numbered ``<n>. <locator>`` lines, one per item."""
    return "".join(f"{n}. {item.data}\n" for n, item in enumerate(items, start=1))


def _write_failure_artifacts(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    *,
    sheet: SheetRef,
    base_url: str,
    message: str,
    report: SheetReport | None = None,
    error_code: int = 2,
) -> tuple[Path, Path]:
    if report is None:
        report = SheetReport(warnings=[message])
    report_path = _write_report(out_dir, report)
    manifest_path = _write_manifest(
        out_dir,
        input_file,
        created_at,
        report,
        sheet=sheet,
        base_url=base_url,
        status="failed",
        error_code=error_code,
        error_message=message,
    )
    return report_path, manifest_path


def _fail(
    out_dir: Path,
    input_file: Path,
    created_at: str,
    *,
    sheet: SheetRef,
    base_url: str,
    message: str,
    report: SheetReport | None = None,
    error_code: int = 2,
) -> typer.Exit:
    report_path, manifest_path = _write_failure_artifacts(
        out_dir,
        input_file,
        created_at,
        sheet=sheet,
        base_url=base_url,
        message=message,
        report=report,
        error_code=error_code,
    )
    _err(message)
    console.print(f"  Report   -> {report_path}")
    console.print(f"  Manifest -> {manifest_path}")
    return typer.Exit(code=error_code)


def _no_records_message(selection: object, report: SheetReport) -> str:
    if isinstance(selection, NoData):
        return f"No data found in sheet: {selection.reason}."
    return f"Sheet has a header on row {(report.header_row_index or 0) + 1} but no data rows."


# ── Callbacks ────────────────────────────────────────────────────


@app.callback()
def main(
    version: bool | None = typer.Option(
        None, "--version", "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """qrid CLI."""


# ── generate command ─────────────────────────────────────────────


@app.command()
def generate(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to CSV or XLSX input file.",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for locators, workbook, report + manifest.",
    ),
    sheet: str | None = typer.Option(
        None, "--sheet", "-s",
        help="Sheet name or 0-based index (default: first sheet).",
    ),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--base-url", "-b",
        envvar=BASE_URL_ENVVAR,
        help="Prefix prepended to every locator.",
    ),
    escape_values: bool = typer.Option(
        False, "--escape/--legacy",
        help="Percent-encode names and values so ';' and '=' survive decoding.",
    ),
    sentinel: list[str] | None = typer.Option(
        None, "--sentinel",
        help="Placeholder for a blank field: 'Field Name=Replacement'.",
    ),
    sentinel_profile: Path | None = typer.Option(
        None, "--sentinel-profile",
        help="File of 'Field Name=Replacement' lines.",
    ),
    default_sentinels: bool = typer.Option(
        True, "--default-sentinels/--no-default-sentinels",
        help="Keep the built-in 'Original Cost' placeholder rule.",
    ),
    delimiter: str | None = typer.Option(
        None, "--delimiter", "-d",
        help="CSV field separator, one character or 'tab' (default: ',').",
    ),
    lookahead: int = typer.Option(
        HEADER_LOOKAHEAD_ROWS, "--lookahead", min=0,
        help="Rows below the header scanned to keep a column with a blank title.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes all artifacts.",
    ),
) -> None:
    """Generate one viewer locator per data row of a spreadsheet."""
    echo = _printer(quiet)
    created_at = utcnow_iso()
    sheet_ref = _parse_sheet(sheet)
    out_dir.mkdir(parents=True, exist_ok=True)
    try:
        sentinels = _build_sentinels(
            sentinel, sentinel_profile, use_defaults=default_sentinels
        )
    except ValueError as exc:
        raise _fail(
            out_dir, input_file, created_at,
            sheet=sheet_ref, base_url=base_url, message=str(exc),
        )

    if not quiet:
        console.print(Panel(
            f"[bold]qrid[/bold] v{__version__}\n"
            f"Input:    {escape(str(input_file))}\n"
            f"Output:   {escape(str(out_dir))}\n"
            f"Base URL: {escape(base_url)}",
            title="Generate", border_style="blue",
        ))
        if sentinel_profile:
            console.print(f"  Using sentinel profile: {escape(str(sentinel_profile))}")
        console.print(
            f"  Locator format: {'escaped' if escape_values else 'legacy'}, "
            f"{plural(len(sentinels), 'sentinel rule')}"
        )

    # ── Load ─────────────────────────────────────────────────────
    echo("[blue]>[/blue] Reading sheet …")
    try:
        grid = load_grid(input_file, sheet=sheet_ref, delimiter=_parse_delimiter(delimiter))
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(
            out_dir, input_file, created_at,
            sheet=sheet_ref, base_url=base_url, message=str(exc),
        )

    echo(f"  {plural(len(grid), 'row')} read")

    try:
        # ── Infer + build ────────────────────────────────────────
        echo("[blue]>[/blue] Inferring header …")
        records, selection, report = process_grid(
            grid, sentinels=sentinels, lookahead=lookahead
        )
        if not records:
            raise _fail(
                out_dir, input_file, created_at,
                sheet=sheet_ref, base_url=base_url,
                message=_no_records_message(selection, report), report=report,
            )

        if not quiet:
            console.print(
                f"  Header row {(report.header_row_index or 0) + 1}, "
                f"columns {_column_letters(report.active_columns)}"
            )
            for w in report.warnings:
                console.print(f"  [yellow]![/yellow] {escape(w)}")

        # ── Encode ───────────────────────────────────────────────
        echo("[blue]>[/blue] Encoding locators …")
        items = build_locators(base_url, records, escape=escape_values)
        locators_path = write_json(
            out_dir / "locators.json",
            [item.to_dict() for item in items],
            sort_keys=False,
        )
        echo(f"  Locators -> {locators_path}")

        url_list_path = _write_text_artifact(out_dir / "locators.txt", _url_list(items))
        echo(f"  URL list -> {url_list_path}")

        workbook_path = write_locator_workbook(
            out_dir, items, report, source_name=input_file.name
        )
        echo(f"  Workbook -> {workbook_path}")

        report_path = _write_report(out_dir, report)
        echo(f"  Report   -> {report_path}")

        manifest_path = _write_manifest(
            out_dir, input_file, created_at, report,
            sheet=sheet_ref, base_url=base_url,
        )
        echo(f"  Manifest -> {manifest_path}")

        if not quiet:
            console.print(Panel(
                f"[green]Done[/green] — {plural(len(items), 'locator')} -> "
                f"{escape(str(locators_path))}",
                title="Generate Complete", border_style="green",
            ))
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir, input_file, created_at,
            sheet=sheet_ref, base_url=base_url,
            message=f"Unexpected internal error: {exc}",
            report=SheetReport(rows_in=len(grid), warnings=[f"Unexpected internal error: {exc}"]),
            error_code=1,
        )


# ── inspect command ──────────────────────────────────────────────


@app.command()
def inspect(
    input_file: Path = typer.Option(
        ..., "--input", "-i",
        help="Path to CSV or XLSX input file.",
        exists=True, readable=True,
    ),
    out_dir: Path = typer.Option(
        Path("output"), "--out-dir", "-o",
        help="Output directory for report + manifest.",
    ),
    sheet: str | None = typer.Option(
        None, "--sheet", "-s",
        help="Sheet name or 0-based index (default: first sheet).",
    ),
    delimiter: str | None = typer.Option(
        None, "--delimiter", "-d",
        help="CSV field separator, one character or 'tab' (default: ',').",
    ),
    lookahead: int = typer.Option(
        HEADER_LOOKAHEAD_ROWS, "--lookahead", min=0,
        help="Rows below the header scanned to keep a column with a blank title.",
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q",
        help="Suppress informational output; still writes report + manifest.",
    ),
) -> None:
    """Show the inferred header and fields without generating locators.

    Writes sheet_report.json + run_manifest.json only.
    Exit 0 = records found, exit 2 = unreadable or empty sheet.
    """
    created_at = utcnow_iso()
    sheet_ref = _parse_sheet(sheet)
    out_dir.mkdir(parents=True, exist_ok=True)

    if not quiet:
        console.print(Panel(
            f"[bold]qrid[/bold] v{__version__}  [dim]inspect mode[/dim]\n"
            f"Input: {escape(str(input_file))}",
            title="Inspect", border_style="cyan",
        ))

    try:
        grid = load_grid(input_file, sheet=sheet_ref, delimiter=_parse_delimiter(delimiter))
    except (FileNotFoundError, ValueError, OSError) as exc:
        raise _fail(
            out_dir, input_file, created_at,
            sheet=sheet_ref, base_url="", message=str(exc),
        )

    try:
        records, selection, report = process_grid(grid, lookahead=lookahead)
        failed = not records
        message = _no_records_message(selection, report) if failed else ""

        report_path = _write_report(out_dir, report)
        manifest_path = _write_manifest(
            out_dir, input_file, created_at, report,
            sheet=sheet_ref, base_url="",
            status="failed" if failed else "success",
            error_code=2 if failed else None,
            error_message=message,
        )

        if not quiet:
            tbl = RichTable(title="Sheet Inspection", show_lines=True)
            tbl.add_column("Check", style="bold")
            tbl.add_column("Result")

            header_row = (
                "none" if report.header_row_index is None
                else str(report.header_row_index + 1)
            )
            tbl.add_row("Rows in", str(report.rows_in))
            tbl.add_row("Header row", header_row)
            tbl.add_row("Active columns", _column_letters(report.active_columns))
            tbl.add_row("Fields", escape(", ".join(report.field_names)) or "none")
            tbl.add_row("Records", str(report.records_out))
            tbl.add_row("Skipped rows", str(report.skipped_rows))
            for w in report.warnings:
                tbl.add_row("Warning", f"[yellow]{escape(w)}[/yellow]")
            tbl.add_row("Status", "[red]FAIL[/red]" if failed else "[green]PASS[/green]")
            console.print(tbl)
        console.print(f"  Report   -> {report_path}")
        console.print(f"  Manifest -> {manifest_path}")

        if failed:
            _err(message)
            raise typer.Exit(code=2)
    except typer.Exit:
        raise
    except Exception as exc:
        raise _fail(
            out_dir, input_file, created_at,
            sheet=sheet_ref, base_url="",
            message=f"Unexpected internal error: {exc}",
            report=SheetReport(rows_in=len(grid), warnings=[f"Unexpected internal error: {exc}"]),
            error_code=1,
        )


# ── decode command ───────────────────────────────────────────────


@app.command()
def decode(
    locator: str = typer.Argument(
        ..., help="Locator URL or the path part after the host.",
    ),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--base-url", "-b",
        envvar=BASE_URL_ENVVAR,
        help="Prefix to strip before decoding.",
    ),
    escape_values: bool = typer.Option(
        False, "--escape/--legacy",
        help="Decode percent-encoded names and values.",
    ),
    as_json: bool = typer.Option(
        False, "--json",
        help="Print the fields as a JSON list of {column, value}.",
    ),
) -> None:
    """Show the fields carried by a locator (viewer mode)."""
    pairs = decode_locator(locator, base_url, escape=escape_values)
    if not pairs:
        _err("No field=value pairs found in locator.")
        raise typer.Exit(code=1)

    if as_json:
        payload = [{"column": name, "value": value} for name, value in pairs]
        typer.echo(json.dumps(payload, ensure_ascii=False, indent=2))
        return

    tbl = RichTable(title="Asset Details", show_lines=True)
    tbl.add_column("Field", style="bold")
    tbl.add_column("Value")
    for name, value in pairs:
        tbl.add_row(escape(name), escape(value))
    console.print(tbl)


# ── manual command ───────────────────────────────────────────────


@app.command()
def manual(
    pair: list[str] | None = typer.Option(
        None, "--pair", "-p",
        help="Field and value: 'Field=Value'. Repeat for more fields.",
    ),
    base_url: str = typer.Option(
        DEFAULT_BASE_URL, "--base-url", "-b",
        envvar=BASE_URL_ENVVAR,
        help="Prefix prepended to the locator.",
    ),
    escape_values: bool = typer.Option(
        False, "--escape/--legacy",
        help="Percent-encode names and values so ';' and '=' survive decoding.",
    ),
    as_json: bool = typer.Option(
        False, "--json",
        help="Print {id, data, rowData} instead of the bare locator.",
    ),
) -> None:
    """Build a locator from hand-entered field/value pairs."""
    try:
        record = build_manual_record(_parse_pairs(pair))
    except ValueError as exc:
        _err(str(exc))
        raise typer.Exit(code=2)

    locator = encode(base_url, record, escape=escape_values)
    if as_json:
        item = LocatorItem(id="manual-qr-1", data=locator, row_data=record)
        typer.echo(json.dumps(item.to_dict(), ensure_ascii=False, indent=2))
        return
    typer.echo(locator)
