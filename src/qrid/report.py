"""Excel export writer: produces Locators.xlsx."""

from __future__ import annotations

import re
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, cast

from openpyxl import Workbook
from openpyxl.styles import Alignment, Font, PatternFill
from openpyxl.utils import get_column_letter
from openpyxl.worksheet.table import Table, TableStyleInfo
from openpyxl.worksheet.worksheet import Worksheet

from qrid.models import LocatorItem, SheetReport

# ── Style constants ──────────────────────────────────────────────

HEADER_FONT = Font(name="Calibri", bold=True, size=11, color="FFFFFF")
HEADER_FILL = PatternFill(start_color="2F5496", end_color="2F5496", fill_type="solid")
HEADER_ALIGN = Alignment(horizontal="center", vertical="center", wrap_text=True)

TITLE_FONT = Font(name="Calibri", bold=True, size=14, color="2F5496")
SUBTITLE_FONT = Font(name="Calibri", bold=False, size=10, color="808080")
LABEL_FONT = Font(name="Calibri", bold=True, size=11)
VALUE_FONT = Font(name="Calibri", size=11)
WARN_FONT = Font(name="Calibri", italic=True, size=10, color="CC6600")

NOTE_FILL = PatternFill(start_color="FFF2CC", end_color="FFF2CC", fill_type="solid")

ID_COLUMN = "ID"
URL_COLUMN = "Generated_URL"
DATA_SHEET = "Data with URLs"

# Fixed widths for the bookkeeping columns; field columns are sized from content.
_FIXED_WIDTHS: dict[str, int] = {ID_COLUMN: 6, URL_COLUMN: 60}

_AUTO_WIDTH_SAMPLE_ROWS = 300
_EXCEL_FORMULA_PREFIXES = ("=", "+", "-", "@")


# ── Helpers ──────────────────────────────────────────────────────


def _style_header(ws: Worksheet, ncols: int) -> None:
    for c in range(1, ncols + 1):
        cell = ws.cell(row=1, column=c)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = HEADER_ALIGN


def _auto_width(ws: Worksheet, col_names: list[str]) -> None:
    max_row = min(ws.max_row, _AUTO_WIDTH_SAMPLE_ROWS + 1)  # include header row
    for c_idx, name in enumerate(col_names, 1):
        letter = get_column_letter(c_idx)
        fixed = _FIXED_WIDTHS.get(name)
        if fixed:
            ws.column_dimensions[letter].width = fixed
            continue
        width = 0
        for row in ws.iter_rows(min_row=1, max_row=max_row, min_col=c_idx, max_col=c_idx):
            width = max(width, len(str(row[0].value or "")))
        ws.column_dimensions[letter].width = min(width + 4, 30)


def _sanitize_table_name(name: str) -> str:
    cleaned = re.sub(r"[^A-Za-z0-9_]", "_", name)
    if not cleaned:
        cleaned = "Table"
    if not re.match(r"^[A-Za-z_]", cleaned):
        cleaned = f"_{cleaned}"
    return cleaned[:255]


def _add_excel_table(ws: Worksheet, name: str, ncols: int, nrows: int) -> None:
    """Turn the data range into a proper Excel Table object."""
    if nrows < 1 or ncols < 1:
        return
    ref = f"A1:{get_column_letter(ncols)}{nrows + 1}"  # +1 for header
    table = Table(displayName=_sanitize_table_name(name), ref=ref)
    table.tableStyleInfo = TableStyleInfo(
        name="TableStyleMedium9", showFirstColumn=False,
        showLastColumn=False, showRowStripes=True, showColumnStripes=False,
    )
    ws.add_table(table)


def _excel_value(val: Any) -> Any:
    if isinstance(val, str):
        if val.startswith("'"):
            return val
        stripped = val.lstrip()
        if stripped and stripped[0] in _EXCEL_FORMULA_PREFIXES:
            return f"'{val}"
    return val


def _unique_header(name: str, taken: set[str]) -> str:
    """Suffix *name* until it clashes with nothing in *taken* (casefolded names)."""
    if name.casefold() not in taken:
        return name
    suffix = 2
    while f"{name}_{suffix}".casefold() in taken:
        suffix += 1
    return f"{name}_{suffix}"


def field_columns(items: Iterable[LocatorItem]) -> list[str]:
    """Union of record field names, in first-seen order."""
    seen: dict[str, None] = {}
    for item in items:
        for name in item.row_data:
            seen.setdefault(name, None)
    return list(seen)


def _write_data_sheet(wb: Workbook, items: list[LocatorItem]) -> None:
    ws = wb.create_sheet(title=DATA_SHEET)
    fields = field_columns(items)

    # Table headers are unique ignoring case; a field named ID, Generated_URL
    # or a case variant of an earlier field gets a suffixed header.
    taken = {ID_COLUMN.casefold(), URL_COLUMN.casefold()}
    headers = [ID_COLUMN]
    for name in fields:
        header = _unique_header(str(_excel_value(name)), taken)
        taken.add(header.casefold())
        headers.append(header)
    headers.append(URL_COLUMN)

    for c_idx, header in enumerate(headers, 1):
        ws.cell(row=1, column=c_idx, value=header)
    for r_idx, item in enumerate(items, 2):
        ws.cell(row=r_idx, column=1, value=r_idx - 1)
        for c_idx, name in enumerate(fields, 2):
            value = item.row_data.get(name)
            if value is not None:
                ws.cell(row=r_idx, column=c_idx, value=_excel_value(value))
        ws.cell(row=r_idx, column=len(headers), value=_excel_value(item.data))

    _style_header(ws, len(headers))
    ws.freeze_panes = "A2"
    _auto_width(ws, headers)
    _add_excel_table(ws, "Locators", len(headers), len(items))


def _write_summary(wb: Workbook, report: SheetReport, source_name: str) -> None:
    ws = wb.create_sheet(title="Summary")

    ws.cell(row=1, column=1, value="qrid — Locator Export").font = TITLE_FONT
    ws.merge_cells("A1:D1")
    generated = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    ws.cell(row=2, column=1, value=f"Generated {generated}").font = SUBTITLE_FONT
    ws.merge_cells("A2:D2")

    header_row = (
        "N/A" if report.header_row_index is None else str(report.header_row_index + 1)
    )
    facts: list[tuple[str, Any]] = [
        ("Source", source_name or "N/A"),
        ("Header row", header_row),
        ("Rows in", report.rows_in),
        ("Records", report.records_out),
        ("Skipped rows", report.skipped_rows),
        ("Fields", ", ".join(report.field_names) or "N/A"),
    ]
    row = 4
    for label, value in facts:
        ws.cell(row=row, column=1, value=label).font = LABEL_FONT
        ws.cell(row=row, column=2, value=_excel_value(value)).font = VALUE_FONT
        row += 1

    row += 1
    ws.cell(row=row, column=1, value="Notes").font = LABEL_FONT
    for c in range(1, 5):
        ws.cell(row=row, column=c).fill = NOTE_FILL
    row += 1
    for warn in report.warnings or ["No warnings"]:
        cell = ws.cell(row=row, column=1, value=_excel_value(warn))
        cell.font = WARN_FONT if report.warnings else VALUE_FONT
        for c in range(1, 5):
            ws.cell(row=row, column=c).fill = NOTE_FILL
        row += 1

    ws.column_dimensions["A"].width = 18
    ws.column_dimensions["B"].width = 40


# ── Public API ───────────────────────────────────────────────────


def write_locator_workbook(
    out_dir: Path,
    items: list[LocatorItem],
    report: SheetReport | None = None,
    *,
    source_name: str = "",
) -> Path:
    """Write ``Locators.xlsx`` and return the path."""
    if report is None:
        report = SheetReport()

    out_dir = Path(out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / "Locators.xlsx"

    wb = Workbook()
    active_sheet = wb.active
    if active_sheet is not None:
        wb.remove(cast(Worksheet, active_sheet))  # remove default sheet

    _write_data_sheet(wb, items)
    _write_summary(wb, report, source_name)

    tmp_path = out_dir / "Locators.tmp.xlsx"
    wb.save(tmp_path)
    tmp_path.replace(path)
    return path
