"""Sheet pipeline: grid in, records plus report out. Pure functions, no side effects."""

from __future__ import annotations

from collections import Counter

from openpyxl.utils import get_column_letter

from qrid import HEADER_LOOKAHEAD_ROWS
from qrid.inference import infer_header
from qrid.models import (
    Grid,
    HeaderSelection,
    NoData,
    Record,
    SheetReport,
    cell_at,
    grid_width,
    is_blank,
)
from qrid.records import build_records, field_names, has_live_data
from qrid.sentinels import DEFAULT_SENTINELS, SentinelTable
from qrid.utils import plural

# ── Diagnostics ──────────────────────────────────────────────────


def pruned_columns(grid: Grid, selection: HeaderSelection) -> list[int]:
    """Inactive columns that still hold values somewhere below the header."""
    active = set(selection.active_columns)
    start = selection.header_row_index + 1
    return [
        col
        for col in range(grid_width(grid))
        if col not in active
        and any(not is_blank(cell_at(grid, r, col)) for r in range(start, len(grid)))
    ]


def duplicate_field_names(names: list[str]) -> list[str]:
    counts = Counter(names)
    return sorted(name for name, n in counts.items() if n > 1)


def _count_sentinel_fills(
    grid: Grid, selection: HeaderSelection, names: list[str], sentinels: SentinelTable
) -> int:
    covered = [
        (col, name)
        for col, name in zip(selection.active_columns, names)
        if sentinels.replacement_for(name) is not None
    ]
    if not covered:
        return 0
    fills = 0
    for row in range(selection.header_row_index + 1, len(grid)):
        if not has_live_data(grid, row, selection.active_columns):
            continue
        fills += sum(1 for col, _name in covered if is_blank(cell_at(grid, row, col)))
    return fills


def _fields_lost_in_legacy_decode(records: list[Record]) -> list[str]:
    """Fields whose name or value a legacy locator cannot carry intact.

    Decode splits pairs on every ``;`` and a pair on its first ``=``, so a ``;``
    anywhere or an ``=`` inside the name breaks the field apart.
    """
    seen: dict[str, None] = {}
    for record in records:
        for name, value in record.items():
            if ";" in name or "=" in name or ";" in value:
                seen.setdefault(name, None)
    return list(seen)


# ── Main entry point ─────────────────────────────────────────────


def process_grid(
    grid: Grid,
    *,
    sentinels: SentinelTable = DEFAULT_SENTINELS,
    lookahead: int = HEADER_LOOKAHEAD_ROWS,
) -> tuple[list[Record], HeaderSelection | NoData, SheetReport]:
    """Infer the header of *grid* and build its records.

    Returns ``(records, selection, report)``. When inference finds nothing
    the records are empty, *selection* is a :class:`NoData` and the report
    carries the reason as a warning.
    """
    selection = infer_header(grid, lookahead=lookahead)
    if isinstance(selection, NoData):
        return [], selection, SheetReport(
            rows_in=len(grid), warnings=[f"No data found: {selection.reason}"]
        )

    warnings: list[str] = []
    header = selection.header_row_index
    names = field_names(grid, selection)
    data_rows = len(grid) - header - 1

    # 1. Header position
    if header > 0:
        warnings.append(
            f"Header detected on row {header + 1}; ignored {plural(header, 'leading row')}"
        )

    # 2. Columns dropped by the lookahead window
    for col in pruned_columns(grid, selection):
        warnings.append(
            f"Dropped column {get_column_letter(col + 1)}: blank header and no values "
            f"within {lookahead} rows of the header"
        )

    # 3. Name collisions
    duplicates = duplicate_field_names(names)
    if duplicates:
        warnings.append(
            f"Duplicate field names (later columns win): {', '.join(duplicates)}"
        )

    # 4. Records
    records = build_records(grid, selection, sentinels)
    skipped = data_rows - len(records)
    if skipped:
        warnings.append(f"Skipped {plural(skipped, 'row')} with no values in active columns")

    fills = _count_sentinel_fills(grid, selection, names, sentinels)
    if fills:
        warnings.append(f"Filled {plural(fills, 'blank value')} from sentinel rules")

    lossy_fields = _fields_lost_in_legacy_decode(records)
    if lossy_fields:
        warnings.append(
            "Fields with ';' in a name or value, or '=' in a name, will not decode "
            "intact from legacy locators: " + ", ".join(lossy_fields)
        )

    if not records:
        warnings.append("Sheet has a header but no data rows")

    report = SheetReport(
        rows_in=len(grid),
        data_rows=data_rows,
        records_out=len(records),
        skipped_rows=skipped,
        header_row_index=header,
        active_columns=list(selection.active_columns),
        field_names=names,
        warnings=warnings,
    )
    return records, selection, report
