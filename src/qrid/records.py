"""Record building: turn grid rows into ordered field mappings."""

from __future__ import annotations

import math
from collections.abc import Iterable
from datetime import datetime

from qrid.models import (
    Cell,
    DateCell,
    Empty,
    Grid,
    HeaderSelection,
    Number,
    Record,
    Text,
    cell_at,
    is_blank,
)
from qrid.sentinels import DEFAULT_SENTINELS, SentinelTable

# ── Value normalisation ─────────────────────────────────────────


def render_number(value: int | float) -> str:
    if isinstance(value, float) and math.isfinite(value) and value.is_integer():
        return str(int(value))
    return str(value)


def render_cell(cell: Cell) -> str:
    """Render *cell* as the string stored in a record.

    Dates become ``YYYY-MM-DD`` for the value's own calendar day; an aware
    datetime keeps its own wall-clock date, never the host's.
    """
    if isinstance(cell, Empty):
        return ""
    if isinstance(cell, DateCell):
        value = cell.value
        if isinstance(value, datetime):
            value = value.date()
        return value.isoformat()
    if isinstance(cell, Number):
        return render_number(cell.value)
    if isinstance(cell, Text):
        return cell.value.strip()
    raise TypeError(f"Unsupported cell type: {type(cell).__name__}")


# ── Field names ──────────────────────────────────────────────────


def field_names(grid: Grid, selection: HeaderSelection) -> list[str]:
    """Header text per active column, or ``Column_<rank>`` when blank."""
    names: list[str] = []
    for rank, col in enumerate(selection.active_columns, start=1):
        header = render_cell(cell_at(grid, selection.header_row_index, col))
        names.append(header if header else f"Column_{rank}")
    return names


# ── Records ──────────────────────────────────────────────────────


def has_live_data(grid: Grid, row_index: int, columns: Iterable[int]) -> bool:
    return any(not is_blank(cell_at(grid, row_index, c)) for c in columns)


def build_record(
    grid: Grid,
    row_index: int,
    columns: tuple[int, ...],
    names: list[str],
    sentinels: SentinelTable = DEFAULT_SENTINELS,
) -> Record:
    record: Record = {}
    for col, name in zip(columns, names):
        value = sentinels.apply(name, render_cell(cell_at(grid, row_index, col)))
        if value is None:
            continue
        # Duplicate names: the value is overwritten, the key keeps its first slot.
        record[name] = value
    return record


def build_records(
    grid: Grid,
    selection: HeaderSelection,
    sentinels: SentinelTable = DEFAULT_SENTINELS,
) -> list[Record]:
    """Build one record per row below the header that has live data.

    Rows whose active cells are all blank are skipped. Blank values are
    omitted from a record unless a sentinel rule supplies a placeholder.
    """
    if selection.header_row_index >= len(grid):
        raise ValueError(
            f"header_row_index {selection.header_row_index} is outside the grid "
            f"({len(grid)} rows)"
        )
    columns = selection.active_columns
    names = field_names(grid, selection)
    records: list[Record] = []
    for row_index in range(selection.header_row_index + 1, len(grid)):
        if not has_live_data(grid, row_index, columns):
            continue
        records.append(build_record(grid, row_index, columns, names, sentinels))
    return records


def build_manual_record(pairs: Iterable[tuple[str, str]]) -> Record:
    """Build a record from hand-entered ``(field, value)`` pairs.

    Both sides are trimmed and pairs missing either side are dropped; a
    repeated field name keeps the last value.
    """
    record: Record = {}
    for name, value in pairs:
        name, value = name.strip(), value.strip()
        if name and value:
            record[name] = value
    if not record:
        raise ValueError("Enter at least one field=value pair")
    return record
