"""Header inference: find the title row and the live columns of a sheet."""

from __future__ import annotations

from qrid import HEADER_LOOKAHEAD_ROWS
from qrid.models import (
    Grid,
    HeaderSelection,
    NoData,
    Row,
    cell_at,
    grid_width,
    is_blank,
    is_stringish,
)
from qrid.records import render_cell

NEG_INF = float("-inf")


def score_row(row: Row) -> float:
    """Score how header-like *row* is.

    ``2 * non_empty + stringish + 0.5 * unique`` over the non-blank cells,
    where *unique* counts distinct case-insensitive trimmed values. A row
    without any non-blank cell scores ``-inf``.
    """
    cells = [c for c in row if not is_blank(c)]
    if not cells:
        return NEG_INF
    stringish = sum(1 for c in cells if is_stringish(c))
    unique = len({render_cell(c).casefold() for c in cells})
    return 2 * len(cells) + stringish + 0.5 * unique


def _column_is_active(grid: Grid, header_row: int, col: int, lookahead: int) -> bool:
    if not is_blank(cell_at(grid, header_row, col)):
        return True
    last = min(len(grid), header_row + 1 + lookahead)
    return any(not is_blank(cell_at(grid, r, col)) for r in range(header_row + 1, last))


def infer_header(
    grid: Grid, lookahead: int = HEADER_LOOKAHEAD_ROWS
) -> HeaderSelection | NoData:
    """Pick the header row and active columns of *grid*.

    The highest-scoring row wins (first row on ties). A column is active
    when its header cell is filled or any of the *lookahead* rows below the
    header has a value in it; data further down does not keep a column.
    """
    if lookahead < 0:
        raise ValueError("lookahead must be >= 0")

    best_index: int | None = None
    best_score = NEG_INF
    for index, row in enumerate(grid):
        score = score_row(row)
        if score > best_score:
            best_index, best_score = index, score

    if best_index is None:
        return NoData("empty sheet")

    active = tuple(
        col
        for col in range(grid_width(grid))
        if _column_is_active(grid, best_index, col, lookahead)
    )
    if not active:
        return NoData("no active columns")
    return HeaderSelection(header_row_index=best_index, active_columns=active)
