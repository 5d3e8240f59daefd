"""Header inference: scoring, tie-breaking and column pruning."""

from __future__ import annotations

from datetime import date

import pytest

from qrid.inference import infer_header, score_row
from qrid.io import grid_from_rows
from qrid.models import EMPTY, DateCell, HeaderSelection, NoData, Number, Text


def test_score_row_weights_density_text_and_distinct_values() -> None:
    assert score_row((EMPTY, Text("  "))) == float("-inf")
    # 3 filled, 3 text, 3 distinct -> 6 + 3 + 1.5
    assert score_row((Text("Name"), Text("Email"), Text("Cost"))) == 10.5
    # duplicates count once, case-insensitively
    assert score_row((Text("a"), Text("A "), EMPTY)) == 4 + 2 + 0.5
    # numbers and dates are not stringish
    assert score_row((Number(1), DateCell(date(2024, 3, 1)))) == 4 + 0 + 1.0


def test_banner_and_blank_rows_are_skipped_for_the_real_header() -> None:
    grid = grid_from_rows(
        [
            ["", "", "", "", ""],
            ["", " ", "", "", ""],
            ["Quarterly Asset Register", "", "", "", ""],
            ["Tag", "Name", "Location", "Owner", "Status"],
            ["A-1", "Laptop", "HQ", 7, "Active"],
            ["A-2", "Monitor", "HQ", 8, "Active"],
        ]
    )

    selection = infer_header(grid)

    assert isinstance(selection, HeaderSelection)
    assert selection.header_row_index == 3
    assert selection.active_columns == (0, 1, 2, 3, 4)


def test_ties_keep_the_first_row() -> None:
    grid = grid_from_rows([["a", "b"], ["c", "d"]])

    selection = infer_header(grid)

    assert isinstance(selection, HeaderSelection)
    assert selection.header_row_index == 0


def test_blank_header_column_kept_when_data_appears_within_lookahead() -> None:
    grid = grid_from_rows(
        [
            ["Name", "", "Email", "Dept", "Site"],
            ["Ann", "", 1, 2, 3],
            ["Bob", 5, 4, 6, 7],
        ]
    )

    selection = infer_header(grid)

    assert isinstance(selection, HeaderSelection)
    assert selection.header_row_index == 0
    assert selection.active_columns == (0, 1, 2, 3, 4)


def test_column_with_data_only_beyond_lookahead_is_pruned() -> None:
    rows: list[list[object]] = [["Name", "Email", "Dept", ""]]
    rows += [[f"user{i}", f"u{i}@x.com", "Ops", ""] for i in range(1, 15)]
    rows.append(["", "", "", "surprise"])  # row 15
    grid = grid_from_rows(rows)

    selection = infer_header(grid)

    assert isinstance(selection, HeaderSelection)
    assert selection.header_row_index == 0
    assert selection.active_columns == (0, 1, 2)


def test_lookahead_window_is_configurable() -> None:
    grid = grid_from_rows(
        [["Name", "Site", "Dept", "Room", ""], [1, 2, 3, 4, ""], [5, 6, 7, 8, 9]]
    )

    narrow = infer_header(grid, lookahead=1)
    wide = infer_header(grid, lookahead=2)

    assert isinstance(narrow, HeaderSelection) and narrow.active_columns == (0, 1, 2, 3)
    assert isinstance(wide, HeaderSelection) and wide.active_columns == (0, 1, 2, 3, 4)
    with pytest.raises(ValueError, match="lookahead"):
        infer_header(grid, lookahead=-1)


def test_ragged_rows_extend_the_column_range() -> None:
    grid = grid_from_rows(
        [["Name", "Email", "Dept"], ["Ann"], ["Bob", "b@x.com", None, "extra"]]
    )

    selection = infer_header(grid)

    assert isinstance(selection, HeaderSelection)
    assert selection.header_row_index == 0
    assert selection.active_columns == (0, 1, 2, 3)


@pytest.mark.parametrize("rows", [[], [[]], [["", " "], [None]]])
def test_empty_sheets_report_no_data(rows: list[list[object]]) -> None:
    result = infer_header(grid_from_rows(rows))

    assert isinstance(result, NoData)
    assert result.reason == "empty sheet"
