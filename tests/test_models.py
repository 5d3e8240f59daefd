from __future__ import annotations

from datetime import date

import pytest

from qrid.models import (
    EMPTY,
    DateCell,
    HeaderSelection,
    LocatorItem,
    Number,
    RunManifest,
    SheetReport,
    Text,
    cell_at,
    grid_width,
    is_blank,
    is_stringish,
)


def test_blank_and_stringish_predicates() -> None:
    assert is_blank(EMPTY)
    assert is_blank(Text("   "))
    assert not is_blank(Text(" x "))
    assert not is_blank(Number(0))
    assert not is_blank(DateCell(date(2024, 3, 1)))

    assert is_stringish(Text("x"))
    assert not is_stringish(Number(1))
    assert not is_stringish(DateCell(date(2024, 3, 1)))


def test_cell_at_treats_missing_trailing_cells_as_empty() -> None:
    grid = ((Text("a"), Text("b"), Text("c")), (Text("d"),))

    assert cell_at(grid, 1, 0) == Text("d")
    assert cell_at(grid, 1, 2) is EMPTY
    assert grid_width(grid) == 3
    assert grid_width(()) == 0


def test_header_selection_validates_columns() -> None:
    selection = HeaderSelection(header_row_index=2, active_columns=[0, 2])  # type: ignore[arg-type]
    assert selection.active_columns == (0, 2)

    with pytest.raises(ValueError, match="active_columns"):
        HeaderSelection(header_row_index=0, active_columns=())
    with pytest.raises(ValueError, match="distinct"):
        HeaderSelection(header_row_index=0, active_columns=(1, 1))
    with pytest.raises(ValueError, match="header_row_index"):
        HeaderSelection(header_row_index=-1, active_columns=(0,))
    with pytest.raises(TypeError, match="header_row_index"):
        HeaderSelection(header_row_index=True, active_columns=(0,))  # type: ignore[arg-type]


def test_sheet_report_to_dict_returns_list_copies() -> None:
    report = SheetReport(
        rows_in=5,
        data_rows=2,
        records_out=1,
        skipped_rows=1,
        header_row_index=2,
        active_columns=[0, 1],
        field_names=["Name", "Email"],
        warnings=["warn"],
    )

    payload = report.to_dict()
    payload["field_names"].append("extra")
    payload["warnings"].append("another")

    assert report.field_names == ["Name", "Email"]
    assert report.warnings == ["warn"]
    assert payload["header_row_index"] == 2


def test_sheet_report_rejects_inconsistent_counts() -> None:
    with pytest.raises(ValueError, match="rows_in"):
        SheetReport(rows_in=-1)
    with pytest.raises(ValueError, match="data_rows"):
        SheetReport(rows_in=1, data_rows=2)
    with pytest.raises(ValueError, match="records_out"):
        SheetReport(rows_in=3, data_rows=1, records_out=2)
    with pytest.raises(ValueError, match="skipped_rows"):
        SheetReport(rows_in=3, data_rows=2, records_out=1, skipped_rows=0)


def test_sheet_report_rejects_non_string_lists() -> None:
    with pytest.raises(TypeError, match="field_names"):
        SheetReport(field_names=["a", 1])  # type: ignore[list-item]
    with pytest.raises(TypeError, match="warnings"):
        SheetReport(warnings="oops")  # type: ignore[arg-type]


def test_run_manifest_validates_counts_and_status() -> None:
    with pytest.raises(TypeError, match="rows_in"):
        RunManifest(rows_in=True)  # type: ignore[arg-type]
    with pytest.raises(ValueError, match="records_out"):
        RunManifest(records_out=-2)
    with pytest.raises(ValueError, match="status"):
        RunManifest(status="partial")


def test_locator_item_to_dict_uses_row_data_key() -> None:
    item = LocatorItem(id="qr-1", data="https://x/a=1", row_data={"a": "1"})

    assert item.to_dict() == {"id": "qr-1", "data": "https://x/a=1", "rowData": {"a": "1"}}
