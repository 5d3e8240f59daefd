"""Data models shared across the package."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import date, datetime
from numbers import Integral
from typing import Any, Union


class UnreadableSheet(ValueError):
    """The spreadsheet reader could not produce a grid for the input."""


def _to_non_negative_int(value: Any, field_name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise TypeError(f"{field_name} must be an integer")
    result = int(value)
    if result < 0:
        raise ValueError(f"{field_name} must be >= 0")
    return result


def _to_string_list(values: Sequence[Any] | None, field_name: str) -> list[str]:
    if values is None:
        return []
    if isinstance(values, str):
        raise TypeError(f"{field_name} must be a sequence of strings")
    normalized: list[str] = []
    for item in values:
        if not isinstance(item, str):
            raise TypeError(f"{field_name} items must be strings")
        normalized.append(item)
    return normalized


# ── Cells ────────────────────────────────────────────────────────


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Number:
    value: int | float


@dataclass(frozen=True)
class DateCell:
    value: date | datetime


Cell = Union[Empty, Text, Number, DateCell]
Row = tuple[Cell, ...]
Grid = tuple[Row, ...]
Record = dict[str, str]

EMPTY = Empty()


def is_blank(cell: Cell) -> bool:
    """True for empty cells and for text that is empty after trimming."""
    if isinstance(cell, Empty):
        return True
    if isinstance(cell, Text):
        return not cell.value.strip()
    return False


def is_stringish(cell: Cell) -> bool:
    return isinstance(cell, Text)


def cell_at(grid: Grid, row: int, col: int) -> Cell:
    """Return the cell at (*row*, *col*); ragged rows read as empty."""
    cells = grid[row]
    if col < len(cells):
        return cells[col]
    return EMPTY


def grid_width(grid: Grid) -> int:
    return max((len(r) for r in grid), default=0)


# ── Inference results ────────────────────────────────────────────


@dataclass(frozen=True)
class HeaderSelection:
    """Header row chosen for a sheet plus the columns kept for records."""

    header_row_index: int
    active_columns: tuple[int, ...]

    def __post_init__(self) -> None:
        _to_non_negative_int(self.header_row_index, "header_row_index")
        columns = tuple(self.active_columns)
        if not columns:
            raise ValueError("active_columns must not be empty")
        for col in columns:
            _to_non_negative_int(col, "active_columns")
        if len(set(columns)) != len(columns):
            raise ValueError("active_columns must be distinct")
        object.__setattr__(self, "active_columns", columns)


@dataclass(frozen=True)
class NoData:
    """Inference found nothing to build records from."""

    reason: str = "no data"


@dataclass(frozen=True)
class LocatorItem:
    """One generated locator together with the record it encodes."""

    id: str
    data: str
    row_data: Record

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "data": self.data, "rowData": dict(self.row_data)}


# ── Run artifacts ────────────────────────────────────────────────


@dataclass
class SheetReport:
    """Per-sheet report emitted alongside every run.

    Contract invariant: ``skipped_rows == data_rows - records_out``.
    """

    rows_in: int = 0
    data_rows: int = 0
    records_out: int = 0
    skipped_rows: int = 0
    header_row_index: int | None = None
    active_columns: list[int] = field(default_factory=list)
    field_names: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.data_rows = _to_non_negative_int(self.data_rows, "data_rows")
        self.records_out = _to_non_negative_int(self.records_out, "records_out")
        self.skipped_rows = _to_non_negative_int(self.skipped_rows, "skipped_rows")
        if self.header_row_index is not None:
            self.header_row_index = _to_non_negative_int(
                self.header_row_index, "header_row_index"
            )
        self.active_columns = [
            _to_non_negative_int(c, "active_columns") for c in self.active_columns
        ]
        self.field_names = _to_string_list(self.field_names, "field_names")
        self.warnings = _to_string_list(self.warnings, "warnings")
        if self.data_rows > self.rows_in:
            raise ValueError("data_rows must be <= rows_in")
        if self.records_out > self.data_rows:
            raise ValueError("records_out must be <= data_rows")
        if self.skipped_rows != self.data_rows - self.records_out:
            raise ValueError("skipped_rows must equal data_rows - records_out")

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows_in": self.rows_in,
            "data_rows": self.data_rows,
            "records_out": self.records_out,
            "skipped_rows": self.skipped_rows,
            "header_row_index": self.header_row_index,
            "active_columns": list(self.active_columns),
            "field_names": list(self.field_names),
            "warnings": list(self.warnings),
        }


@dataclass
class RunManifest:
    """Audit-trail manifest for a single run."""

    tool: str = "qrid"
    version: str = ""
    input_path: str = ""
    output_dir: str = ""
    sheet: str = ""
    base_url: str = ""
    created_at_utc: str = ""
    rows_in: int = 0
    records_out: int = 0
    sha256: str = ""
    status: str = "success"
    error_code: int | None = None
    error_message: str = ""

    def __post_init__(self) -> None:
        self.rows_in = _to_non_negative_int(self.rows_in, "rows_in")
        self.records_out = _to_non_negative_int(self.records_out, "records_out")
        if self.status not in {"success", "failed"}:
            raise ValueError("status must be 'success' or 'failed'")

    def to_dict(self) -> dict[str, Any]:
        return {
            "tool": self.tool,
            "version": self.version,
            "input_path": self.input_path,
            "output_dir": self.output_dir,
            "sheet": self.sheet,
            "base_url": self.base_url,
            "created_at_utc": self.created_at_utc,
            "rows_in": self.rows_in,
            "records_out": self.records_out,
            "sha256": self.sha256,
            "status": self.status,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }
