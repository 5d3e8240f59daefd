"""I/O helpers: read sheets into grids, write JSON artifacts."""

from __future__ import annotations

import csv
import json
import math
from collections.abc import Iterable
from datetime import date, datetime
from io import StringIO
from numbers import Real
from pathlib import Path
from typing import Any, Callable, cast

import pandas as pd

from qrid.models import (
    EMPTY,
    Cell,
    DateCell,
    Empty,
    Grid,
    Number,
    Text,
    UnreadableSheet,
)
from qrid.records import render_number

SheetRef = str | int | None

_EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xltx", ".xltm")
_CELL_TYPES = (Empty, Text, Number, DateCell)

# ── Cell coercion ────────────────────────────────────────────────


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        return False


def to_cell(value: Any) -> Cell:
    """Coerce one raw reader value into a cell variant (no trimming)."""
    if isinstance(value, _CELL_TYPES):
        return cast(Cell, value)
    if _is_missing(value):
        return EMPTY
    if isinstance(value, bool):
        return Text("TRUE" if value else "FALSE")
    if isinstance(value, pd.Timestamp):
        return DateCell(value.to_pydatetime())
    if isinstance(value, (datetime, date)):
        return DateCell(value)
    if isinstance(value, Real):
        item = getattr(value, "item", None)
        return Number(item() if callable(item) else value)
    if isinstance(value, str):
        return Text(value) if value else EMPTY
    return Text(str(value))


def grid_from_rows(rows: Iterable[Iterable[Any]]) -> Grid:
    """Build a grid from plain nested sequences; rows keep their own length."""
    return tuple(tuple(to_cell(v) for v in row) for row in rows)


def grid_from_frame(df: pd.DataFrame) -> Grid:
    """Build a grid from a header-less DataFrame, keeping every row."""
    return grid_from_rows(df.itertuples(index=False, name=None))


# ── Loading ──────────────────────────────────────────────────────


def _csv_width(text: str, delimiter: str) -> int:
    rows = csv.reader(text.splitlines(keepends=True), delimiter=delimiter)
    return max((len(row) for row in rows), default=0)


def _csv_value(value: Any) -> Any:
    """Numeric text becomes a number when it renders back unchanged.

    ``"1200"`` and ``"-3.5"`` turn numeric; ``"007"``, ``"1.50"`` and very long
    digit strings stay text so their record value is exactly what was typed.
    """
    if not isinstance(value, str):
        return value
    stripped = value.strip()
    if not stripped:
        return value
    number = pd.to_numeric(stripped, errors="coerce")
    if pd.isna(number) or not math.isfinite(number):
        return value
    number = number.item() if hasattr(number, "item") else number
    return number if render_number(number) == stripped else value


def _read_csv(path: Path, delimiter: str = ",") -> pd.DataFrame:
    text: str | None = None
    for encoding in ("utf-8-sig", "utf-8", "latin-1"):
        try:
            text = path.read_text(encoding=encoding)
            break
        except UnicodeDecodeError:
            continue
    if text is None:
        raise UnreadableSheet(f"Could not read CSV {path} (decode failed)")
    if not text.strip():
        return pd.DataFrame()

    try:
        # Rows are as wide as the widest line; shorter ones pad with blanks.
        width = _csv_width(text, delimiter)
        df = pd.read_csv(
            StringIO(text),
            header=None,
            names=list(range(width)),
            dtype="string",
            sep=delimiter,
            keep_default_na=False,
            skip_blank_lines=False,
        )
    except (csv.Error, pd.errors.ParserError, pd.errors.EmptyDataError) as exc:
        raise UnreadableSheet(f"Could not read CSV {path} (parse failed): {exc}") from exc
    return df.astype(object).map(_csv_value)


def _read_excel(path: Path, engine: str, sheet: SheetRef) -> pd.DataFrame:
    read_excel = cast(Callable[..., pd.DataFrame], getattr(pd, "read_excel"))
    try:
        return read_excel(
            path,
            engine=engine,
            sheet_name=0 if sheet is None else sheet,
            header=None,
            dtype=object,
        )
    except ImportError as exc:
        raise UnreadableSheet(
            f"Reading {path.suffix} files needs the optional '{engine}' package "
            f"(pip install {engine})"
        ) from exc
    except (ValueError, KeyError, IndexError) as exc:
        raise UnreadableSheet(f"Could not read sheet {sheet!r} from {path}: {exc}") from exc
    except Exception as exc:
        # zipfile/xml errors from corrupt workbooks have no common base class
        raise UnreadableSheet(f"Could not read workbook {path}: {exc}") from exc


def load_table(
    path: Path, sheet: SheetRef = None, delimiter: str | None = None
) -> pd.DataFrame:
    """Load one sheet of a CSV or Excel file as a header-less DataFrame.

    CSV files are split on *delimiter* (default ``,``) and padded to their
    widest line; *sheet* only applies to workbooks.

    Raises
    ------
    FileNotFoundError
        If *path* does not exist.
    UnreadableSheet
        If the path is not a file, the extension is not supported, or the
        reader fails to produce a table.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input file not found: {path}")
    if not path.is_file():
        raise UnreadableSheet(f"Input path is not a file: {path}")

    suffix = path.suffix.lower()
    if suffix == ".csv":
        if delimiter is not None and len(delimiter) != 1:
            raise UnreadableSheet(f"CSV delimiter must be a single character, got {delimiter!r}")
        return _read_csv(path, delimiter or ",")
    if suffix in _EXCEL_SUFFIXES:
        return _read_excel(path, "openpyxl", sheet)
    if suffix == ".xls":
        return _read_excel(path, "xlrd", sheet)

    raise UnreadableSheet(f"Unsupported file type: {suffix!r}. Use .csv, .xlsx, or .xls")


def load_grid(path: Path, sheet: SheetRef = None, delimiter: str | None = None) -> Grid:
    """Read one sheet of *path* into a :data:`~qrid.models.Grid`."""
    return grid_from_frame(load_table(path, sheet=sheet, delimiter=delimiter))


# ── Writing ──────────────────────────────────────────────────────


def _json_default(obj: Any) -> Any:
    if isinstance(obj, Path):
        return str(obj)
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    item = getattr(obj, "item", None)
    if callable(item):
        converted = item()
        if isinstance(converted, (str, int, float, bool)) or converted is None:
            return converted
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def write_json(path: Path, data: Any, *, sort_keys: bool = True) -> Path:
    """Write *data* as pretty-printed JSON to *path* (atomic + deterministic)."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    payload = json.dumps(
        data,
        indent=2,
        sort_keys=sort_keys,
        ensure_ascii=False,
        default=_json_default,
    ) + "\n"
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    tmp_path.write_text(payload, encoding="utf-8")
    tmp_path.replace(path)
    return path
