"""
Readers for supplier price lists and tender bills of quantities.

Supplier workbooks are rarely tidy: title banners, logos and blank rows sit
above the real header, and the useful sheet is not always the first one.
Spreadsheets are therefore read as plain matrices so the header row can be
located heuristically before any column names are trusted.  CSV files go
through pandas with a header row; a naive comma splitter is kept for files
pandas refuses (it does not understand quoted commas).
"""

from __future__ import annotations

import logging
import math
import re
from pathlib import Path
from typing import Dict, List, Optional, Sequence, Union

import pandas as pd

from .config import DEFAULT_HEADER_SCAN_LIMIT
from .errors import UnsupportedFileType
from .models import TenderLineItem
from .normalize import norm, parse_number

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]
Matrix = List[List[object]]

CSV_SUFFIXES = {".csv"}
EXCEL_ENGINES = {".xlsx": "openpyxl", ".xls": "xlrd"}

_NUMERIC_LABEL = re.compile(r"^\d+(\.\d+)?$")
_HEADER_WS = re.compile(r"\s+")
_HEADER_NON_WORD = re.compile(r"[^\w\s]", re.ASCII)

TENDER_HEADER_HINTS = (
    "supplier",
    "product",
    "description",
    "item",
    "price",
    "cost",
    "unit",
    "uom",
    "currency",
    "code",
    "sku",
    "current",
    "new",
    "qty",
)
TENDER_MIN_HEADER_CELLS = 3

TENDER_DESCRIPTION_COLUMNS = ("description", "item", "product", "name")
TENDER_QTY_COLUMNS = ("qty", "quantity")
TENDER_UNIT_COLUMNS = ("unit", "uom")
TENDER_LINE_COLUMNS = ("line", "lineno", "line no")


def cell_text(value: object) -> str:
    """Render a cell the way a user sees it: blanks for NaN, ``12`` for ``12.0``."""

    if value is None:
        return ""
    if isinstance(value, float):
        if math.isnan(value):
            return ""
        if value.is_integer():
            return str(int(value))
    return str(value).strip()


def _suffix(path: Path) -> str:
    return path.suffix.lower()


def _check_supported(path: Path) -> str:
    suffix = _suffix(path)
    if suffix not in CSV_SUFFIXES and suffix not in EXCEL_ENGINES:
        raise UnsupportedFileType(suffix, path.name)
    return suffix


# ---------------------------------------------------------------------------
# CSV
# ---------------------------------------------------------------------------

def _naive_csv_lines(path: Path) -> List[List[str]]:
    text = path.read_text(encoding="utf-8-sig", errors="replace")
    lines = [line for line in re.split(r"\r?\n", text) if line]
    return [[cell.strip() for cell in line.split(",")] for line in lines]


def _read_csv_records(path: Path) -> List[Dict[str, object]]:
    try:
        frame = pd.read_csv(
            path,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError:
        logger.debug("pandas could not parse %s; using naive comma split", path.name)
        lines = _naive_csv_lines(path)
        if not lines:
            return []
        headers = lines[0]
        return [
            {header: (cols[idx] if idx < len(cols) else "") for idx, header in enumerate(headers)}
            for cols in lines[1:]
        ]

    frame.columns = [str(col).strip() for col in frame.columns]
    records: List[Dict[str, object]] = []
    for row in frame.to_dict(orient="records"):
        if all(cell_text(value) == "" for value in row.values()):
            continue
        records.append(row)
    return records


def _read_csv_matrix(path: Path) -> Matrix:
    try:
        frame = pd.read_csv(
            path,
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            encoding="utf-8-sig",
        )
    except pd.errors.EmptyDataError:
        return []
    except pd.errors.ParserError:
        logger.debug("pandas could not parse %s; using naive comma split", path.name)
        return [list(cols) for cols in _naive_csv_lines(path)]
    return frame.values.tolist()


# ---------------------------------------------------------------------------
# Spreadsheets
# ---------------------------------------------------------------------------

def _frame_to_matrix(frame: pd.DataFrame) -> Matrix:
    return [["" if cell_text(value) == "" else value for value in row] for row in frame.values.tolist()]


def read_workbook_matrices(path: Path) -> Dict[str, Matrix]:
    """Read every sheet of ``path`` as an array of arrays (no header inference)."""

    engine = EXCEL_ENGINES[_suffix(path)]
    sheets = pd.read_excel(path, sheet_name=None, header=None, dtype=object, engine=engine)
    return {str(name): _frame_to_matrix(frame) for name, frame in sheets.items()}


def count_non_empty(matrix: Sequence[Sequence[object]]) -> int:
    return sum(1 for row in matrix for value in (row or []) if cell_text(value) != "")


def select_densest_sheet(sheets: Dict[str, Matrix]) -> Optional[str]:
    """Name of the sheet holding the most non-empty cells; the first sheet wins ties."""

    best_name: Optional[str] = None
    best_density = -1
    for name, matrix in sheets.items():
        density = count_non_empty(matrix)
        if density > best_density:
            best_name, best_density = name, density
    return best_name


def detect_header_row(rows: Sequence[Sequence[object]], scan_limit: int = DEFAULT_HEADER_SCAN_LIMIT) -> int:
    """
    Locate the header row by label density.

    Scores each of the first ``scan_limit`` rows by how many cells are
    non-empty and not purely numeric; the highest score wins and earlier
    rows win ties.  Returns ``0`` for an empty matrix.
    """

    header_row = 0
    best_score = -1
    for idx in range(min(scan_limit, len(rows))):
        labels = [cell_text(value) for value in (rows[idx] or [])]
        score = sum(1 for label in labels if label and not _NUMERIC_LABEL.match(label))
        if score > best_score:
            best_score = score
            header_row = idx
    return header_row


def canonical_headers(raw_headers: Sequence[object]) -> List[str]:
    """Lowercase, whitespace-collapse and strip punctuation from headers; suffix duplicates ``_2``, ``_3``."""

    headers: List[str] = []
    seen: Dict[str, int] = {}
    for raw in raw_headers:
        text = cell_text(raw) or "col"
        key = _HEADER_WS.sub(" ", text.lower())
        key = _HEADER_NON_WORD.sub("", key).strip() or "col"
        seen[key] = seen.get(key, 0) + 1
        count = seen[key]
        headers.append(key if count == 1 else f"{key}_{count}")
    return headers


def matrix_to_records(matrix: Matrix, scan_limit: int = DEFAULT_HEADER_SCAN_LIMIT) -> List[Dict[str, object]]:
    if not matrix:
        return []
    header_idx = detect_header_row(matrix, scan_limit)
    headers = canonical_headers(matrix[header_idx] or [])
    records: List[Dict[str, object]] = []
    for row in matrix[header_idx + 1:]:
        row = row or []
        if all(cell_text(value) == "" for value in row):
            continue
        records.append({header: (row[idx] if idx < len(row) else None) for idx, header in enumerate(headers)})
    return records


def _read_densest_matrix(path: Path) -> Matrix:
    sheets = read_workbook_matrices(path)
    sheet_name = select_densest_sheet(sheets)
    if sheet_name is None:
        return []
    logger.debug("Using sheet '%s' from %s", sheet_name, path.name)
    return sheets[sheet_name]


def parse_tabular_file(path: PathLike, *, header_scan_limit: int = DEFAULT_HEADER_SCAN_LIMIT) -> List[Dict[str, object]]:
    """
    Read a supplier price list into row dictionaries.

    Parameters
    ----------
    path:
        CSV, XLSX or XLS file.
    header_scan_limit:
        Number of leading spreadsheet rows considered when locating the header.

    Raises
    ------
    UnsupportedFileType
        When the extension is not one of ``.csv``, ``.xlsx`` or ``.xls``.
    """

    path = Path(path)
    suffix = _check_supported(path)
    if suffix in CSV_SUFFIXES:
        return _read_csv_records(path)
    return matrix_to_records(_read_densest_matrix(path), header_scan_limit)


# ---------------------------------------------------------------------------
# Tender / BOQ files
# ---------------------------------------------------------------------------

def find_hinted_header_row(rows: Sequence[Sequence[object]], min_cols: int = TENDER_MIN_HEADER_CELLS) -> int:
    """First row with ``min_cols`` labels where one contains a known hint; else the first non-empty row."""

    for idx, row in enumerate(rows):
        values = [norm(cell_text(value)) for value in (row or [])]
        values = [value for value in values if value]
        if len(values) >= min_cols and any(hint in value for value in values for hint in TENDER_HEADER_HINTS):
            return idx
    for idx, row in enumerate(rows):
        if any(cell_text(value) for value in (row or [])):
            return idx
    return 0


def guess_column(headers: Sequence[str], candidates: Sequence[str]) -> Optional[int]:
    """Index of the leftmost header containing any of ``candidates``, or ``None``."""

    for idx, header in enumerate(headers):
        if any(candidate in header for candidate in candidates):
            return idx
    return None


def _line_number(value: object, fallback: int) -> Union[int, str]:
    text = cell_text(value)
    if not text:
        return fallback
    return int(text) if text.isdigit() else text


def tender_items_from_matrix(matrix: Matrix) -> List[TenderLineItem]:
    cleaned = [[cell_text(value) for value in (row or [])] for row in (matrix or [])]
    if not cleaned:
        return []
    header_idx = find_hinted_header_row(cleaned)
    headers = [norm(value) for value in cleaned[header_idx]]
    col_desc = guess_column(headers, TENDER_DESCRIPTION_COLUMNS)
    col_qty = guess_column(headers, TENDER_QTY_COLUMNS)
    col_unit = guess_column(headers, TENDER_UNIT_COLUMNS)
    col_line = guess_column(headers, TENDER_LINE_COLUMNS)

    def _cell(row: List[str], col: Optional[int]) -> str:
        if col is None or col >= len(row):
            return ""
        return row[col]

    items: List[TenderLineItem] = []
    for position, row in enumerate(cleaned[header_idx + 1:], start=1):
        description = _cell(row, col_desc)
        if not description:
            continue
        qty = max(0.0, parse_number(_cell(row, col_qty), 0.0))
        items.append(
            TenderLineItem(
                line_no=_line_number(_cell(row, col_line), position),
                description=description,
                qty=qty,
                unit=_cell(row, col_unit),
            )
        )
    return items


def parse_tender_file(path: PathLike) -> List[TenderLineItem]:
    """Read a tender BOQ into unmatched :class:`TenderLineItem` rows."""

    path = Path(path)
    suffix = _check_supported(path)
    matrix = _read_csv_matrix(path) if suffix in CSV_SUFFIXES else _read_densest_matrix(path)
    items = tender_items_from_matrix(matrix)
    logger.debug("Parsed %d tender lines from %s", len(items), path.name)
    return items


__all__ = [
    "parse_tabular_file",
    "parse_tender_file",
    "read_workbook_matrices",
    "select_densest_sheet",
    "detect_header_row",
    "canonical_headers",
    "matrix_to_records",
    "find_hinted_header_row",
    "guess_column",
    "tender_items_from_matrix",
    "cell_text",
    "count_non_empty",
]
