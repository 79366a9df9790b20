"""
Supplier catalog: imported price rows plus the edits made to them afterwards.

Several suppliers quoting the same product is the normal state of the
catalog, so imports keep every row unless the caller explicitly asks for
the cheapest offer per product.  Every mutation bumps ``revision`` so the
fuzzy index built on top of the catalog is rebuilt rather than reused.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from .columns import coerce_supplier_rows
from .config import DEFAULT_FUZZY_THRESHOLD, DEFAULT_HEADER_SCAN_LIMIT, IMPORT_MODE_ALL, IMPORT_MODE_CHEAPEST
from .errors import NoValidRows
from .matching import FuzzyIndex
from .models import ImportReport, SupplierCatalogRow
from .tabular_io import parse_tabular_file

logger = logging.getLogger(__name__)

UNKNOWN_SUPPLIER = "Unknown Supplier"

PathLike = Union[str, Path]


def new_source_id() -> str:
    return uuid.uuid4().hex[:10]


def dedup_key_for(row: SupplierCatalogRow) -> str:
    return row.key


def collapse_to_cheapest(
    rows: Iterable[SupplierCatalogRow],
    key: Callable[[SupplierCatalogRow], str] = dedup_key_for,
) -> List[SupplierCatalogRow]:
    """Keep one row per ``key``: the lowest price, first seen on ties, in first-seen key order."""

    best: Dict[str, SupplierCatalogRow] = {}
    for row in rows:
        row_key = key(row)
        current = best.get(row_key)
        if current is None or row.price < current.price:
            best[row_key] = row
    return list(best.values())


def _fallback_supplier(path: Path, supplier_hint: str) -> str:
    hint = (supplier_hint or "").strip()
    if hint:
        return hint
    return path.stem.strip() or UNKNOWN_SUPPLIER


def import_supplier_files(
    paths: Sequence[PathLike],
    *,
    supplier_hint: str = "",
    mode: str = IMPORT_MODE_ALL,
    header_scan_limit: int = DEFAULT_HEADER_SCAN_LIMIT,
) -> ImportReport:
    """
    Parse and normalise several supplier files one after another.

    A file that cannot be read, including one with an unsupported
    extension, is recorded in ``ImportReport.failures`` and the remaining
    files are still imported.

    Raises
    ------
    NoValidRows
        If no file produced a single usable row.
    """

    report = ImportReport()
    collected: List[SupplierCatalogRow] = []
    for path in (Path(p) for p in paths):
        try:
            raw_rows = parse_tabular_file(path, header_scan_limit=header_scan_limit)
        except Exception as exc:  # isolate per-file failures
            logger.warning("Failed to parse supplier file %s: %s", path.name, exc)
            report.failures[path.name] = str(exc) or exc.__class__.__name__
            continue
        rows = coerce_supplier_rows(raw_rows, _fallback_supplier(path, supplier_hint))
        report.files_parsed += 1
        report.rows_skipped += len(raw_rows) - len(rows)
        logger.info("%s: %d rows read, %d usable", path.name, len(raw_rows), len(rows))
        collected.extend(rows)

    if mode == IMPORT_MODE_CHEAPEST:
        before = len(collected)
        collected = collapse_to_cheapest(collected)
        logger.info("Collapsed %d rows to %d cheapest offers", before, len(collected))

    if not collected:
        raise NoValidRows(failures=report.failures)
    report.rows = collected
    return report


class Catalog:
    """In-memory supplier catalog with stable row identities."""

    def __init__(self, rows: Iterable[SupplierCatalogRow] = ()) -> None:
        self._rows: List[SupplierCatalogRow] = [self._with_id(row) for row in rows]
        self._revision = 0
        self._index: Optional[FuzzyIndex] = None

    @staticmethod
    def _with_id(row: SupplierCatalogRow) -> SupplierCatalogRow:
        if row.source_id:
            return row
        return replace(row, source_id=new_source_id())

    def _touch(self) -> None:
        self._revision += 1

    @property
    def revision(self) -> int:
        return self._revision

    @property
    def rows(self) -> Tuple[SupplierCatalogRow, ...]:
        return tuple(self._rows)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self):
        return iter(self._rows)

    def get(self, source_id: str) -> Optional[SupplierCatalogRow]:
        for row in self._rows:
            if row.source_id == source_id:
                return row
        return None

    # -- queries ---------------------------------------------------------

    def suppliers(self) -> List[str]:
        return sorted({row.supplier_name for row in self._rows if row.supplier_name}, key=str.lower)

    def by_supplier(self) -> Dict[str, List[SupplierCatalogRow]]:
        grouped: Dict[str, List[SupplierCatalogRow]] = {}
        for row in self._rows:
            grouped.setdefault(row.supplier_name, []).append(row)
        return grouped

    def search(self, text: str = "", supplier: Optional[str] = None) -> List[SupplierCatalogRow]:
        """Case-insensitive substring filter over name, SKU, supplier and unit."""

        needle = (text or "").strip().lower()
        rows = self._rows
        if supplier:
            rows = [row for row in rows if row.supplier_name == supplier]
        if not needle:
            return list(rows)
        out = []
        for row in rows:
            hay = " ".join(part for part in (row.product_name, row.sku, row.supplier_name, row.unit) if part)
            if needle in hay.lower():
                out.append(row)
        return out

    def cheapest_only(self) -> List[SupplierCatalogRow]:
        return collapse_to_cheapest(self._rows)

    def to_persistence_payload(self) -> List[Dict[str, str]]:
        return [row.to_payload() for row in self._rows]

    def index(self, threshold: float = DEFAULT_FUZZY_THRESHOLD) -> FuzzyIndex:
        """Fuzzy index for the current revision; rebuilt after any mutation."""

        index = self._index
        if index is None or index.revision != self._revision or index.threshold != threshold:
            index = FuzzyIndex(self._rows, threshold=threshold, revision=self._revision)
            self._index = index
            logger.debug("Built fuzzy index over %d rows (revision %d)", len(self._rows), self._revision)
        return index

    # -- mutations -------------------------------------------------------

    def add_rows(self, rows: Iterable[SupplierCatalogRow]) -> List[SupplierCatalogRow]:
        added = [self._with_id(row) for row in rows]
        if added:
            self._rows.extend(added)
            self._touch()
        return added

    def import_files(
        self,
        paths: Sequence[PathLike],
        *,
        supplier_hint: str = "",
        mode: str = IMPORT_MODE_ALL,
        header_scan_limit: int = DEFAULT_HEADER_SCAN_LIMIT,
    ) -> ImportReport:
        report = import_supplier_files(
            paths, supplier_hint=supplier_hint, mode=mode, header_scan_limit=header_scan_limit
        )
        report.rows = self.add_rows(report.rows)
        return report

    def merge_upload(self, supplier: str, path: PathLike) -> List[SupplierCatalogRow]:
        """Append a file's rows under ``supplier`` regardless of any supplier column in the file."""

        report = import_supplier_files([path], supplier_hint=supplier)
        return self.add_rows(replace(row, supplier_name=supplier) for row in report.rows)

    def upsert_items(self, supplier: str, items: Iterable[SupplierCatalogRow]) -> List[SupplierCatalogRow]:
        """Replace every row of ``supplier`` with ``items`` (ids are kept when present)."""

        replacement = [self._with_id(replace(item, supplier_name=supplier)) for item in items]
        self._rows = [row for row in self._rows if row.supplier_name != supplier] + replacement
        self._touch()
        return replacement

    def update_item(self, source_id: str, **changes: object) -> Optional[SupplierCatalogRow]:
        for idx, row in enumerate(self._rows):
            if row.source_id == source_id:
                updated = replace(row, **changes)
                self._rows[idx] = replace(updated, source_id=source_id)
                self._touch()
                return self._rows[idx]
        return None

    def delete_item(self, source_id: str) -> bool:
        before = len(self._rows)
        self._rows = [row for row in self._rows if row.source_id != source_id]
        changed = len(self._rows) != before
        if changed:
            self._touch()
        return changed

    def rename_supplier(self, old_name: str, new_name: str) -> int:
        if old_name == new_name:
            return 0
        moved = 0
        for idx, row in enumerate(self._rows):
            if row.supplier_name == old_name:
                self._rows[idx] = replace(row, supplier_name=new_name)
                moved += 1
        if moved:
            self._touch()
        return moved

    def clear(self) -> None:
        if self._rows:
            self._rows = []
            self._touch()


__all__ = [
    "Catalog",
    "UNKNOWN_SUPPLIER",
    "collapse_to_cheapest",
    "dedup_key_for",
    "import_supplier_files",
    "new_source_id",
]
