"""JSON-file persistence for the supplier catalog and saved tenders."""
from __future__ import annotations

import json
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Union

from .catalog import Catalog
from .errors import TenderNotFound
from .models import DEFAULT_CURRENCY, SupplierCatalogRow, TenderLineItem, TenderPricingState
from .pricing import MARGIN, PRICING_MODES

ISO_FORMAT = "%Y-%m-%dT%H:%M:%S%z"
LOGGER = logging.getLogger(__name__)


@dataclass
class StoredTender:
    id: str
    name: str
    created_at: str
    updated_at: str
    pricing_mode: str = MARGIN
    target_margin_pct: float = 0.0
    target_profit_absolute: float = 0.0
    items: List[Dict[str, object]] = field(default_factory=list)

    def to_state(self) -> TenderPricingState:
        """Rebuild an (unmatched, unpriced) pricing state from the saved lines."""

        lines = []
        for idx, raw in enumerate(self.items, start=1):
            cost = raw.get("cost_per_unit")
            lines.append(
                TenderLineItem(
                    line_no=raw.get("line_no", idx),
                    description=str(raw.get("description", "")),
                    qty=float(raw.get("qty") or 0.0),
                    unit=str(raw.get("unit") or ""),
                    chosen_source_id=raw.get("chosen_source_id") or None,
                    cost_per_unit=float(cost) if cost is not None else None,
                )
            )
        mode = self.pricing_mode if self.pricing_mode in PRICING_MODES else MARGIN
        return TenderPricingState(
            tender_items=tuple(lines),
            pricing_mode=mode,
            target_margin_pct=float(self.target_margin_pct or 0.0),
            target_profit_absolute=float(self.target_profit_absolute or 0.0),
        )


def _now() -> str:
    return datetime.now().astimezone().strftime(ISO_FORMAT)


def _read_json(path: Path, fallback):
    if not path.exists():
        return fallback
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except (OSError, ValueError) as exc:
        LOGGER.warning("Ignoring unreadable store %s: %s", path, exc)
        return fallback


def _write_json(path: Path, payload) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w", encoding="utf-8") as f:
        json.dump(payload, f, indent=2, sort_keys=True)


def _item_to_dict(item: TenderLineItem) -> Dict[str, object]:
    return {
        "line_no": item.line_no,
        "description": item.description,
        "unit": item.unit,
        "qty": float(item.qty or 0.0),
        "chosen_source_id": item.chosen_source_id,
        "cost_per_unit": item.cost_per_unit,
    }


@dataclass
class TenderStore:
    catalog_path: Path
    tenders_path: Path

    @classmethod
    def in_directory(cls, directory: Union[str, Path]) -> "TenderStore":
        directory = Path(directory)
        return cls(catalog_path=directory / "catalog.json", tenders_path=directory / "tenders.json")

    # -- catalog ---------------------------------------------------------

    def load_catalog(self) -> Catalog:
        raw = _read_json(self.catalog_path, {})
        suppliers = raw.get("catalogs") if isinstance(raw, Mapping) else None
        if not isinstance(suppliers, Mapping):
            suppliers = {}
        rows: List[SupplierCatalogRow] = []
        for supplier, items in suppliers.items():
            if not isinstance(items, list):
                LOGGER.warning("Ignoring catalog entry for %s: expected a list of items", supplier)
                continue
            for item in items:
                if not isinstance(item, Mapping):
                    LOGGER.warning("Ignoring malformed catalog item for %s: %r", supplier, item)
                    continue
                try:
                    price = float(item.get("price"))
                except (TypeError, ValueError):
                    continue
                rows.append(
                    SupplierCatalogRow(
                        supplier_name=str(item.get("supplier_name") or supplier),
                        product_name=str(item.get("product_name") or ""),
                        price=price,
                        sku=str(item.get("sku") or ""),
                        unit=str(item.get("unit") or ""),
                        currency=str(item.get("currency") or DEFAULT_CURRENCY),
                        source_id=str(item.get("id") or ""),
                    )
                )
        return Catalog(rows)

    def save_catalog(self, catalog: Catalog) -> None:
        grouped: Dict[str, List[Dict[str, object]]] = {}
        for supplier, rows in catalog.by_supplier().items():
            grouped[supplier] = [
                {
                    "id": row.source_id,
                    "supplier_name": row.supplier_name,
                    "sku": row.sku,
                    "product_name": row.product_name,
                    "unit": row.unit,
                    "price": row.price,
                    "currency": row.currency,
                }
                for row in rows
            ]
        _write_json(self.catalog_path, {"catalogs": grouped})

    # -- tenders ---------------------------------------------------------

    def list_tenders(self) -> List[StoredTender]:
        raw = _read_json(self.tenders_path, [])
        if not isinstance(raw, list):
            return []
        tenders = []
        for entry in raw:
            try:
                tenders.append(StoredTender(**entry))
            except TypeError:
                LOGGER.debug("Skipping malformed tender entry: %r", entry)
        return tenders

    def get_tender(self, tender_id: str) -> StoredTender:
        for tender in self.list_tenders():
            if tender.id == tender_id:
                return tender
        raise TenderNotFound(tender_id)

    def save_tender(self, name: str, state: TenderPricingState, tender_id: Optional[str] = None) -> StoredTender:
        """Insert or update a tender; new tenders are listed first."""

        name = (name or "").strip()
        if not name:
            raise ValueError("Give this tender a name before saving.")
        tenders = self.list_tenders()
        now = _now()
        existing = next((t for t in tenders if tender_id and t.id == tender_id), None)
        payload = StoredTender(
            id=tender_id or uuid.uuid4().hex[:10],
            name=name,
            created_at=existing.created_at if existing else now,
            updated_at=now,
            pricing_mode=state.pricing_mode,
            target_margin_pct=float(state.target_margin_pct or 0.0),
            target_profit_absolute=float(state.target_profit_absolute or 0.0),
            items=[_item_to_dict(item) for item in state.tender_items],
        )
        if existing:
            tenders = [payload if t.id == payload.id else t for t in tenders]
        else:
            tenders.insert(0, payload)
        self._write_tenders(tenders)
        return payload

    def delete_tender(self, tender_id: str) -> bool:
        tenders = self.list_tenders()
        remaining = [t for t in tenders if t.id != tender_id]
        if len(remaining) == len(tenders):
            return False
        self._write_tenders(remaining)
        return True

    def _write_tenders(self, tenders: List[StoredTender]) -> None:
        _write_json(self.tenders_path, [tender.__dict__ for tender in tenders])


__all__ = ["TenderStore", "StoredTender", "ISO_FORMAT"]
