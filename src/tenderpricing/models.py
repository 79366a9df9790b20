from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple, Union

from .normalize import dedup_key

DEFAULT_CURRENCY = "ZAR"


def format_price(price: float) -> str:
    """Numeric string for persistence: ``12`` rather than ``12.0``, otherwise shortest repr."""

    number = float(price)
    if number.is_integer():
        return str(int(number))
    return repr(number)


@dataclass(frozen=True)
class SupplierCatalogRow:
    """One supplier's price for one product."""

    supplier_name: str
    product_name: str
    price: float
    sku: str = ""
    unit: str = ""
    currency: str = DEFAULT_CURRENCY
    source_id: str = ""

    @property
    def key(self) -> str:
        return dedup_key(self.sku, self.product_name)

    def to_payload(self) -> Dict[str, str]:
        """Persistence shape: optional fields omitted, price as a numeric string."""

        payload = {
            "supplierName": self.supplier_name.strip(),
            "productName": self.product_name.strip() or self.sku.strip(),
            "price": format_price(self.price),
        }
        if self.sku.strip():
            payload["sku"] = self.sku.strip()
        if self.unit.strip():
            payload["unit"] = self.unit.strip()
        return payload


@dataclass(frozen=True)
class RecognizedRow:
    """A raw spreadsheet row that conforms to the catalog schema."""

    supplier_name: str
    sku: str
    product_name: str
    unit: str
    price: float


@dataclass(frozen=True)
class RejectedRow:
    """A raw spreadsheet row that could not be mapped; kept only for diagnostics."""

    reason: str
    raw: Tuple[Tuple[str, object], ...] = ()


NormalizedRow = Union[RecognizedRow, RejectedRow]


@dataclass(frozen=True)
class TenderSupplierOption:
    """Candidate catalog row for a tender line (score: lower is better)."""

    supplier_name: str
    price: float
    source_id: str
    score: float
    sku: str = ""
    unit: str = ""

    @classmethod
    def from_row(cls, row: SupplierCatalogRow, score: float) -> "TenderSupplierOption":
        return cls(
            supplier_name=row.supplier_name,
            price=float(row.price),
            source_id=row.source_id,
            score=float(score),
            sku=row.sku,
            unit=row.unit,
        )


@dataclass(frozen=True)
class TenderLineItem:
    """One bill-of-quantities line together with its matches and pricing."""

    line_no: Union[int, str]
    description: str
    qty: float = 0.0
    unit: str = ""
    supplier_options: Tuple[TenderSupplierOption, ...] = ()
    chosen_source_id: Optional[str] = None
    cost_per_unit: Optional[float] = None
    mapped_product_id: Optional[str] = None
    suggested_unit_price: float = 0.0
    suggested_line_total: float = 0.0

    def chosen_option(self) -> Optional[TenderSupplierOption]:
        if not self.chosen_source_id:
            return None
        for option in self.supplier_options:
            if option.source_id == self.chosen_source_id:
                return option
        return None


@dataclass(frozen=True)
class TenderPricingState:
    tender_items: Tuple[TenderLineItem, ...] = ()
    pricing_mode: str = "margin"
    target_margin_pct: float = 0.0
    target_profit_absolute: float = 0.0


@dataclass(frozen=True)
class TenderTotals:
    cost: float
    price: float
    profit: float
    margin_pct: float


@dataclass
class ImportReport:
    """Outcome of a multi-file supplier import."""

    rows: list = field(default_factory=list)
    files_parsed: int = 0
    rows_skipped: int = 0
    failures: Dict[str, str] = field(default_factory=dict)


__all__ = [
    "DEFAULT_CURRENCY",
    "SupplierCatalogRow",
    "RecognizedRow",
    "RejectedRow",
    "NormalizedRow",
    "TenderSupplierOption",
    "TenderLineItem",
    "TenderPricingState",
    "TenderTotals",
    "ImportReport",
]
