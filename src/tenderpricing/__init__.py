"""Supplier price-list import, tender line matching and tender pricing."""

from .catalog import Catalog, collapse_to_cheapest
from .errors import NoValidRows, TenderNotFound, TenderPricingError, UnsupportedFileType
from .matching import FuzzyIndex, LineItemMatcher
from .models import SupplierCatalogRow, TenderLineItem, TenderPricingState, TenderSupplierOption
from .pricing import compute_totals, recalculate
from .storage import TenderStore

__all__ = [
    "Catalog",
    "collapse_to_cheapest",
    "FuzzyIndex",
    "LineItemMatcher",
    "SupplierCatalogRow",
    "TenderLineItem",
    "TenderPricingState",
    "TenderSupplierOption",
    "recalculate",
    "compute_totals",
    "TenderStore",
    "TenderPricingError",
    "UnsupportedFileType",
    "NoValidRows",
    "TenderNotFound",
]
