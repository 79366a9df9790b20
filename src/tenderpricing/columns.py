"""
Map arbitrary supplier headers onto the catalog schema.

Each logical field has an ordered tuple of header aliases.  A field is
resolved in two passes over the row: an exact (anchored) alias match on the
canonical header first, then plain containment of the alias text.  The
order of the alias tuples is significant; a header such as "unit price list
date" is claimed by whichever field finds it first.
"""

from __future__ import annotations

import logging
import re
from typing import Dict, Iterable, List, Mapping, Optional, Pattern, Sequence, Tuple

from .models import RecognizedRow, RejectedRow, NormalizedRow, SupplierCatalogRow
from .normalize import canon, is_valid_price, parse_money

logger = logging.getLogger(__name__)


def _patterns(*sources: str) -> Tuple[Pattern[str], ...]:
    return tuple(re.compile(source) for source in sources)


SUPPLIER_KEYS = _patterns(
    r"^supplier$", r"^supplier name$", r"^vendor$", r"^vendor name$", r"^brand$", r"^manufacturer$",
)
SKU_KEYS = _patterns(
    r"^sku$", r"^code$", r"^item code$", r"^product code$", r"^part number$", r"^model$", r"^item$", r"^stock code$",
)
NAME_KEYS = _patterns(
    r"^product$", r"^product name$", r"^description$", r"^item description$", r"^name$", r"^title$", r"^item name$",
)
UNIT_KEYS = _patterns(
    r"^unit$", r"^uom$", r"^unit of measure$", r"^measure$", r"^pack(?: size)?$", r"^size$",
)
PRICE_KEYS = _patterns(
    r"^price$", r"^new(?: price)?$", r"^current(?: price)?$", r"^cost$", r"^amount$", r"^sell(?:ing)? price$",
    r"^list price$", r"^unit price$", r"^std(?:andard)? price$", r"^price zar$", r"^price rand$", r"^zar$", r"^rand$",
)

_ANCHORS = re.compile(r"^\^|\$$")


def _loose_text(pattern: Pattern[str]) -> str:
    return _ANCHORS.sub("", pattern.pattern)


def _is_non_empty(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, float) and value != value:
        return False
    return str(value).strip() != ""


def pick(row: Mapping[str, object], patterns: Sequence[Pattern[str]]) -> Optional[object]:
    """Return the first non-empty value whose header matches ``patterns`` (strict pass, then loose)."""

    entries = [(canon(key), value) for key, value in row.items() if _is_non_empty(value)]
    for header, value in entries:
        if any(pattern.search(header) for pattern in patterns):
            return value
    for header, value in entries:
        if any(_loose_text(pattern) in header for pattern in patterns):
            return value
    return None


def _text(value: object) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def normalize_row(row: Mapping[str, object]) -> NormalizedRow:
    """Classify one raw row as :class:`RecognizedRow` or :class:`RejectedRow`."""

    supplier_name = _text(pick(row, SUPPLIER_KEYS))
    sku = _text(pick(row, SKU_KEYS))
    product_name = _text(pick(row, NAME_KEYS))
    unit = _text(pick(row, UNIT_KEYS))
    price = parse_money(pick(row, PRICE_KEYS))

    raw = tuple((str(key), value) for key, value in row.items())
    if not (sku or product_name):
        return RejectedRow(reason="missing product name and SKU", raw=raw)
    if not is_valid_price(price):
        return RejectedRow(reason="price missing or not positive", raw=raw)
    return RecognizedRow(
        supplier_name=supplier_name,
        sku=sku,
        product_name=product_name,
        unit=unit,
        price=price,
    )


def recognized_rows(rows: Iterable[Mapping[str, object]]) -> Tuple[List[RecognizedRow], List[RejectedRow]]:
    accepted: List[RecognizedRow] = []
    rejected: List[RejectedRow] = []
    for row in rows:
        result = normalize_row(row)
        if isinstance(result, RecognizedRow):
            accepted.append(result)
        else:
            rejected.append(result)
    return accepted, rejected


def coerce_supplier_rows(
    rows: Iterable[Mapping[str, object]],
    fallback_supplier: str = "",
) -> List[SupplierCatalogRow]:
    """
    Normalise raw rows into catalog rows, silently dropping anything unusable.

    ``fallback_supplier`` (typically the upload's file name) fills in rows
    that carry no supplier column.
    """

    accepted, rejected = recognized_rows(rows)
    if rejected:
        reasons: Dict[str, int] = {}
        for item in rejected:
            reasons[item.reason] = reasons.get(item.reason, 0) + 1
        logger.debug("Skipped %d supplier rows: %s", len(rejected), reasons)

    fallback = (fallback_supplier or "").strip()
    return [
        SupplierCatalogRow(
            supplier_name=row.supplier_name or fallback,
            product_name=row.product_name,
            price=row.price,
            sku=row.sku,
            unit=row.unit,
        )
        for row in accepted
    ]


__all__ = [
    "SUPPLIER_KEYS",
    "SKU_KEYS",
    "NAME_KEYS",
    "UNIT_KEYS",
    "PRICE_KEYS",
    "pick",
    "normalize_row",
    "recognized_rows",
    "coerce_supplier_rows",
]
