"""
Text and money normalisation shared by supplier imports and tender matching.

Supplier price lists arrive with every conceivable number format
("R 1,234.56", "1.234,56", "(500)") and free-text product names.  The
helpers here turn those values into floats and canonical match keys without
ever raising: unparseable money comes back as ``nan`` so callers can filter
rows instead of handling exceptions.
"""

from __future__ import annotations

import math
import re
from typing import List, Optional

_MONEY_STRIP = re.compile(r"[^\d,.\-()]")
_NUMBER_STRIP = re.compile(r"[,\s]")
_FLOAT_PREFIX = re.compile(r"[-+]?(?:\d+(?:\.\d*)?|\.\d+)")
_SINGLE_GROUPED_COMMA = re.compile(r"-?\d+,\d{3}")

_CANON_TIMES = re.compile(r"[×x]")
_CANON_PUNCT = re.compile(r"[*\-_/(),.:;\[\]{}]+")
_WHITESPACE = re.compile(r"\s+")

# ASCII word boundaries: "ABC123456" carries no standalone code.
_CODE_PATTERN = re.compile(r"\b(\d{4,})\b", re.ASCII)


def _leading_float(text: str) -> float:
    match = _FLOAT_PREFIX.match(text)
    if not match:
        return float("nan")
    try:
        number = float(match.group(0))
    except ValueError:  # pragma: no cover - regex guarantees a float literal
        return float("nan")
    return number if math.isfinite(number) else float("nan")


def parse_money(value: object) -> float:
    """
    Parse a currency/number cell into a signed float.

    Returns ``nan`` for ``None``, empty strings and anything without a
    leading number.  Separator handling:

    - ``.`` and ``,`` both present: the rightmost one is the decimal point.
    - only ``,``: decimal comma, unless the commas are thousands groups
      (``1,000`` or ``1,000,000``).
    - only ``.`` or neither: several dots are thousands groups.

    A value wrapped in parentheses is negative.
    """

    if value is None or isinstance(value, bool):
        return float("nan")
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else float("nan")

    text = _MONEY_STRIP.sub("", str(value).strip())
    negative = len(text) >= 2 and text.startswith("(") and text.endswith(")")
    if negative:
        text = text.replace("(", "").replace(")", "")

    has_dot = "." in text
    has_comma = "," in text
    if has_dot and has_comma:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif has_comma:
        if text.count(",") > 1 or _SINGLE_GROUPED_COMMA.fullmatch(text):
            text = text.replace(",", "")
        else:
            text = text.replace(",", ".", 1)
    elif text.count(".") > 1:
        text = text.replace(".", "")

    number = _leading_float(text)
    if math.isnan(number):
        return number
    return -number if negative else number


def parse_number(value: object, default: float = 0.0) -> float:
    """Lenient numeric parse for quantities: drops commas/spaces, falls back to ``default``."""

    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        number = float(value)
        return number if math.isfinite(number) else default
    number = _leading_float(_NUMBER_STRIP.sub("", str(value)))
    return default if math.isnan(number) else number


def is_valid_price(price: Optional[float]) -> bool:
    return price is not None and math.isfinite(price) and price > 0


def canon(value: object) -> str:
    """Canonical match key: lowercase, punctuation and ``x``/``×`` to spaces, whitespace collapsed."""

    text = "" if value is None else str(value)
    text = text.lower()
    text = _CANON_TIMES.sub(" ", text)
    text = _CANON_PUNCT.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def norm(value: object) -> str:
    """Trim, collapse whitespace and lowercase; used for tender header hints."""

    text = "" if value is None else str(value)
    return _WHITESPACE.sub(" ", text.strip()).lower()


def extract_codes(text: str) -> List[str]:
    """Return every standalone run of four or more digits in ``text``."""

    return _CODE_PATTERN.findall(text or "")


def dedup_key(sku: Optional[str], product_name: Optional[str]) -> str:
    """Product identity: ``sku:<sku>`` when a SKU exists, else ``name:<canon(name)>``."""

    sku_text = (sku or "").strip()
    if sku_text:
        return f"sku:{sku_text}"
    return f"name:{canon(product_name)}"


__all__ = [
    "parse_money",
    "parse_number",
    "is_valid_price",
    "canon",
    "norm",
    "extract_codes",
    "dedup_key",
]
