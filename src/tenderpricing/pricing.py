from __future__ import annotations

from dataclasses import replace
from typing import List, Mapping, Optional, Sequence

from .models import TenderLineItem, TenderPricingState, TenderTotals
from .normalize import parse_number

# Pricing modes. Anything other than TARGET_PROFIT prices by margin.
MARGIN = "margin"
TARGET_PROFIT = "targetProfit"
PRICING_MODES = (MARGIN, TARGET_PROFIT)

_MODE_ALIASES = {
    "margin": MARGIN,
    "targetprofit": TARGET_PROFIT,
    "target-profit": TARGET_PROFIT,
    "target_profit": TARGET_PROFIT,
    "profit": TARGET_PROFIT,
}


def normalize_mode(value: object) -> str:
    key = str(value or "").strip().lower()
    mode = _MODE_ALIASES.get(key)
    if mode is None:
        raise ValueError(f"Unknown pricing mode '{value}'. Use one of: {', '.join(PRICING_MODES)}")
    return mode


def round_money(value: float) -> float:
    return round(float(value), 2)


def _number(value: object) -> float:
    return parse_number(value, 0.0)


def resolve_cost(item: TenderLineItem, products: Optional[Mapping[str, object]] = None) -> float:
    """
    Cost per unit for ``item``.

    A positive ``cost_per_unit`` (chosen supplier or manual override) wins;
    otherwise the cost of the directly mapped product is used.
    """

    cost = _number(item.cost_per_unit)
    if cost <= 0 and item.mapped_product_id is not None and products:
        product = products.get(str(item.mapped_product_id))
        if isinstance(product, Mapping):
            cost = _number(product.get("cost_per_unit", product.get("costPerUnit")))
        elif product is not None:
            cost = _number(getattr(product, "cost_per_unit", product))
    return cost


def recalculate(
    state: TenderPricingState,
    products: Optional[Mapping[str, object]] = None,
) -> TenderPricingState:
    """
    Return a new state with suggested unit prices and line totals on every line.

    Margin mode marks each cost up by ``target_margin_pct``.  Target-profit
    mode spreads ``target_profit_absolute`` over the lines in proportion to
    each line's share of the total cost basis (``qty * cost``); a zero
    quantity line divides its allocation by 1.  Prices and totals are
    rounded to cents before they are stored.
    """

    costs = [resolve_cost(item, products) for item in state.tender_items]
    cost_basis = sum(_number(item.qty) * cost for item, cost in zip(state.tender_items, costs))
    margin_pct = _number(state.target_margin_pct)
    target_profit = _number(state.target_profit_absolute)

    priced: List[TenderLineItem] = []
    for item, cost in zip(state.tender_items, costs):
        qty = _number(item.qty)
        if state.pricing_mode == TARGET_PROFIT:
            allocation = target_profit * ((qty * cost) / cost_basis) if cost_basis > 0 else 0.0
            unit_price = cost + allocation / max(1.0, qty)
        else:
            unit_price = cost * (1 + margin_pct / 100.0)
        line_total = unit_price * max(0.0, qty)
        priced.append(
            replace(
                item,
                cost_per_unit=cost,
                suggested_unit_price=round_money(unit_price),
                suggested_line_total=round_money(line_total),
            )
        )
    return replace(state, tender_items=tuple(priced))


def compute_totals(items: Sequence[TenderLineItem]) -> TenderTotals:
    """Aggregate cost, price, profit and margin % from the stored (rounded) line totals."""

    cost = sum(_number(item.cost_per_unit) * _number(item.qty) for item in items)
    price = sum(_number(item.suggested_line_total) for item in items)
    profit = price - cost
    margin_pct = (profit / cost) * 100.0 if cost > 0 else 0.0
    return TenderTotals(
        cost=round_money(cost),
        price=round_money(price),
        profit=round_money(profit),
        margin_pct=round_money(margin_pct),
    )


__all__ = [
    "MARGIN",
    "TARGET_PROFIT",
    "PRICING_MODES",
    "normalize_mode",
    "round_money",
    "resolve_cost",
    "recalculate",
    "compute_totals",
]
