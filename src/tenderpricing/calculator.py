"""
Product-level pricing calculator.

Given a fixed cost (a single figure or an itemised expense list), a product
list with unit costs and expected volumes, and either a target margin or an
absolute profit goal, work out the revenue needed and a suggested price per
product.  Products priced by ``percentage`` take a fixed share of revenue;
``cost-plus`` products absorb the remaining fixed cost and profit in
proportion to their variable cost.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

PERCENTAGE = "percentage"
COST_PLUS = "cost-plus"


@dataclass(frozen=True)
class PricingExpense:
    label: str
    amount: float


@dataclass(frozen=True)
class PricingProduct:
    name: str
    expected_units: int = 0
    cost_per_unit: Optional[float] = None
    revenue_percentage: float = 0.0
    calculation_method: str = COST_PLUS
    id: Optional[str] = None


@dataclass(frozen=True)
class PricingSetup:
    total_cost: float = 0.0
    use_breakdown: bool = False
    expenses: Sequence[PricingExpense] = ()
    use_margin: bool = True
    target_profit: float = 0.0
    target_margin: float = 0.0


@dataclass(frozen=True)
class CalculatedProduct:
    product: PricingProduct
    price: float
    units_needed: int
    total_revenue: float
    profit_per_unit: float
    suggested_profit: float
    profit_margin: float


@dataclass(frozen=True)
class PricingResults:
    actual_cost: float
    total_revenue: float
    calculated_profit: float
    actual_total_revenue: float
    calculated_products: List[CalculatedProduct] = field(default_factory=list)


def _variable_cost(product: PricingProduct) -> float:
    return (product.cost_per_unit or 0.0) * (product.expected_units or 0)


def _share(part: float, whole: float) -> float:
    return part / whole if whole > 0 else 0.0


def calculate_pricing(setup: PricingSetup, products: Sequence[PricingProduct]) -> PricingResults:
    """
    Price ``products`` so the whole range covers fixed and variable cost plus the profit goal.

    Raises
    ------
    ValueError
        If margin pricing is requested with a target margin of 100% or more.
    """

    fixed_cost = sum(exp.amount for exp in setup.expenses) if setup.use_breakdown else float(setup.total_cost)
    margin = setup.target_margin / 100.0
    if setup.use_margin and margin >= 1.0:
        raise ValueError("Target margin must be below 100%")

    total_variable = sum(_variable_cost(p) for p in products)
    if setup.use_margin:
        total_revenue = (fixed_cost + total_variable) / (1.0 - margin)
    else:
        total_revenue = fixed_cost + total_variable + setup.target_profit
    calculated_profit = total_revenue - fixed_cost - total_variable

    percentage_products = [p for p in products if p.calculation_method == PERCENTAGE]
    cost_plus_products = [p for p in products if p.calculation_method != PERCENTAGE]

    variable_cost_plus = sum(_variable_cost(p) for p in cost_plus_products)
    fixed_to_percentage = 0.0
    profit_from_percentage = 0.0
    for product in percentage_products:
        expected_revenue = (product.revenue_percentage or 0.0) / 100.0 * total_revenue
        allocated_fixed = _share(expected_revenue, total_revenue) * fixed_cost
        fixed_to_percentage += allocated_fixed
        profit_from_percentage += expected_revenue - _variable_cost(product) - allocated_fixed
    fixed_to_cost_plus = fixed_cost - fixed_to_percentage
    profit_needed_cost_plus = calculated_profit - profit_from_percentage

    calculated: List[CalculatedProduct] = []
    for product in products:
        units = max(product.expected_units or 0, 1)
        unit_cost = product.cost_per_unit or 0.0
        if product.calculation_method == PERCENTAGE:
            revenue_share = (product.revenue_percentage or 0.0) / 100.0 * total_revenue
            price = round(revenue_share / units, 2)
            revenue = price * units
            allocated_fixed = _share(revenue, total_revenue) * fixed_cost
            profit = revenue - unit_cost * units - allocated_fixed
            profit_margin = (profit / revenue) * 100.0 if revenue > 0 else 0.0
            suggested_profit = profit / units
            profit_per_unit = suggested_profit
            units_needed = math.ceil(revenue_share / price) if price > 0 else 0
        else:
            cost_share = _share(unit_cost * units, variable_cost_plus)
            fixed_share = cost_share * fixed_to_cost_plus
            profit_share = cost_share * profit_needed_cost_plus
            suggested_profit = fixed_share / units + profit_share / units
            price = round(unit_cost + suggested_profit, 2)
            revenue = price * units
            total_cost = unit_cost * units + fixed_share
            profit_margin = ((revenue - total_cost) / revenue) * 100.0 if revenue > 0 else 0.0
            profit_per_unit = price - unit_cost
            units_needed = product.expected_units or 0
        calculated.append(
            CalculatedProduct(
                product=product,
                price=price,
                units_needed=units_needed,
                total_revenue=revenue,
                profit_per_unit=profit_per_unit,
                suggested_profit=suggested_profit,
                profit_margin=profit_margin,
            )
        )

    return PricingResults(
        actual_cost=fixed_cost,
        total_revenue=total_revenue,
        calculated_profit=calculated_profit,
        actual_total_revenue=sum(item.total_revenue for item in calculated),
        calculated_products=calculated,
    )


__all__ = [
    "PERCENTAGE",
    "COST_PLUS",
    "PricingExpense",
    "PricingProduct",
    "PricingSetup",
    "CalculatedProduct",
    "PricingResults",
    "calculate_pricing",
]
