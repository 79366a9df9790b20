import pytest

from tenderpricing.calculator import PricingProduct
from tenderpricing.models import TenderLineItem, TenderPricingState
from tenderpricing.pricing import (
    MARGIN,
    TARGET_PROFIT,
    compute_totals,
    normalize_mode,
    recalculate,
    resolve_cost,
)


def _state(items, **kwargs):
    return TenderPricingState(tender_items=tuple(items), **kwargs)


def test_margin_mode_marks_up_cost():
    state = _state([TenderLineItem(1, "Cement", qty=2, cost_per_unit=100.0)], target_margin_pct=20)
    item = recalculate(state).tender_items[0]
    assert item.suggested_unit_price == 120.0
    assert item.suggested_line_total == 240.0


def test_target_profit_is_allocated_by_cost_share():
    state = _state(
        [
            TenderLineItem(1, "A", qty=1, cost_per_unit=100.0),
            TenderLineItem(2, "B", qty=2, cost_per_unit=100.0),
        ],
        pricing_mode=TARGET_PROFIT,
        target_profit_absolute=330,
    )
    first, second = recalculate(state).tender_items
    assert (first.suggested_unit_price, first.suggested_line_total) == (210.0, 210.0)
    assert (second.suggested_unit_price, second.suggested_line_total) == (210.0, 420.0)

    totals = compute_totals(recalculate(state).tender_items)
    assert (totals.cost, totals.price, totals.profit, totals.margin_pct) == (300.0, 630.0, 330.0, 110.0)


def test_target_profit_splits_forty_across_unequal_lines():
    state = _state(
        [
            TenderLineItem(1, "A", qty=1, cost_per_unit=100.0),
            TenderLineItem(2, "B", qty=1, cost_per_unit=300.0),
        ],
        pricing_mode=TARGET_PROFIT,
        target_profit_absolute=40,
    )
    first, second = recalculate(state).tender_items
    assert first.suggested_unit_price == 110.0
    assert second.suggested_unit_price == 330.0
    assert compute_totals((first, second)).profit == 40.0


def test_zero_quantity_lines_price_without_dividing_by_zero():
    state = _state(
        [
            TenderLineItem(1, "A", qty=0, cost_per_unit=50.0),
            TenderLineItem(2, "B", qty=1, cost_per_unit=50.0),
        ],
        pricing_mode=TARGET_PROFIT,
        target_profit_absolute=100,
    )
    zero, one = recalculate(state).tender_items
    assert zero.suggested_unit_price == 50.0
    assert zero.suggested_line_total == 0.0
    assert one.suggested_unit_price == 150.0


def test_zero_cost_basis_yields_cost_prices():
    state = _state([TenderLineItem(1, "Unmatched", qty=3)], pricing_mode=TARGET_PROFIT, target_profit_absolute=500)
    item = recalculate(state).tender_items[0]
    assert item.cost_per_unit == 0.0
    assert item.suggested_line_total == 0.0
    totals = compute_totals([item])
    assert totals.margin_pct == 0.0


def test_recalculate_is_idempotent_and_pure():
    original = _state(
        [TenderLineItem(1, "A", qty=3, cost_per_unit=33.333), TenderLineItem(2, "B", qty=1.5, cost_per_unit=10.0)],
        target_margin_pct=12.5,
    )
    once = recalculate(original)
    assert recalculate(once) == once
    assert original.tender_items[0].suggested_unit_price == 0.0
    assert once.tender_items[0].suggested_unit_price == 37.5


def test_prices_are_rounded_to_cents():
    state = _state([TenderLineItem(1, "A", qty=3, cost_per_unit=33.333)])
    item = recalculate(state).tender_items[0]
    assert item.suggested_unit_price == 33.33
    assert item.suggested_line_total == 100.0


def test_mapped_product_supplies_missing_cost():
    item = TenderLineItem(1, "Bespoke", qty=1, mapped_product_id="p1")
    products = {"p1": {"cost_per_unit": 40.0}, "p2": PricingProduct(name="Other", cost_per_unit=70.0)}
    assert resolve_cost(item, products) == 40.0
    assert resolve_cost(TenderLineItem(2, "x", mapped_product_id="p2"), products) == 70.0
    assert resolve_cost(TenderLineItem(3, "x", cost_per_unit=5.0, mapped_product_id="p1"), products) == 5.0

    priced = recalculate(_state([item], target_margin_pct=50), products).tender_items[0]
    assert priced.cost_per_unit == 40.0
    assert priced.suggested_unit_price == 60.0


def test_normalize_mode_aliases():
    assert normalize_mode("target-profit") == TARGET_PROFIT
    assert normalize_mode("Margin") == MARGIN
    with pytest.raises(ValueError):
        normalize_mode("markup")


def test_totals_of_empty_tender():
    totals = compute_totals([])
    assert (totals.cost, totals.price, totals.profit, totals.margin_pct) == (0.0, 0.0, 0.0, 0.0)
