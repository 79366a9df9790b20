import pytest

from tenderpricing.calculator import (
    COST_PLUS,
    PERCENTAGE,
    PricingExpense,
    PricingProduct,
    PricingSetup,
    calculate_pricing,
)


def test_cost_plus_with_target_margin():
    setup = PricingSetup(total_cost=1000.0, use_margin=True, target_margin=20.0)
    results = calculate_pricing(setup, [PricingProduct(name="Widget", expected_units=100, cost_per_unit=10.0)])
    assert results.total_revenue == pytest.approx(2500.0)
    assert results.calculated_profit == pytest.approx(500.0)
    widget = results.calculated_products[0]
    assert widget.price == 25.0
    assert widget.profit_margin == pytest.approx(20.0)
    assert widget.profit_per_unit == pytest.approx(15.0)


def test_margin_of_one_hundred_percent_is_rejected():
    with pytest.raises(ValueError):
        calculate_pricing(PricingSetup(total_cost=10.0, target_margin=100.0), [])


def test_percentage_and_cost_plus_products_share_the_profit_goal():
    setup = PricingSetup(total_cost=0.0, use_margin=False, target_profit=100.0)
    products = [
        PricingProduct(name="Share", expected_units=10, cost_per_unit=5.0, revenue_percentage=50.0,
                       calculation_method=PERCENTAGE),
        PricingProduct(name="Plus", expected_units=10, cost_per_unit=5.0, calculation_method=COST_PLUS),
    ]
    results = calculate_pricing(setup, products)
    share, plus = results.calculated_products
    assert results.total_revenue == pytest.approx(200.0)
    assert share.price == 10.0
    assert share.profit_margin == pytest.approx(50.0)
    assert share.units_needed == 10
    assert plus.price == 10.0
    assert results.actual_total_revenue == pytest.approx(200.0)


def test_expense_breakdown_replaces_total_cost():
    setup = PricingSetup(
        total_cost=9999.0,
        use_breakdown=True,
        expenses=(PricingExpense("Rent", 300.0), PricingExpense("Wages", 200.0)),
        use_margin=False,
        target_profit=0.0,
    )
    results = calculate_pricing(setup, [PricingProduct(name="Only", expected_units=50, cost_per_unit=2.0)])
    assert results.actual_cost == 500.0
    assert results.calculated_products[0].price == 12.0


def test_products_without_units_or_cost_do_not_divide_by_zero():
    results = calculate_pricing(PricingSetup(total_cost=0.0, use_margin=True, target_margin=10.0),
                                [PricingProduct(name="Empty")])
    empty = results.calculated_products[0]
    assert empty.price == 0.0
    assert empty.profit_margin == 0.0
