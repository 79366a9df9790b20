from __future__ import annotations

from pathlib import Path
from typing import Union

import pandas as pd

from .models import TenderPricingState
from .pricing import TARGET_PROFIT, compute_totals

EXPORT_COLUMNS = [
    "Line",
    "Description",
    "Unit",
    "Qty",
    "Supplier",
    "SKU",
    "CostPerUnit",
    "SuggestedUnitPrice",
    "SuggestedLineTotal",
]


def tender_frame(state: TenderPricingState) -> pd.DataFrame:
    records = []
    for item in state.tender_items:
        option = item.chosen_option()
        records.append(
            {
                "Line": item.line_no,
                "Description": item.description,
                "Unit": item.unit,
                "Qty": float(item.qty or 0.0),
                "Supplier": option.supplier_name if option else "",
                "SKU": option.sku if option else "",
                "CostPerUnit": float(item.cost_per_unit or 0.0),
                "SuggestedUnitPrice": float(item.suggested_unit_price or 0.0),
                "SuggestedLineTotal": float(item.suggested_line_total or 0.0),
            }
        )
    return pd.DataFrame.from_records(records, columns=EXPORT_COLUMNS)


def export_tender_csv(state: TenderPricingState, path: Union[str, Path]) -> Path:
    """Write the priced tender to ``path`` (one row per line, supplier from the chosen option)."""

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tender_frame(state).to_csv(path, index=False)
    return path


def make_summary_text(state: TenderPricingState, currency: str = "ZAR") -> str:
    totals = compute_totals(state.tender_items)
    frame = tender_frame(state)
    unmatched = sum(1 for item in state.tender_items if not item.supplier_options)
    top = frame.sort_values("SuggestedLineTotal", ascending=False).head(5)[
        ["Line", "Description", "Qty", "SuggestedUnitPrice", "SuggestedLineTotal"]
    ]
    if state.pricing_mode == TARGET_PROFIT:
        policy = f"target profit {currency} {state.target_profit_absolute:,.2f} allocated by cost share"
    else:
        policy = f"flat margin {state.target_margin_pct:g}% on cost"
    return (
        f"Tender lines: {len(state.tender_items)} ({unmatched} without a supplier match).\n"
        f"Total cost {currency} {totals.cost:,.2f}; total price {currency} {totals.price:,.2f}; "
        f"profit {currency} {totals.profit:,.2f} ({totals.margin_pct:.2f}% on cost).\n"
        f"Pricing policy: {policy}.\n"
        f"Largest lines:\n{top.to_string(index=False)}\n"
    )


__all__ = ["EXPORT_COLUMNS", "tender_frame", "export_tender_csv", "make_summary_text"]
