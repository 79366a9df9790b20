from pathlib import Path

import pandas as pd

from tenderpricing.matching import LineItemMatcher
from tenderpricing.models import TenderLineItem, TenderPricingState
from tenderpricing.pricing import recalculate
from tenderpricing.reporting import EXPORT_COLUMNS, export_tender_csv, make_summary_text, tender_frame


def _priced(catalog):
    matcher = LineItemMatcher(catalog.index())
    items = matcher.match_items(
        [
            TenderLineItem(1, "Cement 50001", qty=10, unit="bag"),
            TenderLineItem(2, "zzzz qqqq", qty=2, unit="ea"),
        ]
    )
    return recalculate(TenderPricingState(tender_items=items, target_margin_pct=10))


def test_export_writes_one_row_per_line(tmp_path: Path, catalog):
    out = export_tender_csv(_priced(catalog), tmp_path / "out" / "tender.csv")
    frame = pd.read_csv(out, keep_default_na=False)
    assert list(frame.columns) == EXPORT_COLUMNS
    assert len(frame) == 2
    first = frame.iloc[0]
    assert first["Supplier"] == "BuildIt"
    assert first["SKU"] == "BI-50001"
    assert first["SuggestedUnitPrice"] == 121.0
    assert first["SuggestedLineTotal"] == 1210.0
    assert frame.iloc[1]["Supplier"] == ""


def test_tender_frame_for_empty_tender_has_columns():
    frame = tender_frame(TenderPricingState())
    assert list(frame.columns) == EXPORT_COLUMNS
    assert frame.empty


def test_summary_mentions_totals_and_unmatched_lines(catalog):
    text = make_summary_text(_priced(catalog), currency="ZAR")
    assert "Tender lines: 2 (1 without a supplier match)" in text
    assert "total price ZAR 1,210.00" in text
    assert "flat margin 10% on cost" in text
