from dataclasses import replace
from pathlib import Path

import pytest

from tenderpricing.api import PriceTenderOptions, import_suppliers, price_tender
from tenderpricing.matching import choose_option
from tenderpricing.storage import TenderStore


@pytest.fixture
def tender_csv(tmp_path: Path) -> Path:
    path = tmp_path / "tender.csv"
    path.write_text("Description,Qty,Unit\nCement PC-50001,10,bag\nSite establishment,0,sum\n", encoding="utf-8")
    return path


def test_import_then_price_tender(tmp_path: Path, supplier_csv: Path, tender_csv: Path):
    storage = tmp_path / "store"
    report = import_suppliers([supplier_csv], storage_dir=storage)
    assert len(report.rows) == 2
    assert (storage / "catalog.json").exists()

    result = price_tender(
        PriceTenderOptions(
            tender_file=tender_csv,
            storage_dir=storage,
            target_margin_pct=10,
            output_csv=tmp_path / "priced.csv",
            save_as="Hospital",
        )
    )
    cement = result.state.tender_items[0]
    assert cement.chosen_option().sku == "PC-50001"
    assert cement.suggested_unit_price == 132.0
    assert result.totals.cost == 1200.0
    assert result.csv_path.exists()
    assert [t.id for t in TenderStore.in_directory(storage).list_tenders()] == [result.tender_id]


def test_reprice_saved_tender_keeps_manual_choice(tmp_path: Path, tender_csv: Path):
    storage = tmp_path / "store"
    cheap = tmp_path / "cheap.csv"
    dear = tmp_path / "dear.csv"
    cheap.write_text("Supplier,SKU,Product,Price\nCheapCo,CC-50001,Portland cement,100\n", encoding="utf-8")
    dear.write_text("Supplier,SKU,Product,Price\nDearCo,DC-50001,Portland cement,150\n", encoding="utf-8")
    import_suppliers([cheap, dear], storage_dir=storage)

    first = price_tender(PriceTenderOptions(tender_file=tender_csv, storage_dir=storage, save_as="Job"))
    cement = first.state.tender_items[0]
    assert cement.chosen_option().supplier_name == "CheapCo"

    dear_id = next(o.source_id for o in cement.supplier_options if o.supplier_name == "DearCo")
    store = TenderStore.in_directory(storage)
    items = (choose_option(cement, dear_id),) + first.state.tender_items[1:]
    store.save_tender("Job", replace(first.state, tender_items=items), tender_id=first.tender_id)

    again = price_tender(
        PriceTenderOptions(
            saved_tender_id=first.tender_id,
            storage_dir=storage,
            target_margin_pct=20,
            save_as="Job",
        )
    )
    repriced = again.state.tender_items[0]
    assert repriced.chosen_source_id == dear_id
    assert repriced.suggested_unit_price == 180.0
    assert again.tender_id == first.tender_id
    assert len(store.list_tenders()) == 1


def test_price_tender_needs_a_source(tmp_path: Path):
    with pytest.raises(ValueError):
        price_tender(PriceTenderOptions(storage_dir=tmp_path))
