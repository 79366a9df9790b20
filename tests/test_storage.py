import json
from pathlib import Path

import pytest

from tenderpricing.catalog import Catalog
from tenderpricing.errors import TenderNotFound
from tenderpricing.models import TenderLineItem, TenderPricingState
from tenderpricing.pricing import TARGET_PROFIT
from tenderpricing.storage import TenderStore


def _priced_state():
    return TenderPricingState(
        tender_items=(
            TenderLineItem(1, "Cement 50001", qty=10, chosen_source_id="bi-cem", cost_per_unit=110.0),
            TenderLineItem(2, "Labour", qty=1, cost_per_unit=None),
        ),
        pricing_mode=TARGET_PROFIT,
        target_profit_absolute=500.0,
    )


def test_catalog_persists_rows_and_ids(tmp_path: Path, catalog: Catalog):
    store = TenderStore.in_directory(tmp_path)
    store.save_catalog(catalog)

    raw = json.loads(store.catalog_path.read_text(encoding="utf-8"))
    assert sorted(raw["catalogs"]) == ["Acme", "BuildIt"]

    loaded = store.load_catalog()
    assert {r.source_id for r in loaded} == {r.source_id for r in catalog}
    assert loaded.get("acme-cem").price == 120.0
    assert loaded.get("acme-cem").sku == "PC-50001"


def test_missing_or_corrupt_files_read_as_empty(tmp_path: Path):
    store = TenderStore.in_directory(tmp_path)
    assert len(store.load_catalog()) == 0
    assert store.list_tenders() == []

    store.catalog_path.write_text("{not json", encoding="utf-8")
    store.tenders_path.write_text("[{", encoding="utf-8")
    assert len(store.load_catalog()) == 0
    assert store.list_tenders() == []


def test_malformed_catalog_items_are_ignored(tmp_path: Path, caplog):
    store = TenderStore.in_directory(tmp_path)
    payload = {
        "catalogs": {
            "Acme": ["oops", 3, None, {"product_name": "Cement", "price": "95.5"}],
            "BuildIt": "not a list",
        }
    }
    store.catalog_path.write_text(json.dumps(payload), encoding="utf-8")

    catalog = store.load_catalog()
    assert [(r.supplier_name, r.product_name, r.price) for r in catalog.rows] == [("Acme", "Cement", 95.5)]
    assert "BuildIt" in caplog.text

    store.catalog_path.write_text(json.dumps({"catalogs": ["Acme"]}), encoding="utf-8")
    assert len(store.load_catalog()) == 0


def test_save_tender_inserts_newest_first_and_updates_in_place(tmp_path: Path):
    store = TenderStore.in_directory(tmp_path)
    first = store.save_tender("Hospital", _priced_state())
    second = store.save_tender("School", _priced_state())
    assert [t.id for t in store.list_tenders()] == [second.id, first.id]

    renamed = store.save_tender("Hospital phase 2", _priced_state(), tender_id=first.id)
    tenders = store.list_tenders()
    assert [t.id for t in tenders] == [second.id, first.id]
    assert tenders[1].name == "Hospital phase 2"
    assert renamed.created_at == first.created_at


def test_saved_tender_restores_choices(tmp_path: Path):
    store = TenderStore.in_directory(tmp_path)
    saved = store.save_tender("Hospital", _priced_state())
    state = store.get_tender(saved.id).to_state()
    assert state.pricing_mode == TARGET_PROFIT
    assert state.target_profit_absolute == 500.0
    first, second = state.tender_items
    assert first.chosen_source_id == "bi-cem"
    assert first.cost_per_unit == 110.0
    assert second.cost_per_unit is None


def test_tender_lookup_and_delete(tmp_path: Path):
    store = TenderStore.in_directory(tmp_path)
    saved = store.save_tender("Hospital", _priced_state())
    with pytest.raises(TenderNotFound):
        store.get_tender("nope")
    assert store.delete_tender(saved.id) is True
    assert store.delete_tender(saved.id) is False
    assert store.list_tenders() == []


def test_tender_needs_a_name(tmp_path: Path):
    store = TenderStore.in_directory(tmp_path)
    with pytest.raises(ValueError):
        store.save_tender("   ", _priced_state())
