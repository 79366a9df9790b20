from __future__ import annotations

from pathlib import Path
from typing import List

import pytest

from tenderpricing.catalog import Catalog
from tenderpricing.models import SupplierCatalogRow


@pytest.fixture
def catalog_rows() -> List[SupplierCatalogRow]:
    return [
        SupplierCatalogRow("Acme", "Portland Cement 50kg", 120.0, sku="PC-50001", unit="bag", source_id="acme-cem"),
        SupplierCatalogRow("BuildIt", "Portland Cement 50kg bag", 110.0, sku="BI-50001", unit="bag", source_id="bi-cem"),
        SupplierCatalogRow("Acme", "PVC Pipe 110mm x 6m", 250.0, sku="PVC110", unit="length", source_id="acme-pvc"),
        SupplierCatalogRow("BuildIt", "Steel Rebar Y12 6m", 195.0, sku="Y12-6", unit="ea", source_id="bi-rebar"),
        SupplierCatalogRow("Acme", "Concrete Sand", 300.0, unit="m3", source_id="acme-sand"),
    ]


@pytest.fixture
def catalog(catalog_rows) -> Catalog:
    return Catalog(catalog_rows)


@pytest.fixture
def supplier_csv(tmp_path: Path) -> Path:
    path = tmp_path / "acme_prices.csv"
    path.write_text(
        "Supplier,SKU,Product,Price\n"
        "Acme,PC-50001,Portland Cement 50kg,120\n"
        "Acme,Y12,Steel rebar Y12,\"1,300.00\"\n"
        "Acme,,,55\n",
        encoding="utf-8",
    )
    return path
