import json
import logging
from pathlib import Path

import pandas as pd

from tenderpricing import cli


def _tender(tmp_path: Path) -> Path:
    path = tmp_path / "tender.csv"
    path.write_text("Description,Qty,Unit\nCement PC-50001,10,bag\n", encoding="utf-8")
    return path


def test_import_and_price_end_to_end(tmp_path: Path, supplier_csv: Path, caplog):
    caplog.set_level(logging.INFO)
    storage = tmp_path / "store"

    assert cli.main(["--storage-dir", str(storage), "import-suppliers", str(supplier_csv)]) == 0
    assert "[import:01]" in caplog.text
    catalog = json.loads((storage / "catalog.json").read_text(encoding="utf-8"))
    assert list(catalog["catalogs"]) == ["Acme"]

    out = tmp_path / "priced.csv"
    code = cli.main(
        [
            "--storage-dir", str(storage),
            "price-tender", str(_tender(tmp_path)),
            "--margin", "10",
            "--output", str(out),
            "--save", "Hospital",
        ]
    )
    assert code == 0
    assert "[tender:02] Pricing summary" in caplog.text
    frame = pd.read_csv(out)
    assert frame.loc[0, "SuggestedUnitPrice"] == 132.0

    tenders = json.loads((storage / "tenders.json").read_text(encoding="utf-8"))
    assert [t["name"] for t in tenders] == ["Hospital"]

    caplog.clear()
    assert cli.main(["--storage-dir", str(storage), "list-tenders"]) == 0
    assert "Hospital" in caplog.text
    assert cli.main(["--storage-dir", str(storage), "list-suppliers"]) == 0
    assert "Acme: 2 item(s)" in caplog.text

    assert cli.main(["--storage-dir", str(storage), "delete-tender", tenders[0]["id"]]) == 0
    assert cli.main(["--storage-dir", str(storage), "delete-tender", tenders[0]["id"]]) == 2


def test_unsupported_tender_file_exits_with_error(tmp_path: Path, caplog):
    caplog.set_level(logging.INFO)
    bad = tmp_path / "tender.docx"
    bad.write_text("nope", encoding="utf-8")
    assert cli.main(["--storage-dir", str(tmp_path), "price-tender", str(bad)]) == 2
    assert "Unsupported file type '.docx'" in caplog.text


def test_import_without_valid_rows_exits_with_error(tmp_path: Path, caplog):
    path = tmp_path / "empty.csv"
    path.write_text("Product,Price\nCement,0\n", encoding="utf-8")
    assert cli.main(["--storage-dir", str(tmp_path), "import-suppliers", str(path)]) == 2
    assert "No valid rows" in caplog.text


def test_price_tender_needs_file_or_saved_id(tmp_path: Path):
    assert cli.main(["--storage-dir", str(tmp_path), "price-tender"]) == 2

