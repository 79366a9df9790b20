import argparse
import logging
import os
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

from dotenv import load_dotenv

from .api import PriceTenderOptions, import_suppliers, price_tender
from .config import Config
from .config import load_config as load_runtime_config
from .errors import TenderPricingError
from .pricing import MARGIN, TARGET_PROFIT
from .reporting import make_summary_text
from .storage import TenderStore

BASE_DIR = Path(__file__).resolve().parents[2]

load_dotenv(BASE_DIR / ".env")

logger = logging.getLogger(__name__)


class _StageLogger:
    def __init__(self, label: str) -> None:
        self.label = label
        self.counter = 0

    def stage(self, message: str) -> None:
        self.counter += 1
        logger.info("[%s:%02d] %s", self.label, self.counter, message)

    def detail(self, message: str) -> None:
        logger.info("           %s", message)


def _store(cfg: Config) -> TenderStore:
    return TenderStore(cfg.catalog_path, cfg.tenders_path)


def cmd_import_suppliers(args: argparse.Namespace, cfg: Config) -> int:
    log = _StageLogger("import")
    paths = [Path(p).expanduser() for p in args.files]
    log.stage(f"Importing {len(paths)} supplier file(s) into {cfg.catalog_path}")
    report = import_suppliers(
        paths,
        storage_dir=cfg.storage_dir,
        supplier_name=args.supplier_name or "",
        cheapest_only=args.cheapest_only,
    )
    log.stage("Import summary")
    log.detail(f"files parsed: {report.files_parsed}")
    log.detail(f"rows imported: {len(report.rows)}")
    log.detail(f"rows skipped: {report.rows_skipped}")
    for name, reason in report.failures.items():
        logger.warning("           failed: %s (%s)", name, reason)
    return 0


def cmd_list_suppliers(args: argparse.Namespace, cfg: Config) -> int:
    catalog = _store(cfg).load_catalog()
    grouped = catalog.by_supplier()
    if not grouped:
        logger.info("Catalog is empty (%s)", cfg.catalog_path)
        return 0
    for supplier in catalog.suppliers():
        logger.info("%s: %d item(s)", supplier, len(grouped.get(supplier, [])))
    return 0


def cmd_price_tender(args: argparse.Namespace, cfg: Config) -> int:
    if not args.file and not args.saved:
        raise TenderPricingError("Provide a tender file or --saved ID")
    log = _StageLogger("tender")
    source = args.file or f"saved tender {args.saved}"
    log.stage(f"Matching {source} against {cfg.catalog_path}")
    options = PriceTenderOptions(
        tender_file=Path(args.file).expanduser() if args.file else None,
        saved_tender_id=args.saved,
        storage_dir=cfg.storage_dir,
        pricing_mode=args.mode,
        target_margin_pct=args.margin,
        target_profit_absolute=args.target_profit or 0.0,
        output_csv=Path(args.output).expanduser() if args.output else None,
        save_as=args.save,
    )
    result = price_tender(options)
    log.stage("Pricing summary")
    for line in make_summary_text(result.state, cfg.currency).splitlines():
        log.detail(line)
    if result.artifacts:
        log.stage("Outputs written")
        for label, path in result.artifacts.items():
            log.detail(f"{label}: {path}")
    if result.tender_id:
        log.detail(f"saved tender id: {result.tender_id}")
    return 0


def cmd_list_tenders(args: argparse.Namespace, cfg: Config) -> int:
    tenders = _store(cfg).list_tenders()
    if not tenders:
        logger.info("No saved tenders (%s)", cfg.tenders_path)
        return 0
    for tender in tenders:
        logger.info("%s  %s  (%d lines, updated %s)", tender.id, tender.name, len(tender.items), tender.updated_at)
    return 0


def cmd_delete_tender(args: argparse.Namespace, cfg: Config) -> int:
    if not _store(cfg).delete_tender(args.tender_id):
        logger.error("Tender not found: %s", args.tender_id)
        return 2
    logger.info("Deleted tender %s", args.tender_id)
    return 0


COMMANDS: Dict[str, Callable[[argparse.Namespace, Config], int]] = {
    "import-suppliers": cmd_import_suppliers,
    "list-suppliers": cmd_list_suppliers,
    "price-tender": cmd_price_tender,
    "list-tenders": cmd_list_tenders,
    "delete-tender": cmd_delete_tender,
}


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Import supplier price lists and price tender bills of quantities")
    parser.add_argument("--storage-dir", help="Directory holding catalog.json and tenders.json")
    parser.add_argument("-v", "--verbose", action="store_true", help="Increase logging verbosity")
    sub = parser.add_subparsers(dest="command", required=True)

    imp = sub.add_parser("import-suppliers", help="Import CSV/XLSX/XLS supplier price lists")
    imp.add_argument("files", nargs="+", help="Supplier files to import")
    imp.add_argument("--supplier-name", help="Supplier for rows without a supplier column")
    imp.add_argument("--cheapest-only", action="store_true", help="Keep only the cheapest offer per product")

    sub.add_parser("list-suppliers", help="List suppliers in the stored catalog")

    price = sub.add_parser("price-tender", help="Match a tender against the catalog and price it")
    price.add_argument("file", nargs="?", help="Tender BOQ (CSV/XLSX/XLS)")
    price.add_argument("--saved", help="Re-price a saved tender by id instead of reading a file")
    price.add_argument("--mode", choices=(MARGIN, TARGET_PROFIT), default=MARGIN, help="Pricing mode")
    price.add_argument("--margin", type=float, help="Target margin percent on cost (margin mode)")
    price.add_argument("--target-profit", type=float, help="Absolute profit to allocate (targetProfit mode)")
    price.add_argument("--output", help="Write the priced tender to this CSV path")
    price.add_argument("--save", metavar="NAME", help="Save the priced tender under NAME")

    sub.add_parser("list-tenders", help="List saved tenders")

    delete = sub.add_parser("delete-tender", help="Delete a saved tender")
    delete.add_argument("tender_id", help="Saved tender id")
    return parser.parse_args(argv)


def run(args: argparse.Namespace, runtime_config: Optional[Config] = None) -> int:
    cfg = runtime_config or load_runtime_config(os.environ, args)
    if not logging.getLogger().handlers:
        logging.basicConfig(level=logging.INFO, format="%(message)s")
    return COMMANDS[args.command](args, cfg)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    runtime_cfg = load_runtime_config(os.environ, args)
    log_level = logging.DEBUG if runtime_cfg.verbose else logging.INFO
    logging.basicConfig(level=log_level, format="%(message)s")
    try:
        return run(args, runtime_config=runtime_cfg)
    except TenderPricingError as exc:
        logger.error("%s", exc)
        return 2
    except Exception:  # pragma: no cover
        logger.exception("Fatal error during tender pricing")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
