from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Dict, Optional, Sequence

from .config import IMPORT_MODE_CHEAPEST, Config, load_config
from .matching import LineItemMatcher
from .models import ImportReport, TenderPricingState, TenderTotals
from .pricing import MARGIN, compute_totals, normalize_mode, recalculate
from .reporting import export_tender_csv
from .storage import TenderStore
from .tabular_io import parse_tender_file

logger = logging.getLogger(__name__)


@dataclass
class PriceTenderOptions:
    tender_file: Optional[Path] = None
    saved_tender_id: Optional[str] = None
    supplier_files: Sequence[Path] = ()
    supplier_name: str = ""
    cheapest_only: bool = False
    storage_dir: Optional[Path] = None
    pricing_mode: str = MARGIN
    target_margin_pct: Optional[float] = None
    target_profit_absolute: float = 0.0
    output_csv: Optional[Path] = None
    save_as: Optional[str] = None


@dataclass
class PriceTenderResult:
    state: TenderPricingState
    totals: TenderTotals
    csv_path: Optional[Path] = None
    tender_id: Optional[str] = None
    import_report: Optional[ImportReport] = None
    artifacts: Dict[str, Path] = field(default_factory=dict)


def _config(storage_dir: Optional[Path]) -> Config:
    env = dict(os.environ)
    if storage_dir:
        env["TENDER_STORAGE_DIR"] = str(storage_dir)
    return load_config(env, None)


def import_suppliers(
    paths: Sequence[Path],
    *,
    storage_dir: Optional[Path] = None,
    supplier_name: str = "",
    cheapest_only: bool = False,
) -> ImportReport:
    """Import supplier price lists into the stored catalog and persist it."""

    cfg = _config(storage_dir)
    store = TenderStore(cfg.catalog_path, cfg.tenders_path)
    catalog = store.load_catalog()
    report = catalog.import_files(
        paths,
        supplier_hint=supplier_name,
        mode=IMPORT_MODE_CHEAPEST if cheapest_only else cfg.import_mode,
        header_scan_limit=cfg.header_scan_limit,
    )
    store.save_catalog(catalog)
    return report


def price_tender(options: PriceTenderOptions) -> PriceTenderResult:
    """
    Match a tender against the stored catalog and compute suggested pricing.

    Either ``tender_file`` (a BOQ upload, matched from scratch) or
    ``saved_tender_id`` (re-matched, keeping each line's previous supplier
    choice when it is still offered) must be given.
    """

    if options.tender_file is None and not options.saved_tender_id:
        raise ValueError("Provide a tender file or a saved tender id")

    cfg = _config(options.storage_dir)
    store = TenderStore(cfg.catalog_path, cfg.tenders_path)
    catalog = store.load_catalog()

    report = None
    if options.supplier_files:
        report = catalog.import_files(
            options.supplier_files,
            supplier_hint=options.supplier_name,
            mode=IMPORT_MODE_CHEAPEST if options.cheapest_only else cfg.import_mode,
            header_scan_limit=cfg.header_scan_limit,
        )
        store.save_catalog(catalog)

    # The index is built only after the catalog is fully loaded and imported.
    matcher = LineItemMatcher(catalog.index(cfg.fuzzy_threshold), limit=cfg.candidate_limit)
    margin_pct = options.target_margin_pct if options.target_margin_pct is not None else cfg.default_margin_pct
    mode = normalize_mode(options.pricing_mode)

    if options.saved_tender_id:
        saved = store.get_tender(options.saved_tender_id)
        state = matcher.rematch_state(saved.to_state())
        state = replace(
            state,
            pricing_mode=mode,
            target_margin_pct=margin_pct,
            target_profit_absolute=options.target_profit_absolute,
        )
    else:
        items = parse_tender_file(options.tender_file)
        state = TenderPricingState(
            tender_items=matcher.match_items(items),
            pricing_mode=mode,
            target_margin_pct=margin_pct,
            target_profit_absolute=options.target_profit_absolute,
        )

    state = recalculate(state)
    totals = compute_totals(state.tender_items)
    unmatched = sum(1 for item in state.tender_items if not item.supplier_options)
    logger.debug("Priced %d tender lines (%d unmatched)", len(state.tender_items), unmatched)
    result = PriceTenderResult(state=state, totals=totals, import_report=report)

    if options.output_csv:
        result.csv_path = export_tender_csv(state, options.output_csv)
        result.artifacts["csv"] = result.csv_path
    if options.save_as:
        stored = store.save_tender(options.save_as, state, tender_id=options.saved_tender_id)
        result.tender_id = stored.id
        result.artifacts["tenders"] = store.tenders_path
    return result


__all__ = ["PriceTenderOptions", "PriceTenderResult", "import_suppliers", "price_tender"]
