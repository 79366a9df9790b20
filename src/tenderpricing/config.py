from __future__ import annotations

import math
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional


_BOOLEAN_TRUE = {"1", "true", "yes", "on"}

IMPORT_MODE_ALL = "all"
IMPORT_MODE_CHEAPEST = "cheapestOnly"
IMPORT_MODES = (IMPORT_MODE_ALL, IMPORT_MODE_CHEAPEST)

DEFAULT_FUZZY_THRESHOLD = 0.55
DEFAULT_CANDIDATE_LIMIT = 6
DEFAULT_HEADER_SCAN_LIMIT = 80


@dataclass(frozen=True)
class Config:
    """Runtime configuration assembled from environment variables and CLI options."""

    base_dir: Path
    storage_dir: Path
    fuzzy_threshold: float = DEFAULT_FUZZY_THRESHOLD
    candidate_limit: int = DEFAULT_CANDIDATE_LIMIT
    header_scan_limit: int = DEFAULT_HEADER_SCAN_LIMIT
    import_mode: str = IMPORT_MODE_ALL
    default_margin_pct: float = 0.0
    currency: str = "ZAR"
    verbose: bool = False

    @property
    def catalog_path(self) -> Path:
        return self.storage_dir / "catalog.json"

    @property
    def tenders_path(self) -> Path:
        return self.storage_dir / "tenders.json"


def _text(value: object | None) -> str:
    return "" if value is None else str(value).strip()


def _to_path(value: object | None) -> Optional[Path]:
    text = _text(value)
    return Path(text).expanduser().resolve() if text else None


def _to_float(value: object | None) -> Optional[float]:
    """Parse ``"15%"`` or ``"1,000"`` style settings; blanks, junk and non-finite values give ``None``."""

    text = _text(value).rstrip("%").replace(",", "")
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def _to_count(value: object | None) -> Optional[int]:
    number = _to_float(value)
    if number is None or number < 1:
        return None
    return int(number)


def _flag(value: object | None) -> bool:
    if isinstance(value, bool):
        return value
    return _text(value).lower() in _BOOLEAN_TRUE


def _import_mode(value: object | None) -> Optional[str]:
    text = _text(value).lower().replace("-", "").replace("_", "")
    if text in {"cheapest", "cheapestonly"}:
        return IMPORT_MODE_CHEAPEST
    if text == IMPORT_MODE_ALL:
        return IMPORT_MODE_ALL
    return None


def _threshold(value: object | None) -> float:
    number = _to_float(value)
    if number is None or not 0.0 < number <= 1.0:
        return DEFAULT_FUZZY_THRESHOLD
    return number


def _cli_option(cli_args: object | None, name: str) -> object | None:
    return getattr(cli_args, name, None) if cli_args is not None else None


def load_config(env: Mapping[str, str], cli_args: object | None = None) -> Config:
    """Build a runtime :class:`Config` from environment variables, then apply CLI overrides."""

    base_dir = Path(__file__).resolve().parents[2]

    storage_dir = (
        _to_path(_cli_option(cli_args, "storage_dir"))
        or _to_path(env.get("TENDER_STORAGE_DIR"))
        or (base_dir / "data").resolve()
    )
    import_mode = _import_mode(env.get("SUPPLIER_IMPORT_MODE")) or IMPORT_MODE_ALL
    if _flag(_cli_option(cli_args, "cheapest_only")):
        import_mode = IMPORT_MODE_CHEAPEST
    candidate_limit = (
        _to_count(_cli_option(cli_args, "limit"))
        or _to_count(env.get("CANDIDATE_LIMIT"))
        or DEFAULT_CANDIDATE_LIMIT
    )

    return Config(
        base_dir=base_dir,
        storage_dir=storage_dir,
        fuzzy_threshold=_threshold(env.get("FUZZY_THRESHOLD")),
        candidate_limit=candidate_limit,
        header_scan_limit=_to_count(env.get("HEADER_SCAN_LIMIT")) or DEFAULT_HEADER_SCAN_LIMIT,
        import_mode=import_mode,
        default_margin_pct=_to_float(env.get("DEFAULT_MARGIN_PCT")) or 0.0,
        currency=_text(env.get("DEFAULT_CURRENCY")).upper() or "ZAR",
        verbose=_flag(_cli_option(cli_args, "verbose")) or _flag(env.get("TENDER_VERBOSE")),
    )


__all__ = [
    "Config",
    "load_config",
    "IMPORT_MODE_ALL",
    "IMPORT_MODE_CHEAPEST",
    "IMPORT_MODES",
    "DEFAULT_FUZZY_THRESHOLD",
    "DEFAULT_CANDIDATE_LIMIT",
    "DEFAULT_HEADER_SCAN_LIMIT",
]
