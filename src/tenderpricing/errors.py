"""Exceptions raised by the supplier import and tender pricing pipeline."""

from __future__ import annotations

from typing import Dict, Optional


class TenderPricingError(Exception):
    """Base class for errors surfaced to callers of :mod:`tenderpricing`."""


class UnsupportedFileType(TenderPricingError, ValueError):
    """Raised when an uploaded file is neither CSV nor an Excel workbook."""

    def __init__(self, extension: str, filename: str = "") -> None:
        self.extension = extension or "(none)"
        self.filename = filename
        label = f" for {filename}" if filename else ""
        super().__init__(
            f"Unsupported file type '{self.extension}'{label}. Please upload CSV or XLSX/XLS."
        )


class NoValidRows(TenderPricingError, ValueError):
    """Raised when an entire import produced zero usable rows."""

    def __init__(self, message: str = "No valid rows to import after cleaning.",
                 failures: Optional[Dict[str, str]] = None) -> None:
        self.failures = dict(failures or {})
        detail = ""
        if self.failures:
            detail = "\n" + "\n".join(f"- {name}: {reason}" for name, reason in self.failures.items())
        super().__init__(message + detail)


class TenderNotFound(TenderPricingError, KeyError):
    """Raised when a saved tender id cannot be resolved."""

    def __init__(self, tender_id: str) -> None:
        self.tender_id = tender_id
        super().__init__(f"Tender not found: {tender_id}")

    def __str__(self) -> str:
        return self.args[0]


__all__ = ["TenderPricingError", "UnsupportedFileType", "NoValidRows", "TenderNotFound"]
