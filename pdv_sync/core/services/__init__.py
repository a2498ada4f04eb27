"""
Core business logic services.

Layer-pure services that depend only on:
- pdv_sync/core/entities/*
- pdv_sync/core/interfaces/*
- pdv_sync/core/exceptions.py

NO infrastructure imports. All dependencies injected via constructor.
"""

from pdv_sync.core.services.document_builder import FiscalDocumentBuilder
from pdv_sync.core.services.sync_worker import SyncWorker, TickResult, WorkerState
from pdv_sync.core.services.tax_engine import TaxBreakdown, TaxEngine, TaxRates

__all__ = [
    "FiscalDocumentBuilder",
    "SyncWorker",
    "TaxBreakdown",
    "TaxEngine",
    "TaxRates",
    "TickResult",
    "WorkerState",
]
