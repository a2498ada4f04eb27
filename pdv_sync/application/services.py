"""
Service factory functions for dependency injection.

Wires infrastructure implementations to the core services. Use cases and
the API import from here.
"""

from typing import TYPE_CHECKING

from pdv_sync.config import get_settings
from pdv_sync.core.services import FiscalDocumentBuilder, SyncWorker, TaxEngine

if TYPE_CHECKING:
    from pdv_sync.core.interfaces import (
        IConnectivityProbe,
        IOutboxStore,
        ITransmissionClient,
    )


# Singleton service instances
_document_builder: FiscalDocumentBuilder | None = None
_sync_worker: SyncWorker | None = None
_tax_engine: TaxEngine | None = None


def get_document_builder() -> FiscalDocumentBuilder:
    """Get or create the NFC-e builder configured for this terminal."""
    global _document_builder

    if _document_builder is None:
        fiscal = get_settings().fiscal
        _document_builder = FiscalDocumentBuilder(
            uf_code=fiscal.uf_code,
            series=fiscal.series,
            environment=fiscal.environment,
            issuer_cnpj=fiscal.issuer_cnpj,
            software_version=fiscal.software_version,
            signing_key=fiscal.signing_key,
            contingency_reason=fiscal.contingency_reason,
            nature_of_operation=fiscal.nature_of_operation,
            qr_code_url=fiscal.qr_code_url,
            csc_id=fiscal.csc_id,
            csc=fiscal.csc,
        )
    return _document_builder


def get_tax_engine() -> TaxEngine:
    """Get or create the tax engine (evaluated against the current date)."""
    global _tax_engine

    if _tax_engine is None:
        fiscal = get_settings().fiscal
        _tax_engine = TaxEngine(
            default_ibs_rate=fiscal.default_ibs_rate,
            default_cbs_rate=fiscal.default_cbs_rate,
        )
    return _tax_engine


async def get_sync_worker(
    outbox_store: "IOutboxStore | None" = None,
    probe: "IConnectivityProbe | None" = None,
    client: "ITransmissionClient | None" = None,
) -> SyncWorker:
    """
    Get or create the sync worker.

    Creates infrastructure dependencies if not provided. Passing any
    override builds a fresh worker and replaces the singleton.

    Args:
        outbox_store: Optional outbox store override
        probe: Optional connectivity probe override
        client: Optional transmission client override

    Returns:
        Configured SyncWorker (not started)
    """
    global _sync_worker

    overridden = any(dep is not None for dep in (outbox_store, probe, client))
    if _sync_worker is not None and not overridden:
        return _sync_worker

    # Lazy import infrastructure to avoid circular imports
    from pdv_sync.infrastructure.network import (
        get_connectivity_probe,
        get_transmission_client,
    )
    from pdv_sync.infrastructure.storage.sqlite import get_outbox_store

    sync = get_settings().sync
    _sync_worker = SyncWorker(
        outbox_store=outbox_store or await get_outbox_store(),
        probe=probe or get_connectivity_probe(),
        client=client or get_transmission_client(),
        interval_seconds=sync.interval_seconds,
        batch_size=sync.batch_size,
        probe_timeout=sync.probe_timeout,
        transmit_timeout=sync.transmit_timeout,
    )
    return _sync_worker


def get_running_sync_worker() -> SyncWorker | None:
    """The worker if its timer is armed, else None."""
    if _sync_worker is not None and _sync_worker.is_running:
        return _sync_worker
    return None


def reset_services() -> None:
    """Reset all singleton services (for testing)."""
    global _document_builder, _sync_worker, _tax_engine
    _document_builder = None
    _tax_engine = None
    _sync_worker = None
