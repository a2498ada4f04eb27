"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator, Generator
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest

from pdv_sync.application.services import reset_services
from pdv_sync.config import reset_settings
from pdv_sync.core.entities import PaymentMethod, Sale, SaleItem, TaxTotals
from pdv_sync.core.services import FiscalDocumentBuilder
from pdv_sync.infrastructure.storage.sqlite import reset_stores
from pdv_sync.infrastructure.storage.sqlite.migrations import migrate


@pytest.fixture(autouse=True)
def reset_singletons() -> Generator[None, None, None]:
    """Isolate cached settings, stores and services between tests."""
    yield
    reset_services()
    reset_stores()
    reset_settings()


@pytest.fixture
def builder() -> FiscalDocumentBuilder:
    """Document builder with test fiscal settings."""
    return FiscalDocumentBuilder(
        uf_code=35,
        series=1,
        environment=2,
        issuer_cnpj="11222333000181",
        software_version="PDV_SYNC_TEST",
        signing_key="test-signing-key",
        contingency_reason="SEM CONEXAO COM A SEFAZ - EMISSAO EM CONTINGENCIA",
        qr_code_url="https://nfce.example.gov.br/qrcode",
        csc_id="000001",
        csc="test-csc",
    )


@pytest.fixture
def sample_sale() -> Sale:
    """The 42.50 pix sale used across the suite (not yet committed)."""
    return Sale(
        total=42.50,
        payment_method=PaymentMethod.PIX,
        tax_totals=TaxTotals(icms=7.65, ibs=0.42, cbs=0.38),
        items=[
            SaleItem(description="Cafe torrado 500g", quantity=1, unit_price=25.00),
            SaleItem(description="Pao de queijo", quantity=5, unit_price=3.50),
        ],
        created_at=datetime(2024, 3, 15, 14, 30, 5, tzinfo=UTC),
    )


@pytest.fixture
def committed_sale(sample_sale: Sale) -> Sale:
    """sample_sale as it looks once the store assigned ids and a number."""
    return sample_sale.model_copy(
        update={
            "id": 123,
            "document_number": 7,
            "items": [
                item.model_copy(update={"id": i, "sale_id": 123})
                for i, item in enumerate(sample_sale.items, start=1)
            ],
        }
    )


@pytest.fixture
async def migrated_db(tmp_path: Path) -> Path:
    """Temporary database migrated with the real migrations."""
    db_path = tmp_path / "pdv_test.db"
    assert await migrate(db_path) == ["001"]
    return db_path


@pytest.fixture
def mock_settings(migrated_db: Path) -> MagicMock:
    """Mock settings pointing the pool at the temporary database."""
    mock = MagicMock()
    mock.storage.db_path = migrated_db
    mock.storage.pool_size = 2
    mock.storage.busy_timeout = 5000
    return mock


@pytest.fixture
async def db_pool(mock_settings: MagicMock) -> AsyncGenerator[Path, None]:
    """Route the global connection pool to the temporary database."""
    import pdv_sync.infrastructure.storage.sqlite.connection as conn_module

    conn_module._pool = None
    with patch.object(conn_module, "get_settings", return_value=mock_settings):
        try:
            yield mock_settings.storage.db_path
        finally:
            await conn_module.close_pool()
