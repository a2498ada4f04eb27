"""Tests for the application service singletons."""

from pathlib import Path

import pytest

from pdv_sync.application.services import get_document_builder, get_tax_engine, reset_services


@pytest.fixture(autouse=True)
def fiscal_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("STORAGE_DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("FISCAL_CSC_ID", "000002")
    monkeypatch.setenv("FISCAL_DEFAULT_CBS_RATE", "1.2")


def test_tax_engine_uses_configured_defaults():
    engine = get_tax_engine()

    assert engine is get_tax_engine()
    assert engine.default_cbs_rate == 1.2
    assert engine.default_ibs_rate == 0.1

    reset_services()
    assert get_tax_engine() is not engine


def test_document_builder_carries_qr_settings():
    builder = get_document_builder()

    assert builder.csc_id == "000002"
    assert builder.qr_code_url.endswith("/qrcode")
