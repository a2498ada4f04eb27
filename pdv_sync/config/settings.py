"""
Application settings with Pydantic v2 validation.

Loads configuration from environment variables with sensible defaults.
"""

from pathlib import Path
from typing import Any, Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class StorageSettings(BaseSettings):
    """Storage configuration."""

    model_config = SettingsConfigDict(env_prefix="STORAGE_")

    data_dir: Path = Path("data")
    db_name: str = "pdv.db"

    # SQLite settings
    pool_size: int = 5
    busy_timeout: int = 30000  # ms

    @property
    def db_path(self) -> Path:
        return self.data_dir / self.db_name


class FiscalSettings(BaseSettings):
    """NFC-e emission configuration."""

    model_config = SettingsConfigDict(env_prefix="FISCAL_")

    uf_code: int = 35  # SP
    series: int = 1
    environment: Literal[1, 2] = 2  # 1 = produção, 2 = homologação
    issuer_cnpj: str = "00000000000191"
    software_version: str = "PDV_SYNC_1.0"
    nature_of_operation: str = "VENDA"

    # Stub for the A1 certificate private key
    signing_key: str = "dev-signing-key"
    contingency_reason: str = "SEM CONEXAO COM A SEFAZ - EMISSAO EM CONTINGENCIA"

    # Consumer QR code (CSC token issued by the state tax authority)
    qr_code_url: str = "https://www.homologacao.nfce.fazenda.sp.gov.br/qrcode"
    csc_id: str = "000001"
    csc: str = "dev-csc-token"

    # Tax reform defaults for items registered without IBS/CBS rates
    default_ibs_rate: float = 0.1
    default_cbs_rate: float = 0.9


class SyncSettings(BaseSettings):
    """Outbox synchronization worker configuration."""

    model_config = SettingsConfigDict(env_prefix="SYNC_")

    enabled: bool = True
    interval_seconds: float = 5.0
    batch_size: int = 10

    # Connectivity probe
    probe_url: str = "https://www.google.com"
    probe_timeout: float = 2.0

    # Transmission
    transmission_provider: Literal["simulated", "http"] = "simulated"
    relay_url: str = "http://localhost:8080/nfce"
    transmit_timeout: float = 10.0

    # Kick the worker right after a sale is committed
    nudge_after_commit: bool = True


class SalesSettings(BaseSettings):
    """Checkout write-path configuration."""

    model_config = SettingsConfigDict(env_prefix="SALES_")

    # Report a MOCK-<ts> sale id when the database is unreachable.
    # Ignored in production.
    mock_on_storage_unavailable: bool = False


class APISettings(BaseSettings):
    """API server configuration."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    cors_origins: list[str] = ["*"]


class Settings(BaseSettings):
    """Main application settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app_name: str = "PDV Fiscal Sync"
    app_version: str = "1.0.0"
    environment: Literal["development", "staging", "production"] = "development"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    # Sub-settings
    storage: StorageSettings = Field(default_factory=StorageSettings)
    fiscal: FiscalSettings = Field(default_factory=FiscalSettings)
    sync: SyncSettings = Field(default_factory=SyncSettings)
    sales: SalesSettings = Field(default_factory=SalesSettings)
    api: APISettings = Field(default_factory=APISettings)

    @field_validator("storage", mode="before")
    @classmethod
    def ensure_data_dir(cls, v: Any) -> StorageSettings:
        if isinstance(v, dict):
            settings = StorageSettings(**v)
        else:
            settings = v or StorageSettings()
        settings.data_dir.mkdir(parents=True, exist_ok=True)
        return settings

    @property
    def degraded_mode_allowed(self) -> bool:
        """Whether a storage outage may be reported as a mocked sale."""
        return self.sales.mock_on_storage_unavailable and self.environment != "production"


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings (for testing)."""
    global _settings
    _settings = None
