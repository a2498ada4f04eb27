"""Fiscal document (NFC-e) entities."""

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict


class EmissionMode(str, Enum):
    """NFC-e emission type (tpEmis)."""

    NORMAL = "NORMAL"
    CONTINGENCY = "CONTINGENCY"

    @property
    def tp_emis(self) -> str:
        return "9" if self is EmissionMode.CONTINGENCY else "1"


class FiscalDocument(BaseModel):
    """
    An unsigned NFC-e.

    emitted_at, document_number and mode are rendered into the XML by the
    builder and are frozen from then on.
    """

    model_config = ConfigDict(frozen=True)

    sale_id: int
    document_number: int
    series: int
    mode: EmissionMode
    emitted_at: datetime
    access_key: str  # 44-digit chave de acesso
    xml: str


class SignedDocument(FiscalDocument):
    """An NFC-e carrying its signature block; this is the outbox payload."""

    digest: str
    signature: str
