"""Sale domain entities."""

from datetime import UTC, datetime
from enum import Enum

from pydantic import BaseModel, Field, model_validator

from pdv_sync.core.entities.fiscal_document import EmissionMode


class SaleStatus(str, Enum):
    """Sale lifecycle status. Only COMPLETED is produced at checkout."""

    COMPLETED = "COMPLETED"


class PaymentMethod(str, Enum):
    """Payment methods offered by the checkout."""

    MONEY = "money"
    CHECK = "check"
    CREDIT = "credit"
    DEBIT = "debit"
    PIX = "pix"

    @property
    def tpag_code(self) -> str:
        """NFC-e tPag code for this payment method."""
        return _TPAG_CODES[self]


_TPAG_CODES = {
    PaymentMethod.MONEY: "01",
    PaymentMethod.CHECK: "02",
    PaymentMethod.CREDIT: "03",
    PaymentMethod.DEBIT: "04",
    PaymentMethod.PIX: "17",
}


class TaxTotals(BaseModel):
    """Per-component tax totals (legacy ICMS/PIS/COFINS plus IBS/CBS)."""

    icms: float = Field(default=0.0, ge=0)
    pis: float = Field(default=0.0, ge=0)
    cofins: float = Field(default=0.0, ge=0)
    ibs: float = Field(default=0.0, ge=0)
    cbs: float = Field(default=0.0, ge=0)

    @property
    def total(self) -> float:
        return round(self.icms + self.pis + self.cofins + self.ibs + self.cbs, 2)


class SaleItem(BaseModel):
    """A single line item of a sale."""

    id: int | None = None
    sale_id: int | None = None  # FK → vendas.id
    description: str = Field(..., min_length=1)
    quantity: float = Field(..., gt=0)
    unit_price: float = Field(..., ge=0)
    line_total: float = 0.0  # quantity * unit_price
    icms_value: float = 0.0
    pis_value: float = 0.0
    cofins_value: float = 0.0
    ibs_value: float = 0.0
    cbs_value: float = 0.0

    @model_validator(mode="after")
    def compute_line(self) -> "SaleItem":
        """Compute line_total from quantity and unit_price."""
        self.line_total = round(self.quantity * self.unit_price, 2)
        return self

    @property
    def tax_total(self) -> float:
        """Approximate tax burden of the line (vTotTrib)."""
        return round(
            self.icms_value + self.pis_value + self.cofins_value + self.ibs_value + self.cbs_value,
            2,
        )


class Sale(BaseModel):
    """
    A completed sale.

    The total comes from the checkout and is authoritative; it is not
    recomputed from the items. id and document_number are assigned when the
    sale is committed.
    """

    id: int | None = None
    total: float = Field(..., ge=0)
    payment_method: PaymentMethod
    tax_totals: TaxTotals = Field(default_factory=TaxTotals)
    status: SaleStatus = SaleStatus.COMPLETED
    is_offline: bool = False
    document_number: int | None = None
    items: list[SaleItem] = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def emission_mode(self) -> EmissionMode:
        """Operating mode embedded in the fiscal document."""
        return EmissionMode.CONTINGENCY if self.is_offline else EmissionMode.NORMAL
