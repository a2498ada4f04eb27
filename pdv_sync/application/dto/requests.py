"""Request DTOs for API endpoints.

Pydantic v2 models for API request validation.
These are the ONLY contracts between API and use cases.
"""

from pydantic import BaseModel, Field

from pdv_sync.core.entities import PaymentMethod


class SaleItemRequest(BaseModel):
    """One cart line as sent by the checkout."""

    description: str = Field(..., min_length=1, examples=["Coca-Cola 350ml"])
    quantity: float = Field(..., gt=0, examples=[2])
    unit_price: float = Field(..., ge=0, examples=[5.50])
    icms_rate: float = Field(default=0.0, ge=0, le=100, description="ICMS rate (%)")
    pis_rate: float = Field(default=0.0, ge=0, le=100, description="PIS rate (%)")
    cofins_rate: float = Field(default=0.0, ge=0, le=100, description="COFINS rate (%)")
    ibs_rate: float = Field(default=0.0, ge=0, le=100, description="IBS rate (%)")
    cbs_rate: float = Field(default=0.0, ge=0, le=100, description="CBS rate (%)")

    # Values already computed by the checkout take precedence over the rates
    icms_value: float = Field(default=0.0, ge=0)
    pis_value: float = Field(default=0.0, ge=0)
    cofins_value: float = Field(default=0.0, ge=0)
    ibs_value: float = Field(default=0.0, ge=0)
    cbs_value: float = Field(default=0.0, ge=0)


class TaxTotalsRequest(BaseModel):
    """Tax totals computed by the checkout. A zero component is summed from the items."""

    icms: float = Field(default=0.0, ge=0)
    pis: float = Field(default=0.0, ge=0)
    cofins: float = Field(default=0.0, ge=0)
    ibs: float = Field(default=0.0, ge=0)
    cbs: float = Field(default=0.0, ge=0)


class FinalizeSaleRequest(BaseModel):
    """Request to finalize (commit) a sale.

    The total is authoritative: it is stored and printed as sent, not
    recomputed from the items.
    """

    total: float = Field(..., ge=0, description="Sale total", examples=[42.50])
    items: list[SaleItemRequest] = Field(..., min_length=1, description="Cart lines")
    payment_method: PaymentMethod = Field(..., description="Payment method", examples=["pix"])
    is_offline: bool = Field(
        default=False,
        description="Checkout believes the terminal is offline (emit in contingency)",
    )
    tax_totals: TaxTotalsRequest = Field(default_factory=TaxTotalsRequest)


class FailPermanentRequest(BaseModel):
    """Operator escalation of an outbox entry."""

    reason: str = Field(
        ...,
        min_length=1,
        max_length=500,
        description="Why the entry will never be transmitted",
        examples=["Rejected by SEFAZ: duplicate number"],
    )
