"""Application use cases."""

from pdv_sync.application.use_cases.finalize_sale import (
    FinalizeSaleResult,
    FinalizeSaleUseCase,
)

__all__ = [
    "FinalizeSaleUseCase",
    "FinalizeSaleResult",
]
