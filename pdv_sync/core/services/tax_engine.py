"""
Per-item tax calculation.

Legacy taxes (ICMS, PIS, COFINS) always apply. From the transition year of
the tax reform on, IBS and CBS are charged too; items registered without
those rates use the test-phase defaults.
"""

from dataclasses import dataclass
from datetime import date

TRANSITION_YEAR = 2026
DEFAULT_IBS_RATE = 0.1  # percent
DEFAULT_CBS_RATE = 0.9  # percent


@dataclass(frozen=True)
class TaxRates:
    """Rates registered for an item, in percent."""

    icms: float = 0.0
    pis: float = 0.0
    cofins: float = 0.0
    ibs: float = 0.0
    cbs: float = 0.0


@dataclass(frozen=True)
class TaxBreakdown:
    """Tax values of one line, in currency."""

    icms: float = 0.0
    pis: float = 0.0
    cofins: float = 0.0
    ibs: float = 0.0
    cbs: float = 0.0

    @property
    def total(self) -> float:
        return round(self.icms + self.pis + self.cofins + self.ibs + self.cbs, 2)


class TaxEngine:
    """
    Computes the tax values of a sale line from its rates.

    Args:
        today: Date the rules are evaluated for (default: the current date
            at each call)
    """

    def __init__(
        self,
        today: date | None = None,
        default_ibs_rate: float = DEFAULT_IBS_RATE,
        default_cbs_rate: float = DEFAULT_CBS_RATE,
    ) -> None:
        self._today = today
        self.default_ibs_rate = default_ibs_rate
        self.default_cbs_rate = default_cbs_rate

    @property
    def today(self) -> date:
        return self._today or date.today()

    @property
    def reform_active(self) -> bool:
        return self.today.year >= TRANSITION_YEAR

    def calculate(self, amount: float, rates: TaxRates) -> TaxBreakdown:
        """Tax values for a line worth `amount`."""

        def apply(rate: float) -> float:
            return round(amount * rate / 100, 2)

        ibs = cbs = 0.0
        if self.reform_active:
            ibs = apply(rates.ibs if rates.ibs > 0 else self.default_ibs_rate)
            cbs = apply(rates.cbs if rates.cbs > 0 else self.default_cbs_rate)

        return TaxBreakdown(
            icms=apply(rates.icms),
            pis=apply(rates.pis),
            cofins=apply(rates.cofins),
            ibs=ibs,
            cbs=cbs,
        )
