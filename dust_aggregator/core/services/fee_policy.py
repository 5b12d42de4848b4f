from dataclasses import dataclass, field
from typing import List, Optional

from ..domain.entities.quote_entity import FeeTier

DEFAULT_TIERS: List[FeeTier] = [
    FeeTier(bound_usd=100.0, bps=100),                  # < $100      -> 1.00%
    FeeTier(bound_usd=1000.0, bps=50, inclusive=True),  # <= $1000    -> 0.50%
    FeeTier(bound_usd=None, bps=30),                    # otherwise   -> 0.30%
]


@dataclass
class FeePolicy:
    """
    Tiered affiliate fee table. Lower notional -> higher rate so the absolute
    fee stays meaningful on small swaps.
    """
    enabled: bool = True
    recipient: Optional[str] = None
    tiers: List[FeeTier] = field(default_factory=lambda: list(DEFAULT_TIERS))
    default_bps: int = 50

    def select_bps(self, usd_notional: Optional[float]) -> int:
        if not self.enabled:
            return 0
        if usd_notional is None or usd_notional != usd_notional:  # None / NaN
            return self.default_bps
        for tier in self.tiers:
            if tier.matches(usd_notional):
                return tier.bps
        return self.default_bps

    @staticmethod
    def fee_amount(buy_amount: int, bps: int) -> int:
        """Approximate fee taken from the output; display only."""
        if bps <= 0:
            return 0
        return (int(buy_amount) * int(bps)) // 10_000
