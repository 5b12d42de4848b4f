from typing import List, Optional

from pydantic import BaseModel


class QuoteTransaction(BaseModel):
    to: str
    data: str
    value: int = 0
    gas: Optional[int] = None


class Quote(BaseModel):
    """
    Executable swap plan for exactly (sell_token, buy_token, sell_amount).
    Not stable between request and execution: the market may move.
    """
    chain_id: int
    sell_token: str
    buy_token: str
    sell_amount: int
    buy_amount: int
    min_buy_amount: Optional[int] = None
    transaction: QuoteTransaction
    allowance_spender: Optional[str] = None
    liquidity_available: bool = True


class FeeTier(BaseModel):
    """
    One row of the fee policy table.
    bound_usd=None is the catch-all row; otherwise matches notional < bound
    (or <= bound when inclusive).
    """
    bound_usd: Optional[float] = None
    bps: int
    inclusive: bool = False

    def matches(self, usd_notional: float) -> bool:
        if self.bound_usd is None:
            return True
        if self.inclusive:
            return usd_notional <= self.bound_usd
        return usd_notional < self.bound_usd


class FeeBreakdown(BaseModel):
    enabled: bool
    bps: int
    recipient: Optional[str] = None
    token: Optional[str] = None
    usd_notional: Optional[float] = None
    # UI estimate only; settlement decides the real deduction
    fee_amount: Optional[int] = None
    tiers: List[FeeTier] = []


class SwapQuoteResult(BaseModel):
    quote: Quote
    fee: FeeBreakdown


class LiquidityCheck(BaseModel):
    can_swap: bool
    reason: Optional[str] = None
    estimated_output: Optional[int] = None
    estimated_gas: Optional[int] = None
