from typing import List, Optional

from pydantic import BaseModel, Field

from ..enums.swap_enums import FailureKind, SwapStatus


class SwapOutcome(BaseModel):
    """Per-token execution record; copies are emitted on every status change."""
    token_address: str
    symbol: str
    amount_in: int = 0
    status: SwapStatus = SwapStatus.PENDING
    tx_hash: Optional[str] = None
    approval_tx_hash: Optional[str] = None
    error: Optional[str] = None
    failure_kind: Optional[FailureKind] = None


class BatchResult(BaseModel):
    outcomes: List[SwapOutcome] = []
    successful: List[SwapOutcome] = []
    failed: List[SwapOutcome] = []
    total_attempted: int = 0

    # best effort, re-estimated after execution
    total_output_amount: Optional[int] = None
    total_output_formatted: Optional[str] = None
    total_output_usd: Optional[float] = None

    history_recorded: bool = False


class HistoryTokenAmount(BaseModel):
    symbol: str
    address: str
    amount: str
    value_usd: Optional[float] = None


class SwapHistoryEntry(BaseModel):
    """Immutable summary of one completed batch."""
    model_config = {"frozen": True}

    id: str
    timestamp: int  # ms
    wallet: str
    chain_id: int
    from_tokens: List[HistoryTokenAmount]
    to_token: HistoryTokenAmount
    tx_hash: str
    tx_hashes: List[str] = Field(default_factory=list)
    total_value_usd: float = 0.0


class HistoryAnalytics(BaseModel):
    total_volume: float = 0.0
    total_swaps: int = 0
    avg_swap_value: float = 0.0


class SwapHistoryView(BaseModel):
    entries: List[SwapHistoryEntry] = []
    analytics: HistoryAnalytics = HistoryAnalytics()
