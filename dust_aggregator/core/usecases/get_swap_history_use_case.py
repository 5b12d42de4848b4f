from typing import List, Optional

from ..domain.chains import normalize_address
from ..domain.entities.swap_entity import HistoryAnalytics, SwapHistoryEntry, SwapHistoryView
from ..repositories.swap_history_repository import SwapHistoryRepository


def compute_analytics(entries: List[SwapHistoryEntry]) -> HistoryAnalytics:
    total = sum(e.total_value_usd for e in entries)
    count = len(entries)
    return HistoryAnalytics(
        total_volume=total,
        total_swaps=count,
        avg_swap_value=total / count if count else 0.0,
    )


class GetSwapHistoryUseCase:
    """Read side of the history store, optionally filtered to one wallet."""

    def __init__(self, history_repo: SwapHistoryRepository):
        self._history = history_repo

    async def execute(self, wallet: Optional[str] = None) -> SwapHistoryView:
        entries = await self._history.read_all()
        if wallet:
            key = normalize_address(wallet)
            entries = [e for e in entries if e.wallet == key]
        return SwapHistoryView(entries=entries, analytics=compute_analytics(entries))
