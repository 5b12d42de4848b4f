from typing import Optional

from fastapi import APIRouter, Depends, Query

from .deps import get_context
from ....app_context import AppContext
from ....core.domain.entities.swap_entity import HistoryAnalytics, SwapHistoryView

router = APIRouter(prefix="/api/history", tags=["history"])


@router.get("", response_model=SwapHistoryView)
async def get_history(wallet: Optional[str] = Query(None), ctx: AppContext = Depends(get_context)):
    """
    Most recent batches (newest first) with their analytics.
    """
    return await ctx.history_uc.execute(wallet)


@router.get("/analytics", response_model=HistoryAnalytics)
async def get_analytics(wallet: Optional[str] = Query(None), ctx: AppContext = Depends(get_context)):
    view = await ctx.history_uc.execute(wallet)
    return view.analytics


@router.delete("")
async def clear_history(ctx: AppContext = Depends(get_context)):
    await ctx.history_repo.clear()
    return {"status": "ok"}
