from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from .deps import get_context, http_error
from ....app_context import AppContext
from ....core.domain.chains import find_conversion_target
from ....core.domain.entities.quote_entity import SwapQuoteResult
from ....core.domain.entities.swap_entity import BatchResult
from ....core.domain.entities.token_entity import ConversionTarget
from ....core.exceptions import DustAggregatorError

router = APIRouter(prefix="/api", tags=["swaps"])


class BatchSwapInDTO(BaseModel):
    tokens: List[str] = Field(..., min_length=1, description="token addresses from the signer wallet's last scan")
    target: str = Field(..., description="conversion target address")
    slippage_pct: Optional[float] = Field(None, gt=0.0, le=50.0)


@router.get("/conversion-targets", response_model=List[ConversionTarget])
async def list_conversion_targets(ctx: AppContext = Depends(get_context)):
    return ctx.chain.conversion_targets


@router.get("/quote", response_model=SwapQuoteResult)
async def get_quote(
    sell_token: str = Query(...),
    buy_token: str = Query(...),
    sell_amount: int = Query(..., description="raw units"),
    taker: str = Query(...),
    chain_id: Optional[int] = Query(None),
    sell_decimals: int = Query(18, ge=0, le=36),
    slippage_bps: Optional[int] = Query(None, ge=0, le=5000),
    ctx: AppContext = Depends(get_context),
):
    """
    Firm 0x quote with the tiered affiliate fee applied.
    """
    try:
        return await ctx.quote_uc.execute(
            chain_id if chain_id is not None else ctx.chain.chain_id,
            sell_token, buy_token, sell_amount, taker,
            sell_decimals=sell_decimals,
            slippage_bps=slippage_bps,
        )
    except DustAggregatorError as exc:
        raise http_error(exc) from exc


@router.post("/batch-swaps", response_model=BatchResult)
async def execute_batch(dto: BatchSwapInDTO, ctx: AppContext = Depends(get_context)):
    """
    Run the batch with the server-side signer (PRIVATE_KEY). The signer's
    wallet must have been scanned first; tokens are taken from that scan.
    """
    if ctx.signer is None:
        raise HTTPException(503, "No server-side signer configured (PRIVATE_KEY)")
    target = find_conversion_target(ctx.chain, dto.target)
    if target is None:
        raise HTTPException(400, "Unsupported conversion target")
    try:
        tokens = ctx.scan_uc.select_tokens(ctx.signer.address, dto.tokens)
        if not tokens:
            raise HTTPException(400, "None of the requested tokens are in the last scan")
        return await ctx.batch_uc.execute(
            ctx.chain.chain_id, tokens, target, ctx.signer, slippage_pct=dto.slippage_pct,
        )
    except DustAggregatorError as exc:
        raise http_error(exc) from exc
