from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field

from .deps import get_context, http_error
from ....app_context import AppContext
from ....core.domain.chains import find_conversion_target, normalize_address
from ....core.domain.entities.quote_entity import LiquidityCheck
from ....core.domain.entities.token_entity import DustThresholds, TokenView, WalletScanResult
from ....core.exceptions import DustAggregatorError

router = APIRouter(prefix="/api/wallets", tags=["wallets"])


class ThresholdsUpdateOutDTO(BaseModel):
    thresholds: DustThresholds
    scan: Optional[WalletScanResult] = None


class CustomTokenInDTO(BaseModel):
    token_address: str = Field(..., examples=["0x4ed4e862860bed51a9570b96d89af5e1b0efefed"])


@router.post("/{address}/scan", response_model=WalletScanResult)
async def scan_wallet(address: str, ctx: AppContext = Depends(get_context)):
    """
    Full discovery + pricing + classification. Replaces the cached session.
    """
    try:
        return await ctx.scan_uc.scan(address)
    except DustAggregatorError as exc:
        raise http_error(exc) from exc


@router.get("/{address}/classification", response_model=WalletScanResult)
async def get_classification(address: str, ctx: AppContext = Depends(get_context)):
    """
    Re-apply the stored thresholds to the last scan (no discovery, no pricing).
    """
    try:
        return await ctx.scan_uc.reclassify(address)
    except DustAggregatorError as exc:
        raise http_error(exc) from exc


@router.get("/{address}/thresholds", response_model=DustThresholds)
async def get_thresholds(address: str, ctx: AppContext = Depends(get_context)):
    try:
        return await ctx.scan_uc.get_thresholds(address)
    except DustAggregatorError as exc:
        raise http_error(exc) from exc


@router.put("/{address}/thresholds", response_model=ThresholdsUpdateOutDTO)
async def put_thresholds(address: str, dto: DustThresholds, ctx: AppContext = Depends(get_context)):
    try:
        scan = await ctx.scan_uc.set_thresholds(address, dto)
    except DustAggregatorError as exc:
        raise http_error(exc) from exc
    return ThresholdsUpdateOutDTO(thresholds=dto, scan=scan)


@router.post("/{address}/tokens", response_model=TokenView)
async def add_custom_token(address: str, dto: CustomTokenInDTO, ctx: AppContext = Depends(get_context)):
    """
    Add a token the discovery sources missed. 404 when the wallet holds none of it.
    """
    try:
        token = await ctx.scan_uc.add_token(address, dto.token_address)
        thresholds = await ctx.scan_uc.get_thresholds(address)
    except DustAggregatorError as exc:
        raise http_error(exc) from exc
    if token is None:
        raise HTTPException(404, "No balance for this token")
    return TokenView(
        **token.model_dump(),
        formatted=token.formatted_balance,
        is_dust=token.value_usd <= thresholds.usd_ceiling,
    )


@router.get("/{address}/liquidity", response_model=LiquidityCheck)
async def check_liquidity(
    address: str,
    token: str = Query(..., description="token from the last scan"),
    target: str = Query(..., description="conversion target address"),
    ctx: AppContext = Depends(get_context),
):
    """
    Explicit liquidity check for (token -> target) with the token's full balance.
    """
    if find_conversion_target(ctx.chain, target) is None:
        raise HTTPException(400, "Unsupported conversion target")
    try:
        selected = ctx.scan_uc.select_tokens(address, [token])
        if not selected:
            raise HTTPException(404, "Token not found in the last scan")
        t = selected[0]
        return await ctx.quote_uc.check_liquidity(
            ctx.chain.chain_id, t.address, normalize_address(target), t.raw_balance,
            sell_decimals=t.decimals,
        )
    except DustAggregatorError as exc:
        raise http_error(exc) from exc
