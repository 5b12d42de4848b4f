import logging
from typing import Any, Dict, Optional

import httpx
from pydantic import BaseModel, ValidationError

from ....core.exceptions import QuoteRequestError


class ZeroExTransaction(BaseModel):
    to: str
    data: str
    value: Optional[str] = "0"
    gas: Optional[str] = None
    gasPrice: Optional[str] = None


class ZeroExAllowanceIssue(BaseModel):
    actual: Optional[str] = None
    spender: Optional[str] = None


class ZeroExIssues(BaseModel):
    allowance: Optional[ZeroExAllowanceIssue] = None


class ZeroExResponse(BaseModel):
    """
    Shared schema of /price and /quote (allowance-holder flavour).
    With liquidityAvailable=false every other field may be missing.
    """
    liquidityAvailable: bool = True
    buyAmount: Optional[str] = None
    minBuyAmount: Optional[str] = None
    sellAmount: Optional[str] = None
    gas: Optional[str] = None
    allowanceTarget: Optional[str] = None
    issues: Optional[ZeroExIssues] = None
    transaction: Optional[ZeroExTransaction] = None

    @property
    def buy_amount(self) -> int:
        try:
            return int(self.buyAmount or 0)
        except ValueError:
            return 0

    @property
    def allowance_spender(self) -> Optional[str]:
        if self.issues and self.issues.allowance and self.issues.allowance.spender:
            return self.issues.allowance.spender
        return self.allowanceTarget


class ZeroExClient:
    """
    0x Swap API v2 (allowance-holder). Unlike the read-side clients this one
    raises: the quote engine must tell "no route" from "upstream broken".
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout_sec: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_sec
        self._transport = transport
        self._logger = logging.getLogger(self.__class__.__name__)

    @staticmethod
    def build_params(
        chain_id: int,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: Optional[str] = None,
        slippage_bps: Optional[int] = None,
        fee_recipient: Optional[str] = None,
        fee_bps: int = 0,
    ) -> Dict[str, Any]:
        params: Dict[str, Any] = {
            "chainId": int(chain_id),
            "sellToken": sell_token,
            "buyToken": buy_token,
            "sellAmount": str(int(sell_amount)),
        }
        if taker:
            params["taker"] = taker
        if slippage_bps is not None:
            params["slippageBps"] = int(slippage_bps)
        if fee_recipient and fee_bps > 0:
            # fee is taken from the output, settled atomically by the router
            params["swapFeeRecipient"] = fee_recipient
            params["swapFeeBps"] = int(fee_bps)
            params["swapFeeToken"] = buy_token
        return params

    async def _get(self, path: str, params: Dict[str, Any]) -> ZeroExResponse:
        url = f"{self._base_url}{path}"
        headers = {"0x-api-key": self._api_key, "0x-version": "v2"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.get(url, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise QuoteRequestError(f"0x request failed: {exc}") from exc

        if r.status_code != 200:
            try:
                details = r.json()
            except ValueError:
                details = r.text[:500]
            msg = details.get("message") if isinstance(details, dict) else None
            raise QuoteRequestError(
                msg or f"0x {path} returned HTTP {r.status_code}",
                status_code=r.status_code,
                details=details,
            )

        try:
            return ZeroExResponse.model_validate(r.json())
        except (ValueError, ValidationError) as exc:
            raise QuoteRequestError(f"0x {path} returned an unreadable body", status_code=200) from exc

    async def get_price(self, params: Dict[str, Any]) -> ZeroExResponse:
        """Indicative price, no calldata; used for notional estimates and feasibility checks."""
        return await self._get("/swap/allowance-holder/price", params)

    async def get_quote(self, params: Dict[str, Any]) -> ZeroExResponse:
        """Firm quote with an executable transaction; requires a taker."""
        return await self._get("/swap/allowance-holder/quote", params)
