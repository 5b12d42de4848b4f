import logging
from typing import Any, Dict, List, Optional

import httpx
from pydantic import BaseModel, Field, ValidationError

from ....core.domain.entities.token_entity import BalancePage, RawBalance, TokenMetadata


class _AlchemyTokenBalance(BaseModel):
    contractAddress: str
    tokenBalance: Optional[str] = None
    error: Optional[Any] = None


class _AlchemyBalancesResult(BaseModel):
    address: Optional[str] = None
    tokenBalances: List[_AlchemyTokenBalance] = Field(default_factory=list)
    pageKey: Optional[str] = None


class _AlchemyMetadataResult(BaseModel):
    name: Optional[str] = None
    symbol: Optional[str] = None
    decimals: Optional[int] = None
    logo: Optional[str] = None


def _parse_hex_balance(raw: Optional[str]) -> int:
    if not raw:
        return 0
    try:
        return int(raw, 16) if raw.startswith(("0x", "0X")) else int(raw)
    except ValueError:
        return 0


class AlchemyClient:
    """
    Balance indexing + token metadata over Alchemy's enhanced JSON-RPC.

    Read-side adapter: every failure is logged and mapped to None so the
    caller can degrade to other discovery sources.
    """

    def __init__(
        self,
        network: str,
        api_key: str,
        timeout_sec: float = 15.0,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._url = base_url or f"https://{network}.g.alchemy.com/v2/{api_key}"
        self._timeout = timeout_sec
        self._transport = transport
        self._logger = logging.getLogger(self.__class__.__name__)

    async def _rpc(self, method: str, params: List[Any]) -> Optional[Dict[str, Any]]:
        body = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.post(self._url, json=body)
                if r.status_code != 200:
                    self._logger.warning("%s HTTP %s: %s", method, r.status_code, r.text[:200])
                    return None
                data = r.json()
        except Exception as exc:
            self._logger.warning("%s failed: %s", method, exc)
            return None

        if not isinstance(data, dict):
            self._logger.warning("%s unexpected body type %s", method, type(data).__name__)
            return None
        if data.get("error"):
            self._logger.warning("%s rpc error: %s", method, data["error"])
            return None
        return data.get("result")

    async def get_token_balances(self, owner: str, page_key: Optional[str] = None) -> Optional[BalancePage]:
        """
        One page of ERC-20 balances. Entries with an error or a zero balance are dropped here.
        """
        params: List[Any] = [owner, "erc20"]
        if page_key:
            params.append({"pageKey": page_key})

        result = await self._rpc("alchemy_getTokenBalances", params)
        if result is None:
            return None
        try:
            parsed = _AlchemyBalancesResult.model_validate(result)
        except ValidationError as exc:
            self._logger.warning("alchemy_getTokenBalances malformed response: %s", exc)
            return None

        balances: List[RawBalance] = []
        for tb in parsed.tokenBalances:
            if tb.error:
                continue
            raw = _parse_hex_balance(tb.tokenBalance)
            if raw > 0:
                balances.append(RawBalance(contract=tb.contractAddress.lower(), raw_balance=raw))
        return BalancePage(balances=balances, next_cursor=parsed.pageKey or None)

    async def get_token_metadata(self, contract: str) -> Optional[TokenMetadata]:
        result = await self._rpc("alchemy_getTokenMetadata", [contract])
        if result is None:
            return None
        try:
            parsed = _AlchemyMetadataResult.model_validate(result)
        except ValidationError as exc:
            self._logger.warning("alchemy_getTokenMetadata malformed response for %s: %s", contract, exc)
            return None
        return TokenMetadata(
            symbol=parsed.symbol or None,
            name=parsed.name or None,
            decimals=parsed.decimals,
            logo_uri=parsed.logo or None,
        )
