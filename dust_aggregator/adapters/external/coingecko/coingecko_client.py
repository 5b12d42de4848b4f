import logging
from typing import Dict, Iterable, List, Optional

import httpx
from pydantic import BaseModel, ValidationError

from ....core.exceptions import PriceRequestError

BATCH_SIZE = 50


class CoinGeckoQuote(BaseModel):
    usd: Optional[float] = None
    eth: Optional[float] = None


class CoinGeckoClient:
    """
    Price lookups by contract address (per platform) and by CoinGecko id.
    Unknown tokens are simply absent from the returned maps; a failed request
    raises PriceRequestError so callers can tell "no price" from "no answer".
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout_sec: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._timeout = timeout_sec
        self._transport = transport
        self._logger = logging.getLogger(self.__class__.__name__)

    def _headers(self) -> Dict[str, str]:
        h = {"accept": "application/json"}
        if self._api_key:
            h["x-cg-demo-api-key"] = self._api_key
        return h

    async def _get(self, path: str, params: Dict[str, str]) -> Dict:
        url = f"{self._base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self._timeout, transport=self._transport) as client:
                r = await client.get(url, params=params, headers=self._headers())
        except httpx.HTTPError as exc:
            self._logger.warning("GET %s failed: %s", path, exc)
            raise PriceRequestError(f"price request failed: {exc}") from exc

        if r.status_code != 200:
            self._logger.warning("GET %s HTTP %s", path, r.status_code)
            raise PriceRequestError(f"{path} returned HTTP {r.status_code}", status_code=r.status_code)
        try:
            data = r.json()
        except ValueError as exc:
            raise PriceRequestError(f"{path} returned an unreadable body", status_code=200) from exc
        if not isinstance(data, dict):
            raise PriceRequestError(f"{path} returned {type(data).__name__}, expected an object", status_code=200)
        return data

    @staticmethod
    def _parse(data: Dict) -> Dict[str, CoinGeckoQuote]:
        out: Dict[str, CoinGeckoQuote] = {}
        for key, value in data.items():
            try:
                out[key.lower()] = CoinGeckoQuote.model_validate(value)
            except ValidationError:
                continue
        return out

    async def get_token_prices(self, platform: str, addresses: Iterable[str]) -> Dict[str, CoinGeckoQuote]:
        """USD and ETH quotes keyed by lowercase contract address, in batches of 50."""
        addrs: List[str] = sorted({a.lower() for a in addresses})
        out: Dict[str, CoinGeckoQuote] = {}
        for i in range(0, len(addrs), BATCH_SIZE):
            chunk = addrs[i:i + BATCH_SIZE]
            data = await self._get(
                f"/simple/token_price/{platform}",
                {"contract_addresses": ",".join(chunk), "vs_currencies": "usd,eth"},
            )
            out.update(self._parse(data))
        return out

    async def get_prices_by_id(self, ids: Iterable[str]) -> Dict[str, float]:
        """USD price keyed by CoinGecko id."""
        wanted = sorted(set(ids))
        if not wanted:
            return {}
        data = await self._get("/simple/price", {"ids": ",".join(wanted), "vs_currencies": "usd"})
        return {k: q.usd for k, q in self._parse(data).items() if q.usd is not None}
