import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from ..domain.chains import ChainConfig, is_native, normalize_address
from ..domain.entities.token_entity import Token
from ..services.ttl_cache import TTLCache
from ...adapters.external.coingecko.coingecko_client import CoinGeckoClient, CoinGeckoQuote

PriceMap = Dict[str, float]


class PriceTokensUseCase:
    """
    Best-effort USD prices for a set of addresses on one chain.

    Per token, first hit wins:
      1. direct USD quote by contract address;
      2. ETH-denominated quote x native USD price;
      3. static address -> price-id map of the chain;
      4. 0.0 (explicit "no price", which the classifier treats as dust).

    Results are cached per exact address set for `cache_ttl_sec`. When the
    price service fails every address gets 0.0 and nothing is cached, so the
    next call asks again.
    """

    def __init__(
        self,
        chain: ChainConfig,
        price_client: CoinGeckoClient,
        cache: Optional[TTLCache[PriceMap]] = None,
        cache_ttl_sec: float = 300.0,
        logger: Optional[logging.Logger] = None,
    ):
        self._chain = chain
        self._prices = price_client
        self._cache: TTLCache[PriceMap] = cache or TTLCache(cache_ttl_sec)
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    def _cache_key(self, keys: List[str]) -> Tuple[str, Tuple[str, ...]]:
        return self._chain.slug, tuple(keys)

    async def execute(self, addresses: Iterable[str]) -> PriceMap:
        keys = sorted({normalize_address(a) for a in addresses if a})
        if not keys:
            return {}
        try:
            prices = await self._cache.get_or_fetch(self._cache_key(keys), lambda: self._fetch(keys))
        except Exception as exc:
            self._logger.warning("price lookup failed for %d tokens: %s", len(keys), exc)
            return {k: 0.0 for k in keys}
        return dict(prices)

    async def _fetch(self, keys: List[str]) -> PriceMap:
        erc20 = [k for k in keys if not is_native(k)]
        quotes: Dict[str, CoinGeckoQuote] = {}
        if erc20:
            quotes = await self._prices.get_token_prices(self._chain.coingecko_platform, erc20)

        ids: Set[str] = {self._chain.native_price_id}
        for k in erc20:
            q = quotes.get(k)
            if (q is None or not q.usd) and k in self._chain.price_ids:
                ids.add(self._chain.price_ids[k])
        by_id = await self._prices.get_prices_by_id(ids)
        native_usd = float(by_id.get(self._chain.native_price_id) or 0.0)

        out: PriceMap = {}
        for k in keys:
            out[k] = self._resolve(k, quotes.get(k), native_usd, by_id)

        unresolved = [k for k, v in out.items() if v <= 0.0]
        if unresolved:
            self._logger.info("no price for %d/%d tokens", len(unresolved), len(keys))
        return out

    def _resolve(
        self,
        key: str,
        quote: Optional[CoinGeckoQuote],
        native_usd: float,
        by_id: Dict[str, float],
    ) -> float:
        if is_native(key):
            return native_usd
        if quote is not None and quote.usd:
            return float(quote.usd)
        if quote is not None and quote.eth and native_usd:
            return float(quote.eth) * native_usd
        price_id = self._chain.price_ids.get(key)
        if price_id and by_id.get(price_id):
            return float(by_id[price_id])
        return 0.0

    async def value_tokens(self, tokens: List[Token]) -> List[Token]:
        """Copies of `tokens` with price_usd / value_usd filled in."""
        prices = await self.execute(t.address for t in tokens)
        out: List[Token] = []
        for t in tokens:
            price = float(prices.get(t.address, 0.0))
            out.append(t.model_copy(update={"price_usd": price, "value_usd": float(t.balance) * price}))
        return out
