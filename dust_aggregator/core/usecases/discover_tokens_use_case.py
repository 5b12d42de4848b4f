import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from ..domain.chains import NATIVE_TOKEN, ChainConfig, is_native, normalize_address, require_address
from ..domain.entities.token_entity import Token, TokenMetadata
from ...adapters.external.alchemy.alchemy_client import AlchemyClient
from ...adapters.external.chain.evm_chain_client import EvmChainClient
from ...adapters.external.explorer.explorer_client import ExplorerClient


class DiscoverTokensUseCase:
    """
    Builds the set of non-zero token balances of a wallet by merging several
    partial, unreliable sources. Source priority (first = most trusted metadata):

      1. balance indexer (paged by cursor, capped)
      2. transfer-history scan (distinct contracts ever touched)
      3. the chain's static allow-list
      4. native balance

    Rules:
      - dedup key is the lowercase contract address;
      - candidates from (2) and (3) are balance-checked on-chain; that reading
        replaces whatever an earlier source reported, and a 0 reading drops the token;
      - metadata: indexer metadata service, then ERC-20 calls, then defaults;
      - a failing source is logged and skipped, never raised;
      - every per-token call runs under a shared semaphore and a timeout.
    """

    def __init__(
        self,
        chain: ChainConfig,
        chain_client: EvmChainClient,
        indexer: Optional[AlchemyClient] = None,
        explorer: Optional[ExplorerClient] = None,
        *,
        lookup_concurrency: int = 10,
        lookup_timeout_sec: float = 8.0,
        indexer_max_pages: int = 5,
        transfer_scan_max_pages: int = 10,
        transfer_scan_page_size: int = 1000,
        logger: Optional[logging.Logger] = None,
    ):
        self._chain = chain
        self._rpc = chain_client
        self._indexer = indexer
        self._explorer = explorer
        self._concurrency = max(1, int(lookup_concurrency))
        self._timeout = float(lookup_timeout_sec)
        self._indexer_max_pages = max(1, min(int(indexer_max_pages), 20))
        self._scan_max_pages = transfer_scan_max_pages
        self._scan_page_size = transfer_scan_page_size
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def _bounded(
        self,
        sem: asyncio.Semaphore,
        what: str,
        fn: Callable[..., Awaitable[Any]],
        *args: Any,
    ) -> Any:
        """Run one lookup under the semaphore and the timeout; None means "not found"."""
        async with sem:
            try:
                return await asyncio.wait_for(fn(*args), timeout=self._timeout)
            except asyncio.TimeoutError:
                self._logger.warning("%s timed out after %.1fs", what, self._timeout)
            except Exception as exc:
                self._logger.warning("%s failed: %s", what, exc)
        return None

    # ---------- sources ----------

    async def _indexed_balances(self, owner: str) -> Dict[str, int]:
        if self._indexer is None:
            return {}
        out: Dict[str, int] = {}
        cursor: Optional[str] = None
        for page_no in range(self._indexer_max_pages):
            try:
                page = await asyncio.wait_for(
                    self._indexer.get_token_balances(owner, cursor), timeout=self._timeout
                )
            except asyncio.TimeoutError:
                self._logger.warning("indexer page %s timed out", page_no + 1)
                page = None
            if page is None:
                break
            for b in page.balances:
                if b.raw_balance > 0:
                    out.setdefault(normalize_address(b.contract), int(b.raw_balance))
            cursor = page.next_cursor
            if not cursor:
                break
        else:
            if cursor:
                self._logger.info("indexer page cap (%s) hit for %s", self._indexer_max_pages, owner)
        return out

    async def _transfer_contracts(self, owner: str) -> Set[str]:
        if self._explorer is None:
            return set()
        contracts = await self._explorer.token_transfer_contracts(
            owner, max_pages=self._scan_max_pages, page_size=self._scan_page_size
        )
        return {normalize_address(c) for c in (contracts or set())}

    async def _native_balance(self, sem: asyncio.Semaphore, owner: str) -> Optional[int]:
        return await self._bounded(sem, "native balance", self._rpc.get_native_balance, owner)

    async def _resolve_metadata(self, sem: asyncio.Semaphore, token: str) -> TokenMetadata:
        meta = TokenMetadata()
        if self._indexer is not None:
            found = await self._bounded(sem, f"metadata {token}", self._indexer.get_token_metadata, token)
            if found is not None:
                meta = found
        if not meta.is_complete():
            onchain = await self._bounded(sem, f"erc20 metadata {token}", self._rpc.get_erc20_metadata, token)
            if onchain is not None:
                meta = meta.merged_with(onchain)
        return meta.with_defaults()

    async def _safe(self, what: str, coro: Awaitable[Any], default: Any) -> Any:
        try:
            return await coro
        except Exception as exc:
            self._logger.warning("discovery source %s failed: %s", what, exc)
            return default

    # ---------- public API ----------

    async def execute(self, address: str) -> List[Token]:
        owner = require_address(address)
        sem = asyncio.Semaphore(self._concurrency)

        indexed, transferred, native_raw = await asyncio.gather(
            self._safe("indexer", self._indexed_balances(owner), {}),
            self._safe("transfer scan", self._transfer_contracts(owner), set()),
            self._native_balance(sem, owner),
        )

        # (2) then (3), each contract checked once
        candidates: List[str] = []
        seen: Set[str] = set()
        for c in sorted(transferred) + [normalize_address(a) for a in self._chain.popular_tokens]:
            if c not in seen and not is_native(c):
                seen.add(c)
                candidates.append(c)

        readings = await asyncio.gather(
            *(self._bounded(sem, f"balanceOf {c}", self._rpc.get_erc20_balance, c, owner) for c in candidates)
        )

        balances: Dict[str, int] = dict(indexed)
        for contract, raw in zip(candidates, readings):
            if raw is None:
                continue
            if int(raw) > 0:
                balances[contract] = int(raw)
            elif contract in balances:
                self._logger.info("dropping %s: on-chain balance is 0", contract)
                balances.pop(contract)

        contracts = list(balances.keys())
        metas = await asyncio.gather(*(self._resolve_metadata(sem, c) for c in contracts))

        tokens: List[Token] = [
            Token(
                address=c,
                symbol=m.symbol,
                name=m.name,
                decimals=m.decimals,
                raw_balance=balances[c],
                logo_uri=m.logo_uri,
            )
            for c, m in zip(contracts, metas)
        ]
        if native_raw:
            tokens.append(self._native_token(int(native_raw)))

        self._logger.info(
            "discovered %d tokens for %s (indexer=%d, transfer-scan=%d, allow-list=%d)",
            len(tokens), owner, len(indexed), len(transferred), len(self._chain.popular_tokens),
        )
        return tokens

    async def lookup_token(self, owner: str, token_address: str) -> Optional[Token]:
        """
        Add a custom token by address. None when the wallet holds none of it
        or the balance cannot be read.
        """
        owner = require_address(owner)
        token = require_address(token_address)
        sem = asyncio.Semaphore(self._concurrency)

        if is_native(token):
            raw = await self._native_balance(sem, owner)
            return self._native_token(int(raw)) if raw else None

        raw = await self._bounded(sem, f"balanceOf {token}", self._rpc.get_erc20_balance, token, owner)
        if not raw:
            return None
        meta = await self._resolve_metadata(sem, token)
        return Token(
            address=token,
            symbol=meta.symbol,
            name=meta.name,
            decimals=meta.decimals,
            raw_balance=int(raw),
            logo_uri=meta.logo_uri,
        )

    def _native_token(self, raw: int) -> Token:
        return Token(
            address=NATIVE_TOKEN,
            symbol=self._chain.native_symbol,
            name=self._chain.native_name,
            decimals=18,
            raw_balance=raw,
        )
