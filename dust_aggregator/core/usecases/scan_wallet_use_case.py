import logging
from typing import Dict, Iterable, List, Optional

from ..domain.chains import ChainConfig, normalize_address, require_address
from ..domain.entities.token_entity import DustThresholds, Token, TokenView, WalletScanResult
from ..exceptions import WalletNotScannedError
from ..repositories.threshold_repository import ThresholdRepository
from ..services.dust_classifier import classify
from ..services.token_math import batch_gas_units, format_units
from .discover_tokens_use_case import DiscoverTokensUseCase
from .price_tokens_use_case import PriceTokensUseCase
from ...adapters.external.chain.evm_chain_client import EvmChainClient


class ScanWalletUseCase:
    """
    discover -> value -> classify for one wallet, plus the per-wallet session:
    the last scan's valued tokens are kept in memory so thresholds can be
    re-applied without discovery or pricing. A new scan replaces the session.
    """

    def __init__(
        self,
        chain: ChainConfig,
        discover_uc: DiscoverTokensUseCase,
        price_uc: PriceTokensUseCase,
        threshold_repo: ThresholdRepository,
        chain_client: Optional[EvmChainClient] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self._chain = chain
        self._discover = discover_uc
        self._prices = price_uc
        self._thresholds = threshold_repo
        self._rpc = chain_client
        self._sessions: Dict[str, List[Token]] = {}
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def scan(self, address: str) -> WalletScanResult:
        owner = require_address(address)
        tokens = await self._discover.execute(owner)
        valued = await self._prices.value_tokens(tokens)
        self._sessions[owner] = valued
        thresholds = await self._thresholds.get(owner)
        return await self._summarize(owner, valued, thresholds)

    async def reclassify(self, address: str, thresholds: Optional[DustThresholds] = None) -> WalletScanResult:
        owner = require_address(address)
        tokens = self._sessions.get(owner)
        if tokens is None:
            raise WalletNotScannedError(owner)
        if thresholds is None:
            thresholds = await self._thresholds.get(owner)
        return await self._summarize(owner, tokens, thresholds)

    async def get_thresholds(self, address: str) -> DustThresholds:
        return await self._thresholds.get(require_address(address))

    async def set_thresholds(self, address: str, thresholds: DustThresholds) -> Optional[WalletScanResult]:
        """Persist, then re-apply to the cached scan if there is one."""
        owner = require_address(address)
        await self._thresholds.save(owner, thresholds)
        if owner not in self._sessions:
            return None
        return await self.reclassify(owner, thresholds)

    async def add_token(self, address: str, token_address: str) -> Optional[Token]:
        """Look up a custom token, value it and merge it into the wallet session."""
        owner = require_address(address)
        found = await self._discover.lookup_token(owner, token_address)
        if found is None:
            return None
        valued = (await self._prices.value_tokens([found]))[0]
        session = [t for t in self._sessions.get(owner, []) if t.address != valued.address]
        session.append(valued)
        self._sessions[owner] = session
        return valued

    def select_tokens(self, address: str, token_addresses: Iterable[str]) -> List[Token]:
        """Session tokens matching `token_addresses`, in the requested order."""
        owner = require_address(address)
        tokens = self._sessions.get(owner)
        if tokens is None:
            raise WalletNotScannedError(owner)
        by_addr = {t.address: t for t in tokens}
        out: List[Token] = []
        for a in token_addresses:
            t = by_addr.get(normalize_address(a))
            if t is not None and t not in out:
                out.append(t)
        return out

    async def _summarize(self, owner: str, tokens: List[Token], thresholds: DustThresholds) -> WalletScanResult:
        classified = classify(tokens, thresholds)
        dust_addrs = {t.address for t in classified.dust}
        views = [
            TokenView(**t.model_dump(), formatted=t.formatted_balance, is_dust=t.address in dust_addrs)
            for t in sorted(tokens, key=lambda t: t.value_usd, reverse=True)
        ]

        gas_units = batch_gas_units(len(classified.dust)) if classified.dust else 0
        gas_native: Optional[str] = None
        if gas_units and self._rpc is not None:
            try:
                gas_price = await self._rpc.get_gas_price()
                gas_native = format(format_units(gas_units * gas_price, 18), "f")
            except Exception as exc:
                self._logger.warning("gas price unavailable: %s", exc)

        return WalletScanResult(
            address=owner,
            chain_id=self._chain.chain_id,
            thresholds=thresholds,
            tokens=views,
            total_tokens=len(tokens),
            dust_tokens=len(classified.dust),
            total_value_usd=sum(t.value_usd for t in tokens),
            dust_value_usd=sum(t.value_usd for t in classified.dust),
            gas_estimate_units=gas_units,
            gas_estimate_native=gas_native,
        )
