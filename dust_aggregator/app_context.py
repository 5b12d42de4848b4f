import logging
from typing import Optional

from motor.motor_asyncio import AsyncIOMotorClient

from .adapters.external.alchemy.alchemy_client import AlchemyClient
from .adapters.external.chain.evm_chain_client import EvmChainClient
from .adapters.external.chain.local_signer import LocalAccountSigner
from .adapters.external.coingecko.coingecko_client import CoinGeckoClient
from .adapters.external.database.swap_history_repository_file import SwapHistoryRepositoryFile
from .adapters.external.database.swap_history_repository_mongodb import SwapHistoryRepositoryMongoDB
from .adapters.external.database.threshold_repository_file import ThresholdRepositoryFile
from .adapters.external.explorer.explorer_client import ExplorerClient
from .adapters.external.zeroex.zeroex_client import ZeroExClient
from .config import Settings
from .core.domain.chains import ChainConfig, get_chain
from .core.repositories.swap_history_repository import SwapHistoryRepository
from .core.services.fee_policy import DEFAULT_TIERS, FeePolicy
from .core.services.transaction_signer import TransactionSigner
from .core.usecases.discover_tokens_use_case import DiscoverTokensUseCase
from .core.usecases.execute_batch_swap_use_case import ExecuteBatchSwapUseCase
from .core.usecases.get_swap_history_use_case import GetSwapHistoryUseCase
from .core.usecases.get_swap_quote_use_case import GetSwapQuoteUseCase
from .core.usecases.price_tokens_use_case import PriceTokensUseCase
from .core.usecases.scan_wallet_use_case import ScanWalletUseCase


class AppContext:
    """
    Process-level wiring.

    Responsibilities:
    - Resolve the chain from settings (fails fast on unsupported ids).
    - Build adapters; optional sources are left out when their key is missing.
    - Pick the history backend (file | mongo) and ensure indexes.
    - Wire use cases and the optional server-side signer.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self._logger = logging.getLogger(self.__class__.__name__)
        self._mongo_client: AsyncIOMotorClient | None = None

        self.chain: Optional[ChainConfig] = None
        self.chain_client: Optional[EvmChainClient] = None
        self.signer: Optional[TransactionSigner] = None
        self.history_repo: Optional[SwapHistoryRepository] = None

        self.discover_uc: Optional[DiscoverTokensUseCase] = None
        self.price_uc: Optional[PriceTokensUseCase] = None
        self.quote_uc: Optional[GetSwapQuoteUseCase] = None
        self.batch_uc: Optional[ExecuteBatchSwapUseCase] = None
        self.scan_uc: Optional[ScanWalletUseCase] = None
        self.history_uc: Optional[GetSwapHistoryUseCase] = None

    async def _build_history_repo(self) -> SwapHistoryRepository:
        s = self.settings
        if s.HISTORY_BACKEND == "mongo":
            self._mongo_client = AsyncIOMotorClient(s.MONGODB_URI)
            repo = SwapHistoryRepositoryMongoDB(self._mongo_client[s.MONGODB_DB_NAME], limit=s.HISTORY_LIMIT)
            await repo.ensure_indexes()
            return repo
        return SwapHistoryRepositoryFile(s.DATA_ROOT, limit=s.HISTORY_LIMIT)

    async def start(self) -> None:
        s = self.settings
        self.chain = get_chain(s.CHAIN_ID)
        self.chain_client = EvmChainClient(s.RPC_URL)

        alchemy = AlchemyClient(self.chain.alchemy_network, s.ALCHEMY_API_KEY, s.HTTP_TIMEOUT_SEC) if s.ALCHEMY_API_KEY else None
        explorer = (
            ExplorerClient(s.EXPLORER_API_URL, s.EXPLORER_API_KEY, self.chain.chain_id, s.HTTP_TIMEOUT_SEC)
            if s.EXPLORER_API_KEY else None
        )
        if alchemy is None:
            self._logger.warning("ALCHEMY_API_KEY not set: balance indexer disabled")
        if explorer is None:
            self._logger.warning("EXPLORER_API_KEY not set: transfer-history scan disabled")

        coingecko = CoinGeckoClient(s.COINGECKO_API_URL, s.COINGECKO_API_KEY, s.HTTP_TIMEOUT_SEC)
        zeroex = ZeroExClient(s.ZEROX_API_URL, s.ZEROX_API_KEY, s.HTTP_TIMEOUT_SEC)

        fee_policy = FeePolicy(
            enabled=s.SWAP_FEE_ENABLED,
            recipient=s.SWAP_FEE_RECIPIENT or None,
            tiers=s.SWAP_FEE_TIERS or list(DEFAULT_TIERS),
            default_bps=s.SWAP_FEE_DEFAULT_BPS,
        )
        if fee_policy.enabled and not fee_policy.recipient:
            self._logger.warning("SWAP_FEE_ENABLED without SWAP_FEE_RECIPIENT: quotes will be rejected")

        self.history_repo = await self._build_history_repo()
        threshold_repo = ThresholdRepositoryFile(s.DATA_ROOT, default_usd_ceiling=s.DUST_USD_CEILING)

        self.discover_uc = DiscoverTokensUseCase(
            self.chain, self.chain_client, alchemy, explorer,
            lookup_concurrency=s.LOOKUP_CONCURRENCY,
            lookup_timeout_sec=s.LOOKUP_TIMEOUT_SEC,
            indexer_max_pages=s.INDEXER_MAX_PAGES,
            transfer_scan_max_pages=s.TRANSFER_SCAN_MAX_PAGES,
            transfer_scan_page_size=s.TRANSFER_SCAN_PAGE_SIZE,
        )
        self.price_uc = PriceTokensUseCase(self.chain, coingecko, cache_ttl_sec=s.PRICE_CACHE_TTL_SEC)
        self.quote_uc = GetSwapQuoteUseCase(zeroex, fee_policy)
        self.batch_uc = ExecuteBatchSwapUseCase(
            self.quote_uc, self.chain_client, self.history_repo, self.price_uc,
            inter_swap_delay_sec=s.INTER_SWAP_DELAY_SEC,
            native_gas_reserve_wei=s.NATIVE_GAS_RESERVE_WEI,
            default_slippage_pct=s.DEFAULT_SLIPPAGE_PCT,
        )
        self.scan_uc = ScanWalletUseCase(self.chain, self.discover_uc, self.price_uc, threshold_repo, self.chain_client)
        self.history_uc = GetSwapHistoryUseCase(self.history_repo)

        if s.PRIVATE_KEY:
            self.signer = LocalAccountSigner(self.chain_client.w3, s.PRIVATE_KEY)
            self._logger.info("server-side signer enabled for %s", self.signer.address)

        self._logger.info("context ready: chain=%s history=%s", self.chain.slug, s.HISTORY_BACKEND)

    async def stop(self) -> None:
        if self._mongo_client is not None:
            self._mongo_client.close()
            self._mongo_client = None
