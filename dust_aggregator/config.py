import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import List

from dotenv import load_dotenv

from .core.domain.entities.quote_entity import FeeTier
from .core.exceptions import ConfigurationError

load_dotenv()

DEFAULT_FEE_TIERS = "<100:100,<=1000:50,*:30"


@dataclass
class Settings:
    # chain
    CHAIN_ID: int
    RPC_URL: str

    # upstream services
    ALCHEMY_API_KEY: str = ""
    EXPLORER_API_URL: str = "https://api.etherscan.io/v2/api"
    EXPLORER_API_KEY: str = ""
    COINGECKO_API_URL: str = "https://api.coingecko.com/api/v3"
    COINGECKO_API_KEY: str = ""
    ZEROX_API_URL: str = "https://api.0x.org"
    ZEROX_API_KEY: str = ""

    # affiliate fee policy
    SWAP_FEE_ENABLED: bool = True
    SWAP_FEE_RECIPIENT: str = ""
    SWAP_FEE_TIERS: List[FeeTier] = field(default_factory=list)
    SWAP_FEE_DEFAULT_BPS: int = 50

    # signing (server-side signer for the HTTP batch endpoint only)
    PRIVATE_KEY: str = ""

    # storage
    DATA_ROOT: str = "data"                   # ./data
    HISTORY_BACKEND: str = "file"             # file | mongo
    HISTORY_LIMIT: int = 20
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "dust_aggregator"

    # dust / discovery / pricing
    DUST_USD_CEILING: float = 10.0
    PRICE_CACHE_TTL_SEC: float = 300.0
    LOOKUP_CONCURRENCY: int = 10
    LOOKUP_TIMEOUT_SEC: float = 8.0
    HTTP_TIMEOUT_SEC: float = 15.0
    INDEXER_MAX_PAGES: int = 5
    TRANSFER_SCAN_MAX_PAGES: int = 10
    TRANSFER_SCAN_PAGE_SIZE: int = 1000

    # batch execution
    INTER_SWAP_DELAY_SEC: float = 1.0
    DEFAULT_SLIPPAGE_PCT: float = 1.0
    NATIVE_GAS_RESERVE_WEI: int = 500_000_000_000_000  # 0.0005 native

    # generic
    ENV: str = "dev"
    LOG_LEVEL: str = "INFO"


def parse_fee_tiers(raw: str) -> List[FeeTier]:
    """
    Parse a tier table like "<100:100,<=1000:50,*:30".

    Each item is "<bound:bps", "<=bound:bps" or "*:bps" (catch-all).
    Items are kept in the given order; selection takes the first match.
    """
    tiers: List[FeeTier] = []
    for item in (raw or "").split(","):
        item = item.strip()
        if not item:
            continue
        try:
            cond, bps_s = item.rsplit(":", 1)
            bps = int(bps_s)
            cond = cond.strip()
            if cond == "*":
                tiers.append(FeeTier(bound_usd=None, bps=bps))
            elif cond.startswith("<="):
                tiers.append(FeeTier(bound_usd=float(cond[2:]), bps=bps, inclusive=True))
            elif cond.startswith("<"):
                tiers.append(FeeTier(bound_usd=float(cond[1:]), bps=bps, inclusive=False))
            else:
                raise ValueError(cond)
        except ValueError as exc:
            raise ConfigurationError(f"Invalid SWAP_FEE_TIERS item '{item}': {exc}") from exc
    return tiers


def _env_bool(key: str, default: bool) -> bool:
    v = os.environ.get(key)
    if v is None or v == "":
        return default
    return v.strip().lower() in {"1", "true", "yes", "on"}


def load_settings() -> Settings:
    """Build Settings from the process environment (.env is loaded on import)."""
    return Settings(
        CHAIN_ID=int(os.environ.get("CHAIN_ID", 8453)),
        RPC_URL=os.environ.get("RPC_URL", "https://mainnet.base.org"),

        ALCHEMY_API_KEY=os.environ.get("ALCHEMY_API_KEY", ""),
        EXPLORER_API_URL=os.environ.get("EXPLORER_API_URL", "https://api.etherscan.io/v2/api"),
        EXPLORER_API_KEY=os.environ.get("EXPLORER_API_KEY", ""),
        COINGECKO_API_URL=os.environ.get("COINGECKO_API_URL", "https://api.coingecko.com/api/v3"),
        COINGECKO_API_KEY=os.environ.get("COINGECKO_API_KEY", ""),
        ZEROX_API_URL=os.environ.get("ZEROX_API_URL", "https://api.0x.org"),
        ZEROX_API_KEY=os.environ.get("ZEROX_API_KEY", ""),

        SWAP_FEE_ENABLED=_env_bool("SWAP_FEE_ENABLED", True),
        SWAP_FEE_RECIPIENT=os.environ.get("SWAP_FEE_RECIPIENT", ""),
        SWAP_FEE_TIERS=parse_fee_tiers(os.environ.get("SWAP_FEE_TIERS", DEFAULT_FEE_TIERS)),
        SWAP_FEE_DEFAULT_BPS=int(os.environ.get("SWAP_FEE_DEFAULT_BPS", 50)),

        PRIVATE_KEY=os.environ.get("PRIVATE_KEY", ""),  # keep empty when missing

        DATA_ROOT=os.environ.get("DATA_ROOT", "data"),
        HISTORY_BACKEND=os.environ.get("HISTORY_BACKEND", "file"),
        HISTORY_LIMIT=int(os.environ.get("HISTORY_LIMIT", 20)),
        MONGODB_URI=os.environ.get("MONGODB_URI", "mongodb://localhost:27017"),
        MONGODB_DB_NAME=os.environ.get("MONGODB_DB_NAME", "dust_aggregator"),

        DUST_USD_CEILING=float(os.environ.get("DUST_USD_CEILING", 10.0)),
        PRICE_CACHE_TTL_SEC=float(os.environ.get("PRICE_CACHE_TTL_SEC", 300)),
        LOOKUP_CONCURRENCY=int(os.environ.get("LOOKUP_CONCURRENCY", 10)),
        LOOKUP_TIMEOUT_SEC=float(os.environ.get("LOOKUP_TIMEOUT_SEC", 8.0)),
        HTTP_TIMEOUT_SEC=float(os.environ.get("HTTP_TIMEOUT_SEC", 15.0)),
        INDEXER_MAX_PAGES=min(int(os.environ.get("INDEXER_MAX_PAGES", 5)), 20),
        TRANSFER_SCAN_MAX_PAGES=int(os.environ.get("TRANSFER_SCAN_MAX_PAGES", 10)),
        TRANSFER_SCAN_PAGE_SIZE=int(os.environ.get("TRANSFER_SCAN_PAGE_SIZE", 1000)),

        INTER_SWAP_DELAY_SEC=float(os.environ.get("INTER_SWAP_DELAY_SEC", 1.0)),
        DEFAULT_SLIPPAGE_PCT=float(os.environ.get("DEFAULT_SLIPPAGE_PCT", 1.0)),
        NATIVE_GAS_RESERVE_WEI=int(os.environ.get("NATIVE_GAS_RESERVE_WEI", 500_000_000_000_000)),

        ENV=os.environ.get("ENV", "dev"),
        LOG_LEVEL=os.environ.get("LOG_LEVEL", "INFO"),
    )


@lru_cache()
def get_settings() -> Settings:
    return load_settings()
