"""
Static per-chain registry: wrapped native, USD reference asset, well-known
tokens (discovery floor), price-id fallbacks and conversion targets.

Everything is keyed by lowercase address.
"""

import re
from dataclasses import dataclass, field
from typing import Dict, List

from ..exceptions import InvalidAddressError, UnsupportedChainError
from .entities.token_entity import ConversionTarget

NATIVE_TOKEN = "0x0000000000000000000000000000000000000000"

_ADDRESS_RE = re.compile(r"^0x[0-9a-f]{40}$")


def normalize_address(addr: str) -> str:
    return (addr or "").strip().lower()


def is_native(addr: str) -> bool:
    return normalize_address(addr) == NATIVE_TOKEN


def require_address(addr: str) -> str:
    """Normalize, or raise InvalidAddressError for anything that is not a 20-byte hex address."""
    key = normalize_address(addr)
    if not _ADDRESS_RE.match(key):
        raise InvalidAddressError(addr)
    return key


@dataclass(frozen=True)
class ChainConfig:
    chain_id: int
    slug: str                    # canonical chain key for price lookups ("base:0x...")
    coingecko_platform: str
    alchemy_network: str
    native_symbol: str
    native_name: str
    native_price_id: str
    wrapped_native: str
    usd_stable: str
    usd_stable_decimals: int
    popular_tokens: List[str] = field(default_factory=list)
    price_ids: Dict[str, str] = field(default_factory=dict)
    conversion_targets: List[ConversionTarget] = field(default_factory=list)

    def to_router_token(self, addr: str) -> str:
        """The swap router only understands ERC-20s: map the native sentinel to the wrapped token."""
        return self.wrapped_native if is_native(addr) else normalize_address(addr)


_BASE_WETH = "0x4200000000000000000000000000000000000006"
_BASE_USDC = "0x833589fcd6edb6e08f4c7c32d4f71b54bda02913"

BASE = ChainConfig(
    chain_id=8453,
    slug="base",
    coingecko_platform="base",
    alchemy_network="base-mainnet",
    native_symbol="ETH",
    native_name="Ethereum",
    native_price_id="ethereum",
    wrapped_native=_BASE_WETH,
    usd_stable=_BASE_USDC,
    usd_stable_decimals=6,
    popular_tokens=[
        _BASE_WETH,
        _BASE_USDC,
        "0xd9aaec86b65d86f6a7b5b1b0c42ffa531710b6ca",  # USDbC
        "0x50c5725949a6f0c72e6c4a641f24049a917db0cb",  # DAI
        "0xfde4c96c8593536e31f229ea8f37b2ada2699bb2",  # USDT
        "0x2ae3f1ec7f1f5012cfeab0185bfc7aa3cf0dec22",  # cbETH
        "0x940181a94a35a4569e4529a3cdfb74e38fd98631",  # AERO
        "0x4ed4e862860bed51a9570b96d89af5e1b0efefed",  # DEGEN
        "0x532f27101965dd16442e59d40670faf5ebb142e4",  # BRETT
    ],
    price_ids={
        _BASE_USDC: "usd-coin",
        "0xd9aaec86b65d86f6a7b5b1b0c42ffa531710b6ca": "bridged-usd-coin-base",
        "0x50c5725949a6f0c72e6c4a641f24049a917db0cb": "dai",
        "0xfde4c96c8593536e31f229ea8f37b2ada2699bb2": "tether",
        _BASE_WETH: "weth",
        "0x2ae3f1ec7f1f5012cfeab0185bfc7aa3cf0dec22": "coinbase-wrapped-staked-eth",
        "0x940181a94a35a4569e4529a3cdfb74e38fd98631": "aerodrome-finance",
        "0x4ed4e862860bed51a9570b96d89af5e1b0efefed": "degen-base",
        "0x532f27101965dd16442e59d40670faf5ebb142e4": "based-brett",
    },
    conversion_targets=[
        ConversionTarget(address=_BASE_USDC, symbol="USDC", name="USD Coin", decimals=6),
        ConversionTarget(address=NATIVE_TOKEN, symbol="ETH", name="Ethereum", decimals=18),
        ConversionTarget(address=_BASE_WETH, symbol="WETH", name="Wrapped Ether", decimals=18),
    ],
)

_ETH_WETH = "0xc02aaa39b223fe8d0a0e5c4f27ead9083c756cc2"
_ETH_USDC = "0xa0b86991c6218b36c1d19d4a2e9eb0ce3606eb48"

ETHEREUM = ChainConfig(
    chain_id=1,
    slug="ethereum",
    coingecko_platform="ethereum",
    alchemy_network="eth-mainnet",
    native_symbol="ETH",
    native_name="Ethereum",
    native_price_id="ethereum",
    wrapped_native=_ETH_WETH,
    usd_stable=_ETH_USDC,
    usd_stable_decimals=6,
    popular_tokens=[
        _ETH_WETH,
        _ETH_USDC,
        "0x6b175474e89094c44da98b954eedeac495271d0f",  # DAI
        "0xdac17f958d2ee523a2206206994597c13d831ec7",  # USDT
        "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984",  # UNI
        "0x514910771af9ca656af840dff83e8264ecf986ca",  # LINK
    ],
    price_ids={
        _ETH_USDC: "usd-coin",
        _ETH_WETH: "weth",
        "0x6b175474e89094c44da98b954eedeac495271d0f": "dai",
        "0xdac17f958d2ee523a2206206994597c13d831ec7": "tether",
        "0x1f9840a85d5af5bf1d1762f925bdaddc4201f984": "uniswap",
        "0x514910771af9ca656af840dff83e8264ecf986ca": "chainlink",
    },
    conversion_targets=[
        ConversionTarget(address=_ETH_USDC, symbol="USDC", name="USD Coin", decimals=6),
        ConversionTarget(address=NATIVE_TOKEN, symbol="ETH", name="Ethereum", decimals=18),
        ConversionTarget(address=_ETH_WETH, symbol="WETH", name="Wrapped Ether", decimals=18),
    ],
)

SUPPORTED_CHAINS: Dict[int, ChainConfig] = {c.chain_id: c for c in (BASE, ETHEREUM)}


def get_chain(chain_id: int) -> ChainConfig:
    try:
        return SUPPORTED_CHAINS[int(chain_id)]
    except (KeyError, TypeError, ValueError):
        raise UnsupportedChainError(chain_id)


def find_conversion_target(chain: ChainConfig, addr: str) -> ConversionTarget | None:
    key = normalize_address(addr)
    for t in chain.conversion_targets:
        if t.address == key:
            return t
    return None
