from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ...services.token_math import format_units

DEFAULT_SYMBOL = "UNKNOWN"
DEFAULT_NAME = "Unknown Token"
DEFAULT_DECIMALS = 18


class TokenMetadata(BaseModel):
    """
    Optional-field schema of the token metadata contract.
    Missing fields are substituted only through with_defaults().
    """
    symbol: Optional[str] = None
    name: Optional[str] = None
    decimals: Optional[int] = None
    logo_uri: Optional[str] = None

    def is_complete(self) -> bool:
        return self.symbol is not None and self.name is not None and self.decimals is not None

    def merged_with(self, other: "TokenMetadata") -> "TokenMetadata":
        """Fill our missing fields from `other` (ours win)."""
        return TokenMetadata(
            symbol=self.symbol if self.symbol is not None else other.symbol,
            name=self.name if self.name is not None else other.name,
            decimals=self.decimals if self.decimals is not None else other.decimals,
            logo_uri=self.logo_uri if self.logo_uri is not None else other.logo_uri,
        )

    def with_defaults(self) -> "TokenMetadata":
        return TokenMetadata(
            symbol=self.symbol or DEFAULT_SYMBOL,
            name=self.name or DEFAULT_NAME,
            decimals=self.decimals if self.decimals is not None else DEFAULT_DECIMALS,
            logo_uri=self.logo_uri,
        )


class RawBalance(BaseModel):
    contract: str
    raw_balance: int


class BalancePage(BaseModel):
    balances: List[RawBalance] = []
    next_cursor: Optional[str] = None


class Token(BaseModel):
    """A discovered, non-zero balance."""
    address: str
    symbol: str = DEFAULT_SYMBOL
    name: str = DEFAULT_NAME
    decimals: int = DEFAULT_DECIMALS
    raw_balance: int
    logo_uri: Optional[str] = None

    # valuation (best effort, 0 means "no price" and counts as dust)
    price_usd: float = 0.0
    value_usd: float = 0.0

    # populated only by an explicit liquidity check
    has_liquidity: Optional[bool] = None

    @field_validator("address")
    @classmethod
    def lower_address(cls, v: str) -> str:
        return v.strip().lower()

    @property
    def balance(self) -> Decimal:
        return format_units(self.raw_balance, self.decimals)

    @property
    def formatted_balance(self) -> str:
        return format(self.balance, "f")


class DustThresholds(BaseModel):
    usd_ceiling: float = Field(10.0, ge=0.0)


class ClassifiedTokens(BaseModel):
    dust: List[Token] = []
    non_dust: List[Token] = []


class ConversionTarget(BaseModel):
    address: str
    symbol: str
    name: str
    decimals: int


class TokenView(Token):
    """Token as shown to callers, with the dust flag derived for the current thresholds."""
    formatted: str
    is_dust: bool


class WalletScanResult(BaseModel):
    address: str
    chain_id: int
    thresholds: DustThresholds
    tokens: List[TokenView] = []
    total_tokens: int = 0
    dust_tokens: int = 0
    total_value_usd: float = 0.0
    dust_value_usd: float = 0.0
    gas_estimate_units: int = 0
    gas_estimate_native: Optional[str] = None
