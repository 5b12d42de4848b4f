from typing import Any, Dict, Optional


class DustAggregatorError(Exception):
    """Base class for every error raised by the aggregator core."""


# ---------- configuration / precondition errors ----------

class ConfigurationError(DustAggregatorError):
    """Invalid or missing configuration (e.g. fees enabled without a recipient)."""


class UnsupportedChainError(DustAggregatorError):
    def __init__(self, chain_id: int):
        super().__init__(f"Unsupported chainId {chain_id}")
        self.chain_id = chain_id


class MissingParameterError(DustAggregatorError):
    def __init__(self, *names: str):
        super().__init__(f"Missing required parameter(s): {', '.join(names)}")
        self.names = list(names)


class InvalidAddressError(DustAggregatorError):
    def __init__(self, value: str):
        super().__init__(f"Invalid address: {value!r}")
        self.value = value


class SellAmountTooSmallError(DustAggregatorError):
    """
    Raised BEFORE querying the aggregator when the raw sell amount is below
    the per-token floor (tiny amounts make the upstream reject or degenerate).
    """
    def __init__(self, token: str, amount: int, minimum: int):
        super().__init__(f"Amount {amount} of {token} is below the minimum swappable amount {minimum}")
        self.token = token
        self.amount = amount
        self.minimum = minimum


PRECONDITION_ERRORS = (
    ConfigurationError,
    UnsupportedChainError,
    MissingParameterError,
    InvalidAddressError,
    SellAmountTooSmallError,
)


class WalletNotScannedError(DustAggregatorError):
    """Thresholds or a selection were applied to a wallet with no cached scan."""
    def __init__(self, wallet: str):
        super().__init__(f"Wallet {wallet} has not been scanned yet")
        self.wallet = wallet


# ---------- quote errors ----------

class NoLiquidityError(DustAggregatorError):
    """The aggregator found no viable route for the pair/amount. Expected outcome, not a bug."""
    def __init__(self, sell_token: str, buy_token: str, msg: Optional[str] = None):
        super().__init__(msg or f"No liquidity available for {sell_token} -> {buy_token}")
        self.sell_token = sell_token
        self.buy_token = buy_token


class QuoteRequestError(DustAggregatorError):
    """The swap quote service answered with an error or an unreadable body."""
    def __init__(self, msg: str, status_code: Optional[int] = None, details: Any = None):
        super().__init__(msg)
        self.msg = msg
        self.status_code = status_code
        self.details = details


# ---------- price errors ----------

class PriceRequestError(DustAggregatorError):
    """The price service could not be reached or answered with an error. Nothing is cached."""
    def __init__(self, msg: str, status_code: Optional[int] = None):
        super().__init__(msg)
        self.msg = msg
        self.status_code = status_code


# ---------- execution errors ----------

class UserRejectedError(DustAggregatorError):
    """The signer (wallet) declined to sign. Recoverable by retrying."""
    def __init__(self, msg: str = "User rejected the request"):
        super().__init__(msg)


class TransactionRevertedError(DustAggregatorError):
    """
    Raised when the tx was actually sent on-chain, mined, and status == 0.
    Gas was paid, the chain executed and reverted.
    """
    def __init__(self, tx_hash: str, receipt: Dict[str, Any], msg: str):
        super().__init__(msg)
        self.tx_hash = tx_hash
        self.receipt = receipt
        self.msg = msg
