import asyncio
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from dust_aggregator.adapters.external.coingecko.coingecko_client import CoinGeckoQuote
from dust_aggregator.adapters.external.zeroex.zeroex_client import (
    ZeroExAllowanceIssue,
    ZeroExIssues,
    ZeroExResponse,
    ZeroExTransaction,
)
from dust_aggregator.core.domain.chains import BASE
from dust_aggregator.core.domain.entities.swap_entity import SwapHistoryEntry
from dust_aggregator.core.domain.entities.token_entity import (
    BalancePage,
    DustThresholds,
    RawBalance,
    Token,
    TokenMetadata,
)
from dust_aggregator.core.exceptions import PriceRequestError, QuoteRequestError, UserRejectedError
from dust_aggregator.core.repositories.swap_history_repository import SwapHistoryRepository
from dust_aggregator.core.repositories.threshold_repository import ThresholdRepository
from dust_aggregator.core.services.transaction_signer import TransactionSigner

OWNER = "0xabcd00000000000000000000000000000000abcd"
FEE_RECIPIENT = "0xfee0000000000000000000000000000000000fee"
SPENDER = "0x0000000000001ff3684f28c67538d4d072c22734"
ROUTER = "0x0000000000005e88410ccdfade4a5efae4b49562"

TOKEN_A = "0xaaaa00000000000000000000000000000000aaaa"
TOKEN_B = "0xbbbb00000000000000000000000000000000bbbb"
TOKEN_C = "0xcccc00000000000000000000000000000000cccc"
TOKEN_D = "0xdddd00000000000000000000000000000000dddd"

USDC = BASE.usd_stable
WETH = BASE.wrapped_native
DAI = "0x50c5725949a6f0c72e6c4a641f24049a917db0cb"

ONE = 10 ** 18


def make_token(address: str, symbol: str, raw: int = ONE, decimals: int = 18, price: float = 0.0) -> Token:
    value = float(raw) / 10 ** decimals * price
    return Token(
        address=address, symbol=symbol, name=symbol, decimals=decimals,
        raw_balance=raw, price_usd=price, value_usd=value,
    )


class FakeChainClient:
    def __init__(
        self,
        balances: Optional[Dict[str, int]] = None,
        native: int = 0,
        metadata: Optional[Dict[str, TokenMetadata]] = None,
        allowances: Optional[Dict[str, int]] = None,
        hang: Iterable[str] = (),
        gas_price: int = 1_000_000_000,
    ):
        self.balances = {k.lower(): v for k, v in (balances or {}).items()}
        self.native = native
        self.metadata = metadata or {}
        self.allowances = allowances or {}
        self.hang = set(hang)
        self.gas_price = gas_price
        self.statuses: Dict[str, int] = {}
        self.approvals: List[Dict[str, Any]] = []
        self.balance_calls: List[str] = []

    async def get_native_balance(self, owner: str) -> int:
        return self.native

    async def get_erc20_balance(self, token: str, owner: str) -> int:
        self.balance_calls.append(token)
        if token in self.hang:
            await asyncio.sleep(3600)
        return self.balances.get(token, 0)

    async def get_erc20_metadata(self, token: str) -> TokenMetadata:
        if token not in self.metadata:
            raise RuntimeError("execution reverted")
        return self.metadata[token]

    async def get_allowance(self, token: str, owner: str, spender: str) -> int:
        return self.allowances.get(token, 0)

    async def get_gas_price(self) -> int:
        return self.gas_price

    def build_approve_tx(self, token: str, spender: str, amount: int) -> Dict[str, Any]:
        self.approvals.append({"token": token, "spender": spender, "amount": amount})
        return {"to": token, "data": f"approve:{spender}", "value": 0}

    async def wait_for_receipt(self, tx_hash: str) -> Dict[str, Any]:
        return {"transactionHash": tx_hash, "status": self.statuses.get(tx_hash, 1)}


class FakeSigner(TransactionSigner):
    def __init__(
        self,
        chain: FakeChainClient,
        address: str = OWNER,
        reject_if: Callable[[Dict[str, Any]], bool] = lambda tx: False,
        revert_if: Callable[[Dict[str, Any]], bool] = lambda tx: False,
    ):
        self._chain = chain
        self._address = address
        self._reject_if = reject_if
        self._revert_if = revert_if
        self.sent: List[Dict[str, Any]] = []

    @property
    def address(self) -> str:
        return self._address

    async def send_transaction(self, tx: Dict[str, Any]) -> str:
        if self._reject_if(tx):
            raise UserRejectedError("User rejected the request.")
        self.sent.append(tx)
        tx_hash = f"0x{len(self.sent):064x}"
        self._chain.statuses[tx_hash] = 0 if self._revert_if(tx) else 1
        return tx_hash


class FakeIndexer:
    def __init__(
        self,
        pages: Optional[List[BalancePage]] = None,
        metadata: Optional[Dict[str, TokenMetadata]] = None,
        fail: bool = False,
    ):
        self.pages = pages or []
        self.metadata = metadata or {}
        self.fail = fail
        self.page_calls: List[Optional[str]] = []

    async def get_token_balances(self, owner: str, page_key: Optional[str] = None) -> Optional[BalancePage]:
        self.page_calls.append(page_key)
        if self.fail:
            raise RuntimeError("rate limited")
        idx = int(page_key) if page_key else 0
        return self.pages[idx] if idx < len(self.pages) else None

    async def get_token_metadata(self, contract: str) -> Optional[TokenMetadata]:
        return self.metadata.get(contract)


def balance_pages(*pages: Dict[str, int]) -> List[BalancePage]:
    """Build cursor-linked pages; the cursor is the next page's index."""
    out = []
    for i, page in enumerate(pages):
        nxt = str(i + 1) if i + 1 < len(pages) else None
        out.append(BalancePage(
            balances=[RawBalance(contract=c, raw_balance=v) for c, v in page.items()],
            next_cursor=nxt,
        ))
    return out


class FakeExplorer:
    def __init__(self, contracts: Optional[Set[str]] = None, fail: bool = False):
        self.contracts = contracts or set()
        self.fail = fail

    async def token_transfer_contracts(self, owner: str, max_pages: int = 10, page_size: int = 1000):
        if self.fail:
            raise RuntimeError("explorer down")
        return set(self.contracts)


class FakePriceClient:
    def __init__(
        self,
        quotes: Optional[Dict[str, CoinGeckoQuote]] = None,
        by_id: Optional[Dict[str, float]] = None,
        fail: bool = False,
    ):
        self.quotes = quotes or {}
        self.by_id = by_id or {}
        self.fail = fail
        self.token_calls = 0
        self.id_calls: List[Set[str]] = []

    async def get_token_prices(self, platform: str, addresses) -> Dict[str, CoinGeckoQuote]:
        self.token_calls += 1
        if self.fail:
            raise PriceRequestError("price api down", status_code=503)
        return {a: self.quotes[a] for a in addresses if a in self.quotes}

    async def get_prices_by_id(self, ids) -> Dict[str, float]:
        self.id_calls.append(set(ids))
        return {i: self.by_id[i] for i in ids if i in self.by_id}


class FakeZeroEx:
    """
    buy amount = buy_amounts[sellToken] when set, else sellAmount.
    """

    def __init__(
        self,
        buy_amounts: Optional[Dict[str, int]] = None,
        no_liquidity: Iterable[str] = (),
        fail_price: Iterable[str] = (),
        gas: Optional[str] = "100000",
        spender: Optional[str] = SPENDER,
    ):
        self.buy_amounts = buy_amounts or {}
        self.no_liquidity = set(no_liquidity)
        self.fail_price = set(fail_price)
        self.gas = gas
        self.spender = spender
        self.price_calls: List[Dict[str, Any]] = []
        self.quote_calls: List[Dict[str, Any]] = []

    def _resp(self, params: Dict[str, Any]) -> ZeroExResponse:
        sell = params["sellToken"]
        if sell in self.no_liquidity:
            return ZeroExResponse(liquidityAvailable=False)
        buy = self.buy_amounts.get(sell, int(params["sellAmount"]))
        return ZeroExResponse(
            liquidityAvailable=True,
            buyAmount=str(buy),
            minBuyAmount=str(buy * 99 // 100),
            sellAmount=params["sellAmount"],
            gas=self.gas,
            issues=ZeroExIssues(allowance=ZeroExAllowanceIssue(actual="0", spender=self.spender)) if self.spender else None,
            transaction=ZeroExTransaction(to=ROUTER, data=f"0xswap{sell[2:10]}", value="0", gas=self.gas),
        )

    async def get_price(self, params: Dict[str, Any]) -> ZeroExResponse:
        self.price_calls.append(params)
        if params["sellToken"] in self.fail_price:
            raise QuoteRequestError("0x is down", status_code=500)
        return self._resp(params)

    async def get_quote(self, params: Dict[str, Any]) -> ZeroExResponse:
        self.quote_calls.append(params)
        return self._resp(params)


class InMemoryHistoryRepo(SwapHistoryRepository):
    def __init__(self, limit: int = 20):
        self.entries: List[SwapHistoryEntry] = []
        self.limit = limit

    async def append(self, entry: SwapHistoryEntry) -> None:
        self.entries.insert(0, entry)
        del self.entries[self.limit:]

    async def read_all(self) -> List[SwapHistoryEntry]:
        return list(self.entries)

    async def clear(self) -> None:
        self.entries.clear()


class FailingHistoryRepo(InMemoryHistoryRepo):
    async def append(self, entry: SwapHistoryEntry) -> None:
        raise OSError("disk full")


class InMemoryThresholdRepo(ThresholdRepository):
    def __init__(self, default: float = 10.0):
        self.default = default
        self.saved: Dict[str, DustThresholds] = {}

    async def get(self, wallet: str) -> DustThresholds:
        return self.saved.get(wallet, DustThresholds(usd_ceiling=self.default))

    async def save(self, wallet: str, thresholds: DustThresholds) -> None:
        self.saved[wallet] = thresholds


class RecordingSleep:
    def __init__(self):
        self.calls: List[float] = []

    async def __call__(self, sec: float) -> None:
        self.calls.append(sec)
