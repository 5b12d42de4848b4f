import logging
from typing import List, Optional

from ..domain.chains import ChainConfig, get_chain, require_address
from ..domain.entities.quote_entity import (
    FeeBreakdown,
    LiquidityCheck,
    Quote,
    QuoteTransaction,
    SwapQuoteResult,
)
from ..exceptions import (
    ConfigurationError,
    MissingParameterError,
    NoLiquidityError,
    QuoteRequestError,
    SellAmountTooSmallError,
)
from ..services.error_messages import MSG_NO_LIQUIDITY
from ..services.fee_policy import FeePolicy
from ..services.token_math import format_units, min_sell_amount
from ...adapters.external.zeroex.zeroex_client import ZeroExClient, ZeroExResponse


def _to_int(v: Optional[str]) -> Optional[int]:
    if v is None or v == "":
        return None
    try:
        return int(v)
    except ValueError:
        return None


class GetSwapQuoteUseCase:
    """
    Quote & fee engine on top of the 0x allowance-holder API.

    Steps:
      1. preconditions (chain, params, fee config, sell floor), before any call;
      2. native sentinel -> wrapped native on both sides;
      3. USD notional of the sell amount (stable: direct; else indicative price to the stable);
      4. fee bps from the tier table (unresolved notional -> default tier);
      5. firm quote with affiliate fee params;
      6. no positive output -> NoLiquidityError.
    """

    def __init__(
        self,
        zeroex: ZeroExClient,
        fee_policy: FeePolicy,
        logger: Optional[logging.Logger] = None,
    ):
        self._zx = zeroex
        self._fees = fee_policy
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    @property
    def fee_policy(self) -> FeePolicy:
        return self._fees

    def _preconditions(
        self,
        chain_id: int,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: Optional[str],
        sell_decimals: int,
        *,
        require_taker: bool,
        require_fee_config: bool,
    ) -> ChainConfig:
        chain = get_chain(chain_id)

        missing: List[str] = []
        if not sell_token:
            missing.append("sell_token")
        if not buy_token:
            missing.append("buy_token")
        if sell_amount is None or int(sell_amount) <= 0:
            missing.append("sell_amount")
        if require_taker and not taker:
            missing.append("taker")
        if missing:
            raise MissingParameterError(*missing)

        require_address(sell_token)
        require_address(buy_token)
        if taker:
            require_address(taker)

        if require_fee_config and self._fees.enabled and not self._fees.recipient:
            raise ConfigurationError("Swap fees are enabled but no fee recipient is configured")

        floor = min_sell_amount(sell_decimals)
        if int(sell_amount) < floor:
            raise SellAmountTooSmallError(sell_token, int(sell_amount), floor)
        return chain

    async def estimate_usd_notional(self, chain: ChainConfig, sell_token: str, sell_amount: int) -> Optional[float]:
        """
        USD value of `sell_amount` of an already router-normalized token.
        None when it cannot be estimated; never raises.
        """
        if sell_token == chain.usd_stable:
            return float(format_units(sell_amount, chain.usd_stable_decimals))

        params = ZeroExClient.build_params(chain.chain_id, sell_token, chain.usd_stable, sell_amount)
        try:
            resp = await self._zx.get_price(params)
        except QuoteRequestError as exc:
            self._logger.warning("notional estimate failed for %s: %s", sell_token, exc)
            return None
        if not resp.liquidityAvailable or resp.buy_amount <= 0:
            return None
        return float(format_units(resp.buy_amount, chain.usd_stable_decimals))

    async def execute(
        self,
        chain_id: int,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        taker: str,
        *,
        sell_decimals: int = 18,
        slippage_bps: Optional[int] = None,
        disable_fee: bool = False,
    ) -> SwapQuoteResult:
        chain = self._preconditions(
            chain_id, sell_token, buy_token, sell_amount, taker, sell_decimals,
            require_taker=True, require_fee_config=not disable_fee,
        )
        sell = chain.to_router_token(sell_token)
        buy = chain.to_router_token(buy_token)
        amount = int(sell_amount)

        charge_fee = self._fees.enabled and not disable_fee
        usd_notional = await self.estimate_usd_notional(chain, sell, amount) if charge_fee else None
        bps = self._fees.select_bps(usd_notional) if charge_fee else 0

        params = ZeroExClient.build_params(
            chain.chain_id, sell, buy, amount,
            taker=taker,
            slippage_bps=slippage_bps,
            fee_recipient=self._fees.recipient if bps > 0 else None,
            fee_bps=bps,
        )
        resp = await self._zx.get_quote(params)
        quote = self._to_quote(chain, sell, buy, amount, resp)

        fee = FeeBreakdown(
            enabled=bps > 0,
            bps=bps,
            recipient=self._fees.recipient if bps > 0 else None,
            token=buy if bps > 0 else None,
            usd_notional=usd_notional,
            fee_amount=FeePolicy.fee_amount(quote.buy_amount, bps),
            tiers=list(self._fees.tiers),
        )
        self._logger.info(
            "quote %s -> %s amount=%s buy=%s fee_bps=%s notional=%s",
            sell, buy, amount, quote.buy_amount, bps, usd_notional,
        )
        return SwapQuoteResult(quote=quote, fee=fee)

    @staticmethod
    def _to_quote(chain: ChainConfig, sell: str, buy: str, amount: int, resp: ZeroExResponse) -> Quote:
        if not resp.liquidityAvailable or resp.buy_amount <= 0:
            raise NoLiquidityError(sell, buy)
        if resp.transaction is None:
            raise QuoteRequestError("Quote response has no transaction", status_code=200)

        tx = resp.transaction
        return Quote(
            chain_id=chain.chain_id,
            sell_token=sell,
            buy_token=buy,
            sell_amount=_to_int(resp.sellAmount) or amount,
            buy_amount=resp.buy_amount,
            min_buy_amount=_to_int(resp.minBuyAmount),
            transaction=QuoteTransaction(
                to=tx.to,
                data=tx.data,
                value=_to_int(tx.value) or 0,
                gas=_to_int(tx.gas) or _to_int(resp.gas),
            ),
            allowance_spender=resp.allowance_spender,
            liquidity_available=True,
        )

    async def check_liquidity(
        self,
        chain_id: int,
        sell_token: str,
        buy_token: str,
        sell_amount: int,
        *,
        sell_decimals: int = 18,
        taker: Optional[str] = None,
    ) -> LiquidityCheck:
        """
        Price-only feasibility check. Upstream problems come back as can_swap=False,
        only precondition errors raise.
        """
        chain = self._preconditions(
            chain_id, sell_token, buy_token, sell_amount, taker, sell_decimals,
            require_taker=False, require_fee_config=False,
        )
        params = ZeroExClient.build_params(
            chain.chain_id,
            chain.to_router_token(sell_token),
            chain.to_router_token(buy_token),
            int(sell_amount),
            taker=taker,
        )
        try:
            resp = await self._zx.get_price(params)
        except QuoteRequestError as exc:
            return LiquidityCheck(can_swap=False, reason=exc.msg)

        if not resp.liquidityAvailable or resp.buy_amount <= 0:
            return LiquidityCheck(can_swap=False, reason=MSG_NO_LIQUIDITY)
        return LiquidityCheck(
            can_swap=True,
            estimated_output=resp.buy_amount,
            estimated_gas=_to_int(resp.gas),
        )
