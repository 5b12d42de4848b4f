import asyncio
import inspect
import logging
import time
import uuid
from typing import Awaitable, Callable, Dict, List, Optional, Union

from ..domain.chains import ChainConfig, get_chain, is_native
from ..domain.entities.swap_entity import (
    BatchResult,
    HistoryTokenAmount,
    SwapHistoryEntry,
    SwapOutcome,
)
from ..domain.entities.token_entity import ConversionTarget, Token
from ..domain.enums.swap_enums import FailureKind, SwapStatus
from ..exceptions import DustAggregatorError, MissingParameterError, TransactionRevertedError
from ..repositories.swap_history_repository import SwapHistoryRepository
from ..services.error_messages import MSG_INSUFFICIENT_GAS, humanize_error
from ..services.token_math import MAX_UINT256, format_units
from ..services.transaction_signer import TransactionSigner
from .get_swap_quote_use_case import GetSwapQuoteUseCase
from .price_tokens_use_case import PriceTokensUseCase
from ...adapters.external.chain.evm_chain_client import EvmChainClient
from ...adapters.external.chain.utils import receipt_ok

StatusCallback = Callable[[SwapOutcome], Union[None, Awaitable[None]]]

SWAP_GAS_MULTIPLIER = 1.2
SWAP_GAS_FALLBACK = 500_000


class ExecuteBatchSwapUseCase:
    """
    Sequential approve+swap of the selected tokens into one target token.

    Per token:
      pending -> checking -> [approved] -> swapping -> success | failed

    Rules:
      - one token at a time, one tx in flight, each awaited to its receipt;
      - a token failure is recorded on that token and the batch moves on;
      - approval (max uint256) only when the allowance is short, never for native;
      - a mined receipt with status 0 is a failure;
      - a history entry is written when at least one leg succeeded, and a
        failing history write never changes the result.
    """

    def __init__(
        self,
        quote_uc: GetSwapQuoteUseCase,
        chain_client: EvmChainClient,
        history_repo: Optional[SwapHistoryRepository] = None,
        price_uc: Optional[PriceTokensUseCase] = None,
        *,
        inter_swap_delay_sec: float = 1.0,
        native_gas_reserve_wei: int = 500_000_000_000_000,
        default_slippage_pct: float = 1.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        self._quotes = quote_uc
        self._rpc = chain_client
        self._history = history_repo
        self._prices = price_uc
        self._delay = float(inter_swap_delay_sec)
        self._gas_reserve = int(native_gas_reserve_wei)
        self._default_slippage = float(default_slippage_pct)
        self._sleep = sleep
        self._clock = clock
        self._logger = logger or logging.getLogger(self.__class__.__name__)

    async def _emit(self, on_status: Optional[StatusCallback], outcome: SwapOutcome) -> None:
        if on_status is None:
            return
        try:
            res = on_status(outcome.model_copy())
            if inspect.isawaitable(res):
                await res
        except Exception as exc:
            self._logger.warning("status callback failed for %s: %s", outcome.token_address, exc)

    async def _fail(
        self,
        outcome: SwapOutcome,
        kind: FailureKind,
        message: str,
        on_status: Optional[StatusCallback],
    ) -> None:
        outcome.status = SwapStatus.FAILED
        outcome.failure_kind = kind
        outcome.error = message
        await self._emit(on_status, outcome)

    async def execute(
        self,
        chain_id: int,
        tokens: List[Token],
        target: ConversionTarget,
        signer: TransactionSigner,
        slippage_pct: Optional[float] = None,
        on_status: Optional[StatusCallback] = None,
    ) -> BatchResult:
        chain = get_chain(chain_id)
        if signer is None:
            raise MissingParameterError("signer")
        if target is None:
            raise MissingParameterError("target")
        if not tokens:
            return BatchResult()

        slippage_bps = int(round((slippage_pct if slippage_pct is not None else self._default_slippage) * 100))

        outcomes = [
            SwapOutcome(token_address=t.address, symbol=t.symbol, amount_in=t.raw_balance)
            for t in tokens
        ]
        for o in outcomes:
            await self._emit(on_status, o)

        self._logger.info(
            "batch start: %d tokens -> %s on %s (slippage %sbps)",
            len(tokens), target.symbol, chain.slug, slippage_bps,
        )
        for i, (token, outcome) in enumerate(zip(tokens, outcomes)):
            if i > 0 and self._delay > 0:
                await self._sleep(self._delay)
            try:
                await self._swap_one(chain, token, target, signer, slippage_bps, outcome, on_status)
            except Exception as exc:
                kind, message = humanize_error(exc)
                if isinstance(exc, DustAggregatorError):
                    self._logger.warning("swap %s failed (%s): %s", token.symbol, kind.value, exc)
                else:
                    self._logger.exception("swap %s failed unexpectedly: %s", token.symbol, exc)
                await self._fail(outcome, kind, message, on_status)

        return await self._finish(chain, tokens, outcomes, target, signer)

    async def _swap_one(
        self,
        chain: ChainConfig,
        token: Token,
        target: ConversionTarget,
        signer: TransactionSigner,
        slippage_bps: int,
        outcome: SwapOutcome,
        on_status: Optional[StatusCallback],
    ) -> None:
        native = is_native(token.address)
        sell_amount = int(token.raw_balance)
        if native:
            # keep enough native for this and the following txs
            sell_amount -= self._gas_reserve
            if sell_amount <= 0:
                await self._fail(outcome, FailureKind.INSUFFICIENT_FUNDS, MSG_INSUFFICIENT_GAS, on_status)
                return
        outcome.amount_in = sell_amount

        if chain.to_router_token(token.address) == chain.to_router_token(target.address):
            await self._fail(outcome, FailureKind.FAILED, "Token is already the conversion target.", on_status)
            return

        outcome.status = SwapStatus.CHECKING
        await self._emit(on_status, outcome)
        check = await self._quotes.check_liquidity(
            chain.chain_id, token.address, target.address, sell_amount,
            sell_decimals=token.decimals, taker=signer.address,
        )
        if not check.can_swap:
            kind, message = humanize_error(check.reason)
            await self._fail(outcome, kind, message, on_status)
            return

        result = await self._quotes.execute(
            chain.chain_id, token.address, target.address, sell_amount, signer.address,
            sell_decimals=token.decimals, slippage_bps=slippage_bps,
        )
        quote = result.quote

        if not native and quote.allowance_spender:
            allowance = await self._rpc.get_allowance(quote.sell_token, signer.address, quote.allowance_spender)
            if allowance < sell_amount:
                approve_tx = self._rpc.build_approve_tx(quote.sell_token, quote.allowance_spender, MAX_UINT256)
                approval_hash = await signer.send_transaction(approve_tx)
                outcome.approval_tx_hash = approval_hash
                receipt = await self._rpc.wait_for_receipt(approval_hash)
                if not receipt_ok(receipt):
                    raise TransactionRevertedError(approval_hash, receipt, "Approval transaction reverted")
                outcome.status = SwapStatus.APPROVED
                await self._emit(on_status, outcome)

        gas = quote.transaction.gas
        swap_tx = {
            "to": quote.transaction.to,
            "data": quote.transaction.data,
            "value": quote.transaction.value,
            "gas": int(gas * SWAP_GAS_MULTIPLIER) if gas else SWAP_GAS_FALLBACK,
        }
        tx_hash = await signer.send_transaction(swap_tx)
        outcome.tx_hash = tx_hash
        outcome.status = SwapStatus.SWAPPING
        await self._emit(on_status, outcome)

        receipt = await self._rpc.wait_for_receipt(tx_hash)
        if not receipt_ok(receipt):
            raise TransactionRevertedError(tx_hash, receipt, "Swap transaction reverted")

        outcome.status = SwapStatus.SUCCESS
        await self._emit(on_status, outcome)
        self._logger.info("swapped %s %s -> %s tx=%s", sell_amount, token.symbol, target.symbol, tx_hash)

    # ---------- aggregation ----------

    async def _estimate_output(
        self,
        chain: ChainConfig,
        legs: List[SwapOutcome],
        target: ConversionTarget,
        decimals: Dict[str, int],
    ) -> Optional[int]:
        """Re-query prices for the successful legs; executed quotes are not kept."""
        total = 0
        for leg in legs:
            try:
                check = await self._quotes.check_liquidity(
                    chain.chain_id, leg.token_address, target.address, leg.amount_in,
                    sell_decimals=decimals[leg.token_address],
                )
            except Exception as exc:
                self._logger.warning("output re-estimate failed for %s: %s", leg.symbol, exc)
                continue
            if check.can_swap and check.estimated_output:
                total += int(check.estimated_output)
        return total

    async def _target_price(self, target: ConversionTarget) -> float:
        if self._prices is None:
            return 0.0
        prices = await self._prices.execute([target.address])
        return float(prices.get(target.address, 0.0))

    async def _finish(
        self,
        chain: ChainConfig,
        tokens: List[Token],
        outcomes: List[SwapOutcome],
        target: ConversionTarget,
        signer: TransactionSigner,
    ) -> BatchResult:
        successful = [o for o in outcomes if o.status == SwapStatus.SUCCESS]
        failed = [o for o in outcomes if o.status != SwapStatus.SUCCESS]
        result = BatchResult(
            outcomes=outcomes,
            successful=successful,
            failed=failed,
            total_attempted=len(outcomes),
        )
        self._logger.info("batch done: %d ok, %d failed", len(successful), len(failed))
        if not successful:
            return result

        by_addr = {t.address: t for t in tokens}
        total_out = await self._estimate_output(
            chain, successful, target, {a: t.decimals for a, t in by_addr.items()}
        )
        result.total_output_amount = total_out
        if total_out is not None:
            formatted = format_units(total_out, target.decimals)
            result.total_output_formatted = format(formatted, "f")
            price = await self._target_price(target)
            result.total_output_usd = float(formatted) * price if price else None

        from_tokens: List[HistoryTokenAmount] = []
        total_value = 0.0
        for o in successful:
            t = by_addr[o.token_address]
            value = float(format_units(o.amount_in, t.decimals)) * float(t.price_usd)
            total_value += value
            from_tokens.append(HistoryTokenAmount(
                symbol=t.symbol,
                address=t.address,
                amount=format(format_units(o.amount_in, t.decimals), "f"),
                value_usd=value,
            ))

        entry = SwapHistoryEntry(
            id=uuid.uuid4().hex,
            timestamp=int(self._clock() * 1000),
            wallet=signer.address.lower(),
            chain_id=chain.chain_id,
            from_tokens=from_tokens,
            to_token=HistoryTokenAmount(
                symbol=target.symbol,
                address=target.address,
                amount=result.total_output_formatted or "0",
                value_usd=result.total_output_usd,
            ),
            tx_hash=successful[-1].tx_hash or "",
            tx_hashes=[o.tx_hash for o in successful if o.tx_hash],
            total_value_usd=total_value,
        )
        if self._history is not None:
            try:
                await self._history.append(entry)
                result.history_recorded = True
            except Exception as exc:
                self._logger.warning("failed to record swap history: %s", exc)
        return result
