import pytest

from dust_aggregator.core.domain.chains import BASE, NATIVE_TOKEN
from dust_aggregator.core.domain.enums.swap_enums import FailureKind, SwapStatus
from dust_aggregator.core.exceptions import UnsupportedChainError
from dust_aggregator.core.services import error_messages as em
from dust_aggregator.core.services.fee_policy import FeePolicy
from dust_aggregator.core.services.token_math import MAX_UINT256
from dust_aggregator.core.usecases.execute_batch_swap_use_case import ExecuteBatchSwapUseCase
from dust_aggregator.core.usecases.get_swap_quote_use_case import GetSwapQuoteUseCase

from helpers import (
    FEE_RECIPIENT,
    ONE,
    OWNER,
    SPENDER,
    TOKEN_A,
    TOKEN_B,
    TOKEN_C,
    TOKEN_D,
    USDC,
    WETH,
    FailingHistoryRepo,
    FakeChainClient,
    FakeSigner,
    FakeZeroEx,
    InMemoryHistoryRepo,
    RecordingSleep,
    make_token,
)

USDC_TARGET = BASE.conversion_targets[0]
CHAIN_ID = BASE.chain_id


def _setup(zx=None, chain=None, history=None, **signer_kw):
    chain = chain or FakeChainClient()
    signer = FakeSigner(chain, **signer_kw)
    zx = zx or FakeZeroEx()
    history = history if history is not None else InMemoryHistoryRepo()
    sleep = RecordingSleep()
    uc = ExecuteBatchSwapUseCase(
        GetSwapQuoteUseCase(zx, FeePolicy(recipient=FEE_RECIPIENT)),
        chain,
        history,
        sleep=sleep,
        clock=lambda: 1_700_000_000.0,
    )
    return uc, chain, signer, zx, history, sleep


def _tx_hash(n):
    return f"0x{n:064x}"


class StatusLog:
    def __init__(self):
        self.events = []

    def __call__(self, outcome):
        self.events.append(outcome)

    def statuses(self, address):
        return [o.status for o in self.events if o.token_address == address]


async def test_partial_failure_does_not_abort_batch():
    uc, chain, signer, zx, history, sleep = _setup(zx=FakeZeroEx(no_liquidity=[TOKEN_B]))
    tokens = [
        make_token(TOKEN_A, "A", price=0.5),
        make_token(TOKEN_B, "B", price=1.0),
        make_token(TOKEN_C, "C", price=2.0),
    ]

    res = await uc.execute(CHAIN_ID, tokens, USDC_TARGET, signer)

    assert res.total_attempted == 3
    assert [o.status for o in res.outcomes] == [SwapStatus.SUCCESS, SwapStatus.FAILED, SwapStatus.SUCCESS]
    (failed,) = res.failed
    assert failed.token_address == TOKEN_B
    assert failed.failure_kind == FailureKind.NO_LIQUIDITY
    assert failed.error == em.MSG_NO_LIQUIDITY
    assert sleep.calls == [1.0, 1.0]

    # approve + swap for A, then approve + swap for C
    assert len(signer.sent) == 4
    assert res.total_output_amount == 2 * ONE
    assert res.history_recorded

    (entry,) = history.entries
    assert [t.symbol for t in entry.from_tokens] == ["A", "C"]
    assert entry.tx_hash == _tx_hash(4)
    assert entry.tx_hashes == [_tx_hash(2), _tx_hash(4)]
    assert entry.total_value_usd == pytest.approx(2.5)
    assert entry.wallet == OWNER
    assert entry.timestamp == 1_700_000_000_000


async def test_approval_when_allowance_is_short():
    uc, chain, signer, *_ = _setup()
    log = StatusLog()

    res = await uc.execute(CHAIN_ID, [make_token(TOKEN_A, "A")], USDC_TARGET, signer, on_status=log)

    assert log.statuses(TOKEN_A) == [
        SwapStatus.PENDING, SwapStatus.CHECKING, SwapStatus.APPROVED, SwapStatus.SWAPPING, SwapStatus.SUCCESS,
    ]
    assert chain.approvals == [{"token": TOKEN_A, "spender": SPENDER, "amount": MAX_UINT256}]
    outcome = res.outcomes[0]
    assert outcome.approval_tx_hash == _tx_hash(1)
    assert outcome.tx_hash == _tx_hash(2)


async def test_no_approval_when_allowance_suffices():
    chain = FakeChainClient(allowances={TOKEN_A: MAX_UINT256})
    uc, chain, signer, *_ = _setup(chain=chain)
    log = StatusLog()

    await uc.execute(CHAIN_ID, [make_token(TOKEN_A, "A")], USDC_TARGET, signer, on_status=log)

    assert log.statuses(TOKEN_A) == [
        SwapStatus.PENDING, SwapStatus.CHECKING, SwapStatus.SWAPPING, SwapStatus.SUCCESS,
    ]
    assert chain.approvals == []
    assert len(signer.sent) == 1


async def test_native_sell_never_approves():
    uc, chain, signer, zx, _, _ = _setup()
    log = StatusLog()
    native = make_token(NATIVE_TOKEN, "ETH", raw=ONE)

    res = await uc.execute(CHAIN_ID, [native], USDC_TARGET, signer, on_status=log)

    assert res.outcomes[0].status == SwapStatus.SUCCESS
    assert SwapStatus.APPROVED not in log.statuses(NATIVE_TOKEN)
    assert chain.approvals == []
    assert len(signer.sent) == 1
    assert res.outcomes[0].amount_in == ONE - 500_000_000_000_000
    assert zx.quote_calls[0]["sellToken"] == WETH


async def test_native_below_gas_reserve_fails_as_insufficient_funds():
    uc, chain, signer, zx, _, _ = _setup()
    native = make_token(NATIVE_TOKEN, "ETH", raw=10 ** 14)

    res = await uc.execute(CHAIN_ID, [native], USDC_TARGET, signer)

    assert res.outcomes[0].failure_kind == FailureKind.INSUFFICIENT_FUNDS
    assert signer.sent == [] and zx.quote_calls == []


async def test_onchain_revert_is_failure():
    uc, chain, signer, _, history, _ = _setup(revert_if=lambda tx: str(tx.get("data", "")).startswith("0xswap"))

    res = await uc.execute(CHAIN_ID, [make_token(TOKEN_A, "A")], USDC_TARGET, signer)

    outcome = res.outcomes[0]
    assert outcome.status == SwapStatus.FAILED
    assert outcome.failure_kind == FailureKind.REVERTED
    assert outcome.error == em.MSG_REVERTED
    assert outcome.tx_hash == _tx_hash(2)
    assert history.entries == [] and not res.history_recorded


async def test_user_rejection_is_cancelled_and_batch_continues():
    swap_a = f"0xswap{TOKEN_A[2:10]}"
    uc, chain, signer, *_ = _setup(reject_if=lambda tx: tx.get("data") == swap_a)
    tokens = [make_token(TOKEN_A, "A"), make_token(TOKEN_C, "C")]

    res = await uc.execute(CHAIN_ID, tokens, USDC_TARGET, signer)

    a, c = res.outcomes
    assert a.status == SwapStatus.FAILED
    assert a.failure_kind == FailureKind.CANCELLED
    assert a.error == em.MSG_CANCELLED
    assert c.status == SwapStatus.SUCCESS


async def test_swap_gas_limit_is_padded():
    uc, chain, signer, *_ = _setup()
    await uc.execute(CHAIN_ID, [make_token(TOKEN_A, "A")], USDC_TARGET, signer)
    assert signer.sent[-1]["gas"] == 120_000

    uc, chain, signer, *_ = _setup(zx=FakeZeroEx(gas=None))
    await uc.execute(CHAIN_ID, [make_token(TOKEN_A, "A")], USDC_TARGET, signer)
    assert signer.sent[-1]["gas"] == 500_000


async def test_history_failure_never_changes_result():
    uc, chain, signer, *_ = _setup(history=FailingHistoryRepo())

    res = await uc.execute(CHAIN_ID, [make_token(TOKEN_A, "A")], USDC_TARGET, signer)

    assert len(res.successful) == 1
    assert not res.history_recorded


async def test_async_and_failing_callbacks():
    uc, chain, signer, *_ = _setup()
    seen = []

    async def on_status(outcome):
        seen.append(outcome.status)
        if outcome.status == SwapStatus.CHECKING:
            raise RuntimeError("ui went away")

    res = await uc.execute(CHAIN_ID, [make_token(TOKEN_A, "A")], USDC_TARGET, signer, on_status=on_status)

    assert seen[-1] == SwapStatus.SUCCESS
    assert res.outcomes[0].status == SwapStatus.SUCCESS


async def test_tiny_amount_and_target_token_fail_per_token():
    uc, chain, signer, zx, _, _ = _setup()
    tokens = [
        make_token(TOKEN_A, "A", raw=10),
        make_token(USDC, "USDC", raw=10 ** 6, decimals=6),
        make_token(TOKEN_C, "C"),
    ]

    res = await uc.execute(CHAIN_ID, tokens, USDC_TARGET, signer)

    tiny, same, ok = res.outcomes
    assert tiny.status == SwapStatus.FAILED and tiny.error == em.MSG_TOO_SMALL
    assert same.status == SwapStatus.FAILED
    assert ok.status == SwapStatus.SUCCESS


async def test_unsupported_chain_fails_whole_batch():
    uc, chain, signer, *_ = _setup()
    with pytest.raises(UnsupportedChainError):
        await uc.execute(137, [make_token(TOKEN_A, "A")], USDC_TARGET, signer)


async def test_empty_selection():
    uc, chain, signer, *_ = _setup()
    res = await uc.execute(CHAIN_ID, [], USDC_TARGET, signer)
    assert res.total_attempted == 0 and res.outcomes == []


async def test_output_estimate_uses_each_token_decimals():
    uc, chain, signer, _, history, _ = _setup()
    weth_target = BASE.conversion_targets[2]
    six = make_token(TOKEN_D, "SIX", raw=5_000_000, decimals=6, price=1.0)

    res = await uc.execute(CHAIN_ID, [six], weth_target, signer)

    assert res.outcomes[0].status == SwapStatus.SUCCESS
    assert res.total_output_amount == 5_000_000
    assert res.total_output_formatted == "0.000000000005"
    (entry,) = history.entries
    assert entry.to_token.amount == "0.000000000005"
    assert entry.from_tokens[0].amount == "5"
