import pytest

from dust_aggregator.adapters.external.coingecko.coingecko_client import CoinGeckoQuote
from dust_aggregator.core.domain.chains import BASE
from dust_aggregator.core.domain.entities.token_entity import DustThresholds, TokenMetadata
from dust_aggregator.core.domain.enums.swap_enums import SwapStatus
from dust_aggregator.core.exceptions import WalletNotScannedError
from dust_aggregator.core.services.fee_policy import FeePolicy
from dust_aggregator.core.usecases.discover_tokens_use_case import DiscoverTokensUseCase
from dust_aggregator.core.usecases.execute_batch_swap_use_case import ExecuteBatchSwapUseCase
from dust_aggregator.core.usecases.get_swap_quote_use_case import GetSwapQuoteUseCase
from dust_aggregator.core.usecases.price_tokens_use_case import PriceTokensUseCase
from dust_aggregator.core.usecases.scan_wallet_use_case import ScanWalletUseCase

from helpers import (
    FEE_RECIPIENT,
    ONE,
    OWNER,
    TOKEN_A,
    TOKEN_B,
    TOKEN_C,
    TOKEN_D,
    FakeChainClient,
    FakeExplorer,
    FakePriceClient,
    FakeSigner,
    FakeZeroEx,
    InMemoryHistoryRepo,
    InMemoryThresholdRepo,
    RecordingSleep,
)


def _wallet():
    chain = FakeChainClient(
        balances={TOKEN_A: ONE, TOKEN_B: ONE, TOKEN_C: ONE, TOKEN_D: 2 * ONE},
        metadata={
            TOKEN_A: TokenMetadata(symbol="AAA", name="Alpha", decimals=18),
            TOKEN_B: TokenMetadata(symbol="BBB", name="Beta", decimals=18),
            TOKEN_C: TokenMetadata(symbol="CCC", name="Gamma", decimals=18),
            TOKEN_D: TokenMetadata(symbol="DDD", name="Delta", decimals=18),
        },
    )
    prices = FakePriceClient(quotes={
        TOKEN_A: CoinGeckoQuote(usd=0.5),
        TOKEN_B: CoinGeckoQuote(usd=8.0),
        TOKEN_C: CoinGeckoQuote(usd=50.0),
        TOKEN_D: CoinGeckoQuote(usd=3.0),
    })
    discover = DiscoverTokensUseCase(BASE, chain, explorer=FakeExplorer({TOKEN_A, TOKEN_B, TOKEN_C}))
    price_uc = PriceTokensUseCase(BASE, prices)
    thresholds = InMemoryThresholdRepo(default=10.0)
    scan_uc = ScanWalletUseCase(BASE, discover, price_uc, thresholds, chain_client=chain)
    return scan_uc, chain, price_uc, thresholds


async def test_scan_classify_and_convert_dust():
    scan_uc, chain, price_uc, _ = _wallet()

    res = await scan_uc.scan(OWNER)

    assert [t.symbol for t in res.tokens] == ["CCC", "BBB", "AAA"]
    assert {t.address for t in res.tokens if t.is_dust} == {TOKEN_A, TOKEN_B}
    assert res.dust_tokens == 2 and res.total_tokens == 3
    assert res.dust_value_usd == pytest.approx(8.5)
    assert res.total_value_usd == pytest.approx(58.5)
    assert res.gas_estimate_units > 0 and res.gas_estimate_native is not None

    dust = scan_uc.select_tokens(OWNER, [t.address for t in res.tokens if t.is_dust])
    history = InMemoryHistoryRepo()
    signer = FakeSigner(chain)
    batch_uc = ExecuteBatchSwapUseCase(
        GetSwapQuoteUseCase(FakeZeroEx(), FeePolicy(recipient=FEE_RECIPIENT)),
        chain,
        history,
        price_uc,
        sleep=RecordingSleep(),
    )

    out = await batch_uc.execute(BASE.chain_id, dust, BASE.conversion_targets[0], signer)

    assert [o.status for o in out.outcomes] == [SwapStatus.SUCCESS, SwapStatus.SUCCESS]
    (entry,) = history.entries
    assert len(entry.from_tokens) == 2
    assert entry.total_value_usd == pytest.approx(8.5)
    assert entry.to_token.symbol == "USDC"


async def test_threshold_change_reclassifies_without_refetching():
    scan_uc, chain, _, thresholds = _wallet()
    await scan_uc.scan(OWNER)
    calls = len(chain.balance_calls)

    res = await scan_uc.set_thresholds(OWNER, DustThresholds(usd_ceiling=100.0))

    assert res.dust_tokens == 3
    assert len(chain.balance_calls) == calls
    assert thresholds.saved[OWNER].usd_ceiling == 100.0

    res = await scan_uc.reclassify(OWNER, DustThresholds(usd_ceiling=0.0))
    assert res.dust_tokens == 0


async def test_threshold_saved_before_any_scan():
    scan_uc, _, _, thresholds = _wallet()
    assert await scan_uc.set_thresholds(OWNER, DustThresholds(usd_ceiling=5.0)) is None
    assert (await scan_uc.get_thresholds(OWNER)).usd_ceiling == 5.0


async def test_session_required():
    scan_uc, *_ = _wallet()
    with pytest.raises(WalletNotScannedError):
        await scan_uc.reclassify(OWNER)
    with pytest.raises(WalletNotScannedError):
        scan_uc.select_tokens(OWNER, [TOKEN_A])


async def test_add_custom_token_joins_session():
    scan_uc, *_ = _wallet()
    await scan_uc.scan(OWNER)

    token = await scan_uc.add_token(OWNER, TOKEN_D)
    assert token.symbol == "DDD" and token.value_usd == pytest.approx(6.0)

    res = await scan_uc.reclassify(OWNER)
    assert res.total_tokens == 4
    assert TOKEN_D in {t.address for t in res.tokens if t.is_dust}

    assert await scan_uc.add_token(OWNER, "0x" + "e" * 40) is None
