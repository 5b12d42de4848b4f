from decimal import Decimal, localcontext

MAX_UINT256 = (1 << 256) - 1

# Minimum raw sell amount accepted by the quote engine.
MIN_SELL_RAW_FLOOR = 1000


def format_units(raw: int, decimals: int) -> Decimal:
    with localcontext() as ctx:
        ctx.prec = 100
        return Decimal(int(raw)) / (Decimal(10) ** int(decimals))


def min_sell_amount(decimals: int) -> int:
    """
    Per-token floor in raw units: 1000 for 6-decimals tokens, 1e12 for 18-decimals ones.
    """
    return max(MIN_SELL_RAW_FLOOR, 10 ** max(0, int(decimals) - 6))


def batch_gas_units(token_count: int) -> int:
    """Rough gas for a batch: base tx + one transfer-sized swap per token."""
    return 21_000 + 65_000 * int(token_count)
