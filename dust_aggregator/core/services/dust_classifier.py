"""
Dust classification. Pure functions of (valuations, thresholds): safe to re-run
whenever thresholds change, no balances or prices are fetched here.
"""

from typing import Iterable

from ..domain.entities.token_entity import ClassifiedTokens, DustThresholds, Token


def is_dust(token: Token, thresholds: DustThresholds) -> bool:
    # zero-value tokens are dust by definition
    return float(token.value_usd) <= float(thresholds.usd_ceiling)


def classify(tokens: Iterable[Token], thresholds: DustThresholds) -> ClassifiedTokens:
    dust, non_dust = [], []
    for t in tokens:
        (dust if is_dust(t, thresholds) else non_dust).append(t)
    return ClassifiedTokens(dust=dust, non_dust=non_dust)


def dust_value_usd(tokens: Iterable[Token], thresholds: DustThresholds) -> float:
    return sum(float(t.value_usd) for t in tokens if is_dust(t, thresholds))
