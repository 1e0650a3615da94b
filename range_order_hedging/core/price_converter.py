#!/usr/bin/env python3
"""
Price Converter

Conversions between tick indices, Q64.96 sqrt prices and human prices for
one pool pairing.

Human prices come in two orientations:
- pool price: token0 quoted in token1, in whole-token units
- economic price: the hedged asset quoted in the collateral asset

The two coincide unless the pool's token0 is the collateral asset, in which
case the pairing is ``inverted`` and the economic price is the reciprocal.
"""

import math
from enum import Enum
from fractions import Fraction
from typing import Sequence, Union

import numpy as np

from .uniswap_v3_math import (
    MAX_SQRT_RATIO, MIN_SQRT_RATIO, Q192,
    get_tick_at_sqrt_ratio, nearest_usable_tick,
)

TICK_BASE = 1.0001


class Direction(Enum):
    """Side of the current pool price a range order rests on"""
    ABOVE = "above"  # token0 deposit, filled as the tick rises through it
    BELOW = "below"  # token1 deposit, filled as the tick falls through it


def tick_to_price(tick: int, decimals0: int, decimals1: int, inverted: bool = False) -> float:
    """1.0001**tick rescaled to whole-token units, reciprocal when inverted"""
    price = TICK_BASE ** tick * 10 ** (decimals0 - decimals1)
    return 1.0 / price if inverted else price


def price_to_sqrt(price: float, decimals0: int, decimals1: int, inverted: bool = False) -> int:
    """Human price -> Q64.96 sqrt price, exactly (rational arithmetic and integer sqrt)"""
    if price <= 0:
        raise ValueError(f"Price must be positive, got {price}")
    ratio = Fraction(price)
    if inverted:
        ratio = 1 / ratio
    ratio *= Fraction(10) ** (decimals1 - decimals0)
    return math.isqrt(ratio.numerator * Q192 // ratio.denominator)


def sqrt_to_price(sqrt_price_x96: int, decimals0: int, decimals1: int, inverted: bool = False) -> float:
    """Q64.96 sqrt price -> human price, using exact integer arithmetic"""
    if sqrt_price_x96 <= 0:
        raise ValueError("sqrt price must be positive")
    ratio = Fraction(sqrt_price_x96 * sqrt_price_x96, Q192) * Fraction(10) ** (decimals0 - decimals1)
    return float(1 / ratio if inverted else ratio)


def price_to_use(price0: float, price1: float, inverted: bool, direction: Direction) -> float:
    """
    Pick the more conservative of two candidate economic prices

    Inverted pairings rest ABOVE orders at the lower price and BELOW orders at
    the higher one; non-inverted pairings do the opposite.
    """
    if direction == Direction.ABOVE:
        return min(price0, price1) if inverted else max(price0, price1)
    return max(price0, price1) if inverted else min(price0, price1)


class PriceConverter:
    """Price/tick conversions for one token pairing, carrying its inversion flag"""

    def __init__(self, decimals0: int, decimals1: int, inverted: bool):
        self.decimals0 = decimals0
        self.decimals1 = decimals1
        self.inverted = inverted

    def __repr__(self) -> str:
        return f"PriceConverter(decimals=({self.decimals0}, {self.decimals1}), inverted={self.inverted})"

    def _orientation(self, inverted):
        return self.inverted if inverted is None else inverted

    def tick_to_price(self, tick: int, inverted: bool = None) -> float:
        return tick_to_price(tick, self.decimals0, self.decimals1, self._orientation(inverted))

    def price_to_sqrt(self, price: float, inverted: bool = None) -> int:
        return price_to_sqrt(price, self.decimals0, self.decimals1, self._orientation(inverted))

    def sqrt_to_price(self, sqrt_price_x96: int, inverted: bool = None) -> float:
        return sqrt_to_price(sqrt_price_x96, self.decimals0, self.decimals1, self._orientation(inverted))

    def price_to_use(self, price0: float, price1: float, direction: Direction) -> float:
        return price_to_use(price0, price1, self.inverted, direction)

    def sqrt_to_tick(self, sqrt_price_x96: int) -> int:
        return get_tick_at_sqrt_ratio(sqrt_price_x96)

    def price_to_tick(self, price: float, inverted: bool = None) -> int:
        """Tick at or just below an economic price, clamped to the valid range"""
        sqrt_price = self.price_to_sqrt(price, inverted)
        sqrt_price = max(MIN_SQRT_RATIO, min(MAX_SQRT_RATIO - 1, sqrt_price))
        return get_tick_at_sqrt_ratio(sqrt_price)

    def nearest_usable_tick(self, tick: int, tick_spacing: int) -> int:
        return nearest_usable_tick(tick, tick_spacing)

    def price_ladder(self, ticks: Union[Sequence[int], np.ndarray], inverted: bool = None) -> np.ndarray:
        """Vectorized tick_to_price over an array of ticks"""
        ticks = np.asarray(ticks, dtype=np.float64)
        prices = np.power(TICK_BASE, ticks) * 10.0 ** (self.decimals0 - self.decimals1)
        return 1.0 / prices if self._orientation(inverted) else prices
