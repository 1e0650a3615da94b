#!/usr/bin/env python3
"""
Price Converter Test Suite

Tests tick/sqrt/price conversions across token decimal pairings, both pool
orientations, and the sqrt prices observed on live pools.
"""

from itertools import product

import numpy as np
import pytest

from range_order_hedging.core.price_converter import (
    Direction, PriceConverter, price_to_sqrt, price_to_use, sqrt_to_price, tick_to_price,
)
from range_order_hedging.core.uniswap_v3_math import MAX_SQRT_RATIO, MIN_SQRT_RATIO, get_sqrt_ratio_at_tick

DECIMAL_PAIRS = list(product([6, 8, 18], repeat=2))

# (pair, token0 decimals, token1 decimals, token0 price in token1, observed pool sqrt price)
POOL_VECTORS = [
    ("USDC/WETH", 6, 18, 0.000304794466082623, 1383194083266513227538809339896527),
    ("WETH/USDT", 18, 6, 3278.775459, 4536651532748345691924484),
    ("DAI/WETH", 18, 18, 0.000304873053351706, 1383372391030930353024001313),
    ("WBTC/USDT", 8, 6, 45149.740258, 1683477094974729778595779250705),
    ("WBTC/USDC", 8, 6, 45165.453874, 1683770022578357087060958331921),
]


class TestPoolVectors:
    """Conversions reproduce sqrt prices read from deployed pools"""

    @pytest.mark.parametrize("pair,decimals0,decimals1,price,expected_sqrt", POOL_VECTORS)
    def test_price_to_sqrt(self, pair, decimals0, decimals1, price, expected_sqrt):
        sqrt_price = price_to_sqrt(price, decimals0, decimals1)
        assert sqrt_price == pytest.approx(expected_sqrt, rel=1e-6), f"{pair} sqrt price mismatch"

    @pytest.mark.parametrize("pair,decimals0,decimals1,price,expected_sqrt", POOL_VECTORS)
    def test_sqrt_to_price(self, pair, decimals0, decimals1, price, expected_sqrt):
        assert sqrt_to_price(expected_sqrt, decimals0, decimals1) == pytest.approx(price, rel=1e-6)

    def test_inverted_price_is_reciprocal(self):
        """An inverted USDC/WETH converter speaks in USDC per WETH"""
        converter = PriceConverter(6, 18, inverted=True)
        sqrt_price = 1383194083266513227538809339896527
        assert converter.sqrt_to_price(sqrt_price) == pytest.approx(1 / 0.000304794466082623, rel=1e-6)
        assert converter.price_to_sqrt(1 / 0.000304794466082623) == pytest.approx(sqrt_price, rel=1e-6)


class TestRoundTrips:
    """sqrt_to_price(price_to_sqrt(p)) == p for every pairing and orientation"""

    @pytest.mark.parametrize("decimals0,decimals1", DECIMAL_PAIRS)
    @pytest.mark.parametrize("inverted", [False, True])
    def test_round_trip(self, decimals0, decimals1, inverted):
        converter = PriceConverter(decimals0, decimals1, inverted)
        for price in [0.0003, 1.0, 3280.0, 45_000.0]:
            sqrt_price = converter.price_to_sqrt(price)
            assert MIN_SQRT_RATIO <= sqrt_price < MAX_SQRT_RATIO
            assert converter.sqrt_to_price(sqrt_price) == pytest.approx(price, rel=1e-6)

    def test_max_sqrt_ratio_does_not_overflow(self):
        for decimals0, decimals1 in DECIMAL_PAIRS:
            price = sqrt_to_price(MAX_SQRT_RATIO, decimals0, decimals1)
            assert np.isfinite(price) and price > 0
            assert sqrt_to_price(MAX_SQRT_RATIO, decimals0, decimals1, inverted=True) > 0

    def test_rejects_non_positive_input(self):
        with pytest.raises(ValueError):
            price_to_sqrt(0.0, 18, 18)
        with pytest.raises(ValueError):
            price_to_sqrt(-1.0, 18, 18)
        with pytest.raises(ValueError):
            sqrt_to_price(0, 18, 18)


class TestTickToPrice:

    def test_tick_zero(self):
        assert tick_to_price(0, 18, 18) == 1.0
        assert tick_to_price(0, 6, 18) == pytest.approx(1e-12)
        assert tick_to_price(0, 6, 18, inverted=True) == pytest.approx(1e12)

    @pytest.mark.parametrize("decimals0,decimals1", DECIMAL_PAIRS)
    def test_strictly_monotonic(self, decimals0, decimals1):
        ticks = range(-200_000, 200_000, 997)
        prices = [tick_to_price(t, decimals0, decimals1) for t in ticks]
        inverted = [tick_to_price(t, decimals0, decimals1, inverted=True) for t in ticks]
        assert all(a < b for a, b in zip(prices, prices[1:]))
        assert all(a > b for a, b in zip(inverted, inverted[1:]))

    def test_consistent_with_sqrt_ratio(self):
        for tick in [-195_300, -60, 0, 60, 195_300]:
            exact = sqrt_to_price(get_sqrt_ratio_at_tick(tick), 6, 18)
            assert tick_to_price(tick, 6, 18) == pytest.approx(exact, rel=1e-9)

    def test_price_ladder_matches_scalar(self):
        converter = PriceConverter(6, 18, inverted=True)
        ticks = np.arange(195_000, 196_000, 60)
        ladder = converter.price_ladder(ticks)
        assert isinstance(ladder, np.ndarray)
        expected = [converter.tick_to_price(int(t)) for t in ticks]
        assert np.allclose(ladder, expected, rtol=1e-12)
        assert np.all(np.diff(ladder) < 0)


class TestPriceToTick:

    def test_tick_brackets_price(self):
        """The tick found for a price is the last one whose pool price does not exceed it"""
        converter = PriceConverter(18, 6, inverted=False)
        tick = converter.price_to_tick(3280.0)
        assert converter.tick_to_price(tick) <= 3280.0 * (1 + 1e-9)
        assert converter.tick_to_price(tick + 1) > 3280.0

    def test_inverted_tick(self):
        converter = PriceConverter(6, 18, inverted=True)
        tick = converter.price_to_tick(3280.0)
        # Economic price falls as the tick rises when inverted
        assert converter.tick_to_price(tick) >= 3280.0 * (1 - 1e-9)
        assert converter.tick_to_price(tick + 1) < 3280.0
        assert converter.sqrt_to_tick(get_sqrt_ratio_at_tick(tick)) == tick

    def test_nearest_usable_tick(self):
        converter = PriceConverter(6, 18, inverted=True)
        assert converter.nearest_usable_tick(195_311, 60) == 195_300


class TestPriceToUse:
    """Conservative choice between the oracle and pool prices"""

    def test_inverted(self):
        assert price_to_use(3280.0, 3300.0, True, Direction.ABOVE) == 3280.0
        assert price_to_use(3280.0, 3300.0, True, Direction.BELOW) == 3300.0

    def test_not_inverted(self):
        assert price_to_use(3280.0, 3300.0, False, Direction.ABOVE) == 3300.0
        assert price_to_use(3280.0, 3300.0, False, Direction.BELOW) == 3280.0

    def test_converter_uses_its_flag(self):
        converter = PriceConverter(6, 18, inverted=True)
        assert converter.price_to_use(3300.0, 3280.0, Direction.ABOVE) == 3280.0
