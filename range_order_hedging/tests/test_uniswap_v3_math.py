#!/usr/bin/env python3
"""
Tick Math Test Suite

Exact integer tick math, amount deltas, swap steps, liquidity helpers and
fee growth, checked against known pool constants and invariants.
"""

import pytest

from range_order_hedging.core.uniswap_v3_math import (
    MIN_TICK, MAX_TICK, Q96, Q128, UINT256, MIN_SQRT_RATIO, MAX_SQRT_RATIO,
    get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio, nearest_usable_tick, floor_tick,
    get_amount0_delta, get_amount1_delta, compute_swap_step,
    get_liquidity_for_amount0, get_liquidity_for_amount1, get_liquidity_for_amounts,
    get_amounts_for_liquidity, get_fee_growth_inside, fees_owed,
)


class TestTickMath:
    """Tick <-> sqrt price conversion"""

    def test_known_constants(self):
        """Tick bounds and tick zero map to the pool constants"""
        assert get_sqrt_ratio_at_tick(0) == Q96
        assert get_sqrt_ratio_at_tick(MIN_TICK) == MIN_SQRT_RATIO
        assert get_sqrt_ratio_at_tick(MAX_TICK) == MAX_SQRT_RATIO

    def test_out_of_bounds_ticks_rejected(self):
        with pytest.raises(ValueError):
            get_sqrt_ratio_at_tick(MIN_TICK - 1)
        with pytest.raises(ValueError):
            get_sqrt_ratio_at_tick(MAX_TICK + 1)

    def test_tick_at_bounds(self):
        assert get_tick_at_sqrt_ratio(MIN_SQRT_RATIO) == MIN_TICK
        assert get_tick_at_sqrt_ratio(MAX_SQRT_RATIO - 1) == MAX_TICK - 1
        with pytest.raises(ValueError):
            get_tick_at_sqrt_ratio(MIN_SQRT_RATIO - 1)
        with pytest.raises(ValueError):
            get_tick_at_sqrt_ratio(MAX_SQRT_RATIO)

    @pytest.mark.parametrize("tick", [-887000, -195000, -600, -1, 0, 1, 59, 60, 195300, 887000])
    def test_tick_round_trip(self, tick):
        """The tick of a tick's own sqrt ratio is that tick; one below is the previous tick"""
        sqrt_price = get_sqrt_ratio_at_tick(tick)
        assert get_tick_at_sqrt_ratio(sqrt_price) == tick
        assert get_tick_at_sqrt_ratio(sqrt_price - 1) == tick - 1

    def test_sqrt_ratio_strictly_increasing(self):
        ratios = [get_sqrt_ratio_at_tick(t) for t in range(-300, 300, 7)]
        assert all(a < b for a, b in zip(ratios, ratios[1:]))

    def test_nearest_usable_tick(self):
        assert nearest_usable_tick(14, 10) == 10
        assert nearest_usable_tick(16, 10) == 20
        assert nearest_usable_tick(-16, 10) == -20
        assert nearest_usable_tick(195_311, 60) == 195_300
        # Rounded results past the bounds step back inside
        assert nearest_usable_tick(MAX_TICK, 60) == 887_220
        assert nearest_usable_tick(MIN_TICK, 60) == -887_220
        with pytest.raises(ValueError):
            nearest_usable_tick(10, 0)

    def test_floor_tick(self):
        assert floor_tick(59, 60) == 0
        assert floor_tick(60, 60) == 60
        assert floor_tick(-1, 60) == -60


class TestAmountDeltas:
    """Token amounts for liquidity over a price range"""

    def test_amounts_for_doubling_price(self):
        liquidity = 10 ** 18
        assert get_amount1_delta(Q96, 2 * Q96, liquidity) == liquidity
        assert get_amount0_delta(Q96, 2 * Q96, liquidity) == liquidity // 2

    def test_argument_order_does_not_matter(self):
        a, b = get_sqrt_ratio_at_tick(-600), get_sqrt_ratio_at_tick(600)
        assert get_amount0_delta(a, b, 10 ** 18) == get_amount0_delta(b, a, 10 ** 18)
        assert get_amount1_delta(a, b, 10 ** 18) == get_amount1_delta(b, a, 10 ** 18)

    def test_rounding_direction(self):
        """Rounding up never returns less than rounding down"""
        assert get_amount0_delta(Q96, Q96 + 1, 1, round_up=False) == 0
        assert get_amount0_delta(Q96, Q96 + 1, 1, round_up=True) == 1
        assert get_amount1_delta(Q96, Q96 + 1, 1, round_up=False) == 0
        assert get_amount1_delta(Q96, Q96 + 1, 1, round_up=True) == 1


class TestComputeSwapStep:
    """Single swap step within one liquidity range"""

    def setup_method(self):
        self.price = Q96
        self.liquidity = 2 * 10 ** 18
        self.fee = 3000

    def test_exact_in_reaches_target(self):
        """A large input stops at the target price and never over-spends"""
        target = get_sqrt_ratio_at_tick(100)
        amount = 10 ** 20
        sqrt_next, amount_in, amount_out, fee_amount = compute_swap_step(
            self.price, target, self.liquidity, amount, self.fee
        )
        assert sqrt_next == target
        assert amount_in + fee_amount <= amount
        assert amount_out > 0
        assert amount_in == get_amount1_delta(self.price, target, self.liquidity, True)

    def test_exact_in_partial(self):
        """A small input ends short of the target and is spent entirely"""
        target = get_sqrt_ratio_at_tick(-1000)
        amount = 10 ** 15
        sqrt_next, amount_in, amount_out, fee_amount = compute_swap_step(
            self.price, target, self.liquidity, amount, self.fee
        )
        assert target < sqrt_next < self.price
        assert amount_in + fee_amount == amount
        assert fee_amount >= amount * self.fee // 1_000_000
        assert 0 < amount_out < amount_in

    def test_exact_out_capped(self):
        """A negative amount is an exact output and is never exceeded"""
        target = get_sqrt_ratio_at_tick(-1000)
        sqrt_next, amount_in, amount_out, fee_amount = compute_swap_step(
            self.price, target, self.liquidity, -10 ** 15, self.fee
        )
        assert amount_out == 10 ** 15
        assert amount_in > amount_out
        assert target < sqrt_next < self.price

    def test_zero_liquidity_jumps_to_target(self):
        target = get_sqrt_ratio_at_tick(-600)
        assert compute_swap_step(self.price, target, 0, 10 ** 18, self.fee) == (target, 0, 0, 0)

    def test_fee_too_high(self):
        with pytest.raises(ValueError):
            compute_swap_step(self.price, self.price // 2, self.liquidity, 100, 1_000_000)


class TestLiquidityAmounts:
    """Liquidity from token amounts and back"""

    def setup_method(self):
        self.sqrt_a = get_sqrt_ratio_at_tick(-600)
        self.sqrt_b = get_sqrt_ratio_at_tick(600)

    def test_single_sided_round_trip(self):
        """Amounts recovered from computed liquidity never exceed the input"""
        amount = 10 ** 18
        liquidity0 = get_liquidity_for_amount0(self.sqrt_a, self.sqrt_b, amount)
        back0 = get_amount0_delta(self.sqrt_a, self.sqrt_b, liquidity0)
        assert amount * (1 - 1e-9) <= back0 <= amount

        liquidity1 = get_liquidity_for_amount1(self.sqrt_a, self.sqrt_b, amount)
        back1 = get_amount1_delta(self.sqrt_a, self.sqrt_b, liquidity1)
        assert amount * (1 - 1e-9) <= back1 <= amount

    def test_price_position_selects_token(self):
        below = get_sqrt_ratio_at_tick(-1200)
        above = get_sqrt_ratio_at_tick(1200)
        # Price under the range: only token0 counts
        assert get_liquidity_for_amounts(below, self.sqrt_a, self.sqrt_b, 10 ** 18, 0) > 0
        assert get_liquidity_for_amounts(below, self.sqrt_a, self.sqrt_b, 0, 10 ** 18) == 0
        # Price over the range: only token1 counts
        assert get_liquidity_for_amounts(above, self.sqrt_a, self.sqrt_b, 0, 10 ** 18) > 0
        assert get_liquidity_for_amounts(above, self.sqrt_a, self.sqrt_b, 10 ** 18, 0) == 0
        # Price inside: both are needed
        assert get_liquidity_for_amounts(Q96, self.sqrt_a, self.sqrt_b, 10 ** 18, 0) == 0

    def test_amounts_for_liquidity_by_price(self):
        liquidity = 10 ** 18
        amount0, amount1 = get_amounts_for_liquidity(get_sqrt_ratio_at_tick(-1200), self.sqrt_a, self.sqrt_b, liquidity)
        assert amount0 > 0 and amount1 == 0
        amount0, amount1 = get_amounts_for_liquidity(get_sqrt_ratio_at_tick(1200), self.sqrt_a, self.sqrt_b, liquidity)
        assert amount0 == 0 and amount1 > 0
        amount0, amount1 = get_amounts_for_liquidity(Q96, self.sqrt_a, self.sqrt_b, liquidity)
        assert amount0 > 0 and amount1 > 0


class TestFeeGrowth:

    def test_inside_range(self):
        assert get_fee_growth_inside(-60, 60, 0, 100, 10, 20) == 70

    def test_below_range_wraps(self):
        """Growth differences are taken modulo 2**256"""
        inside = get_fee_growth_inside(-60, 60, -120, 100, 10, 20)
        assert inside == UINT256 - 10

    def test_fees_owed(self):
        assert fees_owed(2, 3 * Q128, Q128) == 4
        assert fees_owed(10 ** 18, 5, 5) == 0
