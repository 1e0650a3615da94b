#!/usr/bin/env python3
"""
Uniswap V3 Concentrated Liquidity Math

Exact integer implementations of the pool math used by the hedging engine:
- Tick <-> Q64.96 sqrt price conversion
- Token amount deltas for a liquidity range
- Next sqrt price after an input/output amount
- Single swap step with fee
- Liquidity from token amounts and token amounts from liquidity
- Fee growth inside a tick range

All values are Python ints so nothing overflows; results are reduced modulo
2**256 where the on-chain arithmetic wraps (fee growth).
"""

from typing import Tuple

# Uniswap V3 Constants
MIN_TICK = -887272
MAX_TICK = 887272
Q96 = 2 ** 96
Q128 = 2 ** 128
Q192 = 2 ** 192
UINT256 = 2 ** 256
MIN_SQRT_RATIO = 4295128739  # sqrt(1.0001^-887272) * 2^96
MAX_SQRT_RATIO = 1461446703485210103287273052203988822378723970342  # sqrt(1.0001^887272) * 2^96

# Fee tiers (pips) and their tick spacings
FEE_TICK_SPACING = {
    100: 1,      # 0.01%
    500: 10,     # 0.05%
    3000: 60,    # 0.3%
    10000: 200,  # 1%
}

_TICK_RATIO_FACTORS = (
    (0x2, 0xfff97272373d413259a46990580e213a),
    (0x4, 0xfff2e50f5f656932ef12357cf3c7fdcc),
    (0x8, 0xffe5caca7e10e4e61c3624eaa0941cd0),
    (0x10, 0xffcb9843d60f6159c9db58835c926644),
    (0x20, 0xff973b41fa98c081472e6896dfb254c0),
    (0x40, 0xff2ea16466c96a3843ec78b326b52861),
    (0x80, 0xfe5dee046a99a2a811c461f1969c3053),
    (0x100, 0xfcbe86c7900a88aedcffc83b479aa3a4),
    (0x200, 0xf987a7253ac413176f2b074cf7815e54),
    (0x400, 0xf3392b0822b70005940c7a398e4b70f3),
    (0x800, 0xe7159475a2c29b7443b29c7fa6e889d9),
    (0x1000, 0xd097f3bdfd2022b8845ad8f792aa5825),
    (0x2000, 0xa9f746462d870fdf8a65dc1f90e061e5),
    (0x4000, 0x70d869a156d2a1b890bb3df62baf32f7),
    (0x8000, 0x31be135f97d08fd981231505542fcfa6),
    (0x10000, 0x9aa508b5b7a84e1c677de54f3e99bc9),
    (0x20000, 0x5d6af8dedb81196699c329225ee604),
    (0x40000, 0x2216e584f5fa1ea926041bedfe98),
    (0x80000, 0x48a170391f7dc42444e8fa2),
)


# Core Uniswap V3 Math Functions - Exact Integer Implementation
def get_sqrt_ratio_at_tick(tick: int) -> int:
    """Convert tick to sqrt price in Q64.96 format (TickMath.getSqrtRatioAtTick)"""
    if tick < MIN_TICK or tick > MAX_TICK:
        raise ValueError(f"Tick {tick} out of bounds [{MIN_TICK}, {MAX_TICK}]")

    abs_tick = abs(tick)
    if abs_tick & 0x1:
        ratio = 0xfffcb933bd6fad37aa2d162d1a594001
    else:
        ratio = 0x100000000000000000000000000000000
    for mask, factor in _TICK_RATIO_FACTORS:
        if abs_tick & mask:
            ratio = (ratio * factor) >> 128

    if tick > 0:
        ratio = (UINT256 - 1) // ratio

    # Q128.128 -> Q64.96, rounding up
    return (ratio >> 32) + (0 if ratio % (1 << 32) == 0 else 1)


def get_tick_at_sqrt_ratio(sqrt_price_x96: int) -> int:
    """Greatest tick whose sqrt ratio is <= sqrt_price_x96"""
    if sqrt_price_x96 < MIN_SQRT_RATIO or sqrt_price_x96 >= MAX_SQRT_RATIO:
        raise ValueError(f"sqrt_price_x96 {sqrt_price_x96} out of bounds")

    # Binary search over the exact tick function
    tick_low = MIN_TICK
    tick_high = MAX_TICK

    while tick_high - tick_low > 1:
        tick_mid = (tick_low + tick_high) // 2
        if get_sqrt_ratio_at_tick(tick_mid) <= sqrt_price_x96:
            tick_low = tick_mid
        else:
            tick_high = tick_mid

    if get_sqrt_ratio_at_tick(tick_high) <= sqrt_price_x96:
        return tick_high
    return tick_low


def nearest_usable_tick(tick: int, tick_spacing: int) -> int:
    """Round a tick to the nearest multiple of the tick spacing, kept inside the tick bounds"""
    if tick_spacing <= 0:
        raise ValueError("tick_spacing must be positive")
    rounded = int(round(tick / tick_spacing)) * tick_spacing
    if rounded < MIN_TICK:
        return rounded + tick_spacing
    if rounded > MAX_TICK:
        return rounded - tick_spacing
    return rounded


def floor_tick(tick: int, tick_spacing: int) -> int:
    """Largest multiple of the tick spacing that is <= tick"""
    return (tick // tick_spacing) * tick_spacing


# Safe math helpers
def mul_div(a: int, b: int, denominator: int) -> int:
    """floor(a * b / denominator)"""
    if denominator == 0:
        raise ValueError("Division by zero")
    return (a * b) // denominator


def mul_div_rounding_up(a: int, b: int, denominator: int) -> int:
    """ceil(a * b / denominator)"""
    if denominator == 0:
        raise ValueError("Division by zero")
    return -((-(a * b)) // denominator)


def div_rounding_up(a: int, b: int) -> int:
    if b == 0:
        raise ValueError("Division by zero")
    return -((-a) // b)


def get_amount0_delta(
    sqrt_price_a_x96: int,
    sqrt_price_b_x96: int,
    liquidity: int,
    round_up: bool = False
) -> int:
    """Amount of token0 between two sqrt prices for a given liquidity"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96

    if sqrt_price_a_x96 <= 0:
        raise ValueError("sqrt price must be positive")

    numerator1 = liquidity << 96
    numerator2 = sqrt_price_b_x96 - sqrt_price_a_x96

    if round_up:
        return div_rounding_up(
            mul_div_rounding_up(numerator1, numerator2, sqrt_price_b_x96),
            sqrt_price_a_x96
        )
    return mul_div(numerator1, numerator2, sqrt_price_b_x96) // sqrt_price_a_x96


def get_amount1_delta(
    sqrt_price_a_x96: int,
    sqrt_price_b_x96: int,
    liquidity: int,
    round_up: bool = False
) -> int:
    """Amount of token1 between two sqrt prices for a given liquidity"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96

    if round_up:
        return mul_div_rounding_up(liquidity, sqrt_price_b_x96 - sqrt_price_a_x96, Q96)
    return mul_div(liquidity, sqrt_price_b_x96 - sqrt_price_a_x96, Q96)


def get_next_sqrt_price_from_amount0_rounding_up(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """Next sqrt price after adding (or removing) token0, rounded up"""
    if amount == 0:
        return sqrt_price_x96

    if liquidity == 0:
        raise ValueError("Liquidity cannot be zero")

    numerator1 = liquidity << 96
    product = amount * sqrt_price_x96

    if add:
        # Adding amount0: sqrt_price decreases
        return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 + product)

    # Removing amount0: sqrt_price increases
    if numerator1 <= product:
        raise ValueError("Amount too large")
    return mul_div_rounding_up(numerator1, sqrt_price_x96, numerator1 - product)


def get_next_sqrt_price_from_amount1_rounding_down(
    sqrt_price_x96: int,
    liquidity: int,
    amount: int,
    add: bool
) -> int:
    """Next sqrt price after adding (or removing) token1, rounded down"""
    if amount == 0:
        return sqrt_price_x96

    if liquidity == 0:
        raise ValueError("Liquidity cannot be zero")

    if add:
        # Adding amount1: sqrt_price increases
        return sqrt_price_x96 + (amount << 96) // liquidity

    # Removing amount1: sqrt_price decreases
    quotient = div_rounding_up(amount << 96, liquidity)
    if sqrt_price_x96 <= quotient:
        raise ValueError("Amount too large")
    return sqrt_price_x96 - quotient


def get_next_sqrt_price_from_input(
    sqrt_price_x96: int,
    liquidity: int,
    amount_in: int,
    zero_for_one: bool
) -> int:
    """Calculate next sqrt price from input amount"""
    if zero_for_one:
        return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_in, True)
    return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_in, True)


def get_next_sqrt_price_from_output(
    sqrt_price_x96: int,
    liquidity: int,
    amount_out: int,
    zero_for_one: bool
) -> int:
    """Calculate next sqrt price from output amount"""
    if zero_for_one:
        return get_next_sqrt_price_from_amount1_rounding_down(sqrt_price_x96, liquidity, amount_out, False)
    return get_next_sqrt_price_from_amount0_rounding_up(sqrt_price_x96, liquidity, amount_out, False)


def compute_swap_step(
    sqrt_price_current_x96: int,
    sqrt_price_target_x96: int,
    liquidity: int,
    amount_remaining: int,
    fee_pips: int
) -> Tuple[int, int, int, int]:
    """
    Swap within a single liquidity range, stopping at the target price

    A positive amount_remaining is an exact input, a negative one an exact output.

    Returns: (sqrt_price_next_x96, amount_in, amount_out, fee_amount)
    """
    if fee_pips >= 1_000_000:
        raise ValueError("Fee too high")

    zero_for_one = sqrt_price_current_x96 >= sqrt_price_target_x96
    exact_in = amount_remaining >= 0
    amount_in = 0
    amount_out = 0

    if exact_in:
        amount_remaining_less_fee = mul_div(amount_remaining, 1_000_000 - fee_pips, 1_000_000)
        if zero_for_one:
            amount_in = get_amount0_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, True)
        else:
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, True)
        if amount_remaining_less_fee >= amount_in:
            sqrt_price_next_x96 = sqrt_price_target_x96
        else:
            sqrt_price_next_x96 = get_next_sqrt_price_from_input(
                sqrt_price_current_x96, liquidity, amount_remaining_less_fee, zero_for_one
            )
    else:
        if zero_for_one:
            amount_out = get_amount1_delta(sqrt_price_target_x96, sqrt_price_current_x96, liquidity, False)
        else:
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_target_x96, liquidity, False)
        if -amount_remaining >= amount_out:
            sqrt_price_next_x96 = sqrt_price_target_x96
        else:
            sqrt_price_next_x96 = get_next_sqrt_price_from_output(
                sqrt_price_current_x96, liquidity, -amount_remaining, zero_for_one
            )

    max_price_reached = sqrt_price_target_x96 == sqrt_price_next_x96

    if zero_for_one:
        if not (max_price_reached and exact_in):
            amount_in = get_amount0_delta(sqrt_price_next_x96, sqrt_price_current_x96, liquidity, True)
        if not (max_price_reached and not exact_in):
            amount_out = get_amount1_delta(sqrt_price_next_x96, sqrt_price_current_x96, liquidity, False)
    else:
        if not (max_price_reached and exact_in):
            amount_in = get_amount1_delta(sqrt_price_current_x96, sqrt_price_next_x96, liquidity, True)
        if not (max_price_reached and not exact_in):
            amount_out = get_amount0_delta(sqrt_price_current_x96, sqrt_price_next_x96, liquidity, False)

    # Cap output amount for exact output swaps
    if not exact_in and amount_out > -amount_remaining:
        amount_out = -amount_remaining

    if exact_in and sqrt_price_next_x96 != sqrt_price_target_x96:
        # Target not reached - the remainder is all fee
        fee_amount = amount_remaining - amount_in
    else:
        fee_amount = mul_div_rounding_up(amount_in, fee_pips, 1_000_000 - fee_pips)

    return sqrt_price_next_x96, amount_in, amount_out, fee_amount


# Liquidity amounts (LiquidityAmounts library)
def get_liquidity_for_amount0(sqrt_price_a_x96: int, sqrt_price_b_x96: int, amount0: int) -> int:
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96
    intermediate = mul_div(sqrt_price_a_x96, sqrt_price_b_x96, Q96)
    return mul_div(amount0, intermediate, sqrt_price_b_x96 - sqrt_price_a_x96)


def get_liquidity_for_amount1(sqrt_price_a_x96: int, sqrt_price_b_x96: int, amount1: int) -> int:
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96
    return mul_div(amount1, Q96, sqrt_price_b_x96 - sqrt_price_a_x96)


def get_liquidity_for_amounts(
    sqrt_price_x96: int,
    sqrt_price_a_x96: int,
    sqrt_price_b_x96: int,
    amount0: int,
    amount1: int
) -> int:
    """Maximum liquidity mintable from the given amounts at the given price"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96

    if sqrt_price_x96 <= sqrt_price_a_x96:
        return get_liquidity_for_amount0(sqrt_price_a_x96, sqrt_price_b_x96, amount0)
    if sqrt_price_x96 < sqrt_price_b_x96:
        liquidity0 = get_liquidity_for_amount0(sqrt_price_x96, sqrt_price_b_x96, amount0)
        liquidity1 = get_liquidity_for_amount1(sqrt_price_a_x96, sqrt_price_x96, amount1)
        return min(liquidity0, liquidity1)
    return get_liquidity_for_amount1(sqrt_price_a_x96, sqrt_price_b_x96, amount1)


def get_amounts_for_liquidity(
    sqrt_price_x96: int,
    sqrt_price_a_x96: int,
    sqrt_price_b_x96: int,
    liquidity: int
) -> Tuple[int, int]:
    """Token amounts (rounded down) represented by a liquidity range at the given price"""
    if sqrt_price_a_x96 > sqrt_price_b_x96:
        sqrt_price_a_x96, sqrt_price_b_x96 = sqrt_price_b_x96, sqrt_price_a_x96

    if sqrt_price_x96 <= sqrt_price_a_x96:
        return get_amount0_delta(sqrt_price_a_x96, sqrt_price_b_x96, liquidity), 0
    if sqrt_price_x96 < sqrt_price_b_x96:
        return (
            get_amount0_delta(sqrt_price_x96, sqrt_price_b_x96, liquidity),
            get_amount1_delta(sqrt_price_a_x96, sqrt_price_x96, liquidity),
        )
    return 0, get_amount1_delta(sqrt_price_a_x96, sqrt_price_b_x96, liquidity)


# Fee growth
def get_fee_growth_inside(
    tick_lower: int,
    tick_upper: int,
    tick_current: int,
    fee_growth_global_x128: int,
    lower_fee_growth_outside_x128: int,
    upper_fee_growth_outside_x128: int
) -> int:
    """Fee growth per unit of liquidity accumulated inside [tick_lower, tick_upper)"""
    if tick_current >= tick_lower:
        fee_growth_below = lower_fee_growth_outside_x128
    else:
        fee_growth_below = fee_growth_global_x128 - lower_fee_growth_outside_x128

    if tick_current < tick_upper:
        fee_growth_above = upper_fee_growth_outside_x128
    else:
        fee_growth_above = fee_growth_global_x128 - upper_fee_growth_outside_x128

    return (fee_growth_global_x128 - fee_growth_below - fee_growth_above) % UINT256


def fees_owed(liquidity: int, fee_growth_inside_x128: int, fee_growth_inside_last_x128: int) -> int:
    """Tokens earned by a position since its last fee checkpoint"""
    return mul_div((fee_growth_inside_x128 - fee_growth_inside_last_x128) % UINT256, liquidity, Q128)
