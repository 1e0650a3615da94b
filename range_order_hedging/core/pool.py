#!/usr/bin/env python3
"""
Concentrated Liquidity Pool

In-memory Uniswap V3 pool over two ERC20 tokens:
- Owner-keyed positions with mint/burn/collect
- Cross-tick swaps with per-tick fee growth tracking
- slot0 view of the current sqrt price and tick
- Event log exportable as a pandas DataFrame

Plus a factory that registers one pool per (token pair, fee tier).
"""

import bisect
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import pandas as pd

from .errors import InsufficientLiquidity, PoolNotFound
from .ledger import Ledger, address_for, transactional
from .tokens import ERC20Token
from .uniswap_v3_math import (
    FEE_TICK_SPACING, MAX_SQRT_RATIO, MAX_TICK, MIN_SQRT_RATIO, MIN_TICK, Q128, UINT256,
    compute_swap_step, fees_owed, get_amount0_delta, get_amount1_delta,
    get_fee_growth_inside, get_sqrt_ratio_at_tick, get_tick_at_sqrt_ratio,
)

logger = logging.getLogger(__name__)


@dataclass
class TickInfo:
    """Information stored for each initialized tick"""
    liquidity_gross: int = 0  # Total liquidity referencing this tick
    liquidity_net: int = 0    # Net liquidity change when crossed left to right
    fee_growth_outside0_x128: int = 0
    fee_growth_outside1_x128: int = 0


@dataclass
class PositionInfo:
    """Liquidity and fee checkpoint of one (owner, lower, upper) position"""
    liquidity: int = 0
    fee_growth_inside0_last_x128: int = 0
    fee_growth_inside1_last_x128: int = 0
    tokens_owed0: int = 0
    tokens_owed1: int = 0


@dataclass
class Slot0:
    sqrt_price_x96: int
    tick: int


class UniswapV3Pool:
    """Uniswap V3 pool with exact integer tick math"""

    def __init__(
        self,
        ledger: Ledger,
        token0: ERC20Token,
        token1: ERC20Token,
        fee: int,
        sqrt_price_x96: int,
        address: Optional[str] = None
    ):
        if token0.address.lower() >= token1.address.lower():
            raise ValueError("token0 must sort before token1")
        if fee not in FEE_TICK_SPACING:
            raise ValueError(f"Unsupported fee tier {fee}")
        if not MIN_SQRT_RATIO <= sqrt_price_x96 < MAX_SQRT_RATIO:
            raise ValueError("Initial sqrt price out of bounds")

        self.ledger = ledger
        self.token0 = token0
        self.token1 = token1
        self.fee = fee
        self.tick_spacing = FEE_TICK_SPACING[fee]
        self.address = address or address_for(f"pool:{token0.symbol}/{token1.symbol}/{fee}")

        # Core Uniswap V3 state
        self.sqrt_price_x96 = sqrt_price_x96
        self.tick = get_tick_at_sqrt_ratio(sqrt_price_x96)
        self.liquidity = 0
        self.fee_growth_global0_x128 = 0
        self.fee_growth_global1_x128 = 0

        # Tick and position data
        self.ticks: Dict[int, TickInfo] = {}
        self.initialized_ticks: List[int] = []  # sorted
        self.positions: Dict[Tuple[str, int, int], PositionInfo] = {}
        self.events: List[dict] = []
        ledger.track(self)

    def __repr__(self) -> str:
        return f"UniswapV3Pool({self.token0.symbol}/{self.token1.symbol}, fee={self.fee})"

    # Views
    @property
    def slot0(self) -> Slot0:
        return Slot0(self.sqrt_price_x96, self.tick)

    def get_position(self, owner: str, tick_lower: int, tick_upper: int) -> PositionInfo:
        return self.positions.get((owner, tick_lower, tick_upper), PositionInfo())

    def fee_growth_inside(self, tick_lower: int, tick_upper: int) -> Tuple[int, int]:
        """Current fee growth per unit of liquidity inside a range, for both tokens"""
        lower = self.ticks.get(tick_lower, TickInfo())
        upper = self.ticks.get(tick_upper, TickInfo())
        inside0 = get_fee_growth_inside(
            tick_lower, tick_upper, self.tick, self.fee_growth_global0_x128,
            lower.fee_growth_outside0_x128, upper.fee_growth_outside0_x128
        )
        inside1 = get_fee_growth_inside(
            tick_lower, tick_upper, self.tick, self.fee_growth_global1_x128,
            lower.fee_growth_outside1_x128, upper.fee_growth_outside1_x128
        )
        return inside0, inside1

    def events_frame(self) -> pd.DataFrame:
        """Pool event log as a DataFrame, one row per event"""
        return pd.DataFrame(self.events)

    # Liquidity management
    @transactional
    def mint(self, owner: str, tick_lower: int, tick_upper: int, liquidity: int) -> Tuple[int, int]:
        """Add liquidity to ``owner``'s position; the owner pays the required tokens"""
        if liquidity <= 0:
            raise ValueError("Liquidity must be positive")
        amount0, amount1 = self._modify_position(owner, tick_lower, tick_upper, liquidity)

        if amount0 > 0:
            self.token0.transfer(owner, self.address, amount0)
        if amount1 > 0:
            self.token1.transfer(owner, self.address, amount1)

        self._log_event("Mint", owner=owner, tick_lower=tick_lower, tick_upper=tick_upper,
                        liquidity=liquidity, amount0=amount0, amount1=amount1)
        logger.debug("Mint %s [%d, %d) L=%d amounts=(%d, %d)",
                     owner, tick_lower, tick_upper, liquidity, amount0, amount1)
        return amount0, amount1

    @transactional
    def burn(self, owner: str, tick_lower: int, tick_upper: int, liquidity: int) -> Tuple[int, int]:
        """Remove liquidity; the released tokens become owed to the position"""
        position = self.get_position(owner, tick_lower, tick_upper)
        if liquidity > position.liquidity:
            raise InsufficientLiquidity(
                f"Position holds {position.liquidity}, cannot burn {liquidity}"
            )
        amount0, amount1 = self._modify_position(owner, tick_lower, tick_upper, -liquidity)

        position = self.positions[(owner, tick_lower, tick_upper)]
        position.tokens_owed0 += amount0
        position.tokens_owed1 += amount1

        self._log_event("Burn", owner=owner, tick_lower=tick_lower, tick_upper=tick_upper,
                        liquidity=liquidity, amount0=amount0, amount1=amount1)
        return amount0, amount1

    @transactional
    def collect(
        self,
        owner: str,
        recipient: str,
        tick_lower: int,
        tick_upper: int,
        amount0_requested: int,
        amount1_requested: int
    ) -> Tuple[int, int]:
        """Send up to the requested owed tokens to ``recipient``"""
        key = (owner, tick_lower, tick_upper)
        position = self.positions.get(key)
        if position is None:
            return 0, 0

        amount0 = min(amount0_requested, position.tokens_owed0)
        amount1 = min(amount1_requested, position.tokens_owed1)
        if amount0 > 0:
            position.tokens_owed0 -= amount0
            self.token0.transfer(self.address, recipient, amount0)
        if amount1 > 0:
            position.tokens_owed1 -= amount1
            self.token1.transfer(self.address, recipient, amount1)

        if position.liquidity == 0 and position.tokens_owed0 == 0 and position.tokens_owed1 == 0:
            del self.positions[key]

        self._log_event("Collect", owner=owner, tick_lower=tick_lower, tick_upper=tick_upper,
                        amount0=amount0, amount1=amount1)
        return amount0, amount1

    def _check_ticks(self, tick_lower: int, tick_upper: int):
        if tick_lower >= tick_upper:
            raise ValueError(f"tick_lower {tick_lower} must be below tick_upper {tick_upper}")
        if tick_lower < MIN_TICK or tick_upper > MAX_TICK:
            raise ValueError("Ticks out of bounds")
        if tick_lower % self.tick_spacing or tick_upper % self.tick_spacing:
            raise ValueError(f"Ticks must be multiples of the tick spacing {self.tick_spacing}")

    def _modify_position(
        self,
        owner: str,
        tick_lower: int,
        tick_upper: int,
        liquidity_delta: int
    ) -> Tuple[int, int]:
        """Update position and tick state, returning the token amounts involved"""
        self._check_ticks(tick_lower, tick_upper)
        self._update_position(owner, tick_lower, tick_upper, liquidity_delta)

        round_up = liquidity_delta > 0
        liquidity = abs(liquidity_delta)
        sqrt_lower = get_sqrt_ratio_at_tick(tick_lower)
        sqrt_upper = get_sqrt_ratio_at_tick(tick_upper)
        amount0 = amount1 = 0

        if self.tick < tick_lower:
            # Range entirely above the price: all token0
            amount0 = get_amount0_delta(sqrt_lower, sqrt_upper, liquidity, round_up)
        elif self.tick < tick_upper:
            amount0 = get_amount0_delta(self.sqrt_price_x96, sqrt_upper, liquidity, round_up)
            amount1 = get_amount1_delta(sqrt_lower, self.sqrt_price_x96, liquidity, round_up)
            self.liquidity += liquidity_delta
        else:
            # Range entirely below the price: all token1
            amount1 = get_amount1_delta(sqrt_lower, sqrt_upper, liquidity, round_up)

        return amount0, amount1

    def _update_position(self, owner: str, tick_lower: int, tick_upper: int, liquidity_delta: int):
        key = (owner, tick_lower, tick_upper)
        position = self.positions.setdefault(key, PositionInfo())

        flipped_lower = flipped_upper = False
        if liquidity_delta != 0:
            flipped_lower = self._update_tick(tick_lower, liquidity_delta, upper=False)
            flipped_upper = self._update_tick(tick_upper, liquidity_delta, upper=True)

        inside0, inside1 = self.fee_growth_inside(tick_lower, tick_upper)
        position.tokens_owed0 += fees_owed(position.liquidity, inside0, position.fee_growth_inside0_last_x128)
        position.tokens_owed1 += fees_owed(position.liquidity, inside1, position.fee_growth_inside1_last_x128)
        position.fee_growth_inside0_last_x128 = inside0
        position.fee_growth_inside1_last_x128 = inside1
        position.liquidity += liquidity_delta

        # Ticks no longer referenced by any position are cleared
        if liquidity_delta < 0:
            if flipped_lower:
                self._clear_tick(tick_lower)
            if flipped_upper:
                self._clear_tick(tick_upper)

    def _update_tick(self, tick: int, liquidity_delta: int, upper: bool) -> bool:
        """Apply a liquidity change to a tick; True when it flips initialized state"""
        info = self.ticks.get(tick)
        if info is None:
            info = TickInfo()
            # Fee growth below an initialized tick is assumed to have happened below it
            if tick <= self.tick:
                info.fee_growth_outside0_x128 = self.fee_growth_global0_x128
                info.fee_growth_outside1_x128 = self.fee_growth_global1_x128
            self.ticks[tick] = info
            bisect.insort(self.initialized_ticks, tick)

        gross_before = info.liquidity_gross
        gross_after = gross_before + liquidity_delta
        if gross_after < 0:
            raise InsufficientLiquidity(f"Tick {tick} liquidity would go negative")

        info.liquidity_gross = gross_after
        info.liquidity_net += -liquidity_delta if upper else liquidity_delta
        return (gross_after == 0) != (gross_before == 0)

    def _clear_tick(self, tick: int):
        del self.ticks[tick]
        index = bisect.bisect_left(self.initialized_ticks, tick)
        del self.initialized_ticks[index]

    def _cross_tick(self, tick: int) -> int:
        info = self.ticks[tick]
        info.fee_growth_outside0_x128 = (self.fee_growth_global0_x128 - info.fee_growth_outside0_x128) % UINT256
        info.fee_growth_outside1_x128 = (self.fee_growth_global1_x128 - info.fee_growth_outside1_x128) % UINT256
        return info.liquidity_net

    def _next_initialized_tick(self, tick: int, zero_for_one: bool) -> int:
        """Nearest initialized tick at or below (zero_for_one) or strictly above the tick"""
        if zero_for_one:
            index = bisect.bisect_right(self.initialized_ticks, tick) - 1
            return self.initialized_ticks[index] if index >= 0 else MIN_TICK
        index = bisect.bisect_right(self.initialized_ticks, tick)
        if index < len(self.initialized_ticks):
            return self.initialized_ticks[index]
        return MAX_TICK

    # Trading
    @transactional
    def swap(
        self,
        sender: str,
        recipient: str,
        zero_for_one: bool,
        amount_specified: int,
        sqrt_price_limit_x96: int = 0
    ) -> Tuple[int, int]:
        """
        Execute a swap across as many ticks as needed

        Args:
            sender: Account paying the input token
            recipient: Account receiving the output token
            zero_for_one: True to sell token0 for token1
            amount_specified: Exact input when positive, exact output when negative
            sqrt_price_limit_x96: Price the swap may not pass (0 for no limit)

        Returns:
            (amount0, amount1) pool balance deltas; positive is paid into the pool
        """
        if amount_specified == 0:
            raise ValueError("amount_specified cannot be zero")

        exact_input = amount_specified > 0

        # Set price limit if not specified
        if sqrt_price_limit_x96 == 0:
            sqrt_price_limit_x96 = MIN_SQRT_RATIO + 1 if zero_for_one else MAX_SQRT_RATIO - 1

        # Validate price limit
        if zero_for_one:
            if not MIN_SQRT_RATIO < sqrt_price_limit_x96 < self.sqrt_price_x96:
                raise ValueError("Price limit must be below the current price for zero_for_one swap")
        else:
            if not self.sqrt_price_x96 < sqrt_price_limit_x96 < MAX_SQRT_RATIO:
                raise ValueError("Price limit must be above the current price for one_for_zero swap")

        amount_remaining = amount_specified
        amount_calculated = 0
        sqrt_price = self.sqrt_price_x96
        tick = self.tick
        liquidity = self.liquidity
        fee_growth_global = self.fee_growth_global0_x128 if zero_for_one else self.fee_growth_global1_x128

        while amount_remaining != 0 and sqrt_price != sqrt_price_limit_x96:
            sqrt_price_start = sqrt_price
            tick_next = self._next_initialized_tick(tick, zero_for_one)
            tick_next = max(MIN_TICK, min(MAX_TICK, tick_next))
            sqrt_price_next_tick = get_sqrt_ratio_at_tick(tick_next)

            # Step to the next tick or the price limit, whichever comes first
            if zero_for_one:
                sqrt_price_target = max(sqrt_price_next_tick, sqrt_price_limit_x96)
            else:
                sqrt_price_target = min(sqrt_price_next_tick, sqrt_price_limit_x96)

            sqrt_price, amount_in, amount_out, fee_amount = compute_swap_step(
                sqrt_price, sqrt_price_target, liquidity, amount_remaining, self.fee
            )

            if exact_input:
                amount_remaining -= amount_in + fee_amount
                amount_calculated -= amount_out
            else:
                amount_remaining += amount_out
                amount_calculated += amount_in + fee_amount

            if liquidity > 0:
                fee_growth_global = (fee_growth_global + fee_amount * Q128 // liquidity) % UINT256

            if sqrt_price == sqrt_price_next_tick:
                if tick_next in self.ticks:
                    # Crossing reads the global growth of the other token from pool state
                    if zero_for_one:
                        self.fee_growth_global0_x128 = fee_growth_global
                    else:
                        self.fee_growth_global1_x128 = fee_growth_global
                    liquidity_net = self._cross_tick(tick_next)
                    if zero_for_one:
                        liquidity_net = -liquidity_net
                    liquidity += liquidity_net
                tick = tick_next - 1 if zero_for_one else tick_next
            elif sqrt_price != sqrt_price_start:
                tick = get_tick_at_sqrt_ratio(sqrt_price)

        self.sqrt_price_x96 = sqrt_price
        self.tick = tick
        self.liquidity = liquidity
        if zero_for_one:
            self.fee_growth_global0_x128 = fee_growth_global
        else:
            self.fee_growth_global1_x128 = fee_growth_global

        if zero_for_one == exact_input:
            amount0, amount1 = amount_specified - amount_remaining, amount_calculated
        else:
            amount0, amount1 = amount_calculated, amount_specified - amount_remaining

        token_in, token_out = (self.token0, self.token1) if zero_for_one else (self.token1, self.token0)
        amount_in, amount_out = (amount0, -amount1) if zero_for_one else (amount1, -amount0)
        if amount_out > 0:
            token_out.transfer(self.address, recipient, amount_out)
        if amount_in > 0:
            token_in.transfer(sender, self.address, amount_in)

        self._log_event("Swap", owner=sender, amount0=amount0, amount1=amount1,
                        liquidity=liquidity)
        logger.debug("Swap %s zero_for_one=%s amounts=(%d, %d) tick=%d",
                     sender, zero_for_one, amount0, amount1, tick)
        return amount0, amount1

    def _log_event(self, event: str, **fields):
        record = {
            "event": event,
            "timestamp": self.ledger.timestamp,
            "tick": self.tick,
            "sqrt_price_x96": self.sqrt_price_x96,
        }
        record.update(fields)
        self.events.append(record)


class PoolFactory:
    """Registry of pools keyed by sorted token pair and fee tier"""

    def __init__(self, ledger: Ledger):
        self.ledger = ledger
        self.pools: Dict[Tuple[str, str, int], UniswapV3Pool] = {}
        ledger.track(self)

    @staticmethod
    def sort_tokens(token_a: ERC20Token, token_b: ERC20Token) -> Tuple[ERC20Token, ERC20Token]:
        if token_a.address.lower() == token_b.address.lower():
            raise ValueError("Identical token addresses")
        if token_a.address.lower() < token_b.address.lower():
            return token_a, token_b
        return token_b, token_a

    @transactional
    def create_pool(
        self,
        token_a: ERC20Token,
        token_b: ERC20Token,
        fee: int,
        sqrt_price_x96: int
    ) -> UniswapV3Pool:
        token0, token1 = self.sort_tokens(token_a, token_b)
        key = (token0.address, token1.address, fee)
        if key in self.pools:
            raise ValueError(f"Pool {token0.symbol}/{token1.symbol} fee {fee} already exists")
        pool = UniswapV3Pool(self.ledger, token0, token1, fee, sqrt_price_x96)
        self.pools[key] = pool
        logger.info("Created pool %s/%s fee=%d at tick %d", token0.symbol, token1.symbol, fee, pool.tick)
        return pool

    def get_pool(self, token_a: str, token_b: str, fee: int) -> UniswapV3Pool:
        """Pool for two token addresses (any order) and a fee tier"""
        a, b = sorted((token_a, token_b), key=str.lower)
        for (token0, token1, pool_fee), pool in self.pools.items():
            if token0.lower() == a.lower() and token1.lower() == b.lower() and pool_fee == fee:
                return pool
        raise PoolNotFound(f"No pool for {token_a}/{token_b} with fee {fee}")
