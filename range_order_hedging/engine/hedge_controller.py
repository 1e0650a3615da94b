#!/usr/bin/env python3
"""
Range Order Reactor

Entry point the liquidity pool uses to hedge: a signed delta request becomes
a single range order resting beyond the current pool price.

- A negative delta buys the hedged asset (the engine's delta rises)
- A positive delta sells it from the engine's free balance

Against an existing order the request is netted rather than stacked, so the
engine never holds more than one order.
"""

import logging
from decimal import Decimal
from typing import Tuple

from ..core.ledger import transactional
from ..core.price_converter import Direction
from ..core.tokens import ERC20Token
from ..core.uniswap_v3_math import (
    floor_tick, get_amount0_delta, get_amount1_delta,
    get_liquidity_for_amount0, get_liquidity_for_amount1, get_sqrt_ratio_at_tick,
)
from .position_manager import PositionManager, PositionState, RangeOrderParams

logger = logging.getLogger(__name__)


class HedgeController(PositionManager):
    """Delta hedging reactor backed by range orders"""

    # Views
    def get_pool_price(self) -> Tuple[float, bool]:
        """Live price of token0 in token1 (whole-token units) and the inversion flag"""
        return self.converter.sqrt_to_price(self.pool.sqrt_price_x96, inverted=False), self.inverted

    def get_delta(self) -> float:
        """Hedged-asset exposure: free balance plus the active order's hedged-asset side"""
        _, underlying_in_order = self._split_by_asset(*self.get_underlying_balances())
        free = self.underlying.balance_of(self.address)
        return self.underlying.from_raw(free + underlying_in_order)

    # Custody
    @transactional
    def hedge_delta(self, delta: float, sender: str) -> float:
        """
        Hedge a change in delta with a range order

        Args:
            delta: Signed hedged-asset amount; negative buys, positive sells
            sender: Calling account, must be the liquidity pool

        Returns:
            Signed size of the order placed (0.0 when none)
        """
        self._only_custody(sender)
        if delta == 0:
            return 0.0

        state = self.position_state()
        if state == PositionState.ACTIVE_FILLED:
            self._fulfill_position()
        elif state == PositionState.ACTIVE_UNFILLED:
            buying = self.is_buy(self.position.direction)
            size = self.position.size
            untouched = self._range_untouched()
            _, underlying_back = self._split_by_asset(*self._exit_position())
            if not untouched:
                size = self._unfilled_size(buying, size, self.underlying.from_raw(underlying_back))
            pending = -size if buying else size
            if (pending < 0) != (delta < 0):
                delta = float(Decimal(str(pending)) + Decimal(str(delta)))
                logger.debug("Netted pending %s against request -> %s", pending, delta)
                if delta == 0:
                    logger.info("Request offsets the pending order; no range order placed")
                    return 0.0

        return self._place_order(delta)

    @transactional
    def withdraw(self, amount: int, sender: str) -> int:
        """Return up to ``amount`` of free collateral to the liquidity pool"""
        self._only_custody(sender)
        if amount < 0:
            raise ValueError("Cannot withdraw a negative amount")
        available = min(amount, self.collateral.balance_of(self.address))
        if available > 0:
            self.collateral.transfer(self.address, self.parent_liquidity_pool, available)
        logger.info("Withdrew %d collateral to the liquidity pool", available)
        return available

    @transactional
    def recover_erc20(self, token: ERC20Token, recipient: str, amount: int, sender: str) -> None:
        """Sweep tokens held directly by the engine; pool liquidity is out of reach"""
        self._only_guardian(sender)
        token.transfer(self.address, recipient, amount)
        logger.info("Recovered %d %s to %s", amount, token.symbol, recipient)

    # Order placement
    @staticmethod
    def _unfilled_size(buying: bool, size: float, underlying_back: float) -> float:
        """
        Part of an exited, partly filled order that never traded

        A buy has already bought whatever hedged asset came back from the
        pool; a sell still had that amount left to sell. The traded part
        stays in the engine's free balance.
        """
        if buying:
            return float(max(Decimal(str(size)) - Decimal(str(underlying_back)), Decimal(0)))
        return min(size, underlying_back)

    def _direction_for(self, delta: float) -> Direction:
        buying = delta < 0
        if buying:
            return Direction.ABOVE if self.inverted else Direction.BELOW
        return Direction.BELOW if self.inverted else Direction.ABOVE

    def _order_ticks(self, direction: Direction) -> Tuple[int, int, int, float]:
        """
        Range boundaries for a new order

        The reference price is the more conservative of the oracle and pool
        prices. Its tick is rounded to the tick spacing, stepped one spacing
        in the order direction, and the range spans ``range_width`` spacings.
        The range is then pushed fully beyond the live pool tick.

        Returns:
            (lower_tick, upper_tick, sqrt_price_hint, reference_price)
        """
        oracle_price = self.price_feed.get_normalized_rate(self.underlying.address, self.collateral.address)
        pool_price = self.converter.sqrt_to_price(self.pool.sqrt_price_x96)
        reference_price = self.converter.price_to_use(oracle_price, pool_price, direction)

        spacing = self.pool.tick_spacing
        width = self.range_width * spacing
        nearest = self.converter.nearest_usable_tick(self.converter.price_to_tick(reference_price), spacing)
        current = floor_tick(self.pool.tick, spacing)

        if direction == Direction.ABOVE:
            lower = max(nearest + spacing, current + spacing)
            upper = lower + width
        else:
            upper = min(nearest - spacing, current)
            lower = upper - width

        logger.debug(
            "%s ticks [%d, %d) from oracle %.6f pool %.6f reference %.6f",
            direction.value, lower, upper, oracle_price, pool_price, reference_price
        )
        return lower, upper, self.converter.price_to_sqrt(reference_price), reference_price

    def _fund_collateral(self, amount: int):
        """Top up the engine's collateral from the liquidity pool's allowance"""
        shortfall = amount - self.collateral.balance_of(self.address)
        if shortfall > 0:
            self.collateral.transfer_from(self.address, self.parent_liquidity_pool, self.address, shortfall)

    def _place_order(self, delta: float) -> float:
        direction = self._direction_for(delta)
        size = abs(delta)
        lower, upper, sqrt_hint, reference_price = self._order_ticks(direction)
        sqrt_lower = get_sqrt_ratio_at_tick(lower)
        sqrt_upper = get_sqrt_ratio_at_tick(upper)

        if self.is_buy(direction):
            target = self.underlying.to_raw(size)
            if target == 0:
                logger.warning("Buy request of %s is below one raw unit; nothing placed", size)
                return 0.0
            # Size liquidity so a full fill delivers ``target`` of the hedged asset
            if self.pool.token1 is self.underlying:
                liquidity = get_liquidity_for_amount1(sqrt_lower, sqrt_upper, target)
                amount = get_amount0_delta(sqrt_lower, sqrt_upper, liquidity, True)
            else:
                liquidity = get_liquidity_for_amount0(sqrt_lower, sqrt_upper, target)
                amount = get_amount1_delta(sqrt_lower, sqrt_upper, liquidity, True)
            self._fund_collateral(amount)
        else:
            free = self.underlying.balance_of(self.address)
            amount = min(self.underlying.to_raw(size), free)
            if amount == 0:
                logger.warning("Sell request of %s with no free %s; nothing placed", size, self.underlying.symbol)
                return 0.0
            if amount < self.underlying.to_raw(size):
                size = self.underlying.from_raw(amount)
                logger.debug("Sell capped at free balance %s", size)

        params = RangeOrderParams(lower, upper, sqrt_hint, reference_price, direction)
        self._create_position(params, amount, size)
        return -size if self.is_buy(direction) else size
