#!/usr/bin/env python3
"""
Range Order Position Manager

Owns the engine's single range order in a concentrated liquidity pool and
drives its lifecycle:

    INACTIVE --create--> ACTIVE_UNFILLED --(price crosses range)--> ACTIVE_FILLED
        ^                      |                                          |
        +------- exit ---------+------------- fulfill / exit -------------+

Fill state is never stored; it is derived from the live pool tick on every
read. ABOVE orders are filled once the tick reaches the upper boundary,
BELOW orders once it drops under the lower boundary.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from ..core.authority import Authority
from ..core.errors import (
    InActivePosition, InvalidRangeOrder, NoActivePosition, RangeOrderNotFilled,
    Unauthorized, UnauthorizedFulfill,
)
from ..core.ledger import Ledger, address_for, transactional
from ..core.oracle import PriceFeed
from ..core.pool import PoolFactory, UniswapV3Pool
from ..core.price_converter import Direction, PriceConverter
from ..core.tokens import ERC20Token
from ..core.uniswap_v3_math import (
    fees_owed, get_amount0_delta, get_amount1_delta,
    get_amounts_for_liquidity, get_liquidity_for_amounts, get_sqrt_ratio_at_tick,
)
from .config import ReactorConfig

logger = logging.getLogger(__name__)

MAX_COLLECT = 2 ** 128 - 1


class PositionState(Enum):
    """Lifecycle state of the engine's range order"""
    INACTIVE = "inactive"
    ACTIVE_UNFILLED = "active_unfilled"
    ACTIVE_FILLED = "active_filled"


@dataclass
class RangeOrderParams:
    """Boundaries and pricing of a range order to create"""
    lower_tick: int
    upper_tick: int
    sqrt_price_x96: int  # price hint used to size liquidity
    mean_price: float
    direction: Direction


@dataclass
class RangeOrder:
    """The engine's current order; all zero when there is none"""
    active_lower_tick: int = 0
    active_upper_tick: int = 0
    liquidity: int = 0
    direction: Optional[Direction] = None
    mean_price: float = 0.0
    size: float = 0.0  # hedged-asset amount the order was sized for

    @property
    def is_active(self) -> bool:
        return not (self.active_lower_tick == 0 and self.active_upper_tick == 0)


class PositionManager:
    """Creates, tracks, fulfills and exits the engine's range order"""

    def __init__(
        self,
        ledger: Ledger,
        config: ReactorConfig,
        factory: PoolFactory,
        collateral: ERC20Token,
        underlying: ERC20Token,
        authority: Authority,
        price_feed: PriceFeed,
        parent_liquidity_pool: str,
        address: Optional[str] = None
    ):
        if collateral.address != config.collateral_asset or underlying.address != config.underlying_asset:
            raise ValueError("Token contracts do not match the configured assets")

        self.ledger = ledger
        self.config = config
        self.factory = factory
        self.collateral = collateral
        self.underlying = underlying
        self.authority = authority
        self.price_feed = price_feed
        self.parent_liquidity_pool = parent_liquidity_pool
        self.address = address or address_for("range-order-reactor")

        self.pool: UniswapV3Pool = factory.get_pool(collateral.address, underlying.address, config.pool_fee)
        self.pool_fee = config.pool_fee
        self.range_width = config.range_width
        self.only_authorized_fulfill = config.only_authorized_fulfill

        # token0 is the collateral -> pool quotes collateral in the hedged asset
        self.inverted = self.pool.token0 is collateral
        self.converter = PriceConverter(self.pool.token0.decimals, self.pool.token1.decimals, self.inverted)
        self.position = RangeOrder()
        ledger.track(self)

    # Access checks
    def _only_manager(self, sender: str):
        if not self.authority.is_manager(sender):
            raise Unauthorized(f"{sender} is not a manager")

    def _only_guardian(self, sender: str):
        if not self.authority.is_guardian(sender):
            raise Unauthorized(f"{sender} is not a guardian")

    def _only_custody(self, sender: str):
        if sender != self.parent_liquidity_pool:
            raise Unauthorized(f"{sender} is not the liquidity pool")

    # Views
    def current_position(self) -> Tuple[int, int]:
        return self.position.active_lower_tick, self.position.active_upper_tick

    def position_state(self) -> PositionState:
        if not self.position.is_active:
            return PositionState.INACTIVE
        tick = self.pool.tick
        if self.position.direction == Direction.ABOVE:
            filled = tick >= self.position.active_upper_tick
        else:
            filled = tick < self.position.active_lower_tick
        return PositionState.ACTIVE_FILLED if filled else PositionState.ACTIVE_UNFILLED

    def _range_untouched(self) -> bool:
        """True while the pool tick has not entered the active order's range"""
        if self.position.direction == Direction.ABOVE:
            return self.pool.tick < self.position.active_lower_tick
        return self.pool.tick >= self.position.active_upper_tick

    def is_buy(self, direction: Direction) -> bool:
        """True when an order in ``direction`` pays collateral for the hedged asset"""
        # ABOVE orders deposit token0, which is the collateral exactly when inverted
        return (direction == Direction.ABOVE) == self.inverted

    def get_underlying_balances(self) -> Tuple[int, int]:
        """
        Current claim of the active order on both pool tokens

        Includes fees earned since the last checkpoint and tokens already owed
        but not yet collected.

        Returns:
            (amount0_current, amount1_current) in raw token units
        """
        if not self.position.is_active:
            return 0, 0

        lower = self.position.active_lower_tick
        upper = self.position.active_upper_tick
        info = self.pool.get_position(self.address, lower, upper)
        amount0, amount1 = get_amounts_for_liquidity(
            self.pool.sqrt_price_x96,
            get_sqrt_ratio_at_tick(lower),
            get_sqrt_ratio_at_tick(upper),
            info.liquidity
        )

        inside0, inside1 = self.pool.fee_growth_inside(lower, upper)
        fees0 = info.tokens_owed0 + fees_owed(info.liquidity, inside0, info.fee_growth_inside0_last_x128)
        fees1 = info.tokens_owed1 + fees_owed(info.liquidity, inside1, info.fee_growth_inside1_last_x128)
        return amount0 + fees0, amount1 + fees1

    def _split_by_asset(self, amount0: int, amount1: int) -> Tuple[int, int]:
        """(collateral, underlying) from a (token0, token1) pair"""
        return (amount0, amount1) if self.inverted else (amount1, amount0)

    def get_pool_denominated_value(self) -> float:
        """Active order value in human collateral units at the oracle price"""
        if not self.position.is_active:
            return 0.0
        amount_collateral, amount_underlying = self._split_by_asset(*self.get_underlying_balances())
        price = self.price_feed.get_normalized_rate(self.underlying.address, self.collateral.address)
        return (
            self.collateral.from_raw(amount_collateral)
            + self.underlying.from_raw(amount_underlying) * price
        )

    # Admin
    @transactional
    def create_range_order(self, params: RangeOrderParams, amount: int, sender: str) -> int:
        """Manager entry point to place a range order funded from the engine's balance"""
        self._only_manager(sender)
        return self._create_position(params, amount)

    @transactional
    def exit_active_range_order(self, sender: str) -> Tuple[int, int]:
        """Withdraw the active order whatever its fill state; proceeds stay in the engine"""
        self._only_manager(sender)
        return self._exit_position()

    @transactional
    def set_pool_fee(self, pool_fee: int, sender: str) -> None:
        """Re-target the engine to the pool of the same pair at another fee tier"""
        self._only_manager(sender)
        if self.position.is_active:
            raise InActivePosition("Cannot change the pool fee while a range order is active")
        self.pool = self.factory.get_pool(self.collateral.address, self.underlying.address, pool_fee)
        self.pool_fee = pool_fee
        logger.info("Pool fee set to %d", pool_fee)

    @transactional
    def set_authorized_fulfill(self, only_authorized: bool, sender: str) -> None:
        self._only_manager(sender)
        self.only_authorized_fulfill = only_authorized
        logger.info("Authorized fulfill set to %s", only_authorized)

    @transactional
    def fulfill_active_range_order(self, sender: str) -> Tuple[int, int]:
        """
        Harvest a filled order

        Burns the order's liquidity and collects everything owed. Collateral
        proceeds go to the liquidity pool; the hedged asset stays with the
        engine as the hedge.

        Returns:
            Collected (amount0, amount1) in raw token units
        """
        if self.only_authorized_fulfill and not self.authority.is_manager(sender):
            raise UnauthorizedFulfill(f"{sender} may not fulfill range orders")
        return self._fulfill_position()

    # Lifecycle internals
    def _create_position(self, params: RangeOrderParams, amount: int, size: Optional[float] = None) -> int:
        if self.position.is_active:
            raise InActivePosition("A range order is already active")

        spacing = self.pool.tick_spacing
        lower, upper = params.lower_tick, params.upper_tick
        if lower % spacing or upper % spacing:
            raise InvalidRangeOrder(f"Ticks [{lower}, {upper}) are not multiples of {spacing}")
        if lower >= upper:
            raise InvalidRangeOrder(f"Lower tick {lower} must be below upper tick {upper}")

        tick = self.pool.tick
        if params.direction == Direction.ABOVE and tick >= lower:
            raise InvalidRangeOrder(f"ABOVE order [{lower}, {upper}) is not above tick {tick}")
        if params.direction == Direction.BELOW and tick < upper:
            raise InvalidRangeOrder(f"BELOW order [{lower}, {upper}) is not below tick {tick}")

        sqrt_lower = get_sqrt_ratio_at_tick(lower)
        sqrt_upper = get_sqrt_ratio_at_tick(upper)
        above = params.direction == Direction.ABOVE
        liquidity = get_liquidity_for_amounts(
            params.sqrt_price_x96, sqrt_lower, sqrt_upper,
            amount if above else 0,
            0 if above else amount
        )
        if liquidity == 0:
            raise InvalidRangeOrder(f"Amount {amount} buys no liquidity in [{lower}, {upper})")

        amount0, amount1 = self.pool.mint(self.address, lower, upper, liquidity)

        if size is None:
            # Hedged-asset amount held once the whole range is on the underlying side
            if self.pool.token0 is self.underlying:
                underlying_amount = get_amount0_delta(sqrt_lower, sqrt_upper, liquidity)
            else:
                underlying_amount = get_amount1_delta(sqrt_lower, sqrt_upper, liquidity)
            size = self.underlying.from_raw(underlying_amount)

        self.position = RangeOrder(
            active_lower_tick=lower,
            active_upper_tick=upper,
            liquidity=liquidity,
            direction=params.direction,
            mean_price=params.mean_price,
            size=size,
        )
        logger.info(
            "Created %s range order [%d, %d) L=%d deposit=(%d, %d) mean price %.6f",
            params.direction.value, lower, upper, liquidity, amount0, amount1, params.mean_price
        )
        return liquidity

    def _withdraw_position(self) -> Tuple[int, int]:
        """Burn all order liquidity and collect every owed token to the engine"""
        lower = self.position.active_lower_tick
        upper = self.position.active_upper_tick
        liquidity = self.pool.get_position(self.address, lower, upper).liquidity
        if liquidity > 0:
            self.pool.burn(self.address, lower, upper, liquidity)
        amounts = self.pool.collect(self.address, self.address, lower, upper, MAX_COLLECT, MAX_COLLECT)
        self.position = RangeOrder()
        return amounts

    def _exit_position(self) -> Tuple[int, int]:
        if not self.position.is_active:
            raise NoActivePosition("No range order to exit")
        lower, upper = self.current_position()
        amount0, amount1 = self._withdraw_position()
        logger.info("Exited range order [%d, %d) collected (%d, %d)", lower, upper, amount0, amount1)
        return amount0, amount1

    def _fulfill_position(self) -> Tuple[int, int]:
        state = self.position_state()
        if state == PositionState.INACTIVE:
            raise NoActivePosition("No range order to fulfill")
        if state == PositionState.ACTIVE_UNFILLED:
            raise RangeOrderNotFilled(
                f"Tick {self.pool.tick} has not crossed range [{self.position.active_lower_tick}, "
                f"{self.position.active_upper_tick})"
            )

        lower, upper = self.current_position()
        amount0, amount1 = self._withdraw_position()
        collateral_amount, _ = self._split_by_asset(amount0, amount1)
        if collateral_amount > 0:
            self.collateral.transfer(self.address, self.parent_liquidity_pool, collateral_amount)
        logger.info(
            "Fulfilled range order [%d, %d) collected (%d, %d), %d collateral returned",
            lower, upper, amount0, amount1, collateral_amount
        )
        return amount0, amount1
