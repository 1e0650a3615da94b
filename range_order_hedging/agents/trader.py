#!/usr/bin/env python3
"""
Market Taker

Trades through the pool to move its price, which is what fills resting
range orders.
"""

import logging
from typing import Tuple

from ..core.ledger import Ledger
from ..core.pool import UniswapV3Pool
from ..core.price_converter import PriceConverter
from ..core.uniswap_v3_math import MAX_SQRT_RATIO, MIN_SQRT_RATIO, get_sqrt_ratio_at_tick
from .base_agent import AgentAction, BaseAgent

logger = logging.getLogger(__name__)


class MarketTaker(BaseAgent):
    """Trader that swaps exact inputs against a pool"""

    def __init__(self, agent_id: str, ledger: Ledger):
        super().__init__(agent_id, "market_taker", ledger)
        self.trades_executed = 0

    def swap_exact_input(
        self,
        pool: UniswapV3Pool,
        zero_for_one: bool,
        amount_in: int,
        sqrt_price_limit_x96: int = 0
    ) -> Tuple[int, int]:
        amounts = pool.swap(self.address, self.address, zero_for_one, amount_in, sqrt_price_limit_x96)
        self.trades_executed += 1
        self.record_action(AgentAction.SWAP, zero_for_one=zero_for_one, amount0=amounts[0], amount1=amounts[1])
        return amounts

    def move_price_to_sqrt(self, pool: UniswapV3Pool, target_sqrt_price_x96: int) -> Tuple[int, int]:
        """
        Swap until the pool reaches the target sqrt price

        Offers the trader's whole balance of the input token with the target
        as the price limit, so the swap stops exactly at the target unless the
        balance runs out first.
        """
        target = max(MIN_SQRT_RATIO + 1, min(MAX_SQRT_RATIO - 1, target_sqrt_price_x96))
        if target == pool.sqrt_price_x96:
            return 0, 0
        zero_for_one = target < pool.sqrt_price_x96
        token_in = pool.token0 if zero_for_one else pool.token1
        balance = token_in.balance_of(self.address)
        if balance == 0:
            raise ValueError(f"{self.agent_id} holds no {token_in.symbol} to trade")
        amounts = self.swap_exact_input(pool, zero_for_one, balance, target)
        logger.debug("%s moved %s to tick %d", self.agent_id, pool, pool.tick)
        return amounts

    def move_price_to(self, pool: UniswapV3Pool, converter: PriceConverter, price: float) -> Tuple[int, int]:
        """Move the pool to an economic price (hedged asset in collateral)"""
        return self.move_price_to_sqrt(pool, converter.price_to_sqrt(price))

    def move_price_to_tick(self, pool: UniswapV3Pool, tick: int) -> Tuple[int, int]:
        """Move the pool so that its current tick becomes ``tick``"""
        return self.move_price_to_sqrt(pool, get_sqrt_ratio_at_tick(tick))
