#!/usr/bin/env python3
"""
Hedge Scenario Runner

Replays a hedging run: the liquidity pool requests a delta change, the
market walks the price through the resulting range order, and the manager
fulfills it once filled. Every step is captured as one DataFrame row.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from ..core.price_converter import Direction
from ..engine.position_manager import PositionState
from .environment import EnvironmentConfig, HedgingEnvironment, build_environment

logger = logging.getLogger(__name__)


def snapshot(env: HedgingEnvironment, step: int, event: str) -> dict:
    """Engine and market state at this point of the run"""
    reactor = env.reactor
    lower, upper = reactor.current_position()
    return {
        "step": step,
        "event": event,
        "timestamp": env.ledger.timestamp,
        "pool_tick": env.pool.tick,
        "pool_price": env.pool_price(),
        "oracle_price": env.price_feed.get_normalized_rate(env.underlying.address, env.collateral.address),
        "state": reactor.position_state().value,
        "lower_tick": lower,
        "upper_tick": upper,
        "engine_collateral": env.collateral.from_raw(env.collateral.balance_of(reactor.address)),
        "engine_underlying": env.underlying.from_raw(env.underlying.balance_of(reactor.address)),
        "custody_collateral": env.collateral.from_raw(env.collateral.balance_of(env.custody.address)),
        "delta": reactor.get_delta(),
        "position_value": reactor.get_pool_denominated_value(),
    }


def fill_price(env: HedgingEnvironment, overshoot_spacings: int = 1) -> float:
    """Economic price just past the far boundary of the active order"""
    reactor = env.reactor
    lower, upper = reactor.current_position()
    spacing = env.pool.tick_spacing
    if reactor.position.direction == Direction.ABOVE:
        target_tick = upper + overshoot_spacings * spacing
    else:
        target_tick = lower - overshoot_spacings * spacing
    return env.converter.tick_to_price(target_tick)


def run_hedge_scenario(
    delta: float = -0.5,
    config: Optional[EnvironmentConfig] = None,
    steps: int = 5,
    final_price: Optional[float] = None,
    step_seconds: int = 60
) -> pd.DataFrame:
    """
    Hedge ``delta`` and walk the price to ``final_price`` in equal steps

    Args:
        delta: Signed delta request issued by the liquidity pool
        config: World parameters (defaults to the USDC/WETH 3280 setup)
        steps: Number of price moves
        final_price: Economic price to end at; defaults to just past the order
        step_seconds: Block time elapsed per step

    Returns:
        DataFrame with one row per snapshot
    """
    if steps < 1:
        raise ValueError("steps must be at least 1")

    env = build_environment(config)
    rows = [snapshot(env, 0, "initial")]

    placed = env.custody.hedge_delta(delta)
    rows.append(snapshot(env, 0, "hedge"))
    logger.info("Requested delta %s, placed %s", delta, placed)

    if final_price is None:
        if env.reactor.position_state() == PositionState.INACTIVE:
            return pd.DataFrame(rows)
        final_price = fill_price(env)

    path = np.linspace(env.pool_price(), final_price, steps + 1)[1:]
    for step, price in enumerate(path, start=1):
        env.advance(step_seconds)
        env.trader.move_price_to(env.pool, env.converter, float(price))
        env.refresh_oracle()
        rows.append(snapshot(env, step, "move"))

        if env.reactor.position_state() == PositionState.ACTIVE_FILLED:
            env.reactor.fulfill_active_range_order(env.manager)
            rows.append(snapshot(env, step, "fulfill"))

    return pd.DataFrame(rows)
