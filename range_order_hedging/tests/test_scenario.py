#!/usr/bin/env python3
"""
End-to-end hedge scenario tests
"""

import pandas as pd
import pytest

from range_order_hedging.simulation.environment import EnvironmentConfig, build_environment
from range_order_hedging.simulation.scenario import fill_price, run_hedge_scenario


def test_buy_scenario_fills_and_fulfills():
    results = run_hedge_scenario(delta=-0.5, steps=4)

    assert isinstance(results, pd.DataFrame)
    events = list(results["event"])
    assert events[:2] == ["initial", "hedge"]
    assert "fulfill" in events

    hedge_row = results[results["event"] == "hedge"].iloc[0]
    assert hedge_row["state"] == "active_unfilled"
    assert hedge_row["engine_underlying"] == 0.0
    assert hedge_row["custody_collateral"] < results.iloc[0]["custody_collateral"]

    final = results.iloc[-1]
    assert final["state"] == "inactive"
    assert final["engine_underlying"] == pytest.approx(0.5, rel=1e-2)
    assert final["delta"] == final["engine_underlying"]
    assert results["timestamp"].is_monotonic_increasing


def test_unplaceable_request_stops_after_hedge():
    results = run_hedge_scenario(delta=0.5)
    assert list(results["event"]) == ["initial", "hedge"]
    assert results.iloc[-1]["state"] == "inactive"


def test_price_path_without_fill():
    """Moving away from a resting buy never fills it"""
    results = run_hedge_scenario(delta=-0.5, steps=3, final_price=3400.0)
    assert "fulfill" not in set(results["event"])
    assert results.iloc[-1]["state"] == "active_unfilled"
    assert results.iloc[-1]["pool_price"] == pytest.approx(3400.0, rel=1e-3)


def test_non_inverted_scenario(usdt_env):
    config = usdt_env.config
    results = run_hedge_scenario(delta=-0.25, config=config, steps=3)
    assert "fulfill" in set(results["event"])
    assert results.iloc[-1]["engine_underlying"] == pytest.approx(0.25, rel=1e-2)


def test_fill_price_crosses_order():
    env = build_environment(EnvironmentConfig())
    env.custody.hedge_delta(-0.5)
    target = fill_price(env)
    assert target < env.pool_price(), "A resting buy fills as the underlying gets cheaper"


def test_invalid_steps():
    with pytest.raises(ValueError):
        run_hedge_scenario(steps=0)
