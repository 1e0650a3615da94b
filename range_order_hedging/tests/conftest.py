"""Shared fixtures: freshly built hedging worlds"""

import pytest

from range_order_hedging.simulation.environment import (
    EnvironmentConfig, TokenConfig, WETH_ADDRESS, build_environment,
)

USDT_ADDRESS = "0xdAC17F958D2ee523a2206206994597C13D831ec7"


@pytest.fixture
def env():
    """USDC/WETH world at 3280; USDC is token0 so the pool is inverted"""
    return build_environment(EnvironmentConfig())


@pytest.fixture
def usdt_env():
    """WETH/USDT world at 3280; WETH is token0 so the pool is not inverted"""
    config = EnvironmentConfig(
        collateral=TokenConfig(symbol="USDT", address=USDT_ADDRESS, decimals=6),
        underlying=TokenConfig(symbol="WETH", address=WETH_ADDRESS, decimals=18),
    )
    return build_environment(config)
