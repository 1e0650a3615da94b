#!/usr/bin/env python3
"""
Configuration validation tests
"""

import pytest
from pydantic import ValidationError

from range_order_hedging.engine.config import ReactorConfig
from range_order_hedging.simulation.environment import EnvironmentConfig, USDC_ADDRESS, WETH_ADDRESS


class TestReactorConfig:

    def test_defaults(self):
        config = ReactorConfig(collateral_asset=USDC_ADDRESS, underlying_asset=WETH_ADDRESS)
        assert config.pool_fee == 3000
        assert config.range_width == 1
        assert config.only_authorized_fulfill is False

    @pytest.mark.parametrize("fee", [100, 500, 3000, 10000])
    def test_supported_fee_tiers(self, fee):
        config = ReactorConfig(collateral_asset=USDC_ADDRESS, underlying_asset=WETH_ADDRESS, pool_fee=fee)
        assert config.pool_fee == fee

    def test_unsupported_fee_tier(self):
        with pytest.raises(ValidationError):
            ReactorConfig(collateral_asset=USDC_ADDRESS, underlying_asset=WETH_ADDRESS, pool_fee=2500)

    def test_range_width_at_least_one(self):
        with pytest.raises(ValidationError):
            ReactorConfig(collateral_asset=USDC_ADDRESS, underlying_asset=WETH_ADDRESS, range_width=0)

    def test_assets_must_differ(self):
        with pytest.raises(ValidationError):
            ReactorConfig(collateral_asset=USDC_ADDRESS, underlying_asset=USDC_ADDRESS.lower())


class TestEnvironmentConfig:

    def test_defaults(self):
        config = EnvironmentConfig()
        assert config.collateral.symbol == "USDC"
        assert config.underlying.decimals == 18
        assert config.initial_price == 3280.0
        assert config.extra_fee_tiers == [500]

    def test_invalid_values(self):
        with pytest.raises(ValidationError):
            EnvironmentConfig(initial_price=0)
        with pytest.raises(ValidationError):
            EnvironmentConfig(pool_fee=42)
        with pytest.raises(ValidationError):
            EnvironmentConfig(extra_fee_tiers=[500, 42])
        with pytest.raises(ValidationError):
            EnvironmentConfig(background_range_ticks=1030)
