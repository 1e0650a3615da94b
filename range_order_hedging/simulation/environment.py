#!/usr/bin/env python3
"""
Hedging Environment

Builds a complete simulated world around one range order reactor: tokens,
a factory with pools at several fee tiers seeded with background liquidity,
a price feed, role authority, the custody vault, and a market taker.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List

from pydantic import BaseModel, Field, field_validator

from ..agents.base_agent import AgentAction, BaseAgent
from ..agents.liquidity_pool import LiquidityPoolCustody
from ..agents.trader import MarketTaker
from ..core.authority import Authority
from ..core.ledger import Ledger, address_for
from ..core.oracle import PriceFeed
from ..core.pool import PoolFactory, UniswapV3Pool
from ..core.price_converter import PriceConverter
from ..core.tokens import ERC20Token
from ..core.uniswap_v3_math import FEE_TICK_SPACING, floor_tick, get_liquidity_for_amounts, get_sqrt_ratio_at_tick
from ..engine.config import ReactorConfig
from ..engine.hedge_controller import HedgeController

logger = logging.getLogger(__name__)

USDC_ADDRESS = "0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48"
WETH_ADDRESS = "0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2"


class TokenConfig(BaseModel):
    """Token metadata"""
    symbol: str
    address: str
    decimals: int = Field(ge=0, le=36)


class EnvironmentConfig(BaseModel):
    """Parameters of a simulated hedging world"""
    collateral: TokenConfig = Field(
        default_factory=lambda: TokenConfig(symbol="USDC", address=USDC_ADDRESS, decimals=6)
    )
    underlying: TokenConfig = Field(
        default_factory=lambda: TokenConfig(symbol="WETH", address=WETH_ADDRESS, decimals=18)
    )
    initial_price: float = Field(default=3280.0, gt=0, description="Underlying price in collateral units")
    pool_fee: int = Field(default=3000, description="Fee tier the reactor starts on")
    extra_fee_tiers: List[int] = Field(default_factory=lambda: [500], description="Other pools of the same pair")
    range_width: int = Field(default=1, ge=1)
    only_authorized_fulfill: bool = False

    # Background liquidity, per pool
    background_liquidity: float = Field(default=10_000_000.0, gt=0, description="Collateral-side size of the LP position")
    background_range_ticks: int = Field(default=24_000, gt=0, description="Half-width of the LP position in ticks")

    # Funding
    custody_collateral: float = Field(default=1_000_000.0, ge=0)
    trader_collateral: float = Field(default=50_000_000.0, ge=0)
    trader_underlying: float = Field(default=20_000.0, ge=0)

    oracle_max_age: int = Field(default=3600, gt=0, description="Seconds before a price answer is stale")
    start_timestamp: int = 1_650_000_000

    # Account labels
    governor: str = "governor"
    guardian: str = "guardian"
    manager: str = "manager"

    @field_validator('pool_fee')
    @classmethod
    def validate_pool_fee(cls, v):
        if v not in FEE_TICK_SPACING:
            raise ValueError(f"pool_fee must be one of {sorted(FEE_TICK_SPACING)}")
        return v

    @field_validator('extra_fee_tiers')
    @classmethod
    def validate_extra_fee_tiers(cls, v):
        for fee in v:
            if fee not in FEE_TICK_SPACING:
                raise ValueError(f"Unsupported fee tier {fee}")
        return v

    @field_validator('background_range_ticks')
    @classmethod
    def validate_background_range(cls, v):
        if v % max(FEE_TICK_SPACING.values()):
            raise ValueError("background_range_ticks must be a multiple of every tick spacing")
        return v


@dataclass
class HedgingEnvironment:
    """Everything a hedging run touches"""
    config: EnvironmentConfig
    ledger: Ledger
    collateral: ERC20Token
    underlying: ERC20Token
    factory: PoolFactory
    pools: Dict[int, UniswapV3Pool]
    price_feed: PriceFeed
    authority: Authority
    custody: LiquidityPoolCustody
    reactor: HedgeController
    trader: MarketTaker
    liquidity_provider: BaseAgent
    governor: str
    guardian: str
    manager: str

    @property
    def pool(self) -> UniswapV3Pool:
        """Pool the reactor currently trades on"""
        return self.reactor.pool

    @property
    def converter(self) -> PriceConverter:
        return self.reactor.converter

    def pool_price(self) -> float:
        """Underlying price in collateral units implied by the reactor's pool"""
        return self.converter.sqrt_to_price(self.pool.sqrt_price_x96)

    def refresh_oracle(self, price: float = None) -> float:
        """Publish a price (the pool price by default) to the feed"""
        price = self.pool_price() if price is None else price
        self.price_feed.set_rate(self.underlying.address, self.collateral.address, price)
        return price

    def advance(self, seconds: int) -> int:
        return self.ledger.advance(seconds)


def _seed_background_liquidity(
    pool: UniswapV3Pool,
    provider: BaseAgent,
    collateral: ERC20Token,
    underlying: ERC20Token,
    config: EnvironmentConfig
):
    """Mint a wide two-sided position around the current tick"""
    center = floor_tick(pool.tick, pool.tick_spacing)
    lower = center - config.background_range_ticks
    upper = center + config.background_range_ticks

    amount_collateral = collateral.to_raw(config.background_liquidity)
    amount_underlying = underlying.to_raw(config.background_liquidity / config.initial_price)
    if pool.token0 is collateral:
        amount0, amount1 = amount_collateral, amount_underlying
    else:
        amount0, amount1 = amount_underlying, amount_collateral

    liquidity = get_liquidity_for_amounts(
        pool.sqrt_price_x96, get_sqrt_ratio_at_tick(lower), get_sqrt_ratio_at_tick(upper), amount0, amount1
    )
    pool.token0.mint(provider.address, amount0)
    pool.token1.mint(provider.address, amount1)
    pool.mint(provider.address, lower, upper, liquidity)
    provider.record_action(AgentAction.PROVIDE_LIQUIDITY, pool=pool.address, liquidity=liquidity)


def build_environment(config: EnvironmentConfig = None) -> HedgingEnvironment:
    """Deploy tokens, pools, oracle, roles, custody, reactor and trader"""
    config = config or EnvironmentConfig()
    ledger = Ledger(timestamp=config.start_timestamp)

    collateral = ERC20Token(ledger, config.collateral.address, config.collateral.symbol, config.collateral.decimals)
    underlying = ERC20Token(ledger, config.underlying.address, config.underlying.symbol, config.underlying.decimals)

    governor = address_for(config.governor)
    guardian = address_for(config.guardian)
    manager = address_for(config.manager)
    authority = Authority(ledger, governor, guardian, manager)

    factory = PoolFactory(ledger)
    token0, token1 = PoolFactory.sort_tokens(collateral, underlying)
    converter = PriceConverter(token0.decimals, token1.decimals, inverted=token0 is collateral)
    sqrt_price = converter.price_to_sqrt(config.initial_price)

    provider = BaseAgent("background-lp", "liquidity_provider", ledger)
    pools = {}
    for fee in [config.pool_fee] + [f for f in config.extra_fee_tiers if f != config.pool_fee]:
        pool = factory.create_pool(collateral, underlying, fee, sqrt_price)
        _seed_background_liquidity(pool, provider, collateral, underlying, config)
        pools[fee] = pool

    price_feed = PriceFeed(ledger, max_age=config.oracle_max_age)
    price_feed.set_rate(underlying.address, collateral.address, config.initial_price)

    custody = LiquidityPoolCustody("liquidity-pool", ledger, collateral)
    reactor_config = ReactorConfig(
        collateral_asset=collateral.address,
        underlying_asset=underlying.address,
        pool_fee=config.pool_fee,
        range_width=config.range_width,
        only_authorized_fulfill=config.only_authorized_fulfill,
    )
    reactor = HedgeController(
        ledger, reactor_config, factory, collateral, underlying, authority, price_feed, custody.address
    )
    custody.set_hedging_reactor(reactor)
    collateral.mint(custody.address, collateral.to_raw(config.custody_collateral))

    trader = MarketTaker("market-taker", ledger)
    collateral.mint(trader.address, collateral.to_raw(config.trader_collateral))
    underlying.mint(trader.address, underlying.to_raw(config.trader_underlying))

    logger.info(
        "Built %s/%s environment at price %.2f (pool tick %d, inverted=%s)",
        underlying.symbol, collateral.symbol, config.initial_price, pools[config.pool_fee].tick, reactor.inverted
    )
    return HedgingEnvironment(
        config=config,
        ledger=ledger,
        collateral=collateral,
        underlying=underlying,
        factory=factory,
        pools=pools,
        price_feed=price_feed,
        authority=authority,
        custody=custody,
        reactor=reactor,
        trader=trader,
        liquidity_provider=provider,
        governor=governor,
        guardian=guardian,
        manager=manager,
    )
