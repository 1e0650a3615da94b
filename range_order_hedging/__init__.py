"""
Range Order Hedging

Delta hedging through range orders on a concentrated liquidity pool: price
and tick conversion, a single-order lifecycle state machine, and a reactor
that turns signed delta requests into resting range orders.
"""

__version__ = "1.0.0"

# Core components
from .core.errors import (
    HedgeEngineError, StateError, InActivePosition, RangeOrderNotFilled, NoActivePosition,
    InvalidRangeOrder, AuthorizationError, Unauthorized, UnauthorizedFulfill
)
from .core.ledger import Ledger
from .core.tokens import ERC20Token
from .core.pool import UniswapV3Pool, PoolFactory
from .core.oracle import PriceFeed
from .core.authority import Authority
from .core.price_converter import PriceConverter, Direction

# Engine
from .engine.config import ReactorConfig
from .engine.position_manager import PositionManager, PositionState, RangeOrder, RangeOrderParams
from .engine.hedge_controller import HedgeController

# Agents
from .agents.liquidity_pool import LiquidityPoolCustody
from .agents.trader import MarketTaker

# Simulation
from .simulation.environment import EnvironmentConfig, build_environment
from .simulation.scenario import run_hedge_scenario

__all__ = [
    # Errors
    "HedgeEngineError", "StateError", "InActivePosition", "RangeOrderNotFilled",
    "NoActivePosition", "InvalidRangeOrder", "AuthorizationError", "Unauthorized",
    "UnauthorizedFulfill",

    # Core
    "Ledger", "ERC20Token", "UniswapV3Pool", "PoolFactory", "PriceFeed", "Authority",
    "PriceConverter", "Direction",

    # Engine
    "ReactorConfig", "PositionManager", "PositionState", "RangeOrder", "RangeOrderParams",
    "HedgeController",

    # Agents
    "LiquidityPoolCustody", "MarketTaker",

    # Simulation
    "EnvironmentConfig", "build_environment", "run_hedge_scenario"
]
