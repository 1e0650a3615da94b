"""Core chain primitives: tick math, price conversion, tokens, pool, oracle, roles"""

from .errors import (
    HedgeEngineError, StateError, InActivePosition, RangeOrderNotFilled, NoActivePosition,
    InvalidRangeOrder, AuthorizationError, Unauthorized, UnauthorizedFulfill, TokenError,
    InsufficientBalance, InsufficientAllowance, OracleError, MissingPriceFeed, StaleOracle,
    PoolError, PoolNotFound, InsufficientLiquidity
)
from .ledger import Ledger, address_for, transactional
from .tokens import ERC20Token
from .pool import UniswapV3Pool, PoolFactory, TickInfo, PositionInfo, Slot0
from .oracle import PriceFeed
from .authority import Authority
from .price_converter import PriceConverter, Direction

__all__ = [
    # Errors
    "HedgeEngineError", "StateError", "InActivePosition", "RangeOrderNotFilled",
    "NoActivePosition", "InvalidRangeOrder", "AuthorizationError", "Unauthorized",
    "UnauthorizedFulfill", "TokenError", "InsufficientBalance", "InsufficientAllowance",
    "OracleError", "MissingPriceFeed", "StaleOracle", "PoolError", "PoolNotFound",
    "InsufficientLiquidity",

    # Chain
    "Ledger", "address_for", "transactional", "ERC20Token",
    "UniswapV3Pool", "PoolFactory", "TickInfo", "PositionInfo", "Slot0",
    "PriceFeed", "Authority",

    # Pricing
    "PriceConverter", "Direction"
]
