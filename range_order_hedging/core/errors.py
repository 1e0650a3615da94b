#!/usr/bin/env python3
"""
Hedging Engine Errors

Every failure the engine can raise is a distinctly named exception with a
stable ``code`` so callers can branch on it without parsing messages.
"""


class HedgeEngineError(Exception):
    """Base class for all engine failures"""
    code = "HEDGE_ENGINE_ERROR"

    def __init__(self, message: str = None):
        super().__init__(message or self.__class__.__doc__)


# State machine violations
class StateError(HedgeEngineError):
    """Operation not allowed in the current position state"""
    code = "STATE_ERROR"


class InActivePosition(StateError):
    """A range order is already active"""
    code = "IN_ACTIVE_POSITION"


class RangeOrderNotFilled(StateError):
    """The active range order has not been fully crossed by the pool price"""
    code = "RANGE_ORDER_NOT_FILLED"


class NoActivePosition(StateError):
    """There is no active range order"""
    code = "NO_ACTIVE_POSITION"


class InvalidRangeOrder(StateError):
    """Range order ticks or size are not valid for the pool"""
    code = "INVALID_RANGE_ORDER"


# Access control
class AuthorizationError(HedgeEngineError):
    """Caller lacks the required role"""
    code = "AUTHORIZATION_ERROR"


class Unauthorized(AuthorizationError):
    """Caller lacks the required role"""
    code = "UNAUTHORIZED"


class UnauthorizedFulfill(AuthorizationError):
    """Fulfillment is restricted to managers"""
    code = "UNAUTHORIZED_FULFILL"


# Token ledger
class TokenError(HedgeEngineError):
    """Token transfer failed"""
    code = "TOKEN_ERROR"


class InsufficientBalance(TokenError):
    """Transfer amount exceeds balance"""
    code = "INSUFFICIENT_BALANCE"


class InsufficientAllowance(TokenError):
    """Transfer amount exceeds allowance"""
    code = "INSUFFICIENT_ALLOWANCE"


# Price feed
class OracleError(HedgeEngineError):
    """Price feed unavailable"""
    code = "ORACLE_ERROR"


class MissingPriceFeed(OracleError):
    """No price feed registered for the asset pair"""
    code = "MISSING_PRICE_FEED"


class StaleOracle(OracleError):
    """Price feed answer is older than the allowed age"""
    code = "STALE_ORACLE"


# Pool
class PoolError(HedgeEngineError):
    """Pool operation failed"""
    code = "POOL_ERROR"


class PoolNotFound(PoolError, ValueError):
    """No pool exists for the token pair and fee tier"""
    code = "POOL_NOT_FOUND"


class InsufficientLiquidity(PoolError):
    """Position does not hold enough liquidity"""
    code = "INSUFFICIENT_LIQUIDITY"
