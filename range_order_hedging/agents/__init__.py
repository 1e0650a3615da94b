"""Accounts acting on the simulated chain"""

from .base_agent import BaseAgent, AgentAction
from .liquidity_pool import LiquidityPoolCustody
from .trader import MarketTaker

__all__ = [
    "BaseAgent", "AgentAction",
    "LiquidityPoolCustody", "MarketTaker"
]
