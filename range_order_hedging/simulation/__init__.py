"""Simulated hedging world and scenario runner"""

from .environment import EnvironmentConfig, TokenConfig, HedgingEnvironment, build_environment
from .scenario import run_hedge_scenario, snapshot, fill_price

__all__ = [
    "EnvironmentConfig", "TokenConfig", "HedgingEnvironment", "build_environment",
    "run_hedge_scenario", "snapshot", "fill_price"
]
