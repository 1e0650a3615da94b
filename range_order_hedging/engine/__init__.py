"""Range order reactor: configuration, position lifecycle and delta hedging"""

from .config import ReactorConfig
from .position_manager import PositionManager, PositionState, RangeOrder, RangeOrderParams
from .hedge_controller import HedgeController

__all__ = [
    "ReactorConfig",
    "PositionManager", "PositionState", "RangeOrder", "RangeOrderParams",
    "HedgeController"
]
