#!/usr/bin/env python3
"""
Minimal Agent Interface

Base class for accounts that act on the simulated chain.
"""

from enum import Enum
from typing import List, Tuple

from ..core.ledger import Ledger, address_for


class AgentAction(Enum):
    """Agent action types"""
    SWAP = "swap"
    HEDGE = "hedge"
    WITHDRAW = "withdraw"
    PROVIDE_LIQUIDITY = "provide_liquidity"


class BaseAgent:
    """Account with an address and a history of the actions it took"""

    def __init__(self, agent_id: str, agent_type: str, ledger: Ledger):
        self.agent_id = agent_id
        self.agent_type = agent_type
        self.ledger = ledger
        self.address = address_for(agent_id)
        self.action_history: List[Tuple[AgentAction, dict]] = []
        ledger.track(self)

    def record_action(self, action: AgentAction, **params):
        self.action_history.append((action, dict(params, timestamp=self.ledger.timestamp)))
