#!/usr/bin/env python3
"""
Liquidity Pool Custody

The options vault side of the hedge: holds collateral, lets its hedging
reactor pull collateral through an allowance, and issues delta requests.
"""

import logging
from typing import List

from ..core.ledger import Ledger, transactional
from ..core.tokens import ERC20Token, MAX_UINT256
from ..engine.hedge_controller import HedgeController
from .base_agent import AgentAction, BaseAgent

logger = logging.getLogger(__name__)


class LiquidityPoolCustody(BaseAgent):
    """Collateral vault that hedges through range order reactors"""

    def __init__(self, agent_id: str, ledger: Ledger, collateral: ERC20Token):
        super().__init__(agent_id, "liquidity_pool", ledger)
        self.collateral = collateral
        self.hedging_reactors: List[HedgeController] = []

    @transactional
    def set_hedging_reactor(self, reactor: HedgeController) -> None:
        """Register a reactor and let it draw collateral for buy orders"""
        if reactor.parent_liquidity_pool != self.address:
            raise ValueError("Reactor is bound to another liquidity pool")
        self.collateral.approve(self.address, reactor.address, MAX_UINT256)
        self.hedging_reactors.append(reactor)
        logger.info("Registered hedging reactor %s", reactor.address)

    def hedge_delta(self, delta: float, reactor_index: int = 0) -> float:
        result = self.hedging_reactors[reactor_index].hedge_delta(delta, self.address)
        self.record_action(AgentAction.HEDGE, requested=delta, placed=result)
        return result

    def get_delta(self) -> float:
        """Total hedged-asset exposure held across reactors"""
        return sum(reactor.get_delta() for reactor in self.hedging_reactors)

    def withdraw_from_reactor(self, amount: int, reactor_index: int = 0) -> int:
        withdrawn = self.hedging_reactors[reactor_index].withdraw(amount, self.address)
        self.record_action(AgentAction.WITHDRAW, requested=amount, withdrawn=withdrawn)
        return withdrawn
