#!/usr/bin/env python3
"""
ERC20 Token Ledger

Balances and allowances held in raw integer units (the token's smallest
denomination), with helpers to convert to and from human amounts.
"""

import logging
from decimal import Decimal
from typing import Dict, Tuple

from .errors import InsufficientAllowance, InsufficientBalance
from .ledger import Ledger, transactional

logger = logging.getLogger(__name__)

MAX_UINT256 = 2 ** 256 - 1


class ERC20Token:
    """Fungible token with ERC20 transfer and allowance semantics"""

    def __init__(self, ledger: Ledger, address: str, symbol: str, decimals: int):
        self.ledger = ledger
        self.address = address
        self.symbol = symbol
        self.decimals = decimals
        self.total_supply = 0
        self.balances: Dict[str, int] = {}
        self.allowances: Dict[Tuple[str, str], int] = {}
        ledger.track(self)

    def __repr__(self) -> str:
        return f"ERC20Token({self.symbol}, {self.address})"

    # Units
    def to_raw(self, amount) -> int:
        """Human amount -> raw units, truncated toward zero"""
        return int(Decimal(str(amount)) * (Decimal(10) ** self.decimals))

    def from_raw(self, amount: int) -> float:
        """Raw units -> human amount"""
        return float(Decimal(amount) / (Decimal(10) ** self.decimals))

    # Views
    def balance_of(self, account: str) -> int:
        return self.balances.get(account, 0)

    def allowance(self, owner: str, spender: str) -> int:
        return self.allowances.get((owner, spender), 0)

    # Mutations
    @transactional
    def mint(self, to: str, amount: int) -> None:
        """Faucet mint used to fund simulation accounts"""
        if amount < 0:
            raise ValueError("Cannot mint a negative amount")
        self.balances[to] = self.balance_of(to) + amount
        self.total_supply += amount
        logger.debug("%s minted %d to %s", self.symbol, amount, to)

    @transactional
    def approve(self, owner: str, spender: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("Cannot approve a negative amount")
        self.allowances[(owner, spender)] = amount
        return True

    @transactional
    def transfer(self, sender: str, recipient: str, amount: int) -> bool:
        if amount < 0:
            raise ValueError("Cannot transfer a negative amount")
        balance = self.balance_of(sender)
        if balance < amount:
            raise InsufficientBalance(
                f"{self.symbol}: {sender} holds {balance}, needs {amount}"
            )
        self.balances[sender] = balance - amount
        self.balances[recipient] = self.balance_of(recipient) + amount
        return True

    @transactional
    def transfer_from(self, spender: str, owner: str, recipient: str, amount: int) -> bool:
        """Move ``amount`` from ``owner`` to ``recipient`` using ``spender``'s allowance"""
        allowed = self.allowance(owner, spender)
        if allowed < amount:
            raise InsufficientAllowance(
                f"{self.symbol}: {spender} may spend {allowed} of {owner}, needs {amount}"
            )
        if allowed != MAX_UINT256:
            self.allowances[(owner, spender)] = allowed - amount
        return self.transfer(owner, recipient, amount)
