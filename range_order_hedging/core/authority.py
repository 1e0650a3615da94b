#!/usr/bin/env python3
"""
Role Authority

Governor, guardian and manager roles consulted by the engine's access checks.
The governor holds every role.
"""

import logging

from .errors import Unauthorized
from .ledger import Ledger, transactional

logger = logging.getLogger(__name__)


class Authority:
    """Single-holder role registry"""

    def __init__(self, ledger: Ledger, governor: str, guardian: str, manager: str):
        self.ledger = ledger
        self.governor = governor
        self.guardian = guardian
        self.manager = manager
        ledger.track(self)

    def is_governor(self, account: str) -> bool:
        return account == self.governor

    def is_guardian(self, account: str) -> bool:
        return account == self.guardian or self.is_governor(account)

    def is_manager(self, account: str) -> bool:
        return account == self.manager or self.is_governor(account)

    @transactional
    def set_guardian(self, guardian: str, sender: str) -> None:
        if not self.is_governor(sender):
            raise Unauthorized(f"{sender} is not the governor")
        self.guardian = guardian
        logger.info("Guardian set to %s", guardian)

    @transactional
    def set_manager(self, manager: str, sender: str) -> None:
        if not self.is_governor(sender):
            raise Unauthorized(f"{sender} is not the governor")
        self.manager = manager
        logger.info("Manager set to %s", manager)
