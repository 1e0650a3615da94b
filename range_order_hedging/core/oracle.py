#!/usr/bin/env python3
"""
Price Feed

Reference exchange rates between assets, normalized to human units
(quote asset per one whole base asset). Answers older than ``max_age``
seconds on the ledger clock are rejected.
"""

import logging
from typing import Dict, Tuple

from .errors import MissingPriceFeed, StaleOracle
from .ledger import Ledger, transactional

logger = logging.getLogger(__name__)


class PriceFeed:
    """Oracle keyed by (asset, quote) address pairs"""

    def __init__(self, ledger: Ledger, max_age: int = 3600):
        self.ledger = ledger
        self.max_age = max_age
        self.rates: Dict[Tuple[str, str], Tuple[float, int]] = {}
        ledger.track(self)

    @transactional
    def set_rate(self, asset: str, quote: str, price: float) -> None:
        """Publish a new answer stamped with the current block time"""
        if price <= 0:
            raise ValueError("Price must be positive")
        self.rates[(asset, quote)] = (float(price), self.ledger.timestamp)
        logger.debug("Rate %s/%s set to %s", asset, quote, price)

    def get_normalized_rate(self, asset: str, quote: str) -> float:
        """Price of one whole ``asset`` in ``quote`` units"""
        if (asset, quote) in self.rates:
            price, updated_at = self.rates[(asset, quote)]
        elif (quote, asset) in self.rates:
            inverse, updated_at = self.rates[(quote, asset)]
            price = 1.0 / inverse
        else:
            raise MissingPriceFeed(f"No price feed for {asset}/{quote}")

        age = self.ledger.timestamp - updated_at
        if age > self.max_age:
            raise StaleOracle(f"Price for {asset}/{quote} is {age}s old (max {self.max_age}s)")
        return price
