"""
screener/prices.py  —  Current price lookup

There is no live feed. Prices come from the built-in mock map in config,
overridden by any manual price the user has saved. Unknown symbols price
at zero rather than raising, so the ledger can always mark a position.
"""

import logging
from decimal import Decimal
from typing import Dict, Iterable, Mapping, Optional

from screener import config
from screener.models import ZERO, to_decimal

logger = logging.getLogger(__name__)


class PriceBook:
    def __init__(self, db=None, defaults: Optional[Mapping[str, Decimal]] = None):
        self._db       = db
        self._defaults = {s.upper(): to_decimal(p) for s, p in
                          (config.DEFAULT_PRICES if defaults is None else defaults).items()}
        self._manual: Dict[str, Decimal] = {}
        if self._db is not None:
            self._manual.update(self._db.get_prices())

    def __call__(self, symbol: str) -> Decimal:
        return self.get_price(symbol)

    def get_price(self, symbol: str) -> Decimal:
        symbol = symbol.upper()
        if symbol in self._manual:
            return self._manual[symbol]
        return self._defaults.get(symbol, ZERO)

    def get_prices(self, symbols: Iterable[str]) -> Dict[str, Decimal]:
        return {s.upper(): self.get_price(s) for s in symbols}

    def known_symbols(self):
        return sorted(set(self._defaults) | set(self._manual))

    def is_manual(self, symbol: str) -> bool:
        return symbol.upper() in self._manual

    def set_price(self, symbol: str, price) -> None:
        """Save a manual price to memory and, if attached, the database."""
        symbol = symbol.upper()
        price  = to_decimal(price)
        self._manual[symbol] = price
        if self._db is not None:
            self._db.set_price(symbol, price)
        logger.info("Manual price for %s set to %s", symbol, price)

    def clear_price(self, symbol: str) -> bool:
        """Drop a manual override; the default (or zero) applies again."""
        symbol = symbol.upper()
        if symbol not in self._manual:
            return False
        del self._manual[symbol]
        if self._db is not None:
            self._db.delete_price(symbol)
        return True
