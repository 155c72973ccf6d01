from abc import ABC, abstractmethod
from decimal import Decimal
from typing import Callable, Dict, Iterable, Mapping, Optional

from staking_tracker.exceptions import PriceNotAvailableError
from staking_tracker.numeric import ZERO, safe_decimal


class PriceClient(ABC):
    """Abstract interface for token price clients."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Return the name of the client for logging purposes."""
        pass

    @abstractmethod
    def get_prices(self, tokens: Iterable[str], currency: str = "usd") -> Dict[str, Decimal]:
        """
        Get current prices for several canonical tokens.

        Args:
            tokens: Canonical token keys
            currency: Quote currency (e.g. 'usd')

        Returns:
            dict: Token key -> price; tokens the feed does not know are omitted

        Raises:
            PriceNotAvailableError: If the price feed cannot be reached
        """
        pass

    def get_price(self, token: str, currency: str = "usd") -> Decimal:
        """
        Get the current price of one token.

        Raises:
            PriceNotAvailableError: If no price is known for the token
        """
        prices = self.get_prices([token], currency)
        if token not in prices:
            raise PriceNotAvailableError(f"No {currency} price available for {token}")
        return prices[token]


def make_price_lookup(prices: Optional[Mapping[str, Decimal]]) -> Callable[[str], Decimal]:
    """Total price function over a fetched price map: unknown tokens are worth 0."""
    prices = dict(prices or {})

    def price_of(token: str) -> Decimal:
        return safe_decimal(prices.get(token, ZERO))

    return price_of
