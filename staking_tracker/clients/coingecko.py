from decimal import Decimal
from typing import Dict, Iterable, Optional

import requests
import backoff

from staking_tracker.clients.price import PriceClient
from staking_tracker.config import CoinGeckoSettings
from staking_tracker.exceptions import PriceNotAvailableError


class CoinGeckoPriceClient(PriceClient):
    """Price client for the CoinGecko simple price endpoint."""

    def __init__(self, coingecko_ids: Optional[Dict[str, str]] = None):
        """
        Args:
            coingecko_ids: Canonical token key -> CoinGecko coin id (e.g. {'uatom': 'cosmos'}),
                usually from the token registry. COINGECKO_IDS entries take precedence.
                Tokens without an id are priced by key.
        """
        self.config = CoinGeckoSettings()
        self.base_url = self.config.base_url.rstrip("/")
        self.coingecko_ids = {**(coingecko_ids or {}), **self.config.coingecko_ids}
        self.headers = {"Accept": "application/json"}
        if self.config.api_key:
            self.headers["x-cg-demo-api-key"] = self.config.api_key

    @property
    def name(self):
        return "CoinGecko API"

    @backoff.on_exception(
        backoff.expo,
        requests.exceptions.HTTPError,
        max_tries=3,
        giveup=lambda e: e.response is None or e.response.status_code != 429,
        factor=6
    )
    def _get(self, url: str, params: dict) -> dict:
        response = requests.get(url, headers=self.headers, params=params, timeout=20)
        response.raise_for_status()
        return response.json()

    def get_prices(self, tokens: Iterable[str], currency: str = "usd") -> Dict[str, Decimal]:
        """
        Get current prices via /simple/price.

        Args:
            tokens: Canonical token keys
            currency: Quote currency

        Returns:
            dict: Token key -> price for the tokens CoinGecko returned

        Raises:
            PriceNotAvailableError: If the request fails or the payload is malformed
        """
        ids_by_token = {token: self.coingecko_ids.get(token, token) for token in tokens}
        if not ids_by_token:
            return {}

        params = {
            "ids": ",".join(sorted(set(ids_by_token.values()))),
            "vs_currencies": currency,
        }
        try:
            data = self._get(f"{self.base_url}/simple/price", params)
        except requests.RequestException as e:
            raise PriceNotAvailableError(f"CoinGecko API error: {e}")
        except ValueError as e:
            raise PriceNotAvailableError(f"Unexpected response format: {e}")

        prices = {}
        for token, coin_id in ids_by_token.items():
            quote = data.get(coin_id, {}).get(currency) if isinstance(data, dict) else None
            if quote is None:
                continue
            try:
                prices[token] = Decimal(str(quote))
            except ArithmeticError:
                print(f"  Warning: ignoring malformed {currency} price for {token}: {quote!r}")
        return prices
