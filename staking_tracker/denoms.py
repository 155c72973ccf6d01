"""
Denomination resolution.

Maps raw on-chain denominations (``uluna``, ``ibc/27394F...``) to the canonical
token they represent so balances can be summed across chains.
"""

import json
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Optional

from staking_tracker.models import CanonicalToken


class DenomResolver(ABC):
    """Interface for denomination lookups. ``resolve`` never fails."""

    @abstractmethod
    def resolve(self, denom: str) -> CanonicalToken:
        """
        Resolve a raw denomination.

        Args:
            denom: Raw denomination string

        Returns:
            CanonicalToken: The known token, or an identity token
                (symbol = denom, decimals = 0) for unknown denominations
        """
        pass

    def __call__(self, denom: str) -> CanonicalToken:
        return self.resolve(denom)


def identity_token(denom: str) -> CanonicalToken:
    return CanonicalToken(token=denom, symbol=denom, decimals=0, icon=None)


class TokenRegistry(DenomResolver):
    """
    Static registry of known denominations.

    Registry entries look like::

        {"uatom": {"token": "uatom", "symbol": "ATOM", "decimals": 6, "coingecko_id": "cosmos"},
         "ibc/27394F...": {"token": "uatom", "symbol": "ATOM", "decimals": 6}}

    Several denominations may share one ``token`` key (an asset bridged to
    several chains); they then aggregate together. Their decimals may differ.

    Token keys are not price feed ids. ``coingecko_id`` tells the price
    client which CoinGecko coin a token key is quoted as; see
    ``coingecko_ids``.
    """

    def __init__(self, entries: Optional[Dict[str, Dict[str, Any]]] = None):
        self._tokens: Dict[str, CanonicalToken] = {}
        self._coingecko_ids: Dict[str, str] = {}
        for denom, entry in (entries or {}).items():
            self.register(denom, entry)

    @classmethod
    def from_file(cls, path: str) -> "TokenRegistry":
        with Path(path).open("r", encoding="utf-8") as handle:
            return cls(json.load(handle))

    def register(self, denom: str, entry: Dict[str, Any]):
        token = CanonicalToken(
            token=entry.get("token", denom),
            symbol=entry.get("symbol", denom),
            decimals=int(entry.get("decimals", 0)),
            icon=entry.get("icon"),
        )
        self._tokens[denom] = token
        if entry.get("coingecko_id"):
            self._coingecko_ids[token.token] = entry["coingecko_id"]

    def coingecko_ids(self) -> Dict[str, str]:
        """Canonical token key -> CoinGecko coin id, for entries that name one."""
        return dict(self._coingecko_ids)

    def __contains__(self, denom: str) -> bool:
        return denom in self._tokens

    def __len__(self) -> int:
        return len(self._tokens)

    def resolve(self, denom: str) -> CanonicalToken:
        return self._tokens.get(denom) or identity_token(denom)


def load_registry(path: Optional[str]) -> TokenRegistry:
    """Registry from a JSON file, or an empty one when no path is configured."""
    return TokenRegistry.from_file(path) if path else TokenRegistry()
