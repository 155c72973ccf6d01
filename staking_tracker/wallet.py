"""
Read-only interchain wallet.
Holds one bech32 address per chain; keys and signing live elsewhere.
"""

import re
from typing import Dict, Iterator, Optional, Tuple

# bech32 data characters exclude "1", "b", "i" and "o"
BECH32_PATTERN = re.compile(r"^([a-z]+)1([02-9ac-hj-np-z]{38,})$")


class InterchainWallet:
    """
    Address-only wallet spanning several chains.
    Used to look up which address to query on each chain; cannot sign transactions.
    """

    def __init__(self, addresses: Dict[str, str]):
        """
        Initialize with addresses keyed by chain ID

        Args:
            addresses: Chain ID -> bech32 address
        """
        self._addresses = dict(addresses)
        self._validate_addresses()

    def _validate_addresses(self):
        """Validate the address formats"""
        for chain_id, address in self._addresses.items():
            if not address or not isinstance(address, str):
                raise ValueError(f"Address for {chain_id} must be a non-empty string")

            if not BECH32_PATTERN.match(address):
                print(f"⚠️  Warning: Address for {chain_id} doesn't look like a bech32 address: {address}")

    @staticmethod
    def prefix(address: str) -> Optional[str]:
        """Human readable part of a bech32 address (e.g. 'terra'), if it has one."""
        match = BECH32_PATTERN.match(address or "")
        return match.group(1) if match else None

    @property
    def chains(self) -> Tuple[str, ...]:
        return tuple(self._addresses)

    def address_for(self, chain_id: str) -> Optional[str]:
        return self._addresses.get(chain_id)

    def items(self) -> Iterator[Tuple[str, str]]:
        return iter(self._addresses.items())

    def can_sign_transactions(self) -> bool:
        """Cannot sign - read only"""
        return False

    def __len__(self) -> int:
        return len(self._addresses)

    def __str__(self):
        return f"InterchainWallet({', '.join(self._addresses)})"
