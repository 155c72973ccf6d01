"""
Staking data clients for querying chains.
All clients implement the StakingClientInterface for easy swapping.
"""

from abc import ABC, abstractmethod
from typing import List

from staking_tracker.models import ChainRewardSet, Coin, Delegation, UnbondingDelegation, Validator


class StakingClientInterface(ABC):
    """Interface for per-chain staking queries (validators, delegations, rewards)."""

    @abstractmethod
    def get_validators(self, chain_id: str) -> List[Validator]:
        """
        Fetch the validator set of a chain.

        Args:
            chain_id: Chain to query

        Returns:
            list: Validators, each operator address at most once

        Raises:
            ChainQueryError: If the chain cannot be queried
        """
        pass

    @abstractmethod
    def get_delegations(self, chain_id: str, address: str) -> List[Delegation]:
        """
        Fetch the delegations of an address.

        Raises:
            ChainQueryError: If the chain cannot be queried
        """
        pass

    @abstractmethod
    def get_unbondings(self, chain_id: str, address: str) -> List[UnbondingDelegation]:
        """
        Fetch the unbonding delegations of an address.

        Raises:
            ChainQueryError: If the chain cannot be queried
        """
        pass

    @abstractmethod
    def get_rewards(self, chain_id: str, address: str) -> ChainRewardSet:
        """
        Fetch the accrued staking rewards of an address.

        Raises:
            ChainQueryError: If the chain cannot be queried
        """
        pass

    @abstractmethod
    def get_bond_denom(self, chain_id: str) -> str:
        """Staking denomination of a chain (the denomination of unbonding entries)."""
        pass

    @abstractmethod
    def get_balances(self, chain_id: str, address: str) -> List[Coin]:
        """Spendable bank balances of an address."""
        pass
