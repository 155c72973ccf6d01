"""
Shared utility functions for unit tests.

Contains the bookkeeping several test modules use to check plans and
validator selections against their inputs.
"""
from decimal import Decimal
from typing import Dict, Iterable, List

from staking_tracker.models import PlanEntry, Validator


def voting_power(validators: List[Validator]) -> Dict[str, Decimal]:
    """Share of total tokens per operator address.

    Args:
        validators: Validator set with integer token strings

    Returns:
        Operator address -> share of the summed tokens
    """
    total = sum(Decimal(v.tokens) for v in validators)
    return {v.operator_address: Decimal(v.tokens) / total for v in validators}


def combined_share(validators: List[Validator], addresses: Iterable[str]) -> Decimal:
    shares = voting_power(validators)
    return sum((shares[a] for a in addresses), Decimal(0))


def amounts_by_validator(entries: Iterable[PlanEntry]) -> Dict[str, Decimal]:
    """Collapse plan entries into validator -> amount, failing on repeats."""
    result = {}
    for entry in entries:
        assert entry.validator_address not in result, f"{entry.validator_address} planned twice"
        result[entry.validator_address] = entry.amount
    return result
