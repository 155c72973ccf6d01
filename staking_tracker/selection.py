"""
Validator ranking and quick-stake eligibility.

Quick stake favours small validators: validators are ranked by voting power
share, smallest first, and taken until their combined share reaches the
inclusion threshold. Validators above the commission ceiling are never
eligible.
"""

import random
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from staking_tracker.exceptions import InputError, ValidatorNotFoundError
from staking_tracker.models import Delegation, StakeAction, Validator
from staking_tracker.numeric import ZERO, Numeric, safe_decimal, to_decimal

MAX_COMMISSION = Decimal("0.05")
VOTE_POWER_INCLUDE = Decimal("0.65")


def _tokens(validator: Validator) -> Optional[Decimal]:
    """Bonded tokens, or None when the chain reported something unusable."""
    try:
        tokens = to_decimal(validator.tokens, "tokens")
    except InputError:
        return None
    return tokens if tokens >= 0 else None


def total_staked_tokens(validators: Iterable[Validator]) -> Decimal:
    """Sum of bonded tokens; malformed or missing token counts are zero."""
    return sum((safe_decimal(v.tokens) for v in validators), ZERO)


def voting_power_shares(validators: List[Validator]) -> Dict[str, Decimal]:
    """
    Each validator's share of the total bonded tokens.

    Validators with malformed token counts get no share; the result is empty
    when nothing is bonded.
    """
    total = total_staked_tokens(validators)
    if total == 0:
        return {}
    shares = {}
    for validator in validators:
        tokens = _tokens(validator)
        if tokens is not None:
            shares[validator.operator_address] = tokens / total
    return shares


def _commission(validator: Validator) -> Optional[Decimal]:
    try:
        return to_decimal(validator.commission_rate, "commission rate")
    except InputError:
        return None


def rank_by_voting_power(validators: List[Validator], max_commission: Numeric = MAX_COMMISSION) -> List[Tuple[str, Decimal]]:
    """
    Validators within the commission ceiling as (address, share), smallest share first.

    Shares are relative to every validator passed in, not just the ones that
    survive the commission filter.
    """
    ceiling = to_decimal(max_commission, "commission ceiling")
    shares = voting_power_shares(validators)
    if not shares:
        return []

    ranked = []
    for validator in validators:
        commission = _commission(validator)
        if commission is None or commission > ceiling or validator.operator_address not in shares:
            continue
        ranked.append((validator.operator_address, shares[validator.operator_address]))
    return sorted(ranked, key=lambda item: (item[1], item[0]))


def select_eligible_validators(
    validators: List[Validator],
    max_commission: Numeric = MAX_COMMISSION,
    voting_power_include: Numeric = VOTE_POWER_INCLUDE,
    rng: Optional[random.Random] = None,
) -> List[str]:
    """
    Select the quick-stake eligible set.

    A validator is included while the running voting power share, including
    its own, stays below ``voting_power_include``. With shares
    [0.1, 0.2, 0.3, 0.4] and a 0.65 threshold the first three are selected.

    Args:
        validators: Validator set of one chain
        max_commission: Commission ceiling (inclusive)
        voting_power_include: Cumulative share threshold (exclusive)
        rng: Random source for the returned order (defaults to ``random``)

    Returns:
        List of operator addresses in random order
    """
    threshold = to_decimal(voting_power_include, "voting power threshold")

    eligible = []
    cumulative = ZERO
    for address, share in rank_by_voting_power(validators, max_commission):
        cumulative += share
        if cumulative >= threshold:
            break
        eligible.append(address)

    (rng or random).shuffle(eligible)
    return eligible


def unique_validators(validators: Iterable[Validator]) -> List[Validator]:
    """Drop repeated operator addresses (overlapping pages), keeping the first."""
    seen = set()
    result = []
    for validator in validators:
        if validator.operator_address in seen:
            continue
        seen.add(validator.operator_address)
        result.append(validator)
    return result


def find_validator(validators: Iterable[Validator], address: str) -> Validator:
    for validator in validators:
        if validator.operator_address == address:
            return validator
    raise ValidatorNotFoundError(f"{address} is not a validator")


def find_moniker(validators: Iterable[Validator], address: str) -> str:
    return find_validator(validators, address).moniker


def available_stake_actions(destination: str, delegations: List[Delegation]) -> Dict[StakeAction, bool]:
    """
    Actions available towards ``destination``.

    Delegating is always possible; redelegating needs a delegation to some
    other validator; unbonding needs a delegation to the destination itself.
    """
    return {
        StakeAction.DELEGATE: True,
        StakeAction.REDELEGATE: any(d.validator_address != destination for d in delegations),
        StakeAction.UNBOND: any(d.validator_address == destination for d in delegations),
    }
