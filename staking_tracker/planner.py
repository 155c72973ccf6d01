"""
Quick stake / quick unstake planning.

Plans are abstract (validator, denom, amount) instructions; turning them into
chain messages and signing them happens elsewhere.
"""

import random
from typing import List, Optional, Sequence

from staking_tracker.models import Delegation, PlanEntry, StakePlan, UnstakePlan
from staking_tracker.numeric import Numeric, divide_to_integer, safe_decimal, to_amount, to_base_units

DEFAULT_TIERS = (100, 1000, 10000)


def validator_count_for_amount(amount: Numeric, decimals: int, tiers: Sequence[int] = DEFAULT_TIERS) -> int:
    """
    Number of validators a stake is spread across.

    ``tiers`` are display-unit thresholds; with the defaults an amount below
    100 goes to 1 validator, below 1000 to 2, below 10000 to 3, otherwise 4.
    """
    total = to_amount(amount)
    for index, tier in enumerate(sorted(tiers)):
        if total < to_base_units(tier, decimals):
            return index + 1
    return len(tiers) + 1


def plan_stake(
    amount: Numeric,
    eligible_validators: Sequence[str],
    denom: str,
    decimals: int = 6,
    rng: Optional[random.Random] = None,
    tiers: Sequence[int] = DEFAULT_TIERS,
) -> StakePlan:
    """
    Split a stake across randomly drawn eligible validators.

    Each validator receives ``amount // n``; the last one also takes the
    division remainder so the plan adds up to the requested amount.

    Raises:
        InputError: If the amount is malformed or negative
    """
    total = to_amount(amount)
    pool = list(dict.fromkeys(eligible_validators))
    if total == 0 or not pool:
        return StakePlan(denom=denom, requested=total, entries=[])

    count = min(validator_count_for_amount(total, decimals, tiers), len(pool))
    chosen = (rng or random).sample(pool, count)

    share = divide_to_integer(total, count)
    remainder = total - share * count
    entries = [PlanEntry(address, denom, share) for address in chosen[:-1]]
    entries.append(PlanEntry(chosen[-1], denom, share + remainder))
    return StakePlan(denom=denom, requested=total, entries=[e for e in entries if e.amount > 0])


def shuffle_delegations(delegations: Sequence[Delegation], rng: Optional[random.Random] = None) -> List[Delegation]:
    """Random consumption order for quick unstake; the input is left untouched."""
    shuffled = list(delegations)
    (rng or random).shuffle(shuffled)
    return shuffled


def plan_unstake(amount: Numeric, delegations: Sequence[Delegation], denom: Optional[str] = None) -> UnstakePlan:
    """
    Undelegate ``amount`` by depleting delegations in the order given.

    Each delegation gives up at most its balance. If the delegations cannot
    cover the amount, the uncovered part is returned as ``shortfall`` rather
    than raised.

    Args:
        amount: Amount to unstake, in base units
        delegations: Delegations in consumption order (shuffle them first for quick unstake)
        denom: Only consume delegations of this denomination

    Returns:
        UnstakePlan: entries plus the shortfall (zero when fully covered)

    Raises:
        InputError: If the amount is malformed or negative
    """
    requested = to_amount(amount)
    if denom is None:
        denom = delegations[0].balance.denom if delegations else ""

    entries = []
    remaining = requested
    for delegation in delegations:
        if remaining == 0:
            break
        if delegation.balance.denom != denom:
            continue
        available = safe_decimal(delegation.balance.amount)
        if available == 0:
            continue

        to_undelegate = min(remaining, available)
        entries.append(PlanEntry(delegation.validator_address, denom, to_undelegate))
        remaining -= to_undelegate

    return UnstakePlan(denom=denom, requested=requested, entries=entries, shortfall=remaining)
