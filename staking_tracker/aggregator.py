"""
Multi-chain aggregation of delegations, unbondings, rewards and balances.

Everything here is a pure function of its inputs plus the injected
``resolve_token`` and ``price_of`` lookups. Chains whose fetch failed or is
still pending are skipped; they never stop the other chains from counting.
"""

from collections import defaultdict
from dataclasses import replace
from decimal import Decimal
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from staking_tracker.models import (
    AggregationResult, AssetBalance, CanonicalToken, ChainQueryResult, ChainRewardSet,
    Coin, Delegation, FlatUnbondingEntry, RewardsSummary, UnbondingDelegation, UnbondingEntry
)
from staking_tracker.numeric import ZERO, Numeric, has, rescale, safe_decimal, to_amount, to_display

TokenResolver = Callable[[str], CanonicalToken]
PriceLookup = Callable[[str], Numeric]

# Assets worth less than this (in the display currency) are hidden by the low balance filter
LOW_BALANCE_VALUE = Decimal(1)


def currency_value(amount: Numeric, token: CanonicalToken, price: Numeric) -> Decimal:
    """Value of a base-unit amount: amount / 10^decimals * price."""
    return to_display(amount, token.decimals) * safe_decimal(price)


def aggregate(
    results: Mapping[str, Optional[ChainQueryResult]],
    resolve_token: TokenResolver,
    price_of: PriceLookup,
) -> AggregationResult:
    """
    Aggregate per-chain coin lists into currency-normalized totals.

    Args:
        results: Chain ID -> query result; failed, pending or missing results are skipped
        resolve_token: Raw denomination -> canonical token (total)
        price_of: Canonical token key -> price in the display currency (0 when unknown)

    Returns:
        AggregationResult: Totals per token, per chain and overall

    Raises:
        InputError: If a successful result carries a malformed or negative amount
    """
    result = AggregationResult()

    for chain_id, chain_result in results.items():
        if not isinstance(chain_result, ChainQueryResult) or not chain_result.ok:
            continue

        chain_amounts = result.chain_amounts.setdefault(chain_id, {})
        chain_values = result.chain_values.setdefault(chain_id, {})

        for coin in chain_result.coins:
            amount = to_amount(coin.amount, f"{chain_id} {coin.denom} amount")
            token = resolve_token(coin.denom)
            key = token.token
            value = currency_value(amount, token, price_of(key))

            # Denominations of one token may differ in decimals
            held = rescale(amount, token.decimals, result.adopt_token(token).decimals)
            result.token_amounts[key] = result.token_amounts.get(key, ZERO) + held
            result.token_values[key] = result.token_values.get(key, ZERO) + value
            chain_amounts[key] = chain_amounts.get(key, ZERO) + held
            chain_values[key] = chain_values.get(key, ZERO) + value
            result.currency_total += value

    return result


# -------------------------------------------------------------------------
# Delegations
# -------------------------------------------------------------------------

def active_delegations(delegations: Iterable[Delegation]) -> List[Delegation]:
    """Delegations with a positive balance."""
    return [d for d in delegations if has(d.balance.amount)]


def delegation_coins(delegations: Iterable[Delegation]) -> List[Coin]:
    return [d.balance for d in active_delegations(delegations)]


def calc_delegations_total(delegations: Iterable[Delegation]) -> Decimal:
    return sum((safe_decimal(d.balance.amount) for d in delegations), ZERO)


def delegations_by_validator(delegations: Iterable[Delegation], monikers: Mapping[str, str] = None) -> List[Tuple[str, Decimal]]:
    """
    Delegated amount per validator, largest first.

    Validators are labelled with their moniker when ``monikers`` knows the
    operator address, otherwise with the address itself.
    """
    monikers = monikers or {}
    totals: Dict[str, Decimal] = defaultdict(lambda: ZERO)
    for delegation in active_delegations(delegations):
        label = monikers.get(delegation.validator_address) or delegation.validator_address
        totals[label] += safe_decimal(delegation.balance.amount)
    return sorted(totals.items(), key=lambda item: (-item[1], item[0]))


# -------------------------------------------------------------------------
# Unbondings
# -------------------------------------------------------------------------

def sum_entries(entries: Iterable[UnbondingEntry]) -> Decimal:
    return sum((safe_decimal(e.initial_balance) for e in entries), ZERO)


def calc_unbondings_total(unbondings: Iterable[UnbondingDelegation]) -> Decimal:
    return sum((sum_entries(u.entries) for u in unbondings), ZERO)


def flatten_unbondings(unbondings: Iterable[UnbondingDelegation]) -> List[FlatUnbondingEntry]:
    """All entries with their validator, soonest completion first."""
    flat = [
        FlatUnbondingEntry(
            validator_address=u.validator_address,
            initial_balance=entry.initial_balance,
            balance=entry.balance,
            completion_time=entry.completion_time,
        )
        for u in unbondings
        for entry in u.entries
    ]
    return sorted(flat, key=lambda e: (e.completion_time, e.validator_address))


def unbonding_coins(unbondings: Iterable[UnbondingDelegation], bond_denom: str) -> List[Coin]:
    """Unbonding entries as coins of the chain's bond denomination."""
    total = calc_unbondings_total(unbondings)
    return [Coin(denom=bond_denom, amount=total)] if total > 0 else []


# -------------------------------------------------------------------------
# Rewards
# -------------------------------------------------------------------------

def chain_rewards_summary(reward_set: ChainRewardSet, resolve_token: TokenResolver, price_of: PriceLookup) -> RewardsSummary:
    """
    Value the rewards of one chain.

    Rewards may be paid in several denominations. The currency value always
    covers all of them; a combined display amount is only given when they
    all resolve to one token, since amounts of different tokens do not add up.
    """
    chain_id = reward_set.chain_id
    result = aggregate({chain_id: ChainQueryResult.success(chain_id, reward_set.total)}, resolve_token, price_of)
    tokens = result.by_token
    single_denom = len(tokens) == 1

    amount = None
    if single_denom:
        token = result.tokens[tokens[0].token]
        amount = to_display(tokens[0].amount, token.decimals)

    return RewardsSummary(
        chain_id=chain_id,
        value=result.currency_total,
        tokens=tokens,
        single_denom=single_denom,
        amount=amount,
    )


def rewards_results(reward_sets: Mapping[str, Optional[ChainRewardSet]]) -> Dict[str, ChainQueryResult]:
    """Turn per-chain reward sets (None for failed chains) into aggregation input."""
    return {
        chain_id: (
            ChainQueryResult.success(chain_id, reward_set.total)
            if reward_set is not None
            else ChainQueryResult.failure(chain_id, "rewards unavailable")
        )
        for chain_id, reward_set in reward_sets.items()
    }


# -------------------------------------------------------------------------
# Wallet balances
# -------------------------------------------------------------------------

def is_listed(token: CanonicalToken) -> bool:
    # Unlisted tokens have a truncated placeholder symbol such as "ibc/2739..."
    return not token.symbol.endswith("...")


def aggregate_balances(
    balances: Mapping[str, Iterable[Coin]],
    resolve_token: TokenResolver,
    price_of: PriceLookup,
    hide_low_balance: bool = False,
    hide_unlisted: bool = False,
    always_visible: Iterable[str] = (),
) -> List[AssetBalance]:
    """
    Merge wallet balances across chains into one asset list.

    Args:
        balances: Chain ID -> coins held on that chain
        resolve_token: Raw denomination -> canonical token
        price_of: Canonical token key -> price
        hide_low_balance: Drop assets worth less than 1 unit of the display currency
        hide_unlisted: Drop tokens without a registered symbol
        always_visible: Denominations or token keys exempt from the low balance filter

    Returns:
        Assets ordered by value, largest first
    """
    merged: Dict[str, dict] = {}
    for chain_id, coins in balances.items():
        for coin in coins:
            token = resolve_token(coin.denom)
            entry = merged.get(token.token)
            if entry is None:
                entry = merged[token.token] = {
                    "token": token,
                    "denom": coin.denom,
                    "amount": ZERO,
                    "chains": [],
                }
            amount = to_amount(coin.amount, f"{chain_id} {coin.denom} amount")
            held = entry["token"]
            if token.decimals > held.decimals:
                # Keep the merged amount in the finest decimals seen for this token
                entry["amount"] = rescale(entry["amount"], held.decimals, token.decimals)
                entry["token"] = held = replace(held, decimals=token.decimals)
            entry["amount"] += rescale(amount, token.decimals, held.decimals)
            if chain_id not in entry["chains"]:
                entry["chains"].append(chain_id)

    visible = set(always_visible)
    assets = []
    for key, entry in merged.items():
        token = entry["token"]
        listed = is_listed(token)
        if hide_unlisted and not listed:
            continue

        price = safe_decimal(price_of(key)) if listed else ZERO
        value = currency_value(entry["amount"], token, price)
        if hide_low_balance and value < LOW_BALANCE_VALUE and not ({entry["denom"], key} & visible):
            continue

        assets.append(AssetBalance(
            token=key,
            denom=entry["denom"],
            symbol=token.symbol,
            icon=token.icon,
            amount=entry["amount"],
            price=price,
            value=value,
            chains=tuple(entry["chains"]),
            decimals=token.decimals,
        ))

    return sorted(assets, key=lambda a: (-a.value, a.token))
