"""Unit tests for validator ranking and quick-stake eligibility."""
import random
import pytest
from decimal import Decimal

from staking_tracker.exceptions import ValidatorNotFoundError
from staking_tracker.models import StakeAction, Validator
from staking_tracker.selection import (
    available_stake_actions, find_moniker, find_validator, rank_by_voting_power,
    select_eligible_validators, total_staked_tokens, unique_validators, voting_power_shares
)
from tests.fixtures.mock_data import TERRA_VALIDATORS, make_delegation, make_validator, terravaloper
from tests.utils import combined_share


def test_worked_example_selects_three_smallest():
    validators = [
        make_validator("v1", 100, "0.01"),
        make_validator("v2", 200, "0.01"),
        make_validator("v3", 300, "0.01"),
        make_validator("v4", 400, "0.01"),
    ]

    eligible = select_eligible_validators(validators, "0.05", "0.65", rng=random.Random(1))

    assert sorted(eligible) == ["v1", "v2", "v3"]


def test_terra_set_excludes_high_commission_and_the_whale():
    eligible = select_eligible_validators(TERRA_VALIDATORS, "0.05", "0.65", rng=random.Random(3))

    assert sorted(eligible) == sorted(terravaloper(n) for n in (1, 3, 4, 6, 7, 8, 9))


@pytest.mark.parametrize("max_commission", ["0", "0.05", "0.1", "1"])
def test_commission_ceiling_is_never_exceeded(max_commission):
    commissions = ["0", "0.05", "0.1", "0.2", "1"]
    validators = [make_validator(f"v{i}", 1000, c) for i, c in enumerate(commissions)]

    eligible = select_eligible_validators(validators, max_commission, "1.01")

    by_address = {v.operator_address: v for v in validators}
    assert all(by_address[a].commission_rate <= Decimal(max_commission) for a in eligible)
    expected = sum(1 for c in commissions if Decimal(c) <= Decimal(max_commission))
    assert len(eligible) == expected


@pytest.mark.parametrize("threshold", ["0.05", "0.2", "0.5", "0.65", "0.9"])
def test_selected_share_stays_below_threshold(threshold):
    eligible = select_eligible_validators(TERRA_VALIDATORS, "0.05", threshold)

    assert combined_share(TERRA_VALIDATORS, eligible) < Decimal(threshold)


def test_selection_takes_smallest_validators_first():
    eligible = select_eligible_validators(TERRA_VALIDATORS, "0.05", "0.1")

    # Shares 0.01 + 0.03 + 0.04 = 0.08; adding 0.06 would reach 0.14
    assert sorted(eligible) == sorted([terravaloper(1), terravaloper(3), terravaloper(4)])


def test_selection_is_reproducible_with_seeded_rng():
    first = select_eligible_validators(TERRA_VALIDATORS, rng=random.Random(42))
    second = select_eligible_validators(TERRA_VALIDATORS, rng=random.Random(42))

    assert first == second


def test_empty_validator_set_selects_nothing():
    assert select_eligible_validators([]) == []


def test_nothing_bonded_selects_nothing():
    validators = [make_validator("v1", 0, "0.01"), make_validator("v2", 0, "0.01")]

    assert voting_power_shares(validators) == {}
    assert select_eligible_validators(validators) == []


def test_malformed_tokens_are_never_selected():
    validators = [
        make_validator("good-1", 100, "0.01"),
        make_validator("broken", "not-a-number", "0.01"),
        make_validator("good-2", 900, "0.01"),
    ]

    assert total_staked_tokens(validators) == Decimal(1000)
    assert "broken" not in select_eligible_validators(validators, "0.05", "0.5")


def test_malformed_commission_is_never_selected():
    validators = [make_validator("v1", 100, "0.01"), make_validator("v2", 100, "0.01")]
    validators.append(Validator(operator_address="v3", tokens="100", commission_rate="n/a"))

    ranked = rank_by_voting_power(validators)

    assert [address for address, _ in ranked] == ["v1", "v2"]


def test_shares_are_relative_to_the_whole_set():
    validators = [make_validator("cheap", 100, "0.01"), make_validator("greedy", 900, "0.5")]

    ranked = rank_by_voting_power(validators, "0.05")

    assert ranked == [("cheap", Decimal("0.1"))]


def test_rank_breaks_ties_by_address():
    validators = [make_validator("b", 100, "0"), make_validator("a", 100, "0"), make_validator("c", 200, "0")]

    assert [address for address, _ in rank_by_voting_power(validators)] == ["a", "b", "c"]


def test_unique_validators_keeps_first_occurrence():
    first = make_validator("v1", 100, "0.01", "first")
    duplicate = make_validator("v1", 100, "0.01", "second")

    result = unique_validators([first, make_validator("v2", 5), duplicate])

    assert [v.operator_address for v in result] == ["v1", "v2"]
    assert result[0].moniker == "first"


def test_find_validator_and_moniker():
    assert find_validator(TERRA_VALIDATORS, terravaloper(10)).tokens == "55000"
    assert find_moniker(TERRA_VALIDATORS, terravaloper(10)) == "whale"

    with pytest.raises(ValidatorNotFoundError, match="is not a validator"):
        find_validator(TERRA_VALIDATORS, "terravaloper1missing")


def test_available_stake_actions():
    delegations = [make_delegation(terravaloper(1), 100)]

    to_same = available_stake_actions(terravaloper(1), delegations)
    to_other = available_stake_actions(terravaloper(2), delegations)

    assert to_same == {StakeAction.DELEGATE: True, StakeAction.REDELEGATE: False, StakeAction.UNBOND: True}
    assert to_other == {StakeAction.DELEGATE: True, StakeAction.REDELEGATE: True, StakeAction.UNBOND: False}
    assert available_stake_actions(terravaloper(1), [])[StakeAction.REDELEGATE] is False
