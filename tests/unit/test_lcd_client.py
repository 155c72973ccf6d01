"""Unit tests for CosmosLCDClient.

These tests verify that the client makes correct LCD calls with proper
pagination parameters for each endpoint without actually making HTTP requests.
"""
import pytest
import requests
from unittest.mock import Mock, patch
from decimal import Decimal

from staking_tracker.clients.lcd import CosmosLCDClient
from staking_tracker.exceptions import ChainQueryError
from staking_tracker.models import Coin
from staking_tracker.selection import select_eligible_validators
from tests.fixtures.mock_config import mock_lcd_settings, TEST_LCD_URLS, TEST_PAGE_LIMIT, TEST_TIMEOUT_SECONDS
from tests.fixtures.mock_data import COSMOS_CHAIN, TERRA_CHAIN, TEST_TERRA_ADDRESS, lcd_validator


@pytest.fixture
def client(mock_lcd_settings):
    """Create a CosmosLCDClient from the test LCD settings."""
    return CosmosLCDClient()


@pytest.fixture
def mock_requests_get():
    """Mock requests.get to avoid actual HTTP calls."""
    with patch('staking_tracker.clients.lcd.requests.get') as mock_get:
        yield mock_get


def json_response(payload):
    response = Mock()
    response.json.return_value = payload
    response.raise_for_status.return_value = None
    return response


def error_response(status_code):
    response = Mock()
    response.status_code = status_code
    response.raise_for_status.side_effect = requests.exceptions.HTTPError(f"{status_code} error", response=response)
    return response


def test_client_reads_settings(client):
    assert client.lcd_urls == TEST_LCD_URLS
    assert client.page_limit == TEST_PAGE_LIMIT
    assert client.timeout == TEST_TIMEOUT_SECONDS


def test_get_validators_follows_pagination(client, mock_requests_get):
    mock_requests_get.side_effect = [
        json_response({
            "validators": [lcd_validator("terravaloper1a", "1000"), lcd_validator("terravaloper1b", "2000")],
            "pagination": {"next_key": "KEY1", "total": "0"},
        }),
        json_response({
            # Overlapping page repeats the last validator
            "validators": [lcd_validator("terravaloper1b", "2000"), lcd_validator("terravaloper1c", "3000")],
            "pagination": {"next_key": None, "total": "0"},
        }),
    ]

    validators = client.get_validators(TERRA_CHAIN)

    assert [v.operator_address for v in validators] == ["terravaloper1a", "terravaloper1b", "terravaloper1c"]
    assert mock_requests_get.call_count == 2

    first, second = mock_requests_get.call_args_list
    assert first.args[0] == "https://lcd.terra.test/cosmos/staking/v1beta1/validators"
    assert first.kwargs["params"] == {"pagination.limit": str(TEST_PAGE_LIMIT)}
    assert first.kwargs["timeout"] == TEST_TIMEOUT_SECONDS
    assert second.kwargs["params"] == {"pagination.limit": str(TEST_PAGE_LIMIT), "pagination.key": "KEY1"}


def test_malformed_commission_does_not_fail_the_validator_set(client, mock_requests_get):
    mock_requests_get.return_value = json_response({
        "validators": [
            lcd_validator("terravaloper1a", "1000"),
            lcd_validator("terravaloper1b", "1000", rate="garbage"),
            lcd_validator("terravaloper1c", "1000"),
        ],
        "pagination": {"next_key": None},
    })

    validators = client.get_validators(TERRA_CHAIN)

    assert [v.operator_address for v in validators] == ["terravaloper1a", "terravaloper1b", "terravaloper1c"]
    eligible = select_eligible_validators(validators, "0.05", "1")
    assert set(eligible) == {"terravaloper1a", "terravaloper1c"}


def test_get_validators_with_status_filter(client, mock_requests_get):
    mock_requests_get.return_value = json_response({"validators": [], "pagination": {}})

    assert client.get_validators(TERRA_CHAIN, status="BOND_STATUS_BONDED") == []

    params = mock_requests_get.call_args.kwargs["params"]
    assert params["status"] == "BOND_STATUS_BONDED"


def test_base_url_trailing_slash_is_dropped(client, mock_requests_get):
    mock_requests_get.return_value = json_response({"params": {"bond_denom": "uatom"}})

    assert client.get_bond_denom(COSMOS_CHAIN) == "uatom"
    assert mock_requests_get.call_args.args[0] == "https://lcd.cosmos.test/cosmos/staking/v1beta1/params"


def test_get_delegations(client, mock_requests_get):
    mock_requests_get.return_value = json_response({
        "delegation_responses": [{
            "delegation": {
                "delegator_address": TEST_TERRA_ADDRESS,
                "validator_address": "terravaloper1a",
                "shares": "100.0",
            },
            "balance": {"denom": "uluna", "amount": "100"},
        }],
        "pagination": {"next_key": None},
    })

    [delegation] = client.get_delegations(TERRA_CHAIN, TEST_TERRA_ADDRESS)

    assert delegation.balance == Coin("uluna", Decimal(100))
    assert mock_requests_get.call_args.args[0].endswith(f"/cosmos/staking/v1beta1/delegations/{TEST_TERRA_ADDRESS}")


def test_get_unbondings(client, mock_requests_get):
    mock_requests_get.return_value = json_response({
        "unbonding_responses": [{
            "delegator_address": TEST_TERRA_ADDRESS,
            "validator_address": "terravaloper1a",
            "entries": [{"initial_balance": "7", "balance": "7", "completion_time": "2026-11-01T00:00:00Z"}],
        }],
        "pagination": {"next_key": None},
    })

    [unbonding] = client.get_unbondings(TERRA_CHAIN, TEST_TERRA_ADDRESS)

    assert unbonding.entries[0].initial_balance == Decimal(7)
    assert "/delegators/" in mock_requests_get.call_args.args[0]


def test_get_rewards(client, mock_requests_get):
    mock_requests_get.return_value = json_response({
        "rewards": [],
        "total": [{"denom": "uluna", "amount": "12.75"}],
    })

    rewards = client.get_rewards(TERRA_CHAIN, TEST_TERRA_ADDRESS)

    assert rewards.chain_id == TERRA_CHAIN
    assert rewards.total == [Coin("uluna", Decimal(12))]


def test_get_balances(client, mock_requests_get):
    mock_requests_get.return_value = json_response({
        "balances": [{"denom": "uluna", "amount": "3000000"}],
        "pagination": {"next_key": None},
    })

    assert client.get_balances(TERRA_CHAIN, TEST_TERRA_ADDRESS) == [Coin("uluna", Decimal(3_000_000))]


def test_unknown_chain_raises(client, mock_requests_get):
    with pytest.raises(ChainQueryError) as exc_info:
        client.get_validators("unknown-1")

    assert exc_info.value.chain_id == "unknown-1"
    mock_requests_get.assert_not_called()


def test_http_error_raises_chain_query_error(client, mock_requests_get):
    mock_requests_get.return_value = error_response(500)

    with pytest.raises(ChainQueryError, match=TERRA_CHAIN):
        client.get_delegations(TERRA_CHAIN, TEST_TERRA_ADDRESS)

    # Only rate limiting is retried
    assert mock_requests_get.call_count == 1


def test_connection_error_raises_chain_query_error(client, mock_requests_get):
    mock_requests_get.side_effect = requests.exceptions.ConnectionError("refused")

    with pytest.raises(ChainQueryError):
        client.get_balances(TERRA_CHAIN, TEST_TERRA_ADDRESS)


def test_missing_items_key_raises(client, mock_requests_get):
    mock_requests_get.return_value = json_response({"unexpected": []})

    with pytest.raises(ChainQueryError, match="delegation_responses"):
        client.get_delegations(TERRA_CHAIN, TEST_TERRA_ADDRESS)


def test_missing_bond_denom_raises(client, mock_requests_get):
    mock_requests_get.return_value = json_response({"params": {}})

    with pytest.raises(ChainQueryError, match="bond_denom"):
        client.get_bond_denom(TERRA_CHAIN)
