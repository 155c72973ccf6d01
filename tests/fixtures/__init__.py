"""Shared test fixtures for staking tracker tests."""
# Mock client fixtures
from .mock_clients import mock_staking_client, mock_price_client, MockStakingClient, MockPriceClient

# Mock config fixtures and constants
from .mock_config import (
    mock_tracker_settings,
    mock_lcd_settings,
    mock_all_settings,
    # Test constants
    TEST_CURRENCY,
    TEST_MAX_WORKERS,
    TEST_MAX_COMMISSION,
    TEST_VOTING_POWER_INCLUDE,
    TEST_TIERS,
    TEST_LCD_URLS,
    TEST_PAGE_LIMIT,
    TEST_TIMEOUT_SECONDS,
)

__all__ = [
    # Fixtures
    'mock_staking_client',
    'mock_price_client',
    'mock_tracker_settings',
    'mock_lcd_settings',
    'mock_all_settings',
    # Mocks
    'MockStakingClient',
    'MockPriceClient',
    # Constants
    'TEST_CURRENCY',
    'TEST_MAX_WORKERS',
    'TEST_MAX_COMMISSION',
    'TEST_VOTING_POWER_INCLUDE',
    'TEST_TIERS',
    'TEST_LCD_URLS',
    'TEST_PAGE_LIMIT',
    'TEST_TIMEOUT_SECONDS',
]
