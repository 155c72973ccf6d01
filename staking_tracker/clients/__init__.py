from staking_tracker.clients.price import PriceClient, make_price_lookup
from staking_tracker.clients.staking import StakingClientInterface
from staking_tracker.clients.lcd import CosmosLCDClient
from staking_tracker.clients.coingecko import CoinGeckoPriceClient

__all__ = ['PriceClient', 'make_price_lookup', 'StakingClientInterface', 'CosmosLCDClient', 'CoinGeckoPriceClient']
