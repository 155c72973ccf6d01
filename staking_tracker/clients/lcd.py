from typing import Dict, List, Optional

import requests
import backoff

from staking_tracker.clients.staking import StakingClientInterface
from staking_tracker.config import LCDSettings
from staking_tracker.exceptions import ChainQueryError
from staking_tracker.models import ChainRewardSet, Coin, Delegation, UnbondingDelegation, Validator
from staking_tracker.selection import unique_validators


class CosmosLCDClient(StakingClientInterface):
    """Client for Cosmos SDK LCD (REST) endpoints, one base URL per chain."""

    def __init__(self, lcd_urls: Optional[Dict[str, str]] = None):
        self.config = LCDSettings()
        self.lcd_urls = dict(lcd_urls if lcd_urls is not None else self.config.lcd_urls)
        self.page_limit = self.config.page_limit
        self.timeout = self.config.timeout_seconds
        self.headers = {"Accept": "application/json"}

    @property
    def name(self):
        return "Cosmos LCD"

    def _base_url(self, chain_id: str) -> str:
        try:
            return self.lcd_urls[chain_id].rstrip("/")
        except KeyError:
            raise ChainQueryError(chain_id, "no LCD endpoint configured")

    @backoff.on_exception(
        backoff.expo,
        requests.exceptions.HTTPError,
        max_tries=3,
        giveup=lambda e: e.response is None or e.response.status_code != 429,
        factor=2
    )
    def _get(self, url: str, params: Optional[dict] = None) -> dict:
        response = requests.get(url, headers=self.headers, params=params, timeout=self.timeout)
        response.raise_for_status()
        return response.json()

    def _fetch(self, chain_id: str, path: str, params: Optional[dict] = None) -> dict:
        """Single request, with transport and payload errors reported as ChainQueryError."""
        url = f"{self._base_url(chain_id)}{path}"
        try:
            return self._get(url, params)
        except (requests.RequestException, ValueError) as e:
            raise ChainQueryError(chain_id, f"LCD request to {path} failed: {e}")

    def _fetch_with_pagination(self, chain_id: str, path: str, items_key: str, params: Optional[dict] = None) -> list:
        """Helper to fetch all pages from an endpoint, following pagination.next_key."""
        params = dict(params or {})
        params["pagination.limit"] = str(self.page_limit)
        all_data = []
        key = None
        while True:
            if key:
                params["pagination.key"] = key
            data = self._fetch(chain_id, path, dict(params))
            try:
                all_data.extend(data[items_key])
            except (KeyError, TypeError):
                raise ChainQueryError(chain_id, f"unexpected response from {path}: missing '{items_key}'")

            key = (data.get("pagination") or {}).get("next_key")
            if not key:
                break
        return all_data

    def get_validators(self, chain_id: str, status: Optional[str] = None) -> List[Validator]:
        """
        Fetch validators via /cosmos/staking/v1beta1/validators.

        Args:
            chain_id: Chain to query
            status: Optional bond status filter (e.g. BOND_STATUS_BONDED)

        Returns:
            list: Validators de-duplicated by operator address
        """
        params = {"status": status} if status else None
        raw = self._fetch_with_pagination(chain_id, "/cosmos/staking/v1beta1/validators", "validators", params)
        try:
            return unique_validators(Validator.from_lcd(v) for v in raw)
        except (KeyError, TypeError, ArithmeticError) as e:
            raise ChainQueryError(chain_id, f"malformed validator record: {e}")

    def get_delegations(self, chain_id: str, address: str) -> List[Delegation]:
        raw = self._fetch_with_pagination(
            chain_id, f"/cosmos/staking/v1beta1/delegations/{address}", "delegation_responses"
        )
        try:
            return [Delegation.from_lcd(d) for d in raw]
        except (KeyError, TypeError, ArithmeticError) as e:
            raise ChainQueryError(chain_id, f"malformed delegation record: {e}")

    def get_unbondings(self, chain_id: str, address: str) -> List[UnbondingDelegation]:
        raw = self._fetch_with_pagination(
            chain_id, f"/cosmos/staking/v1beta1/delegators/{address}/unbonding_delegations", "unbonding_responses"
        )
        try:
            return [UnbondingDelegation.from_lcd(u) for u in raw]
        except (KeyError, TypeError, ValueError, ArithmeticError) as e:
            raise ChainQueryError(chain_id, f"malformed unbonding record: {e}")

    def get_rewards(self, chain_id: str, address: str) -> ChainRewardSet:
        data = self._fetch(chain_id, f"/cosmos/distribution/v1beta1/delegators/{address}/rewards")
        try:
            return ChainRewardSet.from_lcd(chain_id, data)
        except (KeyError, TypeError, ArithmeticError) as e:
            raise ChainQueryError(chain_id, f"malformed rewards response: {e}")

    def get_bond_denom(self, chain_id: str) -> str:
        data = self._fetch(chain_id, "/cosmos/staking/v1beta1/params")
        try:
            return data["params"]["bond_denom"]
        except (KeyError, TypeError):
            raise ChainQueryError(chain_id, "staking params did not include bond_denom")

    def get_balances(self, chain_id: str, address: str) -> List[Coin]:
        raw = self._fetch_with_pagination(chain_id, f"/cosmos/bank/v1beta1/balances/{address}", "balances")
        try:
            return [Coin.from_dict(c) for c in raw]
        except (KeyError, TypeError, ArithmeticError) as e:
            raise ChainQueryError(chain_id, f"malformed balance record: {e}")
