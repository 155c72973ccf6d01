import random
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from staking_tracker.aggregator import (
    active_delegations, aggregate, aggregate_balances, chain_rewards_summary,
    delegation_coins, unbonding_coins
)
from staking_tracker.clients.price import PriceClient, make_price_lookup
from staking_tracker.clients.staking import StakingClientInterface
from staking_tracker.config import QuickStakeSettings, TrackerSettings
from staking_tracker.denoms import DenomResolver, load_registry
from staking_tracker.exceptions import InputError, PriceNotAvailableError
from staking_tracker.models import (
    AggregationResult, AssetBalance, ChainQueryResult, Coin, RewardsSummary, StakePlan, UnstakePlan
)
from staking_tracker.numeric import Numeric, read_amount, to_amount
from staking_tracker.planner import plan_stake, plan_unstake, shuffle_delegations
from staking_tracker.selection import select_eligible_validators
from staking_tracker.wallet import InterchainWallet


class InterchainStakingTracker:
    """
    Tracks staking positions of one wallet across chains.

    Implements:
    - Parallel per-chain fetching where one chain's failure never stops the others
    - Currency-valued totals of delegations, unbondings, rewards and balances
    - Quick stake / quick unstake planning
    """

    def __init__(
        self,
        staking_client: StakingClientInterface,
        price_client: PriceClient,
        resolver: Optional[DenomResolver] = None,
        wallet: Optional[InterchainWallet] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = TrackerSettings()
        self.quick_stake_config = QuickStakeSettings()
        self.staking_client = staking_client
        self.price_client = price_client
        self.currency = self.config.currency
        self.rng = rng or random.Random()

        self.resolver = resolver if resolver is not None else load_registry(self.config.token_registry_path)
        self.wallet = wallet if wallet is not None else InterchainWallet(self.config.wallet_addresses)

        print(f"Initializing tracker:")
        print(f"  Chains: {', '.join(self.wallet.chains) or '(none)'}")
        print(f"  Currency: {self.currency}")
        print(f"  Quick stake: max commission {self.quick_stake_config.max_commission}, "
              f"voting power include {self.quick_stake_config.voting_power_include}")

    # -------------------------------------------------------------------------
    # Lightweight logging / timing helpers
    # -------------------------------------------------------------------------
    def _log(self, msg: str):
        """Print a timestamped log message."""
        ts = datetime.now().strftime('%Y-%m-%d %H:%M:%S')
        print(f"{ts}  {msg}")

    def _timed_call(self, label: str, func, *args, **kwargs):
        """Call func(*args, **kwargs) while logging start/end and elapsed time.

        If the result is a sequence, also log the number of items returned.
        """
        start = time.time()
        self._log(f"Fetching {label} — start")
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            elapsed = time.time() - start
            self._log(f"Fetching {label} — failed after {elapsed:.2f}s: {e}")
            raise

        elapsed = time.time() - start
        try:
            count = len(result) if result is not None else 0
        except TypeError:
            count = None

        if count is not None:
            self._log(f"Fetching {label} — done ({count} items) in {elapsed:.2f}s")
        else:
            self._log(f"Fetching {label} — done in {elapsed:.2f}s")

        return result

    # -------------------------------------------------------------------------
    # Per-chain fetching
    # -------------------------------------------------------------------------

    def _fetch_per_chain(self, label: str, fetch: Callable[[str, str], Any]) -> Tuple[Dict[str, Any], Dict[str, str]]:
        """
        Run fetch(chain_id, address) for every wallet chain in parallel.

        Returns:
            Tuple of (results by chain, error messages by chain), both in wallet chain order
        """
        chains = list(self.wallet.items())
        if not chains:
            return {}, {}

        done: Dict[str, Any] = {}
        errors: Dict[str, str] = {}
        workers = max(1, min(self.config.max_workers, len(chains)))
        with ThreadPoolExecutor(max_workers=workers) as pool:
            futures = {
                pool.submit(self._timed_call, f"{label} on {chain_id}", fetch, chain_id, address): chain_id
                for chain_id, address in chains
            }
            for future in as_completed(futures):
                chain_id = futures[future]
                try:
                    done[chain_id] = future.result()
                except Exception as e:
                    errors[chain_id] = str(e)
                    print(f"  Warning: Skipping {chain_id} {label}: {e}")

        results = {chain_id: done[chain_id] for chain_id, _ in chains if chain_id in done}
        failures = {chain_id: errors[chain_id] for chain_id, _ in chains if chain_id in errors}
        return results, failures

    def _price_lookup(self, token_keys: Iterable[str]) -> Callable[[str], Decimal]:
        """Fetch prices once per aggregation; an unavailable feed values everything at 0."""
        keys = sorted(set(token_keys))
        if not keys:
            return make_price_lookup({})
        try:
            prices = self._timed_call(f"{self.currency} prices", self.price_client.get_prices, keys, self.currency)
        except PriceNotAvailableError as e:
            print(f"  Warning: Could not get prices from {self.price_client.name}: {e}")
            prices = {}
        return make_price_lookup(prices)

    def _token_keys(self, coins_by_chain: Dict[str, List[Coin]]) -> List[str]:
        return [self.resolver.resolve(c.denom).token for coins in coins_by_chain.values() for c in coins]

    def _aggregate_coins(self, coins_by_chain: Dict[str, List[Coin]], failures: Dict[str, str],
                         price_of: Optional[Callable[[str], Decimal]] = None) -> AggregationResult:
        results = {chain_id: ChainQueryResult.success(chain_id, coins) for chain_id, coins in coins_by_chain.items()}
        results.update({chain_id: ChainQueryResult.failure(chain_id, error) for chain_id, error in failures.items()})

        if price_of is None:
            price_of = self._price_lookup(self._token_keys(coins_by_chain))
        return aggregate(results, self.resolver.resolve, price_of)

    # -------------------------------------------------------------------------
    # Summaries
    # -------------------------------------------------------------------------

    def delegation_summary(self) -> AggregationResult:
        """Delegated amounts on every chain, valued in the display currency."""
        coins, failures = self._fetch_per_chain(
            "delegations",
            lambda chain_id, address: delegation_coins(self.staking_client.get_delegations(chain_id, address))
        )
        return self._aggregate_coins(coins, failures)

    def unbonding_summary(self) -> AggregationResult:
        """Amounts still unbonding on every chain."""
        def fetch(chain_id: str, address: str) -> List[Coin]:
            unbondings = self.staking_client.get_unbondings(chain_id, address)
            if not unbondings:
                return []
            return unbonding_coins(unbondings, self.staking_client.get_bond_denom(chain_id))

        coins, failures = self._fetch_per_chain("unbondings", fetch)
        return self._aggregate_coins(coins, failures)

    def rewards_summary(self) -> Tuple[AggregationResult, Dict[str, RewardsSummary]]:
        """
        Accrued rewards across chains.

        Returns:
            Tuple of (aggregate over all chains, per-chain summaries for chains that answered)
        """
        reward_sets, failures = self._fetch_per_chain("rewards", self.staking_client.get_rewards)
        coins = {chain_id: reward_set.total for chain_id, reward_set in reward_sets.items()}
        price_of = self._price_lookup(self._token_keys(coins))
        result = self._aggregate_coins(coins, failures, price_of)

        per_chain = {
            chain_id: chain_rewards_summary(reward_set, self.resolver.resolve, price_of)
            for chain_id, reward_set in reward_sets.items()
        }
        return result, per_chain

    def asset_list(self, hide_low_balance: bool = False, hide_unlisted: bool = False,
                   always_visible: Iterable[str] = ()) -> List[AssetBalance]:
        """Wallet balances merged across chains."""
        balances, _ = self._fetch_per_chain("balances", self.staking_client.get_balances)
        return aggregate_balances(
            balances,
            self.resolver.resolve,
            self._price_lookup(self._token_keys(balances)),
            hide_low_balance=hide_low_balance,
            hide_unlisted=hide_unlisted,
            always_visible=always_visible,
        )

    # -------------------------------------------------------------------------
    # Quick stake / unstake
    # -------------------------------------------------------------------------

    def quick_stake(self, chain_id: str, amount: Numeric, denom: Optional[str] = None,
                    decimals: Optional[int] = None) -> StakePlan:
        """
        Plan a quick stake of ``amount`` base units on one chain.

        Args:
            chain_id: Chain to stake on
            amount: Amount in base units
            denom: Denomination to stake (defaults to the chain's bond denomination)
            decimals: Token decimals used for the amount tiers (defaults to the resolved token's)

        Raises:
            InputError: If the amount is invalid or no validator is eligible
        """
        total = to_amount(amount)
        if denom is None:
            denom = self._timed_call(f"bond denom on {chain_id}", self.staking_client.get_bond_denom, chain_id)
        if decimals is None:
            decimals = self.resolver.resolve(denom).decimals

        validators = self._timed_call(f"validators on {chain_id}", self.staking_client.get_validators, chain_id)
        eligible = select_eligible_validators(
            validators,
            self.quick_stake_config.max_commission,
            self.quick_stake_config.voting_power_include,
            rng=self.rng,
        )
        if total > 0 and not eligible:
            raise InputError(f"No validators on {chain_id} are eligible for quick stake")

        plan = plan_stake(total, eligible, denom, decimals, rng=self.rng, tiers=self.quick_stake_config.tiers)
        self._log(
            f"Quick stake on {chain_id}: {read_amount(plan.total, decimals)} {denom} across "
            f"{len(plan.entries)} of {len(eligible)} eligible validators"
        )
        return plan

    def quick_unstake(self, chain_id: str, amount: Numeric, denom: Optional[str] = None) -> UnstakePlan:
        """
        Plan a quick unstake of ``amount`` base units on one chain.

        Delegations in ``denom`` (the chain's bond denomination by default) are
        consumed in random order. The returned plan's ``shortfall`` is non-zero
        when the delegations cannot cover the amount.

        Raises:
            InputError: If the amount is invalid or the wallet has no address on the chain
        """
        total = to_amount(amount)
        address = self.wallet.address_for(chain_id)
        if not address:
            raise InputError(f"Wallet has no address on {chain_id}")
        if denom is None:
            denom = self._timed_call(f"bond denom on {chain_id}", self.staking_client.get_bond_denom, chain_id)

        delegations = active_delegations(self._timed_call(
            f"delegations on {chain_id}", self.staking_client.get_delegations, chain_id, address
        ))
        plan = plan_unstake(total, shuffle_delegations(delegations, self.rng), denom)

        decimals = self.resolver.resolve(plan.denom).decimals
        self._log(
            f"Quick unstake on {chain_id}: {read_amount(plan.total, decimals)} {plan.denom} from "
            f"{len(plan.entries)} validators"
        )
        if not plan.is_complete:
            print(f"  Warning: Delegations cover only {read_amount(plan.total, decimals)} of "
                  f"{read_amount(plan.requested, decimals)} {plan.denom} "
                  f"(shortfall {read_amount(plan.shortfall, decimals)})")
        return plan
