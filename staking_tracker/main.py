#!/usr/bin/env python3
"""
Interchain Staking Tracker

Summarizes a wallet's staking positions across Cosmos SDK chains:
- Delegations, unbondings and rewards valued in one currency
- Wallet balances merged across chains
- Quick stake / quick unstake plans (printed only, never signed or broadcast)
"""

import argparse
import random

from staking_tracker.clients.coingecko import CoinGeckoPriceClient
from staking_tracker.clients.lcd import CosmosLCDClient
from staking_tracker.config import TrackerSettings
from staking_tracker.denoms import load_registry
from staking_tracker.models import AggregationResult
from staking_tracker.numeric import read_amount
from staking_tracker.tracker import InterchainStakingTracker


def print_aggregation(title: str, result: AggregationResult, currency: str):
    print(f"\n{'='*60}")
    print(f"{title}: {result.currency_total:.2f} {currency.upper()}")
    print(f"{'='*60}")
    for total in result.by_token:
        print(f"  {total.symbol:<12} {total.display_amount:>24}  {total.value:>14.2f}  ({', '.join(total.chains)})")
    for chain_id, totals in result.by_chain.items():
        print(f"\n  {chain_id}: {result.chain_total(chain_id):.2f} {currency.upper()}")
        for total in totals:
            print(f"    {total.symbol:<12} {total.display_amount:>24}  {total.value:>14.2f}")


def print_plan(title: str, plan, decimals: int):
    print(f"\n{title} ({read_amount(plan.total, decimals)} of {read_amount(plan.requested, decimals)} {plan.denom}):")
    for entry in plan.entries:
        print(f"  {entry.validator_address}  {read_amount(entry.amount, decimals)} {entry.denom}")


def run():
    parser = argparse.ArgumentParser(
        description='Interchain Staking Tracker',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Delegations, unbondings and rewards across all configured chains
  python -m staking_tracker.main --mode summary

  # Wallet balances, hiding dust
  python -m staking_tracker.main --mode assets --hide-low-balance

  # Plan a quick stake of 250 LUNA (base units)
  python -m staking_tracker.main --mode quick-stake --chain phoenix-1 --amount 250000000

  # Plan a quick unstake with a reproducible validator order
  python -m staking_tracker.main --mode quick-unstake --chain phoenix-1 --amount 150000000 --seed 7
        """
    )

    parser.add_argument(
        '--mode',
        choices=['summary', 'delegations', 'unbondings', 'rewards', 'assets', 'quick-stake', 'quick-unstake'],
        default='summary',
        help='''Mode of operation:
            summary - Delegations, unbondings and rewards (default)
            delegations - Delegated amounts per token and chain
            unbondings - Amounts still unbonding
            rewards - Accrued staking rewards
            assets - Wallet balances merged across chains
            quick-stake - Plan a quick stake
            quick-unstake - Plan a quick unstake
        '''
    )
    parser.add_argument('--chain', type=str, default=None, help='Chain ID for quick stake / unstake')
    parser.add_argument('--amount', type=str, default=None, help='Amount in base units for quick stake / unstake')
    parser.add_argument('--denom', type=str, default=None, help='Denomination (default: the chain\'s bond denom)')
    parser.add_argument('--decimals', type=int, default=None, help='Token decimals (default: from the token registry)')
    parser.add_argument('--seed', type=int, default=None, help='Seed for validator selection order')
    parser.add_argument('--hide-low-balance', action='store_true', help='Hide assets worth less than 1 unit of currency')
    parser.add_argument('--hide-unlisted', action='store_true', help='Hide tokens missing from the token registry')

    args = parser.parse_args()

    if args.mode in ('quick-stake', 'quick-unstake') and (not args.chain or args.amount is None):
        parser.error(f"--mode {args.mode} requires --chain and --amount")

    # Initialize clients
    print("Initializing LCD and price clients...")
    lcd_client = CosmosLCDClient()
    registry = load_registry(TrackerSettings().token_registry_path)
    price_client = CoinGeckoPriceClient(coingecko_ids=registry.coingecko_ids())

    # Initialize tracker
    tracker = InterchainStakingTracker(
        staking_client=lcd_client,
        price_client=price_client,
        resolver=registry,
        rng=random.Random(args.seed) if args.seed is not None else None,
    )
    currency = tracker.currency

    # Execute based on mode
    if args.mode in ('summary', 'delegations'):
        print_aggregation("Delegations", tracker.delegation_summary(), currency)

    if args.mode in ('summary', 'unbondings'):
        print_aggregation("Unbonding", tracker.unbonding_summary(), currency)

    if args.mode in ('summary', 'rewards'):
        rewards, per_chain = tracker.rewards_summary()
        print_aggregation("Rewards", rewards, currency)
        for chain_id, summary in per_chain.items():
            if summary.single_denom:
                print(f"  {chain_id}: {summary.amount} {summary.tokens[0].symbol}")
            else:
                print(f"  {chain_id}: {len(summary.tokens)} reward tokens")

    elif args.mode == 'assets':
        assets = tracker.asset_list(hide_low_balance=args.hide_low_balance, hide_unlisted=args.hide_unlisted)
        print(f"\nAssets ({len(assets)}):")
        for asset in assets:
            print(f"  {asset.symbol:<12} {read_amount(asset.amount, asset.decimals):>24}  "
                  f"{asset.value:>14.2f} {currency.upper()}  ({', '.join(asset.chains)})")

    elif args.mode == 'quick-stake':
        plan = tracker.quick_stake(args.chain, args.amount, denom=args.denom, decimals=args.decimals)
        decimals = args.decimals if args.decimals is not None else tracker.resolver.resolve(plan.denom).decimals
        print_plan("Quick stake plan", plan, decimals)

    elif args.mode == 'quick-unstake':
        plan = tracker.quick_unstake(args.chain, args.amount, denom=args.denom)
        decimals = args.decimals if args.decimals is not None else tracker.resolver.resolve(plan.denom).decimals
        print_plan("Quick unstake plan", plan, decimals)
        if not plan.is_complete:
            print(f"  Shortfall: {read_amount(plan.shortfall, decimals)} {plan.denom}")

    print("\n✓ Done!")

if __name__ == "__main__":
    run()
