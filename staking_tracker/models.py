import re
from dataclasses import dataclass, field, replace
from datetime import datetime
from decimal import Decimal, ROUND_DOWN
from enum import Enum
from typing import Any, Dict, List, Optional

from staking_tracker.numeric import ZERO, Numeric, read_amount, rescale

# LCD timestamps carry nanoseconds; datetime keeps microseconds
_FRACTION = re.compile(r"\.(\d+)")


def parse_timestamp(value: str) -> datetime:
    text = _FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value.replace("Z", "+00:00"))
    return datetime.fromisoformat(text)


class QueryStatus(Enum):
    """Outcome of one chain's fetch."""
    SUCCESS = "success"
    ERROR = "error"
    PENDING = "pending"


class StakeAction(Enum):
    """Staking actions offered for a destination validator."""
    DELEGATE = "delegate"
    REDELEGATE = "redelegate"
    UNBOND = "unbond"


@dataclass(frozen=True)
class Coin:
    """An amount of one raw denomination, in base units."""
    denom: str
    amount: Decimal

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Coin":
        return cls(denom=data["denom"], amount=Decimal(str(data["amount"])))

    def to_dict(self) -> Dict[str, str]:
        return {"denom": self.denom, "amount": f"{self.amount:f}"}


@dataclass(frozen=True)
class CanonicalToken:
    """Chain-agnostic identity of a denomination."""
    token: str  # Canonical key shared by every denomination of the same asset
    symbol: str
    decimals: int
    icon: Optional[str] = None


@dataclass(frozen=True)
class Validator:
    """Snapshot of a validator for one query cycle."""
    operator_address: str
    tokens: str  # Raw integer string as reported by the chain
    commission_rate: Numeric  # Raw decimal string from the chain; parsed during selection
    moniker: str = ""
    jailed: bool = False
    status: str = ""

    @classmethod
    def from_lcd(cls, data: Dict[str, Any]) -> "Validator":
        commission = data.get("commission", {}).get("commission_rates", {}).get("rate", "0")
        return cls(
            operator_address=data["operator_address"],
            tokens=str(data.get("tokens", "0")),
            commission_rate=str(commission),
            moniker=data.get("description", {}).get("moniker", ""),
            jailed=bool(data.get("jailed", False)),
            status=data.get("status", ""),
        )


@dataclass(frozen=True)
class Delegation:
    """Tokens bonded by a delegator to one validator."""
    delegator_address: str
    validator_address: str
    balance: Coin

    @classmethod
    def from_lcd(cls, data: Dict[str, Any]) -> "Delegation":
        delegation = data["delegation"]
        return cls(
            delegator_address=delegation["delegator_address"],
            validator_address=delegation["validator_address"],
            balance=Coin.from_dict(data["balance"]),
        )


@dataclass(frozen=True)
class UnbondingEntry:
    """One withdrawal in progress; matures at completion_time."""
    initial_balance: Decimal
    balance: Decimal
    completion_time: datetime
    creation_height: int = 0

    @classmethod
    def from_lcd(cls, data: Dict[str, Any]) -> "UnbondingEntry":
        return cls(
            initial_balance=Decimal(str(data["initial_balance"])),
            balance=Decimal(str(data.get("balance", data["initial_balance"]))),
            completion_time=parse_timestamp(data["completion_time"]),
            creation_height=int(data.get("creation_height", 0)),
        )


@dataclass(frozen=True)
class UnbondingDelegation:
    """Unbonding entries of one delegator from one validator."""
    delegator_address: str
    validator_address: str
    entries: List[UnbondingEntry]

    @classmethod
    def from_lcd(cls, data: Dict[str, Any]) -> "UnbondingDelegation":
        return cls(
            delegator_address=data["delegator_address"],
            validator_address=data["validator_address"],
            entries=[UnbondingEntry.from_lcd(e) for e in data.get("entries", [])],
        )


@dataclass(frozen=True)
class FlatUnbondingEntry:
    """An unbonding entry together with its validator."""
    validator_address: str
    initial_balance: Decimal
    balance: Decimal
    completion_time: datetime


@dataclass
class ChainRewardSet:
    """Accrued rewards of one address on one chain."""
    chain_id: str
    total: List[Coin]
    by_validator: Dict[str, List[Coin]] = field(default_factory=dict)

    @classmethod
    def from_lcd(cls, chain_id: str, data: Dict[str, Any]) -> "ChainRewardSet":
        # Reward amounts are DecCoins ("12.345000000000000000"); keep whole base units
        def _coins(items):
            return [
                Coin(denom=c["denom"], amount=Decimal(str(c["amount"])).to_integral_value(rounding=ROUND_DOWN))
                for c in items or []
            ]

        return cls(
            chain_id=chain_id,
            total=_coins(data.get("total")),
            by_validator={
                r["validator_address"]: _coins(r.get("reward"))
                for r in data.get("rewards", []) or []
            },
        )


@dataclass
class ChainQueryResult:
    """Per-chain input to aggregation; only SUCCESS results are counted."""
    chain_id: str
    status: QueryStatus
    coins: List[Coin] = field(default_factory=list)
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == QueryStatus.SUCCESS

    @classmethod
    def success(cls, chain_id: str, coins: List[Coin]) -> "ChainQueryResult":
        return cls(chain_id=chain_id, status=QueryStatus.SUCCESS, coins=list(coins))

    @classmethod
    def failure(cls, chain_id: str, error: str) -> "ChainQueryResult":
        return cls(chain_id=chain_id, status=QueryStatus.ERROR, error=error)


@dataclass(frozen=True)
class TokenTotal:
    """Display record for one canonical token."""
    token: str
    symbol: str
    icon: Optional[str]
    value: Decimal  # Currency value
    amount: Decimal  # Base units
    display_amount: str
    chains: tuple = ()


def _sorted_totals(records: List[TokenTotal]) -> List[TokenTotal]:
    """Largest currency value first, ties broken by token key."""
    return sorted(records, key=lambda r: (-r.value, r.token))


@dataclass
class AggregationResult:
    """
    Currency-normalized totals across chains.

    Amounts and values are keyed by canonical token; chain maps are keyed by
    chain ID then canonical token. Display lists are derived on access.
    """
    token_amounts: Dict[str, Decimal] = field(default_factory=dict)
    token_values: Dict[str, Decimal] = field(default_factory=dict)
    chain_amounts: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    chain_values: Dict[str, Dict[str, Decimal]] = field(default_factory=dict)
    tokens: Dict[str, CanonicalToken] = field(default_factory=dict)
    currency_total: Decimal = ZERO

    def adopt_token(self, token: CanonicalToken) -> CanonicalToken:
        """
        Register a token under its canonical key.

        Denominations of one asset may use different decimals, e.g. a
        6-decimal native coin and an 18-decimal bridged copy. Amounts under a
        key are kept in the largest decimals seen so far; amounts recorded
        before a finer denomination shows up are rescaled to it.

        Returns:
            CanonicalToken: The token whose decimals the key's amounts use
        """
        key = token.token
        current = self.tokens.get(key)
        if current is None:
            self.tokens[key] = token
            return token
        if token.decimals <= current.decimals:
            return current

        adopted = replace(current, decimals=token.decimals)
        self.tokens[key] = adopted
        if key in self.token_amounts:
            self.token_amounts[key] = rescale(self.token_amounts[key], current.decimals, adopted.decimals)
        for amounts in self.chain_amounts.values():
            if key in amounts:
                amounts[key] = rescale(amounts[key], current.decimals, adopted.decimals)
        return adopted

    def _record(self, key: str, amount: Decimal, value: Decimal, chains=()) -> TokenTotal:
        token = self.tokens[key]
        return TokenTotal(
            token=key,
            symbol=token.symbol,
            icon=token.icon,
            value=value,
            amount=amount,
            display_amount=read_amount(amount, token.decimals),
            chains=tuple(chains),
        )

    @property
    def by_token(self) -> List[TokenTotal]:
        records = []
        for key, amount in self.token_amounts.items():
            chains = sorted(c for c, amounts in self.chain_amounts.items() if key in amounts)
            records.append(self._record(key, amount, self.token_values.get(key, ZERO), chains))
        return _sorted_totals(records)

    @property
    def by_chain(self) -> Dict[str, List[TokenTotal]]:
        return {
            chain_id: _sorted_totals([
                self._record(key, amount, self.chain_values[chain_id].get(key, ZERO), (chain_id,))
                for key, amount in amounts.items()
            ])
            for chain_id, amounts in sorted(self.chain_amounts.items())
        }

    def chain_total(self, chain_id: str) -> Decimal:
        """Currency total of one chain."""
        return sum(self.chain_values.get(chain_id, {}).values(), ZERO)

    def __add__(self, other: "AggregationResult") -> "AggregationResult":
        merged = AggregationResult()
        for source in (self, other):
            for token in source.tokens.values():
                merged.adopt_token(token)

        for source in (self, other):
            def aligned(key: str, amount: Decimal) -> Decimal:
                return rescale(amount, source.tokens[key].decimals, merged.tokens[key].decimals)

            for key, amount in source.token_amounts.items():
                merged.token_amounts[key] = merged.token_amounts.get(key, ZERO) + aligned(key, amount)
            for key, value in source.token_values.items():
                merged.token_values[key] = merged.token_values.get(key, ZERO) + value
            for chain_id, amounts in source.chain_amounts.items():
                bucket = merged.chain_amounts.setdefault(chain_id, {})
                for key, amount in amounts.items():
                    bucket[key] = bucket.get(key, ZERO) + aligned(key, amount)
            for chain_id, values in source.chain_values.items():
                bucket = merged.chain_values.setdefault(chain_id, {})
                for key, value in values.items():
                    bucket[key] = bucket.get(key, ZERO) + value
            merged.currency_total += source.currency_total
        return merged


@dataclass(frozen=True)
class PlanEntry:
    """One delegate or undelegate instruction."""
    validator_address: str
    denom: str
    amount: Decimal

    def to_dict(self) -> Dict[str, str]:
        return {
            "validator_address": self.validator_address,
            "denom": self.denom,
            "amount": f"{self.amount:f}",
        }


@dataclass(frozen=True)
class StakePlan:
    """Delegations that spread a quick stake across validators."""
    denom: str
    requested: Decimal
    entries: List[PlanEntry]

    @property
    def total(self) -> Decimal:
        return sum((e.amount for e in self.entries), ZERO)


@dataclass(frozen=True)
class UnstakePlan:
    """Undelegations covering a quick unstake; shortfall > 0 means under-delivery."""
    denom: str
    requested: Decimal
    entries: List[PlanEntry]
    shortfall: Decimal = ZERO

    @property
    def total(self) -> Decimal:
        return sum((e.amount for e in self.entries), ZERO)

    @property
    def is_complete(self) -> bool:
        return self.shortfall == 0


@dataclass(frozen=True)
class RewardsSummary:
    """Rewards of one chain, valued in the display currency."""
    chain_id: str
    value: Decimal
    tokens: List[TokenTotal]
    single_denom: bool
    amount: Optional[Decimal] = None  # Display-unit total, only meaningful for a single denomination


@dataclass(frozen=True)
class AssetBalance:
    """A wallet balance merged across chains for one canonical token."""
    token: str
    denom: str
    symbol: str
    icon: Optional[str]
    amount: Decimal
    price: Decimal
    value: Decimal
    chains: tuple
    decimals: int  # Decimals of amount; the finest among the merged denominations
