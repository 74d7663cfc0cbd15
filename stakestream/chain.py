"""An in-memory view of the chain the staking contract queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from stakestream.types import Coin, FixedDecimal


@dataclass(frozen=True)
class Validator:
    address: str
    commission: FixedDecimal = field(default_factory=lambda: FixedDecimal.percent(3))
    max_commission: FixedDecimal = field(default_factory=lambda: FixedDecimal.percent(10))
    max_change_rate: FixedDecimal = field(default_factory=lambda: FixedDecimal.percent(1))


@dataclass(frozen=True)
class Delegation:
    delegator: str
    validator: str
    amount: Coin
    can_redelegate: Coin | None = None
    accumulated_rewards: tuple[Coin, ...] = ()


class MockQuerier:
    """Holds validators, delegations and bank balances that a contract can query."""

    def __init__(self) -> None:
        self._denom = ""
        self._validators: list[Validator] = []
        self._delegations: list[Delegation] = []
        self._balances: dict[str, list[Coin]] = {}

    def update_staking(
        self,
        denom: str,
        validators: Iterable[Validator],
        delegations: Iterable[Delegation],
    ) -> None:
        self._denom = denom
        self._validators = list(validators)
        self._delegations = list(delegations)

    def update_balance(self, address: str, funds: Iterable[Coin]) -> None:
        self._balances[address] = list(funds)

    def all_validators(self) -> list[Validator]:
        return list(self._validators)

    def bonded_denom(self) -> str:
        return self._denom

    def all_delegations(self, delegator: str) -> list[Delegation]:
        return [d for d in self._delegations if d.delegator == delegator]

    def balance(self, address: str, denom: str) -> Coin:
        """Return the address's holding of denom, zero when it holds none."""
        total = sum(c.amount for c in self._balances.get(address, []) if c.denom == denom)
        return Coin(denom=denom, amount=total)