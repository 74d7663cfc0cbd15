"""Token balances, allowances, unbonding claims and the staking contract's state."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from stakestream.errors import (
    CannotExceedCap,
    CannotSetOwnAccount,
    Expired,
    InvalidExpiration,
    InvalidZeroAmount,
    NoAllowance,
    NotFound,
    Unauthorized,
)
from stakestream.types import (
    BlockInfo,
    Duration,
    Expiration,
    FixedDecimal,
    Response,
    WasmExecute,
    checked_add,
    checked_sub,
)


@dataclass
class TokenInfo:
    """Metadata and supply of a fungible token."""

    name: str
    symbol: str
    decimals: int
    total_supply: int = 0
    minter: str | None = None
    cap: int | None = None


@dataclass
class _Allowance:
    allowance: int = 0
    expires: Expiration = field(default_factory=Expiration.never)


class TokenLedger:
    """Balances and allowances of a fungible token, with mint and burn."""

    def __init__(self, info: TokenInfo) -> None:
        self.info = info
        self._balances: dict[str, int] = {}
        self._allowances: dict[tuple[str, str], _Allowance] = {}

    def balance(self, address: str) -> int:
        return self._balances.get(address, 0)

    def allowance(self, owner: str, spender: str) -> tuple[int, Expiration]:
        """Return the amount the spender may use and when that permission expires."""
        current = self._allowances.get((owner, spender), _Allowance())
        return current.allowance, current.expires

    @staticmethod
    def _require_nonzero(amount: int) -> None:
        if amount == 0:
            raise InvalidZeroAmount()

    def _deducted_allowance(
        self, owner: str, spender: str, amount: int, block: BlockInfo
    ) -> _Allowance:
        current = self._allowances.get((owner, spender))
        if current is None:
            raise NoAllowance()
        if current.expires.is_expired(block):
            raise Expired()
        return _Allowance(checked_sub(current.allowance, amount), current.expires)

    def _moved_balances(self, owner: str, recipient: str, amount: int) -> dict[str, int]:
        updated = {owner: checked_sub(self.balance(owner), amount)}
        base = updated[owner] if recipient == owner else self.balance(recipient)
        updated[recipient] = checked_add(base, amount)
        return updated

    def mint(self, sender: str, recipient: str, amount: int) -> Response:
        self._require_nonzero(amount)
        if self.info.minter is None or self.info.minter != sender:
            raise Unauthorized()
        new_supply = checked_add(self.info.total_supply, amount)
        if self.info.cap is not None and new_supply > self.info.cap:
            raise CannotExceedCap()
        new_balance = checked_add(self.balance(recipient), amount)
        self.info.total_supply = new_supply
        self._balances[recipient] = new_balance
        return (
            Response()
            .add_attribute("action", "mint")
            .add_attribute("to", recipient)
            .add_attribute("amount", amount)
        )

    def _burn_balance(self, owner: str, amount: int) -> None:
        new_balance = checked_sub(self.balance(owner), amount)
        new_supply = checked_sub(self.info.total_supply, amount)
        self._balances[owner] = new_balance
        self.info.total_supply = new_supply

    def burn(self, sender: str, amount: int) -> Response:
        self._require_nonzero(amount)
        self._burn_balance(sender, amount)
        return (
            Response()
            .add_attribute("action", "burn")
            .add_attribute("from", sender)
            .add_attribute("amount", amount)
        )

    def transfer(self, sender: str, recipient: str, amount: int) -> Response:
        self._require_nonzero(amount)
        self._balances.update(self._moved_balances(sender, recipient, amount))
        return (
            Response()
            .add_attribute("action", "transfer")
            .add_attribute("from", sender)
            .add_attribute("to", recipient)
            .add_attribute("amount", amount)
        )

    @staticmethod
    def _receive_message(sender: str, contract: str, amount: int, msg: Any) -> WasmExecute:
        payload = {"receive": {"sender": sender, "amount": amount, "msg": msg}}
        return WasmExecute(contract_addr=contract, msg=payload)

    def send(self, sender: str, contract: str, amount: int, msg: Any) -> Response:
        self._require_nonzero(amount)
        self._balances.update(self._moved_balances(sender, contract, amount))
        return (
            Response()
            .add_attribute("action", "send")
            .add_attribute("from", sender)
            .add_attribute("to", contract)
            .add_attribute("amount", amount)
            .add_message(self._receive_message(sender, contract, amount, msg))
        )

    def increase_allowance(
        self,
        owner: str,
        spender: str,
        amount: int,
        expires: Expiration | None,
        block: BlockInfo,
    ) -> Response:
        if spender == owner:
            raise CannotSetOwnAccount()
        current = self._allowances.get((owner, spender), _Allowance())
        new_expires = current.expires
        if expires is not None:
            if expires.is_expired(block):
                raise InvalidExpiration()
            new_expires = expires
        self._allowances[(owner, spender)] = _Allowance(
            checked_add(current.allowance, amount), new_expires
        )
        return (
            Response()
            .add_attribute("action", "increase_allowance")
            .add_attribute("owner", owner)
            .add_attribute("spender", spender)
            .add_attribute("amount", amount)
        )

    def decrease_allowance(
        self,
        owner: str,
        spender: str,
        amount: int,
        expires: Expiration | None,
        block: BlockInfo,
    ) -> Response:
        if spender == owner:
            raise CannotSetOwnAccount()
        key = (owner, spender)
        current = self._allowances.get(key)
        if current is None:
            raise NotFound("allowance")
        if amount < current.allowance:
            new_expires = current.expires
            if expires is not None:
                if expires.is_expired(block):
                    raise InvalidExpiration()
                new_expires = expires
            self._allowances[key] = _Allowance(
                checked_sub(current.allowance, amount), new_expires
            )
        else:
            del self._allowances[key]
        return (
            Response()
            .add_attribute("action", "decrease_allowance")
            .add_attribute("owner", owner)
            .add_attribute("spender", spender)
            .add_attribute("amount", amount)
        )

    def transfer_from(
        self, spender: str, owner: str, recipient: str, amount: int, block: BlockInfo
    ) -> Response:
        self._require_nonzero(amount)
        allowance = self._deducted_allowance(owner, spender, amount, block)
        balances = self._moved_balances(owner, recipient, amount)
        self._allowances[(owner, spender)] = allowance
        self._balances.update(balances)
        return (
            Response()
            .add_attribute("action", "transfer_from")
            .add_attribute("from", owner)
            .add_attribute("to", recipient)
            .add_attribute("by", spender)
            .add_attribute("amount", amount)
        )

    def burn_from(self, spender: str, owner: str, amount: int, block: BlockInfo) -> Response:
        self._require_nonzero(amount)
        allowance = self._deducted_allowance(owner, spender, amount, block)
        new_balance = checked_sub(self.balance(owner), amount)
        new_supply = checked_sub(self.info.total_supply, amount)
        self._allowances[(owner, spender)] = allowance
        self._balances[owner] = new_balance
        self.info.total_supply = new_supply
        return (
            Response()
            .add_attribute("action", "burn_from")
            .add_attribute("from", owner)
            .add_attribute("by", spender)
            .add_attribute("amount", amount)
        )

    def send_from(
        self,
        spender: str,
        owner: str,
        contract: str,
        amount: int,
        msg: Any,
        block: BlockInfo,
    ) -> Response:
        self._require_nonzero(amount)
        allowance = self._deducted_allowance(owner, spender, amount, block)
        balances = self._moved_balances(owner, contract, amount)
        self._allowances[(owner, spender)] = allowance
        self._balances.update(balances)
        return (
            Response()
            .add_attribute("action", "send_from")
            .add_attribute("from", owner)
            .add_attribute("to", contract)
            .add_attribute("by", spender)
            .add_attribute("amount", amount)
            .add_message(self._receive_message(spender, contract, amount, msg))
        )


@dataclass(frozen=True)
class Claim:
    """Tokens that become payable once release_at has passed."""

    amount: int
    release_at: Expiration


class Claims:
    """Pending unbonding claims, per address, in the order they were made."""

    def __init__(self) -> None:
        self._claims: dict[str, list[Claim]] = {}

    def create_claim(self, address: str, amount: int, release_at: Expiration) -> None:
        self._claims.setdefault(address, []).append(Claim(amount, release_at))

    def claim_tokens(self, address: str, block: BlockInfo, cap: int | None) -> int:
        """Release every matured claim that fits under cap and return the total."""
        to_send = 0
        waiting: list[Claim] = []
        for claim in self._claims.get(address, []):
            if claim.release_at.is_expired(block) and (
                cap is None or to_send + claim.amount <= cap
            ):
                to_send += claim.amount
            else:
                waiting.append(claim)
        if waiting:
            self._claims[address] = waiting
        else:
            self._claims.pop(address, None)
        return to_send

    def query_claims(self, address: str) -> list[Claim]:
        return list(self._claims.get(address, []))


@dataclass
class Supply:
    """Derivative tokens issued, native tokens bonded, and tokens reserved for claims."""

    issued: int = 0
    bonded: int = 0
    claims: int = 0


@dataclass(frozen=True)
class InvestmentInfo:
    """Settings fixed when the staking contract is set up."""

    owner: str
    bond_denom: str
    unbonding_period: Duration
    exit_tax: FixedDecimal
    validator: str
    min_withdrawal: int