"""A staking contract that bonds native tokens to one validator and issues a derivative token."""

from __future__ import annotations

import copy
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import dataclass, replace
from typing import Any

from stakestream.chain import MockQuerier
from stakestream.errors import (
    ArithmeticOverflow,
    BalanceTooSmall,
    BondedMismatch,
    DifferentBondDenom,
    EmptyBalance,
    NotFound,
    NotInValidatorSet,
    NothingToClaim,
    UnbondTooSmall,
    Unauthorized,
)
from stakestream.ledger import (
    Claim,
    Claims,
    InvestmentInfo,
    Supply,
    TokenInfo,
    TokenLedger,
)
from stakestream.types import (
    BankSend,
    Coin,
    Delegate,
    Duration,
    Env,
    Expiration,
    FixedDecimal,
    MessageInfo,
    Response,
    Undelegate,
    WasmExecute,
    WithdrawDelegatorReward,
    checked_add,
    checked_sub,
    coin,
    multiply_ratio,
)

FALLBACK_RATIO = FixedDecimal.one()

CONTRACT_NAME = "cw20-staking"
CONTRACT_VERSION = "0.1.0"


@dataclass(frozen=True)
class InstantiateMsg:
    """Settings for a new staking contract and its derivative token."""

    name: str
    symbol: str
    decimals: int
    validator: str
    unbonding_period: Duration
    exit_tax: FixedDecimal
    min_withdrawal: int


@dataclass(frozen=True)
class InvestmentResponse:
    """The contract's settings together with its current supply and nominal value."""

    token_supply: int
    staked_tokens: Coin
    nominal_value: FixedDecimal
    owner: str
    exit_tax: FixedDecimal
    validator: str
    min_withdrawal: int


class StakingContract:
    """Bonds received native tokens and tracks derivative tokens issued against them.

    Every executing call is atomic: if it raises, the contract's state is left as it was.
    """

    def __init__(self, querier: MockQuerier | None = None) -> None:
        self.querier = querier if querier is not None else MockQuerier()
        self.contract_version: tuple[str, str] | None = None
        self._ledger: TokenLedger | None = None
        self._investment: InvestmentInfo | None = None
        self._supply: Supply | None = None
        self._claims = Claims()

    @contextmanager
    def _atomic(self) -> Iterator[None]:
        saved = copy.deepcopy(
            (self._ledger, self._investment, self._supply, self._claims)
        )
        try:
            yield
        except BaseException:
            self._ledger, self._investment, self._supply, self._claims = saved
            raise

    @property
    def _token(self) -> TokenLedger:
        if self._ledger is None:
            raise NotFound("token info")
        return self._ledger

    @property
    def _invest(self) -> InvestmentInfo:
        if self._investment is None:
            raise NotFound("investment info")
        return self._investment

    @property
    def _total(self) -> Supply:
        if self._supply is None:
            raise NotFound("supply")
        return self._supply

    def _bonded(self, contract: str) -> int:
        """Sum every delegation from the contract, requiring a single denomination."""
        delegations = self.querier.all_delegations(contract)
        if not delegations:
            return 0
        denom = delegations[0].amount.denom
        total = 0
        for delegation in delegations:
            if delegation.amount.denom != denom:
                raise DifferentBondDenom(denom, delegation.amount.denom)
            total = checked_add(total, delegation.amount.amount)
        return total

    @staticmethod
    def _assert_bonds(supply: Supply, bonded: int) -> None:
        if supply.bonded != bonded:
            raise BondedMismatch(supply.bonded, bonded)

    def instantiate(self, env: Env, info: MessageInfo, msg: InstantiateMsg) -> Response:
        if not any(v.address == msg.validator for v in self.querier.all_validators()):
            raise NotInValidatorSet(msg.validator)
        ledger = TokenLedger(
            TokenInfo(
                name=msg.name,
                symbol=msg.symbol,
                decimals=msg.decimals,
                total_supply=0,
                minter=env.contract_address,
                cap=None,
            )
        )
        investment = InvestmentInfo(
            owner=info.sender,
            bond_denom=self.querier.bonded_denom(),
            unbonding_period=msg.unbonding_period,
            exit_tax=msg.exit_tax,
            validator=msg.validator,
            min_withdrawal=msg.min_withdrawal,
        )
        self.contract_version = (CONTRACT_NAME, CONTRACT_VERSION)
        self._ledger = ledger
        self._investment = investment
        self._supply = Supply()
        self._claims = Claims()
        return Response()

    def bond(self, env: Env, info: MessageInfo) -> Response:
        """Bond the staking tokens sent and mint derivative tokens to the sender."""
        with self._atomic():
            invest = self._invest
            payment = next(
                (c for c in info.funds if c.denom == invest.bond_denom), None
            )
            if payment is None:
                raise EmptyBalance(invest.bond_denom)

            bonded = self._bonded(env.contract_address)
            supply = self._total
            self._assert_bonds(supply, bonded)
            if supply.issued == 0 or bonded == 0:
                to_mint = FALLBACK_RATIO.mul_int(payment.amount)
            else:
                to_mint = multiply_ratio(payment.amount, supply.issued, bonded)
            supply.bonded = checked_add(bonded, payment.amount)
            supply.issued = checked_add(supply.issued, to_mint)

            self._token.mint(env.contract_address, info.sender, to_mint)

            return (
                Response()
                .add_message(Delegate(validator=invest.validator, amount=payment))
                .add_attribute("action", "bond")
                .add_attribute("from", info.sender)
                .add_attribute("bonded", payment.amount)
                .add_attribute("minted", to_mint)
            )

    def unbond(self, env: Env, info: MessageInfo, amount: int) -> Response:
        """Burn derivative tokens, pay the exit tax to the owner and open a claim."""
        with self._atomic():
            invest = self._invest
            if amount < invest.min_withdrawal:
                raise UnbondTooSmall(invest.min_withdrawal, invest.bond_denom)
            tax = invest.exit_tax.mul_int(amount)

            self._token.burn(info.sender, amount)
            if tax > 0:
                self._token.mint(env.contract_address, invest.owner, tax)

            bonded = self._bonded(env.contract_address)
            remainder = checked_sub(amount, tax)
            supply = self._total
            self._assert_bonds(supply, bonded)
            unbonded = multiply_ratio(remainder, bonded, supply.issued)
            supply.bonded = checked_sub(bonded, unbonded)
            supply.issued = checked_sub(supply.issued, remainder)
            supply.claims = checked_add(supply.claims, unbonded)

            self._claims.create_claim(
                info.sender, unbonded, invest.unbonding_period.after(env.block)
            )

            return (
                Response()
                .add_message(
                    Undelegate(
                        validator=invest.validator,
                        amount=coin(unbonded, invest.bond_denom),
                    )
                )
                .add_attribute("action", "unbond")
                .add_attribute("to", info.sender)
                .add_attribute("unbonded", unbonded)
                .add_attribute("burnt", amount)
            )

    def claim(self, env: Env, info: MessageInfo) -> Response:
        """Pay out the sender's matured claims, as far as the contract's balance allows."""
        with self._atomic():
            invest = self._invest
            balance = self.querier.balance(env.contract_address, invest.bond_denom)
            if balance.amount < invest.min_withdrawal:
                raise BalanceTooSmall()

            to_send = self._claims.claim_tokens(info.sender, env.block, balance.amount)
            if to_send == 0:
                raise NothingToClaim()

            supply = self._total
            supply.claims = checked_sub(supply.claims, to_send)

            return (
                Response()
                .add_message(
                    BankSend(
                        to_address=info.sender,
                        amount=(coin(to_send, invest.bond_denom),),
                    )
                )
                .add_attribute("action", "claim")
                .add_attribute("from", info.sender)
                .add_attribute("amount", to_send)
            )

    def reinvest(self, env: Env, info: MessageInfo) -> Response:
        """Withdraw pending rewards, then call back into the contract to bond them."""
        invest = self._invest
        return (
            Response()
            .add_message(WithdrawDelegatorReward(validator=invest.validator))
            .add_message(
                WasmExecute(
                    contract_addr=env.contract_address,
                    msg={"_bond_all_tokens": {}},
                )
            )
        )

    def bond_all_tokens(self, env: Env, info: MessageInfo) -> Response:
        """Bond the contract's free balance; only the contract itself may call this.

        Does nothing when less than the minimum withdrawal is left after pending claims.
        """
        if info.sender != env.contract_address:
            raise Unauthorized()
        with self._atomic():
            invest = self._invest
            balance = self.querier.balance(env.contract_address, invest.bond_denom)
            supply = self._total
            try:
                free = checked_sub(balance.amount, supply.claims)
                checked_sub(free, invest.min_withdrawal)
            except ArithmeticOverflow:
                return Response()
            supply.bonded = checked_add(supply.bonded, free)
            to_bond = coin(free, invest.bond_denom)
            return (
                Response()
                .add_message(Delegate(validator=invest.validator, amount=to_bond))
                .add_attribute("action", "reinvest")
                .add_attribute("bonded", free)
            )

    def transfer(
        self, env: Env, info: MessageInfo, recipient: str, amount: int
    ) -> Response:
        with self._atomic():
            return self._token.transfer(info.sender, recipient, amount)

    def burn(self, env: Env, info: MessageInfo, amount: int) -> Response:
        with self._atomic():
            return self._token.burn(info.sender, amount)

    def send(
        self, env: Env, info: MessageInfo, contract: str, amount: int, msg: Any
    ) -> Response:
        with self._atomic():
            return self._token.send(info.sender, contract, amount, msg)

    def increase_allowance(
        self,
        env: Env,
        info: MessageInfo,
        spender: str,
        amount: int,
        expires: Expiration | None = None,
    ) -> Response:
        with self._atomic():
            return self._token.increase_allowance(
                info.sender, spender, amount, expires, env.block
            )

    def decrease_allowance(
        self,
        env: Env,
        info: MessageInfo,
        spender: str,
        amount: int,
        expires: Expiration | None = None,
    ) -> Response:
        with self._atomic():
            return self._token.decrease_allowance(
                info.sender, spender, amount, expires, env.block
            )

    def transfer_from(
        self, env: Env, info: MessageInfo, owner: str, recipient: str, amount: int
    ) -> Response:
        with self._atomic():
            return self._token.transfer_from(
                info.sender, owner, recipient, amount, env.block
            )

    def burn_from(self, env: Env, info: MessageInfo, owner: str, amount: int) -> Response:
        with self._atomic():
            return self._token.burn_from(info.sender, owner, amount, env.block)

    def send_from(
        self,
        env: Env,
        info: MessageInfo,
        owner: str,
        contract: str,
        amount: int,
        msg: Any,
    ) -> Response:
        with self._atomic():
            return self._token.send_from(
                info.sender, owner, contract, amount, msg, env.block
            )

    def investment(self) -> InvestmentResponse:
        invest = self._invest
        supply = self._total
        if supply.issued == 0:
            nominal = FALLBACK_RATIO
        else:
            nominal = FixedDecimal.from_ratio(supply.bonded, supply.issued)
        return InvestmentResponse(
            token_supply=supply.issued,
            staked_tokens=coin(supply.bonded, invest.bond_denom),
            nominal_value=nominal,
            owner=invest.owner,
            exit_tax=invest.exit_tax,
            validator=invest.validator,
            min_withdrawal=invest.min_withdrawal,
        )

    def token_info(self) -> TokenInfo:
        return replace(self._token.info)

    def balance(self, address: str) -> int:
        return self._token.balance(address)

    def allowance(self, owner: str, spender: str) -> tuple[int, Expiration]:
        return self._token.allowance(owner, spender)

    def claims(self, address: str) -> list[Claim]:
        return self._claims.query_claims(address)