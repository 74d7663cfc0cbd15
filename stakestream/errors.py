"""Errors raised by the staking and streaming contracts."""

from __future__ import annotations

from typing import Any


class ContractError(Exception):
    """Base class of every error a contract raises.

    Two errors are equal when they are of the same class and carry the same fields.
    """

    template = "Contract error"

    def __init__(self, **fields: Any) -> None:
        self.fields = dict(fields)
        for name, value in fields.items():
            setattr(self, name, value)
        super().__init__(self.template.format(**fields))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ContractError):
            return NotImplemented
        return type(self) is type(other) and self.fields == other.fields

    def __hash__(self) -> int:
        return hash((type(self).__name__, repr(sorted(self.fields.items()))))

    def __repr__(self) -> str:
        inner = ", ".join(f"{key}={value!r}" for key, value in self.fields.items())
        return f"{type(self).__name__}({inner})"


class StdError(ContractError):
    """Errors from the standard runtime: arithmetic, storage and parsing."""

    template = "Standard error"


class ArithmeticOverflow(StdError):
    template = "Overflow: Cannot {operation} with {left} and {right}"

    def __init__(self, operation: str, left: int, right: int) -> None:
        super().__init__(operation=operation, left=left, right=right)


class NotFound(StdError):
    template = "{kind} not found"

    def __init__(self, kind: str) -> None:
        super().__init__(kind=kind)


class GenericError(StdError):
    template = "Generic error: {msg}"

    def __init__(self, msg: str) -> None:
        super().__init__(msg=msg)


class Unauthorized(ContractError):
    """The sender may not perform this action.

    The optional text only changes the message; it plays no part in equality.
    """

    template = "Unauthorized"

    def __init__(self, text: str | None = None) -> None:
        super().__init__()
        if text:
            self.args = (text,)


class NotInValidatorSet(ContractError):
    template = "Validator '{validator}' not in current validator set"

    def __init__(self, validator: str) -> None:
        super().__init__(validator=validator)


class DifferentBondDenom(ContractError):
    template = "Different denominations in bonds: '{denom1}' vs. '{denom2}'"

    def __init__(self, denom1: str, denom2: str) -> None:
        super().__init__(denom1=denom1, denom2=denom2)


class BondedMismatch(ContractError):
    template = "Stored bonded {stored}, but query bonded {queried}"

    def __init__(self, stored: int, queried: int) -> None:
        super().__init__(stored=stored, queried=queried)


class EmptyBalance(ContractError):
    template = "No {denom} tokens sent"

    def __init__(self, denom: str) -> None:
        super().__init__(denom=denom)


class UnbondTooSmall(ContractError):
    template = "Must unbond at least {min_bonded} {denom}"

    def __init__(self, min_bonded: int, denom: str) -> None:
        super().__init__(min_bonded=min_bonded, denom=denom)


class BalanceTooSmall(ContractError):
    template = "Insufficient balance in contract to process claim"


class NothingToClaim(ContractError):
    template = "No claims that can be released currently"


class CannotSetOwnAccount(ContractError):
    template = "Cannot set to own account"


class InvalidExpiration(ContractError):
    template = "Invalid expiration"


class InvalidZeroAmount(ContractError):
    template = "Invalid zero amount"


class Expired(ContractError):
    template = "Allowance is expired"


class NoAllowance(ContractError):
    template = "No allowance for this account"


class CannotExceedCap(ContractError):
    template = "Minting cannot exceed the cap"


class DuplicateInitialBalanceAddresses(ContractError):
    template = "Duplicate initial balance addresses"


class InvalidStartTime(ContractError):
    template = (
        "The start time is invalid. Start time must be before the end time "
        "and after the current block time"
    )


class StreamFullyClaimed(ContractError):
    template = "The stream has been fully claimed"


class NotStreamRecipient(ContractError):
    template = "The stream can only be claimed by original recipient"

    def __init__(self, recipient: str) -> None:
        super().__init__(recipient=recipient)


class NoFundsToClaim(ContractError):
    template = "No tokens have vested for this stream."


class StreamNotFound(ContractError):
    template = "Stream does not exist."


class AmountLessThanDuration(ContractError):
    template = "Amount must be greater than duration"


class InvalidRecipient(ContractError):
    template = "Stream recipient cannot be the stream owner"


class NumericOverflow(ContractError):
    template = "Numerical overflow"