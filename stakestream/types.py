"""Value types shared by the contracts: amounts, time, messages and responses."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any, Literal

from stakestream.errors import ArithmeticOverflow, GenericError

UINT128_MAX = 2**128 - 1
MOCK_CONTRACT_ADDR = "cosmos2contract"

_DECIMAL_PLACES = 18
_FRACTIONAL = 10**_DECIMAL_PLACES


def _check_range(value: int, operation: str, left: int, right: int) -> int:
    if value < 0 or value > UINT128_MAX:
        raise ArithmeticOverflow(operation, left, right)
    return value


def checked_add(left: int, right: int) -> int:
    """Add two unsigned 128-bit amounts, raising on overflow."""
    return _check_range(left + right, "Add", left, right)


def checked_sub(left: int, right: int) -> int:
    """Subtract two unsigned amounts, raising when the result would be negative."""
    return _check_range(left - right, "Sub", left, right)


def multiply_ratio(value: int, numerator: int, denominator: int) -> int:
    """Return floor(value * numerator / denominator)."""
    if denominator == 0:
        raise GenericError("Denominator must not be zero")
    return _check_range(value * numerator // denominator, "Mul", value, numerator)


@dataclass(frozen=True, order=True)
class FixedDecimal:
    """A non-negative fixed-point number with 18 decimal places."""

    atomics: int

    def __post_init__(self) -> None:
        if self.atomics < 0:
            raise GenericError("Decimal must not be negative")

    @classmethod
    def one(cls) -> FixedDecimal:
        return cls(_FRACTIONAL)

    @classmethod
    def percent(cls, value: int) -> FixedDecimal:
        return cls(value * _FRACTIONAL // 100)

    @classmethod
    def from_ratio(cls, numerator: int, denominator: int) -> FixedDecimal:
        if denominator == 0:
            raise GenericError("Denominator must not be zero")
        return cls(numerator * _FRACTIONAL // denominator)

    @classmethod
    def from_str(cls, text: str) -> FixedDecimal:
        whole, dot, fraction = text.partition(".")
        if not whole.isdigit() or (dot and not fraction.isdigit()):
            raise GenericError(f"Invalid decimal: {text!r}")
        if len(fraction) > _DECIMAL_PLACES:
            raise GenericError("Cannot parse more than 18 fractional digits")
        fraction = fraction.ljust(_DECIMAL_PLACES, "0")
        return cls(int(whole) * _FRACTIONAL + int(fraction))

    def is_zero(self) -> bool:
        return self.atomics == 0

    def mul_int(self, value: int) -> int:
        """Multiply an integer amount by this decimal, rounding down."""
        return _check_range(value * self.atomics // _FRACTIONAL, "Mul", value, self.atomics)

    def __mul__(self, other: int) -> int:
        if isinstance(other, int):
            return self.mul_int(other)
        return NotImplemented

    __rmul__ = __mul__

    def __str__(self) -> str:
        whole, fraction = divmod(self.atomics, _FRACTIONAL)
        if fraction == 0:
            return str(whole)
        digits = str(fraction).rjust(_DECIMAL_PLACES, "0").rstrip("0")
        return f"{whole}.{digits}"


@dataclass(frozen=True)
class Coin:
    denom: str
    amount: int


def coin(amount: int, denom: str) -> Coin:
    return Coin(denom=denom, amount=amount)


def coins(amount: int, denom: str) -> list[Coin]:
    return [Coin(denom=denom, amount=amount)]


@dataclass(frozen=True)
class BlockInfo:
    """The block a call runs in; time is in seconds."""

    height: int = 12_345
    time: int = 1_571_797_419
    chain_id: str = "cosmos-testnet-14002"

    def plus_seconds(self, seconds: int) -> BlockInfo:
        return replace(self, time=self.time + seconds)


@dataclass(frozen=True)
class Expiration:
    """A point at which something expires: a height, a time, or never."""

    kind: Literal["height", "time", "never"] = "never"
    value: int = 0

    @classmethod
    def at_height(cls, height: int) -> Expiration:
        return cls("height", height)

    @classmethod
    def at_time(cls, seconds: int) -> Expiration:
        return cls("time", seconds)

    @classmethod
    def never(cls) -> Expiration:
        return cls("never", 0)

    def is_expired(self, block: BlockInfo) -> bool:
        if self.kind == "height":
            return block.height >= self.value
        if self.kind == "time":
            return block.time >= self.value
        return False


@dataclass(frozen=True)
class Duration:
    """A span measured either in blocks or in seconds."""

    kind: Literal["height", "time"]
    value: int

    @classmethod
    def time(cls, seconds: int) -> Duration:
        return cls("time", seconds)

    @classmethod
    def height(cls, blocks: int) -> Duration:
        return cls("height", blocks)

    def after(self, block: BlockInfo) -> Expiration:
        if self.kind == "height":
            return Expiration.at_height(block.height + self.value)
        return Expiration.at_time(block.time + self.value)

    def __add__(self, other: Duration) -> Duration:
        if not isinstance(other, Duration):
            return NotImplemented
        if other.kind != self.kind:
            raise GenericError(f"Cannot add {self.kind} and {other.kind} durations")
        return Duration(self.kind, self.value + other.value)

    def __mul__(self, factor: int) -> Duration:
        if not isinstance(factor, int):
            return NotImplemented
        return Duration(self.kind, self.value * factor)

    __rmul__ = __mul__


HOUR = Duration.time(60 * 60)
DAY = HOUR * 24
WEEK = DAY * 7


@dataclass(frozen=True)
class Env:
    block: BlockInfo = field(default_factory=BlockInfo)
    contract_address: str = MOCK_CONTRACT_ADDR

    def later(self, seconds: int) -> Env:
        return replace(self, block=self.block.plus_seconds(seconds))


@dataclass(frozen=True)
class MessageInfo:
    sender: str
    funds: tuple[Coin, ...] = ()


@dataclass(frozen=True)
class Delegate:
    validator: str
    amount: Coin


@dataclass(frozen=True)
class Undelegate:
    validator: str
    amount: Coin


@dataclass(frozen=True)
class BankSend:
    to_address: str
    amount: tuple[Coin, ...]


@dataclass(frozen=True)
class WithdrawDelegatorReward:
    validator: str


@dataclass(frozen=True)
class WasmExecute:
    contract_addr: str
    msg: Any
    funds: tuple[Coin, ...] = ()


@dataclass
class Response:
    """The messages and attributes a contract call produces."""

    messages: list[Any] = field(default_factory=list)
    attributes: list[tuple[str, str]] = field(default_factory=list)

    def add_message(self, msg: Any) -> Response:
        self.messages.append(msg)
        return self

    def add_attribute(self, key: str, value: Any) -> Response:
        self.attributes.append((key, str(value)))
        return self

    def attribute(self, key: str) -> str:
        """Return the value of the first attribute with this key."""
        for name, value in self.attributes:
            if name == key:
                return value
        raise KeyError(key)