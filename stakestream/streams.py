"""A contract that streams received tokens to a recipient at a fixed rate per second."""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Any

from stakestream.errors import (
    AmountLessThanDuration,
    GenericError,
    InvalidStartTime,
    NoFundsToClaim,
    NotFound,
    NotStreamRecipient,
    NumericOverflow,
    StreamFullyClaimed,
    StreamNotFound,
    Unauthorized,
)
from stakestream.types import (
    Env,
    MessageInfo,
    Response,
    WasmExecute,
    checked_sub,
    multiply_ratio,
)

DEFAULT_LIST_LIMIT = 5


@dataclass(frozen=True)
class Config:
    """Who owns the contract and which token it streams."""

    owner: str
    cw20_addr: str


@dataclass(frozen=True)
class Stream:
    """Tokens released to a recipient between start_time and end_time."""

    owner: str
    recipient: str
    amount: int
    claimed_amount: int
    start_time: int
    end_time: int
    rate_per_second: int


@dataclass(frozen=True)
class CreateStream:
    """The request carried with received tokens to open a new stream."""

    recipient: str
    start_time: int
    end_time: int


@dataclass(frozen=True)
class StreamResponse:
    """A stream as reported by queries, with its id."""

    id: int
    owner: str
    recipient: str
    amount: int
    claimed_amount: int
    start_time: int
    end_time: int
    rate_per_second: int


def _validate_address(address: str) -> str:
    if not address:
        raise GenericError("Invalid input: address is empty")
    if address.lower() != address:
        raise GenericError("Invalid input: address not normalized")
    return address


def _transfer(cw20_addr: str, recipient: str, amount: int) -> WasmExecute:
    return WasmExecute(
        contract_addr=cw20_addr,
        msg={"transfer": {"recipient": recipient, "amount": amount}},
    )


def _response(stream_id: int, stream: Stream) -> StreamResponse:
    return StreamResponse(
        id=stream_id,
        owner=stream.owner,
        recipient=stream.recipient,
        amount=stream.amount,
        claimed_amount=stream.claimed_amount,
        start_time=stream.start_time,
        end_time=stream.end_time,
        rate_per_second=stream.rate_per_second,
    )


class StreamContract:
    """Holds streams funded with a single token and pays them out as they vest."""

    def __init__(self) -> None:
        self._config: Config | None = None
        self._streams: dict[int, Stream] = {}
        self._last_id = 0

    def _loaded_config(self) -> Config:
        if self._config is None:
            raise NotFound("config")
        return self._config

    def instantiate(
        self, info: MessageInfo, cw20_addr: str, owner: str | None = None
    ) -> Response:
        owner_addr = _validate_address(owner) if owner is not None else info.sender
        self._config = Config(owner=owner_addr, cw20_addr=_validate_address(cw20_addr))
        self._streams.clear()
        self._last_id = 0
        return (
            Response()
            .add_attribute("method", "instantiate")
            .add_attribute("owner", owner_addr)
            .add_attribute("cw20_addr", cw20_addr)
        )

    def receive(
        self, env: Env, info: MessageInfo, sender: str, amount: int, msg: Any
    ) -> Response:
        """Handle tokens sent by the token contract on behalf of sender."""
        config = self._loaded_config()
        if config.cw20_addr != info.sender:
            raise Unauthorized()
        if not isinstance(msg, CreateStream):
            raise GenericError(f"Unknown receive message: {msg!r}")
        return self.create_stream(
            env, sender, msg.recipient, amount, msg.start_time, msg.end_time
        )

    def create_stream(
        self,
        env: Env,
        owner: str,
        recipient: str,
        amount: int,
        start_time: int,
        end_time: int,
    ) -> Response:
        config = self._loaded_config()
        owner = _validate_address(owner)
        recipient = _validate_address(recipient)

        if start_time > end_time or start_time <= env.block.time:
            raise InvalidStartTime()

        duration = end_time - start_time
        if amount < duration:
            raise AmountLessThanDuration()
        if duration == 0:
            raise NumericOverflow()

        # The rate must be a whole number per second; what does not divide evenly goes back.
        refund = amount % duration
        amount -= refund
        rate_per_second = amount // duration

        stream = Stream(
            owner=owner,
            recipient=recipient,
            amount=amount,
            claimed_amount=0,
            start_time=start_time,
            end_time=end_time,
            rate_per_second=rate_per_second,
        )
        self._last_id += 1
        stream_id = self._last_id
        self._streams[stream_id] = stream

        response = (
            Response()
            .add_attribute("method", "create_stream")
            .add_attribute("stream_id", stream_id)
            .add_attribute("owner", owner)
            .add_attribute("recipient", recipient)
            .add_attribute("amount", amount)
            .add_attribute("start_time", start_time)
            .add_attribute("end_time", end_time)
        )
        if refund > 0:
            response.add_message(_transfer(config.cw20_addr, owner, refund))
        return response

    def withdraw(self, env: Env, info: MessageInfo, stream_id: int) -> Response:
        """Pay the recipient everything vested in the stream and not yet claimed."""
        stream = self._streams.get(stream_id)
        if stream is None:
            raise StreamNotFound()
        if stream.recipient != info.sender:
            raise NotStreamRecipient(stream.recipient)
        if stream.claimed_amount >= stream.amount:
            raise StreamFullyClaimed()

        time_passed = max(min(env.block.time, stream.end_time) - stream.start_time, 0)
        vested = multiply_ratio(time_passed, stream.rate_per_second, 1)
        released = checked_sub(vested, stream.claimed_amount)
        if released == 0:
            raise NoFundsToClaim()

        self._streams[stream_id] = replace(stream, claimed_amount=vested)
        config = self._loaded_config()
        return (
            Response()
            .add_attribute("method", "withdraw")
            .add_attribute("stream_id", stream_id)
            .add_attribute("amount", released)
            .add_attribute("recipient", stream.recipient)
            .add_message(_transfer(config.cw20_addr, stream.recipient, released))
        )

    def config(self) -> Config:
        return self._loaded_config()

    def get_stream(self, stream_id: int) -> StreamResponse:
        stream = self._streams.get(stream_id)
        if stream is None:
            raise NotFound("stream")
        return _response(stream_id, stream)

    def list_streams(
        self, start: int | None = None, limit: int | None = None
    ) -> list[StreamResponse]:
        """Return streams in id order from start (inclusive), at most limit of them."""
        count = DEFAULT_LIST_LIMIT if limit is None else limit
        ids = sorted(i for i in self._streams if start is None or i >= start)
        return [_response(i, self._streams[i]) for i in ids[:count]]