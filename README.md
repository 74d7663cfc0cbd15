# stakestream

Two token contracts that keep all their state in memory:

- **Staking derivative** (`stakestream.staking.StakingContract`). Users bond a
  native staking denomination to one validator. In return they receive a
  derivative token. The token's nominal value is the ratio of bonded tokens to
  issued tokens. Unbonding burns derivative tokens and mints an exit tax to the
  contract's owner. It also opens a claim that can be paid out once the
  unbonding period has passed. The derivative is also a fungible token with
  transfers, allowances, burns and sends.
- **Token streams** (`stakestream.streams.StreamContract`). Deposits vest
  linearly at a whole number of tokens per second, from a start time to an end
  time. The recipient can withdraw whatever has vested so far.

## Installation

```
pip install .
```

To also install the test dependency, use `pip install .[test]`.

## Modules

- `stakestream.types`: these are the value types.
  - `FixedDecimal` is an 18-place fixed-point number.
  - `Coin`, `coin` and `coins` describe amounts of a denomination.
  - `checked_add`, `checked_sub` and `multiply_ratio` are unsigned 128-bit
    arithmetic that raises `ArithmeticOverflow` on overflow.
  - `BlockInfo`, `Env` and `MessageInfo` describe the block, the contract and
    the sender of a call.
  - `Duration` (with `HOUR`, `DAY` and `WEEK`) and `Expiration` handle time.
  - The outgoing messages are `Delegate`, `Undelegate`, `BankSend`,
    `WithdrawDelegatorReward` and `WasmExecute`.
  - `Response` holds a call's messages and attributes.
- `stakestream.errors`: `ContractError` and its subclasses. Errors compare
  equal when they have the same class and the same fields.
- `stakestream.ledger`: the token and claim bookkeeping.
  - `TokenLedger` holds balances and allowances.
  - `Claims` tracks unbonding claims.
  - `Supply` and `InvestmentInfo` hold the staking contract's state.
- `stakestream.chain`: `MockQuerier`, together with `Validator` and
  `Delegation`, is an in-memory view of validators, delegations and bank
  balances.
- `stakestream.staking`: `StakingContract`, `InstantiateMsg` and
  `InvestmentResponse`.
- `stakestream.streams`: `StreamContract`, `CreateStream`, `Stream`,
  `StreamResponse` and `Config`.

## Staking example

```python
from stakestream.chain import Delegation, MockQuerier, Validator
from stakestream.staking import InstantiateMsg, StakingContract
from stakestream.types import DAY, Env, FixedDecimal, MessageInfo, coin

querier = MockQuerier()
querier.update_staking("ustake", [Validator("default-validator")], [])

contract = StakingContract(querier)
env = Env()  # default block and contract address
contract.instantiate(env, MessageInfo("creator"), InstantiateMsg(
    name="Cool Derivative",
    symbol="DRV",
    decimals=9,
    validator="default-validator",
    unbonding_period=DAY * 3,
    exit_tax=FixedDecimal.percent(2),
    min_withdrawal=50,
))

response = contract.bond(env, MessageInfo("bob", (coin(1000, "ustake"),)))
assert contract.balance("bob") == 1000
print(response.messages[0])                 # Delegate(validator=..., amount=Coin(...))
print(contract.investment().nominal_value)  # 1
```

The contract checks that the delegations reported by the querier agree with
the amount it has recorded as bonded. If they differ, it raises
`BondedMismatch`. After a bond or unbond, update the querier to match:

```python
querier.update_staking(
    "ustake",
    [Validator("default-validator")],
    [Delegation(env.contract_address, "default-validator", coin(1000, "ustake"))],
)
```

`reinvest` returns a `WithdrawDelegatorReward` message and a `WasmExecute`
call back to the contract. `bond_all_tokens` bonds the contract's free
balance. Only the contract's own address may call it.

Each executing call is atomic. If it raises a `ContractError`, the contract's
state is left unchanged.

## Streams example

```python
from stakestream.streams import CreateStream, StreamContract
from stakestream.types import Env, MessageInfo

env = Env()
start = env.block.time + 100

streams = StreamContract()
streams.instantiate(MessageInfo("creator"), "cw20")
streams.receive(env, MessageInfo("cw20"), "alice", 200,
                CreateStream(recipient="bob", start_time=start, end_time=start + 200))

response = streams.withdraw(env.later(150), MessageInfo("bob"), 1)
print(response.attribute("amount"))  # "50"
```

`receive` accepts calls only from the configured token address. If the deposit
does not divide evenly by the duration, the remainder is returned to the owner
as a transfer message. `list_streams(start, limit)` returns streams in id
order, five at a time by default.

## What this package does not do

The contracts only record state and return `Response` objects. Nothing
executes the messages in a response. A `Delegate`, `BankSend` or `WasmExecute`
does not move funds or call another contract. The chain view lives only in
`MockQuerier` and is updated by hand. State is not persisted anywhere. Messages
are not serialized to or parsed from JSON. There is no command-line tool and
no server.

## Tests

```
pytest
```