import pytest

from stakestream.chain import Delegation, MockQuerier, Validator
from stakestream.errors import (
    ArithmeticOverflow,
    BalanceTooSmall,
    BondedMismatch,
    DifferentBondDenom,
    EmptyBalance,
    NotInValidatorSet,
    NothingToClaim,
    UnbondTooSmall,
    Unauthorized,
)
from stakestream.ledger import Claim
from stakestream.staking import InstantiateMsg, StakingContract
from stakestream.types import (
    DAY,
    HOUR,
    MOCK_CONTRACT_ADDR,
    WEEK,
    BankSend,
    Coin,
    Delegate,
    Duration,
    Env,
    FixedDecimal,
    MessageInfo,
    Undelegate,
    WasmExecute,
    WithdrawDelegatorReward,
    coin,
    coins,
)

DEFAULT_VALIDATOR = "default-validator"


def sample_validator(addr):
    return Validator(
        address=addr,
        commission=FixedDecimal.percent(3),
        max_commission=FixedDecimal.percent(10),
        max_change_rate=FixedDecimal.percent(1),
    )


def sample_delegation(addr, amount: Coin):
    return Delegation(
        delegator=MOCK_CONTRACT_ADDR,
        validator=addr,
        amount=amount,
        can_redelegate=amount,
        accumulated_rewards=tuple(coins(0, amount.denom)),
    )


def set_validator(querier):
    querier.update_staking("ustake", [sample_validator(DEFAULT_VALIDATOR)], [])


def set_delegation(querier, amount, denom):
    querier.update_staking(
        "ustake",
        [sample_validator(DEFAULT_VALIDATOR)],
        [sample_delegation(DEFAULT_VALIDATOR, coin(amount, denom))],
    )


def later(env: Env, delta: Duration) -> Env:
    assert delta.kind == "time"
    return env.later(delta.value)


def default_instantiate(tax_percent, min_withdrawal):
    return InstantiateMsg(
        name="Cool Derivative",
        symbol="DRV",
        decimals=9,
        validator=DEFAULT_VALIDATOR,
        unbonding_period=DAY * 3,
        exit_tax=FixedDecimal.percent(tax_percent),
        min_withdrawal=min_withdrawal,
    )


def info(sender, *funds):
    return MessageInfo(sender=sender, funds=tuple(funds))


@pytest.fixture
def contract():
    querier = MockQuerier()
    set_validator(querier)
    return StakingContract(querier)


def test_instantiation_with_missing_validator():
    querier = MockQuerier()
    querier.update_staking("ustake", [sample_validator("john")], [])
    contract = StakingContract(querier)
    msg = InstantiateMsg(
        name="Cool Derivative",
        symbol="DRV",
        decimals=9,
        validator="my-validator",
        unbonding_period=WEEK,
        exit_tax=FixedDecimal.percent(2),
        min_withdrawal=50,
    )
    with pytest.raises(NotInValidatorSet) as excinfo:
        contract.instantiate(Env(), info("creator"), msg)
    assert excinfo.value == NotInValidatorSet("my-validator")


def test_proper_instantiation():
    querier = MockQuerier()
    querier.update_staking(
        "ustake",
        [sample_validator("john"), sample_validator("mary"), sample_validator("my-validator")],
        [],
    )
    contract = StakingContract(querier)
    msg = InstantiateMsg(
        name="Cool Derivative",
        symbol="DRV",
        decimals=0,
        validator="my-validator",
        unbonding_period=HOUR * 12,
        exit_tax=FixedDecimal.percent(2),
        min_withdrawal=50,
    )
    res = contract.instantiate(Env(), info("creator"), msg)
    assert res.messages == []

    token = contract.token_info()
    assert token.name == msg.name
    assert token.symbol == msg.symbol
    assert token.decimals == msg.decimals
    assert token.total_supply == 0

    assert contract.balance("creator") == 0
    assert contract.claims("creator") == []

    invest = contract.investment()
    assert invest.owner == "creator"
    assert invest.validator == msg.validator
    assert invest.exit_tax == msg.exit_tax
    assert invest.min_withdrawal == msg.min_withdrawal
    assert invest.token_supply == 0
    assert invest.staked_tokens == coin(0, "ustake")
    assert invest.nominal_value == FixedDecimal.one()


def test_bonding_issues_tokens(contract):
    res = contract.instantiate(Env(), info("creator"), default_instantiate(2, 50))
    assert res.messages == []

    res = contract.bond(Env(), info("bob", coin(10, "random"), coin(1000, "ustake")))
    assert res.messages == [Delegate(validator=DEFAULT_VALIDATOR, amount=coin(1000, "ustake"))]
    assert res.attribute("minted") == "1000"

    assert contract.balance("bob") == 1000

    invest = contract.investment()
    assert invest.token_supply == 1000
    assert invest.staked_tokens == coin(1000, "ustake")
    assert invest.nominal_value == FixedDecimal.one()

    assert contract.token_info().total_supply == 1000


def test_rebonding_changes_pricing(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(2, 50))
    res = contract.bond(Env(), info("bob", coin(10, "random"), coin(1000, "ustake")))
    assert len(res.messages) == 1

    set_delegation(contract.querier, 1000, "ustake")
    contract.querier.update_balance(MOCK_CONTRACT_ADDR, coins(500, "ustake"))
    contract.bond_all_tokens(Env(), info(MOCK_CONTRACT_ADDR))

    set_delegation(contract.querier, 1500, "ustake")

    ratio = FixedDecimal.from_str("1.5")
    invest = contract.investment()
    assert invest.token_supply == 1000
    assert invest.staked_tokens == coin(1500, "ustake")
    assert invest.nominal_value == ratio

    res = contract.bond(Env(), info("alice", coin(3000, "ustake")))
    assert len(res.messages) == 1

    set_delegation(contract.querier, 3000, "ustake")
    assert contract.balance("alice") == 2000

    invest = contract.investment()
    assert invest.token_supply == 3000
    assert invest.staked_tokens == coin(4500, "ustake")
    assert invest.nominal_value == ratio


def test_bonding_fails_with_wrong_denom(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(2, 50))
    with pytest.raises(EmptyBalance) as excinfo:
        contract.bond(Env(), info("bob", coin(500, "photon")))
    assert excinfo.value == EmptyBalance("ustake")


def test_unbonding_maintains_price_ratio(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(10, 50))
    res = contract.bond(Env(), info("bob", coin(10, "random"), coin(1000, "ustake")))
    assert len(res.messages) == 1

    set_delegation(contract.querier, 1000, "ustake")
    contract.querier.update_balance(MOCK_CONTRACT_ADDR, coins(500, "ustake"))
    contract.bond_all_tokens(Env(), info(MOCK_CONTRACT_ADDR))

    set_delegation(contract.querier, 1500, "ustake")
    contract.querier.update_balance(MOCK_CONTRACT_ADDR, [])

    with pytest.raises(ArithmeticOverflow) as excinfo:
        contract.unbond(Env(), info("creator"), 600)
    assert excinfo.value == ArithmeticOverflow("Sub", 0, 600)

    env = Env()
    res = contract.unbond(env, info("bob"), 600)
    assert res.messages == [Undelegate(validator=DEFAULT_VALIDATOR, amount=coin(810, "ustake"))]

    set_delegation(contract.querier, 690, "ustake")

    assert contract.balance("bob") == 400
    assert contract.balance("creator") == 60
    assert contract.claims("bob") == [Claim(amount=810, release_at=(DAY * 3).after(env.block))]

    invest = contract.investment()
    assert invest.token_supply == 460
    assert invest.staked_tokens == coin(690, "ustake")
    assert invest.nominal_value == FixedDecimal.from_str("1.5")


def test_claims_paid_out_properly(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(10, 50))
    contract.bond(Env(), info("bob", *coins(1000, "ustake")))
    set_delegation(contract.querier, 1000, "ustake")

    env = Env()
    bob = info("bob")
    contract.unbond(env, bob, 600)
    set_delegation(contract.querier, 460, "ustake")

    assert contract.claims("bob") == [Claim(amount=540, release_at=(DAY * 3).after(env.block))]

    claim_ready = later(env, DAY * 3 + HOUR)
    too_soon = later(env, DAY)
    with pytest.raises(BalanceTooSmall):
        contract.claim(claim_ready, bob)

    contract.querier.update_balance(MOCK_CONTRACT_ADDR, coins(540, "ustake"))
    with pytest.raises(NothingToClaim):
        contract.claim(too_soon, bob)

    res = contract.claim(claim_ready, bob)
    assert res.messages == [BankSend(to_address="bob", amount=tuple(coins(540, "ustake")))]
    assert contract.claims("bob") == []


def test_cw20_imports_work(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(2, 50))
    contract.bond(Env(), info("bob", coin(10, "random"), coin(1000, "ustake")))
    assert contract.balance("bob") == 1000

    bob = info("bob")
    contract.transfer(Env(), bob, "carl", 200)
    assert contract.balance("bob") == 800
    assert contract.balance("carl") == 200

    contract.increase_allowance(Env(), bob, "alice", 350, None)
    assert contract.balance("bob") == 800
    assert contract.balance("alice") == 0
    assert contract.allowance("bob", "alice")[0] == 350

    contract.transfer_from(Env(), info("alice"), "bob", "alice", 250)
    assert contract.balance("bob") == 550
    assert contract.balance("alice") == 250
    assert contract.allowance("bob", "alice")[0] == 100

    with pytest.raises(ArithmeticOverflow):
        contract.burn(Env(), bob, 1000)
    assert contract.balance("bob") == 550
    contract.burn(Env(), bob, 130)
    assert contract.balance("bob") == 420


def test_unbond_below_minimum_is_rejected(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(10, 50))
    contract.bond(Env(), info("bob", coin(1000, "ustake")))
    with pytest.raises(UnbondTooSmall) as excinfo:
        contract.unbond(Env(), info("bob"), 49)
    assert excinfo.value == UnbondTooSmall(50, "ustake")
    assert contract.balance("bob") == 1000


def test_failed_unbond_rolls_back_state(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(10, 50))
    contract.bond(Env(), info("bob", coin(1000, "ustake")))
    set_delegation(contract.querier, 999, "ustake")
    with pytest.raises(BondedMismatch) as excinfo:
        contract.unbond(Env(), info("bob"), 600)
    assert excinfo.value == BondedMismatch(1000, 999)
    assert contract.balance("bob") == 1000
    assert contract.balance("creator") == 0
    assert contract.token_info().total_supply == 1000
    assert contract.claims("bob") == []


def test_bond_rejects_mixed_delegation_denoms(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(2, 50))
    contract.querier.update_staking(
        "ustake",
        [sample_validator(DEFAULT_VALIDATOR)],
        [
            sample_delegation(DEFAULT_VALIDATOR, coin(10, "ustake")),
            sample_delegation(DEFAULT_VALIDATOR, coin(10, "photon")),
        ],
    )
    with pytest.raises(DifferentBondDenom) as excinfo:
        contract.bond(Env(), info("bob", coin(100, "ustake")))
    assert excinfo.value == DifferentBondDenom("ustake", "photon")
    assert contract.balance("bob") == 0


def test_reinvest_withdraws_and_calls_back(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(2, 50))
    res = contract.reinvest(Env(), info("anyone"))
    assert res.messages == [
        WithdrawDelegatorReward(validator=DEFAULT_VALIDATOR),
        WasmExecute(contract_addr=MOCK_CONTRACT_ADDR, msg={"_bond_all_tokens": {}}),
    ]


def test_bond_all_tokens_only_from_contract(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(2, 50))
    with pytest.raises(Unauthorized):
        contract.bond_all_tokens(Env(), info("bob"))


def test_bond_all_tokens_below_minimum_is_noop(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(2, 50))
    contract.querier.update_balance(MOCK_CONTRACT_ADDR, coins(49, "ustake"))
    res = contract.bond_all_tokens(Env(), info(MOCK_CONTRACT_ADDR))
    assert res.messages == []
    assert contract.investment().staked_tokens == coin(0, "ustake")


def test_bond_all_tokens_reports_bonded_amount(contract):
    contract.instantiate(Env(), info("creator"), default_instantiate(2, 50))
    contract.querier.update_balance(MOCK_CONTRACT_ADDR, coins(300, "ustake"))
    res = contract.bond_all_tokens(Env(), info(MOCK_CONTRACT_ADDR))
    assert res.messages == [Delegate(validator=DEFAULT_VALIDATOR, amount=coin(300, "ustake"))]
    assert res.attribute("bonded") == "300"
    assert contract.investment().staked_tokens == coin(300, "ustake")