"""
End-to-end counter lifecycle on the in-process sandbox: deploy, increase,
code-only upgrade, code+data upgrade and the owner-gated V3 decrease.
"""
import pytest

from counter_sdk.contracts.counter import CounterContract
from counter_sdk.errors import ExitCode, NotDeployedError, OperationRejected
from counter_sdk.messages import ContractState, CounterConfig, Opcode, config_to_cell, state_to_cell
from counter_sdk.sandbox import Blockchain, reference_code
from counter_sdk.upgrade import ContractVersion
from counter_sdk.utils.units import to_nano

VALUE = to_nano("0.05")


def test_deploy_then_increase(deploy_counter, deployer, code_v1):
    counter = deploy_counter(code_v1, id=0, counter=0)
    assert counter.is_deployed()
    assert counter.get_counter() == 0
    assert counter.get_id() == 0

    result = counter.send_increase(deployer, increase_by=100, value=VALUE)
    assert result.has_transaction(
        sender=deployer.address, to=counter.address, op=Opcode.INCREASE, success=True
    )
    assert counter.get_counter() == 100


@pytest.mark.parametrize("n", [0, 1, 12345, (1 << 32) - 1])
def test_increase_adds_exactly_n(deploy_counter, deployer, code_v1, n):
    counter = deploy_counter(code_v1)
    before = counter.get_counter()
    counter.send_increase(deployer, increase_by=n, value=VALUE).raise_for_failure()
    assert counter.get_counter() == before + n


def test_address_derivation_is_deterministic(code_v1, code_v2):
    a = CounterContract.create_from_config(CounterConfig(id=1, counter=0), code_v1)
    b = CounterContract.create_from_config(CounterConfig(id=1, counter=0), code_v1)
    assert a.address == b.address
    assert a.init == b.init
    assert CounterContract.create_from_config(CounterConfig(id=2), code_v1).address != a.address
    assert CounterContract.create_from_config(CounterConfig(id=1), code_v2).address != a.address


def test_upgrade_code_to_v2_keeps_state(deploy_counter, deployer, code_v1, code_v2):
    counter = deploy_counter(code_v1)
    counter.send_increase(deployer, increase_by=100, value=VALUE).raise_for_failure()

    # decrease is not part of V1
    rejected = counter.send_decrease(deployer, decrease_by=1, value=VALUE)
    tx = rejected.find(op=Opcode.DECREASE, success=False)[0]
    assert tx.exit_code == ExitCode.UNKNOWN_OP

    counter.send_upgrade(deployer, code=code_v2, value=VALUE).raise_for_failure()
    assert counter.get_counter() == 100

    counter.send_decrease(deployer, decrease_by=50, value=VALUE).raise_for_failure()
    assert counter.get_counter() == 50


def test_upgrade_code_and_data_to_v2(deploy_counter, deployer, code_v1, code_v2):
    counter = deploy_counter(code_v1)
    counter.send_increase(deployer, increase_by=100, value=VALUE).raise_for_failure()

    data = config_to_cell(CounterConfig(id=0, counter=10000))
    result = counter.send_upgrade_all(deployer, code=code_v2, data=data, value=VALUE)
    assert result.has_transaction(op=Opcode.UPGRADE_ALL, success=True)
    assert counter.get_counter() == 10000

    counter.send_decrease(deployer, decrease_by=50, value=VALUE).raise_for_failure()
    assert counter.get_counter() == 9950


def test_v3_decrease_is_owner_gated(blockchain, deploy_counter, deployer, code_v1, code_v3):
    upgrader = blockchain.treasury("upgrader")
    stranger = blockchain.treasury("stranger")
    counter = deploy_counter(code_v1)
    counter.send_increase(deployer, increase_by=100, value=VALUE).raise_for_failure()

    data = state_to_cell(ContractState(id=0, counter=10000, owner=upgrader.address))
    counter.send_upgrade_all(upgrader, code=code_v3, data=data, value=VALUE).raise_for_failure()
    assert counter.get_counter() == 10000

    before = stranger.balance
    result = counter.send_decrease(stranger, decrease_by=50, value=VALUE)
    failed = result.find(sender=stranger.address, op=Opcode.DECREASE, success=False)
    assert len(failed) == 1
    assert failed[0].exit_code == ExitCode.NOT_OWNER
    assert failed[0].bounced
    assert stranger.balance == before
    assert counter.get_counter() == 10000

    with pytest.raises(OperationRejected) as ei:
        result.raise_for_failure()
    assert ei.value.sender == stranger.address.to_raw()
    assert ei.value.opcode == Opcode.DECREASE
    assert ei.value.exit_code_enum is ExitCode.NOT_OWNER

    counter.send_decrease(upgrader, decrease_by=50, value=VALUE).raise_for_failure()
    assert counter.get_counter() == 9950


def test_code_only_upgrade_to_v3_underflows_on_next_message(deploy_counter, deployer, code_v1, code_v3):
    counter = deploy_counter(code_v1)
    counter.send_upgrade(deployer, code=code_v3, value=VALUE).raise_for_failure()

    result = counter.send_increase(deployer, increase_by=1, value=VALUE)
    assert result.find(success=False)[0].exit_code == ExitCode.CELL_UNDERFLOW
    with pytest.raises(OperationRejected) as ei:
        counter.get_counter()
    assert ei.value.exit_code == ExitCode.CELL_UNDERFLOW
    assert ei.value.method == "get_counter"


def test_overflow_fails_without_mutation(deploy_counter, deployer, code_v2):
    counter = deploy_counter(code_v2, counter=5)
    result = counter.send_decrease(deployer, decrease_by=6, value=VALUE)
    assert result.find(success=False)[0].exit_code == ExitCode.INTEGER_OUT_OF_RANGE
    assert counter.get_counter() == 5


def test_increase_past_uint32_fails_instead_of_wrapping(deploy_counter, deployer, code_v1):
    counter = deploy_counter(code_v1, counter=(1 << 32) - 1)
    result = counter.send_increase(deployer, increase_by=1, value=VALUE)
    failed = result.find(op=Opcode.INCREASE, success=False)
    assert failed[0].exit_code == ExitCode.INTEGER_OUT_OF_RANGE
    assert failed[0].bounced
    assert counter.get_counter() == (1 << 32) - 1


def test_undeployed_contract(blockchain, deployer, code_v1):
    counter = blockchain.open_contract(
        CounterContract.create_from_config(CounterConfig(id=9), code_v1)
    )
    assert not counter.is_deployed()
    with pytest.raises(NotDeployedError):
        counter.get_counter()

    # a non-deploy message does not initialize the account
    result = counter.send_increase(deployer, increase_by=1, value=VALUE)
    assert result.has_transaction(success=False, deploy=False)
    assert not counter.is_deployed()


def test_deploy_with_mismatched_init_is_rejected(blockchain, deployer, code_v1):
    real = CounterContract.create_from_config(CounterConfig(id=1), code_v1)
    other = CounterContract.create_from_config(CounterConfig(id=2), code_v1)
    forged = blockchain.open_contract(CounterContract(real.address, other.init))
    result = forged.send_deploy(deployer, value=VALUE)
    assert not result.success
    assert not blockchain.is_deployed(real.address)


def test_failed_deploy_rolls_back():
    unknown_code = reference_code(ContractVersion.V1)
    chain = Blockchain(code_rules={})
    t = chain.treasury("deployer")
    counter = chain.open_contract(CounterContract.create_from_config(CounterConfig(id=0), unknown_code))
    result = counter.send_deploy(t, value=VALUE)
    assert not result.success
    assert not counter.is_deployed()

    chain.register_code(unknown_code, ContractVersion.V1)
    counter.send_deploy(t, value=VALUE).raise_for_failure()
    assert counter.get_counter() == 0


def test_values_move_to_the_contract(blockchain, deploy_counter, deployer, code_v1):
    start = deployer.balance
    counter = deploy_counter(code_v1)
    assert deployer.balance == start - VALUE
    assert blockchain.account(counter.address).balance == VALUE


def test_treasuries_are_deterministic(blockchain):
    assert blockchain.treasury("a").address == blockchain.treasury("a").address
    assert blockchain.treasury("a").address == Blockchain().treasury("a").address
    assert blockchain.treasury("a").address != blockchain.treasury("b").address


def test_insufficient_balance(blockchain, deploy_counter, code_v1):
    counter = deploy_counter(code_v1)
    poor = blockchain.treasury("poor", balance=0)
    with pytest.raises(OperationRejected, match="insufficient"):
        counter.send_increase(poor, increase_by=1, value=VALUE)


def test_submit_requires_sender(blockchain, deploy_counter, code_v1):
    counter = deploy_counter(code_v1)
    with pytest.raises(ValueError):
        counter.send_increase(None, increase_by=1, value=VALUE)


def test_find_rejects_unknown_fields(deploy_counter, deployer, code_v1):
    counter = deploy_counter(code_v1)
    result = counter.send_increase(deployer, increase_by=1, value=VALUE)
    with pytest.raises(TypeError):
        result.find(color="red")
    assert [tx.op for tx in result] == [Opcode.INCREASE]
