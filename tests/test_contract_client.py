from typing import Any, List

import pytest

from counter_sdk.address import Address
from counter_sdk.cell import begin_cell
from counter_sdk.contracts.counter import CounterContract
from counter_sdk.errors import DecodeError, EncodeError, TransportError
from counter_sdk.messages import (CounterConfig, Operation, config_to_cell,
                                  decode_message)
from counter_sdk.transport import InternalMessage, SendMode

CODE = begin_cell().store_bytes(b"counter").end_cell()
WALLET = object()


class FakeTransport:
    """Records submissions; answers view calls from a canned stack."""

    def __init__(self, stack: Any = None, error: Exception = None) -> None:
        self.sent: List[tuple] = []
        self.views: List[tuple] = []
        self.stack = stack if stack is not None else [["num", "0x2a"]]
        self.error = error

    def submit(self, message: InternalMessage, *, via=None):
        if self.error:
            raise self.error
        self.sent.append((message, via))
        return "ok"

    def view_call(self, address, method, args=()):
        self.views.append((address, method, list(args)))
        return self.stack

    def is_deployed(self, address):
        return True


def _contract(transport) -> CounterContract:
    return CounterContract.create_from_config(CounterConfig(id=3, counter=0), CODE, transport=transport)


def test_create_from_config_carries_init():
    c = _contract(None)
    assert c.init is not None
    assert c.init.code == CODE
    assert c.init.data == config_to_cell(CounterConfig(id=3, counter=0))
    assert c.address == c.init.address(0)
    assert CounterContract.create_from_config(CounterConfig(3), CODE, -1).address.workchain == -1


def test_create_from_address_has_no_init():
    addr = Address(0, b"\x05" * 32)
    c = CounterContract.create_from_address(addr.to_string())
    assert c.address == addr
    assert c.init is None


def test_each_send_submits_exactly_one_message():
    t = FakeTransport()
    c = _contract(t)
    assert c.send_deploy(WALLET, value=5) == "ok"
    c.send_increase(WALLET, increase_by=2, value=6)
    c.send_decrease(WALLET, decrease_by=1, value=7, query_id=9)
    c.send_upgrade(WALLET, code=CODE, value=8)
    c.send_upgrade_all(WALLET, code=CODE, data=CODE, value=9)

    assert len(t.sent) == 5
    ops = [decode_message(m.body).operation for m, _ in t.sent]
    assert ops == [
        Operation.DEPLOY,
        Operation.INCREASE,
        Operation.DECREASE,
        Operation.UPGRADE_CODE,
        Operation.UPGRADE_CODE_AND_DATA,
    ]
    for (m, via), value in zip(t.sent, range(5, 10)):
        assert via is WALLET
        assert m.to == c.address
        assert m.value == value
        assert m.send_mode == SendMode.PAY_GAS_SEPARATELY
    # only the deploy carries the init bundle
    assert t.sent[0][0].init == c.init
    assert all(m.init is None for m, _ in t.sent[1:])
    assert decode_message(t.sent[2][0].body).query_id == 9


def test_deploy_without_init_is_a_local_error():
    t = FakeTransport()
    c = CounterContract.create_from_address(Address(0, b"\x01" * 32), transport=t)
    with pytest.raises(EncodeError):
        c.send_deploy(WALLET, value=1)
    assert t.sent == []


@pytest.mark.parametrize("value", [-1, 1.5, "1", True])
def test_invalid_value_rejected(value):
    t = FakeTransport()
    with pytest.raises(EncodeError):
        _contract(t).send_increase(WALLET, increase_by=1, value=value)
    assert t.sent == []


def test_out_of_range_operand_never_reaches_transport():
    t = FakeTransport()
    with pytest.raises(EncodeError):
        _contract(t).send_increase(WALLET, increase_by=1 << 32, value=1)
    assert t.sent == []


def test_getters_decode_stack():
    t = FakeTransport(stack=[["num", "0x2a"]])
    c = _contract(t)
    assert c.get_counter() == 42
    assert c.get_id() == 42
    assert [v[1] for v in t.views] == ["get_counter", "get_id"]
    assert all(v[2] == [] for v in t.views)


def test_empty_stack_is_decode_error():
    with pytest.raises(DecodeError):
        _contract(FakeTransport(stack=[])).get_counter()


def test_transport_errors_pass_through():
    err = TransportError("boom", method="sendBoc")
    with pytest.raises(TransportError) as ei:
        _contract(FakeTransport(error=err)).send_increase(WALLET, increase_by=1, value=1)
    assert ei.value is err


def test_unbound_contract_and_bind():
    c = _contract(None)
    with pytest.raises(RuntimeError):
        c.get_counter()
    t = FakeTransport()
    bound = c.bind(t)
    assert bound is not c
    assert bound.address == c.address and bound.init == c.init
    assert bound.get_counter() == 42
