import json
from urllib.parse import parse_qs, urlsplit

import pytest

from counter_sdk.cell import Cell, begin_cell
from counter_sdk.contracts.artifacts import code_from_hex, load_compiled
from counter_sdk.contracts.counter import CounterContract
from counter_sdk.errors import DecodeError
from counter_sdk.messages import CounterConfig, decode_message, Operation
from counter_sdk.transport import DeeplinkSender, InternalMessage, transfer_link

CODE = begin_cell().store_bytes(b"compiled-counter").end_cell()


def _query(link: str):
    parts = urlsplit(link)
    return parts, {k: v[0] for k, v in parse_qs(parts.query).items()}


def test_deploy_link_carries_state_init():
    sender = DeeplinkSender(testnet=True)
    contract = CounterContract.create_from_config(CounterConfig(id=1), CODE)
    link = sender.send(
        InternalMessage(to=contract.address, value=50_000_000, body=begin_cell().end_cell(), init=contract.init)
    )
    parts, q = _query(link)
    assert parts.scheme == "ton"
    assert link.startswith("ton://transfer/" + contract.address.to_string(test_only=True))
    assert q["amount"] == "50000000"
    assert "bin" not in q
    assert Cell.from_base64(q["init"]) == contract.init.to_cell()
    assert sender.links == [link]


def test_message_link_carries_body():
    contract = CounterContract.create_from_config(CounterConfig(id=1), CODE)
    body = begin_cell().store_uint(0x7E8764EF, 32).store_uint(0, 64).store_uint(5, 32).end_cell()
    link = transfer_link(InternalMessage(to=contract.address, value=1, body=body, bounce=False))
    _, q = _query(link)
    msg = decode_message(Cell.from_base64(q["bin"]))
    assert msg.operation is Operation.INCREASE
    assert msg["increase_by"] == 5
    assert "init" not in q
    assert link.startswith("ton://transfer/" + contract.address.to_string(bounceable=False))


def test_load_compiled_json_artifact(tmp_path):
    path = tmp_path / "SimpleContract.compiled.json"
    path.write_text(json.dumps({"hex": CODE.to_boc().hex(), "hash": CODE.hash().hex()}))
    assert load_compiled(path) == CODE


def test_load_compiled_raw_boc(tmp_path):
    path = tmp_path / "counter.boc"
    path.write_bytes(CODE.to_boc(crc=False))
    assert load_compiled(str(path)) == CODE


def test_load_compiled_hash_mismatch(tmp_path):
    path = tmp_path / "bad.compiled.json"
    path.write_text(json.dumps({"hex": CODE.to_boc().hex(), "hash": "00" * 32}))
    with pytest.raises(DecodeError, match="hash mismatch"):
        load_compiled(path)


@pytest.mark.parametrize("content", ["not json", json.dumps({"base64": "x"}), json.dumps([1])])
def test_load_compiled_malformed_json(tmp_path, content):
    path = tmp_path / "x.json"
    path.write_text(content)
    with pytest.raises(DecodeError):
        load_compiled(path)


def test_code_from_hex_rejects_garbage():
    with pytest.raises(DecodeError):
        code_from_hex("zz")
    assert code_from_hex("0x" + CODE.to_boc().hex()) == CODE
