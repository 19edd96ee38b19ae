from __future__ import annotations

import json
from typing import Any

import httpx
import pytest
import respx

from counter_sdk.address import Address
from counter_sdk.contracts.counter import CounterContract
from counter_sdk.errors import NotDeployedError, OperationRejected, TransportError
from counter_sdk.rpc.http import RpcClient
from counter_sdk.transport import DeeplinkSender, HttpTransport, ensure_deployed
from counter_sdk.utils.units import to_nano

RPC_URL = "https://toncenter.test/api/v2/jsonRPC"
ADDR = Address(0, b"\x07" * 32)


def _ok(result: Any) -> httpx.Response:
    return httpx.Response(200, json={"ok": True, "result": result})


def _transport(**kw: Any) -> HttpTransport:
    rpc = RpcClient(RPC_URL, api_key="secret", max_retries=2, backoff_base=0.0, backoff_max=0.0)
    return HttpTransport(rpc, **kw)


@respx.mock
def test_get_counter_via_run_get_method() -> None:
    route = respx.post(RPC_URL).mock(
        return_value=_ok({"gas_used": 1000, "stack": [["num", "0x64"]], "exit_code": 0})
    )
    contract = CounterContract.create_from_address(ADDR, transport=_transport())
    assert contract.get_counter() == 100

    request = route.calls.last.request
    payload = json.loads(request.content)
    assert payload["jsonrpc"] == "2.0"
    assert payload["method"] == "runGetMethod"
    assert payload["params"] == {"address": ADDR.to_string(), "method": "get_counter", "stack": []}
    assert request.headers["X-API-Key"] == "secret"


@respx.mock
def test_uninitialized_account_raises_not_deployed() -> None:
    respx.post(RPC_URL).mock(return_value=_ok({"stack": [], "exit_code": -13}))
    with pytest.raises(NotDeployedError):
        CounterContract.create_from_address(ADDR, transport=_transport()).get_id()


@respx.mock
def test_get_method_failure_is_rejected() -> None:
    respx.post(RPC_URL).mock(return_value=_ok({"stack": [], "exit_code": 11}))
    with pytest.raises(OperationRejected) as ei:
        CounterContract.create_from_address(ADDR, transport=_transport()).get_counter()
    assert ei.value.exit_code == 11
    assert ei.value.method == "get_counter"


@respx.mock
def test_is_deployed_reads_address_state() -> None:
    route = respx.post(RPC_URL).mock(side_effect=[_ok("active"), _ok("uninitialized")])
    t = _transport()
    assert t.is_deployed(ADDR) is True
    with pytest.raises(NotDeployedError):
        ensure_deployed(t, ADDR)
    assert json.loads(route.calls[0].request.content)["method"] == "getAddressState"


@respx.mock
def test_idempotent_reads_retry_on_transient_status() -> None:
    route = respx.post(RPC_URL).mock(
        side_effect=[httpx.Response(503), httpx.Response(429), _ok("active")]
    )
    assert _transport().get_state(ADDR) == "active"
    assert route.call_count == 3


@respx.mock
def test_retries_exhausted_raise_transport_error() -> None:
    route = respx.post(RPC_URL).mock(return_value=httpx.Response(503))
    with pytest.raises(TransportError) as ei:
        _transport().get_state(ADDR)
    assert ei.value.method == "getAddressState"
    assert route.call_count == 3


@respx.mock
def test_send_boc_is_not_retried() -> None:
    route = respx.post(RPC_URL).mock(return_value=httpx.Response(503))
    with pytest.raises(TransportError):
        _transport().send_boc(b"\x00")
    assert route.call_count == 1


@respx.mock
def test_toncenter_error_envelope() -> None:
    respx.post(RPC_URL).mock(
        return_value=httpx.Response(401, json={"ok": False, "error": "API key does not exist", "code": 401})
    )
    with pytest.raises(TransportError) as ei:
        _transport().get_state(ADDR)
    assert ei.value.code == 401
    assert ei.value.http_status == 401
    assert "API key" in ei.value.message


@respx.mock
def test_jsonrpc_error_object_and_non_json() -> None:
    respx.post(RPC_URL).mock(
        side_effect=[
            httpx.Response(200, json={"jsonrpc": "2.0", "id": 1, "error": {"code": -32601, "message": "no method"}}),
            httpx.Response(200, text="<html>oops</html>"),
        ]
    )
    t = _transport()
    with pytest.raises(TransportError) as ei:
        t.get_state(ADDR)
    assert ei.value.code == -32601
    with pytest.raises(TransportError, match="Non-JSON"):
        t.get_state(ADDR)


def test_submit_uses_default_or_explicit_sender() -> None:
    default = DeeplinkSender()
    explicit = DeeplinkSender(testnet=True)
    contract = CounterContract.create_from_address(ADDR, transport=_transport(sender=default))

    link = contract.send_increase(None, increase_by=1, value=to_nano("0.05"))
    assert default.links == [link]
    contract.send_increase(explicit, increase_by=1, value=to_nano("0.05"))
    assert len(explicit.links) == 1

    bare = CounterContract.create_from_address(ADDR, transport=_transport())
    with pytest.raises(ValueError):
        bare.send_increase(None, increase_by=1, value=1)
