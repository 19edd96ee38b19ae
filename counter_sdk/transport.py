"""
counter_sdk.transport
=====================

The boundary between the contract client and the outside world.

The client needs exactly three primitives, expressed by the `Transport`
protocol:

    submit(message, via=sender) -> result   # one outbound internal message
    view_call(address, method, args) -> stack
    is_deployed(address) -> bool

Implementations
---------------
- `HttpTransport`  : toncenter v2 JSON-RPC for reads; submission is delegated
                     to a `Sender` (wallets and key management live outside
                     this SDK).
- `DeeplinkSender` : a `Sender` that renders `ton://transfer/...` links for an
                     external wallet to sign and broadcast.
- `counter_sdk.sandbox.Blockchain` provides an in-process transport for tests.

Errors raised by transports reach the caller unchanged; nothing here retries
message submission.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import IntFlag
from typing import Any, List, Optional, Protocol, Sequence, runtime_checkable
from urllib.parse import urlencode

from .address import Address
from .cell import Cell, StateInit
from .config import SDKConfig
from .errors import ExitCode, NotDeployedError, OperationRejected
from .rpc.http import RpcClient
from .utils.bytes import to_base64

__all__ = [
    "SendMode",
    "InternalMessage",
    "Sender",
    "Transport",
    "HttpTransport",
    "DeeplinkSender",
    "transfer_link",
    "ensure_deployed",
]

log = logging.getLogger(__name__)


class SendMode(IntFlag):
    NONE = 0
    PAY_GAS_SEPARATELY = 1
    IGNORE_ERRORS = 2
    DESTROY_ACCOUNT_IF_ZERO = 32
    CARRY_ALL_REMAINING_INCOMING_VALUE = 64
    CARRY_ALL_REMAINING_BALANCE = 128


@dataclass(frozen=True)
class InternalMessage:
    """One outbound internal message as handed to a sender."""

    to: Address
    value: int
    body: Cell
    send_mode: SendMode = SendMode.PAY_GAS_SEPARATELY
    init: Optional[StateInit] = None
    bounce: bool = True


@runtime_checkable
class Sender(Protocol):
    """Something that can put an internal message on the ledger (a wallet)."""

    @property
    def address(self) -> Optional[Address]: ...

    def send(self, message: InternalMessage) -> Any: ...


class Transport(Protocol):
    def submit(self, message: InternalMessage, *, via: Optional[Sender] = None) -> Any: ...

    def view_call(self, address: Address, method: str, args: Sequence[Any] = ()) -> List[Any]: ...

    def is_deployed(self, address: Address) -> bool: ...


def ensure_deployed(transport: Transport, address: Address) -> None:
    """Raise NotDeployedError unless `address` has an active account."""
    if not transport.is_deployed(address):
        raise NotDeployedError(str(address))


# -----------------------------------------------------------------------------
# Deeplink sender
# -----------------------------------------------------------------------------


def transfer_link(message: InternalMessage, *, testnet: bool = False) -> str:
    """
    Render a `ton://transfer` link carrying amount, body and (for deploys)
    the state init, each BOC in URL-safe base64.
    """
    dest = message.to.to_string(bounceable=message.bounce, test_only=testnet)
    params = {"amount": str(int(message.value))}
    if not message.body.is_empty():
        params["bin"] = to_base64(message.body.to_boc(), url_safe=True)
    if message.init is not None:
        params["init"] = to_base64(message.init.to_cell().to_boc(), url_safe=True)
    return f"ton://transfer/{dest}?{urlencode(params)}"


@dataclass
class DeeplinkSender:
    """Collects wallet deeplinks instead of signing; `send` returns the link."""

    address: Optional[Address] = None
    testnet: bool = False
    links: List[str] = field(default_factory=list)

    def send(self, message: InternalMessage) -> str:
        link = transfer_link(message, testnet=self.testnet)
        self.links.append(link)
        log.info("prepared transfer to %s (%d nano)", message.to.to_raw(), message.value)
        return link


# -----------------------------------------------------------------------------
# HTTP transport
# -----------------------------------------------------------------------------


class HttpTransport:
    """
    toncenter-backed transport.

    Parameters
    ----------
    rpc : RpcClient pointed at a `.../api/v2/jsonRPC` endpoint.
    sender : default Sender used by `submit` when no `via` is given.
    testnet : whether addresses are rendered with the test-only flag.
    """

    def __init__(self, rpc: RpcClient, *, sender: Optional[Sender] = None, testnet: bool = False) -> None:
        self._rpc = rpc
        self._sender = sender
        self._testnet = testnet

    @classmethod
    def from_config(cls, config: SDKConfig, *, sender: Optional[Sender] = None) -> "HttpTransport":
        rpc = RpcClient(
            config.endpoint,
            timeout=config.request_timeout,
            max_retries=config.max_retries,
            backoff_base=config.backoff_factor,
            headers=config.http_headers(),
        )
        return cls(rpc, sender=sender, testnet=config.testnet)

    @property
    def rpc(self) -> RpcClient:
        return self._rpc

    def close(self) -> None:
        self._rpc.close()

    def _fmt(self, address: Address) -> str:
        return address.to_string(test_only=self._testnet)

    # ------------------------------------------------------------------ Transport

    def submit(self, message: InternalMessage, *, via: Optional[Sender] = None) -> Any:
        sender = via or self._sender
        if sender is None:
            raise ValueError("no sender configured for message submission")
        log.debug("submit to=%s value=%d mode=%d init=%s",
                  message.to.to_raw(), message.value, int(message.send_mode), message.init is not None)
        return sender.send(message)

    def view_call(self, address: Address, method: str, args: Sequence[Any] = ()) -> List[Any]:
        res = self._rpc.call(
            "runGetMethod",
            {"address": self._fmt(address), "method": method, "stack": list(args)},
        )
        if not isinstance(res, dict):
            raise OperationRejected("unexpected runGetMethod payload", address=address.to_raw(), method=method)
        exit_code = int(res.get("exit_code", 0))
        if exit_code == ExitCode.NOT_INITIALIZED:
            raise NotDeployedError(self._fmt(address), "uninitialized")
        if exit_code not in (0, 1):
            raise OperationRejected(
                "get method failed", address=address.to_raw(), method=method, exit_code=exit_code
            )
        log.debug("view %s.%s -> %r", address.to_raw(), method, res.get("stack"))
        return list(res.get("stack") or [])

    def get_state(self, address: Address) -> str:
        """Account state as reported by the node: active | uninitialized | frozen."""
        return str(self._rpc.call("getAddressState", {"address": self._fmt(address)}))

    def is_deployed(self, address: Address) -> bool:
        return self.get_state(address) == "active"

    def send_boc(self, boc: bytes) -> Any:
        """Broadcast an already signed external message (for wallet integrations)."""
        return self._rpc.call("sendBoc", {"boc": to_base64(boc)})
