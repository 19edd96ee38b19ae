"""
counter_sdk.sandbox — in-process ledger for local runs and tests.

A deterministic stand-in for the real chain. It implements the `Transport`
protocol, so a `CounterContract` bound to a `Blockchain` behaves as it would
against a node, while every message yields an inspectable `Transaction`.

- Blockchain.treasury(name)      : funded wallet with a deterministic address
- Blockchain.open_contract(c)    : bind a contract handle to this ledger
- SendResult.find/has_transaction: filter produced transactions
- SendResult.raise_for_failure() : turn a failed transaction into OperationRejected
- reference_code(version)        : built-in code cell per contract version

Code cells are opaque here too: execution is looked up by code hash in a
registry of `VersionRules` (see `counter_sdk.upgrade`). Unregistered code
makes every message fail, as running unknown bytecode would.

Notes
-----
* Simulation only: no fees, no gas, no logical-time races. Values move from
  sender to contract, and bounce back when execution fails.
* A failed transaction leaves code, data and deployment status untouched.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .address import Address
from .cell import Cell, StateInit, begin_cell
from .errors import NotDeployedError, OperationRejected
from .transport import InternalMessage, Sender
from .upgrade import RULES, ContractExit, ContractVersion, VersionRules, apply_message, run_getter
from .utils.hash import sha256
from .utils.units import to_nano

__all__ = [
    "reference_code",
    "Account",
    "Transaction",
    "SendResult",
    "Treasury",
    "Blockchain",
]

log = logging.getLogger(__name__)

_DEFAULT_TREASURY_BALANCE = to_nano(1_000_000)


def reference_code(version: ContractVersion) -> Cell:
    """Stand-in code cell for a contract version; distinct hash per version."""
    return begin_cell().store_bytes(f"counter-sdk/SimpleCounter/v{int(version)}".encode()).end_cell()


# ------------------------------ Records ------------------------------------ #


@dataclass
class Account:
    address: Address
    balance: int = 0
    code: Optional[Cell] = None
    data: Optional[Cell] = None

    @property
    def active(self) -> bool:
        return self.code is not None


@dataclass(frozen=True)
class Transaction:
    lt: int
    sender: Optional[Address]
    to: Address
    value: int
    body: Cell
    op: Optional[int]
    deploy: bool
    success: bool
    exit_code: Optional[int] = None
    bounced: bool = False
    description: str = ""

    def matches(self, **criteria: Any) -> bool:
        for key, expected in criteria.items():
            if not hasattr(self, key):
                raise TypeError(f"unknown transaction field {key!r}")
            if getattr(self, key) != expected:
                return False
        return True


@dataclass
class SendResult:
    transactions: List[Transaction] = field(default_factory=list)

    def find(self, **criteria: Any) -> List[Transaction]:
        """Transactions whose fields equal every given criterion (e.g. op=, success=)."""
        return [tx for tx in self.transactions if tx.matches(**criteria)]

    def has_transaction(self, **criteria: Any) -> bool:
        return bool(self.find(**criteria))

    @property
    def success(self) -> bool:
        return all(tx.success for tx in self.transactions)

    def raise_for_failure(self) -> None:
        for tx in self.transactions:
            if not tx.success:
                raise OperationRejected(
                    tx.description or "transaction failed",
                    address=tx.to.to_raw(),
                    sender=tx.sender.to_raw() if tx.sender else None,
                    opcode=tx.op,
                    exit_code=tx.exit_code,
                )

    def __iter__(self) -> Iterator[Transaction]:
        return iter(self.transactions)


# ------------------------------ Wallets ------------------------------------ #


class Treasury:
    """Sandbox wallet: a `Sender` whose messages execute on its blockchain."""

    def __init__(self, blockchain: "Blockchain", name: str, address: Address) -> None:
        self._chain = blockchain
        self.name = name
        self._address = address

    @property
    def address(self) -> Address:
        return self._address

    @property
    def balance(self) -> int:
        return self._chain.account(self._address).balance

    def send(self, message: InternalMessage) -> SendResult:
        return self._chain.send_message(message, sender=self._address)

    def __repr__(self) -> str:
        return f"Treasury({self.name!r}, {self._address.to_raw()!r})"


# ------------------------------ Ledger ------------------------------------- #


class Blockchain:
    """In-memory accounts keyed by address, guarded by one re-entrant lock."""

    def __init__(self, *, code_rules: Optional[Dict[bytes, VersionRules]] = None) -> None:
        self._lock = threading.RLock()
        self._accounts: Dict[Address, Account] = {}
        self._treasuries: Dict[str, Treasury] = {}
        self._lt = 0
        self._code_rules: Dict[bytes, VersionRules] = (
            dict(code_rules)
            if code_rules is not None
            else {reference_code(v).hash(): RULES[v] for v in ContractVersion}
        )

    # ------------------------------------------------------------------ Setup

    def register_code(self, code: Cell, version: ContractVersion) -> None:
        """Execute `code` with the rules of `version` (e.g. for compiled artifacts)."""
        with self._lock:
            self._code_rules[code.hash()] = RULES[version]

    def rules_for(self, code: Cell) -> Optional[VersionRules]:
        return self._code_rules.get(code.hash())

    def treasury(self, name: str, balance: int = _DEFAULT_TREASURY_BALANCE) -> Treasury:
        with self._lock:
            t = self._treasuries.get(name)
            if t is None:
                addr = Address(0, sha256(f"treasury:{name}".encode()))
                self.account(addr).balance = balance
                t = Treasury(self, name, addr)
                self._treasuries[name] = t
            return t

    def account(self, address: Address) -> Account:
        with self._lock:
            acct = self._accounts.get(address)
            if acct is None:
                acct = Account(address)
                self._accounts[address] = acct
            return acct

    def open_contract(self, contract: Any) -> Any:
        """Bind a contract handle (anything with `bind(transport)`) to this ledger."""
        return contract.bind(self)

    # ------------------------------------------------------------------ Transport

    def submit(self, message: InternalMessage, *, via: Optional[Sender] = None) -> SendResult:
        if via is None:
            raise ValueError("sandbox submissions need a sender (use blockchain.treasury(name))")
        return via.send(message)

    def view_call(self, address: Address, method: str, args: Sequence[Any] = ()) -> List[Any]:
        with self._lock:
            acct = self._accounts.get(address)
            if acct is None or not acct.active:
                raise NotDeployedError(address.to_raw(), "uninitialized")
            assert acct.code is not None and acct.data is not None
            rules = self.rules_for(acct.code)
            if rules is None:
                raise OperationRejected("unknown contract code", address=address.to_raw(), method=method)
            try:
                value = run_getter(rules, acct.data, method)
            except ContractExit as e:
                raise OperationRejected(
                    e.reason or "get method failed",
                    address=address.to_raw(),
                    method=method,
                    exit_code=e.exit_code,
                ) from e
        return [{"type": "int", "value": value}]

    def is_deployed(self, address: Address) -> bool:
        with self._lock:
            acct = self._accounts.get(address)
            return acct is not None and acct.active

    # ------------------------------------------------------------------ Execution

    def send_message(self, message: InternalMessage, *, sender: Optional[Address]) -> SendResult:
        """Deliver one internal message and return the transaction it produced."""
        with self._lock:
            if sender is not None:
                src = self.account(sender)
                if message.value > src.balance:
                    raise OperationRejected(
                        "insufficient balance", address=message.to.to_raw(), sender=sender.to_raw()
                    )
                src.balance -= message.value
            tx = self._execute(message, sender)
            if not tx.success:
                refund_to = sender if tx.bounced and sender is not None else message.to
                self.account(refund_to).balance += message.value
            log.debug(
                "tx lt=%d %s -> %s op=%s success=%s exit=%s",
                tx.lt,
                sender.to_raw() if sender else "-",
                message.to.to_raw(),
                f"0x{tx.op:08x}" if tx.op is not None else "-",
                tx.success,
                tx.exit_code,
            )
            return SendResult([tx])

    def _execute(self, message: InternalMessage, sender: Optional[Address]) -> Transaction:
        self._lt += 1
        dest = self.account(message.to)
        code, data = dest.code, dest.data
        op = _peek_op(message.body)

        def done(success: bool, *, deploy: bool = False, exit_code: Optional[int] = None, description: str = "") -> Transaction:
            return Transaction(
                lt=self._lt,
                sender=sender,
                to=message.to,
                value=message.value,
                body=message.body,
                op=op,
                deploy=deploy,
                success=success,
                exit_code=exit_code,
                bounced=not success and message.bounce,
                description=description,
            )

        deploying = False
        if code is None:
            init: Optional[StateInit] = message.init
            if init is None or init.address(message.to.workchain) != message.to:
                return done(False, description="account is not initialized")
            code, data = init.code, init.data
            deploying = True
        assert data is not None

        rules = self.rules_for(code)
        if rules is None:
            return done(False, deploy=deploying, description="unknown contract code")
        try:
            outcome = apply_message(rules, code, data, message.body, sender)
        except ContractExit as e:
            return done(False, exit_code=e.exit_code, description=e.reason)

        dest.code, dest.data = outcome.code, outcome.data
        dest.balance += message.value
        return done(True, deploy=deploying, exit_code=0)


def _peek_op(body: Cell) -> Optional[int]:
    return body.begin_parse().load_uint(32) if body.bit_length >= 32 else None
