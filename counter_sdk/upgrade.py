"""
counter_sdk.upgrade
===================

Transition rules of the counter contract across its code versions.

The compiled contract is opaque; what matters off-chain is which opcodes a
version accepts and how each one changes the installed code and state cell.
Each version is described by a `VersionRules` value (a strategy chosen by the
installed code, not a subclass), and `apply_message` runs one message against
a (code, data) pair under those rules.

Versions
--------
V1  Deploy, Increase, UpgradeCode, UpgradeCodeAndData
V2  V1 + Decrease (anyone may decrease)
V3  V2's opcode set; state gains `owner` and Decrease is owner-only

Upgrades
--------
* UpgradeCode swaps the code and keeps the state cell bit-for-bit. The new
  code must understand the old layout; nothing here reconciles layouts. A V3
  code installed over a two-field cell fails its next stateful message with
  CELL_UNDERFLOW.
* UpgradeCodeAndData swaps code and the whole state cell.

Failures raise `ContractExit` with a TVM-style exit code; the caller keeps the
previous code/data, so a failed message never mutates state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import FrozenSet, Optional

from .address import Address
from .cell import Cell, Slice
from .errors import DecodeError, ExitCode
from .messages import ContractState, Opcode, UINT32_MAX, state_to_cell

__all__ = [
    "ContractVersion",
    "VersionRules",
    "RULES",
    "ContractExit",
    "Outcome",
    "load_state",
    "apply_message",
    "run_getter",
    "GETTERS",
]


class ContractVersion(IntEnum):
    V1 = 1
    V2 = 2
    V3 = 3


_UPGRADES = frozenset({Opcode.UPGRADE, Opcode.UPGRADE_ALL})


@dataclass(frozen=True)
class VersionRules:
    version: ContractVersion
    opcodes: FrozenSet[Opcode]
    owner_gated_decrease: bool = False

    @property
    def has_owner(self) -> bool:
        return self.owner_gated_decrease

    def accepts(self, opcode: int) -> bool:
        return opcode in self.opcodes


RULES = {
    ContractVersion.V1: VersionRules(
        ContractVersion.V1,
        frozenset({Opcode.INCREASE}) | _UPGRADES,
    ),
    ContractVersion.V2: VersionRules(
        ContractVersion.V2,
        frozenset({Opcode.INCREASE, Opcode.DECREASE}) | _UPGRADES,
    ),
    ContractVersion.V3: VersionRules(
        ContractVersion.V3,
        frozenset({Opcode.INCREASE, Opcode.DECREASE}) | _UPGRADES,
        owner_gated_decrease=True,
    ),
}


class ContractExit(Exception):
    """Contract execution aborted with a non-zero exit code."""

    def __init__(self, exit_code: int, reason: str = "") -> None:
        super().__init__(f"exit code {exit_code}" + (f": {reason}" if reason else ""))
        self.exit_code = int(exit_code)
        self.reason = reason


@dataclass(frozen=True)
class Outcome:
    code: Cell
    data: Cell
    opcode: Optional[int] = None


def load_state(rules: VersionRules, data: Cell) -> ContractState:
    """
    Read the state cell the way the given version's code would.

    Extra trailing bits are ignored (the contract never calls end_parse), a
    too-short cell is a CELL_UNDERFLOW exit.
    """
    s: Slice = data.begin_parse()
    try:
        id_ = s.load_uint(32)
        counter = s.load_uint(32)
        owner: Optional[Address] = s.load_address() if rules.has_owner else None
    except DecodeError as e:
        raise ContractExit(ExitCode.CELL_UNDERFLOW, f"state layout mismatch: {e.message}") from e
    return ContractState(id_, counter, owner)


def _store(rules: VersionRules, state: ContractState) -> Cell:
    if rules.has_owner and state.owner is None:
        raise ContractExit(ExitCode.CELL_UNDERFLOW, "owner missing from state")
    return state_to_cell(state)


def apply_message(
    rules: VersionRules,
    code: Cell,
    data: Cell,
    body: Cell,
    sender: Optional[Address],
) -> Outcome:
    """
    Execute one inbound message under `rules` and return the new code/data.

    Raises:
        ContractExit for unknown opcodes, malformed bodies, range errors and
        the V3 owner gate.
    """
    if body.is_empty():
        return Outcome(code, data)

    s = body.begin_parse()
    try:
        opcode = s.load_uint(32)
        s.load_uint(64)  # query_id
    except DecodeError as e:
        raise ContractExit(ExitCode.CELL_UNDERFLOW, "short message body") from e

    if not rules.accepts(opcode):
        raise ContractExit(ExitCode.UNKNOWN_OP, f"op 0x{opcode:08x} not supported by V{int(rules.version)}")

    try:
        if opcode == Opcode.UPGRADE:
            return Outcome(s.load_ref(), data, opcode)
        if opcode == Opcode.UPGRADE_ALL:
            new_code = s.load_ref()
            return Outcome(new_code, s.load_ref(), opcode)
        amount = s.load_uint(32)
    except DecodeError as e:
        raise ContractExit(ExitCode.CELL_UNDERFLOW, f"malformed operands: {e.message}") from e

    state = load_state(rules, data)
    if opcode == Opcode.INCREASE:
        counter = state.counter + amount
    else:
        if rules.owner_gated_decrease and sender != state.owner:
            raise ContractExit(ExitCode.NOT_OWNER, f"{sender} is not the owner")
        counter = state.counter - amount
    if not 0 <= counter <= UINT32_MAX:
        raise ContractExit(ExitCode.INTEGER_OUT_OF_RANGE, f"counter {counter} out of uint32 range")

    new_state = ContractState(state.id, counter, state.owner)
    return Outcome(code, _store(rules, new_state), opcode)


GETTERS = ("get_counter", "get_id")


def run_getter(rules: VersionRules, data: Cell, method: str) -> int:
    """Evaluate a view method against the state cell."""
    if method not in GETTERS:
        raise ContractExit(ExitCode.METHOD_NOT_FOUND, f"no get method {method!r}")
    state = load_state(rules, data)
    return state.counter if method == "get_counter" else state.id
