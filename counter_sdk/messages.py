"""
counter_sdk.messages
====================

Message codec for the counter contract.

Wire layout
-----------
Every operation body except Deploy is::

    opcode:uint32 || query_id:uint64 || operands...

| Operation          | Opcode     | Operands                     |
|--------------------|------------|------------------------------|
| Deploy             | (empty)    | none                         |
| Increase           | 0x7e8764ef | increase_by:uint32           |
| Decrease           | 0xe78525c4 | decrease_by:uint32           |
| UpgradeCode        | 0xdbfaf817 | ^code                        |
| UpgradeCodeAndData | 0xff382702 | ^code ^data                  |

`^x` means the operand travels as a cell reference, not inline bits. The
opcodes are compatibility-critical: they must match the deployed contract.

This module provides:
- Opcode / Operation enums and the per-operation operand layouts
- Message (decoded view of a body) and encode_message / decode_message
- builders per operation: deploy_body, increase_body, ...
- CounterConfig / config_to_cell and the contract state cell helpers
- decode_number / StackReader for view-call results
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from .address import Address
from .cell import Builder, Cell, begin_cell
from .errors import DecodeError, EncodeError

__all__ = [
    "Opcode",
    "Operation",
    "OperandKind",
    "LAYOUTS",
    "Message",
    "encode_message",
    "decode_message",
    "deploy_body",
    "increase_body",
    "decrease_body",
    "upgrade_body",
    "upgrade_all_body",
    "CounterConfig",
    "ContractState",
    "config_to_cell",
    "state_to_cell",
    "StackReader",
    "decode_number",
]

UINT32_MAX = (1 << 32) - 1
UINT64_MAX = (1 << 64) - 1


class Opcode(IntEnum):
    INCREASE = 0x7E8764EF
    DECREASE = 0xE78525C4
    UPGRADE = 0xDBFAF817
    UPGRADE_ALL = 0xFF382702


class Operation(str, Enum):
    DEPLOY = "deploy"
    INCREASE = "increase"
    DECREASE = "decrease"
    UPGRADE_CODE = "upgrade_code"
    UPGRADE_CODE_AND_DATA = "upgrade_code_and_data"

    @property
    def opcode(self) -> Optional[Opcode]:
        return _OPCODES.get(self)

    @classmethod
    def from_opcode(cls, opcode: int) -> "Operation":
        for op, code in _OPCODES.items():
            if code == opcode:
                return op
        raise DecodeError(f"unknown opcode 0x{opcode:08x}", data=opcode)


_OPCODES: Dict[Operation, Opcode] = {
    Operation.INCREASE: Opcode.INCREASE,
    Operation.DECREASE: Opcode.DECREASE,
    Operation.UPGRADE_CODE: Opcode.UPGRADE,
    Operation.UPGRADE_CODE_AND_DATA: Opcode.UPGRADE_ALL,
}


class OperandKind(str, Enum):
    UINT32 = "uint32"
    REF = "ref"


# Operand layout after opcode + query_id, in wire order.
LAYOUTS: Dict[Operation, Tuple[Tuple[str, OperandKind], ...]] = {
    Operation.DEPLOY: (),
    Operation.INCREASE: (("increase_by", OperandKind.UINT32),),
    Operation.DECREASE: (("decrease_by", OperandKind.UINT32),),
    Operation.UPGRADE_CODE: (("code", OperandKind.REF),),
    Operation.UPGRADE_CODE_AND_DATA: (("code", OperandKind.REF), ("data", OperandKind.REF)),
}

Operand = Union[int, Cell]


@dataclass(frozen=True)
class Message:
    """Decoded message body: operation, query id and named operands."""

    operation: Operation
    query_id: int = 0
    operands: Mapping[str, Operand] = field(default_factory=dict)

    @property
    def opcode(self) -> Optional[int]:
        op = self.operation.opcode
        return int(op) if op is not None else None

    def __getitem__(self, name: str) -> Operand:
        return self.operands[name]


# -----------------------------------------------------------------------------
# Encoding
# -----------------------------------------------------------------------------


def _check_uint(value: Any, limit: int, name: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool):
        raise EncodeError(f"{name} must be an int, got {type(value).__name__}", field=name)
    if not 0 <= value <= limit:
        raise EncodeError(f"{name}={value} out of range [0, {limit}]", field=name)
    return value


def encode_message(operation: Union[Operation, str], *, query_id: int = 0, **operands: Operand) -> Cell:
    """
    Encode one operation into a message body cell.

    `query_id` defaults to 0. Operands are keyword arguments named as in
    `LAYOUTS` (`increase_by`, `decrease_by`, `code`, `data`); missing or
    unexpected operands raise EncodeError.
    """
    op = Operation(operation)
    layout = LAYOUTS[op]
    expected = {name for name, _ in layout}
    unexpected = set(operands) - expected
    if unexpected:
        raise EncodeError(f"unexpected operands for {op.value}: {sorted(unexpected)}")

    b = begin_cell()
    if op is Operation.DEPLOY:
        return b.end_cell()

    b.store_uint(int(_OPCODES[op]), 32, field="opcode")
    b.store_uint(_check_uint(query_id, UINT64_MAX, "query_id"), 64, field="query_id")
    for name, kind in layout:
        if name not in operands:
            raise EncodeError(f"missing operand {name!r} for {op.value}", field=name)
        value = operands[name]
        if kind is OperandKind.UINT32:
            b.store_uint(_check_uint(value, UINT32_MAX, name), 32, field=name)
        else:
            if not isinstance(value, Cell):
                raise EncodeError(f"{name} must be a Cell, got {type(value).__name__}", field=name)
            b.store_ref(value)
    return b.end_cell()


def deploy_body() -> Cell:
    return encode_message(Operation.DEPLOY)


def increase_body(increase_by: int, *, query_id: int = 0) -> Cell:
    return encode_message(Operation.INCREASE, query_id=query_id, increase_by=increase_by)


def decrease_body(decrease_by: int, *, query_id: int = 0) -> Cell:
    return encode_message(Operation.DECREASE, query_id=query_id, decrease_by=decrease_by)


def upgrade_body(code: Cell, *, query_id: int = 0) -> Cell:
    return encode_message(Operation.UPGRADE_CODE, query_id=query_id, code=code)


def upgrade_all_body(code: Cell, data: Cell, *, query_id: int = 0) -> Cell:
    return encode_message(Operation.UPGRADE_CODE_AND_DATA, query_id=query_id, code=code, data=data)


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------


def decode_message(body: Cell) -> Message:
    """
    Decode a message body produced by `encode_message`.

    An empty body is a Deploy. Unknown opcodes, short bodies and trailing
    data raise DecodeError.
    """
    if body.is_empty():
        return Message(Operation.DEPLOY)
    s = body.begin_parse()
    opcode = s.load_uint(32)
    op = Operation.from_opcode(opcode)
    query_id = s.load_uint(64)
    operands: Dict[str, Operand] = {}
    for name, kind in LAYOUTS[op]:
        operands[name] = s.load_uint(32) if kind is OperandKind.UINT32 else s.load_ref()
    s.end_parse()
    return Message(op, query_id, operands)


# -----------------------------------------------------------------------------
# Contract configuration / state
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class CounterConfig:
    id: int
    counter: int = 0


@dataclass(frozen=True)
class ContractState:
    """
    The contract's persistent fields. `owner` exists only in the V3 layout.
    """

    id: int
    counter: int
    owner: Optional[Address] = None


def _store_id_counter(b: Builder, id_: int, counter: int) -> Builder:
    b.store_uint(_check_uint(id_, UINT32_MAX, "id"), 32, field="id")
    return b.store_uint(_check_uint(counter, UINT32_MAX, "counter"), 32, field="counter")


def config_to_cell(config: CounterConfig) -> Cell:
    """Initial state cell: id:uint32 || counter:uint32."""
    return _store_id_counter(begin_cell(), config.id, config.counter).end_cell()


def state_to_cell(state: ContractState) -> Cell:
    """
    Serialize a state in the layout its fields imply: two fields, or three
    when an owner is present (V3 layout).
    """
    b = _store_id_counter(begin_cell(), state.id, state.counter)
    if state.owner is not None:
        b.store_address(state.owner)
    return b.end_cell()


# -----------------------------------------------------------------------------
# View-call results
# -----------------------------------------------------------------------------

StackEntry = Any


def _entry_to_int(entry: StackEntry) -> int:
    if isinstance(entry, bool):
        raise DecodeError("boolean is not a numeric stack entry", data=entry)
    if isinstance(entry, int):
        return entry
    kind: Any = None
    value: Any = None
    if isinstance(entry, (list, tuple)) and len(entry) == 2:
        kind, value = entry
    elif isinstance(entry, Mapping):
        kind, value = entry.get("type"), entry.get("value")
    if kind not in ("num", "int"):
        raise DecodeError(f"stack entry is not a number: {entry!r}", data=entry)
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        s = value.strip()
        neg = s.startswith("-")
        if neg:
            s = s[1:]
        try:
            n = int(s, 16) if s.lower().startswith("0x") else int(s, 10)
        except ValueError as e:
            raise DecodeError(f"malformed numeric stack entry: {value!r}", data=entry) from e
        return -n if neg else n
    raise DecodeError(f"malformed numeric stack entry: {entry!r}", data=entry)


class StackReader:
    """Sequential reader over a view-call result stack."""

    def __init__(self, entries: Optional[Iterable[StackEntry]]) -> None:
        self._entries: List[StackEntry] = list(entries or [])
        self._pos = 0

    @property
    def remaining(self) -> int:
        return len(self._entries) - self._pos

    def read_number(self) -> int:
        if not self.remaining:
            raise DecodeError("result stack is empty")
        entry = self._entries[self._pos]
        value = _entry_to_int(entry)
        self._pos += 1
        return value


def decode_number(stack: Optional[Sequence[StackEntry]]) -> int:
    """Read the first stack entry as an integer (DecodeError if empty/malformed)."""
    return StackReader(stack).read_number()
