"""
counter_sdk.cell
================

Cells, builders, slices and bag-of-cells (BOC) serialization.

A cell holds up to 1023 data bits and up to 4 references to other cells.
Messages, contract code and contract state are all trees of cells; the
message codec writes into a `Builder` and reads from a `Slice`.

This module provides:
- Builder / begin_cell() : append uints, ints, bits, bytes, addresses, coins, refs
- Cell                   : immutable bits + refs, representation hash and depth
- Slice                  : sequential reader with underflow checks
- to_boc / from_boc      : standard serialized_boc (magic b5ee9c72), optional CRC32C
- StateInit              : {code, data} init bundle and its address derivation

Only ordinary cells are supported; exotic cells (pruned branches, library
cells, Merkle proofs) are rejected when decoding.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from .address import Address
from .errors import DecodeError, EncodeError
from .utils.bytes import BytesLike, from_base64, to_base64
from .utils.hash import crc32c, sha256

__all__ = [
    "MAX_BITS",
    "MAX_REFS",
    "Cell",
    "Builder",
    "Slice",
    "begin_cell",
    "to_boc",
    "from_boc",
    "StateInit",
    "contract_address",
]

MAX_BITS = 1023
MAX_REFS = 4

_BOC_MAGIC = bytes.fromhex("b5ee9c72")


# -----------------------------------------------------------------------------
# Cell
# -----------------------------------------------------------------------------


class Cell:
    """
    Immutable ordinary cell.

    Bits are kept as a big integer `value` of `bit_length` bits (the first
    stored bit is the most significant one).
    """

    __slots__ = ("_value", "_bits", "_refs", "_hash", "_depth")

    def __init__(self, value: int = 0, bit_length: int = 0, refs: Sequence["Cell"] = ()) -> None:
        if not 0 <= bit_length <= MAX_BITS:
            raise EncodeError(f"cell data exceeds {MAX_BITS} bits ({bit_length})")
        if len(refs) > MAX_REFS:
            raise EncodeError(f"cell has more than {MAX_REFS} refs ({len(refs)})")
        if value < 0 or value >> bit_length:
            raise EncodeError("cell value does not fit its bit length")
        self._value = value
        self._bits = bit_length
        self._refs: Tuple[Cell, ...] = tuple(refs)
        self._hash: Optional[bytes] = None
        self._depth: Optional[int] = None

    # ------------------------------------------------------------------ Accessors

    @property
    def bit_length(self) -> int:
        return self._bits

    @property
    def refs(self) -> Tuple["Cell", ...]:
        return self._refs

    @property
    def value(self) -> int:
        return self._value

    def data(self) -> bytes:
        """Data bits left-aligned into whole bytes, zero padded."""
        n = (self._bits + 7) // 8
        return (self._value << (n * 8 - self._bits)).to_bytes(n, "big")

    def begin_parse(self) -> "Slice":
        return Slice(self)

    def is_empty(self) -> bool:
        return self._bits == 0 and not self._refs

    # ------------------------------------------------------------------ Hashing

    def _descriptors(self) -> bytes:
        d1 = len(self._refs)
        d2 = (self._bits + 7) // 8 + self._bits // 8
        return bytes([d1, d2])

    def _augmented_data(self) -> bytes:
        """Data bytes with the completion tag (a 1 bit then zeros) when not byte aligned."""
        rem = self._bits % 8
        if rem == 0:
            return self.data()
        pad = 8 - rem
        n = (self._bits + pad) // 8
        return ((self._value << pad) | (1 << (pad - 1))).to_bytes(n, "big")

    def depth(self) -> int:
        if self._depth is None:
            self._depth = 1 + max(r.depth() for r in self._refs) if self._refs else 0
        return self._depth

    def hash(self) -> bytes:
        """Representation hash (32 bytes)."""
        if self._hash is None:
            parts = [self._descriptors(), self._augmented_data()]
            parts.extend(r.depth().to_bytes(2, "big") for r in self._refs)
            parts.extend(r.hash() for r in self._refs)
            self._hash = sha256(b"".join(parts))
        return self._hash

    # ------------------------------------------------------------------ BOC

    def to_boc(self, *, crc: bool = True) -> bytes:
        return to_boc(self, crc=crc)

    @classmethod
    def from_boc(cls, data: BytesLike) -> "Cell":
        return from_boc(data)

    def to_base64(self) -> str:
        return to_base64(self.to_boc())

    @classmethod
    def from_base64(cls, text: str) -> "Cell":
        try:
            raw = from_base64(text)
        except ValueError as e:
            raise DecodeError(f"invalid base64 BOC: {e}") from e
        return from_boc(raw)

    # ------------------------------------------------------------------ Dunder

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Cell):
            return NotImplemented
        return self.hash() == other.hash()

    def __hash__(self) -> int:
        return hash(self.hash())

    def __repr__(self) -> str:
        return f"Cell(bits={self._bits}, refs={len(self._refs)}, hash={self.hash().hex()[:16]}…)"


# -----------------------------------------------------------------------------
# Builder
# -----------------------------------------------------------------------------


class Builder:
    """Append-only cell builder; every store_* returns self for chaining."""

    __slots__ = ("_value", "_bits", "_refs")

    def __init__(self) -> None:
        self._value = 0
        self._bits = 0
        self._refs: List[Cell] = []

    @property
    def bits(self) -> int:
        return self._bits

    @property
    def available_bits(self) -> int:
        return MAX_BITS - self._bits

    def _append(self, value: int, bits: int) -> "Builder":
        if self._bits + bits > MAX_BITS:
            raise EncodeError(f"cell overflow: {self._bits} + {bits} bits > {MAX_BITS}")
        self._value = (self._value << bits) | value
        self._bits += bits
        return self

    def store_uint(self, value: int, bits: int, *, field: Optional[str] = None) -> "Builder":
        if not isinstance(value, int) or isinstance(value, bool):
            raise EncodeError(f"expected int, got {type(value).__name__}", field=field)
        if bits < 0 or value < 0 or value >> bits:
            raise EncodeError(f"value {value} does not fit uint{bits}", field=field)
        return self._append(value, bits)

    def store_int(self, value: int, bits: int, *, field: Optional[str] = None) -> "Builder":
        if not isinstance(value, int) or isinstance(value, bool):
            raise EncodeError(f"expected int, got {type(value).__name__}", field=field)
        if bits <= 0:
            raise EncodeError("signed ints need at least one bit", field=field)
        lo, hi = -(1 << (bits - 1)), (1 << (bits - 1)) - 1
        if not lo <= value <= hi:
            raise EncodeError(f"value {value} does not fit int{bits}", field=field)
        return self._append(value & ((1 << bits) - 1), bits)

    def store_bit(self, bit: bool) -> "Builder":
        return self._append(1 if bit else 0, 1)

    def store_bits(self, bits: Iterable[bool]) -> "Builder":
        for b in bits:
            self.store_bit(b)
        return self

    def store_bytes(self, data: BytesLike) -> "Builder":
        raw = bytes(data)
        if not raw:
            return self
        return self._append(int.from_bytes(raw, "big"), len(raw) * 8)

    def store_coins(self, amount: int) -> "Builder":
        """VarUInteger 16: 4-bit byte length, then the big-endian amount."""
        if amount < 0:
            raise EncodeError(f"coins must be non-negative, got {amount}", field="coins")
        n = (amount.bit_length() + 7) // 8
        if n > 15:
            raise EncodeError(f"coins amount too large: {amount}", field="coins")
        self.store_uint(n, 4)
        return self.store_uint(amount, n * 8) if n else self

    def store_address(self, address: Optional[Address]) -> "Builder":
        """addr_none$00 for None, otherwise addr_std$10 without anycast."""
        if address is None:
            return self.store_uint(0, 2)
        self.store_uint(0b10, 2)
        self.store_bit(False)
        self.store_int(address.workchain, 8)
        return self.store_bytes(address.hash_part)

    def store_ref(self, cell: Cell) -> "Builder":
        if not isinstance(cell, Cell):
            raise EncodeError(f"ref must be a Cell, got {type(cell).__name__}")
        if len(self._refs) >= MAX_REFS:
            raise EncodeError(f"cell overflow: more than {MAX_REFS} refs")
        self._refs.append(cell)
        return self

    def store_maybe_ref(self, cell: Optional[Cell]) -> "Builder":
        if cell is None:
            return self.store_bit(False)
        return self.store_bit(True).store_ref(cell)

    def end_cell(self) -> Cell:
        return Cell(self._value, self._bits, self._refs)


def begin_cell() -> Builder:
    return Builder()


# -----------------------------------------------------------------------------
# Slice
# -----------------------------------------------------------------------------


class Slice:
    """Sequential reader over a cell's bits and refs."""

    __slots__ = ("_cell", "_pos", "_ref_pos")

    def __init__(self, cell: Cell) -> None:
        self._cell = cell
        self._pos = 0
        self._ref_pos = 0

    @property
    def remaining_bits(self) -> int:
        return self._cell.bit_length - self._pos

    @property
    def remaining_refs(self) -> int:
        return len(self._cell.refs) - self._ref_pos

    def _take(self, bits: int) -> int:
        if bits < 0:
            raise ValueError("bit count must be non-negative")
        if bits > self.remaining_bits:
            raise DecodeError(f"cell underflow: need {bits} bits, {self.remaining_bits} left")
        shift = self._cell.bit_length - self._pos - bits
        self._pos += bits
        return (self._cell.value >> shift) & ((1 << bits) - 1)

    def load_uint(self, bits: int) -> int:
        return self._take(bits)

    def load_int(self, bits: int) -> int:
        v = self._take(bits)
        if bits and v >> (bits - 1):
            v -= 1 << bits
        return v

    def load_bit(self) -> bool:
        return bool(self._take(1))

    def load_bytes(self, n: int) -> bytes:
        return self._take(n * 8).to_bytes(n, "big")

    def load_coins(self) -> int:
        n = self._take(4)
        return self._take(n * 8)

    def load_address(self) -> Optional[Address]:
        tag = self._take(2)
        if tag == 0b00:
            return None
        if tag != 0b10:
            raise DecodeError(f"unsupported address tag {tag:02b}")
        if self.load_bit():
            raise DecodeError("anycast addresses are not supported")
        wc = self.load_int(8)
        return Address(wc, self.load_bytes(32))

    def load_ref(self) -> Cell:
        if not self.remaining_refs:
            raise DecodeError("cell underflow: no refs left")
        ref = self._cell.refs[self._ref_pos]
        self._ref_pos += 1
        return ref

    def load_maybe_ref(self) -> Optional[Cell]:
        return self.load_ref() if self.load_bit() else None

    def end_parse(self) -> None:
        if self.remaining_bits or self.remaining_refs:
            raise DecodeError(
                f"unparsed data left: {self.remaining_bits} bits, {self.remaining_refs} refs"
            )


# -----------------------------------------------------------------------------
# Bag of cells
# -----------------------------------------------------------------------------


def _byte_len(n: int) -> int:
    return max(1, (n.bit_length() + 7) // 8)


def _topo_order(root: Cell) -> List[Cell]:
    """Unique cells with every parent before its children."""
    seen = set()
    post: List[Cell] = []
    stack: List[Tuple[Cell, bool]] = [(root, False)]
    while stack:
        cell, expanded = stack.pop()
        h = cell.hash()
        if expanded:
            post.append(cell)
            continue
        if h in seen:
            continue
        seen.add(h)
        stack.append((cell, True))
        for ref in reversed(cell.refs):
            if ref.hash() not in seen:
                stack.append((ref, False))
    post.reverse()
    return post


def to_boc(root: Cell, *, crc: bool = True) -> bytes:
    """Serialize a single-root cell tree (no index, no cache bits)."""
    cells = _topo_order(root)
    index = {c.hash(): i for i, c in enumerate(cells)}
    size_bytes = _byte_len(len(cells))

    payload = bytearray()
    for c in cells:
        payload += c._descriptors()
        payload += c._augmented_data()
        for ref in c.refs:
            payload += index[ref.hash()].to_bytes(size_bytes, "big")

    off_bytes = _byte_len(len(payload))
    out = bytearray(_BOC_MAGIC)
    out.append((0x40 if crc else 0) | size_bytes)
    out.append(off_bytes)
    out += len(cells).to_bytes(size_bytes, "big")
    out += (1).to_bytes(size_bytes, "big")  # roots
    out += (0).to_bytes(size_bytes, "big")  # absent
    out += len(payload).to_bytes(off_bytes, "big")
    out += (0).to_bytes(size_bytes, "big")  # root index
    out += payload
    if crc:
        out += crc32c(out)
    return bytes(out)


class _Reader:
    __slots__ = ("buf", "pos")

    def __init__(self, buf: bytes) -> None:
        self.buf = buf
        self.pos = 0

    def take(self, n: int) -> bytes:
        if self.pos + n > len(self.buf):
            raise DecodeError("truncated BOC")
        out = self.buf[self.pos:self.pos + n]
        self.pos += n
        return out

    def uint(self, n: int) -> int:
        return int.from_bytes(self.take(n), "big")


def from_boc(data: BytesLike) -> Cell:
    """
    Parse a serialized BOC and return its first root cell.

    Raises:
        DecodeError on bad magic, truncation, CRC mismatch, bad ref order or
        exotic cells.
    """
    buf = bytes(data)
    r = _Reader(buf)
    if r.take(4) != _BOC_MAGIC:
        raise DecodeError("not a BOC (bad magic)")
    flags = r.uint(1)
    has_idx = bool(flags & 0x80)
    has_crc = bool(flags & 0x40)
    size_bytes = flags & 0x07
    if not 1 <= size_bytes <= 4:
        raise DecodeError(f"invalid BOC ref size {size_bytes}")
    off_bytes = r.uint(1)
    if not 1 <= off_bytes <= 8:
        raise DecodeError(f"invalid BOC offset size {off_bytes}")
    n_cells = r.uint(size_bytes)
    n_roots = r.uint(size_bytes)
    r.uint(size_bytes)  # absent
    total = r.uint(off_bytes)
    if n_roots < 1 or n_roots > n_cells:
        raise DecodeError("BOC has no usable root")
    roots = [r.uint(size_bytes) for _ in range(n_roots)]
    if has_idx:
        r.take(n_cells * off_bytes)

    if has_crc:
        if len(buf) < 4 or crc32c(buf[:-4]) != buf[-4:]:
            raise DecodeError("BOC CRC32C mismatch")

    start = r.pos
    raw_cells: List[Tuple[int, int, List[int]]] = []
    for i in range(n_cells):
        d1, d2 = r.take(2)
        if d1 & 0x08:
            raise DecodeError("exotic cells are not supported")
        if d1 & 0x10:
            raise DecodeError("BOC cells with stored hashes are not supported")
        n_refs = d1 & 0x07
        if n_refs > MAX_REFS:
            raise DecodeError(f"cell {i} has {n_refs} refs")
        data_len = (d2 + 1) // 2
        raw = r.take(data_len)
        value = int.from_bytes(raw, "big") if raw else 0
        bits = data_len * 8
        if d2 & 1:
            # strip completion tag: trailing zeros plus the closing 1 bit
            if value == 0:
                raise DecodeError(f"cell {i} has a malformed completion tag")
            tz = (value & -value).bit_length()
            value >>= tz
            bits -= tz
        refs = [r.uint(size_bytes) for _ in range(n_refs)]
        if any(ref <= i or ref >= n_cells for ref in refs):
            raise DecodeError(f"cell {i} references out of order")
        raw_cells.append((value, bits, refs))
    if r.pos - start != total:
        raise DecodeError("BOC cell data size mismatch")

    built: List[Optional[Cell]] = [None] * n_cells
    for i in range(n_cells - 1, -1, -1):
        value, bits, refs = raw_cells[i]
        built[i] = Cell(value, bits, [built[j] for j in refs])  # type: ignore[misc]
    root = built[roots[0]]
    assert root is not None
    return root


# -----------------------------------------------------------------------------
# StateInit & address derivation
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class StateInit:
    """The {code, data} bundle that must accompany a contract's first message."""

    code: Cell
    data: Cell

    def to_cell(self) -> Cell:
        # split_depth:nothing special:nothing code:just data:just library:empty
        return (
            begin_cell()
            .store_bit(False)
            .store_bit(False)
            .store_maybe_ref(self.code)
            .store_maybe_ref(self.data)
            .store_bit(False)
            .end_cell()
        )

    def address(self, workchain: int = 0) -> Address:
        return contract_address(workchain, self)


def contract_address(workchain: int, init: StateInit) -> Address:
    """Deterministic contract address: representation hash of the StateInit cell."""
    return Address(workchain, init.to_cell().hash())
