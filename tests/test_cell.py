import hashlib

import pytest

from counter_sdk.address import Address
from counter_sdk.cell import (MAX_BITS, Cell, StateInit, begin_cell,
                              contract_address, from_boc, to_boc)
from counter_sdk.errors import DecodeError, EncodeError
from counter_sdk.utils.hash import crc16, crc32c

EMPTY_CELL_HASH = "96a296d224f285c67bee93c30f8a309157f0daa35dc5b87e410b78630a09cfc7"


def test_checksum_vectors():
    assert crc16(b"123456789") == bytes.fromhex("31c3")
    assert crc32c(b"123456789") == bytes.fromhex("839206e3")


def test_empty_cell_hash_and_boc():
    empty = begin_cell().end_cell()
    assert empty.is_empty()
    assert empty.hash().hex() == EMPTY_CELL_HASH
    assert to_boc(empty, crc=False).hex() == "b5ee9c72010101010002000000"
    assert from_boc(empty.to_boc()) == empty


def test_unaligned_cell_hash_uses_completion_tag():
    c = begin_cell().store_bit(True).end_cell()
    assert c.data() == b"\x80"
    assert c.hash() == hashlib.sha256(b"\x00\x01\xc0").digest()


def test_hash_covers_refs_and_depth():
    leaf = begin_cell().store_uint(7, 32).end_cell()
    parent = begin_cell().store_uint(1, 8).store_ref(leaf).end_cell()
    expected = hashlib.sha256(
        bytes([1, 2]) + b"\x01" + (0).to_bytes(2, "big") + leaf.hash()
    ).digest()
    assert parent.hash() == expected
    assert parent.depth() == 1
    assert leaf.depth() == 0


def test_builder_slice_roundtrip_of_field_types():
    owner = Address(0, bytes(range(32)))
    c = (
        begin_cell()
        .store_uint(0xDEADBEEF, 32)
        .store_int(-5, 8)
        .store_bit(True)
        .store_coins(50_000_000)
        .store_address(owner)
        .store_address(None)
        .store_bytes(b"hi")
        .end_cell()
    )
    s = c.begin_parse()
    assert s.load_uint(32) == 0xDEADBEEF
    assert s.load_int(8) == -5
    assert s.load_bit() is True
    assert s.load_coins() == 50_000_000
    assert s.load_address() == owner
    assert s.load_address() is None
    assert s.load_bytes(2) == b"hi"
    s.end_parse()


def test_builder_rejects_overflow_and_bad_values():
    with pytest.raises(EncodeError):
        begin_cell().store_uint(256, 8)
    with pytest.raises(EncodeError):
        begin_cell().store_uint(-1, 8)
    with pytest.raises(EncodeError):
        begin_cell().store_int(128, 8)
    with pytest.raises(EncodeError):
        begin_cell().store_uint(0, MAX_BITS).store_bit(True)
    b = begin_cell()
    for _ in range(4):
        b.store_ref(Cell())
    with pytest.raises(EncodeError):
        b.store_ref(Cell())


def test_slice_underflow_and_trailing_data():
    c = begin_cell().store_uint(1, 32).end_cell()
    with pytest.raises(DecodeError):
        c.begin_parse().load_uint(33)
    with pytest.raises(DecodeError):
        c.begin_parse().load_ref()
    s = c.begin_parse()
    s.load_uint(16)
    with pytest.raises(DecodeError):
        s.end_parse()


def test_boc_roundtrip_nested_tree_dedups_shared_cells():
    shared = begin_cell().store_uint(42, 16).end_cell()
    mid = begin_cell().store_bit(False).store_ref(shared).end_cell()
    root = begin_cell().store_uint(3, 3).store_ref(mid).store_ref(shared).end_cell()

    boc = root.to_boc()
    assert boc[:4] == bytes.fromhex("b5ee9c72")
    assert boc[6] == 3  # root, mid, shared
    decoded = from_boc(boc)
    assert decoded == root
    assert decoded.refs[0].refs[0] == decoded.refs[1]
    assert Cell.from_base64(root.to_base64()) == root


def test_boc_crc_mismatch_rejected():
    boc = bytearray(begin_cell().store_uint(5, 8).end_cell().to_boc())
    boc[-1] ^= 0xFF
    with pytest.raises(DecodeError, match="CRC32C"):
        from_boc(bytes(boc))


def test_boc_rejects_bad_magic_truncation_and_exotic_cells():
    with pytest.raises(DecodeError):
        from_boc(b"\x00\x01\x02\x03\x04")
    good = to_boc(begin_cell().end_cell(), crc=False)
    with pytest.raises(DecodeError):
        from_boc(good[:-1])
    exotic = bytearray(good)
    exotic[-2] = 0x08  # d1 of the only cell
    with pytest.raises(DecodeError, match="exotic"):
        from_boc(bytes(exotic))


def test_state_init_layout_and_address():
    code = begin_cell().store_uint(1, 8).end_cell()
    data = begin_cell().store_uint(0, 64).end_cell()
    init = StateInit(code, data)
    cell = init.to_cell()
    assert cell.bit_length == 5
    assert cell.value == 0b00110
    assert cell.refs == (code, data)

    addr = contract_address(0, init)
    assert addr == init.address(0)
    assert addr.hash_part == cell.hash()
    assert contract_address(-1, init).workchain == -1

    other = StateInit(code, begin_cell().store_uint(1, 64).end_cell())
    assert contract_address(0, other) != addr
