from __future__ import annotations

import binascii
import hashlib

from .bytes import BytesLike, ensure_bytes


# --- SHA-256 ------------------------------------------------------------------
# Cell representation hashes and contract addresses are SHA-256 based.

def sha256(data: BytesLike) -> bytes:
    """Return SHA-256 digest of *data*."""
    return hashlib.sha256(ensure_bytes(data)).digest()


# --- Checksums ------------------------------------------------------------------

def crc16(data: BytesLike) -> bytes:
    """
    CRC16/XMODEM (poly 0x1021, init 0) as two big-endian bytes.

    Used as the trailer of user-friendly addresses.
    """
    return binascii.crc_hqx(ensure_bytes(data), 0).to_bytes(2, "big")


_CRC32C_POLY = 0x82F63B78


def _crc32c_table() -> list[int]:
    table = []
    for i in range(256):
        c = i
        for _ in range(8):
            c = (c >> 1) ^ _CRC32C_POLY if c & 1 else c >> 1
        table.append(c)
    return table


_CRC32C_TABLE = _crc32c_table()


def crc32c(data: BytesLike) -> bytes:
    """
    CRC32C (Castagnoli) as four little-endian bytes.

    Used as the optional trailer of bag-of-cells blobs.
    """
    crc = 0xFFFFFFFF
    for b in ensure_bytes(data):
        crc = _CRC32C_TABLE[(crc ^ b) & 0xFF] ^ (crc >> 8)
    return (crc ^ 0xFFFFFFFF).to_bytes(4, "little")


__all__ = [
    "sha256",
    "crc16",
    "crc32c",
]
