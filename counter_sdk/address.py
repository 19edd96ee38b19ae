"""
counter_sdk.address
===================

Chain addresses: a signed 8-bit workchain id plus a 256-bit account hash.

Formats
-------
Raw form::

    <workchain>:<64 hex chars>          e.g. 0:83df…a1

User-friendly form (48 chars of base64 / base64url) over 36 bytes::

    tag(1) || workchain(1, signed) || hash(32) || crc16_xmodem(first 34)

where `tag` is 0x11 (bounceable) or 0x51 (non-bounceable), OR-ed with 0x80
for test-only addresses.

This module provides:
- Address.parse(text) -> Address (raw or user-friendly)
- Address.to_raw() / Address.to_string(...)
- is_valid(text) -> bool
- AddressError for malformed input
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Union

from .errors import DecodeError
from .utils.bytes import from_base64, to_base64
from .utils.hash import crc16

__all__ = ["Address", "AddressError", "is_valid"]

_TAG_BOUNCEABLE = 0x11
_TAG_NON_BOUNCEABLE = 0x51
_TAG_TEST_ONLY = 0x80


class AddressError(DecodeError, ValueError):
    """Raised for malformed or invalid addresses."""


@dataclass(frozen=True)
class Address:
    workchain: int
    hash_part: bytes

    def __post_init__(self) -> None:
        if not -128 <= int(self.workchain) <= 127:
            raise AddressError(f"workchain out of int8 range: {self.workchain}")
        if not isinstance(self.hash_part, (bytes, bytearray)) or len(self.hash_part) != 32:
            raise AddressError("address hash must be 32 bytes")
        object.__setattr__(self, "hash_part", bytes(self.hash_part))

    # ------------------------------------------------------------------ Parsing

    @classmethod
    def parse(cls, text: Union[str, "Address"]) -> "Address":
        if isinstance(text, Address):
            return text
        if not isinstance(text, str):
            raise AddressError(f"address must be a string, got {type(text).__name__}")
        s = text.strip()
        if ":" in s:
            return cls.parse_raw(s)
        return cls.parse_friendly(s)

    @classmethod
    def parse_raw(cls, text: str) -> "Address":
        wc_s, _, hex_s = text.partition(":")
        try:
            wc = int(wc_s, 10)
            h = bytes.fromhex(hex_s)
        except ValueError as e:
            raise AddressError(f"invalid raw address {text!r}") from e
        return cls(wc, h)

    @classmethod
    def parse_friendly(cls, text: str) -> "Address":
        if len(text) != 48:
            raise AddressError(f"user-friendly address must be 48 chars, got {len(text)}")
        try:
            raw = from_base64(text)
        except ValueError as e:
            raise AddressError(f"invalid base64 address {text!r}") from e
        if len(raw) != 36:
            raise AddressError("user-friendly address must decode to 36 bytes")
        if crc16(raw[:34]) != raw[34:]:
            raise AddressError(f"address checksum mismatch: {text!r}")
        tag = raw[0] & ~_TAG_TEST_ONLY
        if tag not in (_TAG_BOUNCEABLE, _TAG_NON_BOUNCEABLE):
            raise AddressError(f"unknown address tag 0x{raw[0]:02x}")
        wc = int.from_bytes(raw[1:2], "big", signed=True)
        return cls(wc, raw[2:34])

    # ------------------------------------------------------------------ Formatting

    def to_raw(self) -> str:
        return f"{self.workchain}:{self.hash_part.hex()}"

    def to_string(self, *, bounceable: bool = True, test_only: bool = False, url_safe: bool = True) -> str:
        tag = _TAG_BOUNCEABLE if bounceable else _TAG_NON_BOUNCEABLE
        if test_only:
            tag |= _TAG_TEST_ONLY
        body = bytes([tag]) + int(self.workchain).to_bytes(1, "big", signed=True) + self.hash_part
        return to_base64(body + crc16(body), url_safe=url_safe)

    def __str__(self) -> str:
        return self.to_string()

    def __repr__(self) -> str:
        return f"Address({self.to_raw()!r})"


def is_valid(text: str) -> bool:
    try:
        Address.parse(text)
        return True
    except AddressError:
        return False
