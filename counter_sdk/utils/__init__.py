"""
Small helpers shared across the SDK: byte/hex/base64 conversions, hashes and
checksums, coin units, and retry/polling loops.
"""

from __future__ import annotations

from .bytes import BytesLike, ensure_bytes, from_base64, from_hex, to_base64, to_hex
from .hash import crc16, crc32c, sha256
from .retry import PollTimeout, RetryError, apoll_until, poll_until, retry_call
from .units import from_nano, to_nano

__all__ = [
    "BytesLike",
    "ensure_bytes",
    "to_hex",
    "from_hex",
    "to_base64",
    "from_base64",
    "sha256",
    "crc16",
    "crc32c",
    "RetryError",
    "PollTimeout",
    "retry_call",
    "poll_until",
    "apoll_until",
    "to_nano",
    "from_nano",
]
