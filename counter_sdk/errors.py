"""
Typed error classes for the counter SDK.

Local input problems surface as `EncodeError` (before anything leaves the
process) and `DecodeError` (malformed results/cells). Everything the ledger or
network reports passes through as `TransportError`, `NotDeployedError` or
`OperationRejected`. All of them derive from `CounterSdkError`.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntEnum
from typing import Any, Optional

__all__ = [
    "CounterSdkError",
    "EncodeError",
    "DecodeError",
    "NotDeployedError",
    "TransportError",
    "OperationRejected",
    "ExitCode",
]


class CounterSdkError(Exception):
    """Base class for all SDK errors."""


class ExitCode(IntEnum):
    # TVM standard exit codes
    OK = 0
    INTEGER_OUT_OF_RANGE = 5
    CELL_UNDERFLOW = 9
    METHOD_NOT_FOUND = 11
    # Contract-defined
    NOT_OWNER = 73
    UNKNOWN_OP = 0xFFFF
    # toncenter reports get-method calls on uninitialized accounts this way
    NOT_INITIALIZED = -13


@dataclass(eq=False)
class EncodeError(CounterSdkError):
    """
    Raised when an operand cannot be encoded.

    Typical causes: out-of-range integers for their declared width, cell
    overflow (more than 1023 bits or 4 refs), deploy without an init bundle.
    """

    message: str
    field: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        where = f" [{self.field}]" if self.field else ""
        return f"EncodeError{where}: {self.message}"


@dataclass(eq=False)
class DecodeError(CounterSdkError):
    """Raised when a view result, cell or BOC cannot be decoded."""

    message: str
    data: Optional[Any] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        return f"DecodeError: {self.message}"


@dataclass(eq=False)
class NotDeployedError(CounterSdkError):
    """Raised when an operation targets an address with no active account."""

    address: str
    state: Optional[str] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        suffix = f" (state={self.state})" if self.state else ""
        return f"contract at {self.address} is not deployed{suffix}"


@dataclass(eq=False)
class TransportError(CounterSdkError):
    """
    Opaque network/RPC failure.

    Fields:
      - method: RPC method name, if known
      - code: RPC or HTTP error code (if available)
      - http_status: HTTP status of the response (if any)
      - data: raw error payload for debugging
    """

    message: str
    method: Optional[str] = None
    code: Optional[int] = None
    http_status: Optional[int] = None
    data: Optional[Any] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        parts = [f"RPC[{self.method or '-'}] {self.message}"]
        if self.code is not None:
            parts.append(f"code={self.code}")
        if self.http_status is not None:
            parts.append(f"http={self.http_status}")
        if self.data is not None:
            parts.append(f"data={self.data!r}")
        return " ".join(parts)


@dataclass(eq=False)
class OperationRejected(CounterSdkError):
    """
    A message or view call that reached the ledger and failed there.

    For messages, `opcode` and `sender` identify the failing operation so the
    failure is attributable (e.g. the owner gate of contract V3). For view
    calls, `method` is set instead.
    """

    message: str
    address: Optional[str] = None
    sender: Optional[str] = None
    opcode: Optional[int] = None
    method: Optional[str] = None
    exit_code: Optional[int] = None

    def __str__(self) -> str:  # pragma: no cover - trivial
        bits = [self.message]
        if self.address:
            bits.append(f"to={self.address}")
        if self.sender:
            bits.append(f"from={self.sender}")
        if self.opcode is not None:
            bits.append(f"op=0x{self.opcode:08x}")
        if self.method:
            bits.append(f"method={self.method}")
        if self.exit_code is not None:
            bits.append(f"exit_code={self.exit_code}")
        return "OperationRejected: " + " ".join(bits)

    @property
    def exit_code_enum(self) -> Optional[ExitCode]:
        if self.exit_code is None:
            return None
        try:
            return ExitCode(self.exit_code)
        except ValueError:
            return None
