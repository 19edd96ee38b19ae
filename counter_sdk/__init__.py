"""
Counter SDK — Python
Convenience exports for the upgradable counter contract client.
"""

from .version import __version__  # noqa: F401

# Core config & errors
from .config import SDKConfig  # noqa: F401
from .errors import (  # noqa: F401
    CounterSdkError,
    DecodeError,
    EncodeError,
    ExitCode,
    NotDeployedError,
    OperationRejected,
    TransportError,
)

# Cells & addresses
from .address import Address  # noqa: F401
from .cell import Builder, Cell, Slice, StateInit, begin_cell, contract_address  # noqa: F401

# Message codec
from .messages import (  # noqa: F401
    CounterConfig,
    Opcode,
    Operation,
    config_to_cell,
    decode_message,
    decode_number,
    encode_message,
)

# Upgrade rules
from .upgrade import RULES, ContractVersion, VersionRules, apply_message  # noqa: F401

# Transports
from .rpc.http import RpcClient  # noqa: F401
from .transport import (  # noqa: F401
    DeeplinkSender,
    HttpTransport,
    InternalMessage,
    SendMode,
    ensure_deployed,
)

# Contracts
from .contracts.artifacts import load_compiled  # noqa: F401
from .contracts.counter import CounterContract  # noqa: F401

# Sandbox
from .sandbox import Blockchain, SendResult, Transaction, reference_code  # noqa: F401

# Utilities
from .utils.retry import apoll_until, poll_until  # noqa: F401
from .utils.units import from_nano, to_nano  # noqa: F401

__all__ = [
    "__version__",
    # Core
    "SDKConfig",
    "CounterSdkError", "EncodeError", "DecodeError", "NotDeployedError",
    "TransportError", "OperationRejected", "ExitCode",
    # Cells & addresses
    "Address", "Cell", "Builder", "Slice", "StateInit", "begin_cell", "contract_address",
    # Messages
    "Opcode", "Operation", "CounterConfig", "config_to_cell",
    "encode_message", "decode_message", "decode_number",
    # Upgrade
    "ContractVersion", "VersionRules", "RULES", "apply_message",
    # Transports
    "RpcClient", "HttpTransport", "DeeplinkSender", "InternalMessage", "SendMode", "ensure_deployed",
    # Contracts
    "CounterContract", "load_compiled",
    # Sandbox
    "Blockchain", "SendResult", "Transaction", "reference_code",
    # Utils
    "poll_until", "apoll_until", "to_nano", "from_nano",
]
