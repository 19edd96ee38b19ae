"""
counter_sdk.contracts
=====================

Contract-level helpers.

Submodules
----------
- counter   : `CounterContract`, the client for the upgradable counter.
- artifacts : load compiled code cells from build artifacts.

Typical usage
-------------
    from counter_sdk.contracts import CounterContract, load_compiled

    code = load_compiled("build/SimpleContract.compiled.json")
    c = CounterContract.create_from_config(CounterConfig(id=1), code, transport=transport)
"""

from __future__ import annotations

from .artifacts import code_from_hex, load_compiled
from .counter import CounterContract

__all__ = ["CounterContract", "load_compiled", "code_from_hex"]
