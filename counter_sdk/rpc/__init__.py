"""
counter_sdk.rpc
===============

Transport-level RPC clients. Only the synchronous HTTP JSON-RPC client is
provided; it speaks the toncenter v2 `jsonRPC` dialect.
"""

from __future__ import annotations

from .http import IDEMPOTENT_METHODS, RpcClient

__all__ = ["RpcClient", "IDEMPOTENT_METHODS"]
