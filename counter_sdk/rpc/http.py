from __future__ import annotations

"""
HTTP JSON-RPC client (sync) for toncenter-compatible v2 endpoints.

- Uses httpx; one pooled client per instance.
- toncenter answers `{"ok": true, "result": ...}` or `{"ok": false, "error": "...", "code": N}`;
  plain JSON-RPC `{"error": {"code", "message"}}` objects are understood too.
- Read-only methods are retried on transient transport failures and 429/5xx.
  Non-idempotent methods (sendBoc) are sent exactly once.

Example:
    from counter_sdk.rpc.http import RpcClient
    rpc = RpcClient("https://testnet.toncenter.com/api/v2/jsonRPC", api_key="...")
    state = rpc.call("getAddressState", {"address": "EQ..."})
"""

import json
import logging
import time
from dataclasses import dataclass, field
from itertools import count
from typing import Any, Dict, Iterator, Mapping, Optional, Union

import httpx

from ..errors import TransportError
from ..utils.retry import RetryError, retry_call
from ..version import __version__ as SDK_VERSION

log = logging.getLogger(__name__)

JSON = Union[dict, list, str, int, float, bool, None]

IDEMPOTENT_METHODS = frozenset(
    {
        "runGetMethod",
        "getAddressState",
        "getAddressInformation",
        "getAddressBalance",
        "getMasterchainInfo",
    }
)


def _now_ms() -> int:
    return int(time.time() * 1000)


def _is_retriable_http(status: int) -> bool:
    # Typical transient HTTP statuses: 429/502/503/504
    return status in (429, 502, 503, 504)


class _Transient(Exception):
    """Network hiccup or retriable HTTP status; never escapes this module."""


@dataclass
class RpcClient:
    """Synchronous JSON-RPC 2.0 client over HTTP."""

    url: str
    api_key: Optional[str] = None
    timeout: float = 10.0
    max_retries: int = 3
    backoff_base: float = 0.25
    backoff_max: float = 3.0
    headers: Optional[Mapping[str, str]] = None
    transport: Optional[httpx.BaseTransport] = None
    _id_counter: Iterator[int] = field(default_factory=lambda: count(start=_now_ms()))
    _client: Any = field(init=False, default=None)

    def __post_init__(self) -> None:
        merged_headers: Dict[str, str] = {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "User-Agent": f"counter-sdk-python/{SDK_VERSION}",
        }
        if self.api_key:
            merged_headers["X-API-Key"] = self.api_key
        if self.headers:
            merged_headers.update(dict(self.headers))
        self._client = httpx.Client(timeout=self.timeout, headers=merged_headers, transport=self.transport)

    # --- context manager -------------------------------------------------

    def __enter__(self) -> "RpcClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        self.close()

    def close(self) -> None:
        if self._client is not None:
            self._client.close()

    # --- public API ------------------------------------------------------

    def call(self, method: str, params: Optional[Mapping[str, Any]] = None) -> JSON:
        """Perform one JSON-RPC request and return `result` or raise TransportError."""
        payload = self._make_payload(method, params)
        if method not in IDEMPOTENT_METHODS:
            return self._send_once_mapped(payload)
        try:
            return retry_call(
                self._send_once,
                payload,
                retries=self.max_retries,
                base=self.backoff_base,
                max_delay=self.backoff_max,
                exceptions=_Transient,
            )
        except RetryError as e:
            raise TransportError(
                "RPC transport failed", method=method, data=str(e.last_exception)
            ) from e.last_exception

    # --- internals -------------------------------------------------------

    def _make_payload(self, method: str, params: Optional[Mapping[str, Any]]) -> Dict[str, Any]:
        return {
            "jsonrpc": "2.0",
            "id": next(self._id_counter),
            "method": method,
            "params": dict(params or {}),
        }

    def _send_once_mapped(self, payload: Dict[str, Any]) -> JSON:
        try:
            return self._send_once(payload)
        except _Transient as e:
            raise TransportError("RPC transport failed", method=payload["method"], data=str(e)) from e

    def _send_once(self, payload: Dict[str, Any]) -> JSON:
        method = payload["method"]
        body = json.dumps(payload, separators=(",", ":"), ensure_ascii=False)
        log.debug("rpc -> %s id=%s", method, payload["id"])
        try:
            r = self._client.post(self.url, content=body)
        except (httpx.TimeoutException, httpx.NetworkError) as e:
            raise _Transient(f"network error: {e}") from e
        if _is_retriable_http(r.status_code):
            raise _Transient(f"HTTP {r.status_code}")
        # Avoid raise_for_status() to keep error body visible below
        try:
            resp = r.json()
        except ValueError as e:
            raise TransportError(
                "Non-JSON response from RPC",
                method=method,
                http_status=r.status_code,
                data=r.text[:256],
            ) from e

        if not isinstance(resp, dict):
            raise TransportError("Invalid JSON-RPC response type", method=method, data=type(resp).__name__)
        err = resp.get("error")
        if err is not None or resp.get("ok") is False:
            if isinstance(err, Mapping):
                raise TransportError(
                    str(err.get("message", "Unknown error")),
                    method=method,
                    code=err.get("code"),
                    http_status=r.status_code,
                    data=err.get("data"),
                )
            raise TransportError(
                str(err or "Unknown error"),
                method=method,
                code=resp.get("code"),
                http_status=r.status_code,
            )
        if "result" not in resp:
            raise TransportError("Malformed JSON-RPC response", method=method, data=resp)
        return resp["result"]


__all__ = ["RpcClient", "IDEMPOTENT_METHODS"]
