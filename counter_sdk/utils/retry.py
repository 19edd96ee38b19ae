"""
Retry and polling helpers.

Two families live here, both outside the core contract client:

- `retry_call` re-invokes a failing *idempotent* call with exponential backoff
  and jitter (used by the HTTP transport for read-only RPC methods).
- `poll_until` / `apoll_until` re-read a value at a fixed interval until a
  predicate holds, bounded by attempts and/or an overall timeout. This is how
  callers wait for a sent message to land (e.g. the counter to change).

Example (sync)
--------------
from counter_sdk.utils.retry import poll_until

before = contract.get_counter()
contract.send_increase(wallet, increase_by=5, value=to_nano("0.05"))
after = poll_until(contract.get_counter, lambda v: v != before, interval=2.0, max_attempts=30)

Example (async)
---------------
value = await apoll_until(fetch, lambda v: v > 0, interval=0.5, timeout=20.0)

Notes
-----
- Exhaustion raises `RetryError` (retry_call) or `PollTimeout` (polling); the
  last exception/value is kept on the error for inspection.
- `on_retry` / `on_attempt` callbacks let CLIs render progress.
"""

from __future__ import annotations

import asyncio
import logging
import random
import time
from typing import (Any, Awaitable, Callable, Literal, Optional, Sequence,
                    Tuple, Type, TypeVar, Union)

__all__ = [
    "RetryError",
    "PollTimeout",
    "backoff_delay",
    "retry_call",
    "poll_until",
    "apoll_until",
]

log = logging.getLogger(__name__)

T = TypeVar("T")

JitterMode = Literal["full", "equal", "none"]


class RetryError(RuntimeError):
    """Raised when all retry attempts are exhausted."""

    def __init__(self, last_exception: BaseException, attempts: int) -> None:
        super().__init__(f"exhausted after {attempts} attempts: {last_exception!r}")
        self.last_exception = last_exception
        self.attempts = attempts


class PollTimeout(TimeoutError):
    """Raised when a polled value never satisfied its predicate."""

    def __init__(self, last_value: Any, attempts: int) -> None:
        super().__init__(f"condition not met after {attempts} attempts (last value: {last_value!r})")
        self.last_value = last_value
        self.attempts = attempts


def backoff_delay(
    attempt: int,
    *,
    base: float,
    max_delay: float,
    jitter: JitterMode = "full",
) -> float:
    """
    Compute a backoff delay (in seconds) for the given attempt (1-based).

    - base: initial backoff (seconds), e.g. 0.1
    - max_delay: maximum per-attempt delay (cap)
    - jitter: full = U(0, cap); equal = cap/2 + U(0, cap/2); none = cap
    """
    if attempt < 1:
        attempt = 1
    cap = min(base * (2 ** (attempt - 1)), max_delay)

    if jitter == "full":
        delay = random.uniform(0.0, cap)
    elif jitter == "equal":
        delay = (cap * 0.5) + random.uniform(0.0, cap * 0.5)
    elif jitter == "none":
        delay = cap
    else:
        raise ValueError(f"unknown jitter mode: {jitter}")
    return max(0.0, float(delay))


def retry_call(
    fn: Callable[..., T],
    *args: Any,
    retries: int = 3,
    base: float = 0.2,
    max_delay: float = 3.0,
    jitter: JitterMode = "full",
    exceptions: Union[Type[BaseException], Sequence[Type[BaseException]]] = Exception,
    on_retry: Optional[Callable[[int, BaseException, float], None]] = None,
    total_timeout: Optional[float] = None,
    **kwargs: Any,
) -> T:
    """
    Call `fn` with retries on `exceptions`; anything else propagates at once.

    Only use this for idempotent reads. Message submission is never retried.
    """
    if isinstance(exceptions, type):
        exc_types: Tuple[Type[BaseException], ...] = (exceptions,)
    else:
        exc_types = tuple(exceptions)

    deadline = time.monotonic() + total_timeout if total_timeout is not None else None

    attempt = 0
    while True:
        attempt += 1
        try:
            return fn(*args, **kwargs)
        except exc_types as exc:
            if attempt > retries:
                raise RetryError(exc, attempts=attempt) from exc

            sleep_s = backoff_delay(attempt, base=base, max_delay=max_delay, jitter=jitter)
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise RetryError(exc, attempts=attempt) from exc
                sleep_s = min(sleep_s, remaining)

            log.warning("retrying %s after %r (attempt %d, sleep %.2fs)",
                        getattr(fn, "__name__", fn), exc, attempt, sleep_s)
            if on_retry is not None:
                on_retry(attempt, exc, sleep_s)
            time.sleep(sleep_s)


def _check_bounds(max_attempts: Optional[int], timeout: Optional[float]) -> None:
    if max_attempts is None and timeout is None:
        raise ValueError("polling needs max_attempts and/or timeout")
    if max_attempts is not None and max_attempts < 1:
        raise ValueError("max_attempts must be >= 1")


def poll_until(
    fn: Callable[[], T],
    predicate: Callable[[T], bool],
    *,
    interval: float = 2.0,
    max_attempts: Optional[int] = 30,
    timeout: Optional[float] = None,
    on_attempt: Optional[Callable[[int, T], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call `fn()` until `predicate(value)` is true and return that value.

    The first read happens immediately; subsequent reads are `interval`
    seconds apart. Exceptions raised by `fn` propagate unchanged.

    Raises:
        PollTimeout when `max_attempts` reads or `timeout` seconds are used up.
    """
    _check_bounds(max_attempts, timeout)
    deadline = time.monotonic() + timeout if timeout is not None else None

    attempt = 0
    while True:
        attempt += 1
        value = fn()
        if predicate(value):
            return value
        if on_attempt is not None:
            on_attempt(attempt, value)
        if max_attempts is not None and attempt >= max_attempts:
            raise PollTimeout(value, attempt)
        if deadline is not None and time.monotonic() + interval > deadline:
            raise PollTimeout(value, attempt)
        sleep(interval)


async def apoll_until(
    fn: Callable[[], Awaitable[T]],
    predicate: Callable[[T], bool],
    *,
    interval: float = 2.0,
    max_attempts: Optional[int] = 30,
    timeout: Optional[float] = None,
    on_attempt: Optional[Callable[[int, T], None]] = None,
) -> T:
    """
    Async version of `poll_until`. Awaits `fn()` between `asyncio.sleep` calls.

    Cancellation of the awaiting task propagates as usual.
    """
    _check_bounds(max_attempts, timeout)
    deadline = time.monotonic() + timeout if timeout is not None else None

    attempt = 0
    while True:
        attempt += 1
        value = await fn()
        if predicate(value):
            return value
        if on_attempt is not None:
            on_attempt(attempt, value)
        if max_attempts is not None and attempt >= max_attempts:
            raise PollTimeout(value, attempt)
        if deadline is not None and time.monotonic() + interval > deadline:
            raise PollTimeout(value, attempt)
        await asyncio.sleep(interval)
