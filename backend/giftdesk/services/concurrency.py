# Overview: Service-layer helpers for in-flight guards and bounded waits on remote calls.

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor, TimeoutError as FuturesTimeoutError
from contextlib import contextmanager
from typing import Callable, Hashable, TypeVar

from .table_store import RemoteTimeoutError


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Shared so that abandoning a slow call never blocks on executor shutdown
_remote_pool = ThreadPoolExecutor(max_workers=8, thread_name_prefix="giftdesk-remote")


class BusyError(Exception):
    """The same action is already in flight for this session."""


class InFlightGuard:
    """
    Per-key "in flight" flags for user-triggered actions.

    A second submission of the same (session, action) key while the first is
    pending is refused. Distinct keys never wait on each other. The lock only
    protects the flag set and is never held across a remote call.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._pending: set[Hashable] = set()

    def is_pending(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._pending

    @contextmanager
    def hold(self, key: Hashable):
        with self._lock:
            if key in self._pending:
                raise BusyError("이미 처리 중인 요청입니다.")
            self._pending.add(key)
        try:
            yield
        finally:
            with self._lock:
                self._pending.discard(key)


def submit(fn: Callable[[], T]):
    """Start fn on the shared remote worker pool and return its future."""
    return _remote_pool.submit(fn)


def run_with_deadline(fn: Callable[[], T], seconds: float, *, what: str = "remote call") -> T:
    """
    Run fn on the remote worker pool and wait at most `seconds` for it.

    Whichever settles first wins. On timeout RemoteTimeoutError is raised;
    the underlying call is not cancelled and may still complete later.
    """
    future = submit(fn)
    try:
        return future.result(timeout=seconds)
    except FuturesTimeoutError:
        logger.warning("%s still pending after %.1fs; no longer waiting", what, seconds)
        raise RemoteTimeoutError("서버 응답 시간이 초과되었습니다. 네트워크를 확인해 주세요.") from None
