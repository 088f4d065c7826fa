"""
Bounded connection pool for the CRM database.

One pool per process, constructed explicitly and shut down once. Holds at
most ``max_size`` live connections (idle + leased), evicts connections idle
longer than ``idle_timeout`` or older than ``max_age``, and fails
acquisitions that wait longer than ``acquire_timeout``.
"""

import logging
import threading
import time
from collections.abc import Callable
from typing import Any, NamedTuple

from app.core.config import settings
from app.core.errors import PoolClosedError, PoolExhaustedError

from .connect import connect

_log = logging.getLogger(__name__)

_PING_IDLE_THRESHOLD = 30.0  # only ping connections idle longer than this (seconds)


class _PoolEntry(NamedTuple):
    conn: Any
    created_at: float  # time.monotonic() when the connection was opened
    last_used: float   # time.monotonic() when last returned to pool


class ConnectionPool:
    """Thread-safe bounded pool with idle eviction and acquisition timeout."""

    def __init__(
        self,
        connect_fn: Callable[[], Any] | None = None,
        *,
        max_size: int | None = None,
        idle_timeout: float | None = None,
        acquire_timeout: float | None = None,
        max_age: float | None = None,
        drain_timeout: float | None = None,
    ) -> None:
        self._connect = connect_fn or connect
        self._max_size = max_size if max_size is not None else settings.DB_POOL_MAX_SIZE
        if self._max_size < 1:
            raise ValueError("max_size must be >= 1")
        self._idle_timeout = (
            idle_timeout if idle_timeout is not None else settings.DB_POOL_IDLE_TIMEOUT_SEC
        )
        self._acquire_timeout = (
            acquire_timeout
            if acquire_timeout is not None
            else settings.DB_POOL_ACQUIRE_TIMEOUT_SEC
        )
        self._max_age = max_age if max_age is not None else settings.DB_POOL_MAX_AGE_SEC
        self._drain_timeout = (
            drain_timeout if drain_timeout is not None else settings.DB_POOL_DRAIN_TIMEOUT_SEC
        )

        self._idle: list[_PoolEntry] = []
        # id(conn) -> created_at for every leased connection
        self._leased: dict[int, float] = {}
        self._opening = 0  # slots reserved for connections being opened
        self._cond = threading.Condition()
        self._closed = False
        self._established = False

    @property
    def max_size(self) -> int:
        return self._max_size

    @property
    def closed(self) -> bool:
        return self._closed

    def acquire(self, timeout: float | None = None) -> Any:
        """Lease a connection; raise PoolExhaustedError after *timeout* seconds."""
        wait = self._acquire_timeout if timeout is None else timeout
        deadline = time.monotonic() + wait
        while True:
            entry, may_open = self._checkout(deadline)
            if entry is not None:
                if self._usable(entry):
                    return entry.conn
                self._forget(entry.conn)
                self._close_quiet(entry.conn)
                continue
            if may_open:
                return self._open()

    def release(self, conn: Any, *, discard: bool = False) -> None:
        """Return a leased connection (or close it if broken, discarded or pool closed)."""
        if not discard and not conn.closed:
            try:
                conn.rollback()
            except Exception:
                _log.warning("Discarding connection that failed to reset", exc_info=True)
                discard = True
        else:
            discard = True

        with self._cond:
            created_at = self._leased.pop(id(conn), None)
            keep = (
                not discard
                and not self._closed
                and created_at is not None
                and not self._is_expired(created_at)
            )
            if keep:
                self._idle.append(
                    _PoolEntry(conn=conn, created_at=created_at, last_used=time.monotonic())
                )
            self._cond.notify_all()

        if not keep:
            self._close_quiet(conn)

    def shutdown(self) -> None:
        """Reject new acquisitions, close idle connections, wait for leased ones."""
        with self._cond:
            if self._closed:
                return
            self._closed = True
            entries = self._idle
            self._idle = []
            self._cond.notify_all()
        for e in entries:
            self._close_quiet(e.conn)

        deadline = time.monotonic() + self._drain_timeout
        with self._cond:
            while self._leased:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    _log.warning(
                        "Pool shutdown: %d connection(s) still leased after drain timeout",
                        len(self._leased),
                    )
                    break
                self._cond.wait(remaining)
        _log.info("Database connection pool has ended")

    def stats(self) -> dict[str, int | bool]:
        """Return pool statistics for monitoring."""
        with self._cond:
            return {
                "max_size": self._max_size,
                "idle": len(self._idle),
                "in_use": len(self._leased),
                "closed": self._closed,
            }

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _checkout(self, deadline: float) -> tuple[_PoolEntry | None, bool]:
        """Under the lock: pop an idle entry, reserve a slot to open, or wait."""
        evicted: list[_PoolEntry] = []
        try:
            with self._cond:
                while True:
                    if self._closed:
                        raise PoolClosedError()
                    evicted.extend(self._evict_idle())
                    if self._idle:
                        entry = self._idle.pop()
                        self._leased[id(entry.conn)] = entry.created_at
                        return entry, False
                    if len(self._leased) + len(self._idle) + self._opening < self._max_size:
                        self._opening += 1
                        return None, True
                    remaining = deadline - time.monotonic()
                    if remaining <= 0:
                        raise PoolExhaustedError()
                    self._cond.wait(remaining)
        finally:
            for e in evicted:
                self._close_quiet(e.conn)

    def _open(self) -> Any:
        try:
            conn = self._connect()
        except Exception:
            _log.error("Unexpected database error while connecting", exc_info=True)
            with self._cond:
                self._opening -= 1
                self._cond.notify_all()
            raise
        with self._cond:
            self._opening -= 1
            self._leased[id(conn)] = time.monotonic()
            first = not self._established
            self._established = True
        if first:
            _log.info("Database connection pool established")
        return conn

    def _forget(self, conn: Any) -> None:
        with self._cond:
            self._leased.pop(id(conn), None)
            self._cond.notify_all()

    def _evict_idle(self) -> list[_PoolEntry]:
        now = time.monotonic()
        keep: list[_PoolEntry] = []
        evicted: list[_PoolEntry] = []
        for e in self._idle:
            if now - e.last_used > self._idle_timeout or self._is_expired(e.created_at):
                evicted.append(e)
            else:
                keep.append(e)
        self._idle = keep
        return evicted

    def _usable(self, entry: _PoolEntry) -> bool:
        if entry.conn.closed:
            return False
        idle_sec = time.monotonic() - entry.last_used
        if idle_sec > _PING_IDLE_THRESHOLD and not self._is_alive(entry.conn):
            _log.warning("Discarding broken pooled connection")
            return False
        return True

    def _is_expired(self, created_at: float) -> bool:
        return (time.monotonic() - created_at) > self._max_age

    @staticmethod
    def _is_alive(conn: Any) -> bool:
        """Lightweight ping: attempt a no-op query to detect broken connections."""
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.close()
            return True
        except Exception:
            return False

    @staticmethod
    def _close_quiet(conn: Any) -> None:
        try:
            conn.close()
        except Exception:
            pass
