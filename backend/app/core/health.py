"""
Health-check helpers for liveness and readiness probes.

Liveness:  is the process alive and not deadlocked? (no I/O)
Readiness: can it serve traffic? (pool open, database reachable)
"""

import logging

from app.core.database import Database

logger = logging.getLogger(__name__)


def liveness_check() -> tuple[bool, list[str]]:
    """
    Lightweight liveness probe; just confirms the Python process is responsive.
    No I/O, no DB calls.  Return format matches readiness_check for consistency.
    """
    return (True, [])


def readiness_check(db: Database) -> tuple[bool, list[str]]:
    """
    Check the pool is open and a connection can run SELECT 1.
    Returns (ok, list of failure messages).
    """
    failures: list[str] = []

    if db.pool.closed:
        failures.append("pool_closed")
    elif not db.health_check():
        logger.warning("Readiness check: database unreachable")
        failures.append("postgres")

    return (len(failures) == 0, failures)
