"""
Connection pool for the CRM database.

One ConnectionPool per process; psycopg 3 is the only driver.
"""

from .connect import connect, cursor_to_dicts, execute
from .health import health_check
from .manager import ConnectionPool

__all__ = [
    "connect",
    "execute",
    "cursor_to_dicts",
    "health_check",
    "ConnectionPool",
]
