"""
Connection health check for the CRM database.
"""

from typing import Any

from .connect import execute


def health_check(conn: Any) -> bool:
    """
    Run SELECT 1 and return True if no exception.
    """
    cur = None
    try:
        cur = execute(conn, "SELECT 1")
        cur.fetchone()
        return True
    except Exception:
        return False
    finally:
        if cur is not None:
            cur.close()
