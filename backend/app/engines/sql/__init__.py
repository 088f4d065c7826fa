"""
SQL engine for the CRM data access layer.

Exports: Statement, QueryResult, Page, Transaction, the generic CRUD
builders and the table allow-list.
"""

from app.engines.sql.builders import (
    CrudMixin,
    Page,
    delete,
    find_all,
    find_by_id,
    find_with_pagination,
    insert,
    update,
)
from app.engines.sql.executor import execute_statement, run_statement
from app.engines.sql.statement import QueryResult, Statement
from app.engines.sql.tables import TABLES, TableSpec
from app.engines.sql.transaction import Transaction, run_in_transaction

__all__ = [
    "CrudMixin",
    "Page",
    "QueryResult",
    "Statement",
    "TABLES",
    "TableSpec",
    "Transaction",
    "delete",
    "execute_statement",
    "find_all",
    "find_by_id",
    "find_with_pagination",
    "insert",
    "run_in_transaction",
    "run_statement",
    "update",
]
