"""Repository layer for database operations.

Repositories encapsulate all database queries, keeping services free of SQL.
Generic services talk to TableRepository; hand-written services may add
their own repositories next to it.
"""

from repositories.table_repository import TableRepository, get_table
from repositories.utils import log_slow_query

__all__ = [
    "TableRepository",
    "get_table",
    "log_slow_query",
]
