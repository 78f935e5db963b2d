"""
Database module for Job Manager.
"""

from database.connection import (
    get_connection,
    get_db_connection,
    immediate_transaction,
    record_store_errors,
    init_database,
    check_database_health,
    row_to_dict,
    rows_to_dicts,
)

__all__ = [
    "get_connection",
    "get_db_connection",
    "immediate_transaction",
    "record_store_errors",
    "init_database",
    "check_database_health",
    "row_to_dict",
    "rows_to_dicts",
]
