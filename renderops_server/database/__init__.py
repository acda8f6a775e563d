"""Access to user-supplied target PostgreSQL databases."""

from renderops_server.database.pool import close_all_pools, close_pool, fetchval, get_pool, query
from renderops_server.database.introspection import (
    ColumnSchema,
    TableInfo,
    TableSchema,
    get_table_schema,
    list_tables,
    table_exists,
)

__all__ = [
    "close_all_pools",
    "close_pool",
    "fetchval",
    "get_pool",
    "query",
    "ColumnSchema",
    "TableInfo",
    "TableSchema",
    "get_table_schema",
    "list_tables",
    "table_exists",
]
