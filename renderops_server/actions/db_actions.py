"""
CRUD actions against target database tables.

Identifiers are validated and quoted; every value is sent as a bind
parameter after conversion to the column's type.
"""

import logging
import math
import re
from typing import Any, Optional

import asyncpg

from renderops_server.actions.base import ActionParams, ActionResult
from renderops_server.database.introspection import TABLE_NAME_PATTERN
from renderops_server.database.pool import query
from renderops_server.database.type_map import coerce_value

logger = logging.getLogger(__name__)

BLOCKED_TABLE_PREFIXES = ("pg_", "information_schema", "audit_log")

_UNSAFE_IDENTIFIER = re.compile(r"[^a-zA-Z0-9_]")
_DATE_ONLY = re.compile(r"^\d{4}-\d{2}-\d{2}$")

COLUMN_TYPES_SQL = """
    SELECT column_name, udt_name
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = $1
"""

TEXT_COLUMNS_SQL = """
    SELECT column_name
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = $1
    AND data_type IN ('text', 'character varying', 'varchar', 'char', 'character')
"""

DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, ValueError)


def validate_table_name(table: str) -> bool:
    if not TABLE_NAME_PATTERN.match(table or ""):
        return False
    return not table.lower().startswith(BLOCKED_TABLE_PREFIXES)


def sanitize_column_name(column: str) -> str:
    return _UNSAFE_IDENTIFIER.sub("", column)


def quote_ident(name: str) -> str:
    return f'"{sanitize_column_name(name)}"'


async def get_column_types(connection_string: str, table: str) -> dict[str, str]:
    rows = await query(connection_string, COLUMN_TYPES_SQL, [table])
    return {row["column_name"]: row["udt_name"] for row in rows}


def _coerce(column_types: dict[str, str], column: str, value: Any) -> Any:
    pg_type = column_types.get(column)
    if pg_type is None:
        return value
    return coerce_value(value, pg_type)


def _check_target(params: ActionParams, connection_string: Optional[str]) -> Optional[ActionResult]:
    if not params.table or not connection_string:
        return ActionResult.fail("Missing required parameters")
    if not validate_table_name(params.table):
        return ActionResult.fail("Invalid table name")
    return None


def _order_clause(params: ActionParams) -> str:
    if not params.order_by:
        return ""
    direction = "DESC" if params.order_direction == "desc" else "ASC"
    return f" ORDER BY {quote_ident(params.order_by)} {direction}"


def _page(items: list[dict[str, Any]], total: int, params: ActionParams) -> dict[str, Any]:
    return {
        "items": items,
        "pagination": {
            "page": params.page,
            "limit": params.limit,
            "total": total,
            "totalPages": math.ceil(total / params.limit) if params.limit else 0,
        },
    }


async def _paginated_select(
    connection_string: str,
    table: str,
    conditions: list[str],
    values: list[Any],
    params: ActionParams,
) -> dict[str, Any]:
    where = f" WHERE {' AND '.join(conditions)}" if conditions else ""
    index = len(values) + 1
    sql = (
        f"SELECT * FROM {quote_ident(table)}{where}{_order_clause(params)}"
        f" LIMIT ${index} OFFSET ${index + 1}"
    )
    offset = (params.page - 1) * params.limit
    rows = await query(connection_string, sql, [*values, params.limit, offset])

    count_rows = await query(
        connection_string,
        f"SELECT COUNT(*) AS total FROM {quote_ident(table)}{where}",
        values,
    )
    total = int(count_rows[0]["total"]) if count_rows else 0
    return _page(rows, total, params)


async def db_list(
    params: ActionParams,
    user_id: str,
    connection_string: Optional[str] = None,
) -> ActionResult:
    """List records with equality filters, ordering and pagination."""
    invalid = _check_target(params, connection_string)
    if invalid:
        return invalid

    try:
        column_types = await get_column_types(connection_string, params.table)
        conditions: list[str] = []
        values: list[Any] = []
        for key, value in (params.where or {}).items():
            column = sanitize_column_name(key)
            if value is None:
                conditions.append(f'"{column}" IS NULL')
            else:
                values.append(_coerce(column_types, column, value))
                conditions.append(f'"{column}" = ${len(values)}')

        data = await _paginated_select(connection_string, params.table, conditions, values, params)
        return ActionResult(success=True, data=data)
    except DB_ERRORS as e:
        logger.error("db_list error: %s", e)
        return ActionResult.fail(str(e) or "Database query failed")


async def db_get(
    params: ActionParams,
    user_id: str,
    connection_string: Optional[str] = None,
) -> ActionResult:
    invalid = _check_target(params, connection_string)
    if invalid:
        return invalid
    if params.id is None or params.id == "":
        return ActionResult.fail("Missing required parameters")

    try:
        column_types = await get_column_types(connection_string, params.table)
        rows = await query(
            connection_string,
            f"SELECT * FROM {quote_ident(params.table)} WHERE id = $1 LIMIT 1",
            [_coerce(column_types, "id", params.id)],
        )
        if not rows:
            return ActionResult.fail("Record not found")
        return ActionResult(success=True, data=rows[0])
    except DB_ERRORS as e:
        logger.error("db_get error: %s", e)
        return ActionResult.fail(str(e) or "Database query failed")


async def db_insert(
    params: ActionParams,
    user_id: str,
    connection_string: Optional[str] = None,
) -> ActionResult:
    if not params.table or not connection_string:
        return ActionResult.fail("Missing required parameters: table or connection")
    if not isinstance(params.data, dict):
        return ActionResult.fail("Missing required parameter: data")
    if not params.data:
        return ActionResult.fail("No data provided. Please fill in at least one field.")
    if not validate_table_name(params.table):
        return ActionResult.fail("Invalid table name")

    try:
        column_types = await get_column_types(connection_string, params.table)
        columns = [sanitize_column_name(key) for key in params.data]
        values = [_coerce(column_types, c, v) for c, v in zip(columns, params.data.values())]
        placeholders = ", ".join(f"${i}" for i in range(1, len(values) + 1))
        column_list = ", ".join(f'"{c}"' for c in columns)
        rows = await query(
            connection_string,
            f"INSERT INTO {quote_ident(params.table)} ({column_list}) VALUES ({placeholders}) RETURNING *",
            values,
        )
        logger.info("User %s inserted into %s", user_id, params.table)
        return ActionResult(success=True, data=rows[0] if rows else None)
    except DB_ERRORS as e:
        logger.error("db_insert error: %s", e)
        return ActionResult.fail(str(e) or "Database insert failed")


async def db_update(
    params: ActionParams,
    user_id: str,
    connection_string: Optional[str] = None,
) -> ActionResult:
    invalid = _check_target(params, connection_string)
    if invalid:
        return invalid
    if params.id is None or params.id == "" or not isinstance(params.data, dict):
        return ActionResult.fail("Missing required parameters")

    update_data = {k: v for k, v in params.data.items() if k != "id"}
    if not update_data:
        return ActionResult.fail("No data to update")

    try:
        column_types = await get_column_types(connection_string, params.table)
        columns = [sanitize_column_name(key) for key in update_data]
        values = [_coerce(column_types, c, v) for c, v in zip(columns, update_data.values())]
        set_clause = ", ".join(f'"{c}" = ${i}' for i, c in enumerate(columns, start=1))
        rows = await query(
            connection_string,
            f"UPDATE {quote_ident(params.table)} SET {set_clause}"
            f" WHERE id = ${len(columns) + 1} RETURNING *",
            [*values, _coerce(column_types, "id", params.id)],
        )
        if not rows:
            return ActionResult.fail("Record not found")
        logger.info("User %s updated %s id=%s", user_id, params.table, params.id)
        return ActionResult(success=True, data=rows[0])
    except DB_ERRORS as e:
        logger.error("db_update error: %s", e)
        return ActionResult.fail(str(e) or "Database update failed")


async def db_delete(
    params: ActionParams,
    user_id: str,
    connection_string: Optional[str] = None,
) -> ActionResult:
    invalid = _check_target(params, connection_string)
    if invalid:
        return invalid
    if params.id is None or params.id == "":
        return ActionResult.fail("Missing required parameters")

    try:
        column_types = await get_column_types(connection_string, params.table)
        rows = await query(
            connection_string,
            f"DELETE FROM {quote_ident(params.table)} WHERE id = $1 RETURNING id",
            [_coerce(column_types, "id", params.id)],
        )
        if not rows:
            return ActionResult.fail("Record not found")
        logger.info("User %s deleted %s id=%s", user_id, params.table, params.id)
        return ActionResult(success=True, data={"deleted": True, "id": params.id})
    except DB_ERRORS as e:
        logger.error("db_delete error: %s", e)
        return ActionResult.fail(str(e) or "Database delete failed")


def build_filter_conditions(
    filters: dict[str, Any],
    column_types: dict[str, str],
    start_index: int,
) -> tuple[list[str], list[Any]]:
    """
    Translate UI filter values into SQL conditions.

    ``<column>_from`` and ``<column>_to`` keys bound a range (a bare date in
    ``_to`` is extended to the end of that day), ``"true"``/``"false"`` match
    booleans and any other string is a case-insensitive substring match. The
    ``search`` key and empty values are ignored.
    """
    conditions: list[str] = []
    values: list[Any] = []

    def bind(value: Any) -> str:
        values.append(value)
        return f"${start_index + len(values) - 1}"

    for key, value in filters.items():
        if key == "search" or value is None or value == "":
            continue

        if key.endswith("_from"):
            column = sanitize_column_name(key[:-5])
            if isinstance(value, str) and value.strip():
                conditions.append(f'"{column}" >= {bind(_coerce(column_types, column, value.strip()))}')
            continue

        if key.endswith("_to"):
            column = sanitize_column_name(key[:-3])
            if isinstance(value, str) and value.strip():
                bound = value.strip()
                if _DATE_ONLY.match(bound) and column_types.get(column) != "date":
                    bound = f"{bound}T23:59:59.999"
                conditions.append(f'"{column}" <= {bind(_coerce(column_types, column, bound))}')
            continue

        column = sanitize_column_name(key)
        if value in ("true", "false"):
            conditions.append(f'"{column}" = {bind(value == "true")}')
        elif isinstance(value, bool):
            conditions.append(f'"{column}" = {bind(value)}')
        elif isinstance(value, str) and value.strip():
            conditions.append(f'"{column}"::text ILIKE {bind(f"%{value.strip()}%")}')

    return conditions, values


async def db_search(
    params: ActionParams,
    user_id: str,
    connection_string: Optional[str] = None,
) -> ActionResult:
    """Free-text search across text columns combined with column filters."""
    invalid = _check_target(params, connection_string)
    if invalid:
        return invalid

    try:
        conditions: list[str] = []
        values: list[Any] = []

        search = params.search
        if isinstance(search, str) and search.strip():
            text_columns = await query(connection_string, TEXT_COLUMNS_SQL, [params.table])
            if text_columns:
                values.append(f"%{search.strip()}%")
                matches = " OR ".join(
                    f'"{sanitize_column_name(row["column_name"])}" ILIKE ${len(values)}'
                    for row in text_columns
                )
                conditions.append(f"({matches})")

        if params.filters:
            column_types = await get_column_types(connection_string, params.table)
            filter_conditions, filter_values = build_filter_conditions(
                params.filters, column_types, len(values) + 1
            )
            conditions.extend(filter_conditions)
            values.extend(filter_values)

        data = await _paginated_select(connection_string, params.table, conditions, values, params)
        return ActionResult(success=True, data=data)
    except DB_ERRORS as e:
        logger.error("db_search error: %s", e)
        return ActionResult.fail(str(e) or "Database search failed")
