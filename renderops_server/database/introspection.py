"""Schema introspection through ``information_schema``."""

import re
from dataclasses import dataclass, field
from typing import Any, Optional

from renderops_server.database.pool import query
from renderops_server.database.type_map import map_pg_type_to_field_type
from renderops_server.errors import InvalidTableNameError, TableNotFoundError

TABLE_NAME_PATTERN = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")

HIDDEN_AUTH_TABLES = {
    "user",
    "account",
    "session",
    "verification_token",
    "verificationtoken",
    "authenticator",
}

HIDDEN_SYSTEM_TABLES = {
    "_prisma_migrations",
    "schema_migrations",
    "knex_migrations",
    "knex_migrations_lock",
    "typeorm_metadata",
    "ar_internal_metadata",
    "flyway_schema_history",
}

HIDDEN_PREFIXES = ("_", "prisma_", "pg_")

TABLES_SQL = """
    SELECT table_name, table_type
    FROM information_schema.tables
    WHERE table_schema = 'public'
      AND table_type IN ('BASE TABLE', 'VIEW')
    ORDER BY table_name
"""

TABLE_EXISTS_SQL = """
    SELECT EXISTS (
        SELECT 1 FROM information_schema.tables
        WHERE table_schema = 'public' AND table_name = $1
    ) AS exists
"""

COLUMNS_SQL = """
    SELECT
        column_name,
        data_type,
        udt_name,
        is_nullable,
        column_default,
        character_maximum_length,
        numeric_precision,
        numeric_scale
    FROM information_schema.columns
    WHERE table_schema = 'public' AND table_name = $1
    ORDER BY ordinal_position
"""

CONSTRAINTS_SQL = """
    SELECT
        tc.constraint_type,
        kcu.column_name
    FROM information_schema.table_constraints tc
    JOIN information_schema.key_column_usage kcu
        ON tc.constraint_name = kcu.constraint_name
        AND tc.table_schema = kcu.table_schema
    WHERE tc.table_schema = 'public'
        AND tc.table_name = $1
        AND tc.constraint_type IN ('PRIMARY KEY', 'UNIQUE')
"""


@dataclass
class ColumnSchema:
    name: str
    type: str
    udt_type: str
    field_type: str
    nullable: bool = True
    has_default: bool = False
    is_primary_key: bool = False
    is_unique: bool = False
    max_length: Optional[int] = None
    precision: Optional[int] = None
    scale: Optional[int] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "udtType": self.udt_type,
            "fieldType": self.field_type,
            "nullable": self.nullable,
            "hasDefault": self.has_default,
            "isPrimaryKey": self.is_primary_key,
            "isUnique": self.is_unique,
            "maxLength": self.max_length,
            "precision": self.precision,
            "scale": self.scale,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ColumnSchema":
        udt_type = data.get("udtType") or data.get("type") or "text"
        return cls(
            name=data["name"],
            type=data.get("type", udt_type),
            udt_type=udt_type,
            field_type=data.get("fieldType") or map_pg_type_to_field_type(udt_type),
            nullable=data.get("nullable", True),
            has_default=data.get("hasDefault", False),
            is_primary_key=data.get("isPrimaryKey", False),
            is_unique=data.get("isUnique", False),
            max_length=data.get("maxLength"),
            precision=data.get("precision"),
            scale=data.get("scale"),
        )


@dataclass
class TableSchema:
    table: str
    columns: list[ColumnSchema] = field(default_factory=list)
    primary_key: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "columns": [c.to_dict() for c in self.columns],
            "primaryKey": list(self.primary_key),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TableSchema":
        columns = [ColumnSchema.from_dict(c) for c in data.get("columns", [])]
        primary_key = data.get("primaryKey")
        if primary_key is None:
            primary_key = [c.name for c in columns if c.is_primary_key]
        return cls(table=data["table"], columns=columns, primary_key=list(primary_key))

    def column(self, name: str) -> Optional[ColumnSchema]:
        return next((c for c in self.columns if c.name == name), None)


@dataclass
class TableInfo:
    name: str
    type: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "type": self.type}


def validate_table_name(table: str) -> str:
    if not TABLE_NAME_PATTERN.match(table or ""):
        raise InvalidTableNameError(f"Invalid table name: {table!r}")
    return table


def is_hidden_table(name: str) -> bool:
    lowered = name.lower()
    if lowered in HIDDEN_AUTH_TABLES or lowered in HIDDEN_SYSTEM_TABLES:
        return True
    return lowered.startswith(HIDDEN_PREFIXES)


async def list_tables(connection_string: str) -> list[TableInfo]:
    """List user-facing tables and views in the public schema."""
    rows = await query(connection_string, TABLES_SQL)
    return [
        TableInfo(
            name=row["table_name"],
            type="table" if row["table_type"] == "BASE TABLE" else "view",
        )
        for row in rows
        if not is_hidden_table(row["table_name"])
    ]


async def table_exists(connection_string: str, table: str) -> bool:
    rows = await query(connection_string, TABLE_EXISTS_SQL, [table])
    return bool(rows and rows[0].get("exists"))


async def get_table_schema(connection_string: str, table: str) -> TableSchema:
    """
    Describe a public table.

    Args:
        connection_string: Target database DSN
        table: Table name

    Returns:
        Columns in ordinal order with primary key and unique flags

    Raises:
        InvalidTableNameError: If the name is not a plain identifier
        TableNotFoundError: If the table does not exist
    """
    validate_table_name(table)
    if not await table_exists(connection_string, table):
        raise TableNotFoundError(f"Table not found: {table}")

    column_rows = await query(connection_string, COLUMNS_SQL, [table])
    constraint_rows = await query(connection_string, CONSTRAINTS_SQL, [table])

    primary_key = [r["column_name"] for r in constraint_rows if r["constraint_type"] == "PRIMARY KEY"]
    unique = {r["column_name"] for r in constraint_rows if r["constraint_type"] == "UNIQUE"}

    columns = [
        ColumnSchema(
            name=row["column_name"],
            type=row["data_type"],
            udt_type=row["udt_name"],
            field_type=map_pg_type_to_field_type(row["udt_name"]),
            nullable=row["is_nullable"] == "YES",
            has_default=row["column_default"] is not None,
            is_primary_key=row["column_name"] in primary_key,
            is_unique=row["column_name"] in unique,
            max_length=row["character_maximum_length"],
            precision=row["numeric_precision"],
            scale=row["numeric_scale"],
        )
        for row in column_rows
    ]
    return TableSchema(table=table, columns=columns, primary_key=primary_key)
