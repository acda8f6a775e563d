"""Connection string assembly and connectivity checks."""

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Optional
from urllib.parse import quote

import asyncpg

from renderops_server.config import get_settings
from renderops_server.errors import ConnectionConfigError

logger = logging.getLogger(__name__)

DEFAULT_PORTS = {"postgresql": "5432"}

TABLE_COUNT_SQL = """
    SELECT COUNT(*) AS count
    FROM information_schema.tables
    WHERE table_schema = 'public'
    AND table_type = 'BASE TABLE'
"""


def build_connection_string(
    host: Optional[str],
    database: Optional[str],
    username: Optional[str],
    password: Optional[str] = None,
    port: Optional[str] = None,
    ssl: bool = False,
    db_type: str = "postgresql",
) -> str:
    """
    Assemble a PostgreSQL DSN from individual fields.

    Raises:
        ConnectionConfigError: If host, database or username is missing, or
            the database type is not PostgreSQL
    """
    if db_type != "postgresql":
        raise ConnectionConfigError(f"Unsupported database type: {db_type}")
    if not (host and database and username):
        raise ConnectionConfigError(
            "Either connectionString or host/database/username are required"
        )

    actual_port = port or DEFAULT_PORTS[db_type]
    encoded_password = quote(password or "", safe="")
    ssl_param = "?sslmode=require" if ssl else ""
    return f"postgresql://{username}:{encoded_password}@{host}:{actual_port}/{database}{ssl_param}"


def detect_db_type(connection_string: str) -> str:
    if connection_string.startswith(("postgresql://", "postgres://")):
        return "postgresql"
    raise ConnectionConfigError("Only PostgreSQL connection strings are supported")


@dataclass
class ConnectionTestResult:
    success: bool
    message: str
    version: Optional[str] = None
    table_count: Optional[int] = None
    response_time_ms: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if not self.success:
            return {"success": False, "error": self.message, "details": self.error}
        return {
            "success": True,
            "message": self.message,
            "details": {
                "version": self.version,
                "tableCount": self.table_count,
                "responseTime": f"{self.response_time_ms}ms",
            },
        }


async def test_connection(connection_string: str) -> ConnectionTestResult:
    """Open a single connection and report server version and table count."""
    settings = get_settings()
    started = time.monotonic()
    try:
        conn = await asyncpg.connect(connection_string, timeout=settings.target_connect_timeout)
        try:
            version = await conn.fetchval("SELECT version()") or "Unknown"
            table_count = await conn.fetchval(TABLE_COUNT_SQL)
        finally:
            await conn.close()
    except (OSError, asyncpg.PostgresError, asyncpg.InterfaceError, asyncio.TimeoutError, ValueError) as exc:
        logger.info("Connection test failed: %s", exc)
        return ConnectionTestResult(success=False, message="Connection failed", error=str(exc))

    return ConnectionTestResult(
        success=True,
        message="Connection successful",
        version=version.split(",")[0],
        table_count=int(table_count or 0),
        response_time_ms=int((time.monotonic() - started) * 1000),
    )
