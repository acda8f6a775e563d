"""Saved database connections and schema browsing."""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse
from nanoid import generate
from pydantic import BaseModel, ConfigDict, Field, model_validator
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renderops_server.auth import User, get_current_user, get_tenant_context
from renderops_server.auth.permissions import has_permission
from renderops_server.database import close_pool, get_table_schema, list_tables
from renderops_server.database.connections import build_connection_string, test_connection
from renderops_server.db.models import Connection
from renderops_server.db.session import get_db
from renderops_server.tenancy import TenantContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/connections", tags=["connections"])


class ConnectionTarget(BaseModel):
    """Either a full connection string or the individual fields."""

    model_config = ConfigDict(populate_by_name=True)

    connection_string: Optional[str] = Field(default=None, alias="connectionString", min_length=1)
    host: Optional[str] = None
    port: Optional[str] = None
    database: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None
    ssl: bool = False
    db_type: str = Field(default="postgresql", alias="dbType")

    @model_validator(mode="after")
    def check_target(self) -> "ConnectionTarget":
        if not self.connection_string and not (self.host and self.database and self.username):
            raise ValueError("Either connectionString or host/database/username are required")
        return self

    def resolve(self) -> str:
        if self.connection_string:
            return self.connection_string
        return build_connection_string(
            host=self.host,
            database=self.database,
            username=self.username,
            password=self.password,
            port=self.port,
            ssl=self.ssl,
            db_type=self.db_type,
        )


class ConnectionCreate(ConnectionTarget):
    name: str = Field(..., min_length=1, max_length=100)
    readonly: bool = False


class ConnectionResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    db_type: str = Field(alias="dbType")
    readonly: bool
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    updated_at: Optional[datetime] = Field(default=None, alias="updatedAt")


def _connection_response(connection: Connection) -> ConnectionResponse:
    return ConnectionResponse(
        id=connection.id,
        name=connection.name,
        db_type=connection.db_type,
        readonly=bool(connection.readonly),
        created_at=connection.created_at,
        updated_at=connection.updated_at,
    )


def require_permission(context: TenantContext, permission: str) -> None:
    if not has_permission(context.role, permission):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Insufficient permissions",
        )


async def get_tenant_connection(
    db: AsyncSession,
    connection_id: str,
    tenant_id: str,
) -> Connection:
    """
    Load a connection owned by the tenant.

    Raises:
        HTTPException: 404 if the connection does not exist in this tenant
    """
    result = await db.execute(
        select(Connection).where(
            Connection.id == connection_id,
            Connection.tenant_id == tenant_id,
        )
    )
    connection = result.scalar_one_or_none()
    if connection is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Connection not found",
        )
    return connection


@router.get("", response_model=list[ConnectionResponse])
async def list_connections(
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    require_permission(context, "read")
    result = await db.execute(
        select(Connection)
        .where(Connection.tenant_id == context.tenant_id)
        .order_by(Connection.created_at.desc())
    )
    return [_connection_response(c) for c in result.scalars().all()]


@router.post("", response_model=ConnectionResponse, status_code=status.HTTP_201_CREATED)
async def create_connection(
    connection_data: ConnectionCreate,
    current_user: User = Depends(get_current_user),
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Save a connection after verifying that it can be opened."""
    require_permission(context, "create")

    connection_string = connection_data.resolve()
    check = await test_connection(connection_string)
    if not check.success:
        await db.commit()
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={
                "error": "Failed to connect to database",
                "details": check.error or "Unknown error",
            },
        )

    connection = Connection(
        id=generate(size=12),
        name=connection_data.name,
        connection_string=connection_string,
        db_type=connection_data.db_type,
        tenant_id=context.tenant_id,
        created_by=current_user.id,
        readonly=connection_data.readonly,
    )
    db.add(connection)
    await db.commit()
    await db.refresh(connection)

    logger.info("Created connection %s in tenant %s", connection.id, context.tenant_id)
    return _connection_response(connection)


@router.post("/test")
async def test_connection_endpoint(
    target: ConnectionTarget,
    current_user: User = Depends(get_current_user),
):
    """Try a connection without saving it."""
    result = await test_connection(target.resolve())
    return JSONResponse(
        status_code=status.HTTP_200_OK if result.success else status.HTTP_400_BAD_REQUEST,
        content=result.to_dict(),
    )


@router.get("/{connection_id}", response_model=ConnectionResponse)
async def get_connection(
    connection_id: str,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    require_permission(context, "read")
    connection = await get_tenant_connection(db, connection_id, context.tenant_id)
    return _connection_response(connection)


@router.delete("/{connection_id}")
async def delete_connection(
    connection_id: str,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    require_permission(context, "delete")
    connection = await get_tenant_connection(db, connection_id, context.tenant_id)
    connection_string = connection.connection_string

    await db.delete(connection)
    await db.commit()
    await close_pool(connection_string)

    logger.info("Deleted connection %s", connection_id)
    return {"success": True}


@router.get("/{connection_id}/tables")
async def get_tables(
    connection_id: str,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Tables and views in the public schema, without auth and migration tables."""
    require_permission(context, "read")
    connection = await get_tenant_connection(db, connection_id, context.tenant_id)
    tables = await list_tables(connection.connection_string)
    return {"tables": [t.to_dict() for t in tables]}


@router.get("/{connection_id}/tables/{table}/schema")
async def get_schema(
    connection_id: str,
    table: str,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    require_permission(context, "read")
    connection = await get_tenant_connection(db, connection_id, context.tenant_id)
    schema = await get_table_schema(connection.connection_string, table)
    return schema.to_dict()


@router.get("/{connection_id}/tables/{table}/columns")
async def get_columns(
    connection_id: str,
    table: str,
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """Condensed column list used by filter and form builders."""
    require_permission(context, "read")
    connection = await get_tenant_connection(db, connection_id, context.tenant_id)
    schema = await get_table_schema(connection.connection_string, table)
    return {
        "columns": [
            {
                "name": c.name,
                "type": c.udt_type,
                "fieldType": c.field_type,
                "nullable": c.nullable,
                "default": c.has_default,
            }
            for c in schema.columns
        ]
    }
