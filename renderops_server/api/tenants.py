"""Tenant listing and creation."""

import re
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from nanoid import generate
from pydantic import BaseModel, ConfigDict, Field, field_validator
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from renderops_server.auth import Role, User, get_current_user, get_tenant_context
from renderops_server.db.models import Connection, Tenant, TenantMembership
from renderops_server.db.session import get_db
from renderops_server.tenancy import TenantContext, generate_slug

router = APIRouter(prefix="/tenants", tags=["tenants"])

SLUG_PATTERN = re.compile(r"^[a-z0-9-]+$")


class TenantCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: Optional[str] = Field(default=None, min_length=3, max_length=50)

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not SLUG_PATTERN.match(v):
            raise ValueError("Slug must be lowercase alphanumeric with hyphens")
        return v


class TenantResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    slug: str
    role: Role
    member_count: int = Field(alias="memberCount")
    connection_count: int = Field(default=0, alias="connectionCount")
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")


async def _counts(db: AsyncSession, tenant_id: str) -> tuple[int, int]:
    members = await db.scalar(
        select(func.count(TenantMembership.id)).where(TenantMembership.tenant_id == tenant_id)
    )
    connections = await db.scalar(
        select(func.count(Connection.id)).where(Connection.tenant_id == tenant_id)
    )
    return int(members or 0), int(connections or 0)


async def _tenant_response(db: AsyncSession, tenant: Tenant, role: Role) -> TenantResponse:
    member_count, connection_count = await _counts(db, tenant.id)
    return TenantResponse(
        id=tenant.id,
        name=tenant.name,
        slug=tenant.slug,
        role=role,
        member_count=member_count,
        connection_count=connection_count,
        created_at=tenant.created_at,
    )


@router.get("", response_model=list[TenantResponse])
async def list_tenants(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """Tenants the current user belongs to, oldest membership first."""
    result = await db.execute(
        select(TenantMembership, Tenant)
        .join(Tenant, Tenant.id == TenantMembership.tenant_id)
        .where(TenantMembership.user_id == current_user.id)
        .order_by(TenantMembership.created_at)
    )
    return [
        await _tenant_response(db, tenant, membership.role)
        for membership, tenant in result.all()
    ]


@router.post(
    "",
    response_model=TenantResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_tenant(
    tenant_data: TenantCreate,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    """
    Create a tenant owned by the current user.

    A user belongs to at most one tenant, so this fails once the personal
    workspace has been provisioned.
    """
    slug = tenant_data.slug or generate_slug(tenant_data.name)
    if not slug:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Could not derive a slug from the tenant name",
        )

    result = await db.execute(select(Tenant.id).where(Tenant.slug == slug))
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Slug already in use",
        )

    result = await db.execute(
        select(TenantMembership.id).where(TenantMembership.user_id == current_user.id).limit(1)
    )
    if result.scalar_one_or_none():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You already belong to a tenant. Multi-tenant membership is not supported.",
        )

    tenant = Tenant(id=generate(size=12), name=tenant_data.name, slug=slug)
    db.add(tenant)
    db.add(TenantMembership(
        id=generate(size=12),
        tenant_id=tenant.id,
        user_id=current_user.id,
        role=Role.OWNER,
    ))
    await db.commit()
    await db.refresh(tenant)

    return await _tenant_response(db, tenant, Role.OWNER)


@router.get("/my", response_model=TenantResponse)
async def get_my_tenant(
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    """The current user's tenant, created on first access."""
    tenant = await db.get(Tenant, context.tenant_id)
    if tenant is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Tenant not found",
        )
    await db.commit()
    return await _tenant_response(db, tenant, context.role)
