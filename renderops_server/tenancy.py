"""Tenant membership lookup and auto-provisioning."""

import logging
import re
import secrets
from dataclasses import dataclass
from typing import Optional

from nanoid import generate
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from renderops_server.auth.models import Role
from renderops_server.auth.permissions import has_permission
from renderops_server.db.models import Tenant, TenantMembership

logger = logging.getLogger(__name__)

SLUG_MAX_LENGTH = 50
_NON_SLUG = re.compile(r"[^a-z0-9]+")


@dataclass
class TenantContext:
    tenant_id: str
    role: Role


@dataclass
class PermissionCheck:
    allowed: bool
    role: Optional[Role] = None
    error: Optional[str] = None


async def get_tenant_for_user(db: AsyncSession, user_id: str) -> Optional[TenantContext]:
    """Return the user's first tenant membership, or None."""
    result = await db.execute(
        select(TenantMembership)
        .where(TenantMembership.user_id == user_id)
        .order_by(TenantMembership.created_at)
        .limit(1)
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        return None
    return TenantContext(tenant_id=membership.tenant_id, role=membership.role)


async def get_membership(db: AsyncSession, user_id: str, tenant_id: str) -> Optional[TenantContext]:
    result = await db.execute(
        select(TenantMembership).where(
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.user_id == user_id,
        )
    )
    membership = result.scalar_one_or_none()
    if membership is None:
        return None
    return TenantContext(tenant_id=membership.tenant_id, role=membership.role)


def generate_slug(name: str) -> str:
    """URL-friendly slug: lowercase, dash separated, at most 50 characters."""
    slug = _NON_SLUG.sub("-", name.lower()).strip("-")
    return slug[:SLUG_MAX_LENGTH]


async def ensure_unique_slug(db: AsyncSession, base_slug: str) -> str:
    base = base_slug or "workspace"
    slug = base
    counter = 0
    while True:
        result = await db.execute(select(Tenant.id).where(Tenant.slug == slug))
        if result.scalar_one_or_none() is None:
            return slug
        counter += 1
        slug = f"{base}-{counter}"


async def _create_personal_tenant(
    db: AsyncSession,
    user_id: str,
    user_name: Optional[str],
    slug: str,
) -> TenantContext:
    tenant = Tenant(
        id=generate(size=12),
        name=f"{user_name}'s Workspace" if user_name else "My Workspace",
        slug=slug,
    )
    db.add(tenant)
    db.add(TenantMembership(
        id=generate(size=12),
        tenant_id=tenant.id,
        user_id=user_id,
        role=Role.OWNER,
    ))
    await db.flush()
    logger.info("Provisioned tenant %s for user %s", tenant.id, user_id)
    return TenantContext(tenant_id=tenant.id, role=Role.OWNER)


async def ensure_tenant(
    db: AsyncSession,
    user_id: str,
    user_name: Optional[str] = None,
) -> TenantContext:
    """
    Return the user's tenant, creating a personal one on first use.

    A concurrent request may provision the same slug first. In that case the
    lookup is repeated and, if the user still has no tenant, creation is
    retried once with a random slug suffix.

    Args:
        db: Database session
        user_id: User to provision for
        user_name: Display name used for the tenant name and slug

    Returns:
        Tenant context with the user's role
    """
    existing = await get_tenant_for_user(db, user_id)
    if existing:
        return existing

    slug = generate_slug(user_name or user_id)
    try:
        return await _create_personal_tenant(
            db, user_id, user_name, await ensure_unique_slug(db, slug)
        )
    except IntegrityError:
        await db.rollback()
        logger.warning("Tenant slug collision for user %s, retrying", user_id)

    existing = await get_tenant_for_user(db, user_id)
    if existing:
        return existing
    suffix = secrets.token_hex(3)
    return await _create_personal_tenant(db, user_id, user_name, f"{slug or 'workspace'}-{suffix}")


async def require_tenant_permission(
    db: AsyncSession,
    user_id: str,
    tenant_id: str,
    permission: str,
) -> PermissionCheck:
    membership = await get_membership(db, user_id, tenant_id)
    if membership is None:
        return PermissionCheck(allowed=False, error="Not a member of this tenant")
    if not has_permission(membership.role, permission):
        return PermissionCheck(allowed=False, role=membership.role, error="Insufficient permissions")
    return PermissionCheck(allowed=True, role=membership.role)
