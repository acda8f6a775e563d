"""Tenant membership management."""

import logging
from datetime import datetime
from typing import Literal, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from nanoid import generate
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from renderops_server.auth import Role, User, get_current_user, hash_password
from renderops_server.auth.dependencies import tenant_member
from renderops_server.auth.permissions import can_manage_members, get_assignable_roles
from renderops_server.db.models import TenantMembership
from renderops_server.db.session import get_db
from renderops_server.tenancy import TenantContext

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/tenants/{tenant_id}/members", tags=["members"])

_ROLE_ORDER = [Role.OWNER, Role.ADMIN, Role.MEMBER, Role.VIEWER]


class MemberUser(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    email: str
    username: str
    full_name: Optional[str] = Field(default=None, alias="fullName")


class MemberResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    tenant_id: str = Field(alias="tenantId")
    user_id: str = Field(alias="userId")
    role: Role
    created_at: Optional[datetime] = Field(default=None, alias="createdAt")
    user: Optional[MemberUser] = None
    is_new_user: Optional[bool] = Field(default=None, alias="isNewUser")


class MemberAdd(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: EmailStr
    username: Optional[str] = Field(default=None, min_length=3, max_length=50)
    full_name: Optional[str] = Field(default=None, alias="fullName")
    password: Optional[str] = Field(default=None, min_length=8)
    role: Literal["ADMIN", "MEMBER", "VIEWER"]


class RoleUpdate(BaseModel):
    role: Role


def _member_response(
    membership: TenantMembership,
    user: Optional[User],
    is_new_user: Optional[bool] = None,
) -> MemberResponse:
    return MemberResponse(
        id=membership.id,
        tenant_id=membership.tenant_id,
        user_id=membership.user_id,
        role=membership.role,
        created_at=membership.created_at,
        user=MemberUser(
            id=user.id,
            email=user.email,
            username=user.username,
            full_name=user.full_name,
        ) if user else None,
        is_new_user=is_new_user,
    )


async def _find_membership(db: AsyncSession, tenant_id: str, user_id: str) -> Optional[TenantMembership]:
    result = await db.execute(
        select(TenantMembership).where(
            TenantMembership.tenant_id == tenant_id,
            TenantMembership.user_id == user_id,
        )
    )
    return result.scalar_one_or_none()


def _require_manager(context: TenantContext, detail: str = "Insufficient permissions to manage members") -> None:
    if not can_manage_members(context.role):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


@router.get("", response_model=list[MemberResponse])
async def list_members(
    tenant_id: str,
    context: TenantContext = Depends(tenant_member("read")),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(TenantMembership, User)
        .outerjoin(User, User.id == TenantMembership.user_id)
        .where(TenantMembership.tenant_id == tenant_id)
        .order_by(TenantMembership.created_at)
    )
    # OWNER first, then by join date
    rows = sorted(result.all(), key=lambda row: _ROLE_ORDER.index(row[0].role))
    return [_member_response(membership, user) for membership, user in rows]


@router.post("", response_model=MemberResponse, status_code=status.HTTP_201_CREATED)
async def add_member(
    tenant_id: str,
    member: MemberAdd,
    context: TenantContext = Depends(tenant_member("read")),
    db: AsyncSession = Depends(get_db),
):
    """
    Add a user to the tenant by email.

    Unknown emails create a local account when a password is supplied. OWNER
    can never be granted here, only transferred.
    """
    _require_manager(context)

    role = Role(member.role)
    if role not in get_assignable_roles(context.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You cannot assign the role {role.value}",
        )

    result = await db.execute(select(User).where(User.email == member.email))
    user = result.scalar_one_or_none()
    is_new_user = False

    if user is None:
        if not member.password:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="User not found. Provide a password to create the account.",
            )
        username = member.username or member.email.split("@")[0]
        taken = await db.execute(select(User.id).where(User.username == username))
        if taken.scalar_one_or_none():
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Username already taken",
            )
        user = User(
            id=generate(size=12),
            email=member.email,
            username=username,
            hashed_password=hash_password(member.password),
            full_name=member.full_name,
            is_active=True,
        )
        db.add(user)
        is_new_user = True
    elif await _find_membership(db, tenant_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User is already a member of this workspace",
        )

    membership = TenantMembership(
        id=generate(size=12),
        tenant_id=tenant_id,
        user_id=user.id,
        role=role,
    )
    db.add(membership)
    await db.commit()
    await db.refresh(membership)

    logger.info("Added user %s to tenant %s as %s", user.id, tenant_id, role.value)
    return _member_response(membership, user, is_new_user)


@router.patch("/{user_id}")
async def update_member_role(
    tenant_id: str,
    user_id: str,
    update: RoleUpdate,
    current_user: User = Depends(get_current_user),
    context: TenantContext = Depends(tenant_member("read")),
    db: AsyncSession = Depends(get_db),
):
    """
    Change a member's role.

    Granting OWNER transfers ownership: the current owner becomes ADMIN in the
    same transaction.
    """
    _require_manager(context)

    target = await _find_membership(db, tenant_id, user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    if update.role == Role.OWNER:
        if context.role != Role.OWNER:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Only the owner can transfer ownership",
            )
        current = await _find_membership(db, tenant_id, current_user.id)
        current.role = Role.ADMIN
        target.role = Role.OWNER
        await db.commit()
        logger.info("Ownership of tenant %s transferred to %s", tenant_id, user_id)
        return {"success": True, "message": "Ownership transferred"}

    if update.role not in get_assignable_roles(context.role):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"You cannot assign the role {update.role.value}",
        )

    if target.role == Role.OWNER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot change the owner's role",
        )

    if context.role == Role.ADMIN and target.role == Role.ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admins cannot change other admin's roles",
        )

    target.role = update.role
    await db.commit()
    await db.refresh(target)

    user = await db.get(User, user_id)
    return _member_response(target, user).model_dump(by_alias=True, mode="json")


@router.delete("/{user_id}")
async def remove_member(
    tenant_id: str,
    user_id: str,
    current_user: User = Depends(get_current_user),
    context: TenantContext = Depends(tenant_member("read")),
    db: AsyncSession = Depends(get_db),
):
    """Remove a member. Any member may leave; the owner must transfer first."""
    leaving_own = current_user.id == user_id
    if not leaving_own:
        _require_manager(context, "Insufficient permissions to remove members")

    target = await _find_membership(db, tenant_id, user_id)
    if target is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")

    if target.role == Role.OWNER:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Cannot remove the owner. Transfer ownership first.",
        )

    if context.role == Role.ADMIN and target.role == Role.ADMIN and not leaving_own:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admins cannot remove other admins",
        )

    await db.delete(target)
    await db.commit()
    return {"success": True}
