"""FastAPI dependencies resolving the caller and their tenant role."""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from renderops_server.auth.models import User
from renderops_server.auth.security import ACCESS, read_token
from renderops_server.db.session import get_db
from renderops_server.tenancy import TenantContext, ensure_tenant, require_tenant_permission

bearer = HTTPBearer(auto_error=False)


async def _load_user(
    credentials: Optional[HTTPAuthorizationCredentials],
    db: AsyncSession,
) -> Optional[User]:
    if credentials is None:
        return None
    user_id = read_token(credentials.credentials, ACCESS)
    if user_id is None:
        return None
    return await db.get(User, user_id)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Resolve the signed-in user from the bearer access token.

    Raises:
        HTTPException: 401 without a valid access token for a known user,
            403 for deactivated accounts
    """
    user = await _load_user(credentials, db)
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return user


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """Signed-in user for endpoints that also serve anonymous callers."""
    user = await _load_user(credentials, db)
    return user if user is not None and user.is_active else None


async def get_tenant_context(
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> TenantContext:
    """The current user's tenant, provisioned on first use."""
    return await ensure_tenant(db, current_user.id, current_user.display_name)


def tenant_member(permission: str = "read"):
    """
    Dependency factory for routes under ``/tenants/{tenant_id}``.

    The caller must belong to the tenant and their role must grant
    ``permission``; the resolved membership is returned as a TenantContext.
    """

    async def dependency(
        tenant_id: str,
        current_user: User = Depends(get_current_user),
        db: AsyncSession = Depends(get_db),
    ) -> TenantContext:
        check = await require_tenant_permission(db, current_user.id, tenant_id, permission)
        if not check.allowed:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=check.error)
        return TenantContext(tenant_id=tenant_id, role=check.role)

    return dependency
