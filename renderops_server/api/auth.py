"""Account endpoints: sign-up, sign-in, token refresh and the current profile.

Signing up or in always lands the user in a workspace. The personal tenant is
provisioned on first use, so the session returned by ``/register`` and
``/login`` already names the tenant and the role the user holds there.
"""

import logging
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status
from nanoid import generate
from pydantic import BaseModel, ConfigDict, EmailStr, Field
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from renderops_server.auth import (
    REFRESH,
    Role,
    User,
    get_current_user,
    get_tenant_context,
    hash_password,
    issue_token_pair,
    read_token,
    verify_password,
)
from renderops_server.auth.permissions import get_permissions
from renderops_server.db.models import Tenant
from renderops_server.db.session import get_db
from renderops_server.tenancy import TenantContext, ensure_tenant

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])


class SignUp(BaseModel):
    email: EmailStr
    username: str = Field(..., min_length=3, max_length=50)
    password: str = Field(..., min_length=8)
    name: Optional[str] = Field(default=None, max_length=255)


class SignIn(BaseModel):
    # username or email
    username: str
    password: str


class RefreshRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    refresh_token: str = Field(alias="refreshToken")


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    email: Optional[EmailStr] = None


class Workspace(BaseModel):
    id: str
    name: str
    slug: str
    role: Role
    permissions: list[str]


class Profile(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    username: str
    last_login: Optional[datetime] = Field(default=None, alias="lastLogin")
    workspace: Workspace


class Tokens(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    access_token: str = Field(alias="accessToken")
    refresh_token: str = Field(alias="refreshToken")
    token_type: str = Field(default="bearer", alias="tokenType")


class AuthSession(Tokens):
    user: Profile


def _tokens(user: User) -> dict:
    pair = issue_token_pair(user.id)
    return {
        "access_token": pair.access_token,
        "refresh_token": pair.refresh_token,
        "token_type": pair.token_type,
    }


async def _profile(db: AsyncSession, user: User, context: TenantContext) -> Profile:
    tenant = await db.get(Tenant, context.tenant_id)
    return Profile(
        id=user.id,
        name=user.display_name,
        email=user.email,
        username=user.username,
        last_login=user.last_login,
        workspace=Workspace(
            id=tenant.id,
            name=tenant.name,
            slug=tenant.slug,
            role=context.role,
            permissions=get_permissions(context.role),
        ),
    )


async def _open_session(db: AsyncSession, user: User) -> AuthSession:
    context = await ensure_tenant(db, user.id, user.display_name)
    return AuthSession(**_tokens(user), user=await _profile(db, user, context))


@router.post("/register", response_model=AuthSession, status_code=status.HTTP_201_CREATED)
async def register(
    sign_up: SignUp,
    db: AsyncSession = Depends(get_db),
):
    """Create an account, provision its personal workspace and sign it in."""
    result = await db.execute(
        select(User).where(or_(User.email == sign_up.email, User.username == sign_up.username))
    )
    clashes = result.scalars().all()
    if any(existing.email == sign_up.email for existing in clashes):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")
    if clashes:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Username already taken")

    user = User(
        id=generate(size=12),
        email=sign_up.email,
        username=sign_up.username,
        hashed_password=hash_password(sign_up.password),
        full_name=sign_up.name,
        is_active=True,
    )
    db.add(user)
    # The account must survive a rollback during tenant provisioning
    await db.commit()

    session = await _open_session(db, user)
    logger.info("Registered user %s in tenant %s", user.id, session.user.workspace.id)
    return session


@router.post("/login", response_model=AuthSession)
async def login(
    sign_in: SignIn,
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(
        select(User).where(or_(User.username == sign_in.username, User.email == sign_in.username))
    )
    user = result.scalar_one_or_none()

    if user is None or not verify_password(sign_in.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect username or password",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")

    user.last_login = datetime.utcnow()
    return await _open_session(db, user)


@router.post("/refresh", response_model=Tokens)
async def refresh(
    request: RefreshRequest,
    db: AsyncSession = Depends(get_db),
):
    """Trade a refresh token for a new token pair."""
    user_id = read_token(request.refresh_token, REFRESH)
    user = await db.get(User, user_id) if user_id else None
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid refresh token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return Tokens(**_tokens(user))


@router.get("/me", response_model=Profile)
async def get_profile(
    current_user: User = Depends(get_current_user),
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    return await _profile(db, current_user, context)


@router.patch("/me", response_model=Profile)
async def update_profile(
    update: ProfileUpdate,
    current_user: User = Depends(get_current_user),
    context: TenantContext = Depends(get_tenant_context),
    db: AsyncSession = Depends(get_db),
):
    if update.email is not None and update.email != current_user.email:
        taken = await db.execute(select(User.id).where(User.email == update.email))
        if taken.scalar_one_or_none():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already in use")
        current_user.email = update.email
    if update.name is not None:
        current_user.full_name = update.name

    return await _profile(db, current_user, context)
