"""Accounts, tokens and tenant-scoped FastAPI dependencies."""

from .models import User, Role
from .security import (
    ACCESS,
    REFRESH,
    TokenPair,
    hash_password,
    issue_token,
    issue_token_pair,
    read_token,
    verify_password,
)
from .dependencies import (
    get_current_user,
    get_optional_user,
    get_tenant_context,
    tenant_member,
)

__all__ = [
    "User",
    "Role",
    "ACCESS",
    "REFRESH",
    "TokenPair",
    "hash_password",
    "issue_token",
    "issue_token_pair",
    "read_token",
    "verify_password",
    "get_current_user",
    "get_optional_user",
    "get_tenant_context",
    "tenant_member",
]
