"""Password hashing and bearer tokens.

Tokens carry the user id in ``sub`` and a ``type`` claim of ``access`` or
``refresh``. A token of one type is never accepted where the other is
expected.
"""

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

from renderops_server.config import get_settings

settings = get_settings()

ACCESS = "access"
REFRESH = "refresh"

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: str) -> bool:
    return pwd_context.verify(password, hashed)


def _lifetime(token_type: str) -> timedelta:
    if token_type == REFRESH:
        return timedelta(days=settings.refresh_token_expire_days)
    return timedelta(minutes=settings.access_token_expire_minutes)


def issue_token(
    user_id: str,
    token_type: str = ACCESS,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Sign a token for ``user_id``.

    Args:
        user_id: Subject of the token
        token_type: ``access`` or ``refresh``
        expires_delta: Lifetime override; negative values yield expired tokens

    Returns:
        Encoded JWT
    """
    now = datetime.utcnow()
    claims = {
        "sub": user_id,
        "type": token_type,
        "iat": now,
        "exp": now + (expires_delta if expires_delta is not None else _lifetime(token_type)),
    }
    if settings.jwt_issuer:
        claims["iss"] = settings.jwt_issuer
    if settings.jwt_audience:
        claims["aud"] = settings.jwt_audience
    return jwt.encode(claims, settings.secret_key, algorithm=settings.jwt_algorithm)


@dataclass
class TokenPair:
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


def issue_token_pair(user_id: str) -> TokenPair:
    return TokenPair(
        access_token=issue_token(user_id, ACCESS),
        refresh_token=issue_token(user_id, REFRESH),
    )


def read_token(token: str, expected_type: str = ACCESS) -> Optional[str]:
    """
    Return the user id of a valid token of ``expected_type``, or None.

    Signature, expiry and, when configured, issuer and audience are checked.
    """
    try:
        claims = jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"verify_aud": bool(settings.jwt_audience)},
        )
    except JWTError:
        return None

    if claims.get("type") != expected_type:
        return None
    return claims.get("sub") or None
