"""
SAINTRIX - Authentication Dependencies
Access tokens are issued by the external auth provider; this service only
verifies them and reads the role claim.
"""
import os
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
from pydantic import BaseModel

# Configuration
SECRET_KEY = os.getenv("JWT_SECRET_KEY", "saintrix-secret-key-change-in-production")
ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
AUDIENCE = os.getenv("JWT_AUDIENCE", "authenticated")

# Bearer token security
security = HTTPBearer()


class CurrentUser(BaseModel):
    id: str
    email: Optional[str] = None
    role: str = "client"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a JWT token (signature, expiry, audience)."""
    try:
        return jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM], audience=AUDIENCE)
    except JWTError:
        return None


def role_from_claims(payload: dict) -> str:
    """Application role: app_metadata.role, else a non-default top-level role claim."""
    app_role = (payload.get("app_metadata") or {}).get("role")
    if app_role:
        return app_role
    role = payload.get("role")
    if role and role != AUDIENCE:
        return role
    return "client"


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """
    Dependency to get the current authenticated user.
    Validates the JWT and builds the caller identity from its claims.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    payload = decode_token(credentials.credentials)
    if payload is None:
        raise credentials_exception

    user_id: str = payload.get("sub")
    if user_id is None:
        raise credentials_exception

    return CurrentUser(id=user_id, email=payload.get("email"), role=role_from_claims(payload))


async def require_admin(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """
    Dependency to require admin role.
    Use this on admin-only routes.
    """
    if not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin access required"
        )
    return current_user
