"""
Authentication dependencies for the Storefront API
Validates Supabase access tokens (HS256) and provides user context
"""
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from pydantic import BaseModel

from .config import settings


# Security scheme for bearer tokens
security = HTTPBearer(auto_error=False)

JWT_ALGORITHM = "HS256"

# Role hierarchy: admin > user
ROLE_HIERARCHY = {
    "admin": 2,
    "user": 1,
}


class TokenUser(BaseModel):
    """User data extracted from a Supabase JWT"""
    id: str
    email: Optional[str] = None
    role: str = "user"

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


def decode_access_token(token: str) -> dict:
    """
    Decode and validate a Supabase access token.

    Supabase JWT structure (relevant claims):
    {
        "sub": "user uuid",
        "email": "customer@example.com",
        "role": "authenticated",
        "app_metadata": {"role": "admin"},
        "exp": 1234567890
    }
    """
    secret = settings.SUPABASE_JWT_SECRET
    if not secret:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication not configured"
        )

    try:
        return jwt.decode(
            token,
            secret,
            algorithms=[JWT_ALGORITHM],
            options={"verify_aud": False}  # Supabase sets aud=authenticated
        )
    except JWTError as e:
        error_msg = str(e).lower()
        if "expired" in error_msg:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token has expired",
                headers={"WWW-Authenticate": "Bearer"}
            )
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"}
        )


def user_from_payload(payload: dict) -> Optional[TokenUser]:
    """Build a TokenUser from decoded claims, None when the subject is missing"""
    user_id = payload.get("sub") or payload.get("id")
    if not user_id:
        return None

    app_metadata = payload.get("app_metadata") or {}
    role = app_metadata.get("role")
    if not role:
        # "authenticated"/"anon" are Postgres roles, not app roles
        claim_role = payload.get("role")
        role = claim_role if claim_role in ROLE_HIERARCHY else "user"

    return TokenUser(id=str(user_id), email=payload.get("email"), role=role)


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> TokenUser:
    """
    Dependency that extracts and validates the current user from JWT.

    Usage:
        @router.get("/protected")
        async def protected_route(user: TokenUser = Depends(get_current_user)):
            return {"message": f"Hello {user.email}"}
    """
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"}
        )

    payload = decode_access_token(credentials.credentials)
    user = user_from_payload(payload)

    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload: missing subject",
            headers={"WWW-Authenticate": "Bearer"}
        )

    return user


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security)
) -> Optional[TokenUser]:
    """Optional authentication - returns None if no valid token provided."""
    if not credentials:
        return None

    try:
        payload = decode_access_token(credentials.credentials)
    except HTTPException:
        return None

    return user_from_payload(payload)


def require_role(required_role: str):
    """
    Dependency factory for role-based access control.

    Usage:
        @router.post("/refunds")
        async def create_refund(user: TokenUser = Depends(require_role("admin"))):
            pass
    """
    async def role_checker(
        user: TokenUser = Depends(get_current_user)
    ) -> TokenUser:
        user_level = ROLE_HIERARCHY.get(user.role, 0)
        required_level = ROLE_HIERARCHY.get(required_role, 0)

        if user_level < required_level:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access denied. Required role: {required_role}"
            )

        return user

    return role_checker


require_admin = require_role("admin")
require_user = require_role("user")


def can_access_order(user: TokenUser, customer_id: Optional[str], billing_email: Optional[str]) -> bool:
    """Admins see every order; customers see orders placed with their id or email"""
    if user.is_admin:
        return True
    if customer_id and str(customer_id) == user.id:
        return True
    if billing_email and user.email and billing_email.lower() == user.email.lower():
        return True
    return False
