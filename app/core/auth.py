# app/core/auth.py
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.core.cache import CacheInvalidator, cache_invalidator
from app.core.config import get_settings
from app.core.identity_provider import IdentityProvider, SupabaseIdentityProvider
from app.schemas.identity import Identity

settings = get_settings()

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so the action can report `unauthenticated` as a typed result.
bearer_scheme = HTTPBearer(auto_error=False)

_identity_provider = SupabaseIdentityProvider()


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a Supabase access token (JWT).

    Verification:
      - signature (HS256 using SUPABASE_JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (Supabase 'aud' may vary)

    Args:
        token: raw JWT from the Authorization header.

    Returns:
        Decoded JWT claims.

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    try:
        return jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=[settings.SUPABASE_JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_identity(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Identity | None:
    """
    Resolve the current identity from a Supabase JWT.

    Flow:
      1. If no Authorization header => guest => return None.
      2. Decode JWT => require 'sub'.
      3. Map claims (email, names, app/user metadata) onto Identity.

    No database access happens here; profile rows are provisioned by the
    onboarding resolver and `/profile/ensure`.

    Raises:
        HTTPException(401): if token is malformed or missing 'sub'.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(credentials.credentials)
    if not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )

    return Identity.from_claims(payload)


def get_identity_provider() -> IdentityProvider:
    """Dependency returning the identity provider used for metadata writes."""
    return _identity_provider


def get_cache_invalidator() -> CacheInvalidator:
    """Dependency returning the process-wide cache invalidator."""
    return cache_invalidator
