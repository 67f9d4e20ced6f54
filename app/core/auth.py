"""
Bearer-token authentication and the acting identity.

Clients sign in with Supabase and send the access token as
``Authorization: Bearer <jwt>``. The token is checked against the project's
published signing keys; the resulting user plus the request's IP and user
agent become the ActorContext that services stamp onto audit records.
"""
from dataclasses import dataclass
from typing import Optional

import requests
from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.core.config import settings

# auto_error=False so a missing header is a 401, not a 403
security = HTTPBearer(auto_error=False)


class User:
    """Identity carried by a verified access token."""
    def __init__(self, user_id: str, email: Optional[str] = None, role: Optional[str] = None):
        self.id = user_id
        self.email = email
        self.role = role or "PROPERTY_MANAGER"


@dataclass(frozen=True)
class ActorContext:
    """Who is acting, plus the client fingerprint of the request they acted through."""
    id: str
    email: Optional[str] = None
    role: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def system_actor() -> ActorContext:
    return ActorContext(
        id=settings.SYSTEM_ACTOR_ID,
        email=settings.SYSTEM_ACTOR_EMAIL,
        role="SYSTEM",
    )


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


# Signing keys rarely rotate; fetched once per process
_jwks_cache = None


def get_supabase_jwks() -> dict:
    """Signing keys of the Supabase project, fetched on first use. 503 if unreachable."""
    global _jwks_cache

    if _jwks_cache is None:
        url = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/.well-known/jwks.json"
        try:
            response = requests.get(url, timeout=settings.JWKS_TIMEOUT_SECONDS)
            response.raise_for_status()
        except requests.RequestException as exc:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail=f"Could not load signing keys: {exc}",
            )
        _jwks_cache = response.json()
    return _jwks_cache


def verify_token(token: str) -> dict:
    """Decode and verify an access token, returning its claims."""
    keys = get_supabase_jwks()
    try:
        # Newer projects sign with ES256, older ones with RS256
        return jwt.decode(
            token,
            keys,
            algorithms=["ES256", "RS256"],
            audience=settings.SUPABASE_JWT_AUDIENCE,
        )
    except jwt.ExpiredSignatureError:
        raise _unauthorized("Token has expired")
    except JWTError as exc:
        raise _unauthorized(f"Invalid token: {exc}")


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> User:
    """FastAPI dependency: the verified user, or 401."""
    if credentials is None:
        raise _unauthorized("Unauthorized")

    claims = verify_token(credentials.credentials)
    subject = claims.get("sub")
    if not subject:
        raise _unauthorized("Token has no subject")

    # Custom roles live in app_metadata; "role" alone is usually just "authenticated"
    app_metadata = claims.get("app_metadata") or {}
    return User(
        user_id=subject,
        email=claims.get("email"),
        role=app_metadata.get("role") or claims.get("role"),
    )


def client_ip(request: Request) -> Optional[str]:
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip
    return request.client.host if request.client else None


def get_actor(request: Request, current_user: User = Depends(get_current_user)) -> ActorContext:
    """FastAPI dependency: the authenticated user plus the request's IP and user agent."""
    return ActorContext(
        id=current_user.id,
        email=current_user.email,
        role=current_user.role,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )
