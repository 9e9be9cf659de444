"""
API dependencies for authentication and shared collaborators.

Identity is owned by the external auth provider: we only verify its
bearer tokens. The `sub` claim is our user id.
"""
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt
from sqlalchemy.ext.asyncio import AsyncSession

from wav.core.config import settings
from wav.db.session import get_db
from wav.models.user import User
from wav.services.catalog import TrackCatalog

# Security scheme for JWT bearer tokens
security = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def decode_provider_token(token: str) -> Optional[dict]:
    """Verify a provider-issued JWT. Returns the claims, or None if invalid."""
    try:
        return jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=[settings.auth_jwt_algorithm],
            audience=settings.auth_jwt_audience,
            options={"verify_aud": settings.auth_jwt_audience is not None},
        )
    except JWTError:
        return None


async def get_current_user(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> User:
    """
    Get the current authenticated user from the bearer token.

    Raises HTTPException 401 if the token is invalid or the profile is missing.
    """
    if not credentials:
        raise _unauthorized("Not authenticated")

    payload = decode_provider_token(credentials.credentials)
    if not payload:
        raise _unauthorized("Invalid or expired token")

    try:
        user_id = int(payload["sub"])
    except (KeyError, ValueError, TypeError):
        raise _unauthorized("Invalid token payload")

    user = await db.get(User, user_id)
    if not user:
        raise _unauthorized("User not found")
    return user


async def get_current_user_optional(
    db: Annotated[AsyncSession, Depends(get_db)],
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
) -> Optional[User]:
    """
    Get the current user if authenticated, otherwise return None.

    Used by public views that show more to the owner.
    """
    if not credentials:
        return None

    try:
        return await get_current_user(db, credentials)
    except HTTPException:
        return None


def get_catalog(request: Request) -> TrackCatalog:
    """The track catalog created at startup."""
    return request.app.state.catalog


# Type aliases for cleaner dependency injection
CurrentUser = Annotated[User, Depends(get_current_user)]
OptionalUser = Annotated[Optional[User], Depends(get_current_user_optional)]
Catalog = Annotated[TrackCatalog, Depends(get_catalog)]
