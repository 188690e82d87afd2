"""FastAPI dependency injection for database sessions, auth, and access control.

Provides get_async_session, get_current_user, role-based access control
factories, the voter identity capability used by ballot casting, and the
shared-secret check for the external scheduler.
"""

import hmac
import uuid
from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.config import Settings, get_settings
from ballot_api.core.database import get_session_factory
from ballot_api.core.errors import NotAuthenticatedError
from ballot_api.core.security import VOTER_ROLE, decode_token
from ballot_api.models.user import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/login")
voter_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="api/v1/auth/voter-login", auto_error=False)


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def get_current_user(
    token: Annotated[str, Depends(oauth2_scheme)],
    session: Annotated[AsyncSession, Depends(get_async_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    """Decode JWT and return the authenticated account.

    Args:
        token: The JWT bearer token.
        session: The database session.
        settings: Application settings.

    Returns:
        The authenticated User model instance.

    Raises:
        HTTPException: If the token is invalid, belongs to a voter, or the
            account is missing or inactive.
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
        username: str | None = payload.get("sub")
        if username is None or payload.get("type") != "access" or payload.get("role") == VOTER_ROLE:
            raise credentials_exception
    except Exception as exc:
        raise credentials_exception from exc

    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        raise credentials_exception
    return user


def require_role(*roles: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring specific account roles.

    Args:
        *roles: Allowed role names (e.g., "admin").

    Returns:
        A FastAPI dependency function that validates the account's role.
    """

    async def role_checker(
        current_user: Annotated[User, Depends(get_current_user)],
    ) -> User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{current_user.role}' does not have access to this resource",
            )
        return current_user

    return role_checker


async def get_current_voter_id(
    token: Annotated[str | None, Depends(voter_oauth2_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> uuid.UUID:
    """Resolve the voter identity carried by a voter bearer token.

    Only the token is checked here.  The voter record itself is re-read
    inside the ballot transaction.

    Raises:
        NotAuthenticatedError: If the token is missing, invalid, expired or
            not a voter token.
    """
    if not token:
        msg = "You must be signed in as a voter to submit a ballot."
        raise NotAuthenticatedError(msg)
    try:
        payload = decode_token(token, settings.jwt_secret_key, settings.jwt_algorithm)
        if payload.get("type") != "access" or payload.get("role") != VOTER_ROLE:
            msg = "Token does not identify a voter."
            raise NotAuthenticatedError(msg)
        return uuid.UUID(str(payload.get("sub")))
    except NotAuthenticatedError:
        raise
    except Exception as exc:
        msg = "Could not validate voter credentials."
        raise NotAuthenticatedError(msg) from exc


async def verify_cron_secret(
    settings: Annotated[Settings, Depends(get_settings)],
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Require ``Authorization: Bearer <cron_secret>`` from the external scheduler.

    Raises:
        HTTPException: 503 if no secret is configured, 401 if it does not match.
    """
    if not settings.cron_secret:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="CRON_SECRET is not configured",
        )
    expected = f"Bearer {settings.cron_secret}"
    if authorization is None or not hmac.compare_digest(authorization.encode(), expected.encode()):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="This endpoint requires a valid scheduler secret",
        )
