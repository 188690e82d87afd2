"""Authentication and account management service.

Handles administrator login, voter login, account creation, token
generation and refresh.
"""

from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from ballot_api.core.config import Settings
from ballot_api.core.security import (
    create_access_token,
    create_refresh_token,
    create_voter_token,
    decode_token,
    hash_password,
    verify_password,
)
from ballot_api.models.user import User
from ballot_api.models.voter import Voter
from ballot_api.schemas.auth import TokenResponse, UserCreateRequest, VoterTokenResponse


async def authenticate_user(session: AsyncSession, username: str, password: str) -> User | None:
    """Authenticate an account by username and password.

    Args:
        session: The database session.
        username: The username to authenticate.
        password: The plaintext password.

    Returns:
        The User if authentication succeeds, None otherwise.
    """
    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not verify_password(password, user.hashed_password):
        return None
    if not user.is_active:
        return None
    user.last_login_at = datetime.now(UTC)
    await session.commit()
    return user


async def authenticate_voter(session: AsyncSession, email: str, password: str) -> Voter | None:
    """Authenticate a voter with the credentials issued to them.

    Voters without credentials cannot sign in.

    Returns:
        The Voter if authentication succeeds, None otherwise.
    """
    result = await session.execute(select(Voter).where(func.lower(Voter.email) == email.lower()))
    voter = result.scalar_one_or_none()
    if voter is None or voter.hashed_password is None:
        return None
    if not verify_password(password, voter.hashed_password):
        return None
    return voter


async def create_user(session: AsyncSession, request: UserCreateRequest) -> User:
    """Create a new account.

    Args:
        session: The database session.
        request: Account creation request data.

    Returns:
        The created User.

    Raises:
        ValueError: If username or email already exists.
    """
    existing = await session.execute(
        select(User).where((User.username == request.username) | (User.email == request.email))
    )
    if existing.scalar_one_or_none() is not None:
        msg = "Username or email already exists"
        raise ValueError(msg)

    user = User(
        username=request.username,
        email=request.email,
        hashed_password=hash_password(request.password),
        role=request.role,
    )
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def list_users(session: AsyncSession, page: int = 1, page_size: int = 20) -> tuple[list[User], int]:
    """List accounts with pagination.

    Returns:
        Tuple of (users list, total count).
    """
    count_result = await session.execute(select(func.count(User.id)))
    total = count_result.scalar_one()

    offset = (page - 1) * page_size
    result = await session.execute(select(User).offset(offset).limit(page_size).order_by(User.created_at))
    users = list(result.scalars().all())
    return users, total


def generate_tokens(user: User, settings: Settings) -> TokenResponse:
    """Generate access and refresh tokens for an account.

    Args:
        user: The authenticated account.
        settings: Application settings.

    Returns:
        Token response with access and refresh tokens.
    """
    access_token = create_access_token(
        subject=user.username,
        role=user.role,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_access_token_expire_minutes,
    )
    refresh_token = create_refresh_token(
        subject=user.username,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_days=settings.jwt_refresh_token_expire_days,
    )
    return TokenResponse(
        access_token=access_token,
        refresh_token=refresh_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
    )


def generate_voter_token(voter: Voter, settings: Settings) -> VoterTokenResponse:
    """Generate the access token a voter presents when casting a ballot."""
    access_token = create_voter_token(
        voter_id=str(voter.id),
        election_id=str(voter.election_id) if voter.election_id else None,
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
        expires_minutes=settings.jwt_access_token_expire_minutes,
    )
    return VoterTokenResponse(
        access_token=access_token,
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        voter_id=voter.id,
        election_id=voter.election_id,
    )


async def refresh_access_token(
    session: AsyncSession,
    refresh_token_str: str,
    settings: Settings,
) -> TokenResponse:
    """Refresh an access token using a refresh token.

    Args:
        session: The database session.
        refresh_token_str: The refresh token string.
        settings: Application settings.

    Returns:
        New token response.

    Raises:
        ValueError: If the refresh token is invalid or the account is gone.
    """
    try:
        payload = decode_token(refresh_token_str, settings.jwt_secret_key, settings.jwt_algorithm)
    except Exception as e:
        msg = "Invalid refresh token"
        raise ValueError(msg) from e

    if payload.get("type") != "refresh":
        msg = "Token is not a refresh token"
        raise ValueError(msg)

    username = payload.get("sub")
    if username is None:
        msg = "Invalid token payload"
        raise ValueError(msg)

    result = await session.execute(select(User).where(User.username == username))
    user = result.scalar_one_or_none()
    if user is None or not user.is_active:
        msg = "User not found or inactive"
        raise ValueError(msg)

    return generate_tokens(user, settings)
