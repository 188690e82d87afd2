"""Tests for account and voter authentication."""

import pytest

from ballot_api.core.security import decode_token
from ballot_api.models import Voter
from ballot_api.schemas.auth import UserCreateRequest
from ballot_api.services.auth_service import (
    authenticate_user,
    authenticate_voter,
    create_user,
    generate_tokens,
    generate_voter_token,
    list_users,
    refresh_access_token,
)

VOTER_PASSWORD = "voterpass123"


class TestAuthenticateUser:
    async def test_valid_credentials(self, async_session, sample_user) -> None:
        user = await authenticate_user(async_session, "testadmin", "testpassword123")

        assert user is not None
        assert user.last_login_at is not None

    async def test_wrong_password(self, async_session, sample_user) -> None:
        assert await authenticate_user(async_session, "testadmin", "nope") is None

    async def test_unknown_user(self, async_session) -> None:
        assert await authenticate_user(async_session, "ghost", "testpassword123") is None

    async def test_inactive_user(self, async_session, sample_user) -> None:
        sample_user.is_active = False
        await async_session.commit()

        assert await authenticate_user(async_session, "testadmin", "testpassword123") is None


class TestAuthenticateVoter:
    async def test_valid_credentials(self, async_session, seeded) -> None:
        voter = await authenticate_voter(async_session, seeded.voter_email, VOTER_PASSWORD)

        assert voter is not None
        assert voter.id == seeded.voter_id

    async def test_email_case_insensitive(self, async_session, seeded) -> None:
        voter = await authenticate_voter(async_session, seeded.voter_email.upper(), VOTER_PASSWORD)

        assert voter is not None

    async def test_wrong_password(self, async_session, seeded) -> None:
        assert await authenticate_voter(async_session, seeded.voter_email, "wrong") is None

    async def test_voter_without_credentials(self, async_session, seeded) -> None:
        voter = await async_session.get(Voter, seeded.voter_id)
        voter.hashed_password = None
        await async_session.commit()

        assert await authenticate_voter(async_session, seeded.voter_email, VOTER_PASSWORD) is None


class TestAccounts:
    async def test_create_and_list(self, async_session, sample_user) -> None:
        request = UserCreateRequest(username="clerk", email="clerk@test.com", password="clerkpass123", role="admin")

        user = await create_user(async_session, request)
        users, total = await list_users(async_session)

        assert user.role == "admin"
        assert user.hashed_password != "clerkpass123"
        assert total == 2
        assert {u.username for u in users} == {"testadmin", "clerk"}

    async def test_duplicate_rejected(self, async_session, sample_user) -> None:
        request = UserCreateRequest(
            username="testadmin", email="other@test.com", password="clerkpass123", role="voter"
        )

        with pytest.raises(ValueError, match="already exists"):
            await create_user(async_session, request)


class TestTokens:
    def test_generate_tokens(self, sample_user, settings) -> None:
        tokens = generate_tokens(sample_user, settings)

        payload = decode_token(tokens.access_token, settings.jwt_secret_key, settings.jwt_algorithm)
        assert payload["sub"] == "testadmin"
        assert payload["role"] == "admin"
        assert tokens.expires_in == 1800

    async def test_voter_token(self, async_session, seeded, settings) -> None:
        voter = await authenticate_voter(async_session, seeded.voter_email, VOTER_PASSWORD)

        response = generate_voter_token(voter, settings)

        payload = decode_token(response.access_token, settings.jwt_secret_key, settings.jwt_algorithm)
        assert payload["sub"] == str(seeded.voter_id)
        assert payload["role"] == "voter"
        assert response.election_id == seeded.election_id

    async def test_refresh(self, async_session, sample_user, settings) -> None:
        tokens = generate_tokens(sample_user, settings)

        refreshed = await refresh_access_token(async_session, tokens.refresh_token, settings)

        assert refreshed.access_token

    async def test_refresh_rejects_access_token(self, async_session, sample_user, settings) -> None:
        tokens = generate_tokens(sample_user, settings)

        with pytest.raises(ValueError, match="not a refresh token"):
            await refresh_access_token(async_session, tokens.access_token, settings)

    async def test_refresh_rejects_garbage(self, async_session, settings) -> None:
        with pytest.raises(ValueError, match="Invalid refresh token"):
            await refresh_access_token(async_session, "not-a-jwt", settings)
