"""Shared test fixtures for async database, sessions, seeded elections, and auth tokens."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ballot_api.core.config import Settings
from ballot_api.core.database import enable_sqlite_foreign_keys
from ballot_api.core.security import create_access_token, create_voter_token, hash_password
from ballot_api.models import Candidate, Department, Election, Party, Position, User, Voter, Year
from ballot_api.models.base import Base

TEST_SECRET = "test-secret-key-not-for-production"
VOTER_PASSWORD = "voterpass123"
NOW = datetime(2026, 3, 2, 12, 0, tzinfo=UTC)


@pytest.fixture(autouse=True)
def _settings_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Provide the required settings to code that calls get_settings() directly."""
    monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
    monkeypatch.setenv("JWT_SECRET_KEY", TEST_SECRET)


@pytest.fixture
def settings() -> Settings:
    """Test application settings."""
    return Settings(
        database_url="sqlite+aiosqlite:///:memory:",
        jwt_secret_key=TEST_SECRET,
        jwt_algorithm="HS256",
        jwt_access_token_expire_minutes=30,
        jwt_refresh_token_expire_days=7,
        cron_secret="scheduler-secret",
    )


async def create_test_engine() -> AsyncEngine:
    """Create an in-memory SQLite engine with foreign keys enforced and the schema created."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", echo=False, poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    return engine


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """Create an in-memory async SQLite engine for testing."""
    engine = await create_test_engine()
    yield engine
    await engine.dispose()


@pytest.fixture
async def async_session(async_engine: AsyncEngine) -> AsyncGenerator[AsyncSession]:
    """Create a per-test async session."""
    session_factory = async_sessionmaker(async_engine, expire_on_commit=False)
    async with session_factory() as session:
        yield session


@pytest.fixture
async def sample_user(async_session: AsyncSession) -> User:
    """Create a sample admin account in the test database."""
    user = User(
        id=uuid.uuid4(),
        username="testadmin",
        email="admin@test.com",
        hashed_password=hash_password("testpassword123"),
        role="admin",
    )
    async_session.add(user)
    await async_session.commit()
    await async_session.refresh(user)
    return user


@pytest.fixture
def admin_token(settings: Settings) -> str:
    """Generate a JWT access token for an admin account."""
    return create_access_token(
        subject="testadmin",
        role="admin",
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )


@dataclass
class SeededElection:
    """Identifiers of a seeded election; plain values survive session rollbacks."""

    election_id: uuid.UUID
    voter_id: uuid.UUID
    voter_email: str
    department_id: uuid.UUID
    year_id: uuid.UUID
    party_id: uuid.UUID
    # position id -> candidate ids running for it
    positions: dict[uuid.UUID, list[uuid.UUID]] = field(default_factory=dict)

    @property
    def position_ids(self) -> list[uuid.UUID]:
        return list(self.positions)

    def full_ballot(self) -> dict[uuid.UUID, uuid.UUID]:
        """A complete valid ballot choosing the first candidate for each position."""
        return {position_id: candidates[0] for position_id, candidates in self.positions.items()}


async def seed_election(
    session: AsyncSession,
    *,
    status: str = "ACTIVE",
    start_at: datetime = NOW - timedelta(hours=1),
    end_at: datetime = NOW + timedelta(hours=1),
    voter_status: str = "UNCAST",
    owner_id: uuid.UUID | None = None,
    name: str = "Student Council 2026",
    voter_email: str = "voter@example.edu",
    position_names: tuple[str, ...] = ("President", "Treasurer"),
) -> SeededElection:
    """Insert an election with a department, year, party, positions, candidates and one voter."""
    department = Department(id=uuid.uuid4(), name=f"Engineering {uuid.uuid4().hex[:6]}")
    year = Year(id=uuid.uuid4(), name="First Year", department_id=department.id)
    election = Election(
        id=uuid.uuid4(),
        name=name,
        start_at=start_at,
        end_at=end_at,
        status=status,
        created_by_id=owner_id,
    )
    party = Party(id=uuid.uuid4(), election_id=election.id, name="Unity")
    session.add_all([department, year, election, party])
    await session.flush()

    positions: dict[uuid.UUID, list[uuid.UUID]] = {}
    for order, position_name in enumerate(position_names):
        position = Position(id=uuid.uuid4(), election_id=election.id, name=position_name, sort_order=order)
        session.add(position)
        await session.flush()
        candidate_ids = []
        for label in ("A", "B"):
            candidate = Candidate(
                id=uuid.uuid4(),
                election_id=election.id,
                position_id=position.id,
                party_id=party.id,
                year_id=year.id,
                name=f"{position_name} Candidate {label}",
            )
            session.add(candidate)
            candidate_ids.append(candidate.id)
        positions[position.id] = candidate_ids

    voter = Voter(
        id=uuid.uuid4(),
        first_name="Ada",
        last_name="Lovelace",
        email=voter_email,
        hashed_password=hash_password(VOTER_PASSWORD),
        election_id=election.id,
        year_id=year.id,
        status=voter_status,
    )
    session.add(voter)
    await session.commit()

    return SeededElection(
        election_id=election.id,
        voter_id=voter.id,
        voter_email=voter_email,
        department_id=department.id,
        year_id=year.id,
        party_id=party.id,
        positions=positions,
    )


@pytest.fixture
def seeder(async_session: AsyncSession) -> Callable[..., Awaitable[SeededElection]]:
    """Return a coroutine function seeding elections into the test session."""

    async def _seed(**kwargs) -> SeededElection:  # noqa: ANN003
        return await seed_election(async_session, **kwargs)

    return _seed


@pytest.fixture
async def seeded(async_session: AsyncSession) -> SeededElection:
    """An open election with two positions and one voter who has not voted."""
    now = datetime.now(UTC)
    return await seed_election(async_session, start_at=now - timedelta(hours=1), end_at=now + timedelta(days=1))


@pytest.fixture
def voter_token(seeded: SeededElection, settings: Settings) -> str:
    """Generate a voter access token for the seeded voter."""
    return create_voter_token(
        voter_id=str(seeded.voter_id),
        election_id=str(seeded.election_id),
        secret_key=settings.jwt_secret_key,
        algorithm=settings.jwt_algorithm,
    )
