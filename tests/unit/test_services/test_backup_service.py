"""Tests for snapshot export, validation and transactional restore."""

import copy
import uuid
from collections.abc import AsyncGenerator

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from ballot_api.core.database import enable_sqlite_foreign_keys
from ballot_api.core.errors import RestoreFailedError, SnapshotValidationError
from ballot_api.core.security import hash_password
from ballot_api.models import AuditLog, Candidate, Election, User, Vote, Voter
from ballot_api.models.base import Base
from ballot_api.services.backup_service import export_snapshot, parse_snapshot, restore_snapshot
from ballot_api.services.ballot_service import cast_ballot

COLLECTIONS = ["users", "departments", "years", "elections", "parties", "positions", "candidates", "voters", "votes"]


async def _count(session: AsyncSession, model) -> int:
    return (await session.execute(select(func.count(model.id)))).scalar_one()


def _admin(username: str = "restorer") -> User:
    return User(
        id=uuid.uuid4(),
        username=username,
        email=f"{username}@test.com",
        hashed_password=hash_password("restorepass123"),
        role="admin",
    )


@pytest.fixture
async def fresh_session() -> AsyncGenerator[AsyncSession]:
    """A session on a second, empty database."""
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    enable_sqlite_foreign_keys(engine)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    async with async_sessionmaker(engine, expire_on_commit=False)() as session:
        yield session
    await engine.dispose()


@pytest.fixture
async def populated(async_session, seeded, sample_user):
    """A data set with one cast ballot and one voter-role account."""
    await cast_ballot(async_session, seeded.voter_id, seeded.full_ballot())
    async_session.add(
        User(
            id=uuid.uuid4(),
            username="observer",
            email="observer@test.com",
            hashed_password=hash_password("observerpass1"),
            role="voter",
        )
    )
    await async_session.commit()
    return seeded


class TestExportSnapshot:
    """Tests for export_snapshot."""

    async def test_contains_every_collection(self, async_session, populated) -> None:
        document = await export_snapshot(async_session)

        for key in COLLECTIONS:
            assert isinstance(document[key], list)
        assert document["metadata"]["format_version"] == "1.0.0"
        assert document["metadata"]["system_info"] == "Ballot API Backup"
        assert document["metadata"]["record_counts"]["votes"] == 2
        assert document["metadata"]["record_counts"]["users"] == 2
        assert len(document["positions"]) == 2

    async def test_rows_are_json_ready(self, async_session, populated) -> None:
        document = await export_snapshot(async_session)

        election = document["elections"][0]
        assert election["id"] == str(populated.election_id)
        assert isinstance(election["start_at"], str)
        assert election["start_at"].endswith("+00:00")
        assert document["voters"][0]["status"] == "CAST"

    async def test_export_with_actor_is_audited(self, async_session, populated, sample_user) -> None:
        await export_snapshot(async_session, actor=sample_user)

        log = (await async_session.execute(select(AuditLog))).scalar_one()
        assert log.action == "export"
        assert log.resource_type == "snapshot"


class TestParseSnapshot:
    """Tests for parse_snapshot validation."""

    async def test_valid_document(self, async_session, populated) -> None:
        rows = parse_snapshot(await export_snapshot(async_session))

        assert len(rows["votes"]) == 2
        assert isinstance(rows["elections"][0]["id"], uuid.UUID)

    async def test_admin_accounts_removed(self, async_session, populated) -> None:
        rows = parse_snapshot(await export_snapshot(async_session))

        assert [user["username"] for user in rows["users"]] == ["observer"]

    @pytest.mark.parametrize("document", [None, [], "snapshot", 42])
    def test_not_an_object(self, document) -> None:
        with pytest.raises(SnapshotValidationError, match="JSON object"):
            parse_snapshot(document)

    @pytest.mark.parametrize("missing", ["metadata", "users", "elections"])
    def test_missing_required_section(self, missing) -> None:
        document = {"metadata": {"format_version": "1.0.0", "timestamp": "2026-01-01T00:00:00Z"}, "users": [], "elections": []}
        del document[missing]

        with pytest.raises(SnapshotValidationError, match=missing):
            parse_snapshot(document)

    def test_optional_sections_default_to_empty(self) -> None:
        document = {"metadata": {"format_version": "1.0.0", "timestamp": "2026-01-01T00:00:00Z"}, "users": [], "elections": []}

        rows = parse_snapshot(document)

        assert rows["votes"] == []
        assert rows["departments"] == []

    def test_unsupported_major_version(self) -> None:
        document = {"metadata": {"format_version": "2.0.0", "timestamp": "2026-01-01T00:00:00Z"}, "users": [], "elections": []}

        with pytest.raises(SnapshotValidationError, match="Unsupported snapshot format"):
            parse_snapshot(document)

    def test_invalid_metadata(self) -> None:
        document = {"metadata": {"format_version": "1.0.0"}, "users": [], "elections": []}

        with pytest.raises(SnapshotValidationError, match="metadata"):
            parse_snapshot(document)

    def test_collection_must_be_list(self) -> None:
        document = {"metadata": {"format_version": "1.0.0", "timestamp": "2026-01-01T00:00:00Z"}, "users": {}, "elections": []}

        with pytest.raises(SnapshotValidationError, match="'users' must be a list"):
            parse_snapshot(document)

    def test_unknown_role(self) -> None:
        document = {
            "metadata": {"format_version": "1.0.0", "timestamp": "2026-01-01T00:00:00Z"},
            "users": [
                {
                    "id": str(uuid.uuid4()),
                    "username": "x",
                    "email": "x@test.com",
                    "hashed_password": "h",
                    "role": "superuser",
                }
            ],
            "elections": [],
        }

        with pytest.raises(SnapshotValidationError, match="unknown role"):
            parse_snapshot(document)

    def test_election_window_checked(self) -> None:
        document = {
            "metadata": {"format_version": "1.0.0", "timestamp": "2026-01-01T00:00:00Z"},
            "users": [],
            "elections": [
                {
                    "id": str(uuid.uuid4()),
                    "name": "Backwards",
                    "start_at": "2026-03-02T12:00:00+00:00",
                    "end_at": "2026-03-01T12:00:00+00:00",
                    "status": "INACTIVE",
                }
            ],
        }

        with pytest.raises(SnapshotValidationError, match=r"elections\[0\]"):
            parse_snapshot(document)


class TestRestoreSnapshot:
    """Tests for restore_snapshot."""

    async def test_round_trip_into_empty_database(self, async_session, populated, fresh_session) -> None:
        document = await export_snapshot(async_session)
        admin = _admin()
        fresh_session.add(admin)
        await fresh_session.commit()

        response = await restore_snapshot(fresh_session, document, admin)

        assert response.success is True
        assert response.record_counts["votes"] == 2
        assert response.record_counts["users"] == 1
        assert await _count(fresh_session, Vote) == 2
        assert await _count(fresh_session, Candidate) == 4
        status = (
            await fresh_session.execute(select(Voter.status).where(Voter.id == populated.voter_id))
        ).scalar_one()
        assert status == "CAST"

        exported_again = await export_snapshot(fresh_session)
        for key in ("departments", "years", "elections", "parties", "positions", "candidates", "voters", "votes"):
            assert len(exported_again[key]) == len(document[key]), key

    async def test_restore_replaces_existing_data(self, async_session, populated, sample_user, seeder) -> None:
        document = await export_snapshot(async_session)
        extra = await seeder(voter_email="late@example.edu", name="Added After Backup")

        response = await restore_snapshot(async_session, document, sample_user)

        remaining = (await async_session.execute(select(Election.id))).scalars().all()
        assert remaining == [populated.election_id]
        assert extra.election_id not in remaining
        assert response.deleted_counts["elections"] == 2
        assert await _count(async_session, Vote) == 2

    async def test_admin_accounts_preserved(self, async_session, populated, sample_user) -> None:
        document = await export_snapshot(async_session)
        document["users"] = []
        other_admin = _admin("second_admin")
        async_session.add(other_admin)
        await async_session.commit()

        await restore_snapshot(async_session, document, sample_user)

        usernames = set((await async_session.execute(select(User.username))).scalars().all())
        assert usernames == {"testadmin", "second_admin"}

    async def test_snapshot_admins_not_inserted(self, async_session, populated, fresh_session) -> None:
        document = await export_snapshot(async_session)
        admin = _admin()
        fresh_session.add(admin)
        await fresh_session.commit()

        await restore_snapshot(fresh_session, document, admin)

        usernames = set((await fresh_session.execute(select(User.username))).scalars().all())
        assert usernames == {"restorer", "observer"}

    async def test_orphaned_elections_owned_by_acting_admin(self, async_session, populated, fresh_session) -> None:
        document = await export_snapshot(async_session)
        admin = _admin()
        fresh_session.add(admin)
        await fresh_session.commit()

        await restore_snapshot(fresh_session, document, admin)

        owner = (
            await fresh_session.execute(select(Election.created_by_id).where(Election.id == populated.election_id))
        ).scalar_one()
        assert owner == admin.id

    async def test_foreign_key_failure_leaves_data_intact(self, async_session, populated, sample_user) -> None:
        document = await export_snapshot(async_session)
        broken = copy.deepcopy(document)
        broken["votes"][0]["candidate_id"] = str(uuid.uuid4())

        with pytest.raises(RestoreFailedError) as exc_info:
            await restore_snapshot(async_session, broken, sample_user)

        assert exc_info.value.detail
        assert await _count(async_session, Vote) == 2
        assert await _count(async_session, Election) == 1
        assert await _count(async_session, User) == 2

    async def test_invalid_document_touches_nothing(self, async_session, populated, sample_user) -> None:
        document = await export_snapshot(async_session)
        document["voters"][0]["email"] = None

        with pytest.raises(SnapshotValidationError):
            await restore_snapshot(async_session, document, sample_user)

        assert await _count(async_session, Voter) == 1
        assert await _count(async_session, Vote) == 2

    async def test_small_batches(self, async_session, populated, fresh_session, monkeypatch) -> None:
        monkeypatch.setenv("RESTORE_BATCH_SIZE", "1")
        document = await export_snapshot(async_session)
        admin = _admin()
        fresh_session.add(admin)
        await fresh_session.commit()

        response = await restore_snapshot(fresh_session, document, admin)

        assert response.record_counts["candidates"] == 4
        assert await _count(fresh_session, Candidate) == 4

    async def test_restore_is_audited(self, async_session, populated, sample_user) -> None:
        document = await export_snapshot(async_session)

        await restore_snapshot(async_session, document, sample_user)

        log = (await async_session.execute(select(AuditLog).where(AuditLog.action == "restore"))).scalar_one()
        assert log.username == "testadmin"
        assert log.request_metadata["record_counts"]["votes"] == 2

    async def test_duplicate_row_ids_skipped(self, async_session, populated, fresh_session) -> None:
        document = await export_snapshot(async_session)
        document["candidates"].append(copy.deepcopy(document["candidates"][0]))
        admin = _admin()
        fresh_session.add(admin)
        await fresh_session.commit()

        response = await restore_snapshot(fresh_session, document, admin)

        assert response.record_counts["candidates"] == 4
        assert response.skipped_counts == {"candidates": 1}
        assert await _count(fresh_session, Candidate) == 4

    async def test_restore_twice_is_repeatable(self, async_session, populated, fresh_session) -> None:
        document = await export_snapshot(async_session)
        admin = _admin()
        fresh_session.add(admin)
        await fresh_session.commit()
        await restore_snapshot(fresh_session, document, admin)

        response = await restore_snapshot(fresh_session, document, admin)

        assert response.skipped_counts == {}
        assert response.record_counts["votes"] == 2
        assert await _count(fresh_session, Vote) == 2

    async def test_account_colliding_with_admin_skipped(self, async_session, populated, sample_user) -> None:
        document = await export_snapshot(async_session)
        observer = next(user for user in document["users"] if user["username"] == "observer")
        observer["username"] = sample_user.username
        document["elections"][0]["created_by_id"] = observer["id"]

        response = await restore_snapshot(async_session, document, sample_user)

        assert response.skipped_counts == {"users": 1}
        assert response.record_counts["users"] == 0
        accounts = (await async_session.execute(select(User.username, User.role))).all()
        assert [tuple(account) for account in accounts] == [("testadmin", "admin")]
        owner = (
            await async_session.execute(select(Election.created_by_id).where(Election.id == populated.election_id))
        ).scalar_one()
        assert owner == sample_user.id
