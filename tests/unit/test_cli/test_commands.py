"""Tests for the ballot-api CLI commands.

Database access and services are mocked; these tests verify argument
handling, output and exit codes.
"""

import json
import uuid
from collections.abc import Iterator
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from ballot_api.cli.app import app
from ballot_api.core.errors import NotFoundError, RestoreFailedError, StateConflictError
from ballot_api.schemas.backup import RestoreResponse
from ballot_api.schemas.election import StatusChange

runner = CliRunner()


@pytest.fixture
def mock_session() -> MagicMock:
    return MagicMock()


@pytest.fixture(autouse=True)
def _database(mock_session: MagicMock) -> Iterator[None]:
    """Replace engine setup with a factory yielding ``mock_session``."""
    factory = MagicMock()
    factory.return_value.__aenter__.return_value = mock_session
    with (
        patch("ballot_api.core.database.init_engine"),
        patch("ballot_api.core.database.get_session_factory", return_value=factory),
        patch("ballot_api.core.database.dispose_engine", new_callable=AsyncMock),
    ):
        yield


class TestElectionCommands:
    def test_reconcile_prints_changes(self) -> None:
        change = StatusChange(id=uuid.uuid4(), name="Council", previous_status="INACTIVE", status="ACTIVE")
        with patch(
            "ballot_api.services.election_status_service.reconcile_election_statuses",
            new_callable=AsyncMock,
            return_value=[change],
        ) as mock_reconcile:
            result = runner.invoke(app, ["election", "reconcile", "--now", "2026-03-02T12:00:00+00:00"])

        assert result.exit_code == 0, result.output
        assert "Council: INACTIVE -> ACTIVE" in result.output
        assert "Updated 1 election(s)" in result.output
        assert mock_reconcile.await_args.kwargs["now"] == datetime(2026, 3, 2, 12, 0, tzinfo=UTC)

    def test_status_conflict_exits_nonzero(self) -> None:
        with patch(
            "ballot_api.services.election_status_service.change_election_status",
            new_callable=AsyncMock,
            side_effect=StateConflictError("Cannot pause an election that is DRAFT."),
        ):
            result = runner.invoke(app, ["election", "status", str(uuid.uuid4()), "pause"])

        assert result.exit_code == 1
        assert "invalid-transition" in result.output

    def test_create_rejects_reversed_window(self) -> None:
        with patch("ballot_api.services.election_service.create_election", new_callable=AsyncMock) as mock_create:
            result = runner.invoke(
                app,
                ["election", "create", "--name", "Council", "--start", "2026-03-02T00:00:00", "--end", "2026-03-01"],
            )

        assert result.exit_code == 1
        mock_create.assert_not_awaited()

    def test_create(self) -> None:
        election = MagicMock(id=uuid.uuid4(), status="DRAFT")
        election.name = "Council"
        with patch(
            "ballot_api.services.election_service.create_election",
            new_callable=AsyncMock,
            return_value=election,
        ) as mock_create:
            result = runner.invoke(
                app,
                ["election", "create", "--name", "Council", "--start", "2026-03-01", "--end", "2026-03-02", "--draft"],
            )

        assert result.exit_code == 0, result.output
        assert "[DRAFT]" in result.output
        assert mock_create.await_args.args[1].status == "DRAFT"

    def test_delete_missing(self) -> None:
        with patch(
            "ballot_api.services.election_service.delete_election",
            new_callable=AsyncMock,
            side_effect=NotFoundError("Election not found."),
        ):
            result = runner.invoke(app, ["election", "delete", str(uuid.uuid4()), "--yes"])

        assert result.exit_code == 1
        assert "not-found" in result.output

    def test_delete_aborted_without_confirmation(self) -> None:
        with patch("ballot_api.services.election_service.delete_election", new_callable=AsyncMock) as mock_delete:
            result = runner.invoke(app, ["election", "delete", str(uuid.uuid4())], input="n\n")

        assert result.exit_code != 0
        mock_delete.assert_not_awaited()


class TestBackupCommands:
    def test_export_writes_file(self, tmp_path: Path) -> None:
        document = {"metadata": {"record_counts": {"elections": 2, "votes": 5}}, "elections": [], "votes": []}
        output = tmp_path / "snapshots" / "backup.json"
        with patch(
            "ballot_api.services.backup_service.export_snapshot",
            new_callable=AsyncMock,
            return_value=document,
        ):
            result = runner.invoke(app, ["backup", "export", str(output)])

        assert result.exit_code == 0, result.output
        assert json.loads(output.read_text()) == document
        assert "7 records" in result.output

    def test_restore_invalid_json(self, tmp_path: Path) -> None:
        source = tmp_path / "broken.json"
        source.write_text("{not json")

        result = runner.invoke(app, ["backup", "restore", str(source), "--admin", "testadmin", "--yes"])

        assert result.exit_code == 1
        assert "not valid JSON" in result.output

    def test_restore_unknown_admin(self, tmp_path: Path, mock_session: MagicMock) -> None:
        source = tmp_path / "backup.json"
        source.write_text("{}")
        query_result = MagicMock()
        query_result.scalar_one_or_none.return_value = None
        mock_session.execute = AsyncMock(return_value=query_result)

        result = runner.invoke(app, ["backup", "restore", str(source), "--admin", "ghost", "--yes"])

        assert result.exit_code == 1
        assert "no administrator named 'ghost'" in result.output

    def test_restore(self, tmp_path: Path, mock_session: MagicMock) -> None:
        source = tmp_path / "backup.json"
        source.write_text(json.dumps({"metadata": {}}))
        query_result = MagicMock()
        query_result.scalar_one_or_none.return_value = MagicMock(username="testadmin")
        mock_session.execute = AsyncMock(return_value=query_result)
        response = RestoreResponse(message="Data restored successfully.", record_counts={"votes": 4})

        with patch(
            "ballot_api.services.backup_service.restore_snapshot",
            new_callable=AsyncMock,
            return_value=response,
        ) as mock_restore:
            result = runner.invoke(app, ["backup", "restore", str(source), "--admin", "testadmin", "--yes"])

        assert result.exit_code == 0, result.output
        assert "Data restored successfully." in result.output
        assert mock_restore.await_args.args[1] == {"metadata": {}}

    def test_restore_failure_reports_store_error(self, tmp_path: Path, mock_session: MagicMock) -> None:
        source = tmp_path / "backup.json"
        source.write_text("{}")
        query_result = MagicMock()
        query_result.scalar_one_or_none.return_value = MagicMock(username="testadmin")
        mock_session.execute = AsyncMock(return_value=query_result)

        with patch(
            "ballot_api.services.backup_service.restore_snapshot",
            new_callable=AsyncMock,
            side_effect=RestoreFailedError("Restore failed.", detail="FOREIGN KEY constraint failed"),
        ):
            result = runner.invoke(app, ["backup", "restore", str(source), "--admin", "testadmin", "--yes"])

        assert result.exit_code == 1
        assert "FOREIGN KEY constraint failed" in result.output


class TestUserCommands:
    def test_create_validates_before_connecting(self) -> None:
        with patch("ballot_api.core.database.init_engine") as mock_init:
            result = runner.invoke(
                app,
                [
                    "user",
                    "create",
                    "--username",
                    "clerk",
                    "--email",
                    "clerk@test.com",
                    "--password",
                    "short",
                    "--role",
                    "admin",
                ],
            )

        assert result.exit_code == 1
        assert "password" in result.output
        mock_init.assert_not_called()
