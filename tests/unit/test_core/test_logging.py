"""Unit tests for logging configuration."""

from pathlib import Path

from loguru import logger

from ballot_api.core.logging import add_ballot_context, setup_logging


class TestLogging:
    """Tests for Loguru logging setup."""

    def test_setup_logging_does_not_raise(self) -> None:
        """setup_logging with valid log level does not raise."""
        setup_logging("DEBUG")
        setup_logging("INFO")
        setup_logging("WARNING")

    def test_setup_logging_case_insensitive(self) -> None:
        """setup_logging accepts case-insensitive log levels."""
        setup_logging("info")
        setup_logging("debug")

    def test_file_sink_created(self, tmp_path: Path) -> None:
        log_dir = tmp_path / "logs"
        setup_logging("INFO", str(log_dir))
        logger.info("Reconciled {} election status change(s)", 1)
        logger.remove()

        content = (log_dir / "ballot-api.log").read_text()
        assert "Reconciled 1 election status change(s)" in content

    def test_context_rendered_in_file_sink(self, tmp_path: Path) -> None:
        setup_logging("INFO", str(tmp_path))
        with logger.contextualize(election_id="e-1", actor="testadmin"):
            logger.info("Election status changed")
        logger.info("No context")
        logger.remove()

        lines = (tmp_path / "ballot-api.log").read_text().splitlines()
        assert lines[0].endswith("Election status changed | election_id=e-1 actor=testadmin")
        assert lines[1].endswith("| No context")


class TestAddBallotContext:
    """Tests for the context patcher."""

    def test_orders_known_keys(self) -> None:
        record = {"extra": {"actor": "admin", "voter_id": "v-1", "election_id": "e-1", "json_output": True}}

        add_ballot_context(record)

        assert record["extra"]["context"] == " | election_id=e-1 voter_id=v-1 actor=admin"

    def test_empty_without_context(self) -> None:
        record = {"extra": {"election_id": None}}

        add_ballot_context(record)

        assert record["extra"]["context"] == ""
