"""Outbound notification capability.

The core never delivers email or push messages itself.  It calls a narrow
``StatusNotifier`` protocol after a status change has committed; the
default implementation only logs.  Deployments can swap in a real
delivery channel without touching the service layer.
"""

from typing import Protocol

from loguru import logger

from ballot_api.schemas.election import StatusChange


class StatusNotifier(Protocol):
    """Protocol for announcing committed election status changes."""

    async def election_status_changed(self, change: StatusChange) -> None:
        """Announce one committed status change.

        Args:
            change: The transition that was applied.
        """
        ...


class LoggingStatusNotifier:
    """Notifier that records each change in the application log."""

    async def election_status_changed(self, change: StatusChange) -> None:
        """Log the committed status change."""
        logger.info(
            "Election {} ({}) moved {} -> {}",
            change.id,
            change.name,
            change.previous_status,
            change.status,
        )


# Singleton instance for the application
status_notifier: StatusNotifier = LoggingStatusNotifier()
