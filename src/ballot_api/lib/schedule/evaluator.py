"""Time-derived election status evaluation."""

from datetime import UTC, datetime

from ballot_api.models.election import ElectionStatus


def ensure_utc(value: datetime) -> datetime:
    """Return ``value`` as an aware datetime, treating naive values as UTC.

    Some drivers (SQLite) return naive datetimes for timezone-aware columns.
    """
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def validate_window(start_at: datetime, end_at: datetime) -> None:
    """Check that a schedule window opens strictly before it closes.

    Raises:
        ValueError: If ``start_at`` is not earlier than ``end_at``.
    """
    if ensure_utc(start_at) >= ensure_utc(end_at):
        msg = "Election start time must be earlier than its end time."
        raise ValueError(msg)


def target_status(
    now: datetime,
    start_at: datetime,
    end_at: datetime,
    current_status: ElectionStatus | str,
) -> ElectionStatus:
    """Compute the status an election should have at ``now``.

    COMPLETED is terminal.  Reaching ``end_at`` completes any other status.
    Only an INACTIVE election inside its window is activated automatically;
    DRAFT elections and elections paused before their window are left alone.

    Args:
        now: The evaluation instant.
        start_at: Scheduled opening time.
        end_at: Scheduled closing time.
        current_status: The stored status.

    Returns:
        The target status (equal to ``current_status`` when nothing changes).
    """
    status = ElectionStatus(current_status)
    now = ensure_utc(now)
    start_at = ensure_utc(start_at)
    end_at = ensure_utc(end_at)

    if status is ElectionStatus.COMPLETED:
        return ElectionStatus.COMPLETED
    if now >= end_at:
        return ElectionStatus.COMPLETED
    if status is ElectionStatus.INACTIVE and start_at <= now < end_at:
        return ElectionStatus.ACTIVE
    return status
