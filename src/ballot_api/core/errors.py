"""Domain error taxonomy.

Every error carries a stable machine-readable ``code`` and the HTTP status
the API layer renders it with.  Messages are safe to show to end users;
store-internal detail is kept in ``__cause__`` and in the logs.
"""


class BallotApiError(Exception):
    """Base class for errors translated into structured API responses."""

    code: str = "error"
    status_code: int = 500

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


# --- Validation (rejected before any transaction opens) ---


class BallotValidationError(BallotApiError, ValueError):
    """Raised when a ballot submission is malformed or incomplete."""

    code = "incomplete-ballot"
    status_code = 422


class ScheduleValidationError(BallotApiError, ValueError):
    """Raised when an election schedule window is invalid."""

    code = "invalid-schedule"
    status_code = 422


class SnapshotValidationError(BallotApiError, ValueError):
    """Raised when a backup document fails structural validation."""

    code = "invalid-snapshot"
    status_code = 400


# --- Business rule conflicts ---


class StateConflictError(BallotApiError):
    """Raised when a business rule blocks the requested transition."""

    code = "invalid-transition"
    status_code = 409


class DuplicateVoteError(BallotApiError):
    """Raised when the store rejects a vote as a duplicate for its voter and position."""

    code = "conflict"
    status_code = 409


# --- Missing references ---


class NotFoundError(BallotApiError):
    """Raised when a referenced election, voter, position or candidate does not exist."""

    code = "not-found"
    status_code = 404


class NotAuthenticatedError(BallotApiError):
    """Raised when the caller's identity does not resolve to a live record."""

    code = "not-authenticated"
    status_code = 401


# --- Infrastructure ---


class StoreUnavailableError(BallotApiError):
    """Raised when the store is unreachable or a statement timed out. Safe to retry."""

    code = "store-unavailable"
    status_code = 503


class RestoreFailedError(BallotApiError):
    """Raised when a restore aborted; the previous data set is left intact."""

    code = "restore-failed"
    status_code = 500

    def __init__(self, message: str, *, detail: str | None = None) -> None:
        super().__init__(message)
        self.detail = detail
