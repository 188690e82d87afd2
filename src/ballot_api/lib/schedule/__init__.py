"""Election schedule evaluation library.

Pure functions mapping wall-clock time and a stored status to the status an
election should have.  No I/O; safe to call from any trigger path.
"""

from ballot_api.lib.schedule.evaluator import ensure_utc, target_status, validate_window

__all__ = [
    "ensure_utc",
    "target_status",
    "validate_window",
]
