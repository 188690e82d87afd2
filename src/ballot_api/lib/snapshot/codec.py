"""Row encoding and decoding for snapshot documents.

Rows are encoded as flat JSON objects keyed by column name: UUIDs as
strings, datetimes as ISO-8601 in UTC.  Decoding validates every column
against the table definition so a malformed document is rejected before
any data is touched.
"""

import uuid
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import Boolean, Column, DateTime, Integer, Uuid

from ballot_api.core.errors import SnapshotValidationError
from ballot_api.lib.schedule import ensure_utc
from ballot_api.lib.snapshot.graph import EntityKind

_TIMESTAMP_COLUMNS = frozenset({"created_at", "updated_at", "voted_at"})


def encode_row(kind: EntityKind, row: Mapping[str, Any]) -> dict[str, Any]:
    """Encode one table row as a JSON-ready dict.

    Args:
        kind: The entity kind the row belongs to.
        row: Column name to value mapping (e.g. ``Row._mapping``).

    Returns:
        Dict with every column of the kind's table.
    """
    encoded: dict[str, Any] = {}
    for column in kind.model.__table__.columns:
        value = row.get(column.key)
        if isinstance(value, uuid.UUID):
            value = str(value)
        elif isinstance(value, datetime):
            value = ensure_utc(value).isoformat()
        encoded[column.key] = value
    return encoded


def decode_row(
    kind: EntityKind,
    data: Any,
    index: int,
    *,
    now: datetime | None = None,
) -> dict[str, Any]:
    """Decode and validate one snapshot record into insertable column values.

    Unknown keys are ignored.  Missing nullable columns become ``None``,
    missing timestamps default to ``now`` and missing columns with a scalar
    default take that default.

    Args:
        kind: The entity kind the record belongs to.
        data: The raw record from the document.
        index: Position of the record in its collection, for error messages.
        now: Fallback for missing timestamps.

    Returns:
        Dict with a value for every column of the kind's table.

    Raises:
        SnapshotValidationError: If the record is not an object, lacks a
            required field, or holds a value of the wrong type.
    """
    where = f"{kind.key}[{index}]"
    if not isinstance(data, Mapping):
        msg = f"{where} must be an object"
        raise SnapshotValidationError(msg)

    fallback_now = now or datetime.now(UTC)
    decoded: dict[str, Any] = {}
    for column in kind.model.__table__.columns:
        if column.key in data and data[column.key] is not None:
            decoded[column.key] = _coerce(column, data[column.key], where)
        elif column.primary_key:
            msg = f"{where} is missing its primary key '{column.key}'"
            raise SnapshotValidationError(msg)
        elif column.nullable:
            decoded[column.key] = None
        elif column.key in _TIMESTAMP_COLUMNS:
            decoded[column.key] = fallback_now
        elif column.default is not None and column.default.is_scalar:
            decoded[column.key] = column.default.arg
        else:
            msg = f"{where} is missing required field '{column.key}'"
            raise SnapshotValidationError(msg)
    return decoded


def _coerce(column: Column[Any], value: Any, where: str) -> Any:
    """Convert a JSON value into the Python type the column expects."""
    try:
        if isinstance(column.type, Uuid):
            return value if isinstance(value, uuid.UUID) else uuid.UUID(str(value))
        if isinstance(column.type, DateTime):
            parsed = value if isinstance(value, datetime) else datetime.fromisoformat(str(value))
            return ensure_utc(parsed)
        if isinstance(column.type, Boolean):
            if not isinstance(value, bool):
                msg = "expected a boolean"
                raise TypeError(msg)
            return value
        if isinstance(column.type, Integer):
            if isinstance(value, bool):
                msg = "expected an integer"
                raise TypeError(msg)
            return int(value)
    except (TypeError, ValueError) as e:
        msg = f"{where} has an invalid value for '{column.key}': {e}"
        raise SnapshotValidationError(msg) from e
    return str(value)
