"""Pydantic v2 schemas for snapshot export and restore."""

from datetime import datetime

from pydantic import BaseModel, Field

SNAPSHOT_FORMAT_VERSION = "1.0.0"


class SnapshotMetadata(BaseModel):
    """Metadata block carried by every snapshot document."""

    format_version: str = Field(min_length=1, description="Semantic version of the document layout")
    timestamp: datetime
    system_info: str = "Ballot API Backup"
    record_counts: dict[str, int] = Field(default_factory=dict)


class RestoreResponse(BaseModel):
    """Outcome of a successful restore."""

    success: bool = True
    message: str
    record_counts: dict[str, int] = Field(
        default_factory=dict,
        description="Rows inserted per entity kind",
    )
    deleted_counts: dict[str, int] = Field(
        default_factory=dict,
        description="Rows removed per entity kind before inserting",
    )
    skipped_counts: dict[str, int] = Field(
        default_factory=dict,
        description="Rows skipped per entity kind because they collided with an existing key",
    )
