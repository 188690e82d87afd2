"""Department and academic year models.

Voters and positions are grouped by year; years belong to a department.
"""

import uuid

from sqlalchemy import ForeignKey, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ballot_api.models.base import Base, TimestampMixin, UUIDMixin


class Department(Base, UUIDMixin, TimestampMixin):
    """An organizational unit owning a set of years."""

    __tablename__ = "departments"

    name: Mapped[str] = mapped_column(String(200), unique=True, nullable=False)
    image: Mapped[str | None] = mapped_column(Text, nullable=True)

    years: Mapped[list["Year"]] = relationship(back_populates="department")


class Year(Base, UUIDMixin, TimestampMixin):
    """A year level within a department."""

    __tablename__ = "years"

    name: Mapped[str] = mapped_column(String(100), nullable=False)
    department_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("departments.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    department: Mapped["Department"] = relationship(back_populates="years")

    __table_args__ = (UniqueConstraint("department_id", "name", name="uq_years_department_name"),)
