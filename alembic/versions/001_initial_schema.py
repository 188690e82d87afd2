"""Initial schema: accounts, audit logs, departments, elections, voters and votes.

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("role", sa.String(20), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("role IN ('admin', 'voter')", name="ck_users_role"),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    op.create_table(
        "audit_logs",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("user_id", sa.Uuid(), nullable=False),
        sa.Column("username", sa.String(100), nullable=False),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("resource_type", sa.String(50), nullable=False),
        sa.Column("resource_ids", sa.JSON(), nullable=True),
        sa.Column("request_metadata", sa.JSON(), nullable=True),
    )
    op.create_index("ix_audit_logs_timestamp", "audit_logs", ["timestamp"])
    op.create_index("ix_audit_logs_user_id", "audit_logs", ["user_id"])
    op.create_index("ix_audit_logs_action", "audit_logs", ["action"])
    op.create_index("ix_audit_logs_resource_type", "audit_logs", ["resource_type"])

    op.create_table(
        "departments",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False, unique=True),
        sa.Column("image", sa.Text(), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "years",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("department_id", sa.Uuid(), sa.ForeignKey("departments.id", ondelete="CASCADE"), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("department_id", "name", name="uq_years_department_name"),
    )
    op.create_index("ix_years_department_id", "years", ["department_id"])

    op.create_table(
        "elections",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("hide_name", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_by_id", sa.Uuid(), sa.ForeignKey("users.id", ondelete="SET NULL"), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("status IN ('DRAFT', 'INACTIVE', 'ACTIVE', 'COMPLETED')", name="ck_election_status"),
        sa.CheckConstraint("start_at < end_at", name="ck_election_window"),
    )
    op.create_index("idx_elections_status", "elections", ["status"])
    op.create_index("idx_elections_end_at", "elections", ["end_at"])

    op.create_table(
        "parties",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("election_id", sa.Uuid(), sa.ForeignKey("elections.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("election_id", "name", name="uq_parties_election_name"),
    )
    op.create_index("ix_parties_election_id", "parties", ["election_id"])

    op.create_table(
        "positions",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("election_id", sa.Uuid(), sa.ForeignKey("elections.id", ondelete="CASCADE"), nullable=False),
        sa.Column("year_id", sa.Uuid(), sa.ForeignKey("years.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("max_candidates", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("sort_order", sa.Integer(), nullable=False, server_default="0"),
        *_timestamps(),
        sa.UniqueConstraint("election_id", "name", name="uq_positions_election_name"),
    )
    op.create_index("ix_positions_election_id", "positions", ["election_id"])

    op.create_table(
        "candidates",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("election_id", sa.Uuid(), sa.ForeignKey("elections.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position_id", sa.Uuid(), sa.ForeignKey("positions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("party_id", sa.Uuid(), sa.ForeignKey("parties.id"), nullable=False),
        sa.Column("year_id", sa.Uuid(), sa.ForeignKey("years.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("avatar", sa.Text(), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_candidates_election_id", "candidates", ["election_id"])
    op.create_index("ix_candidates_position_id", "candidates", ["position_id"])
    op.create_index("ix_candidates_party_id", "candidates", ["party_id"])

    op.create_table(
        "voters",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("middle_name", sa.String(100), nullable=True),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255), nullable=True),
        sa.Column("election_id", sa.Uuid(), sa.ForeignKey("elections.id", ondelete="SET NULL"), nullable=True),
        sa.Column("year_id", sa.Uuid(), sa.ForeignKey("years.id", ondelete="SET NULL"), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("credentials_sent", sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.CheckConstraint("status IN ('REGISTERED', 'UNCAST', 'CAST')", name="ck_voter_status"),
    )
    op.create_index("idx_voters_election_id", "voters", ["election_id"])

    op.create_table(
        "votes",
        sa.Column("id", sa.Uuid(), primary_key=True),
        sa.Column("voter_id", sa.Uuid(), sa.ForeignKey("voters.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position_id", sa.Uuid(), sa.ForeignKey("positions.id", ondelete="CASCADE"), nullable=False),
        sa.Column("candidate_id", sa.Uuid(), sa.ForeignKey("candidates.id", ondelete="CASCADE"), nullable=False),
        sa.Column("election_id", sa.Uuid(), sa.ForeignKey("elections.id", ondelete="CASCADE"), nullable=False),
        sa.Column("voted_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint("voter_id", "position_id", name="uq_votes_voter_position"),
    )
    op.create_index("idx_votes_election_id", "votes", ["election_id"])
    op.create_index("idx_votes_candidate_id", "votes", ["candidate_id"])


def downgrade() -> None:
    op.drop_table("votes")
    op.drop_table("voters")
    op.drop_table("candidates")
    op.drop_table("positions")
    op.drop_table("parties")
    op.drop_table("elections")
    op.drop_table("years")
    op.drop_table("departments")
    op.drop_table("audit_logs")
    op.drop_table("users")
