"""ORM model registry — import all models so Alembic autogenerate discovers them."""

from ballot_api.models.audit_log import AuditLog
from ballot_api.models.department import Department, Year
from ballot_api.models.election import Candidate, Election, ElectionStatus, Party, Position
from ballot_api.models.user import User, UserRole
from ballot_api.models.vote import Vote
from ballot_api.models.voter import Voter, VoterStatus

__all__ = [
    "AuditLog",
    "Candidate",
    "Department",
    "Election",
    "ElectionStatus",
    "Party",
    "Position",
    "User",
    "UserRole",
    "Vote",
    "Voter",
    "VoterStatus",
    "Year",
]
