"""Ballot API: election scheduling, ballot casting, and backup/restore."""

__version__ = "0.1.0"
