"""Loguru structured logging configuration.

Provides JSON-formatted structured logging with configurable log level
and ballot context.  Services attach context with
``logger.contextualize(election_id=..., voter_id=..., actor=...)`` and every
sink renders it after the message, so a sweep or a restore can be traced
per election or per administrator.  Optionally writes to a rotating log
file when a ``log_dir`` is provided.
"""

import sys
from pathlib import Path
from typing import Any

from loguru import logger

CONTEXT_KEYS = ("election_id", "voter_id", "actor")

_LOG_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<8} | {name}:{function}:{line} | {message}{extra[context]}"


def add_ballot_context(record: dict[str, Any]) -> None:
    """Render bound ballot context into ``extra["context"]``.

    Keys are emitted in a fixed order; unbound keys are left out.
    """
    extra = record["extra"]
    pairs = " ".join(f"{key}={extra[key]}" for key in CONTEXT_KEYS if extra.get(key) is not None)
    extra["context"] = f" | {pairs}" if pairs else ""


def setup_logging(log_level: str = "INFO", log_dir: str | None = None) -> None:
    """Configure Loguru for structured JSON logging.

    Args:
        log_level: Minimum log level to emit.
        log_dir: Optional directory for log files.  When set, a rotating
            file sink is added (rotated every 24 hours, retained 7 days).
    """
    logger.remove()
    logger.configure(patcher=add_ballot_context)
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        format=_LOG_FORMAT,
        serialize=False,
    )
    logger.add(
        sys.stderr,
        level=log_level.upper(),
        serialize=True,
        filter=lambda record: record["extra"].get("json_output", False),
    )

    if log_dir:
        log_path = Path(log_dir)
        log_path.mkdir(parents=True, exist_ok=True)
        logger.add(
            log_path / "ballot-api.log",
            level=log_level.upper(),
            format=_LOG_FORMAT,
            rotation="24h",
            retention="7 days",
        )
