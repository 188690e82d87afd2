"""Database migration CLI commands using Alembic programmatically."""

from typing import TYPE_CHECKING, Annotated

import typer
from loguru import logger

if TYPE_CHECKING:
    from alembic.config import Config

db_app = typer.Typer()

ConfigOption = Annotated[str, typer.Option("--config", "-c", help="Path to alembic.ini")]


def _alembic_config(path: str) -> "Config":
    from alembic.config import Config

    return Config(path)


@db_app.command()
def upgrade(
    revision: str = typer.Argument("head", help="Target revision"),
    config: ConfigOption = "alembic.ini",
) -> None:
    """Run database migrations up to the target revision."""
    from alembic import command

    logger.info("Upgrading database to {}", revision)
    command.upgrade(_alembic_config(config), revision)
    logger.info("Database upgrade complete")


@db_app.command()
def downgrade(
    revision: str = typer.Argument("-1", help="Target revision"),
    config: ConfigOption = "alembic.ini",
) -> None:
    """Roll back database migrations to the target revision."""
    from alembic import command

    logger.info("Downgrading database to {}", revision)
    command.downgrade(_alembic_config(config), revision)
    logger.info("Database downgrade complete")


@db_app.command()
def current(config: ConfigOption = "alembic.ini") -> None:
    """Show the current database migration revision."""
    from alembic import command

    command.current(_alembic_config(config), verbose=True)
