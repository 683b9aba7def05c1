"""
Database migration runner for NextCap.

Called from the api.py lifespan and usable from the command line.

Usage:
    # From Python:
    from migrate import run_migrations
    run_migrations()

    # From CLI:
    python migrate.py
"""

import sys
import logging
from pathlib import Path

from alembic import command
from alembic.config import Config
from alembic.script import ScriptDirectory
from alembic.runtime.migration import MigrationContext
from sqlalchemy import create_engine

logger = logging.getLogger(__name__)

# Directory where this file lives (project root)
PROJECT_ROOT = Path(__file__).parent.resolve()


def _get_alembic_config() -> Config:
    """Create Alembic config pointing to alembic.ini in project root."""
    cfg = Config(str(PROJECT_ROOT / "alembic.ini"))
    cfg.set_main_option("script_location", str(PROJECT_ROOT / "alembic"))
    return cfg


def _get_database_url() -> str:
    """Get database URL from application config."""
    from config import get_config
    return get_config().database.connection_string


def get_head_revision() -> str:
    """Return the newest migration revision shipped with the code."""
    return ScriptDirectory.from_config(_get_alembic_config()).get_current_head()


def get_pending_migrations(db_url: str, alembic_cfg: Config) -> list:
    """List revisions not yet applied, newest first. Empty if up to date."""
    engine = create_engine(db_url)
    try:
        with engine.connect() as conn:
            current_rev = MigrationContext.configure(conn).get_current_revision()

        script = ScriptDirectory.from_config(alembic_cfg)
        pending = []
        for rev in script.walk_revisions():
            if rev.revision == current_rev:
                break
            pending.append(rev.revision)
        return pending
    finally:
        engine.dispose()


def run_migrations() -> bool:
    """Apply all pending migrations.

    Returns:
        True if the schema is at head afterwards, False if migrating failed.
    """
    try:
        alembic_cfg = _get_alembic_config()
        db_url = _get_database_url()

        pending = get_pending_migrations(db_url, alembic_cfg)
        if not pending:
            logger.info("Database schema is up to date")
            return True

        logger.info(f"Applying {len(pending)} migration(s): {', '.join(reversed(pending))}")
        alembic_cfg.set_main_option("sqlalchemy.url", db_url)
        command.upgrade(alembic_cfg, "head")
        logger.info("Migrations complete")
        return True
    except Exception as e:
        logger.error(f"Migration failed: {e}")
        return False


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    sys.exit(0 if run_migrations() else 1)
