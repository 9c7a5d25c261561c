# casebook/migrations.py
"""
Schema migrations applied at startup through Alembic.

Missing tables are created from the models first; the revisions under
``casebook/alembic/versions`` then bring older databases forward. Every
revision checks before it acts, so it is harmless on a database the models
just created.

Revisions are applied one at a time, each in its own transaction. A failing
revision is logged and stops the run; it is not stamped, so the next start
tries it again. The app keeps booting with whatever schema it has.
"""
import logging
from pathlib import Path
from typing import Optional

from alembic import command
from alembic.config import Config
from alembic.runtime.migration import MigrationContext
from alembic.script import ScriptDirectory
from alembic.util import CommandError
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from casebook.database import Base
from casebook.models import case_study, favorite, quests, report, user  # noqa: F401  (registers tables)

logger = logging.getLogger(__name__)

SCRIPT_LOCATION = Path(__file__).resolve().parent / "alembic"


def alembic_config() -> Config:
    cfg = Config()
    cfg.set_main_option("script_location", str(SCRIPT_LOCATION))
    return cfg


def revision_ids(cfg: Optional[Config] = None) -> list[str]:
    """All revisions, oldest first."""
    script = ScriptDirectory.from_config(cfg or alembic_config())
    return [rev.revision for rev in reversed(list(script.walk_revisions()))]


def current_revision(engine: Engine) -> Optional[str]:
    with engine.connect() as conn:
        return MigrationContext.configure(conn).get_current_revision()


def run_migrations(engine: Engine) -> list[str]:
    """Create missing tables, then apply pending revisions in order.

    Returns the revisions applied by this call.
    """
    Base.metadata.create_all(bind=engine)

    cfg = alembic_config()
    ordered = revision_ids(cfg)
    current = current_revision(engine)
    if current is None:
        pending = ordered
    elif current in ordered:
        pending = ordered[ordered.index(current) + 1:]
    else:
        logger.warning("Database is at unknown revision %s; skipping migrations", current)
        return []

    applied: list[str] = []
    for revision in pending:
        try:
            with engine.begin() as conn:
                cfg.attributes["connection"] = conn
                command.upgrade(cfg, revision)
        except (SQLAlchemyError, CommandError):
            logger.exception("Migration %s failed; will retry on next start", revision)
            break
        finally:
            cfg.attributes.pop("connection", None)

        logger.info("Applied migration %s", revision)
        applied.append(revision)

    return applied
