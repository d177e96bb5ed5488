"""Database initialization script."""

import logging

from sqlalchemy.engine import Engine

from catalog.db.base import Base
from catalog.db import models  # noqa: F401  (registers tables on Base.metadata)
from catalog.db.session import engine as default_engine

logger = logging.getLogger(__name__)


def init_db(engine: Engine | None = None) -> None:
    """Create all database tables that do not exist yet."""
    target = engine or default_engine
    Base.metadata.create_all(bind=target)
    logger.info(f"Database schema ready ({target.url.render_as_string(hide_password=True)})")


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    init_db()
