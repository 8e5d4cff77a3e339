"""Create the invoicing tables on the configured database.

Intended for local SQLite setups; deployed databases are managed with
`alembic upgrade head`.
"""

from __future__ import annotations

import logging

from invoicing.core.logging_config import configure_logging
from invoicing.database.db import get_active_database_url, get_engine
from invoicing.models import Base

logger = logging.getLogger(__name__)


def create_database() -> None:
    configure_logging()
    Base.metadata.create_all(bind=get_engine())
    logger.info(
        "database.schema.created",
        extra={
            "event": "database.schema.created",
            "database_url_scheme": get_active_database_url().split("://", 1)[0],
        },
    )


if __name__ == "__main__":
    create_database()
