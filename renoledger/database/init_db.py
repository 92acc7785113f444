"""Create the RenoLedger schema on the configured database."""

from __future__ import annotations

import logging

import renoledger.database.db as db_module
from renoledger.core.startup import bootstrap
from renoledger.database.models import Base

logger = logging.getLogger(__name__)


def init_db() -> None:
    bootstrap()
    Base.metadata.create_all(bind=db_module.get_engine())
    logger.info(
        "database.tables.created",
        extra={
            "event": "database.tables.created",
            "database_url_scheme": db_module.get_active_database_url().split("://", 1)[0],
            "tables": sorted(Base.metadata.tables),
        },
    )


if __name__ == "__main__":
    init_db()
