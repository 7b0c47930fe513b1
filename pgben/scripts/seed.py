# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Seed the configured database with reference data.

The schema must be migrated first. Running the seed again only inserts
what is missing.

Usage:
    pgben-seed
"""

import asyncio
import sys

from pgben.core.config.settings import get_settings
from pgben.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_session,
    init_database,
)
from pgben.infrastructure.database.seeds import seed_database
from pgben.utils.logging import bind_context, get_logger, setup_logging

logger = get_logger(__name__)


async def seed() -> dict[str, int]:
    settings = get_settings()
    logger.info("Seeding database", database=settings.database.redacted_url)

    await init_database(settings)
    try:
        if not await check_database_connection():
            raise DatabaseError(
                f"Database {settings.database.redacted_url} is not reachable"
            )
        async with get_session() as session:
            return await seed_database(session, settings.seed)
    finally:
        await close_database()


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    bind_context(command="seed")

    try:
        counts = asyncio.run(seed())
    except Exception:
        logger.exception("Seed failed")
        sys.exit(1)

    logger.info("Seed complete", **counts)


if __name__ == "__main__":
    main()
