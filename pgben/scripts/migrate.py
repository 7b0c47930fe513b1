# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Apply every pending migration to the configured database.

Usage:
    pgben-migrate
"""

import asyncio
import sys

from rich.console import Console

from pgben.core.config.settings import get_settings
from pgben.infrastructure.database.diagnostics import render_migration_status
from pgben.infrastructure.database.migrations.runner import (
    get_migration_status,
    run_migrations,
)
from pgben.utils.logging import bind_context, get_logger, setup_logging

logger = get_logger(__name__)


async def migrate() -> list[str]:
    settings = get_settings()
    logger.info("Running migrations", database=settings.database.redacted_url)

    applied = await run_migrations(
        settings.database.url, table_name=settings.migrations_table
    )
    status = await get_migration_status(
        settings.database.url, table_name=settings.migrations_table
    )
    render_migration_status(status, Console())
    return applied


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    bind_context(command="migrate")

    try:
        applied = asyncio.run(migrate())
    except Exception:
        logger.exception("Migration failed")
        sys.exit(1)

    logger.info("Migrations complete", applied=len(applied))


if __name__ == "__main__":
    main()
