# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Revert the most recently applied migration.

Usage:
    pgben-revert
"""

import asyncio
import sys
from typing import Optional

from pgben.core.config.settings import get_settings
from pgben.infrastructure.database.migrations.runner import revert_last_migration
from pgben.utils.logging import bind_context, get_logger, setup_logging

logger = get_logger(__name__)


async def revert() -> Optional[str]:
    settings = get_settings()
    logger.info("Reverting last migration", database=settings.database.redacted_url)
    return await revert_last_migration(
        settings.database.url, table_name=settings.migrations_table
    )


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    bind_context(command="revert")

    try:
        reverted = asyncio.run(revert())
    except Exception:
        logger.exception("Revert failed")
        sys.exit(1)

    if reverted is None:
        logger.info("Nothing to revert")
    else:
        logger.info("Revert complete", migration=reverted)


if __name__ == "__main__":
    main()
