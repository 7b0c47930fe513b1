# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Print a schema diagnostic report for the configured database.

Exits with status 1 when the report finds seeded enum values the database
does not accept or migrations left to apply.

Usage:
    pgben-diagnose
"""

import asyncio
import sys

from rich.console import Console

from pgben.core.config.settings import get_settings
from pgben.infrastructure.database.diagnostics import (
    DiagnosticReport,
    build_report,
    render_report,
)
from pgben.utils.logging import bind_context, get_logger, setup_logging

logger = get_logger(__name__)


async def diagnose() -> DiagnosticReport:
    settings = get_settings()
    return await build_report(
        settings.database.url,
        settings.database.redacted_url,
        table_name=settings.migrations_table,
    )


def main() -> None:
    settings = get_settings()
    setup_logging(settings)
    bind_context(command="diagnose")

    try:
        report = asyncio.run(diagnose())
    except Exception:
        logger.exception("Diagnostics failed")
        sys.exit(1)

    render_report(report, Console())
    sys.exit(0 if report.is_healthy else 1)


if __name__ == "__main__":
    main()
