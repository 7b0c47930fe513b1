# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database infrastructure for the PGBen PostgreSQL schema.

Example:
    from pgben.infrastructure.database import init_database, get_session

    await init_database(settings)
    async with get_session() as session:
        await seed_database(session)
"""

from pgben.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    init_database,
)

__all__ = [
    "DatabaseError",
    "check_database_connection",
    "close_database",
    "get_engine",
    "get_session",
    "init_database",
]
