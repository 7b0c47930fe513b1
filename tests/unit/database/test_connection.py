# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the database connection helpers.

No database is contacted: asyncpg connects lazily, so creating the engine
and closing it never opens a connection.
"""

import pytest

from pgben.core.config.settings import DatabaseSettings, Settings
from pgben.infrastructure.database.connection import (
    DatabaseError,
    check_database_connection,
    close_database,
    get_engine,
    get_session,
    init_database,
)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database=DatabaseSettings(host="db.invalid", password="x"),  # type: ignore[arg-type]
        _env_file=None,
    )


class TestDatabaseError:
    """Tests for DatabaseError."""

    def test_str_without_cause(self) -> None:
        assert str(DatabaseError("Database not initialized")) == "Database not initialized"

    def test_str_with_cause(self) -> None:
        error = DatabaseError("Database operation failed", ValueError("bad value"))

        assert str(error) == "Database operation failed: bad value"
        assert isinstance(error.original_error, ValueError)


class TestUninitializedDatabase:
    """Tests for helpers used before init_database()."""

    def test_get_engine_raises(self) -> None:
        with pytest.raises(DatabaseError, match="not initialized"):
            get_engine()

    @pytest.mark.asyncio
    async def test_get_session_raises(self) -> None:
        with pytest.raises(DatabaseError, match="not initialized"):
            async with get_session():
                pass

    @pytest.mark.asyncio
    async def test_check_connection_is_false(self) -> None:
        assert await check_database_connection() is False


class TestInitDatabase:
    """Tests for init_database() and close_database()."""

    @pytest.mark.asyncio
    async def test_init_and_close(self, settings: Settings) -> None:
        engine = await init_database(settings)

        try:
            assert get_engine() is engine
            assert engine.url.host == "db.invalid"
            assert engine.url.drivername == "postgresql+asyncpg"
        finally:
            await close_database()

        with pytest.raises(DatabaseError):
            get_engine()

    @pytest.mark.asyncio
    async def test_close_without_init_is_noop(self) -> None:
        await close_database()
