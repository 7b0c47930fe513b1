# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the command line entry points.

Database work is mocked; the tests check wiring and exit status.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pgben.infrastructure.database.migrations.runner import MigrationError
from pgben.scripts import diagnose, migrate, revert, seed


@pytest.fixture(autouse=True)
def no_logging_setup():
    with patch("pgben.utils.logging.structlog.configure"), patch(
        "pgben.utils.logging.logging.basicConfig"
    ):
        yield


class TestMigrateScript:
    """Tests for pgben-migrate."""

    def test_applies_and_renders_status(self, fresh_settings) -> None:
        status = {"is_up_to_date": True, "applied": [], "pending": [], "unknown": []}
        with patch.object(
            migrate, "run_migrations", AsyncMock(return_value=["CreateA1000000000001"])
        ) as run, patch.object(
            migrate, "get_migration_status", AsyncMock(return_value=status)
        ), patch.object(migrate, "render_migration_status") as render:
            migrate.main()

        run.assert_awaited_once()
        assert run.await_args.kwargs["table_name"] == "migrations"
        render.assert_called_once()
        assert render.call_args.args[0] is status

    def test_exits_non_zero_on_failure(self, fresh_settings) -> None:
        failing = AsyncMock(side_effect=MigrationError("boom", revision="1000000000001_create_a"))
        with patch.object(migrate, "run_migrations", failing):
            with pytest.raises(SystemExit) as exc_info:
                migrate.main()

        assert exc_info.value.code == 1


class TestRevertScript:
    """Tests for pgben-revert."""

    def test_reverts_last_migration(self, fresh_settings) -> None:
        with patch.object(
            revert, "revert_last_migration", AsyncMock(return_value="CreateA1000000000001")
        ) as revert_last:
            revert.main()

        revert_last.assert_awaited_once()

    def test_nothing_to_revert(self, fresh_settings) -> None:
        with patch.object(revert, "revert_last_migration", AsyncMock(return_value=None)):
            revert.main()

    def test_exits_non_zero_on_failure(self, fresh_settings) -> None:
        failing = AsyncMock(side_effect=MigrationError("boom", direction="downgrade"))
        with patch.object(revert, "revert_last_migration", failing):
            with pytest.raises(SystemExit) as exc_info:
                revert.main()

        assert exc_info.value.code == 1


class TestSeedScript:
    """Tests for pgben-seed."""

    def test_exits_non_zero_when_database_unavailable(self, fresh_settings) -> None:
        close = AsyncMock()
        with patch.object(
            seed, "init_database", AsyncMock(side_effect=ConnectionRefusedError())
        ), patch.object(seed, "close_database", close):
            with pytest.raises(SystemExit) as exc_info:
                seed.main()

        assert exc_info.value.code == 1

    def test_unreachable_database_stops_before_seeding(self, fresh_settings) -> None:
        close = AsyncMock()
        seed_database = AsyncMock()
        with patch.object(seed, "init_database", AsyncMock()), patch.object(
            seed, "check_database_connection", AsyncMock(return_value=False)
        ), patch.object(seed, "seed_database", seed_database), patch.object(
            seed, "close_database", close
        ):
            with pytest.raises(SystemExit) as exc_info:
                seed.main()

        assert exc_info.value.code == 1
        seed_database.assert_not_awaited()
        close.assert_awaited_once()


class TestDiagnoseScript:
    """Tests for pgben-diagnose."""

    @pytest.mark.parametrize(("healthy", "code"), [(True, 0), (False, 1)])
    def test_exit_status_follows_health(self, fresh_settings, healthy: bool, code: int) -> None:
        report = MagicMock(is_healthy=healthy)
        with patch.object(diagnose, "build_report", AsyncMock(return_value=report)), patch.object(
            diagnose, "render_report"
        ) as render:
            with pytest.raises(SystemExit) as exc_info:
                diagnose.main()

        render.assert_called_once()
        assert exc_info.value.code == code

    def test_passes_configured_bookkeeping_table(self, fresh_settings) -> None:
        report = MagicMock(is_healthy=True)
        build = AsyncMock(return_value=report)
        with patch.dict("os.environ", {"MIGRATIONS_TABLE": "schema_history"}), patch.object(
            diagnose, "build_report", build
        ), patch.object(diagnose, "render_report"):
            with pytest.raises(SystemExit):
                diagnose.main()

        assert build.await_args.kwargs["table_name"] == "schema_history"
