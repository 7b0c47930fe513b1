# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the migration runner.

Covers discovery, naming, chain validation and pending selection.
No database is needed.
"""

from types import ModuleType
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from pgben.infrastructure.database.connection import DatabaseError
from pgben.infrastructure.database.migrations import runner
from pgben.infrastructure.database.migrations.runner import (
    MigrationChainError,
    MigrationError,
    MigrationUnit,
    bookkeeping_name,
    build_unit,
    get_pending_migrations,
    migrations_table,
    render_migration_sql,
    revert_migrations,
    run_migrations,
    validate_chain,
)


def _noop() -> None:
    pass


def make_module(name: str, down_revision: str | None, **overrides) -> ModuleType:
    module = ModuleType(name)
    module.__doc__ = f"{name} docstring.\n\nMore text."
    module.revision = name
    module.down_revision = down_revision
    module.upgrade = _noop
    module.downgrade = _noop
    for key, value in overrides.items():
        setattr(module, key, value)
    return module


def make_unit(name: str, down_revision: str | None) -> MigrationUnit:
    return build_unit(make_module(name, down_revision), name)


@pytest.fixture
def chain() -> list[MigrationUnit]:
    return [
        make_unit("1000000000001_create_a", None),
        make_unit("1000000000002_create_b", "1000000000001_create_a"),
        make_unit("1000000000003_alter_b", "1000000000002_create_b"),
    ]


class TestBookkeepingName:
    """Tests for bookkeeping_name()."""

    def test_camel_case_with_timestamp_suffix(self) -> None:
        assert (
            bookkeeping_name("1704067200000_create_base_structure")
            == "CreateBaseStructure1704067200000"
        )

    def test_single_word_slug(self) -> None:
        assert bookkeeping_name("1748544953621_fix") == "Fix1748544953621"

    @pytest.mark.parametrize(
        "module_name",
        [
            "create_base_structure",
            "170406720000_short_timestamp",
            "1704067200000-dashes",
            "1704067200000_CamelCase",
        ],
    )
    def test_rejects_malformed_names(self, module_name: str) -> None:
        with pytest.raises(MigrationChainError):
            bookkeeping_name(module_name)


class TestBuildUnit:
    """Tests for build_unit()."""

    def test_builds_unit_from_module(self) -> None:
        unit = make_unit("1000000000002_create_b", "1000000000001_create_a")

        assert unit.revision == "1000000000002_create_b"
        assert unit.timestamp == 1000000000002
        assert unit.name == "CreateB1000000000002"
        assert unit.down_revision == "1000000000001_create_a"
        assert unit.description == "1000000000002_create_b docstring."

    def test_missing_downgrade_is_rejected(self) -> None:
        module = make_module("1000000000001_create_a", None, downgrade=None)

        with pytest.raises(MigrationChainError, match="downgrade"):
            build_unit(module, "1000000000001_create_a")

    def test_revision_must_match_module_name(self) -> None:
        module = make_module("1000000000001_create_a", None, revision="something_else")

        with pytest.raises(MigrationChainError, match="declares revision"):
            build_unit(module, "1000000000001_create_a")


class TestValidateChain:
    """Tests for validate_chain()."""

    def test_accepts_linear_chain(self, chain: list[MigrationUnit]) -> None:
        validate_chain(chain)

    def test_rejects_duplicate_timestamp(self) -> None:
        units = [
            make_unit("1000000000001_create_a", None),
            make_unit("1000000000001_create_b", "1000000000001_create_a"),
        ]

        with pytest.raises(MigrationChainError, match="share timestamp"):
            validate_chain(units)

    def test_rejects_broken_link(self) -> None:
        units = [
            make_unit("1000000000001_create_a", None),
            make_unit("1000000000002_create_b", "1000000000000_missing"),
        ]

        with pytest.raises(MigrationChainError, match="expected"):
            validate_chain(units)

    def test_first_unit_must_not_revise_anything(self) -> None:
        units = [make_unit("1000000000002_create_b", "1000000000001_create_a")]

        with pytest.raises(MigrationChainError):
            validate_chain(units)

    def test_chain_errors_are_database_errors(self) -> None:
        assert issubclass(MigrationChainError, MigrationError)
        assert issubclass(MigrationError, DatabaseError)


class TestGetPendingMigrations:
    """Tests for get_pending_migrations()."""

    def test_everything_pending_on_empty_database(self, chain: list[MigrationUnit]) -> None:
        pending = get_pending_migrations(chain, [])

        assert [unit.name for unit in pending] == [unit.name for unit in chain]

    def test_skips_applied_units(self, chain: list[MigrationUnit]) -> None:
        pending = get_pending_migrations(chain, ["CreateA1000000000001"])

        assert [unit.name for unit in pending] == ["CreateB1000000000002", "AlterB1000000000003"]

    def test_nothing_pending_when_all_applied(self, chain: list[MigrationUnit]) -> None:
        assert get_pending_migrations(chain, [unit.name for unit in chain]) == []

    def test_stops_at_target_revision(self, chain: list[MigrationUnit]) -> None:
        pending = get_pending_migrations(chain, [], target_revision="1000000000002_create_b")

        assert [unit.name for unit in pending] == ["CreateA1000000000001", "CreateB1000000000002"]

    def test_target_accepts_bookkeeping_name(self, chain: list[MigrationUnit]) -> None:
        pending = get_pending_migrations(chain, [], target_revision="CreateA1000000000001")

        assert [unit.name for unit in pending] == ["CreateA1000000000001"]

    def test_unknown_target_raises(self, chain: list[MigrationUnit]) -> None:
        with pytest.raises(MigrationError, match="not found"):
            get_pending_migrations(chain, [], target_revision="9999999999999_nope")

    def test_out_of_order_unit_is_still_selected(self, chain: list[MigrationUnit]) -> None:
        pending = get_pending_migrations(chain, ["AlterB1000000000003"])

        assert [unit.name for unit in pending] == ["CreateA1000000000001", "CreateB1000000000002"]


class TestDiscoveredChain:
    """Tests against the real versions package."""

    def test_chain_starts_at_base_structure(self, migration_units: list[MigrationUnit]) -> None:
        first = migration_units[0]

        assert first.revision == "1704067200000_create_base_structure"
        assert first.down_revision is None

    def test_units_sorted_and_unique(self, migration_units: list[MigrationUnit]) -> None:
        timestamps = [unit.timestamp for unit in migration_units]
        names = [unit.name for unit in migration_units]

        assert timestamps == sorted(timestamps)
        assert len(set(names)) == len(names)

    def test_every_unit_has_description(self, migration_units: list[MigrationUnit]) -> None:
        for unit in migration_units:
            assert unit.description, f"{unit.revision} has no docstring"

    def test_suspension_statuses_follow_approval_schema(
        self, migration_units: list[MigrationUnit]
    ) -> None:
        revisions = [unit.revision for unit in migration_units]

        assert revisions.index("1751300000000_add_status_suspensao_solicitacao") > revisions.index(
            "1751100000000_create_sistema_aprovacao_schema"
        )


class TestMigrationsTable:
    """Tests for the bookkeeping table definition."""

    def test_columns(self) -> None:
        table = migrations_table()

        assert table.name == "migrations"
        assert set(table.c.keys()) >= {"id", "timestamp", "name"}
        assert table.c.name.unique is True

    def test_custom_name(self) -> None:
        assert migrations_table("schema_history").name == "schema_history"


class TestRenderMigrationSql:
    """Tests for offline SQL rendering."""

    def test_renders_base_structure(self, migration_units: list[MigrationUnit]) -> None:
        sql = render_migration_sql(migration_units[0])

        assert 'CREATE EXTENSION IF NOT EXISTS "uuid-ossp"' in sql
        assert "CREATE OR REPLACE FUNCTION update_timestamp()" in sql

    def test_downgrade_direction(self, migration_units: list[MigrationUnit]) -> None:
        sql = render_migration_sql(migration_units[1], "downgrade")

        assert "DROP TABLE" in sql


class TestRevertMigrations:
    """Tests for revert_migrations() argument checks."""

    @pytest.mark.asyncio
    async def test_steps_must_be_positive(self) -> None:
        with pytest.raises(ValueError, match="steps"):
            await revert_migrations("postgresql+asyncpg://u:p@localhost/db", steps=0)


class TestRunMigrationsFailFast:
    """Tests for run_migrations() stopping at the first failing unit."""

    @pytest.mark.asyncio
    async def test_later_units_not_attempted(self, chain: list[MigrationUnit]) -> None:
        attempted: list[str] = []

        async def apply(engine, table, unit: MigrationUnit) -> None:
            attempted.append(unit.name)
            if unit is chain[1]:
                raise MigrationError("boom", revision=unit.revision, direction="upgrade")

        engine = MagicMock()
        engine.dispose = AsyncMock()
        with patch.object(runner, "create_async_engine", return_value=engine), patch.object(
            runner, "_ensure_migrations_table", AsyncMock()
        ), patch.object(
            runner, "_get_applied_names", AsyncMock(return_value=[])
        ), patch.object(runner, "_apply_unit", AsyncMock(side_effect=apply)) as apply_unit:
            with pytest.raises(MigrationError) as exc_info:
                await run_migrations("postgresql+asyncpg://u:p@localhost/db", units=chain)

        assert apply_unit.await_count == 2
        assert attempted == ["CreateA1000000000001", "CreateB1000000000002"]
        assert exc_info.value.revision == "1000000000002_create_b"
        assert exc_info.value.direction == "upgrade"
        engine.dispose.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_applies_only_given_units(self, chain: list[MigrationUnit]) -> None:
        engine = MagicMock()
        engine.dispose = AsyncMock()
        with patch.object(runner, "create_async_engine", return_value=engine), patch.object(
            runner, "_ensure_migrations_table", AsyncMock()
        ), patch.object(
            runner, "_get_applied_names", AsyncMock(return_value=["CreateA1000000000001"])
        ), patch.object(runner, "_apply_unit", AsyncMock()), patch.object(
            runner, "discover_migrations"
        ) as discover:
            applied = await run_migrations("postgresql+asyncpg://u:p@localhost/db", units=chain)

        discover.assert_not_called()
        assert applied == ["CreateB1000000000002", "AlterB1000000000003"]


class TestGetMigrationStatus:
    """Tests for get_migration_status() on a database without bookkeeping."""

    @pytest.mark.asyncio
    async def test_does_not_create_bookkeeping_table(self, chain: list[MigrationUnit]) -> None:
        engine = MagicMock()
        engine.dispose = AsyncMock()
        with patch.object(runner, "create_async_engine", return_value=engine), patch.object(
            runner, "_ensure_migrations_table", AsyncMock()
        ) as ensure, patch.object(
            runner, "_get_applied_names", AsyncMock(return_value=[])
        ) as get_applied:
            status = await runner.get_migration_status(
                "postgresql+asyncpg://u:p@localhost/db", "schema_history", units=chain
            )

        ensure.assert_not_called()
        assert get_applied.await_args.kwargs == {"missing_ok": True}
        assert get_applied.await_args.args[1].name == "schema_history"
        assert status["pending"] == [unit.name for unit in chain]
        assert status["current"] is None
