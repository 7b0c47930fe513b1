# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for database migrations.

Tests migration execution against a real database.
Requires PostgreSQL 12 or later to be running.
"""

import os
import uuid

import pytest
import sqlalchemy as sa
from alembic import op
from sqlalchemy import func, inspect, select, text
from sqlalchemy.exc import IntegrityError

from pgben.infrastructure.database.migrations.runner import (
    MigrationError,
    MigrationUnit,
    bookkeeping_name,
    discover_migrations,
    get_migration_status,
    migrations_table,
    revert_last_migration,
    revert_migrations,
    run_migrations,
)

# Skip all tests if database is not available
pytestmark = pytest.mark.skipif(
    not os.environ.get("TEST_DATABASE_URL"),
    reason="TEST_DATABASE_URL not set",
)

CPF_TITULAR = "11144477735"
CPF_OUTRO = "52998224725"


async def insert_cidadao(conn, cpf: str, nome: str = "Maria da Silva") -> str:
    cidadao_id = str(uuid.uuid4())
    await conn.execute(
        text("INSERT INTO cidadao (id, nome, cpf) VALUES (CAST(:id AS uuid), :nome, :cpf)"),
        {"id": cidadao_id, "nome": nome, "cpf": cpf},
    )
    return cidadao_id


async def insert_membro(conn, cidadao_id: str, cpf: str) -> None:
    await conn.execute(
        text(
            "INSERT INTO composicao_familiar (cidadao_id, nome, cpf, parentesco) "
            "VALUES (CAST(:cidadao_id AS uuid), 'Membro', :cpf, 'filho')"
        ),
        {"cidadao_id": cidadao_id, "cpf": cpf},
    )


def _create_table(table: str):
    def upgrade() -> None:
        op.create_table(table, sa.Column("id", sa.Integer, primary_key=True))

    return upgrade


def _create_table_then_fail(table: str):
    def upgrade() -> None:
        op.create_table(table, sa.Column("id", sa.Integer, primary_key=True))
        op.execute("SELECT * FROM tabela_inexistente")

    return upgrade


def make_unit(revision: str, down_revision: str | None, upgrade) -> MigrationUnit:
    return MigrationUnit(
        revision=revision,
        timestamp=int(revision.split("_", 1)[0]),
        name=bookkeeping_name(revision),
        down_revision=down_revision,
        description=revision,
        upgrade=upgrade,
        downgrade=lambda: None,
    )


class TestApplyMigrations:
    """Test applying the full chain to an empty database."""

    @pytest.mark.asyncio
    async def test_apply_all_records_every_unit(self, db_engine, db_url):
        """Verify every unit is applied and recorded in order."""
        units = discover_migrations()

        applied = await run_migrations(db_url)

        assert applied == [unit.name for unit in units]

        table = migrations_table()
        async with db_engine.connect() as conn:
            count = await conn.scalar(select(func.count()).select_from(table))
        assert count == len(units)

    @pytest.mark.asyncio
    async def test_second_run_applies_nothing(self, migrated_engine, db_url):
        """Verify the runner is a no-op on an up-to-date database."""
        assert await run_migrations(db_url) == []

        status = await get_migration_status(db_url)
        assert status["is_up_to_date"] is True
        assert status["pending"] == []

    @pytest.mark.asyncio
    async def test_creates_expected_tables(self, migrated_engine, snapshot_schema):
        """Verify the chain creates the main tables of every module."""
        async with migrated_engine.connect() as conn:
            snapshot = await snapshot_schema(conn)

        expected_tables = [
            "configuracao_sistema",
            "unidade",
            "usuario",
            "permissao",
            "cidadao",
            "composicao_familiar",
            "tipo_beneficio",
            "solicitacao",
            "documento",
            "pagamento",
            "notification_template",
            "logs_auditoria",
            "upload_tokens",
            "acoes_criticas",
            "whatsapp_flow_sessions",
            "configuracao_integracao",
            "configuracao_historico",
            "relatorio_template",
            "relatorio_permissao",
            "metrica_definicao",
            "regras_alerta",
            "metrica_snapshot",
            "agendamento_visita",
            "visita_domiciliar",
            "avaliacao_visita",
            "historico_monitoramento",
            "feedback",
            "resultado_beneficio_cessado",
        ]
        for table in expected_tables:
            assert table in snapshot["tables"], f"Table {table} not found"
        assert "papel_cidadao" not in snapshot["tables"]
        assert {"suspensa", "bloqueada"} <= set(snapshot["enums"]["status_solicitacao_enum"])

    @pytest.mark.asyncio
    async def test_target_revision_stops_early(self, db_engine, db_url):
        """Verify migrating to a target leaves later units pending."""
        units = discover_migrations()

        applied = await run_migrations(db_url, target_revision=units[2].revision)

        assert applied == [unit.name for unit in units[:3]]
        status = await get_migration_status(db_url)
        assert status["current"] == units[2].name
        assert len(status["pending"]) == len(units) - 3


class TestFailFast:
    """Test a failing unit stopping the batch."""

    @pytest.mark.asyncio
    async def test_failing_unit_rolled_back_and_later_units_skipped(self, db_engine, db_url):
        """Verify only the units before the failure stay applied."""
        units = [
            make_unit("1000000000001_create_etapa_a", None, _create_table("etapa_a")),
            make_unit(
                "1000000000002_create_etapa_b",
                "1000000000001_create_etapa_a",
                _create_table_then_fail("etapa_b"),
            ),
            make_unit(
                "1000000000003_create_etapa_c",
                "1000000000002_create_etapa_b",
                _create_table("etapa_c"),
            ),
        ]

        with pytest.raises(MigrationError) as exc_info:
            await run_migrations(db_url, units=units)

        assert exc_info.value.revision == "1000000000002_create_etapa_b"
        assert exc_info.value.direction == "upgrade"
        status = await get_migration_status(db_url, units=units)
        assert status["applied"] == ["CreateEtapaA1000000000001"]
        assert status["pending"] == ["CreateEtapaB1000000000002", "CreateEtapaC1000000000003"]

        async with db_engine.connect() as conn:
            tables = await conn.run_sync(lambda c: set(inspect(c).get_table_names()))
        assert "etapa_a" in tables
        assert "etapa_b" not in tables
        assert "etapa_c" not in tables


class TestMigrationStatus:
    """Test reading status without side effects."""

    @pytest.mark.asyncio
    async def test_status_leaves_empty_database_untouched(self, db_engine, db_url):
        """Verify status on a fresh database creates no bookkeeping table."""
        status = await get_migration_status(db_url, "schema_history")

        assert status["applied"] == []
        assert status["pending"] == [unit.name for unit in discover_migrations()]
        async with db_engine.connect() as conn:
            tables = await conn.run_sync(lambda c: inspect(c).get_table_names())
        assert tables == []


class TestRevertMigrations:
    """Test reverting units."""

    @pytest.mark.asyncio
    async def test_revert_restores_schema_per_unit(self, db_engine, db_url, snapshot_schema):
        """Verify reverting each unit right after applying it restores the schema."""
        async with db_engine.begin() as conn:
            await conn.run_sync(migrations_table().create)

        for unit in discover_migrations():
            async with db_engine.connect() as conn:
                before = await snapshot_schema(conn)

            await run_migrations(db_url, target_revision=unit.revision)
            reverted = await revert_last_migration(db_url)

            async with db_engine.connect() as conn:
                after = await snapshot_schema(conn)
            assert reverted == unit.name
            assert after == before, f"Revert of {unit.name} did not restore the schema"

            await run_migrations(db_url, target_revision=unit.revision)

    @pytest.mark.asyncio
    async def test_revert_all_leaves_only_bookkeeping(self, migrated_engine, db_url, snapshot_schema):
        """Verify reverting every unit leaves an empty schema."""
        units = discover_migrations()

        reverted = await revert_migrations(db_url, steps=len(units))

        assert reverted == [unit.name for unit in reversed(units)]
        async with migrated_engine.connect() as conn:
            snapshot = await snapshot_schema(conn)
        assert list(snapshot["tables"]) == ["migrations"]
        assert snapshot["enums"] == {}
        assert snapshot["functions"] == []
        assert snapshot["triggers"] == []
        assert snapshot["policies"] == []
        assert snapshot["views"] == []

    @pytest.mark.asyncio
    async def test_revert_on_empty_database(self, db_engine, db_url):
        """Verify reverting with nothing applied is a no-op."""
        assert await revert_last_migration(db_url) is None

    @pytest.mark.asyncio
    async def test_unknown_applied_name_fails(self, migrated_engine, db_url):
        """Verify a bookkeeping row without a module blocks revert."""
        table = migrations_table()
        async with migrated_engine.begin() as conn:
            await conn.execute(table.insert().values(timestamp=9999999999999, name="Ghost9999999999999"))

        with pytest.raises(MigrationError, match="no matching module"):
            await revert_last_migration(db_url)

        status = await get_migration_status(db_url)
        assert status["unknown"] == ["Ghost9999999999999"]


class TestFamilyCompositionConflict:
    """Test the trigger keeping active citizens out of other families."""

    @pytest.mark.asyncio
    async def test_rejects_cpf_of_active_citizen(self, migrated_engine):
        async with migrated_engine.begin() as conn:
            await insert_cidadao(conn, CPF_OUTRO, nome="João Souza")
            titular = await insert_cidadao(conn, CPF_TITULAR)

        with pytest.raises(IntegrityError, match="beneficiário ativo"):
            async with migrated_engine.begin() as conn:
                await insert_membro(conn, titular, CPF_OUTRO)

    @pytest.mark.asyncio
    async def test_accepts_unregistered_cpf(self, migrated_engine):
        async with migrated_engine.begin() as conn:
            titular = await insert_cidadao(conn, CPF_TITULAR)
            await insert_membro(conn, titular, CPF_OUTRO)

            count = await conn.scalar(text("SELECT count(*) FROM composicao_familiar"))
        assert count == 1

    @pytest.mark.asyncio
    async def test_accepts_cpf_of_removed_citizen(self, migrated_engine):
        async with migrated_engine.begin() as conn:
            outro = await insert_cidadao(conn, CPF_OUTRO, nome="João Souza")
            titular = await insert_cidadao(conn, CPF_TITULAR)
            await conn.execute(
                text("UPDATE cidadao SET removed_at = now() WHERE id = CAST(:id AS uuid)"),
                {"id": outro},
            )
            await insert_membro(conn, titular, CPF_OUTRO)

    @pytest.mark.asyncio
    async def test_accepts_own_cpf_in_own_family(self, migrated_engine):
        async with migrated_engine.begin() as conn:
            titular = await insert_cidadao(conn, CPF_TITULAR)
            await insert_membro(conn, titular, CPF_TITULAR)


class TestPartialUniqueIndexes:
    """Test soft-deleted rows releasing unique values."""

    @pytest.mark.asyncio
    async def test_duplicate_active_cpf_rejected(self, migrated_engine):
        async with migrated_engine.begin() as conn:
            await insert_cidadao(conn, CPF_TITULAR)

        with pytest.raises(IntegrityError):
            async with migrated_engine.begin() as conn:
                await insert_cidadao(conn, CPF_TITULAR, nome="Outra Maria")

    @pytest.mark.asyncio
    async def test_soft_deleted_cpf_can_be_reused(self, migrated_engine):
        async with migrated_engine.begin() as conn:
            antigo = await insert_cidadao(conn, CPF_TITULAR)
            await conn.execute(
                text("UPDATE cidadao SET removed_at = now() WHERE id = CAST(:id AS uuid)"),
                {"id": antigo},
            )
            await insert_cidadao(conn, CPF_TITULAR, nome="Outra Maria")

            count = await conn.scalar(
                text("SELECT count(*) FROM cidadao WHERE cpf = :cpf"), {"cpf": CPF_TITULAR}
            )
        assert count == 2

    @pytest.mark.asyncio
    async def test_cpf_format_check(self, migrated_engine):
        with pytest.raises(IntegrityError):
            async with migrated_engine.begin() as conn:
                await insert_cidadao(conn, "1234567890X")


class TestUpdateTimestampTrigger:
    """Test updated_at maintenance."""

    @pytest.mark.asyncio
    async def test_update_moves_updated_at(self, migrated_engine):
        async with migrated_engine.begin() as conn:
            cidadao_id = await insert_cidadao(conn, CPF_TITULAR)
            created = await conn.scalar(
                text("SELECT updated_at FROM cidadao WHERE id = CAST(:id AS uuid)"),
                {"id": cidadao_id},
            )

        async with migrated_engine.begin() as conn:
            await conn.execute(
                text("UPDATE cidadao SET nome = 'Maria Souza' WHERE id = CAST(:id AS uuid)"),
                {"id": cidadao_id},
            )
            updated = await conn.scalar(
                text("SELECT updated_at FROM cidadao WHERE id = CAST(:id AS uuid)"),
                {"id": cidadao_id},
            )
        assert updated > created


class TestConfigurationHistory:
    """Test the configuracao_sistema value history trigger."""

    @pytest.mark.asyncio
    async def test_value_change_is_recorded(self, migrated_engine):
        async with migrated_engine.begin() as conn:
            await conn.execute(
                text(
                    "UPDATE configuracao_sistema SET valor = '2.0.0' "
                    "WHERE chave = 'sistema.versao'"
                )
            )
            await conn.execute(
                text(
                    "UPDATE configuracao_sistema SET descricao = 'Versão' "
                    "WHERE chave = 'sistema.versao'"
                )
            )

            rows = (
                await conn.execute(
                    text(
                        "SELECT h.valor_anterior, h.valor_novo FROM configuracao_historico h "
                        "JOIN configuracao_sistema c ON c.id = h.configuracao_id "
                        "WHERE c.chave = 'sistema.versao'"
                    )
                )
            ).all()
        assert [tuple(row) for row in rows] == [("1.0.0", "2.0.0")]
