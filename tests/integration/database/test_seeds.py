# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Integration tests for database seed scripts.

Tests seed data insertion against a real database.
Requires PostgreSQL to be running.
"""

import os

import bcrypt
import pytest
from sqlalchemy import text

from pgben.core.config.settings import SeedSettings
from pgben.infrastructure.database.diagnostics import build_report
from pgben.infrastructure.database.seeds import (
    seed_acoes_criticas,
    seed_admin_user,
    seed_database,
    seed_permissions,
    seed_role_permissions,
    seed_roles,
    seed_unidade_sede,
)
from pgben.infrastructure.database.seeds.acesso import ROLES, permission_names
from pgben.infrastructure.database.seeds.aprovacao import ACOES_CRITICAS

# Skip all tests if database is not available
pytestmark = pytest.mark.skipif(
    not os.environ.get("TEST_DATABASE_URL"),
    reason="TEST_DATABASE_URL not set",
)


@pytest.fixture
def seed_settings() -> SeedSettings:
    return SeedSettings(
        admin_email="admin@test.pgben",
        admin_password="TestPassword123!",  # type: ignore[arg-type]
        _env_file=None,
    )


class TestAccessSeeds:
    """Test roles, permissions and the administrator."""

    @pytest.mark.asyncio
    async def test_seed_roles_and_permissions(self, db_session):
        """Verify roles and permissions are inserted once."""
        assert await seed_roles(db_session) == len(ROLES)
        assert await seed_permissions(db_session) == len(permission_names())

        assert await seed_roles(db_session) == 0
        assert await seed_permissions(db_session) == 0

    @pytest.mark.asyncio
    async def test_admin_gets_every_permission(self, db_session):
        """Verify the admin role is granted every permission."""
        await seed_roles(db_session)
        await seed_permissions(db_session)
        await seed_role_permissions(db_session)

        granted = await db_session.scalar(
            text(
                "SELECT count(*) FROM role_permissao rp "
                "JOIN role r ON r.id = rp.role_id WHERE r.nome = 'admin'"
            )
        )
        assert granted == len(permission_names())

    @pytest.mark.asyncio
    async def test_seed_admin_user(self, db_session, seed_settings):
        """Verify the administrator is created with a bcrypt password."""
        await seed_roles(db_session)
        await seed_unidade_sede(db_session, seed_settings)

        assert await seed_admin_user(db_session, seed_settings) == 1
        assert await seed_admin_user(db_session, seed_settings) == 0

        row = (
            await db_session.execute(
                text(
                    "SELECT u.senha_hash, r.nome, un.codigo FROM usuario u "
                    "JOIN role r ON r.id = u.role_id "
                    "JOIN unidade un ON un.id = u.unidade_id "
                    "WHERE u.email = :email"
                ),
                {"email": seed_settings.admin_email},
            )
        ).one()
        assert bcrypt.checkpw(b"TestPassword123!", row[0].encode("utf-8"))
        assert row[1] == "admin"
        assert row[2] == seed_settings.unidade_codigo

    @pytest.mark.asyncio
    async def test_changed_admin_email_does_not_duplicate_admin(
        self, db_session, seed_settings
    ):
        """Verify a new admin email does not collide with the seeded matricula and CPF."""
        await seed_roles(db_session)
        await seed_unidade_sede(db_session, seed_settings)
        assert await seed_admin_user(db_session, seed_settings) == 1

        renamed = seed_settings.model_copy(update={"admin_email": "novo.admin@test.pgben"})

        assert await seed_admin_user(db_session, renamed) == 0
        count = await db_session.scalar(text("SELECT count(*) FROM usuario"))
        assert count == 1


class TestApprovalSeeds:
    """Test critical actions."""

    @pytest.mark.asyncio
    async def test_every_action_has_configuration(self, db_session):
        """Verify each critical action gets one approval configuration."""
        assert await seed_acoes_criticas(db_session) == len(ACOES_CRITICAS)

        configured = await db_session.scalar(
            text(
                "SELECT count(*) FROM acoes_criticas a "
                "JOIN configuracoes_aprovacao c ON c.acao_critica_id = a.id"
            )
        )
        assert configured == len(ACOES_CRITICAS)


class TestSeedDatabase:
    """Test the full seed."""

    @pytest.mark.asyncio
    async def test_seed_is_idempotent(self, db_session, seed_settings):
        """Verify a second run inserts nothing."""
        first = await seed_database(db_session, seed_settings)
        second = await seed_database(db_session, seed_settings)

        assert all(count > 0 for count in first.values()), first
        assert set(second) == set(first)
        assert all(count == 0 for count in second.values()), second

    @pytest.mark.asyncio
    async def test_seeded_database_is_healthy(self, db_session, seed_settings, db_url):
        """Verify diagnostics find no orphan enum values after seeding."""
        await seed_database(db_session, seed_settings)

        report = await build_report(db_url)

        assert report.orphan_enum_values == {}
        assert report.is_healthy is True
        assert "cidadao" not in report.tables_without_rls
