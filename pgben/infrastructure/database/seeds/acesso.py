# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Access control seed data.

This module provides the reference data the application needs to log in:
- Roles and their hierarchy level
- Permissions: a ``<modulo>.*`` root per module plus CRUD actions
- Role grants
- The head office unit and the initial administrator
"""

import logging

import bcrypt
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession

from pgben.core.config.settings import SeedSettings
from pgben.infrastructure.database.migrations.helpers import enum_type

logger = logging.getLogger(__name__)

ROLES = [
    ("admin", "Administrador do sistema", 100),
    ("gestor", "Gestor da SEMTAS", 80),
    ("coordenador", "Coordenador de unidade", 60),
    ("tecnico", "Técnico de referência", 40),
    ("assistente_social", "Assistente social", 40),
    ("auditor", "Auditor com acesso de leitura", 30),
    ("cidadao", "Cidadão com acesso ao autoatendimento", 10),
]

MODULOS = (
    "usuario",
    "unidade",
    "cidadao",
    "beneficio",
    "solicitacao",
    "documento",
    "pagamento",
    "ocorrencia",
    "notificacao",
    "auditoria",
    "metrica",
    "relatorio",
    "configuracao",
    "aprovacao",
    "feedback",
)
ACOES = ("ler", "listar", "criar", "atualizar", "excluir")

# Roles other than admin, by granted permission name.
PERMISSOES_POR_ROLE = {
    "gestor": [f"{modulo}.*" for modulo in MODULOS if modulo != "configuracao"],
    "coordenador": [
        "unidade.ler",
        "usuario.ler",
        "usuario.listar",
        "cidadao.*",
        "solicitacao.*",
        "documento.*",
        "pagamento.ler",
        "pagamento.listar",
        "ocorrencia.*",
        "relatorio.*",
        "aprovacao.*",
    ],
    "tecnico": [
        "cidadao.ler",
        "cidadao.listar",
        "cidadao.criar",
        "cidadao.atualizar",
        "solicitacao.ler",
        "solicitacao.listar",
        "solicitacao.criar",
        "solicitacao.atualizar",
        "documento.*",
        "ocorrencia.criar",
        "ocorrencia.ler",
        "notificacao.ler",
        "feedback.criar",
    ],
    "assistente_social": [
        "cidadao.*",
        "solicitacao.ler",
        "solicitacao.listar",
        "solicitacao.atualizar",
        "documento.ler",
        "documento.listar",
        "ocorrencia.*",
        "notificacao.ler",
        "feedback.criar",
    ],
    "auditor": [f"{modulo}.{acao}" for modulo in MODULOS for acao in ("ler", "listar")],
    "cidadao": ["solicitacao.ler", "documento.criar", "feedback.criar"],
}

STATUS_USUARIO = ("ativo", "inativo", "bloqueado", "pendente")
TIPO_UNIDADE = ("cras", "creas", "centro_pop", "semtas", "outro")

ADMIN_MATRICULA = "ADMIN001"

role_table = sa.table(
    "role",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("nome", sa.String),
    sa.column("descricao", sa.String),
    sa.column("nivel_hierarquia", sa.Integer),
)

permissao_table = sa.table(
    "permissao",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("nome", sa.String),
    sa.column("descricao", sa.String),
    sa.column("modulo", sa.String),
    sa.column("acao", sa.String),
)

role_permissao_table = sa.table(
    "role_permissao",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("role_id", postgresql.UUID(as_uuid=False)),
    sa.column("permissao_id", postgresql.UUID(as_uuid=False)),
)

unidade_table = sa.table(
    "unidade",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("nome", sa.String),
    sa.column("codigo", sa.String),
    sa.column("sigla", sa.String),
    sa.column("tipo", enum_type("tipo_unidade_enum", TIPO_UNIDADE)),
    sa.column("removed_at", sa.DateTime(timezone=True)),
)

usuario_table = sa.table(
    "usuario",
    sa.column("id", postgresql.UUID(as_uuid=False)),
    sa.column("nome", sa.String),
    sa.column("email", sa.String),
    sa.column("senha_hash", sa.String),
    sa.column("cpf", sa.String),
    sa.column("matricula", sa.String),
    sa.column("role_id", postgresql.UUID(as_uuid=False)),
    sa.column("unidade_id", postgresql.UUID(as_uuid=False)),
    sa.column("status", enum_type("status_usuario_enum", STATUS_USUARIO)),
    sa.column("primeiro_acesso", sa.Boolean),
    sa.column("removed_at", sa.DateTime(timezone=True)),
)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def permission_names() -> list[str]:
    """Every permission name seeded, roots first."""
    roots = [f"{modulo}.*" for modulo in MODULOS]
    return roots + [f"{modulo}.{acao}" for modulo in MODULOS for acao in ACOES]


async def seed_roles(session: AsyncSession) -> int:
    """Seed default roles.

    Args:
        session: Database session.

    Returns:
        Number of roles inserted.
    """
    stmt = (
        insert(role_table)
        .values(
            [
                {"nome": nome, "descricao": descricao, "nivel_hierarquia": nivel}
                for nome, descricao, nivel in ROLES
            ]
        )
        .on_conflict_do_nothing(index_elements=["nome"])
        .returning(role_table.c.id)
    )
    result = await session.execute(stmt)
    count = len(result.fetchall())
    logger.info(f"Seeded {count} roles")
    return count


async def seed_permissions(session: AsyncSession) -> int:
    """Seed module root and CRUD permissions.

    Args:
        session: Database session.

    Returns:
        Number of permissions inserted.
    """
    rows = []
    for nome in permission_names():
        modulo, acao = nome.split(".", 1)
        if acao == "*":
            descricao = f"Todas as permissões do módulo {modulo}"
        else:
            descricao = f"Permite {acao} em {modulo}"
        rows.append({"nome": nome, "descricao": descricao, "modulo": modulo, "acao": acao})

    stmt = (
        insert(permissao_table)
        .values(rows)
        .on_conflict_do_nothing(index_elements=["nome"])
        .returning(permissao_table.c.id)
    )
    result = await session.execute(stmt)
    count = len(result.fetchall())
    logger.info(f"Seeded {count} permissions")
    return count


async def _grant(session: AsyncSession, role: str, permissions: list[str] | None) -> int:
    """Grant permissions to a role by name; None grants every permission."""
    query = (
        sa.select(role_table.c.id, permissao_table.c.id)
        .select_from(role_table.join(permissao_table, sa.true()))
        .where(role_table.c.nome == role)
    )
    if permissions is not None:
        query = query.where(permissao_table.c.nome.in_(permissions))

    stmt = (
        insert(role_permissao_table)
        .from_select(["role_id", "permissao_id"], query)
        .on_conflict_do_nothing(index_elements=["role_id", "permissao_id"])
        .returning(role_permissao_table.c.id)
    )
    result = await session.execute(stmt)
    return len(result.fetchall())


async def seed_role_permissions(session: AsyncSession) -> int:
    """Grant every permission to admin and module subsets to the other roles.

    Args:
        session: Database session.

    Returns:
        Number of grants inserted.
    """
    count = await _grant(session, "admin", None)
    for role, permissions in PERMISSOES_POR_ROLE.items():
        count += await _grant(session, role, permissions)
    logger.info(f"Seeded {count} role permissions")
    return count


async def seed_unidade_sede(session: AsyncSession, seed_settings: SeedSettings) -> int:
    """Seed the head office unit the administrator belongs to."""
    exists = await session.scalar(
        sa.select(unidade_table.c.id).where(
            unidade_table.c.codigo == seed_settings.unidade_codigo,
            unidade_table.c.removed_at.is_(None),
        )
    )
    if exists:
        return 0

    await session.execute(
        insert(unidade_table).values(
            nome="Secretaria Municipal do Trabalho e Assistência Social",
            codigo=seed_settings.unidade_codigo,
            sigla="SEMTAS",
            tipo="semtas",
        )
    )
    logger.info(f"Seeded unit {seed_settings.unidade_codigo}")
    return 1


async def seed_admin_user(session: AsyncSession, seed_settings: SeedSettings) -> int:
    """Seed the initial administrator.

    Requires the admin role and the head office unit. An active account that
    already holds the email, CPF or administrator matricula is left untouched,
    including its password.

    Args:
        session: Database session.
        seed_settings: Administrator account data.

    Returns:
        1 if the account was created, 0 otherwise.
    """
    existing = await session.scalar(
        sa.select(usuario_table.c.email)
        .where(
            sa.or_(
                usuario_table.c.email == seed_settings.admin_email,
                usuario_table.c.cpf == seed_settings.admin_cpf,
                usuario_table.c.matricula == ADMIN_MATRICULA,
            ),
            usuario_table.c.removed_at.is_(None),
        )
        .limit(1)
    )
    if existing is not None:
        logger.info(f"Admin user already exists as {existing}")
        return 0

    role_id = await session.scalar(
        sa.select(role_table.c.id).where(role_table.c.nome == "admin")
    )
    unidade_id = await session.scalar(
        sa.select(unidade_table.c.id).where(
            unidade_table.c.codigo == seed_settings.unidade_codigo,
            unidade_table.c.removed_at.is_(None),
        )
    )

    await session.execute(
        insert(usuario_table).values(
            nome=seed_settings.admin_name,
            email=seed_settings.admin_email,
            senha_hash=hash_password(seed_settings.admin_password.get_secret_value()),
            cpf=seed_settings.admin_cpf,
            matricula=ADMIN_MATRICULA,
            role_id=role_id,
            unidade_id=unidade_id,
            status="ativo",
            primeiro_acesso=True,
        )
    )
    logger.info(f"Seeded admin user {seed_settings.admin_email}")
    return 1
