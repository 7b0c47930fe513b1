# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create organisational units, roles, users and authentication tokens.

Revision ID: 1704067202000_create_unidade_usuario_schema
Revises: 1704067200000_create_base_structure
Create Date: 2024-01-01
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from pgben.infrastructure.database.migrations.helpers import (
    add_update_timestamp_trigger,
    create_enum,
    drop_enum,
    drop_tables,
    enum_type,
    id_column,
    timestamp_columns,
)

revision: str = "1704067202000_create_unidade_usuario_schema"
down_revision: Union[str, None] = "1704067200000_create_base_structure"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TIPO_UNIDADE = ("cras", "creas", "centro_pop", "semtas", "outro")
STATUS_UNIDADE = ("ativo", "inativo")
STATUS_USUARIO = ("ativo", "inativo", "bloqueado", "pendente")


def upgrade() -> None:
    """Create unidade, setor, role, usuario and token tables."""
    create_enum("tipo_unidade_enum", TIPO_UNIDADE)
    create_enum("status_unidade_enum", STATUS_UNIDADE)
    create_enum("status_usuario_enum", STATUS_USUARIO)

    op.create_table(
        "unidade",
        id_column(),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("codigo", sa.String(50), nullable=False),
        sa.Column("sigla", sa.String(20), nullable=True),
        sa.Column(
            "tipo",
            enum_type("tipo_unidade_enum", TIPO_UNIDADE),
            nullable=False,
            server_default=sa.text("'cras'"),
        ),
        sa.Column("endereco", sa.String(500), nullable=True),
        sa.Column("telefone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("responsavel_matricula", sa.String(50), nullable=True),
        sa.Column(
            "status",
            enum_type("status_unidade_enum", STATUS_UNIDADE),
            nullable=False,
            server_default=sa.text("'ativo'"),
        ),
        *timestamp_columns(),
    )
    op.create_index(
        "uq_unidade_codigo",
        "unidade",
        ["codigo"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    op.create_index("idx_unidade_tipo_status", "unidade", ["tipo", "status"])
    add_update_timestamp_trigger("unidade")

    op.create_table(
        "setor",
        id_column(),
        sa.Column("unidade_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("sigla", sa.String(20), nullable=True),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["unidade_id"], ["unidade.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("unidade_id", "nome", name="uq_setor_unidade_nome"),
    )
    add_update_timestamp_trigger("setor")

    op.create_table(
        "role",
        id_column(),
        sa.Column("nome", sa.String(100), nullable=False),
        sa.Column("descricao", sa.String(255), nullable=True),
        sa.Column("nivel_hierarquia", sa.Integer, nullable=False, server_default="0"),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("nome", name="uq_role_nome"),
    )
    add_update_timestamp_trigger("role")

    op.create_table(
        "usuario",
        id_column(),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("senha_hash", sa.String(255), nullable=False),
        sa.Column("cpf", sa.String(11), nullable=False),
        sa.Column("telefone", sa.String(20), nullable=True),
        sa.Column("matricula", sa.String(50), nullable=False),
        sa.Column("role_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("unidade_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("setor_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column(
            "status",
            enum_type("status_usuario_enum", STATUS_USUARIO),
            nullable=False,
            server_default=sa.text("'ativo'"),
        ),
        sa.Column("primeiro_acesso", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("tentativas_login", sa.Integer, nullable=False, server_default="0"),
        sa.Column("ultimo_login", sa.DateTime(timezone=True), nullable=True),
        sa.Column("bloqueado_ate", sa.DateTime(timezone=True), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["role_id"], ["role.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["unidade_id"], ["unidade.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["setor_id"], ["setor.id"], ondelete="SET NULL"),
        sa.CheckConstraint("validar_cpf(cpf)", name="ck_usuario_cpf_valido"),
        sa.CheckConstraint("tentativas_login >= 0", name="ck_usuario_tentativas_login"),
    )
    for column in ("email", "cpf", "matricula"):
        op.create_index(
            f"uq_usuario_{column}",
            "usuario",
            [column],
            unique=True,
            postgresql_where=sa.text("removed_at IS NULL"),
        )
    op.create_index("idx_usuario_role", "usuario", ["role_id"])
    op.create_index("idx_usuario_unidade", "usuario", ["unidade_id"])
    add_update_timestamp_trigger("usuario")

    op.create_table(
        "refresh_tokens",
        id_column(),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("revoked", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_by_ip", postgresql.INET, nullable=True),
        sa.Column("replaced_by_token", sa.String(255), nullable=True),
        sa.Column("created_by_ip", postgresql.INET, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("token_hash", name="uq_refresh_tokens_token_hash"),
        sa.CheckConstraint("expires_at > created_at", name="ck_refresh_tokens_expiracao"),
        sa.CheckConstraint(
            "(revoked AND revoked_at IS NOT NULL) OR (NOT revoked AND revoked_at IS NULL)",
            name="ck_refresh_tokens_revogacao",
        ),
    )
    op.create_index(
        "idx_refresh_tokens_usuario_ativo",
        "refresh_tokens",
        ["usuario_id"],
        postgresql_where=sa.text("NOT revoked"),
    )

    op.create_table(
        "password_reset_tokens",
        id_column(),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("token_hash", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_address", postgresql.INET, nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("token_hash", name="uq_password_reset_tokens_token_hash"),
        sa.CheckConstraint("expires_at > created_at", name="ck_password_reset_tokens_expiracao"),
    )
    op.create_index(
        "idx_password_reset_tokens_usuario", "password_reset_tokens", ["usuario_id"]
    )


def downgrade() -> None:
    """Drop users, roles, units and tokens."""
    drop_tables(
        "password_reset_tokens",
        "refresh_tokens",
        "usuario",
        "role",
        "setor",
        "unidade",
    )
    drop_enum("status_usuario_enum")
    drop_enum("status_unidade_enum")
    drop_enum("tipo_unidade_enum")
