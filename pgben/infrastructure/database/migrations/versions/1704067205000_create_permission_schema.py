# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create granular permission tables.

Revision ID: 1704067205000_create_permission_schema
Revises: 1704067202000_create_unidade_usuario_schema
Create Date: 2024-01-01

Permissions are named ``<modulo>.<acao>``; ``<modulo>.*`` grants every
action of a module. Roles receive permissions through role_permissao and
users can be granted or denied extra permissions, optionally limited to a
scope (a unit or a sector) and an expiry date.
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

revision: str = "1704067205000_create_permission_schema"
down_revision: Union[str, None] = "1704067202000_create_unidade_usuario_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TIPO_ESCOPO = ("global", "unidade", "setor", "proprio")


def upgrade() -> None:
    """Create permissao, groups, role and user grants, and scope rules."""
    create_enum("tipo_escopo_enum", TIPO_ESCOPO)

    op.create_table(
        "permissao",
        id_column(),
        sa.Column("nome", sa.String(100), nullable=False),
        sa.Column("descricao", sa.String(255), nullable=True),
        sa.Column("modulo", sa.String(50), nullable=False),
        sa.Column("acao", sa.String(50), nullable=False),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("nome", name="uq_permissao_nome"),
        sa.CheckConstraint(
            "nome = modulo || '.' || acao", name="ck_permissao_nome_composto"
        ),
    )
    op.create_index("idx_permissao_modulo", "permissao", ["modulo"])
    add_update_timestamp_trigger("permissao")

    op.create_table(
        "grupo_permissao",
        id_column(),
        sa.Column("nome", sa.String(100), nullable=False),
        sa.Column("descricao", sa.String(255), nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("nome", name="uq_grupo_permissao_nome"),
    )
    add_update_timestamp_trigger("grupo_permissao")

    op.create_table(
        "mapeamento_grupo_permissao",
        id_column(),
        sa.Column("grupo_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("permissao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["grupo_id"], ["grupo_permissao.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["permissao_id"], ["permissao.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("grupo_id", "permissao_id", name="uq_mapeamento_grupo_permissao"),
    )

    op.create_table(
        "role_permissao",
        id_column(),
        sa.Column("role_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("permissao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["role_id"], ["role.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["permissao_id"], ["permissao.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("role_id", "permissao_id", name="uq_role_permissao"),
    )
    op.create_index("idx_role_permissao_permissao", "role_permissao", ["permissao_id"])

    op.create_table(
        "usuario_permissao",
        id_column(),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("permissao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("concedida", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column(
            "tipo_escopo",
            enum_type("tipo_escopo_enum", TIPO_ESCOPO),
            nullable=False,
            server_default=sa.text("'global'"),
        ),
        sa.Column("escopo_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("valido_ate", sa.DateTime(timezone=True), nullable=True),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["permissao_id"], ["permissao.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "(tipo_escopo = 'global' AND escopo_id IS NULL) "
            "OR (tipo_escopo <> 'global' AND escopo_id IS NOT NULL) "
            "OR tipo_escopo = 'proprio'",
            name="ck_usuario_permissao_escopo",
        ),
    )
    op.create_index(
        "uq_usuario_permissao_escopo",
        "usuario_permissao",
        ["usuario_id", "permissao_id", "tipo_escopo", sa.text("COALESCE(escopo_id, uuid_nil())")],
        unique=True,
    )
    op.create_index(
        "idx_usuario_permissao_validade",
        "usuario_permissao",
        ["valido_ate"],
        postgresql_where=sa.text("valido_ate IS NOT NULL"),
    )
    add_update_timestamp_trigger("usuario_permissao")

    op.create_table(
        "escopo_permissao",
        id_column(),
        sa.Column("permissao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "tipo_escopo_padrao",
            enum_type("tipo_escopo_enum", TIPO_ESCOPO),
            nullable=False,
            server_default=sa.text("'global'"),
        ),
        sa.Column("descricao", sa.String(255), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(["permissao_id"], ["permissao.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("permissao_id", name="uq_escopo_permissao_permissao"),
    )
    add_update_timestamp_trigger("escopo_permissao")


def downgrade() -> None:
    """Drop permission tables."""
    drop_tables(
        "escopo_permissao",
        "usuario_permissao",
        "role_permissao",
        "mapeamento_grupo_permissao",
        "grupo_permissao",
        "permissao",
    )
    drop_enum("tipo_escopo_enum")
