# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create integration, interface and group configuration tables.

Revision ID: 1704067239000_create_configuracao_schema
Revises: 1704067235000_create_pagamento_schema
Create Date: 2024-01-01

configuracao_sistema already exists from the base structure. This unit
gives it a visibility level and an updated_by column, and copies every
change of a value to configuracao_historico through the
configuracao_audit_trigger. Integration credentials live in
configuracao_integracao, which is RLS-protected.
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
    enable_row_level_security,
    enum_type,
    id_column,
    timestamp_columns,
)

revision: str = "1704067239000_create_configuracao_schema"
down_revision: Union[str, None] = "1704067235000_create_pagamento_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

INTEGRACAO_TIPO = ("rest", "soap", "graphql", "webhook")
VISIBILIDADE_CONFIGURACAO = ("publica", "privada", "restrita", "admin")

CONFIGURACAO_AUDIT_TRIGGER = """
    CREATE OR REPLACE FUNCTION configuracao_audit_trigger()
    RETURNS TRIGGER AS $$
    BEGIN
        IF NEW.valor IS DISTINCT FROM OLD.valor THEN
            INSERT INTO configuracao_historico
                (configuracao_id, valor_anterior, valor_novo, usuario_id)
            VALUES (NEW.id, OLD.valor, NEW.valor, NEW.updated_by);
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
"""


def upgrade() -> None:
    """Create the configuration tables and the value history trigger."""
    create_enum("integracao_tipo_enum", INTEGRACAO_TIPO)
    create_enum("visibilidade_configuracao_enum", VISIBILIDADE_CONFIGURACAO)

    op.create_table(
        "configuracao_integracao",
        id_column(),
        sa.Column("codigo", sa.String(50), nullable=False),
        sa.Column("tipo", enum_type("integracao_tipo_enum", INTEGRACAO_TIPO), nullable=False),
        sa.Column("nome", sa.String(200), nullable=False),
        sa.Column("descricao", sa.String(500), nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column(
            "parametros",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("credenciais", sa.Text, nullable=True),
        sa.Column("updated_by", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("codigo", name="uq_configuracao_integracao_codigo"),
        sa.ForeignKeyConstraint(["updated_by"], ["usuario.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_configuracao_integracao_tipo", "configuracao_integracao", ["tipo"])
    op.create_index(
        "idx_configuracao_integracao_parametros",
        "configuracao_integracao",
        ["parametros"],
        postgresql_using="gin",
    )
    add_update_timestamp_trigger("configuracao_integracao")
    enable_row_level_security("configuracao_integracao")

    op.add_column(
        "configuracao_sistema",
        sa.Column(
            "visibilidade",
            enum_type("visibilidade_configuracao_enum", VISIBILIDADE_CONFIGURACAO),
            nullable=False,
            server_default=sa.text("'restrita'"),
        ),
    )
    op.add_column(
        "configuracao_sistema",
        sa.Column("updated_by", postgresql.UUID(as_uuid=False), nullable=True),
    )
    op.create_foreign_key(
        "fk_configuracao_sistema_updated_by",
        "configuracao_sistema",
        "usuario",
        ["updated_by"],
        ["id"],
        ondelete="SET NULL",
    )

    op.create_table(
        "configuracao_historico",
        id_column(),
        sa.Column("configuracao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("valor_anterior", sa.Text, nullable=True),
        sa.Column("valor_novo", sa.Text, nullable=False),
        sa.Column(
            "data_alteracao",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("ip_origem", sa.String(45), nullable=True),
        sa.Column("observacao", sa.Text, nullable=True),
        sa.Column("metadados", postgresql.JSONB, nullable=True),
        sa.ForeignKeyConstraint(
            ["configuracao_id"], ["configuracao_sistema.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "idx_configuracao_historico_configuracao",
        "configuracao_historico",
        ["configuracao_id", sa.text("data_alteracao DESC")],
    )
    op.execute(CONFIGURACAO_AUDIT_TRIGGER)
    op.execute(
        """
        CREATE TRIGGER trg_configuracao_sistema_audit
        AFTER UPDATE ON configuracao_sistema
        FOR EACH ROW EXECUTE FUNCTION configuracao_audit_trigger()
        """
    )

    op.create_table(
        "configuracao_interface",
        id_column(),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "preferencias",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("tema", sa.String(50), nullable=True, server_default="padrao"),
        sa.Column("layout", postgresql.JSONB, nullable=True),
        sa.Column("favoritos", postgresql.JSONB, nullable=True),
        sa.Column("widgets", postgresql.JSONB, nullable=True),
        sa.Column("notificacoes", postgresql.JSONB, nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("usuario_id", name="uq_configuracao_interface_usuario"),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="CASCADE"),
    )
    add_update_timestamp_trigger("configuracao_interface")

    op.create_table(
        "configuracao_grupo",
        id_column(),
        sa.Column("grupo_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("chave", sa.String(100), nullable=False),
        sa.Column("valor", sa.Text, nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("created_by", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("grupo_id", "chave", name="uq_configuracao_grupo_chave"),
        sa.ForeignKeyConstraint(["created_by"], ["usuario.id"], ondelete="SET NULL"),
    )
    add_update_timestamp_trigger("configuracao_grupo")


def downgrade() -> None:
    """Drop configuration tables, the history trigger and the added columns."""
    op.execute("DROP TRIGGER IF EXISTS trg_configuracao_sistema_audit ON configuracao_sistema")
    drop_tables(
        "configuracao_grupo",
        "configuracao_interface",
        "configuracao_historico",
        "configuracao_integracao",
    )
    op.execute("DROP FUNCTION IF EXISTS configuracao_audit_trigger()")
    op.drop_constraint(
        "fk_configuracao_sistema_updated_by", "configuracao_sistema", type_="foreignkey"
    )
    op.drop_column("configuracao_sistema", "updated_by")
    op.drop_column("configuracao_sistema", "visibilidade")
    drop_enum("visibilidade_configuracao_enum")
    drop_enum("integracao_tipo_enum")
