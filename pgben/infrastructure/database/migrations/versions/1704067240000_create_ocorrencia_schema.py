# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create occurrence records and their demand reasons.

Revision ID: 1704067240000_create_ocorrencia_schema
Revises: 1704067239000_create_configuracao_schema
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

revision: str = "1704067240000_create_ocorrencia_schema"
down_revision: Union[str, None] = "1704067239000_create_configuracao_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TIPO_OCORRENCIA = (
    "denuncia",
    "reclamacao",
    "sugestao",
    "elogio",
    "informacao",
    "visita_tecnica",
    "outro",
)
STATUS_OCORRENCIA = ("aberta", "em_analise", "resolvida", "concluida", "cancelada")


def upgrade() -> None:
    """Create demanda_motivo and ocorrencia."""
    create_enum("tipo_ocorrencia_enum", TIPO_OCORRENCIA)
    create_enum("status_ocorrencia_enum", STATUS_OCORRENCIA)

    op.create_table(
        "demanda_motivo",
        id_column(),
        sa.Column("tipo", enum_type("tipo_ocorrencia_enum", TIPO_OCORRENCIA), nullable=False),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("tipo", "nome", name="uq_demanda_motivo_tipo_nome"),
    )
    add_update_timestamp_trigger("demanda_motivo")

    op.create_table(
        "ocorrencia",
        id_column(),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("demanda_motivo_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("tipo", enum_type("tipo_ocorrencia_enum", TIPO_OCORRENCIA), nullable=False),
        sa.Column(
            "status",
            enum_type("status_ocorrencia_enum", STATUS_OCORRENCIA),
            nullable=False,
            server_default=sa.text("'aberta'"),
        ),
        sa.Column("descricao", sa.Text, nullable=False),
        sa.Column("prioridade", sa.Integer, nullable=False, server_default="3"),
        sa.Column("registrado_por_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("responsavel_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("unidade_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("data_resolucao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("parecer", sa.Text, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["cidadao_id"], ["cidadao.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["demanda_motivo_id"], ["demanda_motivo.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["registrado_por_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["responsavel_id"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["unidade_id"], ["unidade.id"], ondelete="SET NULL"),
        sa.CheckConstraint("prioridade BETWEEN 1 AND 5", name="ck_ocorrencia_prioridade"),
        sa.CheckConstraint(
            "status NOT IN ('resolvida', 'concluida') OR data_resolucao IS NOT NULL",
            name="ck_ocorrencia_resolucao",
        ),
    )
    op.create_index(
        "idx_ocorrencia_status_created_at",
        "ocorrencia",
        ["status", sa.text("created_at DESC")],
    )
    op.create_index(
        "idx_ocorrencia_cidadao",
        "ocorrencia",
        ["cidadao_id"],
        postgresql_where=sa.text("cidadao_id IS NOT NULL"),
    )
    add_update_timestamp_trigger("ocorrencia")


def downgrade() -> None:
    """Drop ocorrencia and demanda_motivo."""
    drop_tables("ocorrencia", "demanda_motivo")
    drop_enum("status_ocorrencia_enum")
    drop_enum("tipo_ocorrencia_enum")
