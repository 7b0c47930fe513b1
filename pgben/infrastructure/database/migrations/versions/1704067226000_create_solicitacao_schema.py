# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create benefit requests, status history, pending items and evaluations.

Revision ID: 1704067226000_create_solicitacao_schema
Revises: 1704067221000_create_beneficio_schema
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
    enable_row_level_security,
    enum_type,
    id_column,
    timestamp_columns,
)

revision: str = "1704067226000_create_solicitacao_schema"
down_revision: Union[str, None] = "1704067221000_create_beneficio_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUS_SOLICITACAO = (
    "rascunho",
    "pendente",
    "em_analise",
    "aguardando_documentos",
    "aprovada",
    "indeferida",
    "liberada",
    "cancelada",
    "em_processamento",
    "concluida",
    "arquivada",
)
STATUS_PENDENCIA = ("aberta", "resolvida", "cancelada")


def upgrade() -> None:
    """Create solicitacao and its workflow tables."""
    create_enum("status_solicitacao_enum", STATUS_SOLICITACAO)
    create_enum("status_pendencia_enum", STATUS_PENDENCIA)

    op.create_table(
        "solicitacao",
        id_column(),
        sa.Column("protocolo", sa.String(50), nullable=False),
        sa.Column("beneficiario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("solicitante_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("tipo_beneficio_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("unidade_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tecnico_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("data_abertura", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column(
            "status",
            enum_type("status_solicitacao_enum", STATUS_SOLICITACAO),
            nullable=False,
            server_default=sa.text("'rascunho'"),
        ),
        sa.Column("parecer_semtas", sa.Text, nullable=True),
        sa.Column("aprovador_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("data_aprovacao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_liberacao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("liberador_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("valor", sa.Numeric(10, 2), nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        sa.Column("dados_complementares", postgresql.JSONB, nullable=True),
        sa.Column(
            "dados_dinamicos",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("versao_schema", sa.Integer, nullable=True),
        sa.Column("determinacao_judicial_flag", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("processo_judicial_id", postgresql.UUID(as_uuid=False), nullable=True),
        # Renewal linkage
        sa.Column("solicitacao_original_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("renovacao_automatica", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("contador_renovacoes", sa.Integer, nullable=False, server_default="0"),
        sa.Column("data_proxima_renovacao", sa.Date, nullable=True),
        # Deadlines
        sa.Column("prazo_analise", sa.DateTime(timezone=True), nullable=True),
        sa.Column("prazo_documentos", sa.DateTime(timezone=True), nullable=True),
        sa.Column("prazo_processamento", sa.DateTime(timezone=True), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["beneficiario_id"], ["cidadao.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["solicitante_id"], ["cidadao.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["tipo_beneficio_id"], ["tipo_beneficio.id"], ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(["unidade_id"], ["unidade.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["tecnico_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["aprovador_id"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["liberador_id"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["solicitacao_original_id"], ["solicitacao.id"], ondelete="SET NULL"
        ),
        sa.CheckConstraint("contador_renovacoes >= 0", name="ck_solicitacao_contador_renovacoes"),
        sa.CheckConstraint("valor IS NULL OR valor >= 0", name="ck_solicitacao_valor"),
        sa.CheckConstraint(
            "solicitacao_original_id IS NULL OR solicitacao_original_id <> id",
            name="ck_solicitacao_renovacao_propria",
        ),
    )
    op.create_index(
        "uq_solicitacao_protocolo",
        "solicitacao",
        ["protocolo"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    op.create_index(
        "idx_solicitacao_status_created_at",
        "solicitacao",
        ["status", sa.text("created_at DESC")],
    )
    op.create_index("idx_solicitacao_beneficiario", "solicitacao", ["beneficiario_id"])
    op.create_index("idx_solicitacao_tipo_beneficio", "solicitacao", ["tipo_beneficio_id"])
    op.create_index("idx_solicitacao_unidade", "solicitacao", ["unidade_id"])
    op.create_index("idx_solicitacao_tecnico", "solicitacao", ["tecnico_id"])
    op.create_index(
        "idx_solicitacao_renovacao",
        "solicitacao",
        ["data_proxima_renovacao"],
        postgresql_where=sa.text("renovacao_automatica AND removed_at IS NULL"),
    )
    op.create_index(
        "idx_solicitacao_original",
        "solicitacao",
        ["solicitacao_original_id"],
        postgresql_where=sa.text("solicitacao_original_id IS NOT NULL"),
    )
    op.create_index(
        "idx_solicitacao_dados_dinamicos",
        "solicitacao",
        ["dados_dinamicos"],
        postgresql_using="gin",
    )
    add_update_timestamp_trigger("solicitacao")
    enable_row_level_security("solicitacao")

    op.create_table(
        "historico_status_solicitacao",
        id_column(),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "status_anterior",
            enum_type("status_solicitacao_enum", STATUS_SOLICITACAO),
            nullable=True,
        ),
        sa.Column(
            "status_atual",
            enum_type("status_solicitacao_enum", STATUS_SOLICITACAO),
            nullable=False,
        ),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("observacao", sa.Text, nullable=True),
        sa.Column("dados_alterados", postgresql.JSONB, nullable=True),
        sa.Column("ip_usuario", postgresql.INET, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "idx_historico_status_solicitacao",
        "historico_status_solicitacao",
        ["solicitacao_id", sa.text("created_at DESC")],
    )
    enable_row_level_security("historico_status_solicitacao")

    op.create_table(
        "pendencias",
        id_column(),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("descricao", sa.Text, nullable=False),
        sa.Column(
            "status",
            enum_type("status_pendencia_enum", STATUS_PENDENCIA),
            nullable=False,
            server_default=sa.text("'aberta'"),
        ),
        sa.Column("registrado_por_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("resolvido_por_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("data_resolucao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("observacao_resolucao", sa.Text, nullable=True),
        sa.Column("prazo_resolucao", sa.Date, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["registrado_por_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["resolvido_por_id"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "(status = 'resolvida') = (data_resolucao IS NOT NULL)",
            name="ck_pendencias_resolucao",
        ),
    )
    op.create_index(
        "idx_pendencias_solicitacao_abertas",
        "pendencias",
        ["solicitacao_id"],
        postgresql_where=sa.text("status = 'aberta' AND removed_at IS NULL"),
    )
    add_update_timestamp_trigger("pendencias")

    op.create_table(
        "avaliacao_solicitacao",
        id_column(),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("avaliador_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tipo_avaliacao", sa.String(50), nullable=False),
        sa.Column("parecer", sa.Text, nullable=False),
        sa.Column("aprovado", sa.Boolean, nullable=False),
        sa.Column("pontuacao", sa.Integer, nullable=True),
        sa.Column("criterios", postgresql.JSONB, nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["avaliador_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "pontuacao IS NULL OR pontuacao BETWEEN 0 AND 100",
            name="ck_avaliacao_solicitacao_pontuacao",
        ),
    )
    op.create_index(
        "idx_avaliacao_solicitacao", "avaliacao_solicitacao", ["solicitacao_id"]
    )
    add_update_timestamp_trigger("avaliacao_solicitacao")


def downgrade() -> None:
    """Drop request tables and their enums."""
    drop_tables(
        "avaliacao_solicitacao",
        "pendencias",
        "historico_status_solicitacao",
        "solicitacao",
    )
    drop_enum("status_pendencia_enum")
    drop_enum("status_solicitacao_enum")
