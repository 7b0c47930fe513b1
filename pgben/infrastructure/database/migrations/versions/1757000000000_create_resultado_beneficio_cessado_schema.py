# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Record the outcome of benefits that have ceased.

Revision ID: 1757000000000_create_resultado_beneficio_cessado_schema
Revises: 1756720000000_create_feedback_schema
Create Date: 2025-09-04

When a benefit ends the technician registers why, how the family's
vulnerability evolved and any follow-up, with supporting documents. Each
request has at most one outcome.
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

revision: str = "1757000000000_create_resultado_beneficio_cessado_schema"
down_revision: Union[str, None] = "1756720000000_create_feedback_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MOTIVO_ENCERRAMENTO = (
    "superacao_vulnerabilidade",
    "fim_periodo_concessao",
    "descumprimento_condicionalidades",
    "mudanca_municipio",
    "obito_beneficiario",
    "solicitacao_beneficiario",
    "irregularidade_identificada",
    "outro",
)
STATUS_VULNERABILIDADE = (
    "superada",
    "em_superacao",
    "mantida",
    "agravada",
    "nao_avaliada",
)
TIPO_DOCUMENTO_COMPROBATORIO = (
    "prova_social",
    "documentacao_tecnica",
    "comprovante_renda",
    "comprovante_residencia",
    "declaracao_beneficiario",
    "relatorio_visita",
    "outro",
)


def upgrade() -> None:
    """Create resultado_beneficio_cessado and documento_comprobatorio."""
    create_enum("motivo_encerramento_beneficio_enum", MOTIVO_ENCERRAMENTO)
    create_enum("status_vulnerabilidade_enum", STATUS_VULNERABILIDADE)
    create_enum("tipo_documento_comprobatorio_enum", TIPO_DOCUMENTO_COMPROBATORIO)

    op.create_table(
        "resultado_beneficio_cessado",
        id_column(),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "motivo_encerramento",
            enum_type("motivo_encerramento_beneficio_enum", MOTIVO_ENCERRAMENTO),
            nullable=False,
        ),
        sa.Column("motivo_detalhado", sa.Text, nullable=False),
        sa.Column(
            "status_vulnerabilidade",
            enum_type("status_vulnerabilidade_enum", STATUS_VULNERABILIDADE),
            nullable=False,
        ),
        sa.Column("descricao_vulnerabilidade", sa.Text, nullable=True),
        sa.Column("observacoes_tecnicas", sa.Text, nullable=True),
        sa.Column("recomendacoes_acompanhamento", sa.Text, nullable=True),
        sa.Column(
            "encaminhado_outros_servicos",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("servicos_encaminhados", postgresql.ARRAY(sa.Text), nullable=True),
        sa.Column("tecnico_responsavel_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("data_registro", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["tecnico_responsavel_id"], ["usuario.id"], ondelete="RESTRICT"
        ),
        sa.UniqueConstraint("solicitacao_id", name="uq_resultado_beneficio_cessado_solicitacao"),
        sa.CheckConstraint(
            "motivo_encerramento <> 'superacao_vulnerabilidade' "
            "OR status_vulnerabilidade = 'superada'",
            name="ck_resultado_beneficio_cessado_superacao",
        ),
        sa.CheckConstraint(
            "NOT encaminhado_outros_servicos OR servicos_encaminhados IS NOT NULL",
            name="ck_resultado_beneficio_cessado_encaminhamento",
        ),
    )
    op.create_index(
        "idx_resultado_beneficio_cessado_motivo",
        "resultado_beneficio_cessado",
        ["motivo_encerramento", "status_vulnerabilidade"],
    )
    op.create_index(
        "idx_resultado_beneficio_cessado_tecnico",
        "resultado_beneficio_cessado",
        ["tecnico_responsavel_id", sa.text("data_registro DESC")],
    )
    add_update_timestamp_trigger("resultado_beneficio_cessado")

    op.create_table(
        "documento_comprobatorio",
        id_column(),
        sa.Column("resultado_beneficio_cessado_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "tipo",
            enum_type("tipo_documento_comprobatorio_enum", TIPO_DOCUMENTO_COMPROBATORIO),
            nullable=False,
        ),
        sa.Column("nome_arquivo", sa.String(255), nullable=False),
        sa.Column("caminho_arquivo", sa.String(500), nullable=False),
        sa.Column("tipo_mime", sa.String(100), nullable=True),
        sa.Column("tamanho", sa.BigInteger, nullable=True),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("enviado_por_id", postgresql.UUID(as_uuid=False), nullable=False),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(
            ["resultado_beneficio_cessado_id"],
            ["resultado_beneficio_cessado.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["enviado_por_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "tamanho IS NULL OR tamanho > 0", name="ck_documento_comprobatorio_tamanho"
        ),
    )
    op.create_index(
        "idx_documento_comprobatorio_resultado",
        "documento_comprobatorio",
        ["resultado_beneficio_cessado_id", "tipo"],
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    add_update_timestamp_trigger("documento_comprobatorio")


def downgrade() -> None:
    """Drop benefit outcome tables and their enums."""
    drop_tables("documento_comprobatorio", "resultado_beneficio_cessado")
    drop_enum("tipo_documento_comprobatorio_enum")
    drop_enum("status_vulnerabilidade_enum")
    drop_enum("motivo_encerramento_beneficio_enum")
