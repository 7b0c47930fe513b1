# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Add per-criterion visit evaluations and the monitoring action history.

Revision ID: 1755800000000_add_avaliacao_historico_monitoramento
Revises: 1755700000000_create_monitoramento_schema
Create Date: 2025-08-21

historico_monitoramento is append-only: it has no updated_at and keeps its
rows when the schedule, visit or evaluation they mention is deleted.
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

revision: str = "1755800000000_add_avaliacao_historico_monitoramento"
down_revision: Union[str, None] = "1755700000000_create_monitoramento_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TIPO_AVALIACAO = (
    "condicoes_habitacao",
    "saude_familiar",
    "situacao_socioeconomica",
    "documentacao",
    "elegibilidade_beneficio",
    "cumprimento_requisitos",
    "infraestrutura_local",
    "seguranca_ambiente",
    "acesso_servicos_publicos",
    "composicao_familiar",
    "renda_familiar",
    "outros",
)
RESULTADO_AVALIACAO = (
    "adequado",
    "parcialmente_adequado",
    "inadequado",
    "critico",
    "nao_aplicavel",
    "necessita_verificacao",
)
TIPO_ACAO_HISTORICO = (
    "agendamento_criado",
    "agendamento_atualizado",
    "agendamento_cancelado",
    "agendamento_reagendado",
    "visita_iniciada",
    "visita_concluida",
    "visita_cancelada",
    "avaliacao_criada",
    "avaliacao_atualizada",
    "avaliacao_removida",
    "problema_identificado",
    "acao_corretiva_aplicada",
    "notificacao_enviada",
    "documento_anexado",
    "status_alterado",
    "observacao_adicionada",
)
CATEGORIA_HISTORICO = (
    "agendamento",
    "visita",
    "avaliacao",
    "sistema",
    "notificacao",
    "documento",
    "auditoria",
)


def upgrade() -> None:
    """Create avaliacao_visita and historico_monitoramento."""
    create_enum("tipo_avaliacao_visita_enum", TIPO_AVALIACAO)
    create_enum("resultado_avaliacao_visita_enum", RESULTADO_AVALIACAO)
    create_enum("tipo_acao_historico_enum", TIPO_ACAO_HISTORICO)
    create_enum("categoria_historico_enum", CATEGORIA_HISTORICO)

    op.create_table(
        "avaliacao_visita",
        id_column(),
        sa.Column("visita_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "tipo_avaliacao",
            enum_type("tipo_avaliacao_visita_enum", TIPO_AVALIACAO),
            nullable=False,
        ),
        sa.Column("criterio_avaliado", sa.String(255), nullable=False),
        sa.Column(
            "resultado_avaliacao",
            enum_type("resultado_avaliacao_visita_enum", RESULTADO_AVALIACAO),
            nullable=False,
        ),
        sa.Column("nota_avaliacao", sa.Numeric(4, 2), nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        sa.Column("evidencias", postgresql.JSONB, nullable=True),
        sa.Column(
            "requer_acao_imediata", sa.Boolean, nullable=False, server_default=sa.text("false")
        ),
        sa.Column("acao_necessaria", sa.Text, nullable=True),
        sa.Column("prazo_acao", sa.Integer, nullable=True, comment="Prazo em dias"),
        sa.Column("peso_avaliacao", sa.Integer, nullable=False, server_default="5"),
        sa.Column("dados_complementares", postgresql.JSONB, nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("updated_by", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["visita_id"], ["visita_domiciliar.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["created_by"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["updated_by"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "peso_avaliacao BETWEEN 1 AND 10", name="ck_avaliacao_visita_peso"
        ),
        sa.CheckConstraint(
            "prazo_acao IS NULL OR prazo_acao > 0", name="ck_avaliacao_visita_prazo_acao"
        ),
        sa.CheckConstraint(
            "NOT requer_acao_imediata OR acao_necessaria IS NOT NULL",
            name="ck_avaliacao_visita_acao_necessaria",
        ),
    )
    op.create_index("idx_avaliacao_visita_visita", "avaliacao_visita", ["visita_id"])
    op.create_index(
        "idx_avaliacao_visita_tipo_resultado",
        "avaliacao_visita",
        ["tipo_avaliacao", "resultado_avaliacao"],
    )
    op.create_index(
        "idx_avaliacao_visita_acao_imediata",
        "avaliacao_visita",
        ["created_at"],
        postgresql_where=sa.text("requer_acao_imediata"),
    )
    add_update_timestamp_trigger("avaliacao_visita")

    op.create_table(
        "historico_monitoramento",
        id_column(),
        sa.Column(
            "tipo_acao",
            enum_type("tipo_acao_historico_enum", TIPO_ACAO_HISTORICO),
            nullable=False,
        ),
        sa.Column(
            "categoria",
            enum_type("categoria_historico_enum", CATEGORIA_HISTORICO),
            nullable=False,
        ),
        sa.Column("descricao", sa.Text, nullable=False),
        sa.Column("dados_anteriores", postgresql.JSONB, nullable=True),
        sa.Column("dados_novos", postgresql.JSONB, nullable=True),
        sa.Column("metadados", postgresql.JSONB, nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        sa.Column("sucesso", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("erro", sa.Text, nullable=True),
        sa.Column("duracao_ms", sa.Integer, nullable=True),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("agendamento_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("visita_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("avaliacao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["cidadao_id"], ["cidadao.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(
            ["agendamento_id"], ["agendamento_visita.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["visita_id"], ["visita_domiciliar.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["avaliacao_id"], ["avaliacao_visita.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "sucesso OR erro IS NOT NULL", name="ck_historico_monitoramento_erro"
        ),
    )
    op.create_index(
        "idx_historico_monitoramento_auditoria",
        "historico_monitoramento",
        ["usuario_id", sa.text("created_at DESC"), "categoria"],
    )
    op.create_index(
        "idx_historico_monitoramento_cidadao",
        "historico_monitoramento",
        ["cidadao_id", sa.text("created_at DESC")],
    )
    op.create_index(
        "idx_historico_monitoramento_agendamento", "historico_monitoramento", ["agendamento_id"]
    )
    op.create_index(
        "idx_historico_monitoramento_falhas",
        "historico_monitoramento",
        ["created_at"],
        postgresql_where=sa.text("NOT sucesso"),
    )


def downgrade() -> None:
    """Drop evaluation and history tables and their enums."""
    drop_tables("historico_monitoramento", "avaliacao_visita")
    drop_enum("categoria_historico_enum")
    drop_enum("tipo_acao_historico_enum")
    drop_enum("resultado_avaliacao_visita_enum")
    drop_enum("tipo_avaliacao_visita_enum")
