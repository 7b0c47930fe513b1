# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create notification templates and system notifications.

Revision ID: 1704067242000_create_notificacao_schema
Revises: 1704067240000_create_ocorrencia_schema
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

revision: str = "1704067242000_create_notificacao_schema"
down_revision: Union[str, None] = "1704067240000_create_ocorrencia_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUS_NOTIFICACAO = (
    "pendente",
    "em_processamento",
    "enviada",
    "falha",
    "cancelada",
    "nao_lida",
    "lida",
    "arquivada",
)
TIPO_NOTIFICACAO = (
    "sistema",
    "solicitacao",
    "pendencia",
    "aprovacao",
    "pagamento",
    "alerta",
    "lembrete",
)
PRIORIDADE_NOTIFICACAO = ("baixa", "media", "alta", "urgente")
CANAL = ("email", "in_app", "sms", "push", "whatsapp")


def upgrade() -> None:
    """Create notification_template and notificacoes_sistema."""
    create_enum("status_notificacao_enum", STATUS_NOTIFICACAO)
    create_enum("tipo_notificacao_enum", TIPO_NOTIFICACAO)
    create_enum("prioridade_notificacao_enum", PRIORIDADE_NOTIFICACAO)
    create_enum("canal_enum", CANAL)

    op.create_table(
        "notification_template",
        id_column(),
        sa.Column("codigo", sa.String(100), nullable=False),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("tipo", enum_type("tipo_notificacao_enum", TIPO_NOTIFICACAO), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("assunto", sa.String(255), nullable=False),
        sa.Column("corpo", sa.Text, nullable=False),
        sa.Column("corpo_html", sa.Text, nullable=True),
        sa.Column(
            "canais_disponiveis",
            postgresql.ARRAY(enum_type("canal_enum", CANAL)),
            nullable=False,
            server_default=sa.text("'{in_app}'"),
        ),
        sa.Column(
            "variaveis_requeridas",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'[]'::jsonb"),
        ),
        sa.Column("categoria", sa.String(50), nullable=True),
        sa.Column(
            "prioridade",
            enum_type("prioridade_notificacao_enum", PRIORIDADE_NOTIFICACAO),
            nullable=False,
            server_default=sa.text("'media'"),
        ),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("codigo", name="uq_notification_template_codigo"),
    )
    op.create_index(
        "idx_notification_template_tipo_ativo",
        "notification_template",
        ["tipo"],
        postgresql_where=sa.text("ativo AND removed_at IS NULL"),
    )
    add_update_timestamp_trigger("notification_template")

    op.create_table(
        "notificacoes_sistema",
        id_column(),
        sa.Column("destinatario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("template_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("tipo", enum_type("tipo_notificacao_enum", TIPO_NOTIFICACAO), nullable=False),
        sa.Column(
            "prioridade",
            enum_type("prioridade_notificacao_enum", PRIORIDADE_NOTIFICACAO),
            nullable=False,
            server_default=sa.text("'media'"),
        ),
        sa.Column("titulo", sa.String(255), nullable=False),
        sa.Column("conteudo", sa.Text, nullable=False),
        sa.Column(
            "dados_contexto",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "status",
            enum_type("status_notificacao_enum", STATUS_NOTIFICACAO),
            nullable=False,
            server_default=sa.text("'pendente'"),
        ),
        sa.Column("canal", enum_type("canal_enum", CANAL), nullable=False, server_default=sa.text("'in_app'")),
        sa.Column("tentativas_entrega", sa.Integer, nullable=False, server_default="0"),
        sa.Column("ultima_tentativa", sa.DateTime(timezone=True), nullable=True),
        sa.Column("proxima_tentativa", sa.DateTime(timezone=True), nullable=True),
        sa.Column("numero_tentativas", sa.Integer, nullable=False, server_default="0"),
        sa.Column("ultimo_erro", sa.Text, nullable=True),
        sa.Column("data_envio", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_leitura", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_agendamento", sa.DateTime(timezone=True), nullable=True),
        sa.Column("link", sa.String(500), nullable=True),
        sa.Column("entidade_relacionada_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("entidade_tipo", sa.String(100), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["destinatario_id"], ["usuario.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["template_id"], ["notification_template.id"], ondelete="SET NULL"
        ),
        sa.CheckConstraint(
            "tentativas_entrega >= 0 AND numero_tentativas >= 0",
            name="ck_notificacoes_sistema_tentativas",
        ),
        sa.CheckConstraint(
            "status <> 'lida' OR data_leitura IS NOT NULL",
            name="ck_notificacoes_sistema_leitura",
        ),
    )
    op.create_index(
        "idx_notificacoes_destinatario_nao_lidas",
        "notificacoes_sistema",
        ["destinatario_id", sa.text("created_at DESC")],
        postgresql_where=sa.text("status = 'nao_lida' AND removed_at IS NULL"),
    )
    op.create_index(
        "idx_notificacoes_reenvio",
        "notificacoes_sistema",
        ["proxima_tentativa"],
        postgresql_where=sa.text("status = 'falha' AND proxima_tentativa IS NOT NULL"),
    )
    op.create_index(
        "idx_notificacoes_dados_contexto",
        "notificacoes_sistema",
        ["dados_contexto"],
        postgresql_using="gin",
    )
    add_update_timestamp_trigger("notificacoes_sistema")


def downgrade() -> None:
    """Drop notification tables and their enums."""
    drop_tables("notificacoes_sistema", "notification_template")
    drop_enum("canal_enum")
    drop_enum("prioridade_notificacao_enum")
    drop_enum("tipo_notificacao_enum")
    drop_enum("status_notificacao_enum")
