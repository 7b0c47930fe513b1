# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create the approval workflow for critical actions.

Revision ID: 1751100000000_create_sistema_aprovacao_schema
Revises: 1750600000000_create_easy_upload_schema
Create Date: 2025-06-28

Critical actions (cancelling a request, blocking a benefit, changing
permissions...) are catalogued in acoes_criticas. Each has an approval
configuration naming its approvers and strategy. Requests for approval
carry the original and proposed data and collect decisions in
historico_aprovacao. Approvers may delegate to another user for a period.
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

revision: str = "1751100000000_create_sistema_aprovacao_schema"
down_revision: Union[str, None] = "1750600000000_create_easy_upload_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TIPO_ACAO_CRITICA = (
    "cancelar_solicitacao",
    "suspender_solicitacao",
    "reativar_solicitacao",
    "suspender_beneficio",
    "bloquear_beneficio",
    "desbloquear_beneficio",
    "liberar_beneficio",
    "cancelar_beneficio",
    "inativar_cidadao",
    "reativar_cidadao",
    "excluir_cidadao",
    "inativar_usuario",
    "reativar_usuario",
    "alterar_permissoes",
    "excluir_documento",
    "substituir_documento",
    "alterar_configuracao_critica",
)
STATUS_SOLICITACAO_APROVACAO = (
    "pendente",
    "em_analise",
    "aprovada",
    "rejeitada",
    "expirada",
    "cancelada",
)
ESTRATEGIA_APROVACAO = ("qualquer_um", "maioria", "unanime")
ACAO_APROVACAO = ("aprovar", "rejeitar")

# Created by the permission schema.
TIPO_ESCOPO = ("global", "unidade", "setor", "proprio")


def upgrade() -> None:
    """Create critical actions, approval configuration, requests and history."""
    create_enum("tipo_acao_critica_enum", TIPO_ACAO_CRITICA)
    create_enum("status_solicitacao_aprovacao_enum", STATUS_SOLICITACAO_APROVACAO)
    create_enum("estrategia_aprovacao_enum", ESTRATEGIA_APROVACAO)
    create_enum("acao_aprovacao_enum", ACAO_APROVACAO)

    op.create_table(
        "acoes_criticas",
        id_column(),
        sa.Column("codigo", enum_type("tipo_acao_critica_enum", TIPO_ACAO_CRITICA), nullable=False),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("modulo", sa.String(100), nullable=False),
        sa.Column("entidade_alvo", sa.String(100), nullable=False),
        sa.Column("requer_aprovacao", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("nivel_criticidade", sa.Integer, nullable=False, server_default="1"),
        sa.Column("tags", postgresql.ARRAY(sa.Text), nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("metadados", postgresql.JSONB, nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("codigo", name="uq_acoes_criticas_codigo"),
        sa.CheckConstraint(
            "nivel_criticidade BETWEEN 1 AND 5", name="ck_acoes_criticas_nivel_criticidade"
        ),
    )
    op.create_index("idx_acoes_criticas_modulo", "acoes_criticas", ["modulo"])
    op.create_index(
        "idx_acoes_criticas_tags", "acoes_criticas", ["tags"], postgresql_using="gin"
    )
    add_update_timestamp_trigger("acoes_criticas")

    op.create_table(
        "configuracoes_aprovacao",
        id_column(),
        sa.Column("acao_critica_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "estrategia_aprovacao",
            enum_type("estrategia_aprovacao_enum", ESTRATEGIA_APROVACAO),
            nullable=False,
            server_default=sa.text("'qualquer_um'"),
        ),
        sa.Column("min_aprovacoes", sa.Integer, nullable=False, server_default="1"),
        sa.Column("max_rejeicoes", sa.Integer, nullable=False, server_default="1"),
        sa.Column("tempo_limite_horas", sa.Integer, nullable=False, server_default="24"),
        sa.Column("permite_auto_aprovacao", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("condicoes_auto_aprovacao", postgresql.JSONB, nullable=True),
        sa.Column("escalacao_ativa", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("tempo_escalacao_horas", sa.Integer, nullable=False, server_default="48"),
        sa.Column("configuracao_escalacao", postgresql.JSONB, nullable=True),
        sa.Column("notificacao_ativa", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("configuracao_notificacao", postgresql.JSONB, nullable=True),
        sa.Column("ativa", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(
            ["acao_critica_id"], ["acoes_criticas.id"], ondelete="CASCADE"
        ),
        sa.UniqueConstraint("acao_critica_id", name="uq_configuracoes_aprovacao_acao"),
        sa.CheckConstraint(
            "min_aprovacoes >= 1 AND max_rejeicoes >= 1",
            name="ck_configuracoes_aprovacao_quorum",
        ),
        sa.CheckConstraint(
            "tempo_limite_horas > 0 AND tempo_escalacao_horas > 0",
            name="ck_configuracoes_aprovacao_prazos",
        ),
    )
    add_update_timestamp_trigger("configuracoes_aprovacao")

    op.create_table(
        "aprovador",
        id_column(),
        sa.Column("configuracao_aprovacao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("role_aprovador", sa.String(50), nullable=True),
        sa.Column("permissao_aprovador", sa.String(100), nullable=True),
        sa.Column(
            "escopo_aprovacao",
            enum_type("tipo_escopo_enum", TIPO_ESCOPO),
            nullable=False,
            server_default=sa.text("'global'"),
        ),
        sa.Column("escopo_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("ordem_hierarquica", sa.Integer, nullable=False, server_default="1"),
        sa.Column("valor_limite_aprovacao", sa.Numeric(15, 2), nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(
            ["configuracao_aprovacao_id"],
            ["configuracoes_aprovacao.id"],
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "usuario_id IS NOT NULL OR role_aprovador IS NOT NULL "
            "OR permissao_aprovador IS NOT NULL",
            name="ck_aprovador_identificacao",
        ),
    )
    op.create_index(
        "idx_aprovador_configuracao_ativo",
        "aprovador",
        ["configuracao_aprovacao_id"],
        postgresql_where=sa.text("ativo"),
    )
    op.create_index("idx_aprovador_usuario", "aprovador", ["usuario_id"])
    add_update_timestamp_trigger("aprovador")

    op.create_table(
        "solicitacoes_aprovacao",
        id_column(),
        sa.Column("acao_critica_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("usuario_solicitante_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("perfil_solicitante", sa.String(50), nullable=True),
        sa.Column("unidade_solicitante", sa.String(100), nullable=True),
        sa.Column("entidade_alvo_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("entidade_alvo_tipo", sa.String(100), nullable=True),
        sa.Column("justificativa", sa.Text, nullable=False),
        sa.Column("contexto", postgresql.JSONB, nullable=True),
        sa.Column("dados_originais", postgresql.JSONB, nullable=True),
        sa.Column("dados_propostos", postgresql.JSONB, nullable=True),
        sa.Column("valor_envolvido", sa.Numeric(15, 2), nullable=True),
        sa.Column(
            "status",
            enum_type("status_solicitacao_aprovacao_enum", STATUS_SOLICITACAO_APROVACAO),
            nullable=False,
            server_default=sa.text("'pendente'"),
        ),
        sa.Column("aprovacoes_necessarias", sa.Integer, nullable=False, server_default="1"),
        sa.Column("aprovacoes_recebidas", sa.Integer, nullable=False, server_default="0"),
        sa.Column("rejeicoes_recebidas", sa.Integer, nullable=False, server_default="0"),
        sa.Column("data_expiracao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_primeira_aprovacao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_conclusao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_execucao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("observacoes_execucao", sa.Text, nullable=True),
        sa.Column("ip_solicitante", postgresql.INET, nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(
            ["acao_critica_id"], ["acoes_criticas.id"], ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(
            ["usuario_solicitante_id"], ["usuario.id"], ondelete="RESTRICT"
        ),
        sa.CheckConstraint(
            "aprovacoes_recebidas >= 0 AND rejeicoes_recebidas >= 0",
            name="ck_solicitacoes_aprovacao_contadores",
        ),
    )
    op.create_index(
        "idx_solicitacoes_aprovacao_status_created_at",
        "solicitacoes_aprovacao",
        ["status", sa.text("created_at DESC")],
    )
    op.create_index(
        "idx_solicitacoes_aprovacao_solicitante_status",
        "solicitacoes_aprovacao",
        ["usuario_solicitante_id", "status"],
    )
    op.create_index(
        "idx_solicitacoes_aprovacao_expiracao",
        "solicitacoes_aprovacao",
        ["data_expiracao"],
        postgresql_where=sa.text("status IN ('pendente', 'em_analise')"),
    )
    add_update_timestamp_trigger("solicitacoes_aprovacao")

    op.create_table(
        "historico_aprovacao",
        id_column(),
        sa.Column("solicitacao_aprovacao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("aprovador_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("acao", enum_type("acao_aprovacao_enum", ACAO_APROVACAO), nullable=False),
        sa.Column("justificativa", sa.Text, nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        sa.Column("dados_contexto", postgresql.JSONB, nullable=True),
        sa.Column("ip_aprovador", postgresql.INET, nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["solicitacao_aprovacao_id"], ["solicitacoes_aprovacao.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["aprovador_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "acao <> 'rejeitar' OR justificativa IS NOT NULL",
            name="ck_historico_aprovacao_justificativa_rejeicao",
        ),
    )
    op.create_index(
        "idx_historico_aprovacao_solicitacao",
        "historico_aprovacao",
        ["solicitacao_aprovacao_id", "created_at"],
    )
    op.create_index("idx_historico_aprovacao_aprovador", "historico_aprovacao", ["aprovador_id"])

    op.create_table(
        "delegacoes_aprovacao",
        id_column(),
        sa.Column("delegante_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("delegado_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("acao_critica_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("motivo", sa.Text, nullable=True),
        sa.Column("data_inicio", sa.DateTime(timezone=True), nullable=False),
        sa.Column("data_fim", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ativa", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("revogada_em", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revogada_por", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(["delegante_id"], ["usuario.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["delegado_id"], ["usuario.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["acao_critica_id"], ["acoes_criticas.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["revogada_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint("data_fim > data_inicio", name="ck_delegacoes_aprovacao_periodo"),
        sa.CheckConstraint(
            "delegante_id <> delegado_id", name="ck_delegacoes_aprovacao_usuarios"
        ),
        sa.CheckConstraint(
            "(revogada_em IS NULL) = (revogada_por IS NULL)",
            name="ck_delegacoes_aprovacao_revogacao",
        ),
    )
    op.create_index(
        "idx_delegacoes_aprovacao_delegado_vigente",
        "delegacoes_aprovacao",
        ["delegado_id", "data_inicio", "data_fim"],
        postgresql_where=sa.text("ativa AND revogada_em IS NULL"),
    )
    add_update_timestamp_trigger("delegacoes_aprovacao")


def downgrade() -> None:
    """Drop the approval workflow tables and their enums."""
    drop_tables(
        "delegacoes_aprovacao",
        "historico_aprovacao",
        "solicitacoes_aprovacao",
        "aprovador",
        "configuracoes_aprovacao",
        "acoes_criticas",
    )
    drop_enum("acao_aprovacao_enum")
    drop_enum("estrategia_aprovacao_enum")
    drop_enum("status_solicitacao_aprovacao_enum")
    drop_enum("tipo_acao_critica_enum")
