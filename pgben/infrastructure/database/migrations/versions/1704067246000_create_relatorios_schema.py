# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create report templates, configurations, generations and permissions.

Revision ID: 1704067246000_create_relatorios_schema
Revises: 1704067244000_create_auditoria_metricas_schema
Create Date: 2024-01-01

A relatorio_template names the template file and the parameters and
filters it accepts. Saved configurations pin default parameters and a
schedule, and every run is logged in relatorio_geracao. Access is granted
per template to a user, unit or role in relatorio_permissao.
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

revision: str = "1704067246000_create_relatorios_schema"
down_revision: Union[str, None] = "1704067244000_create_auditoria_metricas_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TIPO_RELATORIO = ("gerencial", "operacional", "estatistico", "financeiro", "auditoria")
FORMATO_RELATORIO = ("pdf", "excel", "csv", "html", "json")
STATUS_GERACAO = ("pendente", "em_processamento", "concluido", "erro")
TIPO_ENTIDADE_PERMISSAO = ("usuario", "unidade", "role")


def _jsonb_default(literal: str) -> sa.TextClause:
    return sa.text(f"'{literal}'::jsonb")


def upgrade() -> None:
    """Create relatorio_template, relatorio_config, relatorio_geracao and relatorio_permissao."""
    create_enum("tipo_relatorio_enum", TIPO_RELATORIO)
    create_enum("formato_relatorio_enum", FORMATO_RELATORIO)
    create_enum("status_geracao_enum", STATUS_GERACAO)

    op.create_table(
        "relatorio_template",
        id_column(),
        sa.Column("nome", sa.String(100), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("tipo", enum_type("tipo_relatorio_enum", TIPO_RELATORIO), nullable=False),
        sa.Column("caminho_template", sa.String(255), nullable=False),
        sa.Column(
            "parametros_requeridos", postgresql.JSONB, nullable=False, server_default=_jsonb_default("[]")
        ),
        sa.Column(
            "filtros_disponiveis", postgresql.JSONB, nullable=False, server_default=_jsonb_default("[]")
        ),
        sa.Column(
            "formatos_suportados",
            postgresql.JSONB,
            nullable=False,
            server_default=_jsonb_default('["pdf"]'),
        ),
        sa.Column("query_base", sa.Text, nullable=True),
        sa.Column("script_processamento", sa.Text, nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("versao", sa.String(10), nullable=False, server_default="1.0.0"),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("atualizado_por", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["atualizado_por"], ["usuario.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_relatorio_template_tipo", "relatorio_template", ["tipo"])
    op.create_index(
        "idx_relatorio_template_nome",
        "relatorio_template",
        ["nome"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    op.create_index(
        "idx_relatorio_template_parametros",
        "relatorio_template",
        ["parametros_requeridos"],
        postgresql_using="gin",
    )
    add_update_timestamp_trigger("relatorio_template")

    op.create_table(
        "relatorio_config",
        id_column(),
        sa.Column("template_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("nome", sa.String(100), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column(
            "parametros_padrao", postgresql.JSONB, nullable=False, server_default=_jsonb_default("{}")
        ),
        sa.Column("programacao", postgresql.JSONB, nullable=True),
        sa.Column("notificacoes", postgresql.JSONB, nullable=True),
        sa.Column("usuarios_autorizados", postgresql.JSONB, nullable=True),
        sa.Column("unidades_autorizadas", postgresql.JSONB, nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(["template_id"], ["relatorio_template.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_relatorio_config_template", "relatorio_config", ["template_id"])
    op.create_index(
        "idx_relatorio_config_programacao",
        "relatorio_config",
        ["programacao"],
        postgresql_using="gin",
    )
    add_update_timestamp_trigger("relatorio_config")

    op.create_table(
        "relatorio_geracao",
        id_column(),
        sa.Column("template_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("config_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("parametros_utilizados", postgresql.JSONB, nullable=False),
        sa.Column("formato", enum_type("formato_relatorio_enum", FORMATO_RELATORIO), nullable=False),
        sa.Column(
            "status",
            enum_type("status_geracao_enum", STATUS_GERACAO),
            nullable=False,
            server_default=sa.text("'pendente'"),
        ),
        sa.Column("caminho_arquivo", sa.String(255), nullable=True),
        sa.Column("tamanho_bytes", sa.BigInteger, nullable=True),
        sa.Column("tempo_geracao_ms", sa.Integer, nullable=True),
        sa.Column("erro_mensagem", sa.Text, nullable=True),
        sa.Column("data_inicio", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("data_conclusao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("ip_origem", postgresql.INET, nullable=True),
        sa.Column("metadados", postgresql.JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["template_id"], ["relatorio_template.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["config_id"], ["relatorio_config.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "data_conclusao IS NULL OR data_conclusao >= data_inicio",
            name="ck_relatorio_geracao_conclusao",
        ),
    )
    op.create_index(
        "idx_relatorio_geracao_template_data",
        "relatorio_geracao",
        ["template_id", sa.text("data_inicio DESC")],
    )
    op.create_index("idx_relatorio_geracao_usuario", "relatorio_geracao", ["usuario_id"])
    op.create_index(
        "idx_relatorio_geracao_pendentes",
        "relatorio_geracao",
        ["data_inicio"],
        postgresql_where=sa.text("status IN ('pendente', 'em_processamento')"),
    )

    op.create_table(
        "relatorio_permissao",
        id_column(),
        sa.Column("template_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tipo_entidade", sa.String(20), nullable=False),
        sa.Column("entidade_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "acoes_permitidas",
            postgresql.JSONB,
            nullable=False,
            server_default=_jsonb_default('["visualizar"]'),
        ),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=False),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint(
            "template_id", "tipo_entidade", "entidade_id", name="uq_relatorio_permissao"
        ),
        sa.ForeignKeyConstraint(["template_id"], ["relatorio_template.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="RESTRICT"),
        sa.CheckConstraint(
            "tipo_entidade IN ("
            + ", ".join(f"'{tipo}'" for tipo in TIPO_ENTIDADE_PERMISSAO)
            + ")",
            name="ck_relatorio_permissao_tipo_entidade",
        ),
    )
    op.create_index(
        "idx_relatorio_permissao_entidade",
        "relatorio_permissao",
        ["tipo_entidade", "entidade_id"],
    )
    add_update_timestamp_trigger("relatorio_permissao")


def downgrade() -> None:
    """Drop report tables and enums."""
    drop_tables(
        "relatorio_permissao",
        "relatorio_geracao",
        "relatorio_config",
        "relatorio_template",
    )
    drop_enum("status_geracao_enum")
    drop_enum("formato_relatorio_enum")
    drop_enum("tipo_relatorio_enum")
