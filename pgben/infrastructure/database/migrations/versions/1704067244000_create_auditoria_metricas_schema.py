# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create audit log and operational metrics tables.

Revision ID: 1704067244000_create_auditoria_metricas_schema
Revises: 1704067242000_create_notificacao_schema
Create Date: 2024-01-01

logs_auditoria records LGPD-relevant access (dados_sensiveis_acessados)
alongside every data change. Metrics are defined once in metricas, sampled
into registros_metricas and raise rows in alertas_metrica when a threshold
is crossed.
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

revision: str = "1704067244000_create_auditoria_metricas_schema"
down_revision: Union[str, None] = "1704067242000_create_notificacao_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

TIPO_OPERACAO = (
    "create",
    "read",
    "update",
    "delete",
    "login",
    "logout",
    "export",
    "access_denied",
)
TIPO_METRICA = ("contador", "gauge", "histograma", "resumo", "percentual")
NIVEL_ALERTA = ("info", "aviso", "critico", "emergencia")


def upgrade() -> None:
    """Create logs_auditoria, metricas, registros_metricas and alertas_metrica."""
    create_enum("tipo_operacao_enum", TIPO_OPERACAO)
    create_enum("tipo_metrica_enum", TIPO_METRICA)
    create_enum("nivel_alerta_enum", NIVEL_ALERTA)

    op.create_table(
        "logs_auditoria",
        id_column(),
        sa.Column("tipo_operacao", enum_type("tipo_operacao_enum", TIPO_OPERACAO), nullable=False),
        sa.Column("entidade_afetada", sa.String(100), nullable=False),
        sa.Column("entidade_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("dados_anteriores", postgresql.JSONB, nullable=True),
        sa.Column("dados_novos", postgresql.JSONB, nullable=True),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("ip_origem", postgresql.INET, nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("dados_sensiveis_acessados", postgresql.ARRAY(sa.Text), nullable=True),
        sa.Column("endpoint", sa.String(255), nullable=True),
        sa.Column("metodo_http", sa.String(10), nullable=True),
        sa.Column("data_hora", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "idx_logs_auditoria_entidade",
        "logs_auditoria",
        ["entidade_afetada", "entidade_id"],
    )
    op.create_index(
        "idx_logs_auditoria_usuario_data",
        "logs_auditoria",
        ["usuario_id", sa.text("data_hora DESC")],
    )
    op.create_index(
        "idx_logs_auditoria_dados_novos",
        "logs_auditoria",
        ["dados_novos"],
        postgresql_using="gin",
    )
    op.create_index(
        "idx_logs_auditoria_dados_sensiveis",
        "logs_auditoria",
        ["dados_sensiveis_acessados"],
        postgresql_using="gin",
        postgresql_where=sa.text("dados_sensiveis_acessados IS NOT NULL"),
    )
    enable_row_level_security("logs_auditoria")

    op.create_table(
        "metricas",
        id_column(),
        sa.Column("codigo", sa.String(100), nullable=False),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("tipo", enum_type("tipo_metrica_enum", TIPO_METRICA), nullable=False),
        sa.Column("unidade_medida", sa.String(50), nullable=True),
        sa.Column("consulta_sql", sa.Text, nullable=True),
        sa.Column("intervalo_coleta_segundos", sa.Integer, nullable=False, server_default="300"),
        sa.Column("limite_aviso", sa.Numeric(18, 4), nullable=True),
        sa.Column("limite_critico", sa.Numeric(18, 4), nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.Text), nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(),
        sa.UniqueConstraint("codigo", name="uq_metricas_codigo"),
        sa.CheckConstraint(
            "intervalo_coleta_segundos > 0", name="ck_metricas_intervalo_coleta"
        ),
    )
    add_update_timestamp_trigger("metricas")

    op.create_table(
        "registros_metricas",
        id_column(),
        sa.Column("metrica_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("valor", sa.Numeric(18, 4), nullable=False),
        sa.Column("dimensoes", postgresql.JSONB, nullable=True),
        sa.Column("coletado_em", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["metrica_id"], ["metricas.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "idx_registros_metricas_metrica_coleta",
        "registros_metricas",
        ["metrica_id", sa.text("coletado_em DESC")],
    )
    op.create_index(
        "idx_registros_metricas_coleta_brin",
        "registros_metricas",
        ["coletado_em"],
        postgresql_using="brin",
    )

    op.create_table(
        "alertas_metrica",
        id_column(),
        sa.Column("metrica_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("registro_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("nivel", enum_type("nivel_alerta_enum", NIVEL_ALERTA), nullable=False),
        sa.Column("mensagem", sa.Text, nullable=False),
        sa.Column("valor_observado", sa.Numeric(18, 4), nullable=True),
        sa.Column("resolvido", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("resolvido_em", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolvido_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["metrica_id"], ["metricas.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(
            ["registro_id"], ["registros_metricas.id"], ondelete="SET NULL"
        ),
        sa.ForeignKeyConstraint(["resolvido_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "resolvido = (resolvido_em IS NOT NULL)", name="ck_alertas_metrica_resolucao"
        ),
    )
    op.create_index(
        "idx_alertas_metrica_abertos",
        "alertas_metrica",
        ["metrica_id", "nivel"],
        postgresql_where=sa.text("NOT resolvido"),
    )


def downgrade() -> None:
    """Drop audit and metrics tables."""
    drop_tables("alertas_metrica", "registros_metricas", "metricas", "logs_auditoria")
    drop_enum("nivel_alerta_enum")
    drop_enum("tipo_metrica_enum")
    drop_enum("tipo_operacao_enum")
