# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create business metric definitions, alert rules and period snapshots.

Revision ID: 1704067247000_create_metricas_definicao_schema
Revises: 1704067246000_create_relatorios_schema
Create Date: 2024-01-01

Unlike the operational metricas table, a metrica_definicao describes how a
dashboard indicator is computed (SQL or formula) and displayed. Alert rules
compare an indicator against a threshold, and snapshots keep one value per
metric, period and start date.
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

revision: str = "1704067247000_create_metricas_definicao_schema"
down_revision: Union[str, None] = "1704067246000_create_relatorios_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Labels of the enums created with the audit and metrics tables
TIPO_METRICA = ("contador", "gauge", "histograma", "resumo", "percentual")
NIVEL_ALERTA = ("info", "aviso", "critico", "emergencia")

CATEGORIA_METRICA = ("sistema", "negocio", "performance", "seguranca")
OPERADORES_ALERTA = (">", ">=", "<", "<=", "=", "!=")
PERIODOS_SNAPSHOT = ("hora", "dia", "semana", "mes", "ano")


def _in_list(column: str, values: Sequence[str]) -> str:
    return f"{column} IN (" + ", ".join(f"'{value}'" for value in values) + ")"


def upgrade() -> None:
    """Create metrica_definicao, regras_alerta and metrica_snapshot."""
    create_enum("categoria_metrica_enum", CATEGORIA_METRICA)

    op.create_table(
        "metrica_definicao",
        id_column(),
        sa.Column("codigo", sa.String(100), nullable=False),
        sa.Column("nome", sa.String(200), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column(
            "tipo",
            enum_type("tipo_metrica_enum", TIPO_METRICA),
            nullable=False,
            server_default=sa.text("'gauge'"),
        ),
        sa.Column(
            "categoria",
            enum_type("categoria_metrica_enum", CATEGORIA_METRICA),
            nullable=False,
            server_default=sa.text("'negocio'"),
        ),
        sa.Column("unidade", sa.String(50), nullable=True),
        sa.Column("prefixo", sa.String(10), nullable=True),
        sa.Column("sufixo", sa.String(10), nullable=True),
        sa.Column("casas_decimais", sa.Integer, nullable=False, server_default="2"),
        sa.Column("sql_consulta", sa.Text, nullable=True),
        sa.Column("formula_calculo", sa.Text, nullable=True),
        sa.Column("fonte_dados", sa.String(100), nullable=True),
        sa.Column("agregacao_temporal", sa.String(50), nullable=True),
        sa.Column("granularidade", sa.String(50), nullable=True),
        sa.Column("metricas_dependentes", postgresql.JSONB, nullable=True),
        sa.Column("parametros_especificos", postgresql.JSONB, nullable=True),
        sa.Column("tags", postgresql.ARRAY(sa.Text), nullable=True),
        sa.Column("ativa", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("versao", sa.Integer, nullable=False, server_default="1"),
        sa.Column("ultima_coleta", sa.DateTime(timezone=True), nullable=True),
        sa.Column("calculo_tempo_real", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("atualizado_por", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("codigo", name="uq_metrica_definicao_codigo"),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["atualizado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "sql_consulta IS NOT NULL OR formula_calculo IS NOT NULL",
            name="ck_metrica_definicao_fonte_calculo",
        ),
        sa.CheckConstraint(
            "casas_decimais BETWEEN 0 AND 10", name="ck_metrica_definicao_casas_decimais"
        ),
    )
    op.create_index("idx_metrica_definicao_categoria", "metrica_definicao", ["categoria"])
    op.create_index(
        "idx_metrica_definicao_tags", "metrica_definicao", ["tags"], postgresql_using="gin"
    )
    add_update_timestamp_trigger("metrica_definicao")

    op.create_table(
        "regras_alerta",
        id_column(),
        sa.Column("nome", sa.String(100), nullable=False),
        sa.Column("metrica_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("nivel", enum_type("nivel_alerta_enum", NIVEL_ALERTA), nullable=False),
        sa.Column("operador", sa.String(10), nullable=False),
        sa.Column("valor_limiar", sa.Numeric(15, 2), nullable=False),
        sa.Column("mensagem_alerta", sa.Text, nullable=False),
        sa.Column("canais_notificacao", postgresql.JSONB, nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(["metrica_id"], ["metrica_definicao.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            _in_list("operador", OPERADORES_ALERTA), name="ck_regras_alerta_operador"
        ),
    )
    op.create_index(
        "idx_regras_alerta_metrica_ativas",
        "regras_alerta",
        ["metrica_id", "nivel"],
        postgresql_where=sa.text("ativo"),
    )
    add_update_timestamp_trigger("regras_alerta")

    op.create_table(
        "metrica_snapshot",
        id_column(),
        sa.Column("metrica_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("valor", sa.Numeric(15, 2), nullable=False),
        sa.Column("periodo", sa.String(20), nullable=False),
        sa.Column("data_inicio", sa.DateTime(timezone=True), nullable=False),
        sa.Column("data_fim", sa.DateTime(timezone=True), nullable=False),
        sa.Column("metadados", postgresql.JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.UniqueConstraint(
            "metrica_id", "periodo", "data_inicio", name="uq_metrica_snapshot_periodo"
        ),
        sa.ForeignKeyConstraint(["metrica_id"], ["metrica_definicao.id"], ondelete="CASCADE"),
        sa.CheckConstraint("data_fim > data_inicio", name="ck_metrica_snapshot_intervalo"),
        sa.CheckConstraint(
            _in_list("periodo", PERIODOS_SNAPSHOT), name="ck_metrica_snapshot_periodo"
        ),
    )
    op.create_index(
        "idx_metrica_snapshot_intervalo", "metrica_snapshot", ["data_inicio", "data_fim"]
    )


def downgrade() -> None:
    """Drop metric definitions, alert rules, snapshots and the category enum."""
    drop_tables("metrica_snapshot", "regras_alerta", "metrica_definicao")
    drop_enum("categoria_metrica_enum")
