# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create benefit types, requirements, workflow steps and dynamic fields.

Revision ID: 1704067221000_create_beneficio_schema
Revises: 1704067213000_create_cidadao_schema
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

revision: str = "1704067221000_create_beneficio_schema"
down_revision: Union[str, None] = "1704067213000_create_cidadao_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

PERIODICIDADE = ("unico", "mensal", "bimestral", "trimestral", "semestral", "anual")
TIPO_ETAPA = (
    "abertura",
    "analise_documentos",
    "analise_tecnica",
    "aprovacao",
    "liberacao",
)
TIPO_CAMPO = ("string", "number", "boolean", "date", "array", "object")
TIPO_DOCUMENTO = (
    "rg",
    "cpf",
    "comprovante_residencia",
    "comprovante_renda",
    "certidao_nascimento",
    "certidao_obito",
    "declaracao_medica",
    "contrato_aluguel",
    "cartao_gestante",
    "laudo_medico",
    "boletim_ocorrencia",
    "outro",
)


def upgrade() -> None:
    """Create tipo_beneficio and its configuration tables."""
    create_enum("periodicidade_enum", PERIODICIDADE)
    create_enum("tipo_etapa_enum", TIPO_ETAPA)
    create_enum("tipo_campo_enum", TIPO_CAMPO)
    create_enum("tipo_documento_enum", TIPO_DOCUMENTO)

    op.create_table(
        "tipo_beneficio",
        id_column(),
        sa.Column("codigo", sa.String(50), nullable=False),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("base_legal", sa.Text, nullable=True),
        sa.Column(
            "periodicidade",
            enum_type("periodicidade_enum", PERIODICIDADE),
            nullable=False,
            server_default=sa.text("'unico'"),
        ),
        sa.Column("periodicidade_maxima", sa.Integer, nullable=True),
        sa.Column("permite_renovacao", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("valor", sa.Numeric(10, 2), nullable=False),
        sa.Column("valor_maximo", sa.Numeric(10, 2), nullable=True),
        sa.Column(
            "criterios_elegibilidade",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(),
        sa.CheckConstraint("valor >= 0", name="ck_tipo_beneficio_valor"),
        sa.CheckConstraint(
            "valor_maximo IS NULL OR valor_maximo >= valor",
            name="ck_tipo_beneficio_valor_maximo",
        ),
    )
    op.create_index(
        "uq_tipo_beneficio_codigo",
        "tipo_beneficio",
        ["codigo"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    op.create_index(
        "uq_tipo_beneficio_nome",
        "tipo_beneficio",
        ["nome"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    op.create_index(
        "idx_tipo_beneficio_criterios",
        "tipo_beneficio",
        ["criterios_elegibilidade"],
        postgresql_using="gin",
    )
    add_update_timestamp_trigger("tipo_beneficio")

    op.create_table(
        "requisito_documento",
        id_column(),
        sa.Column("tipo_beneficio_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "tipo_documento",
            enum_type("tipo_documento_enum", TIPO_DOCUMENTO),
            nullable=False,
        ),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("obrigatorio", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("observacoes", sa.Text, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(
            ["tipo_beneficio_id"], ["tipo_beneficio.id"], ondelete="CASCADE"
        ),
    )
    op.create_index(
        "uq_requisito_documento_tipo",
        "requisito_documento",
        ["tipo_beneficio_id", "tipo_documento"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    add_update_timestamp_trigger("requisito_documento")

    op.create_table(
        "fluxo_beneficio",
        id_column(),
        sa.Column("tipo_beneficio_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("ordem", sa.Integer, nullable=False),
        sa.Column("tipo_etapa", enum_type("tipo_etapa_enum", TIPO_ETAPA), nullable=False),
        sa.Column("nome_etapa", sa.String(255), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("setor_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("prazo_dias", sa.Integer, nullable=True),
        sa.Column("obrigatorio", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(
            ["tipo_beneficio_id"], ["tipo_beneficio.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["setor_id"], ["setor.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("tipo_beneficio_id", "ordem", name="uq_fluxo_beneficio_ordem"),
        sa.CheckConstraint("ordem > 0", name="ck_fluxo_beneficio_ordem"),
        sa.CheckConstraint(
            "prazo_dias IS NULL OR prazo_dias > 0", name="ck_fluxo_beneficio_prazo"
        ),
    )
    add_update_timestamp_trigger("fluxo_beneficio")

    op.create_table(
        "campo_dinamico_beneficio",
        id_column(),
        sa.Column("tipo_beneficio_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("nome", sa.String(100), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("tipo", enum_type("tipo_campo_enum", TIPO_CAMPO), nullable=False),
        sa.Column("obrigatorio", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("validacoes", postgresql.JSONB, nullable=True),
        sa.Column("ordem", sa.Integer, nullable=False, server_default="1"),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(
            ["tipo_beneficio_id"], ["tipo_beneficio.id"], ondelete="CASCADE"
        ),
        sa.UniqueConstraint("tipo_beneficio_id", "nome", name="uq_campo_dinamico_nome"),
    )
    add_update_timestamp_trigger("campo_dinamico_beneficio")

    op.create_table(
        "versao_schema_beneficio",
        id_column(),
        sa.Column("tipo_beneficio_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("versao", sa.Integer, nullable=False),
        sa.Column("schema", postgresql.JSONB, nullable=False),
        sa.Column("descricao_mudancas", sa.Text, nullable=True),
        sa.Column("data_inicio_vigencia", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(
            ["tipo_beneficio_id"], ["tipo_beneficio.id"], ondelete="CASCADE"
        ),
        sa.UniqueConstraint(
            "tipo_beneficio_id", "versao", name="uq_versao_schema_beneficio"
        ),
    )
    op.create_index(
        "uq_versao_schema_beneficio_ativa",
        "versao_schema_beneficio",
        ["tipo_beneficio_id"],
        unique=True,
        postgresql_where=sa.text("ativo"),
    )
    add_update_timestamp_trigger("versao_schema_beneficio")

    op.create_table(
        "configuracao_renovacao",
        id_column(),
        sa.Column("tipo_beneficio_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("renovacao_automatica", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("dias_antecedencia_renovacao", sa.Integer, nullable=False, server_default="7"),
        sa.Column("numero_maximo_renovacoes", sa.Integer, nullable=True),
        sa.Column("requer_aprovacao_renovacao", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(
            ["tipo_beneficio_id"], ["tipo_beneficio.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("tipo_beneficio_id", name="uq_configuracao_renovacao_tipo"),
        sa.CheckConstraint(
            "dias_antecedencia_renovacao >= 0",
            name="ck_configuracao_renovacao_antecedencia",
        ),
        sa.CheckConstraint(
            "numero_maximo_renovacoes IS NULL OR numero_maximo_renovacoes >= 0",
            name="ck_configuracao_renovacao_maximo",
        ),
    )
    add_update_timestamp_trigger("configuracao_renovacao")


def downgrade() -> None:
    """Drop benefit configuration tables."""
    drop_tables(
        "configuracao_renovacao",
        "versao_schema_beneficio",
        "campo_dinamico_beneficio",
        "fluxo_beneficio",
        "requisito_documento",
        "tipo_beneficio",
    )
    drop_enum("tipo_documento_enum")
    drop_enum("tipo_campo_enum")
    drop_enum("tipo_etapa_enum")
    drop_enum("periodicidade_enum")
