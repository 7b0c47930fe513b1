# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create per-benefit data tables for each eventual benefit.

Revision ID: 1704067228000_create_dados_beneficio_schema
Revises: 1704067226000_create_solicitacao_schema
Create Date: 2024-01-01

Each request carries at most one row in the table matching its benefit
type: birth aid (natalidade), social rent (aluguel social), funeral aid and
food basket (cesta básica).
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

revision: str = "1704067228000_create_dados_beneficio_schema"
down_revision: Union[str, None] = "1704067226000_create_solicitacao_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

MOTIVO_ALUGUEL_SOCIAL = (
    "calamidade",
    "desastre",
    "vulnerabilidade",
    "despejo",
    "violencia",
    "area_risco",
    "outro",
)
TIPO_URNA = ("padrao", "infantil", "obeso", "especial")
TIPO_ENTREGA_CESTA_BASICA = (
    "presencial",
    "entrega_domicilio",
    "cartao_alimentacao",
    "vale_alimentacao",
)
PERIODICIDADE_CESTA_BASICA = ("unica", "mensal", "bimestral", "trimestral", "semestral")


def _solicitacao_columns() -> list[sa.Column]:
    return [
        id_column(),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=False),
    ]


def upgrade() -> None:
    """Create dados_natalidade, dados_aluguel_social, dados_funeral, dados_cesta_basica."""
    create_enum("motivo_aluguel_social_enum", MOTIVO_ALUGUEL_SOCIAL)
    create_enum("tipo_urna_enum", TIPO_URNA)
    create_enum("tipo_entrega_cesta_basica_enum", TIPO_ENTREGA_CESTA_BASICA)
    create_enum("periodicidade_cesta_basica_enum", PERIODICIDADE_CESTA_BASICA)

    op.create_table(
        "dados_natalidade",
        *_solicitacao_columns(),
        sa.Column("realiza_pre_natal", sa.Boolean, nullable=False),
        sa.Column("atendida_psf_ubs", sa.Boolean, nullable=False),
        sa.Column("gravidez_risco", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("data_provavel_parto", sa.Date, nullable=True),
        sa.Column("data_nascimento", sa.Date, nullable=True),
        sa.Column("gemeos_trigemeos", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("quantidade_filhos", sa.Integer, nullable=False, server_default="1"),
        sa.Column("ja_tem_filhos", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("quantidade_filhos_existentes", sa.Integer, nullable=True),
        sa.Column("chave_pix", sa.String(255), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("solicitacao_id", name="uq_dados_natalidade_solicitacao"),
        sa.CheckConstraint(
            "data_provavel_parto IS NOT NULL OR data_nascimento IS NOT NULL",
            name="ck_dados_natalidade_data",
        ),
        sa.CheckConstraint("quantidade_filhos >= 1", name="ck_dados_natalidade_quantidade"),
    )
    add_update_timestamp_trigger("dados_natalidade")

    op.create_table(
        "dados_aluguel_social",
        *_solicitacao_columns(),
        sa.Column(
            "publico_prioritario",
            enum_type("motivo_aluguel_social_enum", MOTIVO_ALUGUEL_SOCIAL),
            nullable=False,
        ),
        sa.Column("especificacoes", postgresql.ARRAY(sa.Text), nullable=True),
        sa.Column("situacao_moradia_atual", sa.Text, nullable=False),
        sa.Column("possui_imovel_interditado", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("caso_judicializado_maria_penha", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("valor_aluguel_pretendido", sa.Numeric(10, 2), nullable=True),
        sa.Column("endereco_imovel_pretendido", sa.Text, nullable=True),
        sa.Column("nome_locador", sa.String(255), nullable=True),
        sa.Column("cpf_locador", sa.String(11), nullable=True),
        sa.Column("duracao_meses", sa.Integer, nullable=False, server_default="6"),
        sa.Column("observacoes", sa.Text, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("solicitacao_id", name="uq_dados_aluguel_social_solicitacao"),
        sa.CheckConstraint(
            "duracao_meses BETWEEN 1 AND 12", name="ck_dados_aluguel_social_duracao"
        ),
        sa.CheckConstraint(
            "valor_aluguel_pretendido IS NULL OR valor_aluguel_pretendido > 0",
            name="ck_dados_aluguel_social_valor",
        ),
    )
    add_update_timestamp_trigger("dados_aluguel_social")

    op.create_table(
        "dados_funeral",
        *_solicitacao_columns(),
        sa.Column("nome_completo_falecido", sa.String(255), nullable=False),
        sa.Column("data_obito", sa.Date, nullable=False),
        sa.Column("local_obito", sa.String(255), nullable=False),
        sa.Column("data_autorizacao", sa.Date, nullable=True),
        sa.Column("grau_parentesco_requerente", sa.String(50), nullable=False),
        sa.Column("tipo_urna_necessaria", enum_type("tipo_urna_enum", TIPO_URNA), nullable=False),
        sa.Column("observacoes_especiais", sa.Text, nullable=True),
        sa.Column("numero_certidao_obito", sa.String(100), nullable=True),
        sa.Column("cartorio_emissor", sa.String(255), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("solicitacao_id", name="uq_dados_funeral_solicitacao"),
        sa.CheckConstraint(
            "data_autorizacao IS NULL OR data_autorizacao >= data_obito",
            name="ck_dados_funeral_autorizacao",
        ),
    )
    add_update_timestamp_trigger("dados_funeral")

    op.create_table(
        "dados_cesta_basica",
        *_solicitacao_columns(),
        sa.Column("quantidade_cestas_solicitadas", sa.Integer, nullable=False, server_default="1"),
        sa.Column(
            "periodo_concessao",
            enum_type("periodicidade_cesta_basica_enum", PERIODICIDADE_CESTA_BASICA),
            nullable=False,
            server_default=sa.text("'unica'"),
        ),
        sa.Column(
            "origem_atendimento",
            enum_type("tipo_entrega_cesta_basica_enum", TIPO_ENTREGA_CESTA_BASICA),
            nullable=False,
            server_default=sa.text("'presencial'"),
        ),
        sa.Column("numero_pessoas_familia", sa.Integer, nullable=True),
        sa.Column("justificativa_quantidade", sa.Text, nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        sa.Column("tecnico_responsavel", sa.String(255), nullable=True),
        sa.Column("unidade_solicitante", sa.String(255), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("solicitacao_id", name="uq_dados_cesta_basica_solicitacao"),
        sa.CheckConstraint(
            "quantidade_cestas_solicitadas BETWEEN 1 AND 12",
            name="ck_dados_cesta_basica_quantidade",
        ),
    )
    add_update_timestamp_trigger("dados_cesta_basica")


def downgrade() -> None:
    """Drop per-benefit data tables."""
    drop_tables(
        "dados_cesta_basica",
        "dados_funeral",
        "dados_aluguel_social",
        "dados_natalidade",
    )
    drop_enum("periodicidade_cesta_basica_enum")
    drop_enum("tipo_entrega_cesta_basica_enum")
    drop_enum("tipo_urna_enum")
    drop_enum("motivo_aluguel_social_enum")
