# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create citizen tables, family composition and bank information.

Revision ID: 1704067213000_create_cidadao_schema
Revises: 1704067205000_create_permission_schema
Create Date: 2024-01-01

A citizen (cidadao) may appear in papel_cidadao as beneficiary, requester
or legal representative. A person who is an active beneficiary cannot be
listed in another family's composicao_familiar; the trigger installed here
enforces that against papel_cidadao.
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

revision: str = "1704067213000_create_cidadao_schema"
down_revision: Union[str, None] = "1704067205000_create_permission_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

SEXO = ("masculino", "feminino", "outro")
ESCOLARIDADE = (
    "analfabeto",
    "fundamental_incompleto",
    "fundamental_completo",
    "medio_incompleto",
    "medio_completo",
    "superior_incompleto",
    "superior_completo",
    "pos_graduacao",
)
PARENTESCO = (
    "conjuge",
    "filho",
    "pai",
    "mae",
    "irmao",
    "avo",
    "neto",
    "tio",
    "sobrinho",
    "outro",
)
TIPO_PAPEL = ("beneficiario", "requerente", "representante_legal")
TIPO_MORADIA = (
    "propria",
    "alugada",
    "cedida",
    "ocupacao",
    "situacao_rua",
    "abrigo",
    "outro",
)
SITUACAO_TRABALHO = (
    "desempregado",
    "empregado_formal",
    "empregado_informal",
    "autonomo",
    "aposentado",
    "pensionista",
    "beneficiario_bpc",
    "outro",
)
TIPO_CONTA = ("corrente", "poupanca", "poupanca_social", "pagamento")
TIPO_CHAVE_PIX = ("cpf", "email", "telefone", "aleatoria")

CONFLITO_PAPEL_POR_PAPEL_CIDADAO = """
    CREATE OR REPLACE FUNCTION verificar_conflito_papel_composicao()
    RETURNS TRIGGER AS $$
    BEGIN
        IF NEW.removed_at IS NULL AND EXISTS (
            SELECT 1
            FROM papel_cidadao p
            JOIN cidadao c ON c.id = p.cidadao_id
            WHERE c.cpf = NEW.cpf
              AND c.id <> NEW.cidadao_id
              AND p.tipo_papel = 'beneficiario'
              AND p.ativo
              AND p.removed_at IS NULL
        ) THEN
            RAISE EXCEPTION
                'CPF % pertence a um beneficiário ativo e não pode compor outra família',
                NEW.cpf
                USING ERRCODE = 'check_violation';
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
"""

CONFLITO_PAPEL_TRIGGER = """
    CREATE TRIGGER trg_composicao_familiar_conflito_papel
    BEFORE INSERT OR UPDATE ON composicao_familiar
    FOR EACH ROW EXECUTE FUNCTION verificar_conflito_papel_composicao()
"""


def create_papel_cidadao() -> None:
    """Create papel_cidadao; reused when a later revert restores it."""
    create_enum("tipo_papel_enum", TIPO_PAPEL)
    op.create_table(
        "papel_cidadao",
        id_column(),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tipo_papel", enum_type("tipo_papel_enum", TIPO_PAPEL), nullable=False),
        sa.Column("metadados", postgresql.JSONB, nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["cidadao_id"], ["cidadao.id"], ondelete="CASCADE"),
    )
    op.create_index(
        "uq_papel_cidadao_ativo",
        "papel_cidadao",
        ["cidadao_id", "tipo_papel"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    add_update_timestamp_trigger("papel_cidadao")


def upgrade() -> None:
    """Create citizen tables and the family-composition conflict trigger."""
    create_enum("sexo_enum", SEXO)
    create_enum("escolaridade_enum", ESCOLARIDADE)
    create_enum("parentesco_enum", PARENTESCO)
    create_enum("tipo_moradia_enum", TIPO_MORADIA)
    create_enum("situacao_trabalho_enum", SITUACAO_TRABALHO)
    create_enum("tipo_conta_enum", TIPO_CONTA)
    create_enum("tipo_chave_pix_enum", TIPO_CHAVE_PIX)

    op.create_table(
        "cidadao",
        id_column(),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("nome_social", sa.String(255), nullable=True),
        sa.Column("cpf", sa.String(11), nullable=False),
        sa.Column("rg", sa.String(20), nullable=True),
        sa.Column("nis", sa.String(11), nullable=True),
        sa.Column("nome_mae", sa.String(255), nullable=True),
        sa.Column("naturalidade", sa.String(100), nullable=True),
        sa.Column("prontuario_suas", sa.String(50), nullable=True),
        sa.Column("data_nascimento", sa.Date, nullable=True),
        sa.Column("sexo", enum_type("sexo_enum", SEXO), nullable=True),
        sa.Column("telefone", sa.String(20), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column(
            "endereco",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column("unidade_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["unidade_id"], ["unidade.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint("cpf ~ '^[0-9]{11}$'", name="ck_cidadao_cpf_formato"),
        sa.CheckConstraint(
            "nis IS NULL OR nis ~ '^[0-9]{11}$'", name="ck_cidadao_nis_formato"
        ),
    )
    # Soft-deleted citizens release their CPF and NIS
    op.create_index(
        "uq_cidadao_cpf",
        "cidadao",
        ["cpf"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    op.create_index(
        "uq_cidadao_nis",
        "cidadao",
        ["nis"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL AND nis IS NOT NULL"),
    )
    op.create_index(
        "idx_cidadao_nome_trgm",
        "cidadao",
        ["nome"],
        postgresql_using="gin",
        postgresql_ops={"nome": "gin_trgm_ops"},
    )
    op.create_index(
        "idx_cidadao_endereco", "cidadao", ["endereco"], postgresql_using="gin"
    )
    op.create_index(
        "idx_cidadao_endereco_cidade", "cidadao", [sa.text("(endereco->>'cidade')")]
    )
    op.create_index(
        "idx_cidadao_endereco_bairro", "cidadao", [sa.text("(endereco->>'bairro')")]
    )
    op.create_index("idx_cidadao_unidade", "cidadao", ["unidade_id"])
    add_update_timestamp_trigger("cidadao")
    enable_row_level_security("cidadao")

    op.create_table(
        "composicao_familiar",
        id_column(),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("nome", sa.String(255), nullable=False),
        sa.Column("cpf", sa.String(11), nullable=False),
        sa.Column("nis", sa.String(11), nullable=True),
        sa.Column("idade", sa.Integer, nullable=True),
        sa.Column("ocupacao", sa.String(255), nullable=True),
        sa.Column("escolaridade", enum_type("escolaridade_enum", ESCOLARIDADE), nullable=True),
        sa.Column("parentesco", enum_type("parentesco_enum", PARENTESCO), nullable=False),
        sa.Column("renda", sa.Numeric(10, 2), nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["cidadao_id"], ["cidadao.id"], ondelete="CASCADE"),
        sa.CheckConstraint("cpf ~ '^[0-9]{11}$'", name="ck_composicao_familiar_cpf_formato"),
        sa.CheckConstraint("idade IS NULL OR idade >= 0", name="ck_composicao_familiar_idade"),
        sa.CheckConstraint("renda IS NULL OR renda >= 0", name="ck_composicao_familiar_renda"),
    )
    op.create_index(
        "uq_composicao_familiar_cidadao_cpf",
        "composicao_familiar",
        ["cidadao_id", "cpf"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    op.create_index("idx_composicao_familiar_cpf", "composicao_familiar", ["cpf"])
    add_update_timestamp_trigger("composicao_familiar")
    enable_row_level_security("composicao_familiar")

    op.create_table(
        "situacao_moradia",
        id_column(),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tipo_moradia", enum_type("tipo_moradia_enum", TIPO_MORADIA), nullable=True),
        sa.Column("numero_comodos", sa.Integer, nullable=True),
        sa.Column("valor_aluguel", sa.Numeric(10, 2), nullable=True),
        sa.Column("tempo_moradia_meses", sa.Integer, nullable=True),
        sa.Column("possui_banheiro", sa.Boolean, nullable=True),
        sa.Column("possui_energia_eletrica", sa.Boolean, nullable=True),
        sa.Column("possui_agua_encanada", sa.Boolean, nullable=True),
        sa.Column("possui_coleta_lixo", sa.Boolean, nullable=True),
        sa.Column("situacoes_especiais", postgresql.JSONB, nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["cidadao_id"], ["cidadao.id"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "valor_aluguel IS NULL OR valor_aluguel >= 0",
            name="ck_situacao_moradia_valor_aluguel",
        ),
    )
    op.create_index(
        "uq_situacao_moradia_cidadao",
        "situacao_moradia",
        ["cidadao_id"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    add_update_timestamp_trigger("situacao_moradia")

    op.create_table(
        "dados_sociais",
        id_column(),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("escolaridade", enum_type("escolaridade_enum", ESCOLARIDADE), nullable=True),
        sa.Column("publico_prioritario", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("renda", sa.Numeric(10, 2), nullable=True),
        sa.Column("ocupacao", sa.String(255), nullable=True),
        sa.Column(
            "situacao_trabalho",
            enum_type("situacao_trabalho_enum", SITUACAO_TRABALHO),
            nullable=True,
        ),
        sa.Column("area_trabalho", sa.String(255), nullable=True),
        sa.Column("familiar_apto_trabalho", sa.Boolean, nullable=True),
        sa.Column("area_interesse_familiar", sa.String(255), nullable=True),
        sa.Column("recebe_pbf", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("valor_pbf", sa.Numeric(10, 2), nullable=True),
        sa.Column("recebe_bpc", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("tipo_bpc", sa.String(50), nullable=True),
        sa.Column("valor_bpc", sa.Numeric(10, 2), nullable=True),
        sa.Column("curso_profissionalizante", sa.String(255), nullable=True),
        sa.Column("interesse_curso_profissionalizante", sa.Boolean, nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["cidadao_id"], ["cidadao.id"], ondelete="CASCADE"),
        sa.CheckConstraint("renda IS NULL OR renda >= 0", name="ck_dados_sociais_renda"),
        sa.CheckConstraint(
            "recebe_pbf OR valor_pbf IS NULL", name="ck_dados_sociais_valor_pbf"
        ),
        sa.CheckConstraint(
            "recebe_bpc OR valor_bpc IS NULL", name="ck_dados_sociais_valor_bpc"
        ),
    )
    op.create_index(
        "uq_dados_sociais_cidadao",
        "dados_sociais",
        ["cidadao_id"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    add_update_timestamp_trigger("dados_sociais")

    create_papel_cidadao()

    op.create_table(
        "info_bancaria",
        id_column(),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("banco", sa.String(3), nullable=False),
        sa.Column("nome_banco", sa.String(100), nullable=False),
        sa.Column("agencia", sa.String(10), nullable=False),
        sa.Column("conta", sa.String(20), nullable=False),
        sa.Column(
            "tipo_conta",
            enum_type("tipo_conta_enum", TIPO_CONTA),
            nullable=False,
            server_default=sa.text("'poupanca_social'"),
        ),
        sa.Column("chave_pix", sa.String(255), nullable=True),
        sa.Column("tipo_chave_pix", enum_type("tipo_chave_pix_enum", TIPO_CHAVE_PIX), nullable=True),
        sa.Column("ativo", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("observacoes", sa.Text, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["cidadao_id"], ["cidadao.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("cidadao_id", name="uq_info_bancaria_cidadao"),
        sa.CheckConstraint(
            "(chave_pix IS NULL) = (tipo_chave_pix IS NULL)",
            name="ck_info_bancaria_chave_pix",
        ),
    )
    op.create_index(
        "idx_info_bancaria_chave_pix",
        "info_bancaria",
        ["chave_pix"],
        postgresql_where=sa.text("chave_pix IS NOT NULL"),
    )
    add_update_timestamp_trigger("info_bancaria")

    op.execute(CONFLITO_PAPEL_POR_PAPEL_CIDADAO)
    op.execute(CONFLITO_PAPEL_TRIGGER)


def downgrade() -> None:
    """Drop citizen tables, their enums and the conflict trigger function."""
    drop_tables(
        "info_bancaria",
        "papel_cidadao",
        "dados_sociais",
        "situacao_moradia",
        "composicao_familiar",
        "cidadao",
    )
    op.execute("DROP FUNCTION IF EXISTS verificar_conflito_papel_composicao()")
    for enum_name in (
        "tipo_chave_pix_enum",
        "tipo_conta_enum",
        "tipo_papel_enum",
        "situacao_trabalho_enum",
        "tipo_moradia_enum",
        "parentesco_enum",
        "escolaridade_enum",
        "sexo_enum",
    ):
        drop_enum(enum_name)
