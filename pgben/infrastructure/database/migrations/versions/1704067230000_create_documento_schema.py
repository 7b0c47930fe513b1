# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create the documento table for files attached to citizens and requests.

Revision ID: 1704067230000_create_documento_schema
Revises: 1704067228000_create_dados_beneficio_schema
Create Date: 2024-01-01
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from pgben.infrastructure.database.migrations.helpers import (
    add_update_timestamp_trigger,
    drop_tables,
    enable_row_level_security,
    enum_type,
    id_column,
    timestamp_columns,
)

revision: str = "1704067230000_create_documento_schema"
down_revision: Union[str, None] = "1704067228000_create_dados_beneficio_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# Labels of tipo_documento_enum, created with the benefit schema
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
    """Create documento with soft delete and row-level security."""
    op.create_table(
        "documento",
        id_column(),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("tipo", enum_type("tipo_documento_enum", TIPO_DOCUMENTO), nullable=False),
        sa.Column("nome_arquivo", sa.String(255), nullable=False),
        sa.Column("nome_original", sa.String(255), nullable=False),
        sa.Column("caminho", sa.String(500), nullable=False),
        sa.Column("thumbnail", sa.String(500), nullable=True),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("tamanho", sa.BigInteger, nullable=False),
        sa.Column("mimetype", sa.String(100), nullable=False),
        sa.Column("hash_arquivo", sa.String(64), nullable=True),
        sa.Column("data_upload", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("data_validade", sa.Date, nullable=True),
        sa.Column("usuario_upload_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("verificado", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("data_verificacao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("usuario_verificacao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("observacoes_verificacao", sa.Text, nullable=True),
        sa.Column("metadados", postgresql.JSONB, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["cidadao_id"], ["cidadao.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["usuario_upload_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["usuario_verificacao_id"], ["usuario.id"], ondelete="SET NULL"
        ),
        sa.CheckConstraint("tamanho > 0", name="ck_documento_tamanho"),
        sa.CheckConstraint(
            "verificado = (data_verificacao IS NOT NULL)",
            name="ck_documento_verificacao",
        ),
    )
    op.create_index("idx_documento_cidadao", "documento", ["cidadao_id"])
    op.create_index(
        "idx_documento_solicitacao",
        "documento",
        ["solicitacao_id"],
        postgresql_where=sa.text("solicitacao_id IS NOT NULL"),
    )
    op.create_index(
        "idx_documento_tipo_ativo",
        "documento",
        ["tipo"],
        postgresql_where=sa.text("removed_at IS NULL"),
    )
    op.create_index(
        "idx_documento_hash",
        "documento",
        ["hash_arquivo"],
        postgresql_where=sa.text("hash_arquivo IS NOT NULL"),
    )
    add_update_timestamp_trigger("documento")
    enable_row_level_security("documento")


def downgrade() -> None:
    """Drop documento."""
    drop_tables("documento")
