# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create payments, payment history and payment receipts.

Revision ID: 1704067235000_create_pagamento_schema
Revises: 1704067230000_create_documento_schema
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
    enable_row_level_security,
    enum_type,
    id_column,
    timestamp_columns,
)

revision: str = "1704067235000_create_pagamento_schema"
down_revision: Union[str, None] = "1704067230000_create_documento_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUS_PAGAMENTO = ("pendente", "agendado", "liberado", "pago", "confirmado", "cancelado")
METODO_PAGAMENTO = ("pix", "deposito", "presencial", "doc")


def upgrade() -> None:
    """Create pagamento, historico_pagamento and comprovante_pagamento."""
    create_enum("status_pagamento_enum", STATUS_PAGAMENTO)
    create_enum("metodo_pagamento_enum", METODO_PAGAMENTO)

    op.create_table(
        "pagamento",
        id_column(),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("info_bancaria_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("valor", sa.Numeric(10, 2), nullable=False),
        sa.Column("numero_parcela", sa.Integer, nullable=False, server_default="1"),
        sa.Column("total_parcelas", sa.Integer, nullable=False, server_default="1"),
        sa.Column("data_vencimento", sa.Date, nullable=True),
        sa.Column("data_liberacao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_pagamento", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            enum_type("status_pagamento_enum", STATUS_PAGAMENTO),
            nullable=False,
            server_default=sa.text("'pendente'"),
        ),
        sa.Column(
            "metodo_pagamento",
            enum_type("metodo_pagamento_enum", METODO_PAGAMENTO),
            nullable=False,
        ),
        sa.Column("liberado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        sa.Column("dados_bancarios", postgresql.JSONB, nullable=True),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(
            ["info_bancaria_id"], ["info_bancaria.id"], ondelete="RESTRICT"
        ),
        sa.ForeignKeyConstraint(["liberado_por"], ["usuario.id"], ondelete="RESTRICT"),
        sa.CheckConstraint("valor > 0", name="ck_pagamento_valor"),
        sa.CheckConstraint(
            "numero_parcela BETWEEN 1 AND total_parcelas", name="ck_pagamento_parcela"
        ),
        sa.CheckConstraint(
            "status NOT IN ('liberado', 'pago', 'confirmado') OR data_liberacao IS NOT NULL",
            name="ck_pagamento_data_liberacao",
        ),
    )
    op.create_index(
        "uq_pagamento_parcela",
        "pagamento",
        ["solicitacao_id", "numero_parcela"],
        unique=True,
        postgresql_where=sa.text("removed_at IS NULL AND status <> 'cancelado'"),
    )
    op.create_index(
        "idx_pagamento_status_created_at",
        "pagamento",
        ["status", sa.text("created_at DESC")],
    )
    op.create_index(
        "idx_pagamento_vencimento",
        "pagamento",
        ["data_vencimento"],
        postgresql_where=sa.text("status IN ('pendente', 'agendado')"),
    )
    add_update_timestamp_trigger("pagamento")
    enable_row_level_security("pagamento")

    op.create_table(
        "historico_pagamento",
        id_column(),
        sa.Column("pagamento_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column(
            "status_anterior",
            enum_type("status_pagamento_enum", STATUS_PAGAMENTO),
            nullable=True,
        ),
        sa.Column(
            "status_atual",
            enum_type("status_pagamento_enum", STATUS_PAGAMENTO),
            nullable=False,
        ),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("observacao", sa.Text, nullable=True),
        sa.Column("dados_contexto", postgresql.JSONB, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["pagamento_id"], ["pagamento.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="SET NULL"),
    )
    op.create_index(
        "idx_historico_pagamento",
        "historico_pagamento",
        ["pagamento_id", sa.text("created_at DESC")],
    )

    op.create_table(
        "comprovante_pagamento",
        id_column(),
        sa.Column("pagamento_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tipo_documento", sa.String(50), nullable=False),
        sa.Column("nome_arquivo", sa.String(255), nullable=False),
        sa.Column("caminho_arquivo", sa.String(500), nullable=False),
        sa.Column("tamanho", sa.BigInteger, nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("hash_arquivo", sa.String(64), nullable=True),
        sa.Column("data_upload", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("uploaded_por", postgresql.UUID(as_uuid=False), nullable=False),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["pagamento_id"], ["pagamento.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["uploaded_por"], ["usuario.id"], ondelete="RESTRICT"),
        sa.CheckConstraint("tamanho > 0", name="ck_comprovante_pagamento_tamanho"),
    )
    op.create_index(
        "idx_comprovante_pagamento", "comprovante_pagamento", ["pagamento_id"]
    )
    add_update_timestamp_trigger("comprovante_pagamento")


def downgrade() -> None:
    """Drop payment tables and their enums."""
    drop_tables("comprovante_pagamento", "historico_pagamento", "pagamento")
    drop_enum("metodo_pagamento_enum")
    drop_enum("status_pagamento_enum")
