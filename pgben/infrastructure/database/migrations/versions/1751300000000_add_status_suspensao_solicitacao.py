# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Add suspended and blocked states to benefit requests.

Revision ID: 1751300000000_add_status_suspensao_solicitacao
Revises: 1751100000000_create_sistema_aprovacao_schema
Create Date: 2025-06-30

Requires PostgreSQL 12 or later: ALTER TYPE ... ADD VALUE runs inside the
unit's transaction.
"""

from typing import Sequence, Union

from alembic import op

from pgben.infrastructure.database.migrations.helpers import recreate_enum

revision: str = "1751300000000_add_status_suspensao_solicitacao"
down_revision: Union[str, None] = "1751100000000_create_sistema_aprovacao_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOVOS_STATUS = ("suspensa", "bloqueada")

STATUS_SOLICITACAO_ANTERIOR = (
    "rascunho",
    "pendente",
    "em_analise",
    "aguardando_documentos",
    "aprovada",
    "indeferida",
    "liberada",
    "cancelada",
    "em_processamento",
    "concluida",
    "arquivada",
)

# Suspended or blocked requests fall back to the state they were in.
STATUS_REVERSAO = "aprovada"


def upgrade() -> None:
    """Add 'suspensa' and 'bloqueada' to status_solicitacao_enum."""
    for status in NOVOS_STATUS:
        op.execute(f"ALTER TYPE status_solicitacao_enum ADD VALUE IF NOT EXISTS '{status}'")


def downgrade() -> None:
    """Remap rows holding the new labels and rebuild the enum without them."""
    removidos = ", ".join(f"'{status}'" for status in NOVOS_STATUS)
    for table, column in (
        ("solicitacao", "status"),
        ("historico_status_solicitacao", "status_anterior"),
        ("historico_status_solicitacao", "status_atual"),
    ):
        op.execute(
            f"UPDATE {table} SET {column} = '{STATUS_REVERSAO}' "
            f"WHERE {column}::text IN ({removidos})"
        )

    recreate_enum(
        "status_solicitacao_enum",
        STATUS_SOLICITACAO_ANTERIOR,
        [
            ("solicitacao", "status", "rascunho"),
            ("historico_status_solicitacao", "status_anterior", None),
            ("historico_status_solicitacao", "status_atual", None),
        ],
    )
