# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Replace papel_cidadao with a CPF-based family-composition conflict check.

Revision ID: 1748544953621_replace_papel_cidadao_conflict_check
Revises: 1704067247000_create_metricas_definicao_schema
Create Date: 2025-05-29

A person registered as an active citizen (cidadao with removed_at IS NULL)
is a beneficiary in their own right and cannot be listed in another family's
composicao_familiar. The role table is dropped and the trigger function now
checks cidadao directly by CPF.
"""

import importlib
from typing import Sequence, Union

from alembic import op

from pgben.infrastructure.database.migrations.helpers import drop_enum

revision: str = "1748544953621_replace_papel_cidadao_conflict_check"
down_revision: Union[str, None] = "1704067247000_create_metricas_definicao_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

CONFLITO_PAPEL_POR_CPF = """
    CREATE OR REPLACE FUNCTION verificar_conflito_papel_composicao()
    RETURNS TRIGGER AS $$
    BEGIN
        IF NEW.removed_at IS NULL AND EXISTS (
            SELECT 1
            FROM cidadao c
            WHERE c.cpf = NEW.cpf
              AND c.id <> NEW.cidadao_id
              AND c.removed_at IS NULL
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


def _cidadao_schema():
    return importlib.import_module(
        "pgben.infrastructure.database.migrations.versions."
        "1704067213000_create_cidadao_schema"
    )


def upgrade() -> None:
    """Swap the conflict check to cidadao.cpf and drop papel_cidadao."""
    op.execute(CONFLITO_PAPEL_POR_CPF)
    op.drop_table("papel_cidadao")
    drop_enum("tipo_papel_enum")


def downgrade() -> None:
    """Restore papel_cidadao and the role-based conflict check."""
    cidadao_schema = _cidadao_schema()
    cidadao_schema.create_papel_cidadao()
    op.execute(cidadao_schema.CONFLITO_PAPEL_POR_PAPEL_CIDADAO)
