# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create base structure: extensions, utility functions and system settings.

Revision ID: 1704067200000_create_base_structure
Revises: None
Create Date: 2024-01-01

Creates the PostgreSQL extensions used across the schema, the
update_timestamp() trigger function, CPF/NIS validators, the LGPD masking
function and the configuracao_sistema key/value table.
"""

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

from pgben.infrastructure.database.migrations.helpers import (
    add_update_timestamp_trigger,
    id_column,
    timestamp_columns,
)

revision: str = "1704067200000_create_base_structure"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

EXTENSIONS = ("uuid-ossp", "pgcrypto", "pg_trgm", "btree_gin", "btree_gist")

CONFIGURACOES_INICIAIS = [
    ("sistema.nome", "PGBen", "Nome do sistema", "sistema", "string"),
    ("sistema.versao", "1.0.0", "Versão do sistema", "sistema", "string"),
    (
        "sistema.orgao",
        "SEMTAS",
        "Secretaria Municipal do Trabalho e Assistência Social",
        "sistema",
        "string",
    ),
    ("seguranca.tentativas_login", "5", "Tentativas de login antes do bloqueio", "seguranca", "number"),
    ("seguranca.tempo_bloqueio_minutos", "30", "Duração do bloqueio de login", "seguranca", "number"),
    ("seguranca.expiracao_token_minutos", "60", "Validade do token de acesso", "seguranca", "number"),
    ("upload.tamanho_maximo_mb", "10", "Tamanho máximo de arquivo enviado", "upload", "number"),
    ("solicitacao.prazo_analise_dias", "30", "Prazo padrão para análise de solicitações", "solicitacao", "number"),
    ("lgpd.mascarar_dados", "true", "Mascarar dados sensíveis em relatórios", "lgpd", "boolean"),
]


def upgrade() -> None:
    """Create extensions, utility functions and configuracao_sistema."""
    for extension in EXTENSIONS:
        op.execute(f'CREATE EXTENSION IF NOT EXISTS "{extension}"')

    op.execute(
        """
        CREATE OR REPLACE FUNCTION update_timestamp()
        RETURNS TRIGGER AS $$
        BEGIN
            NEW.updated_at = now();
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql
        """
    )

    # Mod-11 check digits; repeated-digit sequences are rejected
    op.execute(
        r"""
        CREATE OR REPLACE FUNCTION validar_cpf(cpf TEXT)
        RETURNS BOOLEAN AS $$
        DECLARE
            digitos TEXT;
            soma INTEGER;
            resto INTEGER;
            dv1 INTEGER;
            dv2 INTEGER;
        BEGIN
            IF cpf IS NULL THEN
                RETURN TRUE;
            END IF;

            digitos := regexp_replace(cpf, '[^0-9]', '', 'g');
            IF length(digitos) <> 11 OR digitos ~ '^(.)\1{10}$' THEN
                RETURN FALSE;
            END IF;

            soma := 0;
            FOR i IN 1..9 LOOP
                soma := soma + substr(digitos, i, 1)::INTEGER * (11 - i);
            END LOOP;
            resto := soma % 11;
            dv1 := CASE WHEN resto < 2 THEN 0 ELSE 11 - resto END;

            soma := 0;
            FOR i IN 1..9 LOOP
                soma := soma + substr(digitos, i, 1)::INTEGER * (12 - i);
            END LOOP;
            soma := soma + dv1 * 2;
            resto := soma % 11;
            dv2 := CASE WHEN resto < 2 THEN 0 ELSE 11 - resto END;

            RETURN substr(digitos, 10, 1)::INTEGER = dv1
               AND substr(digitos, 11, 1)::INTEGER = dv2;
        END;
        $$ LANGUAGE plpgsql IMMUTABLE
        """
    )

    op.execute(
        r"""
        CREATE OR REPLACE FUNCTION validar_nis(nis TEXT)
        RETURNS BOOLEAN AS $$
        DECLARE
            digitos TEXT;
            pesos INTEGER[] := ARRAY[3, 2, 9, 8, 7, 6, 5, 4, 3, 2];
            soma INTEGER := 0;
            resto INTEGER;
            dv INTEGER;
        BEGIN
            IF nis IS NULL THEN
                RETURN TRUE;
            END IF;

            digitos := regexp_replace(nis, '[^0-9]', '', 'g');
            IF length(digitos) <> 11 OR digitos ~ '^(.)\1{10}$' THEN
                RETURN FALSE;
            END IF;

            FOR i IN 1..10 LOOP
                soma := soma + substr(digitos, i, 1)::INTEGER * pesos[i];
            END LOOP;
            resto := soma % 11;
            dv := CASE WHEN resto < 2 THEN 0 ELSE 11 - resto END;

            RETURN substr(digitos, 11, 1)::INTEGER = dv;
        END;
        $$ LANGUAGE plpgsql IMMUTABLE
        """
    )

    op.execute(
        """
        CREATE OR REPLACE FUNCTION mascarar_dado_sensivel(dado TEXT, tipo TEXT)
        RETURNS TEXT AS $$
        BEGIN
            IF dado IS NULL THEN
                RETURN NULL;
            END IF;

            CASE tipo
                WHEN 'cpf' THEN
                    RETURN substring(dado, 1, 3) || '.XXX.XXX-' || substring(dado, 10, 2);
                WHEN 'nis' THEN
                    RETURN substring(dado, 1, 3) || '.XXXXX.XX-' || substring(dado, 11, 1);
                WHEN 'email' THEN
                    RETURN substring(dado, 1, 2) || 'XXXX'
                        || substring(dado FROM position('@' IN dado));
                WHEN 'telefone' THEN
                    RETURN '(' || substring(dado, 1, 2) || ') '
                        || substring(dado, 3, 1) || 'XXX-XXXX';
                WHEN 'nome' THEN
                    RETURN split_part(dado, ' ', 1) || ' XXXXXXXX';
                ELSE
                    RETURN 'XXXXXXXX';
            END CASE;
        END;
        $$ LANGUAGE plpgsql IMMUTABLE
        """
    )

    configuracao = op.create_table(
        "configuracao_sistema",
        id_column(),
        sa.Column("chave", sa.String(100), nullable=False),
        sa.Column("valor", sa.Text, nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column("categoria", sa.String(50), nullable=False, server_default="geral"),
        sa.Column("tipo_valor", sa.String(20), nullable=False, server_default="string"),
        sa.Column("editavel", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column(
            "metadados",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        *timestamp_columns(soft_delete=False),
        sa.UniqueConstraint("chave", name="uq_configuracao_sistema_chave"),
        sa.CheckConstraint(
            "tipo_valor IN ('string', 'number', 'boolean', 'json')",
            name="ck_configuracao_sistema_tipo_valor",
        ),
    )
    op.create_index(
        "idx_configuracao_sistema_categoria", "configuracao_sistema", ["categoria"]
    )
    add_update_timestamp_trigger("configuracao_sistema")

    op.bulk_insert(
        configuracao,
        [
            {
                "chave": chave,
                "valor": valor,
                "descricao": descricao,
                "categoria": categoria,
                "tipo_valor": tipo_valor,
            }
            for chave, valor, descricao, categoria, tipo_valor in CONFIGURACOES_INICIAIS
        ],
    )


def downgrade() -> None:
    """Drop configuracao_sistema and the utility functions.

    Extensions stay installed.
    """
    op.drop_table("configuracao_sistema")
    op.execute("DROP FUNCTION IF EXISTS mascarar_dado_sensivel(TEXT, TEXT)")
    op.execute("DROP FUNCTION IF EXISTS validar_nis(TEXT)")
    op.execute("DROP FUNCTION IF EXISTS validar_cpf(TEXT)")
    op.execute("DROP FUNCTION IF EXISTS update_timestamp()")
