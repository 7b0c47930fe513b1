# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create user feedback, attachments and tags.

Revision ID: 1756720000000_create_feedback_schema
Revises: 1755800000000_add_avaliacao_historico_monitoramento
Create Date: 2025-09-01

tag.contador_uso counts the feedback rows a tag is attached to and is kept
by a trigger on feedback_tag. A second trigger stamps reading and resolution
times on feedback. The default tag set ships with the unit.
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

revision: str = "1756720000000_create_feedback_schema"
down_revision: Union[str, None] = "1755800000000_add_avaliacao_historico_monitoramento"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

FEEDBACK_TIPO = ("bug", "melhoria", "sugestao", "reclamacao", "elogio", "duvida", "outro")
FEEDBACK_PRIORIDADE = ("baixa", "media", "alta", "critica")
FEEDBACK_STATUS = (
    "aberto",
    "em_analise",
    "em_desenvolvimento",
    "resolvido",
    "fechado",
    "rejeitado",
)
TAG_CATEGORIA = (
    "funcionalidade",
    "interface",
    "performance",
    "seguranca",
    "usabilidade",
    "integracao",
    "mobile",
    "desktop",
    "geral",
)

COR_PADRAO_TAG = "#6B7280"

TAGS_PADRAO = [
    ("Interface", "Problemas ou sugestões relacionadas à interface do usuário", "interface", "#3B82F6"),
    ("Performance", "Questões relacionadas à velocidade e desempenho do sistema", "performance", "#EF4444"),
    ("Usabilidade", "Melhorias na experiência do usuário", "usabilidade", "#10B981"),
    ("Bug Crítico", "Erros que impedem o funcionamento normal do sistema", "funcionalidade", "#DC2626"),
    ("Melhoria", "Sugestões de melhorias e novas funcionalidades", "funcionalidade", "#8B5CF6"),
    ("Mobile", "Questões específicas da versão mobile", "mobile", "#F59E0B"),
    ("Segurança", "Questões relacionadas à segurança do sistema", "seguranca", "#EF4444"),
    ("Integração", "Problemas com integrações externas", "integracao", "#6366F1"),
    ("Documentação", "Melhorias na documentação e ajuda", "geral", COR_PADRAO_TAG),
    ("Acessibilidade", "Melhorias de acessibilidade", "usabilidade", "#059669"),
]

ATUALIZAR_CONTADOR_USO_TAG = """
    CREATE OR REPLACE FUNCTION atualizar_contador_uso_tag()
    RETURNS TRIGGER AS $$
    BEGIN
        IF TG_OP = 'INSERT' THEN
            UPDATE tag SET contador_uso = contador_uso + 1 WHERE id = NEW.tag_id;
            RETURN NEW;
        END IF;
        UPDATE tag SET contador_uso = GREATEST(contador_uso - 1, 0) WHERE id = OLD.tag_id;
        RETURN OLD;
    END;
    $$ LANGUAGE plpgsql
"""

CALCULAR_TEMPO_RESOLUCAO = """
    CREATE OR REPLACE FUNCTION calcular_tempo_resolucao_feedback()
    RETURNS TRIGGER AS $$
    BEGIN
        IF NEW.resolvido AND NOT OLD.resolvido THEN
            NEW.data_resolucao = now();
            NEW.tempo_resolucao_horas =
                EXTRACT(EPOCH FROM (NEW.data_resolucao - NEW.created_at)) / 3600;
        ELSIF NOT NEW.resolvido AND OLD.resolvido THEN
            NEW.data_resolucao = NULL;
            NEW.tempo_resolucao_horas = NULL;
        END IF;
        IF NEW.lido AND NOT OLD.lido THEN
            NEW.data_leitura = now();
        ELSIF NOT NEW.lido AND OLD.lido THEN
            NEW.data_leitura = NULL;
        END IF;
        RETURN NEW;
    END;
    $$ LANGUAGE plpgsql
"""


def upgrade() -> None:
    """Create tag, feedback, feedback_anexo and feedback_tag with their triggers."""
    create_enum("feedback_tipo_enum", FEEDBACK_TIPO)
    create_enum("feedback_prioridade_enum", FEEDBACK_PRIORIDADE)
    create_enum("feedback_status_enum", FEEDBACK_STATUS)
    create_enum("tag_categoria_enum", TAG_CATEGORIA)

    tag = op.create_table(
        "tag",
        id_column(),
        sa.Column("nome", sa.String(50), nullable=False),
        sa.Column("descricao", sa.Text, nullable=True),
        sa.Column(
            "categoria",
            enum_type("tag_categoria_enum", TAG_CATEGORIA),
            nullable=False,
            server_default=sa.text("'geral'"),
        ),
        sa.Column("cor", sa.String(7), nullable=False, server_default=COR_PADRAO_TAG),
        sa.Column("ativa", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("ordem_exibicao", sa.Integer, nullable=False, server_default="0"),
        sa.Column("contador_uso", sa.Integer, nullable=False, server_default="0"),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("atualizado_por", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["atualizado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("nome", name="uq_tag_nome"),
        sa.CheckConstraint("cor ~ '^#[0-9A-Fa-f]{6}$'", name="ck_tag_cor"),
        sa.CheckConstraint("contador_uso >= 0", name="ck_tag_contador_uso"),
    )
    op.create_index("idx_tag_categoria_ativa", "tag", ["categoria", "ativa"])
    add_update_timestamp_trigger("tag")

    op.create_table(
        "feedback",
        id_column(),
        sa.Column("tipo", enum_type("feedback_tipo_enum", FEEDBACK_TIPO), nullable=False),
        sa.Column("titulo", sa.String(200), nullable=False),
        sa.Column("descricao", sa.Text, nullable=False),
        sa.Column(
            "prioridade",
            enum_type("feedback_prioridade_enum", FEEDBACK_PRIORIDADE),
            nullable=False,
            server_default=sa.text("'media'"),
        ),
        sa.Column(
            "status",
            enum_type("feedback_status_enum", FEEDBACK_STATUS),
            nullable=False,
            server_default=sa.text("'aberto'"),
        ),
        sa.Column("pagina_origem", sa.String(500), nullable=True),
        sa.Column("url_origem", sa.String(1000), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("resolucao_tela", sa.String(20), nullable=True),
        sa.Column("versao_sistema", sa.String(50), nullable=True),
        sa.Column("informacoes_tecnicas", postgresql.JSONB, nullable=True),
        sa.Column("lido", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("resolvido", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("data_leitura", sa.DateTime(timezone=True), nullable=True),
        sa.Column("data_resolucao", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resposta_admin", sa.Text, nullable=True),
        sa.Column("tempo_resolucao_horas", sa.Integer, nullable=True),
        sa.Column("avaliacao_resolucao", sa.Integer, nullable=True),
        sa.Column("comentario_avaliacao", sa.Text, nullable=True),
        sa.Column("ip_origem", postgresql.INET, nullable=True),
        sa.Column("navegador", sa.String(100), nullable=True),
        sa.Column("sistema_operacional", sa.String(100), nullable=True),
        sa.Column("dispositivo", sa.String(100), nullable=True),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("atualizado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("lido_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("resolvido_por", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["atualizado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["lido_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["resolvido_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "avaliacao_resolucao IS NULL OR avaliacao_resolucao BETWEEN 1 AND 5",
            name="ck_feedback_avaliacao_resolucao",
        ),
    )
    op.create_index("idx_feedback_status_prioridade", "feedback", ["status", "prioridade"])
    op.create_index("idx_feedback_tipo_status", "feedback", ["tipo", "status"])
    op.create_index("idx_feedback_criado_por_status", "feedback", ["criado_por", "status"])
    op.create_index(
        "idx_feedback_nao_lidos",
        "feedback",
        [sa.text("created_at DESC")],
        postgresql_where=sa.text("NOT lido"),
    )
    op.create_index(
        "idx_feedback_busca_textual",
        "feedback",
        [sa.text("to_tsvector('portuguese', titulo || ' ' || descricao)")],
        postgresql_using="gin",
    )
    add_update_timestamp_trigger("feedback")
    op.execute(CALCULAR_TEMPO_RESOLUCAO)
    op.execute(
        """
        CREATE TRIGGER trg_feedback_tempo_resolucao
        BEFORE UPDATE ON feedback
        FOR EACH ROW EXECUTE FUNCTION calcular_tempo_resolucao_feedback()
        """
    )

    op.create_table(
        "feedback_anexo",
        id_column(),
        sa.Column("feedback_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("nome_original", sa.String(255), nullable=False),
        sa.Column("nome_arquivo", sa.String(255), nullable=False),
        sa.Column("caminho_arquivo", sa.String(500), nullable=False),
        sa.Column("tipo_mime", sa.String(100), nullable=False),
        sa.Column("tamanho", sa.BigInteger, nullable=False),
        sa.Column("hash_arquivo", sa.String(64), nullable=True),
        sa.Column("largura", sa.Integer, nullable=True),
        sa.Column("altura", sa.Integer, nullable=True),
        sa.Column("duracao", sa.Integer, nullable=True),
        sa.Column("metadados", postgresql.JSONB, nullable=True),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(["feedback_id"], ["feedback.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint("tamanho > 0", name="ck_feedback_anexo_tamanho"),
    )
    op.create_index("idx_feedback_anexo_feedback", "feedback_anexo", ["feedback_id"])

    op.create_table(
        "feedback_tag",
        sa.Column("feedback_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tag_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("criado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("feedback_id", "tag_id", name="pk_feedback_tag"),
        sa.ForeignKeyConstraint(["feedback_id"], ["feedback.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["tag_id"], ["tag.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["criado_por"], ["usuario.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_feedback_tag_tag", "feedback_tag", ["tag_id"])
    op.execute(ATUALIZAR_CONTADOR_USO_TAG)
    op.execute(
        """
        CREATE TRIGGER trg_feedback_tag_contador_uso
        AFTER INSERT OR DELETE ON feedback_tag
        FOR EACH ROW EXECUTE FUNCTION atualizar_contador_uso_tag()
        """
    )

    op.bulk_insert(
        tag,
        [
            {
                "nome": nome,
                "descricao": descricao,
                "categoria": categoria,
                "cor": cor,
                "ordem_exibicao": ordem,
            }
            for ordem, (nome, descricao, categoria, cor) in enumerate(TAGS_PADRAO, start=1)
        ],
    )


def downgrade() -> None:
    """Drop feedback tables, their trigger functions and enums."""
    drop_tables("feedback_tag", "feedback_anexo", "feedback", "tag")
    op.execute("DROP FUNCTION IF EXISTS atualizar_contador_uso_tag()")
    op.execute("DROP FUNCTION IF EXISTS calcular_tempo_resolucao_feedback()")
    drop_enum("tag_categoria_enum")
    drop_enum("feedback_status_enum")
    drop_enum("feedback_prioridade_enum")
    drop_enum("feedback_tipo_enum")
