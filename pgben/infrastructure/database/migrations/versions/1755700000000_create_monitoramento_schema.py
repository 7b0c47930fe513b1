# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create home visit scheduling and visit records for benefit monitoring.

Revision ID: 1755700000000_create_monitoramento_schema
Revises: 1754000000000_create_whatsapp_flow_schema
Create Date: 2025-08-20

A technician schedules an agendamento_visita for a beneficiary, optionally
tied to the request that granted the benefit. The visit itself is recorded
once per schedule in visita_domiciliar, with the technician's findings and
whether the benefit should be renewed. vw_agendamentos_em_atraso lists the
schedules whose date passed while still open.
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

revision: str = "1755700000000_create_monitoramento_schema"
down_revision: Union[str, None] = "1754000000000_create_whatsapp_flow_schema"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUS_AGENDAMENTO = (
    "agendado",
    "confirmado",
    "em_andamento",
    "realizado",
    "cancelado",
    "reagendado",
    "nao_realizado",
)
TIPO_VISITA = ("inicial", "acompanhamento", "renovacao", "verificacao", "emergencial")
PRIORIDADE_VISITA = ("baixa", "normal", "alta", "urgente")
RESULTADO_VISITA = (
    "conforme",
    "nao_conforme",
    "parcialmente_conforme",
    "requer_acao",
    "beneficiario_ausente",
    "endereco_nao_localizado",
    "visita_inconclusiva",
    "visita_cancelada",
    "nao_realizada",
    "realizada_com_sucesso",
)
# Labels of parentesco_enum, created with the citizen schema
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

AGENDAMENTOS_EM_ATRASO = """
    CREATE VIEW vw_agendamentos_em_atraso AS
    SELECT
        av.*,
        EXTRACT(DAY FROM now() - av.data_agendamento)::integer AS dias_atraso
    FROM agendamento_visita av
    WHERE av.data_agendamento < now()
      AND av.status IN ('agendado', 'confirmado')
      AND av.removed_at IS NULL
"""


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_by", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("updated_by", postgresql.UUID(as_uuid=False), nullable=True),
    ]


def upgrade() -> None:
    """Create agendamento_visita, visita_domiciliar and the overdue view."""
    create_enum("status_agendamento_enum", STATUS_AGENDAMENTO)
    create_enum("tipo_visita_enum", TIPO_VISITA)
    create_enum("prioridade_visita_enum", PRIORIDADE_VISITA)
    create_enum("resultado_visita_enum", RESULTADO_VISITA)

    op.create_table(
        "agendamento_visita",
        id_column(),
        sa.Column("beneficiario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("tecnico_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("unidade_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("data_agendamento", sa.DateTime(timezone=True), nullable=False),
        sa.Column("tipo_visita", enum_type("tipo_visita_enum", TIPO_VISITA), nullable=False),
        sa.Column(
            "prioridade",
            enum_type("prioridade_visita_enum", PRIORIDADE_VISITA),
            nullable=False,
            server_default=sa.text("'normal'"),
        ),
        sa.Column(
            "status",
            enum_type("status_agendamento_enum", STATUS_AGENDAMENTO),
            nullable=False,
            server_default=sa.text("'agendado'"),
        ),
        sa.Column("endereco_visita", sa.Text, nullable=False),
        sa.Column("telefone_contato", sa.String(20), nullable=True),
        sa.Column(
            "notificar_beneficiario", sa.Boolean, nullable=False, server_default=sa.text("true")
        ),
        sa.Column("motivo_visita", sa.Text, nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        sa.Column("prazo_limite", sa.Date, nullable=True),
        sa.Column("dados_complementares", postgresql.JSONB, nullable=True),
        *_audit_columns(),
        *timestamp_columns(),
        sa.ForeignKeyConstraint(["beneficiario_id"], ["cidadao.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["solicitacao_id"], ["solicitacao.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["tecnico_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["unidade_id"], ["unidade.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["created_by"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["updated_by"], ["usuario.id"], ondelete="SET NULL"),
    )
    op.create_index("idx_agendamento_visita_beneficiario", "agendamento_visita", ["beneficiario_id"])
    op.create_index(
        "idx_agendamento_visita_tecnico_data",
        "agendamento_visita",
        ["tecnico_id", "data_agendamento"],
    )
    op.create_index("idx_agendamento_visita_unidade", "agendamento_visita", ["unidade_id"])
    op.create_index(
        "idx_agendamento_visita_abertos",
        "agendamento_visita",
        ["data_agendamento", "prioridade"],
        postgresql_where=sa.text(
            "status IN ('agendado', 'confirmado') AND removed_at IS NULL"
        ),
    )
    add_update_timestamp_trigger("agendamento_visita")

    op.create_table(
        "visita_domiciliar",
        id_column(),
        sa.Column("agendamento_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("beneficiario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("unidade_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("tecnico_responsavel_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("data_inicio", sa.DateTime(timezone=True), nullable=False),
        sa.Column("data_conclusao", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "resultado", enum_type("resultado_visita_enum", RESULTADO_VISITA), nullable=False
        ),
        sa.Column("foi_realizada", sa.Boolean, nullable=False, server_default=sa.text("false")),
        sa.Column("motivo_nao_realizacao", sa.Text, nullable=True),
        sa.Column("beneficiario_presente", sa.Boolean, nullable=True),
        sa.Column("pessoa_atendeu", sa.String(255), nullable=True),
        sa.Column(
            "relacao_pessoa_atendeu", enum_type("parentesco_enum", PARENTESCO), nullable=True
        ),
        sa.Column("endereco_visitado", sa.String(500), nullable=True),
        sa.Column("condicoes_habitacionais", sa.Text, nullable=True),
        sa.Column("situacao_socioeconomica", sa.Text, nullable=True),
        sa.Column("composicao_familiar_observada", sa.Text, nullable=True),
        sa.Column(
            "criterios_elegibilidade_mantidos",
            sa.Boolean,
            nullable=False,
            server_default=sa.text("true"),
        ),
        sa.Column(
            "problemas_elegibilidade", sa.Boolean, nullable=False, server_default=sa.text("false")
        ),
        sa.Column("descricao_problemas", sa.Text, nullable=True),
        sa.Column("necessidades_identificadas", sa.Text, nullable=True),
        sa.Column("encaminhamentos_realizados", sa.Text, nullable=True),
        sa.Column("recomenda_renovacao", sa.Boolean, nullable=True),
        sa.Column("justificativa_recomendacao", sa.Text, nullable=True),
        sa.Column(
            "necessita_nova_visita", sa.Boolean, nullable=False, server_default=sa.text("false")
        ),
        sa.Column("prazo_nova_visita", sa.Date, nullable=True),
        sa.Column("motivo_nova_visita", sa.Text, nullable=True),
        sa.Column("parecer_tecnico", sa.Text, nullable=True),
        sa.Column("nota_avaliacao", sa.Integer, nullable=True),
        sa.Column("pontuacao_risco", sa.Integer, nullable=True),
        sa.Column("latitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("longitude", sa.Numeric(9, 6), nullable=True),
        sa.Column("fotos_evidencia", postgresql.JSONB, nullable=True),
        sa.Column("dados_complementares", postgresql.JSONB, nullable=True),
        sa.Column("observacoes", sa.Text, nullable=True),
        sa.Column("cancelado_por", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("data_cancelamento", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        *timestamp_columns(),
        sa.UniqueConstraint("agendamento_id", name="uq_visita_domiciliar_agendamento"),
        sa.ForeignKeyConstraint(
            ["agendamento_id"], ["agendamento_visita.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["beneficiario_id"], ["cidadao.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["unidade_id"], ["unidade.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["tecnico_responsavel_id"], ["usuario.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["cancelado_por"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["created_by"], ["usuario.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["updated_by"], ["usuario.id"], ondelete="SET NULL"),
        sa.CheckConstraint(
            "data_conclusao IS NULL OR data_conclusao >= data_inicio",
            name="ck_visita_domiciliar_conclusao",
        ),
        sa.CheckConstraint(
            "nota_avaliacao IS NULL OR nota_avaliacao BETWEEN 1 AND 10",
            name="ck_visita_domiciliar_nota",
        ),
        sa.CheckConstraint(
            "(latitude IS NULL) = (longitude IS NULL)",
            name="ck_visita_domiciliar_coordenadas",
        ),
        sa.CheckConstraint(
            "latitude IS NULL OR (latitude BETWEEN -90 AND 90 AND longitude BETWEEN -180 AND 180)",
            name="ck_visita_domiciliar_coordenadas_faixa",
        ),
    )
    op.create_index(
        "idx_visita_domiciliar_beneficiario_data",
        "visita_domiciliar",
        ["beneficiario_id", sa.text("data_inicio DESC")],
    )
    op.create_index("idx_visita_domiciliar_resultado", "visita_domiciliar", ["resultado"])
    op.create_index(
        "idx_visita_domiciliar_pendencias",
        "visita_domiciliar",
        ["prazo_nova_visita"],
        postgresql_where=sa.text("necessita_nova_visita OR problemas_elegibilidade"),
    )
    add_update_timestamp_trigger("visita_domiciliar")

    op.execute(AGENDAMENTOS_EM_ATRASO)


def downgrade() -> None:
    """Drop the overdue view, visit tables and their enums."""
    op.execute("DROP VIEW IF EXISTS vw_agendamentos_em_atraso")
    drop_tables("visita_domiciliar", "agendamento_visita")
    drop_enum("resultado_visita_enum")
    drop_enum("prioridade_visita_enum")
    drop_enum("tipo_visita_enum")
    drop_enum("status_agendamento_enum")
