# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create WhatsApp Flows session and request log tables.

Revision ID: 1754000000000_create_whatsapp_flow_schema
Revises: 1751300000000_add_status_suspensao_solicitacao
Create Date: 2025-07-31

A session is keyed by the flow_token WhatsApp sends with every request and
keeps the screen the citizen is on plus the data collected so far.
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

revision: str = "1754000000000_create_whatsapp_flow_schema"
down_revision: Union[str, None] = "1751300000000_add_status_suspensao_solicitacao"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

STATUS_SESSAO_FLOW = ("ativa", "concluida", "expirada", "erro")
# WhatsApp sends INIT and BACK in upper case.
TIPO_ACAO_FLOW = ("INIT", "BACK", "data_exchange", "ping", "complete")


def upgrade() -> None:
    """Create whatsapp_flow_sessions and whatsapp_flow_logs."""
    create_enum("whatsapp_flow_session_status_enum", STATUS_SESSAO_FLOW)
    create_enum("whatsapp_flow_action_enum", TIPO_ACAO_FLOW)

    op.create_table(
        "whatsapp_flow_sessions",
        id_column(),
        sa.Column("flow_token", sa.String(255), nullable=False),
        sa.Column("current_screen", sa.String(100), nullable=True),
        sa.Column(
            "session_data",
            postgresql.JSONB,
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "status",
            enum_type("whatsapp_flow_session_status_enum", STATUS_SESSAO_FLOW),
            nullable=False,
            server_default=sa.text("'ativa'"),
        ),
        sa.Column("telefone", sa.String(20), nullable=True),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(["cidadao_id"], ["cidadao.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["usuario_id"], ["usuario.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("flow_token", name="uq_whatsapp_flow_sessions_flow_token"),
        sa.CheckConstraint(
            "expires_at > created_at", name="ck_whatsapp_flow_sessions_expiracao"
        ),
    )
    op.create_index(
        "idx_whatsapp_flow_sessions_ativas",
        "whatsapp_flow_sessions",
        ["expires_at"],
        postgresql_where=sa.text("status = 'ativa'"),
    )
    add_update_timestamp_trigger("whatsapp_flow_sessions")

    op.create_table(
        "whatsapp_flow_logs",
        id_column(),
        sa.Column("session_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("screen_type", sa.String(100), nullable=True),
        sa.Column(
            "action_type",
            enum_type("whatsapp_flow_action_enum", TIPO_ACAO_FLOW),
            nullable=True,
        ),
        sa.Column("action_description", sa.Text, nullable=True),
        sa.Column("request_data", postgresql.JSONB, nullable=True),
        sa.Column("response_data", postgresql.JSONB, nullable=True),
        sa.Column("success", sa.Boolean, nullable=False, server_default=sa.text("true")),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("processing_time_ms", sa.Integer, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.ForeignKeyConstraint(
            ["session_id"], ["whatsapp_flow_sessions.id"], ondelete="CASCADE"
        ),
        sa.CheckConstraint(
            "success OR error_message IS NOT NULL", name="ck_whatsapp_flow_logs_erro"
        ),
    )
    op.create_index(
        "idx_whatsapp_flow_logs_session_created",
        "whatsapp_flow_logs",
        ["session_id", sa.text("created_at DESC")],
    )


def downgrade() -> None:
    """Drop the WhatsApp Flows tables."""
    drop_tables("whatsapp_flow_logs", "whatsapp_flow_sessions")
    drop_enum("whatsapp_flow_action_enum")
    drop_enum("whatsapp_flow_session_status_enum")
