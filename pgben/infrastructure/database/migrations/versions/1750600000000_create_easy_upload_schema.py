# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Create EasyUpload tokens and sessions for citizen self-service uploads.

Revision ID: 1750600000000_create_easy_upload_schema
Revises: 1748544953621_replace_papel_cidadao_conflict_check
Create Date: 2025-06-22

A technician issues an upload token (shared as a QR code or link) and the
citizen uploads documents through one or more sessions bound to it.
Documents uploaded this way keep a reference to their session.
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

revision: str = "1750600000000_create_easy_upload_schema"
down_revision: Union[str, None] = "1748544953621_replace_papel_cidadao_conflict_check"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UPLOAD_TOKEN_STATUS = ("ativo", "usado", "expirado", "cancelado")
UPLOAD_SESSION_STATUS = ("iniciada", "ativa", "completada", "expirada", "cancelada", "erro")


def upgrade() -> None:
    """Create upload_tokens and upload_sessions and link documento to sessions."""
    create_enum("upload_token_status_enum", UPLOAD_TOKEN_STATUS)
    create_enum("upload_session_status_enum", UPLOAD_SESSION_STATUS)

    op.create_table(
        "upload_tokens",
        id_column(),
        sa.Column("usuario_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("solicitacao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("cidadao_id", postgresql.UUID(as_uuid=False), nullable=True),
        sa.Column("token", sa.String(500), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "status",
            enum_type("upload_token_status_enum", UPLOAD_TOKEN_STATUS),
            nullable=False,
            server_default=sa.text("'ativo'"),
        ),
        sa.Column("max_files", sa.Integer, nullable=False, server_default="10"),
        sa.Column("required_documents", postgresql.JSONB, nullable=True),
        sa.Column("metadata", postgresql.JSONB, nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_by", postgresql.UUID(as_uuid=False), nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(
            ["usuario_id"], ["usuario.id"], ondelete="CASCADE", onupdate="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["solicitacao_id"], ["solicitacao.id"], ondelete="CASCADE", onupdate="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["cidadao_id"], ["cidadao.id"], ondelete="CASCADE", onupdate="CASCADE"
        ),
        sa.ForeignKeyConstraint(
            ["cancelled_by"], ["usuario.id"], ondelete="SET NULL", onupdate="CASCADE"
        ),
        sa.UniqueConstraint("token", name="uq_upload_tokens_token"),
        sa.CheckConstraint("expires_at > created_at", name="ck_upload_tokens_expiracao"),
        sa.CheckConstraint("max_files BETWEEN 1 AND 50", name="ck_upload_tokens_max_files"),
        sa.CheckConstraint(
            "used_at IS NULL OR cancelled_at IS NULL",
            name="ck_upload_tokens_uso_cancelamento",
        ),
        sa.CheckConstraint(
            "(cancelled_at IS NULL) = (cancelled_by IS NULL)",
            name="ck_upload_tokens_cancelamento",
        ),
    )
    op.create_index("idx_upload_tokens_usuario_status", "upload_tokens", ["usuario_id", "status"])
    op.create_index("idx_upload_tokens_status_expires", "upload_tokens", ["status", "expires_at"])
    op.create_index("idx_upload_tokens_solicitacao", "upload_tokens", ["solicitacao_id"])
    op.create_index("idx_upload_tokens_cidadao", "upload_tokens", ["cidadao_id"])
    op.create_index(
        "idx_upload_tokens_token_hash", "upload_tokens", ["token"], postgresql_using="hash"
    )
    op.create_index(
        "idx_upload_tokens_metadata", "upload_tokens", ["metadata"], postgresql_using="gin"
    )
    add_update_timestamp_trigger("upload_tokens")

    op.create_table(
        "upload_sessions",
        id_column(),
        sa.Column("token_id", postgresql.UUID(as_uuid=False), nullable=False),
        sa.Column("ip_address", sa.String(45), nullable=True),
        sa.Column("user_agent", sa.Text, nullable=True),
        sa.Column("device_fingerprint", sa.String(255), nullable=True),
        sa.Column("files_uploaded", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_size_bytes", sa.BigInteger, nullable=False, server_default="0"),
        sa.Column("progress_percentage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_activity_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            enum_type("upload_session_status_enum", UPLOAD_SESSION_STATUS),
            nullable=False,
            server_default=sa.text("'iniciada'"),
        ),
        sa.Column("error_message", sa.Text, nullable=True),
        sa.Column("session_metadata", postgresql.JSONB, nullable=True),
        sa.Column("upload_progress", postgresql.JSONB, nullable=True),
        *timestamp_columns(soft_delete=False),
        sa.ForeignKeyConstraint(
            ["token_id"], ["upload_tokens.id"], ondelete="CASCADE", onupdate="CASCADE"
        ),
        sa.CheckConstraint(
            "progress_percentage BETWEEN 0 AND 100",
            name="ck_upload_sessions_progress_percentage",
        ),
        sa.CheckConstraint(
            "files_uploaded >= 0 AND total_size_bytes >= 0",
            name="ck_upload_sessions_contadores",
        ),
        sa.CheckConstraint(
            "completed_at IS NULL OR completed_at >= started_at",
            name="ck_upload_sessions_conclusao",
        ),
    )
    op.create_index("idx_upload_sessions_token_status", "upload_sessions", ["token_id", "status"])
    op.create_index("idx_upload_sessions_ip_started", "upload_sessions", ["ip_address", "started_at"])
    op.create_index(
        "idx_upload_sessions_progress",
        "upload_sessions",
        ["upload_progress"],
        postgresql_using="gin",
    )
    add_update_timestamp_trigger("upload_sessions")

    op.add_column(
        "documento",
        sa.Column("upload_session_id", postgresql.UUID(as_uuid=False), nullable=True),
    )
    op.create_foreign_key(
        "fk_documento_upload_session",
        "documento",
        "upload_sessions",
        ["upload_session_id"],
        ["id"],
        ondelete="SET NULL",
    )
    op.create_index(
        "idx_documento_upload_session",
        "documento",
        ["upload_session_id"],
        postgresql_where=sa.text("upload_session_id IS NOT NULL"),
    )


def downgrade() -> None:
    """Drop EasyUpload tables and the documento session link."""
    op.drop_index("idx_documento_upload_session", table_name="documento")
    op.drop_constraint("fk_documento_upload_session", "documento", type_="foreignkey")
    op.drop_column("documento", "upload_session_id")
    drop_tables("upload_sessions", "upload_tokens")
    drop_enum("upload_session_status_enum")
    drop_enum("upload_token_status_enum")
