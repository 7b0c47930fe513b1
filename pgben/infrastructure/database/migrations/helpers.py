# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Reusable DDL building blocks for migration units.

Every helper issues its DDL through Alembic's ``op`` proxy, so it works both
against a live connection and in offline SQL rendering. Each ``op.execute``
carries exactly one statement: asyncpg prepares statements one at a time.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql


def _quote_literal(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def create_enum(name: str, values: Sequence[str]) -> None:
    """Create a PostgreSQL enum type, ignoring it if it already exists."""
    labels = ", ".join(_quote_literal(v) for v in values)
    op.execute(
        f"""
        DO $$ BEGIN
            CREATE TYPE {name} AS ENUM ({labels});
        EXCEPTION
            WHEN duplicate_object THEN null;
        END $$
        """
    )


def drop_enum(name: str) -> None:
    op.execute(f"DROP TYPE IF EXISTS {name}")


def enum_type(name: str, values: Sequence[str]) -> postgresql.ENUM:
    """Column type bound to an enum created separately with create_enum()."""
    return postgresql.ENUM(*values, name=name, create_type=False)


def recreate_enum(
    name: str,
    values: Sequence[str],
    columns: Sequence[tuple[str, str, str | None]],
) -> None:
    """Rebuild an enum type with a new label set.

    PostgreSQL cannot drop a label from an enum, so the type is renamed,
    recreated and every dependent column is cast over to it.

    Args:
        name: Enum type name.
        values: Labels of the rebuilt type. Rows must not hold other labels.
        columns: ``(table, column, default_label)`` for each column typed with
            the enum. ``default_label`` is None for columns without a default.
    """
    old_name = f"{name}_old"
    op.execute(f"ALTER TYPE {name} RENAME TO {old_name}")
    create_enum(name, values)
    for table, column, default in columns:
        if default is not None:
            op.execute(f"ALTER TABLE {table} ALTER COLUMN {column} DROP DEFAULT")
        op.execute(
            f"ALTER TABLE {table} ALTER COLUMN {column} TYPE {name} "
            f"USING {column}::text::{name}"
        )
        if default is not None:
            op.execute(
                f"ALTER TABLE {table} ALTER COLUMN {column} "
                f"SET DEFAULT {_quote_literal(default)}::{name}"
            )
    drop_enum(old_name)


def id_column() -> sa.Column:
    return sa.Column(
        "id",
        postgresql.UUID(as_uuid=False),
        server_default=sa.text("uuid_generate_v4()"),
        primary_key=True,
    )


def timestamp_columns(soft_delete: bool = True) -> list[sa.Column]:
    """created_at and updated_at columns, plus removed_at for soft delete."""
    columns = [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
    ]
    if soft_delete:
        columns.append(sa.Column("removed_at", sa.DateTime(timezone=True), nullable=True))
    return columns


def add_update_timestamp_trigger(table: str) -> None:
    """Keep ``updated_at`` current on every UPDATE of ``table``."""
    op.execute(
        f"""
        CREATE TRIGGER trg_{table}_update_timestamp
        BEFORE UPDATE ON {table}
        FOR EACH ROW EXECUTE FUNCTION update_timestamp()
        """
    )


def enable_row_level_security(table: str) -> None:
    """Enable RLS on ``table`` with a permissive ``<table>_policy``."""
    op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
    op.execute(
        f"CREATE POLICY {table}_policy ON {table} USING (TRUE) WITH CHECK (TRUE)"
    )


def drop_tables(*tables: str) -> None:
    """Drop tables in the given order, together with their indexes and triggers."""
    for table in tables:
        op.drop_table(table)
