# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for the migration DDL helpers."""

import io
from collections.abc import Iterator

import pytest
from alembic.operations import Operations
from alembic.runtime.migration import MigrationContext

from pgben.infrastructure.database.migrations.helpers import (
    add_update_timestamp_trigger,
    create_enum,
    drop_tables,
    enable_row_level_security,
    enum_type,
    id_column,
    recreate_enum,
    timestamp_columns,
)


@pytest.fixture
def sql_buffer() -> Iterator[io.StringIO]:
    """Bind Alembic operations to an offline context writing into a buffer."""
    buffer = io.StringIO()
    context = MigrationContext.configure(
        dialect_name="postgresql",
        opts={"as_sql": True, "output_buffer": buffer, "literal_binds": True},
    )
    with Operations.context(context):
        yield buffer


def statements(buffer: io.StringIO) -> list[str]:
    return [" ".join(s.split()) for s in buffer.getvalue().split(";\n\n") if s.strip()]


class TestCreateEnum:
    """Tests for create_enum()."""

    def test_idempotent_do_block(self, sql_buffer: io.StringIO) -> None:
        create_enum("sexo_enum", ("masculino", "feminino"))

        sql = sql_buffer.getvalue()
        assert "CREATE TYPE sexo_enum AS ENUM ('masculino', 'feminino')" in sql
        assert "WHEN duplicate_object THEN null" in sql

    def test_quotes_labels(self, sql_buffer: io.StringIO) -> None:
        create_enum("odd_enum", ("d'agua",))

        assert "('d''agua')" in sql_buffer.getvalue()


class TestEnumType:
    """Tests for enum_type()."""

    def test_does_not_create_type(self) -> None:
        column_type = enum_type("sexo_enum", ("masculino", "feminino"))

        assert column_type.name == "sexo_enum"
        assert column_type.create_type is False
        assert list(column_type.enums) == ["masculino", "feminino"]


class TestRecreateEnum:
    """Tests for recreate_enum()."""

    def test_statement_order(self, sql_buffer: io.StringIO) -> None:
        recreate_enum(
            "status_enum",
            ("aberto", "fechado"),
            [("pedido", "status", "aberto"), ("historico", "status_atual", None)],
        )

        sql = statements(sql_buffer)
        assert sql[0] == "ALTER TYPE status_enum RENAME TO status_enum_old"
        assert "CREATE TYPE status_enum AS ENUM ('aberto', 'fechado')" in sql[1]
        assert sql[2:] == [
            "ALTER TABLE pedido ALTER COLUMN status DROP DEFAULT",
            "ALTER TABLE pedido ALTER COLUMN status TYPE status_enum USING status::text::status_enum",
            "ALTER TABLE pedido ALTER COLUMN status SET DEFAULT 'aberto'::status_enum",
            "ALTER TABLE historico ALTER COLUMN status_atual TYPE status_enum "
            "USING status_atual::text::status_enum",
            "DROP TYPE IF EXISTS status_enum_old",
        ]


class TestTableHelpers:
    """Tests for column and table helpers."""

    def test_id_column_defaults_to_uuid(self) -> None:
        column = id_column()

        assert column.primary_key is True
        assert "uuid_generate_v4()" in str(column.server_default.arg)

    def test_timestamp_columns_with_soft_delete(self) -> None:
        names = [column.name for column in timestamp_columns()]

        assert names == ["created_at", "updated_at", "removed_at"]

    def test_timestamp_columns_without_soft_delete(self) -> None:
        names = [column.name for column in timestamp_columns(soft_delete=False)]

        assert names == ["created_at", "updated_at"]

    def test_update_timestamp_trigger(self, sql_buffer: io.StringIO) -> None:
        add_update_timestamp_trigger("cidadao")

        sql = statements(sql_buffer)[0]
        assert sql.startswith("CREATE TRIGGER trg_cidadao_update_timestamp BEFORE UPDATE ON cidadao")
        assert sql.endswith("EXECUTE FUNCTION update_timestamp()")

    def test_row_level_security(self, sql_buffer: io.StringIO) -> None:
        enable_row_level_security("pagamento")

        assert statements(sql_buffer) == [
            "ALTER TABLE pagamento ENABLE ROW LEVEL SECURITY",
            "CREATE POLICY pagamento_policy ON pagamento USING (TRUE) WITH CHECK (TRUE)",
        ]

    def test_drop_tables_in_given_order(self, sql_buffer: io.StringIO) -> None:
        drop_tables("filho", "pai")

        assert statements(sql_buffer) == ["DROP TABLE filho", "DROP TABLE pai"]
