# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Static checks on the rendered migration chain.

Every unit is rendered to SQL without a database and the statements are
compared: what an upgrade creates its downgrade must drop, and foreign
keys may only point at tables that already exist.
"""

import re

import pytest


CREATE_TABLE = re.compile(r'CREATE TABLE (?:IF NOT EXISTS )?"?(\w+)"?')
DROP_TABLE = re.compile(r'DROP TABLE (?:IF EXISTS )?"?(\w+)"?')
CREATE_ENUM = re.compile(r"CREATE TYPE (\w+) AS ENUM")
DROP_TYPE = re.compile(r"DROP TYPE (?:IF EXISTS )?(\w+)")
REFERENCES = re.compile(r'REFERENCES "?(\w+)"?')
CREATE_FUNCTION = re.compile(r"CREATE OR REPLACE FUNCTION (\w+)\(")
DROP_FUNCTION = re.compile(r"DROP FUNCTION (?:IF EXISTS )?(\w+)\(")

RLS_TABLES = {
    "cidadao",
    "composicao_familiar",
    "solicitacao",
    "historico_status_solicitacao",
    "documento",
    "pagamento",
    "logs_auditoria",
    "configuracao_integracao",
}


class TestDowngradeReversesUpgrade:
    """A downgrade removes everything its upgrade created."""

    def test_created_tables_are_dropped(self, rendered_units: list) -> None:
        for rendered in rendered_units:
            created = set(CREATE_TABLE.findall(rendered.upgrade_sql))
            dropped = set(DROP_TABLE.findall(rendered.downgrade_sql))

            assert created <= dropped, (
                f"{rendered.unit.name} leaves tables behind: {sorted(created - dropped)}"
            )

    def test_created_enum_types_are_dropped(self, rendered_units: list) -> None:
        for rendered in rendered_units:
            created = set(CREATE_ENUM.findall(rendered.upgrade_sql))
            dropped = set(DROP_TYPE.findall(rendered.downgrade_sql))

            assert created <= dropped, (
                f"{rendered.unit.name} leaves enum types behind: {sorted(created - dropped)}"
            )

    def test_dropped_tables_are_restored(self, rendered_units: list) -> None:
        for rendered in rendered_units:
            dropped = set(DROP_TABLE.findall(rendered.upgrade_sql))
            restored = set(CREATE_TABLE.findall(rendered.downgrade_sql))

            assert dropped <= restored, (
                f"{rendered.unit.name} cannot restore: {sorted(dropped - restored)}"
            )

    def test_new_functions_are_dropped(self, rendered_units: list) -> None:
        defined: set[str] = set()
        for rendered in rendered_units:
            created = set(CREATE_FUNCTION.findall(rendered.upgrade_sql))
            new = created - defined
            dropped = set(DROP_FUNCTION.findall(rendered.downgrade_sql))

            assert new <= dropped, (
                f"{rendered.unit.name} leaves functions behind: {sorted(new - dropped)}"
            )
            defined |= created


class TestForwardReferences:
    """Applying the chain in order never references a missing table."""

    def test_foreign_keys_target_existing_tables(
        self, rendered_units: list
    ) -> None:
        existing: set[str] = set()
        for rendered in rendered_units:
            sql = rendered.upgrade_sql
            existing |= set(CREATE_TABLE.findall(sql))
            missing = set(REFERENCES.findall(sql)) - existing

            assert not missing, f"{rendered.unit.name} references {sorted(missing)}"
            existing -= set(DROP_TABLE.findall(sql))

    def test_enum_types_exist_before_use(self, rendered_units: list) -> None:
        existing: set[str] = set()
        for rendered in rendered_units:
            sql = rendered.upgrade_sql
            existing |= set(CREATE_ENUM.findall(sql))
            used = set(re.findall(r"\b(\w+_enum)\b", sql))

            assert used <= existing, f"{rendered.unit.name} uses {sorted(used - existing)}"
            existing -= set(DROP_TYPE.findall(sql))


class TestSchemaConventions:
    """Conventions shared by every table of the schema."""

    def test_row_level_security_tables(self, rendered_units: list) -> None:
        enabled = set()
        for rendered in rendered_units:
            enabled |= set(
                re.findall(r"ALTER TABLE (\w+) ENABLE ROW LEVEL SECURITY", rendered.upgrade_sql)
            )

        assert enabled == RLS_TABLES

    def test_rls_tables_have_permissive_policy(self, rendered_units: list) -> None:
        sql = "\n".join(rendered.upgrade_sql for rendered in rendered_units)

        for table in RLS_TABLES:
            assert f"CREATE POLICY {table}_policy ON {table}" in sql

    def test_soft_delete_unique_indexes_are_partial(
        self, rendered_units: list
    ) -> None:
        sql = "\n".join(rendered.upgrade_sql for rendered in rendered_units)

        for index in ("uq_cidadao_cpf", "uq_cidadao_nis"):
            statement = re.search(rf"CREATE UNIQUE INDEX {index} ON [^;]*", sql)

            assert statement is not None, f"{index} not created"
            assert "WHERE removed_at IS NULL" in statement.group(0)

    def test_update_timestamp_triggers_named_after_table(
        self, rendered_units: list
    ) -> None:
        sql = "\n".join(rendered.upgrade_sql for rendered in rendered_units)
        triggers = re.findall(
            r"CREATE TRIGGER trg_(\w+)_update_timestamp\s+BEFORE UPDATE ON (\w+)", sql
        )

        assert triggers
        for trigger_table, table in triggers:
            assert trigger_table == table

    @pytest.mark.parametrize(
        "constraint",
        [
            "progress_percentage BETWEEN 0 AND 100",
            "data_fim > data_inicio",
        ],
    )
    def test_range_checks_present(
        self, rendered_units: list, constraint: str
    ) -> None:
        sql = "\n".join(rendered.upgrade_sql for rendered in rendered_units)

        assert constraint in sql


class TestSuspensionStatuses:
    """The suspension unit extends and restores status_solicitacao_enum."""

    def test_upgrade_adds_labels(self, enum_labels: dict[str, list[str]]) -> None:
        labels = enum_labels["status_solicitacao_enum"]

        assert "suspensa" in labels
        assert "bloqueada" in labels

    def test_downgrade_rebuilds_type_without_new_labels(
        self, rendered_units: list
    ) -> None:
        rendered = next(
            r for r in rendered_units
            if r.unit.revision == "1751300000000_add_status_suspensao_solicitacao"
        )
        sql = rendered.downgrade_sql
        created = re.search(r"CREATE TYPE status_solicitacao_enum AS ENUM \(([^)]*)\)", sql)

        assert "RENAME TO status_solicitacao_enum_old" in sql
        assert created is not None
        assert "'suspensa'" not in created.group(1)
        assert "'bloqueada'" not in created.group(1)
        assert "DROP TYPE IF EXISTS status_solicitacao_enum_old" in sql


class TestMonitoringReportingAndConfigurationUnits:
    """Units that add monitoring, reports, metric definitions and settings."""

    @pytest.mark.parametrize(
        "table",
        [
            "agendamento_visita",
            "visita_domiciliar",
            "avaliacao_visita",
            "historico_monitoramento",
            "relatorio_template",
            "relatorio_config",
            "relatorio_geracao",
            "relatorio_permissao",
            "configuracao_integracao",
            "configuracao_historico",
            "configuracao_interface",
            "configuracao_grupo",
            "metrica_definicao",
            "regras_alerta",
            "metrica_snapshot",
        ],
    )
    def test_table_created_once(self, rendered_units: list, table: str) -> None:
        creators = [
            rendered.unit.name
            for rendered in rendered_units
            if table in CREATE_TABLE.findall(rendered.upgrade_sql)
        ]

        assert len(creators) == 1, f"{table} created by {creators}"

    def test_configuration_unit_extends_base_table(self, rendered_units: list) -> None:
        rendered = next(
            r for r in rendered_units
            if r.unit.revision == "1704067239000_create_configuracao_schema"
        )

        assert "configuracao_sistema" not in CREATE_TABLE.findall(rendered.upgrade_sql)
        assert "ALTER TABLE configuracao_sistema ADD COLUMN updated_by" in rendered.upgrade_sql
        assert "ALTER TABLE configuracao_sistema DROP COLUMN updated_by" in rendered.downgrade_sql
        assert "ALTER TABLE configuracao_sistema DROP COLUMN visibilidade" in rendered.downgrade_sql
        assert "DROP TRIGGER IF EXISTS trg_configuracao_sistema_audit" in rendered.downgrade_sql

    def test_overdue_view_dropped_before_its_table(self, rendered_units: list) -> None:
        rendered = next(
            r for r in rendered_units
            if r.unit.revision == "1755700000000_create_monitoramento_schema"
        )
        sql = rendered.downgrade_sql

        assert "CREATE VIEW vw_agendamentos_em_atraso" in rendered.upgrade_sql
        assert sql.index("DROP VIEW IF EXISTS vw_agendamentos_em_atraso") < sql.index(
            "DROP TABLE agendamento_visita"
        )

    def test_report_permission_entity_types(self, rendered_units: list) -> None:
        sql = "\n".join(rendered.upgrade_sql for rendered in rendered_units)

        assert "tipo_entidade IN ('usuario', 'unidade', 'role')" in sql

    def test_metric_definition_requires_query_or_formula(
        self, rendered_units: list
    ) -> None:
        sql = "\n".join(rendered.upgrade_sql for rendered in rendered_units)

        assert "sql_consulta IS NOT NULL OR formula_calculo IS NOT NULL" in sql

    def test_monitoring_enums_reuse_shared_labels(
        self, enum_labels: dict[str, list[str]]
    ) -> None:
        assert "realizada_com_sucesso" in enum_labels["resultado_visita_enum"]
        assert enum_labels["categoria_metrica_enum"] == [
            "sistema",
            "negocio",
            "performance",
            "seguranca",
        ]
