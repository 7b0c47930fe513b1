# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Fixtures for schema tests that need no database.

Each migration unit is rendered to SQL in offline mode once per session,
and the enum labels of the fully migrated schema are derived from it.
"""

import re
from dataclasses import dataclass

import pytest

from pgben.infrastructure.database.migrations.runner import (
    MigrationUnit,
    render_migration_sql,
)

CREATE_ENUM = re.compile(r"CREATE TYPE (\w+) AS ENUM \(([^)]*)\)")
ADD_ENUM_VALUE = re.compile(r"ALTER TYPE (\w+) ADD VALUE IF NOT EXISTS '([^']+)'")
DROP_TYPE = re.compile(r"DROP TYPE (?:IF EXISTS )?(\w+)")


@dataclass(frozen=True)
class RenderedUnit:
    unit: MigrationUnit
    upgrade_sql: str
    downgrade_sql: str


@pytest.fixture(scope="session")
def rendered_units(migration_units: list[MigrationUnit]) -> list[RenderedUnit]:
    """Upgrade and downgrade SQL of every unit, in chain order."""
    return [
        RenderedUnit(
            unit=unit,
            upgrade_sql=render_migration_sql(unit, "upgrade"),
            downgrade_sql=render_migration_sql(unit, "downgrade"),
        )
        for unit in migration_units
    ]


@pytest.fixture(scope="session")
def enum_labels(rendered_units: list[RenderedUnit]) -> dict[str, list[str]]:
    """Enum type name to its labels after every upgrade has run."""
    labels: dict[str, list[str]] = {}
    for rendered in rendered_units:
        sql = rendered.upgrade_sql
        for name in DROP_TYPE.findall(sql):
            labels.pop(name, None)
        for name, body in CREATE_ENUM.findall(sql):
            labels[name] = re.findall(r"'([^']*)'", body)
        for name, value in ADD_ENUM_VALUE.findall(sql):
            if value not in labels.setdefault(name, []):
                labels[name].append(value)
    return labels
