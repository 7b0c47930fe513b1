# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Schema diagnostics for a PGBen database.

Reads the catalog of a live database and reports what is there: enum types
and their labels, tables with their row-level security flag, constraints,
triggers and the migration status. It also flags values the seeds write
into enum-typed columns that the database's enum types do not accept,
which happens when the database lags behind or drifted from the migrations.

Example:
    from rich.console import Console
    from pgben.infrastructure.database.diagnostics import build_report, render_report

    report = await build_report(settings.database.url)
    render_report(report, Console())
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncConnection, create_async_engine

from pgben.infrastructure.database.migrations.runner import (
    MIGRATIONS_TABLE,
    get_migration_status,
)
from pgben.infrastructure.database.seeds import acesso, aprovacao, beneficio, notificacao

logger = logging.getLogger(__name__)

CONSTRAINT_TYPES = {
    "c": "CHECK",
    "f": "FOREIGN KEY",
    "p": "PRIMARY KEY",
    "u": "UNIQUE",
    "x": "EXCLUDE",
}

# Enum type name -> values written by the seeds.
SEEDED_ENUM_VALUES: dict[str, tuple[str, ...]] = {
    "tipo_unidade_enum": acesso.TIPO_UNIDADE,
    "status_usuario_enum": acesso.STATUS_USUARIO,
    "periodicidade_enum": beneficio.PERIODICIDADES,
    "tipo_documento_enum": beneficio.TIPOS_DOCUMENTO,
    "tipo_etapa_enum": beneficio.TIPOS_ETAPA,
    "tipo_acao_critica_enum": aprovacao.CODIGOS_ACAO_CRITICA,
    "estrategia_aprovacao_enum": aprovacao.ESTRATEGIAS_APROVACAO,
    "tipo_notificacao_enum": notificacao.TIPOS_NOTIFICACAO,
    "prioridade_notificacao_enum": notificacao.PRIORIDADES_NOTIFICACAO,
    "canal_enum": notificacao.CANAIS,
}


@dataclass
class TableInfo:
    """A table of the public schema.

    Attributes:
        name: Table name.
        estimated_rows: Planner row estimate (0 when never analysed).
        rls_enabled: Whether row-level security is enabled.
    """

    name: str
    estimated_rows: int
    rls_enabled: bool


@dataclass
class ConstraintInfo:
    table: str
    name: str
    type: str
    definition: str


@dataclass
class TriggerInfo:
    table: str
    name: str
    definition: str


@dataclass
class DiagnosticReport:
    """Snapshot of a database's schema state.

    Attributes:
        database: Redacted connection target.
        server_version: PostgreSQL server version string.
        enum_types: Enum type name to its labels, in declaration order.
        tables: Tables of the public schema.
        constraints: Constraints of the public schema.
        triggers: User-defined triggers.
        orphan_enum_values: Enum type name to seeded values it does not accept.
        migration_status: Result of get_migration_status().
        generated_at: When the report was built.
    """

    database: str
    server_version: str
    enum_types: dict[str, list[str]] = field(default_factory=dict)
    tables: list[TableInfo] = field(default_factory=list)
    constraints: list[ConstraintInfo] = field(default_factory=list)
    triggers: list[TriggerInfo] = field(default_factory=list)
    orphan_enum_values: dict[str, list[str]] = field(default_factory=dict)
    migration_status: dict[str, Any] = field(default_factory=dict)
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def tables_without_rls(self) -> list[str]:
        return [table.name for table in self.tables if not table.rls_enabled]

    @property
    def is_healthy(self) -> bool:
        """No orphan enum values and no pending migrations."""
        return not self.orphan_enum_values and bool(
            self.migration_status.get("is_up_to_date", False)
        )


async def collect_enum_types(conn: AsyncConnection) -> dict[str, list[str]]:
    """Enum types of the public schema with their labels in sort order."""
    result = await conn.execute(
        text(
            """
            SELECT t.typname, e.enumlabel
            FROM pg_type t
            JOIN pg_enum e ON e.enumtypid = t.oid
            JOIN pg_namespace n ON n.oid = t.typnamespace
            WHERE n.nspname = 'public'
            ORDER BY t.typname, e.enumsortorder
            """
        )
    )
    enum_types: dict[str, list[str]] = {}
    for type_name, label in result:
        enum_types.setdefault(type_name, []).append(label)
    return enum_types


async def collect_tables(conn: AsyncConnection) -> list[TableInfo]:
    result = await conn.execute(
        text(
            """
            SELECT c.relname, c.reltuples::bigint, c.relrowsecurity
            FROM pg_class c
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = 'public' AND c.relkind IN ('r', 'p')
            ORDER BY c.relname
            """
        )
    )
    return [
        TableInfo(name=name, estimated_rows=max(int(rows), 0), rls_enabled=bool(rls))
        for name, rows, rls in result
    ]


async def collect_constraints(conn: AsyncConnection) -> list[ConstraintInfo]:
    result = await conn.execute(
        text(
            """
            SELECT c.conrelid::regclass::text, c.conname, c.contype,
                   pg_get_constraintdef(c.oid)
            FROM pg_constraint c
            JOIN pg_namespace n ON n.oid = c.connamespace
            WHERE n.nspname = 'public' AND c.conrelid <> 0
            ORDER BY 1, 2
            """
        )
    )
    return [
        ConstraintInfo(
            table=table,
            name=name,
            type=CONSTRAINT_TYPES.get(contype, contype),
            definition=definition,
        )
        for table, name, contype, definition in result
    ]


async def collect_triggers(conn: AsyncConnection) -> list[TriggerInfo]:
    result = await conn.execute(
        text(
            """
            SELECT t.tgrelid::regclass::text, t.tgname, pg_get_triggerdef(t.oid)
            FROM pg_trigger t
            JOIN pg_class c ON c.oid = t.tgrelid
            JOIN pg_namespace n ON n.oid = c.relnamespace
            WHERE n.nspname = 'public' AND NOT t.tgisinternal
            ORDER BY 1, 2
            """
        )
    )
    return [
        TriggerInfo(table=table, name=name, definition=definition)
        for table, name, definition in result
    ]


async def find_orphan_enum_values(
    conn: AsyncConnection,
    seeded: Optional[dict[str, tuple[str, ...]]] = None,
) -> dict[str, list[str]]:
    """Seeded enum values the live enum types do not accept.

    A missing enum type reports all of its seeded values.

    Args:
        conn: Database connection.
        seeded: Enum type name to values. Defaults to SEEDED_ENUM_VALUES.

    Returns:
        Enum type name to the values it lacks, only for types with any.
    """
    seeded = SEEDED_ENUM_VALUES if seeded is None else seeded
    enum_types = await collect_enum_types(conn)

    orphans: dict[str, list[str]] = {}
    for type_name, values in seeded.items():
        labels = set(enum_types.get(type_name, []))
        missing = [value for value in values if value not in labels]
        if missing:
            logger.warning(
                "Enum %s does not accept seeded values: %s", type_name, ", ".join(missing)
            )
            orphans[type_name] = missing
    return orphans


async def build_report(
    db_url: str,
    redacted_url: Optional[str] = None,
    table_name: str = MIGRATIONS_TABLE,
) -> DiagnosticReport:
    """Collect a DiagnosticReport from the database at ``db_url``.

    Args:
        db_url: Database connection URL (asyncpg format).
        redacted_url: Target shown in the report. Defaults to the URL without its password.
        table_name: Bookkeeping table the migration status is read from.

    Returns:
        The collected report.
    """
    engine = create_async_engine(db_url, echo=False)
    try:
        async with engine.connect() as conn:
            server_version = await conn.scalar(text("SHOW server_version"))
            report = DiagnosticReport(
                database=redacted_url or engine.url.render_as_string(hide_password=True),
                server_version=str(server_version),
                enum_types=await collect_enum_types(conn),
                tables=await collect_tables(conn),
                constraints=await collect_constraints(conn),
                triggers=await collect_triggers(conn),
                orphan_enum_values=await find_orphan_enum_values(conn),
            )
    finally:
        await engine.dispose()

    report.migration_status = await get_migration_status(db_url, table_name)
    logger.info(
        "Diagnostic report built: %d tables, %d enum types, %d constraints, %d triggers",
        len(report.tables),
        len(report.enum_types),
        len(report.constraints),
        len(report.triggers),
    )
    return report


def render_migration_status(status: dict[str, Any], console: Console) -> None:
    """Print the result of get_migration_status() as a rich table."""
    migrations = Table(title="Migrations")
    migrations.add_column("Current", style="cyan")
    migrations.add_column("Latest")
    migrations.add_column("Applied", justify="right")
    migrations.add_column("Pending", justify="right")
    migrations.add_column("Status")
    migrations.add_row(
        str(status.get("current")),
        str(status.get("latest")),
        str(len(status.get("applied", []))),
        str(len(status.get("pending", []))),
        "[green]up to date[/green]" if status.get("is_up_to_date") else "[yellow]pending[/yellow]",
    )
    console.print(migrations)
    for name in status.get("pending", []):
        console.print(f"  [yellow]pending[/yellow] {name}")
    for name in status.get("unknown", []):
        console.print(f"[red]Unknown migration recorded: {name}[/red]")


def render_report(report: DiagnosticReport, console: Console) -> None:
    """Print a DiagnosticReport as rich tables."""
    console.print(
        Panel.fit(
            f"[bold]PGBen schema diagnostics[/bold]\n"
            f"{report.database} | PostgreSQL {report.server_version}\n"
            f"{report.generated_at:%Y-%m-%d %H:%M:%S %Z}",
            border_style="cyan",
        )
    )

    render_migration_status(report.migration_status, console)

    enums = Table(title=f"Enum types ({len(report.enum_types)})")
    enums.add_column("Type", style="cyan")
    enums.add_column("Labels")
    for type_name, labels in report.enum_types.items():
        enums.add_row(type_name, ", ".join(labels))
    console.print(enums)

    tables = Table(title=f"Tables ({len(report.tables)})")
    tables.add_column("Table", style="cyan")
    tables.add_column("Rows (est.)", justify="right")
    tables.add_column("RLS")
    for table in report.tables:
        tables.add_row(
            table.name,
            str(table.estimated_rows),
            "[green]on[/green]" if table.rls_enabled else "off",
        )
    console.print(tables)

    by_type: dict[str, int] = {}
    for constraint in report.constraints:
        by_type[constraint.type] = by_type.get(constraint.type, 0) + 1
    constraints = Table(title=f"Constraints ({len(report.constraints)})")
    constraints.add_column("Type", style="cyan")
    constraints.add_column("Count", justify="right")
    for constraint_type, count in sorted(by_type.items()):
        constraints.add_row(constraint_type, str(count))
    console.print(constraints)

    triggers = Table(title=f"Triggers ({len(report.triggers)})")
    triggers.add_column("Table", style="cyan")
    triggers.add_column("Trigger")
    for trigger in report.triggers:
        triggers.add_row(trigger.table, trigger.name)
    console.print(triggers)

    if report.orphan_enum_values:
        orphans = Table(title="Seeded values missing from enum types", style="red")
        orphans.add_column("Type", style="cyan")
        orphans.add_column("Values")
        for type_name, values in report.orphan_enum_values.items():
            orphans.add_row(type_name, ", ".join(values))
        console.print(orphans)
    else:
        console.print("[green]All seeded enum values are accepted by the database.[/green]")

    verdict = "[green]✓ HEALTHY[/green]" if report.is_healthy else "[red]✗ ATTENTION NEEDED[/red]"
    console.print(f"\n[bold]Overall: {verdict}[/bold]")
