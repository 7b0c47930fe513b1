# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Seed the PGBen database with its reference data."""

import logging
from typing import Optional

from sqlalchemy.ext.asyncio import AsyncSession

from pgben.core.config.settings import SeedSettings
from pgben.infrastructure.database.seeds.acesso import (
    seed_admin_user,
    seed_permissions,
    seed_role_permissions,
    seed_roles,
    seed_unidade_sede,
)
from pgben.infrastructure.database.seeds.aprovacao import seed_acoes_criticas
from pgben.infrastructure.database.seeds.beneficio import seed_tipos_beneficio
from pgben.infrastructure.database.seeds.notificacao import seed_notification_templates

logger = logging.getLogger(__name__)


async def seed_database(
    session: AsyncSession,
    seed_settings: Optional[SeedSettings] = None,
) -> dict[str, int]:
    """Seed the database with reference data, in dependency order.

    Every step is idempotent, so running the seed again only fills what is
    missing. The session is committed at the end.

    Args:
        session: Database session.
        seed_settings: Administrator account data. Defaults to SeedSettings().

    Returns:
        Number of rows inserted per seed step.
    """
    seed_settings = seed_settings or SeedSettings()
    logger.info("Seeding database...")

    counts = {
        "roles": await seed_roles(session),
        "permissions": await seed_permissions(session),
        "role_permissions": await seed_role_permissions(session),
        "unidades": await seed_unidade_sede(session, seed_settings),
        "admin_users": await seed_admin_user(session, seed_settings),
        "tipos_beneficio": await seed_tipos_beneficio(session),
        "acoes_criticas": await seed_acoes_criticas(session),
        "notification_templates": await seed_notification_templates(session),
    }

    await session.commit()

    logger.info(f"Database seeding complete: {sum(counts.values())} rows inserted")
    return counts
