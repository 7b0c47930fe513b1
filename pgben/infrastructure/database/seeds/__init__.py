# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Database seed package.

This package contains the reference data a fresh PGBen database needs:
- Access: roles, permissions, the head office unit and the administrator
- Benefits: benefit types, document requirements and workflows
- Approval: critical actions and their approval configuration
- Notifications: approval workflow templates
"""

from pgben.infrastructure.database.seeds.acesso import (
    seed_admin_user,
    seed_permissions,
    seed_role_permissions,
    seed_roles,
    seed_unidade_sede,
)
from pgben.infrastructure.database.seeds.aprovacao import seed_acoes_criticas
from pgben.infrastructure.database.seeds.beneficio import seed_tipos_beneficio
from pgben.infrastructure.database.seeds.database import seed_database
from pgben.infrastructure.database.seeds.notificacao import seed_notification_templates

__all__ = [
    "seed_acoes_criticas",
    "seed_admin_user",
    "seed_database",
    "seed_notification_templates",
    "seed_permissions",
    "seed_role_permissions",
    "seed_roles",
    "seed_tipos_beneficio",
    "seed_unidade_sede",
]
