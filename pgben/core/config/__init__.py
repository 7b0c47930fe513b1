# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Configuration package for PGBen tooling.

Example:
    >>> from pgben.core.config import get_settings
    >>> settings = get_settings()
    >>> settings.database.host
    'localhost'
"""

from pgben.core.config.settings import (
    DatabaseSettings,
    SeedSettings,
    Settings,
    clear_settings_cache,
    get_settings,
)

__all__ = [
    "DatabaseSettings",
    "SeedSettings",
    "Settings",
    "clear_settings_cache",
    "get_settings",
]
