"""PGBen database schema.

Versioned migrations, reference seed data and diagnostics for the PGBen
social benefits management database.

Copyright (C) 2025 Global Digital Labs (gdlabs.io)
SPDX-License-Identifier: LGPL-3.0-or-later
"""

__version__ = "1.0.0"
