# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""PGBen schema migration units.

Modules are named ``<13-digit millisecond timestamp>_<snake_case_name>`` and
applied in timestamp order. Each one sets ``revision`` to its own module name
and ``down_revision`` to the module name of the unit before it.
"""
