# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Command line entry points.

Each module exposes a ``main()`` that takes no arguments, runs end to end
and exits non-zero on an unhandled error.
"""
