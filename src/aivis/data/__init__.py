# Copyright (C) 2025-2026 Retio AI
# SPDX-License-Identifier: AGPL-3.0-only

"""Bundled static data: bot catalog and link-type pattern rules."""
