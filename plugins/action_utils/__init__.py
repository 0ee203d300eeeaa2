# vim: ts=4:sw=4:sts=4:et:ft=python
# -*- mode: python; tab-width: 4; indent-tabs-mode: nil; -*-
#
# GNU General Public License v3.0+
# SPDX-License-Identifier: GPL-3.0-or-later
# (see COPYING or https://www.gnu.org/licenses/gpl-3.0.txt)
#
# Copyright (c) 2025 oØ.o (@o0-o)
#
# This file is part of the o0_o.postgresql Ansible Collection.

"""Shared helpers for the action plugins of o0_o.postgresql."""

from __future__ import annotations

from .managed_file import ManagedFileBase
from .recovery_conf import (
    RECOVERY_FIELDS,
    RECOVERY_FIELD_NAMES,
    DisabledError,
    EmptyConfigError,
    RecoveryConfError,
    RecoveryParameters,
    check_enabled,
    render,
    validate,
)

__all__ = [
    "ManagedFileBase",
    "RECOVERY_FIELDS",
    "RECOVERY_FIELD_NAMES",
    "DisabledError",
    "EmptyConfigError",
    "RecoveryConfError",
    "RecoveryParameters",
    "check_enabled",
    "render",
    "validate",
]
