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

from .command import real_cmd
from .path import (
    generate_temp_path,
    cleanup_path,
    current_owner,
    check_path_mode,
    check_path_ownership,
)

__all__ = [
    "real_cmd",
    "generate_temp_path",
    "cleanup_path",
    "current_owner",
    "check_path_mode",
    "check_path_ownership",
]
