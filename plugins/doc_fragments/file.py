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


class ModuleDocFragment:
    DOCUMENTATION = """
    options:
      backup:
        description:
          - Create a backup copy of the file before replacing its content.
          - The backup file will be placed in the same directory and include
            a hash and timestamp suffix.
        type: bool
        default: false
      validate:
        description:
          - Validation command to run against the temporary file before
            replacing the destination.
          - The command must contain a C(%s) which will be replaced with the
            path to the temporary file.
        type: str
    notes:
      - All writes are performed atomically by writing to a temporary file
        and moving it into place.
      - Ownership and mode are verified after they are applied.
      - The parent directory of the file is created when missing.
    """
