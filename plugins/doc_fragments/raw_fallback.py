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
    DOCUMENTATION = r'''
    options:
      _force_raw:
        description:
          - Run every remote command through the raw connection, even on
            hosts with a Python interpreter.
          - Without it, raw commands are only used once the command module
            fails for lack of an interpreter.
          - Intended for testing the fallback path.
        type: bool
        default: false
        required: false
    '''
