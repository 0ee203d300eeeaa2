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

from __future__ import annotations

from typing import Any, Dict, Mapping

from ansible.errors import AnsibleFilterError
from ansible_collections.o0_o.postgresql.plugins.action_utils import (
    RECOVERY_FIELD_NAMES,
    RecoveryConfError,
    RecoveryParameters,
    render,
)

DOCUMENTATION = r"""
---
name: recovery_conf
short_description: Render recovery.conf directives from a dictionary
version_added: "1.0.0"
description:
  - Render a dictionary of recovery.conf directives into the text the
    M(o0_o.postgresql.recovery_conf) module writes.
  - Useful when the file is assembled by another module, for example
    M(ansible.builtin.copy) with O(ansible.builtin.copy#module:content).
  - Keys with a null value are skipped.
options:
  _input:
    description:
      - Dictionary of recovery.conf directives, keyed by directive name.
    type: dict
    required: true
notes:
  - No header or comment is added.
  - Unknown directive names are rejected.
author:
  - oØ.o (@o0-o)
"""

EXAMPLES = r"""
- name: Write recovery.conf with the builtin copy module
  ansible.builtin.copy:
    dest: /var/lib/pgsql/data/recovery.conf
    content: "{{ recovery | o0_o.postgresql.recovery_conf }}"
    owner: postgres
    group: postgres
    mode: '0640'
  vars:
    recovery:
      standby_mode: 'on'
      primary_conninfo: host=db1.example.com user=replicator
"""

RETURN = r"""
_value:
  description: recovery.conf content, one directive per line.
  type: str
  sample: "standby_mode = 'on'\nprimary_conninfo = 'host=db1'\n"
"""


def recovery_conf(data: Mapping[str, Any]) -> str:
    """Render a dict of recovery.conf directives.

    :param data: Directive names mapped to values
    :returns: The rendered text
    :raises AnsibleFilterError: On unknown keys, no directives or bad
        values
    """
    if not isinstance(data, Mapping):
        raise AnsibleFilterError(
            f"recovery_conf expects a dictionary, got {type(data).__name__}"
        )

    unknown = sorted(set(data) - set(RECOVERY_FIELD_NAMES))
    if unknown:
        raise AnsibleFilterError(
            f"Unknown recovery.conf directives: {', '.join(unknown)}"
        )

    try:
        params = RecoveryParameters.from_args(data)
    except RecoveryConfError as e:
        raise AnsibleFilterError(str(e), orig_exc=e)

    if params.is_empty():
        raise AnsibleFilterError("recovery_conf needs at least one directive")

    return render(params)


class FilterModule:
    """recovery.conf rendering filter."""

    def filters(self) -> Dict[str, Any]:
        """Return the filter functions."""
        return {
            "recovery_conf": recovery_conf,
        }
