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

from __future__ import absolute_import, division, print_function
__metaclass__ = type

DOCUMENTATION = r'''
---
module: recovery_conf
short_description: Manage PostgreSQL recovery.conf
version_added: "1.0.0"
description:
  - Renders PostgreSQL's C(recovery.conf) from a fixed set of directives
    and writes it to the remote host.
  - Each directive given is written as one C(key = value) line, always in
    the same order, so the file only changes when a value changes.
  - Strings are single-quoted with embedded quotes doubled, booleans are
    written as C(true) or C(false).
  - The file is owned by the PostgreSQL user and group with mode C(0640)
    unless told otherwise.
  - When the content changes and O(reload_command) is set, the command is
    run so PostgreSQL picks up the new file.
  - Fails when O(manage_recovery_conf) is false, or when no directive is
    given at all.
options:
  restore_command:
    description:
      - Shell command used to retrieve an archived WAL segment.
    type: str
  archive_cleanup_command:
    description:
      - Shell command run at every restartpoint to clean up old archived
        WAL files.
    type: str
  recovery_end_command:
    description:
      - Shell command run once at the end of recovery.
    type: str
  recovery_target_name:
    description:
      - Named restore point, created with C(pg_create_restore_point()), to
        recover to.
    type: str
  recovery_target_time:
    description:
      - Time stamp up to which recovery will proceed.
    type: str
  recovery_target_xid:
    description:
      - Transaction ID up to which recovery will proceed.
    type: str
  recovery_target_inclusive:
    description:
      - Whether to stop just after (C(true)) or just before (C(false)) the
        recovery target.
    type: bool
  recovery_target:
    description:
      - Set to C(immediate) to end recovery as soon as a consistent state
        is reached.
    type: str
  recovery_target_timeline:
    description:
      - Timeline to recover into, for example C(latest).
    type: str
  pause_at_recovery_target:
    description:
      - Whether recovery pauses when the recovery target is reached.
    type: bool
  standby_mode:
    description:
      - Set to C(on) to start the server as a standby.
    type: str
  primary_conninfo:
    description:
      - libpq connection string the standby uses to reach the primary.
    type: str
  primary_slot_name:
    description:
      - Replication slot to use when connecting to the primary.
    type: str
  trigger_file:
    description:
      - File whose presence ends recovery on the standby.
    type: str
  recovery_min_apply_delay:
    description:
      - Delay applied to recovered changes.
      - An integer is in milliseconds. A string may carry a unit, one of
        C(ms), C(s), C(min), C(h) or C(d), for example C(5min).
    type: raw
  target:
    description:
      - Absolute path of the file to manage.
      - Defaults to C(recovery.conf) inside O(confdir).
    type: path
  confdir:
    description:
      - Directory holding C(recovery.conf) when O(target) is not given.
      - Defaults to the C(postgresql_confdir) host variable, then to the
        data directory of the platform's PostgreSQL packages.
      - On Debian the default needs O(version).
    type: path
  manage_recovery_conf:
    description:
      - Whether this host's recovery.conf is managed at all.
      - Defaults to the C(postgresql_manage_recovery_conf) host variable,
        then to C(true).
      - When false, the task fails so that it gets removed or the setting
        re-enabled.
    type: bool
  owner:
    description:
      - Owner of the file.
      - Defaults to the C(postgresql_user) host variable, then C(postgres).
    type: str
  group:
    description:
      - Group of the file.
      - Defaults to the C(postgresql_group) host variable, then
        C(postgres).
    type: str
  mode:
    description:
      - Mode of the file, in octal notation.
    type: raw
    default: '0640'
  warn:
    description:
      - Put a comment line carrying the C(ansible_managed) string at the top
        of the file.
    type: bool
    default: true
  force:
    description:
      - Replace an existing file whose content differs.
      - When false, an existing file is left untouched.
    type: bool
    default: true
  reload_command:
    description:
      - Command run on the remote host after the content of the file
        changed, for example C(systemctl reload postgresql).
      - Defaults to the C(postgresql_reload_command) host variable.
      - Never run in check mode, nor when only ownership or mode changed.
    type: str
  version:
    description:
      - Version of the PostgreSQL server reading the file, for example
        C(9.6).
      - Only used for warnings about directives the server ignores and for
        the Debian default of O(confdir).
      - Defaults to the C(postgresql_version) host variable.
    type: str
extends_documentation_fragment:
  - action_common_attributes
  - o0_o.postgresql.raw_fallback
  - o0_o.postgresql.file
attributes:
  check_mode:
    support: full
    description:
      - Reports whether the file would change. Never runs the reload
        command.
  diff_mode:
    support: full
    description:
      - Returns the content before and after the change.
  async:
    support: none
    description:
      - This module does not support asynchronous execution.
  platform:
    platforms: posix
    description:
      - Only supported on POSIX-compatible systems.
author:
  - oØ.o (@o0-o)
seealso:
  - name: PostgreSQL recovery configuration
    description: Reference of every recovery.conf directive.
    link: https://www.postgresql.org/docs/11/recovery-config.html
notes:
  - This module must be invoked via its action plugin.
  - PostgreSQL 12 and later no longer read recovery.conf; a warning is
    shown when O(version) says so.
'''

EXAMPLES = r'''
- name: Turn a fresh base backup into a streaming standby
  o0_o.postgresql.recovery_conf:
    standby_mode: 'on'
    primary_conninfo: host=db1.example.com user=replicator
    primary_slot_name: standby_db2
    trigger_file: /var/lib/pgsql/data/failover.trigger
    reload_command: systemctl reload postgresql

- name: Point-in-time recovery from the WAL archive
  o0_o.postgresql.recovery_conf:
    restore_command: cp /mnt/archive/%f "%p"
    recovery_target_time: '2024-01-01 00:00:00'
    recovery_target_inclusive: false
    target: /srv/pgsql/data/recovery.conf
    owner: postgres
    group: postgres
'''

RETURN = r'''
changed:
  description: Whether the file content or its permissions changed.
  type: bool
  returned: always
content_changed:
  description: Whether the file content changed.
  type: bool
  returned: always
content:
  description: The rendered recovery.conf directives.
  type: str
  returned: success
  sample: "standby_mode = 'on'\nprimary_conninfo = 'host=db1'\n"
dest:
  description: Path of the managed file.
  type: str
  returned: success
  sample: /var/lib/pgsql/data/recovery.conf
reloaded:
  description: Whether the reload command was run.
  type: bool
  returned: success
notified:
  description: Reload events fired because the content changed.
  type: list
  elements: dict
  returned: success
  sample: [{"event": "reload", "target": "/var/lib/pgsql/data/recovery.conf",
            "cmd": "systemctl reload postgresql"}]
msg:
  description: Description of the operation performed.
  type: str
  returned: always
backup_file:
  description: Name of the backup file created, if any.
  type: str
  returned: when backup is true and the file was replaced
raw:
  description: Whether raw fallback mode was used.
  type: bool
  returned: always
diff:
  description: Before and after content of the file.
  type: dict
  returned: when diff mode is enabled and the content changed
'''

from ansible.module_utils.basic import AnsibleModule


def main():
    argument_spec = dict(
        restore_command=dict(type='str'),
        archive_cleanup_command=dict(type='str'),
        recovery_end_command=dict(type='str'),
        recovery_target_name=dict(type='str'),
        recovery_target_time=dict(type='str'),
        recovery_target_xid=dict(type='str'),
        recovery_target_inclusive=dict(type='bool'),
        recovery_target=dict(type='str'),
        recovery_target_timeline=dict(type='str'),
        pause_at_recovery_target=dict(type='bool'),
        standby_mode=dict(type='str'),
        primary_conninfo=dict(type='str'),
        primary_slot_name=dict(type='str'),
        trigger_file=dict(type='str'),
        recovery_min_apply_delay=dict(type='raw'),
        target=dict(type='path'),
        confdir=dict(type='path'),
        manage_recovery_conf=dict(type='bool'),
        owner=dict(type='str'),
        group=dict(type='str'),
        mode=dict(type='raw', default='0640'),
        warn=dict(type='bool', default=True),
        force=dict(type='bool', default=True),
        backup=dict(type='bool', default=False),
        validate=dict(type='str'),
        reload_command=dict(type='str'),
        version=dict(type='str'),
        _force_raw=dict(type='bool', default=False),
    )

    module = AnsibleModule(
        argument_spec=argument_spec,
        supports_check_mode=True
    )

    module.fail_json(msg="This module must be run via its action plugin.")


if __name__ == '__main__':
    main()
