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

import posixpath
from typing import Any, Dict, Optional

from ansible.errors import AnsibleActionFail
from ansible.module_utils.parsing.convert_bool import boolean
from ansible_collections.o0_o.postgresql.plugins.action_utils import (
    RECOVERY_FIELDS,
    ManagedFileBase,
    RecoveryParameters,
    check_enabled,
    render,
    validate,
)

try:
    from packaging.version import InvalidVersion, Version
except ImportError as imp_exc:
    PACKAGING_IMPORT_ERROR = imp_exc
else:
    PACKAGING_IMPORT_ERROR = None


# Where each platform's packages keep the PostgreSQL data directory
PLATFORM_CONFDIRS = {
    "RedHat": "/var/lib/pgsql/data",
    "Suse": "/var/lib/pgsql/data",
    "Archlinux": "/var/lib/postgres/data",
    "FreeBSD": "/var/db/postgres/data",
    "Alpine": "/var/lib/postgresql/data",
    "Debian": "/etc/postgresql/{version}/main",
}

FRAGMENT_NAME = "recovery.conf"

ARG_TYPES = {"str": "str", "bool": "bool", "delay": "raw"}


class ActionModule(ManagedFileBase):
    """
    Manage PostgreSQL's ``recovery.conf`` on the remote host.

    The task arguments are turned into a :class:`RecoveryParameters`,
    checked, rendered into ``key = value`` lines and handed to the
    managed-file machinery as a single fragment. The file is only
    rewritten, and the reload command only run, when the rendered
    content differs from what is on disk.
    """

    TRANSFERS_FILES = False
    _requires_connection = True
    _supports_check_mode = True
    _supports_async = False
    _supports_diff = True

    def _def_args(self) -> Dict[str, Any]:
        """
        Define and validate the task arguments.

        :returns Dict[str, Any]: The validated argument dictionary
        :raises AnsibleActionFail: When argument validation fails
        """
        self._display.vvv("Defining argument spec")
        argument_spec = {
            name: {"type": ARG_TYPES[kind]} for name, kind in RECOVERY_FIELDS
        }
        argument_spec.update(
            {
                "target": {"type": "path"},
                "confdir": {"type": "path"},
                "manage_recovery_conf": {"type": "bool"},
                "owner": {"type": "str"},
                "group": {"type": "str"},
                "mode": {"type": "raw", "default": "0640"},
                "warn": {"type": "bool", "default": True},
                "force": {"type": "bool", "default": True},
                "backup": {"type": "bool", "default": False},
                "validate": {"type": "str"},
                "reload_command": {"type": "str"},
                "version": {"type": "str"},
                "_force_raw": {"type": "bool", "default": False},
            }
        )

        validation_result, new_module_args = self.validate_argument_spec(
            argument_spec=argument_spec,
        )

        return new_module_args

    def _host_var(
        self, name: str, task_vars: Dict[str, Any], default: Any = None
    ) -> Any:
        """Return a templated host variable, or ``default`` if unset."""
        if name not in task_vars:
            return default
        return self._templar.template(task_vars[name])

    def _resolve_mode(self, mode: Any) -> str:
        """Return ``mode`` as an octal string such as ``0640``."""
        # YAML turns an unquoted 0640 into the integer 416
        if isinstance(mode, int):
            return "0%03o" % mode
        mode = str(mode)
        try:
            int(mode, 8)
        except ValueError:
            raise AnsibleActionFail(
                f"mode must be an octal number such as '0640', got {mode!r}"
            )
        return mode

    def _resolve_target(
        self,
        args: Dict[str, Any],
        version: Optional[str],
        task_vars: Dict[str, Any],
    ) -> str:
        """
        Work out where recovery.conf goes.

        ``target`` wins; otherwise ``<confdir>/recovery.conf`` with
        ``confdir`` taken from the task, the ``postgresql_confdir`` host
        variable, or the platform default.

        :raises AnsibleActionFail: When no location can be determined
        """
        target = args.get("target")
        if not target:
            confdir = args.get("confdir") or self._host_var(
                "postgresql_confdir", task_vars
            )
            if not confdir:
                facts = task_vars.get("ansible_facts") or {}
                os_family = facts.get("os_family") or task_vars.get(
                    "ansible_os_family"
                )
                confdir = PLATFORM_CONFDIRS.get(os_family)
                if confdir and "{version}" in confdir:
                    confdir = (
                        confdir.format(version=self._cluster_version(version))
                        if version
                        else None
                    )
            if not confdir:
                raise AnsibleActionFail(
                    "Cannot determine where recovery.conf belongs on this "
                    "host; set target or confdir"
                )
            target = posixpath.join(confdir, FRAGMENT_NAME)

        if not posixpath.isabs(target):
            raise AnsibleActionFail(f"target must be an absolute path: {target}")

        self._display.vvv(f"recovery.conf target: {target}")
        return target

    def _parse_version(self, version: Any) -> Version:
        """
        Parse a PostgreSQL server version.

        :raises AnsibleActionFail: When ``version`` cannot be parsed
        """
        try:
            return Version(str(version))
        except InvalidVersion:
            raise AnsibleActionFail(f"Invalid PostgreSQL version: {version}")

    def _cluster_version(self, version: Any) -> str:
        """
        Return the version Debian names cluster directories after.

        That is the major version: ``11`` for 11.4, ``9.6`` for 9.6.24.
        """
        server = self._parse_version(version)
        if server.major >= 10:
            return str(server.major)
        return f"{server.major}.{server.minor}"

    def _version_hints(
        self, version: Optional[str], params: RecoveryParameters
    ) -> None:
        """
        Warn about directives the given server version will not honour.

        Hints never change what is written.

        :raises AnsibleActionFail: When ``version`` cannot be parsed
        """
        if not version:
            return

        server = self._parse_version(version)

        if server >= Version("12"):
            self._display.warning(
                f"PostgreSQL {version} no longer reads recovery.conf; its "
                "settings belong in postgresql.conf together with a "
                "standby.signal or recovery.signal file"
            )

        if server >= Version("9.5") and params.pause_at_recovery_target is not None:
            self._display.warning(
                "pause_at_recovery_target is superseded by "
                f"recovery_target_action on PostgreSQL {version}"
            )

        if server < Version("9.4"):
            for name in ("primary_slot_name", "recovery_min_apply_delay"):
                if getattr(params, name) is not None:
                    self._display.warning(
                        f"{name} requires PostgreSQL 9.4 or later and will "
                        f"be ignored by {version}"
                    )

    def run(
        self,
        tmp: Optional[str] = None,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Render recovery.conf and make the remote file match it.

        :param Optional[str] tmp: Temporary directory path (unused in
            modern Ansible)
        :param Optional[Dict[str, Any]] task_vars: Task variables
        :returns Dict[str, Any]: Standard Ansible result dictionary

        :raises DisabledError: When ``manage_recovery_conf`` is false
        :raises EmptyConfigError: When no recovery parameter is set
        :raises AnsibleActionFail: When writing the file or reloading
            fails
        """
        self._display.vvv("Starting recovery_conf run()")
        task_vars = task_vars or {}

        if PACKAGING_IMPORT_ERROR:
            raise AnsibleActionFail(
                "The 'packaging' Python module is required to run this "
                f"plugin. Import failed: {PACKAGING_IMPORT_ERROR}"
            )

        new_module_args = self._def_args()

        self.result = super(ActionModule, self).run(tmp, task_vars=task_vars)
        self.result.update(
            {
                "invocation": self._task.args.copy(),
                "changed": False,
                "raw": False,
                "msg": "",
            }
        )

        del tmp

        self.force_raw = new_module_args.get("_force_raw")

        enabled = new_module_args.get("manage_recovery_conf")
        if enabled is None:
            enabled = boolean(
                self._host_var(
                    "postgresql_manage_recovery_conf", task_vars, default=True
                )
            )
        check_enabled(enabled)

        params = RecoveryParameters.from_args(new_module_args)
        validate(enabled, params)

        version = new_module_args.get("version") or self._host_var(
            "postgresql_version", task_vars
        )
        self._version_hints(version, params)

        content = render(params)
        self._display.vvv(f"Rendered recovery.conf:\n{content}")

        dest = self._resolve_target(new_module_args, version, task_vars)
        perms = {
            "owner": new_module_args.get("owner")
            or self._host_var("postgresql_user", task_vars, default="postgres"),
            "group": new_module_args.get("group")
            or self._host_var("postgresql_group", task_vars, default="postgres"),
            "mode": self._resolve_mode(new_module_args.get("mode")),
        }
        reload_command = new_module_args.get("reload_command") or self._host_var(
            "postgresql_reload_command", task_vars
        )

        try:
            write_result = self._write_fragments(
                dest=dest,
                fragments=[
                    {"name": FRAGMENT_NAME, "order": "0", "content": content}
                ],
                perms=perms,
                warn=new_module_args.get("warn"),
                force=new_module_args.get("force"),
                backup=new_module_args.get("backup"),
                validate_cmd=new_module_args.get("validate"),
                notify=reload_command,
                check_mode=self._task.check_mode,
                diff=self._task.diff,
                task_vars=task_vars,
            )
        finally:
            self._remove_tmp_path(self._connection._shell.tmpdir)

        self.result.update(write_result)
        self.result["content"] = content
        self.result["raw"] = bool(self.force_raw)

        return self.result
