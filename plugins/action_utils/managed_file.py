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

"""
Managed configuration files assembled from named fragments.

Action plugins in this collection describe *what* a file should
contain; this module owns *how* it lands on the remote host: fragment
ordering, atomic replacement, ownership and mode, change detection and
the reload event fired when the content actually changed.

Remote commands run through ``ansible.legacy.command`` and fall back to
raw shell execution on hosts without a Python interpreter.
"""

from __future__ import annotations

import difflib
import hashlib
import shlex
import stat
from base64 import b64decode
from datetime import datetime, timezone
from os import path
from typing import Any, Dict, List, Optional, Tuple, Union

from ansible import constants as C
from ansible.errors import AnsibleActionFail
from ansible.module_utils.common.text.converters import to_text
from ansible.plugins.action import ActionBase

MANAGED_STR = getattr(C, "DEFAULT_MANAGED_STR", None) or "Ansible managed"


class ManagedFileBase(ActionBase):
    """
    Base class for action plugins that own a whole configuration file.

    The file is built from one or more fragments, written through a
    temporary file and moved into place only when something differs.
    Ownership and mode are applied and verified afterwards. When the
    content changed, an optional reload command is run so the service
    reading the file picks it up.

    Only POSIX tools are used on the remote side: ``test``, ``tee``,
    ``mv``, ``cp``, ``mkdir``, ``chown``, ``chgrp``, ``chmod`` and
    ``ls``.

    Usage:
        class ActionModule(ManagedFileBase):
            def run(self, tmp=None, task_vars=None):
                ...
                self._write_fragments(dest, fragments, ...)
    """

    force_raw = False

    def run(
        self,
        tmp: Optional[str] = None,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Base run method that initializes the result structure.

        :param Optional[str] tmp: Temporary path (unused in modern
            Ansible)
        :param Optional[Dict[str, Any]] task_vars: Task variables
            dictionary
        :returns Dict[str, Any]: Initial result dictionary
        """
        return super().run(tmp, task_vars)

    def _is_interpreter_missing(self, result: Dict[str, Any]) -> bool:
        """
        Check if failure was likely caused by a missing Python
        interpreter.

        :param result: A result dict from _execute_module
        :returns bool: True if failure likely due to missing Python,
            else False
        """
        if not isinstance(result, dict):
            return False

        if result.get("rc") != 127:
            return False

        msg = result.get("msg", "")
        if not isinstance(msg, str):
            return False

        canary_str = (
            "The module failed to execute correctly, you probably need to set "
            "the interpreter"
        )

        if canary_str.lower() in msg.lower():
            self.force_raw = True
            self._display.vv("Python not found, proceeding with raw commands")
            return True

        return False

    def _raw_cmd(
        self, cmd: Union[str, List[str]], stdin: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Run a command with the connection's low-level executor.

        :param Union[str, List[str]] cmd: Argument list, or a shell
            string run through ``sh -c``
        :param Optional[str] stdin: Data written to the command's stdin
        :returns dict: Result with ``rc``, ``stdout``, ``stderr`` and
            their ``_lines`` variants
        """
        if isinstance(cmd, list):
            cmd_str = shlex.join(cmd)
        else:
            cmd_str = shlex.join(["sh", "-c", cmd])

        in_data = stdin.encode("utf-8") if stdin else None
        result = self._low_level_execute_command(cmd_str, in_data=in_data)

        stdout = to_text(result.get("stdout", ""))
        stderr = to_text(result.get("stderr", ""))
        return {
            "rc": result.get("rc"),
            "stdout": stdout,
            "stderr": stderr,
            "stdout_lines": stdout.splitlines(),
            "stderr_lines": stderr.splitlines(),
            "cmd": cmd,
            "raw": True,
        }

    def _cmd(
        self,
        cmd: Union[str, List[str]],
        stdin: Optional[str] = None,
        task_vars: Optional[Dict[str, Any]] = None,
        check_mode: Optional[bool] = False,
    ) -> Dict[str, Any]:
        """
        Run a command on the remote host, with raw fallback.

        Helper commands (stat, temp files, comparisons) must run even
        in check mode, so ``check_mode`` defaults to False here. The
        callers guard every change to the destination themselves.

        :param Union[str, List[str]] cmd: Command to execute. Can be a
            shell string or a list of arguments
        :param Optional[str] stdin: Optional standard input to pass to
            the command
        :param Optional[dict] task_vars: Dictionary of task variables
            from the calling task
        :param Optional[bool] check_mode: Check mode for the command
            module
        :returns dict: The command result
        """
        task_vars = task_vars or {}

        if not isinstance(cmd, (list, str)):
            raise TypeError(
                f"Expected cmd to be str or list, got {type(cmd).__name__}"
            )

        if not self.force_raw:
            module_args = {"stdin": stdin, "stdin_add_newline": False}
            if isinstance(cmd, list):
                module_args["argv"] = cmd
            else:
                module_args["_raw_params"] = cmd
                module_args["_uses_shell"] = True

            saved_check_mode = self._task.check_mode
            self._task.check_mode = bool(check_mode)
            try:
                result = self._execute_module(
                    module_name="ansible.legacy.command",
                    module_args=self._sanitize_args(module_args),
                    task_vars=task_vars,
                )
            finally:
                self._task.check_mode = saved_check_mode

            if not self._is_interpreter_missing(result):
                result.pop("invocation", None)
                result["raw"] = False
                return result

            self._display.warning(
                "Ansible command module failed on host "
                f"{task_vars.get('inventory_hostname', 'UNKNOWN')}, "
                "falling back to raw commands."
            )

        return self._raw_cmd(cmd, stdin=stdin)

    def _slurp(
        self, src: str, task_vars: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Read a remote file, with raw ``cat`` fallback.

        :param str src: The path to the file on the remote host
        :param Optional[dict] task_vars: Dictionary of task variables
            from the calling task
        :returns dict: Dictionary with ``content`` and
            ``content_lines``
        :raises AnsibleActionFail: If the file cannot be read
        """
        result = None

        if not self.force_raw:
            slurp_result = self._execute_module(
                module_name="ansible.legacy.slurp",
                module_args={"src": src},
                task_vars=task_vars,
            )
            if not self._is_interpreter_missing(slurp_result):
                if slurp_result.get("failed"):
                    raise AnsibleActionFail(
                        f"Could not read {src}: {slurp_result.get('msg', '')}"
                    )
                try:
                    content = b64decode(slurp_result["content"]).decode(
                        "utf-8"
                    )
                except Exception as e:
                    raise AnsibleActionFail(
                        f"Failed to base64 decode slurp content: {e}"
                    )
                result = {"content": content, "raw": False}

        if result is None:
            result = self._cat(src, task_vars=task_vars)
            if result.get("failed"):
                raise AnsibleActionFail(
                    f"Could not read {src}: {result.get('msg', '')}"
                )

        result["content_lines"] = result["content"].splitlines()
        return result

    def _cat(
        self, src: str, task_vars: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Fallback method to read the contents of a file using 'cat'.

        :param str src: Path to the file on the remote host
        :param Optional[dict] task_vars: Dictionary of task variables
            from the calling task
        :returns dict: Dictionary with read result or error
        """
        cmd_result = self._cmd(["cat", src], task_vars=task_vars)
        result = {"changed": False, "raw": cmd_result.get("raw", False)}
        result["source"] = src

        stdout = cmd_result.get("stdout", "")
        stderr = cmd_result.get("stderr", "")

        if cmd_result.get("rc") != 0:
            result["failed"] = True
            result["msg"] = stderr.strip() or stdout.strip()
        else:
            result["content"] = stdout.replace("\r", "")

        return result

    def _sanitize_args(self, args: Dict[str, Any]) -> Dict[str, Any]:
        """Return a copy of ``args`` without None values."""
        return {k: v for k, v in args.items() if v is not None}

    def _pseudo_stat(
        self, target_path: str, task_vars: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Fallback-compatible file stat using POSIX ``test`` commands.

        :param str target_path: The remote path to test
        :param Optional[dict] task_vars: Ansible task_vars from run(),
            passed to _cmd()
        :returns dict: Dictionary with keys 'exists' (bool), 'type'
            (str or None), 'is_symlink' (bool), 'raw' (bool)
        :raises AnsibleActionFail: if type cannot be determined
        """
        exists_test = self._cmd(["test", "-e", target_path], task_vars=task_vars)

        result = {"raw": exists_test.get("raw", False)}

        if exists_test["rc"] != 0:
            result["exists"] = False
            result["type"] = None
            return result

        result["exists"] = True

        symlink_test = self._cmd(["test", "-L", target_path], task_vars=task_vars)
        result["is_symlink"] = symlink_test["rc"] == 0

        type_tests = [
            ("directory", ["-d"]),
            ("file", ["-f"]),
            ("block", ["-b"]),
            ("char", ["-c"]),
            ("pipe", ["-p"]),
            ("socket", ["-S"]),
        ]

        for type_name, flag in type_tests:
            check = self._cmd(["test"] + flag + [target_path], task_vars=task_vars)
            if check["rc"] == 0:
                result["type"] = type_name
                return result

        raise AnsibleActionFail(
            f"All POSIX 'test' commands failed on '{target_path}'"
        )

    def _mkdir(
        self,
        target_path: str,
        task_vars: Optional[Dict[str, Any]] = None,
        parents: Optional[bool] = True,
        mode: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Ensure a directory exists on the remote host.

        :param str target_path: The remote directory path to create
        :param Optional[dict] task_vars: Ansible task_vars from
            ``run()``
        :param bool parents: Whether to create parent directories
            (``mkdir -p``)
        :param Optional[str] mode: Optional permission mode string
            (e.g. "0700")
        :returns dict: Dictionary with ``changed`` boolean key
        :raises AnsibleActionFail: On directory creation error
        """
        self._display.vvv(f"Creating directory: {target_path}")

        stat_result = self._pseudo_stat(target_path, task_vars=task_vars)
        if stat_result["type"] == "directory":
            self._display.vvv(f"Directory already exists: {target_path}")
            return {"rc": 0, "changed": False}
        if stat_result["exists"]:
            raise AnsibleActionFail(
                f"Path '{target_path}' exists but is not a directory "
                f"({stat_result['type']})"
            )

        args = ["mkdir"]
        if parents:
            args.append("-p")
        if mode:
            args.extend(["-m", mode])
        args.append(target_path)

        mkdir_result = self._cmd(args, task_vars=task_vars)
        if mkdir_result["rc"] != 0:
            raise AnsibleActionFail(
                f"Failed to create directory '{target_path}': "
                f"{mkdir_result.get('stderr', '').strip()}"
            )

        return {
            "rc": mkdir_result["rc"],
            "changed": True,
            "raw": stat_result["raw"],
        }

    def _quote(self, s: str) -> str:
        """
        Quote a string for safe use in shell commands.

        :param str s: The string to quote
        :returns str: The safely quoted string
        """
        shell = self._connection._shell
        return getattr(shell, "quote", shlex.quote)(s)

    def _generate_ansible_backup_path(self, target_path: str) -> str:
        """
        Generate an Ansible-style backup file name based on the path.

        The format is: ``<path>.<md5_digest>.<UTC timestamp>``
        """
        digest = hashlib.md5(target_path.encode("utf-8")).hexdigest()
        timestamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        return f"{target_path}.{digest}.{timestamp}"

    def _validate_file(
        self,
        tmpfile: str,
        validate_cmd: str,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Run a validation command against a temporary file.

        :param str tmpfile: The temporary file to validate
        :param str validate_cmd: The validation command template,
            containing ``%s``
        :param Optional[dict] task_vars: Task vars from the calling
            action
        :raises AnsibleActionFail: If validation fails
        """
        if not validate_cmd:
            return
        if "%s" not in validate_cmd:
            raise AnsibleActionFail(
                f"validate must contain %s: {validate_cmd}"
            )

        self._display.vvv(f"Validating {tmpfile}")
        cmd = validate_cmd % self._quote(tmpfile)
        result = self._cmd(cmd, task_vars=task_vars)

        if result["rc"] != 0:
            raise AnsibleActionFail(
                f"Validation failed: {validate_cmd} => "
                f"{result.get('stderr', '')}"
            )

    def _create_backup(
        self, dest: str, task_vars: Optional[Dict[str, Any]] = None
    ) -> Optional[str]:
        """
        Create a backup of the destination file if it exists.

        :param str dest: Destination file to back up
        :param Optional[dict] task_vars: Task vars from the calling
            action
        :returns Optional[str]: Path to the backup file or None if not
            created
        :raises AnsibleActionFail: If backup fails
        """
        result = self._cmd(["test", "-e", dest], task_vars=task_vars)
        if result["rc"] != 0:
            return None

        backup_path = self._generate_ansible_backup_path(dest)
        self._display.vvv(f"Creating backup at {backup_path}")
        result = self._cmd(["cp", "-p", dest, backup_path], task_vars=task_vars)

        if result["rc"] != 0:
            raise AnsibleActionFail(f"Backup failed: {result.get('stderr', '')}")

        return backup_path

    def _get_perms(
        self, target: str, task_vars: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        """
        Retrieve POSIX file permissions using ``ls -ld``.

        :param str target: Path to the file to inspect
        :param Optional[dict] task_vars: Ansible task variables for
            command execution
        :returns dict: ``mode`` (symbolic, e.g. "rw-r-----"), ``owner``
            and ``group``
        :raises AnsibleActionFail: If the ``ls`` command fails
        """
        self._display.vvv(f"Getting permissions of {target}")
        cmd_result = self._cmd(["ls", "-ld", target], task_vars=task_vars)
        if cmd_result["rc"] != 0:
            raise AnsibleActionFail(
                f"Could not stat {target}: {cmd_result['stderr']}"
            )

        parts = cmd_result["stdout_lines"][0].split()
        return {
            "mode": parts[0][1:10],  # Trim type and ACL symbols
            "owner": parts[2],
            "group": parts[3],
        }

    def _normalize_content(
        self, content: Union[str, List[str]]
    ) -> Tuple[List[str], str]:
        """
        Normalize input content to a list of lines and a string that
        ends with a newline.

        :param Union[str, List[Union[str, int, float]]] content: The
            input to normalize
        :returns Tuple[List[str], str]: Tuple of (lines, content)
        :raises AnsibleActionFail: If input is of invalid type
        """
        if isinstance(content, str):
            lines = content.splitlines()
            normalized = content if content.endswith("\n") else content + "\n"
        elif isinstance(content, list):
            if not all(isinstance(line, (str, int, float)) for line in content):
                raise AnsibleActionFail("_write_file() requires strings or numbers")
            lines = [str(line) for line in content]
            normalized = "\n".join(lines) + "\n"
        else:
            raise AnsibleActionFail(
                "_write_file() requires a string or list of strings"
            )
        self._display.vvv(f"Normalized lines: {lines}")
        return lines, normalized

    def _write_temp_file(
        self,
        content: str,
        tmpfile: str,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Write content to a remote temp file using ``tee`` and stdin,
        then restrict it to ``0600``.

        :raises AnsibleActionFail: If writing or chmod fails
        """
        self._display.vvv(f"Writing to temp file: {tmpfile}")
        write_result = self._cmd(["tee", tmpfile], stdin=content, task_vars=task_vars)
        if write_result.get("rc", 1) != 0:
            raise AnsibleActionFail(
                f"Failed to write temp file {tmpfile}: "
                f"{write_result.get('stderr', '')}"
            )

        chmod_result = self._cmd(["chmod", "0600", tmpfile], task_vars=task_vars)
        if chmod_result.get("rc", 1) != 0:
            raise AnsibleActionFail(
                f"Failed to chmod temp file: {chmod_result.get('stderr', '')}"
            )
        return write_result

    def _convert_octal_mode_to_symbolic(self, octal_mode: Union[str, int]) -> str:
        """
        Convert an octal mode (e.g. "0640") to ``rw-r-----``.

        :raises AnsibleActionFail: On conversion error
        """
        try:
            int_mode = int(str(octal_mode), 8)
            # Strip type and ACL symbols
            return stat.filemode(int_mode)[1:10]
        except (TypeError, ValueError):
            raise AnsibleActionFail(f"Error converting mode {octal_mode} to symbols")

    def _compare_content_and_perms(
        self,
        dest: str,
        lines: List[str],
        perms: Optional[Dict[str, Any]] = None,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Tuple[bool, bool, Optional[str], List[str]]:
        """
        Compare existing file contents and permissions to desired state.

        :param str dest: Path to destination file on the remote host
        :param List[str] lines: Desired content lines to compare
        :param Optional[dict] perms: Desired owner, group and mode
        :param Optional[dict] task_vars: Ansible task_vars from
            ``run()``
        :returns Tuple[bool, bool, Optional[str], List[str]]: Tuple of
            (changed, content_changed, old_content, old_lines)
        :raises AnsibleActionFail: On an invalid mode
        """
        self._display.vvv(f"Comparing content and permissions with {dest}")

        old_stat = self._pseudo_stat(dest, task_vars=task_vars)
        if not old_stat["exists"]:
            self._display.vvv(f"File does not exist: {dest}")
            return True, True, None, []

        old_slurp = self._slurp(src=dest, task_vars=task_vars)
        old_content = old_slurp["content"]
        old_lines = old_slurp["content_lines"]

        content_changed = lines != old_lines
        changed = content_changed
        if content_changed:
            self._display.vvv("Content changed (lines comparison)")

        if perms:
            old_perms = self._get_perms(dest, task_vars=task_vars)
            self._display.vvv(f"Old perms: {old_perms}")

            for key in ("owner", "group"):
                if perms.get(key) and perms[key] != old_perms.get(key):
                    self._display.vvv(
                        f"Perm {key} changed: {perms[key]} != {old_perms.get(key)}"
                    )
                    changed = True

            if perms.get("mode"):
                symbol_perms = self._convert_octal_mode_to_symbolic(perms["mode"])
                if symbol_perms != old_perms["mode"]:
                    self._display.vvv(
                        f"Mode changed: {symbol_perms} != {old_perms['mode']}"
                    )
                    changed = True

        self._display.vvv(
            f"Comparison result: changed is {changed}, "
            f"content_changed is {content_changed}"
        )
        return changed, content_changed, old_content, old_lines

    def _apply_perms(
        self,
        dest: str,
        perms: Optional[Dict[str, Any]],
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Apply ownership and mode to ``dest`` and verify the result.

        :param str dest: Remote file path to update
        :param Optional[dict] perms: Dictionary with keys ``owner``,
            ``group`` and ``mode``
        :param Optional[dict] task_vars: Ansible task variables
        :raises AnsibleActionFail: On failure to apply or verify any
            permission
        """
        if not perms:
            return

        self._display.vvv(f"Applying permissions to {dest}")
        for key, tool in (("owner", "chown"), ("group", "chgrp"), ("mode", "chmod")):
            if not perms.get(key):
                continue
            cmd_result = self._cmd([tool, str(perms[key]), dest], task_vars=task_vars)
            if cmd_result["rc"] != 0:
                raise AnsibleActionFail(
                    f"Failed to {tool} {dest}: {cmd_result.get('stderr', '')}"
                )

        final_perms = self._get_perms(dest, task_vars=task_vars)

        for key in ("owner", "group"):
            if perms.get(key) and final_perms.get(key) != perms[key]:
                raise AnsibleActionFail(
                    f"Post-apply verification failed: expected {key}="
                    f"{perms[key]}, got {final_perms.get(key)}"
                )

        if perms.get("mode"):
            expected_mode = self._convert_octal_mode_to_symbolic(perms["mode"])
            if final_perms.get("mode") != expected_mode:
                raise AnsibleActionFail(
                    "Post-apply verification failed: expected mode="
                    f"{expected_mode}, got {final_perms.get('mode')}"
                )

    def _make_raw_tmp_path(self, task_vars: Optional[Dict[str, Any]] = None) -> str:
        """
        Make sure the connection has a remote temporary directory.

        :returns str: The temporary directory path
        :raises AnsibleActionFail: If directory creation fails
        """
        shell = self._connection._shell

        if not shell.tmpdir:
            self._display.vvv("Creating temporary directory")
            cmd_result = self._cmd(
                ["mktemp", "-d", "/tmp/ansible-tmp-XXXXXX"], task_vars=task_vars
            )
            if cmd_result["rc"] != 0 or not cmd_result["stdout"]:
                raise AnsibleActionFail(
                    "Failed to create temporary directory: "
                    f"{cmd_result['stderr']}"
                )
            shell.tmpdir = cmd_result["stdout_lines"][0]

        return shell.tmpdir

    def _write_file(
        self,
        content: Union[str, List[str]],
        dest: str,
        perms: Optional[Dict[str, Any]] = None,
        backup: bool = False,
        validate_cmd: Optional[str] = None,
        check_mode: Optional[bool] = None,
        diff: bool = False,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Write content to the destination file if it differs.

        :param Union[str, List[str]] content: A string or list of
            strings to write
        :param str dest: The remote destination file path
        :param Optional[dict] perms: Dictionary with owner, group, mode
        :param bool backup: Whether to back up the existing file
        :param Optional[str] validate_cmd: Shell command for validation,
            should include '%s'
        :param Optional[bool] check_mode: Whether to run in check mode
        :param bool diff: Whether to return before/after content
        :param Optional[dict] task_vars: Ansible task_vars from
            ``run()``
        :returns dict: Dictionary with 'changed', 'content_changed',
            'rc', 'msg', and optional 'backup_file' and 'diff'
        :raises AnsibleActionFail: On any critical failure
        """
        self._display.vvv(f"Starting _write_file to {dest}")

        backup_path = None
        check_mode = check_mode or False
        result = {"changed": False, "content_changed": False}

        old_stat = self._pseudo_stat(dest, task_vars=task_vars)
        if old_stat["exists"] and old_stat["type"] != "file":
            raise AnsibleActionFail(f"Cannot write over {old_stat['type']}")

        lines, content = self._normalize_content(content)

        tmpdir = self._make_raw_tmp_path(task_vars=task_vars)
        tmpfile = self._connection._shell.join_path(tmpdir, "ansible_tmpfile")
        self._display.vvv(f"Using temporary file: {tmpfile}")
        self._mkdir(tmpdir, task_vars=task_vars, parents=True, mode="0700")
        self._write_temp_file(content, tmpfile, task_vars=task_vars)

        if validate_cmd:
            self._validate_file(tmpfile, validate_cmd, task_vars=task_vars)

        changed, content_changed, old_content, old_lines = (
            self._compare_content_and_perms(dest, lines, perms, task_vars=task_vars)
        )
        result["changed"] = changed
        result["content_changed"] = content_changed

        if diff and content_changed:
            unified = "\n".join(
                difflib.unified_diff(
                    old_lines, lines, fromfile=dest, tofile=dest, lineterm=""
                )
            )
            result["diff"] = {
                "before_header": dest,
                "after_header": dest,
                "before": old_content or "",
                "after": content,
                "unified_diff": unified,
            }

        if check_mode:
            self._display.vvv("Check mode is enabled")
            if changed:
                result["msg"] = "Check mode: changes would have been made."
            else:
                result["msg"] = "Check mode: no changes needed."
        elif content_changed:
            if backup:
                backup_path = self._create_backup(dest, task_vars=task_vars)

            mv_result = self._cmd(["mv", tmpfile, dest], task_vars=task_vars)
            if mv_result["rc"] != 0:
                raise AnsibleActionFail(
                    "Failed to move temp file into place: "
                    f"{mv_result.get('stderr', '')}"
                )
            self._apply_perms(dest, perms, task_vars=task_vars)
            result["msg"] = "File written successfully"
        elif changed:
            self._apply_perms(dest, perms, task_vars=task_vars)
            result["msg"] = "File permissions updated"
        else:
            self._display.vvv("Files identical, no change necessary")
            result["msg"] = "File not changed"

        result["rc"] = 0
        if backup_path:
            result["backup_file"] = backup_path

        self._display.vvv(f"_write_file completed: {result}")
        return result

    def _mk_dest_dir(
        self,
        file_path: str,
        check_mode: bool = False,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> bool:
        """
        Create the parent directory of the target file if needed.

        :param str file_path: The target file path
        :param bool check_mode: Only report whether it would be created
        :param Optional[dict] task_vars: Ansible task variables
        :returns bool: True if the directory was (or would be) created
        """
        dir_path = path.dirname(file_path)
        dir_stat = self._pseudo_stat(dir_path, task_vars=task_vars)
        if dir_stat["exists"]:
            return False
        if not check_mode:
            self._mkdir(dir_path, task_vars=task_vars)
        return True

    def _assemble_fragments(
        self,
        fragments: List[Dict[str, Any]],
        warn: bool = True,
    ) -> str:
        """
        Join fragments into the final file content.

        Fragments are ordered by ``order`` (compared as text) and then
        by ``name``. With ``warn``, a single comment line carrying the
        ``ansible_managed`` string goes first.

        :param List[dict] fragments: Dicts with ``name``, ``content``
            and optional ``order``
        :param bool warn: Prepend the managed-file warning
        :returns str: The assembled content
        :raises AnsibleActionFail: On duplicate or malformed fragments
        """
        seen = set()
        keyed = []
        for fragment in fragments:
            name = fragment.get("name")
            if not name or not isinstance(fragment.get("content"), str):
                raise AnsibleActionFail(
                    f"Fragments need a name and string content: {fragment}"
                )
            if name in seen:
                raise AnsibleActionFail(f"Duplicate fragment name: {name}")
            seen.add(name)
            keyed.append(((str(fragment.get("order", "10")), name), fragment))

        parts = []
        if warn:
            parts.append(f"# {MANAGED_STR}\n")
        for _key, fragment in sorted(keyed, key=lambda item: item[0]):
            body = fragment["content"]
            if body and not body.endswith("\n"):
                body += "\n"
            parts.append(body)

        return "".join(parts)

    def _notify_reload(
        self,
        dest: str,
        reload_cmd: str,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Run the reload command of the service that reads ``dest``.

        :returns dict: The reload event
        :raises AnsibleActionFail: If the reload command fails
        """
        self._display.vvv(f"Content of {dest} changed, running: {reload_cmd}")
        cmd_result = self._cmd(reload_cmd, task_vars=task_vars)
        if cmd_result["rc"] != 0:
            raise AnsibleActionFail(
                f"Reload after changing {dest} failed: "
                f"{cmd_result.get('stderr', '').strip()}"
            )
        return {"event": "reload", "target": dest, "cmd": reload_cmd}

    def _write_fragments(
        self,
        dest: str,
        fragments: List[Dict[str, Any]],
        perms: Optional[Dict[str, Any]] = None,
        warn: bool = True,
        force: bool = True,
        backup: bool = False,
        validate_cmd: Optional[str] = None,
        notify: Optional[str] = None,
        check_mode: bool = False,
        diff: bool = False,
        task_vars: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """
        Assemble fragments into ``dest`` and reload on content change.

        :param str dest: The managed file on the remote host
        :param List[dict] fragments: Fragments, see
            :meth:`_assemble_fragments`
        :param Optional[dict] perms: owner, group and mode
        :param bool warn: Prepend the managed-file warning
        :param bool force: Create or replace the file; when False an
            existing file is left alone
        :param bool backup: Back up the old file before replacing it
        :param Optional[str] validate_cmd: Validation command with
            ``%s``
        :param Optional[str] notify: Reload command run when the
            content changed
        :param bool check_mode: Report only
        :param bool diff: Return before/after content
        :param Optional[dict] task_vars: Ansible task variables
        :returns dict: Write result plus ``reloaded`` and ``notified``
        """
        content = self._assemble_fragments(fragments, warn=warn)
        result = {"dest": dest, "reloaded": False, "notified": []}

        if not force:
            dest_stat = self._pseudo_stat(dest, task_vars=task_vars)
            if dest_stat["exists"]:
                result.update(
                    {
                        "changed": False,
                        "content_changed": False,
                        "msg": "File exists and force is disabled, taking no action",
                    }
                )
                return result

        dir_created = self._mk_dest_dir(
            dest, check_mode=check_mode, task_vars=task_vars
        )

        write_result = self._write_file(
            content=content,
            dest=dest,
            perms=perms,
            backup=backup,
            validate_cmd=validate_cmd,
            check_mode=check_mode,
            diff=diff,
            task_vars=task_vars,
        )
        result.update(write_result)
        result["changed"] = write_result["changed"] or dir_created

        if write_result["content_changed"] and notify and not check_mode:
            result["notified"].append(
                self._notify_reload(dest, notify, task_vars=task_vars)
            )
            result["reloaded"] = True

        return result
