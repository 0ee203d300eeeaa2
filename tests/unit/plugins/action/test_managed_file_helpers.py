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

import os
from unittest.mock import MagicMock

import pytest

from ansible.errors import AnsibleActionFail
from ansible_collections.o0_o.postgresql.tests.utils import (
    cleanup_path,
    current_owner,
    generate_temp_path,
)


@pytest.mark.parametrize(
    "file_type, expected_type, is_symlink",
    [
        ("file", "file", False),
        ("directory", "directory", False),
        ("symlink", "file", True),  # symlink to a file
    ],
)
def test_pseudo_stat_detects_type(
    base, tmp_path, file_type, expected_type, is_symlink
) -> None:
    """Test _pseudo_stat detects common POSIX file types."""
    target = tmp_path / f"test_{file_type}"
    if file_type == "file":
        target.write_text("sample content")
    elif file_type == "directory":
        target.mkdir()
    elif file_type == "symlink":
        real = tmp_path / "real_file"
        real.write_text("data")
        target.symlink_to(real)

    result = base._pseudo_stat(str(target))

    assert result["exists"] is True
    assert result["type"] == expected_type
    assert result["is_symlink"] is is_symlink


def test_pseudo_stat_nonexistent(base) -> None:
    """Test _pseudo_stat reports non-existent files correctly."""
    result = base._pseudo_stat("/tmp/this/path/should/not/exist")
    assert result["exists"] is False
    assert result["type"] is None


def test_pseudo_stat_unknown_type(base) -> None:
    """Test _pseudo_stat raises when no type test succeeds."""
    base._cmd = lambda args, task_vars=None: {
        "rc": 0 if args[1] == "-e" else 1,
        "raw": False,
    }

    with pytest.raises(AnsibleActionFail, match="All POSIX 'test' commands failed"):
        base._pseudo_stat("/dev/odd")


@pytest.mark.parametrize(
    "existing, expect_error, changed",
    [
        (None, False, True),
        ("directory", False, False),
        ("file", True, None),
    ],
)
def test_mkdir_behavior(base, existing, expect_error, changed) -> None:
    """Test _mkdir creates, skips or refuses as appropriate."""
    path = generate_temp_path()
    try:
        if existing == "directory":
            os.makedirs(path)
        elif existing == "file":
            with open(path, "w", encoding="utf-8") as f:
                f.write("conflict file")

        if expect_error:
            with pytest.raises(AnsibleActionFail, match="not a directory"):
                base._mkdir(path)
        else:
            result = base._mkdir(path, mode="0700")
            assert result["rc"] == 0
            assert result["changed"] is changed
            assert os.path.isdir(path)
    finally:
        cleanup_path(path)


def test_mkdir_invalid_mode(base) -> None:
    """Test _mkdir reports mkdir failures."""
    path = generate_temp_path()
    try:
        with pytest.raises(AnsibleActionFail, match="Failed to create directory"):
            base._mkdir(path, mode="invalid")
    finally:
        cleanup_path(path)


@pytest.mark.parametrize(
    "dir_exists, check_mode, expect_mkdir, expected",
    [
        (True, False, False, False),
        (False, True, False, True),
        (False, False, True, True),
    ],
)
def test_mk_dest_dir(
    monkeypatch, base, dir_exists, check_mode, expect_mkdir, expected
) -> None:
    """Test _mk_dest_dir only creates a missing parent outside check mode."""
    monkeypatch.setattr(
        base, "_pseudo_stat", lambda p, task_vars=None: {"exists": dir_exists}
    )
    mkdir = MagicMock(return_value={"changed": True})
    monkeypatch.setattr(base, "_mkdir", mkdir)

    created = base._mk_dest_dir(
        "/var/lib/pgsql/data/recovery.conf", check_mode=check_mode, task_vars={}
    )

    assert created is expected
    if expect_mkdir:
        mkdir.assert_called_once_with("/var/lib/pgsql/data", task_vars={})
    else:
        mkdir.assert_not_called()


@pytest.mark.parametrize(
    "file_exists, cp_success, expect_error",
    [
        (False, True, False),
        (True, True, False),
        (True, False, True),
    ],
)
def test_create_backup_behavior(base, file_exists, cp_success, expect_error) -> None:
    """Test _create_backup handles existence, success, and error cases."""
    base._cmd = MagicMock(
        side_effect=[
            {"rc": 0} if file_exists else {"rc": 1},
            {"rc": 0} if cp_success else {"rc": 1, "stderr": "cp failed"},
        ]
    )
    base._generate_ansible_backup_path = MagicMock(
        return_value="/tmp/recovery.conf.fakebackup"
    )

    if expect_error:
        with pytest.raises(AnsibleActionFail, match="Backup failed"):
            base._create_backup("/tmp/recovery.conf")
    else:
        result = base._create_backup("/tmp/recovery.conf")
        if file_exists:
            assert result == "/tmp/recovery.conf.fakebackup"
        else:
            assert result is None


def test_generate_ansible_backup_path_format(base) -> None:
    """Test backup path generation format."""
    backup_path = base._generate_ansible_backup_path("/etc/recovery.conf")

    assert backup_path.startswith("/etc/recovery.conf.")
    digest, timestamp = backup_path.rsplit(".", 2)[1:]
    assert len(digest) == 32
    assert timestamp.isdigit()


def test_validate_file_noop_without_command(base) -> None:
    """Test _validate_file does nothing without a command."""
    base._cmd = MagicMock()
    base._validate_file("/tmp/somefile", None)
    base._validate_file("/tmp/somefile", "")
    base._cmd.assert_not_called()


def test_validate_file_success(base) -> None:
    """Test _validate_file substitutes the quoted temp path."""
    base._cmd = MagicMock(return_value={"rc": 0})

    base._validate_file("/tmp/foo.conf", "grep -q standby_mode %s")

    assert base._cmd.call_args.args[0] == "grep -q standby_mode '/tmp/foo.conf'"


def test_validate_file_failure_raises(base) -> None:
    """Test _validate_file raises on a failing validation command."""
    base._cmd = MagicMock(return_value={"rc": 1, "stderr": "syntax error"})

    with pytest.raises(AnsibleActionFail, match="Validation failed:.*syntax error"):
        base._validate_file("/etc/foo", "validate %s")


def test_validate_file_requires_placeholder(base) -> None:
    """Test _validate_file insists on %s in the command."""
    with pytest.raises(AnsibleActionFail, match="must contain %s"):
        base._validate_file("/etc/foo", "true")


@pytest.mark.parametrize(
    "line, expected",
    [
        (
            "-rw-r----- 1 postgres postgres 123 Jul 1 00:00 recovery.conf",
            {"mode": "rw-r-----", "owner": "postgres", "group": "postgres"},
        ),
        (
            "-rw-r--r--+ 1 user group 123 Jul 1 00:00 file",
            {"mode": "rw-r--r--", "owner": "user", "group": "group"},
        ),
        (
            "-rw-------@ 1 user staff 123 Jul 1 00:00 file",
            {"mode": "rw-------", "owner": "user", "group": "staff"},
        ),
    ],
)
def test_get_perms_parses_ls(base, line, expected) -> None:
    """Test _get_perms parses ls -ld output, stripping ACL markers."""
    base._cmd = lambda *args, **kwargs: {"rc": 0, "stdout_lines": [line]}
    assert base._get_perms("/fake/file") == expected


def test_get_perms_fails_on_error(base) -> None:
    """Test _get_perms raises when ls fails."""
    base._cmd = lambda *args, **kwargs: {"rc": 2, "stderr": "ls: cannot access"}

    with pytest.raises(AnsibleActionFail, match="Could not stat"):
        base._get_perms("/fake/file")


@pytest.mark.parametrize(
    "octal, symbolic",
    [("0640", "rw-r-----"), ("644", "rw-r--r--"), ("0600", "rw-------")],
)
def test_convert_octal_mode_to_symbolic(base, octal, symbolic) -> None:
    """Test octal to symbolic mode conversion."""
    assert base._convert_octal_mode_to_symbolic(octal) == symbolic


def test_convert_octal_mode_rejects_garbage(base) -> None:
    """Test non-octal modes are rejected."""
    with pytest.raises(AnsibleActionFail, match="Error converting mode"):
        base._convert_octal_mode_to_symbolic("u+rw")


def test_apply_perms_sets_mode_and_owner(base) -> None:
    """Test _apply_perms applies and verifies owner, group and mode."""
    path = generate_temp_path()
    perms = dict(current_owner(), mode="0640")
    try:
        with open(path, "w", encoding="utf-8") as f:
            f.write("standby_mode = 'on'\n")
        os.chmod(path, 0o644)

        base._apply_perms(path, perms, task_vars={})

        assert base._get_perms(path) == {
            "mode": "rw-r-----",
            "owner": perms["owner"],
            "group": perms["group"],
        }
    finally:
        cleanup_path(path)


def test_apply_perms_without_perms_is_noop(base) -> None:
    """Test _apply_perms does nothing for empty perms."""
    base._cmd = MagicMock()
    base._apply_perms("/tmp/whatever", {}, task_vars={})
    base._apply_perms("/tmp/whatever", None, task_vars={})
    base._cmd.assert_not_called()


def test_apply_perms_verification_failure(base) -> None:
    """Test _apply_perms raises when the result does not match."""
    base._cmd = MagicMock(return_value={"rc": 0})
    base._get_perms = MagicMock(
        return_value={"mode": "rw-r--r--", "owner": "root", "group": "root"}
    )

    with pytest.raises(AnsibleActionFail, match="expected owner=postgres"):
        base._apply_perms("/tmp/f", {"owner": "postgres"}, task_vars={})


def test_apply_perms_command_failure(base) -> None:
    """Test _apply_perms raises when chmod fails."""
    base._cmd = MagicMock(return_value={"rc": 1, "stderr": "not permitted"})

    with pytest.raises(AnsibleActionFail, match="Failed to chmod"):
        base._apply_perms("/tmp/f", {"mode": "0640"}, task_vars={})


@pytest.mark.parametrize(
    "input_content, expected_lines, expected_content",
    [
        ("foo\nbar\n", ["foo", "bar"], "foo\nbar\n"),
        ("foo\nbar", ["foo", "bar"], "foo\nbar\n"),
        ("", [], "\n"),
        (["foo", 123, 4.5], ["foo", "123", "4.5"], "foo\n123\n4.5\n"),
    ],
)
def test_normalize_content(
    base, input_content, expected_lines, expected_content
) -> None:
    """Test _normalize_content with string and list input."""
    lines, normalized = base._normalize_content(input_content)
    assert lines == expected_lines
    assert normalized == expected_content


@pytest.mark.parametrize(
    "invalid_content", [None, 123, object(), [object()], [{"dict": "nope"}]]
)
def test_normalize_content_rejects_invalid_input(base, invalid_content) -> None:
    """Test _normalize_content rejects invalid input types."""
    with pytest.raises(AnsibleActionFail, match="_write_file.*"):
        base._normalize_content(invalid_content)


def test_write_temp_file_success(base) -> None:
    """Test _write_temp_file writes content and restricts the mode."""
    tmpfile = os.path.join(base._connection._shell.tmpdir, "file.txt")

    result = base._write_temp_file("one\ntwo\n", tmpfile, task_vars={})

    assert result["rc"] == 0
    with open(tmpfile, encoding="utf-8") as f:
        assert f.read() == "one\ntwo\n"
    assert oct(os.stat(tmpfile).st_mode & 0o777) == "0o600"


def test_write_temp_file_failure(base) -> None:
    """Test _write_temp_file raises when tee fails."""
    base._cmd = MagicMock(return_value={"rc": 1, "stderr": "no tee"})

    with pytest.raises(AnsibleActionFail, match=r"Failed to write temp file .*no tee"):
        base._write_temp_file("oops\n", "/tmp/fail", task_vars={})
