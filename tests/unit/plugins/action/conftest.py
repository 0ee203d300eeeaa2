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
import shutil
import tempfile
from typing import Generator
from unittest.mock import MagicMock

import pytest

from ansible_collections.o0_o.postgresql.plugins.action.recovery_conf import (
    ActionModule,
)
from ansible_collections.o0_o.postgresql.plugins.action_utils import (
    ManagedFileBase,
)
from ansible_collections.o0_o.postgresql.tests.utils import real_cmd


def _make(cls, task=None):
    """Build an action plugin around mocked Ansible collaborators."""
    action = cls(
        task=task or MagicMock(),
        connection=MagicMock(),
        play_context=MagicMock(),
        loader=MagicMock(),
        templar=MagicMock(),
        shared_loader_obj=MagicMock(),
    )
    action._display = MagicMock()
    return action


@pytest.fixture
def bare() -> ManagedFileBase:
    """A ManagedFileBase whose remote execution is entirely mocked.

    Used to check how commands are dispatched to the command module or
    the raw connection without running anything.
    """
    bare = _make(ManagedFileBase)
    bare._task.check_mode = False
    return bare


@pytest.fixture
def base() -> Generator[ManagedFileBase, None, None]:
    """A ManagedFileBase that runs its commands on the local host.

    ``_cmd`` is replaced with real_cmd so POSIX tools act on real files.
    The connection's temporary directory is a fresh local directory.

    :returns Generator[ManagedFileBase, None, None]: Configured base
        instance
    """
    base = _make(ManagedFileBase)

    temp_dir = tempfile.mkdtemp(prefix="ansible_test_")
    base._connection._shell.tmpdir = temp_dir
    base._connection._shell.join_path = os.path.join
    base._connection._shell.quote = lambda s: f"'{s}'"

    base._cmd = real_cmd

    yield base

    shutil.rmtree(temp_dir, ignore_errors=True)


@pytest.fixture
def plugin(base) -> Generator[ActionModule, None, None]:
    """The recovery_conf action plugin, running commands locally."""
    base._task.async_val = False
    base._task.check_mode = False
    base._task.diff = False
    base._task.action = "o0_o.postgresql.recovery_conf"
    base._task.args = {}
    base._templar.template = lambda value, **kwargs: value

    plugin = _make(ActionModule, task=base._task)
    plugin._connection = base._connection
    plugin._templar = base._templar
    plugin._cmd = real_cmd
    plugin._remove_tmp_path = MagicMock()

    yield plugin
