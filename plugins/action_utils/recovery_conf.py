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
Value object and renderer for PostgreSQL ``recovery.conf``.

Everything here is pure: no connection, no task, no display. The action
plugin and the filter plugin both build a :class:`RecoveryParameters`
and hand it to :func:`render`.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional, Tuple, Union

from ansible.errors import AnsibleActionFail


class RecoveryConfError(AnsibleActionFail):
    """Invalid or unusable recovery parameters."""


class DisabledError(RecoveryConfError):
    """recovery.conf management is switched off for this host."""


class EmptyConfigError(RecoveryConfError):
    """No recovery parameter was supplied."""


# Rendered order of recovery.conf directives: (field, kind)
RECOVERY_FIELDS: Tuple[Tuple[str, str], ...] = (
    ("restore_command", "str"),
    ("archive_cleanup_command", "str"),
    ("recovery_end_command", "str"),
    ("recovery_target_name", "str"),
    ("recovery_target_time", "str"),
    ("recovery_target_xid", "str"),
    ("recovery_target_inclusive", "bool"),
    ("recovery_target", "str"),
    ("recovery_target_timeline", "str"),
    ("pause_at_recovery_target", "bool"),
    ("standby_mode", "str"),
    ("primary_conninfo", "str"),
    ("primary_slot_name", "str"),
    ("trigger_file", "str"),
    ("recovery_min_apply_delay", "delay"),
)

RECOVERY_FIELD_NAMES = tuple(name for name, _kind in RECOVERY_FIELDS)

# restore_command is the only string allowed to be empty
EMPTY_ALLOWED = frozenset(["restore_command"])

DELAY_PATTERN = re.compile(r"^(\d+)\s*(ms|s|min|h|d)?$", re.ASCII)


@dataclass(frozen=True)
class RecoveryParameters:
    """The recovery.conf directives of one host; unset fields are None."""

    restore_command: Optional[str] = None
    archive_cleanup_command: Optional[str] = None
    recovery_end_command: Optional[str] = None
    recovery_target_name: Optional[str] = None
    recovery_target_time: Optional[str] = None
    recovery_target_xid: Optional[str] = None
    recovery_target_inclusive: Optional[bool] = None
    recovery_target: Optional[str] = None
    recovery_target_timeline: Optional[str] = None
    pause_at_recovery_target: Optional[bool] = None
    standby_mode: Optional[str] = None
    primary_conninfo: Optional[str] = None
    primary_slot_name: Optional[str] = None
    trigger_file: Optional[str] = None
    recovery_min_apply_delay: Optional[Union[int, str]] = None

    def __post_init__(self) -> None:
        """
        Check every set value against the kind of its directive.

        Bad input fails here rather than producing a broken file.

        :raises RecoveryConfError: On an empty string where one is not
            allowed, or a value of the wrong kind
        """
        for name, kind in RECOVERY_FIELDS:
            value = getattr(self, name)
            if value is not None:
                # Frozen: store the normalised value directly
                object.__setattr__(self, name, _check_value(name, kind, value))

    @classmethod
    def from_args(cls, args: Mapping[str, Any]) -> "RecoveryParameters":
        """
        Build parameters from a mapping, ignoring unrelated keys.

        :param Mapping[str, Any] args: Task arguments or filter input
        :returns RecoveryParameters: The checked value object
        :raises RecoveryConfError: On an invalid value
        """
        return cls(
            **{
                name: args[name]
                for name in RECOVERY_FIELD_NAMES
                if args.get(name) is not None
            }
        )

    def as_dict(self) -> Dict[str, Any]:
        """Return only the directives that are set."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }

    def is_empty(self) -> bool:
        return not self.as_dict()


def _check_value(name: str, kind: str, value: Any) -> Any:
    if kind == "bool":
        if not isinstance(value, bool):
            raise RecoveryConfError(
                f"{name} must be a boolean, got {type(value).__name__}"
            )
        return value

    if kind == "delay":
        # bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, (int, str)):
            raise RecoveryConfError(
                f"{name} must be an integer or a time string such as "
                f"'5min', got {value!r}"
            )
        if isinstance(value, int):
            if value < 0:
                raise RecoveryConfError(f"{name} must not be negative")
            return value
        if not DELAY_PATTERN.match(value.strip()):
            raise RecoveryConfError(
                f"{name} must be digits optionally followed by one of "
                f"ms, s, min, h or d, got {value!r}"
            )
        return value.strip()

    if not isinstance(value, str):
        raise RecoveryConfError(
            f"{name} must be a string, got {type(value).__name__}"
        )
    if value == "" and name not in EMPTY_ALLOWED:
        raise RecoveryConfError(f"{name} must not be an empty string")
    return value


def quote(value: str) -> str:
    """Single-quote a value, doubling any embedded single quotes."""
    return "'" + value.replace("'", "''") + "'"


def format_value(kind: str, value: Any) -> str:
    """
    Format one directive value the way recovery.conf expects it.

    :param str kind: One of ``str``, ``bool`` or ``delay``
    :param Any value: The checked value
    :returns str: The right-hand side of the directive
    """
    if kind == "bool":
        return "true" if value else "false"
    if kind == "delay":
        if isinstance(value, int):
            return str(value)
        digits, unit = DELAY_PATTERN.match(value).groups()
        if unit is None:
            # Bare digits: milliseconds are implied
            return digits
        return quote(f"{digits}{unit}")
    return quote(value)


def render(params: RecoveryParameters) -> str:
    """
    Render recovery.conf text from a parameter set.

    One ``key = value`` line per set field, in :data:`RECOVERY_FIELDS`
    order. Unset fields produce nothing; no header is added.

    :param RecoveryParameters params: The parameters to render
    :returns str: Newline-terminated file content, or an empty string
        when nothing is set
    """
    lines = []
    for name, kind in RECOVERY_FIELDS:
        value = getattr(params, name)
        if value is None:
            continue
        lines.append(f"{name} = {format_value(kind, value)}")

    if not lines:
        return ""
    return "\n".join(lines) + "\n"


def check_enabled(enabled: bool) -> None:
    """
    Refuse to go any further when recovery.conf is not managed here.

    Callers run this before looking at any parameter value.

    :raises DisabledError: When management is disabled
    """
    if not enabled:
        raise DisabledError(
            "manage_recovery_conf is disabled. Set manage_recovery_conf "
            "to true or remove this recovery_conf task."
        )


def validate(enabled: bool, params: RecoveryParameters) -> None:
    """
    Check that rendering recovery.conf makes sense for this host.

    :param bool enabled: Value of ``manage_recovery_conf``
    :param RecoveryParameters params: The parameters to check
    :raises DisabledError: When management is disabled
    :raises EmptyConfigError: When no parameter is set
    """
    check_enabled(enabled)

    if params.is_empty():
        raise EmptyConfigError(
            "recovery_conf was called without any recovery parameter. "
            "An empty recovery.conf is meaningless; remove this task."
        )
