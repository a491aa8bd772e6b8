# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Immutable values passed between the CLI and the pbuilder runner."""

from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_ARCHITECTURE = "amd64"


@dataclass(frozen=True)
class InvocationContext:
    """Everything one command line asks for."""

    distribution: str
    architecture: str = DEFAULT_ARCHITECTURE
    role: str | None = None
    force: bool = False
    extra_args: tuple[str, ...] = field(default_factory=tuple)


@dataclass(frozen=True)
class ResolvedPaths:
    role: str
    role_derived: bool
    archive: Path
    bindmount_dir: Path


@dataclass(frozen=True)
class Operation:
    """A pbuilder subcommand exposed by the CLI.

    ``requires_archive_check`` guards against clobbering an existing base
    archive unless ``--force`` is given.
    """

    name: str
    help: str
    requires_archive_check: bool = False


CREATE = Operation("create", "Create a new chroot environment", requires_archive_check=True)
UPDATE = Operation("update", "Update an existing chroot environment")
LOGIN = Operation("login", "Log in to a chroot environment")

OPERATIONS: tuple[Operation, ...] = (CREATE, UPDATE, LOGIN)


def get_operation(name: str) -> Operation:
    for op in OPERATIONS:
        if op.name == name:
            return op
    raise KeyError(name)
