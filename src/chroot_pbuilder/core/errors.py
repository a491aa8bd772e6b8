# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Error types raised by the library layer.

Only ``chroot_pbuilder.cli.main.main`` turns these into an exit status.
"""


class ChrootPbuilderError(Exception):
    """Base class for every error reported to the user."""

    exit_code = 1


class MissingCommandError(ChrootPbuilderError):
    """A required executable is not available on PATH."""

    def __init__(self, command: str) -> None:
        super().__init__(f"required command not found: {command}")
        self.command = command


class ConfigError(ChrootPbuilderError):
    """The global config file is unreadable or malformed."""


class FilesystemError(ChrootPbuilderError):
    """A stat/remove/mkdir or cwd/home lookup failed."""


class PbuilderError(ChrootPbuilderError):
    """pbuilder could not be started or exited non-zero."""

    def __init__(self, operation: str, detail: str, exit_code: int = 1) -> None:
        super().__init__(f"Error running pbuilder {operation}: {detail}")
        self.operation = operation
        # Signals show up as negative return codes; those map to 1.
        self.exit_code = exit_code if exit_code > 0 else 1
