# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Preflight checks and pbuilder invocation."""

import shutil
import subprocess
import sys

from .._util.ansi import supports_color, yellow
from .._util.fs import ensure_dir, path_exists, remove_file
from .._util.logging_utils import _log_debug
from ..core.config import ToolConfig
from ..core.errors import MissingCommandError, PbuilderError
from ..core.invocation import InvocationContext, Operation, ResolvedPaths
from ..core.paths import resolve_paths

# ---------- preflight ----------


def check_required_commands(config: ToolConfig) -> None:
    """Raise MissingCommandError unless sudo and pbuilder resolve on PATH."""
    for cmd in config.required_commands:
        if shutil.which(cmd) is None:
            raise MissingCommandError(cmd)


# ---------- command assembly ----------


def pbuilder_args(
    operation: str, ctx: InvocationContext, paths: ResolvedPaths
) -> list[str]:
    """Return the pbuilder argument list (without the sudo/pbuilder prefix)."""
    return [
        operation,
        "--basetgz",
        str(paths.archive),
        "--distribution",
        ctx.distribution,
        "--architecture",
        ctx.architecture,
        "--bindmounts",
        str(paths.bindmount_dir),
        *ctx.extra_args,
    ]


def pbuilder_command(
    operation: str, ctx: InvocationContext, paths: ResolvedPaths, config: ToolConfig
) -> list[str]:
    return [config.sudo, config.pbuilder, *pbuilder_args(operation, ctx, paths)]


# ---------- flows ----------


def _notice(message: str) -> None:
    print(yellow(message, supports_color(sys.stdout)))


def prepare_create(ctx: InvocationContext, paths: ResolvedPaths) -> bool:
    """Handle an existing base archive before ``create``.

    Returns False when the archive exists and ``force`` is not set; the
    caller then stops without running pbuilder. With ``force`` the archive
    is removed first.
    """
    archive = paths.archive
    if not path_exists(archive):
        return True
    if not ctx.force:
        _notice(f"baseTgz already exists at {archive}. Use --force to overwrite.")
        _log_debug(f"create skipped: {archive} exists")
        return False
    _notice(f"Force flag set. Removing existing baseTgz at {archive}.")
    remove_file(archive)
    _log_debug(f"removed {archive}")
    return True


def run_pbuilder(
    operation: str, ctx: InvocationContext, paths: ResolvedPaths, config: ToolConfig
) -> None:
    """Run ``sudo pbuilder <operation> ...`` with the terminal attached.

    stdin, stdout and stderr are inherited so interactive sessions (login,
    debootstrap prompts) work unchanged.
    """
    ensure_dir(paths.bindmount_dir)

    cmd = pbuilder_command(operation, ctx, paths, config)
    _log_debug(f"$ {' '.join(cmd)}")
    try:
        subprocess.run(cmd, check=True)
    except FileNotFoundError:
        raise PbuilderError(operation, f"{config.sudo} not found")
    except OSError as e:
        raise PbuilderError(operation, str(e))
    except subprocess.CalledProcessError as e:
        raise PbuilderError(operation, f"exit status {e.returncode}", e.returncode)
    _log_debug(f"pbuilder {operation} finished")


def run_operation(
    operation: Operation, ctx: InvocationContext, config: ToolConfig
) -> ResolvedPaths:
    """Single dispatcher for create/update/login.

    Preflight runs before anything touches the filesystem.
    """
    check_required_commands(config)

    paths = resolve_paths(ctx.distribution, ctx.architecture, ctx.role)
    origin = "derived" if paths.role_derived else "given"
    _log_debug(
        f"{operation.name}: distribution={ctx.distribution} "
        f"architecture={ctx.architecture} role={paths.role} ({origin})"
    )

    if operation.requires_archive_check and not prepare_create(ctx, paths):
        return paths

    run_pbuilder(operation.name, ctx, paths, config)
    return paths
