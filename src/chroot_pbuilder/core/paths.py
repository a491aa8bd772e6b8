# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

"""Path derivation for base archives, bind mounts and the tool's own dirs."""

import hashlib
import os
from pathlib import Path

from platformdirs import user_config_dir, user_data_dir

from .errors import FilesystemError
from .invocation import ResolvedPaths

APP_NAME = "chroot-pbuilder"
BINDMOUNT_DIR_NAME = ".chroot-pbuilder"
ROLE_LENGTH = 10


def config_root() -> Path:
    """
    Base directory for the user's config.yml.

    Priority:
      1. ${XDG_CONFIG_HOME}/chroot-pbuilder
      2. platformdirs user config dir (~/.config/chroot-pbuilder on Linux)
    """
    xdg = os.getenv("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_NAME
    return Path(user_config_dir(APP_NAME))


def state_root() -> Path:
    """
    Writable state (the debug log).

    Priority:
      1. CHROOT_PBUILDER_STATE_DIR
      2. platformdirs user data dir (~/.local/share/chroot-pbuilder on Linux)
    """
    env = os.getenv("CHROOT_PBUILDER_STATE_DIR")
    if env:
        return Path(env).expanduser()
    return Path(user_data_dir(APP_NAME))


def derive_role(distribution: str, architecture: str) -> str:
    """Return the role used when none is given.

    First ten hex digits of SHA-512 over ``"<distribution>-<architecture>"``.
    """
    digest = hashlib.sha512(f"{distribution}-{architecture}".encode("utf-8")).hexdigest()
    return digest[:ROLE_LENGTH]


def environment_name(distribution: str, architecture: str, role: str) -> str:
    return f"{distribution}-{architecture}-{role}"


def _cwd() -> Path:
    try:
        return Path.cwd()
    except OSError as e:
        raise FilesystemError(f"Error getting current directory: {e}") from e


def _home() -> Path:
    try:
        return Path.home()
    except (OSError, RuntimeError) as e:
        raise FilesystemError(f"Error getting home directory: {e}") from e


def resolve_paths(
    distribution: str,
    architecture: str,
    role: str | None = None,
    *,
    cwd: Path | None = None,
    home: Path | None = None,
) -> ResolvedPaths:
    """Compute the base archive and bind-mount directory for an environment.

    The archive lives in the current working directory; the bind-mount
    directory lives under ``~/.chroot-pbuilder``. An explicit *role* is used
    verbatim, so two environments given the same role share both paths.
    Nothing is created here.
    """
    derived = not role
    effective_role = derive_role(distribution, architecture) if derived else role
    name = environment_name(distribution, architecture, effective_role)

    base = cwd if cwd is not None else _cwd()
    home_dir = home if home is not None else _home()

    return ResolvedPaths(
        role=effective_role,
        role_derived=derived,
        archive=base / f"{name}.tgz",
        bindmount_dir=home_dir / BINDMOUNT_DIR_NAME / name,
    )
