"""chroot-pbuilder package.

Modules:
- chroot_pbuilder.cli: CLI entry point package (chroot-pbuilder)
- chroot_pbuilder.core: Configuration, paths, invocation model, errors
- chroot_pbuilder.runner: Preflight checks and pbuilder invocation
- chroot_pbuilder._util: Internal helpers (fs, ansi, logging)
"""

__all__ = [
    "cli",
    "core",
    "runner",
    "_util",
]

# Version information - single source of truth using importlib.metadata
try:
    from importlib.metadata import PackageNotFoundError, version

    __version__ = version("chroot-pbuilder")
except PackageNotFoundError:
    # Running from a source checkout without an install
    __version__ = "unknown"
