#!/usr/bin/env python3
# SPDX-FileCopyrightText: 2025-2026 Jiri Vyskocil <jiri@vyskocil.com>
#
# SPDX-License-Identifier: Apache-2.0

import argparse
import sys
from collections.abc import Sequence

import argcomplete

from .. import __version__
from .._util.ansi import gray, red, supports_color, yes_no
from .._util.fs import path_exists
from .._util.logging_utils import _log_debug, log_path
from ..core.config import (
    ToolConfig,
    global_config_path as _global_config_path,
    global_config_search_paths as _global_config_search_paths,
    load_tool_config,
)
from ..core.errors import ChrootPbuilderError, MissingCommandError
from ..core.invocation import OPERATIONS, InvocationContext, get_operation
from ..core.paths import resolve_paths
from ..runner.pbuilder import run_operation

PASSTHROUGH_SEPARATOR = "--"


def _non_empty(value: str) -> str:
    if not value:
        raise argparse.ArgumentTypeError("must not be empty")
    return value


def _split_passthrough(argv: Sequence[str]) -> tuple[list[str], list[str]]:
    """Split *argv* at the first ``--``; the tail is never parsed."""
    argv = list(argv)
    if PASSTHROUGH_SEPARATOR in argv:
        idx = argv.index(PASSTHROUGH_SEPARATOR)
        return argv[:idx], argv[idx + 1 :]
    return argv, []


def _environment_options() -> argparse.ArgumentParser:
    """Options shared by every command that names an environment."""
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "-d",
        "--distribution",
        required=True,
        type=_non_empty,
        help="Distribution (required)",
    )
    common.add_argument(
        "-a",
        "--architecture",
        type=_non_empty,
        default=None,
        help="Architecture (default: amd64, or defaults.architecture from config.yml)",
    )
    common.add_argument(
        "-r",
        "--role",
        default="",
        help="Role (default: derived from distribution and architecture)",
    )
    return common


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="chroot-pbuilder",
        description="A tool to simplify chroot environment creation and management using pbuilder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=(
            "Paths:\n"
            "  base archive:  ./<distribution>-<architecture>-<role>.tgz\n"
            "  bind mounts:   ~/.chroot-pbuilder/<distribution>-<architecture>-<role>/\n"
            "\n"
            "Arguments after '--' are passed to pbuilder unchanged, e.g.:\n"
            "  chroot-pbuilder create -d bookworm -- --mirror http://deb.debian.org/debian\n"
        ),
    )
    parser.add_argument("--version", action="version", version=f"chroot-pbuilder {__version__}")
    sub = parser.add_subparsers(dest="cmd", required=True)

    common = _environment_options()
    for op in OPERATIONS:
        p_op = sub.add_parser(
            op.name,
            parents=[common],
            help=op.help,
            usage="%(prog)s [options] [additional pbuilder options]",
        )
        if op.requires_archive_check:
            p_op.add_argument(
                "-f",
                "--force",
                action="store_true",
                help="Force creation even if baseTgz exists",
            )
        p_op.add_argument("pbuilder_args", nargs="*", help=argparse.SUPPRESS)

    sub.add_parser(
        "paths",
        parents=[common],
        help="Show the role, base archive and bind-mount directory for an environment",
    )
    sub.add_parser("config", help="Show configuration file locations and effective defaults")

    return parser


def _context_from_args(
    args: argparse.Namespace, passthrough: Sequence[str], config: ToolConfig
) -> InvocationContext:
    return InvocationContext(
        distribution=args.distribution,
        architecture=args.architecture or config.architecture,
        role=args.role or None,
        force=getattr(args, "force", False),
        extra_args=tuple(getattr(args, "pbuilder_args", [])) + tuple(passthrough),
    )


def _print_paths(ctx: InvocationContext) -> None:
    """Show what an environment resolves to without creating anything."""
    color_enabled = supports_color(sys.stdout)
    paths = resolve_paths(ctx.distribution, ctx.architecture, ctx.role)
    if paths.role_derived:
        origin = f'derived from sha512("{ctx.distribution}-{ctx.architecture}")'
    else:
        origin = "given"
    print(f"Role: {paths.role} ({origin})")
    print(
        f"Base archive: {gray(str(paths.archive), color_enabled)} "
        f"(exists: {yes_no(path_exists(paths.archive), color_enabled)})"
    )
    print(
        f"Bind mounts: {gray(str(paths.bindmount_dir), color_enabled)} "
        f"(exists: {yes_no(path_exists(paths.bindmount_dir), color_enabled)})"
    )


def _print_config(config: ToolConfig) -> None:
    """Display configuration file locations and effective defaults."""
    color_enabled = supports_color(sys.stdout)
    gcfg = _global_config_path()
    print("Configuration:")
    print(
        f"- Global config file: {gray(str(gcfg), color_enabled)} "
        f"(exists: {yes_no(gcfg.is_file(), color_enabled)})"
    )
    print("- Global config search order:")
    for p in _global_config_search_paths():
        print(f"  • {gray(str(p), color_enabled)} (exists: {yes_no(p.is_file(), color_enabled)})")
    print(f"- Default architecture: {config.architecture}")
    print(f"- Privilege wrapper: {config.sudo}")
    print(f"- pbuilder: {config.pbuilder}")
    print(f"- Debug log: {gray(str(log_path()), color_enabled)}")


def _dispatch(args: argparse.Namespace, passthrough: Sequence[str]) -> None:
    config = load_tool_config()
    if args.cmd == "config":
        _print_config(config)
        return

    ctx = _context_from_args(args, passthrough, config)
    if args.cmd == "paths":
        _print_paths(ctx)
        return

    run_operation(get_operation(args.cmd), ctx, config)


def _merge_leftovers(
    parser: argparse.ArgumentParser, args: argparse.Namespace, leftovers: list[str]
) -> None:
    """Append positionals argparse left over after an option to the passthrough.

    ``update extra -d sid more`` forwards both ``extra`` and ``more``;
    unknown options are still usage errors.
    """
    if not leftovers:
        return
    unknown = [a for a in leftovers if a.startswith("-")]
    if unknown or not hasattr(args, "pbuilder_args"):
        parser.error(f"unrecognized arguments: {' '.join(unknown or leftovers)}")
    args.pbuilder_args = list(args.pbuilder_args) + leftovers


def main(argv: Sequence[str] | None = None) -> None:
    head, passthrough = _split_passthrough(sys.argv[1:] if argv is None else argv)

    parser = build_parser()
    argcomplete.autocomplete(parser)
    args, leftovers = parser.parse_known_args(head)
    _merge_leftovers(parser, args, leftovers)

    if passthrough and args.cmd not in {op.name for op in OPERATIONS}:
        parser.error(f"unrecognized arguments: {' '.join(passthrough)}")

    try:
        _dispatch(args, passthrough)
    except MissingCommandError as e:
        # Preflight failures leave the filesystem untouched, debug log included
        print(red(str(e), supports_color(sys.stderr)), file=sys.stderr)
        raise SystemExit(e.exit_code)
    except ChrootPbuilderError as e:
        _log_debug(f"error: {e}")
        print(red(str(e), supports_color(sys.stderr)), file=sys.stderr)
        raise SystemExit(e.exit_code)
    except KeyboardInterrupt:
        print(file=sys.stderr)
        raise SystemExit(130)


if __name__ == "__main__":
    main()
