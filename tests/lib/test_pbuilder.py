import io
import os
import subprocess
import unittest
import unittest.mock
from contextlib import redirect_stdout
from pathlib import Path

from chroot_pbuilder.core.errors import FilesystemError, MissingCommandError, PbuilderError
from chroot_pbuilder.core.invocation import CREATE, LOGIN, UPDATE, InvocationContext
from chroot_pbuilder.core.paths import derive_role, resolve_paths
from chroot_pbuilder.runner import pbuilder
from test_utils import make_config, tool_env, which_all

RUN = "chroot_pbuilder.runner.pbuilder.subprocess.run"
WHICH = "chroot_pbuilder.runner.pbuilder.shutil.which"


class PreflightTests(unittest.TestCase):
    def test_all_commands_present(self) -> None:
        with unittest.mock.patch(WHICH, side_effect=which_all) as mock_which:
            pbuilder.check_required_commands(make_config())
        self.assertEqual(
            [c.args[0] for c in mock_which.call_args_list], ["sudo", "/usr/sbin/pbuilder"]
        )

    def test_missing_pbuilder_named_in_error(self) -> None:
        def _which(cmd: str):
            return None if cmd == "/usr/sbin/pbuilder" else f"/usr/bin/{cmd}"

        with unittest.mock.patch(WHICH, side_effect=_which):
            with self.assertRaises(MissingCommandError) as ctx:
                pbuilder.check_required_commands(make_config())
        self.assertEqual(ctx.exception.command, "/usr/sbin/pbuilder")
        self.assertIn("required command not found: /usr/sbin/pbuilder", str(ctx.exception))
        self.assertEqual(ctx.exception.exit_code, 1)

    def test_empty_search_path_fails(self) -> None:
        with unittest.mock.patch.dict(os.environ, {"PATH": ""}):
            with self.assertRaises(MissingCommandError) as ctx:
                pbuilder.check_required_commands(make_config())
        self.assertEqual(ctx.exception.command, "sudo")

    def test_configured_commands_are_checked(self) -> None:
        with unittest.mock.patch(WHICH, return_value=None) as mock_which:
            with self.assertRaises(MissingCommandError) as ctx:
                pbuilder.check_required_commands(make_config(sudo="doas"))
        mock_which.assert_called_once_with("doas")
        self.assertEqual(ctx.exception.command, "doas")


class CommandAssemblyTests(unittest.TestCase):
    def test_argument_order(self) -> None:
        with tool_env() as env:
            ctx = InvocationContext(
                distribution="bookworm",
                architecture="arm64",
                role="dev",
                extra_args=("--mirror", "http://deb.debian.org/debian", "--debug"),
            )
            paths = resolve_paths(ctx.distribution, ctx.architecture, ctx.role)
            cmd = pbuilder.pbuilder_command("update", ctx, paths, make_config())
        self.assertEqual(
            cmd,
            [
                "sudo",
                "/usr/sbin/pbuilder",
                "update",
                "--basetgz",
                str(env.cwd / "bookworm-arm64-dev.tgz"),
                "--distribution",
                "bookworm",
                "--architecture",
                "arm64",
                "--bindmounts",
                str(env.home / ".chroot-pbuilder" / "bookworm-arm64-dev"),
                "--mirror",
                "http://deb.debian.org/debian",
                "--debug",
            ],
        )


class RunOperationTests(unittest.TestCase):
    def _run(self, op, ctx: InvocationContext, **config):
        out = io.StringIO()
        with (
            unittest.mock.patch(WHICH, side_effect=which_all),
            unittest.mock.patch(RUN) as mock_run,
            redirect_stdout(out),
        ):
            paths = pbuilder.run_operation(op, ctx, make_config(**config))
        return paths, mock_run, out.getvalue()

    def test_create_without_archive_invokes_pbuilder(self) -> None:
        with tool_env() as env:
            paths, mock_run, _ = self._run(CREATE, InvocationContext("bookworm"))
            role = derive_role("bookworm", "amd64")
            self.assertEqual(paths.archive, env.cwd / f"bookworm-amd64-{role}.tgz")
            self.assertTrue(paths.bindmount_dir.is_dir())
            self.assertEqual(paths.bindmount_dir.stat().st_mode & 0o777, 0o755 & ~_umask())
        mock_run.assert_called_once()
        cmd = mock_run.call_args.args[0]
        self.assertEqual(cmd[:3], ["sudo", "/usr/sbin/pbuilder", "create"])
        self.assertEqual(mock_run.call_args.kwargs, {"check": True})

    def test_create_existing_archive_without_force_is_noop(self) -> None:
        with tool_env():
            ctx = InvocationContext("bookworm", role="dev")
            archive = resolve_paths("bookworm", "amd64", "dev").archive
            archive.write_bytes(b"base image")
            paths, mock_run, out = self._run(CREATE, ctx)
            self.assertEqual(archive.read_bytes(), b"base image")
            self.assertFalse(paths.bindmount_dir.exists())
        mock_run.assert_not_called()
        self.assertIn(f"baseTgz already exists at {archive}", out)
        self.assertIn("Use --force to overwrite.", out)

    def test_create_existing_archive_with_force_removes_it_first(self) -> None:
        with tool_env():
            ctx = InvocationContext("bookworm", role="dev", force=True)
            archive = resolve_paths("bookworm", "amd64", "dev").archive
            archive.write_bytes(b"stale")
            seen: list[bool] = []

            def _fake_run(cmd, check):
                seen.append(archive.exists())
                return subprocess.CompletedProcess(cmd, 0)

            out = io.StringIO()
            with (
                unittest.mock.patch(WHICH, side_effect=which_all),
                unittest.mock.patch(RUN, side_effect=_fake_run) as mock_run,
                redirect_stdout(out),
            ):
                pbuilder.run_operation(CREATE, ctx, make_config())
        self.assertEqual(seen, [False])
        self.assertEqual(mock_run.call_args.args[0][2], "create")
        self.assertIn("Force flag set. Removing existing baseTgz", out.getvalue())

    def test_unreadable_archive_is_filesystem_error(self) -> None:
        real_stat = Path.stat

        def _stat(self, *args, **kwargs):
            if self.suffix == ".tgz":
                raise PermissionError(13, "Permission denied", str(self))
            return real_stat(self, *args, **kwargs)

        with tool_env():
            with unittest.mock.patch.object(Path, "stat", autospec=True, side_effect=_stat):
                with self.assertRaises(FilesystemError) as exc:
                    self._run(CREATE, InvocationContext("bookworm"))
        self.assertIn("Permission denied", str(exc.exception))

    def test_force_removal_failure_aborts(self) -> None:
        with tool_env():
            ctx = InvocationContext("bookworm", role="dev", force=True)
            archive = resolve_paths("bookworm", "amd64", "dev").archive
            archive.write_bytes(b"stale")
            with unittest.mock.patch(
                "chroot_pbuilder._util.fs.Path.unlink", side_effect=PermissionError("denied")
            ):
                with self.assertRaises(FilesystemError) as exc:
                    self._run(CREATE, ctx)
            self.assertTrue(archive.exists())
        self.assertIn("Error removing existing baseTgz", str(exc.exception))

    def test_update_and_login_skip_archive_check(self) -> None:
        for op in (UPDATE, LOGIN):
            with self.subTest(op=op.name), tool_env():
                ctx = InvocationContext("bookworm", role="dev")
                resolve_paths("bookworm", "amd64", "dev").archive.write_bytes(b"x")
                _, mock_run, _ = self._run(op, ctx)
                mock_run.assert_called_once()
                self.assertEqual(mock_run.call_args.args[0][2], op.name)

    def test_update_without_archive_still_invokes(self) -> None:
        with tool_env():
            _, mock_run, _ = self._run(UPDATE, InvocationContext("sid"))
        mock_run.assert_called_once()

    def test_configured_commands_are_invoked(self) -> None:
        with tool_env():
            _, mock_run, _ = self._run(
                LOGIN, InvocationContext("sid"), sudo="doas", pbuilder="/opt/pbuilder"
            )
        self.assertEqual(mock_run.call_args.args[0][:3], ["doas", "/opt/pbuilder", "login"])

    def test_preflight_failure_touches_nothing(self) -> None:
        with tool_env() as env:
            with (
                unittest.mock.patch(WHICH, return_value=None),
                unittest.mock.patch(RUN) as mock_run,
            ):
                with self.assertRaises(MissingCommandError):
                    pbuilder.run_operation(
                        CREATE, InvocationContext("bookworm"), make_config()
                    )
            self.assertFalse((env.home / ".chroot-pbuilder").exists())
            self.assertEqual(list(env.cwd.iterdir()), [])
        mock_run.assert_not_called()

    def test_pbuilder_failure_carries_exit_status(self) -> None:
        with tool_env():
            with (
                unittest.mock.patch(WHICH, side_effect=which_all),
                unittest.mock.patch(
                    RUN, side_effect=subprocess.CalledProcessError(3, ["sudo"])
                ),
            ):
                with self.assertRaises(PbuilderError) as ctx:
                    pbuilder.run_operation(UPDATE, InvocationContext("sid"), make_config())
        self.assertEqual(ctx.exception.exit_code, 3)
        self.assertEqual(ctx.exception.operation, "update")
        self.assertIn("Error running pbuilder update", str(ctx.exception))

    def test_pbuilder_killed_by_signal_exits_one(self) -> None:
        with tool_env():
            with (
                unittest.mock.patch(WHICH, side_effect=which_all),
                unittest.mock.patch(
                    RUN, side_effect=subprocess.CalledProcessError(-2, ["sudo"])
                ),
            ):
                with self.assertRaises(PbuilderError) as ctx:
                    pbuilder.run_operation(LOGIN, InvocationContext("sid"), make_config())
        self.assertEqual(ctx.exception.exit_code, 1)

    def test_pbuilder_start_failure(self) -> None:
        with tool_env():
            with (
                unittest.mock.patch(WHICH, side_effect=which_all),
                unittest.mock.patch(RUN, side_effect=FileNotFoundError("sudo")),
            ):
                with self.assertRaises(PbuilderError) as ctx:
                    pbuilder.run_operation(LOGIN, InvocationContext("sid"), make_config())
        self.assertEqual(ctx.exception.exit_code, 1)
        self.assertIn("sudo not found", str(ctx.exception))

    def test_bindmount_dir_creation_failure_is_fatal(self) -> None:
        with tool_env() as env:
            # A regular file where the bind-mount root should be
            (env.home / ".chroot-pbuilder").write_text("", encoding="utf-8")
            with (
                unittest.mock.patch(WHICH, side_effect=which_all),
                unittest.mock.patch(RUN) as mock_run,
            ):
                with self.assertRaises(FilesystemError):
                    pbuilder.run_operation(UPDATE, InvocationContext("sid"), make_config())
        mock_run.assert_not_called()


def _umask() -> int:
    mask = os.umask(0)
    os.umask(mask)
    return mask
