#!/usr/bin/env python3
"""
End-to-end switcher runs against a scratch conda root.

The new environment's python is a symlink to the interpreter running the tests,
so the version family check and the import checks execute for real.
"""
import os
import unittest

from envswitch.conda import CondaClient
from envswitch.results import (
    EXIT_ENV_MISSING,
    EXIT_NO_INTERPRETER,
    EXIT_REFUSED_CLOBBER,
    CommandError,
    PhaseStatus,
    SwitchError,
)
from envswitch.probe import probe_version, version_matches
from envswitch.snapshot import BackupRecord
from envswitch.switcher import EnvironmentSwitcher

from _sandbox import RUNNING_VERSION, FakeConda, Sandbox


class SwitcherTestCase(unittest.TestCase):
    def setUp(self):
        self.sandbox = Sandbox()
        self.addCleanup(self.sandbox.cleanup)
        self.config = self.sandbox.config()

    def switcher(self, config=None, **fake_options):
        config = config or self.config
        self.fake = FakeConda(config.conda_root, **fake_options)
        conda = CondaClient(config.conda_executable, config.channel, runner=self.fake)
        return EnvironmentSwitcher(config, conda=conda)

    def target(self, role):
        return os.path.realpath(self.config.bin_dir / role)


class TestSuccessfulSwitch(SwitcherTestCase):
    def test_links_point_into_new_environment(self):
        report = self.switcher().run()
        env_path = str(self.config.env_path)
        for role in ("python", "python3", "jupyter"):
            self.assertTrue(
                os.readlink(self.config.bin_dir / role).startswith(env_path), role
            )
        self.assertEqual(os.readlink(self.config.bin_dir / "python"), str(self.config.env_bin / "python"))
        self.assertTrue(version_matches(probe_version(self.config.bin_dir / "python"), RUNNING_VERSION))
        self.assertEqual(report.get("rewire").status, PhaseStatus.OK)

    def test_conda_commands(self):
        self.switcher().run()
        create, install = self.fake.commands
        self.assertEqual(
            create[1:],
            ["create", "-n", "newCondaEnvironment", f"python={RUNNING_VERSION}",
             "-c", "conda-forge", "-y"],
        )
        self.assertEqual(install[1:4], ["install", "-n", "newCondaEnvironment"])
        self.assertIn("papermill", install)
        self.assertEqual(install[-3:], ["-c", "conda-forge", "-y"])

    def test_backup_record_has_pre_switch_targets(self):
        self.switcher().run()
        record = BackupRecord.load(self.config.backup_file)
        self.assertEqual(record.get("python3"), str(self.sandbox.original_python))
        self.assertEqual(record.get("python"), str(self.sandbox.original_python))
        self.assertEqual(record.get("jupyter"), str(self.sandbox.original_launcher))
        self.assertEqual(len(self.config.backup_file.read_text().splitlines()), 3)

    def test_import_checks_are_reported_individually(self):
        report = self.switcher().run()
        post = report.get("post_verify")
        checks = {c.name: c.ok for c in post.details["imports"]}
        self.assertEqual(checks, {"json": True, "envswitch_missing_module": False})
        self.assertEqual(post.status, PhaseStatus.WARNING)

    def test_rollback_script_written(self):
        self.switcher().run()
        self.assertTrue(os.access(self.config.rollback_script, os.X_OK))
        self.assertTrue(self.config.test_script.exists())

    def test_idempotent(self):
        self.switcher().run()
        first = {role: self.target(role) for role in ("python", "python3")}
        self.switcher().run()
        second = {role: self.target(role) for role in ("python", "python3")}
        self.assertEqual(first, second)

    def test_version_mismatch_is_only_a_warning(self):
        other = "3.7" if RUNNING_VERSION != "3.7" else "3.6"
        config = self.sandbox.config(python_version=other, smoke_imports=("json",))
        report = self.switcher(config).run()
        self.assertEqual(report.get("post_verify").status, PhaseStatus.WARNING)


class TestLauncher(SwitcherTestCase):
    def test_absent_launcher_leaves_global_link_unchanged(self):
        before = self.target("jupyter")
        report = self.switcher(with_launcher=False).run()
        self.assertEqual(self.target("jupyter"), before)
        self.assertEqual(report.get("verify").status, PhaseStatus.WARNING)
        self.assertTrue(os.readlink(self.config.bin_dir / "python").startswith(str(self.config.env_path)))

    def test_skip_install(self):
        config = self.sandbox.config(skip_install=True)
        report = self.switcher(config).run()
        self.assertEqual(len(self.fake.commands), 1)
        self.assertEqual(report.get("install").status, PhaseStatus.WARNING)


class TestFatalPhases(SwitcherTestCase):
    def assertLinksUntouched(self):
        for role in ("python", "python3"):
            self.assertEqual(self.target(role), str(self.sandbox.original_python))

    def test_create_failure_propagates_exit_status(self):
        with self.assertRaises(CommandError) as ctx:
            self.switcher(fail_on="create", exit_code=17).run()
        self.assertEqual(ctx.exception.exit_code, 17)
        self.assertEqual(ctx.exception.phase, "create")
        self.assertLinksUntouched()
        self.assertTrue(self.config.backup_file.exists())

    def test_install_failure(self):
        with self.assertRaises(CommandError):
            self.switcher(fail_on="install").run()
        self.assertLinksUntouched()

    def test_missing_environment_directory(self):
        switcher = self.switcher(create_dir=False)
        with self.assertRaises(SwitchError) as ctx:
            switcher.run()
        self.assertEqual(ctx.exception.exit_code, EXIT_ENV_MISSING)
        self.assertEqual(switcher.report.get("verify").status, PhaseStatus.FATAL)
        self.assertIsNone(switcher.report.get("rewire"))
        self.assertLinksUntouched()

    def test_no_interpreter_in_environment(self):
        with self.assertRaises(SwitchError) as ctx:
            self.switcher(with_python=False).run()
        self.assertEqual(ctx.exception.exit_code, EXIT_NO_INTERPRETER)
        self.assertLinksUntouched()

    def test_unwritable_backup_record_is_fatal(self):
        self.config.backup_file.mkdir()
        switcher = self.switcher()
        with self.assertRaises(SwitchError) as ctx:
            switcher.run()
        self.assertEqual(ctx.exception.phase, "snapshot")
        self.assertIsInstance(ctx.exception.__cause__, OSError)
        self.assertEqual(switcher.report.get("snapshot").status, PhaseStatus.FATAL)
        self.assertEqual(self.fake.commands, [])
        self.assertLinksUntouched()

    def test_unwritable_rollback_script_is_fatal(self):
        self.config.rollback_script.mkdir()
        switcher = self.switcher()
        with self.assertRaises(SwitchError):
            switcher.run()
        self.assertEqual(switcher.report.get("rollback_script").status, PhaseStatus.FATAL)

    def test_regular_file_is_not_clobbered(self):
        python3 = self.config.bin_dir / "python3"
        python3.unlink()
        python3.write_text("#!/bin/sh\n")
        with self.assertRaises(SwitchError) as ctx:
            self.switcher().run()
        self.assertEqual(ctx.exception.exit_code, EXIT_REFUSED_CLOBBER)
        self.assertEqual(python3.read_text(), "#!/bin/sh\n")
        self.assertEqual(self.target("python"), str(self.sandbox.original_python))

    def test_force_clobbers(self):
        python3 = self.config.bin_dir / "python3"
        python3.unlink()
        python3.write_text("#!/bin/sh\n")
        config = self.sandbox.config(allow_clobber=True)
        self.switcher(config).run()
        self.assertTrue(python3.is_symlink())


class TestSwitchThenRollback(SwitcherTestCase):
    def test_rollback_restores_recorded_paths(self):
        from envswitch.rollback import restore_links

        self.switcher().run()
        restore_links(self.config)
        for role in ("python", "python3"):
            self.assertEqual(self.target(role), str(self.sandbox.original_python))
        self.assertEqual(self.target("jupyter"), str(self.sandbox.original_launcher))


if __name__ == "__main__":
    unittest.main()
