#!/usr/bin/env python3
"""Interpreter resolution, version probing and per-package import checks."""
import sys
import tempfile
import unittest
from pathlib import Path

from envswitch.probe import (
    find_launcher,
    probe_version,
    resolve_interpreter,
    run_import_checks,
    run_test_script,
    version_matches,
    write_test_script,
)

from _sandbox import write_script


class TestVersionMatches(unittest.TestCase):
    def test_family_prefix(self):
        self.assertTrue(version_matches("3.10.14", "3.10"))
        self.assertTrue(version_matches("3.8.18", "3.8"))
        self.assertTrue(version_matches("3.12.0rc1", "3.12"))

    def test_not_a_prefix(self):
        self.assertFalse(version_matches("3.1.4", "3.10"))
        self.assertFalse(version_matches("3.11.2", "3.1"))
        self.assertFalse(version_matches(None, "3.8"))
        self.assertFalse(version_matches("garbage", "3.8"))


class TestResolveInterpreter(unittest.TestCase):
    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.bin = Path(self.tmp.name)

    def test_first_executable_candidate_wins(self):
        write_script(self.bin / "python3", 'echo "Python 3.10.14"')
        write_script(self.bin / "python3.10", 'echo "Python 3.10.14"')
        candidates = [self.bin / "python", self.bin / "python3", self.bin / "python3.10"]
        selected, report = resolve_interpreter(candidates)
        self.assertEqual(selected, self.bin / "python3")
        self.assertEqual([probe.executable for probe in report], [False, True, True])
        self.assertEqual(report[1].version, "3.10.14")

    def test_non_executable_file_is_skipped(self):
        (self.bin / "python").write_text("not executable")
        write_script(self.bin / "python3", 'echo "Python 3.9.1"')
        selected, unused = resolve_interpreter([self.bin / "python", self.bin / "python3"])
        self.assertEqual(selected, self.bin / "python3")

    def test_nothing_found(self):
        selected, report = resolve_interpreter([self.bin / "python"])
        self.assertIsNone(selected)
        self.assertEqual(len(report), 1)

    def test_launcher_probe(self):
        self.assertIsNone(find_launcher(self.bin / "jupyter"))
        write_script(self.bin / "jupyter", "true")
        self.assertEqual(find_launcher(self.bin / "jupyter"), self.bin / "jupyter")


class TestProbeVersion(unittest.TestCase):
    def test_running_interpreter(self):
        expected = "{}.{}.{}".format(*sys.version_info[:3])
        self.assertTrue(probe_version(sys.executable).startswith(expected))

    def test_missing_binary(self):
        self.assertIsNone(probe_version("/nonexistent/python"))


class TestSmokeChecks(unittest.TestCase):
    def test_import_failures_are_independent(self):
        checks = run_import_checks(sys.executable, ["json", "envswitch_missing_module", "os"])
        self.assertEqual([c.name for c in checks], ["json", "envswitch_missing_module", "os"])
        self.assertEqual([c.ok for c in checks], [True, False, True])
        self.assertIn("ModuleNotFoundError", checks[1].detail)

    def test_interpreter_that_cannot_start(self):
        checks = run_import_checks("/nonexistent/python", ["json"])
        self.assertEqual(len(checks), 1)
        self.assertFalse(checks[0].ok)

    def test_version_script(self):
        with tempfile.TemporaryDirectory() as tmp:
            script = write_test_script(Path(tmp) / "test_version.py")
            output = run_test_script(sys.executable, script)
        self.assertIn("Executable:", output)
        self.assertIn("Path prefix:", output)


if __name__ == "__main__":
    unittest.main()
