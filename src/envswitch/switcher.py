"""
The Environment Switcher: moves the global ``python`` of a notebook image onto a
freshly created conda environment.

Phases run strictly in order, each returning a PhaseResult:

1. snapshot        - record where the global links point today
2. create          - conda create -n <env> python=<version>
3. install         - conda install the essential package set
4. verify          - env dir exists, pick the interpreter, look for the launcher
5. rewire          - repoint python/python3 (and jupyter) at the new env
6. post_verify     - re-resolve links, versions, smoke test, import checks
7. rollback_script - write the standalone undo script
8. summary         - print the resulting state

Fatal outcomes raise SwitchError; later phases then never run and the links are
left in whatever state they reached.
"""
import shutil
import sys
from typing import Optional

from .common_utils import capture_output, print_header, safe_print
from .conda import CondaClient, EnvironmentDescriptor
from .config import SwitcherConfig
from .i18n import _
from .links import SymlinkSet
from .lockmanager import SwitchLockManager
from .probe import (
    find_launcher,
    probe_version,
    resolve_interpreter,
    run_import_checks,
    run_test_script,
    version_matches,
    write_test_script,
)
from .results import (
    EXIT_ENV_MISSING,
    EXIT_NO_INTERPRETER,
    PhaseResult,
    PhaseStatus,
    SwitchError,
    SwitchReport,
)
from .rollback import write_rollback_script
from .snapshot import BackupRecord, resolve_link



class EnvironmentSwitcher:
    def __init__(
        self,
        config: SwitcherConfig,
        conda: Optional[CondaClient] = None,
        links: Optional[SymlinkSet] = None,
    ):
        self.config = config
        self.conda = conda or CondaClient(config.conda_executable, config.channel)
        self.links = links or SymlinkSet(config.bin_dir)
        self.env = EnvironmentDescriptor(config.env_name, config.python_version, config.conda_root)
        self.report = SwitchReport()
        self.new_python = None
        self.new_launcher = None

    @property
    def global_python(self):
        return self.links.path("python")

    def run(self) -> SwitchReport:
        print_header(_("PYTHON ENVIRONMENT SWITCHER"))
        phases = [
            ("snapshot", self.snapshot),
            ("create", self.create_environment),
            ("install", self.install_packages),
            ("verify", self.verify_environment),
            ("rewire", self.rewire),
            ("post_verify", self.verify_switch),
            ("rollback_script", self.write_rollback),
        ]
        with SwitchLockManager(self.config.lock_file).acquire_lock(self.config.lock_timeout):
            for name, phase in phases:
                try:
                    phase()
                except SwitchError as e:
                    e.phase = e.phase or name
                    self.report.add(PhaseResult(e.phase, PhaseStatus.FATAL, str(e)))
                    raise
                except OSError as e:
                    message = _("{} failed: {}").format(name, e)
                    self.report.add(PhaseResult(name, PhaseStatus.FATAL, message))
                    raise SwitchError(message, phase=name) from e
        self.summary()
        return self.report

    # 1
    def snapshot(self) -> PhaseResult:
        safe_print(_("[1] DOCUMENTING CURRENT ENVIRONMENT"))
        result = PhaseResult("snapshot")
        safe_print(_("Running interpreter: {}").format(sys.executable))
        safe_print(_("  Python full: {}").format(sys.version.splitlines()[0]))
        safe_print(_("  Prefix     : {}").format(sys.prefix))
        safe_print(
            _("Global python: {} ({})").format(
                self.global_python, probe_version(self.global_python) or _("not available")
            )
        )
        safe_print(_("which python: {}").format(shutil.which("python") or _("not found")))

        env_list = self.conda.list_environments()
        if env_list is not None:
            safe_print(_("Conda env list:"))
            for line in env_list.splitlines():
                safe_print(f"  {line}")

        if self.config.bin_dir.is_dir():
            safe_print(_("Current Python entries in {}:").format(self.config.bin_dir))
            for entry in sorted(self.config.bin_dir.glob("python*")):
                arrow = f" -> {resolve_link(entry)}" if entry.is_symlink() else ""
                safe_print(f"  {entry}{arrow}")

        record = BackupRecord.capture(self.config.bin_dir)
        record.write(self.config.backup_file)
        safe_print(_("Backup saved to {}").format(self.config.backup_file))
        result.details["record"] = record

        try:
            write_test_script(self.config.test_script)
        except OSError as e:
            result.warn(_("could not write {}: {}").format(self.config.test_script, e))
        else:
            safe_print(_("Test current environment with python:"))
            if run_test_script(self.global_python, self.config.test_script) is None:
                result.warn(_("current python did not run the smoke test"))
        return self.report.add(result)

    # 2
    def create_environment(self) -> PhaseResult:
        print_header(
            _("[2] CREATING NEW CONDA ENVIRONMENT WITH PYTHON={}").format(self.env.python_version)
        )
        self.conda.create_environment(self.env)
        return self.report.add(PhaseResult("create", message=str(self.env.path)))

    # 3
    def install_packages(self) -> PhaseResult:
        print_header(_("[3] INSTALLING ESSENTIAL PACKAGES INTO {}").format(self.env.name))
        if self.config.skip_install:
            safe_print(_("Skipping package installation (--skip-install)"))
            return self.report.add(
                PhaseResult("install", PhaseStatus.WARNING, _("package installation skipped"))
            )
        self.conda.install_packages(self.env, self.config.packages)
        return self.report.add(PhaseResult("install", details={"packages": self.config.packages}))

    # 4
    def verify_environment(self) -> PhaseResult:
        print_header(_("[4] VERIFYING NEW ENVIRONMENT"))
        result = PhaseResult("verify")
        if not self.env.exists():
            safe_print(_("✗ Environment directory not found: {}").format(self.env.path))
            raise SwitchError(
                _("Environment directory not found: {}").format(self.env.path),
                exit_code=EXIT_ENV_MISSING,
                phase="verify",
            )
        safe_print(_("✓ Environment directory exists: {}").format(self.env.path))

        self.new_python, probes = resolve_interpreter(self.config.candidate_paths())
        result.details["candidates"] = probes

        self.new_launcher = find_launcher(self.config.launcher_path())
        if self.new_launcher is None:
            result.warn(_("{} not found in the new environment").format(self.config.launcher_name))

        if self.new_python is None:
            print_header(_("ERROR: Could not find python in new environment"))
            raise SwitchError(
                _("No Python interpreter found in {}").format(self.env.bin_dir),
                exit_code=EXIT_NO_INTERPRETER,
                phase="verify",
            )
        result.details["python"] = self.new_python
        result.details["launcher"] = self.new_launcher
        return self.report.add(result)

    # 5
    def rewire(self) -> PhaseResult:
        print_header(_("[5] REWIRING PYTHON SYMLINKS TO {}").format(self.new_python))
        result = PhaseResult("rewire")
        # Check every path before touching any, so a refusal leaves the set intact.
        roles = ["python", "python3"] + (["jupyter"] if self.new_launcher else [])
        for role in roles:
            self.links.check_replaceable(role, self.config.allow_clobber)

        for role in ("python", "python3"):
            self.links.repoint(role, self.new_python, self.config.allow_clobber)
        if self.new_launcher:
            self.links.repoint("jupyter", self.new_launcher, self.config.allow_clobber)
            safe_print(_("Updated jupyter symlink -> {}").format(self.new_launcher))
        else:
            safe_print(_("Leaving {} unchanged").format(self.links.path("jupyter")))
            result.warn(_("launcher link left unchanged"))
        return self.report.add(result)

    # 6
    def verify_switch(self) -> PhaseResult:
        print_header(_("[6] VERIFYING SYMLINK CHANGES"))
        result = PhaseResult("post_verify")
        targets = self.links.targets()
        safe_print(_("Targets:"))
        for role, target in targets.items():
            if target:
                safe_print(f"  {self.links.path(role)} -> {target}")
        result.details["targets"] = targets

        safe_print(_("Versions after switch:"))
        versions = {}
        for role in ("python", "python3", "jupyter"):
            output = capture_output([str(self.links.path(role)), "--version"])
            versions[role] = output
            safe_print(f"  {role}: {output.splitlines()[0] if output else _('not available')}")
        result.details["versions"] = versions

        reported = probe_version(self.global_python)
        if not version_matches(reported, self.config.python_version):
            safe_print(
                _("⚠️  python reports {}, expected the {} family").format(
                    reported or _("nothing"), self.config.python_version
                )
            )
            result.warn(_("version mismatch after switch"))
        run_test_script(self.global_python, self.config.test_script)

        print_header(_("[7] TESTING PACKAGE AVAILABILITY"))
        checks = run_import_checks(self.global_python, self.config.smoke_imports)
        for check in checks:
            marker = "✓" if check.ok else "✗"
            safe_print(f"  {marker} {check.name}: {check.detail}")
        result.details["imports"] = checks
        if any(not check.ok for check in checks):
            result.warn(_("some packages failed to import"))
        return self.report.add(result)

    # 7
    def write_rollback(self) -> PhaseResult:
        print_header(_("[8] CREATING ROLLBACK SCRIPT"))
        path = write_rollback_script(self.config)
        safe_print(_("Rollback script created at {}").format(path))
        safe_print(_("To rollback, run: bash {}").format(path))
        return self.report.add(PhaseResult("rollback_script", message=str(path)))

    # 8
    def summary(self) -> PhaseResult:
        print_header(_("ENVIRONMENT SWITCH COMPLETE"))
        safe_print(_("SUMMARY:"))
        safe_print(_("  ✓ Backup saved: {}").format(self.config.backup_file))
        safe_print(
            _("  ✓ Conda env: {} with Python {}").format(self.env.name, self.env.python_version)
        )
        for result in self.report.warnings:
            safe_print(_("  ⚠️  {}: {}").format(result.phase, result.message))
        safe_print("")
        return self.report.add(show_status(self.config, self.links))


def show_status(config: SwitcherConfig, links: Optional[SymlinkSet] = None) -> PhaseResult:
    """Observational only: prints where the global links point and what they run."""
    links = links or SymlinkSet(config.bin_dir)
    result = PhaseResult("summary")
    safe_print(_("CURRENT STATE:"))
    targets = links.targets()
    for role, target in targets.items():
        safe_print(f"  {links.path(role)} -> {target or _('(absent)')}")
    python_version = capture_output([str(links.path("python")), "--version"])
    jupyter_version = capture_output([str(links.path("jupyter")), "--version"])
    safe_print(_("  Python: {}").format(python_version or _("unknown")))
    safe_print(_("  Location: {}").format(shutil.which("python") or ""))
    safe_print(
        _("  Jupyter: {}").format(
            jupyter_version.splitlines()[0] if jupyter_version else _("unknown")
        )
    )
    safe_print("")
    safe_print(_("NOTES:"))
    safe_print(_("  1) The running notebook kernel still uses the original Python."))
    safe_print(_("  2) System calls and !python will use the new symlink."))
    safe_print(_("  3) To rollback: bash {}").format(config.rollback_script))
    result.details["targets"] = targets
    result.details["python_version"] = python_version
    return result
