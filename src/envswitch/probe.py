"""Probing interpreters and launchers: which binary to use, what version it is, what imports."""
import json
import logging
import re
import subprocess
import textwrap
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Tuple

from packaging.version import InvalidVersion, Version

from .common_utils import capture_output, is_executable, safe_print
from .i18n import _

logger = logging.getLogger(__name__)

_VERSION_RE = re.compile(r"(\d+\.\d+(?:\.\d+)?(?:(?:a|b|rc)\d+)?)")

TEST_VERSION_SCRIPT = textwrap.dedent(
    """\
    import sys
    print(f"Python {sys.version}")
    print(f"Executable: {sys.executable}")
    print(f"Path prefix: {sys.prefix}")
    """
)

# Runs inside the probed interpreter, so it may only use builtins and the stdlib.
_IMPORT_CHECK_SCRIPT = textwrap.dedent(
    """\
    import importlib, json, sys
    for name in sys.argv[1:]:
        try:
            mod = importlib.import_module(name)
            row = {"name": name, "ok": True, "detail": str(getattr(mod, "__version__", "unknown"))}
        except Exception as e:
            row = {"name": name, "ok": False, "detail": f"{type(e).__name__}: {e}"}
        print(json.dumps(row), flush=True)
    """
)


@dataclass
class CandidateProbe:
    path: Path
    executable: bool
    version: Optional[str] = None


@dataclass
class ImportCheck:
    name: str
    ok: bool
    detail: str


def probe_version(executable) -> Optional[str]:
    """
    Runs ``<executable> --version`` and returns the dotted version it reports
    (``Python 3.10.14`` -> ``3.10.14``). None on any failure.
    """
    output = capture_output([str(executable), "--version"])
    if not output:
        return None
    match = _VERSION_RE.search(output)
    return match.group(1) if match else None


def version_matches(reported: Optional[str], requested: str) -> bool:
    """True when ``reported`` belongs to the ``requested`` family (3.10 ~ 3.10.14)."""
    if not reported:
        return False
    try:
        got = Version(reported).release
        want = Version(requested).release
    except InvalidVersion:
        return False
    return got[: len(want)] == want


def resolve_interpreter(candidates: Sequence[Path]) -> Tuple[Optional[Path], List[CandidateProbe]]:
    """
    Probes ``candidates`` in order and returns the first executable one together
    with the probe report for every candidate.
    """
    selected = None
    report = []
    for path in candidates:
        path = Path(path)
        if is_executable(path):
            version = probe_version(path)
            safe_print(_("✓ Found Python: {} ({})").format(path, version or "unknown version"))
            report.append(CandidateProbe(path, True, version))
            if selected is None:
                selected = path
        else:
            safe_print(_("Not found: {}").format(path))
            report.append(CandidateProbe(path, False))
    return selected, report


def find_launcher(path: Path) -> Optional[Path]:
    path = Path(path)
    if is_executable(path):
        safe_print(_("✓ Launcher found in new env: {}").format(path))
        return path
    safe_print(_("⚠️  Launcher not found in new env: {}").format(path))
    return None


def write_test_script(path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(TEST_VERSION_SCRIPT, encoding="utf-8")
    return path


def run_test_script(python, script: Path) -> Optional[str]:
    """Best effort: runs the version smoke-test script with ``python``."""
    output = capture_output([str(python), str(script)])
    if output is None:
        safe_print(_("  ✗ Could not run {} with {}").format(script, python))
        return None
    for line in output.splitlines():
        safe_print(f"  {line}")
    return output


def run_import_checks(python, modules: Sequence[str], timeout: int = 300) -> List[ImportCheck]:
    """
    Imports each module in a child ``python`` and reports every outcome on its own;
    a failing import never hides the others. A child that cannot start at all
    yields a failed check per module.
    """
    if not modules:
        return []
    try:
        result = subprocess.run(
            [str(python), "-c", _IMPORT_CHECK_SCRIPT, *modules],
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            text=True,
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.warning("Import check could not run under %s: %s", python, e)
        return [ImportCheck(name, False, str(e)) for name in modules]

    checks = {}
    for line in result.stdout.splitlines():
        try:
            row = json.loads(line)
        except json.JSONDecodeError:
            continue
        if isinstance(row, dict) and row.get("name") in modules:
            checks[row["name"]] = ImportCheck(row["name"], bool(row.get("ok")), str(row.get("detail", "")))

    missing_detail = result.stderr.strip().splitlines()[-1:] or ["no result"]
    return [checks.get(name) or ImportCheck(name, False, missing_detail[0]) for name in modules]
