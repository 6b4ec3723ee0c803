"""
Undoing a switch.

Two equivalent paths restore the global links from the Backup Record:
- render_rollback_script() produces a standalone bash script that works even
  when envswitch itself is no longer importable (e.g. the new env is broken);
- restore_links() does the same thing in-process for ``envswitch rollback``.

Both pick the restore target with the same precedence: the recorded python3
target, then the recorded python target, then the configured fallback.
"""
import logging
import shlex
import string
from pathlib import Path
from typing import Optional

from .common_utils import capture_output, is_executable, safe_print
from .config import SwitcherConfig
from .i18n import _
from .links import SymlinkSet
from .results import PhaseResult, PhaseStatus
from .snapshot import BackupRecord

logger = logging.getLogger(__name__)

_SCRIPT_TEMPLATE = string.Template(
    r"""#!/usr/bin/env bash
# Generated by envswitch: restores the interpreter links recorded before the switch.
set -euo pipefail
BIN_DIR=$bin_dir
BACKUP_FILE=$backup_file
FALLBACK_PY=$fallback_python
if [[ -w "$$BIN_DIR" ]]; then SUDO=""
elif command -v sudo >/dev/null 2>&1; then SUDO="sudo"
else SUDO=""; fi

trim() {
  local s="$$1"
  s="$${s#"$${s%%[![:space:]]*}"}"
  s="$${s%"$${s##*[![:space:]]}"}"
  printf '%s' "$$s"
}

echo "Rolling back Python symlinks using $$BACKUP_FILE"
if [[ ! -f "$$BACKUP_FILE" ]]; then
  echo "Backup file not found. Trying best effort rollback to $$FALLBACK_PY"
fi

for role in python python3 jupyter; do
  link="$$BIN_DIR/$$role"
  if [[ -L "$$link" ]]; then
    $$SUDO rm -f "$$link"
    echo "Removed: $$link"
  fi
done

ORIG_PY3=""
ORIG_PY=""
ORIG_JUPYTER=""
if [[ -f "$$BACKUP_FILE" ]]; then
  while IFS= read -r line || [[ -n "$$line" ]]; do
    [[ "$$line" == *:* ]] || continue
    label="$$(trim "$${line%%:*}")"
    value="$$(trim "$${line#*:}")"
    case "$$label" in
      "Original python3") ORIG_PY3="$$value" ;;
      "Original python") ORIG_PY="$$value" ;;
      "Original jupyter") ORIG_JUPYTER="$$value" ;;
    esac
  done < "$$BACKUP_FILE"
fi

usable() { [[ -n "$$1" && -f "$$1" && -x "$$1" ]]; }

RESTORE_PY=""
if usable "$$ORIG_PY3"; then RESTORE_PY="$$ORIG_PY3"
elif usable "$$ORIG_PY"; then RESTORE_PY="$$ORIG_PY"
elif usable "$$FALLBACK_PY"; then RESTORE_PY="$$FALLBACK_PY"
fi

if [[ -n "$$RESTORE_PY" ]]; then
  $$SUDO ln -sfn "$$RESTORE_PY" "$$BIN_DIR/python"
  $$SUDO ln -sfn "$$RESTORE_PY" "$$BIN_DIR/python3"
  echo "Restored python symlinks to $$RESTORE_PY"
else
  echo "Could not locate original python. Leaving python symlinks absent."
fi

if usable "$$ORIG_JUPYTER"; then
  $$SUDO ln -sfn "$$ORIG_JUPYTER" "$$BIN_DIR/jupyter"
  echo "Restored jupyter to $$ORIG_JUPYTER"
fi

echo "Current versions:"
"$$BIN_DIR/python" --version 2>&1 || echo "python: not available"
"$$BIN_DIR/python3" --version 2>&1 || echo "python3: not available"
"$$BIN_DIR/jupyter" --version 2>&1 || echo "jupyter: not available"
echo "Rollback complete"
"""
)


def choose_restore_target(record: Optional[BackupRecord], fallback: Optional[Path]) -> Optional[Path]:
    """
    Recorded python3 target if executable, else recorded python target if
    executable, else ``fallback`` if executable, else None.
    """
    candidates = []
    if record is not None:
        candidates += [record.get("python3"), record.get("python")]
    candidates.append(str(fallback) if fallback else "")
    for candidate in candidates:
        if candidate and is_executable(candidate):
            return Path(candidate)
    return None


def render_rollback_script(config: SwitcherConfig) -> str:
    return _SCRIPT_TEMPLATE.substitute(
        bin_dir=shlex.quote(str(config.bin_dir)),
        backup_file=shlex.quote(str(config.backup_file)),
        fallback_python=shlex.quote(str(config.fallback_python)),
    )


def write_rollback_script(config: SwitcherConfig) -> Path:
    path = config.rollback_script
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_rollback_script(config), encoding="utf-8")
    path.chmod(0o755)
    logger.info("Rollback script written to %s", path)
    return path


def restore_links(config: SwitcherConfig, links: Optional[SymlinkSet] = None) -> PhaseResult:
    """In-process equivalent of the generated rollback script."""
    links = links or SymlinkSet(config.bin_dir)
    result = PhaseResult("rollback")
    record = BackupRecord.load(config.backup_file)
    if record is None:
        safe_print(
            _("Backup file not found. Trying best effort rollback to {}").format(
                config.fallback_python
            )
        )
        result.warn(_("backup record missing"))

    for role in links.roles:
        links.remove(role)

    target = choose_restore_target(record, config.fallback_python)
    if target is not None:
        for role in ("python", "python3"):
            links.repoint(role, target, allow_clobber=True)
        safe_print(_("Restored python symlinks to {}").format(target))
        result.details["python"] = str(target)
    else:
        safe_print(_("Could not locate original python. Leaving python symlinks absent."))
        result.status = PhaseStatus.WARNING
        result.message = _("no usable interpreter to restore")

    launcher = record.get("jupyter") if record else ""
    if launcher and is_executable(launcher):
        links.repoint("jupyter", Path(launcher), allow_clobber=True)
        safe_print(_("Restored jupyter to {}").format(launcher))
        result.details["jupyter"] = launcher

    safe_print(_("Current versions:"))
    for role in ("python", "python3", "jupyter"):
        output = capture_output([str(links.path(role)), "--version"])
        safe_print(f"  {role}: {output.splitlines()[0] if output else _('not available')}")
    return result
