from __future__ import annotations  # Python 3.6+ compatibility

import logging
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

# Keep a reference to the original, built-in print function
_builtin_print = print


def safe_print(*args, **kwargs):
    """
    Ultra-robust print: flushes by default and survives terminals that cannot
    encode the emoji markers used in progress output.
    """
    if "flush" not in kwargs:
        kwargs["flush"] = True
    try:
        _builtin_print(*args, **kwargs)
    except UnicodeEncodeError:
        stream = kwargs.get("file") or sys.stdout
        encoding = getattr(stream, "encoding", None) or "utf-8"
        safe_args = [
            arg.encode(encoding, "replace").decode(encoding) if isinstance(arg, str) else arg
            for arg in args
        ]
        _builtin_print(*safe_args, **kwargs)


def print_header(title):
    """Prints a consistent, pretty header."""
    # Lazy import to avoid circular import
    from envswitch.i18n import _

    safe_print("\n" + "=" * 60)
    safe_print(_("  {}").format(title))
    safe_print("=" * 60 + "\n")


def safe_unlink(path: Path) -> None:
    """Unlink that ignores missing files and dangling symlinks alike."""
    if path.exists() or path.is_symlink():
        path.unlink()


def is_executable(path) -> bool:
    """Equivalent of the shell's ``[[ -x path ]]`` (follows symlinks)."""
    if not path:
        return False
    path = Path(path)
    return path.is_file() and os.access(path, os.X_OK)


def sudo_prefix(directory: Path) -> List[str]:
    """
    Returns ``["sudo"]`` when ``directory`` is not writable by us and sudo exists,
    otherwise an empty prefix.
    """
    if os.access(directory, os.W_OK):
        return []
    if shutil.which("sudo"):
        return ["sudo"]
    return []


def run_command(command_list: Sequence[str], check=True, env=None) -> int:
    """
    Helper to run a command and stream its output.
    Raises CommandError on non-zero exit code, with captured output.
    """
    from envswitch.i18n import _
    from envswitch.results import CommandError

    command_list = [str(part) for part in command_list]
    logger.info("Running: %s", " ".join(command_list))
    try:
        process = subprocess.Popen(
            command_list,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            bufsize=1,
            env=env,
        )
    except FileNotFoundError:
        raise CommandError(
            _('Command not found. Ensure "{}" is installed and in your PATH.').format(
                command_list[0]
            ),
            command=command_list,
            exit_code=127,
        )
    output_lines = []
    for line in iter(process.stdout.readline, ""):
        stripped_line = line.rstrip()
        safe_print(f"   {stripped_line}")
        output_lines.append(stripped_line)
    process.stdout.close()
    retcode = process.wait()
    if retcode < 0:
        # Killed by a signal: report it the way a shell does.
        retcode = 128 - retcode
    if check and retcode != 0:
        error_message = _("Subprocess command '{}' failed with exit code {}.").format(
            " ".join(command_list), retcode
        )
        raise CommandError(
            error_message, command=command_list, exit_code=retcode, output=output_lines
        )
    return retcode


def capture_output(command_list: Sequence[str], timeout: Optional[int] = 30) -> Optional[str]:
    """
    Best-effort capture of a command's combined output.
    Returns None when the command is missing, times out or exits non-zero.
    """
    try:
        result = subprocess.run(
            [str(part) for part in command_list],
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
        )
    except (OSError, subprocess.SubprocessError) as e:
        logger.debug("Could not run %s: %s", command_list[0], e)
        return None
    if result.returncode != 0:
        logger.debug("%s exited with %s", command_list[0], result.returncode)
        return None
    return result.stdout.strip()
