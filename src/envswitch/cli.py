from __future__ import annotations  # Python 3.6+ compatibility

"""envswitch CLI - switch the interpreter behind a notebook image's global python"""

import argparse
import logging
import sys
from pathlib import Path

from . import __version__
from .common_utils import print_header, run_command, safe_print
from .config import DEFAULT_PYTHON_VERSION, load_config
from .i18n import _
from .lockmanager import SwitchLockManager
from .results import SwitchError
from .rollback import restore_links
from .switcher import EnvironmentSwitcher, show_status

COMMANDS = ("switch", "rollback", "status")


def create_parser():
    parser = argparse.ArgumentParser(
        prog="envswitch",
        description=_(
            "Create a conda environment with the requested Python and repoint the "
            "global python/python3/jupyter links at it."
        ),
        formatter_class=argparse.RawTextHelpFormatter,
        epilog=_(
            "Examples:\n"
            "  envswitch              # defaults to Python {}\n"
            "  envswitch 3.10\n"
            "  PY_VER=3.9 ENV_NAME=newCondaEnvironment envswitch\n"
            "  envswitch rollback"
        ).format(DEFAULT_PYTHON_VERSION),
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help=_("Show diagnostic logging and tracebacks")
    )
    parser.add_argument(
        "--config", type=Path, default=None, help=_("Path to a JSON config file")
    )
    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")

    switch_parser = subparsers.add_parser(
        "switch", help=_("Create the environment and rewire the global links (default)")
    )
    switch_parser.add_argument(
        "python_version",
        nargs="?",
        help=_("Python version for the new environment (default: $PY_VER or {})").format(
            DEFAULT_PYTHON_VERSION
        ),
    )
    switch_parser.add_argument(
        "--env-name", help=_("Name of the conda environment (default: $ENV_NAME)")
    )
    switch_parser.add_argument(
        "--force",
        action="store_true",
        help=_("Overwrite global python entries even if they are regular files"),
    )
    switch_parser.add_argument(
        "--skip-install", action="store_true", help=_("Do not install the essential packages")
    )

    rollback_parser = subparsers.add_parser(
        "rollback", help=_("Restore the links recorded before the last switch")
    )
    rollback_parser.add_argument(
        "--script",
        action="store_true",
        help=_("Run the generated rollback script instead of restoring in-process"),
    )

    subparsers.add_parser("status", help=_("Show where the global links point"))
    return parser


def _normalize_argv(argv):
    """``envswitch 3.10`` is shorthand for ``envswitch switch 3.10``."""
    argv = list(argv)
    index = 0
    while index < len(argv):
        arg = argv[index]
        if arg in ("-h", "--help", "--version"):
            return argv
        if arg in ("-v", "--verbose") or arg.startswith("--config="):
            index += 1
        elif arg == "--config":
            index += 2
        else:
            break
    if index >= len(argv) or argv[index] not in COMMANDS:
        argv.insert(min(index, len(argv)), "switch")
    return argv


def _cmd_switch(args) -> int:
    config = load_config(
        python_version=args.python_version,
        env_name=args.env_name,
        config_file=args.config,
        allow_clobber=args.force or None,
        skip_install=args.skip_install or None,
    )
    report = EnvironmentSwitcher(config).run()
    for result in report.warnings:
        logging.getLogger(__name__).info("%s: %s", result.phase, result.message)
    return 0


def _cmd_rollback(args) -> int:
    config = load_config(config_file=args.config)
    print_header(_("ROLLING BACK PYTHON SYMLINKS"))
    if args.script and not config.rollback_script.exists():
        raise SwitchError(_("Rollback script not found: {}").format(config.rollback_script))
    with SwitchLockManager(config.lock_file).acquire_lock(config.lock_timeout):
        if args.script:
            return run_command(["bash", str(config.rollback_script)])
        restore_links(config)
    safe_print(_("Rollback complete"))
    return 0


def _cmd_status(args) -> int:
    config = load_config(config_file=args.config)
    show_status(config)
    return 0


def main(argv=None) -> int:
    parser = create_parser()
    args = parser.parse_args(_normalize_argv(sys.argv[1:] if argv is None else argv))
    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s - envswitch - %(levelname)s - %(message)s",
    )
    handlers = {"switch": _cmd_switch, "rollback": _cmd_rollback, "status": _cmd_status}
    try:
        return handlers[args.command](args)
    except SwitchError as e:
        if args.verbose:
            logging.exception("Fatal error in phase %s", e.phase)
        safe_print(_("❌ {}").format(e), file=sys.stderr)
        return e.exit_code
    except OSError as e:
        if args.verbose:
            logging.exception("Unexpected I/O error")
        safe_print(_("❌ {}").format(e), file=sys.stderr)
        return 1
    except KeyboardInterrupt:
        safe_print(_("\n⚠️  Cancelled by user (Ctrl+C)"), file=sys.stderr)
        return 130


if __name__ == "__main__":
    sys.exit(main())
