import logging
import os
from pathlib import Path
from typing import Dict, Iterable

from .common_utils import run_command, safe_print, safe_unlink, sudo_prefix
from .i18n import _
from .results import EXIT_REFUSED_CLOBBER, SwitchError
from .snapshot import ROLES, resolve_link

logger = logging.getLogger(__name__)


class SymlinkSet:
    """
    The global interpreter links (python, python3, jupyter) living in ``bin_dir``.

    Links are replaced atomically: a temporary link is created beside the target
    and renamed over it. When the directory is not writable the operation is
    delegated to ``sudo``.
    """

    def __init__(self, bin_dir: Path, roles: Iterable[str] = ROLES):
        self.bin_dir = Path(bin_dir)
        self.roles = tuple(roles)

    def path(self, role: str) -> Path:
        return self.bin_dir / role

    def targets(self) -> Dict[str, str]:
        return {role: resolve_link(self.path(role)) for role in self.roles}

    def is_clobber(self, role: str) -> bool:
        """True when ``role`` exists as something other than a symlink."""
        link = self.path(role)
        return link.exists() and not link.is_symlink()

    def check_replaceable(self, role: str, allow_clobber: bool = False) -> None:
        """Raises unless ``role`` is absent, a symlink, or overwriting was confirmed."""
        if not self.is_clobber(role):
            return
        link = self.path(role)
        if not allow_clobber:
            raise SwitchError(
                _("Refusing to replace {}: it is a regular file, not a symlink. "
                  "Re-run with --force to overwrite it.").format(link),
                exit_code=EXIT_REFUSED_CLOBBER,
                phase="rewire",
            )
        logger.warning("Overwriting non-symlink %s", link)

    def repoint(self, role: str, target: Path, allow_clobber: bool = False) -> Path:
        link = self.path(role)
        self.check_replaceable(role, allow_clobber)

        target = Path(target)
        tmp_link = self.bin_dir / f".{role}.envswitch-tmp"
        try:
            safe_unlink(tmp_link)
            os.symlink(target, tmp_link)
            os.replace(tmp_link, link)
        except PermissionError:
            safe_unlink(tmp_link)
            prefix = sudo_prefix(self.bin_dir)
            if not prefix:
                raise SwitchError(
                    _("Permission denied updating {} and sudo is not available").format(link),
                    phase="rewire",
                )
            run_command(prefix + ["ln", "-sfn", str(target), str(link)])
        except OSError as e:
            safe_unlink(tmp_link)
            raise SwitchError(_("Could not update {}: {}").format(link, e), phase="rewire")
        safe_print(_("  {} -> {}").format(link, target))
        return link

    def remove(self, role: str) -> bool:
        """Removes ``role`` only if it is a symlink. Returns whether it was removed."""
        link = self.path(role)
        if not link.is_symlink():
            return False
        try:
            link.unlink()
        except PermissionError:
            prefix = sudo_prefix(self.bin_dir)
            if not prefix:
                raise SwitchError(
                    _("Permission denied removing {} and sudo is not available").format(link),
                    phase="rewire",
                )
            run_command(prefix + ["rm", "-f", str(link)])
        safe_print(_("Removed symlink: {}").format(link))
        return True
