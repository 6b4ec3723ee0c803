"""
Backup Record: a pre-switch snapshot of where the global interpreter links point.

The record is a small text file with exactly one line per tracked role:

    Original python3: /opt/conda/bin/python3.11
    Original python : /opt/conda/bin/python3.11
    Original jupyter:

It is rewritten on every switch and read back by the rollback paths.
"""
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Iterable, Optional

from .i18n import _

logger = logging.getLogger(__name__)

ROLES = ("python3", "python", "jupyter")
_LABELS = {
    "python3": "Original python3",
    "python": "Original python ",
    "jupyter": "Original jupyter",
}
_LABEL_TO_ROLE = {label.strip(): role for role, label in _LABELS.items()}


def resolve_link(path: Path) -> str:
    """
    Symlink-following real path of ``path`` (like ``readlink -f``).
    A missing path, or any resolution error, yields an empty string.
    """
    path = Path(path)
    try:
        if not (path.exists() or path.is_symlink()):
            return ""
        return os.path.realpath(path)
    except (OSError, RuntimeError) as e:
        logger.debug("Could not resolve %s: %s", path, e)
        return ""


@dataclass
class BackupRecord:
    targets: Dict[str, str] = field(default_factory=dict)

    def get(self, role: str) -> str:
        return self.targets.get(role, "")

    @classmethod
    def capture(cls, bin_dir: Path, roles: Iterable[str] = ROLES) -> "BackupRecord":
        """Resolves the current target of every global link in ``bin_dir``."""
        return cls({role: resolve_link(Path(bin_dir) / role) for role in roles})

    def render(self) -> str:
        lines = [f"{_LABELS[role]}: {self.get(role)}".rstrip() for role in ROLES]
        return "\n".join(lines) + "\n"

    @classmethod
    def parse(cls, text: str) -> "BackupRecord":
        targets = {role: "" for role in ROLES}
        for line in text.splitlines():
            label, sep, value = line.partition(":")
            if not sep:
                continue
            role = _LABEL_TO_ROLE.get(label.strip())
            if role:
                targets[role] = value.strip()
        return cls(targets)

    def write(self, path: Path) -> Path:
        """Writes the record, unconditionally replacing any previous one."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.render(), encoding="utf-8")
        logger.info("Backup record written to %s", path)
        return path

    @classmethod
    def load(cls, path: Path) -> Optional["BackupRecord"]:
        """Reads a record back; None when the file is missing or unreadable."""
        path = Path(path)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(_("Could not read backup record {}: {}").format(path, e))
            return None
        return cls.parse(text)
