"""
Configuration for the environment switcher.

Every path the switcher touches lives on SwitcherConfig so tests (and unusual
images) can point the whole run at a scratch directory instead of /opt/conda.
"""
from __future__ import annotations

import dataclasses
import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from packaging.version import InvalidVersion, Version

from .i18n import _
from .results import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_PYTHON_VERSION = "3.8"
DEFAULT_ENV_NAME = "newCondaEnvironment"
DEFAULT_CONDA_ROOT = Path("/opt/conda")
DEFAULT_BACKUP_FILE = Path("/tmp/python_symlinks_backup.txt")
DEFAULT_ROLLBACK_SCRIPT = Path("/tmp/rollback_python.sh")
DEFAULT_TEST_SCRIPT = Path("/tmp/test_version.py")
DEFAULT_CONFIG_FILE = Path.home() / ".config" / "envswitch" / "config.json"

ESSENTIAL_PACKAGES = (
    "jupyter",
    "jupyter_core",
    "jupyter_client",
    "ipykernel",
    "nbconvert",
    "papermill",
    "numpy",
    "pandas",
)
SMOKE_IMPORTS = ("numpy", "pandas", "matplotlib", "sklearn", "jupyter_core", "ipykernel")

# Probed in order; the first executable candidate wins.
CANDIDATE_NAMES = ("python", "python3", "python{version}")


@dataclass
class SwitcherConfig:
    python_version: str = DEFAULT_PYTHON_VERSION
    env_name: str = DEFAULT_ENV_NAME
    conda_root: Path = DEFAULT_CONDA_ROOT
    conda_executable: str = "conda"
    channel: Optional[str] = "conda-forge"
    packages: Tuple[str, ...] = ESSENTIAL_PACKAGES
    smoke_imports: Tuple[str, ...] = SMOKE_IMPORTS
    candidate_names: Tuple[str, ...] = CANDIDATE_NAMES
    launcher_name: str = "jupyter"
    bin_dir: Optional[Path] = None
    backup_file: Path = DEFAULT_BACKUP_FILE
    rollback_script: Path = DEFAULT_ROLLBACK_SCRIPT
    test_script: Path = DEFAULT_TEST_SCRIPT
    fallback_python: Optional[Path] = None
    lock_timeout: float = 60.0
    allow_clobber: bool = False
    skip_install: bool = False

    def __post_init__(self):
        self.conda_root = Path(self.conda_root)
        self.bin_dir = Path(self.bin_dir) if self.bin_dir else self.conda_root / "bin"
        self.backup_file = Path(self.backup_file)
        self.rollback_script = Path(self.rollback_script)
        self.test_script = Path(self.test_script)
        if self.fallback_python is None:
            self.fallback_python = self.bin_dir / "python3.11"
        self.fallback_python = Path(self.fallback_python)
        self.packages = tuple(self.packages)
        self.smoke_imports = tuple(self.smoke_imports)
        self.candidate_names = tuple(self.candidate_names)
        validate_version(self.python_version)
        if not self.env_name or "/" in self.env_name:
            raise ConfigError(_("Invalid environment name: {!r}").format(self.env_name))

    @property
    def env_path(self) -> Path:
        return self.conda_root / "envs" / self.env_name

    @property
    def env_bin(self) -> Path:
        return self.env_path / "bin"

    @property
    def lock_file(self) -> Path:
        return self.backup_file.with_name(self.backup_file.name + ".lock")

    def candidate_paths(self):
        """Expands the candidate name templates against the environment's bin/."""
        seen = []
        for template in self.candidate_names:
            path = self.env_bin / template.format(version=self.python_version)
            if path not in seen:
                seen.append(path)
        return seen

    def launcher_path(self) -> Path:
        return self.env_bin / self.launcher_name


def validate_version(version: str) -> Version:
    """Parses a requested interpreter version such as ``3.10``."""
    try:
        parsed = Version(str(version))
    except InvalidVersion:
        raise ConfigError(_("Invalid Python version: {!r}").format(version))
    if parsed.release[0] < 3 or len(parsed.release) < 2:
        raise ConfigError(
            _("Python version must look like MAJOR.MINOR (3.x), got {!r}").format(version)
        )
    return parsed


_FIELD_NAMES = {f.name for f in dataclasses.fields(SwitcherConfig)}


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise ConfigError(_("Could not read config file {}: {}").format(path, e))
    if not isinstance(data, dict):
        raise ConfigError(_("Config file {} must contain a JSON object").format(path))
    unknown = set(data) - _FIELD_NAMES
    if unknown:
        logger.warning("Ignoring unknown config keys in %s: %s", path, ", ".join(sorted(unknown)))
    return {k: v for k, v in data.items() if k in _FIELD_NAMES}


def load_config(
    python_version: Optional[str] = None,
    env_name: Optional[str] = None,
    config_file: Optional[Path] = None,
    environ: Optional[Mapping[str, str]] = None,
    **overrides,
) -> SwitcherConfig:
    """
    Builds the effective configuration. Precedence, lowest first: defaults,
    JSON config file, environment variables (PY_VER, ENV_NAME,
    ENVSWITCH_CONDA_ROOT), then explicit arguments.
    """
    environ = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    path = Path(config_file) if config_file else DEFAULT_CONFIG_FILE
    if config_file and not path.exists():
        raise ConfigError(_("Config file not found: {}").format(path))
    values.update(_read_config_file(path))

    if environ.get("PY_VER"):
        values["python_version"] = environ["PY_VER"]
    if environ.get("ENV_NAME"):
        values["env_name"] = environ["ENV_NAME"]
    if environ.get("ENVSWITCH_CONDA_ROOT"):
        values["conda_root"] = environ["ENVSWITCH_CONDA_ROOT"]

    if python_version:
        values["python_version"] = python_version
    if env_name:
        values["env_name"] = env_name
    values.update({k: v for k, v in overrides.items() if v is not None})

    return SwitcherConfig(**values)
