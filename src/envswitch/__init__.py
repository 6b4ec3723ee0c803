"""
envswitch: switch the Python behind a notebook image's global ``python``.

Creates a conda environment with the requested interpreter, installs the
notebook essentials, repoints /opt/conda/bin/{python,python3,jupyter} at it and
leaves a rollback script behind.
"""
import sys
from pathlib import Path

from importlib.metadata import PackageNotFoundError, version

# On Python >= 3.11 use the built-in `tomllib`, otherwise the `tomli` backport.
if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

__version__ = "0.0.0"  # fallback default

_pkg_name = "envswitch"

try:
    __version__ = version(_pkg_name)
except PackageNotFoundError:
    # Likely running from source → try pyproject.toml
    pyproject_path = Path(__file__).resolve().parent.parent.parent / "pyproject.toml"
    if pyproject_path.exists():
        with pyproject_path.open("rb") as f:
            __version__ = tomllib.load(f)["project"]["version"]

__all__ = [
    "cli",
    "config",
    "conda",
    "links",
    "probe",
    "rollback",
    "snapshot",
    "switcher",
]
