import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, List, Optional, Sequence

from .common_utils import capture_output, run_command, safe_print
from .i18n import _

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EnvironmentDescriptor:
    """A named conda environment pinned to a requested interpreter version."""

    name: str
    python_version: str
    conda_root: Path

    @property
    def path(self) -> Path:
        return Path(self.conda_root) / "envs" / self.name

    @property
    def bin_dir(self) -> Path:
        return self.path / "bin"

    def exists(self) -> bool:
        return self.path.is_dir()


class CondaClient:
    """
    Thin wrapper over the conda CLI. ``runner`` executes a command list and raises
    CommandError on failure; it defaults to run_command (streams output).
    """

    def __init__(
        self,
        executable: str = "conda",
        channel: Optional[str] = "conda-forge",
        runner: Optional[Callable[[Sequence[str]], int]] = None,
    ):
        self.executable = executable
        self.channel = channel
        self.runner = runner or run_command

    def _channel_args(self) -> List[str]:
        return ["-c", self.channel] if self.channel else []

    def create_environment(self, env: EnvironmentDescriptor) -> int:
        safe_print(
            _("Creating conda environment '{}' with python={}").format(
                env.name, env.python_version
            )
        )
        command = [
            self.executable,
            "create",
            "-n",
            env.name,
            f"python={env.python_version}",
            *self._channel_args(),
            "-y",
        ]
        return self.runner(command)

    def install_packages(self, env: EnvironmentDescriptor, packages: Sequence[str]) -> int:
        if not packages:
            logger.info("No packages requested for %s", env.name)
            return 0
        safe_print(_("Installing {} packages into '{}'").format(len(packages), env.name))
        command = [
            self.executable,
            "install",
            "-n",
            env.name,
            *packages,
            *self._channel_args(),
            "-y",
        ]
        return self.runner(command)

    def list_environments(self) -> Optional[str]:
        """Best effort ``conda env list``; None if conda is unavailable."""
        return capture_output([self.executable, "env", "list"])
