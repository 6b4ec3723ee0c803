from contextlib import contextmanager
from pathlib import Path

from filelock import FileLock, Timeout

from envswitch.common_utils import safe_print
from envswitch.i18n import _
from envswitch.results import EXIT_LOCKED, SwitchError


class SwitchLockManager:
    """Process-safe locking for runs that touch the global links."""

    def __init__(self, lock_file: Path):
        self.lock_file = Path(lock_file)

    @contextmanager
    def acquire_lock(self, timeout: float = 60.0):
        """
        Acquire an exclusive lock for the duration of a switch or rollback.

        Args:
            timeout: Max seconds to wait for another run to finish
        """
        lock = FileLock(str(self.lock_file))
        try:
            self.lock_file.parent.mkdir(parents=True, exist_ok=True)
            try:
                lock.acquire(timeout=0)
            except Timeout:
                safe_print(_("⏳ Another envswitch run holds {}, waiting...").format(self.lock_file))
                lock.acquire(timeout=timeout)
        except Timeout:
            raise SwitchError(
                _("Failed to acquire '{}' after {}s").format(self.lock_file, timeout),
                exit_code=EXIT_LOCKED,
            )
        except OSError as e:
            raise SwitchError(_("Could not create lock file {}: {}").format(self.lock_file, e))
        try:
            yield  # Critical section runs here
        finally:
            lock.release()
