"""Baseline storage between check runs."""

import hashlib
import json
import logging
import os
import tempfile
import threading
import time
from collections.abc import Sequence

from cpustat.errors import ConfigError, StorageError
from cpustat.models import Snapshot

logger = logging.getLogger(__name__)

MAX_AGE_SECONDS = 7 * 24 * 60 * 60

DEFAULT_DIRECTORIES = (
    "/opt/opsview/monitoringscripts/tmp",
    "/opt/opsview/tmp",
)


def default_candidates(environ: dict[str, str] | None = None) -> tuple[str, ...]:
    """Return the well-known state directories in priority order."""
    environ = os.environ if environ is None else environ
    candidates: list[str] = []
    if environ.get("OPSVIEW_BASE"):
        candidates.append(os.path.join(environ["OPSVIEW_BASE"], "tmp"))
    candidates.extend(DEFAULT_DIRECTORIES)
    candidates.append(tempfile.gettempdir())
    return tuple(candidates)


def resolve_directory(explicit: str | None, candidates: Sequence[str]) -> str:
    """
    Pick the directory for state files.

    An explicit directory must exist. Otherwise the first existing candidate
    wins.
    """
    if explicit:
        directory = explicit.rstrip("/") or "/"
        if not os.path.isdir(directory):
            raise ConfigError(f"Temp directory {directory} not found")
        return directory

    for directory in candidates:
        if os.path.isdir(directory):
            return directory
    raise ConfigError("No usable temp directory found")


def state_key(program: str, args: Sequence[str]) -> str:
    """Hash of the invocation identity, stable across runs."""
    identity = " ".join([program, *args])
    return hashlib.md5(identity.encode("utf-8")).hexdigest()


def state_prefix(program: str) -> str:
    """File name prefix shared by every state file of this check."""
    return os.path.basename(program.rstrip("/")) or "check_cpu_stats"


def state_filename(program: str, args: Sequence[str]) -> str:
    """Deterministic state file name for one invocation signature."""
    return f"{state_prefix(program)}_{state_key(program, args)}"


class StateStore:
    """
    Stores one Snapshot per invocation signature as a JSON file.

    Concurrent runs with the same signature are not locked against each
    other; the last writer wins.
    """

    def __init__(self, directory: str, program: str, args: Sequence[str]) -> None:
        self._directory = directory
        self._prefix = state_prefix(program)
        self._path = os.path.join(directory, state_filename(program, args))

    @property
    def directory(self) -> str:
        """Get the state directory."""
        return self._directory

    @property
    def prefix(self) -> str:
        """Get the state file name prefix."""
        return self._prefix

    @property
    def path(self) -> str:
        """Get the state file path."""
        return self._path

    def load(self) -> Snapshot | None:
        """Return the stored baseline, or None on first run."""
        if not os.path.exists(self._path):
            logger.debug("No baseline at %s", self._path)
            return None
        try:
            with open(self._path, encoding="utf-8") as f:
                return Snapshot.from_dict(json.load(f))
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as exc:
            raise StorageError(f"Cannot read file: {self._path}") from exc

    def save(self, snapshot: Snapshot) -> None:
        """Replace the stored baseline."""
        try:
            with open(self._path, "w", encoding="utf-8") as f:
                json.dump(snapshot.to_dict(), f)
        except OSError as exc:
            raise StorageError(f"Cannot store file: {self._path}") from exc
        logger.debug("Stored baseline at %s", self._path)


class StateHygiene:
    """
    Deletes stale state files in the background.

    Fire and forget: the cleanup runs in a detached grandchild process so
    it outlives the check, and every error is dropped. Where fork is not
    available a daemon thread is used instead, which dies with the check.
    """

    def __init__(
        self,
        directory: str,
        prefix: str,
        max_age: float = MAX_AGE_SECONDS,
    ) -> None:
        self._directory = directory
        self._prefix = prefix
        self._max_age = max_age
        self._thread: threading.Thread | None = None

    @property
    def is_running(self) -> bool:
        """Check if the fallback cleanup thread is running."""
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> threading.Thread | None:
        """Start the cleanup; returns the thread when falling back to one."""
        if hasattr(os, "fork"):
            try:
                self._fork()
                return None
            except OSError:
                logger.debug("Cannot fork state cleanup, using a thread", exc_info=True)
        return self._start_thread()

    def _fork(self) -> None:
        """Double fork so the cleanup is reparented and never left a zombie."""
        pid = os.fork()
        if pid:
            os.waitpid(pid, 0)
            return
        # Child: never return into the caller's stack
        try:
            os.setsid()
            if os.fork() == 0:
                self._detach_streams()
                try:
                    self.clean()
                except Exception:
                    pass
        finally:
            os._exit(0)

    @staticmethod
    def _detach_streams() -> None:
        """Release the check's stdio so the caller sees EOF when the check exits."""
        devnull = os.open(os.devnull, os.O_RDWR)
        for fd in (0, 1, 2):
            os.dup2(devnull, fd)
        if devnull > 2:
            os.close(devnull)

    def _start_thread(self) -> threading.Thread:
        self._thread = threading.Thread(
            target=self._run,
            daemon=True,
            name="StateHygiene",
        )
        self._thread.start()
        return self._thread

    def _run(self) -> None:
        try:
            removed = self.clean()
        except Exception:
            logger.debug("State cleanup in %s failed", self._directory, exc_info=True)
            return
        if removed:
            logger.debug("Removed %d stale state files from %s", removed, self._directory)

    def clean(self, now: float | None = None) -> int:
        """Remove matching files older than max_age and return how many went."""
        now = time.time() if now is None else now
        removed = 0
        with os.scandir(self._directory) as entries:
            for entry in entries:
                if not entry.name.startswith(self._prefix):
                    continue
                try:
                    if now - entry.stat().st_mtime > self._max_age:
                        os.unlink(entry.path)
                        removed += 1
                except OSError:
                    # Raced with another run's cleanup
                    logger.debug("Cannot remove %s", entry.path, exc_info=True)
        return removed
