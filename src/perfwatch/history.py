"""History store: the rolling per-key metric history persisted as one JSON file.

The file is shared across CI invocations, so a report cycle reads, updates
and writes it inside one advisory lock (``{history}.lock`` holding the
writer's PID, created with O_EXCL; see ``HistoryStore.transaction``). The
document is written to a temp file and renamed over the target, so readers
never see a partial write.

All operations are functional: they return new ``History`` values instead
of mutating the one passed in.
"""

from __future__ import annotations

import json
import os
import time
from contextlib import contextmanager
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from pathlib import Path
from types import TracebackType
from typing import Collection, Iterator, List, Optional, Tuple, Type

from .exceptions import ArtifactError, FileWriteError, HistoryLockError, HistoryWriteError
from .file_ops import atomic_write_file, read_json_file
from .logging_config import get_logger
from .models import (
    History,
    HistoryEntry,
    HistoryRun,
    MetricSnapshot,
    iso_timestamp,
    parse_timestamp,
)

logger = get_logger(__name__)

DEFAULT_MAX_RUNS = 100
DEFAULT_LOCK_RETRIES = 5
DEFAULT_LOCK_BACKOFF_SECONDS = 0.1
DEFAULT_LOCK_STALE_SECONDS = 600.0


def lock_path_for(history_path: Path) -> Path:
    return history_path.with_name(history_path.name + ".lock")


class HistoryLock:
    """
    Advisory lock guarding a history file's read-modify-write.

    Acquisition retries a fixed number of times with a fixed backoff and then
    raises HistoryLockError instead of blocking. A lock file older than
    ``stale_seconds`` is assumed to belong to a killed process and reclaimed.

    Usage::

        with HistoryLock(path):
            ...  # write history
    """

    def __init__(
        self,
        history_path: Path,
        retries: int = DEFAULT_LOCK_RETRIES,
        backoff_seconds: float = DEFAULT_LOCK_BACKOFF_SECONDS,
        stale_seconds: Optional[float] = DEFAULT_LOCK_STALE_SECONDS,
    ) -> None:
        if retries < 1:
            raise ValueError("retries must be at least 1")
        self.path = lock_path_for(history_path)
        self.retries = retries
        self.backoff_seconds = backoff_seconds
        self.stale_seconds = stale_seconds
        self._held = False

    @property
    def held(self) -> bool:
        return self._held

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)

        for attempt in range(1, self.retries + 1):
            if self._try_create() or (self._reclaim_if_stale() and self._try_create()):
                self._held = True
                return
            logger.debug(f"Lock {self.path} busy (attempt {attempt}/{self.retries})")
            if attempt < self.retries:
                time.sleep(self.backoff_seconds)

        raise HistoryLockError(self.path, self.retries)

    def release(self) -> None:
        if not self._held:
            return
        self._held = False
        try:
            self.path.unlink()
        except OSError as e:
            logger.warning(f"Failed to remove lock file {self.path}: {e}")

    def _try_create(self) -> bool:
        try:
            fd = os.open(str(self.path), os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
        except FileExistsError:
            return False
        with os.fdopen(fd, "w") as f:
            f.write(str(os.getpid()))
        return True

    def _reclaim_if_stale(self) -> bool:
        if self.stale_seconds is None:
            return False
        try:
            age = time.time() - self.path.stat().st_mtime
        except FileNotFoundError:
            # Released between our open and stat; retry immediately.
            return True
        except OSError:
            return False
        if age <= self.stale_seconds:
            return False
        logger.warning(f"Reclaiming abandoned lock {self.path} ({age:.0f}s old)")
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass
        except OSError:
            return False
        return True

    def __enter__(self) -> "HistoryLock":
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.release()


def load_history(path: Optional[Path]) -> History:
    """Load history; a missing or corrupt file yields an empty document."""
    if path is None or not path.exists():
        return History()
    try:
        data = read_json_file(path, "history")
    except ArtifactError as e:
        logger.warning(f"History file {path} is unreadable, starting fresh: {e.details.get('reason', e)}")
        return History()
    if not isinstance(data, dict):
        logger.warning(f"History file {path} is not a JSON object, starting fresh")
        return History()
    return History.from_dict(data)


def trim_history(history: History, max_runs_per_key: int) -> History:
    """Keep only the newest ``max_runs_per_key`` runs of every entry."""
    if max_runs_per_key < 1:
        raise ValueError("max_runs_per_key must be at least 1")
    return replace(
        history,
        paths={key: entry.trimmed(max_runs_per_key) for key, entry in history.paths.items()},
    )


def _write_history(path: Path, history: History, max_runs_per_key: int) -> History:
    """Trim, stamp and atomically write ``history``. The caller holds the lock."""
    persisted = replace(trim_history(history, max_runs_per_key), last_updated=iso_timestamp())
    content = json.dumps(persisted.to_dict(), indent=2, ensure_ascii=False) + "\n"
    try:
        atomic_write_file(path, content)
    except FileWriteError as e:
        raise HistoryWriteError(path, e.reason) from e
    logger.info(f"Saved history with {len(persisted.paths)} path(s) to {path}")
    return persisted


def save_history(
    path: Path,
    history: History,
    max_runs_per_key: int = DEFAULT_MAX_RUNS,
    lock_retries: int = DEFAULT_LOCK_RETRIES,
    lock_backoff_seconds: float = DEFAULT_LOCK_BACKOFF_SECONDS,
    lock_stale_seconds: Optional[float] = DEFAULT_LOCK_STALE_SECONDS,
) -> History:
    """
    Trim, stamp, and persist ``history`` under the advisory lock.

    This overwrites whatever is on disk. Use ``HistoryStore.transaction`` when
    the new document is derived from the current one.

    Returns:
        The document as written

    Raises:
        HistoryLockError: If another writer holds the lock; nothing is written
        HistoryWriteError: If the file cannot be written
    """
    with HistoryLock(
        path,
        retries=lock_retries,
        backoff_seconds=lock_backoff_seconds,
        stale_seconds=lock_stale_seconds,
    ):
        return _write_history(path, history, max_runs_per_key)


def next_consecutive_failures(entry: Optional[HistoryEntry], failed: bool) -> int:
    """Increment on failure, reset to zero on the first passing cycle."""
    if not failed:
        return 0
    previous = entry.consecutive_failures if entry is not None else 0
    return previous + 1


def record_run(
    history: History,
    key: str,
    metrics: MetricSnapshot,
    consecutive_failures: int,
    timestamp: str,
) -> History:
    """Append one run to ``key`` (creating the entry on first sight)."""
    entry = history.paths.get(key) or HistoryEntry()
    updated = HistoryEntry(
        consecutive_failures=consecutive_failures,
        last_seen=timestamp,
        runs=entry.runs + (HistoryRun(metrics=dict(metrics), timestamp=timestamp),),
    )
    paths = dict(history.paths)
    paths[key] = updated
    return replace(history, paths=paths)


def cleanup_stale_paths(
    history: History,
    active_keys: Collection[str],
    stale_days: int,
    now: Optional[datetime] = None,
) -> Tuple[History, List[str]]:
    """
    Drop entries that are inactive and stale.

    An entry is removed when its key is not in ``active_keys`` and its
    ``lastSeen`` is unparseable or older than ``stale_days``. Active keys
    are kept regardless of age.

    Returns:
        (history without the removed entries, removed keys)
    """
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    cutoff = now - timedelta(days=stale_days)

    kept = {}
    removed: List[str] = []
    for key, entry in history.paths.items():
        if key not in active_keys:
            last_seen = parse_timestamp(entry.last_seen)
            if last_seen is None or last_seen < cutoff:
                removed.append(key)
                continue
        kept[key] = entry

    if not removed:
        return history, removed
    return replace(history, paths=kept), removed


class HistoryTransaction:
    """The history as read under the lock, plus the pending write."""

    def __init__(self, store: "HistoryStore", history: History) -> None:
        self._store = store
        self.history = history
        self.written: Optional[History] = None

    def commit(self, history: History) -> History:
        """Write ``history`` while the lock is still held. Only once per transaction."""
        if self.written is not None:
            raise RuntimeError("history transaction already committed")
        self.written = _write_history(self._store.path, history, self._store.max_runs_per_key)
        return self.written


class HistoryStore:
    """Bundles a history path with its retention and locking policy."""

    def __init__(
        self,
        path: Path,
        max_runs_per_key: int = DEFAULT_MAX_RUNS,
        lock_retries: int = DEFAULT_LOCK_RETRIES,
        lock_backoff_seconds: float = DEFAULT_LOCK_BACKOFF_SECONDS,
        lock_stale_seconds: Optional[float] = DEFAULT_LOCK_STALE_SECONDS,
    ) -> None:
        self.path = path
        self.max_runs_per_key = max_runs_per_key
        self.lock_retries = lock_retries
        self.lock_backoff_seconds = lock_backoff_seconds
        self.lock_stale_seconds = lock_stale_seconds

    def lock(self) -> HistoryLock:
        return HistoryLock(
            self.path,
            retries=self.lock_retries,
            backoff_seconds=self.lock_backoff_seconds,
            stale_seconds=self.lock_stale_seconds,
        )

    def load(self) -> History:
        """Unlocked read. Safe because writes are atomic, but never write back what it returns."""
        return load_history(self.path)

    @contextmanager
    def transaction(self) -> Iterator[HistoryTransaction]:
        """
        Locked read-modify-write of the history file.

        The lock is taken before the file is read and released after the
        commit, so concurrent CI jobs cannot overwrite each other's runs.
        Leaving the block without ``commit`` writes nothing.

        Usage::

            with store.transaction() as txn:
                txn.commit(record_run(txn.history, key, metrics, 0, ts))

        Raises:
            HistoryLockError: If another writer holds the lock; nothing is read
            HistoryWriteError: From ``commit`` if the file cannot be written
        """
        with self.lock():
            yield HistoryTransaction(self, load_history(self.path))
